"""Diagnostic sink for warnings raised while resolving facts.

Resolutions and the execution engine never log failures themselves; they
report them to a DiagnosticSink injected at construction. The default sink
forwards to structlog. Tests substitute a capturing sink.
"""

from __future__ import annotations

import threading
from typing import Any, Protocol

import structlog

logger = structlog.get_logger()


class DiagnosticSink(Protocol):
    """Receiver for resolution warnings."""

    def warn(self, event: str, **fields: Any) -> None:
        """Report a warning every time it happens."""
        ...

    def warn_once(self, event: str, **fields: Any) -> None:
        """Report a warning only the first time this event/message pair is seen."""
        ...


class StructlogDiagnostics:
    """DiagnosticSink backed by structlog.

    warn_once keys on (event, message); other fields do not participate in
    deduplication.
    """

    def __init__(self) -> None:
        self._seen: set[tuple[str, str]] = set()
        self._lock = threading.Lock()

    def warn(self, event: str, **fields: Any) -> None:
        logger.warning(event, **fields)

    def warn_once(self, event: str, **fields: Any) -> None:
        key = (event, str(fields.get("message", "")))
        with self._lock:
            if key in self._seen:
                return
            self._seen.add(key)
        logger.warning(event, **fields)


_default_sink: StructlogDiagnostics | None = None


def get_default_sink() -> StructlogDiagnostics:
    """Return the process-wide structlog sink, creating it on first use."""
    global _default_sink
    if _default_sink is None:
        _default_sink = StructlogDiagnostics()
    return _default_sink
