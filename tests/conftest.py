"""Shared pytest fixtures for factkit tests."""

from __future__ import annotations

from typing import Any

import pytest

from factkit.config.settings import ResolutionSettings
from factkit.resolution.execution import ExecutionEngine


class CapturingSink:
    """DiagnosticSink that records every warning instead of logging it."""

    def __init__(self) -> None:
        self.warnings: list[dict[str, Any]] = []
        self._once: set[tuple[str, str]] = set()

    def warn(self, event: str, **fields: Any) -> None:
        self.warnings.append({"event": event, **fields})

    def warn_once(self, event: str, **fields: Any) -> None:
        key = (event, str(fields.get("message", "")))
        if key in self._once:
            return
        self._once.add(key)
        self.warn(event, **fields)

    def events(self) -> list[str]:
        return [w["event"] for w in self.warnings]


@pytest.fixture
def sink() -> CapturingSink:
    return CapturingSink()


@pytest.fixture
def settings() -> ResolutionSettings:
    return ResolutionSettings()


@pytest.fixture
def engine(sink: CapturingSink, settings: ResolutionSettings) -> ExecutionEngine:
    return ExecutionEngine(diagnostics=sink, settings=settings)
