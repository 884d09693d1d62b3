"""Execution engine: runs resolution code under an optional timeout.

Commands are spawned through the platform shell with their stdout captured.
Computations are called directly, or on a dedicated daemon thread when a
timeout is set. A thread that misses its deadline is abandoned, never
killed: its result is ignored and exited child processes are reaped so
that anything it spawned does not linger as a zombie.

Failures never propagate out of ExecutionEngine.run(). They are reported to
the diagnostic sink and the run yields None.
"""

from __future__ import annotations

import os
import re
import shlex
import shutil
import signal
import subprocess
import threading
from collections.abc import Callable
from concurrent.futures import Future
from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING, Any

import structlog

from factkit.config.settings import ResolutionSettings
from factkit.infra.diagnostics import DiagnosticSink, get_default_sink
from factkit.infra.errors import ExecutionError, ResolutionTimeoutError
from factkit.resolution.normalize import decode_bytes, normalize_value

if TYPE_CHECKING:
    from collections.abc import Iterable

logger = structlog.get_logger()

# First word of a command line: a double-quoted, single-quoted or bare token
_FIRST_WORD = re.compile(r"""^\s*("[^"]*"|'[^']*'|\S+)(.*)$""", re.DOTALL)


class CodeKind(StrEnum):
    command = "command"
    computation = "computation"


@dataclass(frozen=True)
class Code:
    """Tagged code body of a resolution: a command line or a callable."""

    kind: CodeKind
    command: str | None = None
    computation: Callable[[], Any] | None = None

    @classmethod
    def from_command(cls, command: str) -> Code:
        return cls(kind=CodeKind.command, command=command)

    @classmethod
    def from_computation(cls, computation: Callable[[], Any]) -> Code:
        return cls(kind=CodeKind.computation, computation=computation)

    @property
    def body(self) -> str | Callable[[], Any]:
        if self.kind == CodeKind.command:
            return self.command
        return self.computation


def which(binary: str, search_paths: Iterable[str] = ()) -> str | None:
    """Locate an executable.

    Absolute paths are returned as-is when executable. Bare names are looked
    up on PATH followed by ``search_paths``.
    """
    if os.path.isabs(binary):
        if os.path.isfile(binary) and os.access(binary, os.X_OK):
            return binary
        return None
    path = os.pathsep.join([os.environ.get("PATH", os.defpath), *search_paths])
    return shutil.which(binary, path=path)


def expand_command(command: str, search_paths: Iterable[str] = ()) -> str | None:
    """Replace the first word of ``command`` with its absolute path.

    Returns None when the command is blank or its binary cannot be found.
    Arguments after the first word are kept verbatim.
    """
    match = _FIRST_WORD.match(command)
    if match is None:
        return None
    first, rest = match.groups()
    if first[:1] in {'"', "'"}:
        first = first[1:-1]
    path = which(first, search_paths)
    if path is None:
        return None
    return f"{shlex.quote(path)}{rest}"


def reap_orphans() -> int:
    """Reap every already-exited child process without blocking.

    Returns the number of children reaped. Errors end the sweep quietly.
    """
    if not hasattr(os, "WNOHANG"):
        return 0
    reaped = 0
    while True:
        try:
            pid, _status = os.waitpid(-1, os.WNOHANG)
        except ChildProcessError:
            break
        except OSError as exc:
            logger.debug("orphan_reap_failed", error=str(exc))
            break
        if pid == 0:
            break
        reaped += 1
    if reaped:
        logger.debug("orphans_reaped", count=reaped)
    return reaped


def _kill_process_group(proc: subprocess.Popen) -> None:
    try:
        if hasattr(os, "killpg"):
            os.killpg(proc.pid, signal.SIGKILL)
        else:
            proc.kill()
    except ProcessLookupError:
        pass


class ExecutionEngine:
    """Runs Code bodies and normalizes their results."""

    def __init__(
        self,
        *,
        diagnostics: DiagnosticSink | None = None,
        settings: ResolutionSettings | None = None,
    ) -> None:
        self._diagnostics = diagnostics or get_default_sink()
        self._settings = settings or ResolutionSettings()

    @property
    def search_paths(self) -> list[str]:
        return self._settings.search_paths

    def run(self, code: Code, *, timeout: float = 0, label: str = "") -> Any:
        """Run ``code`` and return its normalized value, or None on any failure.

        ``timeout`` of 0 waits indefinitely. Every failure (missing binary,
        spawn error, exception from a computation, timeout, undecodable
        output) is reported once to the diagnostic sink.
        """
        try:
            if code.kind == CodeKind.command:
                raw = self.run_command(code.command, timeout=timeout)
            else:
                raw = self.run_computation(code.computation, timeout=timeout, label=label)
            return normalize_value(raw)
        except ResolutionTimeoutError as exc:
            self._diagnostics.warn(
                "resolution_timeout",
                resolution=label,
                timeout=exc.timeout,
                message=f"Timed out after {exc.timeout} seconds while resolving {label}",
            )
        except Exception as exc:
            self._diagnostics.warn(
                "resolution_failed",
                resolution=label,
                error_code=getattr(exc, "code", "EXECUTION_ERROR"),
                message=f"Could not retrieve {label}: {type(exc).__name__}: {exc}",
            )
        return None

    def run_command(self, command: str, *, timeout: float = 0) -> str | None:
        """Run a shell command and return its stripped stdout.

        Returns None when the command printed nothing. Raises ExecutionError
        when the binary is missing or cannot be spawned and
        ResolutionTimeoutError when the deadline passes.
        """
        expanded = expand_command(command, self.search_paths)
        if expanded is None:
            raise ExecutionError(f"command not found: {command}", code="COMMAND_NOT_FOUND")

        locale = self._settings.command_locale
        # Only the child sees the locale; os.environ is shared by concurrent resolutions
        env = {**os.environ, "LANG": locale, "LC_ALL": locale}
        stdout = self._spawn(expanded, timeout, env)

        output = decode_bytes(stdout).strip()
        return output or None

    def _spawn(self, command: str, timeout: float, env: dict[str, str]) -> bytes:
        try:
            proc = subprocess.Popen(
                command,
                shell=True,
                env=env,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                start_new_session=True,
            )
        except OSError as exc:
            raise ExecutionError(f"failed to spawn {command}: {exc}") from exc

        with proc:
            try:
                stdout, stderr = proc.communicate(timeout=timeout or None)
            except subprocess.TimeoutExpired as exc:
                # Kill the whole session so grandchildren release the pipes
                _kill_process_group(proc)
                proc.communicate()
                raise ResolutionTimeoutError(
                    f"command timed out: {command}", timeout=timeout
                ) from exc

        if proc.returncode != 0:
            logger.debug(
                "command_nonzero_exit",
                command=command,
                returncode=proc.returncode,
                stderr=stderr.decode("utf-8", errors="replace").strip()[:500],
            )
        return stdout

    def run_computation(
        self,
        computation: Callable[[], Any],
        *,
        timeout: float = 0,
        label: str = "",
    ) -> Any:
        """Call ``computation``; with a timeout, on a thread the caller may abandon.

        Exceptions raised by the computation propagate to the caller.
        """
        if not timeout:
            return computation()

        future: Future = Future()

        def _target() -> None:
            if not future.set_running_or_notify_cancel():
                return
            try:
                result = computation()
            except BaseException as exc:
                future.set_exception(exc)
            else:
                future.set_result(result)

        worker = threading.Thread(
            target=_target, name=f"factkit-resolve-{label or 'anonymous'}", daemon=True
        )
        worker.start()
        try:
            return future.result(timeout=timeout)
        except TimeoutError as exc:
            if future.done():
                # Finished right at the deadline, or raised TimeoutError itself
                return future.result()
            logger.debug("computation_abandoned", resolution=label, thread=worker.name)
            if self._settings.reap_orphans:
                reap_orphans()
            raise ResolutionTimeoutError(
                f"computation timed out after {timeout} seconds", timeout=timeout
            ) from exc

