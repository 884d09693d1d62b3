"""Custom exception hierarchy for factkit.

All package-specific exceptions inherit from FactkitError,
which carries an error code for diagnostic event mapping.
"""

from __future__ import annotations


class FactkitError(Exception):
    """Base exception for all factkit errors."""

    def __init__(self, message: str, *, code: str = "INTERNAL_ERROR") -> None:
        super().__init__(message)
        self.code = code


class ConfigurationError(FactkitError, ValueError):
    """Invalid argument while building or configuring a resolution."""

    def __init__(self, message: str, *, code: str = "CONFIGURATION_ERROR") -> None:
        super().__init__(message, code=code)


class ExecutionError(FactkitError):
    """A command could not be run or a computation raised."""

    def __init__(self, message: str, *, code: str = "EXECUTION_ERROR") -> None:
        super().__init__(message, code=code)


class ResolutionTimeoutError(ExecutionError):
    """Code did not finish within its configured timeout."""

    def __init__(self, message: str, *, timeout: float) -> None:
        super().__init__(message, code="RESOLUTION_TIMEOUT")
        self.timeout = timeout


class NormalizationError(ExecutionError):
    """A resolved value could not be converted to canonical text."""

    def __init__(self, message: str) -> None:
        super().__init__(message, code="NORMALIZATION_ERROR")
