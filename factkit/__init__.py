"""factkit: per-candidate fact resolution with confinement, timeouts and caching."""

from factkit.infra.diagnostics import DiagnosticSink, StructlogDiagnostics
from factkit.infra.errors import (
    ConfigurationError,
    ExecutionError,
    FactkitError,
    NormalizationError,
    ResolutionTimeoutError,
)
from factkit.resolution import Confine, ExecutionEngine, Resolution, with_environment

__all__ = [
    "ConfigurationError",
    "Confine",
    "DiagnosticSink",
    "ExecutionEngine",
    "ExecutionError",
    "FactkitError",
    "NormalizationError",
    "Resolution",
    "ResolutionTimeoutError",
    "StructlogDiagnostics",
    "with_environment",
]
