"""Resolution engine: confines, code execution, environment scoping, caching."""

from factkit.resolution.confine import (
    Confine,
    ConfineKind,
    FactLookup,
    Matcher,
    casefold_matcher,
)
from factkit.resolution.environment import environment, with_environment
from factkit.resolution.execution import (
    Code,
    CodeKind,
    ExecutionEngine,
    expand_command,
    reap_orphans,
    which,
)
from factkit.resolution.normalize import normalize_value
from factkit.resolution.resolution import Resolution

__all__ = [
    "Code",
    "CodeKind",
    "Confine",
    "ConfineKind",
    "ExecutionEngine",
    "FactLookup",
    "Matcher",
    "Resolution",
    "casefold_matcher",
    "environment",
    "expand_command",
    "normalize_value",
    "reap_orphans",
    "which",
    "with_environment",
]
