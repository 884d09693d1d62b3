"""A single candidate mechanism for computing one fact.

A Resolution is configured with confines (when does it apply), a code body
(how to compute the value), an optional weight and timeout, and flush hooks.
The fact registry that owns several Resolutions per fact lives outside this
package; it only talks to the public methods below.
"""

from __future__ import annotations

import numbers
from collections.abc import Callable, Mapping
from typing import TYPE_CHECKING, Any

from factkit.infra.diagnostics import DiagnosticSink, get_default_sink
from factkit.infra.errors import ConfigurationError
from factkit.resolution.confine import Confine, FactLookup, Matcher, casefold_matcher
from factkit.resolution.execution import Code, CodeKind, ExecutionEngine

if TYPE_CHECKING:
    from factkit.config.settings import ResolutionSettings

_DEPRECATION = "{} is deprecated and will be removed in a future version."


class Resolution:
    """One way to compute a fact, with a cached value.

    Value cache states: uncomputed, cached. value() moves uncomputed to cached
    on success and leaves it uncomputed on failure; flush() moves back to
    uncomputed. No lock guards the cache: one caller per instance at a time.
    """

    def __init__(
        self,
        name: str,
        *,
        lookup: FactLookup | None = None,
        matcher: Matcher = casefold_matcher,
        engine: ExecutionEngine | None = None,
        diagnostics: DiagnosticSink | None = None,
        settings: ResolutionSettings | None = None,
    ) -> None:
        if not isinstance(name, str) or not name:
            raise ConfigurationError("a resolution requires a non-empty name")

        self._name = name
        self._lookup = lookup
        self._matcher = matcher
        self._diagnostics = diagnostics or get_default_sink()
        self._engine = engine or ExecutionEngine(
            diagnostics=self._diagnostics, settings=settings
        )
        self._timeout: float = settings.default_timeout_seconds if settings else 0
        self._weight: int | None = None
        self._confines: list[Confine] = []
        self._code: Code | None = None
        self._interpreter: str | None = None
        self._flush_hooks: list[Callable[[], Any]] = []
        self._value: Any = None
        self._cached = False

    def __repr__(self) -> str:
        return f"<Resolution {self._name!r} weight={self.weight} confines={len(self._confines)}>"

    def __str__(self) -> str:
        value = self.value()
        return "" if value is None else str(value)

    @property
    def name(self) -> str:
        return self._name

    # ------------------------------------------------------------------
    # Configuration
    # ------------------------------------------------------------------

    @property
    def timeout(self) -> float:
        """Seconds allowed for the code body. 0 means no limit."""
        return self._timeout

    @timeout.setter
    def timeout(self, seconds: float) -> None:
        if isinstance(seconds, bool) or not isinstance(seconds, numbers.Real):
            raise ConfigurationError(f"timeout must be a number (got {seconds!r})")
        if seconds < 0:
            raise ConfigurationError(f"timeout must be >= 0 (got {seconds})")
        self._timeout = seconds

    @property
    def code(self) -> str | Callable[[], Any] | None:
        """The command string or computation, None until set_code() is called."""
        return self._code.body if self._code is not None else None

    @property
    def code_kind(self) -> CodeKind | None:
        return self._code.kind if self._code is not None else None

    def set_code(
        self,
        command: str | None = None,
        computation: Callable[[], Any] | None = None,
        *,
        interpreter: str | None = None,
    ) -> None:
        """Set the code body.

        A command string takes precedence over a computation passed in the
        same call. Raises ConfigurationError when neither is given.
        """
        if command is not None:
            if not isinstance(command, str):
                raise ConfigurationError(f"command must be a string (got {command!r})")
            code = Code.from_command(command)
        elif computation is not None:
            if not callable(computation):
                raise ConfigurationError("computation must be callable")
            code = Code.from_computation(computation)
        else:
            raise ConfigurationError("set_code requires a command string or a computation")

        if interpreter is not None:
            self._diagnostics.warn_once(
                "deprecated_api",
                message=_DEPRECATION.format("The interpreter parameter to 'set_code'"),
            )
            self._interpreter = interpreter
        self._code = code

    @property
    def interpreter(self) -> str | None:
        self._diagnostics.warn_once(
            "deprecated_api", message=_DEPRECATION.format("Resolution.interpreter")
        )
        return self._interpreter

    @interpreter.setter
    def interpreter(self, value: str | None) -> None:
        self._diagnostics.warn_once(
            "deprecated_api", message=_DEPRECATION.format("Setting Resolution.interpreter")
        )
        self._interpreter = value

    def confine(
        self,
        confines: Mapping[str, Any] | str | Callable[[], Any] | None = None,
        check: Any = None,
        /,
        **facts: Any,
    ) -> None:
        """Attach confines. Calls accumulate.

        Accepted shapes::

            res.confine({"kernel": "Linux", "arch": ["x86_64", "amd64"]})
            res.confine(kernel="Linux")
            res.confine("kernel", "Linux")
            res.confine("kernel", lambda value: value.startswith("Lin"))
            res.confine(lambda: os.path.exists("/proc"))
        """
        added: list[Confine] = []

        if isinstance(confines, Mapping):
            added.extend(
                self._fact_confine(str(fact), expected) for fact, expected in confines.items()
            )
        elif isinstance(confines, str):
            if check is None:
                raise ConfigurationError(
                    f"confine on fact '{confines}' requires an expected value or a predicate"
                )
            added.append(self._fact_confine(confines, check))
        elif callable(confines):
            added.append(Confine(predicate=confines))
        elif confines is not None:
            raise ConfigurationError(f"unsupported confine argument: {confines!r}")
        elif check is not None:
            raise ConfigurationError("a predicate without a fact name must be passed first")

        added.extend(self._fact_confine(fact, expected) for fact, expected in facts.items())

        if not added:
            raise ConfigurationError("confine requires at least one fact or predicate")
        self._confines.extend(added)

    def _fact_confine(self, fact: str, check: Any) -> Confine:
        if callable(check):
            return Confine(fact, predicate=check, lookup=self._lookup, matcher=self._matcher)
        return Confine(fact, check, lookup=self._lookup, matcher=self._matcher)

    @property
    def confines(self) -> tuple[Confine, ...]:
        return tuple(self._confines)

    def has_weight(self, weight: int) -> None:
        """Override the confine-count weight."""
        if isinstance(weight, bool) or not isinstance(weight, int):
            raise ConfigurationError(f"weight must be an integer (got {weight!r})")
        self._weight = weight

    @property
    def weight(self) -> int:
        """Explicit weight if set, else the number of confines."""
        if self._weight is not None:
            return self._weight
        return len(self._confines)

    def on_flush(self, hook: Callable[[], Any]) -> None:
        if not callable(hook):
            raise ConfigurationError("flush hook must be callable")
        self._flush_hooks.append(hook)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def suitable(self) -> bool:
        """True when every confine holds. True when there are none."""
        return all(confine.is_true() for confine in self._confines)

    def value(self) -> Any:
        """Return the cached value, computing it on first use.

        Returns None without running anything if no code is set. Failures and
        timeouts are reported by the engine; they yield None and leave the
        cache empty.
        """
        if self._cached:
            return self._value
        if self._code is None:
            return None

        result = self._engine.run(self._code, timeout=self._timeout, label=self._name)
        if result is not None:
            self._value = result
            self._cached = True
        return result

    def set_value(self, value: Any) -> None:
        """Seed the cache directly. None empties it."""
        self._value = value
        self._cached = value is not None

    def flush(self) -> None:
        """Empty the cache, then run flush hooks in registration order.

        A failing hook propagates and the remaining hooks are skipped.
        """
        self._value = None
        self._cached = False
        for hook in self._flush_hooks:
            hook()
