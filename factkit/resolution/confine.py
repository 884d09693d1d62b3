"""Suitability predicates attached to a Resolution."""

from __future__ import annotations

from collections.abc import Callable, Collection
from enum import StrEnum
from typing import Any

import structlog

logger = structlog.get_logger()

FactLookup = Callable[[str], Any]
"""Name -> current value of that fact (None when the fact is unknown)."""

Matcher = Callable[[Any, Any], bool]
"""(actual fact value, expected value) -> True when they match."""


class ConfineKind(StrEnum):
    fact_equals = "fact_equals"
    fact_predicate = "fact_predicate"
    predicate = "predicate"
    missing = "missing"


def casefold_matcher(actual: Any, expected: Any) -> bool:
    """Default comparison: string forms compared case-insensitively."""
    return str(actual).casefold() == str(expected).casefold()


class Confine:
    """One named suitability test.

    Shapes, selected by the constructor arguments:

    - ``Confine("kernel", "Linux", lookup=...)``: the looked-up fact must match
      the expected value. A list, tuple or set of expected values matches if
      any element does.
    - ``Confine("kernel", predicate=fn, lookup=...)``: ``fn`` receives the
      looked-up fact value.
    - ``Confine(predicate=fn)``: ``fn`` takes no arguments.

    A confine with neither an expected value nor a predicate is always false.
    Evaluation never raises; failures count as false.
    """

    def __init__(
        self,
        fact: str | None = None,
        expected: Any = None,
        *,
        predicate: Callable[..., Any] | None = None,
        lookup: FactLookup | None = None,
        matcher: Matcher = casefold_matcher,
    ) -> None:
        self.fact = fact
        self.expected = expected
        self.predicate = predicate
        self._lookup = lookup
        self._matcher = matcher

        if fact is not None and predicate is not None:
            self.kind = ConfineKind.fact_predicate
        elif fact is not None and expected is not None:
            self.kind = ConfineKind.fact_equals
        elif fact is None and predicate is not None:
            self.kind = ConfineKind.predicate
        else:
            self.kind = ConfineKind.missing

    def __repr__(self) -> str:
        if self.kind == ConfineKind.fact_equals:
            return f"<Confine {self.fact}={self.expected!r}>"
        if self.kind == ConfineKind.fact_predicate:
            return f"<Confine {self.fact} predicate>"
        return f"<Confine {self.kind.value}>"

    def _expected_values(self) -> list[Any]:
        if isinstance(self.expected, Collection) and not isinstance(
            self.expected, (str, bytes)
        ):
            return list(self.expected)
        return [self.expected]

    def _fact_value(self) -> Any:
        if self._lookup is None:
            logger.debug("confine_without_lookup", fact=self.fact)
            return None
        return self._lookup(self.fact)

    def is_true(self) -> bool:
        """Evaluate the confine. Exceptions from lookups or predicates yield False."""
        try:
            return self._evaluate()
        except Exception as exc:
            logger.debug(
                "confine_evaluation_failed",
                confine=repr(self),
                error=f"{type(exc).__name__}: {exc}",
            )
            return False

    def _evaluate(self) -> bool:
        if self.kind == ConfineKind.predicate:
            return bool(self.predicate())

        if self.kind == ConfineKind.missing:
            return False

        # Absent facts never satisfy a fact confine, whatever the predicate says
        actual = self._fact_value()
        if actual is None:
            return False

        if self.kind == ConfineKind.fact_predicate:
            return bool(self.predicate(actual))
        return any(self._matcher(actual, want) for want in self._expected_values())
