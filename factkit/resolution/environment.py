"""Temporary overlay of process environment variables.

The overlay mutates os.environ for the whole process. It is not safe for
overlapping use on the same keys from several threads; callers serialize.
"""

from __future__ import annotations

import os
from collections.abc import Callable, Iterator, Mapping
from contextlib import contextmanager
from typing import TypeVar

T = TypeVar("T")


@contextmanager
def environment(overrides: Mapping[str, str]) -> Iterator[None]:
    """Apply ``overrides`` to os.environ for the duration of the block.

    Every overridden key is restored on exit, including exits through an
    exception or a ``return`` inside the block. Keys that were unset before
    are removed again.
    """
    saved: dict[str, str | None] = {key: os.environ.get(key) for key in overrides}
    try:
        for key, value in overrides.items():
            os.environ[key] = str(value)
        yield
    finally:
        for key, previous in saved.items():
            if previous is None:
                os.environ.pop(key, None)
            else:
                os.environ[key] = previous


def with_environment(overrides: Mapping[str, str], body: Callable[[], T]) -> T:
    """Run ``body`` with ``overrides`` applied and return its result."""
    with environment(overrides):
        return body()
