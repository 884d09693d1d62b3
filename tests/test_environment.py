"""Tests for the process environment overlay."""

from __future__ import annotations

import os

import pytest

from factkit.resolution.environment import environment, with_environment

_SENTINEL = "factkit_test_sentinel"


class TestWithEnvironment:
    def test_overrides_visible_inside_body(self) -> None:
        test_env = {"LC_ALL": "C", "FACTKIT_TEST_FOO": "BAR"}

        def body() -> dict[str, str | None]:
            return {key: os.environ.get(key) for key in test_env}

        assert with_environment(test_env, body) == test_env

    def test_returns_body_result(self) -> None:
        assert with_environment({"FACTKIT_TEST_FOO": "x"}, lambda: 42) == 42

    def test_restores_existing_values(self, monkeypatch: pytest.MonkeyPatch) -> None:
        originals = {"FACTKIT_TEST_A": "one", "FACTKIT_TEST_B": "two"}
        for key, value in originals.items():
            monkeypatch.setenv(key, value)

        new_env = {key: "Abracadabra" for key in originals}
        seen = with_environment(new_env, lambda: {k: os.environ[k] for k in originals})

        assert seen == new_env
        for key, value in originals.items():
            assert os.environ[key] == value

    def test_removes_previously_absent_keys(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv(_SENTINEL, raising=False)
        with_environment({_SENTINEL: "bar"}, lambda: None)
        assert _SENTINEL not in os.environ

    def test_restores_after_exception(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv(_SENTINEL, "foo")

        def body() -> None:
            assert os.environ[_SENTINEL] == "bar"
            raise RuntimeError("boom")

        with pytest.raises(RuntimeError, match="boom"):
            with_environment({_SENTINEL: "bar"}, body)
        assert os.environ[_SENTINEL] == "foo"


class TestEnvironmentContextManager:
    def test_early_return_inside_block_restores(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv(_SENTINEL, "foo")

        def handy_method() -> str:
            with environment({_SENTINEL: "bar"}):
                return os.environ[_SENTINEL]

        assert handy_method() == "bar"
        assert os.environ[_SENTINEL] == "foo"

    def test_break_inside_loop_restores(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv(_SENTINEL, raising=False)
        for _ in range(3):
            with environment({_SENTINEL: "bar"}):
                break
        assert _SENTINEL not in os.environ

    def test_empty_overrides_is_noop(self) -> None:
        before = dict(os.environ)
        with environment({}):
            pass
        assert dict(os.environ) == before
