"""Tests for the structlog-backed diagnostic sink."""

from __future__ import annotations

import pytest
import structlog

from factkit.infra.diagnostics import StructlogDiagnostics, get_default_sink
from factkit.config.settings import LoggingSettings
from factkit.infra.logging import setup_logging, setup_logging_from
from factkit.resolution.execution import Code, ExecutionEngine


@pytest.fixture
def log_capture():
    cap = structlog.testing.LogCapture()
    structlog.configure(processors=[cap], wrapper_class=structlog.BoundLogger)
    try:
        yield cap
    finally:
        structlog.reset_defaults()


class TestStructlogDiagnostics:
    def test_warn_emits_warning(self, log_capture) -> None:
        StructlogDiagnostics().warn("resolution_failed", resolution="os", message="feh")
        assert log_capture.entries == [
            {
                "event": "resolution_failed",
                "resolution": "os",
                "message": "feh",
                "log_level": "warning",
            }
        ]

    def test_warn_repeats(self, log_capture) -> None:
        sink = StructlogDiagnostics()
        sink.warn("resolution_failed", message="feh")
        sink.warn("resolution_failed", message="feh")
        assert len(log_capture.entries) == 2

    def test_warn_once_deduplicates(self, log_capture) -> None:
        sink = StructlogDiagnostics()
        sink.warn_once("deprecated_api", message="old")
        sink.warn_once("deprecated_api", message="old")
        sink.warn_once("deprecated_api", message="other")
        messages = [e["message"] for e in log_capture.entries]
        assert messages == ["old", "other"]

    def test_default_sink_is_shared(self) -> None:
        assert get_default_sink() is get_default_sink()


class TestEngineWithDefaultSink:
    def test_failure_logged_through_structlog(self, log_capture) -> None:
        def boom() -> str:
            raise RuntimeError("feh")

        engine = ExecutionEngine(diagnostics=StructlogDiagnostics())
        assert engine.run(Code.from_computation(boom), label="yay") is None

        events = [e for e in log_capture.entries if e.get("event") == "resolution_failed"]
        assert len(events) == 1
        assert events[0]["log_level"] == "warning"
        assert events[0]["resolution"] == "yay"
        assert "feh" in events[0]["message"]


class TestSetupLogging:
    def test_json_output_filters_below_level(self, capsys: pytest.CaptureFixture[str]) -> None:
        setup_logging(json_output=True, log_level="WARNING")
        try:
            log = structlog.get_logger()
            log.info("hidden_event")
            log.warning("shown_event", resolution="os")
            out = capsys.readouterr().out
            assert "hidden_event" not in out
            assert '"event": "shown_event"' in out
            assert '"level": "warning"' in out
        finally:
            structlog.reset_defaults()

    def test_from_settings(self, capsys: pytest.CaptureFixture[str]) -> None:
        setup_logging_from(LoggingSettings(json_output=True, level="ERROR"))
        try:
            log = structlog.get_logger()
            log.warning("quiet_event")
            log.error("loud_event")
            out = capsys.readouterr().out
            assert "quiet_event" not in out
            assert '"event": "loud_event"' in out
        finally:
            structlog.reset_defaults()

    def test_from_env(
        self, capsys: pytest.CaptureFixture[str], monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("FACTKIT_LOG_JSON_OUTPUT", "true")
        monkeypatch.setenv("FACTKIT_LOG_LEVEL", "debug")
        setup_logging_from()
        try:
            structlog.get_logger().debug("debug_event")
            assert '"event": "debug_event"' in capsys.readouterr().out
        finally:
            structlog.reset_defaults()
