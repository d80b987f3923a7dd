"""
Unit tests for src/common/error_handling.py, src/common/config.py and
src/common/logger.py
"""

import json
import logging

import pytest

from src.common.config import Config, parse_optional_float
from src.common.error_handling import (
    ErrorCollector,
    ProviderError,
    ScoutError,
    ScoutPersistenceError,
    ScoutValidationError,
    build_failure_message,
    describe_exception,
    log_on_exception,
)
from src.common.logger import (
    ScoutJsonFormatter,
    ScoutLogger,
    ScoutTextFormatter,
    get_logger,
    set_global_debug_mode,
)


class TestExceptionHierarchy:
    """Tests for the scout exception classes."""

    def test_all_derive_from_scout_error(self):
        """Callers can catch every pipeline error at once."""
        for error_class in (ScoutValidationError, ScoutPersistenceError):
            assert issubclass(error_class, ScoutError)

    def test_provider_error_keeps_provider(self):
        """ProviderError records which provider failed."""
        error = ProviderError("linkedin_li_at", "session expired")
        assert error.provider == "linkedin_li_at"
        assert str(error) == "session expired"


class TestErrorCollector:
    """Tests for ErrorCollector and the failure message helpers."""

    def test_describe_exception_falls_back_to_type(self):
        """Empty messages are replaced by the exception type name."""
        assert describe_exception(TimeoutError()) == "TimeoutError"
        assert describe_exception(ValueError("  bad cookie ")) == "bad cookie"

    def test_aggregate_message(self):
        """Every failed adapter is named with its error text."""
        collector = ErrorCollector()
        collector.add("linkedin_li_at", RuntimeError("HTTP 500"))
        failure = collector.add("static_seed", TimeoutError())

        assert len(collector) == 2
        assert failure.exception_type == "TimeoutError"
        assert collector.aggregate_message() == (
            "All configured scout providers failed: linkedin_li_at (HTTP 500), static_seed (TimeoutError)"
        )
        assert collector.failures[0].to_dict()["adapter"] == "linkedin_li_at"

    def test_empty_failure_message(self):
        """Without adapters a generic message is used."""
        assert build_failure_message([]) == "All configured scout providers failed."


class TestLogOnException:
    """Tests for log_on_exception()."""

    def test_logs_and_reraises(self, caplog):
        """The exception is logged and still propagates."""
        logger = logging.getLogger("test.log_on_exception")

        with caplog.at_level(logging.WARNING, logger="test.log_on_exception"):
            with pytest.raises(KeyError):
                with log_on_exception(logger, "load run"):
                    raise KeyError("run-1")

        assert "[load run] Failed" in caplog.text

    def test_silent_on_success(self, caplog):
        """Nothing is logged when the block succeeds."""
        logger = logging.getLogger("test.log_on_exception")
        with caplog.at_level(logging.WARNING, logger="test.log_on_exception"):
            with log_on_exception(logger, "noop"):
                pass
        assert caplog.text == ""


class TestConfig:
    """Tests for Config."""

    @pytest.mark.parametrize(
        "raw,expected",
        [(None, None), ("", None), ("  ", None), ("abc", None), ("inf", None), ("0.7", 0.7)],
    )
    def test_parse_optional_float(self, raw, expected):
        """Blank, garbage and non-finite values parse to None."""
        assert parse_optional_float(raw) == expected

    def test_min_target_confidence_default(self):
        """Without an override the floor is 0.45."""
        assert Config.min_target_confidence() == 0.45

    @pytest.mark.parametrize("raw,expected", [("0.6", 0.6), ("3", 1.0), ("-1", 0.0), ("junk", 0.45)])
    def test_min_target_confidence_from_env(self, monkeypatch, raw, expected):
        """The environment value is re-read and clamped."""
        monkeypatch.setenv("SCOUT_MIN_TARGET_CONFIDENCE", raw)
        assert Config.min_target_confidence() == expected

    def test_validate_rejects_negative_penalty(self, monkeypatch):
        """Out-of-range settings fail validation."""
        monkeypatch.setattr(Config, "SCOUT_GUARDRAIL_PENALTY", -1.0)
        with pytest.raises(ValueError, match="SCOUT_GUARDRAIL_PENALTY"):
            Config.validate()

    def test_summary_hides_cookie(self, monkeypatch):
        """The summary reports presence of secrets, never their values."""
        monkeypatch.setattr(Config, "LINKEDIN_LI_AT", "secret-cookie")
        summary = Config.summary()
        assert "secret-cookie" not in summary
        assert "LinkedIn session: ✓ Configured" in summary


class TestScoutLogger:
    """Tests for ScoutLogger and the run-context formatters."""

    def test_records_carry_run_context(self, caplog):
        """run_id and layer travel on the log record, not only in the text."""
        logger = get_logger("test.scout_logger", run_id="1234567890abcdef", layer="discovery")

        with caplog.at_level(logging.INFO, logger="test.scout_logger"):
            logger.info("searching")

        record = caplog.records[0]
        assert record.getMessage() == "searching"
        assert record.run_id == "1234567890abcdef"
        assert record.layer == "discovery"

    def test_bind_switches_layer(self, caplog):
        """bind() keeps the run id and changes the layer."""
        logger = ScoutLogger("test.scout_logger", run_id="abcdef123456").bind("scoring")

        with caplog.at_level(logging.INFO, logger="test.scout_logger"):
            logger.info("scored")

        assert (caplog.records[0].run_id, caplog.records[0].layer) == ("abcdef123456", "scoring")

    def test_log_on_exception_keeps_run_context(self, caplog):
        """Failures logged through the adapter are tagged with the run."""
        logger = get_logger("test.scout_logger", run_id="run-42", layer="scoring")

        with caplog.at_level(logging.ERROR, logger="test.scout_logger"):
            with pytest.raises(RuntimeError):
                with log_on_exception(logger, "save scout targets", level=logging.ERROR):
                    raise RuntimeError("disk full")

        assert caplog.records[0].run_id == "run-42"
        assert "[save scout targets] Failed: disk full" in caplog.records[0].getMessage()

    def test_text_formatter_prefixes_context(self):
        """Text lines show the short run id and the layer."""
        record = logging.LogRecord("scout", logging.INFO, __file__, 1, "searching", None, None)
        record.run_id = "1234567890abcdef"
        record.layer = "discovery"

        assert ScoutTextFormatter().format(record).endswith("scout: [run:12345678] [discovery] searching")

    def test_text_formatter_without_context(self):
        """Records from plain module loggers have no prefix."""
        record = logging.LogRecord("scout", logging.INFO, __file__, 1, "hello", None, None)
        assert ScoutTextFormatter().format(record).endswith("scout: hello")

    def test_json_formatter_emits_fields(self):
        """JSON lines keep run_id and layer as separate fields."""
        record = logging.LogRecord("scout", logging.WARNING, __file__, 1, 'quote " %s', ("ok",), None)
        record.run_id = "1234567890abcdef"
        record.layer = "scoring"

        payload = json.loads(ScoutJsonFormatter().format(record))

        assert payload["message"] == 'quote " ok'
        assert payload["level"] == "WARNING"
        assert payload["run_id"] == "1234567890abcdef"
        assert payload["layer"] == "scoring"

    def test_json_formatter_omits_missing_context(self):
        """Plain records have no run fields."""
        record = logging.LogRecord("scout", logging.INFO, __file__, 1, "hello", None, None)
        payload = json.loads(ScoutJsonFormatter().format(record))
        assert "run_id" not in payload and "layer" not in payload

    def test_debug_mode_sets_level(self):
        """Debug mode turns on DEBUG for the logger."""
        set_global_debug_mode(True)
        try:
            assert ScoutLogger("test.scout_logger.debug").logger.level == logging.DEBUG
        finally:
            set_global_debug_mode(False)
