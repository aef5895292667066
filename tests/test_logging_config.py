"""
Logging Infrastructure Tests

Tests formatters, LogContext, the timing decorator and the structured
logging helpers.

Run with: pytest tests/test_logging_config.py -v
"""

import json
import logging

import pytest
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))


def make_record(message="Scored instrument", level=logging.INFO, **extra):
    record = logging.LogRecord('alphaconfluence.test', level, __file__, 10, message, (), None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


@pytest.fixture
def restore_root_logger():
    """setup_logging replaces root handlers; put them back afterwards"""
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield root
    root.handlers[:] = handlers
    root.setLevel(level)


class TestFormatters:
    """Tests for JSON and readable formatters"""

    def test_json_formatter_includes_extra_fields(self):
        from alphaconfluence.utils.logging_config import JSONFormatter

        data = json.loads(JSONFormatter().format(make_record(instrument="SPY", confidence=0.67)))
        assert data["level"] == "INFO"
        assert data["logger"] == "alphaconfluence.test"
        assert data["message"] == "Scored instrument"
        assert data["context"] == {"instrument": "SPY", "confidence": 0.67}

    def test_json_formatter_without_extra(self):
        from alphaconfluence.utils.logging_config import JSONFormatter

        data = json.loads(JSONFormatter().format(make_record()))
        assert "context" not in data

    def test_json_formatter_exception(self):
        from alphaconfluence.utils.logging_config import JSONFormatter

        try:
            raise ValueError("bad chain")
        except ValueError:
            record = make_record(level=logging.ERROR)
            record.exc_info = sys.exc_info()

        data = json.loads(JSONFormatter().format(record))
        assert data["exception"]["type"] == "ValueError"
        assert data["exception"]["message"] == "bad chain"

    def test_readable_formatter(self):
        from alphaconfluence.utils.logging_config import ReadableFormatter

        line = ReadableFormatter(use_color=False).format(make_record(instrument="QQQ"))
        assert "| INFO     | alphaconfluence.test | Scored instrument" in line
        assert line.endswith("instrument=QQQ")
        assert "\033[" not in line


class TestLogContext:
    """Tests for the contextual logging fields"""

    def test_nested_context(self):
        from alphaconfluence.utils.logging_config import LogContext

        with LogContext(watchlist_size=3):
            with LogContext(instrument="SPY"):
                assert LogContext.get_context() == {"watchlist_size": 3, "instrument": "SPY"}
            assert LogContext.get_context() == {"watchlist_size": 3}
        assert LogContext.get_context() == {}

    def test_context_restored_on_error(self):
        from alphaconfluence.utils.logging_config import LogContext

        with pytest.raises(RuntimeError):
            with LogContext(instrument="SPY"):
                raise RuntimeError("boom")
        assert LogContext.get_context() == {}

    def test_context_in_formatted_output(self):
        from alphaconfluence.utils.logging_config import JSONFormatter, LogContext

        with LogContext(cycle=42):
            data = json.loads(JSONFormatter().format(make_record()))
        assert data["context"] == {"cycle": 42}


class TestLogExecutionTime:
    """Tests for the timing decorator"""

    def test_logs_completion(self, caplog):
        from alphaconfluence.utils.logging_config import log_execution_time

        @log_execution_time(level=logging.INFO)
        def score():
            return 0.5

        with caplog.at_level(logging.DEBUG):
            assert score() == 0.5
        record = next(r for r in caplog.records if r.getMessage() == "score completed")
        assert record.execution_time_ms >= 0
        assert record.slow is False

    def test_logs_and_reraises_failure(self, caplog):
        from alphaconfluence.utils.logging_config import log_execution_time

        @log_execution_time()
        def broken():
            raise KeyError("trend")

        with caplog.at_level(logging.DEBUG):
            with pytest.raises(KeyError):
                broken()
        record = next(r for r in caplog.records if r.levelno == logging.ERROR)
        assert record.error_type == "KeyError"

    def test_preserves_metadata(self):
        from alphaconfluence.utils.logging_config import log_execution_time

        @log_execution_time()
        def evaluate_watchlist():
            """Docstring"""

        assert evaluate_watchlist.__name__ == "evaluate_watchlist"
        assert evaluate_watchlist.__doc__ == "Docstring"


class TestStructuredHelpers:
    """Tests for decision, error and data quality helpers"""

    def test_data_quality_issue(self, caplog):
        from alphaconfluence.utils.logging_config import log_data_quality_issue

        logger = logging.getLogger("alphaconfluence.test")
        with caplog.at_level(logging.INFO):
            log_data_quality_issue(logger, "insufficient_depth", "SPY chain too thin", usable_strikes=2)
        record = caplog.records[-1]
        assert record.levelno == logging.WARNING
        assert record.getMessage() == "DATA_QUALITY: insufficient_depth - SPY chain too thin"
        assert record.usable_strikes == 2

    def test_data_quality_severity(self, caplog):
        from alphaconfluence.utils.logging_config import log_data_quality_issue

        logger = logging.getLogger("alphaconfluence.test")
        with caplog.at_level(logging.INFO):
            log_data_quality_issue(logger, "invalid_value", "NaN confidence", severity="error")
            log_data_quality_issue(logger, "invalid_value", "odd severity", severity="unknown")
        assert [r.levelno for r in caplog.records[-2:]] == [logging.ERROR, logging.WARNING]

    def test_error_with_context(self, caplog):
        from alphaconfluence.utils.logging_config import log_error_with_context

        logger = logging.getLogger("alphaconfluence.test")
        try:
            raise RuntimeError("feed down")
        except RuntimeError as e:
            with caplog.at_level(logging.ERROR):
                log_error_with_context(logger, "provider failed", e, instrument="SPY")
        record = caplog.records[-1]
        assert record.error_type == "RuntimeError"
        assert record.error_message == "feed down"
        assert record.instrument == "SPY"
        assert "RuntimeError: feed down" in record.traceback

    def test_confidence_decision(self, caplog):
        from alphaconfluence.utils.logging_config import log_confidence_decision

        with caplog.at_level(logging.INFO, logger="alphaconfluence.audit"):
            log_confidence_decision("SPY", 0.6712, 0.55, "BULLISH", reasons=["gamma: thin chain"])
        record = caplog.records[-1]
        assert record.name == "alphaconfluence.audit"
        assert record.getMessage() == "CONFIDENCE: SPY BULLISH 0.671"
        assert record.reasons == ["gamma: thin chain"]


class TestSetupLogging:
    """Tests for root logger setup"""

    def test_console_only(self, restore_root_logger):
        from alphaconfluence.utils.logging_config import setup_logging

        root = setup_logging(level="debug", log_to_file=False)
        assert root is logging.getLogger()
        assert root.level == logging.DEBUG
        assert len(root.handlers) == 1
        assert isinstance(root.handlers[0], logging.StreamHandler)

    def test_file_handlers(self, restore_root_logger, tmp_path, monkeypatch):
        from alphaconfluence.utils.logging_config import LogConfig, setup_logging

        monkeypatch.setattr(LogConfig, "LOG_DIR", tmp_path / "logs")
        root = setup_logging(level="INFO", log_to_file=True)
        assert len(root.handlers) == 3
        assert (tmp_path / "logs").is_dir()
        for handler in root.handlers[1:]:
            handler.close()

    def test_unknown_level_defaults_to_info(self, restore_root_logger):
        from alphaconfluence.utils.logging_config import setup_logging

        assert setup_logging(level="chatty", log_to_file=False).level == logging.INFO
