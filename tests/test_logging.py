"""
Tests for logging setup and meeting summaries.
"""

import logging

import pytest

from config.settings import Config
from src.analytics.models import WorkingHours
from src.analytics.pattern_learner import PatternLearner
from utils.logger import CalendarIntelligenceLogger


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    level = root.level
    yield
    for handler in list(root.handlers):
        if type(handler) in (logging.StreamHandler, logging.FileHandler):
            root.removeHandler(handler)
            handler.close()
    root.setLevel(level)


class TestSetupLogging:

    def test_console_and_file_handlers(self, tmp_path, restore_root_logger):
        log_file = tmp_path / "engine.log"

        root = CalendarIntelligenceLogger.setup_logging("debug", str(log_file))
        logging.getLogger("src.analytics").info("hello from the engine")

        assert root.level == logging.DEBUG
        assert len(root.handlers) == 2
        assert logging.getLogger("googleapiclient").level == logging.WARNING
        for handler in root.handlers:
            handler.flush()
        assert "INFO - hello from the engine" in log_file.read_text()

    def test_setup_from_config(self, monkeypatch, restore_root_logger):
        monkeypatch.setattr(Config, "LOG_LEVEL", "WARNING")
        monkeypatch.setattr(Config, "LOG_FILE", None)

        root = CalendarIntelligenceLogger.setup_logging(**Config.get_logging_config())

        assert root.level == logging.WARNING
        assert len(root.handlers) == 1


class TestMeetingLogger:

    def test_history_summary_counts_off_hours(self, weekly_history, clock, identity, caplog):
        caplog.set_level(logging.INFO, logger="utils.meeting_logger")

        PatternLearner(weekly_history, clock=clock).analyze_history(identity, 90)

        assert "Business hours meetings: 12" in caplog.text
        assert "Off hours meetings" not in caplog.text

    def test_history_summary_uses_configured_working_hours(self, weekly_history, clock, identity, caplog):
        caplog.set_level(logging.INFO, logger="utils.meeting_logger")
        hours = WorkingHours(start="10:00", end="14:00")

        PatternLearner(weekly_history, working_hours=hours, clock=clock).analyze_history(identity, 90)

        assert "Business hours meetings: 4" in caplog.text
        assert "Off hours meetings: 8 weekday, 0 weekend" in caplog.text

    def test_operation_summary(self, caplog):
        caplog.set_level(logging.INFO, logger="utils.logger")

        CalendarIntelligenceLogger.log_operation_summary("detect_conflicts", "a@example.com",
                                                         {"total_conflicts": 2}, 0.1234)

        assert '"operation": "detect_conflicts"' in caplog.text
        assert '"processing_time_seconds": 0.123' in caplog.text
