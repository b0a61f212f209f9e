"""
Tests for the command line entry point.
"""

import json
import logging

import pytest

import main
from config.settings import Config
from src.scheduler.intelligence_engine import CalendarIntelligenceEngine


@pytest.fixture
def cli_engine(monkeypatch, weekly_history, clock):
    engine = CalendarIntelligenceEngine(weekly_history, clock=clock)
    monkeypatch.setattr(main, "build_engine", lambda config=None: engine)
    monkeypatch.setattr(Config, "LOG_FILE", None)
    root = logging.getLogger()
    level = root.level
    yield engine
    for handler in list(root.handlers):
        if type(handler) is logging.StreamHandler:
            root.removeHandler(handler)
    root.setLevel(level)


class TestMain:

    def test_analyze_writes_json(self, cli_engine, identity, tmp_path):
        output = tmp_path / "analysis.json"

        assert main.main(["analyze", identity, "--days", "90", "--output", str(output)]) == 0

        result = json.loads(output.read_text())
        assert result["total_meetings"] == 12
        assert result["patterns"]["acceptance"]["by_day_of_week"]["Friday"] == 0.25

    def test_focus_writes_json(self, cli_engine, identity, tmp_path):
        output = tmp_path / "focus.json"

        assert main.main(["focus", identity, "--output", str(output)]) == 0

        result = json.loads(output.read_text())
        assert result["recommended_blocks"]

    def test_configures_logging(self, cli_engine, identity, tmp_path):
        main.main(["analyze", identity, "--output", str(tmp_path / "out.json")])

        assert logging.getLogger("googleapiclient").level == logging.WARNING

    def test_no_command_prints_help(self, cli_engine, capsys):
        assert main.main([]) == 1
        assert "analyze" in capsys.readouterr().out
