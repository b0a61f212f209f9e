"""
Tests for the CalendarIntelligenceEngine facade.
"""

import pytest
from datetime import timedelta

from src.analytics.errors import OperationCancelled
from src.analytics.models import AdaptiveTrigger, Event, FocusTimeSettings
from src.calendar.deadline import Deadline
from src.scheduler.intelligence_engine import CalendarIntelligenceEngine


@pytest.fixture
def engine(weekly_history, clock):
    return CalendarIntelligenceEngine(weekly_history, clock=clock)


class TestEngine:

    def test_analyze_history(self, engine, identity):
        analysis = engine.analyze_history(identity)

        assert analysis.total_meetings == 12

    def test_identity_required(self, engine):
        with pytest.raises(ValueError):
            engine.analyze_history("  ")

    def test_identity_must_be_an_email(self, engine, weekly_history):
        with pytest.raises(ValueError, match="email"):
            engine.analyze_focus_time("not-an-account")

        assert weekly_history.call_count("list_calendars") == 0

    def test_score_learns_patterns_on_demand(self, engine, identity, tomorrow_at):
        score = engine.score_meeting_time(identity, tomorrow_at(10), ["alice@example.com"], 30)

        assert score.confidence > 0
        assert 0 <= score.score <= 100

    def test_score_with_explicit_patterns_skips_fetch(self, engine, weekly_history, identity,
                                                      tomorrow_at, sample_patterns):
        engine.score_meeting_time(identity, tomorrow_at(10), patterns=sample_patterns)

        assert weekly_history.call_count("list_calendars") == 0

    def test_detect_conflicts(self, engine, identity, tomorrow_at):
        proposed = Event(start=tomorrow_at(10), end=tomorrow_at(11))

        analysis = engine.detect_conflicts(identity, proposed)

        assert analysis.can_proceed is True

    def test_protect_focus_time_creates_events(self, engine, weekly_history, identity):
        protected = engine.protect_focus_time(identity, FocusTimeSettings(target_hours_per_week=4))

        assert len(protected) == 2
        titles = [event.title for event in weekly_history.events["primary"]]
        assert titles.count("Focus Time") == 2

    def test_protect_focus_time_without_history(self, memory_source, clock, identity):
        engine = CalendarIntelligenceEngine(memory_source, clock=clock)

        assert engine.protect_focus_time(identity) == []
        assert memory_source.call_count("create_event") == 0

    def test_adapt_schedule(self, engine, identity):
        change = engine.adapt_schedule(identity, AdaptiveTrigger.DEADLINE_CHANGE)

        assert change.changes[0].action == "protect"

    def test_optimize_meeting_duration(self, engine, weekly_history, make_event, now, identity):
        weekly_history.add_events("primary", [make_event("review", now + timedelta(days=2), 30)])

        result = engine.optimize_meeting_duration(identity, "primary", "review")

        assert result.recommended_duration == 45
        assert result.time_savings == 0

    def test_deadline_passed_through(self, engine, weekly_history, identity):
        deadline = Deadline()
        deadline.cancel()

        with pytest.raises(OperationCancelled):
            engine.analyze_focus_time(identity, deadline=deadline)

        assert weekly_history.calls == []
