"""
Tests for PatternLearner history analysis.
"""

import pytest
from datetime import timedelta
from pydantic import ValidationError

from src.analytics.errors import CalendarAccessError, OperationCancelled
from src.analytics.models import AcceptancePatterns, EventStatus
from src.analytics.pattern_learner import NO_MEETINGS_INSIGHT, PatternLearner
from src.calendar.deadline import Deadline


@pytest.fixture
def learner_for(clock):
    def _build(source):
        return PatternLearner(source, clock=clock)
    return _build


# =============================================================================
# EMPTY AND FAILING HISTORY
# =============================================================================

class TestEmptyHistory:
    """An empty window is a result, not an error."""

    def test_no_events_yields_no_patterns(self, memory_source, learner_for, identity):
        analysis = learner_for(memory_source).analyze_history(identity, 90)

        assert analysis.total_meetings == 0
        assert analysis.patterns is None
        assert analysis.insights == [NO_MEETINGS_INSIGHT]
        assert analysis.recommendations == []

    def test_period_matches_window(self, memory_source, learner_for, identity, now):
        analysis = learner_for(memory_source).analyze_history(identity, 30)

        assert analysis.period.end == now
        assert analysis.period.start == now - timedelta(days=30)

    def test_non_positive_window_rejected(self, memory_source, learner_for, identity):
        with pytest.raises(ValueError):
            learner_for(memory_source).analyze_history(identity, 0)


class TestFailurePolicy:
    """Enumeration failures are fatal; single-calendar failures are swallowed."""

    def test_enumeration_failure_is_fatal(self, memory_source, learner_for, identity):
        memory_source.fail_enumeration = True

        with pytest.raises(CalendarAccessError):
            learner_for(memory_source).analyze_history(identity, 90)

    def test_failing_calendar_counts_as_empty(self, two_calendar_source, learner_for, identity,
                                              make_event, now):
        two_calendar_source.add_events("primary", [make_event("a", now - timedelta(days=3))])
        two_calendar_source.failing_calendars.add("team")

        analysis = learner_for(two_calendar_source).analyze_history(identity, 90)

        assert analysis.total_meetings == 1
        assert analysis.patterns is not None

    def test_cancelled_deadline_stops_before_any_call(self, memory_source, learner_for, identity):
        deadline = Deadline()
        deadline.cancel()

        with pytest.raises(OperationCancelled):
            learner_for(memory_source).analyze_history(identity, 90, deadline)
        assert memory_source.call_count("list_calendars") == 0


# =============================================================================
# LEARNED PATTERNS
# =============================================================================

class TestAcceptancePatterns:

    def test_overall_is_exact_ratio(self, weekly_history, learner_for, identity):
        patterns = learner_for(weekly_history).analyze_history(identity, 90).patterns

        assert patterns.acceptance.overall == 9 / 12

    def test_rates_are_bounded(self, weekly_history, learner_for, identity):
        acceptance = learner_for(weekly_history).analyze_history(identity, 90).patterns.acceptance

        for rates in (acceptance.by_day_of_week, acceptance.by_time_of_day, acceptance.by_day_and_time):
            assert all(0.0 <= rate <= 1.0 for rate in rates.values())

    def test_buckets(self, weekly_history, learner_for, identity):
        acceptance = learner_for(weekly_history).analyze_history(identity, 90).patterns.acceptance

        assert acceptance.by_day_of_week == {"Monday": 1.0, "Tuesday": 1.0, "Friday": 0.25}
        assert acceptance.by_time_of_day["09:00"] == 0.25
        assert acceptance.by_day_and_time["Monday-10:00"] == 1.0

    def test_only_confirmed_counts_as_accepted(self, memory_source, learner_for, identity, make_event, now):
        memory_source.add_events("primary", [
            make_event("a", now - timedelta(days=1), status=EventStatus.CONFIRMED),
            make_event("b", now - timedelta(days=1, hours=2), status=EventStatus.TENTATIVE),
        ])

        patterns = learner_for(memory_source).analyze_history(identity, 7).patterns

        assert patterns.acceptance.overall == 0.5


class TestDurationAndTimezonePatterns:

    def test_overall_duration(self, weekly_history, learner_for, identity):
        overall = learner_for(weekly_history).analyze_history(identity, 90).patterns.duration.overall

        assert overall.average_scheduled == 45
        assert overall.average_actual == 45
        assert overall.overrun_rate == 0.0
        assert overall.variance == pytest.approx(1800 / 11)

    def test_single_event_has_zero_variance(self, memory_source, learner_for, identity, make_event, now):
        memory_source.add_events("primary", [make_event("a", now - timedelta(days=1), 50)])

        overall = learner_for(memory_source).analyze_history(identity, 7).patterns.duration.overall

        assert overall.variance == 0.0

    def test_missing_timezone_defaults_to_utc(self, weekly_history, learner_for, identity):
        timezone = learner_for(weekly_history).analyze_history(identity, 90).patterns.timezone

        assert timezone.distribution == {"America/New_York": 4, "Europe/London": 4, "UTC": 4}


class TestProductivityPatterns:

    def test_busy_slot_scores_lower(self, weekly_history, learner_for, identity):
        productivity = learner_for(weekly_history).analyze_history(identity, 90).patterns.productivity

        scores = {(block.day_of_week, block.start_time): block.score for block in productivity.peak_focus}
        assert scores[("Monday", "10:00")] == 50.0
        assert scores[("Monday", "09:00")] == 100.0

    def test_one_focus_block_per_weekday_in_order(self, weekly_history, learner_for, identity):
        productivity = learner_for(weekly_history).analyze_history(identity, 90).patterns.productivity

        assert [block.day_of_week for block in productivity.focus_blocks] == [
            "Monday", "Tuesday", "Wednesday", "Thursday", "Friday"
        ]
        friday = productivity.focus_blocks[-1]
        assert (friday.start_time, friday.end_time) == ("10:00", "12:00")

    def test_density_is_per_week(self, weekly_history, learner_for, identity):
        productivity = learner_for(weekly_history).analyze_history(identity, 90).patterns.productivity

        assert productivity.meeting_density["Monday"] == pytest.approx(4 / (90 / 7))
        assert "Wednesday" not in productivity.meeting_density


class TestParticipantPatterns:

    def test_participant_stats(self, weekly_history, learner_for, identity):
        alice = learner_for(weekly_history).analyze_history(identity, 90).patterns.participants["alice@example.com"]

        assert alice.meeting_count == 8
        assert alice.acceptance_rate == 1.0
        assert alice.preferred_days == ("Monday", "Tuesday")
        assert alice.preferred_times == ("10:00", "14:00")
        assert alice.average_duration == 45

    def test_last_seen_timezone(self, weekly_history, learner_for, identity):
        alice = learner_for(weekly_history).analyze_history(identity, 90).patterns.participants["alice@example.com"]

        assert alice.timezone == "Europe/London"


# =============================================================================
# RECOMMENDATIONS AND INSIGHTS
# =============================================================================

class TestRecommendations:

    def test_category_order(self, weekly_history, learner_for, identity):
        recommendations = learner_for(weekly_history).analyze_history(identity, 90).recommendations

        assert [rec.type for rec in recommendations] == ["focus_time"] * 5 + ["decline_pattern"]

    def test_focus_priority_and_decline_text(self, weekly_history, learner_for, identity):
        recommendations = learner_for(weekly_history).analyze_history(identity, 90).recommendations

        assert recommendations[0].priority == "high"
        assert recommendations[0].title == "Block Monday 09:00-11:00 for focus time"
        decline = recommendations[-1]
        assert decline.title == "Consider avoiding Friday meetings"
        assert decline.confidence == 75.0

    def test_decline_patterns_follow_calendar_week(self, sample_patterns, learner_for, memory_source):
        patterns = sample_patterns.model_copy(update={
            "acceptance": AcceptancePatterns(
                by_day_of_week={"Friday": 0.2, "Tuesday": 0.1, "Sunday": 0.4, "Monday": 0.3, "Wednesday": 0.9},
            ),
        })

        recommendations = learner_for(memory_source).generate_recommendations(patterns)

        assert [rec.title for rec in recommendations if rec.type == "decline_pattern"] == [
            "Consider avoiding Monday meetings",
            "Consider avoiding Tuesday meetings",
            "Consider avoiding Friday meetings",
            "Consider avoiding Sunday meetings",
        ]

    def test_patterns_are_fresh_per_call(self, weekly_history, learner_for, identity):
        learner = learner_for(weekly_history)

        first = learner.analyze_history(identity, 90).patterns
        second = learner.analyze_history(identity, 90).patterns

        assert first is not second
        assert first == second


class TestInsights:

    def test_insights(self, weekly_history, learner_for, identity):
        insights = learner_for(weekly_history).analyze_history(identity, 90).insights

        assert insights == [
            "You accept 100% of meetings on Mondays (your best day)",
            "Peak focus time: Monday 09:00-11:00 (fewest meetings)",
            "Most meetings in America/New_York timezone (4 meetings)",
            "Analyzed 12 meetings over 90 days",
        ]


# =============================================================================
# PATTERN SNAPSHOTS
# =============================================================================

class TestPatternSnapshot:
    """Learned patterns cannot be changed once built."""

    def test_nested_maps_are_read_only(self, sample_patterns):
        with pytest.raises(TypeError):
            sample_patterns.acceptance.by_day_of_week["Monday"] = 7.0
        with pytest.raises(TypeError):
            sample_patterns.participants["bob@example.com"] = sample_patterns.participants["alice@example.com"]

        assert sample_patterns.acceptance.by_day_of_week["Monday"] == 0.6

    def test_nested_lists_are_read_only(self, sample_patterns):
        with pytest.raises(AttributeError):
            sample_patterns.productivity.focus_blocks.clear()
        with pytest.raises(AttributeError):
            sample_patterns.participants["alice@example.com"].preferred_days.append("Friday")

        assert len(sample_patterns.productivity.focus_blocks) == 2

    def test_nested_models_are_frozen(self, sample_patterns):
        with pytest.raises(ValidationError):
            sample_patterns.acceptance.overall = 0.1
        with pytest.raises(ValidationError):
            sample_patterns.productivity.focus_blocks[0].score = 0.0
        with pytest.raises(ValidationError):
            sample_patterns.duration.overall.variance = 1.0

    @pytest.mark.parametrize("field", ["by_day_of_week", "by_time_of_day", "by_day_and_time"])
    @pytest.mark.parametrize("rate", [-0.1, 1.5])
    def test_rates_outside_unit_interval_rejected(self, field, rate):
        with pytest.raises(ValidationError):
            AcceptancePatterns(**{field: {"Monday": rate}})

    def test_learned_patterns_are_read_only(self, weekly_history, learner_for, identity):
        patterns = learner_for(weekly_history).analyze_history(identity, 90).patterns

        with pytest.raises(TypeError):
            patterns.acceptance.by_time_of_day["10:00"] = 0.0
        assert patterns.model_dump()["acceptance"]["by_day_of_week"] == {
            "Friday": 0.25, "Monday": 1.0, "Tuesday": 1.0
        }
