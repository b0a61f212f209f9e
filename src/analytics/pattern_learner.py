"""
Pattern Learner - reduces calendar history into a MeetingPattern

Acceptance, duration, timezone, productivity and per-participant
statistics are learned from one analysis window, followed by
recommendations and human-readable insights.
"""
import logging
import statistics
from collections import Counter
from datetime import datetime, timedelta
from typing import Callable, Dict, List, Optional, Tuple

from config.settings import Config
from src.analytics.models import (
    AcceptancePatterns, DateRange, DurationPatterns, DurationStats, Event, EventStatus,
    MeetingAnalysis, MeetingPattern, ParticipantPattern, ProductivityPatterns,
    Recommendation, TimeBlock, TimezonePatterns, WorkingHours
)
from src.calendar.data_source import CalendarDataSource, fetch_events_across_calendars
from src.calendar.deadline import Deadline
from utils.meeting_logger import MeetingLogger
from utils.time_helpers import hour_key, local_now, parse_hour, weekday_index, weekday_name

logger = logging.getLogger(__name__)

NO_MEETINGS_INSIGHT = "No meetings found in the analyzed period."

def _top_keys(counts: Counter, n: int, order: Callable[[str], object]) -> List[str]:
    """Most frequent keys, ties broken by `order`"""
    return [key for key, _ in sorted(counts.items(), key=lambda item: (-item[1], order(item[0])))[:n]]

class _DurationAccumulator:
    def __init__(self):
        self.scheduled: List[int] = []
        self.actual: List[int] = []

    def add(self, scheduled: int, actual: int):
        self.scheduled.append(scheduled)
        self.actual.append(actual)

    def to_stats(self) -> DurationStats:
        count = len(self.scheduled)
        if count == 0:
            return DurationStats()

        overruns = sum(1 for scheduled, actual in zip(self.scheduled, self.actual) if actual > scheduled)
        return DurationStats(
            average_scheduled=sum(self.scheduled) // count,
            average_actual=sum(self.actual) // count,
            variance=statistics.variance(self.actual) if count > 1 else 0.0,
            overrun_rate=overruns / count
        )

class _ParticipantAccumulator:
    def __init__(self, email: str):
        self.email = email
        self.meeting_count = 0
        self.accepted_count = 0
        self.day_counts: Counter = Counter()
        self.hour_counts: Counter = Counter()
        self.total_duration = 0
        self.timezone = ""

    def to_pattern(self) -> ParticipantPattern:
        return ParticipantPattern(
            email=self.email,
            meeting_count=self.meeting_count,
            acceptance_rate=self.accepted_count / self.meeting_count if self.meeting_count else 0.0,
            preferred_days=_top_keys(self.day_counts, 2, weekday_index),
            preferred_times=_top_keys(self.hour_counts, 2, str),
            average_duration=self.total_duration // self.meeting_count if self.meeting_count else 0,
            timezone=self.timezone
        )

class PatternLearner:
    """Learns meeting behaviour patterns from calendar history"""
    
    def __init__(self, data_source: CalendarDataSource, config: Optional[Config] = None,
                 working_hours: Optional[WorkingHours] = None,
                 clock: Optional[Callable[[], datetime]] = None):
        self.data_source = data_source
        self.config = config or Config()
        self.working_hours = working_hours or self.config.get_working_hours()
        self.clock = clock or local_now
    
    def analyze_history(self, identity: str, window_days: Optional[int] = None,
                        deadline: Optional[Deadline] = None) -> MeetingAnalysis:
        """
        Analyze meeting history for an identity.

        Args:
            identity: Account whose calendars are analyzed
            window_days: Look-back window, defaults to Config.ANALYSIS_WINDOW_DAYS
            deadline: Optional cancellation handle

        Returns:
            MeetingAnalysis; `patterns` is None when the window holds no events

        Raises:
            CalendarAccessError: calendar enumeration failed
            OperationCancelled: the deadline ran out
        """
        if window_days is None:
            window_days = self.config.ANALYSIS_WINDOW_DAYS
        if window_days < 1:
            raise ValueError(f"window_days must be positive, got {window_days}")
        
        end = self.clock()
        start = end - timedelta(days=window_days)
        period = DateRange(start=start, end=end)
        
        logger.info(f"Analyzing {window_days} days of history for {identity}")
        events = fetch_events_across_calendars(
            self.data_source, identity, start, end,
            limit=self.config.MAX_EVENTS_PER_CALENDAR,
            deadline=deadline,
            max_workers=self.config.MAX_FETCH_WORKERS
        )
        
        if not events:
            logger.info(f"No meetings found for {identity} in the last {window_days} days")
            return MeetingAnalysis(period=period, total_meetings=0, insights=[NO_MEETINGS_INSIGHT])
        
        patterns = self.learn_patterns(identity, events, start, end, window_days)
        analysis = MeetingAnalysis(
            period=period,
            total_meetings=len(events),
            patterns=patterns,
            recommendations=self.generate_recommendations(patterns),
            insights=self.generate_insights(patterns, len(events), window_days)
        )
        
        business_start, business_end = self._working_hours_range()
        MeetingLogger.log_history_analysis(identity, events, analysis, business_start, business_end)
        return analysis
    
    def learn_patterns(self, identity: str, events: List[Event], start: datetime, end: datetime,
                       window_days: int) -> MeetingPattern:
        """Reduce events into a fresh MeetingPattern"""
        return MeetingPattern(
            user_email=identity,
            analyzed_period=DateRange(start=start, end=end),
            last_updated=self.clock(),
            acceptance=self.learn_acceptance_patterns(events),
            duration=self.learn_duration_patterns(events),
            timezone=self.learn_timezone_patterns(events),
            productivity=self.learn_productivity_patterns(events, window_days),
            participants=self.learn_participant_patterns(events)
        )
    
    def learn_acceptance_patterns(self, events: List[Event]) -> AcceptancePatterns:
        """Acceptance rates by weekday, hour and weekday+hour; confirmed counts as accepted"""
        totals = {"day": Counter(), "hour": Counter(), "day_hour": Counter()}
        accepted = {"day": Counter(), "hour": Counter(), "day_hour": Counter()}
        accepted_total = 0
        
        for event in events:
            day = weekday_name(event.start)
            hour = hour_key(event.start.hour)
            keys = {"day": day, "hour": hour, "day_hour": f"{day}-{hour}"}
            is_accepted = event.status == EventStatus.CONFIRMED
            
            for bucket, key in keys.items():
                totals[bucket][key] += 1
                if is_accepted:
                    accepted[bucket][key] += 1
            if is_accepted:
                accepted_total += 1
        
        def rates(bucket: str) -> Dict[str, float]:
            return {key: accepted[bucket][key] / totals[bucket][key] for key in sorted(totals[bucket])}
        
        return AcceptancePatterns(
            by_day_of_week=rates("day"),
            by_time_of_day=rates("hour"),
            by_day_and_time=rates("day_hour"),
            overall=accepted_total / len(events) if events else 0.0
        )
    
    def learn_duration_patterns(self, events: List[Event]) -> DurationPatterns:
        by_participant: Dict[str, _DurationAccumulator] = {}
        overall = _DurationAccumulator()
        
        for event in events:
            duration = event.duration_minutes
            # No attendance signal exists, so actual is taken to equal scheduled
            overall.add(duration, duration)
            
            for participant in event.participants:
                if not participant.email:
                    continue
                by_participant.setdefault(participant.email, _DurationAccumulator()).add(duration, duration)
        
        return DurationPatterns(
            by_participant={email: by_participant[email].to_stats() for email in sorted(by_participant)},
            by_type={},
            overall=overall.to_stats()
        )
    
    def learn_timezone_patterns(self, events: List[Event]) -> TimezonePatterns:
        distribution = Counter(event.start_timezone or self.config.DEFAULT_TIMEZONE for event in events)
        return TimezonePatterns(
            distribution=dict(sorted(distribution.items())),
            preferred_times={},
            cross_tz_times=list(self.config.CROSS_TIMEZONE_TIMES)
        )
    
    def _working_hours_range(self) -> Tuple[int, int]:
        if self.working_hours is None or not self.working_hours.enabled:
            return 9, 17
        return parse_hour(self.working_hours.start), parse_hour(self.working_hours.end)
    
    def learn_productivity_patterns(self, events: List[Event], window_days: int) -> ProductivityPatterns:
        """
        Score working-hour slots by how few meetings land in them.

        score = clamp(100 - density/avg_density * 50, 0, 100), where density
        is the slot's meeting count and avg_density the mean count over
        every observed (weekday, hour) bucket. Slots scoring at or above the
        cutoff become two-hour TimeBlocks.
        """
        by_day_hour: Counter = Counter()
        by_day: Counter = Counter()
        for event in events:
            day = weekday_name(event.start)
            by_day_hour[(day, event.start.hour)] += 1
            by_day[day] += 1
        
        avg_density = sum(by_day_hour.values()) / len(by_day_hour) if by_day_hour else 0.0
        start_hour, end_hour = self._working_hours_range()
        
        peak_focus = []
        for day in self.config.WORKING_DAYS:
            for hour in range(start_hour, end_hour):
                score = 100.0
                if avg_density > 0:
                    score = 100.0 - (by_day_hour[(day, hour)] / avg_density) * 50.0
                    score = min(100.0, max(0.0, score))
                
                if score >= self.config.FOCUS_SCORE_CUTOFF:
                    peak_focus.append(TimeBlock(
                        day_of_week=day,
                        start_time=hour_key(hour),
                        end_time=hour_key(hour + self.config.FOCUS_BLOCK_HOURS),
                        score=score
                    ))
        
        weeks_observed = window_days / 7.0
        meeting_density = {
            day: by_day[day] / weeks_observed
            for day in sorted(by_day, key=weekday_index)
        }
        
        # First block wins ties, so the earliest hour of the day is kept
        best_by_day: Dict[str, TimeBlock] = {}
        for block in peak_focus:
            existing = best_by_day.get(block.day_of_week)
            if existing is None or block.score > existing.score:
                best_by_day[block.day_of_week] = block
        
        return ProductivityPatterns(
            peak_focus=peak_focus,
            low_energy=[],
            meeting_density=meeting_density,
            focus_blocks=[best_by_day[day] for day in self.config.WORKING_DAYS if day in best_by_day]
        )
    
    def learn_participant_patterns(self, events: List[Event]) -> Dict[str, ParticipantPattern]:
        participants: Dict[str, _ParticipantAccumulator] = {}
        
        for event in events:
            for participant in event.participants:
                if not participant.email:
                    continue
                
                acc = participants.setdefault(participant.email, _ParticipantAccumulator(participant.email))
                acc.meeting_count += 1
                if event.status == EventStatus.CONFIRMED:
                    acc.accepted_count += 1
                acc.day_counts[weekday_name(event.start)] += 1
                acc.hour_counts[hour_key(event.start.hour)] += 1
                acc.total_duration += event.duration_minutes
                if event.start_timezone:
                    acc.timezone = event.start_timezone
        
        return {email: participants[email].to_pattern() for email in sorted(participants)}
    
    def generate_recommendations(self, patterns: MeetingPattern) -> List[Recommendation]:
        """Focus-time, then decline-pattern, then duration-adjustment recommendations"""
        recommendations = []
        
        for block in patterns.productivity.focus_blocks:
            if block.score < self.config.FOCUS_RECOMMENDATION_THRESHOLD:
                continue
            recommendations.append(Recommendation(
                type="focus_time",
                priority="high" if block.score >= self.config.HIGH_PRIORITY_FOCUS_SCORE else "medium",
                title=f"Block {block.day_of_week} {block.start_time}-{block.end_time} for focus time",
                description=f"Historical data shows you have few meetings during this time "
                            f"(score: {block.score:.0f}/100), making it ideal for deep work.",
                confidence=block.score,
                action="Create recurring focus time block",
                impact="Increase productivity by 20-30%"
            ))
        
        by_day = patterns.acceptance.by_day_of_week
        for day in sorted(by_day, key=weekday_index):
            rate = by_day[day]
            if rate >= self.config.DECLINE_RATE_THRESHOLD:
                continue
            recommendations.append(Recommendation(
                type="decline_pattern",
                priority="medium",
                title=f"Consider avoiding {day} meetings",
                description=f"You accept only {rate * 100:.0f}% of meetings on {day}s. "
                            f"Consider blocking this time or being more selective.",
                confidence=(1 - rate) * 100,
                action=f"Auto-suggest alternatives to {day} meetings",
                impact="Reduce low-productivity meetings"
            ))
        
        for participant in sorted(patterns.duration.by_participant):
            stats = patterns.duration.by_participant[participant]
            if stats.average_actual <= 0 or stats.average_scheduled <= 0:
                continue
            diff = stats.average_actual - stats.average_scheduled
            if diff <= self.config.OVERRUN_MINUTES_THRESHOLD:
                continue
            recommendations.append(Recommendation(
                type="duration_adjustment",
                priority="low",
                title=f"Adjust meeting length with {participant}",
                description=f"Meetings with {participant} typically run {diff} minutes over. "
                            f"Consider scheduling {stats.average_actual} minutes instead of {stats.average_scheduled}.",
                confidence=70.0,
                action=f"Suggest {stats.average_actual}-minute meetings with {participant}",
                impact="Better time estimates and reduced overruns"
            ))
        
        return recommendations
    
    def generate_insights(self, patterns: MeetingPattern, total_meetings: int, window_days: int) -> List[str]:
        insights = []
        
        by_day = patterns.acceptance.by_day_of_week
        if by_day:
            best_day = min(by_day, key=lambda day: (-by_day[day], weekday_index(day)))
            if by_day[best_day] > 0:
                insights.append(f"You accept {by_day[best_day] * 100:.0f}% of meetings on {best_day}s (your best day)")
        
        focus_blocks = patterns.productivity.focus_blocks
        if focus_blocks:
            top = max(focus_blocks, key=lambda block: block.score)
            insights.append(f"Peak focus time: {top.day_of_week} {top.start_time}-{top.end_time} (fewest meetings)")
        
        distribution = patterns.timezone.distribution
        if distribution:
            tz = min(distribution, key=lambda name: (-distribution[name], name))
            insights.append(f"Most meetings in {tz} timezone ({distribution[tz]} meetings)")
        
        insights.append(f"Analyzed {total_meetings} meetings over {window_days} days")
        return insights
