"""
Focus Optimizer - recommends, materializes and defends focus-time blocks

Works on PatternLearner output: picks the quietest weekly blocks that fit
the user's FocusTimeSettings, writes them to the calendar as recurring
"Focus Time" events, and proposes schedule changes when external triggers
(meeting overload, deadlines, focus time at risk) fire.
"""
import logging
import statistics
import uuid
from collections import Counter
from datetime import datetime, timedelta
from typing import Callable, Dict, List, Optional

from config.settings import Config
from src.analytics.errors import (
    CalendarAccessError, CalendarIntelligenceError, EventCreationError,
    InsufficientHistoryError, NoCalendarsError, OperationCancelled
)
from src.analytics.event_classifier import EventClassifier, HeuristicEventClassifier
from src.analytics.models import (
    AdaptiveChangeType, AdaptiveImpact, AdaptiveScheduleChange, AdaptiveTrigger,
    ApprovalStatus, CreateEventRequest, DurationOptimization, DurationStats, Event,
    EventStatus, FocusProtectionRule, FocusTimeAnalysis, FocusTimeBlock, FocusTimeSettings,
    MeetingPattern, MeetingPriority, ProtectedBlock, ScheduleModification, TimeBlock
)
from src.analytics.pattern_learner import PatternLearner
from src.calendar.data_source import CalendarDataSource, fetch_events_across_calendars, list_calendars_checked
from src.calendar.deadline import Deadline
from utils.meeting_logger import MeetingLogger
from utils.time_helpers import block_minutes, local_now, next_occurrence, parse_minutes, ranges_overlap, weekday_index

logger = logging.getLogger(__name__)

NOT_ENOUGH_HISTORY_INSIGHT = "Not enough calendar history to analyze patterns"

DEFAULT_PEAK_BLOCKS = [
    TimeBlock(day_of_week="Tuesday", start_time="10:00", end_time="12:00", score=90.0),
    TimeBlock(day_of_week="Thursday", start_time="10:00", end_time="12:00", score=90.0),
    TimeBlock(day_of_week="Wednesday", start_time="09:00", end_time="11:00", score=85.0),
]

DEFAULT_DEEP_WORK = DurationStats(average_scheduled=120, average_actual=150, variance=30.0, overrun_rate=0.0)

# Earlier entries win ties when picking the dominant action
ACTION_CHANGE_TYPES = [
    ("reschedule", AdaptiveChangeType.RESCHEDULE_MEETING),
    ("shorten", AdaptiveChangeType.SHORTEN_MEETING),
    ("decline", AdaptiveChangeType.DECLINE_MEETING),
]

class FocusOptimizer:
    """Focus-time analysis, protection and adaptive scheduling"""
    
    def __init__(self, data_source: CalendarDataSource, config: Optional[Config] = None,
                 classifier: Optional[EventClassifier] = None,
                 pattern_learner: Optional[PatternLearner] = None,
                 clock: Optional[Callable[[], datetime]] = None):
        self.data_source = data_source
        self.config = config or Config()
        self.classifier = classifier or HeuristicEventClassifier()
        self.clock = clock or local_now
        self.pattern_learner = pattern_learner or PatternLearner(data_source, self.config, clock=self.clock)
    
    # ===== Analysis =====
    
    def analyze_focus_time_patterns(self, identity: str, settings: Optional[FocusTimeSettings] = None,
                                    deadline: Optional[Deadline] = None) -> FocusTimeAnalysis:
        """
        Analyze productivity patterns and recommend focus blocks.

        Args:
            identity: Account to analyze
            settings: Focus preferences; defaults apply when omitted
            deadline: Optional cancellation handle

        Returns:
            FocusTimeAnalysis. Without history it carries a single insight
            and zero confidence.
        """
        settings = settings or FocusTimeSettings()
        analysis = self.pattern_learner.analyze_history(identity, self.config.ANALYSIS_WINDOW_DAYS, deadline)
        
        if analysis.patterns is None:
            return FocusTimeAnalysis(
                user_email=identity,
                analyzed_period=analysis.period,
                generated_at=self.clock(),
                target_protection=settings.target_hours_per_week,
                insights=[NOT_ENOUGH_HISTORY_INSIGHT],
                confidence=0
            )
        
        patterns = analysis.patterns
        peak_blocks = self._peak_productivity_blocks(patterns)
        recommended = self.recommend_blocks(patterns, settings)
        
        focus_analysis = FocusTimeAnalysis(
            user_email=identity,
            analyzed_period=analysis.period,
            generated_at=self.clock(),
            peak_productivity=peak_blocks,
            deep_work_sessions=self._deep_work_stats(patterns),
            most_productive_day=self._most_productive_day(patterns),
            least_productive_day=self._least_productive_day(patterns),
            recommended_blocks=recommended,
            # TODO: count existing "Focus Time" events once blocks can be discovered on the calendar
            current_protection=0.0,
            target_protection=settings.target_hours_per_week,
            insights=self._insights(patterns, peak_blocks, recommended, settings),
            confidence=self._confidence(patterns)
        )
        
        MeetingLogger.log_focus_plan(identity, focus_analysis)
        return focus_analysis
    
    def _deep_work_stats(self, patterns: MeetingPattern) -> DurationStats:
        durations = [
            block_minutes(block.start_time, block.end_time)
            for block in patterns.productivity.focus_blocks
        ]
        if not durations:
            return DEFAULT_DEEP_WORK.model_copy()
        
        average = sum(durations) // len(durations)
        return DurationStats(
            average_scheduled=average,
            average_actual=average,
            variance=statistics.variance(durations) if len(durations) > 1 else 0.0,
            overrun_rate=0.0
        )
    
    @staticmethod
    def _peak_productivity_blocks(patterns: MeetingPattern) -> List[TimeBlock]:
        """Top three peak blocks by score, or fixed defaults without data"""
        if not patterns.productivity.peak_focus:
            return [block.model_copy() for block in DEFAULT_PEAK_BLOCKS]
        return sorted(patterns.productivity.peak_focus, key=lambda block: block.score, reverse=True)[:3]
    
    @staticmethod
    def _most_productive_day(patterns: MeetingPattern) -> str:
        density = patterns.productivity.meeting_density
        if not density:
            return "Wednesday"
        return min(density, key=lambda day: (density[day], weekday_index(day)))
    
    @staticmethod
    def _least_productive_day(patterns: MeetingPattern) -> str:
        density = patterns.productivity.meeting_density
        if not density:
            return "Monday"
        return min(density, key=lambda day: (-density[day], weekday_index(day)))
    
    def recommend_blocks(self, patterns: MeetingPattern, settings: FocusTimeSettings) -> List[FocusTimeBlock]:
        """
        Pick focus blocks until the weekly target is met.

        Blocks are filtered by settings, clamped to the duration bounds and
        taken greedily by score. The block that crosses the target is kept.
        """
        candidates = []
        for block in patterns.productivity.focus_blocks:
            if not self._should_protect(block, settings):
                continue
            
            duration = block_minutes(block.start_time, block.end_time)
            if duration < settings.min_block_duration:
                continue
            end_time = block.end_time
            if 0 < settings.max_block_duration < duration:
                duration = settings.max_block_duration
                end_minutes = parse_minutes(block.start_time) + duration
                end_time = f"{end_minutes // 60:02d}:{end_minutes % 60:02d}"
            
            candidates.append(FocusTimeBlock(
                day_of_week=block.day_of_week,
                start_time=block.start_time,
                end_time=end_time,
                duration=duration,
                score=block.score,
                reason=f"Peak productivity time ({block.score:.0f}% score)",
                conflicts=0
            ))
        
        candidates.sort(key=lambda block: block.score, reverse=True)
        
        target_minutes = settings.target_hours_per_week * 60
        selected = []
        total_minutes = 0
        for block in candidates:
            if total_minutes >= target_minutes:
                break
            selected.append(block)
            total_minutes += block.duration
        return selected
    
    @staticmethod
    def _should_protect(block: TimeBlock, settings: FocusTimeSettings) -> bool:
        if settings.protected_days and block.day_of_week not in settings.protected_days:
            return False
        for excluded in settings.excluded_time_ranges:
            if ranges_overlap(block.start_time, block.end_time, excluded.start_time, excluded.end_time):
                return False
        return True
    
    def _insights(self, patterns: MeetingPattern, peak_blocks: List[TimeBlock],
                  blocks: List[FocusTimeBlock], settings: FocusTimeSettings) -> List[str]:
        insights = []
        
        if patterns.productivity.peak_focus:
            top = peak_blocks[0]
            insights.append(
                f"Your peak productivity is {top.day_of_week} at {top.start_time}-{top.end_time} "
                f"({top.score:.0f}% focus score)"
            )
        
        density = patterns.productivity.meeting_density
        busy_days = sorted(
            (day for day, value in density.items() if value > self.config.HIGH_DENSITY_THRESHOLD),
            key=weekday_index
        )
        if busy_days:
            insights.append(
                f"High meeting density on {', '.join(busy_days)} - consider protecting more focus time on these days"
            )
        
        total_hours = sum(block.duration for block in blocks) / 60.0
        if total_hours > 0:
            insights.append(
                f"Recommended {total_hours:.1f} hours/week of protected focus time across {len(blocks)} blocks"
            )
        
        if total_hours < settings.target_hours_per_week:
            gap = settings.target_hours_per_week - total_hours
            insights.append(
                f"Need {gap:.1f} more hours/week to reach your target of {settings.target_hours_per_week:.1f} hours"
            )
        
        return insights
    
    @staticmethod
    def _confidence(patterns: MeetingPattern) -> float:
        confidence = 50.0
        if patterns.productivity.peak_focus:
            confidence += 20.0
        if patterns.productivity.meeting_density:
            confidence += 15.0
        if len(patterns.participants) > 10:
            confidence += 15.0
        return min(confidence, 100.0)
    
    # ===== Protection =====
    
    def create_protected_blocks(self, identity: str, blocks: List[FocusTimeBlock],
                                settings: Optional[FocusTimeSettings] = None,
                                deadline: Optional[Deadline] = None) -> List[ProtectedBlock]:
        """
        Create one calendar event per focus block on the first calendar.

        Not atomic: events are created one after another, and a failure
        after K of N leaves those K events in place. The raised
        EventCreationError lists them in `created_blocks`.

        Raises:
            CalendarAccessError: calendar enumeration failed
            NoCalendarsError: the identity has no calendars
            EventCreationError: a create call failed
            OperationCancelled: the deadline ran out between creates
        """
        settings = settings or FocusTimeSettings()
        deadline = deadline or Deadline.none()
        
        calendars = list_calendars_checked(self.data_source, identity, deadline)
        if not calendars:
            raise NoCalendarsError(identity)
        calendar_id = calendars[0].id
        
        now = self.clock()
        protected: List[ProtectedBlock] = []
        
        for block in blocks:
            try:
                deadline.check("create focus block")
            except OperationCancelled as e:
                e.details["created_blocks"] = list(protected)
                raise
            
            start = next_occurrence(now, block.day_of_week, block.start_time)
            end = start + timedelta(minutes=block.duration)
            request = CreateEventRequest(
                title=self.config.FOCUS_EVENT_TITLE,
                description=block.reason,
                start=start,
                end=end,
                busy=True
            )
            
            try:
                event = self.data_source.create_event(identity, calendar_id, request)
            except Exception as e:
                logger.error(f"Focus block creation failed after {len(protected)} of {len(blocks)} blocks: {e}")
                raise EventCreationError(
                    f"create calendar event: {e}",
                    created_blocks=protected,
                    details={"calendar_id": calendar_id, "block": f"{block.day_of_week} {block.start_time}"},
                    cause=e
                ) from e
            
            created_at = self.clock()
            protected.append(ProtectedBlock(
                id=f"focus_{uuid.uuid4().hex}",
                calendar_event_id=event.id,
                start_time=start,
                end_time=end,
                duration=block.duration,
                is_recurring=True,
                recurrence_pattern="weekly",
                priority=MeetingPriority.HIGH,
                reason=block.reason,
                allow_override=settings.allow_urgent_override,
                protection_rules=FocusProtectionRule(
                    auto_decline=settings.auto_decline,
                    suggest_alternatives=True,
                    allow_critical_meeting=settings.allow_urgent_override,
                    require_approval=settings.require_approval,
                    decline_message=self.config.FOCUS_DECLINE_MESSAGE
                ),
                created_at=created_at,
                updated_at=created_at
            ))
            logger.info(f"Protected {block.day_of_week} {block.start_time}-{block.end_time} as event {event.id}")
        
        return protected
    
    # ===== Adaptive scheduling =====
    
    def adapt_schedule(self, identity: str, trigger: AdaptiveTrigger,
                       deadline: Optional[Deadline] = None) -> AdaptiveScheduleChange:
        """Propose schedule changes for the next two weeks; nothing is applied"""
        trigger = AdaptiveTrigger(trigger)
        now = self.clock()
        events = fetch_events_across_calendars(
            self.data_source, identity, now,
            now + timedelta(days=self.config.ADAPTIVE_LOOKAHEAD_DAYS),
            limit=self.config.MAX_EVENTS_PER_CALENDAR,
            deadline=deadline,
            max_workers=self.config.MAX_FETCH_WORKERS
        )
        events = [event for event in events if event.status != EventStatus.CANCELLED]
        
        modifications = self._required_changes(events, trigger)
        impact = self._adaptive_impact(modifications, events)
        
        change = AdaptiveScheduleChange(
            id=f"adapt_{uuid.uuid4().hex}",
            timestamp=now,
            trigger=trigger,
            change_type=self._change_type(modifications),
            affected_events=[mod.event_id for mod in modifications if mod.event_id],
            changes=modifications,
            reason=self._adaptive_reason(trigger, impact),
            impact=impact,
            user_approval=ApprovalStatus.PENDING,
            auto_applied=False,
            confidence=self._adaptive_confidence(modifications)
        )
        logger.info(f"Adaptive change {change.id} for {identity}: {change.change_type.value}, "
                    f"{len(modifications)} modification(s), awaiting approval")
        return change
    
    def _required_changes(self, events: List[Event], trigger: AdaptiveTrigger) -> List[ScheduleModification]:
        modifications = []
        
        if trigger == AdaptiveTrigger.MEETING_OVERLOAD:
            for event in events:
                if self.classifier.is_low_priority(event):
                    modifications.append(ScheduleModification(
                        event_id=event.id,
                        action="reschedule",
                        old_start_time=event.start,
                        old_duration=event.duration_minutes,
                        description="Move low-priority meeting to reduce meeting overload"
                    ))
        
        elif trigger == AdaptiveTrigger.FOCUS_TIME_AT_RISK:
            for event in events:
                if self.classifier.conflicts_with_focus_time(event) and self.classifier.can_reschedule(event):
                    modifications.append(ScheduleModification(
                        event_id=event.id,
                        action="reschedule",
                        old_start_time=event.start,
                        old_duration=event.duration_minutes,
                        description="Move meeting to protect focus time"
                    ))
        
        elif trigger == AdaptiveTrigger.DEADLINE_CHANGE:
            modifications.append(ScheduleModification(
                action="protect",
                description="Add additional focus blocks due to deadline pressure"
            ))
        
        return modifications
    
    @staticmethod
    def _change_type(modifications: List[ScheduleModification]) -> AdaptiveChangeType:
        counts = Counter(mod.action for mod in modifications)
        best_type = AdaptiveChangeType.PROTECT_BLOCK
        best_count = 0
        for action, change_type in ACTION_CHANGE_TYPES:
            if counts[action] > best_count:
                best_type, best_count = change_type, counts[action]
        return best_type
    
    @staticmethod
    def _adaptive_impact(modifications: List[ScheduleModification], events: List[Event]) -> AdaptiveImpact:
        impact = AdaptiveImpact(
            focus_time_gained=2.0,
            predicted_benefit="Improved focus time availability"
        )
        
        for mod in modifications:
            if mod.action == "reschedule":
                impact.meetings_rescheduled += 1
            elif mod.action == "decline":
                impact.meetings_declined += 1
            elif mod.action == "shorten":
                impact.duration_saved += mod.old_duration - mod.new_duration
        
        events_by_id: Dict[str, Event] = {event.id: event for event in events}
        affected = set()
        for mod in modifications:
            event = events_by_id.get(mod.event_id)
            if event is not None:
                affected.update(participant.email for participant in event.participants)
        impact.participants_affected = len(affected)
        
        return impact
    
    @staticmethod
    def _adaptive_reason(trigger: AdaptiveTrigger, impact: AdaptiveImpact) -> str:
        if trigger == AdaptiveTrigger.MEETING_OVERLOAD:
            return f"Meeting load increased: reducing by rescheduling {impact.meetings_rescheduled} meetings"
        if trigger == AdaptiveTrigger.FOCUS_TIME_AT_RISK:
            return f"Focus time at risk: protecting {impact.focus_time_gained:.1f} additional hours"
        if trigger == AdaptiveTrigger.DEADLINE_CHANGE:
            return "Urgent deadline detected: increasing focus time priority"
        return "Schedule optimization recommended"
    
    @staticmethod
    def _adaptive_confidence(modifications: List[ScheduleModification]) -> float:
        if not modifications:
            return 50.0
        return min(max(60.0 + 3.0 * min(len(modifications), 10), 0.0), 95.0)
    
    # ===== Duration optimization =====
    
    def optimize_meeting_duration(self, identity: str, calendar_id: str, event_id: str,
                                  deadline: Optional[Deadline] = None) -> DurationOptimization:
        """
        Compare an event's length with the historical average.

        Raises:
            EventNotFoundError: the event does not exist
            InsufficientHistoryError: there is no history to compare against
        """
        deadline = deadline or Deadline.none()
        deadline.check("get event")
        try:
            event = self.data_source.get_event(identity, calendar_id, event_id)
        except CalendarIntelligenceError:
            raise
        except Exception as e:
            raise CalendarAccessError(f"get event: {e}", details={"event_id": event_id}, cause=e) from e
        
        analysis = self.pattern_learner.analyze_history(identity, self.config.ANALYSIS_WINDOW_DAYS, deadline)
        if analysis.patterns is None:
            raise InsufficientHistoryError("not enough historical data for duration optimization")
        
        historical = analysis.patterns.duration.overall
        current = event.duration_minutes
        
        recommended = historical.average_actual
        if current == 60 and historical.average_actual < 50:
            recommended = 45
        elif current == 30 and historical.average_actual < 25:
            recommended = 25
        
        savings = max(0, current - recommended)
        return DurationOptimization(
            event_id=event_id,
            current_duration=current,
            recommended_duration=recommended,
            historical_data=historical,
            time_savings=savings,
            confidence=self._duration_confidence(historical),
            reason=f"Historical data shows meetings average {historical.average_actual} minutes",
            recommendation=f"Reduce from {current} to {recommended} minutes to save {savings} minutes"
        )
    
    @staticmethod
    def _duration_confidence(stats: DurationStats) -> float:
        """Consistent meeting lengths earn more confidence"""
        if stats.variance < 10.0:
            return 90.0
        if stats.variance < 20.0:
            return 75.0
        if stats.variance < 30.0:
            return 60.0
        return 50.0
