"""
Conflict Resolver - detects hard and soft conflicts for a proposed event
and ranks alternative slots
"""
import logging
from datetime import datetime, timedelta
from typing import List, Optional

from config.settings import Config
from src.analytics.meeting_scorer import MeetingScorer, best_acceptance_slot
from src.analytics.models import (
    Conflict, ConflictAnalysis, ConflictSeverity, ConflictType, Event, EventStatus,
    MeetingPattern, RescheduleOption, TimeBlock
)
from src.calendar.data_source import CalendarDataSource, fetch_events_across_calendars
from src.calendar.deadline import Deadline
from utils.meeting_logger import MeetingLogger
from utils.time_helpers import at_hour, days_until, parse_hour, start_of_day, weekday_index, weekday_name

logger = logging.getLogger(__name__)

def intervals_overlap(start1: datetime, end1: datetime, start2: datetime, end2: datetime) -> bool:
    """Half-open interval overlap; symmetric in its two intervals"""
    return start1 < end2 and end1 > start2

def in_focus_block(moment: datetime, block: TimeBlock) -> bool:
    if weekday_name(moment) != block.day_of_week:
        return False
    return parse_hour(block.start_time) <= moment.hour < parse_hour(block.end_time)

class ConflictResolver:
    """Detects scheduling conflicts and proposes reschedule options"""
    
    def __init__(self, data_source: CalendarDataSource, config: Optional[Config] = None):
        self.data_source = data_source
        self.config = config or Config()
    
    def detect_conflicts(self, identity: str, proposed: Event,
                         patterns: Optional[MeetingPattern] = None,
                         deadline: Optional[Deadline] = None) -> ConflictAnalysis:
        """
        Analyze a proposed event for conflicts.

        Events within the padded search window (and the rest of the proposed
        day, for overload counting) are fetched from every calendar. The
        proposed event itself is ignored if it already exists.

        Raises:
            CalendarAccessError: calendar enumeration failed
            OperationCancelled: the deadline ran out
        """
        padding = timedelta(hours=self.config.CONFLICT_SEARCH_PADDING_HOURS)
        day_start = start_of_day(proposed.start)
        search_start = min(proposed.start - padding, day_start)
        search_end = max(proposed.end + padding, day_start + timedelta(days=1))
        
        existing = self._existing_events(identity, proposed, search_start, search_end, deadline)
        
        hard_conflicts = self.detect_hard_conflicts(proposed, existing)
        soft_conflicts = self.detect_soft_conflicts(proposed, existing, patterns)
        
        alternatives = []
        if hard_conflicts or len(soft_conflicts) > 2:
            alternatives = self.suggest_alternatives(identity, proposed, patterns, deadline)
        
        analysis = ConflictAnalysis(
            proposed_event=proposed,
            hard_conflicts=hard_conflicts,
            soft_conflicts=soft_conflicts,
            recommendations=self._conflict_recommendations(hard_conflicts, soft_conflicts),
            alternative_times=alternatives,
            summary_recommendation=self._summary_recommendation(hard_conflicts, soft_conflicts, alternatives)
        )
        
        MeetingLogger.log_conflict_analysis(identity, analysis)
        return analysis
    
    def _existing_events(self, identity: str, proposed: Event, start: datetime, end: datetime,
                         deadline: Optional[Deadline]) -> List[Event]:
        events = fetch_events_across_calendars(
            self.data_source, identity, start, end,
            limit=self.config.MAX_EVENTS_PER_CALENDAR,
            deadline=deadline,
            max_workers=self.config.MAX_FETCH_WORKERS
        )
        return [
            event for event in events
            if event.status != EventStatus.CANCELLED and not (proposed.id and event.id == proposed.id)
        ]
    
    def detect_hard_conflicts(self, proposed: Event, existing: List[Event]) -> List[Conflict]:
        conflicts = []
        for event in existing:
            if not intervals_overlap(proposed.start, proposed.end, event.start, event.end):
                continue
            
            severity = ConflictSeverity.CRITICAL
            if event.status != EventStatus.CONFIRMED:
                severity = ConflictSeverity.HIGH
            
            conflicts.append(Conflict(
                id=f"hard_{event.id}",
                type=ConflictType.HARD,
                severity=severity,
                proposed_event=proposed,
                conflicting_event=event,
                description=f"Overlaps with '{event.title}'",
                impact="Cannot attend both meetings simultaneously",
                suggestion="Reschedule one of the meetings",
                can_auto_resolve=False
            ))
        return conflicts
    
    def detect_soft_conflicts(self, proposed: Event, existing: List[Event],
                              patterns: Optional[MeetingPattern]) -> List[Conflict]:
        conflicts = []
        near_miss = timedelta(minutes=self.config.NEAR_MISS_GAP_MINUTES)
        
        for event in existing:
            if event.end == proposed.start or proposed.end == event.start:
                conflicts.append(Conflict(
                    id=f"soft_b2b_{event.id}",
                    type=ConflictType.SOFT_BACK_TO_BACK,
                    severity=ConflictSeverity.MEDIUM,
                    proposed_event=proposed,
                    conflicting_event=event,
                    description=f"Back-to-back with '{event.title}'",
                    impact="No buffer time for breaks or overruns",
                    suggestion="Add 15-minute buffer between meetings",
                    can_auto_resolve=True
                ))
            
            gap = event.start - proposed.end
            if timedelta(0) < gap < near_miss:
                conflicts.append(Conflict(
                    id=f"soft_close_{event.id}",
                    type=ConflictType.SOFT_BACK_TO_BACK,
                    severity=ConflictSeverity.LOW,
                    proposed_event=proposed,
                    conflicting_event=event,
                    description=f"Only {int(gap.total_seconds() // 60)} min gap before '{event.title}'",
                    impact="Minimal buffer time",
                    suggestion="Consider adding more buffer time",
                    can_auto_resolve=True
                ))
        
        if patterns is not None:
            for block in patterns.productivity.focus_blocks:
                if not in_focus_block(proposed.start, block):
                    continue
                conflicts.append(Conflict(
                    id=f"soft_focus_{block.day_of_week}_{block.start_time}",
                    type=ConflictType.SOFT_FOCUS_TIME,
                    severity=ConflictSeverity.HIGH,
                    proposed_event=proposed,
                    description=f"Interrupts focus time ({block.day_of_week} {block.start_time}-{block.end_time})",
                    impact="Reduces productivity during peak focus hours",
                    suggestion="Schedule outside of focus time blocks",
                    can_auto_resolve=True
                ))
        
        meetings_on_day = self._count_meetings_on_day(proposed.start, existing)
        if meetings_on_day >= self.config.OVERLOAD_MEETING_THRESHOLD:
            conflicts.append(Conflict(
                id=f"soft_overload_{proposed.start.strftime('%Y-%m-%d')}",
                type=ConflictType.SOFT_OVERLOAD,
                severity=ConflictSeverity.MEDIUM,
                proposed_event=proposed,
                description=f"Already have {meetings_on_day} meetings this day",
                impact="Meeting fatigue and reduced productivity",
                suggestion="Consider spreading meetings across more days",
                can_auto_resolve=True
            ))
        
        return conflicts
    
    @staticmethod
    def _count_meetings_on_day(day: datetime, events: List[Event]) -> int:
        """Events starting on the same calendar day as `day`, in `day`'s timezone"""
        day_start = start_of_day(day)
        day_end = day_start + timedelta(days=1)
        return sum(1 for event in events if day_start <= event.start < day_end)
    
    def _conflict_recommendations(self, hard: List[Conflict], soft: List[Conflict]) -> List[str]:
        recommendations = []
        
        if hard:
            recommendations.append("⚠️ Hard conflicts detected - must reschedule")
            for conflict in hard:
                recommendations.append(f"  • {conflict.suggestion}")
        
        if len(soft) > 2:
            recommendations.append("⚠️ Multiple soft conflicts detected:")
            focus_conflicts = sum(1 for conflict in soft if conflict.type == ConflictType.SOFT_FOCUS_TIME)
            b2b_conflicts = sum(1 for conflict in soft if conflict.type == ConflictType.SOFT_BACK_TO_BACK)
            if focus_conflicts > 0:
                recommendations.append("  • Consider protecting your focus time")
            if b2b_conflicts > 1:
                recommendations.append("  • Add buffer time between meetings")
        
        if not hard and not soft:
            recommendations.append("✓ No conflicts detected - good time for this meeting")
        
        return recommendations
    
    def _candidate_times(self, proposed: Event, patterns: Optional[MeetingPattern]) -> List[datetime]:
        """Later the same day, next day same hour, then the best slot from patterns"""
        start = proposed.start
        candidates = [start + timedelta(hours=offset) for offset in self.config.LATER_SAME_DAY_OFFSETS_HOURS]
        candidates.append(start + timedelta(days=1))
        
        best = self._best_time_from_patterns(start, patterns)
        if best is not None and best not in candidates:
            candidates.append(best)
        return candidates
    
    def _best_time_from_patterns(self, around: datetime, patterns: Optional[MeetingPattern]) -> Optional[datetime]:
        if patterns is None or not patterns.acceptance.by_day_of_week:
            return None
        
        slot = best_acceptance_slot(patterns, self.config.ALTERNATIVE_HOURS_START, self.config.ALTERNATIVE_HOURS_END)
        if slot is not None:
            best_day, best_hour = slot
        else:
            by_day = patterns.acceptance.by_day_of_week
            best_day = min(by_day, key=lambda day: (-by_day[day], weekday_index(day)))
            best_hour = self.config.DEFAULT_BEST_HOUR
        
        return at_hour(around, days_until(around.weekday(), weekday_index(best_day)), best_hour)
    
    def suggest_alternatives(self, identity: str, proposed: Event,
                             patterns: Optional[MeetingPattern] = None,
                             deadline: Optional[Deadline] = None) -> List[RescheduleOption]:
        """
        Generate, evaluate and rank alternative slots.

        Candidates with a hard conflict are discarded. The rest score the
        MeetingScorer result (or a flat default without patterns) minus a
        penalty per remaining soft conflict; only those above the minimum
        survive. The sort is stable, so equal scores keep generation order.
        """
        duration = proposed.end - proposed.start
        candidates = self._candidate_times(proposed, patterns)
        
        window_start = start_of_day(min(candidates))
        window_end = start_of_day(max(candidates) + duration) + timedelta(days=1)
        existing = self._existing_events(identity, proposed, window_start, window_end, deadline)
        
        scorer = MeetingScorer(patterns, self.config) if patterns is not None else None
        options = []
        for candidate in candidates:
            option = self._evaluate_alternative(candidate, duration, proposed, existing, patterns, scorer)
            if option is not None and option.score > self.config.MIN_ALTERNATIVE_SCORE:
                options.append(option)
        
        options.sort(key=lambda option: option.score, reverse=True)
        return options[:self.config.MAX_ALTERNATIVES]
    
    def _evaluate_alternative(self, start: datetime, duration: timedelta, proposed: Event,
                              existing: List[Event], patterns: Optional[MeetingPattern],
                              scorer: Optional[MeetingScorer]) -> Optional[RescheduleOption]:
        candidate = proposed.model_copy(update={"start": start, "end": start + duration})
        
        if self.detect_hard_conflicts(candidate, existing):
            return None
        soft_conflicts = self.detect_soft_conflicts(candidate, existing, patterns)
        
        score = self.config.DEFAULT_ALTERNATIVE_SCORE
        if scorer is not None:
            score = scorer.score_meeting_time(start, [], int(duration.total_seconds() // 60)).score
        score = max(0, score - len(soft_conflicts) * self.config.SOFT_CONFLICT_PENALTY)
        
        pros, cons = [], []
        if not soft_conflicts:
            pros.append("No conflicts detected")
        
        day = weekday_name(start)
        if patterns is not None:
            rate = patterns.acceptance.by_day_of_week.get(day)
            if rate is not None and rate > 0.8:
                pros.append(f"High acceptance rate on {day}s ({rate * 100:.0f}%)")
        
        if soft_conflicts:
            cons.append(f"{len(soft_conflicts)} soft conflict(s)")
        
        days_diff = int((start - proposed.start).total_seconds() // 86400)
        if days_diff > 0:
            cons.append(f"{days_diff} day delay")
        
        return RescheduleOption(
            proposed_time=start,
            end_time=start + duration,
            score=score,
            confidence=float(score),
            pros=pros,
            cons=cons,
            conflicts=soft_conflicts,
            participant_match=1.0,
            insight=self._option_insight(score, days_diff)
        )
    
    @staticmethod
    def _option_insight(score: int, days_diff: int) -> str:
        if score >= 90:
            return "Excellent alternative with minimal disruption"
        if score >= 75:
            if days_diff == 0:
                return "Same day alternative - minimal delay"
            return "Good alternative with acceptable trade-offs"
        if score >= 60:
            return "Acceptable but consider other options"
        return "Suboptimal - many conflicts remain"
    
    @staticmethod
    def _summary_recommendation(hard: List[Conflict], soft: List[Conflict],
                                alternatives: List[RescheduleOption]) -> str:
        if hard:
            if alternatives:
                return (f"❌ Cannot proceed due to {len(hard)} hard conflict(s). "
                        f"Recommend rescheduling to alternative time slot (Score: {alternatives[0].score}/100)")
            return f"❌ Cannot proceed due to {len(hard)} hard conflict(s). Manual rescheduling required"
        
        if len(soft) > 2:
            if alternatives:
                return (f"⚠️ Proceeding not recommended due to {len(soft)} soft conflicts. "
                        f"Consider alternative time (Score: {alternatives[0].score}/100)")
            return f"⚠️ Proceeding possible but not ideal ({len(soft)} soft conflicts)"
        
        if soft:
            return f"✓ Can proceed with {len(soft)} minor soft conflict(s)"
        
        return "✓ Excellent time - no conflicts detected"
