"""
Data models for the Calendar Intelligence engine
"""
from datetime import datetime
from enum import Enum
from types import MappingProxyType
from typing import Annotated, Dict, List, Optional, Tuple, TypeVar

from pydantic import (
    AfterValidator, BaseModel, ConfigDict, Field, WrapSerializer, computed_field, field_validator,
    model_validator,
)

from utils.validators import DataSanitizer, RequestValidator

class EventStatus(str, Enum):
    CONFIRMED = "confirmed"
    TENTATIVE = "tentative"
    CANCELLED = "cancelled"

class ConflictType(str, Enum):
    HARD = "hard"
    SOFT_BACK_TO_BACK = "soft_back_to_back"
    SOFT_FOCUS_TIME = "soft_focus_time"
    SOFT_OVERLOAD = "soft_overload"

class ConflictSeverity(str, Enum):
    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

class MeetingPriority(str, Enum):
    CRITICAL = "critical"  # cannot be moved
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
    FLEXIBLE = "flexible"

class ApprovalStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    DENIED = "denied"
    EXPIRED = "expired"

class AdaptiveTrigger(str, Enum):
    DEADLINE_CHANGE = "deadline_change"
    MEETING_OVERLOAD = "meeting_overload"
    PRIORITY_SHIFT = "priority_shift"
    FOCUS_TIME_AT_RISK = "focus_time_at_risk"
    CONFLICT_DETECTED = "conflict_detected"
    PATTERN_DETECTED = "pattern_detected"

class AdaptiveChangeType(str, Enum):
    INCREASE_FOCUS_TIME = "increase_focus_time"
    RESCHEDULE_MEETING = "reschedule_meeting"
    SHORTEN_MEETING = "shorten_meeting"
    DECLINE_MEETING = "decline_meeting"
    MOVE_MEETING_LATER = "move_meeting_later"
    PROTECT_BLOCK = "protect_block"

# ===== Calendar data =====

class Participant(BaseModel):
    email: str = Field(description="Participant email address")
    name: str = Field(default="", description="Display name")
    status: str = Field(default="noreply", description="RSVP status: yes, no, maybe, noreply")

    @field_validator("email")
    @classmethod
    def _normalise_email(cls, value: str) -> str:
        return DataSanitizer.sanitize_email(value)

class Calendar(BaseModel):
    id: str = Field(description="Calendar identifier")
    name: str = Field(default="", description="Calendar display name")
    timezone: str = Field(default="", description="IANA timezone of the calendar")
    read_only: bool = Field(default=False)
    is_primary: bool = Field(default=False)

class Event(BaseModel):
    id: str = Field(default="", description="Event identifier")
    calendar_id: str = Field(default="", description="Owning calendar")
    title: str = Field(default="", description="Event title/summary")
    description: str = Field(default="")
    start: datetime = Field(description="Start instant")
    end: datetime = Field(description="End instant")
    start_timezone: Optional[str] = Field(default=None, description="Timezone tag of the start time")
    participants: List[Participant] = Field(default=[], description="Invited participants")
    status: EventStatus = Field(default=EventStatus.CONFIRMED)
    busy: bool = Field(default=True)
    read_only: bool = Field(default=False)

    @model_validator(mode="after")
    def _check_interval(self) -> "Event":
        error = RequestValidator.validate_interval(self.start, self.end)
        if error:
            raise ValueError(error)
        return self

    @property
    def duration_minutes(self) -> int:
        return int((self.end - self.start).total_seconds() // 60)

    def overlaps(self, start: datetime, end: datetime) -> bool:
        """Check if this event overlaps with another time range"""
        return start < self.end and end > self.start

class CreateEventRequest(BaseModel):
    title: str
    description: str = ""
    start: datetime
    end: datetime
    busy: bool = True

class DateRange(BaseModel):
    start: datetime
    end: datetime

class WorkingHours(BaseModel):
    enabled: bool = Field(default=True)
    start: str = Field(default="09:00", description="Start of the working day, HH:MM")
    end: str = Field(default="17:00", description="End of the working day, HH:MM")

    @model_validator(mode="after")
    def _check_range(self) -> "WorkingHours":
        errors = RequestValidator.validate_time_range(self.start, self.end)
        if errors:
            raise ValueError("; ".join(errors))
        return self

# ===== Learned patterns =====

K = TypeVar("K")
V = TypeVar("V")

def _freeze_mapping(value: dict):
    return MappingProxyType(value)

def _serialize_mapping(value, handler):
    return handler(dict(value))

# Dict fields are stored as read-only views once validated
FrozenDict = Annotated[Dict[K, V], AfterValidator(_freeze_mapping), WrapSerializer(_serialize_mapping)]
Rate = Annotated[float, Field(ge=0.0, le=1.0)]

PATTERN_CONFIG = ConfigDict(frozen=True, validate_default=True)

class AcceptancePatterns(BaseModel):
    model_config = PATTERN_CONFIG

    by_day_of_week: FrozenDict[str, Rate] = Field(default_factory=dict, description="Monday -> 0.92")
    by_time_of_day: FrozenDict[str, Rate] = Field(default_factory=dict, description="'09:00' -> 0.85")
    by_day_and_time: FrozenDict[str, Rate] = Field(default_factory=dict, description="'Monday-09:00' -> 0.95")
    overall: float = Field(default=0.0, ge=0.0, le=1.0)

class DurationStats(BaseModel):
    model_config = PATTERN_CONFIG

    average_scheduled: int = Field(default=0, description="Minutes")
    average_actual: int = Field(default=0, description="Minutes")
    variance: float = Field(default=0.0, description="Sample variance in minutes squared")
    overrun_rate: float = Field(default=0.0, ge=0.0, le=1.0)

class DurationPatterns(BaseModel):
    model_config = PATTERN_CONFIG

    by_participant: FrozenDict[str, DurationStats] = Field(default_factory=dict)
    by_type: FrozenDict[str, DurationStats] = Field(default_factory=dict, description="Reserved for meeting-type classification")
    overall: DurationStats = Field(default_factory=DurationStats)

class TimezonePatterns(BaseModel):
    model_config = PATTERN_CONFIG

    distribution: FrozenDict[str, int] = Field(default_factory=dict, description="Timezone -> meeting count")
    preferred_times: FrozenDict[str, Tuple[str, ...]] = Field(default_factory=dict)
    cross_tz_times: Tuple[str, ...] = Field(default=("14:00", "15:00", "16:00"))

class TimeBlock(BaseModel):
    model_config = ConfigDict(frozen=True)

    day_of_week: str
    start_time: str = Field(description="HH:MM")
    end_time: str = Field(description="HH:MM")
    score: float = Field(ge=0.0, le=100.0, description="Productivity score 0-100")

class ProductivityPatterns(BaseModel):
    model_config = PATTERN_CONFIG

    peak_focus: Tuple[TimeBlock, ...] = Field(default=(), description="Blocks scoring at or above the focus cutoff")
    low_energy: Tuple[TimeBlock, ...] = Field(default=())
    meeting_density: FrozenDict[str, float] = Field(default_factory=dict, description="Weekday -> meetings per week")
    focus_blocks: Tuple[TimeBlock, ...] = Field(default=(), description="Best block per weekday, Monday to Friday")

class ParticipantPattern(BaseModel):
    model_config = PATTERN_CONFIG

    email: str
    meeting_count: int = 0
    acceptance_rate: float = Field(default=0.0, ge=0.0, le=1.0)
    preferred_days: Tuple[str, ...] = Field(default=())
    preferred_times: Tuple[str, ...] = Field(default=())
    average_duration: int = Field(default=0, description="Minutes")
    timezone: str = ""

class MeetingPattern(BaseModel):
    """Snapshot of meeting behaviour over one analysis window. Never mutated, nested values included."""
    model_config = PATTERN_CONFIG

    user_email: str
    analyzed_period: DateRange
    last_updated: datetime
    acceptance: AcceptancePatterns
    duration: DurationPatterns
    timezone: TimezonePatterns
    productivity: ProductivityPatterns
    participants: FrozenDict[str, ParticipantPattern] = Field(default_factory=dict)

class Recommendation(BaseModel):
    type: str = Field(description="focus_time, decline_pattern or duration_adjustment")
    priority: str = Field(description="high, medium or low")
    title: str
    description: str
    confidence: float = Field(ge=0.0, le=100.0)
    action: str
    impact: str

class MeetingAnalysis(BaseModel):
    period: DateRange
    total_meetings: int = 0
    patterns: Optional[MeetingPattern] = None
    recommendations: List[Recommendation] = Field(default=[])
    insights: List[str] = Field(default=[])

# ===== Scoring =====

class ScoreFactor(BaseModel):
    name: str
    impact: int = Field(description="Contribution relative to the factor's neutral value")
    description: str

class MeetingScore(BaseModel):
    score: int = Field(ge=0, le=100)
    confidence: float = Field(ge=0.0, le=100.0)
    success_rate: float = Field(default=0.0, ge=0.0, le=1.0)
    factors: List[ScoreFactor] = Field(default=[])
    recommendation: str
    alternative_times: List[datetime] = Field(default=[])

# ===== Conflicts =====

class Conflict(BaseModel):
    id: str
    type: ConflictType
    severity: ConflictSeverity
    proposed_event: Event
    conflicting_event: Optional[Event] = None
    description: str
    impact: str
    suggestion: str
    can_auto_resolve: bool = False

class RescheduleOption(BaseModel):
    proposed_time: datetime
    end_time: datetime
    score: int = Field(ge=0, le=100)
    confidence: float = Field(ge=0.0, le=100.0)
    pros: List[str] = Field(default=[])
    cons: List[str] = Field(default=[])
    conflicts: List[Conflict] = Field(default=[], description="Soft conflicts remaining at this slot")
    participant_match: float = Field(default=1.0, description="Fraction of participants available")
    insight: str = ""

class ConflictAnalysis(BaseModel):
    proposed_event: Event
    hard_conflicts: List[Conflict] = Field(default=[])
    soft_conflicts: List[Conflict] = Field(default=[])
    recommendations: List[str] = Field(default=[])
    alternative_times: List[RescheduleOption] = Field(default=[])
    summary_recommendation: str = ""

    @computed_field
    @property
    def can_proceed(self) -> bool:
        return not self.hard_conflicts

    @computed_field
    @property
    def total_conflicts(self) -> int:
        return len(self.hard_conflicts) + len(self.soft_conflicts)

# ===== Focus time =====

class TimeRange(BaseModel):
    start_time: str = Field(description="HH:MM")
    end_time: str = Field(description="HH:MM")

    @model_validator(mode="after")
    def _check_range(self) -> "TimeRange":
        errors = RequestValidator.validate_time_range(self.start_time, self.end_time)
        if errors:
            raise ValueError("; ".join(errors))
        return self

class FocusTimeNotificationPrefs(BaseModel):
    notify_on_decline: bool = False
    notify_on_override: bool = False
    notify_on_adaptation: bool = False
    daily_summary: bool = False
    weekly_summary: bool = False

class FocusTimeSettings(BaseModel):
    enabled: bool = True
    target_hours_per_week: float = Field(default=10.0, ge=0.0)
    min_block_duration: int = Field(default=60, ge=0, description="Minutes")
    max_block_duration: int = Field(default=0, ge=0, description="Minutes, 0 for no cap")
    protected_days: List[str] = Field(default=[], description="Empty means every day")
    excluded_time_ranges: List[TimeRange] = Field(default=[])
    notification_settings: FocusTimeNotificationPrefs = Field(default_factory=FocusTimeNotificationPrefs)
    auto_block: bool = False
    auto_decline: bool = False
    allow_urgent_override: bool = True
    require_approval: bool = False

    @field_validator("protected_days")
    @classmethod
    def _check_days(cls, days: List[str]) -> List[str]:
        normalised = [DataSanitizer.sanitize_weekday(day) for day in days]
        invalid = [day for day in normalised if not RequestValidator.validate_weekday(day)]
        if invalid:
            raise ValueError(f"Unknown weekday(s): {', '.join(invalid)}")
        return normalised

class FocusTimeBlock(BaseModel):
    day_of_week: str
    start_time: str
    end_time: str
    duration: int = Field(description="Minutes")
    score: float
    reason: str
    conflicts: int = Field(default=0, description="Meetings that would conflict")

class FocusProtectionRule(BaseModel):
    auto_decline: bool = False
    suggest_alternatives: bool = True
    allow_critical_meeting: bool = True
    require_approval: bool = False
    decline_message: str = ""
    alternative_times: List[str] = Field(default=[])

class ProtectedBlock(BaseModel):
    id: str
    calendar_event_id: str
    start_time: datetime
    end_time: datetime
    duration: int = Field(description="Minutes")
    is_recurring: bool = True
    recurrence_pattern: str = "weekly"
    priority: MeetingPriority = MeetingPriority.HIGH
    reason: str
    allow_override: bool
    override_approved: bool = False
    protection_rules: FocusProtectionRule
    created_at: datetime
    updated_at: datetime

class FocusTimeAnalysis(BaseModel):
    user_email: str
    analyzed_period: DateRange
    generated_at: datetime
    peak_productivity: List[TimeBlock] = Field(default=[])
    deep_work_sessions: DurationStats = Field(default_factory=DurationStats)
    most_productive_day: str = ""
    least_productive_day: str = ""
    recommended_blocks: List[FocusTimeBlock] = Field(default=[])
    current_protection: float = Field(default=0.0, description="Hours/week already protected")
    target_protection: float = Field(default=0.0, description="Hours/week requested")
    insights: List[str] = Field(default=[])
    confidence: float = Field(default=0.0, ge=0.0, le=100.0)

class ScheduleModification(BaseModel):
    event_id: str = ""
    action: str = Field(description="reschedule, shorten, decline or protect")
    old_start_time: Optional[datetime] = None
    new_start_time: Optional[datetime] = None
    old_duration: int = 0
    new_duration: int = 0
    description: str

class AdaptiveImpact(BaseModel):
    focus_time_gained: float = Field(default=0.0, description="Hours")
    meetings_rescheduled: int = 0
    meetings_declined: int = 0
    duration_saved: int = Field(default=0, description="Minutes")
    conflicts_resolved: int = 0
    participants_affected: int = 0
    predicted_benefit: str = ""
    risks: List[str] = Field(default=[])

class AdaptiveScheduleChange(BaseModel):
    id: str
    timestamp: datetime
    trigger: AdaptiveTrigger
    change_type: AdaptiveChangeType
    affected_events: List[str] = Field(default=[])
    changes: List[ScheduleModification] = Field(default=[])
    reason: str
    impact: AdaptiveImpact
    user_approval: ApprovalStatus = ApprovalStatus.PENDING
    auto_applied: bool = False
    confidence: float = Field(ge=0.0, le=100.0)

class DurationOptimization(BaseModel):
    event_id: str
    current_duration: int
    recommended_duration: int
    historical_data: DurationStats
    time_savings: int = Field(ge=0)
    confidence: float
    reason: str
    recommendation: str
