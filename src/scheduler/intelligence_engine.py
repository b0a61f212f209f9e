"""
Calendar Intelligence Engine - orchestrator for the four analytics components
"""
import logging
import time
from datetime import datetime
from typing import Callable, List, Optional

from config.settings import Config
from src.analytics.conflict_resolver import ConflictResolver
from src.analytics.event_classifier import EventClassifier
from src.analytics.focus_optimizer import FocusOptimizer
from src.analytics.meeting_scorer import MeetingScorer
from src.analytics.models import (
    AdaptiveScheduleChange, AdaptiveTrigger, ConflictAnalysis, DurationOptimization, Event,
    FocusTimeAnalysis, FocusTimeSettings, MeetingAnalysis, MeetingPattern, MeetingScore,
    ProtectedBlock
)
from src.analytics.pattern_learner import PatternLearner
from src.calendar.data_source import CalendarDataSource
from src.calendar.deadline import Deadline
from utils.logger import CalendarIntelligenceLogger
from utils.time_helpers import local_now
from utils.validators import RequestValidator

logger = logging.getLogger(__name__)

class CalendarIntelligenceEngine:
    """
    Entry point that wires PatternLearner, MeetingScorer, ConflictResolver
    and FocusOptimizer around one calendar data source.

    Every call is independent: learned patterns are returned to the caller
    rather than cached on the engine.
    """
    
    def __init__(self, data_source: CalendarDataSource, config: Optional[Config] = None,
                 classifier: Optional[EventClassifier] = None,
                 clock: Optional[Callable[[], datetime]] = None):
        self.config = config or Config()
        self.data_source = data_source
        self.clock = clock or local_now
        
        self.pattern_learner = PatternLearner(data_source, self.config, clock=self.clock)
        self.conflict_resolver = ConflictResolver(data_source, self.config)
        self.focus_optimizer = FocusOptimizer(
            data_source, self.config,
            classifier=classifier,
            pattern_learner=self.pattern_learner,
            clock=self.clock
        )
        
        logger.info("CalendarIntelligenceEngine initialized")
    
    @staticmethod
    def _require_identity(identity: str):
        if not identity or not identity.strip():
            raise ValueError("identity is required")
        if not RequestValidator.validate_email(identity.strip()):
            raise ValueError(f"identity must be an email address, got {identity!r}")
    
    def _learned_patterns(self, identity: str, deadline: Optional[Deadline]) -> Optional[MeetingPattern]:
        return self.pattern_learner.analyze_history(identity, deadline=deadline).patterns
    
    def analyze_history(self, identity: str, window_days: Optional[int] = None,
                        deadline: Optional[Deadline] = None) -> MeetingAnalysis:
        self._require_identity(identity)
        started = time.time()
        analysis = self.pattern_learner.analyze_history(identity, window_days, deadline)
        CalendarIntelligenceLogger.log_operation_summary(
            "analyze_history", identity,
            {"total_meetings": analysis.total_meetings, "recommendations": len(analysis.recommendations)},
            time.time() - started
        )
        return analysis
    
    def score_meeting_time(self, identity: str, proposed_time: datetime,
                           participants: Optional[List[str]] = None, duration: int = 30,
                           patterns: Optional[MeetingPattern] = None,
                           deadline: Optional[Deadline] = None) -> MeetingScore:
        """Score a proposed time, learning patterns first when none are given"""
        self._require_identity(identity)
        if patterns is None:
            patterns = self._learned_patterns(identity, deadline)
        return MeetingScorer(patterns, self.config).score_meeting_time(proposed_time, participants, duration)
    
    def detect_conflicts(self, identity: str, proposed: Event,
                         patterns: Optional[MeetingPattern] = None,
                         deadline: Optional[Deadline] = None) -> ConflictAnalysis:
        """
        Check a proposed event for conflicts.

        Without patterns the focus-time check is skipped and alternatives
        fall back to the default score.
        """
        self._require_identity(identity)
        started = time.time()
        analysis = self.conflict_resolver.detect_conflicts(identity, proposed, patterns, deadline)
        CalendarIntelligenceLogger.log_operation_summary(
            "detect_conflicts", identity,
            {"total_conflicts": analysis.total_conflicts, "can_proceed": analysis.can_proceed},
            time.time() - started
        )
        return analysis
    
    def analyze_focus_time(self, identity: str, settings: Optional[FocusTimeSettings] = None,
                           deadline: Optional[Deadline] = None) -> FocusTimeAnalysis:
        self._require_identity(identity)
        return self.focus_optimizer.analyze_focus_time_patterns(identity, settings, deadline)
    
    def protect_focus_time(self, identity: str, settings: Optional[FocusTimeSettings] = None,
                           deadline: Optional[Deadline] = None) -> List[ProtectedBlock]:
        """Analyze focus patterns, then create calendar events for the recommended blocks"""
        self._require_identity(identity)
        settings = settings or FocusTimeSettings()
        deadline = deadline or Deadline.none()
        
        analysis = self.focus_optimizer.analyze_focus_time_patterns(identity, settings, deadline)
        if not analysis.recommended_blocks:
            logger.info(f"No focus blocks to protect for {identity}")
            return []
        
        return self.focus_optimizer.create_protected_blocks(
            identity, analysis.recommended_blocks, settings, deadline
        )
    
    def adapt_schedule(self, identity: str, trigger: AdaptiveTrigger,
                       deadline: Optional[Deadline] = None) -> AdaptiveScheduleChange:
        self._require_identity(identity)
        return self.focus_optimizer.adapt_schedule(identity, trigger, deadline)
    
    def optimize_meeting_duration(self, identity: str, calendar_id: str, event_id: str,
                                  deadline: Optional[Deadline] = None) -> DurationOptimization:
        self._require_identity(identity)
        return self.focus_optimizer.optimize_meeting_duration(identity, calendar_id, event_id, deadline)
