"""
Specialized logging for history analysis, conflict checks and focus plans

Arguments are the engine's pydantic models; only their attributes are read
so this module never imports the model layer.
"""
import logging
from typing import Any, List

logger = logging.getLogger(__name__)

class MeetingLogger:
    """Specialized logger for calendar intelligence results"""
    
    @staticmethod
    def log_history_analysis(identity: str, events: List[Any], analysis: Any,
                             business_hours_start: int = 9,
                             business_hours_end: int = 17):
        """Log what a history analysis saw, split into business and off hours"""
        
        logger.info(f"📋 HISTORY ANALYSIS - {identity}")
        logger.info(f"   📊 Meetings analyzed: {analysis.total_meetings}")
        
        off_hours = 0
        weekend = 0
        for event in events:
            if event.start.weekday() >= 5:
                weekend += 1
            elif event.start.hour < business_hours_start or event.start.hour >= business_hours_end:
                off_hours += 1
        business = len(events) - off_hours - weekend
        
        logger.info(f"   🏢 Business hours meetings: {business}")
        if off_hours or weekend:
            logger.info(f"   🌙 Off hours meetings: {off_hours} weekday, {weekend} weekend")
        
        patterns = analysis.patterns
        if patterns is not None:
            logger.info(f"   ✅ Overall acceptance: {patterns.acceptance.overall:.0%}")
            logger.info(f"   ⏰ Average duration: {patterns.duration.overall.average_actual} minutes")
            logger.info(f"   👥 Distinct participants: {len(patterns.participants)}")
        
        for recommendation in analysis.recommendations:
            logger.info(f"   💡 [{recommendation.priority}] {recommendation.title}")
    
    @staticmethod
    def log_conflict_analysis(identity: str, analysis: Any):
        """Log the outcome of a conflict check"""
        
        event = analysis.proposed_event
        logger.info(f"🎯 CONFLICT CHECK - {identity}")
        logger.info(f"   ⏰ Proposed: {event.start.isoformat()} to {event.end.isoformat()}")
        logger.info(f"   ❌ Hard conflicts: {len(analysis.hard_conflicts)}")
        logger.info(f"   ⚠️  Soft conflicts: {len(analysis.soft_conflicts)}")
        
        for conflict in analysis.hard_conflicts:
            logger.info(f"      - {conflict.description}")
        
        if analysis.hard_conflicts:
            logger.warning(f"   ⚠️  ATTENTION: {event.title or 'Untitled'} cannot proceed as proposed")
            for i, option in enumerate(analysis.alternative_times, 1):
                logger.info(f"      {i}. {option.proposed_time.isoformat()} (score {option.score})")
        else:
            logger.info(f"   ✅ Time slot is free of hard conflicts")
    
    @staticmethod
    def log_focus_plan(identity: str, analysis: Any):
        """Log recommended focus blocks against the weekly target"""
        
        logger.info(f"🧠 FOCUS PLAN - {identity}")
        total_minutes = sum(block.duration for block in analysis.recommended_blocks)
        logger.info(f"   🎯 Target: {analysis.target_protection:.1f} h/week, "
                    f"recommended: {total_minutes / 60.0:.1f} h/week")
        
        for i, block in enumerate(analysis.recommended_blocks, 1):
            logger.info(f"      {i}. {block.day_of_week} {block.start_time}-{block.end_time} "
                        f"({block.score:.0f}% score)")
        
        logger.info(f"   📈 Most productive day: {analysis.most_productive_day}, "
                    f"busiest: {analysis.least_productive_day}")
