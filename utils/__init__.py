"""
Utility modules for the Calendar Intelligence engine
"""

from .logger import CalendarIntelligenceLogger
from .validators import RequestValidator, DataSanitizer
from .meeting_logger import MeetingLogger

__all__ = ['CalendarIntelligenceLogger', 'RequestValidator', 'DataSanitizer', 'MeetingLogger']
