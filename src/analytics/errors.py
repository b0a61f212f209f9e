"""
Exception hierarchy for the Calendar Intelligence engine

Two failure classes exist. Fatal errors (calendar enumeration, missing
calendars, event creation) are raised as subclasses of
CalendarIntelligenceError. A single calendar's fetch failure is degraded:
it is logged and treated as zero events, never raised.
"""
from typing import Any, Dict, List, Optional


class CalendarIntelligenceError(Exception):
    """Base exception for all engine operations"""

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None
    ):
        self.message = message
        self.details = details or {}
        self.cause = cause
        super().__init__(self.message)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(message={self.message})"


class CalendarAccessError(CalendarIntelligenceError):
    """Calendars could not be enumerated or credentials could not be loaded"""


class NoCalendarsError(CalendarIntelligenceError):
    """The identity has no calendars to write focus blocks into"""

    def __init__(self, identity: str):
        super().__init__("no calendars found", details={"identity": identity})


class EventNotFoundError(CalendarIntelligenceError):
    """An event lookup by id found nothing"""


class EventCreationError(CalendarIntelligenceError):
    """
    Creating a calendar event failed.

    Multi-block creation is not atomic: `created_blocks` holds whatever was
    created before the failure. Those events stay on the calendar.
    """

    def __init__(
        self,
        message: str,
        created_blocks: Optional[List[Any]] = None,
        details: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None
    ):
        super().__init__(message, details=details, cause=cause)
        self.created_blocks = list(created_blocks or [])


class InsufficientHistoryError(CalendarIntelligenceError):
    """Not enough history to derive a recommendation"""


class OperationCancelled(CalendarIntelligenceError):
    """The caller's deadline expired or was cancelled"""
