"""
In-memory calendar data source for tests and offline runs
"""
import itertools
import logging
import threading
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Set, Tuple

from config.settings import Config
from src.analytics.errors import CalendarAccessError, EventCreationError, EventNotFoundError
from src.analytics.models import Calendar, CreateEventRequest, Event
from src.calendar.data_source import CalendarDataSource

logger = logging.getLogger(__name__)

class InMemoryCalendarDataSource(CalendarDataSource):
    """Dictionary-backed data source with switchable failure modes"""
    
    def __init__(self, calendars: Optional[Dict[str, List[Calendar]]] = None,
                 events: Optional[Dict[str, List[Event]]] = None):
        self.calendars: Dict[str, List[Calendar]] = calendars or {}
        self.events: Dict[str, List[Event]] = events or {}
        self.failing_calendars: Set[str] = set()
        self.fail_enumeration = False
        self.fail_create_after: Optional[int] = None
        self.calls: List[Tuple[str, str]] = []
        self._ids = itertools.count(1)
        self._lock = threading.Lock()
    
    def add_calendar(self, identity: str, calendar: Calendar) -> Calendar:
        self.calendars.setdefault(identity, []).append(calendar)
        self.events.setdefault(calendar.id, [])
        return calendar
    
    def add_events(self, calendar_id: str, events: Iterable[Event]):
        bucket = self.events.setdefault(calendar_id, [])
        for event in events:
            bucket.append(event.model_copy(update={"calendar_id": calendar_id}))
    
    def _record(self, operation: str, target: str):
        with self._lock:
            self.calls.append((operation, target))
    
    def list_calendars(self, identity: str) -> List[Calendar]:
        self._record("list_calendars", identity)
        if self.fail_enumeration:
            raise CalendarAccessError(f"failed to get calendars for {identity}")
        return list(self.calendars.get(identity, []))
    
    def list_events(self, identity: str, calendar_id: str, start: datetime, end: datetime,
                    limit: int = Config.MAX_EVENTS_PER_CALENDAR) -> List[Event]:
        self._record("list_events", calendar_id)
        if calendar_id in self.failing_calendars:
            raise ConnectionError(f"calendar {calendar_id} is unavailable")
        
        matching = [event for event in self.events.get(calendar_id, []) if event.overlaps(start, end)]
        matching.sort(key=lambda event: event.start)
        logger.debug(f"In-memory source returned {len(matching[:limit])} events for {calendar_id}")
        return matching[:limit]
    
    def get_event(self, identity: str, calendar_id: str, event_id: str) -> Event:
        self._record("get_event", event_id)
        for event in self.events.get(calendar_id, []):
            if event.id == event_id:
                return event
        raise EventNotFoundError(f"event {event_id} not found in calendar {calendar_id}")
    
    def create_event(self, identity: str, calendar_id: str, request: CreateEventRequest) -> Event:
        self._record("create_event", calendar_id)
        created_so_far = sum(1 for operation, _ in self.calls if operation == "create_event") - 1
        if self.fail_create_after is not None and created_so_far >= self.fail_create_after:
            raise EventCreationError(f"calendar {calendar_id} rejected event '{request.title}'")
        
        event = Event(
            id=f"mem_{next(self._ids)}",
            calendar_id=calendar_id,
            title=request.title,
            description=request.description,
            start=request.start,
            end=request.end,
            busy=request.busy
        )
        self.events.setdefault(calendar_id, []).append(event)
        logger.info(f"Created in-memory event {event.id} '{event.title}' in {calendar_id}")
        return event
    
    def call_count(self, operation: str) -> int:
        return sum(1 for recorded, _ in self.calls if recorded == operation)
