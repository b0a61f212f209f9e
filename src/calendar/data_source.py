"""
Abstract calendar data source and the shared multi-calendar fetch
"""
import logging
from abc import ABC, abstractmethod
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FutureTimeoutError, as_completed
from datetime import datetime
from typing import Dict, List, Optional

from config.settings import Config
from src.analytics.errors import CalendarAccessError, OperationCancelled
from src.analytics.models import Calendar, CreateEventRequest, Event
from src.calendar.deadline import Deadline

logger = logging.getLogger(__name__)

class CalendarDataSource(ABC):
    """The one external collaborator the analytics components consume"""

    @abstractmethod
    def list_calendars(self, identity: str) -> List[Calendar]:
        """List calendars for an identity"""

    @abstractmethod
    def list_events(self, identity: str, calendar_id: str, start: datetime, end: datetime,
                    limit: int = Config.MAX_EVENTS_PER_CALENDAR) -> List[Event]:
        """List events of one calendar overlapping [start, end), at most `limit` of them"""

    @abstractmethod
    def get_event(self, identity: str, calendar_id: str, event_id: str) -> Event:
        """Get one event by id"""

    @abstractmethod
    def create_event(self, identity: str, calendar_id: str, request: CreateEventRequest) -> Event:
        """Create one event and return it with its assigned id"""

def list_calendars_checked(data_source: CalendarDataSource, identity: str,
                           deadline: Optional[Deadline] = None) -> List[Calendar]:
    """Enumerate calendars, wrapping any failure as fatal CalendarAccessError"""
    deadline = deadline or Deadline.none()
    deadline.check("list calendars")
    try:
        return data_source.list_calendars(identity)
    except CalendarAccessError as e:
        logger.error(f"Failed to get calendars for {identity}: {e}")
        raise
    except Exception as e:
        logger.error(f"Failed to get calendars for {identity}: {e}")
        raise CalendarAccessError(
            f"failed to get calendars: {e}",
            details={"identity": identity},
            cause=e
        ) from e

def _fetch_calendar(data_source: CalendarDataSource, identity: str, calendar_id: str,
                    start: datetime, end: datetime, limit: int, deadline: Deadline) -> List[Event]:
    deadline.check(f"fetch events for calendar {calendar_id}")
    return data_source.list_events(identity, calendar_id, start, end, limit)

def fetch_events_across_calendars(data_source: CalendarDataSource, identity: str,
                                  start: datetime, end: datetime,
                                  limit: int = Config.MAX_EVENTS_PER_CALENDAR,
                                  deadline: Optional[Deadline] = None,
                                  max_workers: int = Config.MAX_FETCH_WORKERS) -> List[Event]:
    """
    Fetch events from every calendar of an identity in parallel.

    Args:
        data_source: Calendar data source
        identity: Account whose calendars are read
        start: Window start
        end: Window end
        limit: Per-calendar result cap
        deadline: Optional cancellation handle, checked before each call
        max_workers: Upper bound on concurrent fetches

    Returns:
        Events from all calendars, ordered by start time

    Raises:
        CalendarAccessError: calendar enumeration failed
        OperationCancelled: the deadline expired before all calls were issued
    """
    deadline = deadline or Deadline.none()
    calendars = list_calendars_checked(data_source, identity, deadline)
    if not calendars:
        logger.info(f"No calendars found for {identity}")
        return []

    logger.debug(f"Fetching events for {identity} from {len(calendars)} calendar(s): {start.isoformat()} to {end.isoformat()}")

    results: Dict[str, List[Event]] = {}
    with ThreadPoolExecutor(max_workers=max(1, min(len(calendars), max_workers))) as executor:
        future_to_calendar = {
            executor.submit(_fetch_calendar, data_source, identity, calendar.id, start, end, limit, deadline): calendar
            for calendar in calendars
        }

        try:
            for future in as_completed(future_to_calendar, timeout=deadline.remaining):
                calendar = future_to_calendar[future]
                try:
                    results[calendar.id] = future.result()
                except OperationCancelled:
                    raise
                except Exception as e:
                    # One unreadable calendar must not sink the whole analysis
                    logger.warning(f"Skipping calendar {calendar.id} for {identity}: {e}")
                    results[calendar.id] = []
        except FutureTimeoutError as e:
            deadline.cancel("deadline exceeded")
            raise OperationCancelled(
                f"fetch events stopped: deadline exceeded for {identity}",
                details={"identity": identity},
                cause=e
            ) from e

    all_events = []
    for calendar in calendars:
        all_events.extend(results.get(calendar.id, []))
    all_events.sort(key=lambda event: (event.start, event.calendar_id, event.id))

    logger.info(f"Retrieved {len(all_events)} events for {identity} from {len(calendars)} calendar(s)")
    return all_events
