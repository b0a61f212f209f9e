"""
Google Calendar data source for the Calendar Intelligence engine
"""
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from google.oauth2.credentials import Credentials
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

from config.settings import Config
from src.analytics.errors import CalendarAccessError, EventCreationError, EventNotFoundError
from src.analytics.models import Calendar, CreateEventRequest, Event, Participant
from src.calendar.data_source import CalendarDataSource
from utils.validators import DataSanitizer

logger = logging.getLogger(__name__)

READ_ONLY_ACCESS_ROLES = {"reader", "freeBusyReader"}

RSVP_STATUS = {
    "accepted": "yes",
    "declined": "no",
    "tentative": "maybe",
    "needsAction": "noreply",
}

def parse_google_datetime(value: str) -> datetime:
    """Parse an RFC 3339 timestamp as returned by the Calendar API"""
    return datetime.fromisoformat(value.replace("Z", "+00:00"))

def to_event(item: Dict[str, Any], calendar_id: str) -> Optional[Event]:
    """Convert a Calendar API event resource, skipping all-day events"""
    start = item.get("start", {})
    end = item.get("end", {})
    if "dateTime" not in start or "dateTime" not in end:
        return None

    participants = []
    for attendee in item.get("attendees", []):
        if "email" not in attendee:
            continue
        participants.append(Participant(
            email=attendee["email"],
            name=attendee.get("displayName", ""),
            status=RSVP_STATUS.get(attendee.get("responseStatus", ""), "noreply")
        ))

    return Event(
        id=item.get("id", ""),
        calendar_id=calendar_id,
        title=DataSanitizer.sanitize_text(item.get("summary", "Untitled Event")),
        description=item.get("description", ""),
        start=parse_google_datetime(start["dateTime"]),
        end=parse_google_datetime(end["dateTime"]),
        start_timezone=start.get("timeZone"),
        participants=participants,
        status=item.get("status", "confirmed"),
        busy=item.get("transparency", "opaque") != "transparent",
        read_only=not item.get("organizer", {}).get("self", False)
    )

class GoogleCalendarDataSource(CalendarDataSource):
    """Calendar data source backed by the Google Calendar v3 API"""
    
    def __init__(self, config: Optional[Config] = None):
        self.config = config or Config()
    
    def _get_credentials(self, identity: str) -> Credentials:
        """Get Google Calendar credentials for an identity"""
        try:
            token_path = self.config.get_token_path(identity)
            return Credentials.from_authorized_user_file(token_path)
        except (ValueError, FileNotFoundError) as e:
            logger.error(f"Calendar token not available for {identity}: {e}")
            raise CalendarAccessError(
                f"{identity} does not have calendar access. "
                f"Identities with tokens: {self.config.available_identities()}",
                details={"identity": identity},
                cause=e
            ) from e
    
    def _build_calendar_service(self, identity: str):
        """Build Google Calendar service for an identity"""
        # A service object per call; the underlying http client is not thread-safe
        credentials = self._get_credentials(identity)
        return build("calendar", "v3", credentials=credentials, cache_discovery=False)
    
    def list_calendars(self, identity: str) -> List[Calendar]:
        service = self._build_calendar_service(identity)
        calendars = []
        page_token = None
        
        try:
            while True:
                result = service.calendarList().list(pageToken=page_token).execute()
                for item in result.get("items", []):
                    calendars.append(Calendar(
                        id=item["id"],
                        name=item.get("summary", ""),
                        timezone=item.get("timeZone", ""),
                        read_only=item.get("accessRole", "") in READ_ONLY_ACCESS_ROLES,
                        is_primary=item.get("primary", False)
                    ))
                page_token = result.get("nextPageToken")
                if not page_token:
                    break
        except HttpError as e:
            logger.error(f"HTTP error listing calendars for {identity}: {e}")
            raise CalendarAccessError(
                f"failed to get calendars: {e}",
                details={"identity": identity, "status": getattr(e.resp, "status", None)},
                cause=e
            ) from e
        
        # Primary calendar first so "first calendar" means the user's own
        calendars.sort(key=lambda calendar: not calendar.is_primary)
        logger.info(f"Found {len(calendars)} calendars for {identity}")
        return calendars
    
    def list_events(self, identity: str, calendar_id: str, start: datetime, end: datetime,
                    limit: int = Config.MAX_EVENTS_PER_CALENDAR) -> List[Event]:
        service = self._build_calendar_service(identity)
        events: List[Event] = []
        page_token = None
        
        logger.info(f"Fetching calendar events for {identity} / {calendar_id}")
        logger.info(f"   Date range: {start.isoformat()} to {end.isoformat()}")
        
        while len(events) < limit:
            try:
                events_result = service.events().list(
                    calendarId=calendar_id,
                    timeMin=start.isoformat(),
                    timeMax=end.isoformat(),
                    singleEvents=True,
                    orderBy='startTime',
                    maxResults=min(self.config.GOOGLE_API_PAGE_SIZE, limit - len(events)),
                    pageToken=page_token
                ).execute()
            except HttpError as e:
                raise CalendarAccessError(
                    f"list events for {calendar_id}: {e}",
                    details={"calendar_id": calendar_id, "status": getattr(e.resp, "status", None)},
                    cause=e
                ) from e
            
            for item in events_result.get('items', []):
                event = to_event(item, calendar_id)
                if event is not None:
                    events.append(event)
            
            page_token = events_result.get('nextPageToken')
            if not page_token:
                break
        
        logger.info(f"Retrieved {len(events)} events from {calendar_id}")
        return events[:limit]
    
    def get_event(self, identity: str, calendar_id: str, event_id: str) -> Event:
        service = self._build_calendar_service(identity)
        try:
            item = service.events().get(calendarId=calendar_id, eventId=event_id).execute()
        except HttpError as e:
            if getattr(e.resp, "status", None) == 404:
                raise EventNotFoundError(
                    f"event {event_id} not found in calendar {calendar_id}",
                    details={"calendar_id": calendar_id, "event_id": event_id},
                    cause=e
                ) from e
            logger.error(f"HTTP error getting event {event_id}: {e}")
            raise CalendarAccessError(f"get event: {e}", cause=e) from e
        
        event = to_event(item, calendar_id)
        if event is None:
            raise EventNotFoundError(f"event {event_id} is an all-day event without a time range")
        return event
    
    def create_event(self, identity: str, calendar_id: str, request: CreateEventRequest) -> Event:
        service = self._build_calendar_service(identity)
        body = {
            'summary': request.title,
            'description': request.description,
            'start': {'dateTime': request.start.isoformat()},
            'end': {'dateTime': request.end.isoformat()},
            'transparency': 'opaque' if request.busy else 'transparent',
        }
        
        try:
            created = service.events().insert(calendarId=calendar_id, body=body).execute()
        except HttpError as e:
            logger.error(f"HTTP error creating event '{request.title}' in {calendar_id}: {e}")
            raise EventCreationError(
                f"create calendar event: {e}",
                details={"calendar_id": calendar_id, "title": request.title},
                cause=e
            ) from e
        
        logger.info(f"Created event {created.get('id')} '{request.title}' in {calendar_id}")
        return to_event(created, calendar_id) or Event(
            id=created.get("id", ""),
            calendar_id=calendar_id,
            title=request.title,
            description=request.description,
            start=request.start,
            end=request.end,
            busy=request.busy
        )
