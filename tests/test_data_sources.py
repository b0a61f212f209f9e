"""
Tests for calendar data sources and the shared multi-calendar fetch.
"""

import pytest
from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock, patch

from googleapiclient.errors import HttpError

from config.settings import Config
from src.analytics.errors import (
    CalendarAccessError, EventCreationError, EventNotFoundError, OperationCancelled
)
from src.analytics.models import CreateEventRequest, EventStatus
from src.calendar.data_source import fetch_events_across_calendars, list_calendars_checked
from src.calendar.deadline import Deadline
from src.calendar.google_calendar_source import GoogleCalendarDataSource, parse_google_datetime, to_event

UTC = timezone.utc


def _http_error(status):
    return HttpError(MagicMock(status=status, reason="error"), b"error")


# =============================================================================
# GOOGLE RESOURCE MAPPING
# =============================================================================

class TestToEvent:

    ITEM = {
        "id": "evt1",
        "summary": "  Weekly   sync ",
        "status": "tentative",
        "start": {"dateTime": "2025-06-05T10:00:00Z", "timeZone": "Europe/Berlin"},
        "end": {"dateTime": "2025-06-05T10:30:00Z"},
        "transparency": "transparent",
        "organizer": {"email": "boss@example.com"},
        "attendees": [
            {"email": "Alice@Example.com", "responseStatus": "accepted"},
            {"email": "bob@example.com", "responseStatus": "declined"},
            {"displayName": "Room without email"},
        ],
    }

    def test_maps_fields(self):
        event = to_event(self.ITEM, "primary")

        assert event.id == "evt1"
        assert event.calendar_id == "primary"
        assert event.title == "Weekly sync"
        assert event.start == datetime(2025, 6, 5, 10, tzinfo=UTC)
        assert event.duration_minutes == 30
        assert event.start_timezone == "Europe/Berlin"
        assert event.status == EventStatus.TENTATIVE
        assert event.busy is False
        assert event.read_only is True

    def test_maps_attendees(self):
        event = to_event(self.ITEM, "primary")

        assert [(p.email, p.status) for p in event.participants] == [
            ("alice@example.com", "yes"), ("bob@example.com", "no")
        ]

    def test_all_day_event_skipped(self):
        item = {"id": "holiday", "start": {"date": "2025-06-05"}, "end": {"date": "2025-06-06"}}

        assert to_event(item, "primary") is None

    def test_parse_offset(self):
        assert parse_google_datetime("2025-06-05T10:00:00+02:00").utcoffset() == timedelta(hours=2)


# =============================================================================
# GOOGLE DATA SOURCE
# =============================================================================

class TestGoogleCalendarDataSource:

    @pytest.fixture
    def service(self):
        return MagicMock()

    @pytest.fixture
    def source(self, service):
        with patch.object(GoogleCalendarDataSource, "_build_calendar_service", return_value=service):
            yield GoogleCalendarDataSource()

    def test_list_calendars_pages_and_puts_primary_first(self, source, service):
        service.calendarList.return_value.list.return_value.execute.side_effect = [
            {"items": [{"id": "team", "accessRole": "reader"}], "nextPageToken": "p2"},
            {"items": [{"id": "me@example.com", "primary": True, "timeZone": "UTC"}]},
        ]

        calendars = source.list_calendars("me@example.com")

        assert [calendar.id for calendar in calendars] == ["me@example.com", "team"]
        assert calendars[1].read_only is True

    def test_list_calendars_http_error_is_fatal(self, source, service):
        service.calendarList.return_value.list.return_value.execute.side_effect = _http_error(500)

        with pytest.raises(CalendarAccessError):
            source.list_calendars("me@example.com")

    def test_list_events_respects_limit(self, source, service):
        items = [
            {"id": f"e{i}", "start": {"dateTime": f"2025-06-05T{9 + i:02d}:00:00Z"},
             "end": {"dateTime": f"2025-06-05T{9 + i:02d}:30:00Z"}}
            for i in range(3)
        ]
        service.events.return_value.list.return_value.execute.return_value = {"items": items}

        events = source.list_events("me@example.com", "primary",
                                    datetime(2025, 6, 5, tzinfo=UTC), datetime(2025, 6, 6, tzinfo=UTC), limit=2)

        assert [event.id for event in events] == ["e0", "e1"]
        kwargs = service.events.return_value.list.call_args.kwargs
        assert kwargs["singleEvents"] is True
        assert kwargs["maxResults"] == 2

    def test_get_event_not_found(self, source, service):
        service.events.return_value.get.return_value.execute.side_effect = _http_error(404)

        with pytest.raises(EventNotFoundError):
            source.get_event("me@example.com", "primary", "missing")

    def test_create_event_failure(self, source, service):
        service.events.return_value.insert.return_value.execute.side_effect = _http_error(403)
        request = CreateEventRequest(title="Focus Time", start=datetime(2025, 6, 5, 9, tzinfo=UTC),
                                     end=datetime(2025, 6, 5, 11, tzinfo=UTC))

        with pytest.raises(EventCreationError):
            source.create_event("me@example.com", "primary", request)

    def test_missing_token_is_access_error(self, tmp_path, monkeypatch):
        monkeypatch.setattr(Config, "CALENDAR_TOKENS_PATH", str(tmp_path))
        source = GoogleCalendarDataSource()

        with pytest.raises(CalendarAccessError):
            source._get_credentials("nobody@example.com")


# =============================================================================
# MULTI-CALENDAR FETCH
# =============================================================================

class TestFetchEventsAcrossCalendars:

    @pytest.fixture
    def window(self, now):
        return now - timedelta(days=7), now + timedelta(days=7)

    def test_merges_and_sorts(self, two_calendar_source, make_event, now, window, identity):
        two_calendar_source.add_events("team", [make_event("t1", now + timedelta(hours=1))])
        two_calendar_source.add_events("primary", [make_event("p1", now + timedelta(hours=2)),
                                                   make_event("p0", now - timedelta(hours=1))])

        events = fetch_events_across_calendars(two_calendar_source, identity, *window)

        assert [event.id for event in events] == ["p0", "t1", "p1"]

    def test_failing_calendar_is_empty(self, two_calendar_source, make_event, now, window, identity):
        two_calendar_source.add_events("primary", [make_event("p1", now)])
        two_calendar_source.failing_calendars.add("team")

        events = fetch_events_across_calendars(two_calendar_source, identity, *window)

        assert [event.id for event in events] == ["p1"]
        assert two_calendar_source.call_count("list_events") == 2

    def test_no_calendars(self, window, identity):
        from src.calendar.memory_calendar_source import InMemoryCalendarDataSource

        assert fetch_events_across_calendars(InMemoryCalendarDataSource(), identity, *window) == []

    def test_cancelled_deadline(self, two_calendar_source, window, identity):
        deadline = Deadline()
        deadline.cancel("user pressed stop")

        with pytest.raises(OperationCancelled) as exc_info:
            fetch_events_across_calendars(two_calendar_source, identity, *window, deadline=deadline)

        assert "user pressed stop" in exc_info.value.message
        assert two_calendar_source.calls == []

    def test_enumeration_error_wrapped(self, identity):
        source = MagicMock()
        source.list_calendars.side_effect = RuntimeError("boom")

        with pytest.raises(CalendarAccessError) as exc_info:
            list_calendars_checked(source, identity)

        assert isinstance(exc_info.value.cause, RuntimeError)
