"""
Pytest fixtures for Calendar Intelligence testing.

Provides:
- A fixed clock (Wednesday 2025-06-04 08:00 UTC)
- Event factories and an in-memory calendar data source
- Hand-built meeting patterns for scorer and resolver tests
"""

import pytest
from datetime import datetime, timedelta, timezone
from typing import List, Optional

from src.analytics.models import (
    AcceptancePatterns, Calendar, DateRange, DurationPatterns, DurationStats, Event,
    EventStatus, MeetingPattern, Participant, ParticipantPattern, ProductivityPatterns,
    TimeBlock, TimezonePatterns
)
from src.calendar.memory_calendar_source import InMemoryCalendarDataSource

IDENTITY = "user@example.com"
NOW = datetime(2025, 6, 4, 8, 0, tzinfo=timezone.utc)


# =============================================================================
# CLOCK FIXTURES
# =============================================================================

@pytest.fixture
def now():
    """Fixed current time: a Wednesday morning."""
    return NOW


@pytest.fixture
def clock():
    """Clock callable returning the fixed current time."""
    return lambda: NOW


@pytest.fixture
def identity():
    return IDENTITY


# =============================================================================
# EVENT FIXTURES
# =============================================================================

def _build_event(event_id: str, start: datetime, minutes: int = 60,
                 status: EventStatus = EventStatus.CONFIRMED,
                 participants: Optional[List[str]] = None,
                 title: str = "", timezone_name: Optional[str] = None,
                 read_only: bool = False) -> Event:
    return Event(
        id=event_id,
        title=title or f"Meeting {event_id}",
        start=start,
        end=start + timedelta(minutes=minutes),
        start_timezone=timezone_name,
        participants=[Participant(email=email) for email in participants or []],
        status=status,
        read_only=read_only
    )


@pytest.fixture
def make_event():
    """Factory for events: make_event(id, start, minutes=60, status=..., participants=[...])."""
    return _build_event


@pytest.fixture
def tomorrow_at():
    """Factory for a time tomorrow (Thursday) at hour:minute."""
    def _at(hour: int, minute: int = 0) -> datetime:
        return (NOW + timedelta(days=1)).replace(hour=hour, minute=minute)
    return _at


# =============================================================================
# DATA SOURCE FIXTURES
# =============================================================================

@pytest.fixture
def memory_source():
    """In-memory data source with one primary calendar for the test identity."""
    source = InMemoryCalendarDataSource()
    source.add_calendar(IDENTITY, Calendar(id="primary", name="Primary", is_primary=True))
    return source


@pytest.fixture
def two_calendar_source(memory_source):
    """In-memory data source with a primary and a team calendar."""
    memory_source.add_calendar(IDENTITY, Calendar(id="team", name="Team"))
    return memory_source


@pytest.fixture
def weekly_history(memory_source, make_event):
    """
    Four weeks of history on the primary calendar.

    Every Monday 10:00 and Tuesday 14:00 meeting is confirmed; Friday 09:00
    meetings are mostly declined.
    """
    events = []
    for week in range(1, 5):
        monday = NOW - timedelta(days=2 + 7 * week)
        events.append(make_event(f"mon{week}", monday.replace(hour=10), 60,
                                 participants=["alice@example.com", "bob@example.com"],
                                 timezone_name="America/New_York"))
        tuesday = monday + timedelta(days=1)
        events.append(make_event(f"tue{week}", tuesday.replace(hour=14), 30,
                                 participants=["alice@example.com"],
                                 timezone_name="Europe/London"))
        friday = monday + timedelta(days=4)
        status = EventStatus.CONFIRMED if week == 1 else EventStatus.TENTATIVE
        events.append(make_event(f"fri{week}", friday.replace(hour=9), 45, status=status,
                                 participants=["carol@example.com"]))
    memory_source.add_events("primary", events)
    return memory_source


# =============================================================================
# PATTERN FIXTURES
# =============================================================================

@pytest.fixture
def sample_patterns():
    """Hand-built patterns: Tuesdays and 10:00 are the most accepted slots."""
    return MeetingPattern(
        user_email=IDENTITY,
        analyzed_period=DateRange(start=NOW - timedelta(days=90), end=NOW),
        last_updated=NOW,
        acceptance=AcceptancePatterns(
            by_day_of_week={"Monday": 0.6, "Tuesday": 0.95, "Wednesday": 0.8, "Thursday": 0.7, "Friday": 0.3},
            by_time_of_day={"09:00": 0.7, "10:00": 0.9, "14:00": 0.8, "18:00": 1.0},
            by_day_and_time={"Tuesday-10:00": 1.0},
            overall=0.75
        ),
        duration=DurationPatterns(
            by_participant={"alice@example.com": DurationStats(average_scheduled=30, average_actual=30)},
            overall=DurationStats(average_scheduled=40, average_actual=40, variance=12.0)
        ),
        timezone=TimezonePatterns(distribution={"UTC": 10}),
        productivity=ProductivityPatterns(
            peak_focus=[
                TimeBlock(day_of_week="Monday", start_time="09:00", end_time="11:00", score=100.0),
                TimeBlock(day_of_week="Thursday", start_time="13:00", end_time="15:00", score=75.0),
            ],
            meeting_density={"Monday": 1.0, "Wednesday": 3.0, "Friday": 6.0},
            focus_blocks=[
                TimeBlock(day_of_week="Monday", start_time="09:00", end_time="11:00", score=100.0),
                TimeBlock(day_of_week="Thursday", start_time="13:00", end_time="15:00", score=75.0),
            ]
        ),
        participants={
            "alice@example.com": ParticipantPattern(
                email="alice@example.com",
                meeting_count=8,
                acceptance_rate=1.0,
                preferred_days=["Tuesday", "Monday"],
                preferred_times=["10:00", "14:00"],
                average_duration=45
            )
        }
    )
