"""
Event importance and reschedulability classification used by adaptive
scheduling
"""
from abc import ABC, abstractmethod

from src.analytics.models import Event, MeetingPriority


class EventClassifier(ABC):
    """Decides how important an event is and whether it may be moved"""

    @abstractmethod
    def priority(self, event: Event) -> MeetingPriority:
        """Priority of an upcoming event"""

    def is_low_priority(self, event: Event) -> bool:
        return self.priority(event) in (MeetingPriority.LOW, MeetingPriority.FLEXIBLE)

    @abstractmethod
    def conflicts_with_focus_time(self, event: Event) -> bool:
        """Whether the event eats into protected or recommended focus time"""

    @abstractmethod
    def can_reschedule(self, event: Event) -> bool:
        """Whether the event may be moved on the user's behalf"""


class HeuristicEventClassifier(EventClassifier):
    """
    Simple default rules.

    Meetings with two or fewer participants are low priority, nothing is
    treated as conflicting with focus time, and any event the user can
    edit may be rescheduled.
    """

    def __init__(self, small_meeting_size: int = 2):
        self.small_meeting_size = small_meeting_size

    def priority(self, event: Event) -> MeetingPriority:
        if len(event.participants) <= self.small_meeting_size:
            return MeetingPriority.LOW
        return MeetingPriority.MEDIUM

    def conflicts_with_focus_time(self, event: Event) -> bool:
        return False

    def can_reschedule(self, event: Event) -> bool:
        return not event.read_only
