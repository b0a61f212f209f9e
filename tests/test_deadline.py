"""
Tests for the cancellable Deadline.
"""

import time

import pytest

from src.analytics.errors import OperationCancelled
from src.calendar.deadline import Deadline


class TestDeadline:

    def test_none_never_expires(self):
        deadline = Deadline.none()

        assert deadline.remaining is None
        assert deadline.is_done() is False
        deadline.check("anything")

    def test_cancel(self):
        deadline = Deadline(timeout_seconds=60)
        deadline.cancel("shutting down")

        assert deadline.is_done() is True
        with pytest.raises(OperationCancelled) as exc_info:
            deadline.check("list calendars")
        assert exc_info.value.message == "list calendars stopped: shutting down"
        assert exc_info.value.details["operation"] == "list calendars"

    def test_expiry(self):
        deadline = Deadline(timeout_seconds=0.01)
        time.sleep(0.02)

        assert deadline.remaining == 0.0
        with pytest.raises(OperationCancelled, match="deadline exceeded"):
            deadline.check()

    def test_remaining_counts_down(self):
        deadline = Deadline(timeout_seconds=30)

        assert 0 < deadline.remaining <= 30
