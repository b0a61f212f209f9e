"""
Cancellable deadline shared by a caller and the engine
"""
import threading
import time
from typing import Optional

from src.analytics.errors import OperationCancelled


class Deadline:
    """
    Cancellation handle for one pipeline run.

    The engine calls check() before every external call. Once the deadline
    has expired or cancel() was called, check() raises OperationCancelled
    and no further calls are issued. Calls already made are not undone.
    """

    def __init__(self, timeout_seconds: Optional[float] = None):
        self._cancelled = threading.Event()
        self._expires_at = None
        if timeout_seconds is not None:
            self._expires_at = time.monotonic() + timeout_seconds
        self.reason = ""

    @classmethod
    def none(cls) -> "Deadline":
        """A deadline that never expires unless cancelled"""
        return cls()

    def cancel(self, reason: str = "cancelled by caller"):
        self.reason = reason
        self._cancelled.set()

    @property
    def remaining(self) -> Optional[float]:
        """Seconds left, or None without a timeout"""
        if self._expires_at is None:
            return None
        return max(0.0, self._expires_at - time.monotonic())

    def is_done(self) -> bool:
        if self._cancelled.is_set():
            return True
        return self._expires_at is not None and time.monotonic() >= self._expires_at

    def check(self, operation: str = ""):
        """Raise OperationCancelled if the deadline is done"""
        if not self.is_done():
            return
        reason = self.reason or "deadline exceeded"
        raise OperationCancelled(
            f"{operation or 'operation'} stopped: {reason}",
            details={"operation": operation, "reason": reason}
        )
