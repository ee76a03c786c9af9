# ratework/core/cancellation.py

import threading
from datetime import datetime, timedelta
from typing import Optional

from .exceptions import OperationCancelledError
from .utils import ensure_utc, utcnow

class CancellationToken:
    """Thread-safe cancellation flag with an optional deadline"""

    def __init__(self, deadline: Optional[datetime] = None):
        self._event = threading.Event()
        self.deadline = ensure_utc(deadline) if deadline else None
        self.reason: Optional[str] = None

    @classmethod
    def with_timeout(cls, timeout: timedelta) -> "CancellationToken":
        """Create a token whose deadline is ``timeout`` from now"""
        return cls(deadline=utcnow() + timeout)

    def cancel(self, reason: str = "cancelled") -> None:
        self.reason = reason
        self._event.set()

    @property
    def is_cancelled(self) -> bool:
        if self._event.is_set():
            return True
        if self.deadline is not None and utcnow() >= self.deadline:
            self.reason = self.reason or "deadline exceeded"
            return True
        return False

    def raise_if_cancelled(self) -> None:
        """Raise OperationCancelledError if the token has fired"""
        if self.is_cancelled:
            raise OperationCancelledError(
                f"Operation cancelled: {self.reason}",
                details={"deadline": self.deadline.isoformat() if self.deadline else None}
            )

def check_cancelled(token: Optional[CancellationToken]) -> None:
    """No-op for a missing token, otherwise raise if it has fired"""
    if token is not None:
        token.raise_if_cancelled()
