"""
Cancellation tokens for resolutions.

A CancelToken is created by the caller and passed into a resolution. The
resolver checks it before every data source call and before expanding each
role during traversal. Cancelling from another thread, or letting the
optional deadline pass, makes the next check raise CancelledError.
"""

import threading
import time
from typing import Optional

from privilege_lineage.exceptions import CancelledError


class CancelToken:
    """Caller-owned cancellation flag with an optional deadline.

    Attributes:
        timeout: Seconds from construction after which the token counts as
            cancelled, or None for no deadline.

    Example:
        >>> token = CancelToken(timeout=5.0)
        >>> token.cancelled
        False
        >>> token.cancel()
        >>> token.raise_if_cancelled()
        Traceback (most recent call last):
        ...
        privilege_lineage.exceptions.CancelledError: Resolution cancelled by caller
    """

    def __init__(self, timeout: Optional[float] = None) -> None:
        if timeout is not None and timeout <= 0:
            raise ValueError("timeout must be positive")
        self.timeout = timeout
        self._event = threading.Event()
        self._deadline = (
            time.monotonic() + timeout if timeout is not None else None
        )

    def cancel(self) -> None:
        """Request cancellation. Safe to call from any thread."""
        self._event.set()

    @property
    def expired(self) -> bool:
        """True if the deadline has passed."""
        return self._deadline is not None and time.monotonic() >= self._deadline

    @property
    def cancelled(self) -> bool:
        """True if cancel() was called or the deadline has passed."""
        return self._event.is_set() or self.expired

    def remaining(self) -> Optional[float]:
        """Seconds left before the deadline, or None without a deadline."""
        if self._deadline is None:
            return None
        return max(0.0, self._deadline - time.monotonic())

    def raise_if_cancelled(self) -> None:
        """Raise CancelledError if the token is cancelled or expired."""
        if self._event.is_set():
            raise CancelledError("Resolution cancelled by caller")
        if self.expired:
            raise CancelledError(
                f"Resolution timed out after {self.timeout} seconds"
            )


def check_cancelled(token: Optional[CancelToken]) -> None:
    """Raise CancelledError if a token was supplied and is cancelled."""
    if token is not None:
        token.raise_if_cancelled()
