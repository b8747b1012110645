"""
Cooperative cancellation and deadlines for a single orchestration run.

A token is shared by everything that may block during a run. Waiting goes
through ``CancellationToken.wait`` so that ``cancel()`` (e.g. from a signal
handler) wakes the waiter immediately instead of after a full poll interval.
"""

from __future__ import annotations

import threading
import time
from typing import Callable, Optional

from scanguard.scanning.exceptions import ScanCancelledError, ScanDeadlineExceededError


class CancellationToken:
    def __init__(
        self,
        timeout: Optional[float] = None,
        *,
        clock: Callable[[], float] = time.monotonic,
        _event: Optional[threading.Event] = None,
        _deadline: Optional[float] = None,
    ) -> None:
        self._clock = clock
        self._event = _event or threading.Event()
        self._deadline = _deadline
        if timeout is not None:
            candidate = clock() + timeout
            if self._deadline is None or candidate < self._deadline:
                self._deadline = candidate

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    @property
    def deadline(self) -> Optional[float]:
        return self._deadline

    def remaining(self) -> Optional[float]:
        """Seconds until the deadline, or None when unbounded."""
        if self._deadline is None:
            return None
        return self._deadline - self._clock()

    @property
    def expired(self) -> bool:
        remaining = self.remaining()
        return remaining is not None and remaining <= 0

    @property
    def stopped(self) -> bool:
        return self.cancelled or self.expired

    def cancel(self) -> None:
        self._event.set()

    def child(self, timeout: Optional[float] = None) -> "CancellationToken":
        """
        Token sharing this token's cancellation with a tighter deadline.

        Cancelling either token cancels both; the child's deadline is the
        earlier of the parent's and ``now + timeout``.
        """
        return CancellationToken(
            timeout,
            clock=self._clock,
            _event=self._event,
            _deadline=self._deadline,
        )

    def raise_if_stopped(self) -> None:
        # Cancellation wins over expiry when both hold
        if self.cancelled:
            raise ScanCancelledError("Scan wait was cancelled")
        if self.expired:
            raise ScanDeadlineExceededError("Scan did not complete before the deadline")

    def wait(self, seconds: float) -> bool:
        """
        Block for up to ``seconds``, never past the deadline.

        Returns True when the wait was cut short by cancellation or expiry.
        """
        remaining = self.remaining()
        if remaining is not None:
            seconds = min(seconds, max(remaining, 0.0))
        if seconds > 0:
            self._event.wait(seconds)
        return self.stopped
