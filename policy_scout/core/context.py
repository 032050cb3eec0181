import threading
import time
from typing import Optional

from policy_scout.core.errors import OperationCancelled


class ExecutionContext:
    """
    A cancellable, deadline-bearing handle passed to every AWS call.

    One context covers one invocation. The adapter calls `check()` before
    every request and between retry sleeps, so cancelling from another thread
    (or hitting the deadline) stops the run at the next call boundary.
    """
    def __init__(self, timeout_seconds: Optional[float] = None):
        if timeout_seconds is not None and timeout_seconds <= 0:
            raise ValueError(f"timeout_seconds must be positive, got {timeout_seconds}")
        self._cancelled = threading.Event()
        self._reason = ""
        self.deadline = time.monotonic() + timeout_seconds if timeout_seconds else None

    def __repr__(self):
        return f"ExecutionContext(cancelled={self.cancelled}, deadline={self.deadline})"

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def cancel(self, reason: str = "operation cancelled") -> None:
        self._reason = reason
        self._cancelled.set()

    def remaining(self) -> Optional[float]:
        """Seconds left before the deadline, or None when there is no deadline."""
        if self.deadline is None:
            return None
        return max(0.0, self.deadline - time.monotonic())

    def check(self) -> None:
        if self._cancelled.is_set():
            raise OperationCancelled(self._reason or "operation cancelled")
        if self.deadline is not None and time.monotonic() >= self.deadline:
            raise OperationCancelled("deadline exceeded")

    def sleep(self, seconds: float) -> None:
        """
        Sleeps for `seconds` unless cancelled first.
        Never sleeps past the deadline; raises OperationCancelled instead.
        """
        self.check()
        remaining = self.remaining()
        if remaining is not None and seconds >= remaining:
            self._cancelled.wait(remaining)
            self.check()
            raise OperationCancelled("deadline exceeded while backing off")
        self._cancelled.wait(seconds)
        self.check()
