"""Cancellation tokens and per-step deadlines for pipeline steps."""
import threading
import time
from typing import Callable, Optional

from launchpad.core.exceptions import DeadlineExceeded, JobCancelled


class CancellationToken:
    def __init__(self):
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def wait(self, seconds: float) -> bool:
        """Sleep up to `seconds`; returns early (True) when cancelled."""
        return self._event.wait(seconds)


class StepDeadline:
    """
    Time budget for one step, bound to the job's cancellation token.

    External calls take their HTTP timeout from `timeout()` and polling loops
    sleep through `sleep()`, so both cancellation and the deadline are noticed
    before the next round-trip.
    """

    def __init__(
        self,
        seconds: float,
        token: Optional[CancellationToken] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.seconds = seconds
        self.token = token
        self._clock = clock
        self._expires_at = clock() + seconds

    def remaining(self) -> float:
        return max(0.0, self._expires_at - self._clock())

    @property
    def expired(self) -> bool:
        return self.remaining() <= 0

    def check(self) -> None:
        if self.token is not None and self.token.cancelled:
            raise JobCancelled("Launch cancelled")
        if self.expired:
            raise DeadlineExceeded(f"Step exceeded its {self.seconds:g}s deadline")

    def timeout(self, cap: float) -> float:
        self.check()
        return min(cap, self.remaining())

    def sleep(self, seconds: float) -> None:
        self.check()
        wait = min(seconds, self.remaining())
        if self.token is not None:
            self.token.wait(wait)
        else:
            time.sleep(wait)
        self.check()
