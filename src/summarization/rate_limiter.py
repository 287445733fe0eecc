"""Process-wide limiter for calls to the generation API."""

from __future__ import annotations

import threading
import time
from collections.abc import Callable
from types import TracebackType


class RateLimiter:
    """Spaces call starts by ``min_interval`` seconds and caps concurrent calls.

    Use as a context manager around each external call.  Start times are
    reserved under an internal lock, so the lock is never held while
    sleeping or while the call itself runs.  One instance should be shared
    by every component that talks to the same quota.
    """

    def __init__(
        self,
        min_interval: float = 0.0,
        max_concurrent: int | None = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        if min_interval < 0:
            raise ValueError("min_interval must be >= 0")
        if max_concurrent is not None and max_concurrent < 1:
            raise ValueError("max_concurrent must be >= 1")
        self.min_interval = min_interval
        self.max_concurrent = max_concurrent
        self._clock = clock
        self._sleep = sleep
        self._lock = threading.Lock()
        self._next_start = 0.0
        self._slots = threading.BoundedSemaphore(max_concurrent) if max_concurrent else None

    def acquire(self) -> float:
        """Block until a call may start; return the seconds spent waiting for the interval."""
        if self._slots is not None:
            self._slots.acquire()
        with self._lock:
            now = self._clock()
            start = max(now, self._next_start)
            self._next_start = start + self.min_interval
        wait = start - now
        if wait > 0:
            self._sleep(wait)
        return wait

    def release(self) -> None:
        if self._slots is not None:
            self._slots.release()

    def __enter__(self) -> RateLimiter:
        self.acquire()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.release()
