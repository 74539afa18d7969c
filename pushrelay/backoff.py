"""
File: pushrelay/backoff.py

Project: pushrelay

Purpose:
Randomized exponential backoff between send attempts.

Retry policy:
- bound starts at 1s and doubles after each retried attempt
- bound stops growing once doubling would reach 1024s
- each wait is uniform over [bound/2, 3*bound/2) milliseconds
"""

from __future__ import annotations

import random
import threading
from dataclasses import dataclass
from typing import Callable, Dict, Optional

from pushrelay.errors import InvalidArgumentError

BACKOFF_INITIAL_DELAY = 1000
MAX_BACKOFF_DELAY = 1024000


@dataclass(frozen=True)
class Backoff:
    bound: int = BACKOFF_INITIAL_DELAY

    def sample(self, rng: random.Random) -> int:
        return self.bound // 2 + rng.randrange(self.bound)

    def advance(self) -> "Backoff":
        if 2 * self.bound < MAX_BACKOFF_DELAY:
            return Backoff(self.bound * 2)
        return self


class BackoffScheduler:
    """
    Blocks the calling thread between attempts.

    Each waiting thread gets its own wakeup event, so one scheduler can be
    shared by concurrent senders. interrupt(thread) ends that thread's wait
    early; the caller then goes on with its next attempt as if the wait had
    completed. It does nothing when the thread is not waiting.
    """

    def __init__(
        self,
        rng: Optional[random.Random] = None,
        sleep: Optional[Callable[[float], object]] = None,
    ) -> None:
        self._rng = rng or random.Random()
        self._sleep = sleep
        self._lock = threading.Lock()
        self._wakeups: Dict[int, threading.Event] = {}

    def wait(self, backoff: Backoff) -> int:
        delay_ms = backoff.sample(self._rng)
        ident = threading.get_ident()
        wakeup = threading.Event()
        with self._lock:
            self._wakeups[ident] = wakeup
        try:
            if self._sleep is not None:
                self._sleep(delay_ms / 1000.0)
            else:
                wakeup.wait(delay_ms / 1000.0)
        finally:
            with self._lock:
                self._wakeups.pop(ident, None)
        return delay_ms

    def interrupt(self, thread: threading.Thread) -> bool:
        if thread.ident is None:
            raise InvalidArgumentError(f"thread {thread.name} has not been started")
        with self._lock:
            wakeup = self._wakeups.get(thread.ident)
        if wakeup is None:
            return False
        wakeup.set()
        return True
