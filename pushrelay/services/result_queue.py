"""
File: pushrelay/services/result_queue.py

Project: pushrelay

Purpose:
Hand push results over to storage without blocking the send path.

Responsibilities:
- ResultQueue: bounded, process-owned queue. Senders only ever offer().
- ResultQueueConsumer: background thread that drains the queue on an
  interval and writes the drained results to the store.

IMPORTANT:
- offer() never blocks. A full queue drops the result and logs a warning.
- A failed store write is logged and not retried.
"""

from __future__ import annotations

import logging
import queue
import threading
from typing import List, Optional, Protocol

from pushrelay.services.result_store import StorableOutcome

logger = logging.getLogger("result_queue")


class ResultSink(Protocol):
    def persist_many(self, outcomes: List[StorableOutcome]) -> int:
        ...


class ResultQueue:
    def __init__(self, maxsize: int = 10000) -> None:
        self._queue: "queue.Queue[StorableOutcome]" = queue.Queue(maxsize=maxsize)

    def offer(self, outcome: StorableOutcome) -> bool:
        try:
            self._queue.put_nowait(outcome)
        except queue.Full:
            logger.warning("Result queue full, dropping result %s", outcome)
            return False
        return True

    def drain(self, limit: Optional[int] = None) -> List[StorableOutcome]:
        drained: List[StorableOutcome] = []
        while limit is None or len(drained) < limit:
            try:
                drained.append(self._queue.get_nowait())
            except queue.Empty:
                break
        return drained

    def qsize(self) -> int:
        return self._queue.qsize()


class ResultQueueConsumer:
    def __init__(
        self,
        result_queue: ResultQueue,
        store: ResultSink,
        interval_seconds: float = 300,
    ) -> None:
        self._queue = result_queue
        self._store = store
        self._interval = interval_seconds
        self._stopping = threading.Event()
        self._thread: threading.Thread | None = None

    # ------------------------------------------------------------------
    # Public job entry
    # ------------------------------------------------------------------
    def drain_once(self) -> int:
        """
        Write everything currently queued. Returns the number of results
        handed to the store.
        """
        outcomes = self._queue.drain()
        if not outcomes:
            return 0

        try:
            self._store.persist_many(outcomes)
        except Exception:
            logger.exception("Failed to store %s push results", len(outcomes))
            return 0

        logger.info("Stored %s push results", len(outcomes))
        return len(outcomes)

    def start(self) -> None:
        if self._thread is not None and self._thread.is_alive():
            return
        self._stopping.clear()
        self._thread = threading.Thread(target=self._run, name="result-queue-consumer", daemon=True)
        self._thread.start()

    def stop(self, timeout: float | None = 10.0) -> None:
        self._stopping.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None
        # final drain so nothing queued before shutdown is lost
        self.drain_once()

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------
    def _run(self) -> None:
        while not self._stopping.wait(self._interval):
            self.drain_once()
