"""
File: pushrelay/services/result_store.py

Project: pushrelay

Purpose:
Persist finished push results.

Design rules:
- Accepts complete, immutable result objects only
- One transaction per persist_many() call, flushed every `flush_every` rows
- On error: rollback and re-raise, the caller decides what to log
"""

from __future__ import annotations

import logging
from typing import Callable, Iterable, Union

from sqlalchemy.orm import Session

from pushrelay.models import PushBatch, PushFailedRecipient, PushResult
from pushrelay.results import BatchOutcome, GroupOutcome, RecipientOutcome

logger = logging.getLogger("result_store")

StorableOutcome = Union[RecipientOutcome, GroupOutcome, BatchOutcome]


class SqlResultStore:
    def __init__(self, session_factory: Callable[[], Session], flush_every: int = 50) -> None:
        self._session_factory = session_factory
        self._flush_every = flush_every

    def persist(self, outcome: StorableOutcome) -> None:
        self.persist_many([outcome])

    def persist_many(self, outcomes: Iterable[StorableOutcome]) -> int:
        session = self._session_factory()
        count = 0
        try:
            for outcome in outcomes:
                session.add(self._to_row(outcome))
                count += 1
                if count % self._flush_every == 0:
                    session.flush()
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

        logger.debug("Stored %s push results", count)
        return count

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------
    def _to_row(self, outcome: StorableOutcome):
        if isinstance(outcome, BatchOutcome):
            return self._batch_row(outcome)
        if isinstance(outcome, GroupOutcome):
            return self._group_row(outcome)
        if isinstance(outcome, RecipientOutcome):
            return self._result_row(outcome)
        raise TypeError(f"Cannot store {type(outcome).__name__}")

    @staticmethod
    def _result_row(outcome: RecipientOutcome, position: int | None = None) -> PushResult:
        return PushResult(
            position=position,
            message_id=outcome.message_id,
            canonical_registration_id=outcome.canonical_recipient_id,
            error_code=outcome.error_code,
        )

    @staticmethod
    def _group_row(outcome: GroupOutcome) -> PushResult:
        row = PushResult(success=outcome.success, failure=outcome.failure)
        for registration_id in outcome.failed_recipient_ids or ():
            row.failed_registration_ids.append(PushFailedRecipient(registration_id=registration_id))
        return row

    def _batch_row(self, outcome: BatchOutcome) -> PushBatch:
        batch = PushBatch(
            multicast_id=outcome.batch_id,
            retry_multicast_ids=",".join(str(i) for i in outcome.retry_batch_ids) or None,
            success=outcome.success_count,
            failure=outcome.failure_count,
            canonical_ids=outcome.canonical_id_count,
        )
        for position, result in enumerate(outcome.results):
            batch.results.append(self._result_row(result, position))
        return batch
