"""
File: pushrelay/services/push_service.py

Project: pushrelay

Purpose:
Caller-facing push delivery.

Responsibilities:
- Build the default text message (data.message + configured TTL)
- Send to one device, many devices or a topic with the configured retry budget
- Summarise the outcome as a DeliveryReport
- Queue results for storage when persistence is enabled

IMPORTANT:
- Gateway unavailability after all retries is reported (service_error), not raised
- Invalid input, rejected requests and undecodable responses propagate
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Iterable, Optional, Union

from pushrelay.errors import InvalidArgumentError, TransportExhaustedError
from pushrelay.messages import TOPIC_PREFIX, Message
from pushrelay.outbound.settings import PushGatewaySettings
from pushrelay.results import BatchOutcome, GroupOutcome, RecipientOutcome
from pushrelay.sender import Sender
from pushrelay.services.result_queue import ResultQueue

logger = logging.getLogger("push_service")

SERVICE_ERROR_DETAIL = "Error contacting push gateway."


class DeliveryStatus(str, Enum):
    REQUEST_SUCCESSFUL = "request_successful"
    PARTIAL_SUCCESS = "partial_success"
    TRANSACTION_FAILED = "transaction_failed"
    SERVICE_ERROR = "service_error"


@dataclass(frozen=True)
class DeliveryReport:
    """
    Result of a send call as seen by the caller.
    """
    status: DeliveryStatus
    detail: str
    outcome: Optional[Union[RecipientOutcome, GroupOutcome, BatchOutcome]]
    created_at_utc: datetime

    @staticmethod
    def now(
        status: DeliveryStatus,
        detail: str,
        outcome: Optional[Union[RecipientOutcome, GroupOutcome, BatchOutcome]] = None,
    ) -> "DeliveryReport":
        return DeliveryReport(
            status=status,
            detail=detail,
            outcome=outcome,
            created_at_utc=datetime.now(timezone.utc),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status.value,
            "detail": self.detail,
            "result": self.outcome.to_dict() if self.outcome is not None else None,
            "created_at_utc": self.created_at_utc.isoformat(),
        }


class PushDeliveryService:
    def __init__(
        self,
        sender: Sender,
        settings: PushGatewaySettings,
        result_queue: Optional[ResultQueue] = None,
    ) -> None:
        self._sender = sender
        self._settings = settings
        self._queue = result_queue

    # ------------------------------------------------------------------
    # Public
    # ------------------------------------------------------------------
    def send(self, text: str, to: str) -> DeliveryReport:
        message = self._to_message(text)
        try:
            result = self._sender.send(message, to, self._settings.max_retries)
        except TransportExhaustedError:
            logger.warning("Error contacting push gateway.", exc_info=True)
            return DeliveryReport.now(DeliveryStatus.SERVICE_ERROR, SERVICE_ERROR_DETAIL)

        if isinstance(result, GroupOutcome):
            status = _status_for_counts(result.success, result.failure)
            logger.info("Group message sent to %s. %s succeeded, %s failed.", to, result.success, result.failure)
            self._enqueue(result)
            return DeliveryReport.now(status, status.value, result)

        if result.message_id is None:
            logger.info("Push notification to %s failed: %s", to, result.error_code)
            return DeliveryReport.now(DeliveryStatus.TRANSACTION_FAILED, result.error_code, result)

        logger.info("Push notification sent to %s. Result = %s", to, result)
        self._enqueue(result)
        return DeliveryReport.now(DeliveryStatus.REQUEST_SUCCESSFUL, result.message_id, result)

    def send_multicast(self, text: str, recipients: Iterable[str]) -> DeliveryReport:
        recipients = list(recipients or [])
        if not recipients or any(not r or not r.strip() for r in recipients):
            raise InvalidArgumentError("recipients cannot be empty or contain blank entries")

        message = self._to_message(text)
        try:
            batch = self._sender.send_multicast(message, recipients, self._settings.max_retries)
        except TransportExhaustedError:
            logger.warning("Error contacting push gateway.", exc_info=True)
            return DeliveryReport.now(DeliveryStatus.SERVICE_ERROR, SERVICE_ERROR_DETAIL)

        logger.info(
            "Multicast message sent. %s succeeded, %s failed.",
            batch.success_count, batch.failure_count,
        )
        self._enqueue(batch)

        status = _status_for_counts(batch.success_count, batch.failure_count)
        return DeliveryReport.now(status, status.value, batch)

    def broadcast(self, text: str, topic: str) -> DeliveryReport:
        if not topic:
            raise InvalidArgumentError("topic cannot be empty")
        return self.send(text, TOPIC_PREFIX + topic)

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------
    def _to_message(self, text: str) -> Message:
        return Message.from_text(text, time_to_live=self._settings.time_to_live)

    def _enqueue(self, outcome: Union[RecipientOutcome, GroupOutcome, BatchOutcome]) -> None:
        if self._settings.persist_results and self._queue is not None:
            self._queue.offer(outcome)


def _status_for_counts(success: int, failure: int) -> DeliveryStatus:
    if failure == 0:
        return DeliveryStatus.REQUEST_SUCCESSFUL
    if success == 0:
        return DeliveryStatus.TRANSACTION_FAILED
    return DeliveryStatus.PARTIAL_SUCCESS
