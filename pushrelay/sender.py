"""
File: pushrelay/sender.py

Project: pushrelay

Purpose:
Send push messages through a PushTransport, retrying while the gateway is
unavailable.

Retry rules:
- Only transport-level unavailability is retried: connection/read faults and
  HTTP 5xx. A decoded per-recipient error is a final answer.
- HTTP statuses other than 200 and 5xx raise InvalidRequestError at once.
- Multicast sends resend only to recipients whose last outcome was
  Unavailable or InternalServerError, and merge every attempt into one
  result ordered like the caller's recipient list.

Note:
These calls block the calling thread for the whole retry session, which can be
many seconds when the gateway stays unavailable.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import Any, Dict, Iterable, Mapping, Optional, Tuple

from pushrelay.backoff import Backoff, BackoffScheduler
from pushrelay.decoder import SingleOutcome, decode_multicast, decode_single
from pushrelay.errors import (
    GatewayUnavailableError,
    InternalConsistencyError,
    InvalidArgumentError,
    InvalidRequestError,
    TransportExhaustedError,
)
from pushrelay.messages import Message
from pushrelay.outbound.gateway import PushTransport
from pushrelay.results import BatchOutcome, RecipientOutcome

logger = logging.getLogger("push_sender")

JSON_TO = "to"
JSON_REGISTRATION_IDS = "registration_ids"


@dataclass(frozen=True)
class MulticastRetryState:
    """
    Bookkeeping for one multicast retry session.

    Each record_* call returns a new state, so one iteration can be checked in
    isolation.
    """

    pending: Tuple[str, ...]
    resolved: Mapping[str, RecipientOutcome] = field(default_factory=dict)
    batch_ids: Tuple[int, ...] = ()
    attempts: int = 0

    @classmethod
    def start(cls, recipients: Iterable[str]) -> "MulticastRetryState":
        return cls(pending=tuple(recipients))

    @property
    def has_decoded_batch(self) -> bool:
        return bool(self.batch_ids)

    def record_unavailable(self) -> "MulticastRetryState":
        return replace(self, attempts=self.attempts + 1)

    def record_batch(self, batch: BatchOutcome) -> "MulticastRetryState":
        if len(batch.results) != len(self.pending):
            # should never happen, unless the decoder and the request disagree
            raise InternalConsistencyError(
                f"Internal error: sizes do not match. currentResults: {list(batch.results)}; "
                f"pending: {list(self.pending)}"
            )

        resolved: Dict[str, RecipientOutcome] = dict(self.resolved)
        still_pending = []
        for recipient, outcome in zip(self.pending, batch.results):
            resolved[recipient] = outcome
            if outcome.is_retryable:
                still_pending.append(recipient)

        return MulticastRetryState(
            pending=tuple(still_pending),
            resolved=resolved,
            batch_ids=self.batch_ids + (batch.batch_id,),
            attempts=self.attempts + 1,
        )


class Sender:
    def __init__(
        self,
        transport: PushTransport,
        scheduler: Optional[BackoffScheduler] = None,
    ) -> None:
        self._transport = transport
        self._scheduler = scheduler or BackoffScheduler()

    # ---------------------------------------------------------
    # SINGLE TARGET (token, notification key or /topics/...)
    # ---------------------------------------------------------
    def send(self, message: Message, to: str, retries: int) -> SingleOutcome:
        """
        Send to one target, retrying up to `retries` times while the gateway is
        unavailable.

        Raises TransportExhaustedError once retries + 1 attempts produced no
        decoded response.
        """
        _require_target(to)

        attempt = 0
        backoff = Backoff()
        while True:
            attempt += 1
            logger.debug("Attempt #%s to send message %s to %s", attempt, message, to)

            result = self.send_no_retry(message, to)
            if result is not None:
                return result
            if attempt > retries:
                break

            delay = self._scheduler.wait(backoff)
            logger.debug("Gateway unavailable on attempt #%s, waited %sms", attempt, delay)
            backoff = backoff.advance()

        raise TransportExhaustedError(attempt)

    def send_no_retry(self, message: Message, to: str) -> Optional[SingleOutcome]:
        """
        One round-trip. Returns None when the gateway was unavailable.
        """
        _require_target(to)

        request = message.to_payload()
        request[JSON_TO] = to

        body = self._post(request)
        if body is None:
            return None

        logger.info("Response body: %s", body)
        return decode_single(body, to)

    # ---------------------------------------------------------
    # MULTICAST (registration_ids)
    # ---------------------------------------------------------
    def send_multicast(self, message: Message, recipients: Iterable[str], retries: int) -> BatchOutcome:
        """
        Send to many devices and reconcile every attempt into one BatchOutcome.

        results[i] is the outcome of the last attempt that included
        recipients[i]; counts are computed over those final outcomes.
        """
        recipients = _require_recipients(recipients)

        state = MulticastRetryState.start(recipients)
        backoff = Backoff()
        while True:
            logger.debug(
                "Attempt #%s to send message %s to regIds %s",
                state.attempts + 1, message, list(state.pending),
            )

            batch = self.send_multicast_no_retry(message, state.pending)
            if batch is None:
                state = state.record_unavailable()
                try_again = state.attempts <= retries
            else:
                logger.debug("multicast_id on attempt #%s: %s", state.attempts + 1, batch.batch_id)
                state = state.record_batch(batch)
                try_again = bool(state.pending) and state.attempts <= retries

            if not try_again:
                break

            self._scheduler.wait(backoff)
            backoff = backoff.advance()

        if not state.has_decoded_batch:
            # every POST failed because the gateway was unavailable
            raise TransportExhaustedError(state.attempts)

        return BatchOutcome.reconcile(recipients, state.resolved, state.batch_ids)

    def send_multicast_no_retry(self, message: Message, recipients: Iterable[str]) -> Optional[BatchOutcome]:
        """
        One round-trip. Returns None when the gateway was unavailable.
        """
        recipients = _require_recipients(recipients)

        request = message.to_payload()
        request[JSON_REGISTRATION_IDS] = list(recipients)

        body = self._post(request)
        if body is None:
            return None
        return decode_multicast(body)

    # ---------------------------------------------------------
    # Internal
    # ---------------------------------------------------------
    def _post(self, request: Dict[str, Any]) -> Optional[str]:
        try:
            response = self._transport.post_json(request)
        except GatewayUnavailableError:
            logger.debug("Push gateway unavailable", exc_info=True)
            return None

        if response.ok:
            return response.body
        if response.is_server_error:
            logger.debug("Push gateway returned HTTP %s, will retry", response.status_code)
            return None
        raise InvalidRequestError(response.status_code, response.body)


def _require_target(to: Optional[str]) -> None:
    if not to:
        raise InvalidArgumentError("to cannot be empty")


def _require_recipients(recipients: Optional[Iterable[str]]) -> Tuple[str, ...]:
    if recipients is None:
        raise InvalidArgumentError("recipients cannot be None")
    recipients = tuple(recipients)
    if not recipients:
        raise InvalidArgumentError("recipients cannot be empty")
    return recipients
