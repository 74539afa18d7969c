"""
File: pushrelay/results.py

Project: pushrelay

Purpose:
Immutable result objects returned by the sender.

Handling a RecipientOutcome:
- message_id set: the gateway accepted the message
  - canonical_recipient_id set: replace the stored token with it
- error_code set: the gateway refused it for this recipient

GroupOutcome is the device-group (notification key) response shape and carries
aggregate counts instead of a per-recipient id.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional, Sequence, Tuple

from pushrelay.errors import InvalidArgumentError

# ------------------------------------------------------------------
# Gateway error codes
# ------------------------------------------------------------------
ERROR_UNAVAILABLE = "Unavailable"
ERROR_INTERNAL_SERVER_ERROR = "InternalServerError"
ERROR_MISSING_REGISTRATION = "MissingRegistration"
ERROR_INVALID_REGISTRATION = "InvalidRegistration"
ERROR_NOT_REGISTERED = "NotRegistered"
ERROR_INVALID_PACKAGE_NAME = "InvalidPackageName"
ERROR_MISMATCH_SENDER_ID = "MismatchSenderId"
ERROR_MESSAGE_TOO_BIG = "MessageTooBig"
ERROR_INVALID_DATA_KEY = "InvalidDataKey"
ERROR_INVALID_TTL = "InvalidTtl"
ERROR_DEVICE_MESSAGE_RATE_EXCEEDED = "DeviceMessageRateExceeded"
ERROR_TOPICS_MESSAGE_RATE_EXCEEDED = "TopicsMessageRateExceeded"
ERROR_INVALID_APNS_CREDENTIAL = "InvalidApnsCredential"

RETRYABLE_ERROR_CODES = frozenset({ERROR_UNAVAILABLE, ERROR_INTERNAL_SERVER_ERROR})


@dataclass(frozen=True)
class RecipientOutcome:
    message_id: Optional[str] = None
    canonical_recipient_id: Optional[str] = None
    error_code: Optional[str] = None

    def __post_init__(self) -> None:
        if (self.message_id is None) == (self.error_code is None):
            raise InvalidArgumentError(
                "RecipientOutcome needs exactly one of message_id / error_code "
                f"(message_id={self.message_id!r}, error_code={self.error_code!r})"
            )

    @property
    def succeeded(self) -> bool:
        return self.message_id is not None

    @property
    def is_retryable(self) -> bool:
        return self.error_code in RETRYABLE_ERROR_CODES

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {}
        if self.message_id is not None:
            data["message_id"] = self.message_id
        if self.canonical_recipient_id is not None:
            data["canonical_recipient_id"] = self.canonical_recipient_id
        if self.error_code is not None:
            data["error_code"] = self.error_code
        return data


@dataclass(frozen=True)
class GroupOutcome:
    success: int
    failure: int
    failed_recipient_ids: Optional[Tuple[str, ...]] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"success": self.success, "failure": self.failure}
        if self.failed_recipient_ids is not None:
            data["failed_recipient_ids"] = list(self.failed_recipient_ids)
        return data


@dataclass(frozen=True)
class BatchOutcome:
    """
    Result of one multicast round-trip, or of a whole reconciled retry session.

    For a reconciled result, batch_id is the first attempt's id and
    retry_batch_ids holds the later ones in attempt order. results always
    follows the order of the recipient list the caller passed in.
    """

    success_count: int
    failure_count: int
    canonical_id_count: int
    batch_id: int
    results: Tuple[RecipientOutcome, ...] = ()
    retry_batch_ids: Tuple[int, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        for name in ("success_count", "failure_count", "canonical_id_count"):
            if getattr(self, name) < 0:
                raise InvalidArgumentError(f"{name} cannot be negative")
        # accept any sequence, store tuples
        object.__setattr__(self, "results", tuple(self.results))
        object.__setattr__(self, "retry_batch_ids", tuple(self.retry_batch_ids))

    @property
    def total(self) -> int:
        return self.success_count + self.failure_count

    @classmethod
    def reconcile(
        cls,
        recipients: Sequence[str],
        resolved: Mapping[str, RecipientOutcome],
        batch_ids: Sequence[int],
    ) -> "BatchOutcome":
        """
        Build the final outcome of a retry session.

        Counts are taken over the distinct recipients in resolved. A recipient
        listed more than once shares one outcome, which fills each of its
        positions in results, so success_count + failure_count equals
        len(results) only when recipients has no duplicates.
        """
        if not batch_ids:
            raise InvalidArgumentError("cannot reconcile without at least one batch id")

        success = failure = canonical_ids = 0
        for outcome in resolved.values():
            if outcome.succeeded:
                success += 1
                if outcome.canonical_recipient_id is not None:
                    canonical_ids += 1
            else:
                failure += 1

        return cls(
            success_count=success,
            failure_count=failure,
            canonical_id_count=canonical_ids,
            batch_id=batch_ids[0],
            retry_batch_ids=tuple(batch_ids[1:]),
            results=tuple(resolved[r] for r in recipients),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success_count,
            "failure": self.failure_count,
            "canonical_ids": self.canonical_id_count,
            "batch_id": self.batch_id,
            "retry_batch_ids": list(self.retry_batch_ids),
            "results": [r.to_dict() for r in self.results],
        }

