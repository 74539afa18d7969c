"""
File: pushrelay/decoder.py

Project: pushrelay

Purpose:
Turn one HTTP 200 gateway body into result objects.

Response shapes:
1. {"results": [ {...} ]}                     -> single device send, exactly one result
2. {"message_id": ...} / {"error": ...}       -> topic send
3. {"success": n, "failure": n, ...}          -> device group send
4. {"multicast_id", "success", "failure", "canonical_ids", "results"}
                                              -> multicast send

Anything else is a ResponseDecodeError carrying the raw body.
"""

from __future__ import annotations

import json
import logging
import math
from typing import Any, Dict, Union

from pushrelay.errors import (
    MalformedJsonError,
    MissingFieldError,
    NegativeFieldError,
    NonNumericFieldError,
    ResponseDecodeError,
    UnexpectedResultCountError,
)
from pushrelay.messages import is_topic
from pushrelay.results import BatchOutcome, GroupOutcome, RecipientOutcome

logger = logging.getLogger("push_decoder")

JSON_RESULTS = "results"
JSON_MESSAGE_ID = "message_id"
JSON_ERROR = "error"
JSON_CANONICAL_ID = "registration_id"
JSON_SUCCESS = "success"
JSON_FAILURE = "failure"
JSON_CANONICAL_IDS = "canonical_ids"
JSON_MULTICAST_ID = "multicast_id"
JSON_FAILED_IDS = "failed_registration_ids"

SingleOutcome = Union[RecipientOutcome, GroupOutcome]


def _parse_object(body: str) -> Dict[str, Any]:
    try:
        parsed = json.loads(body)
    except ValueError as e:
        logger.warning("Error parsing JSON response (%s)", body)
        raise MalformedJsonError(body, e) from e

    if not isinstance(parsed, dict):
        logger.warning("Expected a JSON object, got: %s", body)
        raise ResponseDecodeError("Expected a JSON object", body)
    return parsed


def _get_number(json_response: Dict[str, Any], field: str, body: str) -> int:
    if field not in json_response or json_response[field] is None:
        raise MissingFieldError(field, body)

    value = json_response[field]
    # bool is an int subclass, but "success": true is not a count
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise NonNumericFieldError(field, value, body)
    # json.loads accepts NaN and Infinity
    if isinstance(value, float) and not math.isfinite(value):
        raise NonNumericFieldError(field, value, body)
    if value < 0:
        raise NegativeFieldError(field, value, body)
    return int(value)


def _optional_str(value: Any) -> str | None:
    if value is None:
        return None
    return str(value)


def _result_from_json(json_result: Any, body: str) -> RecipientOutcome:
    if not isinstance(json_result, dict):
        raise ResponseDecodeError(f"Result entry is not an object: {json_result!r}", body)

    message_id = _optional_str(json_result.get(JSON_MESSAGE_ID))
    error = _optional_str(json_result.get(JSON_ERROR))
    if (message_id is None) == (error is None):
        raise ResponseDecodeError(
            f"Result entry needs exactly one of {JSON_MESSAGE_ID} / {JSON_ERROR}: {json_result!r}",
            body,
        )

    return RecipientOutcome(
        message_id=message_id,
        canonical_recipient_id=_optional_str(json_result.get(JSON_CANONICAL_ID)),
        error_code=error,
    )


def decode_single(body: str, target: str) -> SingleOutcome:
    """
    Decode the answer to a send addressed with "to".

    The target decides between the topic shape and the device group shape
    when the body has no "results" array.
    """
    json_response = _parse_object(body)

    if JSON_RESULTS in json_response:
        # Handle response from message sent to specific device.
        json_results = json_response[JSON_RESULTS]
        if not isinstance(json_results, list):
            raise ResponseDecodeError(f"{JSON_RESULTS} is not an array", body)
        if len(json_results) != 1:
            logger.warning("Found %s results, expected one: %s", len(json_results), body)
            raise UnexpectedResultCountError(len(json_results), body)
        return _result_from_json(json_results[0], body)

    if is_topic(target):
        message_id = _optional_str(json_response.get(JSON_MESSAGE_ID))
        if message_id is not None:
            return RecipientOutcome(message_id=message_id)
        error = _optional_str(json_response.get(JSON_ERROR))
        if error is not None:
            return RecipientOutcome(error_code=error)
        logger.warning("Expected %s or %s, found: %s", JSON_MESSAGE_ID, JSON_ERROR, body)
        raise ResponseDecodeError(f"Expected {JSON_MESSAGE_ID} or {JSON_ERROR}", body)

    if JSON_SUCCESS in json_response and JSON_FAILURE in json_response:
        # success and failure are expected when response is from group message.
        failed_ids = json_response.get(JSON_FAILED_IDS)
        if failed_ids is not None and not isinstance(failed_ids, list):
            raise ResponseDecodeError(f"{JSON_FAILED_IDS} is not an array", body)
        return GroupOutcome(
            success=_get_number(json_response, JSON_SUCCESS, body),
            failure=_get_number(json_response, JSON_FAILURE, body),
            failed_recipient_ids=tuple(str(i) for i in failed_ids) if failed_ids is not None else None,
        )

    logger.warning("Unrecognized response: %s", body)
    raise ResponseDecodeError("Unrecognized response", body)


def decode_multicast(body: str) -> BatchOutcome:
    json_response = _parse_object(body)

    success = _get_number(json_response, JSON_SUCCESS, body)
    failure = _get_number(json_response, JSON_FAILURE, body)
    canonical_ids = _get_number(json_response, JSON_CANONICAL_IDS, body)
    multicast_id = _get_number(json_response, JSON_MULTICAST_ID, body)

    json_results = json_response.get(JSON_RESULTS)
    if json_results is None:
        json_results = []
    elif not isinstance(json_results, list):
        raise ResponseDecodeError(f"{JSON_RESULTS} is not an array", body)

    return BatchOutcome(
        success_count=success,
        failure_count=failure,
        canonical_id_count=canonical_ids,
        batch_id=multicast_id,
        results=tuple(_result_from_json(r, body) for r in json_results),
    )
