"""
File: pushrelay/errors.py

Project: pushrelay

Purpose:
Error taxonomy for push delivery.

- InvalidArgumentError: caller input rejected before any network call
- InvalidRequestError: gateway answered with a non-200, non-5xx status
- TransportExhaustedError: retry budget spent without a decoded response
- ResponseDecodeError (+ subclasses): HTTP 200 with a body we cannot read
- InternalConsistencyError: decoded result count does not match what was sent

GatewayUnavailableError is raised by transports and absorbed by the retry loop.
"""

from __future__ import annotations

from typing import Any


class PushError(RuntimeError):
    pass


class InvalidArgumentError(PushError, ValueError):
    pass


class GatewayUnavailableError(PushError):
    """Connection failed, or the response body could not be read."""


class InvalidRequestError(PushError):
    def __init__(self, status_code: int, body: str) -> None:
        self.status_code = status_code
        self.body = body
        super().__init__(f"Push gateway rejected request: HTTP {status_code} ({body})")


class TransportExhaustedError(PushError):
    def __init__(self, attempts: int) -> None:
        self.attempts = attempts
        super().__init__(f"Could not send message after {attempts} attempts")


class ResponseDecodeError(PushError):
    def __init__(self, message: str, body: str) -> None:
        self.body = body
        super().__init__(f"{message} (response body: {body})")


class MalformedJsonError(ResponseDecodeError):
    def __init__(self, body: str, cause: Exception) -> None:
        self.cause = cause
        super().__init__(f"Error parsing JSON response: {cause}", body)


class MissingFieldError(ResponseDecodeError):
    def __init__(self, field: str, body: str) -> None:
        self.field = field
        super().__init__(f"Missing field: {field}", body)


class NonNumericFieldError(ResponseDecodeError):
    def __init__(self, field: str, value: Any, body: str) -> None:
        self.field = field
        self.value = value
        super().__init__(f"Field {field} does not contain a number: {value!r}", body)


class NegativeFieldError(ResponseDecodeError):
    def __init__(self, field: str, value: Any, body: str) -> None:
        self.field = field
        self.value = value
        super().__init__(f"Field {field} cannot be negative: {value!r}", body)


class UnexpectedResultCountError(ResponseDecodeError):
    def __init__(self, count: int, body: str) -> None:
        self.count = count
        super().__init__(f"Found {count} results, expected one", body)


class InternalConsistencyError(PushError):
    pass
