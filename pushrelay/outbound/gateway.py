"""
pushrelay
Push transport abstraction

This module defines a stable PushTransport interface and the raw response
object the sender decodes.

Guardrails:
- Transports move bytes only. Decoding and retry decisions live in the sender.
- Connection and read faults surface as GatewayUnavailableError.
- Any HTTP status is returned as-is, including errors.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Protocol


@dataclass(frozen=True)
class GatewayResponse:
    """
    What the gateway answered for one POST.
    """
    status_code: int
    body: str

    @property
    def ok(self) -> bool:
        return self.status_code == 200

    @property
    def is_server_error(self) -> bool:
        return 500 <= self.status_code < 600


class PushTransport(Protocol):
    """
    Abstract transport for the push gateway.
    """
    def post_json(self, payload: Dict[str, Any]) -> GatewayResponse:
        """
        POST one JSON request body and return the status and raw body.
        Raises GatewayUnavailableError when no status/body could be obtained.
        """
        ...
