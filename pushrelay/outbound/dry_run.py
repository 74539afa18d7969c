"""
pushrelay
Push transport - DRY-RUN

This transport never sends anything.
It answers with a 200 response shaped like the gateway's, so the whole
decode / retry / reconcile path runs without network access.
"""

from __future__ import annotations

import itertools
import json
import uuid
from typing import Any, Dict

from pushrelay.messages import is_topic
from pushrelay.outbound.gateway import GatewayResponse


def _dry_run_id() -> str:
    return f"dry-run:{uuid.uuid4()}"


class DryRunTransport:
    def __init__(self, first_batch_id: int = 1) -> None:
        self._batch_ids = itertools.count(first_batch_id)

    def post_json(self, payload: Dict[str, Any]) -> GatewayResponse:
        # No side effects. Never raises. Never calls external services.
        if "registration_ids" in payload:
            recipients = payload["registration_ids"]
            body = {
                "multicast_id": next(self._batch_ids),
                "success": len(recipients),
                "failure": 0,
                "canonical_ids": 0,
                "results": [{"message_id": _dry_run_id()} for _ in recipients],
            }
        elif is_topic(payload.get("to", "")):
            body = {"message_id": _dry_run_id()}
        else:
            body = {
                "multicast_id": next(self._batch_ids),
                "success": 1,
                "failure": 0,
                "canonical_ids": 0,
                "results": [{"message_id": _dry_run_id()}],
            }
        return GatewayResponse(status_code=200, body=json.dumps(body))
