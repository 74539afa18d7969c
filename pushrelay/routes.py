"""
File: pushrelay/routes.py

Project: pushrelay

Purpose:
HTTP endpoints for sending push messages and reading stored results.

Endpoints:
- POST /push/send        {"to": ..., "text": ...}
- POST /push/multicast   {"recipients": [...], "text": ...}
- POST /push/broadcast   {"topic": ..., "text": ...}
- GET  /push/results     latest stored results

Design rules:
- No retry or decode logic here, everything goes through PushDeliveryService
- Caller mistakes -> 400, gateway rejections / bad gateway bodies -> 502
"""

from __future__ import annotations

import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from sqlalchemy.orm import Session

from pushrelay.db import get_db
from pushrelay.errors import InvalidArgumentError, InvalidRequestError, ResponseDecodeError
from pushrelay.models import PushResult
from pushrelay.services.push_service import DeliveryReport, PushDeliveryService

router = APIRouter(prefix="/push", tags=["push"])
logger = logging.getLogger("push_routes")

_service: PushDeliveryService | None = None


def set_delivery_service(service: PushDeliveryService) -> None:
    global _service
    _service = service


def get_delivery_service() -> PushDeliveryService:
    if _service is None:
        raise RuntimeError("PushDeliveryService is not configured")
    return _service


class SendRequest(BaseModel):
    to: str
    text: str


class MulticastRequest(BaseModel):
    recipients: List[str]
    text: str


class BroadcastRequest(BaseModel):
    topic: str
    text: str


def _run(send) -> dict:
    try:
        report: DeliveryReport = send()
    except InvalidArgumentError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except InvalidRequestError as e:
        logger.warning("Push gateway rejected request: HTTP %s", e.status_code)
        raise HTTPException(
            status_code=502,
            detail={"gateway_status": e.status_code, "gateway_body": e.body},
        )
    except ResponseDecodeError as e:
        raise HTTPException(status_code=502, detail=str(e))
    return report.to_dict()


# -------------------------------------------------------------------
# Sending
# -------------------------------------------------------------------
@router.post("/send")
def send_push(
    payload: SendRequest,
    service: PushDeliveryService = Depends(get_delivery_service),
):
    return _run(lambda: service.send(payload.text, payload.to))


@router.post("/multicast")
def send_multicast_push(
    payload: MulticastRequest,
    service: PushDeliveryService = Depends(get_delivery_service),
):
    return _run(lambda: service.send_multicast(payload.text, payload.recipients))


@router.post("/broadcast")
def broadcast_push(
    payload: BroadcastRequest,
    service: PushDeliveryService = Depends(get_delivery_service),
):
    return _run(lambda: service.broadcast(payload.text, payload.topic))


# -------------------------------------------------------------------
# Stored results (read-only)
# -------------------------------------------------------------------
@router.get("/results")
def list_results(limit: int = 50, db: Session = Depends(get_db)):
    rows = (
        db.query(PushResult)
        .order_by(PushResult.push_result_id.desc())
        .limit(min(max(limit, 1), 500))
        .all()
    )

    return [
        {
            "push_result_id": r.push_result_id,
            "push_batch_id": r.push_batch_id,
            "position": r.position,
            "message_id": r.message_id,
            "canonical_registration_id": r.canonical_registration_id,
            "error_code": r.error_code,
            "success": r.success,
            "failure": r.failure,
            "failed_registration_ids": [f.registration_id for f in r.failed_registration_ids],
        }
        for r in rows
    ]
