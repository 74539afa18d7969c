"""
File: pushrelay/main.py

Project: pushrelay

Purpose:
Application entry point.
Responsible only for:
- FastAPI app creation
- Router registration
- Wiring the delivery service and, when persistence is on, the result
  queue consumer (started on startup, drained and stopped on shutdown)

Design principles:
- No business logic in this file
- No gateway calls
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from pushrelay.db import get_session_factory
from pushrelay.health import router as health_router
from pushrelay.outbound.factory import get_sender
from pushrelay.outbound.settings import load_push_settings
from pushrelay.routes import router as push_router, set_delivery_service
from pushrelay.services.push_service import PushDeliveryService
from pushrelay.services.result_queue import ResultQueue, ResultQueueConsumer
from pushrelay.services.result_store import SqlResultStore

logger = logging.getLogger("main")
logging.basicConfig(level=logging.INFO)


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = load_push_settings()
    logger.info("Push mode: %s, endpoint: %s", settings.mode, settings.send_endpoint)

    consumer = None
    result_queue = None
    if settings.persist_results:
        result_queue = ResultQueue(maxsize=settings.queue_maxsize)
        consumer = ResultQueueConsumer(
            result_queue,
            SqlResultStore(get_session_factory()),
            interval_seconds=settings.queue_drain_seconds,
        )
        consumer.start()

    set_delivery_service(PushDeliveryService(get_sender(), settings, result_queue))
    try:
        yield
    finally:
        if consumer is not None:
            consumer.stop()


app = FastAPI(lifespan=lifespan)

# -------------------------------------------------------------------
# Push routes (/push/...)
# -------------------------------------------------------------------
app.include_router(push_router)

# -------------------------------------------------------------------
# Health
# -------------------------------------------------------------------
app.include_router(health_router)
