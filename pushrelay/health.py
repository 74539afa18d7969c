"""
Health check endpoints
- /health     process is up, plus which push mode it runs in
- /health/db  result database reachable (only meaningful with persistence on)
"""

from fastapi import APIRouter

from pushrelay.db import test_db_connection
from pushrelay.outbound.settings import load_push_settings

router = APIRouter(prefix="/health", tags=["health"])


@router.get("")
def health_check():
    try:
        settings = load_push_settings()
    except RuntimeError as e:
        return {"status": "misconfigured", "error": str(e)}
    return {"status": "healthy", "push_mode": settings.mode, "persist_results": settings.persist_results}


@router.get("/db")
def db_health_check():
    try:
        test_db_connection()
        return {"database": "healthy"}
    except Exception as e:
        return {"database": "unhealthy", "error": str(e)}
