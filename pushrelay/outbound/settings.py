"""
pushrelay/outbound/settings.py
pushrelay
Push gateway settings

Purpose:
- Centralised push gateway configuration.
- Keep secrets out of code via environment variables.

Notes:
- Required for live sending:
  - PUSH_API_KEY
- Optional:
  - PUSH_MODE (dry_run | live, defaults to dry_run)
  - PUSH_SEND_ENDPOINT (defaults to the FCM legacy HTTP endpoint)
  - PUSH_TIME_TO_LIVE, PUSH_MAX_RETRIES, PUSH_HTTP_TIMEOUT
  - PUSH_PERSIST_RESULTS, PUSH_QUEUE_MAXSIZE, PUSH_QUEUE_DRAIN_SECONDS
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional

DEFAULT_SEND_ENDPOINT = "https://fcm.googleapis.com/fcm/send"

MODE_DRY_RUN = "dry_run"
MODE_LIVE = "live"


def _require_env(name: str) -> str:
    value = os.getenv(name, "").strip()
    if not value:
        raise RuntimeError(
            f"Missing required environment variable: {name}. "
            f"Export it before starting pushrelay (see the PUSH_* settings in pushrelay/outbound/settings.py)."
        )
    return value


def _int_env(name: str, default: Optional[int]) -> Optional[int]:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        raise RuntimeError(f"Environment variable {name} must be an integer, got {raw!r}")


def _bool_env(name: str, default: bool = False) -> bool:
    raw = os.getenv(name, "").strip().lower()
    if not raw:
        return default
    return raw in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class PushGatewaySettings:
    api_key: str
    mode: str = MODE_DRY_RUN
    send_endpoint: str = DEFAULT_SEND_ENDPOINT
    time_to_live: Optional[int] = None
    max_retries: int = 3
    http_timeout: float = 30.0
    persist_results: bool = False
    queue_maxsize: int = 10000
    queue_drain_seconds: int = 300

    @property
    def is_live(self) -> bool:
        return self.mode == MODE_LIVE

    @property
    def authorization_header(self) -> str:
        return f"key={self.api_key}"


def load_push_settings() -> PushGatewaySettings:
    mode = os.getenv("PUSH_MODE", MODE_DRY_RUN).strip().lower() or MODE_DRY_RUN
    if mode not in (MODE_DRY_RUN, MODE_LIVE):
        raise RuntimeError(f"PUSH_MODE must be '{MODE_DRY_RUN}' or '{MODE_LIVE}', got {mode!r}")

    # The key is only mandatory once we actually talk to the gateway.
    api_key = _require_env("PUSH_API_KEY") if mode == MODE_LIVE else os.getenv("PUSH_API_KEY", "").strip()

    return PushGatewaySettings(
        api_key=api_key,
        mode=mode,
        send_endpoint=os.getenv("PUSH_SEND_ENDPOINT", DEFAULT_SEND_ENDPOINT).strip(),
        time_to_live=_int_env("PUSH_TIME_TO_LIVE", None),
        max_retries=_int_env("PUSH_MAX_RETRIES", 3),
        http_timeout=float(_int_env("PUSH_HTTP_TIMEOUT", 30)),
        persist_results=_bool_env("PUSH_PERSIST_RESULTS"),
        queue_maxsize=_int_env("PUSH_QUEUE_MAXSIZE", 10000),
        queue_drain_seconds=_int_env("PUSH_QUEUE_DRAIN_SECONDS", 300),
    )
