"""
File: pushrelay/outbound/factory.py
Path: pushrelay/outbound/factory.py

Project: pushrelay

Purpose:
- Provide a single place to construct the push transport and sender
- Reuse a single Sender instance (singleton-style) so the HTTP session and its
  keep-alive connections are shared

Design rules:
- No business logic here
- Only construction / wiring
"""

from __future__ import annotations

from pushrelay.outbound.dry_run import DryRunTransport
from pushrelay.outbound.fcm import FcmHttpTransport
from pushrelay.outbound.gateway import PushTransport
from pushrelay.outbound.settings import PushGatewaySettings, load_push_settings
from pushrelay.sender import Sender


def build_transport(settings: PushGatewaySettings) -> PushTransport:
    if settings.is_live:
        return FcmHttpTransport(settings=settings)
    return DryRunTransport()


# -------------------------------------------------
# Sender singleton
# -------------------------------------------------
_sender: Sender | None = None


def get_sender() -> Sender:
    global _sender
    if _sender is None:
        settings = load_push_settings()
        _sender = Sender(transport=build_transport(settings))
    return _sender
