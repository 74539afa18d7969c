"""
File: pushrelay/outbound/fcm.py

Project: pushrelay

Purpose:
HTTPS transport for the FCM/GCM legacy HTTP endpoint.

Notes:
- One requests.Session per transport. It is never closed after a response so
  keep-alive connections get reused.
- Failures to connect or to read the body raise GatewayUnavailableError.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import requests

from pushrelay.errors import GatewayUnavailableError
from pushrelay.outbound.gateway import GatewayResponse
from pushrelay.outbound.settings import PushGatewaySettings

logger = logging.getLogger("push_transport")


class FcmHttpTransport:
    def __init__(
        self,
        settings: PushGatewaySettings,
        session: Optional[requests.Session] = None,
    ) -> None:
        self._settings = settings
        self._session = session or requests.Session()

        if not settings.send_endpoint.startswith("https://"):
            logger.warning("URL does not use https: %s", settings.send_endpoint)

    def post_json(self, payload: Dict[str, Any]) -> GatewayResponse:
        headers = {
            "Authorization": self._settings.authorization_header,
            "Content-Type": "application/json",
        }

        logger.info("Sending POST to %s", self._settings.send_endpoint)
        logger.debug("JSON request: %s", payload)

        try:
            resp = self._session.post(
                self._settings.send_endpoint,
                json=payload,
                headers=headers,
                timeout=self._settings.http_timeout,
            )
            body = resp.text
        except requests.RequestException as e:
            logger.debug("Error posting to push gateway", exc_info=True)
            raise GatewayUnavailableError(str(e)) from e

        if resp.status_code != 200:
            logger.debug("JSON error response (HTTP %s): %s", resp.status_code, body)
        else:
            logger.debug("JSON response: %s", body)

        return GatewayResponse(status_code=resp.status_code, body=body)
