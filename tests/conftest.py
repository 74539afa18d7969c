"""Shared fixtures for pushrelay tests."""

import json
import random

import pytest

from pushrelay.backoff import BackoffScheduler
from pushrelay.errors import GatewayUnavailableError
from pushrelay.outbound.gateway import GatewayResponse
from pushrelay.sender import Sender


class ScriptedTransport:
    """Transport that replays a fixed list of responses and records requests.

    Each scripted item is a GatewayResponse, a dict (sent back as a 200 JSON
    body), or an exception instance to raise.
    """

    def __init__(self, *script):
        self.script = list(script)
        self.requests = []

    def post_json(self, payload):
        self.requests.append(json.loads(json.dumps(payload)))
        if not self.script:
            raise AssertionError("transport called more often than scripted")
        item = self.script.pop(0)
        if isinstance(item, Exception):
            raise item
        if isinstance(item, dict):
            return GatewayResponse(status_code=200, body=json.dumps(item))
        return item


def unavailable():
    return GatewayUnavailableError("connection refused")


@pytest.fixture
def sleeps():
    return []


@pytest.fixture
def scheduler(sleeps):
    return BackoffScheduler(rng=random.Random(42), sleep=sleeps.append)


@pytest.fixture
def make_sender(scheduler):
    def _make(*script):
        transport = ScriptedTransport(*script)
        return Sender(transport, scheduler=scheduler), transport

    return _make
