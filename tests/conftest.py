import json
import sys
import time
from pathlib import Path
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient
from slack_sdk.signature import Clock, SignatureVerifier
from twilio.request_validator import RequestValidator

# Ensure src is importable
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from smsrelay.core.config import Settings
from smsrelay.server import create_app

CHANNEL = "C0RELAY"
SIGNING_SECRET = "8f742231b10e8888abcd99yyyzzz85a5"
TWILIO_TOKEN = "12345678901234567890123456789012"


class FixedClock(Clock):
    """Clock pinned to a given epoch second."""

    def __init__(self, now: float):
        self._now = now

    def now(self) -> float:
        return self._now


@pytest.fixture
def settings(tmp_path):
    return Settings(
        slack_bot_token="xoxb-test",
        slack_channel_id=CHANNEL,
        slack_signing_secret=SIGNING_SECRET,
        twilio_account_sid="AC00000000000000000000000000000000",
        twilio_auth_token=TWILIO_TOKEN,
        twilio_from_number="+15559990000",
        public_base_url="https://relay.example.com",
        log_dir=tmp_path / "logs",
    )


@pytest.fixture
def slack_client():
    client = AsyncMock()
    client.chat_postMessage.return_value = {"ok": True, "ts": "1700000000.000100"}
    client.reactions_add.return_value = {"ok": True}
    client.conversations_replies.return_value = {"ok": True, "messages": []}
    return client


@pytest.fixture
def twilio_client():
    client = MagicMock()
    client.messages.create.return_value = SimpleNamespace(sid="SM999")
    return client


@pytest.fixture
def client(settings, slack_client, twilio_client):
    app = create_app(settings, slack_client=slack_client, twilio_client=twilio_client)
    return TestClient(app)


def twilio_signature(url: str, params: dict) -> str:
    return RequestValidator(TWILIO_TOKEN).compute_signature(url, params)


def slack_headers(body: bytes, timestamp: int = None) -> dict:
    ts = str(int(time.time()) if timestamp is None else timestamp)
    signature = SignatureVerifier(SIGNING_SECRET).generate_signature(timestamp=ts, body=body)
    return {
        "Content-Type": "application/json",
        "X-Slack-Request-Timestamp": ts,
        "X-Slack-Signature": signature,
    }


def event_body(**event) -> bytes:
    payload = {
        "type": "event_callback",
        "team_id": "T0001",
        "event": {"type": "message", "channel": CHANNEL, "user": "U123", "ts": "1700000100.000200", **event},
    }
    return json.dumps(payload).encode()
