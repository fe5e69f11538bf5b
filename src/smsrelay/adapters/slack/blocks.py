"""Slack message builders for relayed SMS and delivery confirmations."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional

SMS_RECEIVED_EVENT = "sms_received"


def escape_slack_text(text: str) -> str:
    """Escape the three characters Slack treats as control sequences."""
    return text.replace("&", "&amp;").replace("<", "&lt;").replace(">", "&gt;")


def _timestamp_label(now: Optional[datetime] = None) -> str:
    return (now or datetime.now()).strftime("%Y-%m-%d %H:%M:%S")


def _section(text: str) -> Dict[str, Any]:
    return {"type": "section", "text": {"type": "mrkdwn", "text": text}}


def _context(text: str) -> Dict[str, Any]:
    return {"type": "context", "elements": [{"type": "mrkdwn", "text": text}]}


def build_correlation_metadata(message_sid: str, phone_from: str) -> Dict[str, Any]:
    """Metadata that lets a later thread reply find its way back to the sender."""
    return {
        "event_type": SMS_RECEIVED_EVENT,
        "event_payload": {
            "twilio_message_sid": message_sid,
            "phone_from": phone_from,
        },
    }


def build_sms_message(
    *,
    channel: str,
    phone_from: str,
    body: str,
    message_sid: str,
    num_media: int = 0,
    now: Optional[datetime] = None,
) -> Dict[str, Any]:
    """Build chat.postMessage arguments for an incoming SMS."""
    blocks: List[Dict[str, Any]] = [
        _section(f"*SMS from:* {phone_from}\n*Message:* {escape_slack_text(body)}"),
        _context(f"Message ID: {message_sid} | {_timestamp_label(now)}"),
    ]
    if num_media > 0:
        blocks.append(_section(f":paperclip: {num_media} attachment(s) received"))

    return {
        "channel": channel,
        "text": f":iphone: *SMS from {phone_from}*",
        "blocks": blocks,
        "metadata": build_correlation_metadata(message_sid, phone_from),
    }


def build_confirmation_message(
    *,
    channel: str,
    thread_ts: str,
    phone_number: str,
    message_sid: str,
    now: Optional[datetime] = None,
) -> Dict[str, Any]:
    """Build the in-thread reply posted after an SMS went out."""
    text = f":white_check_mark: SMS delivered to {phone_number}\nTwilio MessageSid: {message_sid}"
    return {
        "channel": channel,
        "thread_ts": thread_ts,
        "text": text,
        "blocks": [
            _section(text),
            _context(f"Sent at {_timestamp_label(now)}"),
        ],
    }
