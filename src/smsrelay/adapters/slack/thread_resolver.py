"""Trace a Slack thread back to the phone number that started it."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Any, Dict, Optional

from slack_sdk.web.async_client import AsyncWebClient

from ...core.exceptions import ThreadResolutionError

logger = logging.getLogger(__name__)

PHONE_TEXT_PATTERN = re.compile(r"SMS from ([+\d\s\-()]+)")


@dataclass(frozen=True)
class ThreadOrigin:
    """Phone number (and original Twilio MessageSid) behind a thread."""
    phone_number: Optional[str] = None
    message_sid: Optional[str] = None


class ThreadResolver:
    """
    Looks up the root message of a thread and extracts its sender.

    Correlation metadata written by the inbound handler wins; otherwise the
    number is parsed out of the "SMS from ..." text when text fallback is
    enabled. Failures are logged and returned as an empty ThreadOrigin.
    """

    def __init__(self, client: AsyncWebClient, *, text_fallback: bool = True):
        self.client = client
        self.text_fallback = text_fallback

    async def resolve(self, channel: str, thread_ts: str) -> ThreadOrigin:
        try:
            root = await self._fetch_root_message(channel, thread_ts)
            return self._origin_from_message(root)
        except Exception as e:
            logger.error("Error getting thread info for %s/%s: %s", channel, thread_ts, e)
            return ThreadOrigin()

    async def _fetch_root_message(self, channel: str, thread_ts: str) -> Dict[str, Any]:
        response = await self.client.conversations_replies(
            channel=channel,
            ts=thread_ts,
            limit=1,
            include_all_metadata=True,
        )
        messages = response.get("messages") or []
        if not response.get("ok") or not messages:
            raise ThreadResolutionError("Could not fetch thread")
        return messages[0]

    def _origin_from_message(self, message: Dict[str, Any]) -> ThreadOrigin:
        payload = (message.get("metadata") or {}).get("event_payload") or {}
        if payload.get("phone_from"):
            return ThreadOrigin(
                phone_number=payload["phone_from"],
                message_sid=payload.get("twilio_message_sid"),
            )

        if self.text_fallback:
            match = PHONE_TEXT_PATTERN.search(message.get("text") or "")
            if match and match.group(1).strip():
                return ThreadOrigin(phone_number=match.group(1).strip())

        raise ThreadResolutionError("No phone number found")
