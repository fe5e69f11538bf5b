"""Slack Events webhook: relays thread replies back out as SMS."""

import asyncio
import json
import logging
import traceback
from typing import Any, Dict, Optional

from fastapi import Request
from fastapi.responses import JSONResponse, Response
from pydantic import ValidationError
from slack_sdk.signature import Clock
from slack_sdk.web.async_client import AsyncWebClient
from twilio.rest import Client as TwilioClient

from ...core.config import Settings
from ...core.exceptions import AuthenticationError, PayloadValidationError
from ...core.logging import AdapterLogger
from .blocks import build_confirmation_message
from .models import EVENT_CALLBACK, URL_VERIFICATION, ChatEvent, SlackEnvelope
from .thread_resolver import ThreadResolver
from .verifier import SlackSignatureVerifier

logger = logging.getLogger(__name__)

CONFIRMATION_REACTION = "white_check_mark"


def _ok() -> Response:
    return JSONResponse({"ok": True})


class OutboundRelayHandler:
    """
    Handles Slack Events API requests.

    Unlike the Twilio side, failures while relaying are surfaced to Slack
    as HTTP 500 with the error message.
    """

    def __init__(
        self,
        settings: Settings,
        slack_client: AsyncWebClient,
        twilio_client: TwilioClient,
        event_logger: AdapterLogger,
        clock: Optional[Clock] = None,
    ):
        self.settings = settings
        self.slack_client = slack_client
        self.twilio_client = twilio_client
        self.verifier = SlackSignatureVerifier(settings, clock=clock)
        self.resolver = ThreadResolver(slack_client, text_fallback=settings.thread_text_fallback)
        self.logger = event_logger

    async def handle(self, request: Request) -> Response:
        """Process one Slack Events API request."""
        if request.method != "POST":
            return JSONResponse({"error": "Method not allowed"}, status_code=405)

        try:
            body = await request.body()
            try:
                data = self._decode_body(body)
            except PayloadValidationError as e:
                logger.error("Rejected Slack payload: %s", e)
                return JSONResponse({"error": str(e)}, status_code=400)

            # Handshake traffic is unsigned
            if data.get("type") == URL_VERIFICATION:
                logger.info("Slack URL verification challenge")
                return JSONResponse({"challenge": data.get("challenge")})

            try:
                self.verifier.verify(body, request.headers)
            except AuthenticationError:
                logger.warning("Invalid Slack signature")
                return JSONResponse({"error": "Unauthorized"}, status_code=403)

            try:
                envelope = self._parse_envelope(data)
            except PayloadValidationError as e:
                logger.error("Rejected Slack payload: %s", e)
                return JSONResponse({"error": str(e)}, status_code=400)

            if envelope.type != EVENT_CALLBACK:
                return _ok()

            if envelope.event is None:
                return JSONResponse({"error": "Missing event"}, status_code=400)

            await self.relay(envelope.event)
            return _ok()

        except Exception as e:
            logger.error("Error in slack-to-twilio: %s\nTraceback: %s", str(e), traceback.format_exc())
            await self.logger.log_operation(
                "processing_error",
                {"error_type": type(e).__name__, "error_message": str(e)},
                level="ERROR",
            )
            return JSONResponse({"error": str(e)}, status_code=500)

    def _decode_body(self, body: bytes) -> Dict[str, Any]:
        try:
            data = json.loads(body or b"{}")
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise PayloadValidationError("Invalid JSON body") from e
        if not isinstance(data, dict):
            raise PayloadValidationError("Invalid JSON body")
        return data

    def _parse_envelope(self, data: Dict[str, Any]) -> SlackEnvelope:
        try:
            return SlackEnvelope.model_validate(data)
        except ValidationError as e:
            raise PayloadValidationError(f"Invalid event payload: {e.error_count()} error(s)") from e

    async def relay(self, event: ChatEvent) -> None:
        """Send a thread reply to the phone number behind the thread."""
        if event.is_ignorable:
            return

        if event.channel != self.settings.slack_channel_id:
            return

        logger.info("Received Slack message in %s (ts %s)", event.channel, event.ts)
        await self.logger.log_event(
            "message_received",
            {
                "channel": event.channel,
                "user": event.user,
                "ts": event.ts,
                "thread_ts": event.thread_ts,
                "text_length": len(event.text),
            },
        )

        anchor = event.thread_anchor
        origin = await self.resolver.resolve(event.channel, anchor)
        if not origin.phone_number:
            logger.error("Could not find phone number in thread %s", anchor)
            await self.logger.log_event(
                "thread_unresolved",
                {"channel": event.channel, "thread_ts": anchor},
                level="WARNING",
            )
            return

        sid = await self._send_sms(origin.phone_number, event.text)
        logger.info("Sent SMS %s to %s", sid, origin.phone_number)
        await self.logger.log_operation(
            "sms_sent",
            {
                "to": origin.phone_number,
                "message_sid": sid,
                "in_reply_to": origin.message_sid,
                "thread_ts": anchor,
            },
        )

        await self.slack_client.reactions_add(
            channel=event.channel,
            name=CONFIRMATION_REACTION,
            timestamp=event.ts,
        )

        await self.slack_client.chat_postMessage(
            **build_confirmation_message(
                channel=event.channel,
                thread_ts=anchor,
                phone_number=origin.phone_number,
                message_sid=sid,
            )
        )

    async def _send_sms(self, to: str, body: str) -> str:
        """Send an SMS from the relay number and return its MessageSid."""
        # The Twilio REST client is synchronous
        loop = asyncio.get_event_loop()
        message = await loop.run_in_executor(
            None,
            lambda: self.twilio_client.messages.create(
                to=to,
                from_=self.settings.twilio_from_number,
                body=body,
            )
        )
        return message.sid
