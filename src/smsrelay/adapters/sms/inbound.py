"""Inbound Twilio SMS webhook: forwards each message into Slack."""

import json
import logging
import traceback
from typing import Any, Dict, Tuple, Union

from fastapi import Request
from fastapi.responses import JSONResponse, PlainTextResponse, Response
from pydantic import ValidationError
from slack_sdk.errors import SlackApiError
from slack_sdk.web.async_client import AsyncWebClient
from twilio.twiml.messaging_response import MessagingResponse

from ...core.config import Settings
from ...core.exceptions import AuthenticationError, PayloadValidationError, UpstreamApiError
from ...core.logging import AdapterLogger
from ..slack.blocks import build_sms_message
from .models import InboundSmsEvent
from .validator import TwilioSignatureValidator

logger = logging.getLogger(__name__)

FORWARDED_ACK = "SMS received and forwarded to Slack"
ERROR_ACK = "Error processing your message. Please try again."


def build_ack(text: str) -> str:
    """Render the TwiML document Twilio expects as a webhook answer."""
    twiml = MessagingResponse()
    twiml.message(text)
    return str(twiml)


class InboundSmsHandler:
    """
    Handles Twilio messaging webhooks.

    Once a request is authenticated and well-formed, it is always answered
    with HTTP 200 TwiML, even when forwarding to Slack fails. Twilio retries
    and raises alerts on any other status, so failures are reported to the
    sender as a "try again" message instead.
    """

    def __init__(
        self,
        settings: Settings,
        slack_client: AsyncWebClient,
        event_logger: AdapterLogger,
    ):
        self.settings = settings
        self.slack_client = slack_client
        self.validator = TwilioSignatureValidator(settings)
        self.logger = event_logger

    async def handle(self, request: Request) -> Response:
        """Process one Twilio webhook request."""
        if request.method != "POST":
            return JSONResponse({"error": "Method not allowed"}, status_code=405)

        try:
            try:
                sms = await self._authenticate(request)
            except AuthenticationError:
                logger.warning("Invalid Twilio signature")
                return PlainTextResponse("Unauthorized", status_code=403)
            except PayloadValidationError as e:
                logger.error("Missing required Twilio fields: %s", e)
                return PlainTextResponse("Missing required fields", status_code=400)

            logger.info("Received SMS %s from %s", sms.message_sid, sms.from_number)
            await self.logger.log_event(
                "webhook_received",
                {
                    "message_sid": sms.message_sid,
                    "from": sms.from_number,
                    "body_length": len(sms.body),
                    "num_media": sms.num_media,
                },
            )

            ts = await self.forward_to_slack(sms)
            logger.info("Posted SMS %s to Slack: %s", sms.message_sid, ts)
            return self._ack(FORWARDED_ACK)

        except Exception as e:
            logger.error("Error in twilio-to-slack: %s\nTraceback: %s", str(e), traceback.format_exc())
            await self.logger.log_operation(
                "processing_error",
                {"error_type": type(e).__name__, "error_message": str(e)},
                level="ERROR",
            )
            return self._ack(ERROR_ACK)

    async def _authenticate(self, request: Request) -> InboundSmsEvent:
        """Validate the signature, then map the payload onto InboundSmsEvent."""
        signed_params, fields = await self._read_payload(request)
        signature = request.headers.get("x-twilio-signature", "")

        if not self.validator.validate_request(self.settings.inbound_url, signed_params, signature):
            raise AuthenticationError("Invalid Twilio signature")

        try:
            return InboundSmsEvent.model_validate(fields)
        except ValidationError as e:
            missing = sorted({str(err["loc"][0]) for err in e.errors() if err.get("loc")})
            raise PayloadValidationError(", ".join(missing) or str(e)) from e

    async def _read_payload(self, request: Request) -> Tuple[Union[Dict[str, str], str], Dict[str, Any]]:
        """
        Read the request body.

        Returns the value Twilio signed (form fields, or the raw body for
        non-form requests) together with the parsed payload fields.
        """
        content_type = request.headers.get("content-type", "")
        if content_type.startswith("application/x-www-form-urlencoded"):
            form = await request.form()
            params = {key: value for key, value in form.items() if isinstance(value, str)}
            return params, params

        raw = (await request.body()).decode("utf-8", errors="replace")
        try:
            fields = json.loads(raw) if raw else {}
        except json.JSONDecodeError:
            fields = {}
        return raw, fields if isinstance(fields, dict) else {}

    async def forward_to_slack(self, sms: InboundSmsEvent) -> str:
        """Post the SMS into the relay channel and return the Slack message ts."""
        message = build_sms_message(
            channel=self.settings.slack_channel_id,
            phone_from=sms.from_number,
            body=sms.body,
            message_sid=sms.message_sid,
            num_media=sms.num_media,
        )

        try:
            response = await self.slack_client.chat_postMessage(**message)
        except SlackApiError as e:
            raise UpstreamApiError(f"Slack API error: {e.response.get('error')}") from e

        if not response.get("ok"):
            raise UpstreamApiError(f"Slack API error: {response.get('error')}")

        await self.logger.log_operation(
            "slack_post",
            {
                "message_sid": sms.message_sid,
                "channel": self.settings.slack_channel_id,
                "ts": response.get("ts"),
            },
        )
        return response.get("ts")

    def _ack(self, text: str) -> Response:
        return Response(content=build_ack(text), status_code=200, media_type="application/xml")
