"""FastAPI application hosting both relay webhooks."""

import logging
import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from slack_sdk.signature import Clock
from slack_sdk.web.async_client import AsyncWebClient
from twilio.rest import Client as TwilioClient

from . import __version__
from .adapters.slack import OutboundRelayHandler
from .adapters.sms import InboundSmsHandler
from .core.config import Settings, resolve_settings
from .core.logging import get_adapter_logger

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "SMSRELAY_CONFIG"
DEFAULT_CONFIG_PATH = "relay_config.yaml"

# Routed for every method so non-POST requests get the JSON 405 body
WEBHOOK_METHODS = ["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE"]


class RelayApp:
    """Wires settings, API clients and both webhook handlers into one app."""

    def __init__(
        self,
        settings: Settings,
        slack_client: Optional[AsyncWebClient] = None,
        twilio_client: Optional[TwilioClient] = None,
        clock: Optional[Clock] = None,
    ):
        self.settings = settings
        self.slack_client = slack_client or AsyncWebClient(token=settings.slack_bot_token)
        self.twilio_client = twilio_client or TwilioClient(
            settings.twilio_account_sid,
            settings.twilio_auth_token
        )

        self.inbound = InboundSmsHandler(
            settings,
            self.slack_client,
            get_adapter_logger("sms", settings.log_dir),
        )
        self.outbound = OutboundRelayHandler(
            settings,
            self.slack_client,
            self.twilio_client,
            get_adapter_logger("slack", settings.log_dir),
            clock=clock,
        )

        self.app = FastAPI(
            title="SMS Relay",
            description="Slack thread <-> Twilio SMS relay",
            version=__version__
        )
        self._register_routes()

    def _register_routes(self):
        """Register FastAPI routes."""

        @self.app.get("/health")
        async def health_check():
            """Health check endpoint."""
            return {"status": "healthy", "service": "smsrelay"}

        @self.app.api_route(self.settings.inbound_path, methods=WEBHOOK_METHODS)
        async def twilio_to_slack(request: Request):
            """Twilio messaging webhook."""
            return await self.inbound.handle(request)

        @self.app.api_route(self.settings.outbound_path, methods=WEBHOOK_METHODS)
        async def slack_to_twilio(request: Request):
            """Slack Events API webhook."""
            return await self.outbound.handle(request)


def create_app(
    settings: Settings,
    *,
    slack_client: Optional[AsyncWebClient] = None,
    twilio_client: Optional[TwilioClient] = None,
    clock: Optional[Clock] = None,
) -> FastAPI:
    """Factory function to create the FastAPI app."""
    relay = RelayApp(settings, slack_client=slack_client, twilio_client=twilio_client, clock=clock)
    logger.info(
        "SMS relay ready: inbound %s, outbound %s, channel %s",
        settings.inbound_url,
        settings.outbound_path,
        settings.slack_channel_id,
    )
    return relay.app


def app_from_config() -> FastAPI:
    """Factory for uvicorn's reloader, which needs an import string.

    Reads the config path the CLI stored in SMSRELAY_CONFIG.
    """
    load_dotenv()
    config = Path(os.environ.get(CONFIG_ENV_VAR, DEFAULT_CONFIG_PATH))
    return create_app(resolve_settings(config))
