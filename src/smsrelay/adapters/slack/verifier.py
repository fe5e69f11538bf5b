"""Slack request signature verification."""

import logging
from typing import Mapping, Optional

from slack_sdk.signature import Clock, SignatureVerifier

from ...core.config import Settings
from ...core.exceptions import AuthenticationError

logger = logging.getLogger(__name__)


class SlackSignatureVerifier:
    """
    Verifies Slack's v0 request signatures.

    The signature is an HMAC-SHA256 over ``v0:{timestamp}:{raw body}``.
    Requests whose timestamp is more than five minutes from the clock are
    rejected as replays.
    """

    def __init__(self, settings: Settings, clock: Optional[Clock] = None):
        self.verifier = SignatureVerifier(settings.slack_signing_secret, clock=clock or Clock())

    def verify(self, body: bytes, headers: Mapping[str, str]) -> None:
        """Raise AuthenticationError unless the request is signed and fresh."""
        timestamp = headers.get("x-slack-request-timestamp")
        signature = headers.get("x-slack-signature")

        if not signature or not timestamp:
            logger.warning("Missing Slack signature or timestamp")
            raise AuthenticationError("Missing Slack signature or timestamp")

        try:
            valid = self.verifier.is_valid(body=body, timestamp=timestamp, signature=signature)
        except ValueError:
            # Non-numeric timestamp header
            valid = False

        if not valid:
            logger.warning("Invalid or stale Slack signature (timestamp %s)", timestamp)
            raise AuthenticationError("Invalid Slack signature")
