"""
Twilio SMS adapter.

Receives Twilio messaging webhooks, validates their signatures and
forwards each SMS into the configured Slack channel.
"""

from .inbound import InboundSmsHandler
from .models import InboundSmsEvent
from .validator import TwilioSignatureValidator

__all__ = ["InboundSmsHandler", "InboundSmsEvent", "TwilioSignatureValidator"]
