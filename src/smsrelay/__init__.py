"""
smsrelay: Slack thread <-> SMS relay.

Two stateless webhook handlers: inbound Twilio SMS becomes a Slack post,
and a reply in that Slack thread goes back out as an SMS.
"""

__version__ = "0.1.0"

from .core import Settings, load_settings
from .server import create_app

__all__ = [
    "Settings",
    "create_app",
    "load_settings",
]
