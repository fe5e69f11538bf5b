"""
Slack adapter.

Verifies Slack Events API requests and relays thread replies to the
phone number recorded on the thread's root message.
"""

from .outbound import OutboundRelayHandler
from .thread_resolver import ThreadOrigin, ThreadResolver
from .verifier import SlackSignatureVerifier

__all__ = ["OutboundRelayHandler", "ThreadOrigin", "ThreadResolver", "SlackSignatureVerifier"]
