"""Slack Events API payload models."""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict

URL_VERIFICATION = "url_verification"
EVENT_CALLBACK = "event_callback"

# Message subtypes that never carry a new human reply
IGNORED_SUBTYPES = {"bot_message", "message_changed", "message_deleted"}


class ChatEvent(BaseModel):
    """The inner ``event`` object of an event_callback."""

    model_config = ConfigDict(extra="ignore")

    type: Optional[str] = None
    subtype: Optional[str] = None
    channel: Optional[str] = None
    user: Optional[str] = None
    bot_id: Optional[str] = None
    text: Optional[str] = None
    ts: Optional[str] = None
    thread_ts: Optional[str] = None

    @property
    def is_ignorable(self) -> bool:
        """Bot posts, edits, deletions and empty messages are never relayed."""
        return self.bot_id is not None or self.subtype in IGNORED_SUBTYPES or not self.text

    @property
    def thread_anchor(self) -> Optional[str]:
        """Timestamp of the thread root: thread_ts for replies, ts otherwise."""
        return self.thread_ts or self.ts


class SlackEnvelope(BaseModel):
    """Top-level body of a Slack Events API request."""

    model_config = ConfigDict(extra="ignore")

    type: str = ""
    challenge: Any = None
    event: Optional[ChatEvent] = None
