"""Twilio webhook payload models."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class InboundSmsEvent(BaseModel):
    """An SMS delivered to the relay's Twilio number."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    from_number: str = Field(alias="From", min_length=1)
    body: str = Field(alias="Body", min_length=1)
    message_sid: str = Field(alias="MessageSid", min_length=1)
    num_media: int = Field(default=0, alias="NumMedia", ge=0)

    @field_validator("num_media", mode="before")
    @classmethod
    def _coerce_num_media(cls, v: Any) -> int:
        # Twilio sends a string; anything unparseable counts as no media
        try:
            return max(int(v), 0)
        except (TypeError, ValueError):
            return 0
