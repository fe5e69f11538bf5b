"""Configuration management for the SMS relay (YAML or environment based)."""

import os
import re
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml
from pydantic import BaseModel, ValidationError, field_validator

from .exceptions import ConfigurationError

DEFAULT_PUBLIC_BASE_URL = "http://localhost:3000"

# Environment names used by deployments that carry no YAML file
ENV_FIELDS = {
    "slack_bot_token": "SLACK_BOT_TOKEN",
    "slack_channel_id": "SLACK_CHANNEL_ID",
    "slack_signing_secret": "SLACK_SIGNING_SECRET",
    "twilio_account_sid": "TWILIO_ACCOUNT_SID",
    "twilio_auth_token": "TWILIO_AUTH_TOKEN",
    "twilio_from_number": "TWILIO_PHONE_NUMBER",
}


class Settings(BaseModel):
    """Relay settings, built once at startup and passed to both handlers."""

    # Slack
    slack_bot_token: str
    slack_channel_id: str
    slack_signing_secret: str

    # Twilio
    twilio_account_sid: str
    twilio_auth_token: str
    twilio_from_number: str

    # Public URL Twilio signs requests against
    public_base_url: str = DEFAULT_PUBLIC_BASE_URL
    inbound_path: str = "/api/twilio-to-slack"
    outbound_path: str = "/api/slack-to-twilio"

    # Recover the phone number from "SMS from ..." text when metadata is missing
    thread_text_fallback: bool = True

    # Logging
    log_dir: Path = Path("./logs")
    log_level: str = "INFO"

    @field_validator(
        "slack_bot_token",
        "slack_channel_id",
        "slack_signing_secret",
        "twilio_account_sid",
        "twilio_auth_token",
        "twilio_from_number",
    )
    @classmethod
    def _require_resolved(cls, v: str, info) -> str:
        v = (v or "").strip()
        if not v:
            raise ValueError(f"{info.field_name} is required")
        if v.startswith("${"):
            raise ValueError(f"{info.field_name} references an unset environment variable: {v}")
        return v

    @field_validator("public_base_url")
    @classmethod
    def _strip_slash(cls, v: str) -> str:
        return v.strip().rstrip("/")

    @field_validator("inbound_path", "outbound_path")
    @classmethod
    def _leading_slash(cls, v: str) -> str:
        return v if v.startswith("/") else f"/{v}"

    @field_validator("log_dir", mode="before")
    @classmethod
    def _coerce_path(cls, v):
        return Path(v) if not isinstance(v, Path) else v

    @property
    def inbound_url(self) -> str:
        """Full URL of the Twilio webhook, as used for signature validation."""
        return f"{self.public_base_url}{self.inbound_path}"

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        """Build settings from the conventional environment variable names."""
        env = os.environ if environ is None else environ
        data: Dict[str, Any] = {field: env.get(name, "") for field, name in ENV_FIELDS.items()}

        if env.get("PUBLIC_BASE_URL"):
            data["public_base_url"] = env["PUBLIC_BASE_URL"]
        elif env.get("VERCEL_URL"):
            data["public_base_url"] = f"https://{env['VERCEL_URL']}"

        if env.get("RELAY_LOG_DIR"):
            data["log_dir"] = env["RELAY_LOG_DIR"]

        try:
            return cls(**data)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid environment configuration: {e}") from e


def _interpolate_env_vars(text: str) -> str:
    """Replace ${VAR} patterns with environment variable values."""
    def replace_var(match):
        return os.environ.get(match.group(1), match.group(0))  # Keep original if not found

    return re.sub(r'\$\{([^}]+)\}', replace_var, os.path.expanduser(text))


def _interpolate_config(value: Any) -> Any:
    """Recursively interpolate environment variables in a config structure."""
    if isinstance(value, dict):
        return {k: _interpolate_config(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_interpolate_config(v) for v in value]
    if isinstance(value, str):
        return _interpolate_env_vars(value)
    return value


def load_settings(config_path: Path) -> Settings:
    """Load Settings from a YAML file."""
    if not config_path:
        raise ConfigurationError("Config path is required")
    p = Path(config_path)
    if not p.exists():
        raise ConfigurationError(f"Config file not found: {p}")
    try:
        with open(p, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in config file {p}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigurationError(f"Config file {p} must contain a mapping")

    # Allow top-level 'relay' key or flat structure
    if isinstance(data.get("relay"), dict):
        data = data["relay"]

    try:
        return Settings(**_interpolate_config(data))
    except ValidationError as e:
        raise ConfigurationError(f"Failed to load config from {p}: {e}") from e


def resolve_settings(config_path: Path) -> Settings:
    """Load settings from YAML, or from the environment when the file is absent."""
    if Path(config_path).exists():
        return load_settings(config_path)
    return Settings.from_env()
