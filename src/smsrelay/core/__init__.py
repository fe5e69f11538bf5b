"""
Shared infrastructure for the relay adapters.

Exports:
- Settings / load_settings: startup configuration
- AdapterLogger / get_adapter_logger: JSONL operational logs
- Exception hierarchy rooted at RelayError
"""

from .config import Settings, load_settings
from .exceptions import (
    RelayError,
    ConfigurationError,
    AuthenticationError,
    PayloadValidationError,
    UpstreamApiError,
    ThreadResolutionError,
)
from .logging import AdapterLogger, get_adapter_logger

__all__ = [
    "Settings",
    "load_settings",
    "RelayError",
    "ConfigurationError",
    "AuthenticationError",
    "PayloadValidationError",
    "UpstreamApiError",
    "ThreadResolutionError",
    "AdapterLogger",
    "get_adapter_logger",
]
