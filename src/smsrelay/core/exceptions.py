#%% Custom Exceptions
"""
Custom exception classes for the SMS relay.

Each webhook handler maps these onto its own response contract: the
Twilio side always acknowledges, the Slack side surfaces failures.
"""


class RelayError(Exception):
    """Base exception class for all relay errors."""
    pass


class ConfigurationError(RelayError):
    """Raised when configuration is invalid or missing."""
    pass


class AuthenticationError(RelayError):
    """Raised when a webhook signature is missing, invalid or stale."""
    pass


class PayloadValidationError(RelayError):
    """Raised when a webhook payload lacks required fields."""
    pass


class UpstreamApiError(RelayError):
    """Raised when the Slack or Twilio API reports a failure."""
    pass


class ThreadResolutionError(RelayError):
    """Raised when a thread cannot be traced back to a phone number."""
    pass
