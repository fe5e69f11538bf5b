"""Twilio request signature validation."""

import logging
from typing import Any, Mapping, Union

from twilio.request_validator import RequestValidator, compare

from ...core.config import Settings

logger = logging.getLogger(__name__)


class TwilioSignatureValidator:
    """Validates Twilio webhook signatures."""

    def __init__(self, settings: Settings):
        """Initialize validator with Twilio auth token."""
        self.settings = settings
        self.validator = RequestValidator(settings.twilio_auth_token)

    def validate_request(
        self,
        url: str,
        params: Union[Mapping[str, Any], str],
        signature: str
    ) -> bool:
        """
        Validate Twilio webhook request signature.

        Args:
            url: The full URL that Twilio called (including https://)
            params: POST form fields, or the raw body when the request
                was not form-encoded
            signature: X-Twilio-Signature header value

        Returns:
            True if signature is valid, False otherwise
        """
        if not signature:
            logger.warning("Missing X-Twilio-Signature header")
            return False

        try:
            if isinstance(params, str):
                # Raw bodies are appended to the URL instead of sorted pairs
                expected = self.validator.compute_signature(url + params, {})
                is_valid = compare(expected, signature)
            else:
                form_data = {}
                for key, value in params.items():
                    if isinstance(value, list) and len(value) == 1:
                        form_data[key] = value[0]
                    elif isinstance(value, str):
                        form_data[key] = value
                    else:
                        # Skip complex values that Twilio wouldn't send
                        continue
                is_valid = self.validator.validate(url, form_data, signature)

            if not is_valid:
                logger.warning(
                    "Twilio signature validation failed for URL: %s",
                    url.split('?')[0]
                )

            return is_valid

        except Exception as e:
            logger.error("Error during signature validation: %s", str(e))
            return False
