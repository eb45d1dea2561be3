"""
URL Validation Utilities

This module validates the page URL given on the command line before any
download is attempted.
"""

import re
from urllib.parse import urlparse
from typing import Tuple, Optional
import logging


class URLValidator:
    """
    Validates page URLs for download.

    Unlike a normalizer this never rewrites the path: the page path is the
    base for document-relative references and part of the output filename.
    """

    def __init__(self):
        self.logger = logging.getLogger(__name__)

        self.domain_pattern = re.compile(
            r'^[a-zA-Z0-9]([a-zA-Z0-9\-]{0,61}[a-zA-Z0-9])?(\.[a-zA-Z0-9]([a-zA-Z0-9\-]{0,61}[a-zA-Z0-9])?)*$'
        )

    def validate(self, url: str) -> Tuple[bool, str, str]:
        """
        Validate a page URL.

        Args:
            url: The URL to validate

        Returns:
            Tuple of (is_valid, url, error_message). A URL given without a
            scheme is returned with 'https://' prepended.
        """
        if not url or not isinstance(url, str):
            return False, "", "URL cannot be empty"

        url = url.strip()

        try:
            parsed = urlparse(url)

            if parsed.scheme in ['http', 'https']:
                pass
            elif parsed.scheme and '.' not in parsed.scheme and not parsed.path[:1].isdigit():
                # 'example.com' and 'localhost:8080' also parse with a scheme
                return False, "", "URL must use HTTP or HTTPS protocol"
            else:
                url = 'https://' + url
                parsed = urlparse(url)

            if not parsed.netloc:
                return False, "", "URL must have a valid domain"

            host = parsed.hostname or ''
            if not self.domain_pattern.match(host):
                return False, "", "Invalid domain format"

            _ = parsed.port  # ValueError on a malformed port

            return True, url, ""

        except ValueError as e:
            return False, "", f"URL validation error: {str(e)}"


# Global validator instance
_validator_instance: Optional[URLValidator] = None


def get_validator() -> URLValidator:
    """
    Get the global URL validator instance.

    Returns:
        URLValidator instance
    """
    global _validator_instance
    if _validator_instance is None:
        _validator_instance = URLValidator()
    return _validator_instance


def validate_url(url: str) -> Tuple[bool, str, str]:
    """
    Validate a page URL.

    Args:
        url: URL to validate

    Returns:
        Tuple of (is_valid, url, error_message)
    """
    return get_validator().validate(url)
