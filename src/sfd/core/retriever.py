"""
HTTP Retrieval Module

This module downloads the page being saved and every resource it references,
over a single requests session.
"""

import requests
import time
from typing import Dict, Any
import logging

from bs4 import UnicodeDammit


DEFAULT_USER_AGENT = 'sfd/1.0 (Single-File Downloader)'

# Status codes that will not change on a second attempt
PERMANENT_STATUS_CODES = (403, 404, 410)


class FetchError(Exception):
    """Raised when a URL cannot be downloaded."""

    def __init__(self, url: str, reason: str):
        super().__init__(reason)
        self.url = url
        self.reason = reason


class Retriever:
    """
    Downloads pages and resources over HTTP(S).

    Any non-2xx response, timeout or connection problem is reported as a
    FetchError. Retries are off by default.
    """

    def __init__(self, timeout: float = 30.0, max_retries: int = 0,
                 retry_delay: float = 1.0, user_agent: str = DEFAULT_USER_AGENT):
        """
        Initialize the retriever.

        Args:
            timeout: Per-request timeout in seconds
            max_retries: Extra attempts for transient failures (timeouts,
                connection errors, 429 and 5xx responses)
            retry_delay: Base delay for exponential backoff between attempts
            user_agent: User-Agent header sent with every request
        """
        self.timeout = timeout
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self.logger = logging.getLogger(__name__)

        self.session = requests.Session()
        self.session.headers.update({
            'User-Agent': user_agent,
            'Accept': '*/*',
            'Accept-Encoding': 'gzip, deflate',
        })

    def fetch_page(self, url: str) -> Dict[str, Any]:
        """
        Download the page to be saved.

        Args:
            url: Absolute page URL

        Returns:
            Dictionary containing:
            - 'html': The decoded markup
            - 'url': The URL requested
            - 'size': Size of the raw body in bytes
            - 'encoding': Character encoding used to decode the body

        Raises:
            FetchError: If the page cannot be downloaded
        """
        self.logger.debug(f"Retrieving page: {url}")
        response = self._get(url)

        # Let the markup itself (BOM, <meta charset>) decide when the
        # server sends no charset
        declared = requests.utils.get_encoding_from_headers(response.headers)
        known = [declared] if declared and 'charset' in response.headers.get('content-type', '').lower() else []
        dammit = UnicodeDammit(response.content, known_definite_encodings=known, is_html=True)
        if dammit.unicode_markup is None:
            raise FetchError(url, "could not decode the response body")

        result = {
            'html': dammit.unicode_markup,
            'url': url,
            'size': len(response.content),
            'encoding': dammit.original_encoding or 'utf-8',
        }
        self.logger.debug(f"Retrieved {result['size']} bytes ({result['encoding']}) for {url}")
        return result

    def fetch_bytes(self, url: str) -> bytes:
        """Download a binary resource and return its body."""
        return self._get(url).content

    def fetch_text(self, url: str) -> str:
        """Download a text resource (stylesheet, script) and return its decoded body."""
        response = self._get(url)
        if not response.encoding or 'charset' not in response.headers.get('content-type', '').lower():
            response.encoding = response.apparent_encoding or 'utf-8'
        return response.text

    def _get(self, url: str) -> requests.Response:
        for attempt in range(self.max_retries + 1):
            if attempt > 0:
                delay = self.retry_delay * (2 ** (attempt - 1))  # Exponential backoff
                self.logger.info(f"Retry {attempt} for {url} after {delay:.1f}s delay")
                time.sleep(delay)

            try:
                response = self.session.get(url, timeout=self.timeout)
                response.raise_for_status()
                return response

            except requests.exceptions.HTTPError as e:
                status_code = e.response.status_code if e.response is not None else None
                self.logger.debug(f"HTTP error {status_code} for {url} (attempt {attempt + 1})")
                retryable = status_code == 429 or (status_code is not None and 500 <= status_code < 600)
                if status_code in PERMANENT_STATUS_CODES or not retryable or attempt >= self.max_retries:
                    raise FetchError(url, f"HTTP {status_code}") from e

            except (requests.exceptions.Timeout, requests.exceptions.ConnectionError) as e:
                self.logger.debug(f"Transient error for {url} (attempt {attempt + 1}): {e}")
                if attempt >= self.max_retries:
                    raise FetchError(url, str(e)) from e

            except requests.exceptions.RequestException as e:
                raise FetchError(url, str(e)) from e

            except ValueError as e:
                # URL parsing inside requests/urllib3, e.g. an unbalanced '['
                raise FetchError(url, f"invalid URL: {e}") from e

        # Unreachable: the last attempt either returns or raises
        raise FetchError(url, "no attempts made")

    def close(self):
        """Close the HTTP session."""
        self.session.close()
        self.logger.debug("Retriever session closed")
