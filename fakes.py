"""
In-memory stand-in for the HTTP retriever, so tests never touch the network.
"""

import logging
import sys
from pathlib import Path

# Add the src directory to the path
src_path = Path(__file__).parent / "src"
sys.path.insert(0, str(src_path))

from sfd.core.retriever import FetchError


class FakeRetriever:
    """Serves bodies from a URL -> bytes/str mapping; anything else is a 404."""

    def __init__(self, resources=None):
        self.resources = dict(resources or {})
        self.requests = []
        self.closed = False

    def _body(self, url):
        self.requests.append(url)
        if url not in self.resources:
            raise FetchError(url, "HTTP 404")
        return self.resources[url]

    def fetch_page(self, url):
        body = self._body(url)
        html = body.decode('utf-8') if isinstance(body, bytes) else body
        return {'html': html, 'url': url, 'size': len(html.encode('utf-8')), 'encoding': 'utf-8'}

    def fetch_bytes(self, url):
        body = self._body(url)
        return body.encode('utf-8') if isinstance(body, str) else body

    def fetch_text(self, url):
        body = self._body(url)
        return body.decode('utf-8') if isinstance(body, bytes) else body

    def close(self):
        self.closed = True


def reset_logging():
    """Drop the handlers installed by initialize_logging()."""
    logger = logging.getLogger('sfd')
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.propagate = True
