"""
Reference resolution.

Turns a resource reference found in page markup into an absolute URL, using
the page's own location as the base. Resolution is plain string composition:
no dot-segment normalization and no query-string handling.
"""

from __future__ import annotations

from dataclasses import dataclass
from urllib.parse import urlparse


ABSOLUTE_PREFIXES = ("http:", "https:")


@dataclass(frozen=True)
class SourceLocation:
    scheme: str
    host: str   # network location, port included
    path: str   # may be empty

    @classmethod
    def from_url(cls, url: str) -> "SourceLocation":
        """
        Build a SourceLocation from an absolute page URL.

        Raises:
            ValueError: if the URL is not http(s) or has no host
        """
        parsed = urlparse(url)
        if parsed.scheme not in ("http", "https"):
            raise ValueError(f"unsupported scheme in '{url}'")
        if not parsed.netloc:
            raise ValueError(f"no host in '{url}'")
        return cls(scheme=parsed.scheme, host=parsed.netloc, path=parsed.path)

    @property
    def origin(self) -> str:
        return f"{self.scheme}://{self.host}"


def is_absolute(reference: str) -> bool:
    return reference.startswith(ABSOLUTE_PREFIXES)


def is_host_relative(reference: str) -> bool:
    """A reference starting with '/' is relative to the host, not the document."""
    return reference.startswith("/")


def resolve_reference(source: SourceLocation, reference: str) -> str:
    """
    Map a raw reference to an absolute fetchable URL.

    Args:
        source: Location of the page the reference was found in
        reference: Raw src/href value

    Returns:
        The reference itself when already absolute, otherwise the reference
        appended to the page origin (host-relative) or to origin + page path
        (document-relative)
    """
    if is_absolute(reference):
        return reference
    if is_host_relative(reference):
        return source.origin + reference
    return source.origin + source.path + reference
