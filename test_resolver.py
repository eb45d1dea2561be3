#!/usr/bin/env python3
"""
Tests for reference resolution.
"""

import sys
from pathlib import Path

# Add the src directory to the path
src_path = Path(__file__).parent / "src"
sys.path.insert(0, str(src_path))

from sfd.core.resolver import SourceLocation, is_host_relative, resolve_reference


SOURCE = SourceLocation.from_url("https://example.com:8443/docs/guide/")

DOCUMENT_RELATIVE = ["a.png", "img/b.jpg", "../up.css", "./here.js", "x.png?v=1#frag", "data/file"]
HOST_RELATIVE = ["/a.png", "/static/app.js", "/", "/q?x=1", "//cdn.example.net/lib.js"]
ABSOLUTE = ["http://other.org/a.png", "https://other.org/b.css", "http:weird", "https:"]


def test_source_location_from_url():
    assert SOURCE.scheme == "https"
    assert SOURCE.host == "example.com:8443"
    assert SOURCE.path == "/docs/guide/"
    assert SOURCE.origin == "https://example.com:8443"

    bare = SourceLocation.from_url("http://example.com")
    assert bare.path == ""


def test_source_location_rejects_bad_urls():
    for bad in ["ftp://example.com/", "example.com/page", "http:///path", ""]:
        try:
            SourceLocation.from_url(bad)
        except ValueError:
            continue
        raise AssertionError(f"accepted {bad!r}")


def test_document_relative_references():
    for ref in DOCUMENT_RELATIVE:
        assert not is_host_relative(ref)
        assert resolve_reference(SOURCE, ref) == "https://example.com:8443/docs/guide/" + ref


def test_host_relative_references():
    for ref in HOST_RELATIVE:
        assert is_host_relative(ref)
        assert resolve_reference(SOURCE, ref) == "https://example.com:8443" + ref


def test_absolute_references_unchanged():
    for ref in ABSOLUTE:
        assert resolve_reference(SOURCE, ref) == ref


def test_document_relative_is_plain_concatenation():
    page = SourceLocation.from_url("http://example.com/docs/index.html?lang=en")
    # The query string is not part of the path; no directory is stripped
    assert resolve_reference(page, "a.png") == "http://example.com/docs/index.htmla.png"
    assert resolve_reference(page, "../b.png") == "http://example.com/docs/index.html../b.png"


if __name__ == "__main__":
    test_source_location_from_url()
    test_source_location_rejects_bad_urls()
    test_document_relative_references()
    test_host_relative_references()
    test_absolute_references_unchanged()
    test_document_relative_is_plain_concatenation()
    print("✓ resolver tests passed")
