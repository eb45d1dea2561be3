#!/usr/bin/env python3
"""
Focused tests for the image, stylesheet and script passes without network.
"""

import base64
import sys
from pathlib import Path

# Add the src directory to the path
src_path = Path(__file__).parent / "src"
sys.path.insert(0, str(src_path))

from sfd.core.inliner import (
    ResourceInliner,
    find_stylesheet_references,
    image_content_type,
    DEFAULT_IMAGE_TYPES,
)
from sfd.core.resolver import SourceLocation

from fakes import FakeRetriever


BASE = "http://example.com/docs/"
SOURCE = SourceLocation.from_url(BASE)

PNG = b"\x89PNG\r\n\x1a\nfake-png"
JPG = b"\xff\xd8\xff\xe0fake-jpeg"


def b64(data):
    return base64.b64encode(data).decode('ascii')


def make_inliner(resources, **kwargs):
    retriever = FakeRetriever(resources)
    return ResourceInliner(SOURCE, retriever, **kwargs), retriever


def test_image_inlined_as_data_uri():
    inliner, _ = make_inliner({BASE + "a.png": PNG})
    html = '<p>before</p><img src="a.png"><p>after</p>'
    out = inliner.inline_images(html)
    assert out == f'<p>before</p><img src="data:image/png;base64,{b64(PNG)}" /><p>after</p>'
    assert inliner.stats['images'] == 1


def test_image_keeps_surrounding_attributes():
    inliner, _ = make_inliner({"http://example.com/img/logo.jpg": JPG})
    html = '<img alt="Logo" class="brand" src="/img/logo.jpg" width="10" height="20">'
    out = inliner.inline_images(html)
    assert out == (f'<img alt="Logo" class="brand" src="data:image/jpeg;base64,{b64(JPG)}" '
                   f'width="10" height="20" />')


def test_self_closing_image():
    inliner, _ = make_inliner({BASE + "anim.gif": b"GIF89a"})
    out = inliner.inline_images('<img src="anim.gif"/>')
    assert out == f'<img src="data:image/gif;base64,{b64(b"GIF89a")}" />'


def test_unknown_image_type_is_replaced_without_fetching():
    inliner, retriever = make_inliner({BASE + "a.bmp": b"BM"})
    out = inliner.inline_images('<div><img src="a.bmp" alt="x"></div>')
    assert out == '<div><em>[MISSING: http://example.com/docs/a.bmp]</em></div>'
    assert retriever.requests == []
    assert inliner.stats['skipped'] == 1


def test_failed_image_fetch_renders_placeholder():
    inliner, retriever = make_inliner({})
    out = inliner.inline_images('x<img src="https://cdn.example.org/gone.webp">y')
    assert out == 'x<em>[MISSING: https://cdn.example.org/gone.webp]</em>y'
    assert retriever.requests == ["https://cdn.example.org/gone.webp"]
    assert inliner.tracker.get_error_summary()['warnings_by_context'] == {'images': 1}


def test_data_uri_image_left_alone():
    inliner, retriever = make_inliner({})
    html = '<img src="data:image/png;base64,AAAA">'
    assert inliner.inline_images(html) == html
    assert retriever.requests == []


def test_image_type_table_is_extensible():
    types = dict(DEFAULT_IMAGE_TYPES)
    types['svg'] = 'image/svg+xml'
    inliner, _ = make_inliner({BASE + "icon.svg": b"<svg/>"}, image_types=types)
    out = inliner.inline_images('<img src="icon.svg">')
    assert out == f'<img src="data:image/svg+xml;base64,{b64(b"<svg/>")}" />'


def test_malformed_image_url_gets_placeholder():
    inliner, retriever = make_inliner({BASE + "s.css": "p{}"})
    html = ('<p>keep</p><img src="//[broken/a.png"><img src="http://[x/b.gif" alt="b">'
            '<img src="[c.bmp"><link rel="stylesheet" href="s.css">')
    out = inliner.inline_all(html)
    assert out == ('<p>keep</p><em>[MISSING: http://example.com//[broken/a.png]</em>'
                   '<em>[MISSING: http://[x/b.gif]</em>'
                   '<em>[MISSING: http://example.com/docs/[c.bmp]</em>'
                   "<style type='text/css'>p{}</style>")
    assert retriever.requests == ["http://example.com//[broken/a.png", "http://[x/b.gif", BASE + "s.css"]
    assert inliner.stats['skipped'] == 3


def test_image_type_ignores_query_and_case():
    assert image_content_type("photo.JPEG", DEFAULT_IMAGE_TYPES) == "image/jpeg"
    assert image_content_type("a.png?v=3", DEFAULT_IMAGE_TYPES) == "image/png"
    assert image_content_type("a.png.bmp", DEFAULT_IMAGE_TYPES) is None
    assert image_content_type("noext", DEFAULT_IMAGE_TYPES) is None


def test_image_matching_is_case_sensitive():
    inliner, retriever = make_inliner({BASE + "a.png": PNG})
    html = '<IMG SRC="a.png">'
    assert inliner.inline_images(html) == html
    assert retriever.requests == []


def test_stylesheet_either_attribute_order():
    html = ('<head>\n<link rel="stylesheet" href="site.css">\n'
            '<link href="/theme.css" type="text/css" rel="stylesheet" />\n</head>')
    refs = find_stylesheet_references(html)
    assert [r.reference for r in refs] == ["site.css", "/theme.css"]

    inliner, _ = make_inliner({BASE + "site.css": "body{margin:0}",
                               "http://example.com/theme.css": "a>b{color:red}"})
    out = inliner.inline_stylesheets(html)
    assert out == ("<head>\n<style type='text/css'>body{margin:0}</style>\n"
                   "<style type='text/css'>a>b{color:red}</style>\n</head>")
    assert inliner.stats['stylesheets'] == 2


def test_failed_stylesheet_left_unchanged():
    inliner, _ = make_inliner({})
    html = '<p>x</p><link rel="stylesheet" href="x.css"><p>y</p>'
    assert inliner.inline_stylesheets(html) == html
    assert inliner.stats['skipped'] == 1


def test_other_links_ignored():
    inliner, retriever = make_inliner({})
    html = '<link rel="icon" href="favicon.ico"><link rel="preload" href="x.css">'
    assert inliner.inline_stylesheets(html) == html
    assert retriever.requests == []


def test_script_opening_tag_replaced():
    inliner, _ = make_inliner({BASE + "a.js": "alert('hi');"})
    html = '<body><script type="text/javascript" src="a.js"></script></body>'
    out = inliner.inline_scripts(html)
    assert out == "<body><script language='text/javascript'>alert('hi');</script></script></body>"
    assert inliner.stats['scripts'] == 1


def test_inline_scripts_untouched():
    inliner, retriever = make_inliner({})
    html = '<script>var a = 1;</script><script type="module">import x from "y";</script>'
    assert inliner.inline_scripts(html) == html
    assert retriever.requests == []


def test_failed_script_left_unchanged():
    inliner, _ = make_inliner({})
    html = '<script async src="/missing.js"></script>'
    assert inliner.inline_scripts(html) == html


def test_inline_all_removes_external_references():
    resources = {
        BASE + "logo.png": PNG,
        "http://example.com/css/main.css": "h1{font-weight:bold}",
        "https://cdn.example.org/app.js": "console.log(1);",
    }
    inliner, _ = make_inliner(resources)
    html = ('<html><head><link rel="stylesheet" href="/css/main.css">'
            '<script src="https://cdn.example.org/app.js"></script></head>'
            '<body><h1>Title</h1><img src="logo.png" alt="logo"></body></html>')
    out = inliner.inline_all(html)
    assert '<img src="http' not in out
    assert '<link rel="stylesheet"' not in out
    assert 'src="http' not in out
    assert "<style type='text/css'>h1{font-weight:bold}</style>" in out
    assert "<script language='text/javascript'>console.log(1);</script>" in out
    assert f'src="data:image/png;base64,{b64(PNG)}" alt="logo" />' in out
    assert out.startswith('<html><head>')
    assert '<body><h1>Title</h1>' in out
    assert out.endswith('</body></html>')


def test_duplicate_references_fetched_once():
    inliner, retriever = make_inliner({BASE + "a.png": PNG})
    out = inliner.inline_images('<img src="a.png"> and <img src="a.png">')
    assert out.count(f"data:image/png;base64,{b64(PNG)}") == 2
    assert retriever.requests == [BASE + "a.png"]


def test_concurrent_fetch_keeps_document_order():
    resources = {BASE + f"s{i}.css": f".c{i}{{}}" for i in range(8)}
    html = "".join(f'<i>{i}</i><link rel="stylesheet" href="s{i}.css">' for i in range(8))
    sequential, _ = make_inliner(resources)
    parallel, retriever = make_inliner(resources, concurrency=4)
    expected = sequential.inline_stylesheets(html)
    assert parallel.inline_stylesheets(html) == expected
    assert sorted(retriever.requests) == sorted(resources)
    assert expected.index(".c0{}") < expected.index(".c7{}")


if __name__ == "__main__":
    for name, func in list(globals().items()):
        if name.startswith("test_") and callable(func):
            func()
    print("✓ inliner tests passed")
