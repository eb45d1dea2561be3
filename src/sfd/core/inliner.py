"""
Resource inlining.

This module finds image, stylesheet and script references in raw page markup
with regular expressions, downloads each referenced resource and substitutes
the reference with an inlined equivalent: images become base64 data URIs,
stylesheets become <style> blocks and external scripts become <script> blocks.

Matching works on text, not on a parse tree. Only the tag shapes below are
recognized, attribute values must use double quotes, and markup outside the
matched spans is returned untouched.
"""

from __future__ import annotations

import re
import base64
import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Callable, Dict, List, Mapping, Optional, Tuple, TypeVar

from .resolver import SourceLocation, resolve_reference
from .retriever import FetchError, Retriever
from .logger import ErrorTracker


DEFAULT_IMAGE_TYPES: Dict[str, str] = {
    '.png': 'image/png',
    '.jpg': 'image/jpeg',
    '.jpeg': 'image/jpeg',
    '.gif': 'image/gif',
    '.webp': 'image/webp',
}

MISSING_TEMPLATE = "<em>[MISSING: {url}]</em>"
STYLE_TEMPLATE = "<style type='text/css'>{body}</style>"
SCRIPT_TEMPLATE = "<script language='text/javascript'>{body}</script>"

# <img ...src="..."...>: groups are (before, src attribute, src value, after)
IMAGE_PATTERN = re.compile(r'<img ([^>]*?)(src="([^"]+)")([^>]*?)>')

# <link ...> carrying rel="stylesheet" and href="..." in either order.
# The href is the last non-empty group, whichever alternative matched.
STYLESHEET_PATTERN = re.compile(
    r'<link ('
    r'[^>]*?rel="stylesheet"[^>]*?href="([^"]+)"[^>]*?'
    r'|'
    r'[^>]*?href="([^"]+)"[^>]*?rel="stylesheet"[^>]*?'
    r')>'
)

# Opening <script ...src="..."> tag only
SCRIPT_PATTERN = re.compile(r'<script [^>]*?src="([^"]+)"[^>]*?>')

T = TypeVar('T')


@dataclass
class ResourceReference:
    tag: str                 # Full matched text
    span: Tuple[int, int]    # (start, end) in the pass input
    reference: str           # Raw src/href value
    before: str = ''         # Tag text ahead of the src attribute (images)
    after: str = ''          # Tag text behind the src attribute (images)


@dataclass
class ResolvedResource:
    url: str
    content_type: Optional[str] = None


def last_non_empty_group(match: re.Match) -> str:
    groups = [g for g in match.groups() if g]
    return groups[-1]


def find_image_references(markup: str) -> List[ResourceReference]:
    return [
        ResourceReference(tag=m.group(0), span=m.span(), reference=m.group(3),
                          before=m.group(1), after=m.group(4))
        for m in IMAGE_PATTERN.finditer(markup)
    ]


def find_stylesheet_references(markup: str) -> List[ResourceReference]:
    return [
        ResourceReference(tag=m.group(0), span=m.span(), reference=last_non_empty_group(m))
        for m in STYLESHEET_PATTERN.finditer(markup)
    ]


def find_script_references(markup: str) -> List[ResourceReference]:
    return [
        ResourceReference(tag=m.group(0), span=m.span(), reference=m.group(1))
        for m in SCRIPT_PATTERN.finditer(markup)
    ]


def substitute(markup: str, references: List[ResourceReference],
               rewrite: Callable[[ResourceReference], str]) -> str:
    """
    Replace each reference's span with rewrite(reference).

    References must be in document order and non-overlapping, as produced by
    the find_* helpers. Replacement text is never re-scanned.
    """
    pieces = []
    last = 0
    for ref in references:
        start, end = ref.span
        pieces.append(markup[last:start])
        pieces.append(rewrite(ref))
        last = end
    pieces.append(markup[last:])
    return ''.join(pieces)


def normalize_image_types(image_types: Mapping[str, str]) -> Dict[str, str]:
    """Lower-case the suffixes and make sure each starts with a dot."""
    normalized = {}
    for suffix, mime in image_types.items():
        suffix = suffix.strip().lower()
        if not suffix.startswith('.'):
            suffix = '.' + suffix
        normalized[suffix] = mime
    return normalized


def image_content_type(reference: str, image_types: Mapping[str, str]) -> Optional[str]:
    """Content type for an image reference, judged by its path suffix."""
    # Split by hand: urlparse raises on malformed hosts such as '//[broken'
    path = re.split(r'[?#]', reference, maxsplit=1)[0].lower()
    for suffix, mime in image_types.items():
        if path.endswith(suffix):
            return mime
    return None


def is_inline_data(reference: str) -> bool:
    return reference.lower().startswith('data:')


def build_image_tag(before: str, data_uri: str, after: str) -> str:
    # Edges trimmed so an empty before/after or a trailing "/" does not leave doubled spaces
    parts = ['<img']
    before = before.strip()
    if before:
        parts.append(before)
    parts.append(f'src="{data_uri}"')
    after = after.strip()
    if after.endswith('/'):
        after = after[:-1].rstrip()
    if after:
        parts.append(after)
    parts.append('/>')
    return ' '.join(parts)


class ResourceInliner:
    """
    Runs the image, stylesheet and script passes over a page.

    Each pass consumes the complete output of the previous one. A resource
    that cannot be fetched never aborts a pass: images are replaced by a
    visible [MISSING: url] marker, stylesheet and script tags are left as
    they were.
    """

    def __init__(self,
                 source: SourceLocation,
                 retriever: Retriever,
                 image_types: Optional[Mapping[str, str]] = None,
                 concurrency: int = 1,
                 tracker: Optional[ErrorTracker] = None):
        self.source = source
        self.retriever = retriever
        self.image_types = normalize_image_types(image_types if image_types is not None else DEFAULT_IMAGE_TYPES)
        self.concurrency = max(1, concurrency)
        self.logger = logging.getLogger(__name__)
        self.tracker = tracker or ErrorTracker(self.logger)
        self.stats = {'images': 0, 'stylesheets': 0, 'scripts': 0, 'skipped': 0}

    def inline_all(self, markup: str) -> str:
        self.logger.info("Converting images.")
        markup = self.inline_images(markup)
        self.logger.info("Converting CSS.")
        markup = self.inline_stylesheets(markup)
        self.logger.info("Converting JavaScript.")
        return self.inline_scripts(markup)

    def resolve(self, ref: ResourceReference, with_type: bool = False) -> ResolvedResource:
        url = resolve_reference(self.source, ref.reference)
        if with_type:
            return ResolvedResource(url=url, content_type=image_content_type(ref.reference, self.image_types))
        return ResolvedResource(url=url)

    # Image pass

    def inline_images(self, markup: str) -> str:
        references = find_image_references(markup)
        resolved = {r.span: self.resolve(r, with_type=True)
                    for r in references if not is_inline_data(r.reference)}
        bodies, failures = self._fetch_all(
            [res.url for res in resolved.values() if res.content_type],
            self.retriever.fetch_bytes,
        )

        def rewrite(ref: ResourceReference) -> str:
            res = resolved.get(ref.span)
            if res is None:
                # Already a data: URI
                return ref.tag
            if res.content_type is None:
                self._skip(res.url, "unknown file type", 'images')
                return MISSING_TEMPLATE.format(url=res.url)
            if res.url in failures:
                self._skip(res.url, failures[res.url].reason, 'images')
                return MISSING_TEMPLATE.format(url=res.url)

            encoded = base64.b64encode(bodies[res.url]).decode('ascii')
            self.stats['images'] += 1
            return build_image_tag(ref.before, f"data:{res.content_type};base64,{encoded}", ref.after)

        return substitute(markup, references, rewrite)

    # Stylesheet pass

    def inline_stylesheets(self, markup: str) -> str:
        return self._inline_text_resources(
            markup, find_stylesheet_references(markup), STYLE_TEMPLATE, 'stylesheets')

    # Script pass

    def inline_scripts(self, markup: str) -> str:
        return self._inline_text_resources(
            markup, find_script_references(markup), SCRIPT_TEMPLATE, 'scripts')

    def _inline_text_resources(self, markup: str, references: List[ResourceReference],
                               template: str, kind: str) -> str:
        urls = {r.span: self.resolve(r).url for r in references if not is_inline_data(r.reference)}
        bodies, failures = self._fetch_all(list(urls.values()), self.retriever.fetch_text)

        def rewrite(ref: ResourceReference) -> str:
            url = urls.get(ref.span)
            if url is None:
                return ref.tag
            if url in failures:
                self._skip(url, failures[url].reason, kind)
                return ref.tag
            self.stats[kind] += 1
            return template.format(body=bodies[url])

        return substitute(markup, references, rewrite)

    def _fetch_all(self, urls: List[str], fetch: Callable[[str], T]) -> Tuple[Dict[str, T], Dict[str, FetchError]]:
        """
        Fetch each distinct URL once.

        Returns:
            (bodies, failures) keyed by URL
        """
        unique = list(dict.fromkeys(urls))
        bodies: Dict[str, T] = {}
        failures: Dict[str, FetchError] = {}

        def fetch_one(url: str):
            try:
                bodies[url] = fetch(url)
            except FetchError as e:
                failures[url] = e

        if self.concurrency > 1 and len(unique) > 1:
            with ThreadPoolExecutor(max_workers=min(self.concurrency, len(unique))) as ex:
                # list() re-raises anything other than FetchError
                list(ex.map(fetch_one, unique))
        else:
            for url in unique:
                fetch_one(url)

        return bodies, failures

    def _skip(self, url: str, reason: str, kind: str):
        self.stats['skipped'] += 1
        self.tracker.log_warning(f"Skipping '{url}': {reason}", context=kind, url=url)
