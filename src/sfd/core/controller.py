"""
sfd Orchestrator: fetch one page, inline its resources, write one file.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from .inliner import DEFAULT_IMAGE_TYPES, ResourceInliner
from .logger import ErrorTracker
from .resolver import SourceLocation
from .retriever import DEFAULT_USER_AGENT, FetchError, Retriever
from ..utils.file_manager import FileManager
from ..utils.validators import validate_url


class FatalError(Exception):
    """A failure that ends the run: bad URL, page download or output write."""


@dataclass(frozen=True)
class RunConfig:
    url: str
    target_dir: str
    timeout: float = 30.0
    max_retries: int = 0
    concurrency: int = 1
    user_agent: str = DEFAULT_USER_AGENT
    image_types: Dict[str, str] = field(default_factory=lambda: dict(DEFAULT_IMAGE_TYPES))
    log_dir: Optional[str] = None
    verbose: bool = False


class SingleFileController:
    def __init__(self, config: RunConfig, retriever: Optional[Retriever] = None,
                 logger: Optional[logging.Logger] = None):
        self.config = config
        self.logger = logger or logging.getLogger(__name__)
        self.retriever = retriever or Retriever(timeout=config.timeout,
                                                max_retries=config.max_retries,
                                                user_agent=config.user_agent)
        self.files = FileManager(config.target_dir)
        self.tracker = ErrorTracker(self.logger)

    def run(self) -> Dict[str, Any]:
        """
        Download, inline and save the configured page.

        Returns:
            Stats with the output 'path', 'bytes' written, counts of inlined
            'images', 'stylesheets' and 'scripts', and 'skipped' resources

        Raises:
            FatalError: if the URL is invalid, the page cannot be downloaded
                or the output file cannot be written
        """
        ok, url, error = validate_url(self.config.url)
        if not ok:
            raise FatalError(f"Error parsing '{self.config.url}': {error}")
        try:
            source = SourceLocation.from_url(url)
        except ValueError as e:
            raise FatalError(f"Error parsing '{url}': {e}") from e

        try:
            page = self.retriever.fetch_page(url)
        except FetchError as e:
            raise FatalError(f"Error trying to download '{url}': {e.reason}") from e

        target_path = self.files.target_path(source)
        self.logger.info(f"Downloading '{url}' to '{target_path}'...")

        inliner = ResourceInliner(source, self.retriever,
                                  image_types=self.config.image_types,
                                  concurrency=self.config.concurrency,
                                  tracker=self.tracker)
        markup = inliner.inline_all(page['html'])

        encoding = page.get('encoding') or 'utf-8'
        if encoding.lower() in ('ascii', 'us-ascii'):
            encoding = 'utf-8'
        written = self.files.save_html(markup, source, encoding=encoding)
        if written is None:
            raise FatalError(f"Could not write the target file '{target_path}'")

        self.logger.info(f"Done. Wrote {written} bytes.")
        if inliner.stats['skipped']:
            by_kind = self.tracker.get_error_summary()['warnings_by_context']
            details = ", ".join(f"{count} {kind}" for kind, count in sorted(by_kind.items()))
            self.logger.info(f"Skipped {inliner.stats['skipped']} resource(s): {details}")

        stats = dict(inliner.stats)
        stats.update({'path': target_path, 'bytes': written})
        return stats

    def close(self):
        self.retriever.close()
