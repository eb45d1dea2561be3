"""
File Management Utilities

This module names and writes the single output file of a download.
"""

import os
from pathlib import Path
from typing import Optional
import logging

from ..core.resolver import SourceLocation


OUTPUT_SUFFIX = ".htm"


class FileManager:
    """
    Writes the inlined page into a target directory.

    The file is named after the page: "[<host>] <path>.htm", with every "/"
    of the path replaced by "_".
    """

    def __init__(self, target_dir: str):
        """
        Initialize the file manager.

        Args:
            target_dir: Existing directory that receives the output file
        """
        self.target_dir = Path(target_dir)
        self.logger = logging.getLogger(__name__)

    def generate_filename(self, source: SourceLocation) -> str:
        """
        Generate the output filename for a page.

        Args:
            source: Location of the page

        Returns:
            Filename without directory, e.g. "[example.com] _docs_index.html.htm"
        """
        return f"[{source.host}] {source.path.replace('/', '_')}{OUTPUT_SUFFIX}"

    def target_path(self, source: SourceLocation) -> str:
        """Full path of the output file for a page."""
        return os.path.join(str(self.target_dir), self.generate_filename(source))

    def save_html(self, html_content: str, source: SourceLocation, encoding: str = 'utf-8') -> Optional[int]:
        """
        Save the final markup, replacing any earlier file of the same name.

        Args:
            html_content: Fully inlined markup
            source: Location of the page
            encoding: Encoding for the written bytes; characters it cannot
                represent are written as character references

        Returns:
            Number of bytes written, or None if the file could not be written
        """
        path = self.target_path(source)
        try:
            data = html_content.encode(encoding, errors='xmlcharrefreplace')
        except LookupError:
            self.logger.warning(f"Unknown encoding '{encoding}', writing UTF-8 instead")
            data = html_content.encode('utf-8')

        try:
            with open(path, 'wb') as f:
                written = f.write(data)
        except OSError as e:
            self.logger.error(f"Could not write the target file '{path}': {e}")
            return None

        self.logger.debug(f"Saved {written} bytes: {os.path.basename(path)}")
        return written
