"""
sfd: Single-File Downloader

A utility that fetches one web page and saves it as a single self-contained
HTML file, with its images, stylesheets and scripts inlined.
"""

__version__ = "1.0"
__author__ = "sfd Project"
__description__ = "Single-File Web Page Downloader"
