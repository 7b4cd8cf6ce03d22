"""
Source fetching and extraction.

This package handles HTTP fetching of feeds and pages and the
extraction of article text from HTML.
"""

from .extractor import extract_text
from .fetcher import FetchResult, build_client, fetch_url, post_json

__all__ = [
    "FetchResult",
    "build_client",
    "extract_text",
    "fetch_url",
    "post_json",
]
