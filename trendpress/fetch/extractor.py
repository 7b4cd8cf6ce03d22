"""
Article text extraction for sources configured with full_text.

Extractors are tried in order until one yields text:
1. trafilatura: purpose-built main-content extraction (default)
2. readability: readability-lxml article detection
3. bs4: plain text of the whole page
"""

from __future__ import annotations

from typing import Callable

from bs4 import BeautifulSoup
import trafilatura
from readability import Document


def extract_text(html: str, primary: str, fallback: list[str]) -> str | None:
    """Extract plain text from an article page.

    Args:
        html: The HTML content to extract text from
        primary: Name of the primary extraction method to try first
        fallback: Fallback method names to try if primary yields nothing

    Returns:
        Extracted text with surrounding whitespace stripped, or None if all methods fail
    """
    order = [primary] + [name for name in fallback if name != primary]
    for method in order:
        extractor = _EXTRACTORS.get(method)
        if extractor is None:
            continue
        text = extractor(html)
        if text and text.strip():
            return text.strip()
    return None


def _extract_trafilatura(html: str) -> str | None:
    return trafilatura.extract(html, include_comments=False, include_tables=False)


def _extract_readability(html: str) -> str | None:
    return _extract_bs4(Document(html).summary())


def _extract_bs4(html: str) -> str | None:
    soup = BeautifulSoup(html, "html.parser")
    for tag in soup(["script", "style", "noscript", "nav", "footer"]):
        tag.decompose()
    text = soup.get_text(separator="\n")
    cleaned = "\n".join(line.strip() for line in text.splitlines() if line.strip())
    return cleaned or None


_EXTRACTORS: dict[str, Callable[[str], str | None]] = {
    "trafilatura": _extract_trafilatura,
    "readability": _extract_readability,
    "bs4": _extract_bs4,
}
