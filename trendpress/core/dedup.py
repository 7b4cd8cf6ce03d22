"""
In-batch item deduplication using URL matching and fuzzy title comparison.

This module removes duplicates within one scrape before any storage lookup:
1. Exact canonical URL matches (the same story listed twice)
2. Fuzzy title similarity (the same story syndicated under another URL)

Storage-level deduplication by content hash happens in the scraper.
"""

from __future__ import annotations

from rapidfuzz import fuzz

from .types import ScrapedItem


def dedup_items(items: list[ScrapedItem], threshold: int = 92) -> list[ScrapedItem]:
    """Remove duplicate items from a list, preserving original order.

    Args:
        items: Normalized items from one scrape
        threshold: Similarity threshold (0-100) for fuzzy title matching.

    Returns:
        Deduplicated list of items
    """
    seen_urls: set[str] = set()
    kept: list[ScrapedItem] = []
    titles: list[str] = []

    for item in items:
        if item.url in seen_urls:
            continue
        if _is_similar_title(item.title, titles, threshold):
            continue
        seen_urls.add(item.url)
        titles.append(item.title)
        kept.append(item)

    return kept


def _is_similar_title(title: str, titles: list[str], threshold: int) -> bool:
    """Check if a title is similar to any title in the given list.

    Uses rapidfuzz's ratio on case-folded titles.
    """
    folded = title.casefold()
    for existing in titles:
        if fuzz.ratio(folded, existing.casefold()) >= threshold:
            return True
    return False
