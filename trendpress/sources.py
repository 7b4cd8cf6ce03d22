"""
Source registry: the ordered list of feeds and pages the scraper visits.

Sources are pure data. The built-in registry covers Indian market news
feeds; a YAML `sources:` list in the config file replaces it entirely.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from .core.entry import slugify, short_hash

AUTO_CATEGORY = "auto"


@dataclass(frozen=True)
class Source:
    """One configured content source.

    Attributes:
        id: Stable identifier, part of every item's content hash
        fetch_target: Feed or page URL
        category: Category assigned to items, or "auto" to infer from content
        kind: "rss" or "website"
        selectors: CSS selectors for website sources (article, title, link, summary, date)
        full_text: Fetch each linked page and extract the article text
        enabled: Disabled sources are skipped
    """

    id: str
    fetch_target: str
    category: str = AUTO_CATEGORY
    kind: str = "rss"
    selectors: dict[str, str] = field(default_factory=dict)
    full_text: bool = False
    enabled: bool = True


_WEBSITE_SELECTORS = {
    "article": "article, .newsItem, .story",
    "title": "h2, h3, .title, .headline",
    "link": "a",
    "summary": ".summary, .excerpt, p",
    "date": ".date, time",
}

DEFAULT_SOURCES: tuple[Source, ...] = (
    Source(
        id="economictimes-markets",
        fetch_target="https://economictimes.indiatimes.com/markets/rssfeeds/1977021501.cms",
        category="stocks",
    ),
    Source(
        id="moneycontrol-business",
        fetch_target="https://www.moneycontrol.com/rss/business.xml",
    ),
    Source(
        id="livemint-markets",
        fetch_target="https://www.livemint.com/rss/markets",
        category="stocks",
    ),
    Source(
        id="business-standard-top",
        fetch_target="https://www.business-standard.com/rss/home_page_top_stories.rss",
    ),
    Source(
        id="business-standard-markets",
        fetch_target="https://www.business-standard.com/rss/markets-106.rss",
        category="stocks",
    ),
    Source(
        id="economictimes-stocks-page",
        fetch_target="https://economictimes.indiatimes.com/markets/stocks",
        category="stocks",
        kind="website",
        selectors=_WEBSITE_SELECTORS,
    ),
)


def build_sources(raw: list[dict[str, Any]] | None) -> list[Source]:
    """Build the registry from config entries, or return the defaults."""
    if not raw:
        return list(DEFAULT_SOURCES)

    sources: list[Source] = []
    seen: set[str] = set()
    for entry in raw:
        target = entry.get("fetch_target") or entry.get("url")
        if not target:
            raise ValueError(f"Source entry without fetch_target: {entry}")
        source_id = entry.get("id") or f"{slugify(target, 40)}-{short_hash(target, 6)}"
        if source_id in seen:
            raise ValueError(f"Duplicate source id: {source_id}")
        seen.add(source_id)
        kind = entry.get("kind") or entry.get("type") or "rss"
        if kind not in ("rss", "website"):
            raise ValueError(f"Unsupported source kind for {source_id}: {kind}")
        sources.append(
            Source(
                id=source_id,
                fetch_target=target,
                category=entry.get("category") or AUTO_CATEGORY,
                kind=kind,
                selectors=dict(entry.get("selectors") or (_WEBSITE_SELECTORS if kind == "website" else {})),
                full_text=bool(entry.get("full_text", False)),
                enabled=bool(entry.get("enabled", True)),
            )
        )
    return sources


def enabled_sources(sources: list[Source]) -> list[Source]:
    return [source for source in sources if source.enabled]
