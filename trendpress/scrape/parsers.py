"""
Source payload parsers and content tagging.

RSS/Atom feeds are parsed with feedparser; website sources are parsed with
BeautifulSoup CSS selectors. Both return RawEntry records that the scraper
normalizes into ScrapedItems.
"""

from __future__ import annotations

from calendar import timegm
from dataclasses import dataclass
from datetime import datetime, timezone
import re
from urllib.parse import urljoin

from bs4 import BeautifulSoup
from dateutil import parser as dateparser
import feedparser

from ..core.entry import strip_markup


@dataclass
class RawEntry:
    title: str
    link: str
    summary: str
    published_at: datetime | None = None


def parse_rss(text: str) -> list[RawEntry]:
    """Parse an RSS or Atom document into raw entries.

    Raises:
        ValueError: The payload is not a feed and yielded no entries.
    """
    feed = feedparser.parse(text)
    if feed.bozo and not feed.entries:
        raise ValueError(f"unparseable feed: {feed.get('bozo_exception')}")

    entries: list[RawEntry] = []
    for entry in feed.entries:
        title = strip_markup(entry.get("title", ""))
        link = (entry.get("link") or "").strip()
        if not title or not link:
            continue
        summary = entry.get("summary") or entry.get("description") or ""
        if not summary and entry.get("content"):
            summary = entry["content"][0].get("value", "")
        entries.append(
            RawEntry(
                title=title,
                link=link,
                summary=summary,
                published_at=_struct_to_datetime(entry.get("published_parsed") or entry.get("updated_parsed")),
            )
        )
    return entries


def parse_website(html: str, base_url: str, selectors: dict[str, str]) -> list[RawEntry]:
    """Extract article teasers from a listing page using CSS selectors."""
    soup = BeautifulSoup(html, "html.parser")
    entries: list[RawEntry] = []
    seen_links: set[str] = set()

    for node in soup.select(selectors.get("article", "article")):
        title_node = node.select_one(selectors.get("title", "h2, h3"))
        link_node = node.select_one(selectors.get("link", "a"))
        if title_node is None or link_node is None or not link_node.get("href"):
            continue
        title = title_node.get_text(" ", strip=True)
        link = urljoin(base_url, link_node["href"])
        if not title or link in seen_links:
            continue
        seen_links.add(link)

        summary_node = node.select_one(selectors.get("summary", "p"))
        date_node = node.select_one(selectors.get("date", "time"))
        published_at = None
        if date_node is not None:
            published_at = parse_date(date_node.get("datetime") or date_node.get_text(" ", strip=True))
        entries.append(
            RawEntry(
                title=title,
                link=link,
                summary=summary_node.get_text(" ", strip=True) if summary_node is not None else "",
                published_at=published_at,
            )
        )
    return entries


def parse_date(value: str | None) -> datetime | None:
    if not value:
        return None
    try:
        parsed = dateparser.parse(value)
    except (ValueError, OverflowError):
        return None
    if parsed is None:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def _struct_to_datetime(value) -> datetime | None:
    if not value:
        return None
    return datetime.fromtimestamp(timegm(value), tz=timezone.utc)


_SYMBOL_RE = re.compile(r"\b([A-Z]{2,5})(?:\.(?:NS|BO))?\b")
_SYMBOL_STOPWORDS = {
    "AI", "AM", "AN", "AND", "ARE", "AS", "AT", "BE", "BSE", "BY", "CEO", "CFO", "CPI", "EU",
    "EV", "FDI", "FII", "FOR", "FY", "GDP", "GST", "HAS", "IN", "IPO", "IS", "IT", "ITS",
    "NEW", "NOT", "NSE", "OF", "ON", "OR", "PM", "PSU", "RBI", "SEBI", "THE", "TO",
    "UK", "UP", "US", "USA", "USD", "INR", "WAS", "WITH",
}

METALS = ("gold", "silver", "platinum", "palladium", "copper")


def extract_symbols(text: str) -> list[str]:
    """Candidate stock tickers in order of first mention.

    Exchange suffixes (.NS, .BO) are dropped; common upper-case words and
    acronyms are ignored.
    """
    found: list[str] = []
    for match in _SYMBOL_RE.finditer(text):
        symbol = match.group(1)
        if symbol in _SYMBOL_STOPWORDS or symbol in found:
            continue
        found.append(symbol)
    return found


def extract_metals(text: str) -> list[str]:
    lowered = text.lower()
    return [metal for metal in METALS if re.search(rf"\b{metal}\b", lowered)]
