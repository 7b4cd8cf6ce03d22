"""
Deterministic article enrichment.

Fills the parts of an article a provider draft may omit (summary, key
points, FAQs, tags) and derives what is never delegated to the provider
(entities, topics, citations, SEO metadata).
"""

from __future__ import annotations

from collections import Counter
import re

from ..core.entry import domain_of
from ..core.types import FaqItem, ScrapedItem, SeoMetadata, SourceCitation

SUMMARY_CHARS = 200
META_TITLE_CHARS = 60
META_DESCRIPTION_CHARS = 160
MAX_KEYWORDS = 10
MAX_TAGS = 8
MAX_ENTITIES = 8

_STOPWORDS = {
    "about", "after", "also", "amid", "been", "before", "being", "from", "have", "into",
    "more", "over", "said", "says", "than", "that", "their", "there", "these", "they",
    "this", "those", "through", "were", "what", "when", "where", "which", "while", "will",
    "with", "would", "your",
}
_MARKDOWN_RULES = (
    (re.compile(r"^Article:\s*", re.IGNORECASE), ""),
    (re.compile(r"^#+\s*.+$", re.MULTILINE), ""),
    (re.compile(r"^[-*+]\s+", re.MULTILINE), ""),
    (re.compile(r"^\d+\.\s+", re.MULTILINE), ""),
    (re.compile(r"\*\*(.+?)\*\*"), r"\1"),
    (re.compile(r"\*(.+?)\*"), r"\1"),
    (re.compile(r"\[(.+?)\]\(.+?\)"), r"\1"),
    (re.compile(r"`(.+?)`"), r"\1"),
    (re.compile(r"^>\s+", re.MULTILINE), ""),
    (re.compile(r"\n{3,}"), "\n\n"),
)
_HEADING_MARKER_RE = re.compile(r"^#+\s*", re.MULTILINE)
_CAPITALIZED_RE = re.compile(r"\b[A-Z][a-z]+(?:\s+[A-Z][a-z]+)+\b")


def clean_markdown(text: str) -> str:
    for pattern, replacement in _MARKDOWN_RULES:
        text = pattern.sub(replacement, text)
    return text.strip()


def clean_title(text: str) -> str:
    """Single-line title; heading markers are dropped but their text is kept."""
    text = _HEADING_MARKER_RE.sub("", text)
    return " ".join(clean_markdown(text).split())


def clip(text: str, limit: int) -> str:
    """Cut text to ``limit`` characters, ending with "..." when shortened."""
    text = text.strip()
    if len(text) <= limit:
        return text
    return text[: limit - 3].rstrip() + "..."


def summarize(body: str) -> str:
    first_paragraph = next((p for p in body.split("\n\n") if p.strip()), body)
    return clip(" ".join(first_paragraph.split()), SUMMARY_CHARS)


def default_key_points(body: str) -> list[str]:
    sentences = [s.strip() for s in re.split(r"[.!?]+", body) if len(s.strip()) > 20]
    return [clip(s, 150) for s in sentences[:4]]


def default_faqs(title: str, body: str) -> list[FaqItem]:
    return [
        FaqItem(
            question=f"What is the main development in {title}?",
            answer=summarize(body),
        ),
        FaqItem(
            question="How can I use this information?",
            answer=(
                "This article is for information only. Consult a qualified financial "
                "advisor before making investment decisions."
            ),
        ),
    ]


def extract_keywords(text: str, limit: int = MAX_KEYWORDS) -> list[str]:
    """Most frequent content words longer than three letters; ties keep first-seen order."""
    words = [w for w in re.findall(r"\b[a-z][a-z0-9]+\b", text.lower()) if len(w) > 3 and w not in _STOPWORDS]
    counts = Counter(words)
    first_seen = {word: idx for idx, word in reversed(list(enumerate(words)))}
    ranked = sorted(counts, key=lambda w: (-counts[w], first_seen[w]))
    return ranked[:limit]


def extract_entities(body: str, members: list[ScrapedItem]) -> list[str]:
    entities: list[str] = []

    def add(value: str) -> None:
        if value not in entities:
            entities.append(value)

    for item in members:
        for symbol in item.related_symbols:
            add(symbol.upper())
        for metal in item.related_metals:
            add(metal.title())
    for phrase in _CAPITALIZED_RE.findall(body):
        if 3 < len(phrase) < 30:
            add(phrase)
    return entities[:MAX_ENTITIES]


def extract_topics(category: str, members: list[ScrapedItem]) -> list[str]:
    topics = [category.title()]
    if any(item.related_symbols for item in members):
        topics.append("Stocks")
    if any(item.related_metals for item in members):
        topics.append("Precious Metals")
    topics.extend(["Business", "Finance"])
    return list(dict.fromkeys(topics))[:5]


def build_citations(members: list[ScrapedItem]) -> list[SourceCitation]:
    citations: list[SourceCitation] = []
    seen: set[str] = set()
    for item in members:
        if item.url in seen:
            continue
        seen.add(item.url)
        citations.append(
            SourceCitation(url=item.url, domain=domain_of(item.url), title=item.title, retrieved_at=item.scraped_at)
        )
    return citations


def build_seo(title: str, body: str, summary: str) -> SeoMetadata:
    return SeoMetadata(
        meta_title=clip(title, META_TITLE_CHARS),
        meta_description=clip(summary or " ".join(body.split()), META_DESCRIPTION_CHARS),
        keywords=extract_keywords(f"{title} {body}", MAX_KEYWORDS),
    )
