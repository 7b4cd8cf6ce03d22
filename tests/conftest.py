"""Shared fakes for pipeline tests. Nothing here touches the network."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from email.utils import format_datetime
import hashlib
from xml.sax.saxutils import escape

import pytest

from trendpress.config import EmbeddingConfig, GenerationConfig
from trendpress.core.types import (
    Article,
    ArticleDraft,
    FaqItem,
    ScrapedItem,
    SeoMetadata,
    SourceCitation,
    TopicContext,
)
from trendpress.embed.providers import EmbeddingProvider
from trendpress.errors import ProviderError
from trendpress.fetch.fetcher import FetchResult
from trendpress.llm.providers.base import GenerationProvider

NOW = datetime(2026, 3, 2, 12, 0, tzinfo=timezone.utc)


def fixed_clock(value: datetime = NOW):
    return lambda: value


def build_rss(entries: list[dict]) -> str:
    """Render entries ({title, link, summary}) as an RSS 2.0 document."""
    items = []
    for entry in entries:
        items.append(
            "<item>"
            f"<title>{escape(entry['title'])}</title>"
            f"<link>{escape(entry['link'])}</link>"
            f"<description>{escape(entry.get('summary', ''))}</description>"
            f"<pubDate>{format_datetime(entry.get('published', NOW - timedelta(hours=1)))}</pubDate>"
            "</item>"
        )
    return (
        '<?xml version="1.0" encoding="UTF-8"?>'
        '<rss version="2.0"><channel><title>Test feed</title>'
        "<link>https://example.com/</link><description>test</description>"
        + "".join(items)
        + "</channel></rss>"
    )


class FakeFetcher:
    """Async fetcher serving canned bodies; unknown URLs fail like a 404."""

    def __init__(self, pages: dict[str, str], failing: set[str] | None = None):
        self.pages = pages
        self.failing = failing or set()
        self.calls: list[str] = []

    async def __call__(self, client, url, timeout, retries, limiter=None):
        self.calls.append(url)
        if url in self.failing:
            return FetchResult(url=url, status_code=None, text=None, error="ConnectError: refused")
        if url not in self.pages:
            return FetchResult(url=url, status_code=404, text=None, error="HTTP 404")
        return FetchResult(url=url, status_code=200, text=self.pages[url], error=None)


class KeywordEmbeddingProvider(EmbeddingProvider):
    """One-hot vectors: dimension i is set when keyword i occurs in the text."""

    name = "keyword"

    def __init__(self, keywords: list[str], fail_when: str | None = None, model: str = "keyword-embed"):
        super().__init__(EmbeddingConfig(name="keyword", model=model), api_key="test-key")
        self.keywords = list(keywords)
        self.fail_when = fail_when
        self.calls: list[list[str]] = []

    def _embed(self, texts: list[str]) -> list[list[float]]:
        self.calls.append(list(texts))
        if self.fail_when and any(self.fail_when in text for text in texts):
            raise ProviderError(self.name, "quota exhausted", reason="quota")
        vectors = []
        for text in texts:
            vector = [1.0 if keyword in text else 0.0 for keyword in self.keywords]
            vector.append(0.0 if any(vector) else 1.0)
            vectors.append(vector)
        return vectors


class StaticGenerationProvider(GenerationProvider):
    """Returns a fixed draft per topic, or fails for selected labels."""

    name = "static"

    def __init__(self, fail_labels: set[str] | None = None):
        super().__init__(GenerationConfig(name="static", model="static-1"), api_key="test-key")
        self.fail_labels = fail_labels or set()
        self.contexts: list[TopicContext] = []

    def generate(self, context: TopicContext) -> ArticleDraft:
        self.contexts.append(context)
        if context.label in self.fail_labels:
            raise ProviderError(self.name, "HTTP 429", reason="quota")
        return ArticleDraft(
            title=f"What is driving {context.label}",
            body=(
                f"## Overview\n\n**{context.label}** drew coverage from {len(context.facts)} reports "
                "across several outlets today.\n\nAnalysts pointed to steady demand and cautious guidance."
            ),
            tags=["Markets", "coverage"],
        )


def make_item(
    key: str,
    title: str | None = None,
    body: str | None = None,
    source_id: str = "source-a",
    category: str = "news",
    scraped_at: datetime = NOW,
    symbols: list[str] | None = None,
    metals: list[str] | None = None,
) -> ScrapedItem:
    return ScrapedItem(
        content_hash=hashlib.sha256(f"{source_id}|{key}".encode()).hexdigest(),
        source_id=source_id,
        url=f"https://{source_id}.example.com/{key}",
        title=title or f"Headline {key}",
        body=body or f"Detailed coverage of {key} with several supporting facts.",
        category=category,
        scraped_at=scraped_at,
        related_symbols=symbols or [],
        related_metals=metals or [],
    )


@pytest.fixture
def now() -> datetime:
    return NOW


def make_article(slug: str = "rate-decision-abc123", identity: str = "identity-1", title: str = "Rate decision") -> Article:
    return Article(
        slug=slug,
        identity=identity,
        title=title,
        body="The central bank held rates steady.",
        summary="Rates unchanged.",
        category="news",
        related_symbol=None,
        tags=["rates"],
        entities=["Reserve Bank"],
        topics=["News"],
        key_points=["Rates unchanged"],
        faqs=[FaqItem(question="What happened?", answer="Rates were held.")],
        sources=[
            SourceCitation(
                url="https://wire-a.example.com/a",
                domain="wire-a.example.com",
                title="Rates held",
                retrieved_at=NOW,
            )
        ],
        seo=SeoMetadata(meta_title=title, meta_description="Rates unchanged.", keywords=["rates"]),
        trending_score=2.0,
        created_at=NOW,
        updated_at=NOW,
    )
