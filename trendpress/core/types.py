"""
Core data types for the trendpress pipeline.

This module defines the structures that flow between stages:
- ScrapedItem: One normalized piece of source content
- Embedding / EmbedOk / EmbedErr: Vectors and tagged provider results
- TopicCluster: A scored group of items about one topic
- TopicContext / ArticleDraft: Generation provider input and output
- Article: A generated, publishable article
- StepReport / WorkflowRun: The structured result of one run
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from types import MappingProxyType
from typing import Any, Mapping, Union


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def to_iso(value: datetime | None) -> str | None:
    if value is None:
        return None
    return value.astimezone(timezone.utc).isoformat()


def from_iso(value: str | None) -> datetime | None:
    if not value:
        return None
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


@dataclass
class ScrapedItem:
    """A normalized item produced by the scraper.

    Attributes:
        content_hash: Stable fingerprint of source, canonical URL and body prefix
        source_id: Registry id of the source that produced the item
        url: Canonical URL
        title: Plain-text headline
        body: Plain-text body, truncated to the configured length
        category: Category inherited from the source or inferred from content
        scraped_at: When the item was normalized (UTC)
        published_at: Publication time reported by the source, if any
        source_kind: "rss" or "website"
        related_symbols: Stock tickers mentioned in title or body
        related_metals: Precious/base metals mentioned in title or body
        clustered: True once the item has been consumed by a generated topic
    """

    content_hash: str
    source_id: str
    url: str
    title: str
    body: str
    category: str
    scraped_at: datetime
    published_at: datetime | None = None
    source_kind: str = "rss"
    related_symbols: list[str] = field(default_factory=list)
    related_metals: list[str] = field(default_factory=list)
    clustered: bool = False

    @property
    def text(self) -> str:
        """Text sent to the embedding provider."""
        if self.body:
            return f"{self.title}\n\n{self.body}"
        return self.title

    def to_dict(self) -> dict[str, Any]:
        return {
            "content_hash": self.content_hash,
            "source_id": self.source_id,
            "url": self.url,
            "title": self.title,
            "body": self.body,
            "category": self.category,
            "scraped_at": to_iso(self.scraped_at),
            "published_at": to_iso(self.published_at),
            "source_kind": self.source_kind,
            "related_symbols": list(self.related_symbols),
            "related_metals": list(self.related_metals),
            "clustered": self.clustered,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ScrapedItem:
        return cls(
            content_hash=data["content_hash"],
            source_id=data["source_id"],
            url=data["url"],
            title=data.get("title", ""),
            body=data.get("body", ""),
            category=data.get("category", "news"),
            scraped_at=from_iso(data["scraped_at"]),
            published_at=from_iso(data.get("published_at")),
            source_kind=data.get("source_kind", "rss"),
            related_symbols=list(data.get("related_symbols") or []),
            related_metals=list(data.get("related_metals") or []),
            clustered=bool(data.get("clustered", False)),
        )


@dataclass
class Embedding:
    """Vector for one item, tagged with the model that produced it."""

    item_hash: str
    vector: list[float]
    model: str

    @property
    def dimension(self) -> int:
        return len(self.vector)

    def to_dict(self) -> dict[str, Any]:
        return {"item_hash": self.item_hash, "vector": list(self.vector), "model": self.model}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Embedding:
        return cls(item_hash=data["item_hash"], vector=[float(v) for v in data["vector"]], model=data["model"])


@dataclass(frozen=True)
class EmbedOk:
    vector: list[float]
    ok: bool = True


@dataclass(frozen=True)
class EmbedErr:
    kind: str
    message: str
    ok: bool = False


EmbedResult = Union[EmbedOk, EmbedErr]


@dataclass
class TopicCluster:
    """A group of items judged to concern the same topic.

    Attributes:
        cluster_id: Short hash over the sorted member hashes
        category: Category shared by all members
        members: Member items in clustering order
        centroid: Mean of the member vectors
        score: Trend score (volume with recency decay)
        window_start: Earliest member scrape time
        window_end: Latest member scrape time
        label: Human-readable topic label
        qualifies: Whether the cluster is eligible for generation
    """

    cluster_id: str
    category: str
    members: list[ScrapedItem]
    centroid: list[float]
    score: float
    window_start: datetime
    window_end: datetime
    label: str = ""
    qualifies: bool = False

    @property
    def size(self) -> int:
        return len(self.members)

    @property
    def member_hashes(self) -> list[str]:
        return [item.content_hash for item in self.members]

    @property
    def source_ids(self) -> list[str]:
        return sorted({item.source_id for item in self.members})


@dataclass
class Fact:
    title: str
    url: str
    source_id: str
    excerpt: str
    scraped_at: datetime


@dataclass
class TopicContext:
    """Everything the generation provider sees about one topic."""

    label: str
    category: str
    related_symbol: str | None
    facts: list[Fact]
    trending_score: float


@dataclass
class FaqItem:
    question: str
    answer: str

    def to_dict(self) -> dict[str, str]:
        return {"question": self.question, "answer": self.answer}


@dataclass
class ArticleDraft:
    """Structured output of a generation provider before enrichment."""

    title: str
    body: str
    summary: str = ""
    key_points: list[str] = field(default_factory=list)
    faqs: list[FaqItem] = field(default_factory=list)
    tags: list[str] = field(default_factory=list)


@dataclass
class SourceCitation:
    url: str
    domain: str
    title: str
    retrieved_at: datetime

    def to_dict(self) -> dict[str, Any]:
        return {
            "url": self.url,
            "domain": self.domain,
            "title": self.title,
            "retrieved_at": to_iso(self.retrieved_at),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SourceCitation:
        return cls(
            url=data["url"],
            domain=data.get("domain", ""),
            title=data.get("title", ""),
            retrieved_at=from_iso(data["retrieved_at"]),
        )


@dataclass
class SeoMetadata:
    meta_title: str
    meta_description: str
    keywords: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "meta_title": self.meta_title,
            "meta_description": self.meta_description,
            "keywords": list(self.keywords),
        }


@dataclass
class Article:
    """A generated, publishable article.

    Attributes:
        slug: Globally unique URL-safe identifier
        identity: Topic identity the article was generated for
        title: Headline
        body: Article text (markdown-free paragraphs)
        summary: Short summary
        category: Category of the source topic
        related_symbol: Stock symbol or metal the topic is about, if any
        tags: Keyword tags
        entities: Named entities (symbols, metals, capitalized phrases)
        topics: Broad topic labels
        key_points: Short TL;DR bullet list
        faqs: Question/answer pairs
        sources: Citations of the member items
        seo: Search metadata
        trending_score: Score carried over from the cluster
        is_published: Published flag
        view_count: Reader counter, incremented outside the pipeline
        created_at: Creation time (UTC)
        updated_at: Last mutation time (UTC)
    """

    slug: str
    identity: str
    title: str
    body: str
    summary: str
    category: str
    related_symbol: str | None
    tags: list[str]
    entities: list[str]
    topics: list[str]
    key_points: list[str]
    faqs: list[FaqItem]
    sources: list[SourceCitation]
    seo: SeoMetadata
    trending_score: float
    created_at: datetime
    updated_at: datetime
    is_published: bool = True
    view_count: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "slug": self.slug,
            "identity": self.identity,
            "title": self.title,
            "body": self.body,
            "summary": self.summary,
            "category": self.category,
            "related_symbol": self.related_symbol,
            "tags": list(self.tags),
            "entities": list(self.entities),
            "topics": list(self.topics),
            "key_points": list(self.key_points),
            "faqs": [faq.to_dict() for faq in self.faqs],
            "sources": [source.to_dict() for source in self.sources],
            "seo": self.seo.to_dict(),
            "trending_score": self.trending_score,
            "is_published": self.is_published,
            "view_count": self.view_count,
            "created_at": to_iso(self.created_at),
            "updated_at": to_iso(self.updated_at),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Article:
        seo = data.get("seo") or {}
        return cls(
            slug=data["slug"],
            identity=data["identity"],
            title=data["title"],
            body=data.get("body", ""),
            summary=data.get("summary", ""),
            category=data.get("category", "news"),
            related_symbol=data.get("related_symbol"),
            tags=list(data.get("tags") or []),
            entities=list(data.get("entities") or []),
            topics=list(data.get("topics") or []),
            key_points=list(data.get("key_points") or []),
            faqs=[FaqItem(**faq) for faq in data.get("faqs") or []],
            sources=[SourceCitation.from_dict(s) for s in data.get("sources") or []],
            seo=SeoMetadata(
                meta_title=seo.get("meta_title", ""),
                meta_description=seo.get("meta_description", ""),
                keywords=list(seo.get("keywords") or []),
            ),
            trending_score=float(data.get("trending_score", 0.0)),
            is_published=bool(data.get("is_published", True)),
            view_count=int(data.get("view_count", 0)),
            created_at=from_iso(data["created_at"]),
            updated_at=from_iso(data["updated_at"]),
        )


STEP_OK = "ok"
STEP_PARTIAL = "partial"
STEP_FAILED = "failed"
STEP_FATAL = "fatal"
STEP_NOT_RUN = "not_run"


@dataclass
class StepReport:
    """Status, counts and error strings of one workflow step."""

    status: str = STEP_NOT_RUN
    counts: dict[str, Any] = field(default_factory=dict)
    errors: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {"status": self.status, "counts": dict(self.counts), "errors": list(self.errors)}


@dataclass(frozen=True)
class StepRecord:
    """Read-only copy of a StepReport, as kept on a finalized run."""

    status: str
    counts: Mapping[str, Any]
    errors: tuple[str, ...]

    @classmethod
    def of(cls, step: Union[StepReport, "StepRecord"]) -> "StepRecord":
        return cls(step.status, _freeze(step.counts), tuple(step.errors))

    def to_dict(self) -> dict[str, Any]:
        return {"status": self.status, "counts": _thaw(self.counts), "errors": list(self.errors)}


def _freeze(value: Any) -> Any:
    if isinstance(value, Mapping):
        return MappingProxyType({key: _freeze(item) for key, item in value.items()})
    if isinstance(value, (list, tuple)):
        return tuple(_freeze(item) for item in value)
    return value


def _thaw(value: Any) -> Any:
    if isinstance(value, Mapping):
        return {key: _thaw(item) for key, item in value.items()}
    if isinstance(value, tuple):
        return [_thaw(item) for item in value]
    return value


@dataclass(frozen=True)
class WorkflowRun:
    """Finalized record of one workflow execution. Never mutated.

    Steps passed in are copied into read-only StepRecords, so later changes
    to the orchestrator's working reports do not leak into the record.
    """

    run_id: str
    started_at: datetime
    finished_at: datetime
    success: bool
    steps: Mapping[str, StepRecord]
    error: str | None = None
    failed_step: str | None = None

    def __post_init__(self):
        frozen = MappingProxyType({name: StepRecord.of(step) for name, step in self.steps.items()})
        object.__setattr__(self, "steps", frozen)

    def to_dict(self) -> dict[str, Any]:
        return {
            "run_id": self.run_id,
            "success": self.success,
            "error": self.error,
            "failed_step": self.failed_step,
            "started_at": to_iso(self.started_at),
            "finished_at": to_iso(self.finished_at),
            "timestamp": to_iso(self.finished_at),
            "steps": {name: step.to_dict() for name, step in self.steps.items()},
        }
