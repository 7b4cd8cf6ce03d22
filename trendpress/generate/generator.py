"""
Article Generator stage.

Turns qualifying topic clusters into at most one stored Article each.
Every topic ends in exactly one outcome: generated, skipped (not
qualifying, deferred, or already generated), rejected by validation, or
errored. Only storage unavailability escapes the stage.
"""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor, as_completed
from contextvars import copy_context
from dataclasses import dataclass, field
from datetime import datetime
import logging
from typing import Callable

from ..config import GenerationConfig
from ..core.entry import slugify, topic_identity, truncate_body
from ..core.types import Article, ArticleDraft, Fact, TopicCluster, TopicContext, utc_now
from ..errors import DuplicateError, MalformedOutput, ProviderError, StorageUnavailable, ValidationError
from ..llm.providers.base import GenerationProvider
from ..storage.base import Store
from ..trends.clustering import topic_label
from ..utils.logging import log_event
from ..utils.tracing import set_span_output, start_span
from . import enrich
from .validation import validate_topic

GENERATED = "generated"
SKIPPED = "skipped"
REJECTED = "rejected"
ERRORED = "error"

_EXCERPT_CHARS = 600


@dataclass
class TopicOutcome:
    cluster_id: str
    label: str
    status: str
    detail: str = ""
    article: Article | None = None


@dataclass
class GenerateResult:
    """Aggregate outcome of one generation stage."""

    outcomes: list[TopicOutcome] = field(default_factory=list)

    def _count(self, status: str) -> int:
        return sum(1 for outcome in self.outcomes if outcome.status == status)

    @property
    def generated(self) -> int:
        return self._count(GENERATED)

    @property
    def skipped(self) -> int:
        return self._count(SKIPPED)

    @property
    def rejected(self) -> int:
        return self._count(REJECTED)

    @property
    def articles(self) -> list[Article]:
        return [o.article for o in self.outcomes if o.status == GENERATED and o.article is not None]

    @property
    def errors(self) -> list[str]:
        return [o.detail for o in self.outcomes if o.status == ERRORED]

    @property
    def rejections(self) -> list[str]:
        return [f"{o.label}: {o.detail}" for o in self.outcomes if o.status == REJECTED]

    def counts(self) -> dict[str, int]:
        return {
            "total_topics": len(self.outcomes),
            "generated": self.generated,
            "skipped": self.skipped,
            "rejected": self.rejected,
            "errors": len(self.errors),
        }


class ArticleGenerator:
    def __init__(
        self,
        store: Store,
        provider: GenerationProvider,
        cfg: GenerationConfig,
        clock: Callable[[], datetime] = utc_now,
        logger: logging.Logger | None = None,
    ):
        self.store = store
        self.provider = provider
        self.cfg = cfg
        self.clock = clock
        self.logger = logger or logging.getLogger("trendpress.generate")

    def generate(self, clusters: list[TopicCluster]) -> GenerateResult:
        """Process every cluster and return one outcome per cluster.

        Qualifying clusters are handled by descending score up to
        ``max_topics``; the rest are skipped.
        """
        ranked = sorted(
            (c for c in clusters if c.qualifies),
            key=lambda c: (-c.score, c.window_start, c.cluster_id),
        )
        selected = ranked[: self.cfg.max_topics]
        selected_ids = {c.cluster_id for c in selected}

        outcomes: dict[str, TopicOutcome] = {}
        for cluster in clusters:
            if not cluster.qualifies:
                outcomes[cluster.cluster_id] = TopicOutcome(cluster.cluster_id, cluster.label, SKIPPED, "below cutoff")
            elif cluster.cluster_id not in selected_ids:
                outcomes[cluster.cluster_id] = TopicOutcome(cluster.cluster_id, cluster.label, SKIPPED, "deferred")

        if selected:
            with ThreadPoolExecutor(max_workers=max(1, min(self.cfg.concurrency, len(selected)))) as executor:
                future_map = {}
                for cluster in selected:
                    ctx = copy_context()
                    future_map[executor.submit(ctx.run, self._process, cluster)] = cluster.cluster_id
                for future in as_completed(future_map):
                    outcomes[future_map[future]] = future.result()

        result = GenerateResult(outcomes=[outcomes[c.cluster_id] for c in clusters])
        log_event(self.logger, "Generation finished", event="generate_finished", **result.counts())
        return result

    def _process(self, cluster: TopicCluster) -> TopicOutcome:
        try:
            return self._process_topic(cluster)
        except StorageUnavailable:
            raise
        except Exception as exc:  # noqa: BLE001
            self.logger.exception("Unexpected failure for topic %r", cluster.label)
            return TopicOutcome(cluster.cluster_id, cluster.label, ERRORED, f"{cluster.label}: unexpected: {exc}")

    def _process_topic(self, cluster: TopicCluster) -> TopicOutcome:
        _, related = topic_label(cluster.members, cluster.category)
        identity = topic_identity(cluster.category, cluster.label, cluster.window_start)

        if self.store.find_article_by_identity(identity) is not None:
            self.store.mark_clustered(cluster.member_hashes)
            return TopicOutcome(cluster.cluster_id, cluster.label, SKIPPED, "already generated")

        try:
            validate_topic(cluster, related, self.cfg.min_sources, self.cfg.known_symbols)
        except ValidationError as exc:
            log_event(self.logger, "Topic rejected", event="topic_rejected", topic=cluster.label, reason=exc.reason)
            return TopicOutcome(cluster.cluster_id, cluster.label, REJECTED, exc.reason)

        context = self._context(cluster, related)
        with start_span(
            "generate.topic",
            kind="chain",
            input_value=cluster.label,
            attributes={"topic.category": cluster.category, "topic.size": cluster.size},
        ) as span:
            try:
                draft = self.provider.generate(context)
                article = self._build_article(cluster, identity, related, draft)
            except ProviderError as exc:
                self.logger.warning("Generation failed for %r: %s", cluster.label, exc)
                return TopicOutcome(cluster.cluster_id, cluster.label, ERRORED, f"{cluster.label}: {exc.describe()}")

            if not self._store_article(article):
                return TopicOutcome(cluster.cluster_id, cluster.label, SKIPPED, "already generated")
            set_span_output(span, article.slug)

        self.store.mark_clustered(cluster.member_hashes)
        log_event(
            self.logger,
            "Article generated",
            event="article_generated",
            slug=article.slug,
            topic=cluster.label,
            score=cluster.score,
        )
        return TopicOutcome(cluster.cluster_id, cluster.label, GENERATED, article=article)

    def _store_article(self, article: Article) -> bool:
        try:
            return self.store.insert_article(article)
        except DuplicateError:
            # Slug prefix collision with another identity: fall back to the full identity.
            article.slug = f"{article.slug.rsplit('-', 1)[0]}-{article.identity}"
            try:
                return self.store.insert_article(article)
            except DuplicateError:
                return False

    def _context(self, cluster: TopicCluster, related: str | None) -> TopicContext:
        facts = [
            Fact(
                title=item.title,
                url=item.url,
                source_id=item.source_id,
                excerpt=truncate_body(item.body, _EXCERPT_CHARS),
                scraped_at=item.scraped_at,
            )
            for item in cluster.members
        ]
        return TopicContext(
            label=cluster.label,
            category=cluster.category,
            related_symbol=related,
            facts=facts,
            trending_score=cluster.score,
        )

    def _build_article(
        self,
        cluster: TopicCluster,
        identity: str,
        related: str | None,
        draft: ArticleDraft,
    ) -> Article:
        body = enrich.clean_markdown(draft.body)
        title = enrich.clean_title(draft.title)
        if not title or not body:
            raise MalformedOutput(self.provider.name, "draft has an empty title or body after cleanup")
        summary = enrich.clip(draft.summary, enrich.SUMMARY_CHARS) if draft.summary else enrich.summarize(body)
        now = self.clock()
        return Article(
            slug=f"{slugify(title, 60)}-{identity[:6]}",
            identity=identity,
            title=title,
            body=body,
            summary=summary,
            category=cluster.category,
            related_symbol=related,
            tags=draft.tags[: enrich.MAX_TAGS] or enrich.extract_keywords(f"{title} {body}", enrich.MAX_TAGS),
            entities=enrich.extract_entities(body, cluster.members),
            topics=enrich.extract_topics(cluster.category, cluster.members),
            key_points=draft.key_points or enrich.default_key_points(body),
            faqs=draft.faqs or enrich.default_faqs(title, body),
            sources=enrich.build_citations(cluster.members),
            seo=enrich.build_seo(title, body, summary),
            trending_score=cluster.score,
            created_at=now,
            updated_at=now,
        )
