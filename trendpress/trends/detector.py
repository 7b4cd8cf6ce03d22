"""
Trend Clusterer stage: window selection, embedding, clustering, scoring.

Items that cannot be embedded this run are left out of every cluster and
stay unclustered in the store, so the next run picks them up again.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime, timedelta
import logging
from typing import Callable, Collection

from ..config import TrendsConfig
from ..core.entry import short_hash
from ..core.types import EmbedOk, Embedding, ScrapedItem, TopicCluster, utc_now
from ..embed.embedder import Embedder
from ..storage.base import Store
from ..utils.logging import log_event
from .clustering import centroid_of, cluster_vectors, topic_label, trend_score


@dataclass
class TrendResult:
    """Clusters found in one window plus embedding bookkeeping."""

    clusters: list[TopicCluster] = field(default_factory=list)
    items_considered: int = 0
    embeddings_cached: int = 0
    embeddings_computed: int = 0
    embedding_failures: int = 0
    errors: list[str] = field(default_factory=list)

    @property
    def qualifying(self) -> list[TopicCluster]:
        return [cluster for cluster in self.clusters if cluster.qualifies]

    def counts(self) -> dict[str, int]:
        return {
            "items": self.items_considered,
            "embeddings_cached": self.embeddings_cached,
            "embeddings_computed": self.embeddings_computed,
            "embedding_failures": self.embedding_failures,
            "clusters": len(self.clusters),
            "qualifying": len(self.qualifying),
        }

    def merge(self, other: TrendResult) -> None:
        self.clusters.extend(other.clusters)
        self.items_considered += other.items_considered
        self.embeddings_cached += other.embeddings_cached
        self.embeddings_computed += other.embeddings_computed
        self.embedding_failures += other.embedding_failures
        self.errors.extend(other.errors)


class TrendDetector:
    def __init__(
        self,
        store: Store,
        embedder: Embedder,
        cfg: TrendsConfig,
        clock: Callable[[], datetime] = utc_now,
        logger: logging.Logger | None = None,
    ):
        self.store = store
        self.embedder = embedder
        self.cfg = cfg
        self.clock = clock
        self.logger = logger or logging.getLogger("trendpress.trends")

    def detect(
        self,
        hours: int,
        threshold: float,
        categories: Collection[str] | None = None,
        exclude_categories: Collection[str] | None = None,
    ) -> TrendResult:
        """Cluster and score unclustered items from the last ``hours``.

        Args:
            hours: Lookback window
            threshold: Cosine similarity cutoff in (0, 1]
            categories: Only consider these categories (all when None)
            exclude_categories: Skip these categories

        Returns:
            TrendResult with clusters grouped per category, in formation order
        """
        if not 0.0 < threshold <= 1.0:
            raise ValueError(f"threshold must be in (0, 1], got {threshold}")
        now = self.clock()
        items = self.store.list_recent_items(now - timedelta(hours=hours), categories=categories)
        if exclude_categories:
            items = [item for item in items if item.category not in exclude_categories]
        items = items[: self.cfg.max_items]

        result = TrendResult(items_considered=len(items))
        vectors = self._vectors_for(items, result)

        by_category: dict[str, list[ScrapedItem]] = defaultdict(list)
        for item in items:
            if item.content_hash in vectors:
                by_category[item.category].append(item)

        for category in sorted(by_category):
            members = by_category[category]
            groups = cluster_vectors([vectors[item.content_hash] for item in members], threshold)
            for indexes in groups:
                cluster_items = [members[i] for i in indexes]
                result.clusters.append(
                    self._build_cluster(category, cluster_items, [vectors[i.content_hash] for i in cluster_items], now)
                )

        log_event(self.logger, "Trend detection finished", event="trends_finished", **result.counts())
        return result

    def _vectors_for(self, items: list[ScrapedItem], result: TrendResult) -> dict[str, list[float]]:
        model = self.embedder.model
        vectors: dict[str, list[float]] = {}
        missing: list[ScrapedItem] = []
        dim: int | None = None

        for item in items:
            cached = self.store.get_embedding(item.content_hash, model)
            if cached is not None and (dim is None or cached.dimension == dim):
                dim = cached.dimension
                vectors[item.content_hash] = cached.vector
            else:
                missing.append(item)
        result.embeddings_cached = len(vectors)

        failures: dict[tuple[str, str], int] = defaultdict(int)
        outcomes = self.embedder.embed_texts([item.text for item in missing], expected_dim=dim)
        for item, outcome in zip(missing, outcomes):
            if isinstance(outcome, EmbedOk):
                vectors[item.content_hash] = outcome.vector
                self.store.save_embedding(Embedding(item.content_hash, outcome.vector, model))
                result.embeddings_computed += 1
            else:
                failures[(outcome.kind, outcome.message)] += 1
                result.embedding_failures += 1

        for (kind, message), count in sorted(failures.items()):
            result.errors.append(f"provider: {count} item(s) not embedded ({kind}): {message}")
        return vectors

    def _build_cluster(
        self,
        category: str,
        members: list[ScrapedItem],
        vectors: list[list[float]],
        now: datetime,
    ) -> TopicCluster:
        times = [item.scraped_at for item in members]
        score = trend_score(times, now, self.cfg.half_life_hours)
        label, _ = topic_label(members, category)
        return TopicCluster(
            cluster_id=short_hash("|".join(sorted(item.content_hash for item in members))),
            category=category,
            members=members,
            centroid=centroid_of(vectors),
            score=score,
            window_start=min(times),
            window_end=max(times),
            label=label,
            qualifies=len(members) >= self.cfg.min_cluster_size and score >= self.cfg.min_trend_score,
        )
