"""Abstract persistent store consumed by the pipeline stages."""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Collection, Iterable

from ..core.types import Article, Embedding, ScrapedItem, WorkflowRun


class Store(ABC):
    """Narrow read/write surface over durable state.

    Every write is independently idempotent: inserting an item whose hash
    exists, or an article whose identity exists, is a no-op that reports
    False. Backends raise StorageUnavailable when the medium cannot be used.
    """

    @abstractmethod
    def ping(self) -> None:
        """Raise StorageUnavailable if the store cannot be used."""
        raise NotImplementedError

    @abstractmethod
    def find_by_hash(self, content_hash: str) -> ScrapedItem | None:
        raise NotImplementedError

    @abstractmethod
    def insert_if_absent(self, item: ScrapedItem) -> bool:
        """Atomically insert the item; False when its hash already exists."""
        raise NotImplementedError

    @abstractmethod
    def list_recent_items(
        self,
        since: datetime,
        categories: Collection[str] | None = None,
        limit: int | None = None,
    ) -> list[ScrapedItem]:
        """Unclustered items scraped at or after ``since``.

        Ordered by ascending (scraped_at, content_hash), optionally filtered
        by category and truncated to ``limit``.
        """
        raise NotImplementedError

    @abstractmethod
    def mark_clustered(self, hashes: Iterable[str]) -> None:
        raise NotImplementedError

    @abstractmethod
    def get_embedding(self, item_hash: str, model: str) -> Embedding | None:
        raise NotImplementedError

    @abstractmethod
    def save_embedding(self, embedding: Embedding) -> None:
        raise NotImplementedError

    @abstractmethod
    def find_article_by_identity(self, identity: str) -> Article | None:
        raise NotImplementedError

    @abstractmethod
    def get_article(self, slug: str) -> Article | None:
        raise NotImplementedError

    @abstractmethod
    def insert_article(self, article: Article) -> bool:
        """Atomically insert the article.

        Returns False when an article with the same identity exists and
        raises DuplicateError when the slug belongs to another identity.
        """
        raise NotImplementedError

    @abstractmethod
    def list_articles(self) -> list[Article]:
        raise NotImplementedError

    @abstractmethod
    def increment_view_count(self, slug: str) -> int:
        """Add one view to the article and return the new count."""
        raise NotImplementedError

    @abstractmethod
    def save_run(self, run: WorkflowRun) -> None:
        raise NotImplementedError


def sort_recent(
    items: Iterable[ScrapedItem],
    since: datetime,
    categories: Collection[str] | None,
    limit: int | None,
) -> list[ScrapedItem]:
    """Shared filtering and ordering for list_recent_items implementations."""
    selected = [
        item
        for item in items
        if not item.clustered
        and item.scraped_at >= since
        and (categories is None or item.category in categories)
    ]
    selected.sort(key=lambda item: (item.scraped_at, item.content_hash))
    if limit is not None:
        selected = selected[:limit]
    return selected
