"""Process-local store, used for tests and dry runs."""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime
import threading
from typing import Collection, Iterable

from ..core.types import Article, Embedding, ScrapedItem, WorkflowRun, utc_now
from ..errors import DuplicateError
from .base import Store, sort_recent


class MemoryStore(Store):
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._items: dict[str, ScrapedItem] = {}
        self._embeddings: dict[tuple[str, str], Embedding] = {}
        self._articles: dict[str, Article] = {}
        self._slugs: dict[str, str] = {}
        self.runs: list[WorkflowRun] = []

    def ping(self) -> None:
        return None

    def find_by_hash(self, content_hash: str) -> ScrapedItem | None:
        with self._lock:
            item = self._items.get(content_hash)
            return replace(item) if item else None

    def insert_if_absent(self, item: ScrapedItem) -> bool:
        with self._lock:
            if item.content_hash in self._items:
                return False
            self._items[item.content_hash] = replace(item)
            return True

    def list_recent_items(
        self,
        since: datetime,
        categories: Collection[str] | None = None,
        limit: int | None = None,
    ) -> list[ScrapedItem]:
        with self._lock:
            snapshot = [replace(item) for item in self._items.values()]
        return sort_recent(snapshot, since, categories, limit)

    def mark_clustered(self, hashes: Iterable[str]) -> None:
        with self._lock:
            for item_hash in hashes:
                item = self._items.get(item_hash)
                if item is not None:
                    item.clustered = True

    def get_embedding(self, item_hash: str, model: str) -> Embedding | None:
        with self._lock:
            return self._embeddings.get((item_hash, model))

    def save_embedding(self, embedding: Embedding) -> None:
        with self._lock:
            self._embeddings[(embedding.item_hash, embedding.model)] = embedding

    def find_article_by_identity(self, identity: str) -> Article | None:
        with self._lock:
            return self._articles.get(identity)

    def get_article(self, slug: str) -> Article | None:
        with self._lock:
            identity = self._slugs.get(slug)
            return self._articles.get(identity) if identity else None

    def insert_article(self, article: Article) -> bool:
        with self._lock:
            if article.identity in self._articles:
                return False
            if article.slug in self._slugs:
                raise DuplicateError(f"slug already taken: {article.slug}")
            self._articles[article.identity] = article
            self._slugs[article.slug] = article.identity
            return True

    def list_articles(self) -> list[Article]:
        with self._lock:
            return sorted(self._articles.values(), key=lambda a: (a.created_at, a.slug))

    def increment_view_count(self, slug: str) -> int:
        with self._lock:
            identity = self._slugs.get(slug)
            if identity is None:
                raise KeyError(slug)
            article = self._articles[identity]
            article.view_count += 1
            article.updated_at = utc_now()
            return article.view_count

    def save_run(self, run: WorkflowRun) -> None:
        with self._lock:
            self.runs.append(run)
