"""JSON-file store with atomic create-if-absent semantics.

Layout under the root directory:

    items/{content_hash}.json          one ScrapedItem, never rewritten
    clustered/{content_hash}           marker set once the item is consumed
    embeddings/{model_key}/{hash}.json one Embedding per item and model
    articles/{identity}.json           one Article per topic identity
    slugs/{slug}                       slug reservation holding the identity
    runs/{run_id}.json                 finalized WorkflowRun reports

Exclusive creation writes a temporary file and hard-links it into place, so
a record is either absent or complete, and only one concurrent writer wins.
"""

from __future__ import annotations

from datetime import datetime
import json
import logging
import os
from pathlib import Path
import tempfile
import threading
from typing import Any, Collection, Iterable

from ..core.entry import short_hash, slugify
from ..core.types import Article, Embedding, ScrapedItem, WorkflowRun, utc_now
from ..errors import DuplicateError, StorageUnavailable
from .base import Store, sort_recent


logger = logging.getLogger(__name__)


class FileStore(Store):
    def __init__(self, root: Path | str):
        self.root = Path(root)
        self._lock = threading.Lock()

    @property
    def items_dir(self) -> Path:
        return self.root / "items"

    @property
    def clustered_dir(self) -> Path:
        return self.root / "clustered"

    @property
    def embeddings_dir(self) -> Path:
        return self.root / "embeddings"

    @property
    def articles_dir(self) -> Path:
        return self.root / "articles"

    @property
    def slugs_dir(self) -> Path:
        return self.root / "slugs"

    @property
    def runs_dir(self) -> Path:
        return self.root / "runs"

    def ping(self) -> None:
        try:
            for folder in (
                self.items_dir,
                self.clustered_dir,
                self.embeddings_dir,
                self.articles_dir,
                self.slugs_dir,
                self.runs_dir,
            ):
                folder.mkdir(parents=True, exist_ok=True)
            marker = self.root / ".write-check"
            marker.write_text("ok", encoding="utf-8")
            marker.unlink()
        except OSError as exc:
            raise StorageUnavailable(f"store root not writable: {self.root}: {exc}") from exc

    # Items

    def find_by_hash(self, content_hash: str) -> ScrapedItem | None:
        data = self._read_json(self.items_dir / f"{content_hash}.json")
        if data is None:
            return None
        item = ScrapedItem.from_dict(data)
        item.clustered = self._exists(self.clustered_dir / content_hash)
        return item

    def insert_if_absent(self, item: ScrapedItem) -> bool:
        return self._create_exclusive(self.items_dir / f"{item.content_hash}.json", item.to_dict())

    def list_recent_items(
        self,
        since: datetime,
        categories: Collection[str] | None = None,
        limit: int | None = None,
    ) -> list[ScrapedItem]:
        items: list[ScrapedItem] = []
        try:
            paths = sorted(self.items_dir.glob("*.json"))
            clustered = {path.name for path in self.clustered_dir.iterdir()} if self.clustered_dir.exists() else set()
        except OSError as exc:
            raise StorageUnavailable(f"cannot list items: {exc}") from exc
        for path in paths:
            data = self._read_json(path)
            if data is None:
                continue
            item = ScrapedItem.from_dict(data)
            item.clustered = item.content_hash in clustered
            items.append(item)
        return sort_recent(items, since, categories, limit)

    def mark_clustered(self, hashes: Iterable[str]) -> None:
        try:
            self.clustered_dir.mkdir(parents=True, exist_ok=True)
            for item_hash in hashes:
                (self.clustered_dir / item_hash).touch(exist_ok=True)
        except OSError as exc:
            raise StorageUnavailable(f"cannot mark items clustered: {exc}") from exc

    # Embeddings

    def get_embedding(self, item_hash: str, model: str) -> Embedding | None:
        data = self._read_json(self._embedding_path(item_hash, model))
        if data is None:
            return None
        return Embedding.from_dict(data)

    def save_embedding(self, embedding: Embedding) -> None:
        self._write_replace(self._embedding_path(embedding.item_hash, embedding.model), embedding.to_dict())

    def _embedding_path(self, item_hash: str, model: str) -> Path:
        model_key = f"{slugify(model, 40)}-{short_hash(model, 8)}"
        return self.embeddings_dir / model_key / f"{item_hash}.json"

    # Articles

    def find_article_by_identity(self, identity: str) -> Article | None:
        data = self._read_json(self.articles_dir / f"{identity}.json")
        return Article.from_dict(data) if data is not None else None

    def get_article(self, slug: str) -> Article | None:
        identity = self._read_text(self.slugs_dir / slug)
        if identity is None:
            return None
        return self.find_article_by_identity(identity)

    def insert_article(self, article: Article) -> bool:
        article_path = self.articles_dir / f"{article.identity}.json"
        if not self._create_exclusive(article_path, article.to_dict()):
            return False
        if not self._create_exclusive(self.slugs_dir / article.slug, article.identity):
            try:
                article_path.unlink()
            except OSError as exc:
                raise StorageUnavailable(f"cannot roll back article {article.identity}: {exc}") from exc
            raise DuplicateError(f"slug already taken: {article.slug}")
        return True

    def list_articles(self) -> list[Article]:
        try:
            paths = sorted(self.articles_dir.glob("*.json"))
        except OSError as exc:
            raise StorageUnavailable(f"cannot list articles: {exc}") from exc
        articles = []
        for path in paths:
            data = self._read_json(path)
            if data is not None:
                articles.append(Article.from_dict(data))
        return sorted(articles, key=lambda a: (a.created_at, a.slug))

    def increment_view_count(self, slug: str) -> int:
        # Serialized per process; cross-process increments may race.
        with self._lock:
            article = self.get_article(slug)
            if article is None:
                raise KeyError(slug)
            article.view_count += 1
            article.updated_at = utc_now()
            self._write_replace(self.articles_dir / f"{article.identity}.json", article.to_dict())
            return article.view_count

    # Runs

    def save_run(self, run: WorkflowRun) -> None:
        self._write_replace(self.runs_dir / f"{run.run_id}.json", run.to_dict())

    # File primitives

    def _create_exclusive(self, path: Path, payload: Any) -> bool:
        text = payload if isinstance(payload, str) else json.dumps(payload, ensure_ascii=False, indent=2)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=".tmp-")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    f.write(text)
                os.link(tmp_name, path)
            except FileExistsError:
                return False
            finally:
                os.unlink(tmp_name)
        except OSError as exc:
            raise StorageUnavailable(f"cannot write {path}: {exc}") from exc
        return True

    def _write_replace(self, path: Path, payload: dict[str, Any]) -> None:
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=".tmp-")
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(payload, f, ensure_ascii=False, indent=2)
            os.replace(tmp_name, path)
        except OSError as exc:
            raise StorageUnavailable(f"cannot write {path}: {exc}") from exc

    def _read_json(self, path: Path) -> dict[str, Any] | None:
        text = self._read_text(path)
        if text is None:
            return None
        try:
            return json.loads(text)
        except json.JSONDecodeError:
            logger.warning("Skipping corrupt record %s", path)
            return None

    def _read_text(self, path: Path) -> str | None:
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except OSError as exc:
            raise StorageUnavailable(f"cannot read {path}: {exc}") from exc

    def _exists(self, path: Path) -> bool:
        try:
            return path.exists()
        except OSError as exc:
            raise StorageUnavailable(f"cannot stat {path}: {exc}") from exc
