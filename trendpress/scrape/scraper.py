"""
Scraper stage: fetch sources, normalize entries, persist new items.

Sources are fetched concurrently under a semaphore. Entries are then taken
in registry order until the run's item budget is spent, normalized into
ScrapedItems and checked against the store by content hash. Only items
whose atomic insert succeeds are reported as new.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from datetime import datetime
import logging
from typing import Awaitable, Callable

import httpx

from ..config import DedupConfig, ExtractConfig, ScrapeConfig
from ..core.dedup import dedup_items
from ..core.entry import canonicalize_url, content_hash, strip_markup, truncate_body
from ..core.types import ScrapedItem, utc_now
from ..errors import SourceFetchError
from ..fetch.extractor import extract_text
from ..fetch.fetcher import FetchResult, build_client, fetch_url
from ..sources import AUTO_CATEGORY, Source
from ..storage.base import Store
from ..utils.limiter import RateLimiter
from ..utils.logging import log_event
from .parsers import RawEntry, extract_metals, extract_symbols, parse_rss, parse_website


Fetcher = Callable[..., Awaitable[FetchResult]]


@dataclass
class ScrapeResult:
    """Outcome of one scrape.

    Attributes:
        items: Newly persisted items, in normalization order
        seen: Normalized items considered, including duplicates
        new: Number of newly persisted items
        errors: One "source_fetch: ..." string per failed source
        per_source: Entries taken from each source
        failed_sources: Ids of sources that could not be fetched or parsed
        attempted_sources: Number of sources attempted
    """

    items: list[ScrapedItem] = field(default_factory=list)
    seen: int = 0
    new: int = 0
    errors: list[str] = field(default_factory=list)
    per_source: dict[str, int] = field(default_factory=dict)
    failed_sources: list[str] = field(default_factory=list)
    attempted_sources: int = 0

    @property
    def success(self) -> bool:
        return len(self.failed_sources) < self.attempted_sources

    def counts(self) -> dict[str, int]:
        return {
            "sources": self.attempted_sources,
            "failed_sources": len(self.failed_sources),
            "seen": self.seen,
            "new": self.new,
            "duplicates": self.seen - self.new,
        }


class Scraper:
    def __init__(
        self,
        store: Store,
        cfg: ScrapeConfig,
        dedup_cfg: DedupConfig | None = None,
        extract_cfg: ExtractConfig | None = None,
        limiter: RateLimiter | None = None,
        fetcher: Fetcher = fetch_url,
        clock: Callable[[], datetime] = utc_now,
        logger: logging.Logger | None = None,
    ):
        self.store = store
        self.cfg = cfg
        self.dedup_cfg = dedup_cfg or DedupConfig()
        self.extract_cfg = extract_cfg or ExtractConfig()
        self.limiter = limiter
        self.fetcher = fetcher
        self.clock = clock
        self.logger = logger or logging.getLogger("trendpress.scrape")

    def scrape(self, sources: list[Source], max_items: int) -> ScrapeResult:
        return asyncio.run(self.scrape_async(sources, max_items))

    async def scrape_async(self, sources: list[Source], max_items: int) -> ScrapeResult:
        if not sources:
            raise ValueError("source list must not be empty")
        if max_items <= 0:
            raise ValueError(f"max_items must be positive, got {max_items}")

        result = ScrapeResult(attempted_sources=len(sources))
        semaphore = asyncio.Semaphore(max(1, self.cfg.concurrency))

        async with build_client(self.cfg.timeout_seconds, self.cfg.user_agent, self.cfg.trust_env) as client:
            outcomes = await asyncio.gather(
                *(self._fetch_source(client, semaphore, source) for source in sources)
            )

            # Budget is spent in registry order, not arrival order.
            selected: list[tuple[Source, RawEntry]] = []
            for source, outcome in zip(sources, outcomes):
                if isinstance(outcome, SourceFetchError):
                    result.failed_sources.append(source.id)
                    result.errors.append(outcome.describe())
                    continue
                taken = outcome[: max(0, max_items - len(selected))]
                result.per_source[source.id] = len(taken)
                selected.extend((source, entry) for entry in taken)

            bodies = await asyncio.gather(
                *(self._entry_body(client, semaphore, source, entry) for source, entry in selected)
            )

        scraped_at = self.clock()
        candidates = [
            self._normalize(source, entry, body, scraped_at)
            for (source, entry), body in zip(selected, bodies)
        ]
        result.seen = len(candidates)

        if self.dedup_cfg.enabled:
            candidates = dedup_items(candidates, self.dedup_cfg.title_similarity_threshold)

        for item in candidates:
            if self.store.find_by_hash(item.content_hash) is not None:
                continue
            if self.store.insert_if_absent(item):
                result.items.append(item)
        result.new = len(result.items)

        log_event(
            self.logger,
            "Scrape finished",
            event="scrape_finished",
            **result.counts(),
        )
        return result

    async def _fetch_source(
        self,
        client: httpx.AsyncClient,
        semaphore: asyncio.Semaphore,
        source: Source,
    ) -> list[RawEntry] | SourceFetchError:
        async with semaphore:
            fetched = await self.fetcher(
                client,
                source.fetch_target,
                timeout=self.cfg.timeout_seconds,
                retries=self.cfg.retries,
                limiter=self.limiter,
            )
        if not fetched.ok:
            self.logger.warning("Source %s failed: %s", source.id, fetched.error)
            return SourceFetchError(source.id, fetched.error or "empty response")

        try:
            if source.kind == "website":
                entries = parse_website(fetched.text, source.fetch_target, source.selectors)
            else:
                entries = parse_rss(fetched.text)
        except Exception as exc:  # noqa: BLE001
            self.logger.warning("Source %s unparseable: %s", source.id, exc)
            return SourceFetchError(source.id, f"parse error: {exc}")

        log_event(self.logger, "Source fetched", event="source_fetched", source=source.id, entries=len(entries))
        return entries

    async def _entry_body(
        self,
        client: httpx.AsyncClient,
        semaphore: asyncio.Semaphore,
        source: Source,
        entry: RawEntry,
    ) -> str:
        if not source.full_text:
            return entry.summary
        async with semaphore:
            fetched = await self.fetcher(
                client,
                entry.link,
                timeout=self.cfg.timeout_seconds,
                retries=0,
                limiter=self.limiter,
            )
        if not fetched.ok:
            self.logger.debug("Full text unavailable for %s: %s", entry.link, fetched.error)
            return entry.summary
        try:
            text = extract_text(fetched.text, self.extract_cfg.primary, self.extract_cfg.fallback)
        except Exception as exc:  # noqa: BLE001
            self.logger.warning("Extraction failed for %s: %s", entry.link, exc)
            return entry.summary
        return text or entry.summary

    def _normalize(self, source: Source, entry: RawEntry, body: str, scraped_at: datetime) -> ScrapedItem:
        url = canonicalize_url(entry.link)
        title = strip_markup(entry.title)
        text = truncate_body(strip_markup(body), self.cfg.max_body_chars)
        combined = f"{title} {text}"
        symbols = extract_symbols(combined)
        metals = extract_metals(combined)
        return ScrapedItem(
            content_hash=content_hash(source.id, url, text, self.cfg.hash_prefix_chars),
            source_id=source.id,
            url=url,
            title=title,
            body=text,
            category=_resolve_category(source.category, metals),
            scraped_at=scraped_at,
            published_at=entry.published_at,
            source_kind=source.kind,
            related_symbols=symbols,
            related_metals=metals,
        )


def _resolve_category(category: str, metals: list[str]) -> str:
    if category and category != AUTO_CATEGORY:
        return category
    return "metals" if metals else "news"
