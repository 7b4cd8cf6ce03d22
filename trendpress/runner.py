"""
Workflow orchestration for trendpress.

This module coordinates one run end to end:
1. Preflight: build the store, the source registry and both providers
2. Scrape every enabled source into the store
3. Detect trending topics (news and market branches in parallel)
4. Generate at most one article per qualifying topic
5. Finalize: freeze the run report and save it

Per-unit failures are recorded on the owning step. Only configuration
and storage errors invalidate the run.
"""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from contextvars import copy_context
from dataclasses import replace
from datetime import datetime
from enum import Enum
import logging
from typing import Any, Callable
from uuid import uuid4

from .config import AppConfig, WorkflowOptions
from .core.types import (
    STEP_FAILED,
    STEP_FATAL,
    STEP_OK,
    STEP_PARTIAL,
    StepReport,
    TopicCluster,
    WorkflowRun,
    utc_now,
)
from .embed import Embedder
from .embed.providers import EmbeddingProvider, create_embedding_provider
from .errors import FATAL_ERRORS, ConfigurationError, StorageUnavailable, TrendPressError
from .fetch.fetcher import fetch_url
from .generate import ArticleGenerator
from .llm.providers import GenerationProvider, create_provider
from .scrape import Scraper
from .scrape.scraper import Fetcher
from .sources import Source, build_sources, enabled_sources
from .storage import Store, create_store
from .trends import TrendDetector, TrendResult
from .utils.limiter import RateLimiter
from .utils.logging import log_event
from .utils.tracing import record_span_error, set_span_output, start_span

STEPS = ("scrape", "trends", "generate")


class RunState(str, Enum):
    IDLE = "idle"
    SCRAPING = "scraping"
    DETECTING_TRENDS = "detecting_trends"
    GENERATING = "generating"
    FINALIZING = "finalizing"
    DONE = "done"
    FAILED = "failed"


class _FatalStep(Exception):
    def __init__(self, step: str, error: TrendPressError):
        super().__init__(str(error))
        self.step = step
        self.error = error


class WorkflowOrchestrator:
    """Runs scrape, trend detection and generation in sequence.

    Collaborators left as None are built from ``cfg`` during preflight.
    The orchestrator owns one RateLimiter shared by the scraper and both
    providers.
    """

    def __init__(
        self,
        cfg: AppConfig,
        options: WorkflowOptions | None = None,
        store: Store | None = None,
        embedding_provider: EmbeddingProvider | None = None,
        generation_provider: GenerationProvider | None = None,
        fetcher: Fetcher | None = None,
        limiter: RateLimiter | None = None,
        clock: Callable[[], datetime] = utc_now,
        logger: logging.Logger | None = None,
    ):
        self.cfg = cfg
        self.options = options or WorkflowOptions.from_config(cfg.workflow)
        self.limiter = limiter or RateLimiter.from_config(cfg.rate_limit)
        self.clock = clock
        self.logger = logger or logging.getLogger("trendpress.workflow")
        self.state = RunState.IDLE
        self._store = store
        self._embedding_provider = embedding_provider
        self._generation_provider = generation_provider
        self._fetcher = fetcher or fetch_url

    def run(self) -> WorkflowRun:
        run_id = uuid4().hex[:12]
        started_at = self.clock()
        steps = {name: StepReport() for name in STEPS}
        store: Store | None = None

        with start_span(
            "trendpress.run",
            kind="chain",
            input_value={"run_id": run_id},
            attributes={
                "hours": self.options.hours,
                "threshold": self.options.clustering_threshold,
                "max_items": self.options.max_items,
            },
        ) as run_span:
            log_event(
                self.logger,
                "Workflow start",
                event="workflow_start",
                run_id=run_id,
                hours=self.options.hours,
                threshold=self.options.clustering_threshold,
                max_items=self.options.max_items,
            )
            try:
                store, sources, embedding_provider, generation_provider = self._preflight()

                self.state = RunState.SCRAPING
                self._run_step("scrape", steps, self._scrape, store, sources)

                self.state = RunState.DETECTING_TRENDS
                clusters = self._run_step("trends", steps, self._detect, store, embedding_provider) or []

                self.state = RunState.GENERATING
                self._run_step("generate", steps, self._generate, store, generation_provider, clusters)
            except _FatalStep as fatal:
                self.state = RunState.FAILED
                steps[fatal.step].status = STEP_FATAL
                if fatal.error.describe() not in steps[fatal.step].errors:
                    steps[fatal.step].errors.append(fatal.error.describe())
                record_span_error(run_span, fatal.error)
                self.logger.error("Workflow failed at %s: %s", fatal.step, fatal.error.describe())
                run = self._finalize(store or self._store, run_id, started_at, steps, fatal)
            else:
                self.state = RunState.FINALIZING
                run = self._finalize(store, run_id, started_at, steps, None)
                self.state = RunState.DONE if run.success else RunState.FAILED

            set_span_output(run_span, {"success": run.success, "failed_step": run.failed_step})
            log_event(
                self.logger,
                "Workflow finished",
                event="workflow_finished",
                run_id=run_id,
                success=run.success,
                failed_step=run.failed_step,
                steps={name: step.status for name, step in steps.items()},
            )
        return run

    def _preflight(self) -> tuple[Store, list[Source], EmbeddingProvider, GenerationProvider]:
        step = "scrape"
        try:
            store = self._store or create_store(self.cfg.storage)
            store.ping()
            # _finalize saves the run here even when a later preflight check fails.
            self._store = store
            try:
                sources = enabled_sources(build_sources(self.cfg.sources))
            except ValueError as exc:
                raise ConfigurationError(str(exc)) from exc
            if not sources:
                raise ConfigurationError("No enabled sources configured")

            step = "trends"
            embedding_provider = self._embedding_provider or create_embedding_provider(
                self.cfg.embedding, self.limiter
            )

            step = "generate"
            llm_logger = logging.getLogger("trendpress.llm") if self.cfg.logging.llm_log_enabled else None
            generation_provider = self._generation_provider or create_provider(
                self.cfg.generation, self.cfg.logging, llm_logger, self.limiter
            )
        except FATAL_ERRORS as exc:
            raise _FatalStep(step, exc) from exc
        return store, sources, embedding_provider, generation_provider

    def _run_step(self, name: str, steps: dict[str, StepReport], func: Callable[..., Any], *args: Any) -> Any:
        report = steps[name]
        with start_span(f"trendpress.{name}", kind="chain") as span:
            try:
                value = func(report, *args)
            except FATAL_ERRORS as exc:
                record_span_error(span, exc)
                raise _FatalStep(name, exc) from exc
            except Exception as exc:  # noqa: BLE001
                report.status = STEP_FAILED
                report.errors.append(f"unexpected: {exc}")
                record_span_error(span, exc)
                self.logger.exception("Step %s failed", name)
                return None
            set_span_output(span, {"status": report.status, "counts": report.counts})
        return value

    def _scrape(self, report: StepReport, store: Store, sources: list[Source]) -> None:
        scraper = Scraper(
            store,
            self.cfg.scrape,
            dedup_cfg=self.cfg.dedup,
            extract_cfg=self.cfg.extract,
            limiter=self.limiter,
            fetcher=self._fetcher,
            clock=self.clock,
        )
        result = scraper.scrape(sources, self.options.max_items)
        report.counts = result.counts()
        report.errors = list(result.errors)
        if not result.failed_sources:
            report.status = STEP_OK
        elif result.success:
            report.status = STEP_PARTIAL
        else:
            report.status = STEP_FAILED

    def _detect(self, report: StepReport, store: Store, provider: EmbeddingProvider) -> list[TopicCluster]:
        embedder = Embedder(
            provider,
            batch_size=self.cfg.embedding.batch_size,
            concurrency=self.cfg.embedding.concurrency,
        )
        detector = TrendDetector(store, embedder, self.cfg.trends, clock=self.clock)
        market = list(self.cfg.trends.market_categories)
        branches = {
            "news": {"exclude_categories": market},
            "market": {"categories": market},
        }

        def detect_branch(kwargs: dict[str, Any]) -> TrendResult:
            return detector.detect(self.options.hours, self.options.clustering_threshold, **kwargs)

        with ThreadPoolExecutor(max_workers=len(branches)) as executor:
            futures = {
                name: executor.submit(copy_context().run, detect_branch, kwargs)
                for name, kwargs in branches.items()
            }

        combined = TrendResult()
        by_branch: dict[str, Any] = {}
        failed_branches = 0
        for name, future in futures.items():
            try:
                branch = future.result()
            except StorageUnavailable:
                raise
            except Exception as exc:  # noqa: BLE001
                failed_branches += 1
                report.errors.append(f"{name}: {exc}")
                self.logger.exception("Trend branch %s failed", name)
                continue
            by_branch[name] = branch.counts()
            combined.merge(branch)

        report.counts = {**combined.counts(), "by_branch": by_branch}
        report.errors.extend(combined.errors)
        if failed_branches == len(branches):
            report.status = STEP_FAILED
        elif report.errors:
            report.status = STEP_PARTIAL
        else:
            report.status = STEP_OK
        return combined.clusters

    def _generate(
        self,
        report: StepReport,
        store: Store,
        provider: GenerationProvider,
        clusters: list[TopicCluster],
    ) -> None:
        generator = ArticleGenerator(store, provider, self.cfg.generation, clock=self.clock)
        result = generator.generate(clusters)
        report.counts = result.counts()
        report.errors = list(result.errors)
        if not report.errors:
            report.status = STEP_OK
        elif result.generated:
            report.status = STEP_PARTIAL
        else:
            report.status = STEP_FAILED

    def _finalize(
        self,
        store: Store | None,
        run_id: str,
        started_at: datetime,
        steps: dict[str, StepReport],
        fatal: _FatalStep | None,
    ) -> WorkflowRun:
        run = WorkflowRun(
            run_id=run_id,
            started_at=started_at,
            finished_at=self.clock(),
            success=fatal is None,
            steps=steps,
            error=fatal.error.describe() if fatal else None,
            failed_step=fatal.step if fatal else None,
        )
        if store is None:
            return run
        try:
            store.save_run(run)
        except StorageUnavailable as exc:
            self.logger.error("Could not save run %s: %s", run_id, exc.describe())
            if run.success:
                run = replace(run, success=False, error=exc.describe(), failed_step="finalize")
        return run


def run_workflow(cfg: AppConfig, **kwargs: Any) -> WorkflowRun:
    """Build an orchestrator from ``cfg`` and execute one run."""
    return WorkflowOrchestrator(cfg, **kwargs).run()


__all__ = ["RunState", "STEPS", "WorkflowOrchestrator", "run_workflow"]
