"""
Command-line interface for trendpress.

Uses Typer to expose the workflow run and the source registry. Loads a
.env file so provider API keys can live outside the YAML config.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Mapping

import typer
from dotenv import load_dotenv
from rich.console import Console
from rich.table import Table

from .config import WorkflowOptions, load_config
from .runner import run_workflow
from .sources import build_sources
from .utils.logging import setup_llm_logger, setup_logging
from .utils.tracing import flush, setup_langfuse

app = typer.Typer(add_completion=False)
console = Console()

_STATUS_STYLES = {
    "ok": "green",
    "partial": "yellow",
    "failed": "red",
    "fatal": "bold red",
    "not_run": "dim",
}


@app.command()
def run(
    config: Path | None = typer.Option(None, "--config", "-c", exists=True, help="YAML config file."),
    hours: int | None = typer.Option(None, "--hours", help="Lookback window for trend detection."),
    threshold: float | None = typer.Option(None, "--threshold", help="Cosine similarity cutoff in (0, 1]."),
    max_items: int | None = typer.Option(None, "--max-items", help="Maximum items taken per scrape."),
    storage_dir: Path | None = typer.Option(None, "--storage-dir", help="Root directory of the file store."),
    log_level: str | None = typer.Option(None, "--log-level", help="Logging level."),
    report: Path | None = typer.Option(None, "--report", help="Write the run report as JSON to this path."),
):
    """Run one scrape, trend detection and generation cycle.

    Exits with status 1 when the run fails on a configuration or storage
    error. Per-source and per-topic failures are reported but do not fail
    the run.
    """
    load_dotenv()

    cfg = load_config(str(config) if config else None)

    if hours is not None:
        cfg.workflow.hours = hours
    if threshold is not None:
        cfg.workflow.clustering_threshold = threshold
    if max_items is not None:
        cfg.workflow.max_items = max_items
    if storage_dir is not None:
        cfg.storage.path = str(storage_dir)
    if log_level:
        cfg.logging.level = log_level

    try:
        options = WorkflowOptions.from_config(cfg.workflow)
    except ValueError as exc:
        raise typer.BadParameter(str(exc)) from exc

    log_dir = Path(cfg.logging.dir)
    setup_logging(cfg.logging, log_dir)
    setup_llm_logger(cfg.logging, log_dir)
    setup_langfuse(cfg.langfuse)

    try:
        result = run_workflow(cfg, options=options)
    finally:
        # Flush Langfuse traces before exit
        flush()

    table = Table(title=f"Run {result.run_id}")
    table.add_column("Step")
    table.add_column("Status")
    table.add_column("Counts")
    table.add_column("Errors", justify="right")
    for name, step in result.steps.items():
        style = _STATUS_STYLES.get(step.status, "")
        counts = ", ".join(f"{k}={v}" for k, v in step.counts.items() if not isinstance(v, Mapping))
        table.add_row(name, f"[{style}]{step.status}[/{style}]" if style else step.status, counts, str(len(step.errors)))
    console.print(table)

    if report is not None:
        report.parent.mkdir(parents=True, exist_ok=True)
        report.write_text(json.dumps(result.to_dict(), ensure_ascii=False, indent=2), encoding="utf-8")
        console.print(f"Report written: {report}")

    if not result.success:
        console.print(f"[bold red]Run failed[/bold red] at {result.failed_step}: {result.error}")
        raise typer.Exit(code=1)


@app.command()
def sources(
    config: Path | None = typer.Option(None, "--config", "-c", exists=True, help="YAML config file."),
):
    """List the configured source registry."""
    cfg = load_config(str(config) if config else None)
    table = Table(title="Sources")
    for column in ("Id", "Kind", "Category", "Enabled", "Target"):
        table.add_column(column)
    for source in build_sources(cfg.sources):
        table.add_row(source.id, source.kind, source.category, "yes" if source.enabled else "no", source.fetch_target)
    console.print(table)


if __name__ == "__main__":
    app()
