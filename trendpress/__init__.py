"""
trendpress - scheduled news ingestion, trend detection and article generation.

This package scrapes configured sources into normalized items, clusters
recent items by embedding similarity into trending topics, and generates
one published article per qualifying topic.

Main entry point is the CLI via `trendpress run` command.

Example:
    $ trendpress run -c config.yaml --hours 24
"""

__all__ = ["__version__", "run_workflow", "WorkflowOrchestrator", "slugify", "content_hash"]
__version__ = "0.1.0"

from .core.entry import content_hash, slugify
from .runner import WorkflowOrchestrator, run_workflow
