"""
Core domain models and identity helpers.

This package contains data types and pure helpers that are
independent of any specific pipeline stage.
"""

from .dedup import dedup_items
from .entry import (
    canonicalize_url,
    content_hash,
    domain_of,
    short_hash,
    slugify,
    strip_markup,
    topic_identity,
    truncate_body,
)
from .types import (
    Article,
    ArticleDraft,
    EmbedErr,
    EmbedOk,
    Embedding,
    ScrapedItem,
    StepRecord,
    StepReport,
    TopicCluster,
    TopicContext,
    WorkflowRun,
)

__all__ = [
    "Article",
    "ArticleDraft",
    "EmbedErr",
    "EmbedOk",
    "Embedding",
    "ScrapedItem",
    "StepRecord",
    "StepReport",
    "TopicCluster",
    "TopicContext",
    "WorkflowRun",
    "canonicalize_url",
    "content_hash",
    "dedup_items",
    "domain_of",
    "short_hash",
    "slugify",
    "strip_markup",
    "topic_identity",
    "truncate_body",
]
