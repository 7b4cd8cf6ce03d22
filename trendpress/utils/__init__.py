"""
Shared utility functions.

This package contains logging, tracing and rate limiting helpers used
across multiple pipeline stages.
"""

from .limiter import RateLimiter, domain_key
from .logging import (
    JsonlFormatter,
    log_event,
    redact_text,
    setup_llm_logger,
    setup_logging,
    truncate_text,
)

__all__ = [
    "setup_logging",
    "setup_llm_logger",
    "log_event",
    "redact_text",
    "truncate_text",
    "JsonlFormatter",
    "RateLimiter",
    "domain_key",
]
