"""
Configuration management using YAML files and dataclasses.

This module defines all configuration dataclasses and provides loading
from YAML files with defaults. Configuration sections:
- WorkflowConfig: Per-run options (clustering threshold, lookback, scrape cap)
- ScrapeConfig: Source fetching and normalization settings
- ExtractConfig: Full-text extraction settings
- DedupConfig: In-batch title deduplication settings
- EmbeddingConfig: Embedding provider settings
- TrendsConfig: Clustering and trend scoring settings
- GenerationConfig: Generation provider and topic validation settings
- StorageConfig: Persistent store backend
- RateLimitConfig: Outbound request limiter capacity
- LoggingConfig: Logging behavior
- LangfuseConfig: Langfuse tracing settings
- AppConfig: Root configuration container
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
import os
from typing import Any

import yaml


@dataclass
class WorkflowConfig:
    """Options recognized by a single workflow run.

    Attributes:
        clustering_threshold: Cosine similarity cutoff in (0, 1]
        hours: Lookback window for trend detection
        max_items: Cap on items fetched and normalized across all sources
    """

    clustering_threshold: float = 0.75
    hours: int = 24
    max_items: int = 100


@dataclass
class ScrapeConfig:
    """Configuration for source fetching and item normalization.

    Attributes:
        concurrency: Number of sources fetched at once
        timeout_seconds: Deadline for each HTTP request
        retries: Retry attempts for transport errors and 5xx responses
        trust_env: Whether to respect system proxy settings
        user_agent: HTTP User-Agent header string
        max_body_chars: Bodies are truncated to this length
        hash_prefix_chars: Body prefix length included in the content hash
    """

    concurrency: int = 4
    timeout_seconds: float = 15.0
    retries: int = 1
    trust_env: bool = True
    user_agent: str = (
        "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) "
        "AppleWebKit/537.36 (KHTML, like Gecko) "
        "Chrome/120.0.0.0 Safari/537.36"
    )
    max_body_chars: int = 2000
    hash_prefix_chars: int = 500


@dataclass
class ExtractConfig:
    """Configuration for full-text extraction of linked pages.

    Attributes:
        primary: Primary extraction method ("trafilatura", "readability", or "bs4")
        fallback: List of fallback methods to try if primary fails
    """

    primary: str = "trafilatura"
    fallback: list[str] = field(default_factory=lambda: ["readability", "bs4"])


@dataclass
class DedupConfig:
    """Configuration for in-batch deduplication.

    Attributes:
        enabled: Whether to drop near-identical titles within one scrape
        title_similarity_threshold: Fuzzy match threshold (0-100) for title similarity
    """

    enabled: bool = True
    title_similarity_threshold: int = 92


@dataclass
class EmbeddingConfig:
    """Configuration for the embedding provider.

    Attributes:
        name: Provider name ("huggingface" or "gemini")
        model: Model identifier, also recorded as the embedding model version
        api_key_env: Environment variable name containing the API key
        base_url: Base URL for the provider API
        api_key: Optional inline API key (overrides env var)
        batch_size: Texts per provider request
        concurrency: Number of batches in flight
        timeout_seconds: Deadline for each provider request
        trust_env: Whether to respect system proxy settings for API requests
    """

    name: str = "huggingface"
    model: str = "sentence-transformers/all-mpnet-base-v2"
    api_key_env: str = "HUGGINGFACE_API_KEY"
    base_url: str = "https://router.huggingface.co"
    api_key: str | None = None
    batch_size: int = 10
    concurrency: int = 2
    timeout_seconds: float = 30.0
    trust_env: bool = True


@dataclass
class TrendsConfig:
    """Configuration for trend clustering and scoring.

    Attributes:
        min_cluster_size: Clusters smaller than this never reach generation
        min_trend_score: Score cutoff for generation
        half_life_hours: Recency decay half-life used by the score
        max_items: Upper bound on items read from the window per category branch
        market_categories: Categories handled by the market branch
    """

    min_cluster_size: int = 2
    min_trend_score: float = 1.5
    half_life_hours: float = 12.0
    max_items: int = 200
    market_categories: list[str] = field(default_factory=lambda: ["stocks", "metals", "sharia"])


@dataclass
class GenerationConfig:
    """Configuration for article generation.

    Attributes:
        name: Provider name ("gemini" or "openai")
        model: Model identifier
        api_key_env: Environment variable name containing the API key
        base_url: Base URL for the provider API
        api_key: Optional inline API key (overrides env var)
        trust_env: Whether to respect system proxy settings for API requests
        timeout_seconds: Deadline for each provider request
        temperature: Sampling temperature
        max_output_tokens: Output token cap per article
        max_topics: Qualifying topics processed per run
        concurrency: Topics generated at once
        max_context_chars: Characters of source facts sent to the provider
        min_sources: Distinct sources a topic needs to pass validation
        known_symbols: Optional allow-list for symbol topics
    """

    name: str = "gemini"
    model: str = "gemini-2.5-flash"
    api_key_env: str = "GOOGLE_API_KEY"
    base_url: str = "https://generativelanguage.googleapis.com"
    api_key: str | None = None
    trust_env: bool = True
    timeout_seconds: float = 60.0
    temperature: float = 0.4
    max_output_tokens: int = 4096
    max_topics: int = 10
    concurrency: int = 2
    max_context_chars: int = 6000
    min_sources: int = 2
    known_symbols: list[str] = field(default_factory=list)


@dataclass
class StorageConfig:
    """Configuration for the persistent store.

    Attributes:
        backend: "file" for JSON files on disk, "memory" for a process-local store
        path: Root directory of the file backend
    """

    backend: str = "file"
    path: str = "data"


@dataclass
class RateLimitConfig:
    """Configuration for the outbound request limiter.

    Attributes:
        max_requests: Requests allowed per key within the window
        window_seconds: Sliding window length
        max_keys: Tracked keys before the least recently used one is evicted
    """

    max_requests: int = 30
    window_seconds: float = 60.0
    max_keys: int = 256


@dataclass
class LoggingConfig:
    """Configuration for logging behavior.

    Attributes:
        level: Logging level ("DEBUG", "INFO", "WARNING", "ERROR")
        console: Whether to log to console
        file: Whether to log to file
        format: Log file format ("jsonl" or "plain")
        dir: Directory for log files
        filename: Name of the main log file
        llm_log_enabled: Whether to enable separate provider interaction logging
        llm_log_detail: Provider log detail level ("response_only", "prompt_response")
        llm_log_redaction: Redaction mode for provider logs ("none", "redact_content", "redact_urls")
        llm_log_file: Name of the provider log file
    """

    level: str = "INFO"
    console: bool = True
    file: bool = True
    format: str = "jsonl"
    dir: str = "logs"
    filename: str = "run.jsonl"
    llm_log_enabled: bool = True
    llm_log_detail: str = "response_only"
    llm_log_redaction: str = "redact_urls"
    llm_log_file: str = "llm.jsonl"


@dataclass
class LangfuseConfig:
    """Configuration for Langfuse tracing.

    Attributes:
        enabled: Whether to enable Langfuse tracing
        public_key: Langfuse public key (optional)
        secret_key: Langfuse secret key (optional)
        host: Langfuse host URL (optional)
        environment: Langfuse environment label (optional)
        release: Langfuse release identifier (optional)
        redaction: Redaction mode for prompt/response payloads
        max_text_chars: Maximum characters for prompt/response payloads
    """

    enabled: bool = False
    public_key: str | None = None
    secret_key: str | None = None
    host: str | None = None
    environment: str | None = None
    release: str | None = None
    redaction: str = "redact_urls"
    max_text_chars: int = 20000


@dataclass
class AppConfig:
    """Root configuration container aggregating all config sections."""

    workflow: WorkflowConfig = field(default_factory=WorkflowConfig)
    scrape: ScrapeConfig = field(default_factory=ScrapeConfig)
    extract: ExtractConfig = field(default_factory=ExtractConfig)
    dedup: DedupConfig = field(default_factory=DedupConfig)
    embedding: EmbeddingConfig = field(default_factory=EmbeddingConfig)
    trends: TrendsConfig = field(default_factory=TrendsConfig)
    generation: GenerationConfig = field(default_factory=GenerationConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)
    rate_limit: RateLimitConfig = field(default_factory=RateLimitConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    langfuse: LangfuseConfig = field(default_factory=LangfuseConfig)
    sources: list[dict[str, Any]] = field(default_factory=list)


@dataclass(frozen=True)
class WorkflowOptions:
    """Immutable per-run options, built once and passed down to every stage."""

    clustering_threshold: float = 0.75
    hours: int = 24
    max_items: int = 100

    def __post_init__(self) -> None:
        if not 0.0 < self.clustering_threshold <= 1.0:
            raise ValueError(f"clustering_threshold must be in (0, 1], got {self.clustering_threshold}")
        if self.hours <= 0:
            raise ValueError(f"hours must be positive, got {self.hours}")
        if self.max_items <= 0:
            raise ValueError(f"max_items must be positive, got {self.max_items}")

    @classmethod
    def from_config(cls, cfg: WorkflowConfig) -> WorkflowOptions:
        return cls(
            clustering_threshold=float(cfg.clustering_threshold),
            hours=int(cfg.hours),
            max_items=int(cfg.max_items),
        )


_SECTIONS: dict[str, type] = {
    "workflow": WorkflowConfig,
    "scrape": ScrapeConfig,
    "extract": ExtractConfig,
    "dedup": DedupConfig,
    "embedding": EmbeddingConfig,
    "trends": TrendsConfig,
    "generation": GenerationConfig,
    "storage": StorageConfig,
    "rate_limit": RateLimitConfig,
    "logging": LoggingConfig,
    "langfuse": LangfuseConfig,
}


def default_config() -> AppConfig:
    """Return a fresh AppConfig so callers can mutate it freely."""
    return AppConfig()


def load_config(path: str | None) -> AppConfig:
    """Load configuration from a YAML file with defaults."""
    if not path:
        return default_config()

    with open(path, "r", encoding="utf-8") as f:
        raw = yaml.safe_load(f) or {}

    return _merge_config(default_config(), raw)


def _merge_config(base: AppConfig, raw: dict[str, Any]) -> AppConfig:
    """Merge raw YAML config into base AppConfig, ignoring unknown keys."""
    data = asdict(base)
    for key, value in raw.items():
        if key not in data:
            continue
        if isinstance(value, dict) and isinstance(data[key], dict):
            known = _SECTIONS[key].__dataclass_fields__
            data[key].update({k: v for k, v in value.items() if k in known})
        else:
            data[key] = value
    return _fromdict(data)


def _fromdict(data: dict[str, Any]) -> AppConfig:
    """Reconstruct AppConfig from nested dictionary."""
    sections = {name: cls(**data.get(name, {})) for name, cls in _SECTIONS.items()}
    return AppConfig(sources=list(data.get("sources") or []), **sections)


def get_api_key(cfg: EmbeddingConfig | GenerationConfig) -> str | None:
    """Get API key from inline config or environment variable."""
    if cfg.api_key:
        return cfg.api_key
    return os.getenv(cfg.api_key_env)
