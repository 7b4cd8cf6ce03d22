"""Provider factory and registry for hot-swappable generation backends."""

from __future__ import annotations

import logging

from ...config import GenerationConfig, LoggingConfig, get_api_key
from ...errors import ConfigurationError
from ...utils.limiter import RateLimiter
from .base import GenerationProvider
from .gemini import GeminiProvider
from .openai_compatible import OpenAICompatibleProvider


_PROVIDER_REGISTRY: dict[str, type[GenerationProvider]] = {
    "gemini": GeminiProvider,
    "openai": OpenAICompatibleProvider,
    "openai_compatible": OpenAICompatibleProvider,
    "openai-compatible": OpenAICompatibleProvider,
}


def available_providers() -> list[str]:
    """Return the set of registered provider names."""
    return sorted(_PROVIDER_REGISTRY.keys())


def create_provider(
    cfg: GenerationConfig,
    log_cfg: LoggingConfig | None = None,
    llm_logger: logging.Logger | None = None,
    limiter: RateLimiter | None = None,
) -> GenerationProvider:
    """Build a generation provider instance from runtime config."""
    builder = _PROVIDER_REGISTRY.get(cfg.name.lower().strip())
    if builder is None:
        supported = ", ".join(available_providers())
        raise ConfigurationError(f"Unsupported provider: {cfg.name}. Supported: {supported}")
    return builder(cfg, get_api_key(cfg), log_cfg, llm_logger, limiter)
