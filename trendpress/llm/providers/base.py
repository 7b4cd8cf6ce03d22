"""Abstract interface for article generation providers."""

from __future__ import annotations

from abc import ABC, abstractmethod
import logging

from ...config import GenerationConfig, LoggingConfig
from ...core.types import ArticleDraft, TopicContext
from ...utils.limiter import RateLimiter
from ...utils.logging import log_event, redact_text, truncate_text


class GenerationProvider(ABC):
    """Provider interface: ``generate(context) -> ArticleDraft``.

    Implementations raise ProviderError for call failures and
    MalformedOutput when the answer cannot be turned into a draft.
    """

    name = "generation"

    def __init__(
        self,
        cfg: GenerationConfig,
        api_key: str | None,
        log_cfg: LoggingConfig | None = None,
        llm_logger: logging.Logger | None = None,
        limiter: RateLimiter | None = None,
    ):
        self.cfg = cfg
        self.api_key = api_key
        self.log_cfg = log_cfg or LoggingConfig()
        self.llm_logger = llm_logger
        self.limiter = limiter

    @abstractmethod
    def generate(self, context: TopicContext) -> ArticleDraft:
        """Return a structured draft for the topic."""
        raise NotImplementedError

    def _throttle(self) -> None:
        if self.limiter is not None:
            self.limiter.acquire(self.name)

    def _log_llm_response(self, context: TopicContext, status: str, content: str, prompt: str) -> None:
        if self.llm_logger is None:
            return
        redaction = self.log_cfg.llm_log_redaction
        payload = {
            "event": "llm_article_response",
            "status": status,
            "provider": self.name,
            "model": self.cfg.model,
            "topic": context.label,
            "category": context.category,
            "raw_response": truncate_text(redact_text(content, redaction)),
        }
        if self.log_cfg.llm_log_detail == "prompt_response":
            payload["raw_prompt"] = truncate_text(redact_text(prompt, redaction))
        log_event(self.llm_logger, "LLM response", **payload)
