"""OpenAI-compatible chat completions provider for article generation."""

from __future__ import annotations

import logging
from typing import Any

from ...config import GenerationConfig, LoggingConfig
from ...core.types import ArticleDraft, TopicContext
from ...errors import ConfigurationError, ProviderError
from ...fetch.fetcher import post_json
from ...utils.limiter import RateLimiter
from ...utils.tracing import record_span_error, set_span_output, start_span
from ..parsing import draft_from_content
from ..prompts import build_article_prompt
from .base import GenerationProvider


class OpenAICompatibleProvider(GenerationProvider):
    """Any backend exposing POST {base_url}/chat/completions."""

    name = "openai"

    def __init__(
        self,
        cfg: GenerationConfig,
        api_key: str | None,
        log_cfg: LoggingConfig | None = None,
        llm_logger: logging.Logger | None = None,
        limiter: RateLimiter | None = None,
    ):
        if not api_key:
            raise ConfigurationError(f"Missing API key (set {cfg.api_key_env} or generation.api_key)")
        super().__init__(cfg, api_key, log_cfg, llm_logger, limiter)

    def generate(self, context: TopicContext) -> ArticleDraft:
        prompt = build_article_prompt(context, self.cfg.max_context_chars)
        payload = {
            "model": self.cfg.model,
            "messages": [
                {"role": "system", "content": "You write factual market news and answer with JSON only."},
                {"role": "user", "content": prompt},
            ],
            "temperature": self.cfg.temperature,
            "max_tokens": self.cfg.max_output_tokens,
            "response_format": {"type": "json_object"},
        }
        with start_span(
            "openai.generate_article",
            kind="llm",
            input_value=prompt,
            attributes={"llm.model": self.cfg.model, "llm.provider": self.name, "topic.label": context.label},
        ) as span:
            content = ""
            try:
                self._throttle()
                data = post_json(
                    self.name,
                    f"{self.cfg.base_url.rstrip('/')}/chat/completions",
                    payload,
                    timeout=self.cfg.timeout_seconds,
                    trust_env=self.cfg.trust_env,
                    headers={"Authorization": f"Bearer {self.api_key}"},
                )
                content = _extract_text(data)
                set_span_output(span, content)
                draft = draft_from_content(self.name, content)
            except ProviderError as exc:
                record_span_error(span, exc)
                self._log_llm_response(context, exc.reason, content or str(exc), prompt)
                raise
        self._log_llm_response(context, "ok", content, prompt)
        return draft


def _extract_text(data: Any) -> str:
    try:
        content = data["choices"][0]["message"]["content"]
    except (KeyError, IndexError, TypeError):
        return ""
    return content if isinstance(content, str) else ""
