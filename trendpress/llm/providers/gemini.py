"""Google Gemini provider for article generation."""

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


class GeminiProvider(GenerationProvider):
    """Gemini generateContent backend returning JSON drafts."""

    name = "gemini"

    def __init__(
        self,
        cfg: GenerationConfig,
        api_key: str | None,
        log_cfg: LoggingConfig | None = None,
        llm_logger: logging.Logger | None = None,
        limiter: RateLimiter | None = None,
    ):
        if not api_key:
            raise ConfigurationError(f"Missing Google API key (set {cfg.api_key_env} or generation.api_key)")
        super().__init__(cfg, api_key, log_cfg, llm_logger, limiter)

    def generate(self, context: TopicContext) -> ArticleDraft:
        prompt = build_article_prompt(context, self.cfg.max_context_chars)
        payload = {
            "contents": [{"role": "user", "parts": [{"text": prompt}]}],
            "generationConfig": {
                "temperature": self.cfg.temperature,
                "maxOutputTokens": self.cfg.max_output_tokens,
                "responseMimeType": "application/json",
            },
        }
        with start_span(
            "gemini.generate_article",
            kind="llm",
            input_value=prompt,
            attributes={
                "llm.model": self.cfg.model,
                "llm.provider": self.name,
                "topic.label": context.label,
                "topic.category": context.category,
            },
        ) as span:
            content = ""
            try:
                self._throttle()
                data = self._post(payload)
                content = _extract_text(data)
                set_span_output(span, content)
                draft = draft_from_content(self.name, content)
            except ProviderError as exc:
                record_span_error(span, exc)
                self._log_llm_response(context, exc.reason, content or str(exc), prompt)
                raise
        self._log_llm_response(context, "ok", content, prompt)
        return draft

    def _post(self, payload: dict[str, Any]) -> dict[str, Any]:
        url = f"{self.cfg.base_url.rstrip('/')}/v1beta/models/{self.cfg.model}:generateContent"
        return post_json(
            self.name,
            url,
            payload,
            timeout=self.cfg.timeout_seconds,
            trust_env=self.cfg.trust_env,
            params={"key": self.api_key},
        )


def _extract_text(data: Any) -> str:
    """Join the non-thought text parts of the first candidate."""
    try:
        parts = data["candidates"][0]["content"]["parts"]
    except (KeyError, IndexError, TypeError):
        return ""
    if not isinstance(parts, list):
        return ""
    texts = [p["text"] for p in parts if isinstance(p, dict) and isinstance(p.get("text"), str) and not p.get("thought")]
    if not any(texts):
        texts = [p["text"] for p in parts if isinstance(p, dict) and isinstance(p.get("text"), str)]
    return "".join(texts)
