"""Embedding provider backends and registry.

Providers turn a batch of texts into a batch of vectors. Raw response shapes
stay inside this module: callers get plain float lists or a ProviderError.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
import math
from typing import Any

from ..config import EmbeddingConfig, get_api_key
from ..errors import ConfigurationError, MalformedOutput
from ..fetch.fetcher import post_json
from ..utils.limiter import RateLimiter
from ..utils.tracing import record_span_error, start_span


class EmbeddingProvider(ABC):
    """Provider interface: ``embed(texts) -> vectors``."""

    name = "embedding"

    def __init__(self, cfg: EmbeddingConfig, api_key: str | None, limiter: RateLimiter | None = None):
        if not api_key:
            raise ConfigurationError(
                f"Missing {self.name} embedding API key (set {cfg.api_key_env} or embedding.api_key)"
            )
        self.cfg = cfg
        self.api_key = api_key
        self.limiter = limiter

    @property
    def model(self) -> str:
        return self.cfg.model

    def embed(self, texts: list[str]) -> list[list[float]]:
        """Return one vector per text, in input order.

        Raises:
            ProviderError: Quota, timeout, transport or HTTP failure
            MalformedOutput: The response did not contain one vector per text
        """
        if not texts:
            return []
        if self.limiter is not None:
            self.limiter.acquire(self.name)
        with start_span(
            f"{self.name}.embed",
            kind="embedding",
            attributes={"embedding.model": self.model, "embedding.batch_size": len(texts)},
        ) as span:
            try:
                return self._embed(texts)
            except Exception as exc:
                record_span_error(span, exc)
                raise

    @abstractmethod
    def _embed(self, texts: list[str]) -> list[list[float]]:
        raise NotImplementedError


class HuggingFaceEmbeddingProvider(EmbeddingProvider):
    """Feature-extraction pipeline on the Hugging Face inference router."""

    name = "huggingface"

    def _embed(self, texts: list[str]) -> list[list[float]]:
        url = f"{self.cfg.base_url.rstrip('/')}/hf-inference/models/{self.model}/pipeline/feature-extraction"
        data = post_json(
            self.name,
            url,
            {"inputs": texts, "options": {"wait_for_model": True}},
            timeout=self.cfg.timeout_seconds,
            trust_env=self.cfg.trust_env,
            headers={"Authorization": f"Bearer {self.api_key}"},
        )
        if isinstance(data, dict) and "error" in data:
            raise MalformedOutput(self.name, f"provider error payload: {data['error']}")
        return coerce_vectors(self.name, data, len(texts))


class GeminiEmbeddingProvider(EmbeddingProvider):
    """Gemini batchEmbedContents endpoint."""

    name = "gemini"

    def _embed(self, texts: list[str]) -> list[list[float]]:
        url = f"{self.cfg.base_url.rstrip('/')}/v1beta/models/{self.model}:batchEmbedContents"
        payload = {
            "requests": [
                {"model": f"models/{self.model}", "content": {"parts": [{"text": text}]}}
                for text in texts
            ]
        }
        data = post_json(
            self.name,
            url,
            payload,
            timeout=self.cfg.timeout_seconds,
            trust_env=self.cfg.trust_env,
            params={"key": self.api_key},
        )
        embeddings = data.get("embeddings") if isinstance(data, dict) else None
        if not isinstance(embeddings, list):
            raise MalformedOutput(self.name, "response has no embeddings list")
        return coerce_vectors(
            self.name,
            [e.get("values") if isinstance(e, dict) else None for e in embeddings],
            len(texts),
        )


def coerce_vectors(provider: str, data: Any, expected: int) -> list[list[float]]:
    """Validate a decoded response as ``expected`` numeric vectors.

    Token-level outputs (one vector per token) are mean-pooled into a single
    sentence vector.
    """
    if not isinstance(data, list) or len(data) != expected:
        got = len(data) if isinstance(data, list) else type(data).__name__
        raise MalformedOutput(provider, f"expected {expected} vectors, got {got}")

    vectors: list[list[float]] = []
    for row in data:
        if isinstance(row, list) and row and all(isinstance(tok, list) for tok in row):
            row = _mean_pool(provider, row)
        if not isinstance(row, list) or not row:
            raise MalformedOutput(provider, "vector is empty or not a list")
        try:
            vector = [float(value) for value in row]
        except (TypeError, ValueError) as exc:
            raise MalformedOutput(provider, "vector contains non-numeric values") from exc
        if not all(math.isfinite(value) for value in vector):
            raise MalformedOutput(provider, "vector contains non-finite values")
        vectors.append(vector)
    return vectors


def _mean_pool(provider: str, tokens: list[list[Any]]) -> list[float]:
    width = len(tokens[0])
    if width == 0 or any(len(tok) != width for tok in tokens):
        raise MalformedOutput(provider, "token vectors have inconsistent width")
    try:
        return [sum(float(tok[i]) for tok in tokens) / len(tokens) for i in range(width)]
    except (TypeError, ValueError) as exc:
        raise MalformedOutput(provider, "token vectors contain non-numeric values") from exc


_PROVIDER_REGISTRY: dict[str, type[EmbeddingProvider]] = {
    "huggingface": HuggingFaceEmbeddingProvider,
    "hf": HuggingFaceEmbeddingProvider,
    "gemini": GeminiEmbeddingProvider,
}


def available_embedding_providers() -> list[str]:
    return sorted(_PROVIDER_REGISTRY.keys())


def create_embedding_provider(cfg: EmbeddingConfig, limiter: RateLimiter | None = None) -> EmbeddingProvider:
    """Build an embedding provider from runtime config.

    Raises:
        ConfigurationError: Unknown provider name or missing API key
    """
    builder = _PROVIDER_REGISTRY.get(cfg.name.lower().strip())
    if builder is None:
        supported = ", ".join(available_embedding_providers())
        raise ConfigurationError(f"Unsupported embedding provider: {cfg.name}. Supported: {supported}")
    return builder(cfg, get_api_key(cfg), limiter)
