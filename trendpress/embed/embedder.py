"""Batching front-end over an embedding provider.

Returns one tagged result per input text: EmbedOk(vector) or
EmbedErr(kind, message). A failing batch only fails its own texts.
"""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor, as_completed
from contextvars import copy_context
import logging

from ..core.types import EmbedErr, EmbedOk, EmbedResult
from ..errors import ProviderError
from ..utils.logging import log_event
from .providers import EmbeddingProvider


class Embedder:
    def __init__(
        self,
        provider: EmbeddingProvider,
        batch_size: int = 10,
        concurrency: int = 2,
        logger: logging.Logger | None = None,
    ):
        if batch_size <= 0:
            raise ValueError("batch_size must be positive")
        self.provider = provider
        self.batch_size = batch_size
        self.concurrency = max(1, concurrency)
        self.logger = logger or logging.getLogger("trendpress.embed")

    @property
    def model(self) -> str:
        return self.provider.model

    def embed_texts(self, texts: list[str], expected_dim: int | None = None) -> list[EmbedResult]:
        """Embed texts in batches, preserving input order.

        Args:
            texts: Texts to embed
            expected_dim: Dimension already fixed for this run (e.g. by cached vectors)

        Returns:
            One EmbedOk or EmbedErr per text
        """
        if not texts:
            return []
        batches = [texts[i : i + self.batch_size] for i in range(0, len(texts), self.batch_size)]
        batch_results: list[list[EmbedResult] | None] = [None] * len(batches)

        with ThreadPoolExecutor(max_workers=min(self.concurrency, len(batches))) as executor:
            future_map = {}
            for idx, batch in enumerate(batches):
                ctx = copy_context()
                future_map[executor.submit(ctx.run, self._embed_batch, batch)] = idx
            for future in as_completed(future_map):
                batch_results[future_map[future]] = future.result()

        results: list[EmbedResult] = [r for batch in batch_results if batch is not None for r in batch]
        return _enforce_dimension(results, expected_dim)

    def _embed_batch(self, batch: list[str]) -> list[EmbedResult]:
        try:
            vectors = self.provider.embed(batch)
        except ProviderError as exc:
            self.logger.warning("Embedding batch of %d failed: %s", len(batch), exc)
            return [EmbedErr(kind=exc.reason, message=str(exc)) for _ in batch]
        if len(vectors) != len(batch):
            message = f"expected {len(batch)} vectors, got {len(vectors)}"
            return [EmbedErr(kind="malformed_output", message=message) for _ in batch]
        log_event(self.logger, "Embedded batch", event="embed_batch", size=len(batch), model=self.model)
        return [EmbedOk(vector=vector) for vector in vectors]


def _enforce_dimension(results: list[EmbedResult], expected_dim: int | None) -> list[EmbedResult]:
    dim = expected_dim
    checked: list[EmbedResult] = []
    for result in results:
        if isinstance(result, EmbedOk):
            if dim is None:
                dim = len(result.vector)
            elif len(result.vector) != dim:
                result = EmbedErr(
                    kind="dimension_mismatch",
                    message=f"expected dimension {dim}, got {len(result.vector)}",
                )
        checked.append(result)
    return checked
