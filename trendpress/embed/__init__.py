"""Embedding providers and the batching Embedder."""

from .embedder import Embedder
from .providers import (
    EmbeddingProvider,
    GeminiEmbeddingProvider,
    HuggingFaceEmbeddingProvider,
    available_embedding_providers,
    create_embedding_provider,
)

__all__ = [
    "Embedder",
    "EmbeddingProvider",
    "GeminiEmbeddingProvider",
    "HuggingFaceEmbeddingProvider",
    "available_embedding_providers",
    "create_embedding_provider",
]
