"""Embedding providers."""

from .base_embedding import BaseEmbeddingProvider, EmbeddingResult, ordered_vectors
from .openai_compatible_embedding_provider import OpenAICompatibleEmbeddingProvider

__all__ = [
    "BaseEmbeddingProvider",
    "EmbeddingResult",
    "OpenAICompatibleEmbeddingProvider",
    "ordered_vectors",
]
