"""
OpenAI-Compatible Embedding Provider.

Uses the ``AsyncOpenAI`` client with an optional ``base_url``, so sentences
can be embedded by OpenAI itself or by any server that speaks the OpenAI
embeddings protocol (HuggingFace TEI, Ollama, vLLM...).
"""

from typing import List, Optional

from openai import AsyncOpenAI

from .base_embedding import BaseEmbeddingProvider, EmbeddingResult
from ..config import EmbeddingConfig
from ..utils.logging_config import get_logger

logger = get_logger(__name__)


class OpenAICompatibleEmbeddingProvider(BaseEmbeddingProvider):
    """Embedding provider for any OpenAI-protocol-compatible endpoint."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        api_key: str = "not-needed",
        provider_label: str = "openai_compatible",
    ) -> None:
        """
        Args:
            base_url: Root URL of the embedding endpoint
                      (e.g. ``http://localhost:8080/v1``); None for api.openai.com.
            api_key: API key / bearer token. Defaults to ``"not-needed"``
                     for local servers that don't require auth.
            provider_label: Label returned by ``get_provider_name()``.
        """
        self._base_url = base_url
        self._provider_label = provider_label
        self._client = AsyncOpenAI(base_url=base_url, api_key=api_key)
        logger.info(
            "Initialized OpenAICompatibleEmbeddingProvider (base_url=%s, label=%s)",
            base_url or "default",
            provider_label,
        )

    @classmethod
    def from_config(cls, embedding: EmbeddingConfig) -> "OpenAICompatibleEmbeddingProvider":
        """Build a provider from ``config.embedding``."""
        label = "openai" if embedding.base_url is None else "openai_compatible"
        return cls(
            base_url=embedding.base_url,
            api_key=embedding.api_key or "not-needed",
            provider_label=label,
        )

    async def create_embeddings(
        self,
        texts: List[str],
        model: str,
        dimensions: Optional[int] = None,
    ) -> List[EmbeddingResult]:
        params: dict = {"model": model, "input": texts}
        if dimensions is not None:
            params["dimensions"] = dimensions

        response = await self._client.embeddings.create(**params)

        sorted_data = sorted(response.data, key=lambda e: e.index)
        return [
            EmbeddingResult(vector=item.embedding, index=item.index)
            for item in sorted_data
        ]

    def get_provider_name(self) -> str:
        return self._provider_label

    async def close(self) -> None:
        await self._client.close()
