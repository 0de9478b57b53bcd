"""
Embedding boundary of the concept-graph pipeline.

Clustering, layout and anchor projection all run on sentence vectors that
are computed before ``build_analysis`` is called. A provider turns one batch
of juror sentences (or anchor seed phrases) into vectors; ``AnalysisService``
handles batching, caching and retries around it.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List, Optional, Sequence


@dataclass
class EmbeddingResult:
    """One embedded sentence.

    Attributes:
        vector: Raw (not necessarily unit-length) embedding.
        index: Position of the sentence in the submitted batch.
    """

    vector: List[float]
    index: int


def ordered_vectors(results: Sequence[EmbeddingResult], expected: int) -> List[List[float]]:
    """
    Vectors of a batch response, in submission order.

    Endpoints may answer out of order; every sentence must come back exactly
    once or the batch cannot be matched to its sentences.

    Raises:
        ValueError: If the response does not hold one vector per sentence
    """
    if len(results) != expected:
        raise ValueError(f"Provider returned {len(results)} embedding(s) for {expected} text(s)")
    ordered = sorted(results, key=lambda r: r.index)
    if [r.index for r in ordered] != list(range(expected)):
        raise ValueError(f"Provider returned indices {[r.index for r in ordered]} for {expected} text(s)")
    return [r.vector for r in ordered]


class BaseEmbeddingProvider(ABC):
    """Source of sentence vectors for an analysis run."""

    @abstractmethod
    async def create_embeddings(
        self,
        texts: List[str],
        model: str,
        dimensions: Optional[int] = None,
    ) -> List[EmbeddingResult]:
        """
        Embed one batch of sentences in a single request.

        Args:
            texts: Juror sentences or anchor seed phrases.
            model: Embedding model name on the endpoint.
            dimensions: Optional output size (only some models honor it).

        Returns:
            One ``EmbeddingResult`` per text; ``index`` refers to *texts*.

        Raises:
            Exception: Transport or endpoint errors. Transient ones are
                retried by the caller.
        """

    @abstractmethod
    def get_provider_name(self) -> str:
        """Short name used in embedding log lines (e.g. ``'openai'``)."""

    @abstractmethod
    async def close(self) -> None:
        """Release the HTTP client."""

    async def __aenter__(self) -> "BaseEmbeddingProvider":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()
