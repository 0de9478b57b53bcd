"""
Analysis Service - async façade over the synchronous analysis core.

Embeds sentences (and anchor-axis seed phrases) through a
``BaseEmbeddingProvider`` with batching, retry/backoff and an explicit
``EmbeddingCache``, then runs ``build_analysis``.

Usage:
    from concept_graph.providers import OpenAICompatibleEmbeddingProvider
    from concept_graph.services import AnalysisService
    from concept_graph.config import config

    async with OpenAICompatibleEmbeddingProvider.from_config(config.embedding) as provider:
        service = AnalysisService(provider, model=config.embedding.model)
        result = await service.analyze(sentences, config.analysis_defaults())
"""

from dataclasses import replace
from typing import Dict, List, Optional, Sequence

import numpy as np

from ..algorithms.vector_ops import normalize_rows
from ..analysis.term_model import BM25Model
from ..config import AnalysisConfig
from ..graph.anchor_axes import embed_anchor_axes
from ..graph.graph_builder import build_analysis
from ..models import AnalysisResult, SentenceRecord
from ..providers.base_embedding import BaseEmbeddingProvider, ordered_vectors
from ..utils.logging_config import get_logger
from ._shared import embedding_retry
from .embedding_cache import EmbeddingCache

logger = get_logger(__name__)


class AnalysisService:
    """
    Embeds and analyzes juror sentences.

    Embedding calls are awaited one batch at a time; the analysis itself is
    synchronous.
    """

    def __init__(
        self,
        provider: BaseEmbeddingProvider,
        model: str = "text-embedding-3-small",
        dimensions: Optional[int] = None,
        batch_size: int = 64,
        cache: Optional[EmbeddingCache] = None,
        max_retries: int = 6,
        initial_wait: float = 1.0,
        max_wait: float = 30.0,
    ):
        """
        Args:
            provider: Embedding provider
            model: Embedding model / deployment name
            dimensions: Optional output dimension override
            batch_size: Texts per provider call
            cache: Embedding cache (a private unbounded one by default)
            max_retries: Maximum number of attempts per batch (default: 6)
            initial_wait: Initial wait in seconds for exponential backoff
            max_wait: Maximum wait in seconds between retries
        """
        if batch_size < 1:
            raise ValueError(f"batch_size must be >= 1, got {batch_size}")
        self.provider = provider
        self.model = model
        self.dimensions = dimensions
        self.batch_size = batch_size
        self.cache = cache if cache is not None else EmbeddingCache()
        self.max_retries = max_retries
        self.initial_wait = initial_wait
        self.max_wait = max_wait

    async def _create_embedding_batch_with_retry(self, texts: List[str]) -> List[List[float]]:
        """
        Embed one batch, retrying transient failures with exponential backoff.

        Raises:
            Exception: If all retries are exhausted or a non-retryable error occurs.
        """

        @embedding_retry(self.max_retries, self.initial_wait, self.max_wait)
        async def _make_batch_call():
            results = await self.provider.create_embeddings(texts, self.model, self.dimensions)
            return ordered_vectors(results, len(texts))

        return await _make_batch_call()

    async def embed_texts(self, texts: Sequence[str]) -> np.ndarray:
        """
        Unit-normalized embeddings for *texts*, in order.

        Cached texts are not re-sent; duplicate texts are embedded once.
        """
        texts = list(texts)
        if not texts:
            return np.zeros((0, 0))

        found: Dict[str, np.ndarray] = {}
        pending: Dict[str, None] = {}
        for text in texts:
            if text in found or text in pending:
                continue
            cached = self.cache.get(text, self.model)
            if cached is not None:
                found[text] = cached
            else:
                pending[text] = None

        missing = list(pending)

        if missing:
            logger.info(
                "Embedding %d text(s) via %s (%d cached)",
                len(missing), self.provider.get_provider_name(), len(found),
            )
        for start in range(0, len(missing), self.batch_size):
            batch = missing[start:start + self.batch_size]
            vectors = normalize_rows(np.asarray(await self._create_embedding_batch_with_retry(batch), dtype=np.float64))
            for text, vector in zip(batch, vectors):
                self.cache.put(text, self.model, vector)
                found[text] = vector

        return np.vstack([found[t] for t in texts])

    async def analyze(
        self,
        sentences: Sequence[SentenceRecord],
        config: Optional[AnalysisConfig] = None,
        vectors: Optional[np.ndarray] = None,
        term_model: Optional[BM25Model] = None,
        labeler=None,
    ) -> AnalysisResult:
        """
        Embed (unless *vectors* is given) and analyze *sentences*.

        Anchor axes that carry seed phrases but no vectors are embedded
        first, with the same provider and cache.
        """
        cfg = config or AnalysisConfig()
        if vectors is None:
            vectors = await self.embed_texts([s.text for s in sentences])

        pending = [a for a in cfg.anchor_axes if a.axis_vector is None]
        if pending:
            embedded = {a.id: a for a in await embed_anchor_axes(pending, self.embed_texts)}
            cfg = replace(cfg, anchor_axes=[embedded.get(a.id, a) for a in cfg.anchor_axes])

        return build_analysis(sentences, vectors, cfg, term_model=term_model, labeler=labeler)
