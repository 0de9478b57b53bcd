"""Service layer: embedding cache and the async analysis façade."""

from .analysis_service import AnalysisService
from .embedding_cache import EmbeddingCache, EvictionPolicy, FIFOEviction, LRUEviction

__all__ = [
    "AnalysisService",
    "EmbeddingCache",
    "EvictionPolicy",
    "FIFOEviction",
    "LRUEviction",
]
