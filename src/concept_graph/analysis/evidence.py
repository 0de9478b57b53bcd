"""Representative-sentence ranking for a concept."""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Sequence
import numpy as np

from ..algorithms.vector_ops import cosine
from .term_model import BM25Model, extract_ngrams


@dataclass(frozen=True)
class EvidenceRankingParams:
    semantic_weight: float = 0.7
    frequency_weight: float = 0.3

    def __post_init__(self):
        if self.semantic_weight < 0 or self.frequency_weight < 0:
            raise ValueError("evidence ranking weights must be non-negative")


@dataclass(frozen=True)
class RankedEvidence:
    sentence: str
    index: int
    score: float


def rank_evidence_for_concept(
    all_sentences: Sequence[str],
    cluster_indices: Sequence[int],
    centroid: np.ndarray,
    vectors: np.ndarray,
    term_model: BM25Model,
    concept_top_terms: Sequence[str],
    params: EvidenceRankingParams = EvidenceRankingParams(),
    top_k: int = 3,
) -> List[RankedEvidence]:
    """
    Rank a concept's sentences by coherence and signature-term salience.

    ``score = semantic_weight * max(0, cos(vector, centroid))
    + frequency_weight * mean(model score of the sentence's n-grams that are
    in concept_top_terms)``. The frequency part is 0 when no n-gram matches.

    Args:
        all_sentences: Corpus texts
        cluster_indices: Indices of the concept's sentences
        centroid: Concept centroid
        vectors: (n, d) sentence vectors aligned with *all_sentences*
        term_model: Salience scores for n-grams
        concept_top_terms: The concept's signature terms
        params: Component weights
        top_k: Number of sentences to return

    Returns:
        Up to *top_k* RankedEvidence, highest score first; ties keep cluster order.
    """
    if len(cluster_indices) == 0:
        return []

    signature = set(concept_top_terms)
    ranked: List[RankedEvidence] = []
    for idx in cluster_indices:
        idx = int(idx)
        sentence = all_sentences[idx]
        semantic = max(0.0, cosine(vectors[idx], centroid)) if idx < len(vectors) else 0.0

        matches = [term_model.score(g) for g in extract_ngrams(sentence) if g in signature]
        salience = sum(matches) / len(matches) if matches else 0.0

        score = params.semantic_weight * semantic + params.frequency_weight * salience
        ranked.append(RankedEvidence(sentence=sentence, index=idx, score=float(score)))

    ranked.sort(key=lambda r: -r.score)
    return ranked[:top_k]
