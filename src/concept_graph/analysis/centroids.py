"""Concept centroids, optionally dampened so prolific jurors do not dominate."""

from __future__ import annotations

from collections import Counter
from typing import Optional, Sequence
import math
import numpy as np

from ..algorithms.vector_ops import compute_centroids

Array2D = np.ndarray


def juror_dampening_weights(jurors: Sequence[str]) -> np.ndarray:
    """
    Per-sentence weight ``sqrt(avg_sentences_per_juror / juror_sentence_count)``.

    A juror with twice the average sentence count gets weight ~0.71 per
    sentence, so their total pull on a centroid grows with the square root of
    their volume instead of linearly.
    """
    if len(jurors) == 0:
        return np.zeros(0)
    counts = Counter(jurors)
    avg = len(jurors) / len(counts)
    return np.array([math.sqrt(avg / counts[j]) for j in jurors], dtype=np.float64)


def compute_concept_centroids(
    vectors: Array2D,
    assignments: Sequence[int],
    k: int,
    jurors: Optional[Sequence[str]] = None,
    dampen: bool = False,
) -> Array2D:
    """
    Unit centroid per concept.

    Args:
        vectors: Unit sentence vectors (n_samples, n_features)
        assignments: Concept id per sentence in ``[0, k)``
        k: Number of concepts
        jurors: Juror per sentence; required when *dampen* is set
        dampen: Apply ``juror_dampening_weights``

    Returns:
        (k, n_features) array; empty concepts keep a zero centroid.
    """
    weights = None
    if dampen:
        if jurors is None:
            raise ValueError("juror dampening requires the juror of every sentence")
        weights = juror_dampening_weights(jurors)
    return compute_centroids(vectors, assignments, k, weights)
