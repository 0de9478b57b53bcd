"""
User-authored semantic axes.

An anchor axis is defined by two sets of seed phrases. Once the phrases are
embedded, the axis vector points from the negative pole's mean embedding to
the positive pole's, and any concept or juror can be scored along it.
"""

from __future__ import annotations

from dataclasses import replace
from typing import Awaitable, Callable, Dict, List, Mapping, Optional, Sequence
import numpy as np

from ..algorithms.vector_ops import normalize
from ..models import AnchorAxis
from ..utils.logging_config import get_logger

logger = get_logger(__name__)

EmbedFn = Callable[[List[str]], Awaitable[np.ndarray]]


def mean_vector(vectors: Sequence[np.ndarray]) -> np.ndarray:
    """Component-wise mean; empty input yields an empty vector."""
    if len(vectors) == 0:
        return np.zeros(0)
    return np.asarray(vectors, dtype=np.float64).mean(axis=0)


def compute_axis_vector(positive_vector: np.ndarray, negative_vector: np.ndarray) -> np.ndarray:
    """``normalize(positive - negative)`` over the shorter length; empty if either is empty."""
    pos = np.asarray(positive_vector, dtype=np.float64)
    neg = np.asarray(negative_vector, dtype=np.float64)
    if pos.size == 0 or neg.size == 0:
        return np.zeros(0)
    d = min(pos.size, neg.size)
    return normalize(pos[:d] - neg[:d])


async def embed_anchor_axis(axis: AnchorAxis, embed: EmbedFn) -> AnchorAxis:
    """Embed both poles' seed phrases; axes missing phrases on either pole are returned as-is."""
    if not axis.negative_pole.seed_phrases or not axis.positive_pole.seed_phrases:
        return axis
    negative = await embed(list(axis.negative_pole.seed_phrases))
    positive = await embed(list(axis.positive_pole.seed_phrases))
    neg_vec = mean_vector(list(negative))
    pos_vec = mean_vector(list(positive))
    return replace(
        axis,
        negative_vector=neg_vec,
        positive_vector=pos_vec,
        axis_vector=compute_axis_vector(pos_vec, neg_vec),
    )


async def embed_anchor_axes(axes: Sequence[AnchorAxis], embed: EmbedFn) -> List[AnchorAxis]:
    """Embed every axis in turn with the async *embed* callable."""
    out = []
    for axis in axes:
        out.append(await embed_anchor_axis(axis, embed))
    logger.debug("Embedded %d anchor axis/axes", len(out))
    return out


def _has_vector(axis: AnchorAxis) -> bool:
    return axis.axis_vector is not None and np.asarray(axis.axis_vector).size > 0


def project_to_anchor_axis(vector: np.ndarray, axis_vector: np.ndarray) -> float:
    """Cosine between *vector* and *axis_vector*; 0 when either is empty."""
    v = np.asarray(vector, dtype=np.float64)
    a = np.asarray(axis_vector, dtype=np.float64)
    if v.size == 0 or a.size == 0:
        return 0.0
    d = min(v.size, a.size)
    return float(normalize(v[:d]) @ normalize(a[:d]))


def project_to_anchor_axes(vector: np.ndarray, axes: Sequence[AnchorAxis]) -> Dict[str, float]:
    return {axis.id: project_to_anchor_axis(vector, axis.axis_vector) for axis in axes if _has_vector(axis)}


def project_concept_centroids(
    centroids: np.ndarray,
    axes: Sequence[AnchorAxis],
    concept_ids: Optional[Sequence[str]] = None,
) -> Dict[str, Dict[str, float]]:
    """Anchor-axis scores per concept, keyed by concept id (``concept:{i}`` by default)."""
    out: Dict[str, Dict[str, float]] = {}
    for i, centroid in enumerate(np.asarray(centroids, dtype=np.float64)):
        cid = concept_ids[i] if concept_ids is not None and i < len(concept_ids) else f"concept:{i}"
        out[cid] = project_to_anchor_axes(centroid, axes)
    return out


def project_juror_vectors(
    juror_vectors: Mapping[str, Mapping[str, float]],
    centroids: np.ndarray,
    axes: Sequence[AnchorAxis],
    concept_ids: Optional[Sequence[str]] = None,
) -> Dict[str, Dict[str, float]]:
    """
    Anchor-axis score per juror: the mean of their concepts' scores weighted
    by the juror's concept weights (0 for a juror with no scored concepts).
    """
    concept_scores = project_concept_centroids(centroids, axes, concept_ids)
    out: Dict[str, Dict[str, float]] = {}
    for juror, weights in juror_vectors.items():
        scores: Dict[str, float] = {}
        for axis in axes:
            if not _has_vector(axis):
                continue
            total = weight_sum = 0.0
            for cid, weight in weights.items():
                score = concept_scores.get(cid, {}).get(axis.id)
                if score is not None:
                    total += weight * score
                    weight_sum += weight
            scores[axis.id] = total / weight_sum if weight_sum > 0 else 0.0
        out[juror] = scores
    return out
