"""Soft concept membership with temperature, pruning and entropy hardening."""

from __future__ import annotations

from typing import List, Optional, Sequence
import math
import numpy as np

from ..models import Membership

Array2D = np.ndarray


def normalized_entropy(weights: Sequence[float]) -> float:
    """Shannon entropy in bits divided by ``log2(len(weights))``; 0 for one weight."""
    if len(weights) <= 1:
        return 0.0
    ent = -sum(w * math.log2(w) for w in weights if w > 0)
    return ent / math.log2(len(weights))


def compute_soft_membership(
    vectors: Array2D,
    centroids: Array2D,
    top_n: int = 3,
    *,
    temperature: float = 1.0,
    min_weight: float = 0.10,
    entropy_cap: float = 0.8,
    concept_ids: Optional[Sequence[str]] = None,
) -> List[List[Membership]]:
    """
    Fractional concept membership per vector.

    For each vector: clip centroid similarities at 0 and divide by
    *temperature*, keep the top *top_n* (stable order on ties), normalize to
    sum 1, drop weights below *min_weight* (keeping the top one if all would
    go), renormalize, and collapse to a single weight-1 membership when the
    normalized entropy exceeds *entropy_cap*. A vector with no positive
    similarity is assigned wholly to its top-ranked concept.

    Args:
        vectors: (n, d) unit vectors
        centroids: (K, d) unit centroids
        top_n: Maximum memberships per vector
        temperature: Lower values sharpen the distribution
        min_weight: Pruning floor after the first normalization
        entropy_cap: Hardening threshold in ``[0, 1]``; 0 disables hardening
        concept_ids: Id per centroid (default ``concept:{index}``)

    Returns:
        One list of ``Membership`` per vector, sorted by weight descending,
        weights summing to 1.
    """
    X = np.asarray(vectors, dtype=np.float64)
    C = np.asarray(centroids, dtype=np.float64)
    K = C.shape[0]
    if concept_ids is None:
        concept_ids = [f"concept:{i}" for i in range(K)]
    if X.shape[0] == 0 or K == 0:
        return [[] for _ in range(X.shape[0])]

    sims = np.maximum(X @ C.T, 0.0) / temperature
    out: List[List[Membership]] = []
    for row in sims:
        order = sorted(range(K), key=lambda c: -row[c])[:max(1, top_n)]
        top = [(c, float(row[c])) for c in order]
        total = sum(s for _, s in top)
        if total <= 0:
            out.append([Membership(concept_id=concept_ids[top[0][0]], weight=1.0)])
            continue

        candidates = [(c, s / total) for c, s in top]
        kept = [(c, w) for c, w in candidates if w >= min_weight] or candidates[:1]
        kept_total = sum(w for _, w in kept)
        final = [(c, w / kept_total) for c, w in kept]

        if entropy_cap > 0 and len(final) > 1 and normalized_entropy([w for _, w in final]) > entropy_cap:
            final = [(final[0][0], 1.0)]

        out.append([Membership(concept_id=concept_ids[c], weight=w) for c, w in final])
    return out


def hard_membership(assignments: Sequence[int], concept_ids: Sequence[str]) -> List[List[Membership]]:
    """One weight-1 membership per sentence from hard assignments."""
    return [[Membership(concept_id=concept_ids[int(a)], weight=1.0)] for a in assignments]
