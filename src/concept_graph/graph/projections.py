"""Similarity links between jurors and between concepts."""

from __future__ import annotations

from typing import Dict, List, Mapping, Sequence
import numpy as np

from ..algorithms.vector_ops import normalize
from ..models import GraphLink


def juror_dense_vectors(
    jurors: Sequence[str],
    juror_vectors: Mapping[str, Mapping[str, float]],
    concept_ids: Sequence[str],
) -> Dict[str, np.ndarray]:
    """Unit-normalized dense concept-weight vector per juror (column order of *concept_ids*)."""
    column = {cid: i for i, cid in enumerate(concept_ids)}
    dense: Dict[str, np.ndarray] = {}
    for juror in jurors:
        v = np.zeros(len(concept_ids))
        for cid, weight in juror_vectors.get(juror, {}).items():
            idx = column.get(cid)
            if idx is not None:
                v[idx] = weight
        dense[juror] = normalize(v)
    return dense


def build_juror_similarity_links(
    jurors: Sequence[str],
    juror_vectors: Mapping[str, Mapping[str, float]],
    concept_ids: Sequence[str],
    similarity_threshold: float,
) -> List[GraphLink]:
    """
    ``jurorJuror`` links for every juror pair whose concept profiles have
    cosine similarity at or above *similarity_threshold*.
    """
    dense = juror_dense_vectors(jurors, juror_vectors, concept_ids)
    links: List[GraphLink] = []
    for i, a in enumerate(jurors):
        for b in jurors[i + 1:]:
            sim = float(dense[a] @ dense[b])
            if sim >= similarity_threshold:
                links.append(GraphLink(
                    id=f"sim:juror:{a}__juror:{b}",
                    source=f"juror:{a}",
                    target=f"juror:{b}",
                    weight=sim,
                    kind="jurorJuror",
                ))
    return links


def build_concept_similarity_links(
    concept_ids: Sequence[str],
    centroids: np.ndarray,
    similarity_threshold: float,
) -> List[GraphLink]:
    """``conceptConcept`` links for centroid pairs at or above *similarity_threshold*."""
    C = np.asarray(centroids, dtype=np.float64)
    links: List[GraphLink] = []
    if C.shape[0] == 0:
        return links
    sims = C @ C.T
    for i, a in enumerate(concept_ids):
        for j in range(i + 1, len(concept_ids)):
            sim = float(sims[i, j])
            if sim >= similarity_threshold:
                b = concept_ids[j]
                links.append(GraphLink(
                    id=f"sim:{a}__{b}",
                    source=a,
                    target=b,
                    weight=sim,
                    kind="conceptConcept",
                ))
    return links
