"""
Semantic merge of near-duplicate concepts.

Keeps the concept count from exploding when two clusters describe the same
theme: any centroid pair above the similarity threshold is merged, smaller
into larger, unless both clusters are already large.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence
import numpy as np

from ..algorithms.vector_ops import UnionFind, cluster_sizes
from ..utils.logging_config import get_logger

logger = get_logger(__name__)

DEFAULT_MERGE_THRESHOLD = 0.85
DEFAULT_MAX_SIZE_FRACTION = 0.3


@dataclass
class MergeDetail:
    source: int
    target: int
    similarity: float

    def to_dict(self) -> Dict[str, float]:
        return {"from": self.source, "to": self.target, "similarity": self.similarity}


@dataclass
class MergeResult:
    """Assignments after merging plus an audit trail of what merged into what."""

    assignments: np.ndarray
    merged_count: int = 0
    details: List[MergeDetail] = field(default_factory=list)
    # Old concept id -> new contiguous concept id.
    id_map: Dict[int, int] = field(default_factory=dict)

    @property
    def num_clusters(self) -> int:
        return len(set(self.assignments.tolist()))


def semantic_merge_concepts(
    centroids: np.ndarray,
    assignments: Sequence[int],
    similarity_threshold: float = DEFAULT_MERGE_THRESHOLD,
    max_concept_size: Optional[float] = None,
) -> MergeResult:
    """
    Merge concepts whose centroids are more similar than *similarity_threshold*.

    Pairs are visited in index order. For each pair above the threshold the
    smaller cluster merges into the larger (on equal sizes the later index
    merges into the earlier one) unless both exceed *max_concept_size*
    (default 30% of the corpus). Sizes are updated as merges happen, and a
    cluster that has been merged away takes no further part. Merge chains
    are resolved through union-find and ids re-packed to ``0..K'-1`` in
    first-seen order.

    Args:
        centroids: (K, d) unit centroids
        assignments: Concept id per sentence in ``[0, K)``
        similarity_threshold: Strict lower bound on centroid dot product
        max_concept_size: Size cap; defaults to ``0.3 * n``

    Returns:
        MergeResult. When nothing merges the assignments are returned
        unchanged (as an array) with ``merged_count == 0``.
    """
    C = np.asarray(centroids, dtype=np.float64)
    labels = np.asarray(assignments, dtype=int)
    K = C.shape[0]
    if max_concept_size is None:
        max_concept_size = len(labels) * DEFAULT_MAX_SIZE_FRACTION
    identity = {k: k for k in range(K)}
    if K <= 1:
        return MergeResult(assignments=labels.copy(), id_map=identity)

    sizes = cluster_sizes(labels, K).astype(float)
    sims = C @ C.T
    merged_away = set()
    details: List[MergeDetail] = []
    uf = UnionFind(K)

    for i in range(K):
        if i in merged_away:
            continue
        for j in range(i + 1, K):
            if j in merged_away:
                continue
            similarity = float(sims[i, j])
            if similarity <= similarity_threshold:
                continue
            if sizes[i] > max_concept_size and sizes[j] > max_concept_size:
                continue
            source = i if sizes[i] < sizes[j] else j
            target = j if source == i else i
            merged_away.add(source)
            details.append(MergeDetail(source=source, target=target, similarity=similarity))
            uf.union(target, source)
            sizes[target] += sizes[source]
            sizes[source] = 0
            if source == i:
                break

    if not details:
        return MergeResult(assignments=labels.copy(), id_map=identity)

    resolved = [uf.find(int(a)) if 0 <= a < K else int(a) for a in labels]
    id_map: Dict[int, int] = {}
    packed = np.empty(len(resolved), dtype=int)
    for idx, root in enumerate(resolved):
        if root not in id_map:
            id_map[root] = len(id_map)
        packed[idx] = id_map[root]
    old_to_new = {k: id_map[uf.find(k)] for k in range(K) if uf.find(k) in id_map}

    logger.info("Semantic merge folded %d concept(s); %d remain", len(details), len(id_map))
    return MergeResult(assignments=packed, merged_count=len(details), details=details, id_map=old_to_new)
