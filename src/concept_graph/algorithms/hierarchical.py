"""
Agglomerative hierarchical clustering on cosine similarity.

A dendrogram is built once with greedy centroid-linkage merges and can then
be cut many times: by exact cluster count, by a distance threshold expressed
as a granularity percentage (with quality-driven relaxation), or into a
two-layer primary/detail hierarchy.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple
import numpy as np

from .cut_quality import (
    CutQualityParams,
    CutQualityScore,
    RELAXED_DETAIL_PARAMS,
    STRICT_PRIMARY_PARAMS,
    evaluate_cut_quality,
)
from .vector_ops import UnionFind, compute_centroids, normalize
from ..utils.logging_config import get_logger

logger = get_logger(__name__)

Array2D = np.ndarray

MAX_RELAXATION_ATTEMPTS = 5
RELAXATION_STEP = 10
DEFAULT_DETAIL_GRANULARITY = 30


@dataclass(frozen=True)
class Merge:
    """One agglomeration step: clusters *left* and *right* became a new cluster."""

    left: int
    right: int
    distance: float
    size: int


@dataclass(frozen=True)
class Dendrogram:
    """
    Immutable merge history over ``n_leaves`` points.

    Leaves have ids ``0..n-1``; the i-th merge creates cluster ``n + i``.
    """

    n_leaves: int
    merges: Tuple[Merge, ...] = ()

    def __len__(self) -> int:
        return len(self.merges)

    def distance_range(self) -> Tuple[float, float]:
        distances = [m.distance for m in self.merges]
        return min(distances), max(distances)


@dataclass
class DendrogramCut:
    """Result of a threshold cut, including how far it had to relax."""

    assignments: np.ndarray
    granularity: float
    attempts: int = 1
    quality: Optional[CutQualityScore] = None

    @property
    def num_clusters(self) -> int:
        return int(self.assignments.max()) + 1 if self.assignments.size else 0

    @property
    def relaxed(self) -> bool:
        return self.attempts > 1


@dataclass
class DetailAutoRange:
    """Granularity sweep bounds for detail cuts."""

    min: float
    max: float
    step: float = 5

    def __post_init__(self):
        if self.step <= 0:
            raise ValueError(f"detail auto-range step must be > 0, got {self.step}")

    def candidates(self) -> List[float]:
        values: List[float] = []
        g = self.min
        while g <= self.max:
            values.append(g)
            g += self.step
        return values


@dataclass
class TwoLayerCut:
    """Primary and detail assignments plus the detail -> primary mapping."""

    primary_assignments: np.ndarray
    detail_assignments: np.ndarray
    parent_map: Dict[int, int] = field(default_factory=dict)
    detail_granularities: Dict[int, float] = field(default_factory=dict)
    primary_cut: Optional[DendrogramCut] = None

    @property
    def num_primary(self) -> int:
        return int(self.primary_assignments.max()) + 1 if self.primary_assignments.size else 0

    @property
    def num_detail(self) -> int:
        return int(self.detail_assignments.max()) + 1 if self.detail_assignments.size else 0

    def detail_label(self, default_granularity: float) -> str:
        """Cut label naming the granularities the detail cuts actually used.

        Falls back to *default_granularity* when every primary cluster was a
        singleton and no sub-cut ran.
        """
        used = sorted(set(self.detail_granularities.values())) or [float(default_granularity)]
        return "detail:" + ",".join(f"{g:g}" for g in used)


# ------------------------------------------------------------------
# Building
# ------------------------------------------------------------------

def _best_pair(sims: np.ndarray) -> Tuple[int, int, float]:
    """Most similar (i, j) with i < j; the first pair in row-major order wins ties."""
    m = sims.shape[0]
    masked = np.where(np.triu(np.ones((m, m), dtype=bool), 1), sims, -np.inf)
    flat = int(np.argmax(masked))
    i, j = divmod(flat, m)
    return i, j, float(masked[i, j])


def _merged_centroid(X: Array2D, indices: Sequence[int]) -> np.ndarray:
    return normalize(X[list(indices)].sum(axis=0))


def build_dendrogram(vectors: Array2D) -> Dendrogram:
    """
    Build the full merge tree by greedy centroid linkage.

    At every step the two most similar active clusters (dot product of their
    centroids) are merged; the merged centroid is the normalized sum of all
    member vectors. The merged pair is removed and the new cluster appended,
    so active-cluster order (and therefore tie-breaking) is deterministic.

    Args:
        vectors: Unit vectors of shape (n_samples, n_features)

    Returns:
        Dendrogram with ``n - 1`` merges, ``distance = 1 - similarity``.
    """
    X = np.asarray(vectors, dtype=np.float64)
    n = X.shape[0]
    if n == 0:
        return Dendrogram(n_leaves=0)

    ids: List[int] = list(range(n))
    members: List[List[int]] = [[i] for i in range(n)]
    centroids = X.copy()
    sims = centroids @ centroids.T
    merges: List[Merge] = []
    next_id = n

    while len(ids) > 1:
        i, j, best = _best_pair(sims)
        merged = members[i] + members[j]
        centroid = _merged_centroid(X, merged)
        merges.append(Merge(left=ids[i], right=ids[j], distance=1.0 - best, size=len(merged)))

        keep = [t for t in range(len(ids)) if t != i and t != j]
        ids = [ids[t] for t in keep] + [next_id]
        members = [members[t] for t in keep] + [merged]
        centroids = np.vstack([centroids[keep], centroid[None, :]])
        row = centroids @ centroid
        sims = np.pad(sims[np.ix_(keep, keep)], ((0, 1), (0, 1)))
        sims[-1, :] = row
        sims[:, -1] = row
        next_id += 1

    logger.debug("Built dendrogram over %d vectors (%d merges)", n, len(merges))
    return Dendrogram(n_leaves=n, merges=tuple(merges))


# ------------------------------------------------------------------
# Cutting
# ------------------------------------------------------------------

def cut_dendrogram_by_count(vectors: Array2D, k: int) -> np.ndarray:
    """
    Agglomerate until exactly *k* clusters remain.

    Runs its own merge loop (no dendrogram needed). The surviving cluster of a
    merge keeps its position, so assignments follow the order of the first
    member of each cluster. ``n <= k`` returns one cluster per vector.
    """
    X = np.asarray(vectors, dtype=np.float64)
    n = X.shape[0]
    if n <= k:
        return np.arange(n, dtype=int)

    members: List[List[int]] = [[i] for i in range(n)]
    centroids = X.copy()
    sims = centroids @ centroids.T

    while len(members) > max(k, 1):
        i, j, _ = _best_pair(sims)
        members[i] = members[i] + members[j]
        centroids[i] = _merged_centroid(X, members[i])
        del members[j]
        centroids = np.delete(centroids, j, axis=0)
        sims = np.delete(np.delete(sims, j, axis=0), j, axis=1)
        row = centroids @ centroids[i]
        sims[i, :] = row
        sims[:, i] = row

    assignments = np.zeros(n, dtype=int)
    for cluster_idx, indices in enumerate(members):
        assignments[indices] = cluster_idx
    return assignments


def _replay_to_threshold(dendrogram: Dendrogram, threshold: float, inclusive: bool) -> np.ndarray:
    """Apply merges in order until the first one beyond *threshold*; relabel roots."""
    n = dendrogram.n_leaves
    uf = UnionFind(n + len(dendrogram.merges))
    next_id = n
    for merge in dendrogram.merges:
        beyond = merge.distance > threshold if inclusive else merge.distance >= threshold
        if beyond:
            break
        uf.union(merge.left, merge.right, into=next_id)
        next_id += 1

    labels: Dict[int, int] = {}
    assignments = np.empty(n, dtype=int)
    for i in range(n):
        root = uf.find(i)
        if root not in labels:
            labels[root] = len(labels)
        assignments[i] = labels[root]
    return assignments


def cut_dendrogram_by_threshold(
    dendrogram: Dendrogram,
    vectors: Array2D,
    jurors: Sequence[str],
    granularity_percent: float,
    params: CutQualityParams = STRICT_PRIMARY_PARAMS,
) -> DendrogramCut:
    """
    Cut the dendrogram at a distance threshold chosen by granularity.

    ``threshold = min_d + (max_d - min_d) * g / 100``: 0 keeps every point
    apart, 100 merges everything. Merges are replayed in dendrogram order and
    replay stops at the first merge beyond the threshold. When the resulting
    cut fails the quality gate, the granularity is raised by 10 and the cut
    repeated (at most 5 attempts, never beyond 100); the last cut is returned
    either way.

    Args:
        dendrogram: Tree from ``build_dendrogram`` over *vectors*
        vectors: The vectors the dendrogram was built from
        jurors: Juror per vector, for the quality gate
        granularity_percent: 0 (finest) .. 100 (coarsest)
        params: Quality constraints for this layer

    Returns:
        DendrogramCut with contiguous assignments in first-occurrence order.
    """
    X = np.asarray(vectors, dtype=np.float64)
    n = X.shape[0]
    if n == 0:
        return DendrogramCut(assignments=np.zeros(0, dtype=int), granularity=granularity_percent, attempts=0)
    if not dendrogram.merges:
        return DendrogramCut(assignments=np.arange(n, dtype=int), granularity=granularity_percent, attempts=0)

    min_d, max_d = dendrogram.distance_range()
    if min_d == max_d:
        return DendrogramCut(assignments=np.zeros(n, dtype=int), granularity=granularity_percent, attempts=0)

    granularity = float(granularity_percent)
    assignments = np.arange(n, dtype=int)
    quality: Optional[CutQualityScore] = None
    attempts = 0
    while attempts < MAX_RELAXATION_ATTEMPTS:
        attempts += 1
        inclusive = granularity >= 100
        threshold = max_d if inclusive else min_d + (max_d - min_d) * granularity / 100.0
        assignments = _replay_to_threshold(dendrogram, threshold, inclusive)
        k = int(assignments.max()) + 1
        quality = evaluate_cut_quality(assignments, jurors, compute_centroids(X, assignments, k), params)
        if quality.is_valid or granularity >= 100 or attempts >= MAX_RELAXATION_ATTEMPTS:
            break
        logger.debug(
            "Cut at granularity %.1f (%d clusters) failed quality gate; relaxing",
            granularity, k,
        )
        granularity = min(100.0, granularity + RELAXATION_STEP)

    if quality is not None and not quality.is_valid:
        logger.info(
            "Threshold cut still invalid after %d attempt(s) (granularity %.1f); keeping last cut",
            attempts, granularity,
        )
    return DendrogramCut(assignments=assignments, granularity=granularity, attempts=attempts, quality=quality)


def find_optimal_detail_granularity(
    dendrogram: Dendrogram,
    vectors: Array2D,
    jurors: Sequence[str],
    params: CutQualityParams,
    auto_range: DetailAutoRange,
) -> DendrogramCut:
    """
    Sweep detail granularities and keep the best valid multi-cluster cut.

    Candidates with one cluster or an invalid quality score are skipped; the
    highest score wins (earliest candidate on ties). When no candidate
    qualifies, the last attempted cut is returned.
    """
    X = np.asarray(vectors, dtype=np.float64)
    candidates = auto_range.candidates() or [DEFAULT_DETAIL_GRANULARITY]

    best: Optional[DendrogramCut] = None
    best_score = -np.inf
    last: Optional[DendrogramCut] = None
    for granularity in candidates:
        cut = cut_dendrogram_by_threshold(dendrogram, X, jurors, granularity, params)
        last = cut
        k = cut.num_clusters
        if k <= 1:
            continue
        quality = evaluate_cut_quality(cut.assignments, jurors, compute_centroids(X, cut.assignments, k), params)
        if not quality.is_valid:
            continue
        if quality.score > best_score:
            best_score = quality.score
            best = DendrogramCut(
                assignments=cut.assignments,
                granularity=granularity,
                attempts=cut.attempts,
                quality=quality,
            )

    if best is None:
        logger.debug("No valid detail cut in %s; using last attempted cut", candidates)
        return last
    return best


def cut_dendrogram_two_layer(
    dendrogram: Dendrogram,
    vectors: Array2D,
    jurors: Sequence[str],
    primary_params: CutQualityParams = STRICT_PRIMARY_PARAMS,
    detail_params: CutQualityParams = RELAXED_DETAIL_PARAMS,
    primary_granularity: float = 70,
    detail_granularity: float = DEFAULT_DETAIL_GRANULARITY,
    detail_auto_range: Optional[DetailAutoRange] = None,
) -> TwoLayerCut:
    """
    Coarse primary themes, each split into finer detail sub-themes.

    The primary layer is a threshold cut of the full dendrogram. Every primary
    cluster with more than one member gets its own sub-dendrogram and is cut
    either at *detail_granularity* or at the best granularity found in
    *detail_auto_range*. Detail ids are global and contiguous, assigned in
    primary-id order.

    Returns:
        TwoLayerCut whose ``parent_map`` maps each detail id to its primary
        id and whose ``detail_granularities`` records the granularity chosen
        per primary cluster.
    """
    X = np.asarray(vectors, dtype=np.float64)
    n = X.shape[0]
    if n == 0:
        empty = np.zeros(0, dtype=int)
        return TwoLayerCut(primary_assignments=empty, detail_assignments=empty.copy())

    primary_cut = cut_dendrogram_by_threshold(dendrogram, X, jurors, primary_granularity, primary_params)
    primary = primary_cut.assignments
    detail = np.full(n, -1, dtype=int)
    parent_map: Dict[int, int] = {}
    granularities: Dict[int, float] = {}
    next_detail = 0

    for p_id in sorted(set(primary.tolist())):
        members = np.flatnonzero(primary == p_id)
        if members.size == 1:
            detail[members[0]] = next_detail
            parent_map[next_detail] = p_id
            next_detail += 1
            continue

        sub_vectors = X[members]
        sub_jurors = [jurors[i] for i in members]
        sub_dendrogram = build_dendrogram(sub_vectors)
        if detail_auto_range is not None:
            sub_cut = find_optimal_detail_granularity(
                sub_dendrogram, sub_vectors, sub_jurors, detail_params, detail_auto_range
            )
        else:
            sub_cut = cut_dendrogram_by_threshold(
                sub_dendrogram, sub_vectors, sub_jurors, detail_granularity, detail_params
            )
        granularities[p_id] = sub_cut.granularity

        local_to_global: Dict[int, int] = {}
        for sub_id in sorted(set(sub_cut.assignments.tolist())):
            local_to_global[sub_id] = next_detail
            parent_map[next_detail] = p_id
            next_detail += 1
        for local_idx, sentence_idx in enumerate(members):
            detail[sentence_idx] = local_to_global[int(sub_cut.assignments[local_idx])]

    logger.info(
        "Two-layer cut: %d primary concept(s), %d detail concept(s)",
        int(primary.max()) + 1, next_detail,
    )
    return TwoLayerCut(
        primary_assignments=primary,
        detail_assignments=detail,
        parent_map=parent_map,
        detail_granularities=granularities,
        primary_cut=primary_cut,
    )
