"""
Flat clustering and agreement metrics.

Provides seeded spherical (cosine) k-means plus the scoring helpers used by
the K search: a centroid-based silhouette approximation and the Adjusted Rand
Index for cross-seed stability.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List
import numpy as np

from .vector_ops import LinearCongruentialGenerator, normalize_rows
from ..utils.logging_config import get_logger

logger = get_logger(__name__)

Array2D = np.ndarray


@dataclass
class KMeansResult:
    """Result of a single k-means run."""

    k: int
    assignments: np.ndarray
    centroids: Array2D
    n_iter: int = 0


# ------------------------------------------------------------------
# Cosine k-means
# ------------------------------------------------------------------

def _seed_centroids(X: Array2D, k: int, rng: LinearCongruentialGenerator) -> Array2D:
    """Pick ``k`` distinct rows of *X* as initial centroids using the LCG."""
    n = X.shape[0]
    chosen: List[int] = []
    seen = set()
    while len(chosen) < k:
        idx = rng.randint(n)
        if idx in seen:
            continue
        seen.add(idx)
        chosen.append(idx)
    return X[chosen].copy()


def _mean_centroids(X: Array2D, assignments: np.ndarray, k: int) -> Array2D:
    """Normalized mean per cluster; empty clusters keep a zero centroid."""
    d = X.shape[1]
    sums = np.zeros((k, d))
    np.add.at(sums, assignments, X)
    counts = np.bincount(assignments, minlength=k).astype(np.float64)
    counts[counts == 0] = 1.0
    return normalize_rows(sums / counts[:, None])


def kmeans_cosine(
    vectors: Array2D, k: int, *, iterations: int = 25, seed: int = 42
) -> KMeansResult:
    """
    Spherical k-means on unit vectors with deterministic LCG seeding.

    Initial centroids are ``min(k, n)`` distinct input vectors drawn with a
    ``LinearCongruentialGenerator(seed)``. Each iteration assigns every vector
    to its most similar centroid (dot product; the lowest index wins ties),
    then recomputes centroids as L2-normalized member means. Iteration stops
    early once no assignment changes.

    Args:
        vectors: Unit-normalized data of shape (n_samples, n_features)
        k: Requested number of clusters
        iterations: Maximum number of assign/update rounds
        seed: LCG seed; identical seeds give identical results

    Returns:
        KMeansResult with ``k = min(k, n)``, assignments in ``[0, k)`` and
        centroids of shape (k, n_features). Empty clusters keep a zero
        centroid and are left for the quality gate to flag.

    Raises:
        ValueError: If k < 1
    """
    if k < 1:
        raise ValueError(f"k must be >= 1, got {k}")

    X = np.asarray(vectors, dtype=np.float64)
    n = X.shape[0]
    if n == 0:
        return KMeansResult(k=0, assignments=np.zeros(0, dtype=int), centroids=np.zeros((0, 0)))

    K = min(k, n)
    rng = LinearCongruentialGenerator(seed)
    centroids = _seed_centroids(X, K, rng)
    assignments = np.zeros(n, dtype=int)

    n_iter = 0
    for _ in range(iterations):
        n_iter += 1
        new_assignments = np.argmax(X @ centroids.T, axis=1)
        changed = int(np.count_nonzero(new_assignments != assignments))
        assignments = new_assignments
        centroids = _mean_centroids(X, assignments, K)
        if changed == 0:
            break

    empty = int(np.count_nonzero(np.bincount(assignments, minlength=K) == 0))
    if empty:
        logger.warning("k-means (k=%d, seed=%d) left %d empty cluster(s)", K, seed, empty)
    logger.debug("k-means k=%d seed=%d converged after %d iteration(s)", K, seed, n_iter)

    return KMeansResult(k=K, assignments=assignments.astype(int), centroids=centroids, n_iter=n_iter)


# ------------------------------------------------------------------
# Scoring helpers
# ------------------------------------------------------------------

def silhouette_lite(vectors: Array2D, assignments: np.ndarray, centroids: Array2D) -> float:
    """
    Centroid-based silhouette approximation.

    For each vector: similarity to its own centroid minus the best similarity
    to any other centroid (starting from -1). Returns the mean over vectors,
    or 0.0 for an empty input.
    """
    X = np.asarray(vectors, dtype=np.float64)
    assignments = np.asarray(assignments, dtype=int)
    n = X.shape[0]
    if n == 0:
        return 0.0
    sims = X @ np.asarray(centroids, dtype=np.float64).T
    own = sims[np.arange(n), assignments]
    other = sims.copy()
    other[np.arange(n), assignments] = -np.inf
    best_other = np.maximum(other.max(axis=1), -1.0) if other.shape[1] > 1 else np.full(n, -1.0)
    return float(np.mean(own - best_other))


def adjusted_rand_index(labels_a: np.ndarray, labels_b: np.ndarray) -> float:
    """
    Compute Adjusted Rand Index between two clusterings.

    ARI measures agreement between two clusterings, adjusted for chance.
    Returns 1.0 for identical clusterings, ~0.0 for random agreement.

    Args:
        labels_a: First clustering labels
        labels_b: Second clustering labels

    Returns:
        ARI score in [-1, 1], typically in [0, 1]
    """
    labels_a = np.asarray(labels_a)
    labels_b = np.asarray(labels_b)
    n = len(labels_a)
    if n == 0:
        return 1.0
    _, a = np.unique(labels_a, return_inverse=True)
    _, b = np.unique(labels_b, return_inverse=True)

    contingency = np.zeros((a.max() + 1, b.max() + 1), dtype=np.int64)
    np.add.at(contingency, (a, b), 1)

    sum_comb = (contingency * (contingency - 1) / 2.0).sum()
    rows = contingency.sum(axis=1)
    cols = contingency.sum(axis=0)
    sum_comb_c = (rows * (rows - 1) / 2.0).sum()
    sum_comb_k = (cols * (cols - 1) / 2.0).sum()
    comb_n = n * (n - 1) / 2.0

    if comb_n == 0:
        return 1.0

    expected_index = (sum_comb_c * sum_comb_k) / comb_n
    max_index = 0.5 * (sum_comb_c + sum_comb_k)
    denom = max_index - expected_index
    if denom == 0:
        return 1.0
    return float((sum_comb - expected_index) / denom)


def pairwise_ari(labels_list: List[np.ndarray]) -> List[float]:
    """
    Compute pairwise ARI between all pairs of clusterings.

    Args:
        labels_list: List of clustering label arrays

    Returns:
        List of ARI scores for all pairs (i, j) where i < j
    """
    aris = []
    for i in range(len(labels_list)):
        for j in range(i + 1, len(labels_list)):
            aris.append(adjusted_rand_index(labels_list[i], labels_list[j]))
    return aris
