"""
Vector primitives shared by every clustering and projection step.

All similarity math assumes unit-normalized inputs: ``cosine`` is a plain dot
product, so callers normalize once up front instead of on every comparison.
"""

from __future__ import annotations

from typing import Dict, List, Sequence
import numpy as np

Array2D = np.ndarray

_UINT32 = 2 ** 32
_LCG_MULTIPLIER = 1664525
_LCG_INCREMENT = 1013904223
_LCG_DIVISOR = 0xFFFFFFFF


def normalize(v: np.ndarray) -> np.ndarray:
    """L2-normalize a vector. A zero vector is returned unchanged (norm fallback 1)."""
    v = np.asarray(v, dtype=np.float64)
    norm = float(np.linalg.norm(v))
    return v / (norm if norm > 0 else 1.0)


def normalize_rows(X: Array2D) -> Array2D:
    """Row-wise L2 normalization with the same zero-norm fallback as ``normalize``."""
    X = np.asarray(X, dtype=np.float64)
    if X.size == 0:
        return X.reshape(X.shape[0], -1) if X.ndim == 2 else X
    norms = np.linalg.norm(X, axis=1, keepdims=True)
    norms[norms == 0] = 1.0
    return X / norms


def cosine(a: np.ndarray, b: np.ndarray) -> float:
    """
    Cosine similarity of two unit vectors (dot product over the shared length).

    Vectors of different length are compared on their common prefix, which
    lets concept centroids and projections of mismatched width degrade to a
    partial score instead of raising.
    """
    a = np.asarray(a, dtype=np.float64)
    b = np.asarray(b, dtype=np.float64)
    m = min(a.shape[0], b.shape[0])
    if m == 0:
        return 0.0
    return float(np.dot(a[:m], b[:m]))


def cosine_matrix(A: Array2D, B: Array2D) -> Array2D:
    """Pairwise dot-product similarities, shape ``(len(A), len(B))``."""
    A = np.asarray(A, dtype=np.float64)
    B = np.asarray(B, dtype=np.float64)
    if A.shape[0] == 0 or B.shape[0] == 0:
        return np.zeros((A.shape[0], B.shape[0]))
    return A @ B.T


class LinearCongruentialGenerator:
    """
    Seeded 32-bit linear congruential generator.

    ``state <- (1664525 * state + 1013904223) mod 2**32`` and each draw is
    ``state / 0xFFFFFFFF``. Identical seeds reproduce identical clusterings
    and layouts on every platform and numpy release.
    """

    def __init__(self, seed: int) -> None:
        self._state = int(seed) % _UINT32

    def random(self) -> float:
        """Next float in ``[0, 1]``."""
        self._state = (_LCG_MULTIPLIER * self._state + _LCG_INCREMENT) % _UINT32
        return self._state / _LCG_DIVISOR

    def randint(self, n: int) -> int:
        """Next integer in ``[0, n)``."""
        return min(int(self.random() * n), n - 1)


class UnionFind:
    """Arena-indexed disjoint sets with path compression."""

    def __init__(self, size: int) -> None:
        self.parent: List[int] = list(range(size))

    def find(self, x: int) -> int:
        root = x
        while self.parent[root] != root:
            root = self.parent[root]
        while self.parent[x] != root:
            self.parent[x], x = root, self.parent[x]
        return root

    def union(self, a: int, b: int, into: int = None) -> int:
        """
        Join the sets containing *a* and *b*.

        When *into* is given both roots are attached under that node (used to
        replay dendrogram merges where the merged cluster has its own id).
        Otherwise *b*'s root is attached under *a*'s root.
        """
        ra, rb = self.find(a), self.find(b)
        if into is None:
            if ra != rb:
                self.parent[rb] = ra
            return ra
        self.parent[ra] = into
        self.parent[rb] = into
        return into


def relabel_contiguous(labels: Sequence[int]) -> np.ndarray:
    """Map arbitrary labels onto ``0..K-1`` in first-seen order."""
    mapping: Dict[int, int] = {}
    out = np.empty(len(labels), dtype=int)
    for i, label in enumerate(labels):
        label = int(label)
        if label not in mapping:
            mapping[label] = len(mapping)
        out[i] = mapping[label]
    return out


def cluster_sizes(assignments: Sequence[int], k: int) -> np.ndarray:
    """Member count per cluster id; ids outside ``[0, k)`` are ignored."""
    a = np.asarray(assignments, dtype=int)
    a = a[(a >= 0) & (a < k)]
    return np.bincount(a, minlength=k)[:k] if k > 0 else np.zeros(0, dtype=int)


def compute_centroids(
    vectors: Array2D,
    assignments: Sequence[int],
    k: int,
    weights: Sequence[float] = None,
) -> Array2D:
    """
    L2-normalized (optionally weighted) mean vector per cluster.

    Ids outside ``[0, k)`` are skipped and empty clusters keep a zero centroid.
    """
    X = np.asarray(vectors, dtype=np.float64)
    d = X.shape[1] if X.ndim == 2 and X.shape[0] > 0 else 0
    sums = np.zeros((k, d))
    if k == 0 or d == 0:
        return sums
    a = np.asarray(assignments, dtype=int)
    w = np.ones(len(a)) if weights is None else np.asarray(weights, dtype=np.float64)
    valid = (a >= 0) & (a < k)
    np.add.at(sums, a[valid], X[valid] * w[valid, None])
    return normalize_rows(sums)
