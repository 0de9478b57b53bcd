"""
Tests for vector primitives: normalization, similarity, LCG, union-find.
"""

import numpy as np
import pytest

from concept_graph.algorithms.vector_ops import (
    LinearCongruentialGenerator,
    UnionFind,
    cluster_sizes,
    compute_centroids,
    cosine,
    cosine_matrix,
    normalize,
    normalize_rows,
    relabel_contiguous,
)


def test_normalize_unit_length():
    v = normalize(np.array([3.0, 4.0]))
    np.testing.assert_allclose(v, [0.6, 0.8])


def test_normalize_zero_vector_unchanged():
    np.testing.assert_array_equal(normalize(np.zeros(3)), np.zeros(3))


def test_normalize_rows_mixed():
    """Zero rows stay zero, others become unit length."""
    X = normalize_rows(np.array([[0.0, 2.0], [0.0, 0.0]]))
    np.testing.assert_allclose(X, [[0.0, 1.0], [0.0, 0.0]])


def test_cosine_is_dot_product():
    a = normalize(np.array([1.0, 1.0]))
    assert cosine(a, a) == pytest.approx(1.0)
    assert cosine(np.array([1.0, 0.0]), np.array([0.0, 1.0])) == pytest.approx(0.0)


def test_cosine_uses_common_prefix():
    """Vectors of different length compare on the shared prefix."""
    assert cosine(np.array([1.0, 0.0, 5.0]), np.array([1.0, 0.0])) == pytest.approx(1.0)
    assert cosine(np.zeros(0), np.array([1.0])) == 0.0


def test_cosine_matrix_shape():
    A = np.eye(3)
    B = np.eye(3)[:2]
    sims = cosine_matrix(A, B)
    assert sims.shape == (3, 2)
    np.testing.assert_allclose(sims, np.eye(3)[:, :2])
    assert cosine_matrix(np.zeros((0, 3)), B).shape == (0, 2)


# ------------------------------------------------------------------
# LCG
# ------------------------------------------------------------------

def test_lcg_first_draw():
    """state = (1664525 * 42 + 1013904223) mod 2**32."""
    rng = LinearCongruentialGenerator(42)
    assert rng.random() == pytest.approx(1083814273 / 0xFFFFFFFF)


def test_lcg_reproducible():
    a = LinearCongruentialGenerator(7)
    b = LinearCongruentialGenerator(7)
    assert [a.random() for _ in range(20)] == [b.random() for _ in range(20)]


def test_lcg_seeds_differ():
    a = LinearCongruentialGenerator(1)
    b = LinearCongruentialGenerator(2)
    assert a.random() != b.random()


def test_lcg_randint_range():
    rng = LinearCongruentialGenerator(99)
    draws = [rng.randint(5) for _ in range(200)]
    assert min(draws) >= 0
    assert max(draws) <= 4
    assert len(set(draws)) == 5


# ------------------------------------------------------------------
# Union-find and labels
# ------------------------------------------------------------------

def test_union_find_joins_sets():
    uf = UnionFind(5)
    uf.union(0, 1)
    uf.union(3, 4)
    uf.union(1, 4)
    assert uf.find(0) == uf.find(3)
    assert uf.find(2) != uf.find(0)


def test_union_find_into_new_node():
    """Merging under an explicit id replays dendrogram merges."""
    uf = UnionFind(5)
    assert uf.union(0, 1, into=3) == 3
    assert uf.find(0) == 3
    assert uf.find(1) == 3


def test_relabel_contiguous_first_seen_order():
    assert relabel_contiguous([5, 5, 2, 7, 2]).tolist() == [0, 0, 1, 2, 1]


def test_cluster_sizes_ignores_out_of_range():
    assert cluster_sizes([0, 0, 2, -1, 5], 3).tolist() == [2, 0, 1]


def test_compute_centroids_weighted():
    """Weights pull the centroid toward heavier members."""
    X = np.array([[1.0, 0.0], [0.0, 1.0]])
    unweighted = compute_centroids(X, [0, 0], 1)
    weighted = compute_centroids(X, [0, 0], 1, weights=[3.0, 1.0])
    np.testing.assert_allclose(unweighted[0], normalize(np.array([1.0, 1.0])))
    assert weighted[0, 0] > weighted[0, 1]
    assert np.linalg.norm(weighted[0]) == pytest.approx(1.0)


def test_compute_centroids_empty_cluster_is_zero():
    X = np.array([[1.0, 0.0], [0.0, 1.0]])
    centroids = compute_centroids(X, [0, 0], 2)
    np.testing.assert_array_equal(centroids[1], [0.0, 0.0])
