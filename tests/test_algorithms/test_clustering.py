"""
Tests for cosine k-means and the agreement metrics used by the K search.
"""

import numpy as np
import pytest

from concept_graph.algorithms.clustering import (
    KMeansResult,
    adjusted_rand_index,
    kmeans_cosine,
    pairwise_ari,
    silhouette_lite,
)


# ------------------------------------------------------------------
# kmeans_cosine
# ------------------------------------------------------------------

def test_kmeans_basic(sentence_vectors):
    """Test k-means returns a well-formed result."""
    result = kmeans_cosine(sentence_vectors, 5, seed=42)

    assert isinstance(result, KMeansResult)
    assert result.k == 5
    assert result.assignments.shape == (50,)
    assert result.centroids.shape == (5, 16)
    assert result.assignments.min() >= 0
    assert result.assignments.max() < 5
    assert 1 <= result.n_iter <= 25


def test_kmeans_centroids_are_unit_length(sentence_vectors):
    """Non-empty clusters get L2-normalized centroids."""
    result = kmeans_cosine(sentence_vectors, 5, seed=7)
    occupied = np.bincount(result.assignments, minlength=5) > 0
    norms = np.linalg.norm(result.centroids[occupied], axis=1)
    np.testing.assert_allclose(norms, 1.0, atol=1e-9)


def test_kmeans_deterministic(sentence_vectors):
    """Identical seeds give identical clusterings."""
    a = kmeans_cosine(sentence_vectors, 5, seed=123)
    b = kmeans_cosine(sentence_vectors, 5, seed=123)
    np.testing.assert_array_equal(a.assignments, b.assignments)
    np.testing.assert_allclose(a.centroids, b.centroids)


def test_kmeans_k_capped_at_n():
    """Asking for more clusters than vectors yields one cluster per vector."""
    X = np.eye(3)
    result = kmeans_cosine(X, 10)
    assert result.k == 3
    assert sorted(result.assignments.tolist()) == [0, 1, 2]


def test_kmeans_empty_input():
    """Empty input returns an empty result."""
    result = kmeans_cosine(np.zeros((0, 4)), 3)
    assert result.k == 0
    assert result.assignments.size == 0


def test_kmeans_invalid_k():
    """k < 1 is rejected."""
    with pytest.raises(ValueError):
        kmeans_cosine(np.eye(3), 0)


def test_kmeans_identical_vectors_leave_empty_cluster():
    """Ties go to the lowest centroid index, so duplicates leave a zero centroid."""
    X = np.tile([1.0, 0.0], (4, 1))
    result = kmeans_cosine(X, 2)
    assert result.assignments.tolist() == [0, 0, 0, 0]
    np.testing.assert_allclose(result.centroids[1], 0.0)


def test_kmeans_each_sentence_closest_to_own_centroid(sentence_vectors):
    """After convergence every vector sits with its most similar centroid."""
    result = kmeans_cosine(sentence_vectors, 5, iterations=100, seed=42)
    sims = sentence_vectors @ result.centroids.T
    np.testing.assert_array_equal(np.argmax(sims, axis=1), result.assignments)


# ------------------------------------------------------------------
# Scoring helpers
# ------------------------------------------------------------------

def test_silhouette_lite_perfect_separation():
    """Orthogonal clusters sitting on their centroids score 1."""
    X = np.array([[1.0, 0.0], [1.0, 0.0], [0.0, 1.0], [0.0, 1.0]])
    assignments = np.array([0, 0, 1, 1])
    assert silhouette_lite(X, assignments, np.eye(2)) == pytest.approx(1.0)


def test_silhouette_lite_single_cluster():
    """With one centroid the best other similarity is -1."""
    X = np.array([[1.0, 0.0], [1.0, 0.0]])
    assert silhouette_lite(X, np.array([0, 0]), np.array([[1.0, 0.0]])) == pytest.approx(2.0)


def test_silhouette_lite_empty():
    assert silhouette_lite(np.zeros((0, 2)), np.zeros(0, dtype=int), np.eye(2)) == 0.0


def test_adjusted_rand_index_identical():
    """Test ARI for identical clusterings."""
    labels = np.array([0, 0, 1, 1, 2, 2])
    assert adjusted_rand_index(labels, labels) == pytest.approx(1.0)


def test_adjusted_rand_index_permuted_labels():
    """Label names do not matter, only the partition."""
    a = np.array([0, 0, 1, 1, 2, 2])
    b = np.array([2, 2, 0, 0, 1, 1])
    assert adjusted_rand_index(a, b) == pytest.approx(1.0)


def test_adjusted_rand_index_disagreement():
    """Crossed partitions score below perfect agreement."""
    a = np.array([0, 0, 1, 1])
    b = np.array([0, 1, 0, 1])
    assert adjusted_rand_index(a, b) < 0.5


def test_pairwise_ari():
    """Test pairwise ARI computation."""
    labels_list = [
        np.array([0, 0, 1, 1]),
        np.array([0, 0, 1, 1]),
        np.array([1, 1, 0, 0]),
    ]
    aris = pairwise_ari(labels_list)
    assert len(aris) == 3
    assert all(a == pytest.approx(1.0) for a in aris)
