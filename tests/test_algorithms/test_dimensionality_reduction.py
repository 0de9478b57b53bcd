"""
Tests for dimensionality reduction utilities.
"""

import numpy as np
import pytest

from concept_graph.algorithms.dimensionality_reduction import (
    fibonacci_sphere,
    find_optimal_dimensions_elbow,
    find_optimal_dimensions_threshold,
    generate_axis_directions,
    layout_dimensions,
    normalize_coordinates,
    power_iteration_pca,
    reduce_to_nd,
)


# ------------------------------------------------------------------
# power_iteration_pca
# ------------------------------------------------------------------

def _anisotropic_data(n=100, seed=42):
    rng = np.random.default_rng(seed)
    return rng.standard_normal((n, 5)) * np.array([5.0, 3.0, 2.0, 1.0, 0.5])


def test_pca_single_axis():
    """Data varying along one axis has one component carrying all variance."""
    X = np.array([[t, 0.0, 0.0] for t in range(-3, 4)], dtype=float)
    pca = power_iteration_pca(X, 2)

    np.testing.assert_allclose(np.abs(pca.components[0]), [1.0, 0.0, 0.0], atol=1e-9)
    assert pca.variance_stats.explained_variance_ratios[0] == pytest.approx(1.0)
    np.testing.assert_allclose(pca.components[1], 0.0)


def test_pca_matches_eigendecomposition():
    X = _anisotropic_data()
    pca = power_iteration_pca(X, 3)

    centered = X - X.mean(axis=0)
    cov = centered.T @ centered / X.shape[0]
    eigvals, eigvecs = np.linalg.eigh(cov)
    top = eigvecs[:, -1]

    assert abs(float(pca.components[0] @ top)) == pytest.approx(1.0, abs=1e-6)
    assert pca.variance_stats.explained_variances[0] == pytest.approx(eigvals[-1], rel=1e-6)


def test_pca_components_orthonormal():
    pca = power_iteration_pca(_anisotropic_data(), 4)
    gram = pca.components @ pca.components.T
    np.testing.assert_allclose(gram, np.eye(4), atol=1e-6)


def test_pca_variance_stats_consistent():
    pca = power_iteration_pca(_anisotropic_data(), 5)
    stats = pca.variance_stats
    ratios = stats.explained_variance_ratios

    assert ratios == sorted(ratios, reverse=True)
    assert stats.cumulative_variances[-1] == pytest.approx(1.0, abs=1e-6)
    assert all(b >= a for a, b in zip(stats.cumulative_variances, stats.cumulative_variances[1:]))


def test_pca_deterministic():
    X = _anisotropic_data()
    a = power_iteration_pca(X, 3)
    b = power_iteration_pca(X, 3)
    np.testing.assert_array_equal(a.components, b.components)


def test_pca_exhausted_components_are_zero():
    """Three points span at most two centered dimensions."""
    X = np.array([[1.0, 0.0, 0.0, 0.0], [0.0, 1.0, 0.0, 0.0], [0.0, 0.0, 1.0, 0.0]])
    pca = power_iteration_pca(X, 4)

    assert pca.components.shape == (4, 4)
    np.testing.assert_allclose(pca.components[2:], 0.0)
    assert pca.variance_stats.explained_variances[2] == pytest.approx(0.0, abs=1e-12)


def test_pca_components_capped_at_features():
    pca = power_iteration_pca(_anisotropic_data(), 10)
    assert pca.components.shape == (5, 5)
    assert pca.projections.shape == (100, 5)


def test_pca_empty_input():
    pca = power_iteration_pca(np.zeros((0, 3)), 2)
    assert pca.components.size == 0
    assert pca.variance_stats.explained_variances == []


# ------------------------------------------------------------------
# Display mapping
# ------------------------------------------------------------------

def test_generate_axis_directions_orthogonal_up_to_three():
    np.testing.assert_array_equal(generate_axis_directions(2), np.eye(3)[:2])
    np.testing.assert_array_equal(generate_axis_directions(3), np.eye(3))


def test_generate_axis_directions_sphere_beyond_three():
    directions = generate_axis_directions(6)
    assert directions.shape == (6, 3)
    np.testing.assert_allclose(np.linalg.norm(directions, axis=1), 1.0)


def test_fibonacci_sphere_small():
    assert fibonacci_sphere(0).shape == (0, 3)
    np.testing.assert_array_equal(fibonacci_sphere(1), [[1.0, 0.0, 0.0]])


def test_normalize_coordinates_shared_range():
    """All axes share the largest range, centered on the bounding-box midpoint."""
    coords = np.array([[0.0, 0.0, 0.0], [2.0, 1.0, 0.0]])
    out = normalize_coordinates(coords, scale=10)
    np.testing.assert_allclose(out, [[-10.0, -5.0, 0.0], [10.0, 5.0, 0.0]])


def test_reduce_to_nd_shapes(sentence_vectors):
    reduction = reduce_to_nd(sentence_vectors, 4)
    assert reduction.coords.shape == (50, 3)
    assert reduction.pc_values.shape == (50, 4)
    assert np.abs(reduction.coords).max() <= 10.0 + 1e-9


def test_reduce_to_nd_trivial_inputs():
    empty = reduce_to_nd(np.zeros((0, 3)), 3)
    assert empty.coords.shape == (0, 3)

    single = reduce_to_nd(np.array([[1.0, 0.0]]), 3)
    np.testing.assert_array_equal(single.coords, np.zeros((1, 3)))


# ------------------------------------------------------------------
# Dimension selection
# ------------------------------------------------------------------

def test_elbow_basic():
    assert find_optimal_dimensions_elbow([10, 2, 1, 0.5, 0.2]) == 2


def test_elbow_ignores_trailing_zeros():
    assert find_optimal_dimensions_elbow([10, 2, 1, 0.5, 0.2, 0.0, 0.0]) == 2


def test_elbow_short_inputs():
    assert find_optimal_dimensions_elbow([]) == 1
    assert find_optimal_dimensions_elbow([5.0]) == 1
    assert find_optimal_dimensions_elbow([5.0, 1.0]) == 2


def test_threshold_dimensions():
    assert find_optimal_dimensions_threshold([6, 3, 1], 10, 0.9) == 2
    assert find_optimal_dimensions_threshold([6, 3, 1], 10, 0.5) == 1
    assert find_optimal_dimensions_threshold([6, 3, 1], 20, 0.9) == 3


def test_threshold_dimensions_degenerate():
    assert find_optimal_dimensions_threshold([], 0) == 1
    assert find_optimal_dimensions_threshold([1.0], 0) == 1


def test_layout_dimensions():
    assert layout_dimensions(2, 6) == (2, 3)
    assert layout_dimensions(5, 3) == (2, 2)
    assert layout_dimensions(0, 10) == (1, 3)
    assert layout_dimensions(8, 20) == (8, 8)


def test_elbow_scree_with_exhausted_axes():
    assert find_optimal_dimensions_elbow([1500, 1400, 1300, 100, 0, 0]) == 3


def test_pc_values_preserve_distances_between_separated_clusters():
    """Three points span two centered dimensions, so two components keep every distance."""
    X = np.eye(16)[:3]
    reduction = reduce_to_nd(X, 2)
    for i in range(3):
        for j in range(i + 1, 3):
            original = np.linalg.norm(X[i] - X[j])
            projected = np.linalg.norm(reduction.pc_values[i] - reduction.pc_values[j])
            assert projected == pytest.approx(original, rel=1e-6)
