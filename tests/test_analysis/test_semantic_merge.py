"""
Tests for semantic merging of near-duplicate concepts.
"""

import numpy as np
import pytest

from concept_graph.analysis.semantic_merge import MergeDetail, semantic_merge_concepts

CENTROIDS = np.array([
    [1.0, 0.0, 0.0],
    [0.999, 0.001, 0.0],  # dot product with index 0 is 0.999
    [0.0, 1.0, 0.0],
])
ASSIGNMENTS = [0, 0, 1, 1, 2, 2]


def test_merges_above_threshold():
    """Concepts with similarity above the threshold are merged."""
    result = semantic_merge_concepts(CENTROIDS, ASSIGNMENTS, similarity_threshold=0.95, max_concept_size=10)

    assert result.merged_count == 1
    assert result.num_clusters == 2
    assert result.assignments.tolist() == [0, 0, 0, 0, 1, 1]
    assert result.details[0].source == 1
    assert result.details[0].target == 0
    assert result.details[0].similarity == pytest.approx(0.999)


def test_no_merge_below_threshold():
    """The threshold is a strict lower bound."""
    result = semantic_merge_concepts(CENTROIDS, ASSIGNMENTS, similarity_threshold=0.999)

    assert result.merged_count == 0
    assert len(set(result.assignments.tolist())) == 3
    assert result.assignments.tolist() == ASSIGNMENTS


def test_smaller_merges_into_larger():
    assignments = [0, 1, 1, 1, 2, 2]
    result = semantic_merge_concepts(CENTROIDS, assignments, similarity_threshold=0.95, max_concept_size=10)

    assert result.details[0].source == 0
    assert result.details[0].target == 1
    assert result.assignments.tolist() == [0, 0, 0, 0, 1, 1]
    assert result.id_map == {0: 0, 1: 0, 2: 1}


def test_large_concepts_are_not_merged():
    """Two concepts both above the size cap stay separate."""
    result = semantic_merge_concepts(CENTROIDS, ASSIGNMENTS, similarity_threshold=0.95, max_concept_size=1)
    assert result.merged_count == 0


def test_default_size_cap_is_thirty_percent():
    """Six sentences give a cap of 1.8, which two-member concepts exceed."""
    result = semantic_merge_concepts(CENTROIDS, ASSIGNMENTS, similarity_threshold=0.95)
    assert result.merged_count == 0


def test_merge_chain_resolves():
    centroids = np.array([[1.0, 0.0], [0.999, 0.04], [0.998, 0.06]])
    result = semantic_merge_concepts(centroids, [0, 0, 1, 1, 2, 2], similarity_threshold=0.9, max_concept_size=10)

    assert result.merged_count == 2
    assert result.assignments.tolist() == [0] * 6


def test_merge_never_increases_cluster_count(sentence_vectors, true_labels):
    centroids = np.vstack([
        sentence_vectors[true_labels == c].mean(axis=0) for c in range(5)
    ])
    centroids /= np.linalg.norm(centroids, axis=1, keepdims=True)
    result = semantic_merge_concepts(centroids, true_labels)
    assert result.num_clusters <= 5
    assert sorted(set(result.assignments.tolist())) == list(range(result.num_clusters))


def test_single_concept_is_untouched():
    result = semantic_merge_concepts(np.array([[1.0, 0.0]]), [0, 0, 0])
    assert result.merged_count == 0
    assert result.assignments.tolist() == [0, 0, 0]


def test_merge_detail_to_dict():
    detail = MergeDetail(source=3, target=1, similarity=0.9)
    assert detail.to_dict() == {"from": 3, "to": 1, "similarity": 0.9}
