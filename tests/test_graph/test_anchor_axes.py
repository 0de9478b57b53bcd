"""
Tests for anchor axis embedding and projection.
"""

from unittest.mock import AsyncMock

import numpy as np
import pytest

from concept_graph.graph.anchor_axes import (
    compute_axis_vector,
    embed_anchor_axes,
    embed_anchor_axis,
    mean_vector,
    project_concept_centroids,
    project_juror_vectors,
    project_to_anchor_axis,
)
from concept_graph.models import AnchorAxis, AxisPole

PHRASES = {
    "warm": [1.0, 0.0],
    "glowing": [1.0, 0.0],
    "cold": [-1.0, 0.0],
}


async def fake_embed(texts):
    return np.array([PHRASES[t] for t in texts])


def _axis(negative=("cold",), positive=("warm", "glowing")):
    return AnchorAxis(
        id="temperature",
        name="Temperature",
        negative_pole=AxisPole("Cold", list(negative)),
        positive_pole=AxisPole("Warm", list(positive)),
    )


def _embedded_axis():
    return AnchorAxis(
        id="temperature",
        name="Temperature",
        negative_pole=AxisPole("Cold"),
        positive_pole=AxisPole("Warm"),
        axis_vector=np.array([1.0, 0.0]),
    )


# ------------------------------------------------------------------
# Vectors
# ------------------------------------------------------------------

def test_mean_vector():
    np.testing.assert_allclose(mean_vector([np.array([1.0, 0.0]), np.array([0.0, 1.0])]), [0.5, 0.5])
    assert mean_vector([]).size == 0


def test_compute_axis_vector():
    np.testing.assert_allclose(compute_axis_vector(np.array([1.0, 0.0]), np.array([-1.0, 0.0])), [1.0, 0.0])
    assert compute_axis_vector(np.zeros(0), np.array([1.0])).size == 0


def test_project_to_anchor_axis():
    assert project_to_anchor_axis(np.array([0.6, 0.8]), np.array([1.0, 0.0])) == pytest.approx(0.6)
    assert project_to_anchor_axis(np.array([3.0, 0.0]), np.array([2.0, 0.0])) == pytest.approx(1.0)
    assert project_to_anchor_axis(np.zeros(0), np.array([1.0])) == 0.0


# ------------------------------------------------------------------
# Embedding
# ------------------------------------------------------------------

@pytest.mark.asyncio
async def test_embed_anchor_axis():
    axis = await embed_anchor_axis(_axis(), fake_embed)

    np.testing.assert_allclose(axis.negative_vector, [-1.0, 0.0])
    np.testing.assert_allclose(axis.positive_vector, [1.0, 0.0])
    np.testing.assert_allclose(axis.axis_vector, [1.0, 0.0])


@pytest.mark.asyncio
async def test_axis_without_seed_phrases_is_not_embedded():
    embed = AsyncMock()
    axis = _axis(negative=())
    result = await embed_anchor_axis(axis, embed)

    assert result is axis
    embed.assert_not_awaited()


@pytest.mark.asyncio
async def test_embed_anchor_axes_calls_embedder_per_pole():
    embed = AsyncMock(side_effect=fake_embed)
    axes = await embed_anchor_axes([_axis(), _axis()], embed)

    assert len(axes) == 2
    assert embed.await_count == 4
    embed.assert_any_await(["cold"])
    embed.assert_any_await(["warm", "glowing"])


def test_anchor_axis_from_dict():
    axis = AnchorAxis.from_dict({
        "id": "mood",
        "negative_pole": {"label": "Calm", "seed_phrases": ["quiet"]},
        "positive_pole": {"label": "Lively", "seed_phrases": ["busy"]},
        "axis_vector": [0.0, 1.0],
    })
    assert axis.name == "mood"
    assert axis.negative_pole.seed_phrases == ["quiet"]
    np.testing.assert_allclose(axis.axis_vector, [0.0, 1.0])
    assert axis.positive_vector is None


# ------------------------------------------------------------------
# Projection
# ------------------------------------------------------------------

def test_project_concept_centroids():
    scores = project_concept_centroids(np.array([[1.0, 0.0], [0.0, 1.0]]), [_embedded_axis()])
    assert scores["concept:0"]["temperature"] == pytest.approx(1.0)
    assert scores["concept:1"]["temperature"] == pytest.approx(0.0)


def test_project_concept_centroids_custom_ids_and_unembedded_axes():
    scores = project_concept_centroids(np.array([[1.0, 0.0]]), [_embedded_axis(), _axis()], ["c:a"])
    assert scores == {"c:a": {"temperature": pytest.approx(1.0)}}


def test_project_juror_vectors():
    centroids = np.array([[1.0, 0.0], [0.0, 1.0]])
    juror_vectors = {
        "alice": {"concept:0": 0.5, "concept:1": 0.5},
        "bob": {"concept:0": 1.0},
        "carol": {"concept:9": 1.0},
    }
    scores = project_juror_vectors(juror_vectors, centroids, [_embedded_axis()])

    assert scores["alice"]["temperature"] == pytest.approx(0.5)
    assert scores["bob"]["temperature"] == pytest.approx(1.0)
    assert scores["carol"]["temperature"] == 0.0
