"""
Tests for axis labeling.
"""

from concept_graph.graph.axis_labeler import DEPTH_LABEL, LOW_VARIANCE_LABEL, label_axes
from concept_graph.models import ConceptMeta, GraphNode, JurorMeta


def _concept(cid):
    return GraphNode(id=cid, type="concept", label=cid.upper(), size=1.0, meta=ConceptMeta())


def _nodes(*ids):
    return [_concept(i) for i in ids]


def test_fewer_than_two_concepts():
    assert label_axes(_nodes("a"), concept_pc_values={"a": [1.0]}) is None
    juror = GraphNode(id="juror:x", type="juror", label="x", size=1.0, meta=JurorMeta())
    assert label_axes([juror, _concept("a")], concept_pc_values={"a": [1.0]}) is None


def test_missing_pc_values():
    assert label_axes(_nodes("a", "b")) is None


def test_axes_use_extreme_concepts():
    pcs = {"a": [-2.0, 0.0], "b": [2.0, 0.0], "c": [0.0, -1.0], "d": [0.0, 1.0]}
    labels = label_axes(_nodes("a", "b", "c", "d"), 2, 3, pcs)

    assert (labels["0"].negative_id, labels["0"].positive_id) == ("a", "b")
    assert (labels["0"].negative, labels["0"].positive) == ("A", "B")
    assert (labels["1"].negative_id, labels["1"].positive_id) == ("c", "d")
    assert labels["0"].method is None


def test_depth_placeholder_for_two_meaningful_dimensions():
    pcs = {"a": [-1.0, 0.0], "b": [1.0, 0.0], "c": [0.0, 1.0]}
    labels = label_axes(_nodes("a", "b", "c"), 2, 3, pcs)

    assert labels["2"].negative == DEPTH_LABEL
    assert labels["2"].method == "placeholder"
    assert labels["2"].negative_id == "placeholder:neg:2"


def test_low_variance_placeholders():
    pcs = {"a": [-1.0], "b": [1.0]}
    labels = label_axes(_nodes("a", "b"), 1, 3, pcs)
    assert labels["1"].positive == LOW_VARIANCE_LABEL
    assert labels["2"].positive == LOW_VARIANCE_LABEL


def test_xyz_aliases():
    pcs = {"a": [-1.0, 0.0, 0.0], "b": [1.0, 0.0, 0.0]}
    labels = label_axes(_nodes("a", "b"), 3, 3, pcs)
    assert labels["x"] is labels["0"]
    assert labels["y"] is labels["1"]
    assert labels["z"] is labels["2"]


def test_no_aliases_for_two_dimensional_layout():
    pcs = {"a": [-1.0, 0.0], "b": [1.0, 0.0]}
    labels = label_axes(_nodes("a", "b"), 2, 2, pcs)
    assert set(labels) == {"0", "1"}


def test_later_axes_prefer_unused_concepts():
    pcs = {"a": [-2.0, -2.0], "b": [2.0, 2.0], "c": [0.0, -1.0], "d": [0.0, 1.0]}
    labels = label_axes(_nodes("a", "b", "c", "d"), 2, 2, pcs)
    assert (labels["1"].negative_id, labels["1"].positive_id) == ("c", "d")


def test_falls_back_to_extremes_when_only_one_unused():
    pcs = {"a": [-2.0, -2.0], "b": [2.0, 2.0], "c": [0.0, 0.0]}
    labels = label_axes(_nodes("a", "b", "c"), 2, 2, pcs)
    assert (labels["1"].negative_id, labels["1"].positive_id) == ("a", "b")
