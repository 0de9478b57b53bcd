"""Graph assembly: layout, links, axis labels, anchor axes and the orchestrator."""

from .anchor_axes import (
    compute_axis_vector,
    embed_anchor_axes,
    mean_vector,
    project_concept_centroids,
    project_juror_vectors,
    project_to_anchor_axes,
    project_to_anchor_axis,
)
from .axis_labeler import label_axes
from .graph_builder import build_analysis, concept_node_size
from .layout import NodePositions, compute_node_positions, place_detail_concepts
from .projections import build_concept_similarity_links, build_juror_similarity_links

__all__ = [
    "compute_axis_vector",
    "embed_anchor_axes",
    "mean_vector",
    "project_concept_centroids",
    "project_juror_vectors",
    "project_to_anchor_axes",
    "project_to_anchor_axis",
    "label_axes",
    "build_analysis",
    "concept_node_size",
    "NodePositions",
    "compute_node_positions",
    "place_detail_concepts",
    "build_concept_similarity_links",
    "build_juror_similarity_links",
]
