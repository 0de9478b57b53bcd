"""Name each layout axis after the concepts at its two extremes."""

from __future__ import annotations

from typing import Dict, Mapping, Optional, Sequence, Set

from ..models import AxisLabel, GraphNode

LOW_VARIANCE_LABEL = "Low Variance"
DEPTH_LABEL = "Depth (layout only)"
PLACEHOLDER_METHOD = "placeholder"


def _placeholder(dim: int, final_num_dimensions: int) -> AxisLabel:
    text = DEPTH_LABEL if dim == 2 and final_num_dimensions == 2 else LOW_VARIANCE_LABEL
    return AxisLabel(
        negative=text,
        positive=text,
        negative_id=f"placeholder:neg:{dim}",
        positive_id=f"placeholder:pos:{dim}",
        method=PLACEHOLDER_METHOD,
    )


def label_axes(
    nodes: Sequence[GraphNode],
    final_num_dimensions: int = 3,
    layout_num_dimensions: int = 3,
    concept_pc_values: Optional[Mapping[str, Sequence[float]]] = None,
) -> Optional[Dict[str, AxisLabel]]:
    """
    Label every layout axis by its most extreme concepts.

    For each meaningful dimension, concepts are sorted by their value on
    that principal component; the negative pole is the lowest-valued concept
    not already used on an earlier axis and the positive pole the
    highest-valued unused one above it. If that search lands on a single
    concept the absolute extremes are used instead. Layout-only dimensions
    (``final_num_dimensions <= dim < layout_num_dimensions``) get
    placeholder labels.

    Args:
        nodes: Graph nodes; only ``type == "concept"`` nodes are considered
        final_num_dimensions: Number of meaningful dimensions
        layout_num_dimensions: Number of dimensions in the layout
        concept_pc_values: Principal-component values per concept id

    Returns:
        ``{"0": AxisLabel, "1": ...}`` plus ``x``/``y``/``z`` aliases when the
        layout has three or more dimensions, or None when fewer than two
        concepts (or no PC values) are available.
    """
    concepts = [n for n in nodes if n.type == "concept"]
    if len(concepts) < 2 or not concept_pc_values:
        return None

    labels: Dict[str, AxisLabel] = {}
    used: Set[str] = set()

    def value(node: GraphNode, dim: int) -> float:
        values = concept_pc_values.get(node.id)
        return float(values[dim]) if values is not None and dim < len(values) else 0.0

    for dim in range(layout_num_dimensions):
        if dim >= final_num_dimensions:
            labels[str(dim)] = _placeholder(dim, final_num_dimensions)
            continue

        ranked = sorted(concepts, key=lambda n: value(n, dim))
        lo = 0
        while lo < len(ranked) - 1 and ranked[lo].id in used:
            lo += 1
        hi = len(ranked) - 1
        while hi > lo and ranked[hi].id in used:
            hi -= 1
        neg, pos = ranked[lo], ranked[hi]
        if neg.id == pos.id:
            neg, pos = ranked[0], ranked[-1]

        used.add(neg.id)
        used.add(pos.id)
        labels[str(dim)] = AxisLabel(
            negative=neg.label, positive=pos.label, negative_id=neg.id, positive_id=pos.id
        )

    if layout_num_dimensions >= 3:
        for alias, key in (("x", "0"), ("y", "1"), ("z", "2")):
            if key in labels:
                labels[alias] = labels[key]
    return labels
