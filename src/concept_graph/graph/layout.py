"""
Node placement.

Concepts are placed by reducing their centroids with PCA; jurors sit at the
weighted average of the concepts they talk about, nudged by a small
seeded jitter so they never sit exactly on top of a concept.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Mapping, Optional, Sequence, Tuple
import numpy as np

from ..algorithms.dimensionality_reduction import DEFAULT_SCALE, VarianceStats, reduce_to_nd
from ..algorithms.vector_ops import LinearCongruentialGenerator

Position = Tuple[float, float, float]

JUROR_JITTER = 0.5
DETAIL_JITTER = 1.5
DETAIL_SEED_OFFSET = 2


@dataclass
class NodePositions:
    """Display coordinates and raw principal-component values per node id."""

    positions: Dict[str, Position] = field(default_factory=dict)
    concept_pc_values: Dict[str, list] = field(default_factory=dict)
    juror_pc_values: Dict[str, list] = field(default_factory=dict)
    variance_stats: Optional[VarianceStats] = None


def _jitter(rng: LinearCongruentialGenerator, amount: float) -> np.ndarray:
    return np.array([(rng.random() - 0.5) * amount for _ in range(3)])


def compute_node_positions(
    juror_vectors: Mapping[str, Mapping[str, float]],
    centroids: np.ndarray,
    jurors: Sequence[str],
    concept_ids: Sequence[str],
    num_dimensions: int = 3,
    scale: float = DEFAULT_SCALE,
    seed: int = 42,
) -> NodePositions:
    """
    Place concepts and jurors.

    Args:
        juror_vectors: Normalized concept weights per juror
        centroids: (K, d) concept centroids, aligned with *concept_ids*
        jurors: Juror names in display order
        concept_ids: Concept node ids
        num_dimensions: Principal components to extract for the layout
        scale: Coordinates land in ``[-scale, scale]``
        seed: Juror jitter uses ``LinearCongruentialGenerator(seed + 1)``

    Returns:
        NodePositions keyed by concept id and ``juror:<name>``. A juror with
        no positive concept weight gets a random position in
        ``[-scale/2, scale/2]``; juror PC values are the weighted average of
        their concepts' PC values.
    """
    rng = LinearCongruentialGenerator(seed + 1)
    reduction = reduce_to_nd(centroids, num_dimensions, scale)
    out = NodePositions(variance_stats=reduction.variance_stats)

    coords = {}
    for i, cid in enumerate(concept_ids):
        xyz = reduction.coords[i] if i < len(reduction.coords) else np.zeros(3)
        coords[cid] = np.asarray(xyz, dtype=np.float64)
        out.positions[cid] = tuple(float(v) for v in xyz)
        if i < len(reduction.pc_values):
            out.concept_pc_values[cid] = [float(v) for v in reduction.pc_values[i]]

    for juror in jurors:
        weights = {cid: w for cid, w in juror_vectors.get(juror, {}).items() if w > 0 and cid in coords}
        node_id = f"juror:{juror}"
        total = sum(weights.values())
        if total <= 0:
            out.positions[node_id] = tuple(float(v) for v in _jitter(rng, scale))
            continue

        pos = sum(coords[cid] * w for cid, w in weights.items()) / total
        out.positions[node_id] = tuple(float(v) for v in pos + _jitter(rng, JUROR_JITTER))

        scored = [(cid, w) for cid, w in weights.items() if cid in out.concept_pc_values]
        if scored:
            pc_total = sum(w for _, w in scored)
            pcs = sum(np.asarray(out.concept_pc_values[cid]) * w for cid, w in scored) / pc_total
            out.juror_pc_values[node_id] = [float(v) for v in pcs]
    return out


def place_detail_concepts(
    detail_ids: Sequence[str],
    parent_ids: Sequence[str],
    positions: Mapping[str, Position],
    seed: int = 42,
    jitter: float = DETAIL_JITTER,
) -> Dict[str, Position]:
    """
    Scatter detail concepts around their parent's position.

    Jitter comes from ``LinearCongruentialGenerator(seed + 2)`` so detail
    layouts are reproducible. Parents without a position anchor at the origin.
    """
    rng = LinearCongruentialGenerator(seed + DETAIL_SEED_OFFSET)
    placed: Dict[str, Position] = {}
    for detail_id, parent_id in zip(detail_ids, parent_ids):
        anchor = np.asarray(positions.get(parent_id, (0.0, 0.0, 0.0)), dtype=np.float64)
        placed[detail_id] = tuple(float(v) for v in anchor + _jitter(rng, jitter))
    return placed
