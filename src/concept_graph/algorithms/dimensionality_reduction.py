"""
Dimensionality reduction for graph layout.

Provides deterministic power-iteration PCA, the mapping from N principal
components onto 3-D display directions, coordinate normalization, and the
variance-driven choice of how many dimensions are meaningful.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Sequence, Tuple
import math
import numpy as np

from ..utils.logging_config import get_logger

logger = get_logger(__name__)

Array2D = np.ndarray

DEFAULT_SCALE = 10.0
POWER_ITERATIONS = 100
SCAN_DIMENSIONS = 12
_NEAR_ZERO = 1e-12
_GOLDEN_ANGLE = math.pi * (3.0 - math.sqrt(5.0))


@dataclass
class VarianceStats:
    """Variance captured by each principal component."""

    explained_variances: List[float] = field(default_factory=list)
    explained_variance_ratios: List[float] = field(default_factory=list)
    cumulative_variances: List[float] = field(default_factory=list)
    total_variance: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "explained_variances": list(self.explained_variances),
            "explained_variance_ratios": list(self.explained_variance_ratios),
            "cumulative_variances": list(self.cumulative_variances),
            "total_variance": self.total_variance,
        }


@dataclass
class PCAResult:
    """Output of ``power_iteration_pca``."""

    mean: np.ndarray
    components: Array2D  # (n_components, n_features)
    projections: Array2D  # (n_samples, n_components)
    variance_stats: VarianceStats


@dataclass
class NDReduction:
    """3-D display coordinates plus the raw N-D principal-component values."""

    coords: Array2D  # (n_samples, 3), normalized to [-scale, scale]
    pc_values: Array2D  # (n_samples, n_components)
    variance_stats: VarianceStats


# ------------------------------------------------------------------
# PCA
# ------------------------------------------------------------------

def _start_vector(d: int) -> np.ndarray:
    """Fixed, non-symmetric unit start vector (no randomness)."""
    v = np.linspace(1.0, 2.0, d) if d > 1 else np.ones(d)
    return v / np.linalg.norm(v)


def _power_iterate(data: Array2D, v: np.ndarray, iterations: int) -> np.ndarray:
    for _ in range(iterations):
        w = data.T @ (data @ v)
        norm = float(np.linalg.norm(w))
        if norm <= _NEAR_ZERO:
            return np.zeros_like(v)
        v = w / norm
    return v


def _variance_stats(variances: Sequence[float], total: float) -> VarianceStats:
    variances = [float(v) for v in variances]
    ratios = [v / total if total > 0 else 0.0 for v in variances]
    return VarianceStats(
        explained_variances=variances,
        explained_variance_ratios=ratios,
        cumulative_variances=np.cumsum(ratios).tolist() if ratios else [],
        total_variance=float(total),
    )


def power_iteration_pca(
    vectors: Array2D, num_components: int, *, iterations: int = POWER_ITERATIONS
) -> PCAResult:
    """
    Extract principal components by power iteration with deflation.

    Vectors are centered on their mean. Each component starts from the same
    fixed unit vector, is refined with ``v <- X^T (X v) / ||.||`` for
    *iterations* rounds, and is then removed from the data before the next
    component is extracted. Results are fully deterministic.

    When the fixed start vector happens to be orthogonal to all remaining
    variance, the coordinate axis with the largest residual energy is used
    as the start instead. Components of exhausted data are zero vectors with
    zero explained variance.

    Args:
        vectors: Data of shape (n_samples, n_features)
        num_components: Number of components to extract (capped at n_features)
        iterations: Power-iteration rounds per component

    Returns:
        PCAResult with components ordered by extraction (descending variance).
    """
    X = np.asarray(vectors, dtype=np.float64)
    if X.ndim != 2 or X.shape[0] == 0 or X.shape[1] == 0:
        empty = np.zeros((0, 0))
        return PCAResult(
            mean=np.zeros(X.shape[1] if X.ndim == 2 else 0),
            components=empty,
            projections=np.zeros((X.shape[0] if X.ndim == 2 else 0, 0)),
            variance_stats=VarianceStats(),
        )

    n, d = X.shape
    mean = X.mean(axis=0)
    centered = X - mean
    total = float(np.sum(centered * centered)) / n
    m = max(0, min(num_components, d))

    data = centered.copy()
    components = np.zeros((m, d))
    start = _start_vector(d)
    for c in range(m):
        residual = float(np.sum(data * data))
        if residual <= _NEAR_ZERO:
            break
        pc = _power_iterate(data, start, iterations)
        if not np.any(pc):
            axis = int(np.argmax(np.sum(data * data, axis=0)))
            pc = _power_iterate(data, np.eye(d)[axis], iterations)
        components[c] = pc
        data -= np.outer(data @ pc, pc)

    projections = centered @ components.T
    variances = (projections * projections).sum(axis=0) / n
    stats = _variance_stats(variances.tolist(), total)
    logger.debug(
        "PCA: %d component(s) over %d vector(s); explained ratios %s",
        m, n, [round(r, 4) for r in stats.explained_variance_ratios],
    )
    return PCAResult(mean=mean, components=components, projections=projections, variance_stats=stats)


# ------------------------------------------------------------------
# Display mapping
# ------------------------------------------------------------------

def fibonacci_sphere(n: int) -> Array2D:
    """*n* near-uniformly spread unit directions on the sphere."""
    if n <= 0:
        return np.zeros((0, 3))
    if n == 1:
        return np.array([[1.0, 0.0, 0.0]])
    points = np.zeros((n, 3))
    for i in range(n):
        y = 1.0 - (i / (n - 1)) * 2.0
        radius = math.sqrt(max(0.0, 1.0 - y * y))
        theta = _GOLDEN_ANGLE * i
        points[i] = (math.cos(theta) * radius, y, math.sin(theta) * radius)
    return points


def generate_axis_directions(num_dimensions: int) -> Array2D:
    """
    One 3-D display direction per principal component.

    Up to three components map onto the orthogonal x/y/z axes; more than
    three are spread over a Fibonacci sphere so no two collapse together.
    """
    if num_dimensions <= 3:
        return np.eye(3)[:max(0, num_dimensions)]
    return fibonacci_sphere(num_dimensions)


def normalize_coordinates(coords: Array2D, scale: float = DEFAULT_SCALE) -> Array2D:
    """
    Center on the bounding-box midpoint and scale into ``[-scale, scale]``.

    All axes share the largest range (degenerate axes count as range 1), so
    relative distances are preserved.
    """
    C = np.asarray(coords, dtype=np.float64)
    if C.shape[0] == 0:
        return C
    lo = C.min(axis=0)
    hi = C.max(axis=0)
    ranges = hi - lo
    ranges[ranges == 0] = 1.0
    max_range = float(ranges.max())
    return ((C - (lo + hi) / 2.0) / max_range) * scale * 2.0


def reduce_to_nd(
    vectors: Array2D, num_dimensions: int, scale: float = DEFAULT_SCALE
) -> NDReduction:
    """
    Reduce vectors to *num_dimensions* principal components and 3-D coordinates.

    A single vector sits at the origin; an empty input yields empty arrays.
    """
    X = np.asarray(vectors, dtype=np.float64)
    n = X.shape[0]
    if n == 0:
        return NDReduction(coords=np.zeros((0, 3)), pc_values=np.zeros((0, 0)), variance_stats=VarianceStats())
    if n == 1:
        return NDReduction(
            coords=np.zeros((1, 3)),
            pc_values=np.zeros((1, max(0, num_dimensions))),
            variance_stats=VarianceStats(),
        )

    pca = power_iteration_pca(X, num_dimensions)
    pc_values = pca.projections
    directions = generate_axis_directions(pc_values.shape[1])
    raw = pc_values @ directions if directions.shape[0] else np.zeros((n, 3))
    coords = normalize_coordinates(raw, scale)
    return NDReduction(coords=coords, pc_values=pc_values, variance_stats=pca.variance_stats)


# ------------------------------------------------------------------
# Dimension selection
# ------------------------------------------------------------------

def _trim_trailing_zeros(variances: Sequence[float]) -> List[float]:
    values = [float(v) for v in variances]
    peak = max(values) if values else 0.0
    cutoff = peak * _NEAR_ZERO if peak > 0 else _NEAR_ZERO
    while values and values[-1] <= cutoff:
        values.pop()
    return values


def find_optimal_dimensions_elbow(variances: Sequence[float]) -> int:
    """
    Scree-plot elbow: the point farthest from the chord between the first and
    last explained variances.

    Trailing zero-variance components are dropped first so exhausted axes do
    not drag the chord down. Returns a 1-based dimension count, at least 1.
    """
    values = _trim_trailing_zeros(variances)
    m = len(values)
    if m <= 2:
        return max(1, m)

    x1, y1 = 0.0, values[0]
    x2, y2 = float(m - 1), values[-1]
    norm = math.hypot(y2 - y1, x2 - x1)
    best_idx, best_dist = 0, -1.0
    for i, y in enumerate(values):
        dist = abs((y2 - y1) * i - (x2 - x1) * y + x2 * y1 - y2 * x1) / norm
        if dist > best_dist:
            best_idx, best_dist = i, dist
    return best_idx + 1


def find_optimal_dimensions_threshold(
    variances: Sequence[float], total_variance: float, threshold: float = 0.9
) -> int:
    """Smallest N whose cumulative explained variance reaches *threshold* of the total."""
    values = [float(v) for v in variances]
    if not values or total_variance <= 0:
        return 1
    cumulative = 0.0
    for i, v in enumerate(values):
        cumulative += v
        if cumulative / total_variance >= threshold:
            return i + 1
    return len(values)


def layout_dimensions(meaningful: int, num_centroids: int) -> Tuple[int, int]:
    """
    Clamp the meaningful dimension count and apply the 3-D layout floor.

    Returns:
        ``(applied, layout)`` where *applied* is the meaningful count limited
        to ``max(1, num_centroids - 1)`` and *layout* is at least 3 whenever
        three or more dimensions are available.
    """
    max_possible = max(1, num_centroids - 1)
    applied = min(max(meaningful, 1), max_possible)
    layout = max(3, applied) if max_possible >= 3 else applied
    return applied, layout
