"""
Algorithm core: clustering, cut evaluation, K search and dimensionality reduction.

Everything here is synchronous, deterministic for a fixed seed, and built on
numpy linear algebra only.
"""

from .vector_ops import (
    LinearCongruentialGenerator,
    UnionFind,
    compute_centroids,
    cosine,
    cosine_matrix,
    normalize,
    normalize_rows,
    relabel_contiguous,
)
from .clustering import (
    KMeansResult,
    adjusted_rand_index,
    kmeans_cosine,
    pairwise_ari,
    silhouette_lite,
)
from .cut_quality import (
    CutQualityParams,
    CutQualityScore,
    RELAXED_DETAIL_PARAMS,
    STRICT_PRIMARY_PARAMS,
    evaluate_cut_quality,
    gini_coefficient,
)
from .hierarchical import (
    Dendrogram,
    DendrogramCut,
    DetailAutoRange,
    Merge,
    TwoLayerCut,
    build_dendrogram,
    cut_dendrogram_by_count,
    cut_dendrogram_by_threshold,
    cut_dendrogram_two_layer,
    find_optimal_detail_granularity,
)
from .sweep import KCandidateMetrics, KSearchConfig, KSearchResult, evaluate_k_range
from .dimensionality_reduction import (
    NDReduction,
    PCAResult,
    VarianceStats,
    find_optimal_dimensions_elbow,
    find_optimal_dimensions_threshold,
    generate_axis_directions,
    layout_dimensions,
    normalize_coordinates,
    power_iteration_pca,
    reduce_to_nd,
)

__all__ = [
    # Vector primitives
    "LinearCongruentialGenerator",
    "UnionFind",
    "compute_centroids",
    "cosine",
    "cosine_matrix",
    "normalize",
    "normalize_rows",
    "relabel_contiguous",
    # Flat clustering
    "KMeansResult",
    "adjusted_rand_index",
    "kmeans_cosine",
    "pairwise_ari",
    "silhouette_lite",
    # Cut quality
    "CutQualityParams",
    "CutQualityScore",
    "RELAXED_DETAIL_PARAMS",
    "STRICT_PRIMARY_PARAMS",
    "evaluate_cut_quality",
    "gini_coefficient",
    # Hierarchical clustering
    "Dendrogram",
    "DendrogramCut",
    "DetailAutoRange",
    "Merge",
    "TwoLayerCut",
    "build_dendrogram",
    "cut_dendrogram_by_count",
    "cut_dendrogram_by_threshold",
    "cut_dendrogram_two_layer",
    "find_optimal_detail_granularity",
    # K search
    "KCandidateMetrics",
    "KSearchConfig",
    "KSearchResult",
    "evaluate_k_range",
    # Dimensionality reduction
    "NDReduction",
    "PCAResult",
    "VarianceStats",
    "find_optimal_dimensions_elbow",
    "find_optimal_dimensions_threshold",
    "generate_axis_directions",
    "layout_dimensions",
    "normalize_coordinates",
    "power_iteration_pca",
    "reduce_to_nd",
]
