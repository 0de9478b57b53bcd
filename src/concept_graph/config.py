"""
Configuration management for concept-graph.

Two layers:

* ``AnalysisConfig`` holds the knobs of one analysis run (clustering mode,
  K, cuts, dimensions...). It is a plain dataclass validated on creation.
* ``Config`` loads environment settings (typically from a .env file in the
  project root via python-dotenv): the embedding endpoint plus defaults
  for the seed and log level.

Usage:
    from concept_graph.config import AnalysisConfig, config

    run = config.analysis_defaults()
    run = AnalysisConfig(k_concepts=6, clustering_mode="kmeans")

    endpoint = config.embedding.base_url
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv

from .algorithms.cut_quality import RELAXED_DETAIL_PARAMS, STRICT_PRIMARY_PARAMS, CutQualityParams
from .algorithms.hierarchical import DetailAutoRange
from .analysis.evidence import EvidenceRankingParams
from .models import AnchorAxis

# Look for .env in project root (parent of src/)
env_path = Path(__file__).parent.parent.parent / ".env"
if env_path.exists():
    load_dotenv(env_path)

CLUSTERING_MODES = ("kmeans", "hierarchical")
CUT_TYPES = ("count", "granularity")
DIMENSION_MODES = ("manual", "elbow", "threshold")

MIN_CONCEPTS = 4
MAX_CONCEPTS = 30


@dataclass
class AnalysisConfig:
    """Settings for one ``build_analysis`` run."""

    k_concepts: int = 8
    similarity_threshold: float = 0.5
    clustering_mode: str = "hierarchical"

    # K search
    auto_k: bool = False
    k_min: int = 4
    k_max: int = 20
    k_stability: bool = False
    apply_count_policy: bool = False

    # Membership
    soft_membership: bool = True
    soft_top_n: int = 3

    # Hierarchical cuts
    cut_type: str = "count"
    granularity_percent: float = 50
    use_two_layer: bool = False
    primary_granularity: float = 70
    detail_granularity: float = 30
    detail_auto_range: Optional[DetailAutoRange] = None

    # Concept post-processing
    semantic_merge: bool = False
    merge_threshold: float = 0.85
    juror_dampening: bool = False

    # Layout
    seed: int = 42
    num_dimensions: int = 3
    dimension_mode: str = "manual"
    variance_threshold: float = 0.9

    evidence_params: EvidenceRankingParams = field(default_factory=EvidenceRankingParams)
    quality_params: CutQualityParams = STRICT_PRIMARY_PARAMS
    detail_quality_params: CutQualityParams = RELAXED_DETAIL_PARAMS
    anchor_axes: List[AnchorAxis] = field(default_factory=list)

    def __post_init__(self):
        """Reject values the pipeline cannot honor."""
        if self.clustering_mode not in CLUSTERING_MODES:
            raise ValueError(f"clustering_mode must be one of {CLUSTERING_MODES}, got {self.clustering_mode!r}")
        if self.cut_type not in CUT_TYPES:
            raise ValueError(f"cut_type must be one of {CUT_TYPES}, got {self.cut_type!r}")
        if self.dimension_mode not in DIMENSION_MODES:
            raise ValueError(f"dimension_mode must be one of {DIMENSION_MODES}, got {self.dimension_mode!r}")
        if self.k_concepts < 1:
            raise ValueError(f"k_concepts must be >= 1, got {self.k_concepts}")
        if self.k_min < 1 or self.k_min > self.k_max:
            raise ValueError(f"k_min must be in [1, k_max], got k_min={self.k_min}, k_max={self.k_max}")
        if self.soft_top_n < 1:
            raise ValueError(f"soft_top_n must be >= 1, got {self.soft_top_n}")
        if self.num_dimensions < 1:
            raise ValueError(f"num_dimensions must be >= 1, got {self.num_dimensions}")
        for name in ("granularity_percent", "primary_granularity", "detail_granularity"):
            value = getattr(self, name)
            if not 0 <= value <= 100:
                raise ValueError(f"{name} must be in [0, 100], got {value}")
        for name in ("similarity_threshold", "merge_threshold"):
            value = getattr(self, name)
            if not -1 <= value <= 1:
                raise ValueError(f"{name} must be in [-1, 1], got {value}")
        if not 0 < self.variance_threshold <= 1:
            raise ValueError(f"variance_threshold must be in (0, 1], got {self.variance_threshold}")

    @property
    def manual_k(self) -> int:
        """``k_concepts`` clamped to the supported range."""
        return max(MIN_CONCEPTS, min(MAX_CONCEPTS, self.k_concepts))


@dataclass
class EmbeddingConfig:
    """Configuration for the OpenAI-compatible embedding endpoint."""
    base_url: Optional[str] = None
    api_key: str = ""
    model: str = "text-embedding-3-small"
    dimensions: Optional[int] = None
    batch_size: int = 64

    def __post_init__(self):
        """Validate numeric settings."""
        if self.batch_size < 1:
            raise ValueError(f"EMBEDDING_BATCH_SIZE must be >= 1, got {self.batch_size}")
        if self.dimensions is not None and self.dimensions < 1:
            raise ValueError(f"EMBEDDING_DIMENSIONS must be >= 1, got {self.dimensions}")

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key or self.base_url)


def _optional_int(name: str) -> Optional[int]:
    raw = os.getenv(name, "").strip()
    return int(raw) if raw else None


class Config:
    """
    Application configuration loaded from environment variables.

    Environment variables can be set:
    1. In a .env file in the project root
    2. In the system environment
    3. In a container/deployment environment
    """

    def __init__(self):
        """Load configuration from environment."""
        self.embedding = EmbeddingConfig(
            base_url=os.getenv("EMBEDDING_BASE_URL") or None,
            api_key=os.getenv("EMBEDDING_API_KEY", ""),
            model=os.getenv("EMBEDDING_MODEL", "text-embedding-3-small"),
            dimensions=_optional_int("EMBEDDING_DIMENSIONS"),
            batch_size=_optional_int("EMBEDDING_BATCH_SIZE") or 64,
        )
        self.seed = _optional_int("CONCEPT_GRAPH_SEED")
        self.log_level = os.getenv("CONCEPT_GRAPH_LOG_LEVEL", "INFO")

    def analysis_defaults(self, **overrides) -> AnalysisConfig:
        """
        An ``AnalysisConfig`` seeded from the environment.

        Args:
            **overrides: Field values that take precedence over env and defaults

        Returns:
            AnalysisConfig
        """
        values = {}
        if self.seed is not None:
            values["seed"] = self.seed
        values.update(overrides)
        return AnalysisConfig(**values)


# Global config instance
config = Config()
