"""
Automatic K selection by sweeping k-means across a K range.

Each candidate K is scored by a blend of separation (silhouette-lite) and
cut quality, penalized for complexity and for one dominant cluster, and
optionally rewarded for cross-seed stability. Selection prefers the smaller
K whenever scores are within ``epsilon`` of each other.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence
import numpy as np

from .clustering import kmeans_cosine, pairwise_ari, silhouette_lite
from .cut_quality import CutQualityParams, STRICT_PRIMARY_PARAMS, evaluate_cut_quality
from ..utils.logging_config import get_logger

logger = get_logger(__name__)

Array2D = np.ndarray

INVALID_SCORE = -1e6

REASON_TOO_SMALL = "Corpus too small for range"
REASON_NO_VALID_K = "No valid K found; fallback to minimum"
REASON_HIGHEST = "Highest penalized score"
REASON_ELBOW = "Elbow detection near upper bound"
REASON_SIMPLER = "Scores within epsilon; prefer simpler K"


@dataclass
class KSearchConfig:
    """Configuration for the K sweep."""

    k_min: int = 4
    k_max: int = 20
    seed: int = 42
    iterations: int = 25
    quality_params: CutQualityParams = STRICT_PRIMARY_PARAMS
    dominance_threshold: float = 0.35
    dominance_penalty_weight: float = 0.5
    k_penalty: float = 0.001
    epsilon: float = 0.02
    enable_stability: bool = False  # run seed, seed+1, seed+2 and reward agreement
    stability_weight: float = 0.15
    quality_weight: float = 0.4  # silhouette gets the remaining share

    def __post_init__(self):
        if self.k_min < 1:
            raise ValueError(f"k_min must be >= 1, got {self.k_min}")
        if self.k_min > self.k_max:
            raise ValueError(f"k_min ({self.k_min}) must be <= k_max ({self.k_max})")

    @property
    def seeds(self) -> List[int]:
        if self.enable_stability:
            return [self.seed, self.seed + 1, self.seed + 2]
        return [self.seed]


@dataclass
class KCandidateMetrics:
    """Scores for one candidate K."""

    k: int
    score: float
    valid: bool
    silhouette: float = 0.0
    quality_score: Optional[float] = None
    max_cluster_share: float = 0.0
    stability_score: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "k": self.k,
            "score": self.score,
            "valid": self.valid,
            "silhouette": self.silhouette,
            "quality_score": self.quality_score,
            "max_cluster_share": self.max_cluster_share,
            "stability_score": self.stability_score,
        }


@dataclass
class KSearchResult:
    """Outcome of ``evaluate_k_range``."""

    recommended_k: int
    metrics: List[KCandidateMetrics] = field(default_factory=list)
    reason: str = REASON_HIGHEST


def _run_is_degenerate(sizes: np.ndarray) -> bool:
    """Any cluster under 2 members, or more than a quarter under 3."""
    if sizes.size == 0:
        return True
    too_small = int(np.count_nonzero(sizes < 3))
    return bool(np.any(sizes < 2)) or too_small / sizes.size > 0.25


def _evaluate_k(
    X: Array2D, jurors: Sequence[str], k: int, cfg: KSearchConfig
) -> KCandidateMetrics:
    n = X.shape[0]
    valid = True
    silhouettes: List[float] = []
    qualities: List[float] = []
    run_labels: List[np.ndarray] = []
    max_share = 0.0

    for run_seed in cfg.seeds:
        result = kmeans_cosine(X, k, iterations=cfg.iterations, seed=run_seed)
        run_labels.append(result.assignments)
        sizes = np.bincount(result.assignments, minlength=result.k)
        occupied = sizes[sizes > 0]
        if occupied.size:
            max_share = max(max_share, float(occupied.max()) / n)

        # Empty k-means clusters do not count toward the size rules.
        if _run_is_degenerate(occupied):
            valid = False
            continue

        quality = evaluate_cut_quality(result.assignments, jurors, result.centroids, cfg.quality_params)
        if not quality.is_valid:
            valid = False
            continue

        silhouettes.append(silhouette_lite(X, result.assignments, result.centroids))
        qualities.append(quality.score)

    if not silhouettes:
        return KCandidateMetrics(
            k=k, score=INVALID_SCORE, valid=False, max_cluster_share=max_share,
            stability_score=0.0 if cfg.enable_stability else None,
        )

    silhouette = float(np.mean(silhouettes))
    quality_score = float(np.mean(qualities))
    combined = silhouette * (1.0 - cfg.quality_weight) + quality_score * cfg.quality_weight

    stability: Optional[float] = None
    if cfg.enable_stability:
        aris = pairwise_ari(run_labels)
        stability = float(np.mean(aris)) if aris else 0.0

    dominance_penalty = 0.0
    if max_share > cfg.dominance_threshold:
        diff = max_share - cfg.dominance_threshold
        dominance_penalty = cfg.dominance_penalty_weight * diff * diff

    score = combined - k * cfg.k_penalty - dominance_penalty
    if stability is not None:
        score += stability * cfg.stability_weight

    return KCandidateMetrics(
        k=k,
        score=float(score),
        valid=valid,
        silhouette=silhouette,
        quality_score=quality_score,
        max_cluster_share=max_share,
        stability_score=stability,
    )


def _elbow_candidate(valid_metrics: List[KCandidateMetrics]) -> Optional[KCandidateMetrics]:
    """The candidate just before the largest single-step score drop."""
    largest_drop_k = None
    largest_drop = np.inf
    for prev, cur in zip(valid_metrics, valid_metrics[1:]):
        delta = cur.score - prev.score
        if delta < largest_drop:
            largest_drop = delta
            largest_drop_k = cur.k
    if largest_drop_k is None:
        return None
    for m in valid_metrics:
        if m.k == largest_drop_k - 1:
            return m
    return None


def evaluate_k_range(
    vectors: Array2D,
    jurors: Sequence[str],
    cfg: Optional[KSearchConfig] = None,
) -> KSearchResult:
    """
    Sweep k-means over ``[k_min, k_max]`` and recommend a K.

    Pipeline:
    1. Short-circuit corpora smaller than ``k_min`` to one cluster per vector.
    2. Clamp ``k_max`` to ``max(k_min, min(k_max, n - 1))``.
    3. For each K and each seed: run k-means, reject degenerate or
       quality-invalid runs, and score the rest (see module docstring).
       A K is valid only when every seed produced a valid run.
    4. Pick the best score, preferring smaller K within ``epsilon``; at the
       upper bound, fall back to the elbow K when it is within ``epsilon``;
       finally prefer any smaller K within ``epsilon`` of the winner.

    Args:
        vectors: Unit vectors of shape (n_samples, n_features)
        jurors: Juror per vector (for the quality gate)
        cfg: Sweep configuration (defaults to ``KSearchConfig()``)

    Returns:
        KSearchResult with the recommended K, per-K metrics in ascending K
        order, and a human-readable reason.
    """
    cfg = cfg or KSearchConfig()
    X = np.asarray(vectors, dtype=np.float64)
    n = X.shape[0]

    if n < cfg.k_min:
        logger.info("Corpus of %d sentence(s) is smaller than k_min=%d", n, cfg.k_min)
        return KSearchResult(recommended_k=max(1, n), reason=REASON_TOO_SMALL)

    k_max = max(cfg.k_min, min(cfg.k_max, n - 1))
    metrics = [_evaluate_k(X, jurors, k, cfg) for k in range(cfg.k_min, k_max + 1)]
    valid_metrics = [m for m in metrics if m.valid and np.isfinite(m.score)]

    if not valid_metrics:
        logger.warning("No valid K in [%d, %d]; falling back to k_min", cfg.k_min, k_max)
        return KSearchResult(recommended_k=cfg.k_min, metrics=metrics, reason=REASON_NO_VALID_K)

    best = valid_metrics[0]
    for m in valid_metrics:
        if m.score > best.score + cfg.epsilon:
            best = m
        elif abs(m.score - best.score) <= cfg.epsilon and m.k < best.k:
            best = m
    reason = REASON_HIGHEST

    if best.k == k_max and len(valid_metrics) > 1:
        elbow = _elbow_candidate(valid_metrics)
        if elbow is not None and best.score - elbow.score <= cfg.epsilon:
            best = elbow
            reason = REASON_ELBOW

    simpler = sorted(
        (m for m in valid_metrics if m.k < best.k and best.score - m.score <= cfg.epsilon),
        key=lambda m: m.k,
    )
    if simpler:
        best = simpler[0]
        reason = REASON_SIMPLER

    logger.info("Auto-K recommends K=%d (%s)", best.k, reason)
    return KSearchResult(recommended_k=best.k, metrics=metrics, reason=reason)
