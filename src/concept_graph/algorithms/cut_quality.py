"""
Cut quality evaluation.

Scores a flat clustering (a "cut") on hard constraints (every concept needs
enough sentences and enough distinct jurors) and soft penalties (size
imbalance measured by the Gini coefficient, and near-duplicate centroids).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Sequence
import numpy as np

from ..utils.logging_config import get_logger

logger = get_logger(__name__)

REDUNDANCY_FLOOR = 0.85


@dataclass(frozen=True)
class CutQualityParams:
    """Constraints and penalty weights for a cut."""

    min_effective_mass_per_concept: int = 3
    min_juror_support_per_concept: int = 2
    # Reported in metrics but never invalidates a cut.
    max_juror_dominance: float = 0.5
    imbalance_penalty_weight: float = 0.3
    redundancy_penalty_weight: float = 0.2


STRICT_PRIMARY_PARAMS = CutQualityParams()
RELAXED_DETAIL_PARAMS = CutQualityParams(
    min_effective_mass_per_concept=1,
    min_juror_support_per_concept=1,
    max_juror_dominance=1.0,
)


@dataclass
class CutQualityScore:
    """Outcome of ``evaluate_cut_quality``."""

    is_valid: bool
    score: float
    penalties: Dict[str, float] = field(default_factory=dict)
    metrics: Dict[str, List[float]] = field(default_factory=dict)
    violating_cluster_indices: List[int] = field(default_factory=list)
    reasons: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, object]:
        return {
            "is_valid": self.is_valid,
            "score": self.score,
            "penalties": dict(self.penalties),
            "metrics": {k: list(v) for k, v in self.metrics.items()},
            "violating_cluster_indices": list(self.violating_cluster_indices),
            "reasons": list(self.reasons),
        }


def gini_coefficient(masses: Sequence[float]) -> float:
    """
    Gini coefficient of cluster masses.

    0 means perfectly balanced; values near 1 mean one cluster holds almost
    everything. A single cluster scores 0 and an all-zero mass vector scores 1.
    """
    values = np.sort(np.asarray(masses, dtype=np.float64))
    n = values.shape[0]
    if n <= 1:
        return 0.0
    total = float(values.sum())
    if total == 0:
        return 1.0
    cumulative = np.cumsum(values)
    return float((n + 1) / n - 2.0 * cumulative.sum() / (n * total))


def redundancy_penalty(centroids: np.ndarray) -> tuple[float, float]:
    """
    Return ``(max_pairwise_similarity, penalty)`` for a set of unit centroids.

    The penalty grows linearly from 0 at similarity 0.85 to 1 at 1.0.
    """
    C = np.asarray(centroids, dtype=np.float64)
    k = C.shape[0]
    if k < 2:
        return 0.0, 0.0
    sims = C @ C.T
    upper = sims[np.triu_indices(k, 1)]
    max_sim = float(upper.max())
    penalty = max(0.0, (max_sim - REDUNDANCY_FLOOR) / (1.0 - REDUNDANCY_FLOOR))
    return max_sim, penalty


def evaluate_cut_quality(
    assignments: Sequence[int],
    jurors: Sequence[str],
    centroids: np.ndarray,
    params: CutQualityParams = STRICT_PRIMARY_PARAMS,
) -> CutQualityScore:
    """
    Evaluate a cut against support/mass constraints and balance penalties.

    Args:
        assignments: Cluster id per sentence, ids in ``[0, K)``
        jurors: Juror name per sentence (same length as *assignments*)
        centroids: (K, d) unit centroids of the cut
        params: Constraint thresholds and penalty weights

    Returns:
        CutQualityScore. The cut is valid only when no cluster violates the
        mass or juror-support minimum. ``score = max(0, 1 - gini * w_imb -
        redundancy * w_red)``. Zero clusters yields an invalid score of 0.
    """
    C = np.asarray(centroids, dtype=np.float64)
    k = int(C.shape[0]) if C.ndim == 2 else 0
    assignments = np.asarray(assignments, dtype=int)

    if k == 0:
        return CutQualityScore(is_valid=False, score=0.0, reasons=["Cut has no clusters"])

    masses = np.zeros(k, dtype=np.float64)
    juror_counts: List[Dict[str, int]] = [dict() for _ in range(k)]
    for idx, cluster in enumerate(assignments):
        if cluster < 0 or cluster >= k:
            continue
        masses[cluster] += 1
        juror = jurors[idx]
        juror_counts[cluster][juror] = juror_counts[cluster].get(juror, 0) + 1

    support = [float(len(counts)) for counts in juror_counts]
    dominance = [
        (max(counts.values()) / masses[c]) if masses[c] > 0 else 0.0
        for c, counts in enumerate(juror_counts)
    ]

    reasons: List[str] = []
    violating: List[int] = []
    support_violations = 0
    mass_violations = 0
    dominance_violations = 0
    for c in range(k):
        bad = False
        if support[c] < params.min_juror_support_per_concept:
            support_violations += 1
            bad = True
            reasons.append(
                f"Concept {c} has juror support {int(support[c])} "
                f"< {params.min_juror_support_per_concept}"
            )
        if masses[c] < params.min_effective_mass_per_concept:
            mass_violations += 1
            bad = True
            reasons.append(
                f"Concept {c} has mass {int(masses[c])} "
                f"< {params.min_effective_mass_per_concept}"
            )
        if dominance[c] > params.max_juror_dominance:
            dominance_violations += 1
        if bad:
            violating.append(c)

    imbalance = gini_coefficient(masses)
    max_sim, redundancy = redundancy_penalty(C)
    score = max(
        0.0,
        1.0
        - imbalance * params.imbalance_penalty_weight
        - redundancy * params.redundancy_penalty_weight,
    )
    is_valid = support_violations == 0 and mass_violations == 0

    logger.debug(
        "Cut quality k=%d valid=%s score=%.4f gini=%.4f redundancy=%.4f",
        k, is_valid, score, imbalance, redundancy,
    )

    return CutQualityScore(
        is_valid=is_valid,
        score=float(score),
        penalties={
            "imbalance": float(imbalance),
            "redundancy": float(redundancy),
            "support_violations": float(support_violations),
            "mass_violations": float(mass_violations),
            "dominance_violations": float(dominance_violations),
        },
        metrics={
            "effective_mass": masses.tolist(),
            "juror_support": support,
            "max_juror_dominance": [float(d) for d in dominance],
            "max_centroid_similarity": [max_sim],
        },
        violating_cluster_indices=violating,
        reasons=reasons,
    )
