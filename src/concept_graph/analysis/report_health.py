"""
Report health: a quick read on whether an analysis is worth presenting.

Four metrics, each graded good / warning / poor, averaged into an overall
score in ``[0, 1]`` with plain-language recommendations.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional

from ..models import AnalysisResult, ConceptMeta

STATUS_SCORES = {"good": 1.0, "warning": 0.6, "poor": 0.2}
DEFAULT_AXIS_VARIANCE = 0.8

RECOMMEND_FEWER = "Too many concepts for this dataset size. Try reducing K or enabling hierarchy."
RECOMMEND_MORE = "Concepts might be too broad. Try increasing K for more granular insights."
RECOMMEND_DIMENSIONS = "Low axis variance suggests the graph layout might be noisy. Try changing dimension mode."
RECOMMEND_SHARED = (
    "Many concepts are driven by single jurors. "
    "Consider if these represent shared themes or unique outliers."
)


@dataclass
class HealthMetric:
    value: float
    status: str
    label: str
    description: str


@dataclass
class ReportHealth:
    overall_score: float
    metrics: Dict[str, HealthMetric] = field(default_factory=dict)
    recommendations: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "overall_score": self.overall_score,
            "metrics": {k: asdict(v) for k, v in self.metrics.items()},
            "recommendations": list(self.recommendations),
        }


def _density_status(density: float) -> str:
    if density < 5 or density > 30:
        return "poor"
    if density < 8 or density > 20:
        return "warning"
    return "good"


def _size_status(avg: float) -> str:
    if avg < 4:
        return "poor"
    if avg < 7:
        return "warning"
    return "good"


def _variance_status(variance: float) -> str:
    if variance < 0.6:
        return "poor"
    if variance < 0.75:
        return "warning"
    return "good"


def _solo_status(ratio: float) -> str:
    if ratio > 0.4:
        return "poor"
    if ratio > 0.2:
        return "warning"
    return "good"


def axis_variance(result: AnalysisResult) -> float:
    """Cumulative explained-variance ratio of the applied dimensions."""
    stats = result.variance_stats or {}
    cumulative = stats.get("cumulative_variances") or []
    applied = result.applied_num_dimensions
    if not cumulative or not applied:
        return DEFAULT_AXIS_VARIANCE
    return float(cumulative[min(applied, len(cumulative)) - 1])


def evaluate_report_health(result: AnalysisResult, variance: Optional[float] = None) -> ReportHealth:
    """
    Grade an analysis.

    Args:
        result: A finished analysis
        variance: Explained-variance ratio override; read from
            ``result.variance_stats`` when omitted

    Returns:
        ReportHealth with ``concept_density``, ``avg_sentences_per_concept``,
        ``axis_variance`` and ``single_juror_concepts`` metrics.
    """
    total_sentences = result.stats.total_sentences
    total_concepts = result.stats.total_concepts
    density = total_sentences / (total_concepts or 1)
    var = axis_variance(result) if variance is None else variance

    concept_nodes = [n for n in result.nodes if n.type == "concept" and n.layer != "detail"]
    solo = sum(
        1 for n in concept_nodes
        if isinstance(n.meta, ConceptMeta) and len(n.meta.juror_distribution) == 1
    )
    solo_ratio = solo / total_concepts if total_concepts > 0 else 0.0

    metrics = {
        "concept_density": HealthMetric(
            density, _density_status(density), "Concept Density", "Ratio of sentences to concepts."
        ),
        "avg_sentences_per_concept": HealthMetric(
            density, _size_status(density), "Avg Concept Size", "Average number of sentences per concept."
        ),
        "axis_variance": HealthMetric(
            var * 100, _variance_status(var), "Axis Variance",
            "Percentage of data variance explained by graph axes.",
        ),
        "single_juror_concepts": HealthMetric(
            solo_ratio * 100, _solo_status(solo_ratio), "Solo Concepts",
            "Percentage of concepts supported by only one juror.",
        ),
    }
    overall = sum(STATUS_SCORES[m.status] for m in metrics.values()) / len(metrics)

    recommendations: List[str] = []
    if metrics["concept_density"].status == "poor":
        recommendations.append(RECOMMEND_FEWER if density < 5 else RECOMMEND_MORE)
    if metrics["axis_variance"].status == "poor":
        recommendations.append(RECOMMEND_DIMENSIONS)
    if metrics["single_juror_concepts"].status != "good":
        recommendations.append(RECOMMEND_SHARED)

    return ReportHealth(overall_score=overall, metrics=metrics, recommendations=recommendations)
