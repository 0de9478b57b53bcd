"""
Data model for concept-graph analyses.

Plain dataclasses shared by the analysis and graph layers. Everything that
ends up in an ``AnalysisResult`` knows how to turn itself into JSON-safe
primitives via ``to_dict``.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Literal, Optional, Union
import numpy as np

Stance = Literal["praise", "critique", "suggestion", "neutral"]
STANCES: tuple = ("praise", "critique", "suggestion", "neutral")

NodeType = Literal["juror", "concept", "sentence"]
LinkKind = Literal["jurorConcept", "jurorJuror", "conceptConcept"]
Layer = Literal["primary", "detail"]


def _jsonable(value: Any) -> Any:
    """Recursively convert numpy containers/scalars into plain Python."""
    if isinstance(value, np.ndarray):
        return value.tolist()
    if isinstance(value, np.generic):
        return value.item()
    if isinstance(value, dict):
        return {str(k): _jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_jsonable(v) for v in value]
    return value


def empty_stance_counts() -> Dict[str, int]:
    return {stance: 0 for stance in STANCES}


# ------------------------------------------------------------------
# Sentences and concepts
# ------------------------------------------------------------------

@dataclass(frozen=True)
class Membership:
    """Fractional assignment of a sentence to one concept."""

    concept_id: str
    weight: float


@dataclass(frozen=True)
class SentenceRecord:
    """
    One juror feedback sentence.

    Records are immutable: clustering attaches ``concept_id`` (hard),
    ``concept_membership`` (soft) and ``detail_concept_id`` by producing a
    new record with ``dataclasses.replace``.
    """

    id: str
    juror: str
    text: str
    stance: str = "neutral"
    concept_id: Optional[str] = None
    concept_membership: Optional[tuple] = None
    detail_concept_id: Optional[str] = None

    def __post_init__(self):
        if self.stance not in STANCES:
            raise ValueError(f"Unknown stance {self.stance!r}; expected one of {STANCES}")

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SentenceRecord":
        return cls(
            id=str(data["id"]),
            juror=str(data["juror"]),
            text=str(data.get("text", data.get("sentence", ""))),
            stance=str(data.get("stance", "neutral")),
        )

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "id": self.id,
            "juror": self.juror,
            "text": self.text,
            "stance": self.stance,
            "concept_id": self.concept_id,
            "detail_concept_id": self.detail_concept_id,
        }
        if self.concept_membership is not None:
            out["concept_membership"] = [asdict(m) for m in self.concept_membership]
        return out


@dataclass
class Concept:
    """A labeled cluster of sentences in one layer of the hierarchy."""

    id: str
    label: str
    size: float
    weight: float
    top_terms: List[str] = field(default_factory=list)
    representative_sentences: List[str] = field(default_factory=list)
    layer: str = "primary"
    parent_id: Optional[str] = None
    child_ids: List[str] = field(default_factory=list)
    sentence_count: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return _jsonable(asdict(self))


# ------------------------------------------------------------------
# Graph entities
# ------------------------------------------------------------------

@dataclass
class JurorDistributionEntry:
    juror: str
    weight: float


@dataclass
class JurorMeta:
    """Metadata carried by juror nodes."""

    kind: Literal["juror"] = "juror"
    sentence_count: int = 0
    top_terms: List[str] = field(default_factory=list)
    anchor_scores: Dict[str, float] = field(default_factory=dict)


@dataclass
class ConceptMeta:
    """Metadata carried by concept nodes."""

    kind: Literal["concept"] = "concept"
    top_terms: List[str] = field(default_factory=list)
    weight: float = 0.0
    juror_distribution: List[JurorDistributionEntry] = field(default_factory=list)
    representative_sentences: List[str] = field(default_factory=list)
    anchor_scores: Dict[str, float] = field(default_factory=dict)


@dataclass
class SentenceMeta:
    """Metadata carried by sentence nodes in the ``sentences`` checkpoint."""

    kind: Literal["sentence"] = "sentence"
    juror: str = ""


NodeMeta = Union[JurorMeta, ConceptMeta, SentenceMeta]


@dataclass
class GraphNode:
    id: str
    type: str
    label: str
    size: float
    meta: NodeMeta
    x: float = 0.0
    y: float = 0.0
    z: float = 0.0
    pc_values: Optional[List[float]] = None
    layer: Optional[str] = None
    parent_concept_id: Optional[str] = None
    child_concept_ids: Optional[List[str]] = None

    def to_dict(self) -> Dict[str, Any]:
        return _jsonable(asdict(self))


@dataclass
class GraphLink:
    id: str
    source: str
    target: str
    weight: float
    kind: str
    stance: Optional[str] = None
    evidence_ids: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return _jsonable(asdict(self))


@dataclass
class AxisLabel:
    """Negative/positive pole labels for one layout axis."""

    negative: str
    positive: str
    negative_id: str
    positive_id: str
    method: Optional[str] = None


@dataclass
class AnalysisCheckpoint:
    """Snapshot of the graph at a named pipeline stage."""

    id: str
    label: str
    nodes: List[GraphNode] = field(default_factory=list)
    links: List[GraphLink] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "label": self.label,
            "nodes": [n.to_dict() for n in self.nodes],
            "links": [l.to_dict() for l in self.links],
        }


# ------------------------------------------------------------------
# Anchor axes
# ------------------------------------------------------------------

@dataclass
class AxisPole:
    label: str
    seed_phrases: List[str] = field(default_factory=list)


@dataclass
class AnchorAxis:
    """
    User-authored semantic axis.

    Pole vectors are filled in after the seed phrases are embedded;
    ``axis_vector`` is ``normalize(positive_vector - negative_vector)``.
    """

    id: str
    name: str
    negative_pole: AxisPole
    positive_pole: AxisPole
    negative_vector: Optional[np.ndarray] = None
    positive_vector: Optional[np.ndarray] = None
    axis_vector: Optional[np.ndarray] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AnchorAxis":
        def pole(raw: Dict[str, Any]) -> AxisPole:
            return AxisPole(label=str(raw.get("label", "")), seed_phrases=list(raw.get("seed_phrases", [])))

        def vec(key: str) -> Optional[np.ndarray]:
            raw = data.get(key)
            return None if raw is None else np.asarray(raw, dtype=np.float64)

        return cls(
            id=str(data["id"]),
            name=str(data.get("name", data["id"])),
            negative_pole=pole(data.get("negative_pole", {})),
            positive_pole=pole(data.get("positive_pole", {})),
            negative_vector=vec("negative_vector"),
            positive_vector=vec("positive_vector"),
            axis_vector=vec("axis_vector"),
        )


# ------------------------------------------------------------------
# Result
# ------------------------------------------------------------------

@dataclass
class AnalysisStats:
    total_jurors: int = 0
    total_sentences: int = 0
    total_concepts: int = 0
    stance_counts: Dict[str, int] = field(default_factory=empty_stance_counts)


@dataclass
class AnalysisResult:
    """Everything one analysis run produces."""

    jurors: List[str] = field(default_factory=list)
    concepts: List[Concept] = field(default_factory=list)
    detail_concepts: List[Concept] = field(default_factory=list)
    concept_hierarchy: Dict[str, List[str]] = field(default_factory=dict)
    sentences: List[SentenceRecord] = field(default_factory=list)
    juror_vectors: Dict[str, Dict[str, float]] = field(default_factory=dict)
    juror_vectors_detail: Dict[str, Dict[str, float]] = field(default_factory=dict)
    nodes: List[GraphNode] = field(default_factory=list)
    links: List[GraphLink] = field(default_factory=list)
    stats: AnalysisStats = field(default_factory=AnalysisStats)
    recommended_k: Optional[int] = None
    k_search_metrics: Optional[List[Dict[str, Any]]] = None
    clustering_mode: Optional[str] = None
    checkpoints: List[AnalysisCheckpoint] = field(default_factory=list)
    juror_top_terms: Dict[str, List[str]] = field(default_factory=dict)
    axis_labels: Optional[Dict[str, AxisLabel]] = None
    variance_stats: Optional[Dict[str, Any]] = None
    requested_num_dimensions: Optional[int] = None
    applied_num_dimensions: Optional[int] = None
    layout_num_dimensions: Optional[int] = None
    dimension_mode: Optional[str] = None
    variance_threshold: Optional[float] = None
    anchor_axis_projections: Dict[str, Dict[str, Dict[str, float]]] = field(default_factory=dict)
    cut_quality: Dict[str, Any] = field(default_factory=dict)
    merge_details: List[Dict[str, Any]] = field(default_factory=list)
    reasoning: List[str] = field(default_factory=list)
    report_health: Optional[Dict[str, Any]] = None

    def node(self, node_id: str) -> Optional[GraphNode]:
        for n in self.nodes:
            if n.id == node_id:
                return n
        return None

    def to_dict(self) -> Dict[str, Any]:
        return _jsonable({
            "jurors": self.jurors,
            "concepts": [c.to_dict() for c in self.concepts],
            "detail_concepts": [c.to_dict() for c in self.detail_concepts],
            "concept_hierarchy": self.concept_hierarchy,
            "sentences": [s.to_dict() for s in self.sentences],
            "juror_vectors": self.juror_vectors,
            "juror_vectors_detail": self.juror_vectors_detail,
            "nodes": [n.to_dict() for n in self.nodes],
            "links": [l.to_dict() for l in self.links],
            "stats": asdict(self.stats),
            "recommended_k": self.recommended_k,
            "k_search_metrics": self.k_search_metrics,
            "clustering_mode": self.clustering_mode,
            "checkpoints": [c.to_dict() for c in self.checkpoints],
            "juror_top_terms": self.juror_top_terms,
            "axis_labels": (
                {k: asdict(v) for k, v in self.axis_labels.items()}
                if self.axis_labels is not None else None
            ),
            "variance_stats": self.variance_stats,
            "requested_num_dimensions": self.requested_num_dimensions,
            "applied_num_dimensions": self.applied_num_dimensions,
            "layout_num_dimensions": self.layout_num_dimensions,
            "dimension_mode": self.dimension_mode,
            "variance_threshold": self.variance_threshold,
            "anchor_axis_projections": self.anchor_axis_projections,
            "cut_quality": self.cut_quality,
            "merge_details": self.merge_details,
            "reasoning": self.reasoning,
            "report_health": self.report_health,
        })
