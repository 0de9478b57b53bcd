"""Concept post-processing: centroids, merging, membership, identity, labels, evidence."""

from .centroids import compute_concept_centroids, juror_dampening_weights
from .concept_policy import ConceptCountPolicy, PolicyDecision, apply_concept_count_policy
from .concept_sets import ConceptSet, build_concept_set, create_stable_concept_ids, quantize_centroid
from .evidence import EvidenceRankingParams, RankedEvidence, rank_evidence_for_concept
from .report_health import HealthMetric, ReportHealth, evaluate_report_health
from .semantic_merge import MergeDetail, MergeResult, semantic_merge_concepts
from .soft_membership import compute_soft_membership, hard_membership, normalized_entropy
from .term_model import (
    STOPWORDS,
    BM25Model,
    ConceptLabel,
    ContrastiveTermLabeler,
    compute_contrastive_term_scores,
    extract_ngrams,
    juror_top_terms,
)

__all__ = [
    "compute_concept_centroids",
    "juror_dampening_weights",
    "ConceptCountPolicy",
    "PolicyDecision",
    "apply_concept_count_policy",
    "ConceptSet",
    "build_concept_set",
    "create_stable_concept_ids",
    "quantize_centroid",
    "EvidenceRankingParams",
    "RankedEvidence",
    "rank_evidence_for_concept",
    "HealthMetric",
    "ReportHealth",
    "evaluate_report_health",
    "MergeDetail",
    "MergeResult",
    "semantic_merge_concepts",
    "compute_soft_membership",
    "hard_membership",
    "normalized_entropy",
    "STOPWORDS",
    "BM25Model",
    "ConceptLabel",
    "ContrastiveTermLabeler",
    "compute_contrastive_term_scores",
    "extract_ngrams",
    "juror_top_terms",
]
