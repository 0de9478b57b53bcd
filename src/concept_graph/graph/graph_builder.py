"""
Analysis orchestrator.

``build_analysis`` turns embedded juror sentences into a concept graph:

    sentences checkpoint -> choose K -> cluster -> (merge) -> centroids
    -> cut quality -> stable ids, labels, evidence -> membership
    -> juror vectors -> dimension selection -> layout -> nodes and links
    -> axis labels -> anchor projections -> final checkpoint -> health

The pipeline is synchronous and deterministic for a fixed seed. It never
raises for data-quality problems (tiny corpora, invalid cuts, degenerate
clusters); those are logged and surfaced as ``reasoning`` strings and
``cut_quality`` diagnostics. Caller bugs (mismatched inputs) raise
``ValueError``.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field, replace
from typing import Dict, List, Mapping, Optional, Sequence, Tuple
import math
import numpy as np

from ..algorithms.clustering import kmeans_cosine
from ..algorithms.cut_quality import evaluate_cut_quality
from ..algorithms.dimensionality_reduction import (
    SCAN_DIMENSIONS,
    find_optimal_dimensions_elbow,
    find_optimal_dimensions_threshold,
    layout_dimensions,
    reduce_to_nd,
)
from ..algorithms.hierarchical import (
    build_dendrogram,
    cut_dendrogram_by_count,
    cut_dendrogram_by_threshold,
    cut_dendrogram_two_layer,
)
from ..algorithms.sweep import KSearchConfig, evaluate_k_range
from ..algorithms.vector_ops import normalize_rows
from ..analysis.centroids import compute_concept_centroids
from ..analysis.concept_policy import apply_concept_count_policy
from ..analysis.concept_sets import ConceptSet, build_concept_set
from ..analysis.evidence import rank_evidence_for_concept
from ..analysis.report_health import evaluate_report_health
from ..analysis.semantic_merge import semantic_merge_concepts
from ..analysis.soft_membership import compute_soft_membership, hard_membership
from ..analysis.term_model import BM25Model, ContrastiveTermLabeler, juror_top_terms
from ..config import AnalysisConfig
from ..models import (
    STANCES,
    AnalysisCheckpoint,
    AnalysisResult,
    AnalysisStats,
    Concept,
    ConceptMeta,
    GraphLink,
    GraphNode,
    JurorDistributionEntry,
    JurorMeta,
    Membership,
    SentenceMeta,
    SentenceRecord,
    empty_stance_counts,
)
from ..utils.logging_config import get_logger
from .anchor_axes import project_concept_centroids, project_juror_vectors
from .axis_labeler import label_axes
from .layout import compute_node_positions, place_detail_concepts
from .projections import build_concept_similarity_links, build_juror_similarity_links

logger = get_logger(__name__)

JUROR_NODE_SIZE = 28
SENTENCE_NODE_SIZE = 10
MAX_CONCEPT_SIZE = 48.0
JUROR_LINK_MIN_WEIGHT = 0.05
EVIDENCE_PER_CONCEPT = 3
TOP_TERMS_PER_CONCEPT = 12


def concept_node_size(weight: float) -> float:
    """Logarithmic display size, capped at 48."""
    return min(6 + math.log2(weight + 1) * 8.4, MAX_CONCEPT_SIZE)


@dataclass
class _Layer:
    """One clustering layer on its way to becoming concepts."""

    name: str
    assignments: np.ndarray
    centroids: np.ndarray
    concept_set: ConceptSet
    memberships: List[List[Membership]] = field(default_factory=list)
    labels: List[str] = field(default_factory=list)
    top_terms: List[List[str]] = field(default_factory=list)
    evidence: List[List[str]] = field(default_factory=list)
    members: List[List[int]] = field(default_factory=list)
    juror_vectors: Dict[str, Dict[str, float]] = field(default_factory=dict)
    concept_weights: Dict[str, float] = field(default_factory=dict)

    @property
    def ids(self) -> List[str]:
        return self.concept_set.stable_ids


# ------------------------------------------------------------------
# Stages
# ------------------------------------------------------------------

def sentences_checkpoint(sentences: Sequence[SentenceRecord]) -> AnalysisCheckpoint:
    """Sentences on a 10-wide grid, before any clustering."""
    nodes = [
        GraphNode(
            id=s.id,
            type="sentence",
            label=s.text[:30] + "...",
            size=SENTENCE_NODE_SIZE,
            meta=SentenceMeta(juror=s.juror),
            x=float((i % 10) * 2),
            y=float((i // 10) * 2),
            z=0.0,
        )
        for i, s in enumerate(sentences)
    ]
    return AnalysisCheckpoint(id="sentences", label="Sentences Extracted", nodes=nodes)


def _choose_k(
    X: np.ndarray, jurors: Sequence[str], cfg: AnalysisConfig, reasoning: List[str]
) -> Tuple[int, Optional[int], Optional[List[dict]], bool]:
    """Returns (k, recommended_k, k_search_metrics, requires_hierarchy)."""
    n = X.shape[0]
    k = min(cfg.manual_k, n)
    recommended_k = None
    metrics = None

    if cfg.auto_k:
        search = evaluate_k_range(
            X,
            jurors,
            KSearchConfig(
                k_min=cfg.k_min,
                k_max=cfg.k_max,
                seed=cfg.seed,
                quality_params=cfg.quality_params,
                enable_stability=cfg.k_stability,
            ),
        )
        recommended_k = search.recommended_k
        metrics = [m.to_dict() for m in search.metrics]
        k = recommended_k
        reasoning.append(f"Auto-K selected K={k}: {search.reason}")
        logger.info("Auto-K selected K=%d (%s)", k, search.reason)

    requires_hierarchy = False
    if cfg.apply_count_policy:
        decision = apply_concept_count_policy(k, n)
        k = decision.adjusted_k
        requires_hierarchy = decision.requires_hierarchy
        reasoning.append(decision.reasoning)
        logger.info(decision.reasoning)

    return max(1, min(k, n)), recommended_k, metrics, requires_hierarchy


def _describe_layer(
    layer: _Layer,
    texts: Sequence[str],
    X: np.ndarray,
    term_model: BM25Model,
    labeler,
    cfg: AnalysisConfig,
) -> None:
    """Fill in labels, top terms and ranked evidence for every concept of *layer*."""
    for c in range(len(layer.ids)):
        members = np.flatnonzero(layer.assignments == c).tolist()
        named = labeler.label(members, texts)
        evidence = rank_evidence_for_concept(
            texts,
            members,
            layer.centroids[c],
            X,
            term_model,
            named.top_terms,
            cfg.evidence_params,
            EVIDENCE_PER_CONCEPT,
        )
        layer.members.append(members)
        layer.labels.append(named.label)
        layer.top_terms.append(list(named.top_terms[:TOP_TERMS_PER_CONCEPT]))
        layer.evidence.append([e.sentence for e in evidence])


def _assign_membership(layer: _Layer, X: np.ndarray, cfg: AnalysisConfig) -> None:
    if cfg.soft_membership:
        layer.memberships = compute_soft_membership(X, layer.centroids, cfg.soft_top_n, concept_ids=layer.ids)
    else:
        layer.memberships = hard_membership(layer.assignments, layer.ids)


def _juror_vectors(layer: _Layer, jurors: Sequence[str]) -> None:
    """Accumulate membership weight per juror and concept, then normalize per juror.

    Sentences without a juror still count toward concept weight but get no
    juror vector, matching the juror nodes.
    """
    vectors: Dict[str, Dict[str, float]] = {}
    weights: Dict[str, float] = {}
    for juror, memberships in zip(jurors, layer.memberships):
        for m in memberships:
            weights[m.concept_id] = weights.get(m.concept_id, 0.0) + m.weight
        if not juror:
            continue
        row = vectors.setdefault(juror, {})
        for m in memberships:
            row[m.concept_id] = row.get(m.concept_id, 0.0) + m.weight
    for row in vectors.values():
        total = sum(row.values()) or 1.0
        for cid in row:
            row[cid] /= total
    layer.juror_vectors = vectors
    layer.concept_weights = weights


def _select_dimensions(centroids: np.ndarray, cfg: AnalysisConfig, reasoning: List[str]) -> Tuple[int, int]:
    """Returns (applied, layout) dimension counts."""
    k = centroids.shape[0]
    final = cfg.num_dimensions
    if cfg.dimension_mode != "manual" and k > 1:
        scan = reduce_to_nd(centroids, max(SCAN_DIMENSIONS, cfg.num_dimensions))
        variances = scan.variance_stats.explained_variances
        if cfg.dimension_mode == "threshold":
            final = find_optimal_dimensions_threshold(
                variances, scan.variance_stats.total_variance, cfg.variance_threshold
            )
        else:
            final = find_optimal_dimensions_elbow(variances)
        available = max(1, sum(1 for v in variances if v > 0))
        final = max(1, min(available, final))
        reasoning.append(f"{cfg.dimension_mode.capitalize()} dimension selection chose {final} dimension(s)")
        logger.info("Dimension mode %s chose %d dimension(s)", cfg.dimension_mode, final)
    return layout_dimensions(final, k)


def _dominant_stance(records: Sequence[SentenceRecord]) -> str:
    counts = Counter(r.stance for r in records)
    if not counts:
        return "neutral"
    return max(STANCES, key=lambda s: counts.get(s, 0))


def _juror_concept_links(
    jurors: Sequence[str],
    layer: _Layer,
    sentences: Sequence[SentenceRecord],
) -> List[GraphLink]:
    """Juror -> concept links above the minimum weight, with stance and evidence."""
    in_concept = [{m.concept_id for m in memberships} for memberships in layer.memberships]
    links: List[GraphLink] = []
    for juror in jurors:
        row = layer.juror_vectors.get(juror, {})
        for cid in layer.ids:
            weight = row.get(cid, 0.0)
            if weight <= JUROR_LINK_MIN_WEIGHT:
                continue
            evidence = [s for i, s in enumerate(sentences) if s.juror == juror and cid in in_concept[i]]
            links.append(GraphLink(
                id=f"link:juror:{juror}__{cid}",
                source=f"juror:{juror}",
                target=cid,
                weight=weight,
                kind="jurorConcept",
                stance=_dominant_stance(evidence),
                evidence_ids=[s.id for s in evidence],
            ))
    return links


def _layer_concepts(
    layer: _Layer,
    layer_name: str,
    parent_ids: Optional[Sequence[Optional[str]]] = None,
    child_ids: Optional[Mapping[str, List[str]]] = None,
) -> List[Concept]:
    concepts = []
    for c, cid in enumerate(layer.ids):
        weight = layer.concept_weights.get(cid, 0.0)
        concepts.append(Concept(
            id=cid,
            label=layer.labels[c],
            size=concept_node_size(weight),
            weight=weight,
            top_terms=layer.top_terms[c],
            representative_sentences=layer.evidence[c],
            layer=layer_name,
            parent_id=parent_ids[c] if parent_ids is not None else None,
            child_ids=list(child_ids.get(cid, [])) if child_ids is not None else [],
            sentence_count=len(layer.members[c]),
        ))
    return concepts


def _juror_distribution(layer: _Layer, jurors: Sequence[str], cid: str) -> List[JurorDistributionEntry]:
    entries = [JurorDistributionEntry(j, layer.juror_vectors.get(j, {}).get(cid, 0.0)) for j in jurors]
    return [e for e in entries if e.weight > 0]


# ------------------------------------------------------------------
# Entry point
# ------------------------------------------------------------------

def build_analysis(
    sentences: Sequence[SentenceRecord],
    vectors,
    config: Optional[AnalysisConfig] = None,
    term_model: Optional[BM25Model] = None,
    labeler=None,
) -> AnalysisResult:
    """
    Build a concept graph from embedded juror sentences.

    Args:
        sentences: Input sentences (juror, text, stance)
        vectors: (n, d) sentence embeddings aligned with *sentences*;
            re-normalized to unit length
        config: Run settings (defaults to ``AnalysisConfig()``)
        term_model: N-gram salience model for labels, evidence and juror
            terms; built from the sentences with zero scores when omitted
        labeler: Object with ``label(cluster_indices, sentences)``; defaults
            to ``ContrastiveTermLabeler(term_model)``

    Returns:
        AnalysisResult. Empty input yields an empty result that still
        carries the ``sentences`` checkpoint.

    Raises:
        ValueError: If the number of vectors differs from the number of sentences
    """
    cfg = config or AnalysisConfig()
    sentences = list(sentences)
    X = np.asarray(vectors, dtype=np.float64)
    n = len(sentences)
    if X.shape[0] != n:
        raise ValueError(f"Got {X.shape[0]} vector(s) for {n} sentence(s)")

    checkpoints = [sentences_checkpoint(sentences)]
    jurors = list(dict.fromkeys(s.juror for s in sentences if s.juror))
    if n == 0:
        logger.info("No sentences to analyze")
        return AnalysisResult(
            checkpoints=checkpoints,
            clustering_mode=cfg.clustering_mode,
            dimension_mode=cfg.dimension_mode,
            variance_threshold=cfg.variance_threshold,
            requested_num_dimensions=cfg.num_dimensions,
        )

    X = normalize_rows(X.reshape(n, -1))
    texts = [s.text for s in sentences]
    sentence_jurors = [s.juror for s in sentences]
    term_model = term_model or BM25Model.from_scores({}, texts)
    labeler = labeler or ContrastiveTermLabeler(term_model)
    reasoning: List[str] = []

    # -- K and clustering ------------------------------------------------
    k, recommended_k, k_metrics, requires_hierarchy = _choose_k(X, sentence_jurors, cfg, reasoning)
    two_layer = cfg.clustering_mode == "hierarchical" and (cfg.use_two_layer or requires_hierarchy)
    if two_layer and not cfg.use_two_layer:
        reasoning.append("Two-layer hierarchy enabled by concept-count policy")

    dendrogram = None
    detail_assignments = None
    detail_label = f"detail:{cfg.detail_granularity:g}"
    parent_map: Dict[int, int] = {}
    cut_label = f"count:{k}"
    if cfg.clustering_mode == "kmeans":
        km = kmeans_cosine(X, k, seed=cfg.seed)
        # Empty clusters are dropped; surviving ids keep their order.
        _, assignments = np.unique(km.assignments, return_inverse=True)
        assignments = assignments.reshape(-1).astype(int)
        K = int(assignments.max()) + 1
        if K < km.k:
            reasoning.append(f"k-means left {km.k - K} empty cluster(s); kept {K} concept(s)")
        cut_label = f"kmeans:{K}:{cfg.seed}"
    else:
        dendrogram = build_dendrogram(X)
        if two_layer:
            tl = cut_dendrogram_two_layer(
                dendrogram,
                X,
                sentence_jurors,
                cfg.quality_params,
                cfg.detail_quality_params,
                cfg.primary_granularity,
                cfg.detail_granularity,
                cfg.detail_auto_range,
            )
            assignments, detail_assignments, parent_map = tl.primary_assignments, tl.detail_assignments, tl.parent_map
            cut_label = tl.primary_cut.granularity if tl.primary_cut is not None else cfg.primary_granularity
            if tl.primary_cut is not None and tl.primary_cut.relaxed:
                reasoning.append(f"Primary cut relaxed to granularity {tl.primary_cut.granularity:g}")
            detail_label = tl.detail_label(cfg.detail_granularity)
            if cfg.detail_auto_range is not None:
                reasoning.append(f"Detail auto-range chose {detail_label}")
        elif cfg.cut_type == "granularity":
            cut = cut_dendrogram_by_threshold(
                dendrogram, X, sentence_jurors, cfg.granularity_percent, cfg.quality_params
            )
            assignments = cut.assignments
            cut_label = cut.granularity
            if cut.relaxed:
                reasoning.append(f"Granularity cut relaxed to {cut.granularity:g} after {cut.attempts} attempt(s)")
        else:
            assignments = cut_dendrogram_by_count(X, k)
        K = int(assignments.max()) + 1
    logger.info("Clustered %d sentence(s) into %d concept(s) (%s)", n, K, cfg.clustering_mode)

    # -- Merge, centroids, quality ---------------------------------------
    merge_details: List[dict] = []
    if cfg.semantic_merge and not two_layer:
        pre = compute_concept_centroids(X, assignments, K, sentence_jurors, cfg.juror_dampening)
        merged = semantic_merge_concepts(pre, assignments, cfg.merge_threshold)
        if merged.merged_count:
            assignments = merged.assignments
            K = int(assignments.max()) + 1
            merge_details = [d.to_dict() for d in merged.details]
            reasoning.append(f"Semantic merge folded {merged.merged_count} concept(s); {K} remain")
    elif cfg.semantic_merge:
        reasoning.append("Semantic merge skipped for two-layer hierarchy")

    centroids = compute_concept_centroids(X, assignments, K, sentence_jurors, cfg.juror_dampening)
    cut_quality = {}
    quality = evaluate_cut_quality(assignments, sentence_jurors, centroids, cfg.quality_params)
    cut_quality["primary"] = quality.to_dict()
    if not quality.is_valid:
        logger.warning("Primary cut violates quality constraints: %s", "; ".join(quality.reasons))

    primary = _Layer(
        name="primary",
        assignments=assignments,
        centroids=centroids,
        concept_set=build_concept_set(cut_label, assignments, centroids, dendrogram=dendrogram),
    )
    layers = [primary]

    detail: Optional[_Layer] = None
    if detail_assignments is not None:
        Kd = int(detail_assignments.max()) + 1
        detail_centroids = compute_concept_centroids(
            X, detail_assignments, Kd, sentence_jurors, cfg.juror_dampening
        )
        detail_quality = evaluate_cut_quality(
            detail_assignments, sentence_jurors, detail_centroids, cfg.detail_quality_params
        )
        cut_quality["detail"] = detail_quality.to_dict()
        if not detail_quality.is_valid:
            logger.warning("Detail cut violates quality constraints: %s", "; ".join(detail_quality.reasons))
        detail = _Layer(
            name="detail",
            assignments=detail_assignments,
            centroids=detail_centroids,
            concept_set=build_concept_set(
                detail_label,
                detail_assignments,
                detail_centroids,
                parent_map=parent_map,
                dendrogram=dendrogram,
                parent_stable_ids=primary.ids,
            ),
        )
        layers.append(detail)

    # -- Concepts and membership -----------------------------------------
    for layer in layers:
        _describe_layer(layer, texts, X, term_model, labeler, cfg)
        _assign_membership(layer, X, cfg)
        _juror_vectors(layer, sentence_jurors)

    records: List[SentenceRecord] = []
    stance_counts = empty_stance_counts()
    for i, s in enumerate(sentences):
        stance_counts[s.stance] += 1
        memberships = primary.memberships[i]
        records.append(replace(
            s,
            concept_id=memberships[0].concept_id if memberships else None,
            concept_membership=tuple(memberships) if cfg.soft_membership else None,
            detail_concept_id=detail.ids[int(detail.assignments[i])] if detail is not None else None,
        ))

    top_terms_by_juror = {
        j: juror_top_terms([s.text for s in sentences if s.juror == j], term_model, TOP_TERMS_PER_CONCEPT)
        for j in jurors
    }

    # -- Layout ----------------------------------------------------------
    applied, layout = _select_dimensions(centroids, cfg, reasoning)
    positions = compute_node_positions(
        primary.juror_vectors, centroids, jurors, primary.ids, layout, seed=cfg.seed
    )

    hierarchy: Dict[str, List[str]] = {}
    detail_parent_ids: List[Optional[str]] = []
    if detail is not None:
        for d_idx, cid in enumerate(detail.ids):
            parent_id = primary.ids[parent_map[d_idx]]
            detail_parent_ids.append(parent_id)
            hierarchy.setdefault(parent_id, []).append(cid)

    anchor_axes = [a for a in cfg.anchor_axes if a.axis_vector is not None and np.asarray(a.axis_vector).size]
    concept_anchor: Dict[str, Dict[str, float]] = {}
    juror_anchor: Dict[str, Dict[str, float]] = {}
    if anchor_axes:
        concept_anchor = project_concept_centroids(centroids, anchor_axes, primary.ids)
        juror_anchor = project_juror_vectors(primary.juror_vectors, centroids, anchor_axes, primary.ids)

    # -- Nodes -----------------------------------------------------------
    nodes: List[GraphNode] = []
    juror_sentence_counts = Counter(sentence_jurors)
    for j in jurors:
        node_id = f"juror:{j}"
        x, y, z = positions.positions.get(node_id, (0.0, 0.0, 0.0))
        nodes.append(GraphNode(
            id=node_id,
            type="juror",
            label=j,
            size=JUROR_NODE_SIZE,
            meta=JurorMeta(
                sentence_count=juror_sentence_counts[j],
                top_terms=top_terms_by_juror.get(j, []),
                anchor_scores=juror_anchor.get(j, {}),
            ),
            x=x, y=y, z=z,
            pc_values=positions.juror_pc_values.get(node_id),
        ))

    concepts = _layer_concepts(primary, "primary", child_ids=hierarchy)
    for concept in concepts:
        x, y, z = positions.positions.get(concept.id, (0.0, 0.0, 0.0))
        nodes.append(GraphNode(
            id=concept.id,
            type="concept",
            label=concept.label,
            size=concept.size,
            meta=ConceptMeta(
                top_terms=concept.top_terms,
                weight=concept.weight,
                juror_distribution=_juror_distribution(primary, jurors, concept.id),
                representative_sentences=concept.representative_sentences,
                anchor_scores=concept_anchor.get(concept.id, {}),
            ),
            x=x, y=y, z=z,
            pc_values=positions.concept_pc_values.get(concept.id),
            layer="primary" if detail is not None else None,
            child_concept_ids=hierarchy.get(concept.id) if detail is not None else None,
        ))

    detail_concepts: List[Concept] = []
    if detail is not None:
        detail_concepts = _layer_concepts(detail, "detail", parent_ids=detail_parent_ids)
        placed = place_detail_concepts(detail.ids, detail_parent_ids, positions.positions, seed=cfg.seed)
        for concept in detail_concepts:
            x, y, z = placed[concept.id]
            nodes.append(GraphNode(
                id=concept.id,
                type="concept",
                label=concept.label,
                size=concept.size,
                meta=ConceptMeta(
                    top_terms=concept.top_terms,
                    weight=concept.weight,
                    juror_distribution=_juror_distribution(detail, jurors, concept.id),
                    representative_sentences=concept.representative_sentences,
                ),
                x=x, y=y, z=z,
                pc_values=positions.concept_pc_values.get(concept.parent_id),
                layer="detail",
                parent_concept_id=concept.parent_id,
            ))

    # -- Links -----------------------------------------------------------
    links = _juror_concept_links(jurors, primary, records)
    links.extend(build_juror_similarity_links(jurors, primary.juror_vectors, primary.ids, cfg.similarity_threshold))
    links.extend(build_concept_similarity_links(primary.ids, centroids, cfg.similarity_threshold))

    primary_nodes = [node for node in nodes if node.type == "concept" and node.layer != "detail"]
    axis_labels = label_axes(primary_nodes, applied, layout, positions.concept_pc_values)

    checkpoints.append(AnalysisCheckpoint(id="final", label="Graph Built", nodes=nodes, links=links))

    result = AnalysisResult(
        jurors=jurors,
        concepts=concepts,
        detail_concepts=detail_concepts,
        concept_hierarchy=hierarchy,
        sentences=records,
        juror_vectors=primary.juror_vectors,
        juror_vectors_detail=detail.juror_vectors if detail is not None else {},
        nodes=nodes,
        links=links,
        stats=AnalysisStats(
            total_jurors=len(jurors),
            total_sentences=n,
            total_concepts=len(concepts),
            stance_counts=stance_counts,
        ),
        recommended_k=recommended_k,
        k_search_metrics=k_metrics,
        clustering_mode=cfg.clustering_mode,
        checkpoints=checkpoints,
        juror_top_terms=top_terms_by_juror,
        axis_labels=axis_labels,
        variance_stats=positions.variance_stats.to_dict() if positions.variance_stats is not None else None,
        requested_num_dimensions=cfg.num_dimensions,
        applied_num_dimensions=applied,
        layout_num_dimensions=layout,
        dimension_mode=cfg.dimension_mode,
        variance_threshold=cfg.variance_threshold,
        anchor_axis_projections={"concepts": concept_anchor, "jurors": juror_anchor} if anchor_axes else {},
        cut_quality=cut_quality,
        merge_details=merge_details,
        reasoning=reasoning,
    )
    result.report_health = evaluate_report_health(result).to_dict()
    logger.info(
        "Built graph: %d juror(s), %d concept(s), %d detail concept(s), %d link(s)",
        len(jurors), len(concepts), len(detail_concepts), len(links),
    )
    return result
