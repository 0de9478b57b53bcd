"""Caps the number of top-level concepts according to corpus size."""

from __future__ import annotations

from dataclasses import dataclass

SMALL_CORPUS = 100
MEDIUM_CORPUS = 200


@dataclass(frozen=True)
class ConceptCountPolicy:
    small_corpus_max: int = 8
    medium_corpus_max: int = 12
    large_corpus_max: int = 12


@dataclass(frozen=True)
class PolicyDecision:
    adjusted_k: int
    requires_hierarchy: bool
    reasoning: str


def apply_concept_count_policy(
    recommended_k: int,
    corpus_size: int,
    policy: ConceptCountPolicy = ConceptCountPolicy(),
) -> PolicyDecision:
    """
    Clamp *recommended_k* for readability.

    Corpora under 100 sentences allow ``small_corpus_max`` concepts, under
    200 ``medium_corpus_max``; larger corpora are capped at
    ``large_corpus_max`` and, when the cap bites, flagged as needing a
    second (detail) layer.
    """
    if corpus_size < SMALL_CORPUS:
        tier, cap = "Small corpus (<100 sentences)", policy.small_corpus_max
    elif corpus_size < MEDIUM_CORPUS:
        tier, cap = "Medium corpus (100-200 sentences)", policy.medium_corpus_max
    else:
        tier, cap = "Large corpus (>200 sentences)", policy.large_corpus_max

    if recommended_k <= cap:
        return PolicyDecision(recommended_k, False, f"{tier} policy: K={recommended_k} is within limits")

    large = corpus_size >= MEDIUM_CORPUS
    if large:
        reasoning = f"{tier} policy: capped top-level K to {cap} and enabled hierarchy"
    else:
        reasoning = f"{tier} policy: capped K from {recommended_k} to {cap}"
    return PolicyDecision(cap, large, reasoning)
