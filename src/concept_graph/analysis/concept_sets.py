"""
Stable concept identities.

Concept ids are derived from a hash of each centroid's quantized shape (plus
the cut it came from and its parent's id) rather than from its cluster
index, so re-running an analysis that produces the same clusters in a
different order yields the same ids.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Union
import hashlib
import math
import numpy as np

from ..algorithms.hierarchical import Dendrogram

CENTROID_SAMPLE_SIZE = 48
CENTROID_PRECISION = 1e3
HASH_LENGTH = 12


def quantize_centroid(
    centroid: np.ndarray,
    sample_size: int = CENTROID_SAMPLE_SIZE,
    precision: float = CENTROID_PRECISION,
) -> str:
    """Every ``len // sample_size``-th component rounded half-up to 1/precision."""
    values = np.asarray(centroid, dtype=np.float64)
    if values.shape[0] == 0:
        return "empty"
    step = max(1, values.shape[0] // sample_size)
    return "|".join(str(int(math.floor(v * precision + 0.5))) for v in values[::step])


def _hash_signature(signature: str) -> str:
    return hashlib.sha256(signature.encode("utf-8")).hexdigest()[:HASH_LENGTH]


def create_stable_concept_ids(
    centroids: np.ndarray,
    *,
    dendrogram: Optional[Dendrogram] = None,
    parent_map: Optional[Dict[int, int]] = None,
    parent_stable_ids: Optional[Sequence[str]] = None,
    prefix: str = "concept",
    cut_label: str = "",
) -> List[str]:
    """
    One stable id per centroid.

    The signature is ``dendro:<merges>|<cut_label>|<quantized centroid>|<parent id>``
    hashed with SHA-256 (first 12 hex chars). Detail concepts are namespaced
    under their parent as ``<parent id>::<hash>``; top-level ones are
    ``<prefix>:<hash>``. Duplicates get ``-1``, ``-2``... suffixes in order.
    """
    root = f"dendro:{len(dendrogram.merges)}" if dendrogram is not None and dendrogram.merges else "dendro:none"
    used: Dict[str, int] = {}
    ids: List[str] = []
    for i, centroid in enumerate(np.asarray(centroids, dtype=np.float64)):
        parent_stable = None
        if parent_map is not None and parent_stable_ids is not None and i in parent_map:
            parent_idx = parent_map[i]
            if 0 <= parent_idx < len(parent_stable_ids):
                parent_stable = parent_stable_ids[parent_idx]

        digest = _hash_signature(f"{root}|{cut_label}|{quantize_centroid(centroid)}|{parent_stable or ''}")
        base = f"{parent_stable}::{digest}" if parent_stable else f"{prefix}:{digest}"
        count = used.get(base, 0)
        ids.append(base if count == 0 else f"{base}-{count}")
        used[base] = count + 1
    return ids


@dataclass
class ConceptSet:
    """A cut together with its centroids and stable ids."""

    cut: Union[str, float]
    assignments: np.ndarray
    centroids: np.ndarray
    stable_ids: List[str] = field(default_factory=list)
    parent_map: Optional[Dict[int, int]] = None
    unit_type: str = "sentence"

    @property
    def size(self) -> int:
        return len(self.stable_ids)

    def concept_id_for(self, index: int) -> str:
        return self.stable_ids[index]


def build_concept_set(
    cut: Union[str, float],
    assignments: Sequence[int],
    centroids: np.ndarray,
    *,
    parent_map: Optional[Dict[int, int]] = None,
    dendrogram: Optional[Dendrogram] = None,
    parent_stable_ids: Optional[Sequence[str]] = None,
    unit_type: str = "sentence",
) -> ConceptSet:
    """Bundle a cut with stable ids; numeric cuts are labeled ``cut:<value>``."""
    cut_label = cut if isinstance(cut, str) else f"cut:{cut}"
    stable_ids = create_stable_concept_ids(
        centroids,
        dendrogram=dendrogram,
        parent_map=parent_map,
        parent_stable_ids=parent_stable_ids,
        prefix="concept",
        cut_label=cut_label,
    )
    return ConceptSet(
        cut=cut,
        assignments=np.asarray(assignments, dtype=int),
        centroids=np.asarray(centroids, dtype=np.float64),
        stable_ids=stable_ids,
        parent_map=parent_map,
        unit_type=unit_type,
    )
