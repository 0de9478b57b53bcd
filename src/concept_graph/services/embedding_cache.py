"""
In-memory embedding cache with pluggable eviction and .npz persistence.

One cache object is created per service (or shared explicitly between
runs); nothing is cached globally. Persistence is best-effort: a missing or
invalid cache file is logged and ignored, never raised.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections import OrderedDict
from pathlib import Path
from typing import Dict, List, Optional, Union
import hashlib
import pickle
import re
import numpy as np

from ..utils.logging_config import get_logger

logger = get_logger(__name__)


def normalize_text(text: str) -> str:
    """Remove null bytes and collapse whitespace, for consistent hashing."""
    text = text.replace("\x00", "")
    return re.sub(r"\s+", " ", text).strip()


def cache_key(text: str, model: str) -> str:
    """SHA-256 of ``model|normalized text``."""
    return hashlib.sha256(f"{model}|{normalize_text(text)}".encode("utf-8")).hexdigest()


# ------------------------------------------------------------------
# Eviction policies
# ------------------------------------------------------------------

class EvictionPolicy(ABC):
    """Decides which key leaves a full cache."""

    @abstractmethod
    def on_insert(self, key: str) -> None:
        """Record a newly stored key."""

    @abstractmethod
    def on_access(self, key: str) -> None:
        """Record a cache hit."""

    @abstractmethod
    def on_remove(self, key: str) -> None:
        """Forget a key."""

    @abstractmethod
    def victim(self) -> Optional[str]:
        """Key to evict next, or None when nothing is tracked."""


class LRUEviction(EvictionPolicy):
    """Evicts the least recently used key."""

    def __init__(self):
        self._order: "OrderedDict[str, None]" = OrderedDict()

    def on_insert(self, key: str) -> None:
        self._order[key] = None
        self._order.move_to_end(key)

    def on_access(self, key: str) -> None:
        if key in self._order:
            self._order.move_to_end(key)

    def on_remove(self, key: str) -> None:
        self._order.pop(key, None)

    def victim(self) -> Optional[str]:
        return next(iter(self._order), None)


class FIFOEviction(LRUEviction):
    """Evicts the oldest inserted key; hits do not refresh it."""

    def on_insert(self, key: str) -> None:
        if key not in self._order:
            self._order[key] = None

    def on_access(self, key: str) -> None:
        pass


# ------------------------------------------------------------------
# Cache
# ------------------------------------------------------------------

class EmbeddingCache:
    """
    Maps (model, text) to an embedding vector.

    Args:
        max_entries: Capacity; None means unbounded
        eviction_policy: Policy consulted when full (default ``LRUEviction``)
    """

    def __init__(self, max_entries: Optional[int] = None, eviction_policy: Optional[EvictionPolicy] = None):
        if max_entries is not None and max_entries < 1:
            raise ValueError(f"max_entries must be >= 1, got {max_entries}")
        self.max_entries = max_entries
        self.policy = eviction_policy or LRUEviction()
        self._store: Dict[str, np.ndarray] = {}
        self.hits = 0
        self.misses = 0

    def __len__(self) -> int:
        return len(self._store)

    def __contains__(self, key: str) -> bool:
        return key in self._store

    def get(self, text: str, model: str) -> Optional[np.ndarray]:
        key = cache_key(text, model)
        vector = self._store.get(key)
        if vector is None:
            self.misses += 1
            return None
        self.hits += 1
        self.policy.on_access(key)
        return vector

    def put(self, text: str, model: str, vector: np.ndarray) -> None:
        self._put_key(cache_key(text, model), np.asarray(vector, dtype=np.float64))

    def _put_key(self, key: str, vector: np.ndarray) -> None:
        if key not in self._store and self.max_entries is not None:
            while len(self._store) >= self.max_entries:
                victim = self.policy.victim()
                if victim is None:
                    break
                self._store.pop(victim, None)
                self.policy.on_remove(victim)
        self._store[key] = vector
        self.policy.on_insert(key)

    def clear(self) -> None:
        for key in list(self._store):
            self.policy.on_remove(key)
        self._store.clear()

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def save_npz(self, path: Union[str, Path]) -> Path:
        """Write all entries to *path* (``keys`` and ``vectors`` arrays)."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        keys: List[str] = list(self._store)
        vectors = np.empty(len(keys), dtype=object)
        for i, key in enumerate(keys):
            vectors[i] = self._store[key]
        np.savez(path, keys=np.array(keys, dtype=str), vectors=vectors)
        logger.debug("Saved %d embedding(s) to %s", len(keys), path)
        return path

    def load_npz(self, path: Union[str, Path]) -> int:
        """
        Merge entries from *path* into the cache.

        Returns:
            Number of entries loaded; 0 when the file is missing or invalid.
        """
        path = Path(path)
        if not path.exists():
            return 0
        try:
            with np.load(path, allow_pickle=True) as data:
                if "keys" not in data or "vectors" not in data:
                    logger.warning("Embedding cache %s missing required keys: %s", path, list(data.keys()))
                    return 0
                keys = np.atleast_1d(data["keys"]).tolist()
                vectors = list(data["vectors"])
        except (OSError, ValueError, pickle.UnpicklingError) as e:
            logger.warning("Embedding cache load failed for %s: %s", path, e)
            return 0

        if len(keys) != len(vectors):
            logger.warning("Embedding cache %s shape mismatch: %d keys, %d vectors", path, len(keys), len(vectors))
            return 0
        for key, vector in zip(keys, vectors):
            self._put_key(str(key), np.asarray(vector, dtype=np.float64))
        logger.info("Loaded %d embedding(s) from %s", len(keys), path)
        return len(keys)
