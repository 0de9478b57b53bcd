"""
Pytest configuration and shared fixtures.

This file is automatically discovered by pytest and provides fixtures
available to all test modules.
"""

from typing import List, Optional

import numpy as np
import pytest

from concept_graph.models import STANCES, SentenceRecord
from concept_graph.providers.base_embedding import BaseEmbeddingProvider, EmbeddingResult

JURORS = ["alice", "bob", "carol", "dave", "erin"]
THEMES = [
    "lighting design",
    "site plan",
    "material palette",
    "model craft",
    "circulation diagram",
]
QUALIFIERS = [
    "felt resolved overall",
    "needs sharper intent",
    "reads clearly from afar",
    "could push further",
    "was the strongest move",
    "lacks a clear hierarchy",
    "supports the narrative",
    "should be simplified",
    "shows careful iteration",
    "is hard to follow",
]
N_PER_THEME = 10
DIM = 16


def _clustered_corpus(noise: float = 0.02, seed: int = 42):
    """Five tight, mutually orthogonal themes; every juror writes two sentences per theme."""
    rng = np.random.default_rng(seed)
    sentences: List[SentenceRecord] = []
    vectors = []
    labels = []
    for c, theme in enumerate(THEMES):
        for i in range(N_PER_THEME):
            idx = len(sentences)
            sentences.append(SentenceRecord(
                id=f"s{idx}",
                juror=JURORS[i % len(JURORS)],
                text=f"The {theme} {QUALIFIERS[i]}",
                stance=STANCES[c % len(STANCES)],
            ))
            v = np.zeros(DIM)
            v[c] = 1.0
            v += rng.normal(0, noise, DIM)
            vectors.append(v / np.linalg.norm(v))
            labels.append(c)
    return sentences, np.array(vectors), np.array(labels)


@pytest.fixture
def clustered_corpus():
    """
    50 sentences from 5 jurors over 5 well-separated themes.

    Returns:
        (sentences, unit vectors of shape (50, 16), true theme label per sentence)
    """
    return _clustered_corpus()


@pytest.fixture
def juror_sentences(clustered_corpus):
    return clustered_corpus[0]


@pytest.fixture
def sentence_vectors(clustered_corpus):
    return clustered_corpus[1]


@pytest.fixture
def true_labels(clustered_corpus):
    return clustered_corpus[2]


@pytest.fixture
def sentence_jurors(juror_sentences):
    return [s.juror for s in juror_sentences]


def _text_vector(text: str) -> List[float]:
    """Deterministic, content-dependent toy embedding."""
    lowered = text.lower()
    return [
        float(len(text)),
        float(lowered.count("a") + 1),
        float(lowered.count("e") + 1),
        float(lowered.count("o") + 1),
    ]


@pytest.fixture
def mock_embedding_provider():
    """
    Fixture for a mock embedding provider.

    Embeds texts with a deterministic toy function and records every batch
    it was asked for.
    """
    class MockEmbeddingProvider(BaseEmbeddingProvider):
        def __init__(self):
            self.batches: List[List[str]] = []
            self.closed = False

        async def create_embeddings(
            self, texts: List[str], model: str, dimensions: Optional[int] = None
        ) -> List[EmbeddingResult]:
            self.batches.append(list(texts))
            return [EmbeddingResult(vector=_text_vector(t), index=i) for i, t in enumerate(texts)]

        def get_provider_name(self) -> str:
            return "mock"

        async def close(self) -> None:
            self.closed = True

    return MockEmbeddingProvider()


@pytest.fixture
def failing_embedding_provider():
    """
    Fixture factory for an embedding provider that fails a specified number of times.

    Usage:
        provider = failing_embedding_provider(fail_count=2, error_type="timeout")
    """
    class FailingEmbeddingProvider(BaseEmbeddingProvider):
        def __init__(self, fail_count: int = 2, error_type: str = "timeout"):
            self.fail_count = fail_count
            self.attempts = 0
            self.error_type = error_type

        async def create_embeddings(
            self, texts: List[str], model: str, dimensions: Optional[int] = None
        ) -> List[EmbeddingResult]:
            """Fail fail_count times, then succeed."""
            self.attempts += 1

            if self.attempts <= self.fail_count:
                if self.error_type == "timeout":
                    raise TimeoutError(f"Simulated timeout (attempt {self.attempts})")
                elif self.error_type == "rate_limit":
                    raise Exception(f"Rate limit exceeded (attempt {self.attempts})")
                elif self.error_type == "503":
                    raise Exception(f"503 Service Unavailable (attempt {self.attempts})")
                elif self.error_type == "connection":
                    raise ConnectionError(f"Connection failed (attempt {self.attempts})")
                elif self.error_type == "auth":
                    raise Exception("401 Unauthorized: Invalid API key")

            return [EmbeddingResult(vector=_text_vector(t), index=i) for i, t in enumerate(texts)]

        def get_provider_name(self) -> str:
            return "failing_provider"

        async def close(self) -> None:
            pass

    return FailingEmbeddingProvider
