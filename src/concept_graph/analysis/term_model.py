"""
Term model contract and contrastive concept labeling.

The frequency model (BM25 or similar) is produced outside this package; the
analysis only needs its vocabulary, a salience score per n-gram, document
frequencies and, optionally, a term-frequency vector per sentence.
``BM25Model.from_scores`` builds the per-sentence vectors when only scores
are available.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Sequence
import math
import re
import numpy as np

from ..utils.logging_config import get_logger

logger = get_logger(__name__)

STOPWORDS = frozenset([
    "a", "an", "the", "and", "or", "but", "if", "then", "than", "so", "to", "of", "in", "on",
    "for", "with", "as", "at", "by", "from", "into", "that", "this", "these", "those", "is",
    "are", "was", "were", "be", "being", "been", "it", "its", "they", "their", "them", "he",
    "she", "his", "her", "you", "your", "we", "our", "i", "me", "my", "not", "no", "yes",
    "very", "more", "most", "less", "least", "can", "could", "should", "would", "may",
    "might", "must", "also", "just", "really", "quite", "about", "over", "under", "between",
    "within", "without", "across", "through", "during", "before", "after", "while", "where",
    "when", "what", "which", "who", "whom", "because", "there", "here", "such", "some", "any",
    "each", "both", "either", "neither", "many", "much", "few", "one", "two", "three", "etc",
])

LABEL_SEPARATOR = " · "
FALLBACK_LABEL = "Concept"
STEM_SUFFIXES = ("ation", "ition", "tion", "sion", "ingly", "edly", "ing", "ed", "est", "er", "ly", "es", "s")

_NON_WORD = re.compile(r"[^a-z0-9\s'-]")


def tokenize(text: str) -> List[str]:
    """Lowercase, strip punctuation (keeping ``'`` and ``-``), drop 1-char tokens."""
    cleaned = _NON_WORD.sub(" ", text.lower())
    return [tok for tok in cleaned.split() if len(tok) >= 2]


def extract_ngrams(text: str, min_n: int = 2, max_n: int = 3) -> List[str]:
    """
    All n-grams of *text* with ``min_n <= n <= max_n``.

    An n-gram is dropped when every token is a stopword, or when it starts or
    ends with one. Order follows the text; duplicates are kept.
    """
    tokens = tokenize(text)
    out: List[str] = []
    for n in range(min_n, max_n + 1):
        for i in range(len(tokens) - n + 1):
            gram = tokens[i:i + n]
            if gram[0] in STOPWORDS or gram[-1] in STOPWORDS:
                continue
            if all(tok in STOPWORDS for tok in gram):
                continue
            out.append(" ".join(gram))
    return out


# ------------------------------------------------------------------
# Model contract
# ------------------------------------------------------------------

@dataclass
class BM25Model:
    """
    N-gram salience model.

    Attributes:
        ngram_vocab: Vocabulary, fixing the column order of ``vectors``
        scores: Salience score per n-gram
        doc_freq: Number of sentences containing each n-gram
        vectors: Optional (n_sentences, len(vocab)) term-frequency rows
    """

    ngram_vocab: List[str] = field(default_factory=list)
    scores: Dict[str, float] = field(default_factory=dict)
    doc_freq: Dict[str, int] = field(default_factory=dict)
    vectors: Optional[np.ndarray] = None

    @classmethod
    def empty(cls) -> "BM25Model":
        return cls()

    @classmethod
    def from_scores(cls, scores: Dict[str, float], sentences: Sequence[str]) -> "BM25Model":
        """
        Build vocabulary, document frequencies and term-frequency rows from
        *sentences*, keeping the supplied *scores*.

        Terms that never occur in the sentences are left out of the vocabulary.
        """
        counts = [Counter(extract_ngrams(s)) for s in sentences]
        doc_freq: Dict[str, int] = {}
        for c in counts:
            for term in c:
                doc_freq[term] = doc_freq.get(term, 0) + 1
        vocab = sorted(doc_freq)
        column = {term: j for j, term in enumerate(vocab)}
        vectors = np.zeros((len(sentences), len(vocab)), dtype=np.float64)
        for i, c in enumerate(counts):
            for term, tf in c.items():
                vectors[i, column[term]] = tf
        return cls(
            ngram_vocab=vocab,
            scores={term: float(scores.get(term, 0.0)) for term in vocab},
            doc_freq=doc_freq,
            vectors=vectors,
        )

    def score(self, term: str) -> float:
        return self.scores.get(term, 0.0)

    def term_frequency_rows(self, sentences: Sequence[str]) -> np.ndarray:
        """``vectors`` if present, otherwise n-gram counts recomputed from *sentences*."""
        if self.vectors is not None and len(self.vectors) == len(sentences):
            return np.asarray(self.vectors, dtype=np.float64)
        column = {term: j for j, term in enumerate(self.ngram_vocab)}
        rows = np.zeros((len(sentences), len(self.ngram_vocab)), dtype=np.float64)
        for i, sentence in enumerate(sentences):
            for term in extract_ngrams(sentence):
                j = column.get(term)
                if j is not None:
                    rows[i, j] += 1.0
        return rows


# ------------------------------------------------------------------
# Contrastive scoring
# ------------------------------------------------------------------

@dataclass
class TermScore:
    term: str
    score: float
    df: int
    ratio: float
    prevalence: float


def compute_contrastive_term_scores(
    group_indices: Sequence[int],
    sentences: Sequence[str],
    model: BM25Model,
    min_df: int = 2,
    max_df_percent: float = 0.8,
    ratio_threshold: float = 1.5,
    tf_rows: Optional[np.ndarray] = None,
) -> List[TermScore]:
    """
    Terms frequent and prevalent inside a group of sentences but rare in the rest.

    ``score = (tf_in - tf_out) * prevalence * log2(max(ratio, 1) + 1)`` where
    ``tf_*`` are mean term frequencies, ``prevalence`` is the in-group
    document fraction and ``ratio = tf_in / tf_out`` (``tf_in`` when the term
    never appears outside). Terms must appear in at least *min_df* and at
    most ``ceil(group_size * max_df_percent)`` group sentences, have a
    positive score and a ratio of at least *ratio_threshold*.

    Returns:
        TermScore list sorted by score descending.
    """
    indices = [int(i) for i in group_indices if 0 <= int(i) < len(sentences)]
    if not indices or not model.ngram_vocab:
        return []

    rows = tf_rows if tf_rows is not None else model.term_frequency_rows(sentences)
    in_mask = np.zeros(len(sentences), dtype=bool)
    in_mask[indices] = True
    group = rows[in_mask]
    rest = rows[~in_mask]

    local_tf = group.mean(axis=0)
    local_df = (group > 0).sum(axis=0)
    other_tf = rest.mean(axis=0) if rest.shape[0] > 0 else np.zeros(rows.shape[1])
    max_df_count = math.ceil(len(indices) * max_df_percent)

    scored: List[TermScore] = []
    for j, term in enumerate(model.ngram_vocab):
        df = int(local_df[j])
        if df < min_df or df > max_df_count:
            continue
        prevalence = df / len(indices)
        ratio = local_tf[j] / other_tf[j] if other_tf[j] > 0 else local_tf[j]
        score = (local_tf[j] - other_tf[j]) * prevalence * math.log2(max(ratio, 1.0) + 1.0)
        if score > 0 and ratio >= ratio_threshold:
            scored.append(TermScore(term, float(score), df, float(ratio), prevalence))
    scored.sort(key=lambda t: -t.score)
    return scored


def stem_term(term: str) -> str:
    """Crude suffix stem of the first token of *term*."""
    cleaned = term.lower().strip()
    if not cleaned:
        return ""
    token = cleaned.split()[0]
    for suffix in STEM_SUFFIXES:
        if token.endswith(suffix) and len(token) - len(suffix) >= 3:
            return token[:-len(suffix)]
    return token


def dedupe_terms(candidates: Iterable[str], limit: int) -> List[str]:
    """Keep terms whose stem is new and that neither contain nor are contained in a kept term."""
    seen_stems = set()
    kept: List[str] = []
    for phrase in candidates:
        if len(kept) >= limit:
            break
        stem = stem_term(phrase)
        if not stem or stem in seen_stems:
            continue
        norm = phrase.lower()
        if any(norm in k.lower() or k.lower() in norm for k in kept):
            continue
        seen_stems.add(stem)
        kept.append(phrase)
    return kept


def top_model_terms(texts: Iterable[str], model: BM25Model, limit: int) -> List[str]:
    """Distinct n-grams of *texts* ordered by model score (first occurrence breaks ties)."""
    seen: Dict[str, float] = {}
    for text in texts:
        for gram in extract_ngrams(text):
            if gram not in seen:
                seen[gram] = model.score(gram)
    ranked = sorted(seen.items(), key=lambda kv: -kv[1])
    return [term for term, _ in ranked[:limit]]


def juror_top_terms(juror_sentences: Sequence[str], model: BM25Model, limit: int = 12) -> List[str]:
    return top_model_terms(juror_sentences, model, limit)


# ------------------------------------------------------------------
# Labeler
# ------------------------------------------------------------------

@dataclass
class ConceptLabel:
    label: str
    top_terms: List[str] = field(default_factory=list)


class ContrastiveTermLabeler:
    """
    Labels a cluster with its most distinctive n-grams.

    Any object with a ``label(cluster_indices, sentences) -> ConceptLabel``
    method can stand in for this one (e.g. an LLM-backed labeler).
    """

    def __init__(self, model: BM25Model, top_n: int = 4, top_terms: int = 12):
        self.model = model
        self.top_n = top_n
        self.top_terms = top_terms
        self._rows: Optional[np.ndarray] = None
        self._rows_for: Optional[int] = None

    def _tf_rows(self, sentences: Sequence[str]) -> np.ndarray:
        # Recomputed only when the corpus changes size.
        if self._rows is None or self._rows_for != len(sentences):
            self._rows = self.model.term_frequency_rows(sentences)
            self._rows_for = len(sentences)
        return self._rows

    def label(self, cluster_indices: Sequence[int], sentences: Sequence[str]) -> ConceptLabel:
        scores = compute_contrastive_term_scores(
            cluster_indices, sentences, self.model, tf_rows=self._tf_rows(sentences)
        )
        terms = [s.term for s in scores[:max(self.top_terms, self.top_n * 2)]]
        picked = dedupe_terms(terms, self.top_n)

        if not picked:
            cluster_texts = [sentences[i] for i in cluster_indices if 0 <= i < len(sentences)]
            fallback = top_model_terms(cluster_texts, self.model, self.top_terms)
            picked = dedupe_terms(fallback, self.top_n)
            terms = terms or fallback
            logger.debug("No contrastive terms for cluster of %d; using model terms", len(cluster_texts))

        label = LABEL_SEPARATOR.join(picked) if picked else FALLBACK_LABEL
        return ConceptLabel(label=label, top_terms=terms[:self.top_terms])
