"""
Command-line entry point.

    concept-graph analyze feedback.json -o graph.json --k 6 --mode kmeans

The input file holds ``sentences`` (``{id, juror, text, stance}``) and,
optionally, precomputed ``vectors``, a ``bm25`` block with n-gram
``scores`` and ``anchor_axes``. Without vectors the sentences are embedded
through the endpoint configured in the environment (see ``config.py``).
"""

import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

import numpy as np

from .analysis.term_model import BM25Model
from .config import CLUSTERING_MODES, CUT_TYPES, DIMENSION_MODES, AnalysisConfig, config
from .graph.graph_builder import build_analysis
from .models import AnalysisResult, AnchorAxis, SentenceRecord
from .providers.openai_compatible_embedding_provider import OpenAICompatibleEmbeddingProvider
from .services.analysis_service import AnalysisService
from .services.embedding_cache import EmbeddingCache
from .utils.logging_config import get_logger, setup_logging

logger = get_logger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="concept-graph",
        description="Cluster juror feedback into an explainable concept graph.",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    sub = parser.add_subparsers(dest="command", required=True)

    analyze = sub.add_parser(
        "analyze",
        help="Analyze a JSON file of juror sentences",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    analyze.add_argument("input", type=Path, help="Input JSON file")
    analyze.add_argument("-o", "--output", type=Path, default=None, help="Output JSON file (stdout if omitted)")
    analyze.add_argument("--k", type=int, default=None, help="Number of concepts (clamped to 4..30)")
    analyze.add_argument("--mode", choices=CLUSTERING_MODES, default=None, help="Clustering algorithm")
    analyze.add_argument("--auto-k", action="store_true", help="Search K automatically")
    analyze.add_argument("--two-layer", action="store_true", help="Build primary and detail concept layers")
    analyze.add_argument("--cut-type", choices=CUT_TYPES, default=None, help="Hierarchical cut type")
    analyze.add_argument("--granularity", type=float, default=None, help="Granularity percent for threshold cuts")
    analyze.add_argument("--dimension-mode", choices=DIMENSION_MODES, default=None, help="Layout dimension selection")
    analyze.add_argument("--seed", type=int, default=None, help="Random seed")
    analyze.add_argument("--hard", action="store_true", help="Hard (single-concept) membership")
    analyze.add_argument("--cache", type=Path, default=None, help="Embedding cache .npz file")
    analyze.add_argument("--log-level", default=None, help="Logging level (default from CONCEPT_GRAPH_LOG_LEVEL)")
    return parser


def analysis_config_from_args(args: argparse.Namespace, anchor_axes: List[AnchorAxis]) -> AnalysisConfig:
    """Environment defaults overridden by whatever flags were given."""
    overrides: Dict[str, Any] = {"anchor_axes": anchor_axes}
    if args.k is not None:
        overrides["k_concepts"] = args.k
    if args.mode is not None:
        overrides["clustering_mode"] = args.mode
    if args.cut_type is not None:
        overrides["cut_type"] = args.cut_type
    if args.granularity is not None:
        overrides["granularity_percent"] = args.granularity
    if args.dimension_mode is not None:
        overrides["dimension_mode"] = args.dimension_mode
    if args.seed is not None:
        overrides["seed"] = args.seed
    if args.auto_k:
        overrides["auto_k"] = True
    if args.two_layer:
        overrides["use_two_layer"] = True
    if args.hard:
        overrides["soft_membership"] = False
    return config.analysis_defaults(**overrides)


def load_input(path: Path) -> Dict[str, Any]:
    with open(path, "r", encoding="utf-8") as fh:
        data = json.load(fh)
    if not isinstance(data, dict) or "sentences" not in data:
        raise ValueError(f"{path}: expected a JSON object with a 'sentences' list")
    return data


async def run_analysis(data: Dict[str, Any], cfg: AnalysisConfig, cache_path: Optional[Path] = None) -> AnalysisResult:
    """Analyze parsed input, embedding through the configured provider when needed."""
    sentences = [SentenceRecord.from_dict(s) for s in data["sentences"]]
    texts = [s.text for s in sentences]
    term_model = BM25Model.from_scores(data.get("bm25", {}).get("scores", {}), texts)

    vectors = data.get("vectors")
    needs_embedding = vectors is None or any(
        a.axis_vector is None and a.negative_pole.seed_phrases and a.positive_pole.seed_phrases
        for a in cfg.anchor_axes
    )
    if not needs_embedding:
        return build_analysis(sentences, np.asarray(vectors, dtype=np.float64), cfg, term_model=term_model)

    if not config.embedding.is_configured:
        raise ValueError("No vectors in input and no embedding endpoint configured (set EMBEDDING_API_KEY or EMBEDDING_BASE_URL)")

    cache = EmbeddingCache()
    if cache_path is not None:
        cache.load_npz(cache_path)
    async with OpenAICompatibleEmbeddingProvider.from_config(config.embedding) as provider:
        service = AnalysisService(
            provider,
            model=config.embedding.model,
            dimensions=config.embedding.dimensions,
            batch_size=config.embedding.batch_size,
            cache=cache,
        )
        result = await service.analyze(
            sentences,
            cfg,
            vectors=None if vectors is None else np.asarray(vectors, dtype=np.float64),
            term_model=term_model,
        )
    if cache_path is not None:
        cache.save_npz(cache_path)
    return result


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(args.log_level or config.log_level)

    try:
        data = load_input(args.input)
        axes = [AnchorAxis.from_dict(a) for a in data.get("anchor_axes", [])]
        cfg = analysis_config_from_args(args, axes)
        result = asyncio.run(run_analysis(data, cfg, args.cache))
    except (OSError, ValueError, KeyError) as e:
        logger.error("Analysis failed: %s", e)
        return 1

    payload = json.dumps(result.to_dict(), indent=2)
    if args.output is None:
        sys.stdout.write(payload + "\n")
    else:
        args.output.write_text(payload, encoding="utf-8")
        logger.info("Wrote %s", args.output)
    return 0


if __name__ == "__main__":
    sys.exit(main())
