"""
Concept Graph - Core Package

Turns juror feedback sentences and their embeddings into an explainable
concept graph: sentences are clustered into labeled themes, evidence is
ranked per theme, and jurors and concepts are laid out on labeled axes.

This package provides:
- Deterministic clustering, cut evaluation and K search (``algorithms``)
- Concept post-processing, labels and evidence (``analysis``)
- Layout, links, axis labels and the ``build_analysis`` orchestrator (``graph``)
- Embedding providers and the async analysis service (``providers``, ``services``)
"""

__version__ = "0.1.0"

from .config import AnalysisConfig
from .graph.graph_builder import build_analysis
from .models import AnalysisResult, AnchorAxis, AxisPole, SentenceRecord

from . import algorithms
from . import analysis
from . import graph
from . import utils

__all__ = [
    "AnalysisConfig",
    "AnalysisResult",
    "AnchorAxis",
    "AxisPole",
    "SentenceRecord",
    "build_analysis",
    "algorithms",
    "analysis",
    "graph",
    "utils",
]
