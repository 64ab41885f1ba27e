"""Pipeline stage registry."""

from __future__ import annotations

from typing import Callable, Dict

from .analysis import clustering, features, graph, summary, viz
from .core import PipelineContext, StageResult
from .preprocessing import corpus

StageFn = Callable[[PipelineContext], StageResult]

STAGES: Dict[str, StageFn] = {
    "load_corpus": corpus.run,
    "feature_matrix": features.run,
    "ingredient_summary": summary.run,
    "clustering": clustering.run,
    "similarity_graph": graph.run,
    "render_figures": viz.run,
}

__all__ = ["STAGES", "StageFn"]
