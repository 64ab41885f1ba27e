"""
One-shot analysis: recipe file in, plain in-memory results out.

Chains the same functions the registered stages wrap, without touching the
filesystem for output. Errors propagate unchanged.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping

import pandas as pd

from .analysis.clustering import (
    DEFAULT_LINKAGE,
    DEFAULT_METRIC,
    ClusterTree,
    cut_tree,
    distance_matrix,
    hierarchical_clustering,
)
from .analysis.features import build_feature_matrix, normalize_rows
from .analysis.graph import DEFAULT_PRUNE_QUANTILE, SimilarityGraph, build_similarity_graph
from .analysis.summary import popularity_rank, top_ingredients, unique_ingredient_counts
from .preprocessing.corpus import DEFAULT_SEPARATOR, load_corpus

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AnalysisParams:
    metric: str = DEFAULT_METRIC
    linkage: str = DEFAULT_LINKAGE
    n_clusters: int = 4
    prune_quantile: float = DEFAULT_PRUNE_QUANTILE
    top_n: int = 10


@dataclass(frozen=True)
class AnalysisResult:
    documents: Mapping[str, str]
    feature_matrix: pd.DataFrame
    normalized_matrix: pd.DataFrame
    popularity_rank: pd.DataFrame
    top_ingredients: pd.DataFrame
    unique_counts: pd.Series
    distance_matrix: pd.DataFrame
    cluster_tree: ClusterTree
    clusters: pd.Series
    similarity_graph: SimilarityGraph


def analyze_documents(documents: Mapping[str, str], params: AnalysisParams | None = None) -> AnalysisResult:
    params = params or AnalysisParams()

    matrix = build_feature_matrix(documents)
    normalized = normalize_rows(matrix)
    distances = distance_matrix(normalized, metric=params.metric)
    tree = hierarchical_clustering(distances, linkage=params.linkage)
    clusters = cut_tree(tree, min(params.n_clusters, tree.n_leaves))
    graph = build_similarity_graph(distances, clusters, prune_quantile=params.prune_quantile)
    logger.info(
        "Analyzed %d cuisines x %d ingredients: %d clusters, %d edges",
        matrix.shape[0], matrix.shape[1], clusters.nunique(), len(graph.edges),
    )

    return AnalysisResult(
        documents=dict(documents),
        feature_matrix=matrix,
        normalized_matrix=normalized,
        popularity_rank=popularity_rank(matrix),
        top_ingredients=top_ingredients(matrix, params.top_n),
        unique_counts=unique_ingredient_counts(matrix),
        distance_matrix=distances,
        cluster_tree=tree,
        clusters=clusters,
        similarity_graph=graph,
    )


def analyze(path: str | Path, params: AnalysisParams | None = None, *, separator: str = DEFAULT_SEPARATOR) -> AnalysisResult:
    """Run every analysis step over the recipe file at ``path``."""
    return analyze_documents(load_corpus(path, separator=separator), params)


__all__ = ["AnalysisParams", "AnalysisResult", "analyze", "analyze_documents"]
