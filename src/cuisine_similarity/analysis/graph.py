"""
Similarity graph stage: prune the dissimilarity matrix to its closest cuisine
pairs and export nodes/links for a force-directed renderer.
"""
from __future__ import annotations

import json
import logging
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Mapping

import networkx as nx
import numpy as np
import pandas as pd

from ..core import PipelineContext, StageResult
from ..utils import reports_dir, stage_logger

log = logging.getLogger(__name__)

DEFAULT_PRUNE_QUANTILE = 0.4


@dataclass(frozen=True)
class GraphNode:
    id: int
    name: str
    cluster: int


@dataclass(frozen=True)
class GraphEdge:
    source: int
    target: int
    weight: float


@dataclass
class SimilarityGraph:
    """Undirected cuisine graph. Node ids follow matrix row order; edges have source < target."""

    nodes: List[GraphNode] = field(default_factory=list)
    edges: List[GraphEdge] = field(default_factory=list)
    threshold: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "threshold": self.threshold,
            "nodes": [asdict(n) for n in self.nodes],
            "links": [asdict(e) for e in self.edges],
        }

    def to_networkx(self) -> nx.Graph:
        G = nx.Graph()
        for n in self.nodes:
            G.add_node(n.id, name=n.name, cluster=n.cluster)
        for e in self.edges:
            G.add_edge(e.source, e.target, weight=e.weight)
        return G

    def n_components(self) -> int:
        return nx.number_connected_components(self.to_networkx())


def prune_threshold(distances: pd.DataFrame, quantile: float) -> float:
    """Quantile of the off-diagonal (upper-triangle) distances."""
    if not 0.0 <= quantile <= 1.0:
        raise ValueError(f"prune quantile must be within [0, 1], got {quantile}")
    values = distances.to_numpy(dtype=float)
    upper = values[np.triu_indices_from(values, k=1)]
    if upper.size == 0:
        return 0.0
    return float(np.quantile(upper, quantile))


def build_similarity_graph(
    distances: pd.DataFrame,
    clusters: Mapping[str, int] | pd.Series,
    prune_quantile: float = DEFAULT_PRUNE_QUANTILE,
) -> SimilarityGraph:
    """
    Keep one edge per cuisine pair whose distance falls strictly below the
    ``prune_quantile`` threshold. A disconnected result is expected when the
    threshold is low.
    """
    labels = [str(label) for label in distances.index]
    missing = [label for label in labels if label not in clusters]
    if missing:
        raise ValueError(f"cluster assignment missing for cuisines: {missing}")

    threshold = prune_threshold(distances, prune_quantile)
    values = distances.to_numpy(dtype=float)

    nodes = [GraphNode(id=i, name=label, cluster=int(clusters[label])) for i, label in enumerate(labels)]
    edges = []
    rows, cols = np.triu_indices_from(values, k=1)
    for i, j in zip(rows, cols):
        weight = float(values[i, j])
        if weight < threshold:
            edges.append(GraphEdge(source=int(i), target=int(j), weight=weight))

    graph = SimilarityGraph(nodes=nodes, edges=edges, threshold=threshold)
    log.debug("Similarity graph: %d nodes, %d edges (threshold %.6f)", len(nodes), len(edges), threshold)
    return graph


def run(context: PipelineContext, *, force: bool = False) -> StageResult:
    cfg = context.stage("similarity_graph", required=False)
    logger = stage_logger(context, "similarity_graph", force=force)

    distances = context.require("distance_matrix", "similarity_graph")
    clusters = context.require("clusters", "similarity_graph")
    quantile = float(cfg.get("params", {}).get("prune_quantile", DEFAULT_PRUNE_QUANTILE))

    graph = build_similarity_graph(distances, clusters, prune_quantile=quantile)
    context.artifacts["similarity_graph"] = graph
    logger.info(
        "Graph: %d nodes, %d edges below %.4f (%d components)",
        len(graph.nodes), len(graph.edges), graph.threshold, graph.n_components(),
    )

    outputs = {"edges": len(graph.edges)}
    out_dir = reports_dir(context, cfg)
    if out_dir is not None:
        graph_path = out_dir / "similarity_graph.json"
        with open(graph_path, "w", encoding="utf-8") as f:
            json.dump(graph.to_dict(), f, indent=2)
        outputs["graph"] = str(graph_path)

    return StageResult(name="similarity_graph", status="success", outputs=outputs)
