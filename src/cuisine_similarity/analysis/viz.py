"""
Figure stage: renders the in-memory analysis results (dendrogram, distance
tile heatmap, unique-ingredient bars, top-ingredient table, force-directed
similarity network) into a post's figure directory.
"""
from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Dict

import matplotlib.pyplot as plt
import numpy as np
import pandas as pd
import plotly.express as px
import seaborn as sns
from pyvis.network import Network
from scipy.cluster.hierarchy import dendrogram

from ..core import PipelineContext, StageResult
from ..utils import stage_logger
from .clustering import ClusterTree
from .graph import SimilarityGraph


@dataclass(frozen=True)
class RenderConfig:
    """Where a post's figures go and how the post links to them."""

    source_path: Path
    output_dir: Path
    base_url: str = "/"

    @property
    def slug(self) -> str:
        return Path(self.source_path).stem

    @property
    def figure_dir(self) -> Path:
        return Path(self.output_dir) / self.slug

    def figure_url(self, name: str) -> str:
        base = self.base_url if self.base_url.endswith("/") else self.base_url + "/"
        return f"{base}{self.slug}/{name}"


@dataclass(frozen=True)
class ForceLayout:
    """
    Physics for the force-directed network.

    ``repulsion`` becomes the forceAtlas2Based ``gravitationalConstant``
    (negative pushes nodes apart). Each edge gets its own ``length`` of
    ``weight * distance_scale`` (at least 1), which vis.js uses in place of
    the solver's global ``springLength``; that 100 only applies to edges
    without a length, and every edge written here has one.
    """

    repulsion: float = -60.0
    distance_scale: float = 400.0

    def edge_length(self, weight: float) -> float:
        return max(1.0, float(weight) * self.distance_scale)


def plot_dendrogram(tree: ClusterTree, clusters: pd.Series, out_path: Path) -> None:
    """Dendrogram of the merge tree, leaves labelled with their cluster id."""
    labels = [f"{name} ({clusters[name]})" for name in tree.labels]
    plt.figure(figsize=(9, max(4, 0.3 * tree.n_leaves + 2)))
    dendrogram(tree.linkage_matrix(), labels=labels, orientation="left", color_threshold=None)
    plt.title(f"Cuisine Dendrogram ({tree.linkage} linkage)")
    plt.xlabel("Merge height")
    plt.tight_layout()
    plt.savefig(out_path, dpi=150)
    plt.close()


def plot_distance_heatmap(distances: pd.DataFrame, tree: ClusterTree, out_path: Path) -> None:
    """Tile heatmap of the dissimilarity matrix, rows/columns in dendrogram leaf order."""
    order = [tree.labels[i] for i in tree.leaf_order()]
    ordered = distances.loc[order, order]
    fig = px.imshow(
        ordered,
        x=order,
        y=order,
        color_continuous_scale="Viridis_r",
        labels={"color": "Distance"},
        title="Cuisine Dissimilarity",
    )
    fig.update_layout(template="simple_white", height=max(520, 22 * len(order)))
    fig.write_html(str(out_path))


def plot_unique_counts(unique_counts: pd.Series, out_path: Path) -> None:
    counts_df = unique_counts.reset_index()
    counts_df.columns = ["cuisine", "count"]
    plt.figure(figsize=(9, max(4, 0.35 * len(counts_df) + 1)))
    sns.barplot(data=counts_df, x="count", y="cuisine", palette="viridis", dodge=False, hue="cuisine", legend=False)
    plt.title("Unique Ingredients per Cuisine")
    plt.xlabel("Distinct ingredients")
    plt.ylabel("Cuisine")
    plt.tight_layout()
    plt.savefig(out_path)
    plt.close()


def plot_similarity_network(graph: SimilarityGraph, out_path: Path, *, layout: ForceLayout | None = None) -> None:
    """Interactive force-directed graph; nodes colored by cluster, closer pairs get shorter springs."""
    layout = layout or ForceLayout()
    n_clusters = max([n.cluster for n in graph.nodes] or [1])
    palette = sns.color_palette("tab10", max(3, n_clusters)).as_hex()

    net = Network(height="720px", width="100%", bgcolor="#ffffff", font_color="#0f172a", notebook=False, cdn_resources="in_line")

    degrees: Dict[int, int] = {n.id: 0 for n in graph.nodes}
    for e in graph.edges:
        degrees[e.source] += 1
        degrees[e.target] += 1

    for n in graph.nodes:
        net.add_node(
            n.id,
            label=n.name,
            title=f"{n.name}<br>Cluster: {n.cluster}<br>Neighbors: {degrees[n.id]}",
            color=palette[(n.cluster - 1) % len(palette)],
            group=str(n.cluster),
            value=float(np.log1p(degrees[n.id]) * 8 + 6),
        )
    for e in graph.edges:
        net.add_edge(
            e.source,
            e.target,
            value=float(1.0 / (1.0 + e.weight)),
            length=layout.edge_length(e.weight),
            title=f"Distance: {e.weight:.4f}",
            color="#cbd5e1",
        )

    net.set_options(json.dumps({
        "nodes": {"shape": "dot", "scaling": {"min": 6, "max": 30}, "font": {"size": 14, "face": "arial"}},
        "edges": {"smooth": False, "color": {"inherit": False}},
        "physics": {
            "solver": "forceAtlas2Based",
            "forceAtlas2Based": {
                "gravitationalConstant": layout.repulsion,
                "centralGravity": 0.01,
                "springLength": 100,
                "damping": 0.6,
                "avoidOverlap": 0.5,
            },
            "stabilization": {"iterations": 150},
        },
        "interaction": {"hover": True, "hoverConnectedEdges": True},
    }))
    out_path = Path(out_path)
    out_path.write_text(net.generate_html(notebook=False), encoding="utf-8")


def render_figures(
    render_cfg: RenderConfig,
    *,
    tree: ClusterTree,
    clusters: pd.Series,
    distances: pd.DataFrame,
    unique_counts: pd.Series,
    top_ingredients: pd.DataFrame,
    graph: SimilarityGraph,
    layout: ForceLayout | None = None,
) -> Dict[str, str]:
    """Write every figure for a post and return name -> URL as the post links them."""
    fig_dir = render_cfg.figure_dir
    fig_dir.mkdir(parents=True, exist_ok=True)

    plot_dendrogram(tree, clusters, fig_dir / "dendrogram.png")
    plot_distance_heatmap(distances, tree, fig_dir / "distance_heatmap.html")
    plot_unique_counts(unique_counts, fig_dir / "unique_ingredients.png")
    top_ingredients.to_csv(fig_dir / "top_ingredients.csv", index=False)
    plot_similarity_network(graph, fig_dir / "similarity_network.html", layout=layout)
    with open(fig_dir / "similarity_graph.json", "w", encoding="utf-8") as f:
        json.dump(graph.to_dict(), f, indent=2)

    names = [
        "dendrogram.png",
        "distance_heatmap.html",
        "unique_ingredients.png",
        "top_ingredients.csv",
        "similarity_network.html",
        "similarity_graph.json",
    ]
    return {name: render_cfg.figure_url(name) for name in names}


def run(context: PipelineContext, *, force: bool = False) -> StageResult:
    cfg = context.stage("render_figures", required=False)
    logger = stage_logger(context, "render_figures", force=force)

    data_cfg = cfg.get("data", {})
    params = cfg.get("params", {})
    output_cfg = cfg.get("output", {})

    render_cfg = RenderConfig(
        source_path=Path(data_cfg.get("source_path", "cuisine-similarity.md")),
        output_dir=context.resolve(output_cfg.get("output_dir", "images")),
        base_url=str(output_cfg.get("base_url", "/")),
    )
    layout = ForceLayout(
        repulsion=float(params.get("repulsion", -60)),
        distance_scale=float(params.get("distance_scale", 400)),
    )

    logger.info("Rendering figures -> %s", render_cfg.figure_dir)
    urls = render_figures(
        render_cfg,
        tree=context.require("cluster_tree", "render_figures"),
        clusters=context.require("clusters", "render_figures"),
        distances=context.require("distance_matrix", "render_figures"),
        unique_counts=context.require("unique_counts", "render_figures"),
        top_ingredients=context.require("top_ingredients", "render_figures"),
        graph=context.require("similarity_graph", "render_figures"),
        layout=layout,
    )

    return StageResult(
        name="render_figures",
        status="success",
        outputs={"figure_dir": str(render_cfg.figure_dir)},
        artifacts={"figure_urls": urls},
    )
