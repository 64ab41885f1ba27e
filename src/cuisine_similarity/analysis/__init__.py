"""Analysis stages: features, summaries, clustering, similarity graph, figures."""

from . import clustering, features, graph, summary, viz

__all__ = ["clustering", "features", "graph", "summary", "viz"]
