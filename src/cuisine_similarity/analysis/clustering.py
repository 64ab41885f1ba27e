"""
Clustering stage: pairwise cuisine dissimilarities and agglomerative
hierarchical clustering over them.

The merge loop is written out here rather than delegated so that the linkage
criterion is an explicit, swappable option and equidistant pairs always merge
in the same order (lowest active row index first).
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, List, Mapping, Tuple

import numpy as np
import pandas as pd
from scipy.spatial.distance import pdist, squareform

from ..core import PipelineContext, StageResult
from ..errors import EmptyCorpusError
from ..utils import reports_dir, stage_logger

log = logging.getLogger(__name__)

DEFAULT_METRIC = "euclidean"
DEFAULT_LINKAGE = "complete"


def distance_matrix(normalized: pd.DataFrame, metric: str = DEFAULT_METRIC) -> pd.DataFrame:
    """Symmetric, zero-diagonal dissimilarity matrix over the rows of ``normalized``."""
    if len(normalized) < 2:
        raise EmptyCorpusError(
            f"distance computation needs at least 2 cuisines, got {len(normalized)}",
            stage="clustering",
        )
    values = squareform(pdist(normalized.to_numpy(dtype=float), metric=metric))
    labels = list(normalized.index)
    return pd.DataFrame(values, index=pd.Index(labels, name="cuisine"), columns=labels)


# Lance-Williams updates: distance from the merged cluster (i + j) to cluster k.
# Arguments are d_ik, d_jk, d_ij, n_i, n_j, n_k.
LinkageFn = Callable[[np.ndarray, np.ndarray, float, int, int, np.ndarray], np.ndarray]


def _single(d_ik, d_jk, d_ij, n_i, n_j, n_k):
    return np.minimum(d_ik, d_jk)


def _complete(d_ik, d_jk, d_ij, n_i, n_j, n_k):
    return np.maximum(d_ik, d_jk)


def _average(d_ik, d_jk, d_ij, n_i, n_j, n_k):
    return (n_i * d_ik + n_j * d_jk) / (n_i + n_j)


def _weighted(d_ik, d_jk, d_ij, n_i, n_j, n_k):
    return (d_ik + d_jk) / 2.0


def _ward(d_ik, d_jk, d_ij, n_i, n_j, n_k):
    total = n_i + n_j + n_k
    sq = ((n_i + n_k) * d_ik ** 2 + (n_j + n_k) * d_jk ** 2 - n_k * d_ij ** 2) / total
    return np.sqrt(np.maximum(sq, 0.0))


LINKAGES: Mapping[str, LinkageFn] = {
    "single": _single,
    "complete": _complete,
    "average": _average,
    "weighted": _weighted,
    "ward": _ward,
}


@dataclass(frozen=True)
class Merge:
    """One internal node. Children are leaf ids (< N) or earlier merge ids (N + step)."""

    left: int
    right: int
    height: float
    size: int


@dataclass(frozen=True)
class ClusterTree:
    """Binary merge tree over ``labels``; merge ``m`` has node id ``len(labels) + m``."""

    labels: Tuple[str, ...]
    merges: Tuple[Merge, ...]
    linkage: str = DEFAULT_LINKAGE

    @property
    def n_leaves(self) -> int:
        return len(self.labels)

    @property
    def root(self) -> int:
        return 2 * self.n_leaves - 2

    @property
    def heights(self) -> np.ndarray:
        return np.array([m.height for m in self.merges], dtype=float)

    def linkage_matrix(self) -> np.ndarray:
        """SciPy-format ``(N-1, 4)`` array of ``[left, right, height, size]`` rows."""
        return np.array(
            [[m.left, m.right, m.height, m.size] for m in self.merges],
            dtype=float,
        ).reshape(len(self.merges), 4)

    def children(self, node: int) -> Tuple[int, int] | None:
        if node < self.n_leaves:
            return None
        m = self.merges[node - self.n_leaves]
        return m.left, m.right

    def leaf_order(self) -> List[int]:
        """Leaf ids in left-to-right order of the drawn tree."""
        if self.n_leaves == 1:
            return [0]
        order: List[int] = []
        stack = [self.root]
        while stack:
            node = stack.pop()
            kids = self.children(node)
            if kids is None:
                order.append(node)
            else:
                stack.append(kids[1])
                stack.append(kids[0])
        return order

    def to_frame(self) -> pd.DataFrame:
        """Merge table with child names resolved for leaves."""

        def _name(node: int) -> str:
            return self.labels[node] if node < self.n_leaves else f"merge_{node - self.n_leaves}"

        return pd.DataFrame(
            {
                "node": [self.n_leaves + i for i in range(len(self.merges))],
                "left": [_name(m.left) for m in self.merges],
                "right": [_name(m.right) for m in self.merges],
                "height": [m.height for m in self.merges],
                "size": [m.size for m in self.merges],
            }
        )


class ClusterState(str, Enum):
    INITIALIZED = "initialized"
    MERGING = "merging"
    COMPLETE = "complete"


@dataclass(eq=False)
class Agglomerator:
    """
    Step-wise agglomerative clustering over a precomputed dissimilarity matrix.

    Starts with one singleton cluster per row; each ``step()`` merges the
    closest active pair. The merged cluster takes the lower of the two row
    slots, so ties resolve to the lowest (row, column) pair.
    """

    distances: pd.DataFrame
    linkage: str = DEFAULT_LINKAGE
    merges: List[Merge] = field(default_factory=list, init=False)

    def __post_init__(self) -> None:
        if self.linkage not in LINKAGES:
            raise ValueError(f"Unknown linkage '{self.linkage}'. Choose from {sorted(LINKAGES)}")
        n = len(self.distances)
        if n < 2:
            raise EmptyCorpusError(f"clustering needs at least 2 cuisines, got {n}", stage="clustering")
        self._update = LINKAGES[self.linkage]
        self._d = self.distances.to_numpy(dtype=float).copy()
        self._active = np.ones(n, dtype=bool)
        self._node = np.arange(n)
        self._size = np.ones(n, dtype=int)

    @property
    def n_leaves(self) -> int:
        return len(self.distances)

    @property
    def state(self) -> ClusterState:
        if not self.merges:
            return ClusterState.INITIALIZED
        if len(self.merges) < self.n_leaves - 1:
            return ClusterState.MERGING
        return ClusterState.COMPLETE

    def _closest_pair(self) -> Tuple[int, int]:
        slots = np.flatnonzero(self._active)
        sub = self._d[np.ix_(slots, slots)]
        masked = np.where(np.triu(np.ones_like(sub, dtype=bool), k=1), sub, np.inf)
        # argmin returns the first minimum in row-major order
        flat = int(np.argmin(masked))
        a, b = divmod(flat, len(slots))
        return int(slots[a]), int(slots[b])

    def step(self) -> Merge:
        if self.state is ClusterState.COMPLETE:
            raise RuntimeError("clustering is already complete")

        i, j = self._closest_pair()
        d_ij = float(self._d[i, j])
        n_i, n_j = int(self._size[i]), int(self._size[j])
        left, right = sorted((int(self._node[i]), int(self._node[j])))
        merge = Merge(left=left, right=right, height=d_ij, size=n_i + n_j)

        others = np.flatnonzero(self._active)
        others = others[(others != i) & (others != j)]
        if len(others):
            updated = self._update(self._d[i, others], self._d[j, others], d_ij, n_i, n_j, self._size[others])
            self._d[i, others] = updated
            self._d[others, i] = updated

        self._active[j] = False
        self._node[i] = self.n_leaves + len(self.merges)
        self._size[i] = n_i + n_j
        self.merges.append(merge)
        return merge

    def run(self) -> ClusterTree:
        while self.state is not ClusterState.COMPLETE:
            self.step()
        return ClusterTree(
            labels=tuple(str(label) for label in self.distances.index),
            merges=tuple(self.merges),
            linkage=self.linkage,
        )


def hierarchical_clustering(distances: pd.DataFrame, linkage: str = DEFAULT_LINKAGE) -> ClusterTree:
    """Run agglomerative clustering to completion and return the merge tree."""
    tree = Agglomerator(distances, linkage=linkage).run()
    log.debug("%s linkage: %d merges, root height %.6f", linkage, len(tree.merges), tree.merges[-1].height)
    return tree


def cut_tree(tree: ClusterTree, n_clusters: int) -> pd.Series:
    """
    Flat clustering with exactly ``n_clusters`` groups.

    Applies the first N - K merges (the K - 1 highest are left open). Cluster
    ids start at 1 and are numbered by first appearance in ``tree.leaf_order()``.
    """
    n = tree.n_leaves
    if not 1 <= n_clusters <= n:
        raise ValueError(f"n_clusters must be between 1 and {n}, got {n_clusters}")

    parent = list(range(2 * n - 1))

    def _find(x: int) -> int:
        while parent[x] != x:
            parent[x] = parent[parent[x]]
            x = parent[x]
        return x

    for step, merge in enumerate(tree.merges[: n - n_clusters]):
        node = n + step
        parent[_find(merge.left)] = node
        parent[_find(merge.right)] = node

    ids: Dict[int, int] = {}
    assignment = [0] * n
    for leaf in tree.leaf_order():
        root = _find(leaf)
        if root not in ids:
            ids[root] = len(ids) + 1
        assignment[leaf] = ids[root]

    return pd.Series(assignment, index=pd.Index(tree.labels, name="cuisine"), name="cluster", dtype="int64")


def run(context: PipelineContext, *, force: bool = False) -> StageResult:
    cfg = context.stage("clustering", required=False)
    logger = stage_logger(context, "clustering", force=force)

    normalized = context.require("normalized_matrix", "clustering")
    params = cfg.get("params", {})
    metric = params.get("metric", DEFAULT_METRIC)
    linkage = params.get("linkage", DEFAULT_LINKAGE)
    n_clusters = int(params.get("n_clusters", 4))
    if n_clusters > len(normalized):
        logger.warning("n_clusters=%d exceeds %d cuisines; using %d", n_clusters, len(normalized), len(normalized))
        n_clusters = len(normalized)

    logger.info("Computing %s distances between %d cuisines...", metric, len(normalized))
    distances = distance_matrix(normalized, metric=metric)
    logger.info("Clustering with %s linkage...", linkage)
    tree = hierarchical_clustering(distances, linkage=linkage)
    assignment = cut_tree(tree, n_clusters)
    context.artifacts.update({"distance_matrix": distances, "cluster_tree": tree, "clusters": assignment})
    logger.info("Cut into %d clusters (root height %.4f)", assignment.nunique(), tree.merges[-1].height)

    outputs = {"n_clusters": int(assignment.nunique())}
    out_dir = reports_dir(context, cfg)
    if out_dir is not None:
        dist_path = out_dir / "distance_matrix.csv"
        tree_path = out_dir / "cluster_tree.csv"
        assign_path = out_dir / "cluster_assignments.csv"
        distances.to_csv(dist_path)
        tree.to_frame().to_csv(tree_path, index=False)
        assignment.to_csv(assign_path)
        outputs.update({"distance_matrix": str(dist_path), "cluster_tree": str(tree_path), "clusters": str(assign_path)})

    return StageResult(name="clustering", status="success", outputs=outputs)


__all__ = [
    "LINKAGES",
    "Merge",
    "ClusterTree",
    "ClusterState",
    "Agglomerator",
    "distance_matrix",
    "hierarchical_clustering",
    "cut_tree",
]
