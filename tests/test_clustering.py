from __future__ import annotations

import numpy as np
import pandas as pd
import pytest
from scipy.cluster.hierarchy import fcluster, is_valid_linkage, linkage as scipy_linkage
from scipy.spatial.distance import squareform

from cuisine_similarity.analysis.clustering import (
    LINKAGES,
    Agglomerator,
    ClusterState,
    cut_tree,
    distance_matrix,
    hierarchical_clustering,
)
from cuisine_similarity.analysis.features import build_feature_matrix, normalize_rows
from cuisine_similarity.errors import EmptyCorpusError


@pytest.fixture
def normalized(sample_documents):
    return normalize_rows(build_feature_matrix(sample_documents))


@pytest.fixture
def distances(normalized):
    return distance_matrix(normalized)


def _partition(assignment: pd.Series) -> set:
    return {frozenset(group.index) for _, group in assignment.groupby(assignment)}


def test_distance_matrix_is_symmetric_with_zero_diagonal(distances):
    values = distances.to_numpy()
    assert (values == values.T).all()
    assert (np.diag(values) == 0).all()
    assert (values >= 0).all()
    assert list(distances.index) == list(distances.columns)


def test_euclidean_distance_between_proportions():
    normalized = pd.DataFrame({"x": [1.0, 0.0], "y": [0.0, 1.0]}, index=["A", "B"])
    assert distance_matrix(normalized).loc["A", "B"] == pytest.approx(np.sqrt(2))


def test_other_metrics_are_accepted(normalized):
    cityblock = distance_matrix(normalized, metric="cityblock")
    assert cityblock.loc["Italian", "Chinese"] == pytest.approx(2.0)


def test_identical_distributions_are_all_zero():
    documents = {"A": "x y", "B": "x x y y", "C": "y x"}
    distances = distance_matrix(normalize_rows(build_feature_matrix(documents)))
    assert (distances.to_numpy() == 0).all()

    tree = hierarchical_clustering(distances)
    assert [m.height for m in tree.merges] == [0.0, 0.0]
    assert cut_tree(tree, 1).nunique() == 1


def test_single_cuisine_cannot_be_compared():
    with pytest.raises(EmptyCorpusError):
        distance_matrix(pd.DataFrame({"x": [1.0]}, index=["A"]))


def test_complete_linkage_groups_related_cuisines(distances):
    tree = hierarchical_clustering(distances)
    assert tree.linkage == "complete"
    first = tree.merges[0]
    assert {tree.labels[first.left], tree.labels[first.right]} == {"Japanese", "Chinese"}

    clusters = cut_tree(tree, 2)
    assert _partition(clusters) == {frozenset({"Italian", "Mexican"}), frozenset({"Japanese", "Chinese"})}
    # ids follow left-to-right leaf order
    assert clusters["Japanese"] == 1
    assert clusters["Italian"] == 2


def test_tree_shape(distances):
    tree = hierarchical_clustering(distances)
    n = len(distances)
    assert tree.n_leaves == n
    assert len(tree.merges) == n - 1
    assert tree.merges[-1].size == n
    assert sorted(tree.leaf_order()) == list(range(n))
    assert is_valid_linkage(tree.linkage_matrix())


@pytest.mark.parametrize("method", sorted(LINKAGES))
def test_heights_are_non_decreasing(distances, method):
    heights = hierarchical_clustering(distances, linkage=method).heights
    assert (np.diff(heights) >= -1e-12).all()


@pytest.mark.parametrize("method", ["single", "complete", "average", "weighted"])
def test_heights_match_scipy(distances, method):
    ours = hierarchical_clustering(distances, linkage=method)
    reference = scipy_linkage(squareform(distances.to_numpy(), checks=False), method=method)
    np.testing.assert_allclose(ours.heights, reference[:, 2], atol=1e-12)


def test_cut_matches_scipy_maxclust(distances):
    tree = hierarchical_clustering(distances)
    ours = cut_tree(tree, 2)
    reference = pd.Series(fcluster(tree.linkage_matrix(), 2, criterion="maxclust"), index=list(tree.labels))
    assert _partition(ours) == _partition(reference)


@pytest.mark.parametrize("k", [1, 2, 3, 4])
def test_cut_yields_exactly_k_clusters(distances, k):
    clusters = cut_tree(hierarchical_clustering(distances), k)
    assert clusters.nunique() == k
    assert set(clusters) == set(range(1, k + 1))
    assert list(clusters.index) == list(distances.index)


def test_cut_with_tied_heights_still_yields_k():
    labels = list("ABCDE")
    distances = pd.DataFrame(1.0, index=labels, columns=labels)
    np.fill_diagonal(distances.values, 0.0)
    tree = hierarchical_clustering(distances)
    for k in range(1, 6):
        assert cut_tree(tree, k).nunique() == k


def test_ties_merge_lowest_index_pair_first():
    labels = list("ABCD")
    distances = pd.DataFrame(1.0, index=labels, columns=labels)
    np.fill_diagonal(distances.values, 0.0)
    tree = hierarchical_clustering(distances)
    assert (tree.merges[0].left, tree.merges[0].right) == (0, 1)
    assert (tree.merges[1].left, tree.merges[1].right) == (2, 4)


def test_cut_rejects_out_of_range_k(distances):
    tree = hierarchical_clustering(distances)
    with pytest.raises(ValueError):
        cut_tree(tree, 0)
    with pytest.raises(ValueError):
        cut_tree(tree, len(distances) + 1)


def test_unknown_linkage_is_rejected(distances):
    with pytest.raises(ValueError, match="Unknown linkage"):
        hierarchical_clustering(distances, linkage="centroid")


def test_agglomerator_state_transitions(distances):
    agg = Agglomerator(distances)
    assert agg.state is ClusterState.INITIALIZED
    agg.step()
    assert agg.state is ClusterState.MERGING
    agg.step()
    assert agg.state is ClusterState.MERGING
    agg.step()
    assert agg.state is ClusterState.COMPLETE
    with pytest.raises(RuntimeError):
        agg.step()


def test_clustering_leaves_input_untouched(distances):
    before = distances.copy()
    hierarchical_clustering(distances)
    pd.testing.assert_frame_equal(distances, before)


def test_clustering_is_deterministic(distances):
    first = hierarchical_clustering(distances)
    second = hierarchical_clustering(distances)
    assert first == second
    assert first.linkage_matrix().tobytes() == second.linkage_matrix().tobytes()


def test_tree_frame_names_leaves(distances):
    frame = hierarchical_clustering(distances).to_frame()
    assert list(frame.columns) == ["node", "left", "right", "height", "size"]
    assert set(frame.iloc[0][["left", "right"]]) == {"Japanese", "Chinese"}
    assert frame.iloc[-1]["size"] == 4
