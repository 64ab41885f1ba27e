from __future__ import annotations

import numpy as np
import pandas as pd
import pytest

from cuisine_similarity.analysis.features import build_feature_matrix, build_vocabulary, normalize_rows
from cuisine_similarity.errors import EmptyCorpusError, ZeroRowError


def test_counts_combined_tokens():
    matrix = build_feature_matrix({"A": "x y x z"})
    assert list(matrix.columns) == ["x", "y", "z"]
    assert matrix.loc["A"].to_dict() == {"x": 2, "y": 1, "z": 1}


def test_normalized_row_is_proportions():
    normalized = normalize_rows(build_feature_matrix({"A": "x y x z"}))
    assert normalized.loc["A"].to_dict() == pytest.approx({"x": 0.5, "y": 0.25, "z": 0.25})


def test_rows_follow_document_order_and_columns_are_sorted(sample_documents):
    matrix = build_feature_matrix(sample_documents)
    assert list(matrix.index) == ["Italian", "Mexican", "Japanese", "Chinese"]
    assert list(matrix.columns) == sorted(matrix.columns)
    assert list(matrix.columns) == build_vocabulary(sample_documents)


def test_tokens_are_case_sensitive_and_not_split_on_underscores():
    matrix = build_feature_matrix({"A": "Olive_Oil olive_oil a"})
    assert list(matrix.columns) == ["Olive_Oil", "a", "olive_oil"]


def test_matrix_is_non_negative_integers_with_no_empty_columns(sample_documents):
    matrix = build_feature_matrix(sample_documents)
    assert all(np.issubdtype(dtype, np.integer) for dtype in matrix.dtypes)
    assert (matrix.to_numpy() >= 0).all()
    assert (matrix.sum(axis=0) > 0).all()
    assert matrix.columns.is_unique and matrix.index.is_unique


def test_every_normalized_row_sums_to_one(sample_documents):
    normalized = normalize_rows(build_feature_matrix(sample_documents))
    np.testing.assert_allclose(normalized.sum(axis=1).to_numpy(), 1.0, atol=1e-9)


def test_zero_row_is_rejected():
    matrix = pd.DataFrame({"x": [1, 0], "y": [2, 0]}, index=["A", "Empty"])
    with pytest.raises(ZeroRowError) as excinfo:
        normalize_rows(matrix)
    assert excinfo.value.cuisine == "Empty"


def test_empty_document_reaches_normalizer_as_zero_row():
    matrix = build_feature_matrix({"A": "x", "B": ""})
    with pytest.raises(ZeroRowError):
        normalize_rows(matrix)


def test_all_empty_documents_give_zero_columns():
    matrix = build_feature_matrix({"A": "", "B": ""})
    assert matrix.shape == (2, 0)
    assert list(matrix.index) == ["A", "B"]
    with pytest.raises(ZeroRowError) as excinfo:
        normalize_rows(matrix)
    assert excinfo.value.cuisine == "A"


def test_no_documents_is_an_empty_corpus():
    with pytest.raises(EmptyCorpusError):
        build_feature_matrix({})


def test_normalizer_returns_new_frame():
    matrix = build_feature_matrix({"A": "x y"})
    before = matrix.copy()
    normalize_rows(matrix)
    pd.testing.assert_frame_equal(matrix, before)
