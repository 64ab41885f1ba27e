"""
Feature stage: cuisine x ingredient count matrix (document-term matrix) and
its row-normalized proportions.
"""
from __future__ import annotations

import logging
from typing import List, Mapping

import numpy as np
import pandas as pd
from sklearn.feature_extraction.text import CountVectorizer

from ..core import PipelineContext, StageResult
from ..errors import EmptyCorpusError, ZeroRowError
from ..utils import reports_dir, stage_logger

log = logging.getLogger(__name__)


def build_vocabulary(documents: Mapping[str, str]) -> List[str]:
    """Sorted set of every whitespace-separated token across all documents."""
    vocab = set()
    for doc in documents.values():
        vocab.update(doc.split())
    return sorted(vocab)


def build_feature_matrix(documents: Mapping[str, str]) -> pd.DataFrame:
    """
    Count ingredient occurrences per cuisine.

    Rows follow the mapping's order; columns are the lexicographically sorted
    vocabulary, passed explicitly so column order never depends on vectorizer
    internals.
    """
    if not documents:
        raise EmptyCorpusError("no cuisine documents to vectorize", stage="feature_matrix")

    vocabulary = build_vocabulary(documents)
    if vocabulary:
        vectorizer = CountVectorizer(
            vocabulary=vocabulary,
            tokenizer=str.split,
            token_pattern=None,
            lowercase=False,
        )
        counts = vectorizer.fit_transform(list(documents.values())).toarray()
    else:
        # every document is empty; CountVectorizer rejects an empty vocabulary
        counts = np.zeros((len(documents), 0))

    matrix = pd.DataFrame(
        counts.astype(np.int64),
        index=pd.Index(list(documents.keys()), name="cuisine"),
        columns=pd.Index(vocabulary, name="ingredient"),
    )
    log.debug("Feature matrix: %d cuisines x %d ingredients", *matrix.shape)
    return matrix


def normalize_rows(matrix: pd.DataFrame) -> pd.DataFrame:
    """Divide each row by its total so every row sums to 1."""
    totals = matrix.sum(axis=1)
    zero = totals[totals == 0]
    if len(zero):
        raise ZeroRowError(str(zero.index[0]))
    return matrix.div(totals.astype(float), axis=0)


def run(context: PipelineContext, *, force: bool = False) -> StageResult:
    cfg = context.stage("feature_matrix", required=False)
    logger = stage_logger(context, "feature_matrix", force=force)

    documents = context.require("documents", "feature_matrix")

    logger.info("Building feature matrix for %d cuisines...", len(documents))
    matrix = build_feature_matrix(documents)
    normalized = normalize_rows(matrix)
    context.artifacts["feature_matrix"] = matrix
    context.artifacts["normalized_matrix"] = normalized
    logger.info("Vocabulary size: %d ingredients", matrix.shape[1])

    outputs = {"shape": list(matrix.shape)}
    out_dir = reports_dir(context, cfg)
    if out_dir is not None:
        counts_path = out_dir / "feature_matrix.csv"
        matrix.to_csv(counts_path)
        outputs["feature_matrix"] = str(counts_path)

    return StageResult(name="feature_matrix", status="success", outputs=outputs)
