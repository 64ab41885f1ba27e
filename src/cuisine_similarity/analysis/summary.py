"""
Summary stage: per-cuisine ingredient popularity ranks and unique-ingredient counts.
"""
from __future__ import annotations

import pandas as pd

from ..core import PipelineContext, StageResult
from ..utils import reports_dir, stage_logger


def popularity_rank(matrix: pd.DataFrame) -> pd.DataFrame:
    """
    Rank ingredients within each cuisine by descending count.

    Ties share the lowest rank of the tied block (competition ranking:
    counts 5, 3, 3, 1 rank as 1, 2, 2, 4).
    """
    return matrix.rank(axis=1, method="min", ascending=False).astype("int64")


def top_ingredients(matrix: pd.DataFrame, n: int = 10) -> pd.DataFrame:
    """Long table of the top ``n`` ingredients per cuisine, ties broken by name."""
    if n < 1:
        raise ValueError(f"n must be >= 1, got {n}")
    ranks = popularity_rank(matrix)
    rows = []
    for cuisine in matrix.index:
        counts = matrix.loc[cuisine]
        present = counts[counts > 0]
        frame = pd.DataFrame({
            "ingredient": present.index,
            "count": present.values,
            "rank": ranks.loc[cuisine, present.index].values,
        }).sort_values(["rank", "ingredient"], kind="mergesort")
        head = frame.head(n)
        for ingredient, count, rank in zip(head["ingredient"], head["count"], head["rank"]):
            rows.append({"cuisine": cuisine, "rank": int(rank), "ingredient": ingredient, "count": int(count)})
    return pd.DataFrame(rows, columns=["cuisine", "rank", "ingredient", "count"])


def unique_ingredient_counts(matrix: pd.DataFrame) -> pd.Series:
    """Number of distinct ingredients per cuisine, largest first."""
    counts = (matrix > 0).sum(axis=1).astype("int64")
    counts.name = "unique_ingredients"
    # stable sort keeps input order among equal counts
    return counts.sort_values(ascending=False, kind="mergesort")


def run(context: PipelineContext, *, force: bool = False) -> StageResult:
    cfg = context.stage("ingredient_summary", required=False)
    logger = stage_logger(context, "ingredient_summary", force=force)

    matrix = context.require("feature_matrix", "ingredient_summary")
    top_n = int(cfg.get("params", {}).get("top_n", 10))

    ranks = popularity_rank(matrix)
    top = top_ingredients(matrix, top_n)
    unique = unique_ingredient_counts(matrix)
    context.artifacts.update({"popularity_rank": ranks, "top_ingredients": top, "unique_counts": unique})
    logger.info("Most varied cuisine: %s (%d ingredients)", unique.index[0], unique.iloc[0])

    outputs = {}
    out_dir = reports_dir(context, cfg)
    if out_dir is not None:
        top_path = out_dir / "top_ingredients.csv"
        unique_path = out_dir / "unique_ingredients.csv"
        top.to_csv(top_path, index=False)
        unique.to_csv(unique_path)
        outputs = {"top_ingredients": str(top_path), "unique_ingredients": str(unique_path)}

    return StageResult(name="ingredient_summary", status="success", outputs=outputs)
