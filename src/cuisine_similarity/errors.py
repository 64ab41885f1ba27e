"""Errors raised by the cuisine similarity pipeline.

Every error aborts the run: downstream stages rely on complete, zero-free
matrices, so there is no partial result to fall back to.
"""
from __future__ import annotations


class CuisineSimilarityError(Exception):
    """Base class for pipeline errors. ``stage`` names where the run stopped."""

    stage: str = "pipeline"

    def __init__(self, message: str, *, stage: str | None = None) -> None:
        if stage is not None:
            self.stage = stage
        super().__init__(f"[{self.stage}] {message}")


class MalformedRecordError(CuisineSimilarityError):
    """A line did not parse into a cuisine label plus at least one ingredient."""

    stage = "load_corpus"

    def __init__(self, line_number: int, line: str, reason: str = "expected a label and at least one ingredient") -> None:
        self.line_number = line_number
        self.line = line
        super().__init__(f"line {line_number}: {reason}: {line!r}")


class EmptyCorpusError(CuisineSimilarityError):
    """Too few cuisines to build a corpus (or to compare)."""

    stage = "load_corpus"


class ZeroRowError(CuisineSimilarityError):
    """A cuisine has no ingredient mentions, so its row cannot be normalized."""

    stage = "feature_matrix"

    def __init__(self, cuisine: str) -> None:
        self.cuisine = cuisine
        super().__init__(f"cuisine {cuisine!r} has a zero ingredient total; rows must sum to a positive count")


__all__ = [
    "CuisineSimilarityError",
    "MalformedRecordError",
    "EmptyCorpusError",
    "ZeroRowError",
]
