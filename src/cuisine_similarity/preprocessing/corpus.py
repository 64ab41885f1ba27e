"""
Corpus stage: read tab-separated recipe lines and merge them into one
bag-of-words document per cuisine.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, Iterator, List, Tuple

from ..core import PipelineContext, StageResult
from ..errors import EmptyCorpusError, MalformedRecordError
from ..utils import stage_logger

log = logging.getLogger(__name__)

DEFAULT_SEPARATOR = "\t"
DOCUMENT_JOINER = " "


@dataclass(frozen=True)
class Record:
    """One recipe: a cuisine label and its ingredient tokens."""

    cuisine: str
    ingredients: Tuple[str, ...]


def parse_line(line: str, line_number: int, *, separator: str = DEFAULT_SEPARATOR) -> Record:
    """Split one input line into a Record, or raise MalformedRecordError."""
    text = line.rstrip("\r\n")
    fields = text.split(separator)
    if len(fields) < 2:
        raise MalformedRecordError(line_number, text)
    label = fields[0].strip()
    if not label:
        raise MalformedRecordError(line_number, text, "empty cuisine label")
    ingredients = tuple(f.strip() for f in fields[1:])
    if not all(ingredients):
        raise MalformedRecordError(line_number, text, "empty ingredient field")
    return Record(cuisine=label, ingredients=ingredients)


def iter_lines(lines: Iterable[str], *, separator: str = DEFAULT_SEPARATOR, comment: str | None = None) -> Iterator[Record]:
    """
    Parse Records from an iterable of lines.

    Empty lines at the end of the input are ignored; an empty line followed by
    more records is malformed. Lines starting with ``comment`` are skipped only
    when a comment prefix is given.
    """
    blank_at = None
    for line_number, line in enumerate(lines, start=1):
        if not line.strip():
            if blank_at is None:
                blank_at = line_number
            continue
        if blank_at is not None:
            raise MalformedRecordError(blank_at, "", "empty line before end of input")
        if comment and line.startswith(comment):
            continue
        yield parse_line(line, line_number, separator=separator)


def read_records(path: str | Path, *, separator: str = DEFAULT_SEPARATOR, comment: str | None = None) -> Iterator[Record]:
    """
    Lazily read Records from a UTF-8 file. Each call re-opens the file, so the
    sequence can be restarted by calling again.
    """
    with open(path, "r", encoding="utf-8") as handle:
        yield from iter_lines(handle, separator=separator, comment=comment)


def aggregate_cuisines(records: Iterable[Record]) -> Dict[str, str]:
    """
    Merge every Record's ingredients into one space-joined document per cuisine.
    Keys keep the order in which each cuisine first appears.
    """
    buffers: Dict[str, List[str]] = {}
    n_records = 0
    for rec in records:
        buffers.setdefault(rec.cuisine, []).extend(rec.ingredients)
        n_records += 1

    if not buffers:
        raise EmptyCorpusError("no records found; at least one cuisine is required")

    log.debug("Aggregated %d records into %d cuisine documents", n_records, len(buffers))
    return {cuisine: DOCUMENT_JOINER.join(tokens) for cuisine, tokens in buffers.items()}


def load_corpus(path: str | Path, *, separator: str = DEFAULT_SEPARATOR, comment: str | None = None) -> Dict[str, str]:
    """Read ``path`` and return the cuisine -> document mapping."""
    return aggregate_cuisines(read_records(path, separator=separator, comment=comment))


def run(context: PipelineContext, *, force: bool = False) -> StageResult:
    cfg = context.stage("load_corpus")
    logger = stage_logger(context, "load_corpus", force=force)

    data_cfg = cfg.get("data", {})
    input_path = context.resolve(data_cfg.get("input_path", "data/recipes.tsv"))
    separator = data_cfg.get("separator", DEFAULT_SEPARATOR)
    comment = data_cfg.get("comment")

    if not input_path.exists():
        logger.warning("Recipe file not found: %s", input_path)
        return StageResult(name="load_corpus", status="failed", details=f"Missing input {input_path}")

    logger.info("Loading recipes from %s...", input_path)
    documents = load_corpus(input_path, separator=separator, comment=comment)
    context.artifacts["documents"] = documents
    logger.info("Loaded %d cuisines", len(documents))

    return StageResult(
        name="load_corpus",
        status="success",
        outputs={"input_path": str(input_path), "cuisines": len(documents)},
    )
