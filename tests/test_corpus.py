from __future__ import annotations

import pytest

from cuisine_similarity.errors import EmptyCorpusError, MalformedRecordError
from cuisine_similarity.preprocessing.corpus import (
    Record,
    aggregate_cuisines,
    iter_lines,
    load_corpus,
    parse_line,
    read_records,
)


def test_parse_line_splits_label_and_ingredients():
    rec = parse_line("Korean\tkimchi\tgochujang\tsesame_oil\n", 1)
    assert rec == Record(cuisine="Korean", ingredients=("kimchi", "gochujang", "sesame_oil"))


def test_tokens_from_two_lines_are_combined():
    docs = aggregate_cuisines(iter_lines(["A\tx\ty", "A\tx\tz"]))
    assert docs == {"A": "x y x z"}


def test_documents_keep_first_appearance_order():
    lines = ["B\tx", "A\ty", "B\tz", "C\tx", "A\tw"]
    docs = aggregate_cuisines(iter_lines(lines))
    assert list(docs) == ["B", "A", "C"]
    assert docs["B"] == "x z"
    assert docs["A"] == "y w"


def test_label_without_ingredients_aborts_with_line_number():
    with pytest.raises(MalformedRecordError) as excinfo:
        list(iter_lines(["A\tx", "B", "C\ty"]))
    assert excinfo.value.line_number == 2
    assert "line 2" in str(excinfo.value)
    assert "load_corpus" in str(excinfo.value)


def test_empty_ingredient_fields_are_malformed():
    with pytest.raises(MalformedRecordError):
        parse_line("A\t\t", 7)


def test_empty_label_is_malformed():
    with pytest.raises(MalformedRecordError, match="empty cuisine label"):
        parse_line("\tx\ty", 3)


def test_empty_field_between_ingredients_is_malformed():
    with pytest.raises(MalformedRecordError, match="empty ingredient field") as excinfo:
        parse_line("A\tx\t\ty", 1)
    assert excinfo.value.line_number == 1


def test_trailing_separator_is_malformed():
    with pytest.raises(MalformedRecordError, match="empty ingredient field"):
        parse_line("A\tx\t", 4)


def test_blank_line_before_more_records_aborts():
    with pytest.raises(MalformedRecordError) as excinfo:
        list(iter_lines(["A\tx", "", "B\ty"]))
    assert excinfo.value.line_number == 2


def test_trailing_blank_lines_are_ignored():
    docs = aggregate_cuisines(iter_lines(["A\tx\n", "A\ty\n", "\n", "   \n"]))
    assert docs == {"A": "x y"}


def test_hash_prefixed_label_is_a_cuisine():
    docs = aggregate_cuisines(iter_lines(["A\tx", "#1_Street_Food\ty"]))
    assert docs == {"A": "x", "#1_Street_Food": "y"}


def test_comment_prefix_is_opt_in():
    docs = aggregate_cuisines(iter_lines(["# header", "A\tx"], comment="#"))
    assert docs == {"A": "x"}


def test_no_records_is_an_empty_corpus():
    with pytest.raises(EmptyCorpusError):
        aggregate_cuisines([])


def test_read_records_is_restartable(sample_path):
    first = list(read_records(sample_path))
    second = list(read_records(sample_path))
    assert first == second
    assert len(first) == 7


def test_load_corpus_reads_sample(sample_path, sample_documents):
    assert load_corpus(sample_path) == sample_documents


def test_blank_only_file_is_empty(tmp_path):
    path = tmp_path / "empty.tsv"
    path.write_text("\n\n", encoding="utf-8")
    with pytest.raises(EmptyCorpusError):
        load_corpus(path)


def test_comment_only_file_is_empty_when_comments_enabled(tmp_path):
    path = tmp_path / "empty.tsv"
    path.write_text("# nothing here\n", encoding="utf-8")
    with pytest.raises(EmptyCorpusError):
        load_corpus(path, comment="#")


def test_custom_separator(tmp_path):
    path = tmp_path / "recipes.csv"
    path.write_text("A,x,y\nB,z\n", encoding="utf-8")
    assert load_corpus(path, separator=",") == {"A": "x y", "B": "z"}
