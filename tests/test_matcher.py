"""Tests for the match finder."""

from __future__ import annotations

import pytest
from result import Err, Ok

from cfind.models.search import SearchOptions
from cfind.search.matcher import (
    INVALID_QUERY_MESSAGE,
    InvalidQueryError,
    find_matches,
    find_matches_in_part,
    has_forbidden_symbols,
    validate_query,
)

DEFAULT = SearchOptions()


def _spans(text: str, query: str, options: SearchOptions = DEFAULT) -> list[tuple[int, int]]:
    return [(s.start_index, s.end_index) for s in find_matches(text, query, options)]


def test_case_insensitive_by_default_preserves_original_text() -> None:
    spans = find_matches("Foo foo FOO", "foo", DEFAULT)
    assert [(s.start_index, s.end_index) for s in spans] == [(0, 3), (4, 7), (8, 11)]
    assert [s.text for s in spans] == ["Foo", "foo", "FOO"]


def test_case_sensitive() -> None:
    options = SearchOptions(case_sensitive=True)
    assert _spans("Foo foo FOO", "foo", options) == [(4, 7)]


def test_substring_matches_overlap() -> None:
    assert _spans("aaa", "aa") == [(0, 2), (1, 3)]


def test_whole_word() -> None:
    options = SearchOptions(whole_word=True)
    assert _spans("foobar foo food", "foo", options) == [(7, 10)]
    assert _spans("foobar foo food", "foo") == [(0, 3), (7, 10), (11, 14)]


def test_non_ascii_letters() -> None:
    assert _spans("Grüße aus Köln", "KÖLN") == [(10, 14)]


def test_offsets_survive_lowercase_expansion() -> None:
    # "İ".lower() is two characters long.
    spans = find_matches("İstanbul foo", "foo", DEFAULT)
    assert [(s.start_index, s.end_index, s.text) for s in spans] == [(9, 12, "foo")]

    whole = find_matches("İİ foo", "FOO", SearchOptions(whole_word=True))
    assert [(s.start_index, s.end_index, s.text) for s in whole] == [(3, 6, "foo")]


def test_substring_mode_finds_words_inside_words() -> None:
    assert _spans("category", "cat") == [(0, 3)]
    assert _spans("category", "cat", SearchOptions(whole_word=True)) == []


@pytest.mark.parametrize(
    ("text", "query"),
    [("foobar foo food", "foo"), ("aaa aa a", "aa"), ("cat category cat", "cat")],
)
def test_whole_word_never_finds_more_than_substring(text: str, query: str) -> None:
    whole = find_matches(text, query, SearchOptions(whole_word=True))
    assert len(whole) <= len(find_matches(text, query, DEFAULT))


def test_basic_punctuation_is_literal() -> None:
    assert _spans("see e.g., [x] here", "e.g., [x]") == [(4, 13)]
    assert _spans("a.b", ".") == [(1, 2)]


def test_empty_query_or_text() -> None:
    assert find_matches("anything", "", DEFAULT) == []
    assert find_matches("", "foo", DEFAULT) == []


@pytest.mark.parametrize("query", ["a@b", "#tag", "x<y", "a/b", "c\\d", "k=v", "`x`", "a|b"])
def test_forbidden_symbols_raise(query: str) -> None:
    with pytest.raises(InvalidQueryError) as exc_info:
        find_matches("text", query, DEFAULT)
    assert exc_info.value.kind == "invalid-query-characters"
    assert str(exc_info.value) == INVALID_QUERY_MESSAGE
    assert exc_info.value.query == query


def test_validate_query() -> None:
    assert validate_query("hello (world) - ok!") == Ok("hello (world) - ok!")
    assert validate_query("<div>") == Err(INVALID_QUERY_MESSAGE)
    assert has_forbidden_symbols("100%")
    assert not has_forbidden_symbols("it's \"fine\" + {ok}")


def test_find_matches_in_part_tags_location() -> None:
    matches = find_matches_in_part("foo and foo", "m1", 2, "foo", DEFAULT, part_id="p9")
    assert [m.key for m in matches] == [("m1", 2, 0, 3), ("m1", 2, 8, 11)]
    assert all(m.part_id == "p9" and not m.is_current for m in matches)
