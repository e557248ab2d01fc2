"""Match finder: locate query occurrences inside one string."""

from __future__ import annotations

import re

from result import Err, Ok, Result

from cfind.models.search import MatchSpan, SearchMatch, SearchOptions

# Symbols rejected in queries. Letters of any script, digits, whitespace and
# . , ; : ! ? ( ) [ ] { } " ' - _ + are accepted.
_FORBIDDEN_SYMBOLS = re.compile(r"[@#$%^&*<>/\\=`~|]")

INVALID_QUERY_MESSAGE = (
    "Search query contains invalid characters. Please use only letters, numbers, "
    "spaces, and basic punctuation (. , ; : ! ? ( ) [ ] { } \" ' - _ +). "
    "Symbols are not supported."
)


class InvalidQueryError(ValueError):
    """Raised when a query contains unsupported symbol characters."""

    kind = "invalid-query-characters"

    def __init__(self, query: str) -> None:
        super().__init__(INVALID_QUERY_MESSAGE)
        self.query = query


def has_forbidden_symbols(query: str) -> bool:
    return _FORBIDDEN_SYMBOLS.search(query) is not None


def validate_query(query: str) -> Result[str, str]:
    """Return the query unchanged, or an error message if it is rejected."""
    if has_forbidden_symbols(query):
        return Err(INVALID_QUERY_MESSAGE)
    return Ok(query)


def _fold(text: str) -> tuple[str, list[int]]:
    # Lowercasing can lengthen a character ("İ" -> "i̇"); origins maps every
    # folded index back to the index of the character it came from.
    folded: list[str] = []
    origins: list[int] = []
    for index, char in enumerate(text):
        lowered = char.lower()
        folded.append(lowered)
        origins.extend([index] * len(lowered))
    return "".join(folded), origins


def find_matches(text: str, query: str, options: SearchOptions) -> list[MatchSpan]:
    """Find all occurrences of ``query`` in ``text``.

    Case-insensitive matching lowercases both sides; the returned spans
    always slice the original ``text``, even where lowercasing changes the
    length of a character.

    Whole-word mode scans non-overlapping ``\\b<query>\\b`` matches.
    Substring mode advances one character past each match start, so
    overlapping occurrences are reported ("aa" in "aaa" gives 0-2 and 1-3).

    Raises:
        InvalidQueryError: if the query contains unsupported symbols.
    """
    if not query:
        return []
    if has_forbidden_symbols(query):
        raise InvalidQueryError(query)

    origins: list[int] | None = None
    if options.case_sensitive:
        haystack, needle = text, query
    else:
        haystack, origins = _fold(text)
        needle = query.lower()

    def span(start: int, end: int) -> MatchSpan:
        if origins is not None:
            start, end = origins[start], origins[end - 1] + 1
        return MatchSpan(start_index=start, end_index=end, text=text[start:end])

    if options.whole_word:
        pattern = re.compile(rf"\b{re.escape(needle)}\b")
        return [span(*match.span()) for match in pattern.finditer(haystack)]

    spans: list[MatchSpan] = []
    index = haystack.find(needle)
    while index != -1:
        spans.append(span(index, index + len(needle)))
        index = haystack.find(needle, index + 1)
    return spans


def find_matches_in_part(
    text: str,
    message_id: str,
    part_index: int,
    query: str,
    options: SearchOptions,
    *,
    part_id: str = "",
) -> list[SearchMatch]:
    """Run :func:`find_matches` and tag each span with its message part."""
    return [
        SearchMatch(
            message_id=message_id,
            part_index=part_index,
            part_id=part_id,
            start_index=span.start_index,
            end_index=span.end_index,
            text=span.text,
        )
        for span in find_matches(text, query, options)
    ]
