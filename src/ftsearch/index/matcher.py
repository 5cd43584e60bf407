"""Fuzzy token matching used by the phrase scanner."""

from __future__ import annotations

import string
from typing import Sequence

from ftsearch.utils.text import normalize_word

# Containment is only tried for candidates longer than this...
MIN_CONTAINMENT_LENGTH = 4
# ...and only while the two lengths differ by less than this.
MAX_LENGTH_DIFFERENCE = 3

# Every lowercase letter as a substitution, plus "" for deleting the character.
MUTATIONS = tuple(string.ascii_lowercase) + ("",)


def matches(candidate: str, query: str) -> bool:
    """Return True when two normalized tokens count as the same word.

    Empty tokens never match, not even each other. Longer candidates also
    match when one token contains the other and their lengths are close.
    """
    if not candidate or not query:
        return False

    if candidate == query:
        return True

    if (
        len(candidate) > MIN_CONTAINMENT_LENGTH
        and abs(len(query) - len(candidate)) < MAX_LENGTH_DIFFERENCE
    ):
        return query in candidate or candidate in query

    return False


def matches_with_mutation(candidate: str, query: str) -> bool:
    """Retry :func:`matches` against every single-character mutation of ``query``.

    Each position of the query is substituted by every lowercase letter and
    also deleted, which tolerates one substitution or deletion typo.
    """
    for index in range(len(query)):
        prefix, suffix = query[:index], query[index + 1 :]
        for replacement in MUTATIONS:
            if matches(candidate, prefix + replacement + suffix):
                return True
    return False


def check_words(window: Sequence[str], query_tokens: Sequence[str]) -> bool:
    """Return True when every window token fuzzy-matches its query token.

    Both sequences must have the same length; the caller guarantees it.
    """
    correct = 0
    for word, search in zip(window, query_tokens):
        normalized_word = normalize_word(word)
        normalized_search = normalize_word(search)

        if matches(normalized_word, normalized_search) or matches_with_mutation(
            normalized_word, normalized_search
        ):
            correct += 1

    return correct == len(window)
