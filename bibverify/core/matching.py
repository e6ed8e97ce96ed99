"""Similarity measures shared by registry lookups, scoring and duplicate detection."""

from __future__ import annotations

import re
from typing import Iterable, Set

from rapidfuzz.distance import Levenshtein

from bibverify.core.identifiers import author_surnames, normalize_title

MIN_TOKEN_LENGTH = 3
MIN_PARTIAL_TOKEN_LENGTH = 4
PARTIAL_TOKEN_CREDIT = 0.5

_EDIT_PUNCTUATION = re.compile(r"[.,;:!?\"'“”‘’]")


def title_tokens(title: str | None) -> Set[str]:
    """Tokenize a title into normalized terms longer than two characters."""

    return {token for token in normalize_title(title).split() if len(token) >= MIN_TOKEN_LENGTH}


def jaccard(a: Iterable[str], b: Iterable[str]) -> float:
    """Compute the Jaccard similarity between two collections of tokens."""

    set_a = set(a)
    set_b = set(b)

    if not set_a and not set_b:
        return 1.0

    union = set_a | set_b
    if not union:
        return 0.0

    return len(set_a & set_b) / len(union)


def title_similarity(first: str | None, second: str | None) -> float:
    """Score two titles from 0 to 100.

    Normalized equality scores 100. When one normalized title contains the
    other (subtitles, truncation) the score is the length ratio. Otherwise a
    token Jaccard is used where tokens that merely contain one another (typos,
    abbreviations, plurals) earn half a match.
    """

    normalized_first = normalize_title(first)
    normalized_second = normalize_title(second)
    if not normalized_first or not normalized_second:
        return 0.0

    if normalized_first == normalized_second:
        return 100.0

    if normalized_first in normalized_second or normalized_second in normalized_first:
        shorter, longer = sorted((normalized_first, normalized_second), key=len)
        return 100.0 * len(shorter) / len(longer)

    first_tokens = title_tokens(normalized_first)
    second_tokens = title_tokens(normalized_second)
    if not first_tokens or not second_tokens:
        return 0.0

    matches = float(len(first_tokens & second_tokens))
    for token in first_tokens - second_tokens:
        if len(token) < MIN_PARTIAL_TOKEN_LENGTH:
            continue
        for other in second_tokens:
            if len(other) < MIN_PARTIAL_TOKEN_LENGTH:
                continue
            if token in other or other in token:
                matches += PARTIAL_TOKEN_CREDIT

    union = len(first_tokens) + len(second_tokens) - matches
    if union <= 0:
        return 100.0
    return min(100.0, 100.0 * matches / union)


def author_similarity(first: str | None, second: str | None) -> float:
    """Jaccard overlap of the surnames found in two author strings, 0 to 100."""

    first_surnames = author_surnames(first)
    second_surnames = author_surnames(second)
    if not first_surnames or not second_surnames:
        return 0.0
    return 100.0 * jaccard(first_surnames, second_surnames)


def _normalize_for_edit(title: str | None) -> str:
    if not title:
        return ""
    return " ".join(_EDIT_PUNCTUATION.sub("", title.lower()).split())


def edit_similarity(first: str | None, second: str | None) -> float:
    """Character-level Levenshtein similarity of two titles, 0 to 100."""

    normalized_first = _normalize_for_edit(first)
    normalized_second = _normalize_for_edit(second)
    if not normalized_first or not normalized_second:
        return 0.0
    if normalized_first == normalized_second:
        return 100.0

    longest = max(len(normalized_first), len(normalized_second))
    distance = Levenshtein.distance(normalized_first, normalized_second)
    return 100.0 * (longest - distance) / longest
