from __future__ import annotations

import re
import unicodedata
from typing import List, Set

_DOI_PREFIX_PATTERN = re.compile(r"^(https?://)?(dx\.)?doi\.org/", re.IGNORECASE)

_TITLE_PUNCTUATION = re.compile(r"[:\-–—()\[\]{}\"'`]")
TITLE_STOPWORDS = (
    "a",
    "an",
    "the",
    "of",
    "for",
    "in",
    "on",
    "at",
    "to",
    "with",
    "by",
    "from",
    "and",
    "or",
    "using",
    "based",
)
_STOPWORD_PATTERN = re.compile(r"\b(?:%s)\b" % "|".join(TITLE_STOPWORDS), re.IGNORECASE)
_NON_TITLE_CHARS = re.compile(r"[^a-z0-9 ]")

_SURNAME_SPLIT = re.compile(r"[,;]|\band\b", re.IGNORECASE)
_AUTHOR_SEPARATORS = re.compile(r"\s*;\s*|\s*&\s*|\s+and\s+", re.IGNORECASE)
_ET_AL = re.compile(r"\bet\s+al\b\.?", re.IGNORECASE)
_INITIALS = re.compile(r"^(?:[A-Z]\.?[\s\-]*)+$")
_NAME_SUFFIXES = {"jr", "sr", "ii", "iii", "iv"}
_NON_SURNAME_CHARS = re.compile(r"[^a-z\-]")

MIN_SURNAME_LENGTH = 3


def normalize_doi(doi: str | None) -> str | None:
    """Normalize a DOI string into a canonical lowercase form.

    The normalization removes leading DOI prefixes (e.g., ``https://doi.org/`` or
    ``doi:``), trims whitespace, and lowercases the remaining identifier. Empty
    or missing values return ``None``.
    """

    if not doi:
        return None

    cleaned = doi.strip()
    cleaned = _DOI_PREFIX_PATTERN.sub("", cleaned)
    if cleaned.lower().startswith("doi:"):
        cleaned = cleaned.split(":", 1)[1]
    cleaned = cleaned.strip().lower()

    return cleaned or None


def fold_accents(text: str) -> str:
    decomposed = unicodedata.normalize("NFKD", text)
    return "".join(char for char in decomposed if not unicodedata.combining(char))


def normalize_title(title: str | None) -> str:
    """Reduce a title to lowercase alphanumeric words without stopwords.

    Punctuation that commonly separates subtitles is turned into spaces, the
    academic stopwords in :data:`TITLE_STOPWORDS` are dropped, accents are
    folded and anything outside ``[a-z0-9 ]`` is removed. The result is used
    both as a search query and as a cache key.
    """

    if not title:
        return ""

    text = _TITLE_PUNCTUATION.sub(" ", title)
    text = _STOPWORD_PATTERN.sub(" ", text)
    text = " ".join(fold_accents(text).lower().split())
    text = _NON_TITLE_CHARS.sub("", text)
    return " ".join(text.split())


def extract_surname(authors: str | None) -> str:
    """Return the last word of the first author group in ``authors``."""

    if not authors:
        return ""

    first_group = _SURNAME_SPLIT.split(authors, maxsplit=1)[0].strip()
    parts = first_group.split()
    return parts[-1] if parts else ""


def _is_initials(value: str) -> bool:
    return bool(_INITIALS.match(value.strip()))


def split_authors(authors: str | None) -> List[str]:
    """Split a free-text author list into individual names.

    Handles ``;``/``&``/``and`` separated lists, ``"Smith, J., Doe, A."``
    surname-initial pairs and ``"Jane Doe, John Smith"`` given-family lists.
    """

    if not authors:
        return []

    text = _ET_AL.sub(" ", authors)
    names: List[str] = []
    for segment in _AUTHOR_SEPARATORS.split(text):
        parts = [part.strip() for part in segment.split(",") if part.strip()]
        index = 0
        while index < len(parts):
            part = parts[index]
            following = parts[index + 1] if index + 1 < len(parts) else None
            if (
                following is not None
                and " " not in part
                and (_is_initials(following) or len(parts) == 2)
            ):
                names.append(f"{part}, {following}")
                index += 2
                continue
            names.append(part)
            index += 1
    return names


def surname_of(name: str) -> str:
    """Extract a normalized surname from a single author name."""

    if "," in name:
        candidate = name.split(",", 1)[0]
    else:
        tokens = [
            token for token in name.split() if token.strip(".").lower() not in _NAME_SUFFIXES
        ]
        if not tokens:
            return ""
        candidate = tokens[-1]
        # "Smith J" (Vancouver style) keeps the surname first.
        if len(tokens) > 1 and _is_initials(candidate) and not _is_initials(tokens[0]):
            candidate = tokens[0]

    cleaned = _NON_SURNAME_CHARS.sub("", fold_accents(candidate).lower())
    return cleaned.strip("-")


def author_surnames(authors: str | None) -> Set[str]:
    """Collect surname-like tokens (longer than two characters) from ``authors``."""

    surnames: Set[str] = set()
    for name in split_authors(authors):
        surname = surname_of(name)
        if len(surname) >= MIN_SURNAME_LENGTH:
            surnames.add(surname)
    return surnames
