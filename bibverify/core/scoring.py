"""Confidence fusion, issue detection and status classification."""

from __future__ import annotations

import re
from datetime import date
from typing import Dict, Iterable, List, Optional
from urllib.parse import quote_plus

from bibverify.core.issues import Issue, Severity
from bibverify.core.matching import author_similarity, title_similarity
from bibverify.core.models import Citation, RegistryMatch, ScoreBreakdown, VerificationStatus

NEUTRAL_SCORE = 0.5
SOURCES_FOR_FULL_CREDIT = 3

VERIFIED_MIN_CONFIDENCE = 80
WARNING_MIN_CONFIDENCE = 50
LOW_CONFIDENCE_THRESHOLD = 50
WEAK_FACTOR_RATIO = 0.8

TITLE_CRITICAL_BELOW = 30.0
TITLE_MAJOR_BELOW = 60.0
TITLE_MINOR_BELOW = 80.0
YEAR_CRITICAL_DELTA = 5

EARLIEST_PLAUSIBLE_YEAR = 1800

GOOGLE_SCHOLAR_SEARCH_URL = "https://scholar.google.com/scholar?q="

_SUSPICIOUS_AUTHORS = re.compile(r"\d{3,}|x{4,}|\bdummy\b|\bplaceholder\b|\bfake\b", re.IGNORECASE)
_SUSPICIOUS_TITLE = re.compile(r"x{5,}|lorem ipsum|\bdummy\b|\bplaceholder\b", re.IGNORECASE)

# Factors reported in a low-confidence breakdown. DOI agreement is a bonus
# signal and is never listed as a weakness.
_BREAKDOWN_FACTORS = ("title", "author", "year", "sources")
_FACTOR_LABELS = {"title": "title", "author": "author", "year": "year", "sources": "source count"}


def year_score(cited: Optional[int], registry: Optional[int]) -> float:
    if cited is None or registry is None:
        return NEUTRAL_SCORE
    delta = abs(cited - registry)
    if delta == 0:
        return 1.0
    if delta == 1:
        return 0.8
    if delta == 2:
        return 0.5
    return 0.2


def score_match(citation: Citation, match: RegistryMatch, found_sources: int) -> ScoreBreakdown:
    """Compute the weighted factors for one registry match."""

    title = title_similarity(citation.title, match.canonical_title) / 100.0
    if citation.authors and match.canonical_authors:
        author = author_similarity(citation.authors, match.canonical_authors) / 100.0
    else:
        author = NEUTRAL_SCORE
    doi = 1.0 if citation.doi and match.doi and citation.doi == match.doi else 0.0
    sources = min(1.0, found_sources / SOURCES_FOR_FULL_CREDIT)

    return ScoreBreakdown(
        title=title,
        author=author,
        year=year_score(citation.year, match.canonical_year),
        doi=doi,
        sources=sources,
    )


def weak_factors(breakdown: ScoreBreakdown) -> Dict[str, float]:
    """Return the factors below 80% of their maximum, as percentages.

    Every factor is returned when none qualifies so a low-confidence
    explanation is never empty.
    """

    percentages = breakdown.as_percentages()
    weak = {
        _FACTOR_LABELS[name]: percentages[name]
        for name in _BREAKDOWN_FACTORS
        if getattr(breakdown, name) < WEAK_FACTOR_RATIO
    }
    if weak:
        return weak
    return {_FACTOR_LABELS[name]: percentages[name] for name in _BREAKDOWN_FACTORS}


def title_severity(similarity: float) -> Optional[Severity]:
    if similarity < TITLE_CRITICAL_BELOW:
        return Severity.CRITICAL
    if similarity < TITLE_MAJOR_BELOW:
        return Severity.MAJOR
    if similarity < TITLE_MINOR_BELOW:
        return Severity.MINOR
    return None


def find_suspicious_patterns(citation: Citation, *, current_year: Optional[int] = None) -> List[str]:
    """Describe the placeholder or impossible values found in ``citation``."""

    if current_year is None:
        current_year = date.today().year

    reasons: List[str] = []
    if citation.authors and _SUSPICIOUS_AUTHORS.search(citation.authors):
        reasons.append("author list looks like a placeholder")
    if citation.title and _SUSPICIOUS_TITLE.search(citation.title):
        reasons.append("title looks like placeholder text")
    if citation.year is not None and (
        citation.year > current_year + 1 or citation.year < EARLIEST_PLAUSIBLE_YEAR
    ):
        reasons.append(f"year {citation.year} is not plausible")
    return reasons


def build_issues(
    citation: Citation,
    match: RegistryMatch,
    breakdown: ScoreBreakdown,
    *,
    detect_suspicious: bool = True,
    current_year: Optional[int] = None,
) -> List[Issue]:
    """Build the ordered issue list for a citation and its selected match."""

    issues: List[Issue] = []

    similarity = title_similarity(citation.title, match.canonical_title)
    severity = title_severity(similarity)
    if severity is not None:
        issues.append(Issue.title_mismatch(round(similarity, 1), severity))

    if citation.year is not None and match.canonical_year is not None:
        delta = abs(citation.year - match.canonical_year)
        if delta:
            year_severity = Severity.CRITICAL if delta > YEAR_CRITICAL_DELTA else Severity.MINOR
            issues.append(Issue.year_mismatch(citation.year, match.canonical_year, year_severity))

    if match.doi and not citation.doi:
        issues.append(Issue.missing_doi(match.doi))

    if match.venue and not citation.venue:
        issues.append(Issue.missing_venue(match.venue))

    if match.is_retracted:
        issues.append(Issue.retracted(match.source))

    if detect_suspicious:
        for reason in find_suspicious_patterns(citation, current_year=current_year):
            issues.append(Issue.suspicious(reason))

    confidence = breakdown.confidence
    if confidence < LOW_CONFIDENCE_THRESHOLD:
        issues.append(Issue.low_confidence(confidence, weak_factors(breakdown)))

    return issues


def classify(confidence: int, issues: Iterable[Issue], *, is_retracted: bool) -> VerificationStatus:
    if is_retracted:
        return VerificationStatus.RETRACTED

    blocking = [issue for issue in issues if issue.is_blocking]
    if confidence >= VERIFIED_MIN_CONFIDENCE and not blocking:
        return VerificationStatus.VERIFIED
    if confidence >= WARNING_MIN_CONFIDENCE or (
        blocking and all(issue.severity is Severity.MINOR for issue in blocking)
    ):
        return VerificationStatus.WARNING
    return VerificationStatus.ISSUE


def google_scholar_url(citation: Citation) -> Optional[str]:
    query = " ".join(part for part in (citation.title, citation.authors) if part).strip()
    if not query:
        return None
    return f"{GOOGLE_SCHOLAR_SEARCH_URL}{quote_plus(query)}"


__all__ = [
    "build_issues",
    "classify",
    "find_suspicious_patterns",
    "google_scholar_url",
    "score_match",
    "title_severity",
    "weak_factors",
    "year_score",
]
