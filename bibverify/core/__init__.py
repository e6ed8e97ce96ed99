"""Core data models, normalization, similarity and scoring for verification."""

from .identifiers import extract_surname, normalize_doi, normalize_title
from .issues import Issue, IssueKind, Severity
from .matching import author_similarity, edit_similarity, jaccard, title_similarity, title_tokens
from .models import (
    BatchSummary,
    Citation,
    DuplicateGroup,
    LookupStrategy,
    RegistryCandidate,
    RegistryMatch,
    ScoreBreakdown,
    VerificationResult,
    VerificationStatus,
)

__all__ = [
    "BatchSummary",
    "Citation",
    "DuplicateGroup",
    "Issue",
    "IssueKind",
    "LookupStrategy",
    "RegistryCandidate",
    "RegistryMatch",
    "ScoreBreakdown",
    "Severity",
    "VerificationResult",
    "VerificationStatus",
    "author_similarity",
    "edit_similarity",
    "extract_surname",
    "jaccard",
    "normalize_doi",
    "normalize_title",
    "title_similarity",
    "title_tokens",
]
