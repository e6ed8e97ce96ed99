from __future__ import annotations

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Set

from bibverify.core.identifiers import normalize_doi
from bibverify.core.issues import Issue


class LookupStrategy(str, Enum):
    """Which level of the registry fallback chain produced a match."""

    DOI = "doi"
    EXACT_TITLE = "exact_title"
    NORMALIZED_TITLE = "normalized_title"
    AUTHOR_YEAR = "author_year"


class VerificationStatus(str, Enum):
    PENDING = "pending"
    VERIFIED = "verified"
    WARNING = "warning"
    ISSUE = "issue"
    RETRACTED = "retracted"
    NOT_FOUND = "not_found"
    DUPLICATE = "duplicate"


def _coerce_year(value: Any) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    text = str(value).strip()
    if not text:
        return None
    try:
        return int(float(text))
    except ValueError:
        return None


def _clean_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


@dataclass(frozen=True)
class Citation:
    """A bibliographic record as cited in a document. Read-only."""

    key: str
    title: str
    authors: str = ""
    year: Optional[int] = None
    venue: Optional[str] = None
    doi: Optional[str] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "doi", normalize_doi(self.doi))

    @classmethod
    def from_dict(cls, data: Mapping[str, Any], *, index: int = 0) -> "Citation":
        """Build a citation from a loosely shaped mapping.

        ``bibtex_key`` and ``id`` are accepted in place of ``key`` and
        ``author`` in place of ``authors``. A list of author names is joined
        with ``"; "``.
        """

        key = data.get("key") or data.get("bibtex_key") or data.get("id") or f"ref_{index}"
        authors = data.get("authors")
        if authors is None:
            authors = data.get("author")
        if isinstance(authors, (list, tuple)):
            authors = "; ".join(str(name) for name in authors if name)

        return cls(
            key=str(key),
            title=str(data.get("title") or "").strip(),
            authors=str(authors or "").strip(),
            year=_coerce_year(data.get("year")),
            venue=_clean_text(data.get("venue") or data.get("journal")),
            doi=_clean_text(data.get("doi")),
        )


@dataclass
class RegistryCandidate:
    """One record returned by a registry search or DOI lookup."""

    source: str
    title: str
    authors: List[str] = field(default_factory=list)
    year: Optional[int] = None
    doi: Optional[str] = None
    venue: Optional[str] = None
    citation_count: Optional[int] = None
    is_retracted: bool = False
    url: Optional[str] = None
    is_preprint: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Any) -> "RegistryCandidate":
        if not isinstance(data, Mapping):
            raise ValueError("Candidate payload must be a mapping")
        title = data.get("title")
        if not isinstance(title, str) or not title:
            raise ValueError("Candidate payload is missing a title")
        authors = data.get("authors") or []
        if not isinstance(authors, list):
            raise ValueError("Candidate authors must be a list")

        citation_count = data.get("citation_count")
        return cls(
            source=str(data.get("source") or ""),
            title=title,
            authors=[str(name) for name in authors],
            year=_coerce_year(data.get("year")),
            doi=normalize_doi(data.get("doi")),
            venue=data.get("venue"),
            citation_count=int(citation_count) if citation_count is not None else None,
            is_retracted=bool(data.get("is_retracted", False)),
            url=data.get("url"),
            is_preprint=bool(data.get("is_preprint", False)),
        )


@dataclass
class RegistryMatch:
    """Outcome of looking one citation up in one registry."""

    found: bool
    source: str
    canonical_title: Optional[str] = None
    canonical_authors: Optional[str] = None
    canonical_year: Optional[int] = None
    doi: Optional[str] = None
    venue: Optional[str] = None
    citation_count: Optional[int] = None
    is_retracted: bool = False
    confidence: float = 0.0
    strategy: Optional[LookupStrategy] = None
    from_cache: bool = False
    url: Optional[str] = None
    is_preprint: bool = False

    @classmethod
    def not_found(cls, source: str) -> "RegistryMatch":
        return cls(found=False, source=source)

    @classmethod
    def from_candidate(
        cls,
        candidate: RegistryCandidate,
        *,
        confidence: float,
        strategy: LookupStrategy,
        from_cache: bool = False,
    ) -> "RegistryMatch":
        return cls(
            found=True,
            source=candidate.source,
            canonical_title=candidate.title,
            canonical_authors=", ".join(candidate.authors) or None,
            canonical_year=candidate.year,
            doi=normalize_doi(candidate.doi),
            venue=candidate.venue,
            citation_count=candidate.citation_count,
            is_retracted=candidate.is_retracted,
            confidence=confidence,
            strategy=strategy,
            from_cache=from_cache,
            url=candidate.url,
            is_preprint=candidate.is_preprint,
        )


@dataclass(frozen=True)
class ScoreBreakdown:
    """Normalized 0..1 factors behind a confidence score."""

    title: float
    author: float
    year: float
    doi: float
    sources: float

    WEIGHTS = {"title": 0.40, "author": 0.25, "year": 0.15, "doi": 0.10, "sources": 0.10}

    def weighted_sum(self) -> float:
        return sum(getattr(self, name) * weight for name, weight in self.WEIGHTS.items())

    @property
    def confidence(self) -> int:
        return max(0, min(100, int(round(100 * self.weighted_sum()))))

    def as_percentages(self) -> Dict[str, float]:
        return {name: round(100 * getattr(self, name), 1) for name in self.WEIGHTS}


@dataclass
class VerificationResult:
    citation: Citation
    status: VerificationStatus
    classified_status: VerificationStatus
    confidence: int = 0
    canonical_title: Optional[str] = None
    canonical_authors: Optional[str] = None
    canonical_year: Optional[int] = None
    venue: Optional[str] = None
    doi: Optional[str] = None
    cited_by_count: Optional[int] = None
    is_retracted: bool = False
    issues: List[Issue] = field(default_factory=list)
    verified_by: Set[str] = field(default_factory=set)
    score: Optional[ScoreBreakdown] = None
    source_urls: Dict[str, str] = field(default_factory=dict)
    google_scholar_url: Optional[str] = None
    is_preprint: bool = False
    duplicate_group_id: Optional[str] = None
    duplicate_group_count: Optional[int] = None
    is_primary_duplicate: Optional[bool] = None

    @property
    def key(self) -> str:
        return self.citation.key

    def issue_messages(self) -> List[str]:
        return [issue.render() for issue in self.issues]

    def to_record(self) -> Dict[str, Any]:
        """Flatten the result into the JSON record shape consumed by front ends."""

        return {
            "key": self.key,
            "status": self.status.value,
            "confidence": self.confidence,
            "canonicalTitle": self.canonical_title,
            "canonicalAuthors": self.canonical_authors,
            "canonicalYear": self.canonical_year,
            "venue": self.venue,
            "doi": self.doi,
            "citedByCount": self.cited_by_count,
            "isRetracted": self.is_retracted,
            "issues": self.issue_messages(),
            "verifiedBy": sorted(self.verified_by),
            "sourceUrls": dict(self.source_urls),
            "googleScholarUrl": self.google_scholar_url,
            "duplicateGroupId": self.duplicate_group_id,
            "duplicateGroupCount": self.duplicate_group_count,
            "isPrimaryDuplicate": self.is_primary_duplicate,
        }


@dataclass
class DuplicateGroup:
    group_id: str
    member_keys: List[str]

    @property
    def size(self) -> int:
        return len(self.member_keys)

    @property
    def primary_key(self) -> str:
        return self.member_keys[0]


@dataclass
class BatchSummary:
    total: int = 0
    verified: int = 0
    warnings: int = 0
    issues: int = 0
    duplicates: int = 0
    duplicate_groups: int = 0

    def to_dict(self) -> Dict[str, int]:
        return asdict(self)


__all__ = [
    "BatchSummary",
    "Citation",
    "DuplicateGroup",
    "LookupStrategy",
    "RegistryCandidate",
    "RegistryMatch",
    "ScoreBreakdown",
    "VerificationResult",
    "VerificationStatus",
]
