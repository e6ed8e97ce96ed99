"""Structured verification issues rendered to display strings at the boundary."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, Mapping, Optional


class Severity(str, Enum):
    CRITICAL = "critical"
    MAJOR = "major"
    MINOR = "minor"
    INFO = "info"


class IssueKind(str, Enum):
    TITLE_MISMATCH = "title_mismatch"
    YEAR_MISMATCH = "year_mismatch"
    MISSING_DOI = "missing_doi"
    MISSING_VENUE = "missing_venue"
    RETRACTED = "retracted"
    SUSPICIOUS_PATTERN = "suspicious_pattern"
    LOW_CONFIDENCE = "low_confidence"
    NOT_FOUND = "not_found"
    DUPLICATE = "duplicate"


@dataclass(frozen=True)
class Issue:
    """A single finding about a citation.

    ``payload`` carries the numbers behind the finding (similarities, years,
    group sizes) so callers can reason over them without parsing
    :meth:`render` output.
    """

    kind: IssueKind
    severity: Severity
    payload: Mapping[str, Any] = field(default_factory=dict)

    @property
    def is_blocking(self) -> bool:
        return self.severity is not Severity.INFO

    def render(self) -> str:
        return _RENDERERS[self.kind](self)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind.value,
            "severity": self.severity.value,
            "payload": dict(self.payload),
            "message": self.render(),
        }

    @classmethod
    def title_mismatch(cls, similarity: float, severity: Severity) -> "Issue":
        return cls(IssueKind.TITLE_MISMATCH, severity, {"similarity": similarity})

    @classmethod
    def year_mismatch(cls, cited_year: int, registry_year: int, severity: Severity) -> "Issue":
        return cls(
            IssueKind.YEAR_MISMATCH,
            severity,
            {"cited_year": cited_year, "registry_year": registry_year},
        )

    @classmethod
    def missing_doi(cls, doi: str) -> "Issue":
        return cls(IssueKind.MISSING_DOI, Severity.MINOR, {"doi": doi})

    @classmethod
    def missing_venue(cls, venue: str) -> "Issue":
        return cls(IssueKind.MISSING_VENUE, Severity.MINOR, {"venue": venue})

    @classmethod
    def retracted(cls, source: Optional[str] = None) -> "Issue":
        return cls(IssueKind.RETRACTED, Severity.CRITICAL, {"source": source})

    @classmethod
    def suspicious(cls, reason: str) -> "Issue":
        return cls(IssueKind.SUSPICIOUS_PATTERN, Severity.MAJOR, {"reason": reason})

    @classmethod
    def low_confidence(
        cls,
        confidence: int,
        factors: Mapping[str, float],
        *,
        reason: Optional[str] = None,
    ) -> "Issue":
        return cls(
            IssueKind.LOW_CONFIDENCE,
            Severity.INFO,
            {"confidence": confidence, "factors": dict(factors), "reason": reason},
        )

    @classmethod
    def not_found(cls) -> "Issue":
        return cls(IssueKind.NOT_FOUND, Severity.CRITICAL)

    @classmethod
    def duplicate(cls, group_size: int, group_id: str) -> "Issue":
        return cls(
            IssueKind.DUPLICATE,
            Severity.MINOR,
            {"group_size": group_size, "group_id": group_id},
        )


def _render_title_mismatch(issue: Issue) -> str:
    similarity = issue.payload.get("similarity", 0.0)
    return f"Title mismatch ({issue.severity.value}): {similarity:.0f}% similar to the registry title"


def _render_year_mismatch(issue: Issue) -> str:
    return (
        f"Year mismatch ({issue.severity.value}): cited {issue.payload.get('cited_year')}, "
        f"registry lists {issue.payload.get('registry_year')}"
    )


def _render_low_confidence(issue: Issue) -> str:
    confidence = issue.payload.get("confidence", 0)
    reason = issue.payload.get("reason")
    if reason:
        return f"Low confidence ({confidence}%): {reason}"
    factors = issue.payload.get("factors") or {}
    detail = ", ".join(f"{name} {value:.0f}%" for name, value in factors.items())
    return f"Low confidence ({confidence}%): weakest signals were {detail}"


_RENDERERS: Dict[IssueKind, Callable[[Issue], str]] = {
    IssueKind.TITLE_MISMATCH: _render_title_mismatch,
    IssueKind.YEAR_MISMATCH: _render_year_mismatch,
    IssueKind.MISSING_DOI: lambda issue: f"Missing DOI: registry lists {issue.payload.get('doi')}",
    IssueKind.MISSING_VENUE: lambda issue: f"Missing venue: registry lists {issue.payload.get('venue')}",
    IssueKind.RETRACTED: lambda issue: "Retracted: this paper has been officially retracted",
    IssueKind.SUSPICIOUS_PATTERN: lambda issue: f"Suspicious: {issue.payload.get('reason')}",
    IssueKind.LOW_CONFIDENCE: _render_low_confidence,
    IssueKind.NOT_FOUND: lambda issue: "Not found in any registry",
    IssueKind.DUPLICATE: lambda issue: (
        f"Duplicate: appears {issue.payload.get('group_size')} times in this bibliography"
    ),
}


__all__ = ["Issue", "IssueKind", "Severity"]
