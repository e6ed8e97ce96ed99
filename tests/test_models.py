import pytest

from bibverify.core.issues import Issue, IssueKind, Severity
from bibverify.core.models import (
    Citation,
    LookupStrategy,
    RegistryCandidate,
    RegistryMatch,
    VerificationResult,
    VerificationStatus,
)


def test_citation_normalizes_doi_on_construction():
    citation = Citation(key="k", title="T", doi=" https://doi.org/10.1000/ABC ")

    assert citation.doi == "10.1000/abc"
    assert Citation(key="k", title="T", doi="").doi is None


def test_citation_from_dict_accepts_loose_shapes():
    citation = Citation.from_dict(
        {
            "bibtex_key": "smith2020",
            "title": "  A Title  ",
            "author": ["Smith, J.", "Doe, A."],
            "year": "2020",
            "journal": "Journal of Tests",
            "doi": "doi:10.1/X",
        }
    )

    assert citation.key == "smith2020"
    assert citation.title == "A Title"
    assert citation.authors == "Smith, J.; Doe, A."
    assert citation.year == 2020
    assert citation.venue == "Journal of Tests"
    assert citation.doi == "10.1/x"


def test_citation_from_dict_falls_back_to_positional_key():
    citation = Citation.from_dict({"title": "Untitled", "year": "n.d."}, index=3)

    assert citation.key == "ref_3"
    assert citation.year is None
    assert citation.authors == ""


def test_registry_candidate_round_trips_through_dict():
    candidate = RegistryCandidate(
        source="openalex",
        title="Attention Is All You Need",
        authors=["Ashish Vaswani"],
        year=2017,
        doi="10.48550/arxiv.1706.03762",
        citation_count=100000,
        is_preprint=True,
    )

    assert RegistryCandidate.from_dict(candidate.to_dict()) == candidate


@pytest.mark.parametrize("payload", [None, "text", {"authors": []}, {"title": "T", "authors": "A"}])
def test_registry_candidate_rejects_unreadable_payloads(payload):
    with pytest.raises(ValueError):
        RegistryCandidate.from_dict(payload)


def test_registry_match_from_candidate_joins_authors():
    candidate = RegistryCandidate(
        source="crossref", title="T", authors=["Jane Doe", "John Smith"], doi="10.1/ABC"
    )
    match = RegistryMatch.from_candidate(candidate, confidence=88.0, strategy=LookupStrategy.EXACT_TITLE)

    assert match.found
    assert match.canonical_authors == "Jane Doe, John Smith"
    assert match.doi == "10.1/abc"
    assert match.strategy is LookupStrategy.EXACT_TITLE
    assert not RegistryMatch.not_found("crossref").found


def test_verification_result_to_record_renders_issues():
    result = VerificationResult(
        citation=Citation(key="k1", title="T"),
        status=VerificationStatus.WARNING,
        classified_status=VerificationStatus.WARNING,
        confidence=73,
        doi="10.1/x",
        issues=[
            Issue.title_mismatch(66.7, Severity.MINOR),
            Issue.missing_doi("10.1/x"),
        ],
        verified_by={"semanticscholar", "crossref"},
    )

    record = result.to_record()

    assert record["key"] == "k1"
    assert record["status"] == "warning"
    assert record["confidence"] == 73
    assert record["issues"] == [
        "Title mismatch (minor): 67% similar to the registry title",
        "Missing DOI: registry lists 10.1/x",
    ]
    assert record["verifiedBy"] == ["crossref", "semanticscholar"]
    assert record["duplicateGroupId"] is None
    assert record["isPrimaryDuplicate"] is None


def test_issue_to_dict_carries_kind_severity_and_message():
    issue = Issue.duplicate(3, "dup-abc")

    assert issue.to_dict() == {
        "kind": IssueKind.DUPLICATE.value,
        "severity": "minor",
        "payload": {"group_size": 3, "group_id": "dup-abc"},
        "message": "Duplicate: appears 3 times in this bibliography",
    }
