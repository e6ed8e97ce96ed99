from __future__ import annotations

from typing import Optional

import pytest

from bibverify.core.issues import IssueKind
from bibverify.core.models import Citation, VerificationResult, VerificationStatus
from bibverify.services.duplicate_detection_service import DuplicateDetectionService

AUTHORS = "Vaswani, A.; Shazeer, N.; Parmar, N."


def _result(
    key: str,
    title: str,
    *,
    authors: str = AUTHORS,
    year: Optional[int] = 2017,
    doi: Optional[str] = None,
    registry_doi: Optional[str] = None,
    status: VerificationStatus = VerificationStatus.VERIFIED,
) -> VerificationResult:
    citation = Citation(key=key, title=title, authors=authors, year=year, doi=doi)
    return VerificationResult(
        citation=citation,
        status=status,
        classified_status=status,
        confidence=90,
        doi=registry_doi,
    )


@pytest.fixture()
def detector() -> DuplicateDetectionService:
    return DuplicateDetectionService()


def test_same_doi_is_a_duplicate_whatever_the_titles(detector):
    first = _result("a", "Attention Is All You Need", doi="10.1/x")
    second = _result("b", "Transformers", doi="https://doi.org/10.1/X", year=2018)

    assert detector.is_duplicate(first, second)


def test_different_dois_are_never_duplicates(detector):
    first = _result("a", "Attention Is All You Need", doi="10.1/x")
    second = _result("b", "Attention Is All You Need", doi="10.1/y")

    assert not detector.is_duplicate(first, second)


def test_shared_registry_doi_does_not_merge_different_papers(detector):
    authors = "Smith, J.; Doe, A."
    results = [
        _result(
            "a",
            "Phishing website detection based on URL features",
            authors=authors,
            year=2020,
            registry_doi="10.1/same-registry-record",
        ),
        _result(
            "b",
            "Phishing website detection based on text-content features",
            authors=authors,
            year=2020,
            registry_doi="10.1/same-registry-record",
        ),
    ]

    assert detector.mark_duplicates(results) == []
    assert all(result.duplicate_group_id is None for result in results)


def test_registry_doi_is_ignored_against_a_cited_doi(detector):
    first = _result("a", "Attention Is All You Need", doi="10.1/x")
    second = _result("b", "Attention is all you need!", registry_doi="10.1/y")

    assert detector.is_duplicate(first, second)


def test_case_and_punctuation_differences_still_match(detector):
    first = _result("a", "Attention Is All You Need")
    second = _result("b", "attention is all you need.")

    assert detector.is_duplicate(first, second)


def test_title_similarity_boundary(detector):
    at_threshold = ("ab" * 100, "ab" * 99 + "aa")
    below_threshold = ("ab" * 250, "ab" * 247 + "aaaaaa")

    assert detector.is_duplicate(_result("a", at_threshold[0]), _result("b", at_threshold[1]))
    assert not detector.is_duplicate(
        _result("a", below_threshold[0]), _result("b", below_threshold[1])
    )


@pytest.mark.parametrize(("first_year", "second_year"), [(2017, 2018), (None, 2017), (None, None)])
def test_years_must_be_present_and_equal(detector, first_year, second_year):
    first = _result("a", "Attention Is All You Need", year=first_year)
    second = _result("b", "Attention Is All You Need", year=second_year)

    assert not detector.is_duplicate(first, second)


def test_author_lists_must_overlap(detector):
    first = _result("a", "Attention Is All You Need")
    second = _result("b", "Attention Is All You Need", authors="Smith, J.; Doe, A.")

    assert not detector.is_duplicate(first, second)


def test_groups_mark_later_members_as_duplicates(detector):
    results = [
        _result("a", "Attention Is All You Need"),
        _result("b", "Deep Residual Learning", authors="He, K.; Zhang, X.", year=2016),
        _result("c", "attention is all you need", status=VerificationStatus.WARNING),
        _result("d", "Attention is all you need."),
    ]

    groups = detector.mark_duplicates(results)

    assert len(groups) == 1
    group = groups[0]
    assert group.member_keys == ["a", "c", "d"]
    assert group.primary_key == "a"

    primary, unrelated, second, third = results
    assert primary.status is VerificationStatus.VERIFIED
    assert primary.is_primary_duplicate is True
    assert primary.duplicate_group_count == 3
    assert primary.issues == []

    for member in (second, third):
        assert member.status is VerificationStatus.DUPLICATE
        assert member.is_primary_duplicate is False
        assert member.duplicate_group_id == group.group_id
        assert member.issue_messages() == ["Duplicate: appears 3 times in this bibliography"]
    assert second.classified_status is VerificationStatus.WARNING

    assert unrelated.duplicate_group_id is None
    assert unrelated.is_primary_duplicate is None


def test_group_ids_are_deterministic_and_application_is_idempotent(detector):
    def build():
        return [_result("a", "Attention Is All You Need"), _result("b", "Attention is all you need")]

    first_run = build()
    second_run = build()
    first_groups = detector.mark_duplicates(first_run)
    second_groups = detector.mark_duplicates(second_run)

    assert first_groups[0].group_id == second_groups[0].group_id
    assert first_groups[0].group_id.startswith("dup-")

    detector.apply_groups(first_run, first_groups)
    kinds = [issue.kind for issue in first_run[1].issues]
    assert kinds == [IssueKind.DUPLICATE]


def test_no_groups_for_distinct_citations(detector):
    results = [
        _result("a", "Attention Is All You Need"),
        _result("b", "Deep Residual Learning for Image Recognition", year=2016),
    ]

    assert detector.mark_duplicates(results) == []
    assert all(result.duplicate_group_id is None for result in results)
