from __future__ import annotations

import threading
from typing import List

import pytest

from bibverify.core.issues import Issue
from bibverify.core.models import Citation, VerificationResult, VerificationStatus
from bibverify.services.batch_verification_service import BatchVerificationService


class _FakeValidator:
    """Returns a fixed status per citation key; raises for keys in ``crash``."""

    def __init__(self, statuses=None, crash=(), delays=None):
        self.statuses = statuses or {}
        self.crash = set(crash)
        self.delays = delays or {}
        self.seen: List[str] = []
        self._lock = threading.Lock()

    def verify(self, citation: Citation) -> VerificationResult:
        with self._lock:
            self.seen.append(citation.key)
        event = self.delays.get(citation.key)
        if event is not None:
            event.wait(5)
        if citation.key in self.crash:
            raise RuntimeError(f"cannot verify {citation.key}")
        status = self.statuses.get(citation.key, VerificationStatus.VERIFIED)
        return VerificationResult(
            citation=citation, status=status, classified_status=status, confidence=90
        )


def _citations(*keys: str) -> List[Citation]:
    return [Citation(key=key, title=f"A study of {key}", authors="Doe, J.", year=2020) for key in keys]


def test_results_follow_input_order_even_when_completion_order_differs():
    release_first = threading.Event()
    validator = _FakeValidator(delays={"a": release_first})
    service = BatchVerificationService(validator, max_workers=3)

    def _progress(done, total):
        if done == 2:
            release_first.set()

    service.progress_callback = _progress
    results = service.verify_batch(_citations("a", "b", "c"))

    assert [result.key for result in results] == ["a", "b", "c"]


def test_crashing_item_degrades_to_not_found(caplog):
    validator = _FakeValidator(crash={"b"})
    service = BatchVerificationService(validator, max_workers=2)

    with caplog.at_level("ERROR"):
        results = service.verify_batch(_citations("a", "b", "c"))

    crashed = results[1]
    assert crashed.status is VerificationStatus.NOT_FOUND
    assert crashed.confidence == 0
    assert "Low confidence (0%): verification failed unexpectedly" in crashed.issue_messages()
    assert [result.status for result in (results[0], results[2])] == [VerificationStatus.VERIFIED] * 2
    assert "Verification crashed" in caplog.text


def test_progress_is_reported_once_per_item():
    calls = []
    service = BatchVerificationService(
        _FakeValidator(), max_workers=2, progress_callback=lambda done, total: calls.append((done, total))
    )

    service.verify_batch(_citations("a", "b", "c", "d"))

    assert calls == [(1, 4), (2, 4), (3, 4), (4, 4)]


def test_failing_progress_callback_does_not_fail_the_batch(caplog):
    def _broken(done, total):
        raise RuntimeError("ui went away")

    service = BatchVerificationService(_FakeValidator(), progress_callback=_broken)

    with caplog.at_level("ERROR"):
        results = service.verify_batch(_citations("a", "b"))

    assert len(results) == 2
    assert "Progress callback failed" in caplog.text


def test_empty_batch_returns_no_results():
    validator = _FakeValidator()

    assert BatchVerificationService(validator).verify_batch([]) == []
    assert validator.seen == []


def test_repeated_keys_are_logged(caplog):
    citations = _citations("a", "a")

    with caplog.at_level("WARNING"):
        results = BatchVerificationService(_FakeValidator()).verify_batch(citations)

    assert [result.status for result in results] == [
        VerificationStatus.VERIFIED,
        VerificationStatus.DUPLICATE,
    ]
    assert results[0].is_primary_duplicate is True
    assert "repeated citation keys: a" in caplog.text


def test_duplicates_are_marked_after_all_items_finish():
    citations = [
        Citation(key="first", title="Attention Is All You Need", authors="Vaswani, A.", year=2017),
        Citation(key="second", title="attention is all you need", authors="Vaswani, A.", year=2017),
    ]

    results = BatchVerificationService(_FakeValidator()).verify_batch(citations)

    assert results[0].status is VerificationStatus.VERIFIED
    assert results[0].is_primary_duplicate is True
    assert results[1].status is VerificationStatus.DUPLICATE
    assert results[1].classified_status is VerificationStatus.VERIFIED


def test_summarize_counts_each_status_bucket():
    statuses = {
        "v": VerificationStatus.VERIFIED,
        "w": VerificationStatus.WARNING,
        "i": VerificationStatus.ISSUE,
        "r": VerificationStatus.RETRACTED,
        "n": VerificationStatus.NOT_FOUND,
        "d": VerificationStatus.DUPLICATE,
    }
    results = [
        VerificationResult(citation=Citation(key=key, title=key), status=status, classified_status=status)
        for key, status in statuses.items()
    ]
    results[0].duplicate_group_id = "dup-1"
    results[5].duplicate_group_id = "dup-1"
    results[5].issues.append(Issue.duplicate(2, "dup-1"))

    summary = BatchVerificationService.summarize(results)

    assert summary.to_dict() == {
        "total": 6,
        "verified": 1,
        "warnings": 1,
        "issues": 3,
        "duplicates": 1,
        "duplicate_groups": 1,
    }


def test_rejects_non_positive_worker_count():
    with pytest.raises(ValueError):
        BatchVerificationService(_FakeValidator(), max_workers=0)
