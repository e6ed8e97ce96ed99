from __future__ import annotations

from typing import Dict, List, Optional, Union

import pytest

from bibverify.cache import InMemoryResponseCache
from bibverify.core.models import Citation, LookupStrategy, RegistryCandidate
from bibverify.exceptions import CacheError
from bibverify.providers.clients.base import RateLimitedError, UpstreamError
from bibverify.services.registry_lookup_service import RegistryLookupService

SearchResult = Union[List[RegistryCandidate], Exception]


class _StubSource:
    name = "stub"
    acceptance_threshold = 50.0

    def __init__(
        self,
        searches: Optional[Dict[str, SearchResult]] = None,
        doi_result: Union[RegistryCandidate, Exception, None] = None,
    ) -> None:
        self.searches = searches or {}
        self.doi_result = doi_result
        self.queries: List[str] = []
        self.doi_calls: List[str] = []

    def search(self, query: str) -> List[RegistryCandidate]:
        self.queries.append(query)
        result = self.searches.get(query, [])
        if isinstance(result, Exception):
            raise result
        return result

    def lookup_by_doi(self, doi: str) -> Optional[RegistryCandidate]:
        self.doi_calls.append(doi)
        if isinstance(self.doi_result, Exception):
            raise self.doi_result
        return self.doi_result


class _ExplodingCache:
    def get(self, key):
        raise CacheError("cache backend unreachable")

    def set(self, key, value, ttl):
        raise CacheError("cache backend unreachable")


def _candidate(title: str, **overrides) -> RegistryCandidate:
    fields = dict(source="stub", title=title, authors=["Ashish Vaswani"], year=2017)
    fields.update(overrides)
    return RegistryCandidate(**fields)


ATTENTION = Citation(key="v2017", title="Attention Is All You Need", authors="Vaswani, A.", year=2017)


def test_empty_title_is_not_found_without_requests():
    source = _StubSource()
    match = RegistryLookupService(source).lookup(Citation(key="empty", title="   ", doi="10.1/x"))

    assert not match.found
    assert match.source == "stub"
    assert source.queries == []
    assert source.doi_calls == []


def test_doi_hit_returns_immediately_with_full_confidence():
    source = _StubSource(doi_result=_candidate("Attention Is All You Need", doi="10.48550/arxiv.1706.03762"))
    citation = Citation(key="v", title="Attention Is All You Need", doi="10.48550/arXiv.1706.03762")

    match = RegistryLookupService(source).lookup(citation)

    assert match.found
    assert match.strategy is LookupStrategy.DOI
    assert match.confidence == 100.0
    assert source.doi_calls == ["10.48550/arxiv.1706.03762"]
    assert source.queries == []


def test_doi_miss_falls_back_to_exact_title():
    source = _StubSource(
        searches={"Attention Is All You Need": [_candidate("Attention is all you need.")]},
        doi_result=None,
    )
    citation = Citation(key="v", title="Attention Is All You Need", doi="10.1/unknown")

    match = RegistryLookupService(source).lookup(citation)

    assert match.strategy is LookupStrategy.EXACT_TITLE
    assert match.confidence == 100.0
    assert match.canonical_authors == "Ashish Vaswani"


def test_failed_level_is_logged_and_chain_continues(caplog):
    source = _StubSource(
        searches={
            "Attention Is All You Need": UpstreamError("Upstream service error (503)"),
            "attention is all you need": [_candidate("Attention Is All You Need")],
        },
        doi_result=RateLimitedError("Rate limit exceeded"),
    )
    citation = Citation(key="v", title="Attention Is All You Need", doi="10.1/x")

    with caplog.at_level("WARNING"):
        match = RegistryLookupService(source).lookup(citation)

    assert match.found
    assert match.strategy is LookupStrategy.NORMALIZED_TITLE
    assert "DOI lookup failed" in caplog.text
    assert "exact_title search failed" in caplog.text


def test_author_year_level_uses_surname_and_year():
    citation = Citation(
        key="he2016",
        title="Deep Residual Learning for Image Recognition",
        authors="He, K.; Zhang, X.",
        year=2016,
    )
    author_query = "deep residual learning image recognition He 2016"
    source = _StubSource(
        searches={author_query: [_candidate("Deep Residual Learning for Image Recognition")]}
    )

    match = RegistryLookupService(source).lookup(citation)

    assert match.strategy is LookupStrategy.AUTHOR_YEAR
    assert source.queries == [
        "Deep Residual Learning for Image Recognition",
        "deep residual learning image recognition",
        author_query,
    ]


def test_candidates_below_threshold_are_rejected_at_every_level():
    citation = Citation(
        key="he2016",
        title="Deep Residual Learning for Image Classification",
        authors="He, K.",
        year=2016,
    )
    near_miss = [_candidate("Deep Residual Learning for Image Recognition")]
    source = _StubSource()
    source.searches = {
        "Deep Residual Learning for Image Classification": near_miss,
        "deep residual learning image classification": near_miss,
        "deep residual learning image classification He 2016": near_miss,
    }

    strict = RegistryLookupService(source, threshold=70)
    match = strict.lookup(citation)

    assert not match.found
    assert len(source.queries) == 3

    lenient = RegistryLookupService(source, threshold=50)
    assert lenient.lookup(citation).confidence == pytest.approx(400 / 6)


def test_best_candidate_wins():
    source = _StubSource(
        searches={
            "Attention Is All You Need": [
                _candidate("Attention mechanisms for machine translation"),
                _candidate("Attention Is All You Need", doi="10.1/best"),
            ]
        }
    )

    match = RegistryLookupService(source).lookup(ATTENTION)

    assert match.doi == "10.1/best"


def test_levels_repeating_an_earlier_query_are_skipped():
    source = _StubSource()
    RegistryLookupService(source).lookup(Citation(key="k", title="attention is all you need"))

    assert source.queries == ["attention is all you need"]


def test_accepted_search_is_cached_and_reused():
    cache = InMemoryResponseCache()
    source = _StubSource(
        searches={"attention is all you need": [_candidate("Attention Is All You Need")]}
    )
    service = RegistryLookupService(source, cache=cache)

    first = service.lookup(ATTENTION)
    second = service.lookup(ATTENTION)

    assert first.strategy is LookupStrategy.NORMALIZED_TITLE
    assert not first.from_cache
    assert second.from_cache
    assert second.strategy is LookupStrategy.NORMALIZED_TITLE
    assert second.canonical_title == first.canonical_title
    assert source.queries.count("attention is all you need") == 1
    assert cache.get("stub:attention is all you need")["strategy"] == "normalized_title"


def test_doi_hits_are_not_cached():
    cache = InMemoryResponseCache()
    source = _StubSource(doi_result=_candidate("Attention Is All You Need"))

    RegistryLookupService(source, cache=cache).lookup(
        Citation(key="v", title="Attention Is All You Need", doi="10.1/x")
    )

    assert len(cache) == 0


def test_unreadable_cache_entry_is_a_miss():
    cache = InMemoryResponseCache()
    cache.set("stub:attention is all you need", {"strategy": "bogus", "candidates": "nope"}, ttl=60)
    source = _StubSource(searches={"Attention Is All You Need": [_candidate("Attention Is All You Need")]})

    match = RegistryLookupService(source, cache=cache).lookup(ATTENTION)

    assert match.found
    assert not match.from_cache
    assert source.queries == ["Attention Is All You Need"]


def test_cache_failures_degrade_to_uncached_lookups(caplog):
    source = _StubSource(searches={"Attention Is All You Need": [_candidate("Attention Is All You Need")]})
    service = RegistryLookupService(source, cache=_ExplodingCache())

    with caplog.at_level("WARNING"):
        match = service.lookup(ATTENTION)

    assert match.found
    assert service.cache is None
    assert "continuing without cache" in caplog.text
