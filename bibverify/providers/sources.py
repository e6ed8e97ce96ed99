"""Registry sources: one uniform search/DOI interface over each HTTP client.

The lookup fallback chain lives in
:class:`bibverify.services.registry_lookup_service.RegistryLookupService` and
is shared by every source; a source only knows how to talk to its registry.
"""

from __future__ import annotations

from typing import List, Optional, Protocol, runtime_checkable

from bibverify.core.models import RegistryCandidate
from bibverify.providers.adapters import (
    crossref_work_to_candidate,
    openalex_work_to_candidate,
    semanticscholar_paper_to_candidate,
)
from bibverify.providers.clients.crossref import CrossrefClient
from bibverify.providers.clients.openalex import OpenAlexClient
from bibverify.providers.clients.semanticscholar import SemanticScholarClient

PRIMARY_ACCEPTANCE_THRESHOLD = 70.0
SECONDARY_ACCEPTANCE_THRESHOLD = 50.0


@runtime_checkable
class RegistrySource(Protocol):
    name: str
    acceptance_threshold: float

    def search(self, query: str) -> List[RegistryCandidate]:
        ...

    def lookup_by_doi(self, doi: str) -> Optional[RegistryCandidate]:
        ...


def _with_title(candidates: List[RegistryCandidate]) -> List[RegistryCandidate]:
    return [candidate for candidate in candidates if candidate.title]


class OpenAlexSource:
    name = "openalex"

    def __init__(
        self,
        client: Optional[OpenAlexClient] = None,
        *,
        acceptance_threshold: float = PRIMARY_ACCEPTANCE_THRESHOLD,
        rows: int = 5,
    ) -> None:
        self.client = client or OpenAlexClient()
        self.acceptance_threshold = acceptance_threshold
        self.rows = rows

    def search(self, query: str) -> List[RegistryCandidate]:
        works = self.client.search_works(query, per_page=self.rows)
        return _with_title([openalex_work_to_candidate(work) for work in works])

    def lookup_by_doi(self, doi: str) -> Optional[RegistryCandidate]:
        work = self.client.get_work_by_doi(doi)
        if work is None or not work.title:
            return None
        return openalex_work_to_candidate(work)


class CrossrefSource:
    name = "crossref"

    def __init__(
        self,
        client: Optional[CrossrefClient] = None,
        *,
        acceptance_threshold: float = SECONDARY_ACCEPTANCE_THRESHOLD,
        rows: int = 5,
    ) -> None:
        self.client = client or CrossrefClient()
        self.acceptance_threshold = acceptance_threshold
        self.rows = rows

    def search(self, query: str) -> List[RegistryCandidate]:
        works = self.client.search_bibliographic(query, rows=self.rows)
        return _with_title([crossref_work_to_candidate(work) for work in works])

    def lookup_by_doi(self, doi: str) -> Optional[RegistryCandidate]:
        work = self.client.works_by_doi(doi)
        if work is None or not work.title:
            return None
        return crossref_work_to_candidate(work)


class SemanticScholarSource:
    name = "semanticscholar"

    def __init__(
        self,
        client: Optional[SemanticScholarClient] = None,
        *,
        acceptance_threshold: float = SECONDARY_ACCEPTANCE_THRESHOLD,
        rows: int = 5,
    ) -> None:
        self.client = client or SemanticScholarClient()
        self.acceptance_threshold = acceptance_threshold
        self.rows = rows

    def search(self, query: str) -> List[RegistryCandidate]:
        papers = self.client.search_papers(query, limit=self.rows)
        return _with_title([semanticscholar_paper_to_candidate(paper) for paper in papers])

    def lookup_by_doi(self, doi: str) -> Optional[RegistryCandidate]:
        paper = self.client.get_by_doi(doi)
        if paper is None or not paper.title:
            return None
        return semanticscholar_paper_to_candidate(paper)


__all__ = [
    "CrossrefSource",
    "OpenAlexSource",
    "PRIMARY_ACCEPTANCE_THRESHOLD",
    "RegistrySource",
    "SECONDARY_ACCEPTANCE_THRESHOLD",
    "SemanticScholarSource",
]
