from __future__ import annotations

from bibverify.core.identifiers import normalize_doi
from bibverify.core.models import RegistryCandidate
from bibverify.providers.clients.crossref import CrossrefWork
from bibverify.providers.clients.openalex import OpenAlexWork
from bibverify.providers.clients.semanticscholar import SemanticScholarPaper


def openalex_work_to_candidate(work: OpenAlexWork) -> RegistryCandidate:
    return RegistryCandidate(
        source="openalex",
        title=work.title or "",
        authors=list(work.authors),
        year=work.year,
        doi=normalize_doi(work.doi),
        venue=work.venue,
        citation_count=work.cited_by_count,
        is_retracted=work.is_retracted,
        url=work.openalex_url or None,
        is_preprint=work.is_preprint,
    )


def crossref_work_to_candidate(work: CrossrefWork) -> RegistryCandidate:
    return RegistryCandidate(
        source="crossref",
        title=work.title or "",
        authors=list(work.authors),
        year=work.year,
        doi=normalize_doi(work.doi),
        venue=work.venue,
        citation_count=work.is_referenced_by_count,
        is_retracted=work.is_retracted,
        url=work.url,
    )


def semanticscholar_paper_to_candidate(record: SemanticScholarPaper) -> RegistryCandidate:
    return RegistryCandidate(
        source="semanticscholar",
        title=record.title or "",
        authors=list(record.authors),
        year=record.year,
        doi=normalize_doi(record.doi),
        venue=record.venue,
        citation_count=record.citation_count,
        url=record.url,
    )
