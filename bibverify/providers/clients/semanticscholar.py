"""Semantic Scholar client for paper search and DOI lookup."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import requests

from bibverify.core.identifiers import normalize_doi
from bibverify.providers.clients.base import BaseHttpClient, NotFoundError

DEFAULT_FIELDS = "paperId,externalIds,title,year,venue,authors.name,url,citationCount"


@dataclass
class SemanticScholarPaper:
    """Normalized representation of a Semantic Scholar paper."""

    paper_id: str
    doi: Optional[str]
    title: Optional[str]
    year: Optional[int]
    venue: Optional[str]
    url: Optional[str]
    citation_count: Optional[int]
    authors: List[str] = field(default_factory=list)


class SemanticScholarClient(BaseHttpClient):
    """Lightweight wrapper around the Semantic Scholar Graph API v1."""

    BASE_URL = "https://api.semanticscholar.org/graph/v1"
    SOURCE_NAME = "semanticscholar"

    def __init__(
        self,
        *,
        api_key: Optional[str] = None,
        session: Optional[requests.Session] = None,
        base_url: Optional[str] = None,
        timeout: float = 10.0,
        rate_limiter: Any = None,
        debug_logging: bool = False,
    ) -> None:
        super().__init__(
            session=session,
            base_url=base_url,
            timeout=timeout,
            rate_limiter=rate_limiter,
            debug_logging=debug_logging,
        )
        self.api_key = api_key

    def _auth_headers(self) -> Optional[Dict[str, str]]:
        if not self.api_key:
            return None
        return {"x-api-key": self.api_key}

    def search_papers(
        self, query: str, *, limit: int = 5, fields: str = DEFAULT_FIELDS
    ) -> List[SemanticScholarPaper]:
        if not query:
            return []

        payload = self._get_json(
            "/paper/search",
            params={"query": query, "limit": limit, "fields": fields},
            headers=self._auth_headers(),
        )
        return [
            self._normalize_paper(item) for item in payload.get("data") or [] if isinstance(item, dict)
        ]

    def get_by_doi(self, doi: str, *, fields: str = DEFAULT_FIELDS) -> Optional[SemanticScholarPaper]:
        normalized_doi = normalize_doi(doi)
        if not normalized_doi:
            return None

        try:
            payload = self._get_json(
                f"/paper/DOI:{normalized_doi}",
                params={"fields": fields},
                headers=self._auth_headers(),
            )
        except NotFoundError:
            return None

        return self._normalize_paper(payload)

    def _normalize_paper(self, data: Dict[str, Any]) -> SemanticScholarPaper:
        external_ids = data.get("externalIds") or {}
        doi = normalize_doi(external_ids.get("DOI") if isinstance(external_ids, dict) else None)
        authors: List[str] = []
        for author in data.get("authors") or []:
            if not isinstance(author, dict):
                continue
            name = author.get("name")
            if name:
                authors.append(name)

        paper_id = str(data.get("paperId") or "")
        citation_count = data.get("citationCount")
        return SemanticScholarPaper(
            paper_id=paper_id,
            doi=doi,
            title=data.get("title"),
            year=data.get("year"),
            venue=data.get("venue") or None,
            url=data.get("url")
            or (f"https://www.semanticscholar.org/paper/{paper_id}" if paper_id else None),
            citation_count=citation_count if isinstance(citation_count, int) else None,
            authors=authors,
        )
