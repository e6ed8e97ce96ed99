"""Client for querying the OpenAlex Works API."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional
from urllib.parse import quote

import requests

from bibverify.core.identifiers import normalize_doi
from bibverify.providers.clients.base import BaseHttpClient, NotFoundError

logger = logging.getLogger(__name__)

PREPRINT_INDICATORS = (
    "arxiv",
    "biorxiv",
    "medrxiv",
    "chemrxiv",
    "ssrn",
    "preprint",
    "repository",
    "research square",
    "authorea",
    "zenodo",
    "figshare",
    "psyarxiv",
    "socarxiv",
    "engrxiv",
    "techrxiv",
    "eartharxiv",
)


@dataclass
class OpenAlexWork:
    """Normalized representation of an OpenAlex work."""

    openalex_id: str
    openalex_url: str
    doi: Optional[str]
    title: Optional[str]
    year: Optional[int]
    venue: Optional[str]
    source_type: Optional[str]
    cited_by_count: Optional[int]
    is_retracted: bool
    authors: List[str] = field(default_factory=list)

    @property
    def is_preprint(self) -> bool:
        if self.source_type == "repository":
            return True
        venue = (self.venue or "").lower()
        return any(indicator in venue for indicator in PREPRINT_INDICATORS)


class OpenAlexClient(BaseHttpClient):
    """Lightweight wrapper around the OpenAlex Works API."""

    BASE_URL = "https://api.openalex.org"
    SOURCE_NAME = "openalex"

    def __init__(
        self,
        *,
        mailto: Optional[str] = None,
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
        self.mailto = mailto
        self.api_key = api_key

    def _base_params(self) -> Dict[str, Any]:
        params: Dict[str, Any] = {}
        if self.mailto:
            params["mailto"] = self.mailto
        if self.api_key:
            params["api_key"] = self.api_key
        return params

    def get_work_by_doi(self, doi: str) -> Optional[OpenAlexWork]:
        """Fetch a work by DOI, returning ``None`` when OpenAlex has no record."""

        normalized = normalize_doi(doi)
        if not normalized:
            return None

        encoded = quote(f"https://doi.org/{normalized}", safe="")
        try:
            payload = self._get_json(f"/works/{encoded}", params=self._base_params() or None)
        except NotFoundError:
            logger.debug("OpenAlex has no work for doi=%s", normalized)
            return None
        return self._normalize_work(payload)

    def search_works(self, query: str, *, per_page: int = 5) -> List[OpenAlexWork]:
        """Full-text search over work titles and abstracts."""

        if not query:
            return []

        params = self._base_params()
        params.update({"search": query, "per-page": per_page})
        payload = self._get_json("/works", params=params)
        results = payload.get("results") or []
        return [self._normalize_work(item) for item in results if isinstance(item, dict)]

    def _normalize_work(self, data: Dict[str, Any]) -> OpenAlexWork:
        openalex_id = self._normalize_openalex_id(data.get("id"))
        source = self._primary_source(data)
        cited_by_count = data.get("cited_by_count")

        return OpenAlexWork(
            openalex_id=openalex_id,
            openalex_url=f"https://openalex.org/{openalex_id}" if openalex_id else "",
            doi=normalize_doi(data.get("doi")),
            title=data.get("display_name") or data.get("title"),
            year=data.get("publication_year"),
            venue=source.get("display_name") or self._normalize_venue(data.get("host_venue")),
            source_type=source.get("type"),
            cited_by_count=cited_by_count if isinstance(cited_by_count, int) else None,
            is_retracted=bool(data.get("is_retracted")),
            authors=self._extract_authors(data.get("authorships") or []),
        )

    def _primary_source(self, data: Dict[str, Any]) -> Dict[str, Any]:
        location = data.get("primary_location")
        if not isinstance(location, dict):
            return {}
        source = location.get("source")
        return source if isinstance(source, dict) else {}

    def _extract_authors(self, authorships: Iterable[Dict[str, Any]]) -> List[str]:
        authors: List[str] = []
        for authorship in authorships:
            if not isinstance(authorship, dict):
                continue
            author = authorship.get("author") or {}
            name = author.get("display_name") or authorship.get("raw_author_name")
            if name:
                authors.append(name)
        return authors

    def _normalize_openalex_id(self, raw_id: Optional[str]) -> str:
        if not raw_id:
            return ""
        return raw_id.rsplit("/", 1)[-1]

    def _normalize_venue(self, host_venue: Any) -> Optional[str]:
        if isinstance(host_venue, dict):
            return host_venue.get("display_name")
        return None
