"""Crossref client for DOI resolution and bibliographic search."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import requests

from bibverify.core.identifiers import normalize_doi
from bibverify.providers.clients.base import BaseHttpClient, NotFoundError

RETRACTION_UPDATE_TYPES = {"retraction", "withdrawal", "removal"}


@dataclass
class CrossrefWork:
    doi: Optional[str]
    title: Optional[str]
    year: Optional[int]
    venue: Optional[str]
    url: Optional[str]
    is_referenced_by_count: Optional[int]
    is_retracted: bool
    authors: List[str] = field(default_factory=list)


class CrossrefClient(BaseHttpClient):
    """Lightweight wrapper around the Crossref works API.

    Crossref asks clients to identify themselves with a ``mailto`` parameter
    to be routed to the polite pool.
    """

    BASE_URL = "https://api.crossref.org"
    SOURCE_NAME = "crossref"

    def __init__(
        self,
        *,
        mailto: Optional[str] = None,
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

    def works_by_doi(self, doi: str) -> Optional[CrossrefWork]:
        normalized_doi = normalize_doi(doi)
        if not normalized_doi:
            return None

        params = {"mailto": self.mailto} if self.mailto else None
        try:
            payload = self._get_json(f"/works/{normalized_doi}", params=params)
        except NotFoundError:
            return None

        return self._normalize_work(payload.get("message") or {})

    def search_bibliographic(self, query: str, *, rows: int = 5) -> List[CrossrefWork]:
        if not query:
            return []

        params: Dict[str, Any] = {"query.bibliographic": query, "rows": rows}
        if self.mailto:
            params["mailto"] = self.mailto

        payload = self._get_json("/works", params=params)
        message = payload.get("message") or {}
        items = message.get("items") if isinstance(message, dict) else None
        works: List[CrossrefWork] = []
        for item in items or []:
            work = self._normalize_work(item)
            if work:
                works.append(work)
        return works

    def _normalize_work(self, data: Dict[str, Any]) -> Optional[CrossrefWork]:
        if not isinstance(data, dict):
            return None

        doi = normalize_doi(data.get("DOI"))
        title_parts = data.get("title") or []
        title = title_parts[0] if isinstance(title_parts, list) and title_parts else None

        if not title and not doi:
            return None

        count = data.get("is-referenced-by-count")
        return CrossrefWork(
            doi=doi,
            title=title,
            year=self._extract_year(data),
            venue=self._extract_venue(data),
            url=data.get("URL") or (f"https://doi.org/{doi}" if doi else None),
            is_referenced_by_count=count if isinstance(count, int) else None,
            is_retracted=self._is_retracted(data, title),
            authors=self._extract_authors(data.get("author") or []),
        )

    def _is_retracted(self, data: Dict[str, Any], title: Optional[str]) -> bool:
        for update in data.get("updated-by") or []:
            if isinstance(update, dict) and str(update.get("type", "")).lower() in RETRACTION_UPDATE_TYPES:
                return True
        return bool(title and title.strip().upper().startswith("RETRACTED"))

    def _extract_year(self, data: Dict[str, Any]) -> Optional[int]:
        for key in ("issued", "published-print", "published-online"):
            component = data.get(key, {})
            if not isinstance(component, dict):
                continue
            parts = component.get("date-parts")
            if isinstance(parts, list) and parts and isinstance(parts[0], list) and parts[0]:
                year = parts[0][0]
                if isinstance(year, int):
                    return year
        return None

    def _extract_authors(self, authors: List[Dict[str, Any]]) -> List[str]:
        extracted: List[str] = []
        for author in authors:
            if not isinstance(author, dict):
                continue
            family = author.get("family")
            given = author.get("given")
            if family and given:
                extracted.append(f"{given} {family}")
            elif family or given:
                extracted.append(str(family or given))
            elif author.get("name"):
                extracted.append(str(author["name"]))
        return extracted

    def _extract_venue(self, data: Dict[str, Any]) -> Optional[str]:
        container_title = data.get("container-title")
        if isinstance(container_title, list) and container_title:
            return container_title[0]
        return None
