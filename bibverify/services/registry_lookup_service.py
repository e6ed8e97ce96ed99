"""Four-level registry lookup shared by every registry source.

Example
-------
```python
from bibverify.core.models import Citation
from bibverify.providers.sources import CrossrefSource
from bibverify.services.registry_lookup_service import RegistryLookupService

lookup = RegistryLookupService(CrossrefSource())
match = lookup.lookup(Citation(key="vaswani2017", title="Attention is all you need"))
```
"""

from __future__ import annotations

import logging
from typing import Callable, List, Optional, Tuple

from bibverify.cache import ResponseCache
from bibverify.core.identifiers import extract_surname, normalize_title
from bibverify.core.matching import title_similarity
from bibverify.core.models import Citation, LookupStrategy, RegistryCandidate, RegistryMatch
from bibverify.providers.clients.base import ClientError
from bibverify.providers.sources import RegistrySource

logger = logging.getLogger(__name__)

DEFAULT_CACHE_TTL_SECONDS = 30 * 24 * 60 * 60


class RegistryLookupService:
    """Find the registry record that best matches a citation.

    Levels are tried in order: DOI, exact title, normalized title, then
    normalized title with first-author surname and year. A title level
    accepts the candidate with the highest title similarity when it clears
    the source's acceptance threshold. Registry failures at any level are
    logged and the chain moves on; the service never raises for a citation.
    """

    def __init__(
        self,
        source: RegistrySource,
        *,
        cache: Optional[ResponseCache] = None,
        threshold: Optional[float] = None,
        cache_ttl: float = DEFAULT_CACHE_TTL_SECONDS,
    ) -> None:
        self.source = source
        self.cache = cache
        self.threshold = float(threshold if threshold is not None else source.acceptance_threshold)
        self.cache_ttl = cache_ttl

    @property
    def name(self) -> str:
        return self.source.name

    def lookup(self, citation: Citation) -> RegistryMatch:
        title = (citation.title or "").strip()
        if not title:
            return RegistryMatch.not_found(self.name)

        if citation.doi:
            match = self._lookup_doi(citation.doi)
            if match is not None:
                return match

        cache_key = self.cache_key(title)
        cached = self._read_cache(cache_key, title)
        if cached is not None:
            return cached

        attempted: List[str] = []
        for strategy, query in self._title_queries(citation):
            if not query or query in attempted:
                continue
            attempted.append(query)

            candidates = self._search(query, strategy)
            best = self._best_candidate(title, candidates)
            if best is None:
                logger.debug(
                    "%s %s level found no acceptable candidate for %r",
                    self.name,
                    strategy.value,
                    title,
                )
                continue

            candidate, similarity = best
            self._write_cache(cache_key, strategy, candidates)
            logger.info(
                "Registry lookup accepted candidate",
                extra={
                    "source": self.name,
                    "strategy": strategy.value,
                    "title": title,
                    "similarity": round(similarity, 1),
                },
            )
            return RegistryMatch.from_candidate(candidate, confidence=similarity, strategy=strategy)

        return RegistryMatch.not_found(self.name)

    def cache_key(self, title: str) -> str:
        return f"{self.name}:{normalize_title(title)}"

    def _title_queries(self, citation: Citation) -> List[Tuple[LookupStrategy, str]]:
        normalized = normalize_title(citation.title)
        queries = [
            (LookupStrategy.EXACT_TITLE, citation.title.strip()),
            (LookupStrategy.NORMALIZED_TITLE, normalized),
        ]
        surname = extract_surname(citation.authors)
        if normalized and surname and citation.year is not None:
            queries.append(
                (LookupStrategy.AUTHOR_YEAR, f"{normalized} {surname} {citation.year}")
            )
        return queries

    def _lookup_doi(self, doi: str) -> Optional[RegistryMatch]:
        try:
            candidate = self.source.lookup_by_doi(doi)
        except ClientError as exc:
            logger.warning("%s DOI lookup failed for %s: %s", self.name, doi, exc)
            return None
        if candidate is None:
            logger.debug("%s has no record for doi=%s", self.name, doi)
            return None
        return RegistryMatch.from_candidate(candidate, confidence=100.0, strategy=LookupStrategy.DOI)

    def _search(self, query: str, strategy: LookupStrategy) -> List[RegistryCandidate]:
        try:
            return self.source.search(query)
        except ClientError as exc:
            logger.warning(
                "%s %s search failed for %r: %s", self.name, strategy.value, query, exc
            )
            return []

    def _best_candidate(
        self, title: str, candidates: List[RegistryCandidate]
    ) -> Optional[Tuple[RegistryCandidate, float]]:
        best: Optional[Tuple[RegistryCandidate, float]] = None
        for candidate in candidates:
            similarity = title_similarity(title, candidate.title)
            if best is None or similarity > best[1]:
                best = (candidate, similarity)
        if best is None or best[1] < self.threshold:
            return None
        return best

    def _read_cache(self, cache_key: str, title: str) -> Optional[RegistryMatch]:
        payload = self._call_cache(lambda cache: cache.get(cache_key), "read")
        if payload is None:
            return None

        try:
            strategy = LookupStrategy(payload["strategy"])
            candidates = [RegistryCandidate.from_dict(item) for item in payload["candidates"]]
        except (KeyError, TypeError, ValueError):
            logger.debug("Ignoring unreadable cache entry %s", cache_key)
            return None

        best = self._best_candidate(title, candidates)
        if best is None:
            return None
        candidate, similarity = best
        return RegistryMatch.from_candidate(
            candidate, confidence=similarity, strategy=strategy, from_cache=True
        )

    def _write_cache(
        self, cache_key: str, strategy: LookupStrategy, candidates: List[RegistryCandidate]
    ) -> None:
        payload = {
            "strategy": strategy.value,
            "candidates": [candidate.to_dict() for candidate in candidates],
        }
        self._call_cache(lambda cache: cache.set(cache_key, payload, self.cache_ttl), "write")

    def _call_cache(self, operation: Callable[[ResponseCache], object], action: str) -> Optional[object]:
        cache = self.cache
        if cache is None:
            return None
        try:
            return operation(cache)
        except Exception as exc:
            logger.warning(
                "Response cache %s failed for %s, continuing without cache: %s",
                action,
                self.name,
                exc,
            )
            self.cache = None
            return None


__all__ = ["DEFAULT_CACHE_TTL_SECONDS", "RegistryLookupService"]
