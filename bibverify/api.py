"""High-level verification API.

This module exposes the :class:`VerificationClient` facade, which wires the
registry clients, rate limiters, response cache and services from a single
:class:`~bibverify.config.VerificationConfig`. The functional helpers in
:mod:`bibverify.__init__` delegate to a lazily created default client.

Example
-------
```python
from bibverify.api import VerificationClient
from bibverify.core.models import Citation

client = VerificationClient()
results = client.verify_batch(
    [Citation(key="he2016", title="Deep Residual Learning for Image Recognition", year=2016)]
)
for result in results:
    print(result.status.value, result.confidence, result.issue_messages())
```
"""

from __future__ import annotations

import logging
from typing import Any, Iterable, List, Mapping, Optional, Sequence, Union

import requests

from .cache import FileResponseCache, InMemoryResponseCache, ResponseCache
from .config import VerificationConfig
from .core.models import BatchSummary, Citation, VerificationResult
from .exceptions import CacheError
from .providers.clients.crossref import CrossrefClient
from .providers.clients.openalex import OpenAlexClient
from .providers.clients.semanticscholar import SemanticScholarClient
from .providers.rate_limit import RateLimiterRegistry
from .providers.sources import CrossrefSource, OpenAlexSource, RegistrySource, SemanticScholarSource
from .services.batch_verification_service import BatchVerificationService, ProgressCallback
from .services.cross_validation_service import CrossValidationService
from .services.duplicate_detection_service import DuplicateDetectionService
from .services.registry_lookup_service import RegistryLookupService

logger = logging.getLogger(__name__)

CitationInput = Union[Citation, Mapping[str, Any]]


def build_cache(config: VerificationConfig) -> Optional[ResponseCache]:
    """Create the response cache selected by ``config.cache_backend``.

    An unusable file cache directory is logged and verification continues
    without caching.
    """

    if config.cache_backend == "none":
        return None
    if config.cache_backend == "file":
        try:
            return FileResponseCache(config.cache_dir)
        except CacheError as exc:
            logger.warning("File cache unavailable, continuing without cache: %s", exc)
            return None
    return InMemoryResponseCache()


class VerificationClient:
    """Facade around registry lookup, cross-validation and duplicate detection."""

    def __init__(
        self,
        config: Optional[VerificationConfig] = None,
        *,
        session: Optional[requests.Session] = None,
        sources: Optional[Sequence[RegistrySource]] = None,
        cache: Optional[ResponseCache] = None,
        progress_callback: Optional[ProgressCallback] = None,
    ) -> None:
        self.config = config or VerificationConfig()
        if session is None:
            session = requests.Session()
        if self.config.user_agent:
            session.headers["User-Agent"] = self.config.user_agent
        self.session = session

        self.cache = cache if cache is not None else build_cache(self.config)
        self.rate_limiters = RateLimiterRegistry(self.config.requests_per_second)
        self.sources = list(sources) if sources is not None else self._build_sources()

        lookups = [
            RegistryLookupService(
                source,
                cache=self.cache,
                threshold=source.acceptance_threshold,
                cache_ttl=self.config.cache_ttl_seconds,
            )
            for source in self.sources
        ]
        self.validator = CrossValidationService(
            lookups,
            timeout=self.config.registry_timeout_s,
            detect_suspicious=self.config.detect_suspicious_patterns,
        )
        self.detector = DuplicateDetectionService(
            title_threshold=self.config.duplicate_title_threshold,
            author_threshold=self.config.duplicate_author_threshold,
        )
        self._batch_service = BatchVerificationService(
            self.validator,
            self.detector,
            max_workers=self.config.batch_workers,
            progress_callback=progress_callback,
        )

    def _build_sources(self) -> List[RegistrySource]:
        config = self.config
        common = {
            "session": self.session,
            "timeout": config.request_timeout_s,
            "debug_logging": config.debug_http,
        }
        builders = {
            "openalex": lambda: OpenAlexSource(
                OpenAlexClient(
                    mailto=config.mailto,
                    api_key=config.openalex_api_key,
                    base_url=config.openalex_base_url,
                    rate_limiter=self.rate_limiters.get("openalex"),
                    **common,
                ),
                acceptance_threshold=config.threshold_for("openalex"),
                rows=config.search_rows,
            ),
            "crossref": lambda: CrossrefSource(
                CrossrefClient(
                    mailto=config.mailto,
                    base_url=config.crossref_base_url,
                    rate_limiter=self.rate_limiters.get("crossref"),
                    **common,
                ),
                acceptance_threshold=config.threshold_for("crossref"),
                rows=config.search_rows,
            ),
            "semanticscholar": lambda: SemanticScholarSource(
                SemanticScholarClient(
                    api_key=config.semanticscholar_api_key,
                    base_url=config.semanticscholar_base_url,
                    rate_limiter=self.rate_limiters.get("semanticscholar"),
                    **common,
                ),
                acceptance_threshold=config.threshold_for("semanticscholar"),
                rows=config.search_rows,
            ),
        }
        return [builders[name]() for name in config.registries]

    @staticmethod
    def coerce_citations(citations: Iterable[CitationInput]) -> List[Citation]:
        coerced: List[Citation] = []
        for index, item in enumerate(citations):
            if isinstance(item, Citation):
                coerced.append(item)
            else:
                coerced.append(Citation.from_dict(item, index=index))
        return coerced

    def verify_citation(self, citation: CitationInput) -> VerificationResult:
        """Verify a single citation without duplicate detection."""

        return self.validator.verify(self.coerce_citations([citation])[0])

    def verify_batch(self, citations: Iterable[CitationInput]) -> List[VerificationResult]:
        """Verify every citation and annotate duplicates within the batch."""

        return self._batch_service.verify_batch(self.coerce_citations(citations))

    def summarize(self, results: Sequence[VerificationResult]) -> BatchSummary:
        return self._batch_service.summarize(results)


__all__ = ["CitationInput", "VerificationClient", "build_cache"]
