"""Verify one citation against every configured registry and score the result."""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor, wait
from typing import Dict, List, Optional, Sequence

from bibverify.core.issues import Issue
from bibverify.core.models import Citation, RegistryMatch, VerificationResult, VerificationStatus
from bibverify.core.scoring import (
    build_issues,
    classify,
    google_scholar_url,
    score_match,
)
from bibverify.services.registry_lookup_service import RegistryLookupService

logger = logging.getLogger(__name__)


def not_found_result(citation: Citation, reason: str) -> VerificationResult:
    """Result for a citation no registry could confirm."""

    return VerificationResult(
        citation=citation,
        status=VerificationStatus.NOT_FOUND,
        classified_status=VerificationStatus.NOT_FOUND,
        confidence=0,
        issues=[Issue.not_found(), Issue.low_confidence(0, {}, reason=reason)],
        google_scholar_url=google_scholar_url(citation),
    )


class CrossValidationService:
    """Fan a citation out to every registry lookup and fuse the answers.

    Lookups run concurrently, one worker per registry. The validator waits
    for all of them or until ``timeout`` seconds have passed; lookups that
    are still running or that crashed count as not found.
    """

    def __init__(
        self,
        lookups: Sequence[RegistryLookupService],
        *,
        timeout: Optional[float] = None,
        detect_suspicious: bool = True,
        current_year: Optional[int] = None,
    ) -> None:
        if not lookups:
            raise ValueError("At least one registry lookup is required")
        self.lookups = list(lookups)
        self.timeout = timeout
        self.detect_suspicious = detect_suspicious
        self.current_year = current_year

    def verify(self, citation: Citation) -> VerificationResult:
        if not (citation.title or "").strip():
            return not_found_result(citation, "citation has no title to search for")

        matches = self.collect_matches(citation)
        found = [match for match in matches if match.found]
        if not found:
            return not_found_result(citation, "no registry returned a matching record")

        best_match = found[0]
        best_breakdown = score_match(citation, best_match, len(found))
        for match in found[1:]:
            breakdown = score_match(citation, match, len(found))
            if breakdown.confidence > best_breakdown.confidence:
                best_match, best_breakdown = match, breakdown

        issues = build_issues(
            citation,
            best_match,
            best_breakdown,
            detect_suspicious=self.detect_suspicious,
            current_year=self.current_year,
        )
        confidence = best_breakdown.confidence
        status = classify(confidence, issues, is_retracted=best_match.is_retracted)

        return VerificationResult(
            citation=citation,
            status=status,
            classified_status=status,
            confidence=confidence,
            canonical_title=best_match.canonical_title,
            canonical_authors=best_match.canonical_authors,
            canonical_year=best_match.canonical_year,
            venue=best_match.venue,
            doi=best_match.doi,
            cited_by_count=best_match.citation_count,
            is_retracted=best_match.is_retracted,
            issues=issues,
            verified_by={match.source for match in found},
            score=best_breakdown,
            source_urls={match.source: match.url for match in found if match.url},
            google_scholar_url=google_scholar_url(citation),
            is_preprint=best_match.is_preprint,
        )

    def collect_matches(self, citation: Citation) -> List[RegistryMatch]:
        """Run every lookup concurrently and return matches in configured order."""

        executor = ThreadPoolExecutor(
            max_workers=len(self.lookups), thread_name_prefix="bibverify-lookup"
        )
        try:
            futures = {
                executor.submit(lookup.lookup, citation): lookup for lookup in self.lookups
            }
            done, not_done = wait(futures, timeout=self.timeout)
            for future in not_done:
                future.cancel()
                logger.warning(
                    "%s lookup timed out for %s", futures[future].name, citation.key
                )

            results: Dict[str, RegistryMatch] = {}
            for future in done:
                lookup = futures[future]
                try:
                    results[lookup.name] = future.result()
                except Exception:
                    logger.exception("%s lookup crashed for %s", lookup.name, citation.key)
        finally:
            executor.shutdown(wait=False)

        return [
            results.get(lookup.name) or RegistryMatch.not_found(lookup.name)
            for lookup in self.lookups
        ]


__all__ = ["CrossValidationService", "not_found_result"]
