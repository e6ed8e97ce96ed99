"""Verify a whole bibliography and annotate duplicates once every item is done."""

from __future__ import annotations

import logging
from collections import Counter
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Callable, Dict, List, Optional, Sequence

from bibverify.core.models import BatchSummary, Citation, VerificationResult, VerificationStatus
from bibverify.services.cross_validation_service import CrossValidationService, not_found_result
from bibverify.services.duplicate_detection_service import DuplicateDetectionService

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, int], None]

_ISSUE_STATUSES = {
    VerificationStatus.ISSUE,
    VerificationStatus.RETRACTED,
    VerificationStatus.NOT_FOUND,
}


class BatchVerificationService:
    """Run the cross-validator over a batch with a bounded worker pool.

    Results come back in input order regardless of completion order. An item
    whose verification crashes degrades to a ``not_found`` result so one bad
    record never fails the batch. Duplicate detection runs once, after all
    items have finished.
    """

    def __init__(
        self,
        validator: CrossValidationService,
        detector: Optional[DuplicateDetectionService] = None,
        *,
        max_workers: int = 4,
        progress_callback: Optional[ProgressCallback] = None,
    ) -> None:
        if max_workers < 1:
            raise ValueError("max_workers must be at least 1")
        self.validator = validator
        self.detector = detector or DuplicateDetectionService()
        self.max_workers = max_workers
        self.progress_callback = progress_callback

    def verify_batch(self, citations: Sequence[Citation]) -> List[VerificationResult]:
        citations = list(citations)
        total = len(citations)
        if not total:
            return []

        repeated = [key for key, count in Counter(c.key for c in citations).items() if count > 1]
        if repeated:
            logger.warning("Batch contains repeated citation keys: %s", ", ".join(sorted(repeated)))

        results: Dict[int, VerificationResult] = {}
        done = 0
        with ThreadPoolExecutor(
            max_workers=min(self.max_workers, total), thread_name_prefix="bibverify-batch"
        ) as executor:
            futures = {
                executor.submit(self.validator.verify, citation): index
                for index, citation in enumerate(citations)
            }
            for future in as_completed(futures):
                index = futures[future]
                citation = citations[index]
                try:
                    results[index] = future.result()
                except Exception:
                    logger.exception("Verification crashed", extra={"citation_key": citation.key})
                    results[index] = not_found_result(citation, "verification failed unexpectedly")
                done += 1
                self._report_progress(done, total)

        ordered = [results[index] for index in range(total)]
        groups = self.detector.mark_duplicates(ordered)

        summary = self.summarize(ordered)
        logger.info(
            "Batch verification finished",
            extra={**summary.to_dict(), "duplicate_groups": len(groups)},
        )
        return ordered

    def _report_progress(self, done: int, total: int) -> None:
        if self.progress_callback is None:
            return
        try:
            self.progress_callback(done, total)
        except Exception:
            logger.exception("Progress callback failed at %s/%s", done, total)

    @staticmethod
    def summarize(results: Sequence[VerificationResult]) -> BatchSummary:
        summary = BatchSummary(total=len(results))
        group_ids = set()
        for result in results:
            status = result.status
            if status is VerificationStatus.VERIFIED:
                summary.verified += 1
            elif status is VerificationStatus.WARNING:
                summary.warnings += 1
            elif status in _ISSUE_STATUSES:
                summary.issues += 1
            elif status is VerificationStatus.DUPLICATE:
                summary.duplicates += 1
            if result.duplicate_group_id:
                group_ids.add(result.duplicate_group_id)
        summary.duplicate_groups = len(group_ids)
        return summary


__all__ = ["BatchVerificationService", "ProgressCallback"]
