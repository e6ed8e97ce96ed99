"""Group citations in one batch that refer to the same work."""

from __future__ import annotations

import hashlib
import logging
from collections import deque
from typing import Deque, Dict, List, Sequence, Set

from bibverify.core.issues import Issue
from bibverify.core.matching import author_similarity, edit_similarity
from bibverify.core.models import DuplicateGroup, VerificationResult, VerificationStatus

logger = logging.getLogger(__name__)

DEFAULT_TITLE_THRESHOLD = 99.5
DEFAULT_AUTHOR_THRESHOLD = 80.0


def _group_id(member_keys: Sequence[str]) -> str:
    digest = hashlib.sha1("\x1f".join(member_keys).encode("utf-8")).hexdigest()
    return f"dup-{digest[:12]}"


class DuplicateDetectionService:
    """Pairwise duplicate detection in batch order.

    Two citations with different DOIs are never duplicates, two with the same
    DOI always are. Only cited DOIs count, since a registry DOI was matched
    by title and does not identify the cited work. Otherwise titles must be
    near-identical by edit distance, years must be present and equal, and
    author lists must overlap. The earliest member of a group is its primary.
    """

    def __init__(
        self,
        *,
        title_threshold: float = DEFAULT_TITLE_THRESHOLD,
        author_threshold: float = DEFAULT_AUTHOR_THRESHOLD,
    ) -> None:
        self.title_threshold = title_threshold
        self.author_threshold = author_threshold

    def is_duplicate(self, first: VerificationResult, second: VerificationResult) -> bool:
        first_doi = first.citation.doi
        second_doi = second.citation.doi
        if first_doi and second_doi:
            return first_doi == second_doi

        if edit_similarity(first.citation.title, second.citation.title) < self.title_threshold:
            return False

        first_year = first.citation.year
        second_year = second.citation.year
        if first_year is None or second_year is None or first_year != second_year:
            return False

        return (
            author_similarity(first.citation.authors, second.citation.authors)
            >= self.author_threshold
        )

    def detect_duplicates(self, results: Sequence[VerificationResult]) -> List[DuplicateGroup]:
        grouped: Set[int] = set()
        groups: List[DuplicateGroup] = []

        for index, result in enumerate(results):
            if index in grouped:
                continue
            members = [index]
            for other_index in range(index + 1, len(results)):
                if other_index in grouped:
                    continue
                if self.is_duplicate(result, results[other_index]):
                    members.append(other_index)

            if len(members) < 2:
                continue

            grouped.update(members)
            member_keys = [results[member].key for member in members]
            group = DuplicateGroup(group_id=_group_id(member_keys), member_keys=member_keys)
            groups.append(group)
            logger.info(
                "Duplicate group formed",
                extra={
                    "group_id": group.group_id,
                    "primary_key": group.primary_key,
                    "group_size": group.size,
                },
            )

        return groups

    def apply_groups(
        self, results: Sequence[VerificationResult], groups: Sequence[DuplicateGroup]
    ) -> None:
        """Annotate ``results`` in place with their duplicate group membership."""

        # Repeated keys resolve to their occurrences in batch order.
        by_key: Dict[str, Deque[VerificationResult]] = {}
        for result in results:
            by_key.setdefault(result.key, deque()).append(result)

        for group in groups:
            for position, key in enumerate(group.member_keys):
                pending = by_key.get(key)
                if not pending:
                    continue
                result = pending.popleft()
                result.duplicate_group_id = group.group_id
                result.duplicate_group_count = group.size
                result.is_primary_duplicate = position == 0
                if position == 0:
                    continue
                result.status = VerificationStatus.DUPLICATE
                issue = Issue.duplicate(group.size, group.group_id)
                if issue not in result.issues:
                    result.issues.append(issue)

    def mark_duplicates(self, results: Sequence[VerificationResult]) -> List[DuplicateGroup]:
        groups = self.detect_duplicates(results)
        self.apply_groups(results, groups)
        return groups


__all__ = ["DuplicateDetectionService"]
