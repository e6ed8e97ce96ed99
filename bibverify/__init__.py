"""Session-scoped citation verification functions."""

from __future__ import annotations

from typing import Iterable, List, Optional

from .api import CitationInput, VerificationClient
from .core.models import Citation, VerificationResult, VerificationStatus

_default_client: Optional[VerificationClient] = None


def get_default_client() -> VerificationClient:
    """Return the default ``VerificationClient`` instance, creating it lazily."""

    global _default_client
    if _default_client is None:
        _default_client = VerificationClient()
    return _default_client


def set_default_client(client: Optional[VerificationClient]) -> None:
    """Replace the default client; ``None`` resets it to be rebuilt on next use."""

    global _default_client
    _default_client = client


def verify_batch(citations: Iterable[CitationInput]) -> List[VerificationResult]:
    """Verify a bibliography against the scholarly registries.

    Results are returned in input order; later copies of the same work are
    marked ``duplicate``.
    """

    return get_default_client().verify_batch(citations)


def verify_citation(citation: CitationInput) -> VerificationResult:
    """Verify one citation."""

    return get_default_client().verify_citation(citation)


__all__ = [
    "Citation",
    "VerificationClient",
    "VerificationResult",
    "VerificationStatus",
    "get_default_client",
    "set_default_client",
    "verify_batch",
    "verify_citation",
]
