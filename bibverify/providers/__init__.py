"""Registry clients, adapters, sources and rate limiting."""

from .rate_limit import RateLimiterRegistry, TokenBucket
from .sources import CrossrefSource, OpenAlexSource, RegistrySource, SemanticScholarSource

__all__ = [
    "CrossrefSource",
    "OpenAlexSource",
    "RateLimiterRegistry",
    "RegistrySource",
    "SemanticScholarSource",
    "TokenBucket",
]
