"""HTTP clients for the scholarly registries."""

from .base import (
    BaseHttpClient,
    ClientError,
    ForbiddenError,
    MalformedResponseError,
    NotFoundError,
    RateLimitedError,
    RequestRejectedError,
    UnauthorizedError,
    UpstreamError,
)
from .crossref import CrossrefClient, CrossrefWork
from .openalex import OpenAlexClient, OpenAlexWork
from .semanticscholar import SemanticScholarClient, SemanticScholarPaper

__all__ = [
    "BaseHttpClient",
    "ClientError",
    "CrossrefClient",
    "CrossrefWork",
    "ForbiddenError",
    "MalformedResponseError",
    "NotFoundError",
    "OpenAlexClient",
    "OpenAlexWork",
    "RateLimitedError",
    "RequestRejectedError",
    "SemanticScholarClient",
    "SemanticScholarPaper",
    "UnauthorizedError",
    "UpstreamError",
]
