"""Custom exception hierarchy for citation verification."""


class VerificationError(Exception):
    """Base exception for verification engine errors."""


class ConfigError(VerificationError):
    """Raised when configuration is invalid or inconsistent."""


class CacheError(VerificationError):
    """Raised when a response cache cannot be read from or written to."""
