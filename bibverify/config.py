"""Application configuration for citation verification."""

from email.utils import parseaddr
from pathlib import Path
from typing import Any, List, Literal, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from bibverify.exceptions import ConfigError

KNOWN_REGISTRIES = ("openalex", "crossref", "semanticscholar")


class VerificationConfig(BaseSettings):  # type: ignore[misc]
    """Settings controlling registries, thresholds, caching and concurrency.

    Every field can be set through a ``BIBVERIFY_``-prefixed environment
    variable or a ``.env`` file.
    """

    request_timeout_s: float = Field(
        10.0, gt=0, description="Timeout (in seconds) for each outbound HTTP request"
    )
    user_agent: str = Field("bibverify", description="User-Agent header sent to registries")
    mailto: Optional[str] = Field(
        None, description="Contact email for the OpenAlex and Crossref polite pools"
    )
    openalex_api_key: Optional[str] = None
    semanticscholar_api_key: Optional[str] = None
    openalex_base_url: Optional[str] = None
    crossref_base_url: Optional[str] = None
    semanticscholar_base_url: Optional[str] = None

    registries: List[str] = Field(
        default_factory=lambda: list(KNOWN_REGISTRIES),
        description="Registries to query, in tie-breaking order",
    )
    primary_registry: str = Field("openalex", description="Registry held to the stricter threshold")
    primary_threshold: float = Field(70.0, ge=0, le=100)
    secondary_threshold: float = Field(50.0, ge=0, le=100)
    requests_per_second: float = Field(
        3.0, gt=0, description="Request budget per registry, shared by all workers"
    )
    search_rows: int = Field(5, ge=1, le=100, description="Candidates requested per search")

    cache_backend: Literal["memory", "file", "none"] = "memory"
    cache_dir: Path = Field(Path(".cache/bibverify"), description="Directory for the file cache")
    cache_ttl_days: float = Field(30.0, gt=0)

    batch_workers: int = Field(4, ge=1, description="Citations verified concurrently")
    registry_timeout_s: Optional[float] = Field(
        60.0, gt=0, description="Overall wait for one citation's registry fan-out"
    )

    duplicate_title_threshold: float = Field(99.5, ge=0, le=100)
    duplicate_author_threshold: float = Field(80.0, ge=0, le=100)
    detect_suspicious_patterns: bool = True
    debug_http: bool = False

    model_config = SettingsConfigDict(env_prefix="BIBVERIFY_", env_file=".env", extra="ignore")

    def model_post_init(self, __context: Any) -> None:
        """Normalize paths and check that the registry selection is consistent."""

        self.cache_dir = self.cache_dir.expanduser()
        if self.primary_registry not in self.registries:
            raise ConfigError(
                f"primary_registry {self.primary_registry!r} is not among the enabled registries"
            )

    @field_validator("registries", mode="before")
    @classmethod
    def split_registries(cls, value: Any) -> Any:
        if isinstance(value, str):
            return [item.strip() for item in value.split(",") if item.strip()]
        return value

    @field_validator("registries")
    @classmethod
    def validate_registries(cls, value: List[str]) -> List[str]:
        normalized: List[str] = []
        for name in value:
            name = name.strip().lower()
            if name not in KNOWN_REGISTRIES:
                raise ValueError(f"unknown registry {name!r}; expected one of {KNOWN_REGISTRIES}")
            if name not in normalized:
                normalized.append(name)
        if not normalized:
            raise ValueError("at least one registry must be enabled")
        return normalized

    @field_validator("primary_registry")
    @classmethod
    def validate_primary_registry(cls, value: str) -> str:
        value = value.strip().lower()
        if value not in KNOWN_REGISTRIES:
            raise ValueError(f"unknown registry {value!r}")
        return value

    @field_validator("mailto")
    @classmethod
    def validate_mailto(cls, value: Optional[str]) -> Optional[str]:
        if value is None or not value.strip():
            return None
        _, addr = parseaddr(value)
        if "@" not in addr:
            raise ValueError("mailto must contain a valid email address")
        return addr

    def threshold_for(self, registry: str) -> float:
        if registry == self.primary_registry:
            return self.primary_threshold
        return self.secondary_threshold

    @property
    def cache_ttl_seconds(self) -> float:
        return self.cache_ttl_days * 24 * 60 * 60
