"""Catalog pipeline configuration values."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Final

from .env import (
    env_float,
    env_int,
    env_list,
    env_optional_float,
    optional_env,
    require_env_vars,
)
from .errors import ConfigurationError
from .http_resilience import CacheConfig, RateLimit, ResilienceConfig, RetryPolicy

DEFAULT_CATALOG_PATH: Final[str] = "data/companies.json"
DEFAULT_SOURCE_ROOT: Final[str] = "company-wise-problems"
DEFAULT_SOURCE_SUFFIXES: Final[tuple[str, ...]] = (
    "1. Thirty Days.csv",
    "2. Three Months.csv",
    "3. Six Months.csv",
    "4. More Than Six Months.csv",
    "5. All.csv",
)
DEFAULT_ICON_DIR: Final[str] = "assets/company-logos"
DEFAULT_PLACEHOLDER_ICON: Final[str] = "assets/icons/company-placeholder.svg"
DEFAULT_CACHE_TTL_SECONDS: Final[float] = 24 * 60 * 60

DEFAULT_FALLBACK_PROBE_NAMES: Final[tuple[str, ...]] = (
    "Google",
    "Amazon",
    "Microsoft",
    "Meta",
    "Apple",
    "Netflix",
    "Tesla",
    "Goldman Sachs",
    "Bloomberg",
    "LinkedIn",
    "Uber",
    "Airbnb",
    "Spotify",
)
DEFAULT_MINIMAL_ENTITY_NAMES: Final[tuple[str, ...]] = (
    "Google",
    "Amazon",
    "Microsoft",
    "Meta",
    "Apple",
)


def _default_resilience_config(base_url: str | None) -> ResilienceConfig:
    return ResilienceConfig(
        name="catalog",
        base_url=base_url,
        ratelimit=RateLimit(max_calls=20, per_seconds=1.0),
        cache=CacheConfig(backend="memory"),
    )


@dataclass(frozen=True, slots=True)
class CatalogConfig:
    """Where the catalog lives and how the pipeline treats it.

    Exactly one of ``base_url`` (served over HTTP) and ``data_dir`` (served from
    disk) is expected to be set.
    """

    base_url: str | None = None
    data_dir: Path | None = None
    catalog_path: str = DEFAULT_CATALOG_PATH
    source_root: str = DEFAULT_SOURCE_ROOT
    source_suffixes: tuple[str, ...] = DEFAULT_SOURCE_SUFFIXES
    icon_dir: str = DEFAULT_ICON_DIR
    placeholder_icon: str = DEFAULT_PLACEHOLDER_ICON
    resolve_icons: bool = True
    fallback_probe_names: tuple[str, ...] = DEFAULT_FALLBACK_PROBE_NAMES
    minimal_entity_names: tuple[str, ...] = DEFAULT_MINIMAL_ENTITY_NAMES
    cache_ttl_seconds: float = DEFAULT_CACHE_TTL_SECONDS
    retry: RetryPolicy = field(default_factory=RetryPolicy)
    load_deadline_seconds: float | None = None
    resilience: ResilienceConfig | None = None

    def __post_init__(self) -> None:
        if self.base_url is None and self.data_dir is None:
            raise ConfigurationError("Either base_url or data_dir must be configured")
        if len(self.source_suffixes) == 0:
            raise ConfigurationError("At least one source suffix is required")
        if self.cache_ttl_seconds <= 0:
            raise ConfigurationError("cache_ttl_seconds must be positive")
        if self.load_deadline_seconds is not None and self.load_deadline_seconds <= 0:
            raise ConfigurationError("load_deadline_seconds must be positive")

    def resilience_config(self) -> ResilienceConfig:
        return self.resilience or _default_resilience_config(self.base_url)


def get_catalog_config(*, resilience: ResilienceConfig | None = None) -> CatalogConfig:
    """Build the pipeline configuration from ``COMPWISE_*`` environment variables."""

    data_dir = optional_env("COMPWISE_DATA_DIR")
    base_url = optional_env("COMPWISE_BASE_URL")
    if data_dir is None and base_url is None:
        base_url = require_env_vars(("COMPWISE_BASE_URL",))["COMPWISE_BASE_URL"]

    try:
        retry = RetryPolicy(
            max_attempts=env_int("COMPWISE_RETRY_ATTEMPTS", 3),
            base_delay_seconds=env_float("COMPWISE_RETRY_BASE_DELAY", 1.0),
            attempt_timeout_seconds=env_float("COMPWISE_ATTEMPT_TIMEOUT", 10.0),
        )
    except ValueError as exc:
        raise ConfigurationError(str(exc)) from exc

    return CatalogConfig(
        base_url=base_url,
        data_dir=Path(data_dir) if data_dir else None,
        catalog_path=optional_env("COMPWISE_CATALOG_PATH") or DEFAULT_CATALOG_PATH,
        fallback_probe_names=env_list("COMPWISE_FALLBACK_NAMES", DEFAULT_FALLBACK_PROBE_NAMES),
        minimal_entity_names=env_list("COMPWISE_MINIMAL_NAMES", DEFAULT_MINIMAL_ENTITY_NAMES),
        cache_ttl_seconds=env_float("COMPWISE_CACHE_TTL_SECONDS", DEFAULT_CACHE_TTL_SECONDS),
        retry=retry,
        load_deadline_seconds=env_optional_float("COMPWISE_LOAD_DEADLINE"),
        resilience=resilience,
    )
