"""Application configuration helpers."""

from __future__ import annotations

from .catalog import (
    DEFAULT_CACHE_TTL_SECONDS,
    DEFAULT_FALLBACK_PROBE_NAMES,
    DEFAULT_MINIMAL_ENTITY_NAMES,
    DEFAULT_SOURCE_SUFFIXES,
    CatalogConfig,
    get_catalog_config,
)
from .env import (
    env_float,
    env_int,
    env_list,
    env_optional_float,
    optional_env,
    require_env_vars,
)
from .errors import ConfigurationError, MissingConfigurationError
from .http_resilience import CacheConfig, RateLimit, ResilienceConfig, RetryPolicy
from .logging import configure_logging
from .storage import StorageConfig, get_storage_config

__all__ = [
    "DEFAULT_CACHE_TTL_SECONDS",
    "DEFAULT_FALLBACK_PROBE_NAMES",
    "DEFAULT_MINIMAL_ENTITY_NAMES",
    "DEFAULT_SOURCE_SUFFIXES",
    "CacheConfig",
    "CatalogConfig",
    "ConfigurationError",
    "MissingConfigurationError",
    "RateLimit",
    "ResilienceConfig",
    "RetryPolicy",
    "StorageConfig",
    "configure_logging",
    "env_float",
    "env_int",
    "env_list",
    "env_optional_float",
    "get_catalog_config",
    "get_storage_config",
    "optional_env",
    "require_env_vars",
]
