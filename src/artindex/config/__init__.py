"""Application configuration helpers."""

from __future__ import annotations

from .env import optional_env, optional_env_int, require_env_vars
from .errors import ConfigurationError, MissingConfigurationError
from .http_resilience import CacheConfig, RateLimit, ResilienceConfig, RetryPolicy
from .ingest import IngestConfig, get_ingest_config
from .logging import configure_logging
from .providers import (
    AlchemyConfig,
    OpenSeaConfig,
    get_alchemy_config,
    get_media_probe_config,
    get_opensea_config,
)
from .storage import (
    DatabaseConfig,
    StorageConfig,
    get_database_config,
    get_http_cache_path,
    get_storage_config,
)

__all__ = [
    "AlchemyConfig",
    "CacheConfig",
    "ConfigurationError",
    "DatabaseConfig",
    "IngestConfig",
    "MissingConfigurationError",
    "OpenSeaConfig",
    "RateLimit",
    "ResilienceConfig",
    "RetryPolicy",
    "StorageConfig",
    "configure_logging",
    "get_alchemy_config",
    "get_database_config",
    "get_http_cache_path",
    "get_ingest_config",
    "get_media_probe_config",
    "get_opensea_config",
    "get_storage_config",
    "optional_env",
    "optional_env_int",
    "require_env_vars",
]
