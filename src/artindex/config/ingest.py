"""Defaults for wallet ingestion and queue processing."""

from __future__ import annotations

from dataclasses import dataclass

from .env import optional_env, optional_env_int
from .errors import ConfigurationError

DEFAULT_QUEUE_BATCH_LIMIT = 50
DEFAULT_PROVIDER = "alchemy"
SUPPORTED_PROVIDERS = ("opensea", "alchemy")


@dataclass(frozen=True, slots=True)
class IngestConfig:
    provider: str = DEFAULT_PROVIDER
    queue_batch_limit: int = DEFAULT_QUEUE_BATCH_LIMIT
    sniff_mime: bool = True


def get_ingest_config() -> IngestConfig:
    provider = optional_env("ARTINDEX_PROVIDER", DEFAULT_PROVIDER).lower()
    if provider not in SUPPORTED_PROVIDERS:
        raise ConfigurationError(f"Unsupported provider {provider!r}")
    limit = optional_env_int("ARTINDEX_QUEUE_BATCH_LIMIT", DEFAULT_QUEUE_BATCH_LIMIT)
    if limit <= 0:
        raise ConfigurationError("ARTINDEX_QUEUE_BATCH_LIMIT must be positive")
    sniff = optional_env("ARTINDEX_SNIFF_MIME", "1").lower() not in {"0", "false", "no"}
    return IngestConfig(provider=provider, queue_batch_limit=limit, sniff_mime=sniff)
