"""Credentials and HTTP settings for the upstream token indexing providers."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Final

from .env import optional_env, require_env_vars
from .errors import ConfigurationError
from .http_resilience import CacheConfig, RateLimit, ResilienceConfig, RetryPolicy

OPENSEA_BASE_URL: Final[str] = "https://api.opensea.io/api/v2/"
OPENSEA_TIMEOUT_SECONDS: Final[float] = 30.0
OPENSEA_METADATA_TTL_SECONDS: Final[float] = 300.0

ALCHEMY_BASE_URL_TEMPLATE: Final[str] = "https://{network}-mainnet.g.alchemy.com/nft/v3/{api_key}/"
ALCHEMY_TIMEOUT_SECONDS: Final[float] = 30.0
MEDIA_PROBE_TIMEOUT_SECONDS: Final[float] = 10.0
ALCHEMY_NETWORKS: Final[dict[str, str]] = {
    "eth": "ethereum",
    "base": "base",
    "shape": "shape",
    "polygon": "polygon",
}


@dataclass(frozen=True, slots=True)
class OpenSeaConfig:
    """Holds OpenSea API configuration values."""

    api_key: str
    chain: str
    resilience: ResilienceConfig
    metadata_resilience: ResilienceConfig


@dataclass(frozen=True, slots=True)
class AlchemyConfig:
    """Holds Alchemy NFT API configuration values."""

    api_key: str
    network: str
    resilience: ResilienceConfig

    @property
    def blockchain(self) -> str:
        return ALCHEMY_NETWORKS[self.network]


def _is_metadata_payload(payload: object) -> bool:
    """Only cache bodies that look like an account or collection, never error envelopes."""

    return isinstance(payload, dict) and "errors" not in payload


def get_opensea_config(*, resilience: ResilienceConfig | None = None) -> OpenSeaConfig:
    values = require_env_vars(("OPENSEA_API_KEY",))
    api_key = values["OPENSEA_API_KEY"]
    headers = {"X-API-KEY": api_key, "Accept": "application/json"}
    return OpenSeaConfig(
        api_key=api_key,
        chain=optional_env("OPENSEA_CHAIN", "ethereum"),
        resilience=resilience
        or ResilienceConfig(
            name="opensea",
            base_url=OPENSEA_BASE_URL,
            timeout_seconds=OPENSEA_TIMEOUT_SECONDS,
            ratelimit=RateLimit(max_calls=4, per_seconds=1.0),
            default_headers=headers,
        ),
        metadata_resilience=ResilienceConfig(
            name="opensea-metadata",
            base_url=OPENSEA_BASE_URL,
            timeout_seconds=OPENSEA_TIMEOUT_SECONDS,
            ratelimit=RateLimit(max_calls=2, per_seconds=1.0),
            cache=CacheConfig(
                backend="memory",
                default_ttl_seconds=OPENSEA_METADATA_TTL_SECONDS,
                should_cache=_is_metadata_payload,
            ),
            default_headers=headers,
        ),
    )


def get_alchemy_config(*, resilience: ResilienceConfig | None = None) -> AlchemyConfig:
    values = require_env_vars(("ALCHEMY_API_KEY",))
    api_key = values["ALCHEMY_API_KEY"]
    network = optional_env("ALCHEMY_NETWORK", "eth").lower()
    if network not in ALCHEMY_NETWORKS:
        supported = ", ".join(sorted(ALCHEMY_NETWORKS))
        raise ConfigurationError(f"Unsupported Alchemy network {network!r} (expected {supported})")
    return AlchemyConfig(
        api_key=api_key,
        network=network,
        resilience=resilience
        or ResilienceConfig(
            name="alchemy",
            base_url=ALCHEMY_BASE_URL_TEMPLATE.format(network=network, api_key=api_key),
            timeout_seconds=ALCHEMY_TIMEOUT_SECONDS,
            ratelimit=RateLimit(max_calls=10, per_seconds=1.0),
            default_headers={"Accept": "application/json"},
        ),
    )


def get_media_probe_config() -> ResilienceConfig:
    return ResilienceConfig(
        name="media-probe",
        timeout_seconds=MEDIA_PROBE_TIMEOUT_SECONDS,
        retry=RetryPolicy(total=1),
        ratelimit=RateLimit(max_calls=5, per_seconds=1.0),
        default_headers={"Range": "bytes=0-8191"},
    )
