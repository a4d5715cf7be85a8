"""OpenSea provider adapter."""

from __future__ import annotations

from .client import OPENSEA_LIMITER_CONFIG, OpenSeaAdapter, OpenSeaAPIError

__all__ = ["OPENSEA_LIMITER_CONFIG", "OpenSeaAPIError", "OpenSeaAdapter"]
