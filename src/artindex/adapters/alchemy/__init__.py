"""Alchemy provider adapter."""

from __future__ import annotations

from .client import ALCHEMY_LIMITER_CONFIG, ALCHEMY_PAGINATION_POLICY, AlchemyAdapter

__all__ = ["ALCHEMY_LIMITER_CONFIG", "ALCHEMY_PAGINATION_POLICY", "AlchemyAdapter"]
