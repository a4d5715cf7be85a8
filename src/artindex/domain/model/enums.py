"""Enumerations shared across the ingestion domain."""

from __future__ import annotations

from enum import StrEnum


class Blockchain(StrEnum):
    ETHEREUM = "ethereum"
    TEZOS = "tezos"
    POLYGON = "polygon"
    BASE = "base"
    SHAPE = "shape"


class Provider(StrEnum):
    """Source tag recorded on every queue entry."""

    OPENSEA = "opensea"
    ALCHEMY = "alchemy"
    OBJKT = "objkt"
    MANUAL = "manual"


class ResolutionSource(StrEnum):
    """Where a creator attribution came from."""

    OPENSEA = "opensea"
    ALCHEMY_MINT = "alchemy_mint"
    ALCHEMY_DEPLOYER = "alchemy_deployer"
    ALCHEMY_METADATA = "alchemy_metadata"
    MANUAL = "manual"


class ImportStatus(StrEnum):
    PENDING = "pending"
    IMPORTED = "imported"
    FAILED = "failed"


class OwnershipType(StrEnum):
    OWNED = "owned"
    CREATED = "created"
