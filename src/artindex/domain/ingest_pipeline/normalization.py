"""Map provider record variants into :class:`NormalizedRecord`.

Each variant has exactly one mapping function. Logical fields are picked from
fixed priority lists; empty strings count as missing so that unset fields stay
``None`` and later merges can tell "unknown" from "known".
"""

from __future__ import annotations

import re
from datetime import UTC, datetime
from logging import getLogger
from typing import TYPE_CHECKING

from artindex.domain.model import (
    AlchemyRecord,
    Attribute,
    Blockchain,
    CollectionInfo,
    Creator,
    ManualRecord,
    NormalizedRecord,
    OpenSeaRecord,
    Provider,
    ResolutionSource,
)

from .errors import ProviderShapeMismatch
from .resolvers import DimensionEvidence, is_usable_address, resolve_creator, resolve_dimensions

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping, Sequence

    from artindex.domain.model import ProviderRecord

log = getLogger(__name__)

# Catalog placeholders, applied when a queue entry is materialized.
UNTITLED = "Untitled"
UNKNOWN_COLLECTION = "Unknown Collection"
DEFAULT_TOKEN_STANDARD = "ERC721"

_GENERATOR_PATTERNS = (
    re.compile(r"generator", re.IGNORECASE),
    re.compile(r"artblocks\.io", re.IGNORECASE),
    re.compile(r"fxhash\.xyz.*/gentk", re.IGNORECASE),
    re.compile(r"\.html?$", re.IGNORECASE),
    re.compile(r"interactive", re.IGNORECASE),
)
_ANIMATION_PATTERN = re.compile(r"\.(mp4|webm|mov|gif|avi|ogv)$|video|animation", re.IGNORECASE)

_CHAIN_ALIASES: dict[str, Blockchain] = {
    "ethereum": Blockchain.ETHEREUM,
    "eth": Blockchain.ETHEREUM,
    "tezos": Blockchain.TEZOS,
    "polygon": Blockchain.POLYGON,
    "matic": Blockchain.POLYGON,
    "base": Blockchain.BASE,
    "shape": Blockchain.SHAPE,
}

# Manual submissions arrive with loosely named keys; first non-empty wins.
IMAGE_KEYS = ("imageUrl", "display_image_url", "image_url", "image")
TEZOS_IMAGE_KEYS = ("display_uri", "artifact_uri", "image_url", "imageUrl")
ANIMATION_KEYS = ("animation_url", "animationUrl", "display_animation_url")
THUMBNAIL_KEYS = ("thumbnail_url", "thumbnailUrl", "image_thumbnail_url")
TEZOS_THUMBNAIL_KEYS = ("thumbnail_uri", "thumbnailUrl", "display_uri")
METADATA_KEYS = ("metadata_url", "metadataUrl", "token_uri", "tokenUri")
GENERATOR_KEYS = ("generator_url", "generatorUrl")
TITLE_KEYS = ("name", "title")
DESCRIPTION_KEYS = ("description",)
TOKEN_STANDARD_KEYS = ("token_standard", "tokenStandard", "token_type", "tokenType")
SUPPLY_KEYS = ("supply", "editions", "balance")
MINT_DATE_KEYS = ("mint_date", "mintDate", "minted_at", "timestamp")
CREATOR_KEYS = ("creator_address", "creatorAddress", "creator")
CREATOR_NAME_KEYS = ("creator_name", "creatorName")
COLLECTION_SLUG_KEYS = ("collection_slug", "collectionSlug", "collection")
COLLECTION_TITLE_KEYS = ("collection_name", "collectionName")


def text(value: object) -> str | None:
    if value is None:
        return None
    if not isinstance(value, str):
        value = str(value)
    stripped = value.strip()
    return stripped or None


def first_text(values: Iterable[object]) -> str | None:
    for value in values:
        candidate = text(value)
        if candidate is not None:
            return candidate
    return None


def pick(fields: Mapping[str, object], keys: Sequence[str]) -> str | None:
    return first_text(fields.get(key) for key in keys)


def detect_blockchain(contract_address: str) -> Blockchain:
    """Guess the chain from the contract address shape."""

    lowered = contract_address.strip().lower()
    if lowered.startswith("0x"):
        return Blockchain.ETHEREUM
    return Blockchain.TEZOS


def blockchain_from_chain_name(chain: str | None, contract_address: str) -> Blockchain:
    if chain:
        known = _CHAIN_ALIASES.get(chain.strip().lower())
        if known is not None:
            return known
    return detect_blockchain(contract_address)


def source_for_blockchain(blockchain: Blockchain) -> Provider:
    return Provider.OBJKT if blockchain is Blockchain.TEZOS else Provider.OPENSEA


def source_tag(
    record: NormalizedRecord,
    *,
    provider: Provider | None = None,
    override: Provider | None = None,
) -> Provider:
    """Return the queue source tag for ``record``.

    An explicit override wins. Marketplace-style providers are tagged by chain
    (objkt for Tezos, OpenSea otherwise); any other provider tags its own records.
    """

    if override is not None:
        return override
    if provider is not None and provider not in {Provider.OPENSEA, Provider.OBJKT}:
        return provider
    return source_for_blockchain(record.blockchain)


def is_generator_url(url: str) -> bool:
    return any(pattern.search(url) for pattern in _GENERATOR_PATTERNS)


def _generator_from(*candidates: str | None) -> str | None:
    for candidate in candidates:
        if candidate and is_generator_url(candidate):
            return candidate
    return None


def _distinct_thumbnail(thumbnail: str | None, image: str | None) -> str | None:
    return None if thumbnail is not None and thumbnail == image else thumbnail


def _token_standard(value: str | None) -> str | None:
    return value.upper() if value else None


def _parse_int(value: object) -> int | None:
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, int):
        return value
    try:
        return int(str(value).strip())
    except ValueError:
        return None


def parse_timestamp(value: object) -> datetime | None:
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=UTC)
    raw = text(value)
    if raw is None:
        return None
    if raw.endswith("Z"):
        raw = raw[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(raw)
    except ValueError:
        return None
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=UTC)


def _attributes_from(value: object) -> tuple[Attribute, ...]:
    if not isinstance(value, list | tuple):
        return ()
    attributes: list[Attribute] = []
    for item in value:  # pyright: ignore[reportUnknownVariableType]
        if isinstance(item, Attribute):
            attributes.append(item)
        elif isinstance(item, dict):
            trait = first_text((item.get("trait_type"), item.get("key"), item.get("name")))  # pyright: ignore[reportUnknownMemberType, reportUnknownArgumentType]
            trait_value = text(item.get("value"))  # pyright: ignore[reportUnknownMemberType, reportUnknownArgumentType]
            if trait is not None and trait_value is not None:
                attributes.append(Attribute(trait_type=trait, value=trait_value))
    return tuple(attributes)


def _require_identity(contract_address: str | None, token_id: str | None, provider: str) -> None:
    if text(contract_address) is None or text(token_id) is None:
        raise ProviderShapeMismatch(f"{provider} record is missing contract address or token id")


def normalize_opensea(record: OpenSeaRecord) -> NormalizedRecord:
    _require_identity(record.contract, record.identifier, "OpenSea")
    image = first_text((record.image_url, record.display_image_url))
    animation = first_text((record.animation_url, record.display_animation_url))

    creator: Creator | None = None
    if record.creator_profile is not None and is_usable_address(record.creator_profile.address):
        profile = record.creator_profile
        creator = Creator(
            address=profile.address,
            resolution_source=ResolutionSource.OPENSEA,
            username=profile.username,
            profile_image_url=profile.profile_image_url,
            bio=profile.bio,
            website=profile.website,
        )
    elif record.creator_address is not None and is_usable_address(record.creator_address):
        creator = Creator(address=record.creator_address, resolution_source=ResolutionSource.OPENSEA)

    collection = record.collection or CollectionInfo(
        slug=text(record.collection_slug) or record.contract.lower(),
        contract_address=record.contract.lower(),
    )
    return NormalizedRecord(
        contract_address=record.contract,
        token_id=record.identifier,
        blockchain=blockchain_from_chain_name(record.chain, record.contract),
        title=text(record.name),
        description=text(record.description),
        token_standard=_token_standard(text(record.token_standard)),
        image_url=image,
        animation_url=animation,
        generator_url=_generator_from(animation),
        metadata_url=text(record.metadata_url),
        dimensions=resolve_dimensions(DimensionEvidence(attributes=record.traits)),
        attributes=record.traits,
        creator=creator,
        collection=collection,
    )


def normalize_alchemy(record: AlchemyRecord) -> NormalizedRecord:
    _require_identity(record.contract_address, record.token_id, "Alchemy")
    metadata = record.metadata or {}
    image = first_text((record.original_url, record.cached_url, record.png_url))
    thumbnail = first_text((record.thumbnail_url, record.cached_url))
    animation = first_text((record.animation_url, metadata.get("animation_url")))
    contract = record.contract_address.lower()

    return NormalizedRecord(
        contract_address=record.contract_address,
        token_id=record.token_id,
        blockchain=record.blockchain,
        title=first_text((record.name, metadata.get("name"), metadata.get("title"))),
        description=first_text((record.description, metadata.get("description"))),
        token_standard=_token_standard(text(record.token_type)),
        image_url=image,
        thumbnail_url=_distinct_thumbnail(thumbnail, image),
        animation_url=animation,
        generator_url=_generator_from(text(metadata.get("generator_url")), animation),
        metadata_url=text(record.token_uri),
        supply=record.balance,
        mint_date=record.mint_timestamp or record.time_last_updated,
        dimensions=resolve_dimensions(
            DimensionEvidence(
                image_details=record.image_details,
                attributes=record.attributes,
                metadata=metadata,
            )
        ),
        attributes=record.attributes,
        creator=resolve_creator(record.creators),
        collection=CollectionInfo(
            slug=text(record.collection_slug) or contract,
            title=text(record.collection_name),
            contract_address=contract,
            description=text(record.collection_description),
            external_url=text(record.collection_external_url),
            image_url=text(record.collection_image_url),
            banner_image_url=text(record.collection_banner_url),
        ),
    )


def normalize_manual(record: ManualRecord) -> NormalizedRecord:
    _require_identity(record.contract_address, record.token_id, "Manual")
    fields = record.fields
    blockchain = record.blockchain or detect_blockchain(record.contract_address)
    tezos = blockchain is Blockchain.TEZOS

    image = pick(fields, TEZOS_IMAGE_KEYS if tezos else IMAGE_KEYS)
    animation = pick(fields, ANIMATION_KEYS)
    if animation is None and tezos:
        artifact = text(fields.get("artifact_uri"))
        if artifact is not None and _ANIMATION_PATTERN.search(artifact):
            animation = artifact
    thumbnail = pick(fields, TEZOS_THUMBNAIL_KEYS if tezos else THUMBNAIL_KEYS)
    attributes = _attributes_from(fields.get("attributes") or fields.get("traits"))

    creator: Creator | None = None
    creator_address = pick(fields, CREATOR_KEYS)
    if creator_address is not None and is_usable_address(creator_address):
        creator = Creator(
            address=creator_address,
            resolution_source=ResolutionSource.MANUAL,
            username=pick(fields, CREATOR_NAME_KEYS),
        )

    slug = pick(fields, COLLECTION_SLUG_KEYS)
    collection = (
        CollectionInfo(
            slug=slug,
            title=pick(fields, COLLECTION_TITLE_KEYS),
            contract_address=record.contract_address.lower(),
        )
        if slug is not None
        else None
    )
    image_details = fields.get("image_details")

    return NormalizedRecord(
        contract_address=record.contract_address,
        token_id=record.token_id,
        blockchain=blockchain,
        title=pick(fields, TITLE_KEYS),
        description=pick(fields, DESCRIPTION_KEYS),
        token_standard=_token_standard(pick(fields, TOKEN_STANDARD_KEYS)),
        image_url=image,
        thumbnail_url=_distinct_thumbnail(thumbnail, image),
        animation_url=animation,
        generator_url=pick(fields, GENERATOR_KEYS) or _generator_from(animation),
        metadata_url=pick(fields, METADATA_KEYS),
        mime=pick(fields, ("mime", "mimeType")),
        supply=_parse_int(pick(fields, SUPPLY_KEYS)),
        mint_date=parse_timestamp(pick(fields, MINT_DATE_KEYS)),
        dimensions=record.dimensions
        or resolve_dimensions(
            DimensionEvidence(
                image_details=image_details if isinstance(image_details, dict) else None,  # pyright: ignore[reportUnknownArgumentType]
                attributes=attributes,
                metadata=fields,
            )
        ),
        attributes=attributes,
        creator=creator,
        collection=collection,
    )


class Normalizer:
    """Dispatch each provider variant to its mapping function."""

    def normalize(self, record: ProviderRecord) -> NormalizedRecord:
        match record:
            case OpenSeaRecord():
                return normalize_opensea(record)
            case AlchemyRecord():
                return normalize_alchemy(record)
            case ManualRecord():
                return normalize_manual(record)
            case _:
                raise ProviderShapeMismatch(f"Unsupported record type: {type(record).__name__}")

    def normalize_many(
        self, records: Iterable[ProviderRecord]
    ) -> tuple[list[NormalizedRecord], int]:
        """Normalize ``records``, skipping (and counting) ones with an unusable shape."""

        normalized: list[NormalizedRecord] = []
        skipped = 0
        for record in records:
            try:
                normalized.append(self.normalize(record))
            except ProviderShapeMismatch as exc:
                skipped += 1
                log.warning("Skipping record: %s", exc)
        return normalized, skipped
