"""Translate validated Alchemy payloads into domain records."""

from __future__ import annotations

from collections.abc import Mapping
from typing import TYPE_CHECKING

from artindex.domain.model import AlchemyRecord, Attribute, CreatorCandidates

if TYPE_CHECKING:
    from artindex.domain.model import Blockchain

    from .schema import OwnedNftPayload


def _text(value: object) -> str | None:
    if value is None:
        return None
    stripped = str(value).strip()
    return stripped or None


def attributes_from_metadata(metadata: Mapping[str, object]) -> tuple[Attribute, ...]:
    raw = metadata.get("attributes")
    if not isinstance(raw, list):
        return ()
    attributes: list[Attribute] = []
    for item in raw:
        if not isinstance(item, Mapping):
            continue
        trait_type = _text(item.get("trait_type"))
        value = _text(item.get("value"))
        if trait_type is not None and value is not None:
            attributes.append(Attribute(trait_type=trait_type, value=value))
    return tuple(attributes)


def to_alchemy_record(payload: OwnedNftPayload, *, blockchain: Blockchain) -> AlchemyRecord:
    metadata: dict[str, object] = dict(payload.raw.metadata or {}) if payload.raw else {}
    image = payload.image
    contract = payload.contract
    opensea = contract.opensea_metadata
    collection = payload.collection
    image_details = metadata.get("image_details")

    return AlchemyRecord(
        contract_address=contract.address,
        token_id=payload.token_id,
        blockchain=blockchain,
        name=payload.name or payload.title,
        description=payload.description,
        token_type=payload.token_type or contract.token_type,
        original_url=image.original_url if image else None,
        cached_url=image.cached_url if image else None,
        png_url=image.png_url if image else None,
        thumbnail_url=image.thumbnail_url if image else None,
        animation_url=_text(metadata.get("animation_url")),
        token_uri=payload.token_uri or (payload.raw.token_uri if payload.raw else None),
        balance=payload.balance,
        mint_timestamp=payload.mint.timestamp if payload.mint else None,
        time_last_updated=payload.time_last_updated,
        collection_slug=(opensea.collection_slug if opensea else None)
        or (collection.slug if collection else None),
        collection_name=(opensea.collection_name if opensea else None)
        or (collection.name if collection else None)
        or contract.name,
        collection_external_url=(opensea.external_url if opensea else None)
        or (collection.external_url if collection else None),
        collection_banner_url=(opensea.banner_image_url if opensea else None)
        or (collection.banner_image_url if collection else None),
        collection_image_url=opensea.image_url if opensea else None,
        collection_description=opensea.description if opensea else None,
        creators=CreatorCandidates(
            mint_address=payload.mint.mint_address if payload.mint else None,
            deployer_address=contract.contract_deployer,
            metadata_creator=_text(metadata.get("creator")),
            metadata_creator_name=_text(metadata.get("creator_name")),
        ),
        image_details=image_details if isinstance(image_details, Mapping) else None,
        metadata=metadata,
        attributes=attributes_from_metadata(metadata),
        spam=contract.spam,
    )
