"""Translate validated OpenSea payloads into domain records."""

from __future__ import annotations

from dataclasses import replace
from typing import TYPE_CHECKING

from artindex.domain.model import AccountProfile, Attribute, CollectionInfo, OpenSeaRecord

if TYPE_CHECKING:
    from collections.abc import Mapping

    from .schema import AccountPayload, CollectionPayload, NftPayload, TraitPayload


def _attribute(trait: TraitPayload) -> Attribute | None:
    if trait.value is None:
        return None
    return Attribute(trait_type=trait.trait_type, value=str(trait.value))


def to_opensea_record(payload: NftPayload, *, chain: str) -> OpenSeaRecord:
    traits = tuple(
        attribute
        for attribute in (_attribute(trait) for trait in payload.traits or ())
        if attribute is not None
    )
    return OpenSeaRecord(
        contract=payload.contract,
        identifier=payload.identifier,
        name=payload.name,
        description=payload.description,
        token_standard=payload.token_standard,
        image_url=payload.image_url,
        display_image_url=payload.display_image_url,
        display_animation_url=payload.display_animation_url,
        animation_url=payload.animation_url,
        metadata_url=payload.metadata_url,
        collection_slug=payload.collection,
        creator_address=payload.creator,
        traits=traits,
        chain=chain,
    )


def to_account_profile(payload: AccountPayload) -> AccountProfile:
    return AccountProfile(
        address=payload.address,
        username=payload.username,
        profile_image_url=payload.profile_image_url,
        bio=payload.bio,
        website=payload.website,
    )


def to_collection_info(payload: CollectionPayload) -> CollectionInfo:
    contract = payload.contracts[0].address.lower() if payload.contracts else None
    return CollectionInfo(
        slug=payload.slug,
        title=payload.name,
        contract_address=contract,
        description=payload.description,
        external_url=payload.project_url or payload.opensea_url,
        image_url=payload.image_url,
        banner_image_url=payload.banner_image_url,
    )


def enrich_record(
    record: OpenSeaRecord,
    *,
    profiles: Mapping[str, AccountProfile],
    collections: Mapping[str, CollectionInfo],
) -> OpenSeaRecord:
    profile = profiles.get(record.creator_address.lower()) if record.creator_address else None
    collection = collections.get(record.collection_slug) if record.collection_slug else None
    if profile is None and collection is None:
        return record
    return replace(
        record,
        creator_profile=profile or record.creator_profile,
        collection=collection or record.collection,
    )
