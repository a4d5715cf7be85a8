"""Pydantic models describing the OpenSea v2 API payloads."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, field_validator


def _blank_to_none(value: object) -> object:
    if isinstance(value, str):
        stripped = value.strip()
        return stripped or None
    return value


class OpenSeaBaseModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class TraitPayload(OpenSeaBaseModel):
    trait_type: str
    value: str | int | float | None = None
    display_type: str | None = None


class NftPayload(OpenSeaBaseModel):
    identifier: str
    contract: str
    collection: str | None = None
    token_standard: str | None = None
    name: str | None = None
    description: str | None = None
    image_url: str | None = None
    display_image_url: str | None = None
    display_animation_url: str | None = None
    animation_url: str | None = None
    metadata_url: str | None = None
    opensea_url: str | None = None
    is_disabled: bool = False
    is_nsfw: bool = False
    creator: str | None = None
    traits: list[TraitPayload] | None = None

    @field_validator("identifier", mode="before")
    @classmethod
    def _coerce_identifier(cls, value: object) -> object:
        return str(value) if isinstance(value, int) else value

    _normalize_optional = field_validator(
        "collection",
        "token_standard",
        "name",
        "description",
        "image_url",
        "display_image_url",
        "display_animation_url",
        "animation_url",
        "metadata_url",
        "opensea_url",
        "creator",
        mode="before",
    )(_blank_to_none)


class NftListResponse(OpenSeaBaseModel):
    """Page envelope; ``nfts`` is kept raw so one bad item does not reject the page."""

    nfts: list[dict[str, object]]
    next: str | None = None

    _normalize_next = field_validator("next", mode="before")(_blank_to_none)


class AccountPayload(OpenSeaBaseModel):
    address: str
    username: str | None = None
    profile_image_url: str | None = None
    banner_image_url: str | None = None
    website: str | None = None
    bio: str | None = None

    _normalize_optional = field_validator(
        "username", "profile_image_url", "banner_image_url", "website", "bio", mode="before"
    )(_blank_to_none)


class ContractRef(OpenSeaBaseModel):
    address: str
    chain: str | None = None


class CollectionPayload(OpenSeaBaseModel):
    slug: str = Field(alias="collection")
    name: str | None = None
    description: str | None = None
    image_url: str | None = None
    banner_image_url: str | None = None
    owner: str | None = None
    project_url: str | None = None
    opensea_url: str | None = None
    contracts: list[ContractRef] = Field(default_factory=list)

    _normalize_optional = field_validator(
        "name",
        "description",
        "image_url",
        "banner_image_url",
        "owner",
        "project_url",
        "opensea_url",
        mode="before",
    )(_blank_to_none)


class ErrorResponse(OpenSeaBaseModel):
    errors: list[str]
