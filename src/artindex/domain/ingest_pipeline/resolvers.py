"""Ordered best-effort resolver chains for creator and dimension extraction.

A chain is a sequence of independent functions tried in order; the first one
returning something other than ``None`` wins.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from artindex.domain.model import ZERO_ADDRESS, Creator, Dimensions, ResolutionSource

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Mapping

    from artindex.domain.model import Attribute, CreatorCandidates

_DIMENSION_PATTERN = re.compile(r"(\d+)\s*[x×]\s*(\d+)", re.IGNORECASE)
_DIMENSION_TEXT_FIELDS = ("dimensions", "size", "resolution")


def first_resolved[S, R](resolvers: Iterable[Callable[[S], R | None]], subject: S) -> R | None:
    for resolver in resolvers:
        result = resolver(subject)
        if result is not None:
            return result
    return None


# Creator ---------------------------------------------------------------------


def is_usable_address(address: str | None) -> bool:
    if address is None:
        return False
    normalized = address.strip().lower()
    return bool(normalized) and normalized != ZERO_ADDRESS


def creator_from_mint(candidates: CreatorCandidates) -> Creator | None:
    address = candidates.mint_address
    if address is None or not is_usable_address(address):
        return None
    return Creator(address=address, resolution_source=ResolutionSource.ALCHEMY_MINT)


def creator_from_deployer(candidates: CreatorCandidates) -> Creator | None:
    address = candidates.deployer_address
    if address is None or not is_usable_address(address):
        return None
    return Creator(
        address=address,
        resolution_source=ResolutionSource.ALCHEMY_DEPLOYER,
    )


def creator_from_metadata(candidates: CreatorCandidates) -> Creator | None:
    address = candidates.metadata_creator
    if address is None or not is_usable_address(address):
        return None
    return Creator(
        address=address,
        resolution_source=ResolutionSource.ALCHEMY_METADATA,
        username=candidates.metadata_creator_name or None,
    )


CREATOR_RESOLVERS: tuple[Callable[[CreatorCandidates], Creator | None], ...] = (
    creator_from_mint,
    creator_from_deployer,
    creator_from_metadata,
)


def resolve_creator(candidates: CreatorCandidates) -> Creator | None:
    return first_resolved(CREATOR_RESOLVERS, candidates)


# Dimensions ------------------------------------------------------------------


@dataclass(slots=True, frozen=True)
class DimensionEvidence:
    image_details: Mapping[str, object] | None = None
    attributes: tuple[Attribute, ...] = field(default_factory=tuple)
    metadata: Mapping[str, object] | None = None


def _positive_int(value: object) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int | float):
        number = int(value)
    elif isinstance(value, str):
        digits = re.match(r"\s*(\d+)", value)
        if digits is None:
            return None
        number = int(digits.group(1))
    else:
        return None
    return number if number > 0 else None


def dimensions_from_image_details(evidence: DimensionEvidence) -> Dimensions | None:
    if not evidence.image_details:
        return None
    width = _positive_int(evidence.image_details.get("width"))
    height = _positive_int(evidence.image_details.get("height"))
    if width is None or height is None:
        return None
    return Dimensions(width=width, height=height)


def dimensions_from_traits(evidence: DimensionEvidence) -> Dimensions | None:
    width: int | None = None
    height: int | None = None
    for attribute in evidence.attributes:
        trait = attribute.trait_type.lower()
        if width is None and "width" in trait:
            width = _positive_int(attribute.value)
        elif height is None and "height" in trait:
            height = _positive_int(attribute.value)
    if width is None or height is None:
        return None
    return Dimensions(width=width, height=height)


def dimensions_from_text(evidence: DimensionEvidence) -> Dimensions | None:
    if not evidence.metadata:
        return None
    for key in _DIMENSION_TEXT_FIELDS:
        value = evidence.metadata.get(key)
        if not isinstance(value, str):
            continue
        match = _DIMENSION_PATTERN.search(value)
        if match is None:
            continue
        width, height = int(match.group(1)), int(match.group(2))
        if width > 0 and height > 0:
            return Dimensions(width=width, height=height)
    return None


DIMENSION_RESOLVERS: tuple[Callable[[DimensionEvidence], Dimensions | None], ...] = (
    dimensions_from_image_details,
    dimensions_from_traits,
    dimensions_from_text,
)


def resolve_dimensions(evidence: DimensionEvidence) -> Dimensions | None:
    return first_resolved(DIMENSION_RESOLVERS, evidence)
