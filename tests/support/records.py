"""Builders for normalized and provider records used across tests."""

from __future__ import annotations

from artindex.domain.model import (
    AlchemyRecord,
    Blockchain,
    CollectionInfo,
    Creator,
    CreatorCandidates,
    NormalizedRecord,
    ResolutionSource,
)

CONTRACT = "0xabc0000000000000000000000000000000000001"
WALLET = "0x1111111111111111111111111111111111111111"
ARTIST_WALLET = "0x2222222222222222222222222222222222222222"


def make_record(token_id: str = "1", **overrides: object) -> NormalizedRecord:
    values: dict[str, object] = {
        "contract_address": CONTRACT,
        "token_id": token_id,
        "blockchain": Blockchain.ETHEREUM,
        "title": f"Token {token_id}",
    }
    values.update(overrides)
    return NormalizedRecord(**values)  # type: ignore[arg-type]


def make_full_record(token_id: str = "1") -> NormalizedRecord:
    return make_record(
        token_id,
        description="A generative piece",
        image_url=f"https://img.example/{token_id}.png",
        creator=Creator(
            address=ARTIST_WALLET,
            resolution_source=ResolutionSource.ALCHEMY_MINT,
            username="painter",
        ),
        collection=CollectionInfo(slug="studies", title="Studies", contract_address=CONTRACT),
    )


def make_alchemy_record(token_id: str = "1", **overrides: object) -> AlchemyRecord:
    values: dict[str, object] = {
        "contract_address": CONTRACT,
        "token_id": token_id,
        "blockchain": Blockchain.BASE,
        "name": f"Piece #{token_id}",
        "original_url": f"ipfs://bafy/{token_id}.png",
        "creators": CreatorCandidates(mint_address=ARTIST_WALLET),
    }
    values.update(overrides)
    return AlchemyRecord(**values)  # type: ignore[arg-type]
