"""Identity-based deduplication of normalized records.

Records collapse on ``contract_address:token_id`` (case-normalised). The first
occurrence keeps its position; later duplicates can only fill fields the first
one does not know yet, so a merge never drops a known value.
"""

from __future__ import annotations

from dataclasses import fields, is_dataclass, replace
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Iterable

    from artindex.domain.model import NormalizedRecord

_IDENTITY_FIELDS = frozenset({"contract_address", "token_id", "blockchain"})


def _is_unknown(value: object) -> bool:
    return value is None or value == () or value == ""


def _fill_gaps[T](primary: T, secondary: T, *, skip: frozenset[str] = frozenset()) -> T:
    changes: dict[str, Any] = {}
    for field_def in fields(primary):  # pyright: ignore[reportArgumentType]
        if field_def.name in skip:
            continue
        current = getattr(primary, field_def.name)
        incoming = getattr(secondary, field_def.name)
        if _is_unknown(incoming):
            continue
        if _is_unknown(current):
            changes[field_def.name] = incoming
        elif (
            is_dataclass(current)
            and type(current) is type(incoming)
            and _same_nested_identity(current, incoming)
        ):
            merged = _fill_gaps(current, incoming)
            if merged != current:
                changes[field_def.name] = merged
    if not changes:
        return primary
    return replace(primary, **changes)  # pyright: ignore[reportArgumentType]


def _same_nested_identity(current: object, incoming: object) -> bool:
    for key in ("address", "slug"):
        if hasattr(current, key):
            return getattr(current, key) == getattr(incoming, key)
    return True


def merge_records(primary: NormalizedRecord, secondary: NormalizedRecord) -> NormalizedRecord:
    """Return ``primary`` with gaps filled from ``secondary``.

    Both records must share the same identity key.
    """

    if primary.identity_key != secondary.identity_key:
        raise ValueError(
            f"Cannot merge records with different identities: "
            f"{primary.identity_key} != {secondary.identity_key}"
        )
    return _fill_gaps(primary, secondary, skip=_IDENTITY_FIELDS)


class RecordIndex:
    """Insertion-ordered accumulator that collapses records by identity."""

    def __init__(self, records: Iterable[NormalizedRecord] = ()) -> None:
        self._by_key: dict[str, NormalizedRecord] = {}
        self.add_all(records)

    def __len__(self) -> int:
        return len(self._by_key)

    def __contains__(self, key: object) -> bool:
        return key in self._by_key

    def add(self, record: NormalizedRecord) -> bool:
        """Add ``record``; return ``True`` when its identity was not seen before."""

        key = record.identity_key
        existing = self._by_key.get(key)
        if existing is None:
            self._by_key[key] = record
            return True
        self._by_key[key] = merge_records(existing, record)
        return False

    def add_all(self, records: Iterable[NormalizedRecord]) -> int:
        return sum(1 for record in records if self.add(record))

    def records(self) -> list[NormalizedRecord]:
        return list(self._by_key.values())


def deduplicate_records(records: Iterable[NormalizedRecord]) -> list[NormalizedRecord]:
    """Collapse ``records`` to one entry per identity, preserving first-seen order."""

    return RecordIndex(records).records()
