"""Multi-strategy pagination over unreliable provider cursors.

A provider's "no next cursor" does not reliably mean the wallet is exhausted.
The orchestrator therefore runs the cursor chain as a small state machine
(``FETCHING``/``BACKOFF`` until ``DONE`` or ``ABORTED``) whose transitions are
pure functions of the previous session and the page outcome, and, when an
expected count is known and the primary run falls short, re-walks the chain
with alternate page sizes. All runs feed one :class:`RecordIndex`, so records
are deduplicated across strategies. Problems are reported as warnings on the
result; nothing here raises for provider misbehaviour.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field, replace
from enum import StrEnum
from functools import partial
from logging import getLogger
from typing import TYPE_CHECKING

from .deduplication import RecordIndex
from .normalization import Normalizer

if TYPE_CHECKING:
    from artindex.domain.model import NormalizedRecord
    from artindex.domain.ports.fetching import ProviderAdapter, RawPage

    from .rate_limiter import RateLimiter

log = getLogger(__name__)

PRIMARY_STRATEGY = "primary"
ALTERNATE_PAGE_SIZE_STRATEGY = "alternate-page-size"


@dataclass(slots=True, frozen=True)
class PaginationPolicy:
    """Caps and pauses for one provider. Times are in seconds."""

    page_size: int = 50
    max_pages: int = 500
    max_consecutive_failures: int = 10
    max_consecutive_empty_pages: int = 3
    page_delay: float = 2.0
    empty_page_backoff: float = 5.0
    failure_backoff: float = 5.0
    max_failure_backoff: float = 60.0
    completeness_threshold: float = 0.8
    recovery_warning_threshold: float = 0.9
    alternate_page_sizes: tuple[int, ...] = (20, 30, 100)
    alternate_max_pages: int = 50
    alternate_page_headroom: int = 10
    strategy_pause: float = 3.0

    def __post_init__(self) -> None:
        if self.page_size < 1 or self.max_pages < 1:
            raise ValueError("page_size and max_pages must be >= 1")
        if self.max_consecutive_failures < 1 or self.max_consecutive_empty_pages < 1:
            raise ValueError("Consecutive failure/empty caps must be >= 1")


class SessionState(StrEnum):
    FETCHING = "fetching"
    BACKOFF = "backoff"
    DONE = "done"
    ABORTED = "aborted"


@dataclass(slots=True, frozen=True)
class FetchSession:
    """Immutable snapshot of one cursor walk."""

    max_pages: int
    state: SessionState = SessionState.FETCHING
    cursor: str | None = None
    pages: int = 0
    consecutive_empty: int = 0
    consecutive_failures: int = 0
    delay: float = 0.0
    warnings: tuple[str, ...] = ()

    @property
    def finished(self) -> bool:
        return self.state in {SessionState.DONE, SessionState.ABORTED}


def _below(total: int, expected: int | None, threshold: float) -> bool:
    return expected is not None and expected > 0 and total < expected * threshold


def _enforce_page_cap(session: FetchSession) -> FetchSession:
    if session.finished or session.pages < session.max_pages:
        return session
    return replace(
        session,
        state=SessionState.ABORTED,
        delay=0.0,
        warnings=(*session.warnings, f"Stopped after reaching the page limit ({session.max_pages})"),
    )


def after_data_page(
    session: FetchSession,
    policy: PaginationPolicy,
    *,
    next_cursor: str | None,
    total: int,
    expected_count: int | None,
) -> FetchSession:
    advanced = replace(
        session,
        pages=session.pages + 1,
        cursor=next_cursor,
        consecutive_empty=0,
        consecutive_failures=0,
    )
    if next_cursor is None:
        warnings = advanced.warnings
        if _below(total, expected_count, policy.completeness_threshold):
            warnings = (
                *warnings,
                f"Provider returned null cursor early: got {total}/{expected_count} expected records",
            )
        return replace(advanced, state=SessionState.DONE, delay=0.0, warnings=warnings)
    return _enforce_page_cap(
        replace(advanced, state=SessionState.FETCHING, delay=policy.page_delay)
    )


def after_empty_page(
    session: FetchSession,
    policy: PaginationPolicy,
    *,
    next_cursor: str | None,
    total: int,
    expected_count: int | None,
) -> FetchSession:
    empty = session.consecutive_empty + 1
    counted = replace(session, pages=session.pages + 1, consecutive_empty=empty)

    if next_cursor is None:
        if not _below(total, expected_count, policy.completeness_threshold):
            return replace(counted, state=SessionState.DONE, delay=0.0)
        warnings = (
            *counted.warnings,
            f"Provider returned null cursor early: got {total}/{expected_count} expected records",
        )
        if empty < policy.max_consecutive_empty_pages:
            # distrust the null cursor and walk the chain again from the start
            return _enforce_page_cap(
                replace(
                    counted,
                    state=SessionState.BACKOFF,
                    cursor=None,
                    delay=policy.empty_page_backoff * 2 ** (empty - 1),
                    warnings=warnings,
                )
            )
        return replace(counted, state=SessionState.DONE, delay=0.0, warnings=warnings)

    if empty >= policy.max_consecutive_empty_pages:
        return replace(
            counted,
            state=SessionState.ABORTED,
            cursor=next_cursor,
            delay=0.0,
            warnings=(
                *counted.warnings,
                f"Too many consecutive empty pages ({empty}), stopping pagination",
            ),
        )
    return _enforce_page_cap(
        replace(
            counted,
            state=SessionState.BACKOFF,
            cursor=next_cursor,
            delay=policy.empty_page_backoff,
        )
    )


def after_failure(
    session: FetchSession,
    policy: PaginationPolicy,
    *,
    min_delay: float = 0.0,
) -> FetchSession:
    failures = session.consecutive_failures + 1
    if failures >= policy.max_consecutive_failures:
        return replace(
            session,
            state=SessionState.ABORTED,
            consecutive_failures=failures,
            delay=0.0,
            warnings=(
                *session.warnings,
                f"Too many consecutive failures ({failures}), stopping pagination",
            ),
        )
    backoff = min(policy.failure_backoff * 2 ** (failures - 1), policy.max_failure_backoff)
    return replace(
        session,
        state=SessionState.BACKOFF,
        consecutive_failures=failures,
        delay=max(backoff, min_delay),
    )


@dataclass(slots=True)
class _RunOutcome:
    pages: int = 0
    fetched: int = 0
    added: int = 0
    skipped: int = 0
    filtered: int = 0
    warnings: list[str] = field(default_factory=list)
    first_total: int | None = None


@dataclass(slots=True, frozen=True)
class PaginationResult:
    records: list[NormalizedRecord]
    pages_processed: int
    strategies_used: list[str]
    warnings: list[str]
    expected_count: int | None = None
    skipped: int = 0


def _unique(messages: list[str]) -> list[str]:
    return list(dict.fromkeys(messages))


class PaginationOrchestrator:
    """Fetch every record a wallet owns from one provider, best effort."""

    def __init__(
        self,
        adapter: ProviderAdapter,
        limiter: RateLimiter,
        *,
        normalizer: Normalizer | None = None,
        policy: PaginationPolicy | None = None,
    ) -> None:
        self.adapter = adapter
        self.limiter = limiter
        self.normalizer = normalizer or Normalizer()
        self.policy = policy or adapter.pagination_policy
        self.enrichment_limiter = limiter.sibling(
            f"{adapter.source}-enrichment", config=adapter.limiter_config
        )

    async def fetch_all(
        self,
        wallet: str,
        *,
        expected_count: int | None = None,
        resolve_expected_count: bool = True,
        enrichment: bool = False,
    ) -> PaginationResult:
        policy = self.policy
        index = RecordIndex()
        warnings: list[str] = []
        strategies = [PRIMARY_STRATEGY]

        if expected_count is None and resolve_expected_count:
            expected_count = await self._lookup_expected_count(wallet)
        log.info(
            "Paginating %s for %s (expected %s, page size %d)",
            self.adapter.source,
            wallet,
            expected_count if expected_count is not None else "unknown",
            policy.page_size,
        )

        primary = await self._walk(
            wallet,
            index=index,
            page_size=policy.page_size,
            max_pages=policy.max_pages,
            expected_count=expected_count,
            enrichment=enrichment,
        )
        pages = primary.pages
        skipped = primary.skipped
        warnings.extend(primary.warnings)
        if expected_count is None and primary.first_total is not None:
            # provider totals include the items filtered out as spam
            expected_count = max(primary.first_total - primary.filtered, 0)
        log.info(
            "Primary pagination finished with %d records (%d filtered)", len(index), primary.filtered
        )

        if _below(len(index), expected_count, policy.completeness_threshold):
            before = len(index)
            alternate_pages, alternate_skipped, alternate_warnings = await self._alternate_page_sizes(
                wallet, index=index, expected_count=expected_count, enrichment=enrichment
            )
            pages += alternate_pages
            skipped += alternate_skipped
            warnings.extend(alternate_warnings)
            recovered = len(index) - before
            if recovered > 0:
                strategies.append(ALTERNATE_PAGE_SIZE_STRATEGY)
                log.info("Alternate page sizes recovered %d records", recovered)

        if _below(len(index), expected_count, policy.recovery_warning_threshold):
            warnings.append(
                f"Still missing records after all pagination strategies: "
                f"{len(index)}/{expected_count}"
            )

        warnings = _unique(warnings)
        for message in warnings:
            log.warning("[%s] %s", self.adapter.source, message)
        return PaginationResult(
            records=index.records(),
            pages_processed=pages,
            strategies_used=strategies,
            warnings=warnings,
            expected_count=expected_count,
            skipped=skipped,
        )

    async def _lookup_expected_count(self, wallet: str) -> int | None:
        result = await self.limiter.execute_call(
            partial(self.adapter.get_owned_count, wallet),
            f"{self.adapter.source} owned count",
        )
        if not result.success:
            log.warning("Could not determine expected count for %s: %s", wallet, result.error)
            return None
        return result.value

    async def _alternate_page_sizes(
        self,
        wallet: str,
        *,
        index: RecordIndex,
        expected_count: int | None,
        enrichment: bool,
    ) -> tuple[int, int, list[str]]:
        policy = self.policy
        sizes = [size for size in policy.alternate_page_sizes if size != policy.page_size]
        missing = max((expected_count or 0) - len(index), 0)
        pages = 0
        skipped = 0
        warnings: list[str] = []

        for position, size in enumerate(sizes):
            budget = min(policy.alternate_max_pages, math.ceil(missing / size) + policy.alternate_page_headroom)
            log.info("Retrying %s with page size %d (up to %d pages)", wallet, size, budget)
            outcome = await self._walk(
                wallet,
                index=index,
                page_size=size,
                max_pages=budget,
                expected_count=expected_count,
                enrichment=enrichment,
            )
            pages += outcome.pages
            skipped += outcome.skipped
            warnings.extend(outcome.warnings)
            if outcome.added > size:
                break
            if position < len(sizes) - 1:
                await self.limiter.pause(policy.strategy_pause)
        return pages, skipped, warnings

    async def _walk(
        self,
        wallet: str,
        *,
        index: RecordIndex,
        page_size: int,
        max_pages: int,
        expected_count: int | None,
        enrichment: bool,
    ) -> _RunOutcome:
        policy = self.policy
        outcome = _RunOutcome()
        session = FetchSession(max_pages=max_pages)

        while not session.finished:
            await self.limiter.pause(session.delay)
            operation = partial(
                self.adapter.fetch_page,
                wallet,
                page_size=page_size,
                cursor=session.cursor,
                enrichment=enrichment,
                enrichment_limiter=self.enrichment_limiter if enrichment else None,
            )
            result = await self.limiter.execute_call(
                operation, f"{self.adapter.source} page {session.pages + 1}"
            )
            if not result.success or result.value is None:
                session = after_failure(session, policy, min_delay=self.limiter.current_delay)
                continue

            page: RawPage = result.value
            if outcome.first_total is None:
                outcome.first_total = page.total_count
            outcome.skipped += page.skipped
            outcome.filtered += page.filtered
            if page.is_empty:
                session = after_empty_page(
                    session,
                    policy,
                    next_cursor=page.next_cursor,
                    total=len(index),
                    expected_count=expected_count,
                )
                continue

            normalized, skipped = self.normalizer.normalize_many(page.records)
            outcome.skipped += skipped
            outcome.fetched += len(normalized)
            outcome.added += index.add_all(normalized)
            session = after_data_page(
                session,
                policy,
                next_cursor=page.next_cursor,
                total=len(index),
                expected_count=expected_count,
            )
            log.debug(
                "%s page %d: %d records (total %d, next cursor %s)",
                self.adapter.source,
                session.pages,
                len(normalized),
                len(index),
                "present" if page.next_cursor else "none",
            )

        outcome.pages = session.pages
        outcome.warnings.extend(session.warnings)
        return outcome
