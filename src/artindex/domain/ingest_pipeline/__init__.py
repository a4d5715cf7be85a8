"""Wallet ingestion pipeline: rate limiting, pagination, normalization and queueing."""

from __future__ import annotations

from .deduplication import RecordIndex, deduplicate_records, merge_records
from .errors import (
    IngestError,
    MappingFailure,
    ProviderShapeMismatch,
    RateLimitedError,
    TransientNetworkError,
    is_rate_limit_error,
)
from .mime import MimeSniffer
from .normalization import Normalizer, detect_blockchain, source_tag
from .pagination import (
    ALTERNATE_PAGE_SIZE_STRATEGY,
    PRIMARY_STRATEGY,
    PaginationOrchestrator,
    PaginationPolicy,
    PaginationResult,
)
from .queue import IndexQueue, ProcessOutcome, QueueEntryNotFoundError, QueueProcessor, QueueRunSummary
from .rate_limiter import CallResult, LimiterStats, RateLimiter, RateLimiterConfig, RateLimitPressure
from .runner import IngestOptions, IngestResult, ingest_wallet, normalize_manual_record

__all__ = [
    "ALTERNATE_PAGE_SIZE_STRATEGY",
    "PRIMARY_STRATEGY",
    "CallResult",
    "IndexQueue",
    "IngestError",
    "IngestOptions",
    "IngestResult",
    "LimiterStats",
    "MappingFailure",
    "MimeSniffer",
    "Normalizer",
    "PaginationOrchestrator",
    "PaginationPolicy",
    "PaginationResult",
    "ProcessOutcome",
    "ProviderShapeMismatch",
    "QueueEntryNotFoundError",
    "QueueProcessor",
    "QueueRunSummary",
    "RateLimitPressure",
    "RateLimitedError",
    "RateLimiter",
    "RateLimiterConfig",
    "RecordIndex",
    "TransientNetworkError",
    "deduplicate_records",
    "detect_blockchain",
    "ingest_wallet",
    "is_rate_limit_error",
    "merge_records",
    "normalize_manual_record",
    "source_tag",
]
