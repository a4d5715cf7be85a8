"""Failure taxonomy for the ingestion pipeline."""

from __future__ import annotations

import re

_RATE_LIMIT_PATTERN = re.compile(r"429|rate limit|too many requests", re.IGNORECASE)


class IngestError(RuntimeError):
    """Base class for ingestion failures."""


class RateLimitedError(IngestError):
    """The provider throttled the call. Recoverable through backoff."""

    def __init__(
        self,
        message: str = "Rate limited",
        *,
        status_code: int | None = 429,
        retry_after: float | None = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.retry_after = retry_after


class TransientNetworkError(IngestError):
    """A network or upstream failure that may succeed when retried."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class ProviderShapeMismatch(IngestError):
    """A page or record does not match the provider's expected payload shape."""


class MappingFailure(IngestError):
    """A normalized record cannot be mapped to catalog entities. Never retried."""


def is_rate_limit_error(error: BaseException) -> bool:
    if isinstance(error, RateLimitedError):
        return True
    status = getattr(error, "status_code", None)
    if status == 429:  # noqa: PLR2004
        return True
    response = getattr(error, "response", None)
    if getattr(response, "status_code", None) == 429:  # noqa: PLR2004
        return True
    return bool(_RATE_LIMIT_PATTERN.search(str(error)))
