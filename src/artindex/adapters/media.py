"""HTTP media probe: content type and leading bytes of a media URL."""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING

from artindex.adapters.http_resilience import ResilientClient
from artindex.config import get_media_probe_config
from artindex.domain.ports.fetching import MediaProbeResult

if TYPE_CHECKING:
    from collections.abc import Callable
    from types import TracebackType

    from artindex.config.http_resilience import ResilienceConfig

log = getLogger(__name__)

PROBE_HEAD_BYTES = 8192


class HttpMediaProbe:
    """Fetch the first bytes of a URL with a ranged GET."""

    def __init__(
        self,
        *,
        config: ResilienceConfig | None = None,
        client_factory: Callable[[ResilienceConfig], ResilientClient] | None = None,
    ) -> None:
        self._config = config or get_media_probe_config()
        self._client_factory = client_factory or ResilientClient
        self._client: ResilientClient | None = None

    async def __aenter__(self) -> HttpMediaProbe:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
        self._client = None

    @property
    def client(self) -> ResilientClient:
        if self._client is None:
            self._client = self._client_factory(self._config)
        return self._client

    async def probe(self, url: str) -> MediaProbeResult | None:
        if not url.startswith(("http://", "https://")):
            return None
        response = await self.client.get(url, follow_redirects=True)
        if response.status_code >= 400:  # noqa: PLR2004
            log.debug("Media probe for %s returned HTTP %d", url, response.status_code)
            return None
        content_type = response.headers.get("Content-Type")
        if content_type is not None:
            content_type = content_type.split(";", 1)[0].strip().lower() or None
        return MediaProbeResult(content_type=content_type, head=response.content[:PROBE_HEAD_BYTES])
