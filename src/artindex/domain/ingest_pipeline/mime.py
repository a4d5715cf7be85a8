"""Best-effort MIME detection for token media.

Evidence is gathered once per record (one ranged GET through a
:class:`~artindex.domain.ports.fetching.MediaProbe`) and then run through an
ordered resolver chain: response header, byte signature, URL extension, URL
keywords. ``image/png`` is the last resort.
"""

from __future__ import annotations

import mimetypes
from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING
from urllib.parse import urlparse

from .resolvers import first_resolved

if TYPE_CHECKING:
    from collections.abc import Callable

    from artindex.domain.model import NormalizedRecord
    from artindex.domain.ports.fetching import MediaProbe, MediaProbeResult

log = getLogger(__name__)

DEFAULT_MIME = "image/png"
IPFS_GATEWAY = "https://ipfs.io/ipfs/"
GENERIC_CONTENT_TYPES = frozenset({"application/octet-stream", "binary/octet-stream"})

_EXTENSION_MIME: dict[str, str] = {
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "png": "image/png",
    "gif": "image/gif",
    "webp": "image/webp",
    "svg": "image/svg+xml",
    "mp4": "video/mp4",
    "webm": "video/webm",
    "mov": "video/quicktime",
    "avi": "video/x-msvideo",
    "html": "text/html",
    "htm": "text/html",
    "js": "application/javascript",
    "json": "application/json",
    "pdf": "application/pdf",
}

_KEYWORD_MIME: tuple[tuple[str, str], ...] = (
    ("generator.artblocks.io", "text/html"),
    ("fxhash.xyz", "text/html"),
    ("video", "video/mp4"),
    ("animation", "video/mp4"),
    ("generator", "text/html"),
    ("interactive", "text/html"),
)


def to_gateway_url(url: str) -> str:
    if url.startswith("ipfs://"):
        path = url.removeprefix("ipfs://").removeprefix("ipfs/")
        return IPFS_GATEWAY + path
    return url


def media_candidate(record: NormalizedRecord) -> str | None:
    """Pick the URL whose type best describes the token: animation, image, generator, thumbnail."""

    for url in (record.animation_url, record.image_url, record.generator_url, record.thumbnail_url):
        if url:
            return url
    return None


@dataclass(slots=True, frozen=True)
class MediaEvidence:
    url: str
    probe: MediaProbeResult | None = None


def mime_from_header(evidence: MediaEvidence) -> str | None:
    if evidence.probe is None or not evidence.probe.content_type:
        return None
    content_type = evidence.probe.content_type.split(";", 1)[0].strip().lower()
    if not content_type or content_type in GENERIC_CONTENT_TYPES:
        return None
    return content_type


def sniff_signature(head: bytes) -> str | None:  # noqa: PLR0911
    if head.startswith(b"\x89PNG\r\n\x1a\n"):
        return "image/png"
    if head.startswith(b"\xff\xd8\xff"):
        return "image/jpeg"
    if head.startswith((b"GIF87a", b"GIF89a")):
        return "image/gif"
    if head.startswith(b"RIFF") and head[8:12] == b"WEBP":
        return "image/webp"
    if head[4:8] == b"ftyp":
        return "video/quicktime" if head[8:10] == b"qt" else "video/mp4"
    if head.startswith(b"\x1a\x45\xdf\xa3"):
        return "video/webm"
    if head.startswith(b"%PDF-"):
        return "application/pdf"
    text = head[:512].lstrip().lower()
    if text.startswith(b"<svg") or (text.startswith(b"<?xml") and b"<svg" in text):
        return "image/svg+xml"
    if text.startswith((b"<!doctype html", b"<html")):
        return "text/html"
    if text.startswith((b"{", b"[")):
        return "application/json"
    return None


def mime_from_signature(evidence: MediaEvidence) -> str | None:
    if evidence.probe is None or not evidence.probe.head:
        return None
    return sniff_signature(evidence.probe.head)


def mime_from_extension(evidence: MediaEvidence) -> str | None:
    path = urlparse(evidence.url).path.lower()
    _, dot, extension = path.rpartition(".")
    if not dot or "/" in extension:
        return None
    known = _EXTENSION_MIME.get(extension)
    if known is not None:
        return known
    guessed, _ = mimetypes.guess_type(path)
    return guessed


def mime_from_keywords(evidence: MediaEvidence) -> str | None:
    lowered = evidence.url.lower()
    for keyword, mime in _KEYWORD_MIME:
        if keyword in lowered:
            return mime
    return None


MIME_RESOLVERS: tuple[Callable[[MediaEvidence], str | None], ...] = (
    mime_from_header,
    mime_from_signature,
    mime_from_extension,
    mime_from_keywords,
)


class MimeSniffer:
    """Resolve the MIME type of a record's primary media URL."""

    def __init__(self, probe: MediaProbe | None = None) -> None:
        self.probe = probe

    async def detect(self, url: str) -> str:
        gateway_url = to_gateway_url(url)
        result: MediaProbeResult | None = None
        if self.probe is not None:
            try:
                result = await self.probe.probe(gateway_url)
            except Exception as exc:  # noqa: BLE001
                log.warning("Media probe failed for %s: %s", gateway_url, exc)
        evidence = MediaEvidence(url=gateway_url, probe=result)
        return first_resolved(MIME_RESOLVERS, evidence) or DEFAULT_MIME

    async def detect_for(self, record: NormalizedRecord) -> str | None:
        url = media_candidate(record)
        if url is None:
            return None
        return await self.detect(url)
