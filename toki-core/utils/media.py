"""Remote media helpers: content-type probing and local re-download."""

from __future__ import annotations

import logging
from urllib.parse import urlparse

import httpx

logger = logging.getLogger(__name__)

DEFAULT_PROBE_TIMEOUT_SECONDS = 5.0
DEFAULT_DOWNLOAD_TIMEOUT_SECONDS = 30.0


class MediaTypeError(RuntimeError):
    pass


class MediaDownloadError(RuntimeError):
    pass


def is_remote_url(value: object) -> bool:
    if not isinstance(value, str):
        return False
    return urlparse(value).scheme in {"http", "https"}


def classify_content_type(content_type: str | None) -> str:
    """Map a Content-Type header value to a delivery kind.

    Raises ``MediaTypeError`` when no type was declared at all.
    """
    if not content_type or not content_type.strip():
        raise MediaTypeError("Missing content type")
    normalized = content_type.split(";", 1)[0].strip().lower()
    if "gif" in normalized:
        return "animation"
    if normalized.startswith("image/"):
        return "photo"
    if normalized.startswith("video/"):
        return "video"
    if normalized.startswith("audio/"):
        return "audio"
    return "document"


class MediaProbe:
    """Thin httpx wrapper used by the reply normalizer."""

    def __init__(
        self,
        probe_timeout_seconds: float = DEFAULT_PROBE_TIMEOUT_SECONDS,
        download_timeout_seconds: float = DEFAULT_DOWNLOAD_TIMEOUT_SECONDS,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.probe_timeout_seconds = probe_timeout_seconds
        self.download_timeout_seconds = download_timeout_seconds
        self._client = client
        self._owns_client = client is None

    def _http(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(follow_redirects=True)
        return self._client

    async def media_type(self, url: str) -> str:
        try:
            response = await self._http().head(url, timeout=self.probe_timeout_seconds)
            response.raise_for_status()
        except httpx.HTTPError as exc:
            logger.warning("Content type probe failed for %s: %s", url, exc)
            raise MediaTypeError(f"Could not determine media type for {url}") from exc
        try:
            return classify_content_type(response.headers.get("content-type"))
        except MediaTypeError as exc:
            raise MediaTypeError(f"Could not determine media type for {url}") from exc

    async def download(self, url: str) -> bytes:
        try:
            response = await self._http().get(url, timeout=self.download_timeout_seconds)
            response.raise_for_status()
        except httpx.HTTPError as exc:
            logger.warning("Local download failed for %s: %s", url, exc)
            raise MediaDownloadError(f"Could not download {url}") from exc
        return response.content

    async def aclose(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None
