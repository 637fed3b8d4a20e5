"""HTTP access: whole-file dataset download and the connectivity probe."""

from __future__ import annotations

from pathlib import Path
from typing import Protocol
from urllib.parse import urlsplit

import httpx
import structlog

from ordabok.errors import DownloadError

log = structlog.get_logger()

_CHUNK_SIZE = 64 * 1024


def build_http_client(timeout_seconds: float = 60.0) -> httpx.AsyncClient:
    """Shared client. Redirects are followed; 3xx finals still count as success."""
    return httpx.AsyncClient(
        follow_redirects=True,
        timeout=httpx.Timeout(timeout_seconds, connect=10.0),
        headers={"User-Agent": "ordabok"},
    )


def is_success_status(status_code: int) -> bool:
    return 200 <= status_code < 400


class Downloader:
    def __init__(self, client: httpx.AsyncClient) -> None:
        self._client = client

    async def download(self, url: str, dest: str | Path) -> int:
        """Stream ``url`` into ``dest`` and return the number of bytes written.

        Raises ``DownloadError`` on transport failure or a status outside
        200–399. ``dest`` may hold a partial body afterwards; the caller owns
        cleaning it up.
        """
        dest = Path(dest)
        written = 0
        try:
            async with self._client.stream("GET", url) as response:
                if not is_success_status(response.status_code):
                    raise DownloadError(
                        f"HTTP {response.status_code} fetching {url}",
                        status_code=response.status_code,
                    )
                with open(dest, "wb") as fh:
                    async for chunk in response.aiter_bytes(_CHUNK_SIZE):
                        fh.write(chunk)
                        written += len(chunk)
        except httpx.HTTPError as exc:
            raise DownloadError(f"Network error fetching {url}: {exc}") from exc
        except OSError as exc:
            raise DownloadError(f"Could not write download to {dest}: {exc}") from exc
        log.info("dataset_downloaded", url=url, bytes=written)
        return written


class ConnectivityProbe(Protocol):
    async def is_connected(self) -> bool: ...


class StaticConnectivity:
    """Fixed answer; used offline and in tests."""

    def __init__(self, connected: bool) -> None:
        self.connected = connected

    async def is_connected(self) -> bool:
        return self.connected


class HttpConnectivityProbe:
    """Connected means the dataset host answers a HEAD request at all."""

    def __init__(self, client: httpx.AsyncClient, url: str, timeout_seconds: float = 5.0) -> None:
        parts = urlsplit(url)
        self._url = f"{parts.scheme}://{parts.netloc}/"
        self._client = client
        self._timeout = timeout_seconds

    async def is_connected(self) -> bool:
        try:
            await self._client.head(self._url, timeout=self._timeout)
        except httpx.TransportError as exc:
            log.info("connectivity_unavailable", url=self._url, error=str(exc))
            return False
        return True
