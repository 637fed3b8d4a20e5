"""Unit tests for ordabok.fetcher."""

from __future__ import annotations

from typing import TYPE_CHECKING

import httpx
import pytest
import respx

from ordabok.errors import DownloadError, ErrorCode
from ordabok.fetcher import (
    Downloader,
    HttpConnectivityProbe,
    StaticConnectivity,
    build_http_client,
    is_success_status,
)

if TYPE_CHECKING:
    from pathlib import Path

URL = "https://example.com/datasets/v1/dict.db"


class TestBuildHttpClient:
    def test_client_configuration(self) -> None:
        client = build_http_client(timeout_seconds=30)
        assert isinstance(client, httpx.AsyncClient)
        assert client.follow_redirects is True
        assert client.timeout.read == 30


class TestIsSuccessStatus:
    @pytest.mark.parametrize("status", [200, 204, 302, 399])
    def test_success(self, status: int) -> None:
        assert is_success_status(status)

    @pytest.mark.parametrize("status", [199, 400, 404, 500])
    def test_failure(self, status: int) -> None:
        assert not is_success_status(status)


class TestDownloader:
    async def test_successful_download(self, tmp_path: Path) -> None:
        dest = tmp_path / "dict.db.tmp"
        with respx.mock:
            respx.get(URL).mock(return_value=httpx.Response(200, content=b"SQLite data"))
            async with httpx.AsyncClient() as client:
                written = await Downloader(client).download(URL, dest)
        assert written == len(b"SQLite data")
        assert dest.read_bytes() == b"SQLite data"

    async def test_404_raises_error(self, tmp_path: Path) -> None:
        with respx.mock:
            respx.get(URL).mock(return_value=httpx.Response(404))
            async with httpx.AsyncClient() as client:
                with pytest.raises(DownloadError) as exc_info:
                    await Downloader(client).download(URL, tmp_path / "out")
        assert exc_info.value.code == ErrorCode.DOWNLOAD_FAILED
        assert exc_info.value.status_code == 404
        assert exc_info.value.recoverable is True

    async def test_500_raises_error(self, tmp_path: Path) -> None:
        with respx.mock:
            respx.get(URL).mock(return_value=httpx.Response(500))
            async with httpx.AsyncClient() as client:
                with pytest.raises(DownloadError) as exc_info:
                    await Downloader(client).download(URL, tmp_path / "out")
        assert exc_info.value.status_code == 500

    async def test_network_error_raises_error(self, tmp_path: Path) -> None:
        with respx.mock:
            respx.get(URL).mock(side_effect=httpx.ConnectError("Connection refused"))
            async with httpx.AsyncClient() as client:
                with pytest.raises(DownloadError) as exc_info:
                    await Downloader(client).download(URL, tmp_path / "out")
        assert exc_info.value.status_code is None
        assert isinstance(exc_info.value.__cause__, httpx.ConnectError)

    async def test_redirect_followed(self, tmp_path: Path) -> None:
        dest = tmp_path / "out"
        with respx.mock:
            respx.get(URL).mock(
                return_value=httpx.Response(302, headers={"location": "https://cdn.example.com/d"})
            )
            respx.get("https://cdn.example.com/d").mock(
                return_value=httpx.Response(200, content=b"moved")
            )
            async with build_http_client() as client:
                await Downloader(client).download(URL, dest)
        assert dest.read_bytes() == b"moved"

    async def test_unwritable_destination_raises_error(self, tmp_path: Path) -> None:
        with respx.mock:
            respx.get(URL).mock(return_value=httpx.Response(200, content=b"data"))
            async with httpx.AsyncClient() as client:
                with pytest.raises(DownloadError):
                    await Downloader(client).download(URL, tmp_path / "missing" / "out")


class TestConnectivity:
    async def test_static(self) -> None:
        assert await StaticConnectivity(True).is_connected() is True
        assert await StaticConnectivity(False).is_connected() is False

    async def test_probe_reachable_host(self) -> None:
        with respx.mock:
            route = respx.head("https://example.com/").mock(return_value=httpx.Response(200))
            async with httpx.AsyncClient() as client:
                assert await HttpConnectivityProbe(client, URL).is_connected() is True
            assert route.called

    async def test_probe_error_status_still_connected(self) -> None:
        with respx.mock:
            respx.head("https://example.com/").mock(return_value=httpx.Response(503))
            async with httpx.AsyncClient() as client:
                assert await HttpConnectivityProbe(client, URL).is_connected() is True

    async def test_probe_transport_error_means_offline(self) -> None:
        with respx.mock:
            respx.head("https://example.com/").mock(side_effect=httpx.ConnectError("no route"))
            async with httpx.AsyncClient() as client:
                assert await HttpConnectivityProbe(client, URL).is_connected() is False
