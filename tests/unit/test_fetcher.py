"""Tests for authenticated artifact download."""

from __future__ import annotations

from unittest.mock import MagicMock

import httpx
import pytest

from nebula_updater.artifacts.fetcher import (
    ArtifactFetcher,
    build_artifact_url,
    filename_from_disposition,
)
from nebula_updater.errors import ErrorKind, FetchError

BODY = b"\x7fELF" + b"\x00" * 4096
URL = "https://artifacts.example.test/files/nebula-package:2024.01.01-00.00.00:nebula-standalone:download?alt=media"


class FakeTokens:
    def __init__(self, token: str = "test-token", error: Exception | None = None) -> None:
        self.token = token
        self.error = error
        self.calls = 0

    async def get_token(self) -> str:
        self.calls += 1
        if self.error is not None:
            raise self.error
        return self.token


def _fetcher(settings, handler, tokens: FakeTokens | None = None) -> ArtifactFetcher:
    return ArtifactFetcher(
        settings,
        tokens or FakeTokens(),
        transport=httpx.MockTransport(handler),
        log=MagicMock(),
    )


# ---------------------------------------------------------------------------
# URL and filename helpers
# ---------------------------------------------------------------------------


class TestBuildArtifactUrl:
    def test_url_layout(self, settings) -> None:
        url = build_artifact_url(settings, "2024.01.01-00.00.00")
        assert url == (
            "https://artifacts.example.test/repositories/nebula-storage/files/"
            "nebula-package:2024.01.01-00.00.00:nebula-standalone:download?alt=media"
        )

    def test_uses_configured_package_and_product(self, settings_factory) -> None:
        settings = settings_factory(
            artifact_base_url="https://a.example.test/repo/",
            artifact_package="pkg",
            product_id="nebula-agent",
        )
        assert build_artifact_url(settings, "v") == (
            "https://a.example.test/repo/files/pkg:v:nebula-agent:download?alt=media"
        )


class TestFilenameFromDisposition:
    @pytest.mark.parametrize(
        ("header", "expected"),
        [
            ('attachment; filename="nebula-standalone"', "nebula-standalone"),
            ("attachment; filename=nebula.bin", "nebula.bin"),
            ('attachment; filename="../../etc/passwd"', "passwd"),
            ('attachment; filename="/abs/path/nebula"', "nebula"),
            ('attachment; filename="..\\\\windows\\\\nebula.exe"', "nebula.exe"),
        ],
    )
    def test_extracts_basename(self, header: str, expected: str) -> None:
        assert filename_from_disposition(header) == expected

    @pytest.mark.parametrize(
        "header",
        [None, "", "attachment", 'attachment; filename=""', 'attachment; filename=".."'],
    )
    def test_unusable_headers(self, header: str | None) -> None:
        assert filename_from_disposition(header) is None


# ---------------------------------------------------------------------------
# ArtifactFetcher.fetch
# ---------------------------------------------------------------------------


class TestFetch:
    """Tests for ArtifactFetcher.fetch()."""

    async def test_saves_body_under_default_name(self, settings) -> None:
        fetcher = _fetcher(settings, lambda request: httpx.Response(200, content=BODY))

        path = await fetcher.fetch(URL)

        assert path == settings.download_dir / "downloaded-file"
        assert path.read_bytes() == BODY
        assert not path.with_name("downloaded-file.part").exists()

    async def test_uses_content_disposition_name(self, settings) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(
                200,
                content=BODY,
                headers={"Content-Disposition": 'attachment; filename="nebula-standalone"'},
            )

        path = await _fetcher(settings, handler).fetch(URL)

        assert path == settings.download_dir / "nebula-standalone"

    async def test_traversal_in_disposition_stays_in_download_dir(self, settings) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(
                200,
                content=BODY,
                headers={"Content-Disposition": 'attachment; filename="../../evil"'},
            )

        path = await _fetcher(settings, handler).fetch(URL)

        assert path.parent == settings.download_dir
        assert path.name == "evil"

    async def test_sends_bearer_token(self, settings) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, content=BODY)

        await _fetcher(settings, handler, FakeTokens("abc.def")).fetch(URL)

        assert seen[0].headers["Authorization"] == "Bearer abc.def"
        assert seen[0].method == "GET"

    async def test_small_chunks_reassemble(self, settings_factory) -> None:
        settings = settings_factory(download_chunk_size=3)
        fetcher = _fetcher(settings, lambda request: httpx.Response(200, content=BODY))

        path = await fetcher.fetch(URL)

        assert path.read_bytes() == BODY

    async def test_overwrites_previous_download(self, settings) -> None:
        settings.download_dir.mkdir(parents=True)
        (settings.download_dir / "downloaded-file").write_bytes(b"old")

        path = await _fetcher(settings, lambda r: httpx.Response(200, content=BODY)).fetch(URL)

        assert path.read_bytes() == BODY

    @pytest.mark.parametrize("status", [401, 403, 404, 500])
    async def test_non_200_raises_and_writes_nothing(self, settings, status: int) -> None:
        fetcher = _fetcher(settings, lambda request: httpx.Response(status, content=b"denied"))

        with pytest.raises(FetchError) as exc_info:
            await fetcher.fetch(URL)

        assert exc_info.value.status_code == status
        assert exc_info.value.kind is ErrorKind.FETCH
        assert str(status) in exc_info.value.message
        assert not settings.download_dir.exists() or list(settings.download_dir.iterdir()) == []

    async def test_transport_error(self, settings) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("unreachable", request=request)

        with pytest.raises(FetchError, match="failed to execute request"):
            await _fetcher(settings, handler).fetch(URL)

    async def test_token_failure_skips_request(self, settings) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, content=BODY)

        tokens = FakeTokens(error=FetchError("failed to retrieve token"))
        with pytest.raises(FetchError, match="failed to retrieve token"):
            await _fetcher(settings, handler, tokens).fetch(URL)
        assert seen == []

    async def test_interrupted_stream_leaves_no_partial_file(self, settings) -> None:
        class BrokenStream(httpx.AsyncByteStream):
            async def __aiter__(self):
                yield b"partial"
                raise httpx.ReadError("connection reset")

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, stream=BrokenStream())

        with pytest.raises(FetchError):
            await _fetcher(settings, handler).fetch(URL)

        assert list(settings.download_dir.iterdir()) == []
