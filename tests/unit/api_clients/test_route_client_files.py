"""
Unit tests for the RouteClient file helpers.

Covers static URL formatting, string-or-file argument resolution, downloads
into local files, local URL minting and progress callback adaptation.
"""

from pathlib import Path
from urllib.parse import unquote, urlparse

import pytest

from robolt.api_clients.route_client import RouteClient
from robolt.api_clients.transport import ProgressEvent
from robolt.config import RouteClientConfig
from robolt.models import UNKNOWN_FILE_NAME, LocalFile, RoboFile

STORED_FILE = {
    "_id": "f1",
    "name": "b.png",
    "path": "a/b.png",
    "size": 3,
    "type": "image/png",
    "extension": "png",
    "isImage": True,
    "thumbnailPath": "a/b_thumb.png",
    "uploadDate": "2024-01-01T00:00:00Z",
}


def _url_path(url: str) -> Path:
    return Path(unquote(urlparse(url).path))


class TestGetFileURLs:
    """Static hosting URLs are formatted locally."""

    def test_file_without_thumbnail(self, route_client, mock_http):
        urls = route_client.get_file_urls({"_id": "f1", "path": "a/b.png"})

        assert urls == {
            "absolutePath": "https://x/api/static/a/b.png",
            "relativePath": "/api/static/a/b.png",
        }
        mock_http.get.assert_not_awaited()

    def test_file_with_thumbnail(self, route_client):
        urls = route_client.get_file_urls(RoboFile.model_validate(STORED_FILE))

        assert urls["absoluteThumbnailPath"] == "https://x/api/static/a/b_thumb.png"
        assert urls["relativeThumbnailPath"] == "/api/static/a/b_thumb.png"

    def test_custom_static_base_path_and_trailing_slash(self, mock_http):
        mock_http.base_url = "https://x/"
        client = RouteClient(
            mock_http, RouteClientConfig(prefix="api", static_base_path="files")
        )

        urls = client.get_file_urls({"_id": "f1", "path": "a/b.png"})

        assert urls["absolutePath"] == "https://x/api/files/a/b.png"
        assert urls["relativePath"] == "/api/files/a/b.png"


class TestFileArgumentResolution:
    """A bare identifier and a stored file produce the identical request."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "operation,method,bare",
        [
            ("clone_file", "post", "f1"),
            ("delete_file", "delete", "f1"),
            ("get_file", "get", "a/b.png"),
            ("get_thumbnail", "get", "a/b_thumb.png"),
        ],
    )
    async def test_string_and_object_arguments_match(
        self, route_client, mock_http, operation, method, bare
    ):
        getattr(mock_http, method).return_value = (
            b"data" if method == "get" else STORED_FILE
        )
        http_method = getattr(mock_http, method)

        await getattr(route_client, operation)(bare)
        from_string = http_method.await_args
        await getattr(route_client, operation)(STORED_FILE)
        from_mapping = http_method.await_args
        await getattr(route_client, operation)(RoboFile.model_validate(STORED_FILE))
        from_model = http_method.await_args

        assert from_string == from_mapping == from_model


class TestDownloads:
    """Downloaded bytes are returned as named local files."""

    @pytest.mark.asyncio
    async def test_get_file_is_named_after_stored_file(self, route_client, mock_http):
        mock_http.get.return_value = b"\x89PNG"

        local_file = await route_client.get_file(STORED_FILE)

        assert local_file == LocalFile(
            name="b.png", content=b"\x89PNG", mime_type="image/png"
        )

    @pytest.mark.asyncio
    async def test_get_file_from_path_has_unknown_name(self, route_client, mock_http):
        mock_http.get.return_value = b"data"

        local_file = await route_client.get_file("a/b.png")

        assert local_file.name == UNKNOWN_FILE_NAME
        assert local_file.content == b"data"

    @pytest.mark.asyncio
    async def test_get_thumbnail_without_thumbnail_sends_nothing(
        self, route_client, mock_http
    ):
        stored = {k: v for k, v in STORED_FILE.items() if k != "thumbnailPath"}

        with pytest.raises(ValueError, match="has no thumbnail"):
            await route_client.get_thumbnail(stored)
        with pytest.raises(ValueError):
            await route_client.get_thumbnail_url(RoboFile.model_validate(stored))

        mock_http.get.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_progress_callback_receives_percent_and_event(
        self, route_client, mock_http
    ):
        mock_http.get.return_value = b"data"
        received = []

        await route_client.get_file(
            STORED_FILE, lambda percent, event: received.append((percent, event))
        )

        observer = mock_http.get.await_args.kwargs["on_download_progress"]
        event = ProgressEvent(loaded=50, total=200)
        observer(event)
        assert received == [(25, event)]

    @pytest.mark.asyncio
    async def test_upload_progress_callback_is_adapted(self, route_client, mock_http):
        mock_http.post.return_value = STORED_FILE
        received = []

        await route_client.upload_file(
            LocalFile(name="a.txt", content=b"hi"),
            lambda percent, event: received.append(percent),
        )

        observer = mock_http.post.await_args.kwargs["on_upload_progress"]
        observer(ProgressEvent(loaded=3, total=0))
        observer(ProgressEvent(loaded=2, total=2))
        assert received == [0, 100]

    @pytest.mark.asyncio
    async def test_upload_from_path(self, route_client, mock_http, tmp_path):
        source = tmp_path / "notes.txt"
        source.write_bytes(b"hello")
        mock_http.post.return_value = STORED_FILE

        await route_client.upload_file(source)

        files = mock_http.post.await_args.kwargs["files"]
        assert files == {"file": ("notes.txt", b"hello", "text/plain")}


class TestLocalURLs:
    """URL returning helpers download then mint a revocable local URL."""

    @pytest.mark.asyncio
    async def test_get_file_url_points_at_downloaded_bytes(
        self, route_client, mock_http, url_minter
    ):
        mock_http.get.return_value = b"file-bytes"

        url = await route_client.get_file_url(STORED_FILE)

        assert url.startswith("file://")
        assert url in url_minter
        assert _url_path(url).read_bytes() == b"file-bytes"
        mock_http.get.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_get_thumbnail_url_fetches_thumbnail(
        self, route_client, mock_http
    ):
        mock_http.get.return_value = b"thumb"

        url = await route_client.get_thumbnail_url(STORED_FILE)

        assert mock_http.get.await_args.args == ("/api/static/a/b_thumb.png",)
        assert _url_path(url).read_bytes() == b"thumb"

    @pytest.mark.asyncio
    async def test_revoke_url_removes_local_copy(
        self, route_client, mock_http, url_minter
    ):
        mock_http.get.return_value = b"file-bytes"
        url = await route_client.get_file_url("a/b.png")

        route_client.revoke_url(url)

        assert url not in url_minter
        assert not _url_path(url).exists()

    @pytest.mark.asyncio
    async def test_failed_download_mints_nothing(
        self, route_client, mock_http, url_minter, tmp_path
    ):
        mock_http.get.side_effect = ConnectionError("offline")

        with pytest.raises(ConnectionError):
            await route_client.get_file_url(STORED_FILE)

        assert list(tmp_path.iterdir()) == []
