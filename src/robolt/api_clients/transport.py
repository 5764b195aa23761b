"""HTTP transport for Robolt API clients.

Provides the ``HttpClient`` capability the route client is written against and
its default httpx implementation. The transport owns everything the route
client treats as opaque: connection handling, query parameter encoding,
response decoding, multipart bodies and progress observation.

Non-2xx responses raise ``httpx.HTTPStatusError`` and network failures raise
``httpx.TransportError`` subclasses. Neither is caught or translated here.
"""

import json
import math
import logging
from dataclasses import dataclass
from os import PathLike
from typing import (
    Any,
    AsyncIterator,
    Callable,
    Dict,
    Literal,
    Mapping,
    Optional,
    Protocol,
    Tuple,
    Union,
)

import httpx

from ..config import TransportConfig
from ..models import LocalFile

logger = logging.getLogger(__name__)

ResponseType = Literal["json", "bytes", "text"]


@dataclass(frozen=True)
class ProgressEvent:
    """Transfer progress of one request body or response body."""

    loaded: int
    total: int

    @property
    def percent(self) -> int:
        if not self.total:
            return 0
        return math.floor(self.loaded * 100 / self.total + 0.5)


ProgressObserver = Callable[[ProgressEvent], None]


class HttpClient(Protocol):
    """Capability required by the route client."""

    @property
    def base_url(self) -> str: ...

    @property
    def structured_params(self) -> bool:
        """Whether nested query values (dicts) can be sent as they are."""
        ...

    async def get(self, path: str, body: Any = None, **options: Any) -> Any: ...

    async def post(self, path: str, body: Any = None, **options: Any) -> Any: ...

    async def patch(self, path: str, body: Any = None, **options: Any) -> Any: ...

    async def delete(self, path: str, body: Any = None, **options: Any) -> Any: ...

    async def close(self) -> None: ...


FileFieldValue = Tuple[str, bytes, Optional[str]]


class MultipartEncoder:
    """Wraps one binary payload as the ``file`` field of a multipart form."""

    field_name = "file"

    def encode(
        self, file: Union[LocalFile, str, PathLike]
    ) -> Dict[str, FileFieldValue]:
        if not isinstance(file, LocalFile):
            file = LocalFile.from_path(file)
        mime_type = file.mime_type or "application/octet-stream"
        return {self.field_name: (file.name, file.content, mime_type)}


class _ProgressByteStream(httpx.AsyncByteStream):
    """Request body stream reporting every chunk handed to the connection."""

    def __init__(
        self, stream: httpx.AsyncByteStream, total: int, observer: ProgressObserver
    ):
        self._stream = stream
        self._total = total
        self._observer = observer

    async def __aiter__(self) -> AsyncIterator[bytes]:
        loaded = 0
        async for chunk in self._stream:
            loaded += len(chunk)
            self._observer(ProgressEvent(loaded=loaded, total=self._total))
            yield chunk

    async def aclose(self) -> None:
        await self._stream.aclose()


def dump_query_json(value: Any) -> str:
    """Compact JSON form of a structured query value."""
    return json.dumps(value, separators=(",", ":"), ensure_ascii=False)


def encode_params(params: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
    """Prepare query parameters for httpx.

    ``None`` values are dropped. Dicts cannot be carried as query values by
    httpx, so they are sent as JSON strings. Lists are sent as repeated
    ``key[]`` entries, so a one element list still parses as an array on the
    server.
    """
    encoded: Dict[str, Any] = {}
    for key, value in (params or {}).items():
        if value is None:
            continue
        if isinstance(value, Mapping):
            encoded[key] = dump_query_json(value)
        elif isinstance(value, (list, tuple)):
            encoded[f"{key}[]"] = list(value)
        else:
            encoded[key] = value
    return encoded


class HttpxTransport:
    """Default ``HttpClient`` built on ``httpx.AsyncClient``."""

    structured_params = False

    def __init__(
        self,
        config: TransportConfig,
        client: Optional[httpx.AsyncClient] = None,
    ):
        """Initialize transport.

        Args:
            config: Connection settings
            client: Preconfigured client to use instead of creating one. Its
                base URL must match ``config.base_url``.
        """
        self.config = config
        self._session: Optional[httpx.AsyncClient] = client

    @property
    def base_url(self) -> str:
        return self.config.base_url

    @property
    def session(self) -> httpx.AsyncClient:
        """Get or create HTTP session."""
        if self._session is None or self._session.is_closed:
            timeouts = httpx.Timeout(
                connect=self.config.connect_timeout,
                read=self.config.timeout,
                write=self.config.timeout,
                pool=self.config.pool_timeout,
            )
            limits = httpx.Limits(
                max_connections=self.config.max_connections,
                max_keepalive_connections=self.config.max_keepalive_connections,
            )
            # No default Content-Type: httpx sets it per body so multipart
            # requests keep their boundary.
            self._session = httpx.AsyncClient(
                base_url=self.config.base_url,
                timeout=timeouts,
                limits=limits,
                headers=dict(self.config.headers),
                follow_redirects=True,
                verify=self.config.verify,
            )
        return self._session

    async def request(
        self,
        method: str,
        path: str,
        body: Any = None,
        *,
        params: Optional[Mapping[str, Any]] = None,
        headers: Optional[Mapping[str, str]] = None,
        files: Optional[Mapping[str, FileFieldValue]] = None,
        response_type: ResponseType = "json",
        on_upload_progress: Optional[ProgressObserver] = None,
        on_download_progress: Optional[ProgressObserver] = None,
    ) -> Any:
        """Send one request and decode its response body.

        Args:
            method: HTTP method
            path: Path relative to the base URL
            body: JSON body (ignored when ``files`` is given)
            params: Query parameters, see ``encode_params``
            headers: Extra request headers
            files: Multipart file fields
            response_type: How to decode the response body
            on_upload_progress: Observer for request body progress
            on_download_progress: Observer for response body progress

        Returns:
            Decoded response body. Empty bodies decode to None for "json".

        Raises:
            httpx.HTTPStatusError: If the server answers with a non-2xx status
            httpx.TransportError: If the request could not be completed
        """
        request = self.session.build_request(
            method,
            path,
            params=encode_params(params),
            headers=dict(headers) if headers else None,
            json=body if files is None and body is not None else None,
            files=files,
        )
        if on_upload_progress is not None:
            total = int(request.headers.get("Content-Length", 0))
            request.stream = _ProgressByteStream(
                request.stream, total, on_upload_progress
            )

        logger.debug(f"{method} {request.url}")
        response = await self.session.send(request, stream=True)
        try:
            if response.is_success and on_download_progress is not None:
                content = await self._read_with_progress(
                    response, on_download_progress
                )
            else:
                content = await response.aread()
        finally:
            await response.aclose()

        response.raise_for_status()
        return self._decode(content, response, response_type)

    async def _read_with_progress(
        self, response: httpx.Response, observer: ProgressObserver
    ) -> bytes:
        total = int(response.headers.get("Content-Length", 0))
        chunks = []
        loaded = 0
        async for chunk in response.aiter_bytes():
            chunks.append(chunk)
            loaded += len(chunk)
            observer(ProgressEvent(loaded=loaded, total=total))
        return b"".join(chunks)

    @staticmethod
    def _decode(
        content: bytes, response: httpx.Response, response_type: ResponseType
    ) -> Any:
        if response_type == "bytes":
            return content
        if response_type == "text":
            return content.decode(response.encoding or "utf-8")
        if not content.strip():
            return None
        return json.loads(content)

    async def get(self, path: str, body: Any = None, **options: Any) -> Any:
        return await self.request("GET", path, body, **options)

    async def post(self, path: str, body: Any = None, **options: Any) -> Any:
        return await self.request("POST", path, body, **options)

    async def patch(self, path: str, body: Any = None, **options: Any) -> Any:
        return await self.request("PATCH", path, body, **options)

    async def delete(self, path: str, body: Any = None, **options: Any) -> Any:
        return await self.request("DELETE", path, body, **options)

    async def close(self) -> None:
        """Close HTTP session."""
        if self._session and not self._session.is_closed:
            await self._session.aclose()

    async def __aenter__(self):
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.close()
