"""Route Client for the model backend's generated routes.

Translates every logical operation into exactly one request against the route
scheme the server derives from its models, and shapes the decoded response.
Transport errors are propagated unchanged.
"""

import logging
import mimetypes
from os import PathLike
from typing import Any, Callable, Dict, List, Literal, Optional, Union

import httpx

from ..accesses import Accesses, AccessGroups
from ..config import RouteClientConfig, build_configs, thaw
from ..models import (
    Document,
    FileArgument,
    FileReference,
    LocalFile,
    RoboFile,
    SchemaField,
)
from ..object_urls import LocalURLMinter, TempFileURLMinter
from ..schema_recycler import recycle_schema_fields
from .transport import (
    HttpClient,
    HttpxTransport,
    MultipartEncoder,
    ProgressEvent,
    ProgressObserver,
    dump_query_json,
)

logger = logging.getLogger(__name__)

PercentCallback = Callable[[int, ProgressEvent], None]


def _percent_observer(
    callback: Optional[PercentCallback],
) -> Optional[ProgressObserver]:
    if callback is None:
        return None

    def observer(event: ProgressEvent) -> None:
        callback(event.percent, event)

    return observer


def _to_robofile(data: Any) -> Optional[RoboFile]:
    if data is None:
        return None
    return RoboFile.model_validate(data)


class RouteClient:
    """Client for the CRUD, search, file and schema routes of one server.

    Every method issues one request, except the URL returning file helpers
    (download, then mint a local URL) and ``get_file_urls`` which is purely
    local.
    """

    def __init__(
        self,
        http_client: HttpClient,
        config: RouteClientConfig,
        *,
        url_minter: Optional[LocalURLMinter] = None,
        multipart_encoder: Optional[MultipartEncoder] = None,
        diagnostics_logger: Optional[logging.Logger] = None,
    ):
        """Initialize route client.

        Args:
            http_client: Transport the requests are sent through
            config: Route prefix, static path and defaults
            url_minter: Mints local URLs for downloaded files
            multipart_encoder: Wraps uploads into multipart fields
            diagnostics_logger: Receives client side warnings such as
                unknown access groups
        """
        self.http = http_client
        self.config = config
        self._owned_minter: Optional[TempFileURLMinter] = None
        if url_minter is None:
            url_minter = self._owned_minter = TempFileURLMinter()
        self.url_minter = url_minter
        self.multipart_encoder = multipart_encoder or MultipartEncoder()
        self.diagnostics_logger = diagnostics_logger or logger

    @classmethod
    def connect(
        cls,
        base_url: str,
        prefix: str,
        static_base_path: str = "static",
        default_filter: Optional[Dict[str, Any]] = None,
        count_response: Literal["number", "object"] = "number",
        client: Optional[httpx.AsyncClient] = None,
        **transport_options: Any,
    ) -> "RouteClient":
        """Create a route client using the default httpx transport.

        Args:
            base_url: Base URL of the server
            prefix: Prefix the server registered its routes under
            static_base_path: Path the server hosts stored files under
            default_filter: Filter for read and count when none is given
            count_response: Shape of the count route response
            client: Preconfigured httpx client, mostly for tests
            **transport_options: Further ``TransportConfig`` fields
        """
        transport_config, route_config = build_configs(
            base_url,
            prefix,
            static_base_path=static_base_path,
            default_filter=default_filter,
            count_response=count_response,
            **transport_options,
        )
        return cls(HttpxTransport(transport_config, client=client), route_config)

    @property
    def prefix(self) -> str:
        return self.config.prefix

    @property
    def static_base_path(self) -> str:
        return self.config.static_base_path

    @property
    def default_filter(self) -> Dict[str, Any]:
        return thaw(self.config.default_filter)

    def _route(self, *segments: str) -> str:
        return "/" + "/".join([self.prefix, *segments])

    def _structured(self, value: Any) -> Any:
        """Encode a filter or sort the way the transport can carry it."""
        if value is None or self.http.structured_params:
            return value
        return dump_query_json(value)

    # Documents

    async def create(self, model_name: str, data: Dict[str, Any]) -> Document:
        """Create a document of ``model_name`` and return it with its ``_id``."""
        logger.debug(f"Creating {model_name} document")
        return await self.http.post(self._route("create", model_name), data)

    async def read(
        self,
        model_name: str,
        filter: Optional[Dict[str, Any]] = None,
        projection: Optional[List[str]] = None,
        sort: Optional[Dict[str, Any]] = None,
        skip: Optional[int] = None,
        limit: Optional[int] = None,
    ) -> List[Document]:
        """Read documents of ``model_name``.

        Args:
            model_name: Name of the model registered on the server
            filter: MongoDB query, the configured default filter when omitted
            projection: Fields to include in the results
            sort: MongoDB sort specification
            skip: Number of documents to skip
            limit: Maximum number of documents to return

        Returns:
            List of matching documents
        """
        if filter is None:
            filter = self.default_filter
        params = {
            "filter": self._structured(filter),
            "projection": projection,
            "sort": self._structured(sort or {}),
            "skip": skip,
            "limit": limit,
        }
        logger.debug(f"Reading {model_name} documents")
        return await self.http.get(self._route("read", model_name), params=params)

    async def get(
        self,
        model_name: str,
        id: str,
        projection: Optional[List[str]] = None,
    ) -> Optional[Document]:
        """Get one document by ``_id``. Returns None when it does not exist."""
        logger.debug(f"Getting {model_name} document {id}")
        return await self.http.get(
            self._route("get", model_name, id),
            params={"projection": projection},
        )

    async def search(
        self,
        model_name: str,
        term: Optional[str] = None,
        filter: Optional[Dict[str, Any]] = None,
        projection: Optional[List[str]] = None,
        threshold: Optional[float] = None,
        keys: Optional[List[str]] = None,
        depth: Optional[int] = None,
    ) -> List[Document]:
        """Fuzzy search documents of ``model_name``.

        Args:
            model_name: Name of the model registered on the server
            term: Search term
            filter: MongoDB query narrowing the searched documents
            projection: Fields to include in the results
            threshold: Match threshold, lower is stricter
            keys: Field paths to search in
            depth: Depth of the field paths searched when ``keys`` is omitted

        Returns:
            List of matching documents, best match first
        """
        params = {
            "filter": self._structured(filter),
            "projection": projection,
            "threshold": threshold,
            "keys": keys,
            "depth": depth,
            "term": term,
        }
        logger.debug(f"Searching {model_name} documents for {term!r}")
        return await self.http.get(self._route("search", model_name), params=params)

    async def update(self, model_name: str, data: Dict[str, Any]) -> Dict[str, Any]:
        """Update the document identified by ``data["_id"]``.

        Returns:
            The result of the update operation as reported by the server
        """
        logger.debug(f"Updating {model_name} document {data.get('_id')}")
        return await self.http.patch(self._route("update", model_name), data)

    async def delete(self, model_name: str, id: str) -> Dict[str, Any]:
        logger.debug(f"Deleting {model_name} document {id}")
        return await self.http.delete(self._route("delete", model_name, id))

    async def count(
        self, model_name: str, filter: Optional[Dict[str, Any]] = None
    ) -> int:
        """Count documents of ``model_name`` matching ``filter``."""
        if filter is None:
            filter = self.default_filter
        data = await self.http.get(
            self._route("count", model_name),
            params={"filter": self._structured(filter)},
        )
        if self.config.count_response == "object":
            return int(data["count"])
        return int(data)

    # Services

    async def run_service(
        self,
        service_name: str,
        function_name: str,
        params: Optional[Dict[str, Any]] = None,
    ) -> Any:
        """Call a service function through the runner route (POST body)."""
        logger.debug(f"Running service {service_name}.{function_name}")
        return await self.http.post(
            self._route("runner", service_name, function_name), params
        )

    async def get_service(
        self,
        service_name: str,
        function_name: str,
        params: Optional[Dict[str, Any]] = None,
    ) -> Any:
        """Call a service function through the getter route (query string)."""
        logger.debug(f"Getting service {service_name}.{function_name}")
        return await self.http.get(
            self._route("getter", service_name, function_name), params=params
        )

    # Files

    async def upload_file(
        self,
        file: Union[LocalFile, str, PathLike],
        progress_callback: Optional[PercentCallback] = None,
    ) -> Optional[RoboFile]:
        """Upload a file as multipart form data.

        Args:
            file: In-memory file or path of a local file
            progress_callback: Called with ``(percent, event)`` while uploading

        Returns:
            The stored file document
        """
        files = self.multipart_encoder.encode(file)
        logger.debug(f"Uploading {files[MultipartEncoder.field_name][0]}")
        data = await self.http.post(
            self._route("fileupload"),
            files=files,
            on_upload_progress=_percent_observer(progress_callback),
        )
        return _to_robofile(data)

    async def clone_file(self, file: FileArgument) -> Optional[RoboFile]:
        ref = FileReference.resolve(file)
        logger.debug(f"Cloning file {ref.id}")
        data = await self.http.post(self._route("fileclone", ref.id))
        return _to_robofile(data)

    async def delete_file(self, file: FileArgument) -> Dict[str, Any]:
        ref = FileReference.resolve(file)
        logger.debug(f"Deleting file {ref.id}")
        return await self.http.delete(self._route("filedelete", ref.id))

    def get_file_urls(self, file: Union[RoboFile, Dict[str, Any]]) -> Dict[str, str]:
        """Return where the server hosts a stored file, without any request.

        Returns:
            ``absolutePath`` and ``relativePath`` of the file, plus
            ``absoluteThumbnailPath`` and ``relativeThumbnailPath`` when the
            file has a thumbnail
        """
        ref = FileReference.resolve(file)
        base_url = self.http.base_url.rstrip("/")

        relative = self._route(self.static_base_path, ref.path)
        urls = {
            "absolutePath": f"{base_url}{relative}",
            "relativePath": relative,
        }
        if ref.thumbnail_path:
            relative_thumbnail = self._route(self.static_base_path, ref.thumbnail_path)
            urls["absoluteThumbnailPath"] = f"{base_url}{relative_thumbnail}"
            urls["relativeThumbnailPath"] = relative_thumbnail

        return urls

    async def _download(
        self,
        storage_key: str,
        name: str,
        progress_callback: Optional[PercentCallback],
    ) -> LocalFile:
        content = await self.http.get(
            self._route(self.static_base_path, storage_key),
            response_type="bytes",
            on_download_progress=_percent_observer(progress_callback),
        )
        mime_type, _ = mimetypes.guess_type(storage_key)
        return LocalFile(name=name, content=content, mime_type=mime_type)

    async def get_file(
        self,
        file: FileArgument,
        progress_callback: Optional[PercentCallback] = None,
    ) -> LocalFile:
        """Download a stored file.

        Args:
            file: Stored file, or its storage path
            progress_callback: Called with ``(percent, event)`` while downloading

        Returns:
            The file content, named ``"unknown"`` when only a path was given
        """
        ref = FileReference.resolve(file)
        logger.debug(f"Downloading file {ref.path}")
        return await self._download(ref.path, ref.display_name, progress_callback)

    async def get_thumbnail(
        self,
        file: FileArgument,
        progress_callback: Optional[PercentCallback] = None,
    ) -> LocalFile:
        """Download the thumbnail of a stored file.

        Args:
            file: Stored file, or the storage path of its thumbnail
            progress_callback: Called with ``(percent, event)`` while downloading

        Raises:
            ValueError: If the stored file has no thumbnail
        """
        ref = FileReference.resolve(file)
        if not ref.thumbnail_path:
            raise ValueError(f"{ref.display_name} has no thumbnail")
        logger.debug(f"Downloading thumbnail {ref.thumbnail_path}")
        return await self._download(
            ref.thumbnail_path, ref.display_name, progress_callback
        )

    async def get_file_url(
        self,
        file: FileArgument,
        progress_callback: Optional[PercentCallback] = None,
    ) -> str:
        """Download a stored file and return a local URL for it.

        The URL stays valid until it is released with ``revoke_url``.
        """
        local_file = await self.get_file(file, progress_callback)
        return self.url_minter.create(local_file)

    async def get_thumbnail_url(
        self,
        file: FileArgument,
        progress_callback: Optional[PercentCallback] = None,
    ) -> str:
        """Download a thumbnail and return a local URL for it.

        The URL stays valid until it is released with ``revoke_url``.
        """
        local_file = await self.get_thumbnail(file, progress_callback)
        return self.url_minter.create(local_file)

    def revoke_url(self, url: str) -> None:
        self.url_minter.revoke(url)

    # Models and schemas

    async def model(
        self, model_name: Optional[str] = None
    ) -> Union[Dict[str, Any], List[Dict[str, Any]]]:
        """Describe one model, or every model when no name is given."""
        if not model_name:
            return await self.http.get(self._route("model"))
        return await self.http.get(self._route("model", model_name))

    async def schema(self, model_name: str) -> List[SchemaField]:
        """Field tree of ``model_name`` with circular references stripped."""
        return await self.http.get(self._route("schema", model_name))

    async def fields(
        self, model_name: str, depth: Optional[int] = None
    ) -> List[SchemaField]:
        """Field tree of ``model_name`` down to ``depth`` levels."""
        return await self.http.get(
            self._route("fields", model_name), params={"depth": depth}
        )

    async def recycled_schema(self, model_name: str) -> List[SchemaField]:
        """Same as ``schema`` with the circular references reintroduced.

        The returned structure can contain cycles.
        """
        return recycle_schema_fields(await self.schema(model_name))

    async def recycled_fields(
        self, model_name: str, depth: Optional[int] = None
    ) -> List[SchemaField]:
        """Same as ``fields`` with the circular references reintroduced."""
        return recycle_schema_fields(await self.fields(model_name, depth))

    # Accesses

    async def accesses(self, model_name: str) -> Accesses:
        """Permission flags of the current user for ``model_name``."""
        data = await self.http.get(self._route("accesses", model_name))
        return Accesses(data)

    async def access_groups(self) -> AccessGroups:
        """The access group names the server knows."""
        data = await self.http.get(self._route("accessesGroups"))
        return AccessGroups.from_payload(
            data, diagnostics_logger=self.diagnostics_logger
        )

    async def close(self) -> None:
        """Close the transport.

        Local URLs minted by the default minter are revoked as well. A minter
        passed in by the caller is left alone.
        """
        await self.http.close()
        if self._owned_minter is not None:
            self._owned_minter.close()

    async def __aenter__(self):
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.close()
