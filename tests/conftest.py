"""
Shared pytest fixtures for Robolt tests.

Provides a route client wired to a mocked transport, and a factory for
httpx transports answering through ``httpx.MockTransport``.
"""

from typing import Callable
from unittest.mock import AsyncMock

import httpx
import pytest

from robolt.api_clients.route_client import RouteClient
from robolt.api_clients.transport import HttpxTransport
from robolt.config import RouteClientConfig, TransportConfig
from robolt.object_urls import TempFileURLMinter

BASE_URL = "https://x"


@pytest.fixture
def mock_http() -> AsyncMock:
    """Transport double recording every request the route client makes."""
    http = AsyncMock()
    http.base_url = BASE_URL
    http.structured_params = False
    return http


@pytest.fixture
def url_minter(tmp_path) -> TempFileURLMinter:
    return TempFileURLMinter(directory=tmp_path)


@pytest.fixture
def route_client(mock_http, url_minter) -> RouteClient:
    return RouteClient(
        mock_http,
        RouteClientConfig(prefix="api", default_filter={"deleted": False}),
        url_minter=url_minter,
    )


@pytest.fixture
def make_transport() -> Callable[..., HttpxTransport]:
    """Build an HttpxTransport whose requests are answered by ``handler``."""

    def _make(handler) -> HttpxTransport:
        client = httpx.AsyncClient(
            base_url=BASE_URL, transport=httpx.MockTransport(handler)
        )
        return HttpxTransport(TransportConfig(base_url=BASE_URL), client=client)

    return _make
