"""Configuration management for Robolt."""

import logging
from types import MappingProxyType
from typing import Any, Dict, Literal, Mapping, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator

logger = logging.getLogger(__name__)


def freeze(value: Any) -> Any:
    """Read-only copy of a JSON-like value: mappings become mapping proxies
    and lists become tuples, at every level."""
    if isinstance(value, Mapping):
        return MappingProxyType({key: freeze(item) for key, item in value.items()})
    if isinstance(value, (list, tuple)):
        return tuple(freeze(item) for item in value)
    return value


def thaw(value: Any) -> Any:
    """Mutable copy of a value produced by ``freeze``."""
    if isinstance(value, Mapping):
        return {key: thaw(item) for key, item in value.items()}
    if isinstance(value, tuple):
        return [thaw(item) for item in value]
    return value


class TransportConfig(BaseModel):
    """Configuration for the default httpx transport."""

    model_config = ConfigDict(frozen=True)

    base_url: str = Field(..., description="Base URL of the server")
    timeout: float = Field(default=30.0, description="Read/write timeout in seconds")
    connect_timeout: float = Field(
        default=10.0, description="Connect timeout in seconds"
    )
    pool_timeout: float = Field(default=5.0, description="Pool timeout in seconds")
    max_connections: int = Field(default=10, description="Total connections")
    max_keepalive_connections: int = Field(
        default=5, description="Keepalive connections"
    )
    verify: bool = Field(default=True, description="Verify TLS certificates")
    headers: Mapping[str, str] = Field(
        default_factory=dict,
        validate_default=True,
        description="Extra headers sent with every request",
    )

    @field_validator("base_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    @field_validator("headers")
    @classmethod
    def freeze_headers(cls, v: Mapping[str, str]) -> Mapping[str, str]:
        return MappingProxyType(dict(v))


class RouteClientConfig(BaseModel):
    """Route scheme settings shared by every RouteClient operation.

    ``prefix`` and ``static_base_path`` must match the values the server
    registered its routes and static file hosting under.
    """

    model_config = ConfigDict(frozen=True)

    prefix: str = Field(..., description="Prefix the server routes are mounted on")
    static_base_path: str = Field(
        default="static", description="Path the stored files are served under"
    )
    default_filter: Mapping[str, Any] = Field(
        default_factory=dict,
        validate_default=True,
        description="Filter used by read and count when none is given",
    )
    # "number": the count route answers with a bare number
    # "object": the count route answers with {"count": n}
    count_response: Literal["number", "object"] = Field(
        default="number", description="Shape of the count route response"
    )

    @field_validator("prefix", "static_base_path")
    @classmethod
    def strip_slashes(cls, v: str) -> str:
        return v.strip("/")

    @field_validator("default_filter")
    @classmethod
    def freeze_default_filter(cls, v: Mapping[str, Any]) -> Mapping[str, Any]:
        return freeze(v)


def build_configs(
    base_url: str,
    prefix: str,
    static_base_path: str = "static",
    default_filter: Optional[Dict[str, Any]] = None,
    count_response: Literal["number", "object"] = "number",
    **transport_options: Any,
) -> Tuple[TransportConfig, RouteClientConfig]:
    """Build the transport and route configuration from flat keyword options."""
    transport_config = TransportConfig(base_url=base_url, **transport_options)
    route_config = RouteClientConfig(
        prefix=prefix,
        static_base_path=static_base_path,
        default_filter=default_filter or {},
        count_response=count_response,
    )
    logger.debug(
        f"Configured client for {transport_config.base_url}/{route_config.prefix}"
    )
    return transport_config, route_config
