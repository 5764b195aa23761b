"""
Robolt - async Python client for a model backend's generated routes.

Wraps the CRUD, search, file, schema and access routes the server derives
from its models, and reintroduces the circular references of schema trees.
"""

from .accesses import Accesses, AccessGroups
from .api_clients import HttpxTransport, RouteClient
from .config import RouteClientConfig, TransportConfig
from .models import FileReference, LocalFile, RoboFile
from .schema_recycler import recycle_schema_fields

__version__ = "0.1.0"

__all__ = [
    "Accesses",
    "AccessGroups",
    "HttpxTransport",
    "RouteClient",
    "RouteClientConfig",
    "TransportConfig",
    "FileReference",
    "LocalFile",
    "RoboFile",
    "recycle_schema_fields",
]
