"""API Client Abstractions for Robolt.

Provides the route client and the HTTP transport it sends requests through.
All HTTP functionality is contained within these classes.
"""

from .route_client import RouteClient, PercentCallback
from .transport import (
    HttpClient,
    HttpxTransport,
    MultipartEncoder,
    ProgressEvent,
    ProgressObserver,
)

__all__ = [
    # Route client
    "RouteClient",
    "PercentCallback",
    # Transport
    "HttpClient",
    "HttpxTransport",
    "MultipartEncoder",
    "ProgressEvent",
    "ProgressObserver",
]
