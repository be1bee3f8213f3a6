"""
Adapters for external services and third-party libraries.
"""
from tasksync.adapters.http_client import (
    HTTPClientAdapter,
    HTTPClientAdapterFactory,
    HTTPResponse,
    HttpxClientAdapter,
    RequestError,
)

__all__ = [
    "HTTPClientAdapter",
    "HTTPClientAdapterFactory",
    "HTTPResponse",
    "HttpxClientAdapter",
    "RequestError",
]
