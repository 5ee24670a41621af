"""Concrete implementations of the core interfaces (httpx transport, pooling)."""

from tinker_http.adapters.http_client import HttpxTransport, build_async_client
from tinker_http.adapters.pool import ConnectionPool, PoolKey, normalize_origin

__all__ = [
    "ConnectionPool",
    "HttpxTransport",
    "PoolKey",
    "build_async_client",
    "normalize_origin",
]
