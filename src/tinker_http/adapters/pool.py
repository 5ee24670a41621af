"""Per-client connection pool.

One httpx client per (origin, proxy) pair. Each httpx client keeps its own bounded
set of connections (`httpx.Limits`); this module only does the bookkeeping of which
httpx client serves which key, behind a lock so concurrent callers never build two
clients for the same key.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass
from urllib.parse import urlsplit

import httpx

from tinker_http.core.domain.models import ProxyDirective
from tinker_http.core.errors import ClientClosedError, ConfigurationError

logger = logging.getLogger(__name__)

_DEFAULT_PORTS = {"http": 80, "https": 443}


def normalize_origin(url: str) -> str:
    """`scheme://host[:port]` with the host lowercased and default ports dropped.

    Paths are discarded: connections are pooled per host, not per path.
    """

    parts = urlsplit(url)
    scheme = parts.scheme.lower()
    host = parts.hostname
    if not scheme or not host:
        raise ConfigurationError(
            f"invalid URL {url!r} (must have scheme and host, e.g. 'https://api.example.com')"
        )
    try:
        port = parts.port
    except ValueError as exc:
        raise ConfigurationError(f"invalid port in URL {url!r}") from exc

    host = f"[{host}]" if ":" in host else host
    if port is None or _DEFAULT_PORTS.get(scheme) == port:
        return f"{scheme}://{host}"
    return f"{scheme}://{host}:{port}"


@dataclass(frozen=True)
class PoolKey:
    origin: str
    proxy: str | None = None

    @classmethod
    def build(cls, url: str, proxy: ProxyDirective | None = None) -> "PoolKey":
        return cls(
            origin=normalize_origin(url),
            proxy=proxy.to_url(include_credentials=False) if proxy else None,
        )


class ConnectionPool:
    """Lazily creates and owns the httpx clients of one transport."""

    def __init__(
        self,
        factory: Callable[[PoolKey], httpx.AsyncClient],
        *,
        proxy: ProxyDirective | None = None,
    ) -> None:
        self._factory = factory
        self._proxy = proxy
        self._clients: dict[PoolKey, httpx.AsyncClient] = {}
        self._lock = threading.Lock()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def keys(self) -> list[PoolKey]:
        with self._lock:
            return list(self._clients)

    def __len__(self) -> int:
        with self._lock:
            return len(self._clients)

    def acquire(self, url: str) -> httpx.AsyncClient:
        key = PoolKey.build(url, self._proxy)
        with self._lock:
            if self._closed:
                raise ClientClosedError("connection pool is closed")
            client = self._clients.get(key)
            if client is None:
                logger.debug("Opening pool for %s (proxy=%s)", key.origin, key.proxy)
                client = self._factory(key)
                self._clients[key] = client
            return client

    async def aclose(self) -> None:
        with self._lock:
            self._closed = True
            clients = list(self._clients.values())
            self._clients.clear()
        for client in clients:
            await client.aclose()
