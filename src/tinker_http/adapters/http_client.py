"""httpx-backed transport.

Why a wrapper:
- Standardizes timeouts, limits, TLS and proxy policy for every request.
- Maps httpx exceptions onto the package taxonomy (`TransportTimeout`,
  `TransportConnectionError`, `ProxyAuthError`, `RedirectLoopError`).
- Eases testing: an `httpx.AsyncBaseTransport` (e.g. `httpx.MockTransport`) can be
  injected in place of the network.
"""

from __future__ import annotations

import logging

import httpx

from tinker_http.adapters.pool import ConnectionPool, PoolKey
from tinker_http.core.domain.models import RawResponse, TransportConfig
from tinker_http.core.errors import (
    ProxyAuthError,
    RedirectLoopError,
    TimeoutPhase,
    TransportConnectionError,
    TransportError,
    TransportTimeout,
)
from tinker_http.core.interfaces.transport import Headers

logger = logging.getLogger(__name__)

_TIMEOUT_PHASES: tuple[tuple[type[httpx.TimeoutException], TimeoutPhase], ...] = (
    (httpx.ConnectTimeout, TimeoutPhase.CONNECT),
    (httpx.WriteTimeout, TimeoutPhase.WRITE),
    (httpx.ReadTimeout, TimeoutPhase.READ),
    (httpx.PoolTimeout, TimeoutPhase.POOL),
)


def build_proxy(config: TransportConfig) -> httpx.Proxy | None:
    """httpx proxy for `config`, with Basic auth and extra proxy headers.

    Credentials travel as a Proxy-Authorization header, sent both on CONNECT
    (https targets) and on forwarded plain-http requests.
    """

    directive = config.proxy
    if directive is None:
        return None
    headers = dict(config.proxy_headers)
    authorization = directive.authorization_header()
    if authorization is not None:
        headers.setdefault("Proxy-Authorization", authorization)
    return httpx.Proxy(directive.to_url(include_credentials=False), headers=headers or None)


def build_http_transport(config: TransportConfig) -> httpx.AsyncHTTPTransport:
    """Connection-level transport: TLS, pool limits and proxy routing.

    https targets go through the proxy with a CONNECT tunnel; http targets are
    forwarded in absolute form.
    """

    return httpx.AsyncHTTPTransport(
        verify=config.verify_tls,
        limits=httpx.Limits(
            max_connections=config.max_connections,
            max_keepalive_connections=config.max_idle_connections,
            keepalive_expiry=config.keepalive_expiry,
        ),
        proxy=build_proxy(config),
        trust_env=False,
    )


def build_async_client(
    config: TransportConfig,
    *,
    transport: httpx.AsyncBaseTransport | None = None,
    extra_headers: dict[str, str] | None = None,
) -> httpx.AsyncClient:
    """Create an `httpx.AsyncClient` for `config`.

    - `trust_env=False`: proxy settings come only from `config`.
    - `transport` replaces the network stack (and with it the proxy routing).
    """

    return httpx.AsyncClient(
        timeout=httpx.Timeout(
            connect=config.connect_timeout,
            read=config.read_timeout,
            write=config.write_timeout,
            pool=config.pool_timeout,
        ),
        follow_redirects=config.follow_redirects,
        headers=extra_headers,
        transport=transport or build_http_transport(config),
        trust_env=False,
    )


def _timeout_phase(exc: httpx.TimeoutException) -> TimeoutPhase:
    for kind, phase in _TIMEOUT_PHASES:
        if isinstance(exc, kind):
            return phase
    return TimeoutPhase.READ


def _is_proxy_auth_failure(exc: httpx.ProxyError) -> bool:
    return str(exc).strip().startswith("407")


class HttpxTransport:
    """Default `Transport`: pooled httpx clients for one `TransportConfig`."""

    def __init__(
        self,
        config: TransportConfig | None = None,
        *,
        http_transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._config = config or TransportConfig()
        self._http_transport = http_transport
        if http_transport is not None and self._config.proxy is not None:
            logger.warning(
                "Custom httpx transport injected; proxy %s is not applied", self._config.proxy
            )
        self._pool = ConnectionPool(self._new_client, proxy=self._config.proxy)

    @property
    def config(self) -> TransportConfig:
        return self._config

    @property
    def pool(self) -> ConnectionPool:
        return self._pool

    def _new_client(self, key: PoolKey) -> httpx.AsyncClient:
        return build_async_client(self._config, transport=self._http_transport)

    async def send(
        self,
        method: str,
        url: str,
        headers: Headers,
        body: bytes | None,
    ) -> RawResponse:
        client = self._pool.acquire(url)
        try:
            response = await client.request(method, url, headers=list(headers), content=body)
        except httpx.TimeoutException as exc:
            phase = _timeout_phase(exc)
            raise TransportTimeout(phase, f"{phase.value} timeout for {method} {url}") from exc
        except httpx.ProxyError as exc:
            if _is_proxy_auth_failure(exc):
                raise ProxyAuthError(f"proxy rejected credentials: {exc}") from exc
            raise TransportConnectionError(f"proxy handshake failed: {exc}") from exc
        except httpx.TransportError as exc:
            raise TransportConnectionError(
                f"{type(exc).__name__} for {method} {url}: {exc}"
            ) from exc
        except httpx.TooManyRedirects as exc:
            raise RedirectLoopError(f"too many redirects for {method} {url}") from exc
        except httpx.RequestError as exc:
            # e.g. DecodingError on a bad content-encoding
            raise TransportError(f"{type(exc).__name__} for {method} {url}: {exc}") from exc

        if response.status_code == 407 and self._config.proxy is not None:
            raise ProxyAuthError(f"proxy {self._config.proxy} requires authentication (407)")

        return RawResponse(
            status_code=response.status_code,
            headers=tuple(response.headers.multi_items()),
            body=response.content,
        )

    async def aclose(self) -> None:
        await self._pool.aclose()
