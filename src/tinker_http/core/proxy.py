"""Proxy resolution.

Turns whatever the caller supplied (URL string, `ProxyDirective`, mapping) or the
environment (`HTTP_PROXY` / `HTTPS_PROXY`) into a single `ProxyDirective` or None.

Rules:
- Precedence: explicit caller input > environment variable > no proxy.
- The environment variable is picked by the target scheme: `HTTPS_PROXY` for https
  base URLs, `HTTP_PROXY` for http ones.
- Missing port: 8080 for http proxies, 8443 for https proxies.
- Pure parsing and validation; no network I/O.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from typing import Any
from urllib.parse import unquote, urlsplit

from tinker_http.core.domain.models import ProxyCredentials, ProxyDirective, ProxyScheme
from tinker_http.core.errors import InvalidProxyConfig

logger = logging.getLogger(__name__)

ProxyInput = str | ProxyDirective | Mapping[str, Any] | None

_SCHEMES = {s.value: s for s in ProxyScheme}


def _scheme(value: Any) -> ProxyScheme:
    name = str(getattr(value, "value", value) or "").strip().lower()
    scheme = _SCHEMES.get(name)
    if scheme is None:
        raise InvalidProxyConfig(f"proxy URL scheme must be http or https, got: {name or '<empty>'}")
    return scheme


def parse_proxy_url(url: str) -> ProxyDirective:
    """Parse `scheme://[user[:pass]@]host[:port]` into a `ProxyDirective`."""

    if not isinstance(url, str):
        raise InvalidProxyConfig(f"proxy must be a URL string, got: {type(url).__name__}")

    text = url.strip()
    if "://" not in text:
        raise InvalidProxyConfig(
            f"proxy must be a URL string like 'http://host:port', got: {url!r}"
        )

    parts = urlsplit(text)
    scheme = _scheme(parts.scheme)

    userinfo, _, hostport = parts.netloc.rpartition("@")
    if not hostport:
        raise InvalidProxyConfig(f"proxy host must not be empty: {url!r}")

    host = parts.hostname
    if not host:
        raise InvalidProxyConfig(f"proxy host must not be empty: {url!r}")

    try:
        port = parts.port
    except ValueError as exc:
        raise InvalidProxyConfig(f"proxy port must be within 1-65535: {url!r}") from exc
    if port is None:
        port = scheme.default_port

    credentials = None
    if userinfo:
        username, sep, password = userinfo.partition(":")
        credentials = ProxyCredentials(
            username=unquote(username),
            password=unquote(password) if sep else None,
        )

    return ProxyDirective(scheme=scheme, host=host, port=port, credentials=credentials)


def _from_mapping(data: Mapping[str, Any]) -> ProxyDirective:
    scheme = _scheme(data.get("scheme", "http"))
    port = data.get("port")
    credentials = data.get("credentials")
    if credentials is None and data.get("username"):
        credentials = {"username": data["username"], "password": data.get("password")}
    return ProxyDirective(
        scheme=scheme,
        host=data.get("host") or "",
        port=scheme.default_port if port is None else port,
        credentials=credentials,
    )


def coerce_proxy(value: ProxyInput) -> ProxyDirective | None:
    """Normalize explicit proxy input; empty strings count as "no proxy given"."""

    if value is None:
        return None
    if isinstance(value, ProxyDirective):
        return value
    if isinstance(value, str):
        return parse_proxy_url(value) if value.strip() else None
    if isinstance(value, Mapping):
        return _from_mapping(value)
    raise InvalidProxyConfig(
        "proxy must be a URL string, a ProxyDirective or a mapping, "
        f"got: {type(value).__name__}"
    )


def _env_value(environ: Mapping[str, str | None], name: str) -> str | None:
    for key in (name, name.lower()):
        raw = environ.get(key)
        if raw and raw.strip():
            return raw.strip()
    return None


def env_var_for(target_url: str | None) -> str:
    scheme = urlsplit(target_url or "").scheme.lower()
    return "HTTP_PROXY" if scheme == "http" else "HTTPS_PROXY"


def resolve_proxy(
    explicit: ProxyInput = None,
    *,
    target_url: str | None = None,
    environ: Mapping[str, str | None] | None = None,
) -> ProxyDirective | None:
    """Resolve the proxy for requests to `target_url`.

    `environ` defaults to a snapshot of `os.environ`; pass a mapping to resolve
    against values captured elsewhere (e.g. `AppSettings`).
    """

    directive = coerce_proxy(explicit)
    if directive is not None:
        logger.debug("Using explicit proxy %s", directive)
        return directive

    env = dict(os.environ) if environ is None else environ
    var = env_var_for(target_url)
    raw = _env_value(env, var)
    if raw is None:
        return None

    try:
        directive = parse_proxy_url(raw)
    except InvalidProxyConfig as exc:
        raise InvalidProxyConfig(f"{var} is invalid: {exc.message}") from exc
    logger.debug("Using proxy %s from %s", directive, var)
    return directive
