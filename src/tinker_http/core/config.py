"""Client configuration.

Why here:
- Centralizes environment variables (pydantic-settings) so adapters and the CLI read
  configuration the same way.
- Environment proxies (`HTTP_PROXY` / `HTTPS_PROXY`) are captured once, when
  `AppSettings` is built; the request path only sees the resulting `TransportConfig`.
"""

from __future__ import annotations

import os
import sys
from pathlib import Path
from typing import Any, Literal

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from tinker_http.core.domain.models import ProxyDirective, TransportConfig
from tinker_http.core.errors import ConfigurationError
from tinker_http.core.proxy import ProxyInput, resolve_proxy

DEFAULT_BASE_URL = "https://tinker.thinkingmachines.dev/services/tinker-prod"


def get_user_config_dir() -> Path:
    """Per-user configuration directory (cross-platform, no extra dependencies)."""

    if sys.platform.startswith("win"):
        base = Path(os.environ.get("APPDATA", str(Path.home())))
        return base / "tinker-http"
    if sys.platform == "darwin":
        return Path.home() / "Library" / "Application Support" / "tinker-http"

    xdg = os.environ.get("XDG_CONFIG_HOME")
    if xdg:
        return Path(xdg) / "tinker-http"
    return Path.home() / ".config" / "tinker-http"


def get_user_env_file() -> Path:
    return get_user_config_dir() / ".env"


def _parse_env_lines(text: str) -> dict[str, str]:
    data: dict[str, str] = {}
    for raw_line in text.splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        if "=" not in line:
            continue
        key, value = line.split("=", 1)
        key = key.strip()
        value = value.strip().strip('"').strip("'")
        if key:
            data[key] = value
    return data


def write_user_env_vars(values: dict[str, str | None], env_path: Path | None = None) -> Path:
    """Write/update variables in the user's global .env.

    A value of None removes the variable.
    """

    env_path = env_path or get_user_env_file()
    env_path.parent.mkdir(parents=True, exist_ok=True)

    existing: dict[str, str] = {}
    if env_path.exists():
        existing = _parse_env_lines(env_path.read_text(encoding="utf-8"))

    for key, value in values.items():
        if value is None:
            existing.pop(key, None)
        else:
            existing[key] = value

    lines = ["# tinker-http user config (.env)"]
    for key in sorted(existing.keys()):
        lines.append(f"{key}={existing[key]}")
    env_path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    return env_path


def mask_secret(value: str | None) -> str | None:
    return None if value is None else "[REDACTED]"


def mask_api_key(api_key: str | None) -> str | None:
    """Keep a short prefix/suffix so keys can be told apart in logs."""

    if api_key is None:
        return None
    length = len(api_key)
    if length <= 4:
        return "*" * length
    prefix = api_key[: min(6, length - 2)]
    return f"{prefix}...{api_key[-4:]}"


class AppSettings(BaseSettings):
    """Central client configuration.

    Sources, highest first: init kwargs, environment, `.env` in the working
    directory, then the user config `.env`.
    """

    model_config = SettingsConfigDict(
        env_prefix="TINKER_",
        extra="ignore",
        case_sensitive=False,
        env_file=(str(get_user_env_file()), ".env"),
        env_file_encoding="utf-8",
        populate_by_name=True,
    )

    api_key: str | None = Field(default=None, description="Service API key (x-api-key).")
    base_url: str = Field(
        default=DEFAULT_BASE_URL,
        min_length=8,
        description="Base URL of the Tinker service.",
    )

    proxy: str | None = Field(
        default=None,
        description="Explicit proxy URL; wins over HTTP_PROXY/HTTPS_PROXY.",
    )
    proxy_headers: list[tuple[str, str]] = Field(
        default_factory=list,
        description="Extra headers for the proxy (JSON list of [name, value]).",
    )
    http_proxy: str | None = Field(
        default=None,
        validation_alias=AliasChoices("HTTP_PROXY", "http_proxy"),
        description="Proxy for http:// targets.",
    )
    https_proxy: str | None = Field(
        default=None,
        validation_alias=AliasChoices("HTTPS_PROXY", "https_proxy"),
        description="Proxy for https:// targets.",
    )

    connect_timeout: float = Field(default=10.0, gt=0, description="Connect timeout (seconds).")
    read_timeout: float = Field(default=120.0, gt=0, description="Read timeout (seconds).")
    write_timeout: float = Field(default=30.0, gt=0, description="Write timeout (seconds).")
    pool_timeout: float = Field(default=10.0, gt=0, description="Pool acquire timeout (seconds).")
    max_connections: int = Field(default=100, ge=1, le=10_000)
    max_idle_connections: int = Field(default=20, ge=0, le=10_000)
    follow_redirects: bool = Field(default=False)
    verify_tls: bool = Field(default=True)

    max_retries: int = Field(
        default=2,
        ge=0,
        le=100,
        description="Extra attempts on transient failures (network, 408/429/5xx).",
    )

    cf_access_client_id: str | None = Field(default=None, description="Cloudflare Access client id.")
    cf_access_client_secret: str | None = Field(
        default=None,
        description="Cloudflare Access client secret.",
    )

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(default="WARNING")
    user_agent: str = Field(default="tinker-http/0.1", min_length=1)

    def env_proxies(self) -> dict[str, str | None]:
        return {"HTTP_PROXY": self.http_proxy, "HTTPS_PROXY": self.https_proxy}

    def redacted(self) -> dict[str, Any]:
        """Settings snapshot safe to print or log."""

        data = self.model_dump()
        data["api_key"] = mask_api_key(self.api_key)
        data["cf_access_client_secret"] = mask_secret(self.cf_access_client_secret)
        for key in ("proxy", "http_proxy", "https_proxy"):
            data[key] = _redact_proxy(data.get(key))
        return data


def _redact_proxy(value: str | None) -> str | None:
    if not value:
        return value
    try:
        return str(resolve_proxy(value))
    except ConfigurationError:
        return "<invalid>"


def build_transport_config(
    settings: AppSettings | None = None,
    *,
    proxy: ProxyInput = None,
    **overrides: Any,
) -> TransportConfig:
    """Combine settings with explicit overrides into a `TransportConfig`.

    Proxy precedence: `proxy` argument > `settings.proxy` > HTTP(S)_PROXY captured
    by the settings > none.
    """

    settings = settings or AppSettings()
    explicit = proxy if proxy is not None else settings.proxy
    directive: ProxyDirective | None = resolve_proxy(
        explicit,
        target_url=settings.base_url,
        environ=settings.env_proxies(),
    )

    values: dict[str, Any] = {
        "proxy": directive,
        "proxy_headers": settings.proxy_headers,
        "connect_timeout": settings.connect_timeout,
        "read_timeout": settings.read_timeout,
        "write_timeout": settings.write_timeout,
        "pool_timeout": settings.pool_timeout,
        "max_connections": settings.max_connections,
        "max_idle_connections": settings.max_idle_connections,
        "follow_redirects": settings.follow_redirects,
        "verify_tls": settings.verify_tls,
    }
    values.update(overrides)
    return TransportConfig(**values)
