"""Domain models (Pydantic v2).

Two families live here:
- Connection settings (`ProxyDirective`, `TransportConfig`, `RawResponse`): immutable
  values built once per client and never mutated afterwards.
- Service payloads (`SupportedModel`, `GetServerCapabilitiesResponse`, ...): forward
  compatible models that keep every key the server sends, known or not.

Note:
- These models describe *what* travels over the wire, not *how* it is sent.
"""

from __future__ import annotations

import base64
import json
from dataclasses import dataclass
from enum import Enum
from typing import Any, ClassVar
from urllib.parse import quote

from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator
from pydantic.alias_generators import to_camel
from pydantic.config import ConfigDict

from tinker_http.core.errors import ConfigurationError, InvalidProxyConfig


def _describe_validation_error(exc: ValidationError) -> str:
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ())) or "<root>"
        parts.append(f"{loc}: {err.get('msg')}")
    return "; ".join(parts)


class _SettingsValue(BaseModel):
    """Frozen value object that reports invalid input as a `ConfigurationError`."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    error_class: ClassVar[type[ConfigurationError]] = ConfigurationError

    def __init__(self, **data: Any) -> None:
        try:
            super().__init__(**data)
        except ValidationError as exc:
            raise self.error_class(
                f"invalid {type(self).__name__}: {_describe_validation_error(exc)}"
            ) from exc


class ProxyScheme(str, Enum):
    HTTP = "http"
    HTTPS = "https"

    @property
    def default_port(self) -> int:
        return 8443 if self is ProxyScheme.HTTPS else 8080


class ProxyCredentials(_SettingsValue):
    error_class = InvalidProxyConfig

    username: str = Field(..., min_length=1, description="Proxy user name.")
    password: str | None = Field(
        default=None,
        repr=False,
        description="Proxy password (never printed).",
    )


class ProxyDirective(_SettingsValue):
    """Normalized description of the proxy a connection must go through.

    Rules:
    - `scheme` is http or https (the scheme used to reach the proxy itself).
    - `host` is non-empty, lowercased, without path or userinfo.
    - `port` is within 1..65535.
    """

    error_class = InvalidProxyConfig

    scheme: ProxyScheme = Field(..., description="Scheme used to reach the proxy.")
    host: str = Field(..., min_length=1, max_length=253, description="Proxy host name or IP.")
    port: int = Field(..., ge=1, le=65535, description="Proxy TCP port.")
    credentials: ProxyCredentials | None = Field(
        default=None,
        description="Basic credentials forwarded as Proxy-Authorization.",
    )

    @field_validator("host")
    @classmethod
    def _normalize_host(cls, value: str) -> str:
        host = value.strip().strip("[]").lower()
        if not host:
            raise ValueError("host must not be empty")
        if any(ch in host for ch in "/@?# \t"):
            raise ValueError(f"host contains invalid characters: {value!r}")
        return host

    @property
    def netloc(self) -> str:
        host = f"[{self.host}]" if ":" in self.host else self.host
        return f"{host}:{self.port}"

    def to_url(self, *, include_credentials: bool = True) -> str:
        """Format back to `scheme://[user[:pass]@]host:port`."""

        userinfo = ""
        if include_credentials and self.credentials is not None:
            userinfo = quote(self.credentials.username, safe="")
            if self.credentials.password is not None:
                userinfo += ":" + quote(self.credentials.password, safe="")
            userinfo += "@"
        return f"{self.scheme.value}://{userinfo}{self.netloc}"

    def authorization_header(self) -> str | None:
        """`Basic ...` value for Proxy-Authorization, or None without credentials."""

        if self.credentials is None:
            return None
        raw = f"{self.credentials.username}:{self.credentials.password or ''}"
        return "Basic " + base64.b64encode(raw.encode("utf-8")).decode("ascii")

    def __str__(self) -> str:
        return self.to_url(include_credentials=False)


class TransportConfig(_SettingsValue):
    """Connection settings owned by one client instance."""

    proxy: ProxyDirective | None = Field(default=None, description="Proxy to route through.")
    proxy_headers: tuple[tuple[str, str], ...] = Field(
        default=(),
        description="Extra headers sent to the proxy (e.g. custom auth).",
    )
    connect_timeout: float = Field(default=10.0, gt=0, description="Connect deadline (seconds).")
    read_timeout: float = Field(default=120.0, gt=0, description="Read deadline (seconds).")
    write_timeout: float = Field(default=30.0, gt=0, description="Write deadline (seconds).")
    pool_timeout: float = Field(
        default=10.0,
        gt=0,
        description="Deadline to obtain a pooled connection (seconds).",
    )
    max_connections: int = Field(default=100, ge=1, le=10_000, description="Open connections cap.")
    max_idle_connections: int = Field(
        default=20,
        ge=0,
        le=10_000,
        description="Idle keep-alive connections kept in the pool.",
    )
    keepalive_expiry: float = Field(default=5.0, ge=0, description="Idle connection lifetime (seconds).")
    follow_redirects: bool = Field(default=False, description="Follow 3xx responses.")
    verify_tls: bool = Field(default=True, description="Verify server certificates.")

    @field_validator("proxy_headers", mode="before")
    @classmethod
    def _check_proxy_headers(cls, value: Any) -> Any:
        if value is None:
            return ()
        if isinstance(value, dict):
            value = list(value.items())
        if isinstance(value, (str, bytes)) or not isinstance(value, (list, tuple)):
            raise ValueError("proxy_headers must be a list of (name, value) string pairs")
        for item in value:
            if (
                not isinstance(item, (list, tuple))
                or len(item) != 2
                or not all(isinstance(part, str) for part in item)
            ):
                raise ValueError("proxy_headers must be a list of (name, value) string pairs")
        return tuple((name, val) for name, val in value)


@dataclass(frozen=True)
class RawResponse:
    """Status + headers + body as produced by a `Transport`."""

    status_code: int
    headers: tuple[tuple[str, str], ...] = ()
    body: bytes = b""

    @property
    def is_success(self) -> bool:
        return 200 <= self.status_code < 300

    def header(self, name: str) -> str | None:
        wanted = name.lower()
        for key, value in self.headers:
            if key.lower() == wanted:
                return value
        return None

    def json(self) -> Any:
        return json.loads(self.body)


class ForwardCompatibleModel(BaseModel):
    """Base for service payloads.

    - Unknown keys are kept verbatim in `unknown_fields` (and re-emitted by `model_dump`).
    - Declared fields accept snake_case or camelCase keys.
    - Subclasses may set `legacy_scalar_field` to accept a bare scalar in place of the object.
    """

    model_config = ConfigDict(
        extra="allow",
        alias_generator=to_camel,
        populate_by_name=True,
        loc_by_alias=False,
        protected_namespaces=(),
    )

    legacy_scalar_field: ClassVar[str | None] = None

    @model_validator(mode="before")
    @classmethod
    def _accept_legacy_scalar(cls, data: Any) -> Any:
        field = cls.legacy_scalar_field
        if field is not None and isinstance(data, str):
            return {field: data}
        return data

    @property
    def unknown_fields(self) -> dict[str, Any]:
        return dict(self.model_extra or {})


class SupportedModel(ForwardCompatibleModel):
    """One entry of the server capabilities list.

    Older servers send plain strings; those become `model_name`.
    """

    legacy_scalar_field = "model_name"

    model_id: str | None = Field(default=None, description="Short id, e.g. 'llama-3-8b'.")
    model_name: str | None = Field(
        default=None,
        description="Full model path, e.g. 'meta-llama/Meta-Llama-3-8B'.",
    )
    arch: str | None = Field(default=None, description="Architecture, e.g. 'llama', 'qwen2'.")


class GetServerCapabilitiesResponse(ForwardCompatibleModel):
    supported_models: list[SupportedModel] = Field(
        default_factory=list,
        description="Models the service can serve (objects, legacy strings or a mix).",
    )

    @field_validator("supported_models", mode="before")
    @classmethod
    def _drop_null_entries(cls, value: Any) -> Any:
        if value is None:
            return []
        if isinstance(value, list):
            return [item for item in value if item is not None]
        return value

    def model_names(self) -> list[str | None]:
        return [model.model_name for model in self.supported_models]


class HealthResponse(ForwardCompatibleModel):
    status: str | None = Field(default=None, description="Service health, e.g. 'ok'.")


class ModelData(ForwardCompatibleModel):
    arch: str | None = None
    model_name: str | None = None
    tokenizer_id: str | None = None


class GetInfoResponse(ForwardCompatibleModel):
    """Metadata for an active model."""

    model_id: str = Field(..., min_length=1)
    model_data: ModelData = Field(default_factory=ModelData)
    is_lora: bool | None = None
    lora_rank: int | None = Field(default=None, ge=0)
    model_name: str | None = None
    type: str | None = None


class ErrorBody(ForwardCompatibleModel):
    """Error payload returned alongside non-2xx statuses."""

    message: str | None = None
    error: str | None = None
    category: str | None = None

    @field_validator("category", mode="before")
    @classmethod
    def _normalize_category(cls, value: Any) -> Any:
        if isinstance(value, str):
            lowered = value.strip().lower()
            return lowered if lowered in ("server", "user", "unknown") else "unknown"
        return value
