"""Async HTTP client for the Tinker service with proxy support and forward-compatible decoding."""

from tinker_http.adapters.http_client import HttpxTransport
from tinker_http.core.config import AppSettings, build_transport_config
from tinker_http.core.decoder import DecodedBatch, decode, decode_many
from tinker_http.core.domain.models import (
    ForwardCompatibleModel,
    GetInfoResponse,
    GetServerCapabilitiesResponse,
    HealthResponse,
    ProxyDirective,
    RawResponse,
    SupportedModel,
    TransportConfig,
)
from tinker_http.core.errors import (
    APIStatusError,
    ClientClosedError,
    ConfigurationError,
    DecodeError,
    InvalidProxyConfig,
    ProxyAuthError,
    RedirectLoopError,
    TinkerError,
    TransportConnectionError,
    TransportError,
    TransportTimeout,
)
from tinker_http.core.interfaces import Transport
from tinker_http.core.proxy import parse_proxy_url, resolve_proxy
from tinker_http.core.retry import RetryPolicy
from tinker_http.core.services import TinkerClient

__version__ = "0.1.0"

__all__ = [
    "APIStatusError",
    "AppSettings",
    "ClientClosedError",
    "ConfigurationError",
    "DecodeError",
    "DecodedBatch",
    "ForwardCompatibleModel",
    "GetInfoResponse",
    "GetServerCapabilitiesResponse",
    "HealthResponse",
    "HttpxTransport",
    "InvalidProxyConfig",
    "ProxyAuthError",
    "ProxyDirective",
    "RedirectLoopError",
    "RawResponse",
    "RetryPolicy",
    "SupportedModel",
    "TinkerClient",
    "TinkerError",
    "Transport",
    "TransportConfig",
    "TransportConnectionError",
    "TransportError",
    "TransportTimeout",
    "build_transport_config",
    "decode",
    "decode_many",
    "parse_proxy_url",
    "resolve_proxy",
]
