"""Error taxonomy for the Tinker HTTP client.

Layers:
- Configuration errors are raised while building settings/clients, never at call time.
- Transport errors come from the network (timeouts, resets, proxy handshakes).
- Decode errors mean the payload does not match the declared schema.
- Status errors wrap non-2xx responses from the service.

Every error carries `attempts` and `elapsed` so callers can tell how much work the
retry loop did before giving up.
"""

from __future__ import annotations

from enum import Enum
from typing import Any


class TinkerError(Exception):
    """Base class for every error raised by this package."""

    retryable: bool = False

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message
        self.attempts: int = 1
        self.elapsed: float | None = None

    def annotate(self, *, attempts: int, elapsed: float) -> "TinkerError":
        """Attach retry bookkeeping to the error before it surfaces."""

        self.attempts = attempts
        self.elapsed = elapsed
        return self

    def __str__(self) -> str:
        if self.attempts > 1:
            return f"{self.message} (after {self.attempts} attempts)"
        return self.message


class ConfigurationError(TinkerError, ValueError):
    """Invalid client configuration (api key, base URL, headers...)."""


class InvalidProxyConfig(ConfigurationError):
    """Malformed proxy input: unsupported scheme, empty host or bad port."""


class TransportError(TinkerError):
    """Base class for failures below the HTTP layer."""


class TimeoutPhase(str, Enum):
    """Request phase whose deadline expired."""

    CONNECT = "connect"
    WRITE = "write"
    READ = "read"
    POOL = "pool"


class TransportTimeout(TransportError):
    retryable = True

    def __init__(self, phase: TimeoutPhase, message: str | None = None) -> None:
        self.phase = TimeoutPhase(phase)
        super().__init__(message or f"{self.phase.value} timeout exceeded")


class TransportConnectionError(TransportError):
    """Socket level failure: refused, reset, proxy handshake failure."""

    retryable = True


class ProxyAuthError(TransportError):
    """The proxy rejected (or demanded) credentials (HTTP 407)."""


class RedirectLoopError(TransportError):
    """Redirects did not settle within httpx's limit."""


class ClientClosedError(TransportError):
    """The transport was used after `aclose()`."""


class DecodeError(TinkerError):
    """A payload field does not match the declared schema."""

    def __init__(self, field: str, expected: str, actual: str, message: str | None = None) -> None:
        self.field = field
        self.expected = expected
        self.actual = actual
        super().__init__(message or f"field '{field}': expected {expected}, got {actual}")


class APIStatusError(TinkerError):
    """Non-2xx response returned by the service."""

    def __init__(
        self,
        status_code: int,
        message: str,
        *,
        category: str | None = None,
        body: Any = None,
        retry_after: float | None = None,
        should_retry: bool | None = None,
    ) -> None:
        self.status_code = status_code
        self.category = category
        self.body = body
        self.retry_after = retry_after
        self.should_retry = should_retry
        super().__init__(f"[HTTP {status_code}] {message}")

    @property
    def is_user_error(self) -> bool:
        """User errors are never retried.

        - category == "user" -> yes
        - 4xx except 408/410/429 -> yes
        - everything else -> no
        """

        if self.category == "user":
            return True
        return 400 <= self.status_code < 500 and self.status_code not in (408, 410, 429)

    @property
    def retryable(self) -> bool:  # type: ignore[override]
        if self.should_retry is not None:
            return self.should_retry
        return not self.is_user_error


def is_retryable(exc: BaseException) -> bool:
    return isinstance(exc, TinkerError) and bool(exc.retryable)
