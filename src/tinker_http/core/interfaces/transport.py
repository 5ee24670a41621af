"""HTTP transport contract.

Why a Protocol:
- Any object with these two coroutines is a transport (httpx, a recorder, a fake).
- The client facade depends on this contract, never on httpx directly.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Protocol, runtime_checkable

from tinker_http.core.domain.models import RawResponse

Headers = Sequence[tuple[str, str]]


@runtime_checkable
class Transport(Protocol):
    """Minimal contract for sending one request.

    Design rules:
    - `send` is async because it performs network I/O.
    - Failures are raised as `TransportTimeout`, `TransportConnectionError` or
      `ProxyAuthError`; any HTTP status (including 4xx/5xx) is a normal `RawResponse`.
    - `aclose` releases every pooled connection; the transport is unusable afterwards.
    """

    async def send(
        self,
        method: str,
        url: str,
        headers: Headers,
        body: bytes | None,
    ) -> RawResponse:
        """Send the request and return the complete response."""

        ...

    async def aclose(self) -> None:
        ...
