"""Pytest configuration and fixtures."""

import json
import sys
from pathlib import Path
from typing import Any

import pytest

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from tinker_http.core.config import AppSettings  # noqa: E402
from tinker_http.core.domain.models import RawResponse  # noqa: E402
from tinker_http.core.retry import RetryPolicy  # noqa: E402

_ENV_VARS = (
    "HTTP_PROXY",
    "HTTPS_PROXY",
    "http_proxy",
    "https_proxy",
    "TINKER_API_KEY",
    "TINKER_BASE_URL",
    "TINKER_PROXY",
    "TINKER_PROXY_HEADERS",
    "TINKER_MAX_RETRIES",
    "TINKER_LOG_LEVEL",
    "TINKER_CF_ACCESS_CLIENT_ID",
    "TINKER_CF_ACCESS_CLIENT_SECRET",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Start every test without proxy or TINKER_* variables from the host."""
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)


def json_response(status_code: int, payload: Any = None, headers: dict[str, str] | None = None) -> RawResponse:
    body = b"" if payload is None else json.dumps(payload).encode("utf-8")
    return RawResponse(
        status_code=status_code,
        headers=tuple((headers or {}).items()),
        body=body,
    )


class FakeTransport:
    """Scripted `Transport`: each `send` pops the next response or raises the next error."""

    def __init__(self, *outcomes: RawResponse | Exception) -> None:
        self.outcomes = list(outcomes)
        self.requests: list[dict[str, Any]] = []
        self.closed = False

    async def send(self, method, url, headers, body):
        self.requests.append({"method": method, "url": url, "headers": list(headers), "body": body})
        outcome = self.outcomes.pop(0) if len(self.outcomes) > 1 else self.outcomes[0]
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    async def aclose(self) -> None:
        self.closed = True


@pytest.fixture
def settings() -> AppSettings:
    """Settings isolated from any .env file."""
    return AppSettings(_env_file=None, api_key="tml-test-key-123456", base_url="https://api.example.com")


@pytest.fixture
def no_wait_retry() -> RetryPolicy:
    return RetryPolicy(max_retries=2, base_delay=0.0, max_delay=0.0, jitter=0.0)
