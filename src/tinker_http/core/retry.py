"""Retry policy: which failures are transient and how long to wait between attempts."""

from __future__ import annotations

import logging
import random
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime

from pydantic import BaseModel, Field, model_validator
from pydantic.config import ConfigDict

from tinker_http.core.domain.models import RawResponse
from tinker_http.core.errors import APIStatusError, is_retryable

logger = logging.getLogger(__name__)


class RetryPolicy(BaseModel):
    """Exponential backoff with jitter, bounded by attempts and total duration.

    `max_retries` counts extra attempts: with the default of 2 a call is tried up to
    three times.
    """

    model_config = ConfigDict(frozen=True)

    max_retries: int = Field(default=2, ge=0, le=100, description="Extra attempts after the first.")
    base_delay: float = Field(default=0.5, ge=0, description="First backoff step (seconds).")
    max_delay: float = Field(default=8.0, ge=0, description="Backoff cap (seconds).")
    jitter: float = Field(default=0.25, ge=0.0, le=1.0, description="Relative jitter (0..1).")
    max_retry_duration: float = Field(
        default=30.0,
        gt=0,
        description="Stop retrying once this much time has passed (seconds).",
    )

    @model_validator(mode="after")
    def _check_bounds(self) -> "RetryPolicy":
        if self.max_delay < self.base_delay:
            raise ValueError("max_delay must be >= base_delay")
        return self

    def backoff_delay(self, attempt: int) -> float:
        """Delay before retry number `attempt + 1` (attempt is 0-based)."""

        delay = min(self.base_delay * (2**attempt), self.max_delay)
        if self.jitter:
            delay *= random.uniform(1.0 - self.jitter, 1.0 + self.jitter)
        return max(0.0, min(delay, self.max_delay))

    def delay_for(self, exc: BaseException, attempt: int, elapsed: float = 0.0) -> float:
        """Server hint or backoff, never past the end of the retry window."""

        if isinstance(exc, APIStatusError) and exc.retry_after is not None:
            delay = exc.retry_after
        else:
            delay = self.backoff_delay(attempt)
        return max(0.0, min(delay, self.max_retry_duration - elapsed))

    def should_retry(self, exc: BaseException, attempt: int, elapsed: float) -> bool:
        if attempt >= self.max_retries:
            return False
        if elapsed >= self.max_retry_duration:
            logger.warning("Retry window exhausted after %.1fs", elapsed)
            return False
        return is_retryable(exc)


def _header_flag(response: RawResponse, name: str) -> str | None:
    value = response.header(name)
    return value.strip().lower() if value is not None else None


def retry_after_seconds(response: RawResponse) -> float | None:
    """Read `retry-after-ms`, then `retry-after` (seconds or HTTP date)."""

    raw_ms = response.header("retry-after-ms")
    if raw_ms:
        try:
            return max(0.0, float(raw_ms) / 1000.0)
        except ValueError:
            pass

    raw = response.header("retry-after")
    if not raw:
        return None
    try:
        return max(0.0, float(raw))
    except ValueError:
        pass
    try:
        when = parsedate_to_datetime(raw)
    except (TypeError, ValueError):
        logger.warning("Unsupported Retry-After format: %s", raw)
        return None
    if when.tzinfo is None:
        when = when.replace(tzinfo=timezone.utc)
    return max(0.0, (when - datetime.now(timezone.utc)).total_seconds())


def should_retry_hint(response: RawResponse) -> bool | None:
    """Server override from `x-should-retry`; None when the header is absent."""

    flag = _header_flag(response, "x-should-retry")
    if flag == "true":
        return True
    if flag == "false":
        return False
    return None
