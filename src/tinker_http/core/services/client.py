"""Client facade for the Tinker service.

This module ties the pieces together: proxy resolution (via `TransportConfig`),
the pluggable `Transport`, the retry policy and the forward-compatible decoder.
Callers only see typed models or `TinkerError` subclasses; httpx never leaks out.
"""

from __future__ import annotations

import asyncio
import json
import logging
import time
from typing import Any, TypeVar
from urllib.parse import urlsplit

from pydantic import BaseModel

from tinker_http.adapters.http_client import HttpxTransport
from tinker_http.core.config import AppSettings, build_transport_config, mask_api_key
from tinker_http.core.decoder import decode, decode_json_body
from tinker_http.core.domain.models import (
    ErrorBody,
    GetInfoResponse,
    GetServerCapabilitiesResponse,
    HealthResponse,
    RawResponse,
    TransportConfig,
)
from tinker_http.core.errors import APIStatusError, ConfigurationError, DecodeError, TinkerError
from tinker_http.core.interfaces.transport import Transport
from tinker_http.core.proxy import ProxyInput
from tinker_http.core.retry import RetryPolicy, retry_after_seconds, should_retry_hint

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


def _validate_base_url(base_url: str) -> str:
    parts = urlsplit(base_url.strip())
    if parts.scheme not in ("http", "https") or not parts.hostname:
        raise ConfigurationError(
            f"invalid base_url {base_url!r} (must be like 'https://api.example.com')"
        )
    return base_url.strip().rstrip("/")


def _status_error(response: RawResponse) -> APIStatusError:
    payload: Any = None
    try:
        payload = decode_json_body(response.body)
    except DecodeError:
        payload = response.body.decode("utf-8", errors="replace") or None

    message = f"request failed with status {response.status_code}"
    category = None
    if isinstance(payload, dict):
        try:
            error_body = decode(ErrorBody, payload)
        except DecodeError:
            error_body = None
        if error_body is not None:
            message = error_body.message or error_body.error or message
            category = error_body.category
    elif isinstance(payload, str):
        message = payload.strip()[:200] or message

    return APIStatusError(
        response.status_code,
        message,
        category=category,
        body=payload,
        retry_after=retry_after_seconds(response),
        should_retry=should_retry_hint(response),
    )


class TinkerClient:
    """Async client for the Tinker HTTP API.

    Example:
        async with TinkerClient(api_key="tml-...") as client:
            caps = await client.get_server_capabilities()

    Concurrency: any number of tasks may share one client; the only shared state is
    the transport's connection pool.
    """

    def __init__(
        self,
        settings: AppSettings | None = None,
        *,
        api_key: str | None = None,
        base_url: str | None = None,
        proxy: ProxyInput = None,
        retry: RetryPolicy | None = None,
        transport: Transport | None = None,
        transport_config: TransportConfig | None = None,
    ) -> None:
        self._settings = settings or AppSettings()
        self._api_key = api_key or self._settings.api_key
        if not self._api_key:
            raise ConfigurationError("api_key is required (pass api_key= or set TINKER_API_KEY)")
        self._base_url = _validate_base_url(base_url or self._settings.base_url)

        if transport_config is None:
            if base_url is not None and base_url != self._settings.base_url:
                settings_for_proxy = self._settings.model_copy(update={"base_url": self._base_url})
            else:
                settings_for_proxy = self._settings
            transport_config = build_transport_config(settings_for_proxy, proxy=proxy)
        elif proxy is not None:
            logger.warning(
                "Both transport_config and proxy given; using transport_config.proxy=%s",
                transport_config.proxy,
            )
        self._transport_config = transport_config

        self._retry = retry or RetryPolicy(max_retries=self._settings.max_retries)

        if transport is None:
            transport = HttpxTransport(transport_config)
        self._transport = transport

        logger.debug(
            "TinkerClient base_url=%s api_key=%s proxy=%s",
            self._base_url,
            mask_api_key(self._api_key),
            transport_config.proxy,
        )

    @property
    def base_url(self) -> str:
        return self._base_url

    @property
    def retry_policy(self) -> RetryPolicy:
        return self._retry

    @property
    def transport(self) -> Transport:
        return self._transport

    @property
    def transport_config(self) -> TransportConfig:
        return self._transport_config

    async def __aenter__(self) -> "TinkerClient":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._transport.aclose()

    def _url(self, path: str) -> str:
        return f"{self._base_url}/{path.lstrip('/')}"

    def _headers(self, has_body: bool) -> list[tuple[str, str]]:
        headers = [
            ("x-api-key", self._api_key),
            ("accept", "application/json"),
            ("user-agent", self._settings.user_agent),
        ]
        if has_body:
            headers.append(("content-type", "application/json"))
        if self._settings.cf_access_client_id and self._settings.cf_access_client_secret:
            headers.append(("CF-Access-Client-Id", self._settings.cf_access_client_id))
            headers.append(("CF-Access-Client-Secret", self._settings.cf_access_client_secret))
        return headers

    async def _send_once(
        self,
        method: str,
        url: str,
        headers: list[tuple[str, str]],
        content: bytes | None,
    ) -> RawResponse:
        response = await self._transport.send(method, url, headers, content)
        if not response.is_success:
            raise _status_error(response)
        return response

    async def call(
        self,
        method: str,
        path: str,
        body: Any = None,
        response_model: type[ModelT] | None = None,
    ) -> Any:
        """Send one logical request, retrying transient failures.

        Returns `response_model` decoded from the body, or the parsed JSON payload
        when no model is given.
        """

        method = method.upper()
        url = self._url(path)
        content = json.dumps(body).encode("utf-8") if body is not None else None
        headers = self._headers(content is not None)

        started = time.monotonic()
        attempt = 0
        while True:
            try:
                response = await self._send_once(method, url, headers, content)
            except TinkerError as exc:
                elapsed = time.monotonic() - started
                if not self._retry.should_retry(exc, attempt, elapsed):
                    raise exc.annotate(attempts=attempt + 1, elapsed=elapsed)
                delay = self._retry.delay_for(exc, attempt, elapsed)
                logger.info(
                    "%s %s failed (%s); retry %d/%d in %.2fs",
                    method,
                    path,
                    exc.message,
                    attempt + 1,
                    self._retry.max_retries,
                    delay,
                )
                await asyncio.sleep(delay)
                attempt += 1
                continue

            elapsed = time.monotonic() - started
            try:
                if response_model is None:
                    return decode_json_body(response.body)
                return decode(response_model, response.body)
            except DecodeError as exc:
                raise exc.annotate(attempts=attempt + 1, elapsed=elapsed)

    async def get_server_capabilities(self) -> GetServerCapabilitiesResponse:
        return await self.call(
            "GET",
            "/api/v1/get_server_capabilities",
            response_model=GetServerCapabilitiesResponse,
        )

    async def health_check(self) -> HealthResponse:
        return await self.call("GET", "/api/v1/healthz", response_model=HealthResponse)

    async def get_info(self, model_id: str) -> GetInfoResponse:
        """Metadata for an active model (architecture, tokenizer, LoRA rank)."""

        return await self.call(
            "POST",
            "/api/v1/get_info",
            body={"model_id": model_id, "type": "get_info"},
            response_model=GetInfoResponse,
        )
