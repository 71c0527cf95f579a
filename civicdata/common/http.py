"""Async HTTP client with retries, timeouts, and typed failures."""

from __future__ import annotations

from dataclasses import dataclass
from types import TracebackType
from typing import Any

import httpx
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential_jitter

from civicdata.common.constants import USER_AGENT
from civicdata.common.errors import HTTPError, NetworkError, RetryableHTTPError, SchemaError

RETRYABLE_STATUS_CODES = {408, 425, 429, 500, 502, 503, 504}


@dataclass(frozen=True)
class TimeoutConfig:
    connect: float = 5.0
    read: float = 8.0


@dataclass(frozen=True)
class RetryConfig:
    max_attempts: int = 2
    multiplier: float = 0.5
    max_wait: float = 4.0


class HttpClient:
    def __init__(
        self,
        *,
        timeout: TimeoutConfig | None = None,
        retry: RetryConfig | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.timeout = timeout or TimeoutConfig()
        self.retry = retry or RetryConfig()
        self.session = httpx.AsyncClient(transport=transport, follow_redirects=True)

    async def aclose(self) -> None:
        await self.session.aclose()

    async def __aenter__(self) -> "HttpClient":
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    def _headers(self, headers: dict[str, str] | None) -> dict[str, str]:
        out = {"User-Agent": USER_AGENT, "Accept": "application/json"}
        if headers:
            out.update(headers)
        return out

    def _raise_for_status_or_retry(self, response: httpx.Response) -> None:
        status = response.status_code
        if status in RETRYABLE_STATUS_CODES:
            raise RetryableHTTPError(f"Retryable HTTP status: {status}", status_code=status)
        if status < 200 or status >= 300:
            raise HTTPError(f"HTTP status: {status}", status_code=status)

    async def _request_json(
        self,
        method: str,
        url: str,
        *,
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
        timeout: TimeoutConfig | None = None,
    ) -> Any:
        req_timeout = timeout or self.timeout
        try:
            response = await self.session.request(
                method,
                url,
                params=params,
                headers=self._headers(headers),
                timeout=httpx.Timeout(req_timeout.read, connect=req_timeout.connect),
            )
        except httpx.TimeoutException as exc:
            raise NetworkError(f"Timed out requesting {url}") from exc
        except httpx.TransportError as exc:
            raise NetworkError(f"Transport failure requesting {url}: {exc}") from exc

        self._raise_for_status_or_retry(response)

        try:
            return response.json()
        except ValueError as exc:
            raise SchemaError(f"Invalid JSON payload from {url}") from exc

    async def request_json(
        self,
        method: str,
        url: str,
        *,
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
        timeout: TimeoutConfig | None = None,
    ) -> Any:
        @retry(
            stop=stop_after_attempt(self.retry.max_attempts),
            wait=wait_exponential_jitter(
                multiplier=self.retry.multiplier,
                max=self.retry.max_wait,
                jitter=self.retry.multiplier,
            ),
            retry=retry_if_exception_type(RetryableHTTPError),
            reraise=True,
        )
        async def _wrapped() -> Any:
            return await self._request_json(
                method,
                url,
                params=params,
                headers=headers,
                timeout=timeout,
            )

        return await _wrapped()

    async def get_json(
        self,
        url: str,
        *,
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
        timeout: TimeoutConfig | None = None,
    ) -> Any:
        return await self.request_json(
            "GET",
            url,
            params=params,
            headers=headers,
            timeout=timeout,
        )
