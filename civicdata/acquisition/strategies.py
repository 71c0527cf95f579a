"""Declarative fetch strategies.

A strategy knows how to obtain one raw batch for a source and which transformer
understands that batch. It never transforms rows itself; the executor decides
whether a batch counts as a success.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Any, Protocol

from civicdata.acquisition.transformers import SourceTransformer, get_transformer
from civicdata.common.errors import MissingCredentialError, SchemaError
from civicdata.common.http import HttpClient, TimeoutConfig


class Strategy(Protocol):
    name: str
    transformer: SourceTransformer

    async def fetch(self, client: HttpClient) -> list[Any]:
        ...


def unwrap_rows(payload: Any, url: str) -> list[Any]:
    if isinstance(payload, dict) and "data" in payload:
        payload = payload["data"]
    if not isinstance(payload, list):
        raise SchemaError(f"Expected a JSON array from {url}, got {type(payload).__name__}")
    return payload


@dataclass(frozen=True)
class HttpStrategy:
    name: str
    url: str
    transformer: SourceTransformer
    params: dict[str, Any] = field(default_factory=dict)
    headers: dict[str, str] = field(default_factory=dict)
    auth_header: str | None = None
    auth_env: str | None = None
    timeout_seconds: float | None = None

    def request_headers(self) -> dict[str, str]:
        headers = dict(self.headers)
        if self.auth_header:
            token = os.environ.get(self.auth_env or "", "")
            if not token:
                raise MissingCredentialError(f"Credential {self.auth_env} is not set for strategy {self.name}")
            headers[self.auth_header] = token
        return headers

    async def fetch(self, client: HttpClient) -> list[Any]:
        headers = self.request_headers()
        timeout = None
        if self.timeout_seconds is not None:
            timeout = TimeoutConfig(connect=min(self.timeout_seconds, TimeoutConfig.connect), read=self.timeout_seconds)
        payload = await client.get_json(
            self.url,
            params={key: str(value) for key, value in self.params.items()},
            headers=headers,
            timeout=timeout,
        )
        return unwrap_rows(payload, self.url)


@dataclass(frozen=True)
class FixedStrategy:
    """Serves literal rows from configuration, through the same transformer as live data."""

    name: str
    rows: tuple[Any, ...]
    transformer: SourceTransformer

    async def fetch(self, client: HttpClient) -> list[Any]:
        return list(self.rows)


def build_strategy(strategy_cfg: dict) -> HttpStrategy | FixedStrategy:
    transformer = get_transformer(strategy_cfg["transformer"])
    if strategy_cfg.get("kind", "http") == "fixed":
        return FixedStrategy(
            name=strategy_cfg["name"],
            rows=tuple(strategy_cfg["rows"]),
            transformer=transformer,
        )
    auth = strategy_cfg.get("auth") or {}
    timeout_seconds = strategy_cfg.get("timeout_seconds")
    return HttpStrategy(
        name=strategy_cfg["name"],
        url=strategy_cfg["url"],
        transformer=transformer,
        params=dict(strategy_cfg.get("params") or {}),
        headers={str(k): str(v) for k, v in (strategy_cfg.get("headers") or {}).items()},
        auth_header=auth.get("header"),
        auth_env=auth.get("env"),
        timeout_seconds=float(timeout_seconds) if timeout_seconds is not None else None,
    )
