"""Async HTTP access for the table store and chat delivery.

One retrying request path backs every verb. 429, 5xx and timeouts are
retried with exponential backoff; anything else propagates immediately.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx
from tenacity import before_sleep_log, retry, retry_if_exception, stop_after_attempt, wait_exponential

from market_pulse.config import Settings, get_settings

logger = logging.getLogger(__name__)

_RETRYABLE_STATUS = frozenset({429, 500, 502, 503, 504})


def _is_retryable(exc: BaseException) -> bool:
    if isinstance(exc, httpx.TimeoutException):
        return True
    if isinstance(exc, httpx.HTTPStatusError):
        return exc.response.status_code in _RETRYABLE_STATUS
    return False


def table_store_headers(api_key: str) -> dict[str, str]:
    """PostgREST auth headers. An empty key sends anonymous requests."""
    headers = {"Accept": "application/json"}
    if api_key:
        headers["apikey"] = api_key
        headers["Authorization"] = f"Bearer {api_key}"
    return headers


class HttpClient:
    """Thin wrapper over httpx.AsyncClient with retries and status checks."""

    def __init__(
        self,
        base_url: str = "",
        headers: dict[str, str] | None = None,
        timeout: float | None = None,
    ) -> None:
        if timeout is None:
            timeout = get_settings().http_timeout
        self._client = httpx.AsyncClient(
            base_url=base_url,
            headers=headers or {},
            timeout=httpx.Timeout(timeout),
        )

    @classmethod
    def for_table_store(cls, settings: Settings | None = None) -> HttpClient:
        settings = settings or get_settings()
        return cls(
            base_url=settings.supabase_url.rstrip("/"),
            headers=table_store_headers(settings.supabase_key),
            timeout=settings.http_timeout,
        )

    @retry(
        retry=retry_if_exception(_is_retryable),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=10),
        before_sleep=before_sleep_log(logger, logging.INFO),
        reraise=True,
    )
    async def request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        """Send one request; raises httpx.HTTPStatusError on 4xx/5xx."""
        response = await self._client.request(method, url, **kwargs)
        response.raise_for_status()
        return response

    async def get(self, url: str, params: dict | None = None) -> httpx.Response:
        return await self.request("GET", url, params=params)

    async def post(self, url: str, json: dict | None = None) -> httpx.Response:
        return await self.request("POST", url, json=json)

    async def close(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> HttpClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()
