# SPDX-License-Identifier: Apache-2.0
# Copyright 2024-2026 CAB Ingénierie / Christophe ABOULICAM
"""HTTP client for the Netskope REST API.

Every outbound call goes through ApiClient. It adds bearer auth, enforces a
per-call deadline, caches GET responses and retries transient failures with
exponential backoff and jitter.

The client is constructed once at startup from validated settings and passed
to the components that need it:

    client = ApiClient(get_settings())
    apps = await client.get("/api/v2/steering/apps/private")
    await client.close()
"""

import asyncio
import copy
import random
from typing import Any

import httpx
import structlog

from ..config import Settings
from ..errors import (
    ConnectionFailedError,
    HttpError,
    RequestTimeoutError,
    is_retryable,
)
from .response_cache import ResponseCache, make_cache_key

logger = structlog.get_logger(__name__)

MAX_JITTER_MS = 1000


class ApiClient:
    """Resilient client for the Netskope Resource API."""

    def __init__(
        self,
        settings: Settings,
        http_client: httpx.AsyncClient | None = None,
        cache: ResponseCache | None = None,
    ):
        """
        Args:
            settings: Validated settings (base URL, token, timeouts, cache sizing)
            http_client: Optional pre-built client (e.g. with a mock transport).
                The caller keeps ownership of a client passed in here.
            cache: Optional cache instance; built from settings otherwise
        """
        self.settings = settings
        self.base_url = settings.base_url
        self._headers = {
            "Authorization": f"Bearer {settings.api_token}",
            "Content-Type": "application/json",
            "Accept": "application/json",
        }
        self._owns_http_client = http_client is None
        self._http = http_client or httpx.AsyncClient(timeout=settings.timeout_seconds)
        self._cache = cache if cache is not None else ResponseCache(
            ttl_seconds=settings.cache_ttl_seconds,
            max_entries=settings.cache_max_entries,
        )
        logger.info(
            "ApiClient initialized",
            base_url=self.base_url,
            timeout_ms=settings.timeout_ms,
            retry_attempts=settings.retry_attempts,
        )

    async def __aenter__(self) -> "ApiClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    async def close(self) -> None:
        """Close the underlying HTTP client if this instance created it."""
        if self._owns_http_client:
            await self._http.aclose()
        logger.info("ApiClient closed")

    # =========================================================================
    # SINGLE REQUEST
    # =========================================================================

    async def request(
        self,
        path: str,
        method: str = "GET",
        json: Any = None,
        params: dict[str, Any] | None = None,
        use_cache: bool = True,
    ) -> Any:
        """Make one authenticated request.

        GET responses are served from and stored in the cache. Pass
        use_cache=False to force a fresh read; the result still refreshes
        the cache. Other verbs never touch the cache.

        Raises:
            RequestTimeoutError: deadline exceeded, call cancelled
            ConnectionFailedError: transport failure
            HttpError: non-2xx status
        """
        method = method.upper()
        if not path.startswith("/"):
            path = f"/{path}"
        target = f"{path}?{httpx.QueryParams(params)}" if params else path
        cache_key = make_cache_key(method, target, json)

        if method == "GET" and use_cache:
            cached = self._cache.get(cache_key)
            if cached is not None:
                logger.debug("Cache hit", path=target)
                return copy.deepcopy(cached)

        try:
            response = await asyncio.wait_for(
                self._http.request(
                    method,
                    f"{self.base_url}{path}",
                    headers=self._headers,
                    json=json,
                    params=params,
                ),
                timeout=self.settings.timeout_seconds,
            )
        except (asyncio.TimeoutError, httpx.TimeoutException) as e:
            logger.warning("Request timed out", method=method, path=target, timeout_ms=self.settings.timeout_ms)
            raise RequestTimeoutError(target, self.settings.timeout_ms) from e
        except httpx.RequestError as e:
            logger.warning("Request failed", method=method, path=target, error=str(e))
            raise ConnectionFailedError(target, str(e) or type(e).__name__) from e

        if not response.is_success:
            logger.error(
                "API error",
                method=method,
                path=target,
                status=response.status_code,
            )
            raise HttpError(
                response.status_code,
                response.reason_phrase,
                path=target,
                body=self._decode(response),
            )

        data = self._decode(response)
        if method == "GET":
            self._cache.set(cache_key, copy.deepcopy(data))
        return data

    @staticmethod
    def _decode(response: httpx.Response) -> Any:
        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError:
            return {"message": response.text}

    # =========================================================================
    # RETRY
    # =========================================================================

    async def request_with_retry(
        self,
        path: str,
        method: str = "GET",
        json: Any = None,
        params: dict[str, Any] | None = None,
        use_cache: bool = True,
    ) -> Any:
        """Call request(), retrying transient failures.

        Makes at most settings.retry_attempts attempts. Client errors (4xx,
        bad input) are re-raised immediately. Before retry n the client waits
        retry_delay_ms * 2**n plus up to one second of jitter. The last error
        is re-raised unchanged once attempts run out.
        """
        attempts = self.settings.retry_attempts
        last_error: Exception | None = None

        for attempt in range(attempts):
            try:
                return await self.request(path, method=method, json=json, params=params, use_cache=use_cache)
            except Exception as e:
                if not is_retryable(e):
                    raise
                last_error = e
                if attempt == attempts - 1:
                    break
                delay_ms = self.settings.retry_delay_ms * 2**attempt + random.random() * MAX_JITTER_MS
                logger.warning(
                    "Request failed, retrying",
                    method=method,
                    path=path,
                    attempt=attempt + 1,
                    max_attempts=attempts,
                    delay_ms=round(delay_ms),
                    error=str(e),
                )
                await asyncio.sleep(delay_ms / 1000)

        logger.error("Request failed after retries", method=method, path=path, attempts=attempts)
        raise last_error  # type: ignore[misc]

    # =========================================================================
    # VERB HELPERS
    # =========================================================================

    async def get(self, path: str, params: dict[str, Any] | None = None, use_cache: bool = True) -> Any:
        """GET with retry."""
        return await self.request_with_retry(path, params=params, use_cache=use_cache)

    async def post(self, path: str, json: Any = None) -> Any:
        return await self.request_with_retry(path, method="POST", json=json)

    async def put(self, path: str, json: Any = None) -> Any:
        return await self.request_with_retry(path, method="PUT", json=json)

    async def patch(self, path: str, json: Any = None) -> Any:
        return await self.request_with_retry(path, method="PATCH", json=json)

    async def delete(self, path: str, json: Any = None) -> Any:
        return await self.request_with_retry(path, method="DELETE", json=json)

    # =========================================================================
    # CACHE
    # =========================================================================

    def clear_cache(self) -> None:
        """Drop every cached GET response."""
        self._cache.clear()

    def cache_stats(self) -> dict[str, Any]:
        """Return cache statistics."""
        return self._cache.stats()
