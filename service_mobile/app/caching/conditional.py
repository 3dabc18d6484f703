"""
Conditional GET handling on top of the mobile cache store.
"""

import asyncio
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Dict, Optional

from fastapi import Response
from fastapi.responses import JSONResponse

from shared.errors import MobileApiException, UpstreamFetchError
from shared.logging import get_logger
from .cache_store import CacheEntry, CacheStore
from .fingerprint import etags_match

if TYPE_CHECKING:  # pragma: no cover - imported for typing only
    from shared.metrics import MetricsCollector


CACHE_HIT_304 = "hit-304"
CACHE_HIT = "hit"
CACHE_MISS = "miss"
CACHE_STALE = "stale"
CACHE_STALE_ERROR = "stale-error"

Fetcher = Callable[[], Awaitable[Any]]


@dataclass(frozen=True)
class CachePolicy:
    """Freshness policy for one cached namespace."""

    namespace: str
    ttl: int
    stale_while_revalidate: int = 0
    resource: Optional[str] = None
    error_message: Optional[str] = None


@dataclass(frozen=True)
class CachedResult:
    """Outcome of a conditional lookup."""

    status_code: int
    payload: Any
    etag: str
    max_age: int
    cache_status: str
    stale_while_revalidate: int = 0

    @property
    def not_modified(self) -> bool:
        return self.status_code == 304

    def cache_control(self) -> str:
        value = f"public, max-age={self.max_age}"
        if self.stale_while_revalidate:
            value += f", stale-while-revalidate={self.stale_while_revalidate}"
        return value

    def headers(self) -> Dict[str, str]:
        return {
            "ETag": self.etag,
            "Cache-Control": self.cache_control(),
            "X-Cache-Status": self.cache_status,
            "Vary": "If-None-Match",
        }


class ConditionalResponseBuilder:
    """Chooses between 304, a cached 200 and a freshly fetched 200.

    Concurrent misses on the same key share one upstream fetch.
    """

    def __init__(
        self,
        store: CacheStore,
        *,
        serve_stale_on_error: bool = False,
        metrics: Optional["MetricsCollector"] = None,
    ):
        self.store = store
        self.serve_stale_on_error = serve_stale_on_error
        self.metrics = metrics
        self.logger = get_logger("mobile.conditional")
        self._inflight: Dict[str, "asyncio.Future[CacheEntry]"] = {}

    async def resolve(
        self,
        key: str,
        policy: CachePolicy,
        fetch: Fetcher,
        if_none_match: Optional[str] = None,
    ) -> CachedResult:
        entry = self.store.get(key)
        if entry is not None:
            max_age = self.store.ttl_remaining(key) or 0
            if etags_match(if_none_match, entry.fingerprint):
                return self._result(304, None, entry.fingerprint, max_age, CACHE_HIT_304, policy)
            return self._result(200, entry.payload, entry.fingerprint, max_age, CACHE_HIT, policy)

        cache_status = CACHE_STALE if self.store.peek(key) is not None else CACHE_MISS
        try:
            entry = await self._fetch_once(key, policy, fetch)
        except UpstreamFetchError:
            stale = self.store.peek(key)
            if not self.serve_stale_on_error or stale is None:
                raise
            self.logger.warning("Serving stale entry after upstream failure", key=key)
            return self._result(200, stale.payload, stale.fingerprint, 0, CACHE_STALE_ERROR, policy)

        return self._result(200, entry.payload, entry.fingerprint, policy.ttl, cache_status, policy)

    async def _fetch_once(self, key: str, policy: CachePolicy, fetch: Fetcher) -> CacheEntry:
        future = self._inflight.get(key)
        if future is None:
            future = asyncio.ensure_future(self._fetch_and_store(key, policy, fetch))
            self._inflight[key] = future
            future.add_done_callback(lambda done: self._forget(key, done))
        return await asyncio.shield(future)

    def _forget(self, key: str, future: "asyncio.Future[CacheEntry]") -> None:
        if self._inflight.get(key) is future:
            del self._inflight[key]

    async def _fetch_and_store(self, key: str, policy: CachePolicy, fetch: Fetcher) -> CacheEntry:
        start = time.perf_counter()
        try:
            payload = await fetch()
        except Exception as exc:
            if isinstance(exc, MobileApiException) and exc.status_code < 500:
                raise
            self.logger.error("Upstream fetch failed", key=key, namespace=policy.namespace, error=str(exc))
            if policy.error_message:
                raise UpstreamFetchError(policy.namespace, policy.error_message, {"key": key}) from exc
            raise UpstreamFetchError(policy.namespace, details={"key": key}) from exc
        finally:
            if self.metrics is not None:
                self.metrics.observe_histogram(
                    "upstream_fetch_duration_seconds",
                    time.perf_counter() - start,
                    namespace=policy.namespace,
                )

        return self.store.set(key, payload, policy.ttl, resource=policy.resource)

    def _result(
        self,
        status_code: int,
        payload: Any,
        etag: str,
        max_age: int,
        cache_status: str,
        policy: CachePolicy,
    ) -> CachedResult:
        if self.metrics is not None:
            self.metrics.increment_counter("cache_lookups_total", namespace=policy.namespace, status=cache_status)
        return CachedResult(
            status_code=status_code,
            payload=payload,
            etag=etag,
            max_age=max_age,
            cache_status=cache_status,
            stale_while_revalidate=policy.stale_while_revalidate,
        )


def build_response(
    result: CachedResult,
    *,
    meta: Optional[Dict[str, Any]] = None,
    headers: Optional[Dict[str, str]] = None,
) -> Response:
    """Render a ``CachedResult`` as a mobile envelope (or an empty 304)."""
    response_headers = result.headers()
    response_headers.update(headers or {})

    if result.not_modified:
        return Response(status_code=304, headers=response_headers)

    body: Dict[str, Any] = {
        "success": True,
        "data": result.payload,
        "error": None,
        "cache": {"etag": result.etag, "maxAge": result.max_age},
    }
    if meta:
        body["meta"] = meta
    return JSONResponse(status_code=result.status_code, content=body, headers=response_headers)
