"""Retry wrapper for HTTP units of work.

Each attempt opens a new ``httpx.AsyncClient`` bound to the proxy selected
for that attempt and closes it when the attempt ends, whatever the result.
"""

from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable, TypeVar

import httpx

from catalog_crawler.errors import BlockedError
from catalog_crawler.http_client import create_client
from catalog_crawler.proxy.pool import ProxyPool
from catalog_crawler.proxy.types import ProxyEndpoint
from catalog_crawler.resilience.block_detector import BlockDetector, Classification, response_text
from catalog_crawler.resilience.outcome import AttemptContext
from catalog_crawler.resilience.retrier import BaseRetrier, SleepFn

T = TypeVar("T")

ClientFactory = Callable[[ProxyEndpoint], httpx.AsyncClient]


class RequestRetrier(BaseRetrier):
    """Runs an HTTP unit of work up to ``max_attempts`` times.

    Args:
        proxy_pool: Source of the per-attempt proxy endpoint.
        detector: Block detector used to classify errors (and responses when
            ``inspect_responses`` is set).
        client_factory: Builds the client for an endpoint. Defaults to
            :func:`catalog_crawler.http_client.create_client`.
        timeout_ms: Per-request timeout for the default client factory.
        inspect_responses: When ``True``, a returned ``httpx.Response`` whose
            status or body looks blocked is treated as a failed attempt.
        sleep: Awaitable sleep used for backoff (injectable for tests).
    """

    kind = "request"

    def __init__(
        self,
        proxy_pool: ProxyPool,
        *,
        detector: BlockDetector | None = None,
        client_factory: ClientFactory | None = None,
        timeout_ms: int = 60000,
        inspect_responses: bool = False,
        sleep: SleepFn = asyncio.sleep,
    ) -> None:
        super().__init__(proxy_pool, detector=detector, sleep=sleep)
        self._client_factory = client_factory or (
            lambda endpoint: create_client(endpoint, timeout_ms=timeout_ms)
        )
        self._inspect_responses = inspect_responses

    async def run(
        self,
        unit_of_work: Callable[[httpx.AsyncClient], Awaitable[T]],
        max_attempts: int = 5,
        base_delay_ms: int = 2000,
        region: str = "US",
        *,
        stop_on_block: bool = False,
        target: str | None = None,
    ) -> T:
        """Return the first successful result of *unit_of_work*.

        Raises ``RetryExhaustedError`` (chained to the last error) once every
        attempt has failed, and re-raises ``FatalError`` immediately.
        """
        return await self._run(
            unit_of_work,
            max_attempts,
            base_delay_ms,
            region,
            stop_on_block=stop_on_block,
            target=target,
        )

    async def _attempt(self, ctx: AttemptContext, unit_of_work: Callable[[Any], Awaitable[Any]]) -> Any:
        async with self._client_factory(ctx.proxy) as client:
            result = await unit_of_work(client)

        if self._inspect_responses and isinstance(result, httpx.Response):
            if self._detector.classify_response(result) is Classification.BLOCKED:
                indicator = self._detector.find_indicator(response_text(result))
                raise BlockedError(
                    f"Blocked response (HTTP {result.status_code})",
                    status=result.status_code,
                    indicator=indicator,
                )
        return result
