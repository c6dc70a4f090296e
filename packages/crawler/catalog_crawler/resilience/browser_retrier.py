"""Retry wrapper for browser-automation units of work.

Same attempt/backoff/exhaustion contract as RequestRetrier, but every
attempt launches a brand-new browser session through that attempt's proxy
with a fresh fingerprint. The session is closed in a ``finally`` before the
attempt ends, on success, block, timeout, launch failure or any other error.
"""

from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable, Protocol, TypeVar

from catalog_crawler.browser.fingerprint import FingerprintProfile, FingerprintRandomizer
from catalog_crawler.browser.session import BrowserLauncher, BrowserSession
from catalog_crawler.proxy.pool import ProxyPool
from catalog_crawler.proxy.types import ProxyEndpoint
from catalog_crawler.resilience.block_detector import BlockDetector
from catalog_crawler.resilience.outcome import AttemptContext
from catalog_crawler.resilience.retrier import BaseRetrier, SleepFn

T = TypeVar("T")


class SessionLauncher(Protocol):
    async def launch(self, proxy: ProxyEndpoint, profile: FingerprintProfile) -> BrowserSession: ...


class BrowserSessionRetrier(BaseRetrier):
    """Runs a browser unit of work with one disposable session per attempt."""

    kind = "browser"

    def __init__(
        self,
        proxy_pool: ProxyPool,
        *,
        launcher: SessionLauncher | None = None,
        fingerprint: FingerprintRandomizer | None = None,
        detector: BlockDetector | None = None,
        sleep: SleepFn = asyncio.sleep,
    ) -> None:
        super().__init__(proxy_pool, detector=detector, sleep=sleep)
        self._launcher = launcher or BrowserLauncher()
        self._fingerprint = fingerprint or FingerprintRandomizer()

    async def run(
        self,
        unit_of_work: Callable[[BrowserSession], Awaitable[T]],
        max_attempts: int = 3,
        base_delay_ms: int = 2000,
        region: str = "US",
        target_url_hint: str | None = None,
        *,
        stop_on_block: bool = False,
    ) -> T:
        """Return the first successful result of *unit_of_work*.

        The unit of work creates its own pages and should call
        ``detector.ensure_not_blocked`` on what it loaded, so that a block
        page is raised as ``BlockedError`` rather than returned as data.
        """
        return await self._run(
            unit_of_work,
            max_attempts,
            base_delay_ms,
            region,
            stop_on_block=stop_on_block,
            target=target_url_hint,
        )

    async def _attempt(self, ctx: AttemptContext, unit_of_work: Callable[[Any], Awaitable[Any]]) -> Any:
        profile = self._fingerprint.generate(ctx.region)
        session = await self._launcher.launch(ctx.proxy, profile)
        try:
            return await unit_of_work(session)
        finally:
            await session.close()
