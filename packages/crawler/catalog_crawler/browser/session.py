"""Scoped Playwright browser sessions.

A BrowserSession owns one Chromium process, the Playwright driver that
started it, and every context and page opened through it. Sessions are
never pooled or reused: each retry attempt launches its own and closes it
before the next attempt starts, so cookies and fingerprint state cannot
leak from a blocked identity into the next one.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from catalog_crawler.browser.fingerprint import STEALTH_INIT_JS, FingerprintProfile

if TYPE_CHECKING:
    from playwright.async_api import Browser, BrowserContext, Page
    from catalog_crawler.proxy.types import ProxyEndpoint

logger = logging.getLogger(__name__)

# Chromium flags for containerized / headless operation
CHROMIUM_ARGS: list[str] = [
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",
    "--disable-gpu",
    "--disable-blink-features=AutomationControlled",
    "--disable-features=VizDisplayCompositor",
]

# Removing this default flag hides the "controlled by automated software" bar
IGNORED_DEFAULT_ARGS: list[str] = ["--enable-automation"]


class BrowserSession:
    """A launched browser plus the contexts and pages opened through it."""

    def __init__(
        self,
        browser: "Browser",
        profile: FingerprintProfile,
        *,
        playwright: Any = None,
        navigation_timeout_ms: int = 60000,
    ) -> None:
        self._browser = browser
        self._profile = profile
        self._playwright = playwright
        self._navigation_timeout_ms = navigation_timeout_ms
        self._contexts: list["BrowserContext"] = []
        self._closed = False

    @property
    def browser(self) -> "Browser":
        return self._browser

    @property
    def profile(self) -> FingerprintProfile:
        return self._profile

    @property
    def closed(self) -> bool:
        return self._closed

    async def new_page(self) -> "Page":
        """Open a page in a new fingerprinted context owned by this session."""
        if self._closed:
            raise RuntimeError("Browser session is closed")
        context = await self._browser.new_context(**self._profile.context_options())
        self._contexts.append(context)
        context.set_default_navigation_timeout(self._navigation_timeout_ms)
        await context.add_init_script(STEALTH_INIT_JS)
        return await context.new_page()

    async def fetch_text(
        self,
        url: str,
        *,
        wait_until: str = "networkidle",
    ) -> tuple[int | None, str]:
        """Navigate a new page to *url*; return ``(status, body)``.

        The body is the raw response text when the navigation produced a
        response, otherwise the rendered page content.
        """
        page = await self.new_page()
        response = await page.goto(url, wait_until=wait_until)
        if response is None:
            return None, await page.content()
        return response.status, await response.text()

    async def close(self) -> None:
        """Close every context, the browser and the driver. Safe to call twice."""
        if self._closed:
            return
        self._closed = True

        for context in self._contexts:
            try:
                await context.close()
            except Exception:
                logger.debug("Error closing browser context (may already be closed)", exc_info=True)
        self._contexts.clear()

        try:
            await self._browser.close()
        except Exception:
            logger.warning("Error closing browser", exc_info=True)
        finally:
            if self._playwright is not None:
                try:
                    await self._playwright.stop()
                except Exception:
                    logger.debug("Error stopping Playwright driver", exc_info=True)
                self._playwright = None


class BrowserLauncher:
    """Launches proxied, fingerprinted Chromium sessions."""

    def __init__(
        self,
        *,
        headless: bool = True,
        navigation_timeout_ms: int = 60000,
        extra_args: list[str] | None = None,
    ) -> None:
        self._headless = headless
        self._navigation_timeout_ms = navigation_timeout_ms
        self._args = CHROMIUM_ARGS + list(extra_args or [])

    async def launch(self, proxy: "ProxyEndpoint", profile: FingerprintProfile) -> BrowserSession:
        """Start a new Chromium routed through *proxy*.

        Any failure after the driver starts stops the driver before the
        error propagates, so a failed launch leaves no process behind.
        """
        from playwright.async_api import async_playwright

        playwright = await async_playwright().start()
        try:
            browser = await playwright.chromium.launch(
                headless=self._headless,
                args=self._args,
                ignore_default_args=IGNORED_DEFAULT_ARGS,
                proxy=proxy.as_playwright_proxy(),
            )
        except BaseException:
            await playwright.stop()
            raise

        logger.debug("Launched browser via %s", proxy.masked_url)
        return BrowserSession(
            browser,
            profile,
            playwright=playwright,
            navigation_timeout_ms=self._navigation_timeout_ms,
        )
