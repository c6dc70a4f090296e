"""Unit tests for BrowserSession and the fingerprint randomizer."""

from __future__ import annotations

import random
from unittest.mock import AsyncMock, MagicMock

import pytest

from catalog_crawler.browser.fingerprint import (
    COMMON_VIEWPORTS,
    CURATED_USER_AGENTS,
    STEALTH_INIT_JS,
    FingerprintRandomizer,
)
from catalog_crawler.browser.session import BrowserSession


def _mock_browser(status: int | None = 200, text: str = "{}"):
    page = MagicMock()
    if status is None:
        page.goto = AsyncMock(return_value=None)
    else:
        response = MagicMock(status=status)
        response.text = AsyncMock(return_value=text)
        page.goto = AsyncMock(return_value=response)
    page.content = AsyncMock(return_value="<html>rendered</html>")

    context = MagicMock()
    context.new_page = AsyncMock(return_value=page)
    context.add_init_script = AsyncMock()
    context.close = AsyncMock()

    browser = MagicMock()
    browser.new_context = AsyncMock(return_value=context)
    browser.close = AsyncMock()
    return browser, context, page


@pytest.fixture
def profile():
    return FingerprintRandomizer(rng=random.Random(7)).generate("US")


class TestBrowserSession:
    @pytest.mark.asyncio
    async def test_new_page_applies_profile(self, profile):
        browser, context, _ = _mock_browser()
        session = BrowserSession(browser, profile, navigation_timeout_ms=1234)

        await session.new_page()

        browser.new_context.assert_awaited_once_with(**profile.context_options())
        context.set_default_navigation_timeout.assert_called_once_with(1234)
        context.add_init_script.assert_awaited_once_with(STEALTH_INIT_JS)

    @pytest.mark.asyncio
    async def test_fetch_text_returns_status_and_body(self, profile):
        browser, _, page = _mock_browser(200, '{"products": []}')
        session = BrowserSession(browser, profile)

        status, body = await session.fetch_text("https://shop.test/products.json")

        assert (status, body) == (200, '{"products": []}')
        page.goto.assert_awaited_once_with("https://shop.test/products.json", wait_until="networkidle")

    @pytest.mark.asyncio
    async def test_fetch_text_without_response_returns_rendered_content(self, profile):
        browser, _, _ = _mock_browser(status=None)
        session = BrowserSession(browser, profile)

        assert await session.fetch_text("https://shop.test/") == (None, "<html>rendered</html>")

    @pytest.mark.asyncio
    async def test_close_releases_everything_once(self, profile):
        browser, context, _ = _mock_browser()
        playwright = MagicMock()
        playwright.stop = AsyncMock()
        session = BrowserSession(browser, profile, playwright=playwright)
        await session.new_page()

        await session.close()
        await session.close()

        assert session.closed
        context.close.assert_awaited_once()
        browser.close.assert_awaited_once()
        playwright.stop.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_close_stops_driver_even_if_browser_close_fails(self, profile):
        browser, _, _ = _mock_browser()
        browser.close = AsyncMock(side_effect=RuntimeError("already gone"))
        playwright = MagicMock()
        playwright.stop = AsyncMock()
        session = BrowserSession(browser, profile, playwright=playwright)

        await session.close()

        playwright.stop.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_closed_session_refuses_new_pages(self, profile):
        browser, _, _ = _mock_browser()
        session = BrowserSession(browser, profile)
        await session.close()

        with pytest.raises(RuntimeError):
            await session.new_page()


class TestFingerprintRandomizer:
    def test_profile_uses_curated_values(self):
        profile = FingerprintRandomizer(rng=random.Random(1)).generate("US")
        assert profile.user_agent in CURATED_USER_AGENTS
        assert (profile.viewport_width, profile.viewport_height) in COMMON_VIEWPORTS

    def test_india_profile_matches_region(self):
        profile = FingerprintRandomizer().generate("IN")
        assert profile.timezone == "Asia/Kolkata"
        assert profile.language in ("en-IN", "hi-IN")

    def test_unknown_region_uses_us_locale(self):
        profile = FingerprintRandomizer().generate("XX")
        assert profile.timezone.startswith("America/")
        assert profile.language == "en-US"

    def test_seeded_generation_is_reproducible(self):
        a = FingerprintRandomizer(rng=random.Random(42)).generate("US")
        b = FingerprintRandomizer(rng=random.Random(42)).generate("US")
        assert a == b

    def test_context_options_include_geolocation(self):
        options = FingerprintRandomizer().generate("IN").context_options()
        assert options["geolocation"] == {"latitude": 19.0760, "longitude": 72.8777}
        assert options["permissions"] == ["geolocation"]
        assert options["extra_http_headers"]["Accept-Language"].startswith(options["locale"])

    def test_action_delay_within_bounds(self):
        randomizer = FingerprintRandomizer(rng=random.Random(3))
        for _ in range(50):
            assert 500 <= randomizer.get_action_delay(500, 2000) <= 2000
