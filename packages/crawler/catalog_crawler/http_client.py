"""Proxied httpx client construction."""

from __future__ import annotations

import random

import httpx

from catalog_crawler.browser.fingerprint import CURATED_USER_AGENTS
from catalog_crawler.proxy.types import ProxyEndpoint

DEFAULT_HEADERS: dict[str, str] = {
    "Accept": "application/json, text/plain, */*",
    "Accept-Language": "en-US,en;q=0.9",
    "Accept-Encoding": "gzip, deflate",
    "Cache-Control": "no-cache",
    "Pragma": "no-cache",
}


def create_client(
    proxy: ProxyEndpoint | None,
    *,
    timeout_ms: int = 60000,
    user_agent: str | None = None,
    rng: random.Random | None = None,
) -> httpx.AsyncClient:
    """Return an AsyncClient that routes all traffic through *proxy*.

    Every client gets its own connection pool, so closing it after an
    attempt discards any cookies or connections tied to that identity.
    """
    headers = dict(DEFAULT_HEADERS)
    headers["User-Agent"] = user_agent or (rng or random).choice(CURATED_USER_AGENTS)
    return httpx.AsyncClient(
        proxy=proxy.url if proxy is not None else None,
        headers=headers,
        timeout=httpx.Timeout(timeout_ms / 1000.0),
        follow_redirects=True,
    )
