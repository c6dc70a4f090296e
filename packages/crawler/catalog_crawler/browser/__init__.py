"""Browser sessions and fingerprint randomization."""

from catalog_crawler.browser.fingerprint import (
    CURATED_USER_AGENTS,
    REGION_LOCALES,
    STEALTH_INIT_JS,
    FingerprintProfile,
    FingerprintRandomizer,
)
from catalog_crawler.browser.session import CHROMIUM_ARGS, BrowserLauncher, BrowserSession

__all__ = [
    "CHROMIUM_ARGS",
    "CURATED_USER_AGENTS",
    "REGION_LOCALES",
    "STEALTH_INIT_JS",
    "BrowserLauncher",
    "BrowserSession",
    "FingerprintProfile",
    "FingerprintRandomizer",
]
