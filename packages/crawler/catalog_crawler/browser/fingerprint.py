"""Browser identity randomization for anti-detection.

Every browser session gets a fresh profile (user agent, viewport, locale,
timezone, geolocation) that is consistent with the proxy region it exits
through, plus an init script that hides the usual automation markers.
"""

from __future__ import annotations

import random
from dataclasses import dataclass

CURATED_USER_AGENTS: list[str] = [
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36",
    "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/123.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/123.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/122.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/122.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
    "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
]

# Common desktop resolutions
COMMON_VIEWPORTS: list[tuple[int, int]] = [
    (1366, 768),
    (1440, 900),
    (1536, 864),
    (1600, 900),
    (1680, 1050),
    (1920, 1080),
]


@dataclass(frozen=True)
class RegionLocale:
    """Locale data that should agree with a proxy's exit region."""

    timezones: tuple[str, ...]
    languages: tuple[str, ...]
    geolocation: tuple[float, float] | None = None


REGION_LOCALES: dict[str, RegionLocale] = {
    "US": RegionLocale(
        timezones=("America/New_York", "America/Chicago", "America/Denver", "America/Los_Angeles"),
        languages=("en-US",),
        geolocation=(40.7128, -74.0060),
    ),
    "IN": RegionLocale(
        timezones=("Asia/Kolkata",),
        languages=("en-IN", "hi-IN"),
        geolocation=(19.0760, 72.8777),
    ),
    "UK": RegionLocale(
        timezones=("Europe/London",),
        languages=("en-GB",),
        geolocation=(51.5074, -0.1278),
    ),
    "CA": RegionLocale(
        timezones=("America/Toronto", "America/Vancouver"),
        languages=("en-CA", "fr-CA"),
        geolocation=(43.6532, -79.3832),
    ),
    "AU": RegionLocale(
        timezones=("Australia/Sydney", "Australia/Melbourne"),
        languages=("en-AU",),
        geolocation=(-33.8688, 151.2093),
    ),
}

FALLBACK_REGION = "US"

# Runs before any page script in every page of the context
STEALTH_INIT_JS = """
() => {
    Object.defineProperty(navigator, 'webdriver', { get: () => undefined, configurable: true });
    if (!window.chrome) { window.chrome = {}; }
    if (!window.chrome.runtime) {
        window.chrome.runtime = { connect: function() {}, sendMessage: function() {} };
    }
    Object.defineProperty(navigator, 'plugins', { get: () => [1, 2, 3, 4, 5] });
    const originalQuery = window.navigator.permissions && window.navigator.permissions.query;
    if (originalQuery) {
        window.navigator.permissions.query = (parameters) => (
            parameters.name === 'notifications'
                ? Promise.resolve({ state: Notification.permission })
                : originalQuery(parameters)
        );
    }
}
"""


@dataclass(frozen=True)
class FingerprintProfile:
    """One browser identity."""

    user_agent: str
    viewport_width: int
    viewport_height: int
    timezone: str
    language: str
    geolocation: tuple[float, float] | None = None

    def context_options(self) -> dict:
        """Keyword arguments for ``Browser.new_context``."""
        options: dict = {
            "user_agent": self.user_agent,
            "viewport": {"width": self.viewport_width, "height": self.viewport_height},
            "device_scale_factor": 1,
            "locale": self.language,
            "timezone_id": self.timezone,
            "extra_http_headers": {"Accept-Language": f"{self.language},en;q=0.9"},
        }
        if self.geolocation is not None:
            latitude, longitude = self.geolocation
            options["geolocation"] = {"latitude": latitude, "longitude": longitude}
            options["permissions"] = ["geolocation"]
        return options


class FingerprintRandomizer:
    """Generates region-consistent browser identities.

    Pass a seeded ``random.Random`` for reproducible profiles in tests.
    """

    def __init__(self, *, rng: random.Random | None = None) -> None:
        self._rng = rng or random.Random()

    def generate(self, region: str | None = None) -> FingerprintProfile:
        key = (region or "").strip().upper()
        locale = REGION_LOCALES.get(key) or REGION_LOCALES[FALLBACK_REGION]
        width, height = self._rng.choice(COMMON_VIEWPORTS)
        return FingerprintProfile(
            user_agent=self._rng.choice(CURATED_USER_AGENTS),
            viewport_width=width,
            viewport_height=height,
            timezone=self._rng.choice(locale.timezones),
            language=self._rng.choice(locale.languages),
            geolocation=locale.geolocation,
        )

    def get_action_delay(self, min_delay_ms: int = 500, max_delay_ms: int = 2000) -> float:
        """Return a random pause in milliseconds between sequential operations."""
        return self._rng.uniform(min_delay_ms, max_delay_ms)
