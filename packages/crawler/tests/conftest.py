"""Shared test fixtures, fakes and hypothesis strategies for the crawler test suite."""

from __future__ import annotations

import httpx
import pytest
from hypothesis import strategies as st

from catalog_crawler.browser.fingerprint import FingerprintProfile
from catalog_crawler.config.settings import CrawlerSettings
from catalog_crawler.proxy.pool import ProxyPool
from catalog_crawler.proxy.types import ProxyEndpoint
from catalog_crawler.resilience.block_detector import DEFAULT_BLOCK_INDICATORS


# ---------------------------------------------------------------------------
# Ensure required env vars are set for CrawlerSettings in tests
# ---------------------------------------------------------------------------

@pytest.fixture(autouse=True)
def _set_test_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Set proxy credentials so CrawlerSettings can be instantiated in tests."""
    monkeypatch.setenv("CRAWLER_PROXY_USERNAME", "test-user")
    monkeypatch.setenv("CRAWLER_PROXY_PASSWORD", "test-pass")


# ---------------------------------------------------------------------------
# Settings / pool fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def settings(tmp_path) -> CrawlerSettings:
    """Test settings with safe defaults."""
    return CrawlerSettings(
        proxy_username="test-user",
        proxy_password="test-pass",
        proxy_hosts={"US": ["us.proxy.test"], "IN": ["in.proxy.test"]},
        output_dir=str(tmp_path / "output"),
        domain_policies_path=str(tmp_path / "missing.yaml"),
    )


@pytest.fixture
def proxy_pool(settings: CrawlerSettings) -> ProxyPool:
    return ProxyPool.from_settings(settings)


def make_endpoint(region: str = "US", host: str = "us.proxy.test", port: int = 10000) -> ProxyEndpoint:
    return ProxyEndpoint(
        region=region,
        host=host,
        port=port,
        username="test-user",
        password="test-pass",
    )


# ---------------------------------------------------------------------------
# Fakes
# ---------------------------------------------------------------------------

class RecordingSleep:
    """Awaitable stand-in for asyncio.sleep that records requested delays."""

    def __init__(self) -> None:
        self.calls: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)

    @property
    def delays_ms(self) -> list[int]:
        return [round(s * 1000) for s in self.calls]


@pytest.fixture
def recording_sleep() -> RecordingSleep:
    return RecordingSleep()


class FakeSession:
    """Browser session double that records closes and serves canned pages."""

    def __init__(self, proxy: ProxyEndpoint, profile: FingerprintProfile, pages: dict | None = None) -> None:
        self.proxy = proxy
        self.profile = profile
        self.pages = pages or {}
        self.close_calls = 0
        self.fetched: list[str] = []

    @property
    def closed(self) -> bool:
        return self.close_calls > 0

    async def fetch_text(self, url: str, *, wait_until: str = "networkidle") -> tuple[int | None, str]:
        self.fetched.append(url)
        return self.pages.get(url, (404, "Not Found"))

    async def close(self) -> None:
        self.close_calls += 1


class FakeLauncher:
    """Launcher double; ``fail_launches`` makes the first N launches raise."""

    def __init__(self, *, fail_launches: int = 0, pages: dict | None = None) -> None:
        self.fail_launches = fail_launches
        self.pages = pages or {}
        self.launch_attempts = 0
        self.sessions: list[FakeSession] = []

    async def launch(self, proxy: ProxyEndpoint, profile: FingerprintProfile) -> FakeSession:
        self.launch_attempts += 1
        if self.launch_attempts <= self.fail_launches:
            raise RuntimeError("Browser process exited before connecting")
        session = FakeSession(proxy, profile, self.pages)
        self.sessions.append(session)
        return session

    @property
    def close_calls(self) -> int:
        return sum(s.close_calls for s in self.sessions)


@pytest.fixture
def fake_launcher() -> FakeLauncher:
    return FakeLauncher()


class StatusError(Exception):
    """Error carrying an HTTP status, like an HTTP client's status exception."""

    def __init__(self, status: int) -> None:
        super().__init__(f"HTTP {status}")
        self.status = status


def mock_client_factory(handler):
    """Client factory whose clients answer through ``httpx.MockTransport``."""
    created: list[ProxyEndpoint] = []

    def factory(endpoint: ProxyEndpoint) -> httpx.AsyncClient:
        created.append(endpoint)
        return httpx.AsyncClient(transport=httpx.MockTransport(handler))

    factory.created = created  # type: ignore[attr-defined]
    return factory


# ---------------------------------------------------------------------------
# Hypothesis strategies (reusable across property tests)
# ---------------------------------------------------------------------------

indicators = st.sampled_from(DEFAULT_BLOCK_INDICATORS)

# Digits and punctuation only, so no indicator can appear
clean_bodies = st.text(alphabet="0123456789 {}[]:,.\"", max_size=200)

any_text = st.one_of(st.none(), st.text(max_size=200))

success_statuses = st.integers(min_value=200, max_value=299)
non_success_statuses = st.integers(min_value=100, max_value=599).filter(
    lambda s: not 200 <= s < 300 and s != 403
)

region_codes = st.text(alphabet="ABCDEFGHIJKLMNOPQRSTUVWXYZ", min_size=0, max_size=4)

attempt_budgets = st.integers(min_value=1, max_value=8)
base_delays = st.integers(min_value=0, max_value=5000)
