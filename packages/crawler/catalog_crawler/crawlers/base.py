"""Abstract base class for per-retailer crawlers.

A crawler owns one store for the length of a run. It issues its fetches
sequentially through the retriers, pauses a randomized politeness delay
between operations, tallies per-record failures instead of aborting, and
emits the catalog only after every fetch has resolved.
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Protocol, Sequence

from catalog_crawler.browser.fingerprint import FingerprintRandomizer
from catalog_crawler.catalog.emitter import CatalogPaths
from catalog_crawler.catalog.models import ProductRecord
from catalog_crawler.config.domain_policies import DomainPolicy
from catalog_crawler.resilience.retrier import SleepFn

logger = logging.getLogger(__name__)


class ProductSink(Protocol):
    """Persistence boundary: anything that can store normalized products."""

    async def save(self, products: Sequence[ProductRecord]) -> None: ...


@dataclass
class CrawlReport:
    """Tally of one store crawl."""

    store: str
    pages_fetched: int = 0
    products_found: int = 0
    products_written: int = 0
    failed_products: int = 0
    page_errors: list[str] = field(default_factory=list)
    blocked: bool = False
    skipped: bool = False
    catalog: CatalogPaths | None = None

    @property
    def ok(self) -> bool:
        return not self.blocked and not self.page_errors


class BaseCrawler(ABC):
    """Shared pacing and reporting for retailer crawlers.

    Subclasses set ``source`` and implement :meth:`crawl`.
    """

    source: str

    def __init__(
        self,
        policy: DomainPolicy,
        *,
        fingerprint: FingerprintRandomizer | None = None,
        sleep: SleepFn = asyncio.sleep,
    ) -> None:
        self._policy = policy
        self._fingerprint = fingerprint or FingerprintRandomizer()
        self._sleep = sleep

    @property
    def policy(self) -> DomainPolicy:
        return self._policy

    @abstractmethod
    async def crawl(self) -> CrawlReport:
        """Fetch, normalize and emit the store's catalog."""
        ...

    async def pause(self) -> None:
        """Sleep a random politeness delay from the domain policy."""
        delay_ms = self._fingerprint.get_action_delay(
            min_delay_ms=self._policy.min_delay_ms,
            max_delay_ms=self._policy.max_delay_ms,
        )
        if delay_ms > 0:
            await self._sleep(delay_ms / 1000.0)
