"""Shopify storefront crawler.

Before paging, the crawler finds the URL form the storefront answers on
(scheme and ``www.`` variants of the configured URL) and reads the store's
name, country and currency from ``/meta.json``. Values set in the store
config win over the storefront's own. Stores outside the supported
countries are skipped.

Pages through ``/products.json?page=N&limit=250`` until an empty page or a
404, either with a proxied HTTP client or, for storefronts that only answer
real browsers, by loading the JSON in a fingerprinted browser session.
Products are de-duplicated by id, normalized, optionally saved to a sink,
and written as a catalog once every page has resolved.
"""

from __future__ import annotations

import asyncio
import json
import logging
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Callable, TypeVar

import httpx
from pydantic import ValidationError

from catalog_crawler.browser.fingerprint import FingerprintRandomizer
from catalog_crawler.catalog.emitter import CatalogEmitter
from catalog_crawler.catalog.models import ProductRecord, StoreConfig, StoreInfo
from catalog_crawler.catalog.normalizer import ShopifyNormalizer, domain_name
from catalog_crawler.config.domain_policies import DomainPolicy
from catalog_crawler.crawlers.base import BaseCrawler, CrawlReport, ProductSink
from catalog_crawler.errors import RetryExhaustedError, TransientError
from catalog_crawler.resilience.block_detector import BlockDetector
from catalog_crawler.resilience.browser_retrier import BrowserSessionRetrier
from catalog_crawler.resilience.request_retrier import RequestRetrier
from catalog_crawler.resilience.retrier import SleepFn

if TYPE_CHECKING:
    from catalog_crawler.browser.session import BrowserSession

logger = logging.getLogger(__name__)

T = TypeVar("T")

# (status, body, url, detector) -> parsed value
Parser = Callable[[int | None, str, str, BlockDetector], T]

PAGE_LIMIT = 250
MAX_CONSECUTIVE_PAGE_FAILURES = 2
# Attempts per URL variant and for store metadata
RESOLVE_ATTEMPTS = 3

SUPPORTED_COUNTRIES = ("US", "IN")
DEFAULT_COUNTRY = "US"
DEFAULT_CURRENCY = "USD"


def url_variants(url: str) -> list[str]:
    """Candidate storefront base URLs for *url*, the URL as given first.

    >>> url_variants("shop.test")
    ['https://shop.test', 'https://www.shop.test', 'http://shop.test', 'http://www.shop.test']
    """
    given = url.strip().rstrip("/")
    host = given.split("://", 1)[-1]
    bare = host[4:] if host.startswith("www.") else host

    candidates = [given] if "://" in given else []
    candidates += [
        f"https://{host}",
        f"https://www.{bare}",
        f"http://{host}",
        f"http://www.{bare}",
        f"https://{bare}",
        f"http://{bare}",
    ]
    return list(dict.fromkeys(candidates))


def merge_store_details(store: StoreConfig, base_url: str, meta: dict) -> StoreConfig:
    """Fill unset store fields from ``/meta.json`` data, then from defaults."""

    def meta_value(key: str) -> str:
        value = meta.get(key)
        return value.strip() if isinstance(value, str) else ""

    country = store.country or meta_value("country") or DEFAULT_COUNTRY
    currency = store.currency or meta_value("currency") or DEFAULT_CURRENCY
    return store.model_copy(
        update={
            "url": base_url,
            "name": store.name or meta_value("name") or domain_name(base_url),
            "country": country.upper(),
            "currency": currency.upper(),
        }
    )


class ShopifyCrawler(BaseCrawler):
    """Crawls one Shopify store into a normalized catalog."""

    source = "shopify"

    def __init__(
        self,
        store: StoreConfig,
        policy: DomainPolicy,
        *,
        request_retrier: RequestRetrier,
        browser_retrier: BrowserSessionRetrier | None = None,
        emitter: CatalogEmitter | None = None,
        sink: ProductSink | None = None,
        fingerprint: FingerprintRandomizer | None = None,
        sleep: SleepFn = asyncio.sleep,
        max_pages: int | None = None,
    ) -> None:
        super().__init__(policy, fingerprint=fingerprint, sleep=sleep)
        if policy.use_browser and browser_retrier is None:
            raise ValueError("policy.use_browser requires a browser_retrier")
        self._config = store
        self._request_retrier = request_retrier
        self._browser_retrier = browser_retrier
        self._emitter = emitter
        self._sink = sink
        self._max_pages = max_pages
        self._use_store(merge_store_details(store, store.url.strip().rstrip("/"), {}))

    def _use_store(self, store: StoreConfig) -> None:
        self._store = store
        self._base_url = store.url
        self._region = self._policy.region or store.country
        self._normalizer = ShopifyNormalizer(store)

    @property
    def store(self) -> StoreConfig:
        return self._store

    @property
    def store_name(self) -> str:
        return self._store.name or domain_name(self._store.url)

    def page_url(self, page: int) -> str:
        return f"{self._base_url}/products.json?page={page}&limit={PAGE_LIMIT}"

    # ------------------------------------------------------------------
    # Fetching
    # ------------------------------------------------------------------

    async def _fetch(
        self,
        url: str,
        parse: Parser[T],
        *,
        max_attempts: int | None = None,
        stop_on_block: bool | None = None,
    ) -> T | None:
        """Load *url* through the retrier the policy selects and parse it.

        Returns None on a 404. Other non-2xx statuses fail the attempt, as a
        block when the detector says so.
        """
        attempts = max_attempts or self._policy.max_attempts
        if stop_on_block is None:
            stop_on_block = self._policy.stop_on_block

        if self._policy.use_browser:
            if self._browser_retrier is None:
                raise ValueError("policy.use_browser requires a browser_retrier")
            detector = self._browser_retrier.detector

            async def load_in_browser(session: "BrowserSession") -> T | None:
                status, body = await session.fetch_text(url)
                return self._interpret(status, body, url, detector, parse)

            return await self._browser_retrier.run(
                load_in_browser,
                attempts,
                self._policy.base_delay_ms,
                self._region,
                url,
                stop_on_block=stop_on_block,
            )

        detector = self._request_retrier.detector

        async def load_over_http(client: httpx.AsyncClient) -> T | None:
            response = await client.get(url)
            return self._interpret(response.status_code, response.text, url, detector, parse)

        return await self._request_retrier.run(
            load_over_http,
            attempts,
            self._policy.base_delay_ms,
            self._region,
            stop_on_block=stop_on_block,
            target=url,
        )

    @staticmethod
    def _interpret(
        status: int | None,
        body: str,
        url: str,
        detector: BlockDetector,
        parse: Parser[T],
    ) -> T | None:
        if status == 404:
            return None
        if status is not None and not 200 <= status < 300:
            detector.ensure_not_blocked(status, body, url)
            raise TransientError(f"HTTP {status} from {url}", status=status)
        return parse(status, body, url, detector)

    async def resolve_base_url(self) -> str | None:
        """Return the first URL variant whose ``/products.json`` answers.

        Returns None when every variant answered 404. Raises the last
        ``RetryExhaustedError`` when every variant failed, preferring a
        blocked one.
        """
        last_error: RetryExhaustedError | None = None
        for candidate in url_variants(self._config.url):
            check_url = f"{candidate}/products.json?limit=1"
            try:
                products = await self._fetch(
                    check_url,
                    self._parse_products,
                    max_attempts=min(self._policy.max_attempts, RESOLVE_ATTEMPTS),
                )
            except RetryExhaustedError as exc:
                logger.info(
                    "Storefront check failed for %s: %s", candidate, exc.message,
                    extra={"target_url": check_url},
                )
                if last_error is None or exc.blocked or not last_error.blocked:
                    last_error = exc
                continue
            if products is not None:
                logger.info("Using storefront URL %s", candidate, extra={"target_url": candidate})
                return candidate

        if last_error is not None:
            raise last_error
        return None

    async def fetch_store_meta(self, base_url: str) -> dict:
        """Return ``/meta.json`` for the storefront, or ``{}`` if unavailable."""
        url = f"{base_url}/meta.json"
        try:
            meta = await self._fetch(
                url,
                self._parse_object,
                max_attempts=min(self._policy.max_attempts, RESOLVE_ATTEMPTS),
                stop_on_block=True,
            )
        except RetryExhaustedError as exc:
            logger.warning(
                "Could not fetch store metadata from %s: %s", url, exc.message,
                extra={"target_url": url},
            )
            return {}
        return meta or {}

    async def fetch_page(self, page: int) -> list[dict]:
        """Return the products on *page*; an empty list means no more pages."""
        return await self._fetch(self.page_url(page), self._parse_products) or []

    async def fetch_product_variants(self, handle: str) -> list[dict]:
        """Fetch a single product's variants from ``/products/<handle>.js``.

        Returns an empty list when the product cannot be fetched.
        """
        url = f"{self._base_url}/products/{handle}.js"
        try:
            data = await self._fetch(url, self._parse_object)
        except RetryExhaustedError as exc:
            logger.warning("Could not fetch variants for %s: %s", url, exc, extra={"target_url": url})
            return []
        return list((data or {}).get("variants") or [])

    @staticmethod
    def _load_json(status: int | None, body: str, url: str, detector: BlockDetector) -> Any:
        try:
            return json.loads(body)
        except ValueError:
            # Product JSON may contain indicator words; only non-JSON bodies are scanned
            detector.ensure_not_blocked(status, body, url)
            raise TransientError(f"Non-JSON response from {url}", status=status)

    @classmethod
    def _parse_products(cls, status: int | None, body: str, url: str, detector: BlockDetector) -> list[dict]:
        data = cls._load_json(status, body, url, detector)
        products = data.get("products") if isinstance(data, dict) else None
        if products is None:
            raise TransientError(f"Response from {url} has no 'products' key", status=status)
        return list(products)

    @classmethod
    def _parse_object(cls, status: int | None, body: str, url: str, detector: BlockDetector) -> dict:
        data = cls._load_json(status, body, url, detector)
        if not isinstance(data, dict):
            raise TransientError(f"Response from {url} is not a JSON object", status=status)
        return data

    # ------------------------------------------------------------------
    # Crawl
    # ------------------------------------------------------------------

    async def prepare(self, report: CrawlReport) -> bool:
        """Resolve the storefront URL and store details.

        Returns False when the store cannot or should not be crawled; the
        reason is recorded on *report*.
        """
        try:
            base_url = await self.resolve_base_url()
        except RetryExhaustedError as exc:
            report.page_errors.append(f"storefront: {exc.message}")
            report.blocked = exc.blocked
            logger.error(
                "No reachable storefront for %s", self._config.url,
                extra={"retailer": self.store_name, "error_reason": exc.message},
            )
            return False
        if base_url is None:
            report.page_errors.append(f"storefront: no Shopify catalog at {self._config.url}")
            logger.error("No Shopify catalog found for %s", self._config.url, extra={"retailer": self.store_name})
            return False

        meta = await self.fetch_store_meta(base_url)
        self._use_store(merge_store_details(self._config, base_url, meta))
        report.store = self.store_name

        if self._store.country not in SUPPORTED_COUNTRIES:
            report.skipped = True
            logger.info(
                "Skipping %s: country %s is not supported", self.store_name, self._store.country,
                extra={"retailer": self.store_name, "country": self._store.country},
            )
            return False
        return True

    async def crawl(self) -> CrawlReport:
        report = CrawlReport(store=self.store_name)
        if not await self.prepare(report):
            return report

        raw_products = await self._collect(report)
        if report.blocked:
            return report

        records = await self._normalize_all(raw_products, report)
        if not records:
            logger.warning("No products found for %s", self._base_url, extra={"retailer": self.store_name})
            return report

        # Persist and emit only once every fetch has resolved
        if self._sink is not None:
            await self._sink.save(records)

        if self._emitter is not None:
            report.catalog = self._emitter.write(
                StoreInfo(
                    name=self.store_name,
                    domain=domain_name(self._base_url),
                    currency=self._store.currency,
                    country=self._store.country,
                    crawled_at=datetime.now(timezone.utc),
                ),
                records,
            )
        report.products_written = len(records)

        logger.info(
            "Crawled %s: %d products, %d failed",
            self.store_name,
            report.products_written,
            report.failed_products,
            extra={
                "retailer": self.store_name,
                "products_count": report.products_written,
                "failed_count": report.failed_products,
            },
        )
        return report

    async def _collect(self, report: CrawlReport) -> dict[str, dict]:
        products: dict[str, dict] = {}
        consecutive_failures = 0
        page = 1

        while self._max_pages is None or page <= self._max_pages:
            if page > 1:
                await self.pause()
            try:
                batch = await self.fetch_page(page)
            except RetryExhaustedError as exc:
                report.page_errors.append(f"page {page}: {exc.message}")
                if exc.blocked:
                    report.blocked = True
                    logger.error(
                        "Blocked while crawling %s, stopping store", self.store_name,
                        extra={"retailer": self.store_name, "page": page, "error_reason": exc.message},
                    )
                    break
                consecutive_failures += 1
                if consecutive_failures >= MAX_CONSECUTIVE_PAGE_FAILURES:
                    logger.error(
                        "Giving up on %s after %d failed pages", self.store_name, consecutive_failures,
                        extra={"retailer": self.store_name, "page": page},
                    )
                    break
                page += 1
                continue

            consecutive_failures = 0
            if not batch:
                logger.info("Ending %s at page %d", self.store_name, page, extra={"page": page})
                break

            report.pages_fetched += 1
            for product in batch:
                product_id = str(product.get("id", ""))
                if product_id:
                    products.setdefault(product_id, product)
            logger.debug("Fetched %d products from page %d", len(batch), page, extra={"page": page})
            page += 1

        report.products_found = len(products)
        return products

    async def _normalize_all(self, raw_products: dict[str, dict], report: CrawlReport) -> list[ProductRecord]:
        records: list[ProductRecord] = []
        for product_id, product in raw_products.items():
            try:
                if not product.get("variants") and product.get("handle"):
                    product = {**product, "variants": await self.fetch_product_variants(product["handle"])}
                records.append(self._normalizer.normalize(product))
            except (KeyError, TypeError, ValueError, ValidationError) as exc:
                report.failed_products += 1
                logger.warning(
                    "Skipping product %s: %s", product_id, exc,
                    extra={"retailer": self.store_name, "error_reason": str(exc)},
                )
        return records
