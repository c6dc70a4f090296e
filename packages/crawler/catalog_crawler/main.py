"""Standalone entry point: crawl a batch of Shopify stores.

Usage::

    python -m catalog_crawler.main stores.yaml [--output-dir output] [--max-pages N]

The batch file lists stores under a ``stores`` key::

    stores:
      - url: https://example-store.com
        name: Example
        country: US
        currency: USD

Stores are crawled one after another. The process exits 0 when every store
succeeded, 1 when any store failed or was blocked, and 2 on configuration
errors.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path

import yaml
from pydantic import ValidationError

from catalog_crawler.browser.fingerprint import FingerprintRandomizer
from catalog_crawler.browser.session import BrowserLauncher
from catalog_crawler.catalog.emitter import CatalogEmitter
from catalog_crawler.catalog.models import StoreConfig
from catalog_crawler.catalog.normalizer import domain_name
from catalog_crawler.config.domain_policies import load_domain_policies, policy_for
from catalog_crawler.config.settings import CrawlerSettings, load_settings
from catalog_crawler.crawlers.base import CrawlReport
from catalog_crawler.crawlers.shopify import ShopifyCrawler
from catalog_crawler.errors import ConfigurationError, CrawlerError
from catalog_crawler.logging_config import configure_logging
from catalog_crawler.proxy.pool import ProxyPool
from catalog_crawler.resilience.block_detector import BlockDetector
from catalog_crawler.resilience.browser_retrier import BrowserSessionRetrier
from catalog_crawler.resilience.request_retrier import RequestRetrier

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILURES = 1
EXIT_CONFIG = 2


def load_stores(path: str | Path) -> list[StoreConfig]:
    """Parse a YAML batch file into StoreConfig entries."""
    try:
        raw = yaml.safe_load(Path(path).read_text(encoding="utf-8"))
    except (OSError, yaml.YAMLError) as exc:
        raise ConfigurationError(f"Cannot read store batch {path}: {exc}") from exc

    entries = raw.get("stores") if isinstance(raw, dict) else raw
    if not isinstance(entries, list):
        raise ConfigurationError(f"Store batch {path} must contain a 'stores' list")

    try:
        return [StoreConfig.model_validate(entry) for entry in entries]
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid store entry in {path}: {exc}") from exc


async def crawl_stores(
    stores: list[StoreConfig],
    settings: CrawlerSettings,
    *,
    max_pages: int | None = None,
) -> list[CrawlReport]:
    """Crawl *stores* sequentially and return one report per store."""
    proxy_pool = ProxyPool.from_settings(settings)
    detector = BlockDetector()
    fingerprint = FingerprintRandomizer()
    request_retrier = RequestRetrier(
        proxy_pool,
        detector=detector,
        timeout_ms=settings.request_timeout_ms,
    )
    browser_retrier = BrowserSessionRetrier(
        proxy_pool,
        launcher=BrowserLauncher(
            headless=settings.headless,
            navigation_timeout_ms=settings.navigation_timeout_ms,
        ),
        fingerprint=fingerprint,
        detector=detector,
    )
    policies = load_domain_policies(settings.domain_policies_path)
    emitter = CatalogEmitter(settings.output_dir)

    reports: list[CrawlReport] = []
    for store in stores:
        crawler = ShopifyCrawler(
            store,
            policy_for(policies, domain_name(store.url)),
            request_retrier=request_retrier,
            browser_retrier=browser_retrier,
            emitter=emitter,
            fingerprint=fingerprint,
            max_pages=max_pages,
        )
        try:
            reports.append(await crawler.crawl())
        except CrawlerError as exc:
            # One store's failure must not stop the batch
            logger.error("Crawl of %s failed: %s", store.url, exc, extra={"retailer": crawler.store_name})
            reports.append(CrawlReport(store=crawler.store_name, page_errors=[exc.message]))
        except Exception as exc:
            logger.error(
                "Crawl of %s failed unexpectedly: %s", store.url, exc,
                exc_info=True,
                extra={"retailer": crawler.store_name},
            )
            reports.append(
                CrawlReport(store=crawler.store_name, page_errors=[str(exc) or type(exc).__name__])
            )
    return reports


def _parse_args(argv: list[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Crawl Shopify product catalogs through rotating proxies.")
    parser.add_argument("stores_file", help="YAML file with a 'stores' list")
    parser.add_argument("--output-dir", help="Override CRAWLER_OUTPUT_DIR")
    parser.add_argument("--max-pages", type=int, default=None, help="Stop after this many pages per store")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)

    try:
        overrides = {"output_dir": args.output_dir} if args.output_dir else {}
        settings = load_settings(**overrides)
        configure_logging(settings.log_level)
        stores = load_stores(args.stores_file)
    except ConfigurationError as exc:
        configure_logging("INFO")
        logger.error("Configuration error: %s", exc.message)
        return EXIT_CONFIG

    try:
        reports = asyncio.run(crawl_stores(stores, settings, max_pages=args.max_pages))
    except ConfigurationError as exc:
        logger.error("Configuration error: %s", exc.message)
        return EXIT_CONFIG

    failed = [r for r in reports if not r.ok]
    logger.info(
        "Batch finished: %d stores, %d failed",
        len(reports),
        len(failed),
        extra={"failed_count": len(failed)},
    )
    return EXIT_FAILURES if failed else EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
