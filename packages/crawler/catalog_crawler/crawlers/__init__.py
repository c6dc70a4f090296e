"""Per-retailer crawlers built on the retry layer."""

from catalog_crawler.crawlers.base import BaseCrawler, CrawlReport, ProductSink
from catalog_crawler.crawlers.shopify import ShopifyCrawler

__all__ = ["BaseCrawler", "CrawlReport", "ProductSink", "ShopifyCrawler"]
