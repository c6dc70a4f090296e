"""Normalized catalog records, Shopify mapping and catalog file emission."""

from catalog_crawler.catalog.emitter import CatalogEmitter, CatalogPaths, retailer_slug
from catalog_crawler.catalog.models import (
    ProductRecord,
    StoreConfig,
    StoreInfo,
    VariantRecord,
)
from catalog_crawler.catalog.normalizer import ShopifyNormalizer

__all__ = [
    "CatalogEmitter",
    "CatalogPaths",
    "ProductRecord",
    "ShopifyNormalizer",
    "StoreConfig",
    "StoreInfo",
    "VariantRecord",
    "retailer_slug",
]
