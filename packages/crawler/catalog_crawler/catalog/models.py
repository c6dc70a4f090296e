"""Normalized catalog schemas.

Retailer-agnostic product and variant records, matching the document shape
downstream systems consume from ``catalog.json`` / ``catalog.jsonl``.
"""

from __future__ import annotations

from datetime import datetime, timezone

from pydantic import BaseModel, Field


class VariantRecord(BaseModel):
    """One purchasable variant (size/color combination) of a product."""

    variant_id: str
    variant_description: str = ""
    price_currency: str = "USD"
    original_price: float = 0.0
    selling_price: float = 0.0
    sale_price: float | None = None
    final_price: float = 0.0
    discount: int = 0
    link_url: str
    deeplink_url: str
    image_url: str = ""
    alternate_image_urls: list[str] = Field(default_factory=list)
    is_on_sale: bool = False
    is_in_stock: bool = False
    size: str = ""
    color: str = ""
    mpn: str = ""
    ratings_count: int = 0
    average_ratings: float = 0.0
    review_count: int = 0


class ProductRecord(BaseModel):
    """A product with its variants."""

    parent_product_id: str
    name: str
    description: str = ""
    category: str = ""
    retailer_domain: str
    brand: str = ""
    gender: str = ""
    materials: str = ""
    return_policy_link: str = ""
    return_policy: str = ""
    size_chart: str = ""
    available_bank_offers: str = ""
    available_coupons: str = ""
    variants: list[VariantRecord] = Field(default_factory=list)
    source: str = ""


class StoreInfo(BaseModel):
    """Header written at the top of ``catalog.json``."""

    name: str
    domain: str
    currency: str = "USD"
    country: str = "US"
    total_products: int = 0
    crawled_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class StoreConfig(BaseModel):
    """One store entry from a crawl batch file.

    ``name``, ``country`` and ``currency`` override what the storefront's
    ``/meta.json`` reports.
    """

    url: str
    name: str | None = None
    country: str | None = None
    currency: str | None = None
    return_policy: str = ""
