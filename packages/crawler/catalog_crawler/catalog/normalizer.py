"""Shopify product normalization.

Maps a product object from a Shopify ``/products.json`` page into a
ProductRecord. Handles:
- HTML stripping, entity decoding and whitespace normalization of descriptions
- price, sale and discount derivation per variant
- size and color extraction from the product's option definitions
- variant and alternate image selection
- deterministic MPNs per (product, color)
"""

from __future__ import annotations

import html
import re
import uuid
from urllib.parse import urlparse

from catalog_crawler.catalog.models import ProductRecord, StoreConfig, VariantRecord

# Regex for stripping HTML tags
_HTML_TAG_RE = re.compile(r"<[^>]+>")
_CONTROL_CHARS_RE = re.compile(r"[\u0000-\u001F\u007F-\u009F]")
_NON_ASCII_RE = re.compile(r"[^\x00-\x7F]")
_SIZE_VALUE_RE = re.compile(r"^(XXS|XS|S|M|L|XL|XXL|XXXL|\d+W?(\.\d+)?|\d+/\d+)$", re.IGNORECASE)

# Placeholder option value Shopify uses for single-variant products
DEFAULT_OPTION_VALUE = "Default Title"

# uuid.NAMESPACE_URL; MPNs must stay stable across runs
MPN_NAMESPACE = uuid.UUID("6ba7b810-9dad-11d1-80b4-00c04fd430c8")


def strip_html(text: str) -> str:
    """Strip HTML tags from a string."""
    return _HTML_TAG_RE.sub("", text)


def normalize_whitespace(text: str) -> str:
    """Collapse multiple whitespace characters into a single space and trim."""
    return re.sub(r"\s+", " ", text).strip()


def clean_description(body_html: str | None) -> str:
    """Plain-text, ASCII-only, single-spaced version of a product description."""
    text = html.unescape(strip_html(body_html or "")).replace("\xa0", " ")
    text = _CONTROL_CHARS_RE.sub(" ", text)
    text = _NON_ASCII_RE.sub("", text)
    return normalize_whitespace(text)


def domain_name(url: str) -> str:
    """Hostname of *url* without a leading ``www.``."""
    parsed = urlparse(url if "//" in url else f"//{url}")
    domain = parsed.hostname or url
    return domain[4:] if domain.startswith("www.") else domain


def calculate_discount(original_price: float, final_price: float) -> int:
    """Whole-percent discount of *final_price* against *original_price*."""
    if not original_price or not final_price or original_price <= final_price:
        return 0
    return round((original_price - final_price) / original_price * 100)


def _to_float(value: object) -> float:
    try:
        return float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return 0.0


def _option_values(variant: dict) -> list[tuple[int, str]]:
    values = []
    for position in (1, 2, 3):
        value = variant.get(f"option{position}")
        if value and value != DEFAULT_OPTION_VALUE:
            values.append((position, str(value)))
    return values


def _option_named(variant: dict, options: list[dict] | None, keyword: str) -> str:
    by_position = {opt.get("position"): str(opt.get("name", "")).lower() for opt in options or []}
    for position, value in _option_values(variant):
        if keyword in by_position.get(position, ""):
            return value
    return ""


def extract_size(variant: dict, options: list[dict] | None) -> str:
    """Size value of *variant*: a "size" option, else a value shaped like a size."""
    size = _option_named(variant, options, "size")
    if size:
        return size
    for _, value in _option_values(variant):
        if _SIZE_VALUE_RE.match(value):
            return value
    return ""


def extract_color(variant: dict, options: list[dict] | None) -> str:
    """Color value of *variant* from an option whose name mentions "color"."""
    return _option_named(variant, options, "color")


def make_mpn(product_id: object, color: str) -> str:
    return str(uuid.uuid5(MPN_NAMESPACE, f"{product_id}-{color or 'NO_COLOR'}"))


class ShopifyNormalizer:
    """Turns raw Shopify product dicts into ProductRecords for one store."""

    def __init__(self, store: StoreConfig) -> None:
        self._store = store
        self._base_url = store.url.rstrip("/")
        self._domain = domain_name(store.url)

    def normalize(self, product: dict) -> ProductRecord:
        """Map one Shopify product. Raises KeyError/ValueError on malformed input."""
        product_id = product["id"]
        title = product["title"]
        product_url = f"{self._base_url}/products/{product.get('handle', product_id)}"
        images = [img.get("src", "") for img in product.get("images") or [] if img.get("src")]
        options = product.get("options")

        variants = [
            self._normalize_variant(variant, product_id, product_url, images, options)
            for variant in product.get("variants") or []
        ]

        return ProductRecord(
            parent_product_id=str(product_id),
            name=title,
            description=clean_description(product.get("body_html")),
            retailer_domain=self._domain,
            brand=product.get("vendor") or "",
            return_policy_link=self._store.return_policy,
            variants=variants,
            source="shopify",
        )

    def _normalize_variant(
        self,
        variant: dict,
        product_id: object,
        product_url: str,
        images: list[str],
        options: list[dict] | None,
    ) -> VariantRecord:
        selling_price = _to_float(variant.get("price"))
        compare_at = _to_float(variant.get("compare_at_price"))
        original_price = compare_at or selling_price
        is_on_sale = compare_at > selling_price
        final_price = selling_price

        featured = variant.get("featured_image") or {}
        image_url = featured.get("src") or (images[0] if images else "")
        alternate_images = [src for src in images[1:] if src != image_url]

        color = extract_color(variant, options)
        link = f"{product_url}?variant={variant['id']}"

        return VariantRecord(
            variant_id=str(variant["id"]),
            price_currency=self._store.currency or "USD",
            original_price=original_price,
            selling_price=selling_price,
            sale_price=selling_price if is_on_sale else None,
            final_price=final_price,
            discount=calculate_discount(original_price, final_price),
            link_url=link,
            deeplink_url=link,
            image_url=image_url,
            alternate_image_urls=alternate_images,
            is_on_sale=is_on_sale,
            is_in_stock=bool(variant.get("available", False)),
            size=extract_size(variant, options),
            color=color,
            mpn=make_mpn(product_id, color),
        )
