"""Proxy management package: region-keyed endpoints and attempt-indexed selection."""

from catalog_crawler.proxy.pool import ProxyPool
from catalog_crawler.proxy.types import ProxyEndpoint

__all__ = ["ProxyEndpoint", "ProxyPool"]
