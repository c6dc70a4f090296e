"""Region-keyed proxy pool.

Endpoints are grouped by region code ("US", "IN", ...). Lookups for an
unknown region fall back to the default region rather than failing.
Selection is a pure function of ``(region, attempt)``, so a single-endpoint
region always returns the same endpoint and a multi-endpoint region cycles
through its entries by attempt number without keeping rotation state.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from catalog_crawler.errors import NoProxyConfiguredError
from catalog_crawler.proxy.types import ProxyEndpoint

if TYPE_CHECKING:
    from catalog_crawler.config.settings import CrawlerSettings

logger = logging.getLogger(__name__)


def _split_host(entry: str, default_port: int) -> tuple[str, int]:
    host, sep, port = entry.strip().rpartition(":")
    if sep and port.isdigit():
        return host, int(port)
    return entry.strip(), default_port


class ProxyPool:
    """Read-only mapping of region codes to proxy endpoints."""

    def __init__(
        self,
        endpoints: dict[str, list[ProxyEndpoint]],
        default_region: str = "US",
    ) -> None:
        self._endpoints: dict[str, tuple[ProxyEndpoint, ...]] = {
            region.strip().upper(): tuple(pool)
            for region, pool in endpoints.items()
            if pool
        }
        if not self._endpoints:
            raise NoProxyConfiguredError()

        default_region = default_region.strip().upper()
        if default_region not in self._endpoints:
            # Keep lookups total even when the configured default is absent
            default_region = next(iter(self._endpoints))
            logger.warning("Default proxy region not configured, using %s", default_region)
        self._default_region = default_region

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    @classmethod
    def from_settings(cls, settings: "CrawlerSettings") -> "ProxyPool":
        """Build the pool from ``CRAWLER_PROXY_*`` settings."""
        endpoints: dict[str, list[ProxyEndpoint]] = {}
        for region, hosts in settings.proxy_hosts.items():
            for entry in hosts:
                if not entry.strip():
                    continue
                host, port = _split_host(entry, settings.proxy_port)
                endpoints.setdefault(region, []).append(
                    ProxyEndpoint(
                        region=region,
                        host=host,
                        port=port,
                        username=settings.proxy_username,
                        password=settings.proxy_password,
                        scheme=settings.proxy_scheme,
                    )
                )

        pool = cls(endpoints, default_region=settings.default_region)
        logger.info(
            "Proxy pool initialized with %d endpoints across regions %s",
            sum(len(p) for p in pool._endpoints.values()),
            ", ".join(pool.regions),
        )
        return pool

    # ------------------------------------------------------------------
    # Selection
    # ------------------------------------------------------------------

    @property
    def default_region(self) -> str:
        return self._default_region

    @property
    def regions(self) -> list[str]:
        return sorted(self._endpoints)

    def resolve_region(self, region: str | None) -> str:
        """Return the configured region that serves *region*."""
        key = (region or "").strip().upper()
        return key if key in self._endpoints else self._default_region

    def get_endpoint(self, region: str | None, attempt: int = 1) -> ProxyEndpoint:
        """Return the endpoint to use for *region* on the given *attempt*.

        Never raises: unknown or empty region codes map to the default region.
        """
        pool = self._endpoints[self.resolve_region(region)]
        return pool[(max(attempt, 1) - 1) % len(pool)]

    # ------------------------------------------------------------------
    # Stats
    # ------------------------------------------------------------------

    def get_stats(self) -> dict:
        """Return pool contents with credentials masked."""
        return {
            "default_region": self._default_region,
            "total": sum(len(p) for p in self._endpoints.values()),
            "regions": {
                region: [endpoint.masked_url for endpoint in pool]
                for region, pool in sorted(self._endpoints.items())
            },
        }
