"""Proxy data models."""

from __future__ import annotations

from dataclasses import dataclass
from urllib.parse import quote


@dataclass(frozen=True)
class ProxyEndpoint:
    """A single upstream proxy endpoint for one region."""

    region: str
    host: str
    port: int
    username: str
    password: str
    scheme: str = "http"  # http, https, socks5

    @property
    def server(self) -> str:
        """Proxy address without credentials, e.g. ``http://us.decodo.com:10000``."""
        return f"{self.scheme}://{self.host}:{self.port}"

    @property
    def url(self) -> str:
        """Proxy address with percent-encoded credentials, as httpx expects it."""
        username = quote(self.username, safe="")
        password = quote(self.password, safe="")
        return f"{self.scheme}://{username}:{password}@{self.host}:{self.port}"

    @property
    def masked_url(self) -> str:
        return f"{self.scheme}://***@{self.host}:{self.port}"

    def as_playwright_proxy(self) -> dict[str, str]:
        """Return the ``proxy`` option for ``chromium.launch``."""
        return {
            "server": self.server,
            "username": self.username,
            "password": self.password,
        }

    def __repr__(self) -> str:
        return f"ProxyEndpoint(region={self.region!r}, url={self.masked_url!r})"
