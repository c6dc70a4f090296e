"""Pydantic Settings for the crawler.

All environment variables use the CRAWLER_ prefix.
Example: CRAWLER_PROXY_USERNAME=user, CRAWLER_PROXY_HOSTS='{"US": "us.decodo.com"}'

Proxy credentials have no defaults. ``load_settings`` turns a missing or
malformed value into a ConfigurationError so the process fails at startup
instead of crawling without a proxy.
"""

from __future__ import annotations

from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings

from catalog_crawler.errors import ConfigurationError


class CrawlerSettings(BaseSettings):
    """Crawler configuration validated from environment variables."""

    log_level: str = "INFO"

    # Proxy
    proxy_username: str = Field(min_length=1)
    proxy_password: str = Field(min_length=1)
    proxy_port: int = Field(default=10000, ge=1, le=65535)
    proxy_scheme: str = "http"
    # Region code -> host or list of "host[:port]" entries
    proxy_hosts: dict[str, list[str]] = {
        "US": ["us.decodo.com"],
        "IN": ["in.decodo.com"],
    }
    default_region: str = "US"

    # HTTP requests
    request_timeout_ms: int = Field(default=60000, ge=1000)
    max_attempts: int = Field(default=5, ge=1)
    base_delay_ms: int = Field(default=2000, ge=0)

    # Browser sessions
    headless: bool = True
    navigation_timeout_ms: int = Field(default=60000, ge=1000)
    browser_max_attempts: int = Field(default=3, ge=1)

    # Output and per-domain policies
    output_dir: str = "output"
    domain_policies_path: str = "domain_policies.yaml"

    model_config = {"env_prefix": "CRAWLER_"}

    @field_validator("proxy_hosts", mode="before")
    @classmethod
    def _hosts_as_lists(cls, value: object) -> object:
        if isinstance(value, dict):
            return {
                str(region).strip().upper(): [hosts] if isinstance(hosts, str) else hosts
                for region, hosts in value.items()
            }
        return value

    @field_validator("default_region")
    @classmethod
    def _upper_region(cls, value: str) -> str:
        return value.strip().upper()


def load_settings(**overrides: object) -> CrawlerSettings:
    """Build settings from the environment, raising ConfigurationError on failure."""
    try:
        return CrawlerSettings(**overrides)  # type: ignore[arg-type]
    except ValidationError as exc:
        fields = sorted({".".join(str(part) for part in err["loc"]) for err in exc.errors()})
        raise ConfigurationError(
            f"Invalid crawler configuration: {', '.join(fields)}",
            fields=fields,
        ) from exc
