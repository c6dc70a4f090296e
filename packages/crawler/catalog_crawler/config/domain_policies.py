"""Domain policy models and YAML loader.

A policy tunes how hard and how politely the crawler works a single retailer
domain: the retry budget and backoff base handed to the retriers, the
randomized pause between sequential operations, whether the catalog is
fetched through a browser session, and whether a block stops the store.
"""

from __future__ import annotations

import logging
from pathlib import Path

import yaml
from pydantic import BaseModel, Field, model_validator

logger = logging.getLogger(__name__)


class DomainPolicy(BaseModel):
    """Retry and politeness policy for a single domain."""

    max_attempts: int = Field(default=5, ge=1)
    base_delay_ms: int = Field(default=2000, ge=0)
    min_delay_ms: int = Field(default=500, ge=0)
    max_delay_ms: int = Field(default=2000, ge=0)
    use_browser: bool = False
    stop_on_block: bool = False
    region: str | None = None

    @model_validator(mode="after")
    def _ordered_delays(self) -> "DomainPolicy":
        if self.max_delay_ms < self.min_delay_ms:
            raise ValueError("max_delay_ms must be >= min_delay_ms")
        return self


_DEFAULT_POLICY = DomainPolicy()


def load_domain_policies(yaml_path: str) -> dict[str, DomainPolicy]:
    """Parse a domain policies YAML file into typed DomainPolicy objects.

    Returns a dict mapping domain names (and ``"default"``) to policies. A
    missing or unreadable file yields only the built-in default policy.
    """
    path = Path(yaml_path)

    if not path.exists():
        logger.warning("Domain policies file not found at %s, using built-in defaults", yaml_path)
        return {"default": _DEFAULT_POLICY}

    try:
        raw = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as exc:
        logger.error("Failed to parse domain policies YAML at %s: %s", yaml_path, exc)
        return {"default": _DEFAULT_POLICY}

    if not isinstance(raw, dict) or not isinstance(raw.get("domains"), dict):
        logger.warning("Domain policies YAML missing 'domains' mapping, using built-in defaults")
        return {"default": _DEFAULT_POLICY}

    policies: dict[str, DomainPolicy] = {}
    for domain, config in raw["domains"].items():
        try:
            policies[str(domain).lower()] = DomainPolicy.model_validate(config or {})
        except Exception as exc:
            logger.error("Invalid policy for domain '%s': %s, skipping", domain, exc)

    policies.setdefault("default", _DEFAULT_POLICY)
    return policies


def policy_for(policies: dict[str, DomainPolicy], domain: str) -> DomainPolicy:
    """Return the policy for *domain*, ignoring a leading ``www.``."""
    key = domain.lower()
    if key.startswith("www."):
        key = key[4:]
    return policies.get(key) or policies.get("default") or _DEFAULT_POLICY
