"""Configuration module: settings and domain policies."""

from catalog_crawler.config.domain_policies import DomainPolicy, load_domain_policies, policy_for
from catalog_crawler.config.settings import CrawlerSettings, load_settings

__all__ = [
    "CrawlerSettings",
    "DomainPolicy",
    "load_domain_policies",
    "load_settings",
    "policy_for",
]
