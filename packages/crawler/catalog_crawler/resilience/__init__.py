"""Retry, proxy re-selection and block detection for every outbound call."""

from catalog_crawler.resilience.block_detector import (
    DEFAULT_BLOCK_INDICATORS,
    BlockDetector,
    Classification,
)
from catalog_crawler.resilience.browser_retrier import BrowserSessionRetrier
from catalog_crawler.resilience.outcome import AttemptContext, Outcome, OutcomeKind
from catalog_crawler.resilience.policy import backoff_delay_ms, classify_exception
from catalog_crawler.resilience.request_retrier import RequestRetrier

__all__ = [
    "DEFAULT_BLOCK_INDICATORS",
    "AttemptContext",
    "BlockDetector",
    "BrowserSessionRetrier",
    "Classification",
    "Outcome",
    "OutcomeKind",
    "RequestRetrier",
    "backoff_delay_ms",
    "classify_exception",
]
