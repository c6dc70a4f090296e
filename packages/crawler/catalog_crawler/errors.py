"""Error hierarchy for the crawler.

All crawler-specific errors extend CrawlerError. The retry layer sorts what a
unit of work raises into blocked, transient and fatal failures; once the
attempt budget is spent it raises RetryExhaustedError carrying the last cause
so the calling crawler can decide whether to skip an item or stop the store.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from catalog_crawler.resilience.outcome import Outcome


class CrawlerError(Exception):
    """Base error for all crawler-specific errors."""

    message: str = "Crawler error"

    def __init__(self, message: str | None = None, **kwargs: object) -> None:
        self.message = message or self.__class__.message
        self.details = kwargs
        super().__init__(self.message)


class BlockedError(CrawlerError):
    """The target site's anti-bot defenses rejected the request."""

    message = "Request blocked by target site"

    def __init__(
        self,
        message: str | None = None,
        *,
        status: int | None = None,
        indicator: str | None = None,
        **kwargs: object,
    ) -> None:
        self.status = status
        self.indicator = indicator
        super().__init__(message, status=status, indicator=indicator, **kwargs)


class TransientError(CrawlerError):
    """Timeout, connection reset, launch failure or other retryable error."""

    message = "Transient failure"


class FatalError(CrawlerError):
    """Non-retryable failure; surfaces immediately."""

    message = "Fatal error"


class ConfigurationError(FatalError):
    """Malformed or missing configuration detected at startup."""

    message = "Invalid crawler configuration"


class NoProxyConfiguredError(ConfigurationError):
    """No proxy endpoint is configured for any region."""

    message = "No proxy endpoints configured"


class RetryExhaustedError(CrawlerError):
    """Every attempt failed; wraps the last attempt's cause."""

    message = "Retry attempts exhausted"

    def __init__(
        self,
        message: str | None = None,
        *,
        attempts: int,
        last_outcome: "Outcome",
        **kwargs: object,
    ) -> None:
        self.attempts = attempts
        self.last_outcome = last_outcome
        super().__init__(message, attempts=attempts, **kwargs)

    @property
    def cause(self) -> BaseException | None:
        return self.last_outcome.cause

    @property
    def blocked(self) -> bool:
        """``True`` when the final attempt was rejected as a block."""
        return self.last_outcome.is_blocked
