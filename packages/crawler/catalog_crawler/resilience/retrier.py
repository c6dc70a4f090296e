"""Attempt loop shared by the HTTP and browser retriers.

The loop runs attempts strictly in order 1..max_attempts. Each attempt gets
a fresh AttemptContext with a newly selected proxy; a failed attempt's
resources are released before the backoff sleep and the next attempt.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable

from catalog_crawler.errors import FatalError, RetryExhaustedError
from catalog_crawler.proxy.pool import ProxyPool
from catalog_crawler.resilience.block_detector import BlockDetector
from catalog_crawler.resilience.outcome import AttemptContext, OutcomeKind
from catalog_crawler.resilience.policy import backoff_delay_ms, classify_exception

logger = logging.getLogger(__name__)

SleepFn = Callable[[float], Awaitable[Any]]


class BaseRetrier:
    """Bounded retry with per-attempt proxy re-selection and linear backoff.

    Subclasses implement ``_attempt`` to acquire whatever scoped resource the
    unit of work needs (an HTTP client, a browser session), run it, and
    release the resource before returning or raising.
    """

    kind: str = "request"

    def __init__(
        self,
        proxy_pool: ProxyPool,
        *,
        detector: BlockDetector | None = None,
        sleep: SleepFn = asyncio.sleep,
    ) -> None:
        self._proxy_pool = proxy_pool
        self._detector = detector or BlockDetector()
        self._sleep = sleep

    @property
    def detector(self) -> BlockDetector:
        return self._detector

    async def _attempt(self, ctx: AttemptContext, unit_of_work: Callable[[Any], Awaitable[Any]]) -> Any:
        raise NotImplementedError

    async def _run(
        self,
        unit_of_work: Callable[[Any], Awaitable[Any]],
        max_attempts: int,
        base_delay_ms: int,
        region: str,
        *,
        stop_on_block: bool = False,
        target: str | None = None,
    ) -> Any:
        if max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")

        resolved_region = self._proxy_pool.resolve_region(region)
        delay_ms = 0

        for attempt in range(1, max_attempts + 1):
            ctx = AttemptContext(
                attempt_number=attempt,
                max_attempts=max_attempts,
                region=resolved_region,
                proxy=self._proxy_pool.get_endpoint(resolved_region, attempt),
                delay_ms=delay_ms,
            )
            log_extra = {
                "attempt": attempt,
                "region": resolved_region,
                "proxy_used": ctx.proxy.masked_url,
                "target_url": target,
            }
            logger.debug(
                "%s attempt %d/%d via %s", self.kind, attempt, max_attempts, ctx.proxy.masked_url,
                extra=log_extra,
            )

            try:
                result = await self._attempt(ctx, unit_of_work)
            except Exception as exc:
                outcome = classify_exception(exc, self._detector)
            else:
                logger.debug(
                    "%s attempt %d succeeded in %.0fms", self.kind, attempt, ctx.elapsed_ms(),
                    extra={**log_extra, "outcome": OutcomeKind.SUCCESS.value},
                )
                return result

            if outcome.kind is OutcomeKind.FATAL:
                logger.error(
                    "%s attempt %d failed fatally: %s", self.kind, attempt, outcome.reason,
                    extra={**log_extra, "outcome": outcome.kind.value},
                )
                raise outcome.cause or FatalError(outcome.reason)

            if outcome.is_blocked and stop_on_block:
                logger.error(
                    "%s blocked on attempt %d, not retrying: %s", self.kind, attempt, outcome.reason,
                    extra={**log_extra, "outcome": outcome.kind.value, "error_reason": outcome.reason},
                )
                raise RetryExhaustedError(
                    f"Blocked after {attempt} attempt(s): {outcome.reason}",
                    attempts=attempt,
                    last_outcome=outcome,
                ) from outcome.cause

            if ctx.is_last:
                break

            delay_ms = backoff_delay_ms(base_delay_ms, attempt)
            logger.warning(
                "%s attempt %d/%d %s (%s), retrying in %dms",
                self.kind,
                attempt,
                max_attempts,
                outcome.kind.value,
                outcome.reason,
                delay_ms,
                extra={
                    **log_extra,
                    "outcome": outcome.kind.value,
                    "error_reason": outcome.reason,
                    "delay_ms": delay_ms,
                },
            )
            await self._sleep(delay_ms / 1000.0)

        # max_attempts >= 1, so the loop always binds outcome before exiting
        logger.error(
            "%s failed after %d attempt(s): %s", self.kind, max_attempts, outcome.reason,
            extra={
                "region": resolved_region,
                "target_url": target,
                "outcome": outcome.kind.value,
                "error_reason": outcome.reason,
                "retry_attempts": max_attempts,
            },
        )
        raise RetryExhaustedError(
            f"Gave up after {max_attempts} attempt(s): {outcome.reason}",
            attempts=max_attempts,
            last_outcome=outcome,
        ) from outcome.cause
