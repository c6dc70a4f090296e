"""Failure classification and backoff shared by both retriers."""

from __future__ import annotations

from typing import Any

from catalog_crawler.errors import BlockedError, FatalError
from catalog_crawler.resilience.block_detector import BlockDetector, Classification
from catalog_crawler.resilience.outcome import Outcome


def backoff_delay_ms(base_delay_ms: int, attempt: int) -> int:
    """Delay to wait after failed *attempt* (1-based): ``base * attempt``."""
    return max(base_delay_ms, 0) * max(attempt, 1)


def status_of(exc: BaseException) -> int | None:
    """Return the HTTP status carried by *exc*, if any.

    Understands ``httpx.HTTPStatusError`` (via ``exc.response``) as well as
    any error exposing ``status_code`` or ``status`` directly.
    """
    for attr in ("status_code", "status"):
        value = getattr(exc, attr, None)
        if isinstance(value, int):
            return value
    response = getattr(exc, "response", None)
    if response is not None:
        for attr in ("status_code", "status"):
            value = getattr(response, attr, None)
            if isinstance(value, int):
                return value
    return None


def body_of(exc: BaseException) -> str | None:
    """Return the response body attached to *exc*, if it can be read."""
    response = getattr(exc, "response", None)
    if response is None:
        return None
    try:
        text: Any = getattr(response, "text", None)
    except Exception:  # noqa: BLE001
        return None
    return text if isinstance(text, str) else None


def classify_exception(exc: BaseException, detector: BlockDetector) -> Outcome:
    """Map an error raised by a unit of work to an Outcome.

    - ``FatalError`` is never retried.
    - ``BlockedError``, a carried 403, or a block indicator in the error's
      response body is a block.
    - Everything else (timeouts, connection resets, launch failures, other
      statuses) is transient.
    """
    if isinstance(exc, FatalError):
        return Outcome.fatal(exc)

    if isinstance(exc, BlockedError):
        return Outcome.blocked(exc.message, cause=exc)

    status = status_of(exc)
    body = body_of(exc)
    if detector.classify(status, body) is Classification.BLOCKED:
        indicator = detector.find_indicator(body)
        reason = f"HTTP {status}" if indicator is None else f"HTTP {status}, indicator '{indicator}'"
        return Outcome.blocked(reason, cause=exc)

    return Outcome.transient(exc)
