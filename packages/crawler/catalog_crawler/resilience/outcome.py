"""Attempt bookkeeping for the retriers."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from catalog_crawler.proxy.types import ProxyEndpoint


class OutcomeKind(str, Enum):
    """How a single attempt ended."""

    SUCCESS = "success"
    BLOCKED = "blocked"
    TRANSIENT = "transient"
    FATAL = "fatal"


@dataclass(frozen=True)
class Outcome:
    """Tagged result of one attempt: a payload on success, a cause otherwise."""

    kind: OutcomeKind
    payload: Any = None
    reason: str | None = None
    cause: BaseException | None = None

    @classmethod
    def success(cls, payload: Any) -> "Outcome":
        return cls(OutcomeKind.SUCCESS, payload=payload)

    @classmethod
    def blocked(cls, reason: str, cause: BaseException | None = None) -> "Outcome":
        return cls(OutcomeKind.BLOCKED, reason=reason, cause=cause)

    @classmethod
    def transient(cls, cause: BaseException) -> "Outcome":
        return cls(OutcomeKind.TRANSIENT, reason=_describe(cause), cause=cause)

    @classmethod
    def fatal(cls, cause: BaseException) -> "Outcome":
        return cls(OutcomeKind.FATAL, reason=_describe(cause), cause=cause)

    @property
    def is_success(self) -> bool:
        return self.kind is OutcomeKind.SUCCESS

    @property
    def is_blocked(self) -> bool:
        return self.kind is OutcomeKind.BLOCKED

    @property
    def is_retryable(self) -> bool:
        return self.kind in (OutcomeKind.BLOCKED, OutcomeKind.TRANSIENT)


@dataclass(frozen=True)
class AttemptContext:
    """Per-attempt state; created fresh for every attempt and never reused."""

    attempt_number: int
    max_attempts: int
    region: str
    proxy: ProxyEndpoint
    # Backoff waited before this attempt started
    delay_ms: int = 0
    started_at: float = field(default_factory=time.monotonic)

    @property
    def is_last(self) -> bool:
        return self.attempt_number >= self.max_attempts

    def elapsed_ms(self) -> float:
        return (time.monotonic() - self.started_at) * 1000


def _describe(exc: BaseException) -> str:
    text = str(exc)
    return f"{type(exc).__name__}: {text}" if text else type(exc).__name__
