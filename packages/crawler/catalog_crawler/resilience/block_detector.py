"""Anti-bot block detection.

Classifies a finished request or page load as ``ok``, ``blocked`` or
``unknown``. The same indicator set is applied to plain HTTP bodies and to
rendered browser page content, so a new indicator is added in one place.

- ``blocked``: status 403, or the body contains a block indicator
  (case-insensitive), whatever the status.
- ``ok``: 2xx status and no indicator.
- ``unknown``: anything else, e.g. no status yet or a non-403 error code.
  Callers treat it as retryable but not as a block.
"""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING, Iterable

from catalog_crawler.errors import BlockedError

if TYPE_CHECKING:
    import httpx


DEFAULT_BLOCK_INDICATORS: tuple[str, ...] = (
    "captcha",
    "challenge",
    "access denied",
    "blocked",
    "datadome",
    "unable to serve",
)

FORBIDDEN_STATUS = 403


class Classification(str, Enum):
    """Result of inspecting a response for blocking."""

    OK = "ok"
    BLOCKED = "blocked"
    UNKNOWN = "unknown"


class BlockDetector:
    """Decides whether a response was rejected by anti-bot defenses."""

    def __init__(self, indicators: Iterable[str] = DEFAULT_BLOCK_INDICATORS) -> None:
        self._indicators = tuple(i.lower() for i in indicators if i)

    @property
    def indicators(self) -> tuple[str, ...]:
        return self._indicators

    def find_indicator(self, body_text: str | None) -> str | None:
        """Return the first indicator present in *body_text*, if any."""
        if not body_text:
            return None
        lowered = body_text.lower()
        for indicator in self._indicators:
            if indicator in lowered:
                return indicator
        return None

    def classify(self, http_status: int | None, body_text: str | None) -> Classification:
        if http_status == FORBIDDEN_STATUS:
            return Classification.BLOCKED
        if self.find_indicator(body_text) is not None:
            return Classification.BLOCKED
        if http_status is not None and 200 <= http_status < 300:
            return Classification.OK
        return Classification.UNKNOWN

    def classify_response(self, response: "httpx.Response") -> Classification:
        """Classify an httpx response using its status and decoded body."""
        return self.classify(response.status_code, response_text(response))

    def ensure_not_blocked(
        self,
        http_status: int | None,
        body_text: str | None,
        url: str | None = None,
    ) -> Classification:
        """Raise BlockedError when the content is classified as blocked.

        Units of work call this after loading a page so the retrier sees a
        block as a failure instead of a successful result.
        """
        classification = self.classify(http_status, body_text)
        if classification is Classification.BLOCKED:
            indicator = self.find_indicator(body_text)
            reason = f"HTTP {http_status}" if http_status == FORBIDDEN_STATUS else f"indicator '{indicator}'"
            raise BlockedError(
                f"Blocked ({reason})" + (f" at {url}" if url else ""),
                status=http_status,
                indicator=indicator,
                url=url,
            )
        return classification


def response_text(response: "httpx.Response") -> str | None:
    """Return the decoded body, or None for a streamed response never read."""
    try:
        return response.text
    except Exception:  # noqa: BLE001
        return None
