"""Unit tests for failure classification, outcomes and attempt contexts."""

import httpx
import pytest

from catalog_crawler.errors import (
    BlockedError,
    ConfigurationError,
    FatalError,
    RetryExhaustedError,
    TransientError,
)
from catalog_crawler.resilience.block_detector import BlockDetector
from catalog_crawler.resilience.outcome import AttemptContext, Outcome, OutcomeKind
from catalog_crawler.resilience.policy import backoff_delay_ms, body_of, classify_exception, status_of

from conftest import StatusError, make_endpoint


def _http_error(status: int, text: str = "") -> httpx.HTTPStatusError:
    request = httpx.Request("GET", "https://shop.test/products.json")
    response = httpx.Response(status, text=text, request=request)
    return httpx.HTTPStatusError(f"HTTP {status}", request=request, response=response)


class TestBackoff:
    @pytest.mark.parametrize("attempt,expected", [(1, 2000), (2, 4000), (3, 6000), (4, 8000)])
    def test_linear(self, attempt, expected):
        assert backoff_delay_ms(2000, attempt) == expected

    def test_negative_base_clamped(self):
        assert backoff_delay_ms(-5, 3) == 0


class TestStatusAndBody:
    def test_status_from_attribute(self):
        assert status_of(StatusError(429)) == 429

    def test_status_from_httpx_error(self):
        assert status_of(_http_error(503)) == 503

    def test_no_status(self):
        assert status_of(TimeoutError()) is None

    def test_body_from_httpx_error(self):
        assert body_of(_http_error(500, "captcha")) == "captcha"
        assert body_of(ValueError()) is None


class TestClassifyException:
    detector = BlockDetector()

    def test_fatal(self):
        outcome = classify_exception(ConfigurationError("no hosts"), self.detector)
        assert outcome.kind is OutcomeKind.FATAL
        assert not outcome.is_retryable

    def test_blocked_error(self):
        outcome = classify_exception(BlockedError("captcha page"), self.detector)
        assert outcome.kind is OutcomeKind.BLOCKED
        assert outcome.reason == "captcha page"

    def test_403_status(self):
        outcome = classify_exception(StatusError(403), self.detector)
        assert outcome.is_blocked
        assert outcome.reason == "HTTP 403"

    def test_indicator_in_error_body(self):
        outcome = classify_exception(_http_error(429, "DataDome device check"), self.detector)
        assert outcome.is_blocked
        assert "datadome" in outcome.reason

    @pytest.mark.parametrize(
        "exc",
        [TimeoutError(), ConnectionResetError("reset"), TransientError(), StatusError(500), RuntimeError("x")],
    )
    def test_everything_else_is_transient(self, exc):
        outcome = classify_exception(exc, self.detector)
        assert outcome.kind is OutcomeKind.TRANSIENT
        assert outcome.cause is exc
        assert outcome.is_retryable

    def test_transient_reason_names_the_error(self):
        assert classify_exception(TimeoutError(), self.detector).reason == "TimeoutError"
        assert classify_exception(RuntimeError("boom"), self.detector).reason == "RuntimeError: boom"


class TestOutcomeAndContext:
    def test_success(self):
        outcome = Outcome.success([1, 2])
        assert outcome.is_success
        assert outcome.payload == [1, 2]

    def test_context_is_last(self):
        ctx = AttemptContext(attempt_number=3, max_attempts=3, region="US", proxy=make_endpoint())
        assert ctx.is_last
        assert ctx.delay_ms == 0
        assert ctx.elapsed_ms() >= 0

    def test_exhausted_error_properties(self):
        cause = StatusError(403)
        err = RetryExhaustedError("gave up", attempts=5, last_outcome=Outcome.blocked("HTTP 403", cause))
        assert err.cause is cause
        assert err.blocked
        assert err.details == {"attempts": 5}
        assert isinstance(err, Exception)
        assert not isinstance(err, FatalError)
