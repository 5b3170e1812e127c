from __future__ import annotations

import httpx
import pytest

from limitless_gateway.services import RetryPolicy

REQUEST = httpx.Request("GET", "https://api.test/v1/lifelogs")


def status_error(status: int) -> httpx.HTTPStatusError:
    response = httpx.Response(status, request=REQUEST)
    return httpx.HTTPStatusError(f"HTTP error: {status}", request=REQUEST, response=response)


def test_exponential_backoff():
    policy = RetryPolicy(max_retries=3, base_delay=1.0)
    assert [policy.delay(n) for n in (1, 2, 3)] == [1.0, 2.0, 4.0]
    assert RetryPolicy(base_delay=0.5).delay(3) == 2.0
    assert policy.delay(0) == 0.0


def test_attempt_budget():
    assert RetryPolicy(max_retries=3).max_attempts == 4
    assert RetryPolicy(max_retries=0).max_attempts == 1


@pytest.mark.parametrize(
    "error,retryable",
    [
        (status_error(500), True),
        (status_error(503), True),
        (status_error(404), False),
        (status_error(401), False),
        (status_error(429), False),
        (httpx.ConnectError("refused", request=REQUEST), True),
        (httpx.ReadTimeout("timed out", request=REQUEST), True),
    ],
)
def test_retryable_classification(error, retryable):
    assert RetryPolicy().is_retryable(error) is retryable


def test_should_retry_stops_at_budget():
    policy = RetryPolicy(max_retries=2)
    error = status_error(503)
    assert policy.should_retry(error, 0)
    assert policy.should_retry(error, 1)
    assert not policy.should_retry(error, 2)
    assert not policy.should_retry(status_error(404), 0)


@pytest.mark.parametrize("kwargs", [{"max_retries": -1}, {"base_delay": -0.1}])
def test_invalid_policy(kwargs):
    with pytest.raises(ValueError):
        RetryPolicy(**kwargs)
