"""Tests for the bounded linear-backoff retry wrapper."""

import logging

import httpx
import pytest

from modules.lead_sync.config import RetryPolicy
from modules.lead_sync.exceptions import RemoteAPIError
from modules.lead_sync.retry import with_retry


class FlakyOperation:
    """Fails a fixed number of times, then returns 'ok'."""

    def __init__(self, failures, error=None):
        self.failures = failures
        self.error = error or RemoteAPIError("boom", 'structurely', 503, 'down')
        self.calls = 0

    async def __call__(self):
        self.calls += 1
        if self.failures < 0 or self.calls <= self.failures:
            raise self.error
        return 'ok'


@pytest.mark.asyncio
async def test_first_attempt_success_does_not_sleep(fake_sleep, sleeps):
    op = FlakyOperation(0)

    result = await with_retry(op, RetryPolicy(), label="push", sleep=fake_sleep)

    assert result == 'ok'
    assert op.calls == 1
    assert sleeps == []


@pytest.mark.asyncio
async def test_recovers_after_transient_failures(fake_sleep, sleeps, caplog):
    caplog.set_level(logging.DEBUG)
    op = FlakyOperation(2)

    result = await with_retry(op, RetryPolicy(max_retries=3, base_delay=2), label="push", sleep=fake_sleep)

    assert result == 'ok'
    assert op.calls == 3
    assert sleeps == [2, 4]
    warnings = [r for r in caplog.records if r.levelno == logging.WARNING]
    assert len(warnings) == 2
    assert not [r for r in caplog.records if r.levelno == logging.ERROR]


@pytest.mark.asyncio
async def test_exhaustion_reraises_original_error_after_three_pauses(fake_sleep, sleeps, caplog):
    caplog.set_level(logging.DEBUG)
    op = FlakyOperation(-1)

    with pytest.raises(RemoteAPIError) as excinfo:
        await with_retry(op, RetryPolicy(max_retries=3, base_delay=2), label="push", sleep=fake_sleep)

    assert excinfo.value is op.error
    assert op.calls == 4
    assert sleeps == [2, 4, 6]
    errors = [r for r in caplog.records if r.levelno == logging.ERROR]
    assert len(errors) == 1
    assert "after 4 attempts" in errors[0].getMessage()


@pytest.mark.asyncio
async def test_client_errors_are_not_retried(fake_sleep, sleeps):
    op = FlakyOperation(-1, RemoteAPIError("bad request", 'ghl', 400, '{"msg": "invalid"}'))

    with pytest.raises(RemoteAPIError):
        await with_retry(op, RetryPolicy(), label="update", sleep=fake_sleep)

    assert op.calls == 1
    assert sleeps == []


@pytest.mark.asyncio
async def test_network_errors_are_retried(fake_sleep, sleeps):
    op = FlakyOperation(1, httpx.ConnectError("connection refused"))

    assert await with_retry(op, RetryPolicy(base_delay=1.5), label="list", sleep=fake_sleep) == 'ok'
    assert sleeps == [1.5]


@pytest.mark.asyncio
async def test_zero_retries_means_single_attempt(fake_sleep, sleeps):
    op = FlakyOperation(-1)

    with pytest.raises(RemoteAPIError):
        await with_retry(op, RetryPolicy(max_retries=0), label="fetch", sleep=fake_sleep)

    assert op.calls == 1
    assert sleeps == []
