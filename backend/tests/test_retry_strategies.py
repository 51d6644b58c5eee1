"""Tests for step retry strategies."""

import pytest

from actions.base import ActionResult
from workflow.retry_strategies import (
    RETRY_PRESETS,
    RetryPolicy,
    RetryStrategy,
    run_with_retry,
)


async def _no_sleep(delay):
    return None


# ─── RetryStrategy creation ───

@pytest.mark.unit
class TestRetryStrategyCreation:
    def test_none_strategy(self):
        s = RetryStrategy.none()
        assert s.policy == RetryPolicy.NONE
        assert s.max_retries == 0

    def test_fixed_strategy(self):
        s = RetryStrategy.fixed(max_retries=3, delay=5.0)
        assert s.policy == RetryPolicy.FIXED
        assert s.base_delay == 5.0
        assert s.jitter is False

    def test_exponential_strategy(self):
        s = RetryStrategy.exponential(max_retries=5, base_delay=1.0, max_delay=60.0)
        assert s.policy == RetryPolicy.EXPONENTIAL
        assert s.max_retries == 5
        assert s.jitter is True

    def test_from_dict(self):
        config = {
            'policy': 'linear',
            'max_retries': 7,
            'base_delay': 0.5,
            'retryable_errors': ['HTTP 500'],
        }
        s = RetryStrategy.from_dict(config)
        assert s.policy == RetryPolicy.LINEAR
        assert s.max_retries == 7
        assert s.base_delay == 0.5
        assert s.retryable_errors == ['HTTP 500']


# ─── Step retry settings ───

@pytest.mark.unit
class TestFromStep:
    def test_preset_name(self):
        assert RetryStrategy.from_step('standard') is RETRY_PRESETS['standard']

    def test_missing_uses_default(self):
        assert RetryStrategy.from_step(None, default='quick') is RETRY_PRESETS['quick']
        assert RetryStrategy.from_step(None).policy == RetryPolicy.NONE

    def test_unknown_preset_means_no_retry(self):
        s = RetryStrategy.from_step('relentless')
        assert s.policy == RetryPolicy.NONE
        assert s.max_retries == 0

    def test_policy_dict(self):
        s = RetryStrategy.from_step({'policy': 'fixed', 'max_retries': 1, 'base_delay': 2})
        assert s.policy == RetryPolicy.FIXED
        assert s.max_retries == 1


# ─── Delay computation ───

@pytest.mark.unit
class TestDelayComputation:
    def test_none_delay(self):
        assert RetryStrategy.none().compute_delay(1) == 0.0

    def test_fixed_delay(self):
        s = RetryStrategy.fixed(delay=5.0)
        assert s.compute_delay(1) == 5.0
        assert s.compute_delay(3) == 5.0

    def test_exponential_delay_no_jitter(self):
        s = RetryStrategy.exponential(base_delay=1.0, jitter=False)
        assert [s.compute_delay(n) for n in (1, 2, 3, 4)] == [1.0, 2.0, 4.0, 8.0]

    def test_linear_delay(self):
        s = RetryStrategy.linear(base_delay=2.0)
        assert [s.compute_delay(n) for n in (1, 2, 3)] == [2.0, 4.0, 6.0]

    def test_max_delay_cap(self):
        s = RetryStrategy.exponential(base_delay=10.0, max_delay=30.0, jitter=False)
        assert s.compute_delay(5) == 30.0  # 10 * 16 = 160, capped at 30

    def test_exponential_with_jitter_in_range(self):
        s = RetryStrategy.exponential(base_delay=10.0, jitter=True, max_delay=100.0)
        for _ in range(50):
            # base=10, jitter_range=0.5 → between 5 and 15
            assert 5.0 <= s.compute_delay(1) <= 15.0


# ─── Should retry ───

@pytest.mark.unit
class TestShouldRetry:
    def test_none_never_retries(self):
        assert RetryStrategy.none().should_retry(1, "timeout") is False

    def test_exceeds_max_retries(self):
        s = RetryStrategy.fixed(max_retries=3)
        assert s.should_retry(3, "connection refused") is True
        assert s.should_retry(4, "connection refused") is False

    def test_missing_error_not_retried(self):
        assert RetryStrategy.fixed(max_retries=5).should_retry(1, None) is False

    @pytest.mark.parametrize("message", [
        "Email service connection error: [Errno 111] Connection refused",
        "Read timed out",
        "Email service returned HTTP 503",
        "HTTP 429 Too Many Requests",
        "Temporary failure in name resolution",
    ])
    def test_transient_messages_retried(self, message):
        assert RetryStrategy.exponential().should_retry(1, message) is True

    @pytest.mark.parametrize("message", [
        "No email address found for recipient: buyer",
        "Unknown action: fax",
        "Missing required param: sku",
    ])
    def test_permanent_messages_not_retried(self, message):
        assert RetryStrategy.exponential().should_retry(1, message) is False

    def test_specific_retryable_errors(self):
        s = RetryStrategy.exponential()
        s.retryable_errors = ['HTTP 500']
        assert s.should_retry(1, "Email service returned HTTP 500") is True
        assert s.should_retry(1, "connection reset") is False


# ─── Presets ───

@pytest.mark.unit
class TestPresets:
    def test_all_presets_exist(self):
        assert set(RETRY_PRESETS.keys()) == {'none', 'quick', 'standard', 'aggressive', 'gentle'}

    def test_presets_are_valid(self):
        for name, strategy in RETRY_PRESETS.items():
            assert isinstance(strategy, RetryStrategy)
            assert strategy.max_retries >= 0


# ─── Run with retry ───

@pytest.mark.unit
class TestRunWithRetry:
    async def test_success_first_attempt(self):
        calls = []

        async def call():
            calls.append(1)
            return ActionResult.ok(value=42)

        result = await run_with_retry(call, RetryStrategy.fixed(max_retries=3), sleep=_no_sleep)
        assert result.output == {"value": 42}
        assert len(calls) == 1

    async def test_retries_until_success(self):
        calls = []

        async def call():
            calls.append(1)
            if len(calls) < 3:
                return ActionResult.fail("connection refused")
            return ActionResult.ok()

        result = await run_with_retry(call, RetryStrategy.fixed(max_retries=5), sleep=_no_sleep)
        assert result.success
        assert len(calls) == 3

    async def test_returns_last_failure_when_exhausted(self):
        calls = []

        async def call():
            calls.append(1)
            return ActionResult.fail(f"timeout #{len(calls)}")

        result = await run_with_retry(call, RetryStrategy.fixed(max_retries=2), sleep=_no_sleep)
        assert not result.success
        assert result.error == "timeout #3"

    async def test_sleeps_between_attempts(self):
        delays = []

        async def sleep(delay):
            delays.append(delay)

        async def call():
            return ActionResult.fail("HTTP 502") if len(delays) < 2 else ActionResult.ok()

        await run_with_retry(call, RetryStrategy.linear(max_retries=3, base_delay=2.0), sleep=sleep)
        assert delays == [2.0, 4.0]

    async def test_on_retry_callback(self):
        retries = []

        async def call():
            return ActionResult.fail("connection reset") if len(retries) < 2 else ActionResult.ok()

        async def on_retry(attempt, error, delay):
            retries.append((attempt, error))

        result = await run_with_retry(
            call,
            RetryStrategy.fixed(max_retries=5, delay=0.01),
            on_retry=on_retry,
            sleep=_no_sleep,
        )
        assert result.success
        assert retries == [(1, "connection reset"), (2, "connection reset")]

    async def test_permanent_failure_is_not_retried(self):
        calls = []

        async def call():
            calls.append(1)
            return ActionResult.fail("Unknown action: check_connection", retryable=False)

        result = await run_with_retry(call, RETRY_PRESETS['standard'], sleep=_no_sleep)
        assert result.error == "Unknown action: check_connection"
        assert len(calls) == 1
