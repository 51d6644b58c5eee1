"""Step retry strategies.

Provides configurable retry policies for action steps:
- Fixed delay
- Exponential backoff (with optional jitter)
- Linear backoff
- Custom retry conditions matched against the action's error message

Action handlers report failures as data, so a strategy classifies the
error *message* of a failed ActionResult rather than an exception type.

Usage:
    strategy = RetryStrategy.from_step(step_spec.retry, default="none")
    result = await run_with_retry(call, strategy, on_retry=bump_retry_count)
"""

import asyncio
import random
from dataclasses import dataclass, field
from enum import Enum
from typing import Awaitable, Callable, Optional

import structlog

logger = structlog.get_logger(__name__)


class RetryPolicy(str, Enum):
    """Available retry policies."""
    FIXED = "fixed"
    EXPONENTIAL = "exponential"
    LINEAR = "linear"
    NONE = "none"


TRANSIENT_INDICATORS = ("timeout", "timed out", "connection", "temporar", "503", "429", "502", "504")


@dataclass
class RetryStrategy:
    """Configurable retry strategy for a workflow step."""
    policy: RetryPolicy
    max_retries: int = 3
    base_delay: float = 1.0
    max_delay: float = 300.0
    jitter: bool = True
    jitter_range: float = 0.5
    retryable_errors: list[str] = field(default_factory=list)

    @classmethod
    def none(cls) -> 'RetryStrategy':
        """No retries — fail immediately."""
        return cls(policy=RetryPolicy.NONE, max_retries=0)

    @classmethod
    def fixed(cls, max_retries: int = 3, delay: float = 5.0) -> 'RetryStrategy':
        """Fixed delay between retries."""
        return cls(
            policy=RetryPolicy.FIXED,
            max_retries=max_retries,
            base_delay=delay,
            jitter=False,
        )

    @classmethod
    def exponential(
        cls,
        max_retries: int = 5,
        base_delay: float = 1.0,
        max_delay: float = 60.0,
        jitter: bool = True,
    ) -> 'RetryStrategy':
        """Exponential backoff with optional jitter."""
        return cls(
            policy=RetryPolicy.EXPONENTIAL,
            max_retries=max_retries,
            base_delay=base_delay,
            max_delay=max_delay,
            jitter=jitter,
        )

    @classmethod
    def linear(
        cls,
        max_retries: int = 5,
        base_delay: float = 2.0,
        max_delay: float = 30.0,
    ) -> 'RetryStrategy':
        """Linear backoff: delay = base_delay * attempt_number."""
        return cls(
            policy=RetryPolicy.LINEAR,
            max_retries=max_retries,
            base_delay=base_delay,
            max_delay=max_delay,
            jitter=False,
        )

    @classmethod
    def from_dict(cls, config: dict) -> 'RetryStrategy':
        """Create strategy from a step's ``retry`` dict."""
        return cls(
            policy=RetryPolicy(config.get('policy', 'exponential')),
            max_retries=int(config.get('max_retries', 3)),
            base_delay=float(config.get('base_delay', 1.0)),
            max_delay=float(config.get('max_delay', 300.0)),
            jitter=bool(config.get('jitter', True)),
            jitter_range=float(config.get('jitter_range', 0.5)),
            retryable_errors=list(config.get('retryable_errors', [])),
        )

    @classmethod
    def from_step(cls, retry_config, default: str = 'none') -> 'RetryStrategy':
        """Resolve a step's retry setting.

        Accepts a preset name, a policy dict, or None (use ``default`` preset).
        Unknown preset names fall back to no retries.
        """
        if isinstance(retry_config, dict):
            return cls.from_dict(retry_config)
        name = retry_config if isinstance(retry_config, str) else default
        preset = RETRY_PRESETS.get(name)
        if preset is None:
            logger.warning("Unknown retry preset", preset=name)
            return cls.none()
        return preset

    def compute_delay(self, attempt: int) -> float:
        """Compute the delay for a given attempt number (1-based)."""
        if self.policy == RetryPolicy.NONE:
            return 0.0

        if self.policy == RetryPolicy.FIXED:
            delay = self.base_delay
        elif self.policy == RetryPolicy.EXPONENTIAL:
            delay = self.base_delay * (2 ** (attempt - 1))
        elif self.policy == RetryPolicy.LINEAR:
            delay = self.base_delay * attempt
        else:
            delay = self.base_delay

        delay = min(delay, self.max_delay)

        if self.jitter and delay > 0:
            jitter_amount = delay * self.jitter_range
            delay = delay + random.uniform(-jitter_amount, jitter_amount)
            delay = max(0.0, delay)

        return round(delay, 3)

    def should_retry(self, attempt: int, error: Optional[str] = None) -> bool:
        """Decide whether a failed attempt may be retried.

        Args:
            attempt: Number of failed attempts so far (1-based)
            error: Error message reported by the action
        """
        if self.policy == RetryPolicy.NONE:
            return False

        if attempt > self.max_retries:
            return False

        if not error:
            return False

        message = error.lower()
        if self.retryable_errors:
            return any(fragment.lower() in message for fragment in self.retryable_errors)

        return any(ind in message for ind in TRANSIENT_INDICATORS)


# ─── Preset strategies ───

RETRY_PRESETS: dict[str, RetryStrategy] = {
    'none': RetryStrategy.none(),
    'quick': RetryStrategy.fixed(max_retries=2, delay=1.0),
    'standard': RetryStrategy.exponential(max_retries=3, base_delay=2.0, max_delay=30.0),
    'aggressive': RetryStrategy.exponential(max_retries=6, base_delay=0.5, max_delay=120.0),
    'gentle': RetryStrategy.linear(max_retries=3, base_delay=10.0, max_delay=60.0),
}


async def run_with_retry(
    call: Callable[[], Awaitable],
    strategy: RetryStrategy,
    on_retry: Optional[Callable[[int, str, float], Awaitable[None]]] = None,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
):
    """Invoke ``call`` until it succeeds or the strategy gives up.

    ``call`` must return an ActionResult. Results marked not retryable
    are returned at once. The last result is returned either way.

    Args:
        call: Zero-argument coroutine factory performing one attempt.
        strategy: RetryStrategy instance.
        on_retry: Awaited with (attempt, error, delay) before each retry.
        sleep: Delay function; tests pass a no-op.
    """
    attempt = 0
    while True:
        result = await call()
        if result.success:
            return result

        attempt += 1
        if not result.retryable or not strategy.should_retry(attempt, result.error):
            return result

        delay = strategy.compute_delay(attempt)
        logger.info("Retrying step", attempt=attempt, delay=delay, error=result.error)
        if on_retry is not None:
            await on_retry(attempt, result.error, delay)
        await sleep(delay)
