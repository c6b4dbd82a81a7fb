"""Bounded retry with exponential or fixed backoff."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from logging import getLogger
from typing import TypeVar

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    RetryError,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
    wait_fixed,
)
from tenacity.wait import wait_base

from compwise.config.http_resilience import RetryPolicy

from .errors import (
    AttemptTimeoutError,
    DeadlineExceededError,
    RetryExhaustedError,
    TerminalFetchError,
)

log = getLogger(__name__)

T = TypeVar("T")

Sleep = Callable[[float], Awaitable[None]]


def is_retryable(error: BaseException) -> bool:
    """Ordinary failures are worth another attempt; terminal errors and cancellation are not."""

    return isinstance(error, Exception) and not isinstance(error, TerminalFetchError)


def wait_strategy(policy: RetryPolicy) -> wait_base:
    """Wait after the n-th failed attempt: ``base * 2**(n-1)`` capped, or a fixed ``base``."""

    if policy.exponential:
        return wait_exponential(
            multiplier=policy.base_delay_seconds, max=policy.max_delay_seconds
        )
    return wait_fixed(min(policy.base_delay_seconds, policy.max_delay_seconds))


async def _run_attempt(operation: Callable[[], Awaitable[T]], policy: RetryPolicy) -> T:
    timeout = policy.attempt_timeout_seconds
    if timeout is None:
        return await operation()
    try:
        async with asyncio.timeout(timeout):
            return await operation()
    except TimeoutError as exc:
        raise AttemptTimeoutError(f"Attempt exceeded {timeout:g}s timeout") from exc


def _before_sleep(
    name: str,
    policy: RetryPolicy,
    deadline: float | None,
) -> Callable[[RetryCallState], None]:
    loop = asyncio.get_running_loop()

    def hook(state: RetryCallState) -> None:
        delay = state.next_action.sleep if state.next_action is not None else 0.0
        error = state.outcome.exception() if state.outcome is not None else None
        if deadline is not None and loop.time() + delay > deadline:
            raise DeadlineExceededError(
                f"{name}: deadline reached after {state.attempt_number} attempt(s)"
            ) from error
        log.warning(
            "Attempt %d/%d of %s failed: %s; retrying in %.2fs",
            state.attempt_number,
            policy.max_attempts,
            name,
            error,
            delay,
        )

    return hook


async def with_retry(
    operation: Callable[[], Awaitable[T]],
    policy: RetryPolicy,
    *,
    name: str = "operation",
    deadline: float | None = None,
    sleep: Sleep = asyncio.sleep,
) -> T:
    """Run ``operation`` until it succeeds, fails terminally or runs out of attempts.

    Terminal errors propagate unchanged. Once ``policy.max_attempts`` attempts have
    failed, :class:`RetryExhaustedError` is raised carrying the last error. Task
    cancellation is never retried. ``deadline`` is an absolute event loop time;
    a retry that would start after it raises :class:`DeadlineExceededError`.
    """

    retryer = AsyncRetrying(
        stop=stop_after_attempt(policy.max_attempts),
        wait=wait_strategy(policy),
        retry=retry_if_exception(is_retryable),
        before_sleep=_before_sleep(name, policy, deadline),
        sleep=sleep,
    )
    try:
        return await retryer(_run_attempt, operation, policy)
    except RetryError as exc:
        last = exc.last_attempt
        last_error = last.exception()
        log.error(
            "All %d attempts of %s failed: %s", last.attempt_number, name, last_error
        )
        raise RetryExhaustedError(
            name, attempts=last.attempt_number, last_error=last_error
        ) from last_error


def deadline_after(seconds: float | None) -> float | None:
    """Absolute event loop time ``seconds`` from now, or ``None`` for no deadline."""

    if seconds is None:
        return None
    return asyncio.get_running_loop().time() + seconds
