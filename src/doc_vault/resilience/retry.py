from __future__ import annotations

import asyncio
import functools
import logging
import random
from dataclasses import dataclass
from typing import Awaitable, Callable, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

OnRetry = Callable[[int, Exception], None]


@dataclass
class RetryConfig:
    max_attempts: int = 3
    base_delay: float = 0.1
    max_delay: float = 60.0
    exponential_base: float = 2.0
    jitter: float = 0.1

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError(f"max_attempts must be at least 1, got {self.max_attempts}")

    def calculate_delay(self, attempt: int) -> float:
        """Delay to sleep after failed ``attempt`` (1-based), capped at max_delay."""
        delay = min(self.base_delay * (self.exponential_base ** (attempt - 1)), self.max_delay)
        if self.jitter:
            delay += delay * self.jitter * random.random()
            delay = min(delay, self.max_delay)
        return delay


class RetryExhaustedError(Exception):
    def __init__(self, attempts: int, last_exception: Exception):
        super().__init__(f"Gave up after {attempts} attempts: {last_exception}")
        self.attempts = attempts
        self.last_exception = last_exception


async def retry_call(
    fn: Callable[[], Awaitable[T]],
    config: RetryConfig | None = None,
    *,
    retry_on: tuple[type[Exception], ...] = (Exception,),
    on_retry: OnRetry | None = None,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> T:
    """Await ``fn()`` until it succeeds or attempts run out.

    Only exceptions matching ``retry_on`` are retried; anything else
    propagates immediately. Exhaustion raises :class:`RetryExhaustedError`.
    """
    cfg = config or RetryConfig()
    attempt = 0
    while True:
        attempt += 1
        try:
            return await fn()
        except retry_on as exc:
            if attempt >= cfg.max_attempts:
                raise RetryExhaustedError(attempt, exc) from exc
            if on_retry is not None:
                on_retry(attempt, exc)
            delay = cfg.calculate_delay(attempt)
            logger.debug("retrying after %.3fs (attempt %d/%d): %s", delay, attempt, cfg.max_attempts, exc)
            await sleep(delay)


def with_retry(
    *,
    max_attempts: int = 3,
    base_delay: float = 0.1,
    max_delay: float = 60.0,
    exponential_base: float = 2.0,
    jitter: float = 0.1,
    retry_on: tuple[type[Exception], ...] = (Exception,),
    on_retry: OnRetry | None = None,
):
    """Decorator form of :func:`retry_call` for async functions."""
    cfg = RetryConfig(
        max_attempts=max_attempts,
        base_delay=base_delay,
        max_delay=max_delay,
        exponential_base=exponential_base,
        jitter=jitter,
    )

    def deco(fn):
        @functools.wraps(fn)
        async def wrap(*args, **kwargs):
            return await retry_call(
                lambda: fn(*args, **kwargs), cfg, retry_on=retry_on, on_retry=on_retry
            )

        return wrap

    return deco
