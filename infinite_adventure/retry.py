"""Bounded exponential-backoff retry for quota and rate-limit failures.

Only quota-shaped errors are retried; everything else propagates on the
first failure. All operations wrapped here are idempotent generate requests,
so repeating one never duplicates a side effect.

Delay before retry number ``attempt + 1`` (attempt is 0-based)::

    base_delay * multiplier ** attempt + jitter,  jitter in [0, max_jitter)
"""

from __future__ import annotations

import asyncio
import logging
import random
from collections.abc import Awaitable, Callable
from typing import Literal, TypeVar

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

T = TypeVar("T")

ErrorKind = Literal["quota", "fatal"]

QUOTA_SIGNATURES: tuple[str, ...] = ("429", "quota", "limit", "exhausted")

DEFAULT_MAX_ATTEMPTS = 4
DEFAULT_BASE_DELAY = 3.0
DEFAULT_MULTIPLIER = 3.0
DEFAULT_MAX_JITTER = 1.5


class QuotaExhausted(RuntimeError):
    """Every attempt failed with a quota error. ``__cause__`` is the last one."""

    def __init__(self, attempts: int) -> None:
        super().__init__(f"Quota still exhausted after {attempts} attempts")
        self.attempts = attempts


def classify_error(exc: BaseException) -> ErrorKind:
    """Decide whether a failure is a retryable quota/rate-limit error.

    Substring heuristic over the message and class name, case-insensitive.
    """
    haystack = f"{type(exc).__name__} {exc}".lower()
    if any(token in haystack for token in QUOTA_SIGNATURES):
        return "quota"
    return "fatal"


async def with_retry(
    operation: Callable[[], Awaitable[T]],
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    *,
    base_delay: float = DEFAULT_BASE_DELAY,
    multiplier: float = DEFAULT_MULTIPLIER,
    max_jitter: float = DEFAULT_MAX_JITTER,
    timeout: float | None = None,
    sleep: Callable[[float], Awaitable[object]] = asyncio.sleep,
) -> T:
    """Await ``operation()``, retrying quota failures with backoff and jitter.

    ``timeout`` bounds each single attempt. A timeout is not a quota error
    and is never retried.

    Raises:
        QuotaExhausted: all ``max_attempts`` failed with quota errors.
        Exception: any non-quota error, unchanged, on its first occurrence.
    """
    if max_attempts < 1:
        raise ValueError("max_attempts must be at least 1")

    for attempt in range(max_attempts):
        try:
            if timeout is None:
                return await operation()
            return await asyncio.wait_for(operation(), timeout)
        except Exception as e:
            if classify_error(e) != "quota":
                raise
            if attempt + 1 >= max_attempts:
                raise QuotaExhausted(max_attempts) from e
            delay = base_delay * multiplier ** attempt + random.random() * max_jitter
            logger.warning(
                "Quota error on attempt %d/%d, retrying in %.1fs: %s",
                attempt + 1, max_attempts, delay, e,
            )
            await sleep(delay)

    raise AssertionError("unreachable")


class RetryPolicy(BaseModel):
    """Retry knobs bundled for injection; ``run`` delegates to with_retry."""

    max_attempts: int = Field(DEFAULT_MAX_ATTEMPTS, ge=1)
    base_delay: float = Field(DEFAULT_BASE_DELAY, ge=0)
    multiplier: float = Field(DEFAULT_MULTIPLIER, ge=1)
    max_jitter: float = Field(DEFAULT_MAX_JITTER, ge=0)
    timeout: float | None = None

    async def run(self, operation: Callable[[], Awaitable[T]]) -> T:
        return await with_retry(
            operation,
            self.max_attempts,
            base_delay=self.base_delay,
            multiplier=self.multiplier,
            max_jitter=self.max_jitter,
            timeout=self.timeout,
        )
