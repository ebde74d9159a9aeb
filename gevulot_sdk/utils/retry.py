"""
Retry helpers with exponential backoff and jitter.

Implements the three AWS Architecture Blog strategies:
- full jitter        : sleep U(0, cap)
- equal jitter       : sleep cap/2 + U(0, cap/2)
- decorrelated jitter: sleep U(base, prev*3) capped

Two layers live here:

``RetryPolicy``
    A pure policy object used by the transaction broadcaster. Given the number
    of attempts made, the elapsed time and the last error, ``decide`` answers
    "retry after N seconds" or "stop". It never sleeps and never reads a clock,
    so it can be unit-tested without real network timing.

``aretry_call``
    A small driver for transport-level retries (channel readiness, JSON-RPC).

Example
-------
from gevulot_sdk.utils.retry import RetryPolicy

policy = RetryPolicy(max_attempts=3, base_delay=0.2, max_delay=2.0)
decision = policy.decide(attempt=1, elapsed=0.0, error=exc)
if decision.retry:
    await asyncio.sleep(decision.delay)
"""

from __future__ import annotations

import asyncio
import random
import time
from dataclasses import dataclass
from typing import (Any, Awaitable, Callable, Literal, Optional, Sequence,
                    Tuple, Type, TypeVar, Union)

from ..errors import LedgerRejection, TransportError

__all__ = [
    "RetryError",
    "BackoffState",
    "RetryDecision",
    "RetryPolicy",
    "backoff_delay",
    "is_retryable",
    "aretry_call",
]

T = TypeVar("T")

JitterMode = Literal["full", "equal", "decorrelated"]


class RetryError(RuntimeError):
    """Raised when all retry attempts are exhausted."""

    def __init__(self, last_exception: BaseException, attempts: int) -> None:
        super().__init__(f"exhausted after {attempts} attempts: {last_exception!r}")
        self.last_exception = last_exception
        self.attempts = attempts


class BackoffState:
    """
    Mutable state for decorrelated jitter.

    You usually don't need to create this yourself; it's managed by retry helpers.
    """

    __slots__ = ("prev_delay",)

    def __init__(self) -> None:
        self.prev_delay: float = 0.0


def _cap(val: float, max_delay: float) -> float:
    return min(val, max_delay)


def backoff_delay(
    attempt: int,
    *,
    base: float,
    max_delay: float,
    jitter: JitterMode = "full",
    state: Optional[BackoffState] = None,
    rng: Optional[random.Random] = None,
) -> float:
    """
    Compute a backoff delay (in seconds) for the given attempt (1-based).

    - base: initial backoff (seconds), e.g. 0.1
    - max_delay: maximum per-attempt delay (cap)
    - jitter: strategy name (full|equal|decorrelated)
    - state: required only for decorrelated to persist `prev_delay`
    - rng: source of randomness (defaults to the module-level generator)
    """
    uniform = (rng or random).uniform
    if attempt < 1:
        attempt = 1
    cap = _cap(base * (2 ** (attempt - 1)), max_delay)

    if jitter == "full":
        delay = uniform(0.0, cap)
    elif jitter == "equal":
        delay = (cap * 0.5) + uniform(0.0, cap * 0.5)
    elif jitter == "decorrelated":
        if state is None:
            state = BackoffState()
        low = base
        high = max(base, state.prev_delay * 3.0 if state.prev_delay > 0 else base)
        delay = _cap(uniform(low, high), max_delay)
        state.prev_delay = delay
    else:
        raise ValueError(f"unknown jitter mode: {jitter}")
    return max(0.0, float(delay))


def is_retryable(error: BaseException) -> bool:
    """Transport failures and transient ledger rejections are retryable; nothing else is."""
    if isinstance(error, LedgerRejection):
        return error.retryable
    return isinstance(error, TransportError)


@dataclass(frozen=True)
class RetryDecision:
    retry: bool
    delay: float = 0.0
    reason: str = ""


@dataclass(frozen=True)
class RetryPolicy:
    """
    Bounded exponential backoff for transaction submission.

    Attempts are counted from 1; ``max_attempts=3`` allows the first try plus
    two retries. ``max_elapsed`` (seconds, or None for no limit) stops retrying
    when the next sleep would cross it.
    """

    max_attempts: int = 5
    base_delay: float = 0.5
    max_delay: float = 8.0
    max_elapsed: Optional[float] = 120.0
    jitter: JitterMode = "full"

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        if self.base_delay < 0 or self.max_delay < 0:
            raise ValueError("delays must be non-negative")
        if self.max_elapsed is not None and self.max_elapsed < 0:
            raise ValueError("max_elapsed must be non-negative")

    def delay(
        self,
        attempt: int,
        *,
        rng: Optional[random.Random] = None,
        state: Optional[BackoffState] = None,
    ) -> float:
        return backoff_delay(
            attempt,
            base=self.base_delay,
            max_delay=self.max_delay,
            jitter=self.jitter,
            state=state,
            rng=rng,
        )

    def decide(
        self,
        attempt: int,
        elapsed: float,
        error: BaseException,
        *,
        rng: Optional[random.Random] = None,
        state: Optional[BackoffState] = None,
    ) -> RetryDecision:
        """Decide what follows failed attempt number ``attempt``."""
        if not is_retryable(error):
            return RetryDecision(False, reason="permanent")
        if attempt >= self.max_attempts:
            return RetryDecision(False, reason="max_attempts")
        delay = self.delay(attempt, rng=rng, state=state)
        if self.max_elapsed is not None and elapsed + delay > self.max_elapsed:
            return RetryDecision(False, reason="max_elapsed")
        return RetryDecision(True, delay=delay)


def _should_retry(
    exc: BaseException,
    exceptions: Tuple[Type[BaseException], ...],
    retry_if: Optional[Callable[[BaseException], bool]],
) -> bool:
    if not isinstance(exc, exceptions):
        return False
    if retry_if is not None:
        return bool(retry_if(exc))
    return True


async def aretry_call(
    fn: Callable[..., Awaitable[T]],
    *args: Any,
    retries: int = 5,
    base: float = 0.2,
    max_delay: float = 3.0,
    jitter: JitterMode = "full",
    exceptions: Union[Type[BaseException], Sequence[Type[BaseException]]] = Exception,
    retry_if: Optional[Callable[[BaseException], bool]] = None,
    on_retry: Optional[Callable[[int, BaseException, float], None]] = None,
    total_timeout: Optional[float] = None,
    **kwargs: Any,
) -> T:
    """
    Await ``fn(*args, **kwargs)`` with up to ``retries`` retries.

    - Only exceptions matching ``exceptions`` (and ``retry_if``, when given) are retried.
    - ``on_retry`` receives (attempt_index, exception, sleep_seconds).
    - ``total_timeout`` puts a ceiling on overall time spent retrying.
    """
    if isinstance(exceptions, type):
        exc_types: Tuple[Type[BaseException], ...] = (exceptions,)
    else:
        exc_types = tuple(exceptions)

    deadline = time.monotonic() + total_timeout if total_timeout is not None else None
    state = BackoffState()

    attempt = 0
    while True:
        attempt += 1
        try:
            return await fn(*args, **kwargs)
        except Exception as exc:
            if not _should_retry(exc, exc_types, retry_if):
                raise
            if attempt > retries:
                raise RetryError(exc, attempts=attempt) from exc

            sleep_s = backoff_delay(
                attempt=attempt,
                base=base,
                max_delay=max_delay,
                jitter=jitter,
                state=state if jitter == "decorrelated" else None,
            )
            if deadline is not None:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    raise RetryError(exc, attempts=attempt) from exc
                sleep_s = min(sleep_s, max(0.0, remaining))

            if on_retry is not None:
                on_retry(attempt, exc, sleep_s)

            await asyncio.sleep(sleep_s)
