"""Bounded polling waits for asynchronously rendered UI state.

The page re-renders on its own schedule, so a read taken right after a click
may still show the old state or fail outright while the DOM is being swapped.
ConditionPoller re-evaluates a predicate until it holds or a time budget runs
out. Errors raised by the predicate count as "not yet" for that poll.

Usage:
    poller = ConditionPoller()
    if await poller.wait(lambda: page.locator("#done").is_visible(), 5):
        ...
    await poller.wait_until(is_loaded, 10, "Results never loaded")
"""

import asyncio
import inspect
import time
from typing import Any, Awaitable, Callable, Union

from loguru import logger

from lib.convergence.errors import ConvergenceTimeoutError
from lib.convergence.models import DEFAULT_POLL_INTERVAL_MS, PollPolicy

WaitCondition = Callable[[], Union[bool, Awaitable[bool]]]


async def call_maybe_async(fn: Callable[..., Any], *args: Any) -> Any:
    """Call fn and await the result if it is awaitable.

    Lets callers hand in plain functions or coroutine functions (Playwright
    reads are coroutines, test doubles usually are not).
    """
    result = fn(*args)
    if inspect.isawaitable(result):
        result = await result
    return result


class ConditionPoller:
    """Evaluates a condition every poll interval until true or timeout."""

    def __init__(
        self,
        poll_interval_ms: float = DEFAULT_POLL_INTERVAL_MS,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        # Validates interval > 0
        PollPolicy(poll_interval_ms=poll_interval_ms)
        self.poll_interval_ms = poll_interval_ms
        self._clock = clock
        self._sleep = sleep

    async def wait(self, condition: WaitCondition, timeout_seconds: float) -> bool:
        """Wait for condition to hold.

        Returns:
            True on the first poll where the condition holds, False once
            timeout_seconds have elapsed without it holding. Never raises
            for a failing or erroring condition.
        """
        return await self._poll(condition, timeout_seconds)

    async def wait_until(
        self,
        condition: WaitCondition,
        timeout_seconds: float,
        message: str,
    ) -> None:
        """Wait for condition to hold or raise ConvergenceTimeoutError(message)."""
        if not await self._poll(condition, timeout_seconds):
            logger.warning(f"Condition not met within {timeout_seconds}s: {message}")
            raise ConvergenceTimeoutError(message, timeout_seconds)

    async def sleep(self, seconds: float) -> None:
        """Fixed pause using the poller's sleep (fakeable in tests)."""
        if seconds > 0:
            await self._sleep(seconds)

    async def _poll(self, condition: WaitCondition, timeout_seconds: float) -> bool:
        policy = PollPolicy(
            timeout_seconds=timeout_seconds,
            poll_interval_ms=self.poll_interval_ms,
        )
        start = self._clock()
        polls = 0

        while True:
            polls += 1
            if await self._check(condition):
                logger.debug(f"Condition met after {polls} poll(s)")
                return True

            elapsed = self._clock() - start
            if elapsed >= policy.timeout_seconds:
                logger.debug(
                    f"Condition not met after {polls} poll(s) in {elapsed:.2f}s "
                    f"(timeout {policy.timeout_seconds}s)"
                )
                return False

            remaining = policy.timeout_seconds - elapsed
            await self._sleep(min(policy.poll_interval_seconds, remaining))

    async def _check(self, condition: WaitCondition) -> bool:
        try:
            return bool(await call_maybe_async(condition))
        except Exception as e:
            logger.debug(f"Condition check raised {type(e).__name__}: {e}")
            return False
