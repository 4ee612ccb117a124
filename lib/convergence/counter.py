"""Drive a displayed integer counter (rooms, adults, children) to a target.

Each click is verified before the next one is made. If the displayed value
does not reach the expected running value within the step timeout, the run
stops and reports the last value it saw confirmed. Clicking on blindly after
a missed step would compound a state that is already wrong.

Assumes one unit of change per click and no other actor touching the same
counter while a run is in progress.
"""

from typing import Any, Awaitable, Callable, Optional, Union

from loguru import logger

from lib.convergence.models import DEFAULT_COUNTER_STEP_TIMEOUT, CounterState
from lib.convergence.poller import ConditionPoller, call_maybe_async

ValueReader = Callable[[], Union[int, str, Awaitable[Union[int, str]]]]
Action = Callable[[], Optional[Awaitable[Any]]]


def parse_counter_value(raw: Union[int, str]) -> int:
    """Coerce a displayed counter value to int.

    Raises:
        ValueError: If the value is not an integer.
    """
    if isinstance(raw, bool):
        raise ValueError(f"Not a counter value: {raw!r}")
    if isinstance(raw, int):
        return raw
    return int(str(raw).strip())


class CounterConverger:
    """Step a counter one click at a time, verifying every step."""

    def __init__(
        self,
        poller: Optional[ConditionPoller] = None,
        step_timeout: float = DEFAULT_COUNTER_STEP_TIMEOUT,
    ):
        self.poller = poller or ConditionPoller()
        self.step_timeout = step_timeout

    async def update_counter(
        self,
        read: ValueReader,
        current: int,
        target: int,
        increment: Action,
        decrement: Action,
        label: str,
    ) -> int:
        """Move the counter from current to target.

        Returns:
            target on full convergence, otherwise the last verified value.
            Never raises for UI failures.
        """
        state = await self.update_counter_with_outcome(
            read, current, target, increment, decrement, label
        )
        return state.current

    async def update_counter_with_outcome(
        self,
        read: ValueReader,
        current: int,
        target: int,
        increment: Action,
        decrement: Action,
        label: str,
    ) -> CounterState:
        """Same as update_counter but returns the full CounterState."""
        state = CounterState(label=label, current=current, target=target)

        if current == target:
            logger.debug(f"{label}: already at {target}")
            return state

        if current < target:
            action, step, verb = increment, 1, "incremented"
        else:
            action, step, verb = decrement, -1, "decremented"

        logger.info(f"Updating {label} from {current} to {target}")

        for _ in range(abs(target - current)):
            expected = state.current + step

            try:
                await call_maybe_async(action)
            except Exception as e:
                logger.warning(f"{label}: click failed at {state.current}: {e}")
                break

            if not await self._wait_for_value(read, expected):
                observed = await self._read_quietly(read)
                logger.warning(
                    f"{label}: count did not update to {expected} "
                    f"within {self.step_timeout}s (displayed: {observed})"
                )
                break

            state.current = expected
            logger.info(f"{label} {verb} to {expected}")

        if state.converged:
            logger.info(f"Final {label} value: {state.current}")
        else:
            logger.warning(
                f"Final {label} value: {state.current} (target was {target})"
            )
        return state

    async def _wait_for_value(self, read: ValueReader, expected: int) -> bool:
        async def reached() -> bool:
            return parse_counter_value(await call_maybe_async(read)) == expected

        return await self.poller.wait(reached, self.step_timeout)

    @staticmethod
    async def _read_quietly(read: ValueReader) -> Optional[str]:
        try:
            return str(await call_maybe_async(read))
        except Exception as e:
            return f"<unreadable: {e}>"
