"""Data models for the state-convergence primitives."""

from dataclasses import dataclass
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

# Hard cap on calendar navigation clicks. A misparsed caption must never
# turn into an unbounded click loop.
NAVIGATION_BUDGET = 24

DEFAULT_POLL_INTERVAL_MS = 100.0
DEFAULT_COUNTER_STEP_TIMEOUT = 3.0


class Outcome(str, Enum):
    """How a convergence call ended."""

    MATCHED = "MATCHED"  # Target was reachable directly
    NAVIGATED = "NAVIGATED"  # Target reached after calendar navigation
    FALLBACK_USED = "FALLBACK_USED"  # Best-effort substitute selected
    NOT_FOUND = "NOT_FOUND"  # Nothing usable selected

    @property
    def succeeded(self) -> bool:
        """True for every outcome that left the flow able to continue."""
        return self is not Outcome.NOT_FOUND

    @property
    def exact(self) -> bool:
        """True only when the requested target itself was selected."""
        return self in (Outcome.MATCHED, Outcome.NAVIGATED)


class PollPolicy(BaseModel):
    """Timeout and interval for a polling wait."""
    model_config = ConfigDict(frozen=True)

    timeout_seconds: float = Field(default=10.0, ge=0)
    poll_interval_ms: float = Field(default=DEFAULT_POLL_INTERVAL_MS, gt=0)

    @property
    def poll_interval_seconds(self) -> float:
        return self.poll_interval_ms / 1000.0


@dataclass(frozen=True)
class MonthInfo:
    """Month and year shown by a calendar caption."""

    month: int
    year: int

    @property
    def prefix(self) -> str:
        """Date-token prefix for this month, e.g. '2025-10'."""
        return f"{self.year:04d}-{self.month:02d}"

    def __str__(self) -> str:
        return self.prefix


class CounterState(BaseModel):
    """Result of driving a displayed counter towards a target."""

    label: str
    current: int  # Last verified value
    target: int

    @property
    def converged(self) -> bool:
        return self.current == self.target

    @property
    def remaining(self) -> int:
        """Signed distance still left to the target."""
        return self.target - self.current
