"""
Search automation configuration.
"""

import os
from typing import Any, Dict

from pydantic import BaseModel, ConfigDict, Field

from lib.convergence.models import (
    DEFAULT_COUNTER_STEP_TIMEOUT,
    DEFAULT_POLL_INTERVAL_MS,
    PollPolicy,
)

ENV_PREFIX = "BOOKING_"

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}


def _env_bool(raw: str) -> bool:
    value = raw.strip().lower()
    if value in _TRUE:
        return True
    if value in _FALSE:
        return False
    raise ValueError(f"Not a boolean: {raw!r}")


class SearchConfig(BaseModel):
    """Settings for a browser search run."""

    model_config = ConfigDict(frozen=True)

    # Target site
    base_url: str = Field(default="https://www.agoda.com/", description="Home page URL")
    headless: bool = Field(default=True, description="Run Chromium without a window")

    # Convergence tuning
    poll_interval_ms: float = Field(default=DEFAULT_POLL_INTERVAL_MS, gt=0)
    counter_step_timeout: float = Field(
        default=DEFAULT_COUNTER_STEP_TIMEOUT, ge=0, description="Seconds to wait per counter click"
    )
    navigation_step_pause: float = Field(default=0.3, ge=0, description="Pause after each month step")
    navigation_settle_timeout: float = Field(
        default=2.0, ge=0, description="Seconds to wait for the caption to show the target month"
    )

    # Page timeouts
    page_load_timeout_ms: int = Field(default=30000, gt=0)
    element_timeout: float = Field(default=10.0, gt=0, description="Seconds to wait for key elements")
    results_timeout: float = Field(
        default=20.0, gt=0, description="Seconds to wait for results to load or re-sort"
    )

    @property
    def element_timeout_ms(self) -> int:
        return int(self.element_timeout * 1000)

    @property
    def poll_policy(self) -> PollPolicy:
        return PollPolicy(timeout_seconds=self.element_timeout, poll_interval_ms=self.poll_interval_ms)

    @classmethod
    def from_env(cls, **overrides: Any) -> "SearchConfig":
        """Build config from BOOKING_* environment variables.

        BOOKING_BASE_URL, BOOKING_HEADLESS, BOOKING_POLL_INTERVAL_MS, ...
        Unset variables keep their defaults; explicit overrides win.

        Raises:
            ValueError: If a variable cannot be parsed.
        """
        values: Dict[str, Any] = {}
        for name, field in cls.model_fields.items():
            raw = os.getenv(f"{ENV_PREFIX}{name.upper()}")
            if raw is None or raw.strip() == "":
                continue
            if field.annotation is bool:
                values[name] = _env_bool(raw)
            else:
                values[name] = raw.strip()
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)
