"""Hotel search data models and scenario loading."""

import json
from datetime import date, timedelta
from pathlib import Path
from typing import Dict, List, Optional, Tuple, Union

from pydantic import BaseModel, Field, ValidationError, model_validator

from lib.convergence.date_selector import date_token
from lib.convergence.models import Outcome

WEEKDAYS = {
    "monday": 0,
    "tuesday": 1,
    "wednesday": 2,
    "thursday": 3,
    "friday": 4,
    "saturday": 5,
    "sunday": 6,
}


class Occupancy(BaseModel):
    """Rooms and guests for a stay."""

    rooms: int = Field(default=1, ge=1)
    adults: int = Field(default=2, ge=1)
    children: int = Field(default=0, ge=0)

    @model_validator(mode="after")
    def _adult_per_room(self) -> "Occupancy":
        # Every room needs at least one adult
        if self.adults < self.rooms:
            raise ValueError(f"adults ({self.adults}) must be >= rooms ({self.rooms})")
        return self

    def __str__(self) -> str:
        return f"{self.rooms} room(s), {self.adults} adult(s), {self.children} child(ren)"


class SearchRequest(BaseModel):
    """One hotel search: where, when, who."""

    name: str = "adhoc"
    destination: str = Field(min_length=1)
    check_in: date
    check_out: date
    occupancy: Occupancy = Field(default_factory=Occupancy)
    sort_by: Optional[str] = Field(default=None, description="Sort option to apply on the results page")
    description: Optional[str] = None

    @model_validator(mode="after")
    def _check_out_after_check_in(self) -> "SearchRequest":
        if self.check_out <= self.check_in:
            raise ValueError(
                f"check_out ({self.check_out}) must be after check_in ({self.check_in})"
            )
        return self

    @property
    def nights(self) -> int:
        return (self.check_out - self.check_in).days

    def date_tokens(self) -> Tuple[str, str]:
        """Check-in and check-out as picker tokens (YYYY-MM-DD)."""
        return date_token(self.check_in), date_token(self.check_out)


class PriceSortCheck(BaseModel):
    """Whether the top result prices are in ascending order."""

    ascending: bool
    prices: List[float] = []
    message: Optional[str] = None

    @property
    def checked(self) -> int:
        return len(self.prices)


class SearchOutcome(BaseModel):
    """What a search run actually achieved on the page."""

    request: SearchRequest
    destination_selected: bool = False
    check_in: Outcome = Outcome.NOT_FOUND
    check_out: Outcome = Outcome.NOT_FOUND
    occupancy: Optional[Occupancy] = None
    results_url: Optional[str] = None
    result_count: Optional[int] = None
    sort_applied: Optional[bool] = None
    price_check: Optional[PriceSortCheck] = None
    error: Optional[str] = None

    @property
    def occupancy_matched(self) -> bool:
        return self.occupancy is not None and self.occupancy == self.request.occupancy

    @property
    def results_found(self) -> bool:
        return self.results_url is not None and bool(self.result_count)

    @property
    def sort_verified(self) -> bool:
        """True when no sort was requested, or it was applied and prices ascend."""
        if self.request.sort_by is None:
            return True
        return bool(self.sort_applied) and self.price_check is not None and self.price_check.ascending

    @property
    def converged(self) -> bool:
        """True when every step reached its exact target and results loaded."""
        return (
            self.error is None
            and self.destination_selected
            and self.check_in.exact
            and self.check_out.exact
            and self.occupancy_matched
            and self.results_found
            and self.sort_verified
        )

    def summary(self) -> str:
        status = "OK" if self.converged else "DEGRADED"
        achieved = self.occupancy if self.occupancy is not None else "n/a"
        parts = [
            f"[{status}] {self.request.name}: {self.request.destination}",
            f"check-in={self.check_in.value}",
            f"check-out={self.check_out.value}",
            f"occupancy={achieved}",
            f"results={self.result_count if self.result_count is not None else 'n/a'}",
        ]
        if self.request.sort_by is not None:
            if self.price_check is None:
                parts.append(f"sort={self.request.sort_by} (unchecked)")
            else:
                order = "ascending" if self.price_check.ascending else "unsorted"
                parts.append(f"sort={self.request.sort_by} ({order}, top {self.price_check.checked})")
        if self.error:
            parts.append(f"error={self.error}")
        return " | ".join(parts)


class SearchReport(BaseModel):
    """Result of a multi-scenario run."""

    outcomes: List[SearchOutcome] = []

    @property
    def total(self) -> int:
        return len(self.outcomes)

    @property
    def converged(self) -> int:
        return sum(1 for o in self.outcomes if o.converged)

    @property
    def degraded(self) -> int:
        return self.total - self.converged

    @property
    def all_converged(self) -> bool:
        return self.degraded == 0


# =============================================================================
# Scenario files
# =============================================================================


def load_scenarios(path: Union[str, Path]) -> Dict[str, SearchRequest]:
    """Load search scenarios from a JSON file.

    Expected shape::

        {"scenarios": {"TC01": {"destination": "Da Nang",
                                "check_in": "2026-12-01",
                                "check_out": "2026-12-05",
                                "occupancy": {"rooms": 2, "adults": 3}}}}

    Raises:
        ValueError: If the file is missing, unreadable or a scenario is invalid.
    """
    path = Path(path)
    if not path.exists():
        raise ValueError(f"Scenario file not found: {path}")

    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid JSON in {path}: {e}") from e

    section = data.get("scenarios") if isinstance(data, dict) else None
    if not isinstance(section, dict) or not section:
        raise ValueError(f"No 'scenarios' section in {path}")

    scenarios = {}
    for scenario_id, raw in section.items():
        if not isinstance(raw, dict):
            raise ValueError(f"Scenario {scenario_id} must be an object")
        try:
            scenarios[scenario_id] = SearchRequest(**{"name": scenario_id, **raw})
        except ValidationError as e:
            raise ValueError(f"Invalid scenario {scenario_id}: {e}") from e
    return scenarios


def get_scenario(path: Union[str, Path], scenario_id: str) -> SearchRequest:
    scenarios = load_scenarios(path)
    if scenario_id not in scenarios:
        available = ", ".join(sorted(scenarios))
        raise ValueError(f"Scenario {scenario_id} not found (available: {available})")
    return scenarios[scenario_id]


# =============================================================================
# Flexible dates
# =============================================================================


def parse_weekday(name: str) -> int:
    """Weekday index (Monday=0) from a name or 3-letter prefix."""
    key = name.strip().lower()
    for day, index in WEEKDAYS.items():
        if key == day or (len(key) >= 3 and day.startswith(key)):
            return index
    raise ValueError(f"Unknown weekday: {name}")


def next_weekday(weekday: int, today: Optional[date] = None) -> date:
    """The next given weekday strictly after today."""
    if not 0 <= weekday <= 6:
        raise ValueError(f"weekday must be 0..6, got {weekday}")
    today = today or date.today()
    days_ahead = (weekday - today.weekday()) % 7 or 7
    return today + timedelta(days=days_ahead)


def flexible_date_range(
    weekday: int, nights: int, today: Optional[date] = None
) -> Tuple[date, date]:
    """Check-in on the next given weekday, check-out `nights` later."""
    if nights < 1:
        raise ValueError(f"nights must be >= 1, got {nights}")
    check_in = next_weekday(weekday, today)
    return check_in, check_in + timedelta(days=nights)
