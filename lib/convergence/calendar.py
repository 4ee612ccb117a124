"""Calendar caption parsing and bounded month navigation.

The date picker shows one month at a time under a caption such as
"October 2025" or "Tháng 10 2025". To reach a target month we parse the
caption, compute the signed month offset and click next/previous that many
times, capped at NAVIGATION_BUDGET clicks, then re-read the caption to
confirm where we landed.

Caption formats are pluggable: subclass CaptionParser and register it with
register_caption_parser() to support another locale.
"""

import re
import unicodedata
from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable, List, Optional, Sequence, Tuple, Union

from loguru import logger

from lib.convergence.models import NAVIGATION_BUDGET, MonthInfo
from lib.convergence.poller import ConditionPoller, call_maybe_async

CaptionReader = Callable[[], Union[str, Awaitable[str]]]
StepAction = Callable[[], Optional[Awaitable[Any]]]

ENGLISH_MONTHS = {
    "january": 1, "jan": 1,
    "february": 2, "feb": 2,
    "march": 3, "mar": 3,
    "april": 4, "apr": 4,
    "may": 5,
    "june": 6, "jun": 6,
    "july": 7, "jul": 7,
    "august": 8, "aug": 8,
    "september": 9, "sep": 9, "sept": 9,
    "october": 10, "oct": 10,
    "november": 11, "nov": 11,
    "december": 12, "dec": 12,
}


def _sane(month: int, year: int) -> Optional[MonthInfo]:
    if 1 <= month <= 12 and 1000 <= year <= 9999:
        return MonthInfo(month=month, year=year)
    return None


class CaptionParser(ABC):
    """One locale's caption format."""

    name: str

    @abstractmethod
    def parse(self, text: str) -> Optional[MonthInfo]:
        """Return the caption's month, or None if this format doesn't match."""


class VietnameseCaptionParser(CaptionParser):
    """'Tháng 10 2025', 'Tháng 10 năm 2025'."""

    name = "vi"
    pattern = re.compile(r"Tháng\s*(\d{1,2})\D*?(\d{4})", re.IGNORECASE)

    def parse(self, text: str) -> Optional[MonthInfo]:
        match = self.pattern.search(text)
        if not match:
            return None
        return _sane(int(match.group(1)), int(match.group(2)))


class EnglishCaptionParser(CaptionParser):
    """'October 2025', 'oct 2025', 'Sept. 2025'."""

    name = "en"
    pattern = re.compile(r"([A-Za-z]+)\.?,?\s+(\d{4})(?!\d)")

    def parse(self, text: str) -> Optional[MonthInfo]:
        for match in self.pattern.finditer(text):
            month = ENGLISH_MONTHS.get(match.group(1).lower())
            if month:
                return _sane(month, int(match.group(2)))
        return None


_PARSERS: List[CaptionParser] = [VietnameseCaptionParser(), EnglishCaptionParser()]


def register_caption_parser(parser: CaptionParser, first: bool = False) -> None:
    """Add a caption format. Parsers are tried in registration order.

    Raises:
        ValueError: If a parser with the same name is already registered
    """
    if any(p.name == parser.name for p in _PARSERS):
        raise ValueError(f"Caption parser '{parser.name}' is already registered")
    if first:
        _PARSERS.insert(0, parser)
    else:
        _PARSERS.append(parser)


def unregister_caption_parser(name: str) -> bool:
    """Remove a caption format by name. Returns True if one was removed."""
    for i, parser in enumerate(_PARSERS):
        if parser.name == name:
            del _PARSERS[i]
            return True
    return False


def caption_parsers() -> Tuple[CaptionParser, ...]:
    """Registered caption parsers, in the order they are tried."""
    return tuple(_PARSERS)


def parse_month_info(
    caption_text: Optional[str],
    parsers: Optional[Sequence[CaptionParser]] = None,
) -> Optional[MonthInfo]:
    """Parse month/year from a calendar caption.

    Returns the first sane match across the parsers, or None.
    """
    if not caption_text or not caption_text.strip():
        return None

    # Captions can arrive with decomposed diacritics ("Tháng")
    caption_text = unicodedata.normalize("NFC", caption_text)

    for parser in parsers if parsers is not None else _PARSERS:
        info = parser.parse(caption_text)
        if info:
            return info
    return None


def calculate_month_difference(
    current: Optional[MonthInfo],
    target_year: int,
    target_month: int,
) -> int:
    """Signed number of months from current to the target month.

    Positive means navigate forward, negative backward, 0 means already there
    (also returned when current is None).
    """
    if current is None:
        return 0
    return (target_year - current.year) * 12 + (target_month - current.month)


class CalendarNavigator:
    """Moves a month-at-a-time calendar to a target month.

    Bound to the calendar's controls so callers (DateSelector) only need to
    say where to go.
    """

    def __init__(
        self,
        read_caption: CaptionReader,
        step_forward: StepAction,
        step_backward: StepAction,
        poller: Optional[ConditionPoller] = None,
        budget: int = NAVIGATION_BUDGET,
        step_pause: float = 0.3,
        settle_timeout: float = 2.0,
    ):
        if budget < 0:
            raise ValueError("budget must be >= 0")
        self.read_caption = read_caption
        self.step_forward = step_forward
        self.step_backward = step_backward
        self.poller = poller or ConditionPoller()
        self.budget = budget
        self.step_pause = step_pause
        self.settle_timeout = settle_timeout

    async def current_month(self) -> Optional[MonthInfo]:
        """Parse the caption currently shown, None if unreadable."""
        try:
            caption = await call_maybe_async(self.read_caption)
        except Exception as e:
            logger.debug(f"Could not read calendar caption: {e}")
            return None
        return parse_month_info(caption)

    async def navigate_to_month(self, target_year: int, target_month: int) -> bool:
        """Click next/previous until the calendar shows the target month.

        Returns:
            True only if the caption shows exactly the target month afterwards.
        """
        target = f"{target_year:04d}-{target_month:02d}"
        current = await self.current_month()
        if current is None:
            logger.warning(f"Calendar caption unparseable, cannot navigate to {target}")
            return False

        offset = calculate_month_difference(current, target_year, target_month)
        if offset == 0:
            logger.debug(f"Calendar already on {target}")
            return True

        if offset > 0:
            action, direction = self.step_forward, "forward"
        else:
            action, direction = self.step_backward, "backward"

        steps = min(abs(offset), self.budget)
        if steps < abs(offset):
            logger.warning(
                f"Month offset {offset} exceeds navigation budget {self.budget}, "
                f"capping at {steps} steps"
            )
        logger.info(f"Navigating calendar {direction} {steps} month(s): {current} -> {target}")

        for i in range(steps):
            try:
                await call_maybe_async(action)
            except Exception as e:
                logger.warning(f"Calendar {direction} step {i + 1} failed: {e}")
                return False
            await self.poller.sleep(self.step_pause)

        async def on_target() -> bool:
            shown = await self.current_month()
            return shown is not None and shown.year == target_year and shown.month == target_month

        if await self.poller.wait(on_target, self.settle_timeout):
            logger.info(f"Calendar now showing {target}")
            return True

        landed = await self.current_month()
        logger.warning(f"Calendar navigation to {target} ended on {landed or 'unknown month'}")
        return False


async def navigate_to_month(
    target_year: int,
    target_month: int,
    read_caption: CaptionReader,
    step_forward: StepAction,
    step_backward: StepAction,
    **kwargs: Any,
) -> bool:
    """One-shot navigation without keeping a CalendarNavigator around.

    Extra keyword arguments are passed to CalendarNavigator.
    """
    navigator = CalendarNavigator(read_caption, step_forward, step_backward, **kwargs)
    return await navigator.navigate_to_month(target_year, target_month)
