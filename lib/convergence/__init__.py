"""State-convergence primitives for asynchronously rendered UIs.

Polling waits, verified counter stepping, bounded calendar navigation and
date selection with fallback. Page objects live in lib/booking/.
"""

from lib.convergence.calendar import (
    CalendarNavigator,
    CaptionParser,
    calculate_month_difference,
    navigate_to_month,
    parse_month_info,
    register_caption_parser,
)
from lib.convergence.counter import CounterConverger
from lib.convergence.date_selector import DateSelector
from lib.convergence.errors import ConvergenceTimeoutError
from lib.convergence.models import NAVIGATION_BUDGET, CounterState, MonthInfo, Outcome, PollPolicy
from lib.convergence.poller import ConditionPoller

__all__ = [
    "CalendarNavigator",
    "CaptionParser",
    "ConditionPoller",
    "ConvergenceTimeoutError",
    "CounterConverger",
    "CounterState",
    "DateSelector",
    "MonthInfo",
    "NAVIGATION_BUDGET",
    "Outcome",
    "PollPolicy",
    "calculate_month_difference",
    "navigate_to_month",
    "parse_month_info",
    "register_caption_parser",
]
