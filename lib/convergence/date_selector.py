"""Pick a date in a month-at-a-time date picker.

Degrades in stages rather than failing:
  1. click the requested date cell if it is rendered        -> MATCHED
  2. otherwise navigate to its month and try once more      -> NAVIGATED
  3. otherwise click the closest rendered day in that month -> FALLBACK_USED
  4. otherwise give up                                      -> NOT_FOUND

Date tokens are the picker's cell identifiers in YYYY-MM-DD form.
"""

import re
from datetime import date
from typing import Any, Awaitable, Callable, Iterable, List, Optional, Protocol, Set, Tuple, Union

from loguru import logger

from lib.convergence.models import Outcome
from lib.convergence.poller import call_maybe_async

TokenPredicate = Callable[[str], Union[bool, Awaitable[bool]]]
TokenAction = Callable[[str], Optional[Awaitable[Any]]]
TokenEnumerator = Callable[[], Union[Iterable[str], Awaitable[Iterable[str]]]]

_TOKEN_RE = re.compile(r"^(\d{4})-(\d{2})-(\d{2})$")
_MONTH_PREFIX_RE = re.compile(r"^(\d{4})-(\d{2})")


class MonthNavigator(Protocol):
    async def navigate_to_month(self, target_year: int, target_month: int) -> bool:
        ...


def parse_date_token(token: str) -> Optional[date]:
    """Parse a YYYY-MM-DD token, None if malformed or not a real date."""
    match = _TOKEN_RE.match(token.strip()) if token else None
    if not match:
        return None
    try:
        return date(int(match.group(1)), int(match.group(2)), int(match.group(3)))
    except ValueError:
        return None


def token_month(token: str) -> Optional[Tuple[int, int]]:
    """(year, month) from a token's YYYY-MM prefix, None if there is none.

    The day part is not checked, so "2025-02-30" still names February 2025.
    """
    match = _MONTH_PREFIX_RE.match(token.strip()) if token else None
    if not match:
        return None
    year, month = int(match.group(1)), int(match.group(2))
    if not 1 <= month <= 12:
        return None
    return year, month


def _token_day(token: str) -> Optional[int]:
    match = _TOKEN_RE.match(token.strip())
    return int(match.group(3)) if match else None


def date_token(value: date) -> str:
    """Format a date as a picker token."""
    return value.strftime("%Y-%m-%d")


def same_month_substitutes(requested: str, rendered: Iterable[str]) -> List[str]:
    """Rendered tokens sharing the requested token's YYYY-MM prefix.

    Closest day first when the requested day is numeric (even if that day
    does not exist in the month), otherwise in token order. The requested
    token itself is excluded.
    """
    month = token_month(requested)
    if month is None:
        return []
    day = _token_day(requested)

    candidates = []
    for token in rendered:
        parsed = parse_date_token(token)
        if token == requested or parsed is None:
            continue
        if (parsed.year, parsed.month) == month:
            distance = abs(parsed.day - day) if day is not None else 0
            candidates.append((distance, token))
    return [token for _, token in sorted(candidates)]


class DateSelector:
    """Selects a date cell, falling back through navigation and substitution."""

    async def select_date(
        self,
        date_token: str,
        is_rendered: TokenPredicate,
        click_token: TokenAction,
        rendered_tokens: TokenEnumerator,
        navigator: MonthNavigator,
    ) -> bool:
        """Select date_token. True if it or a same-month substitute was clicked."""
        outcome = await self.select_date_outcome(
            date_token, is_rendered, click_token, rendered_tokens, navigator
        )
        return outcome.succeeded

    async def select_date_outcome(
        self,
        date_token: str,
        is_rendered: TokenPredicate,
        click_token: TokenAction,
        rendered_tokens: TokenEnumerator,
        navigator: MonthNavigator,
    ) -> Outcome:
        """Select date_token and report how it was (or wasn't) selected."""
        logger.info(f"Selecting date {date_token}")

        if await self._click_if_rendered(date_token, is_rendered, click_token):
            logger.info(f"Selected date {date_token}")
            return Outcome.MATCHED

        target = token_month(date_token)
        rendered = await self._rendered(rendered_tokens)

        if target is None:
            logger.warning(f"Malformed date token '{date_token}', cannot navigate")
        elif date_token in rendered:
            logger.warning(f"Date {date_token} is shown but not selectable")
        else:
            if await self._navigate(navigator, target):
                if await self._click_if_rendered(date_token, is_rendered, click_token):
                    logger.info(f"Selected date {date_token} after navigation")
                    return Outcome.NAVIGATED
                logger.warning(f"Date {date_token} still not selectable after navigation")
            rendered = await self._rendered(rendered_tokens)

        for substitute in same_month_substitutes(date_token, rendered):
            try:
                await call_maybe_async(click_token, substitute)
            except Exception as e:
                logger.debug(f"Substitute {substitute} not clickable: {e}")
                continue
            logger.warning(f"Date {date_token} unavailable, selected {substitute} instead")
            return Outcome.FALLBACK_USED

        logger.warning(f"Could not select {date_token} or any date in the same month")
        return Outcome.NOT_FOUND

    @staticmethod
    async def _click_if_rendered(
        token: str,
        is_rendered: TokenPredicate,
        click_token: TokenAction,
    ) -> bool:
        try:
            if not await call_maybe_async(is_rendered, token):
                return False
            await call_maybe_async(click_token, token)
            return True
        except Exception as e:
            logger.debug(f"Direct selection of {token} failed: {e}")
            return False

    @staticmethod
    async def _rendered(rendered_tokens: TokenEnumerator) -> Set[str]:
        try:
            tokens = await call_maybe_async(rendered_tokens)
        except Exception as e:
            logger.debug(f"Could not list rendered dates: {e}")
            return set()
        return {t for t in tokens or () if t}

    @staticmethod
    async def _navigate(navigator: MonthNavigator, target: Tuple[int, int]) -> bool:
        year, month = target
        try:
            return bool(await navigator.navigate_to_month(year, month))
        except Exception as e:
            logger.warning(f"Calendar navigation to {year:04d}-{month:02d} raised: {e}")
            return False
