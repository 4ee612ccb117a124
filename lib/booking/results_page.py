"""Page object for the search results page.

Counts results, applies a sort option and checks that the top prices come
back in ascending order. The list re-renders on its own schedule after a
sort, so every wait is a ConditionPoller wait: a sort is done once the sort
button reports itself current or the prices change, with no loading
indicator showing.
"""

import re
from typing import List, Optional

from loguru import logger
from playwright.async_api import Locator, Page

from lib.booking import selectors
from lib.booking.models import PriceSortCheck
from lib.convergence.poller import ConditionPoller
from services.search.config import SearchConfig

DEFAULT_PRICE_CHECK_TOP = 5

_NOT_PRICE_RE = re.compile(r"[^0-9.,]")


def parse_price(text: str) -> Optional[float]:
    """Numeric value of a displayed price.

    Currency symbols and spaces are ignored. Both separator conventions work:
    "1,234.56" and "1.234,56" are 1234.56, "1234,56" is 1234.56. A lone
    separator kind followed by exactly three digits groups thousands, so
    "₫ 663.020" is 663020 and "1,000,000" is 1000000.

    Returns:
        The price, or None if the text holds no readable number.
    """
    if not text:
        return None
    cleaned = _NOT_PRICE_RE.sub("", text).strip(".,")
    if not any(c.isdigit() for c in cleaned):
        return None

    if "," in cleaned and "." in cleaned:
        # Whichever comes last is the decimal point
        decimal = "," if cleaned.rfind(",") > cleaned.rfind(".") else "."
        grouping = "." if decimal == "," else ","
        cleaned = cleaned.replace(grouping, "").replace(decimal, ".")
    elif "," in cleaned or "." in cleaned:
        separator = "," if "," in cleaned else "."
        tail = cleaned.rpartition(separator)[2]
        if cleaned.count(separator) > 1 or len(tail) == 3:
            cleaned = cleaned.replace(separator, "")
        else:
            cleaned = cleaned.replace(separator, ".")

    try:
        return float(cleaned)
    except ValueError:
        return None


class ResultsPage:
    """Hotel list shown after a search."""

    def __init__(
        self,
        page: Page,
        config: Optional[SearchConfig] = None,
        poller: Optional[ConditionPoller] = None,
    ):
        self.page = page
        self.config = config or SearchConfig()
        self.poller = poller or ConditionPoller(self.config.poll_policy.poll_interval_ms)

    async def wait_for_results(self) -> bool:
        """Wait until loading is done and at least one result is listed."""
        timeout = self.config.results_timeout
        if not await self.poller.wait(self._results_settled, timeout):
            logger.warning(f"No results listed within {timeout}s")
            return False
        return True

    async def result_count(self) -> int:
        """Number of result cards currently listed (0 if unreadable)."""
        try:
            return await self.page.locator(selectors.RESULT_ITEMS).count()
        except Exception as e:
            logger.debug(f"Could not count results: {e}")
            return 0

    async def sort_by(self, option: str) -> bool:
        """Apply a sort option such as "Lowest price first".

        Returns:
            True once the list has re-sorted (or the option was already
            active), False if the option is missing, the click fails or the
            list does not change within results_timeout.
        """
        logger.info(f"Sorting by: {option}")
        button = self.page.locator(selectors.sort_button(option)).first
        try:
            if await button.count() == 0:
                logger.warning(f"Sort option not found: {option}")
                return False
            if await self._is_current(button):
                logger.info(f"Sort option already selected: {option}")
                return True
            before = await self._price_texts()
            await button.click(timeout=self.config.element_timeout_ms)
        except Exception as e:
            logger.warning(f"Could not apply sort '{option}': {e}")
            return False

        async def resorted() -> bool:
            if await self._loading():
                return False
            if await self._is_current(button):
                return True
            after = await self._price_texts()
            return bool(after) and after != before

        timeout = self.config.results_timeout
        if not await self.poller.wait(resorted, timeout):
            logger.warning(f"Results did not re-sort by '{option}' within {timeout}s")
            return False

        logger.info(f"Sort applied: {option}")
        return True

    async def price_values(self, top: int = DEFAULT_PRICE_CHECK_TOP) -> List[float]:
        """Prices of the first `top` results. Unreadable prices are skipped."""
        values = []
        for text in (await self._price_texts())[:top]:
            value = parse_price(text)
            if value is None:
                logger.debug(f"Skipping unreadable price: {text!r}")
                continue
            values.append(value)
        return values

    async def prices_ascending(self, top: int = DEFAULT_PRICE_CHECK_TOP) -> PriceSortCheck:
        """Check that the first `top` prices never decrease."""
        if not await self.poller.wait(self._prices_shown, self.config.results_timeout):
            logger.warning("No prices shown on the results page")
            return PriceSortCheck(ascending=False, message="No prices shown")

        try:
            prices = await self.price_values(top)
        except Exception as e:
            logger.warning(f"Could not read prices: {e}")
            return PriceSortCheck(ascending=False, message=f"Could not read prices: {e}")

        if not prices:
            logger.warning("No readable prices on the results page")
            return PriceSortCheck(ascending=False, message="No readable prices")

        for i in range(1, len(prices)):
            if prices[i] < prices[i - 1]:
                message = f"Price #{i + 1} ({prices[i]}) is lower than price #{i} ({prices[i - 1]})"
                logger.warning(f"Prices not ascending: {message}")
                return PriceSortCheck(ascending=False, prices=prices, message=message)

        logger.info(f"Top {len(prices)} prices ascending: {prices}")
        return PriceSortCheck(ascending=True, prices=prices)

    # =========================================================================
    # Helpers
    # =========================================================================

    async def _results_settled(self) -> bool:
        if await self._loading():
            return False
        return await self.page.locator(selectors.RESULT_ITEMS).count() > 0

    async def _loading(self) -> bool:
        return await self.page.locator(selectors.RESULTS_LOADING).first.is_visible()

    async def _prices_shown(self) -> bool:
        return await self.page.locator(selectors.RESULT_PRICES).count() > 0

    async def _price_texts(self) -> List[str]:
        return await self.page.locator(selectors.RESULT_PRICES).all_inner_texts()

    async def _is_current(self, button: Locator) -> bool:
        return await button.get_attribute("aria-current") == "true"
