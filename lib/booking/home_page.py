"""Page object for the hotel search home page.

Wires the convergence primitives to the real controls:
  - destination box with autosuggest (multi-strategy pick)
  - DayPicker calendar (CalendarNavigator + DateSelector)
  - occupancy popup counters (CounterConverger)
  - search button, which may open results in a new tab
  - results check (ResultsPage: count, optional sort and price order)
"""

from datetime import date
from functools import partial
from typing import Optional, Tuple, Union

from loguru import logger
from playwright.async_api import Page
from playwright.async_api import TimeoutError as PWTimeoutError

from lib.booking import selectors
from lib.booking.models import Occupancy, SearchOutcome, SearchRequest
from lib.booking.results_page import ResultsPage
from lib.browser import BrowserSession
from lib.convergence.calendar import CalendarNavigator
from lib.convergence.counter import CounterConverger, parse_counter_value
from lib.convergence.date_selector import DateSelector, date_token
from lib.convergence.errors import ConvergenceTimeoutError
from lib.convergence.models import Outcome
from lib.convergence.poller import ConditionPoller
from services.search.config import SearchConfig

# Rooms first: adding a room raises the adult floor
COUNTER_ORDER = ("rooms", "adults", "children")


class HomePage:
    """Search form on the home page."""

    def __init__(
        self,
        page: Page,
        config: Optional[SearchConfig] = None,
        poller: Optional[ConditionPoller] = None,
        session: Optional[BrowserSession] = None,
    ):
        self.page = page
        self.config = config or SearchConfig()
        policy = self.config.poll_policy
        self.poller = poller or ConditionPoller(policy.poll_interval_ms)
        self.wait_timeout = policy.timeout_seconds
        self.session = session
        self.results_tab: Optional[Page] = None
        self.counters = CounterConverger(self.poller, self.config.counter_step_timeout)
        self.dates = DateSelector()
        self.navigator = CalendarNavigator(
            self._read_caption,
            self._next_month,
            self._previous_month,
            poller=self.poller,
            step_pause=self.config.navigation_step_pause,
            settle_timeout=self.config.navigation_settle_timeout,
        )

    # =========================================================================
    # Page load
    # =========================================================================

    async def open(self) -> bool:
        """Load the home page and wait for the search form."""
        url = self.config.base_url
        logger.info(f"Opening {url}")
        try:
            await self.page.goto(
                url,
                timeout=self.config.page_load_timeout_ms,
                wait_until="domcontentloaded",
            )
            await self.poller.wait_until(
                partial(self._visible, selectors.DESTINATION_INPUT),
                self.wait_timeout,
                "Destination input not visible",
            )
        except (PWTimeoutError, ConvergenceTimeoutError) as e:
            logger.warning(f"Home page did not load: {e}")
            return False

        logger.info("Home page loaded")
        return True

    async def is_displayed(self) -> bool:
        """Destination box, date button and search button are all visible."""
        try:
            for selector in (
                selectors.DESTINATION_INPUT,
                selectors.DATE_BUTTON,
                selectors.SEARCH_BUTTON,
            ):
                if not await self._visible(selector):
                    return False
            return True
        except Exception as e:
            logger.debug(f"Home page visibility check failed: {e}")
            return False

    # =========================================================================
    # Destination
    # =========================================================================

    async def enter_destination(self, destination: str) -> bool:
        """Type the destination and pick a suggestion.

        Prefers a City suggestion, then one labelled "City", then whatever
        comes first.
        """
        logger.info(f"Entering destination: {destination}")
        try:
            box = self.page.locator(selectors.DESTINATION_INPUT).first
            await box.click()
            await box.fill(destination)
        except Exception as e:
            logger.warning(f"Could not type destination: {e}")
            return False

        if not await self.poller.wait(
            partial(self._visible, selectors.FIRST_SUGGESTION),
            self.wait_timeout,
        ):
            logger.warning(f"No suggestions shown for '{destination}'")
            return False

        for strategy, selector in selectors.SUGGESTION_STRATEGIES:
            suggestion = self.page.locator(selector).first
            try:
                if await suggestion.count() == 0:
                    logger.debug(f"No suggestion matched strategy: {strategy}")
                    continue
                text = (await suggestion.inner_text()).strip()
                await suggestion.click()
            except Exception as e:
                logger.debug(f"Suggestion strategy '{strategy}' failed: {e}")
                continue
            logger.info(f"Selected suggestion ({strategy}): {text}")
            return True

        logger.warning(f"Could not select a suggestion for '{destination}'")
        return False

    # =========================================================================
    # Dates
    # =========================================================================

    async def open_date_picker(self) -> bool:
        """Make sure the calendar is open (it often opens on its own)."""
        if await self._visible_quietly(selectors.CALENDAR_CAPTION):
            return True
        try:
            await self.page.locator(selectors.DATE_BUTTON).first.click()
        except Exception as e:
            logger.warning(f"Could not click date button: {e}")
            return False

        if not await self.poller.wait(
            partial(self._visible, selectors.CALENDAR_CAPTION),
            self.wait_timeout,
        ):
            logger.warning("Calendar did not open")
            return False
        return True

    async def select_dates(
        self,
        check_in: Union[date, str],
        check_out: Union[date, str],
    ) -> Tuple[Outcome, Outcome]:
        """Select check-in then check-out. Returns both outcomes."""
        if not await self.open_date_picker():
            return Outcome.NOT_FOUND, Outcome.NOT_FOUND

        results = []
        for value in (check_in, check_out):
            token = value if isinstance(value, str) else date_token(value)
            results.append(
                await self.dates.select_date_outcome(
                    token,
                    self._date_selectable,
                    self._click_date,
                    self._rendered_dates,
                    self.navigator,
                )
            )
        return results[0], results[1]

    async def _read_caption(self) -> str:
        return await self.page.locator(selectors.CALENDAR_CAPTION).first.inner_text()

    async def _next_month(self) -> None:
        await self.page.locator(selectors.CALENDAR_NEXT).first.click()

    async def _previous_month(self) -> None:
        await self.page.locator(selectors.CALENDAR_PREVIOUS).first.click()

    async def _date_selectable(self, token: str) -> bool:
        if await self.page.locator(selectors.date_span(token)).count() == 0:
            return False
        cell = self.page.locator(selectors.date_cell(token))
        if await cell.count() == 0:
            return True
        return await cell.first.get_attribute("aria-disabled") != "true"

    async def _click_date(self, token: str) -> None:
        # Prefer the div[role=button] wrapper, the span itself is a fallback
        cell = self.page.locator(selectors.date_cell(token))
        if await cell.count() == 0:
            cell = self.page.locator(selectors.date_span(token))
        await cell.first.click(timeout=self.config.element_timeout_ms)

    async def _rendered_dates(self):
        attribute = selectors.DATE_CELL_ATTRIBUTE
        return await self.page.locator(selectors.DATE_CELLS).evaluate_all(
            f"els => els.map(e => e.getAttribute('{attribute}'))"
        )

    # =========================================================================
    # Occupancy
    # =========================================================================

    async def open_occupancy(self) -> bool:
        """Make sure the occupancy popup is open."""
        rooms_plus = selectors.counter_plus("rooms")
        if await self._visible_quietly(rooms_plus):
            return True
        try:
            await self.page.locator(selectors.OCCUPANCY_BUTTON).first.click()
        except Exception as e:
            logger.warning(f"Could not open occupancy popup: {e}")
            return False

        if not await self.poller.wait(partial(self._visible, rooms_plus), self.wait_timeout):
            logger.warning("Occupancy popup did not open")
            return False
        return True

    async def set_occupancy(self, occupancy: Occupancy) -> Optional[Occupancy]:
        """Drive rooms, adults and children to the requested values.

        Returns:
            The occupancy actually shown afterwards (not re-validated, the
            site may land somewhere the request would not allow), or None if
            the popup could not be opened or a counter could not be read.
        """
        logger.info(f"Setting occupancy: {occupancy}")
        if not await self.open_occupancy():
            return None

        achieved = {}
        for label in COUNTER_ORDER:
            try:
                current = parse_counter_value(await self._counter_text(label))
            except Exception as e:
                logger.warning(f"Could not read {label} counter: {e}")
                return None

            achieved[label] = await self.counters.update_counter(
                partial(self._counter_text, label),
                current,
                getattr(occupancy, label),
                partial(self._click, selectors.counter_plus(label)),
                partial(self._click, selectors.counter_minus(label)),
                label,
            )

        return Occupancy.model_construct(**achieved)

    async def _counter_text(self, label: str) -> str:
        return await self.page.locator(selectors.counter_value(label)).first.inner_text()

    # =========================================================================
    # Search
    # =========================================================================

    async def click_search(self) -> Optional[str]:
        """Click search and return the results page URL, None on failure."""
        button = self.page.locator(selectors.SEARCH_BUTTON).first
        logger.info("Clicking search")
        try:
            results_tab = None
            if self.session is not None:
                results_tab = await self.session.new_page_from(button.click)
            else:
                await button.click()
            results_tab = results_tab or self.page
            await results_tab.wait_for_load_state(
                "domcontentloaded", timeout=self.config.page_load_timeout_ms
            )
        except Exception as e:
            logger.warning(f"Search did not complete: {e}")
            return None

        self.results_tab = results_tab
        logger.info(f"Results page: {results_tab.url}")
        return results_tab.url

    async def check_results(self, outcome: SearchOutcome) -> None:
        """Record the result count and, if requested, the sort check."""
        results = ResultsPage(self.results_tab or self.page, self.config, self.poller)
        await results.wait_for_results()
        outcome.result_count = await results.result_count()
        logger.info(f"Results listed: {outcome.result_count}")

        sort_by = outcome.request.sort_by
        if sort_by is None or not outcome.result_count:
            return
        outcome.sort_applied = await results.sort_by(sort_by)
        if outcome.sort_applied:
            outcome.price_check = await results.prices_ascending()

    async def search(self, request: SearchRequest) -> SearchOutcome:
        """Run the whole form: destination, dates, occupancy, search, results."""
        logger.info(f"Running search {request.name}: {request.destination}")
        outcome = SearchOutcome(request=request)

        if not await self.open():
            outcome.error = "Home page did not load"
            logger.warning(outcome.summary())
            return outcome

        outcome.destination_selected = await self.enter_destination(request.destination)
        outcome.check_in, outcome.check_out = await self.select_dates(
            request.check_in, request.check_out
        )
        outcome.occupancy = await self.set_occupancy(request.occupancy)
        outcome.results_url = await self.click_search()
        if outcome.results_url is not None:
            await self.check_results(outcome)

        if outcome.converged:
            logger.info(outcome.summary())
        else:
            logger.warning(outcome.summary())
        return outcome

    # =========================================================================
    # Helpers
    # =========================================================================

    async def _visible(self, selector: str) -> bool:
        return await self.page.locator(selector).first.is_visible()

    async def _visible_quietly(self, selector: str) -> bool:
        try:
            return await self._visible(selector)
        except Exception:
            return False

    async def _click(self, selector: str) -> None:
        await self.page.locator(selector).first.click(timeout=self.config.element_timeout_ms)
