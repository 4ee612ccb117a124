"""Tests for the home page object.

Runs against FakePage, a small in-memory stand-in for the search form that
implements the slice of the Playwright Page/Locator API HomePage uses.

Real-site tests are marked @pytest.mark.online:
    BOOKING_ONLINE_TESTS=1 uv run pytest lib/booking/home_page_test.py -v
"""

import calendar
import re
from datetime import date
from unittest.mock import AsyncMock, MagicMock

import pytest
from playwright.async_api import TimeoutError as PWTimeoutError

from lib.booking import selectors
from lib.booking.home_page import HomePage
from lib.booking.models import Occupancy, SearchOutcome, SearchRequest
from lib.booking.results_page import parse_price
from lib.convergence.models import Outcome
from lib.convergence.poller import ConditionPoller
from services.search.config import SearchConfig

RESULTS_URL = "https://www.agoda.com/search?city=16440"
_TOKEN = re.compile(r"data-selenium-date='([\d-]+)'")
PRICE_SORT = selectors.sort_button("Lowest price first")


class FakeSite:
    """State of the search form."""

    def __init__(self, year=2026, month=10, counters=None, suggestions=None, disabled=()):
        self.loaded = True
        self.year, self.month = year, month
        self.counters = counters or {"rooms": 1, "adults": 2, "children": 0}
        self.suggestions = (
            {selectors.CITY_SUGGESTION, selectors.FIRST_SUGGESTION}
            if suggestions is None else set(suggestions)
        )
        self.disabled = set(disabled)
        self.stuck = set()
        self.typed = None
        self.selected_suggestion = None
        self.selected_dates = []
        self.calendar_open = False
        self.occupancy_open = False
        self.url = "about:blank"
        self.prices = ["₫ 1.200.000", "₫ 850.000", "₫ 990.000"]
        self.sorted_by = None

    def listed(self):
        return list(self.prices) if self.url == RESULTS_URL else []

    def rendered(self):
        days = calendar.monthrange(self.year, self.month)[1]
        return [f"{self.year:04d}-{self.month:02d}-{d:02d}" for d in range(1, days + 1)]

    def caption(self):
        return f"{calendar.month_name[self.month]} {self.year}"

    def step(self, delta):
        index = self.year * 12 + self.month - 1 + delta
        self.year, month0 = divmod(index, 12)
        self.month = month0 + 1


class FakeLocator:
    def __init__(self, page, selector):
        self.page = page
        self.selector = selector

    @property
    def first(self):
        return self

    async def count(self):
        return self.page.count(self.selector)

    async def is_visible(self):
        return self.page.visible(self.selector)

    async def click(self, timeout=None):
        self.page.click(self.selector)

    async def fill(self, text):
        self.page.site.typed = text

    async def inner_text(self):
        return self.page.text(self.selector)

    async def get_attribute(self, name):
        if name == "aria-current":
            return "true" if self.page.site.sorted_by == self.selector else None
        token = _TOKEN.search(self.selector).group(1)
        if name == "aria-disabled" and token in self.page.site.disabled:
            return "true"
        return None

    async def evaluate_all(self, script):
        return self.page.site.rendered()

    async def all_inner_texts(self):
        return self.page.site.listed()


class FakePage:
    def __init__(self, site: FakeSite):
        self.site = site
        self.goto = AsyncMock(side_effect=self._goto)
        self.wait_for_load_state = AsyncMock()
        self.counter_selectors = {}
        for label in ("rooms", "adults", "children"):
            self.counter_selectors[selectors.counter_plus(label)] = ("plus", label)
            self.counter_selectors[selectors.counter_minus(label)] = ("minus", label)
            self.counter_selectors[selectors.counter_value(label)] = ("value", label)

    @property
    def url(self):
        return self.site.url

    async def _goto(self, url, **kwargs):
        self.site.url = url

    def locator(self, selector):
        return FakeLocator(self, selector)

    def visible(self, selector):
        site = self.site
        if selector in (selectors.DESTINATION_INPUT, selectors.DATE_BUTTON, selectors.SEARCH_BUTTON):
            return site.loaded
        if selector == selectors.FIRST_SUGGESTION:
            return site.typed is not None and bool(site.suggestions)
        if selector == selectors.CALENDAR_CAPTION:
            return site.calendar_open
        if selector == selectors.counter_plus("rooms"):
            return site.occupancy_open
        return False

    def count(self, selector):
        site = self.site
        if selector in dict(selectors.SUGGESTION_STRATEGIES).values():
            return int(site.typed is not None and selector in site.suggestions)
        if selector in (selectors.RESULT_ITEMS, selectors.RESULT_PRICES):
            return len(site.listed())
        if selector == PRICE_SORT:
            return int(site.url == RESULTS_URL)
        match = _TOKEN.search(selector)
        if match:
            return int(match.group(1) in site.rendered())
        return 0

    def text(self, selector):
        site = self.site
        if selector == selectors.CALENDAR_CAPTION:
            return site.caption()
        if selector in self.counter_selectors:
            return f" {site.counters[self.counter_selectors[selector][1]]} "
        return "Da Nang, Vietnam"

    def click(self, selector):
        site = self.site
        if selector in dict(selectors.SUGGESTION_STRATEGIES).values():
            site.selected_suggestion = selector
        elif selector == selectors.DATE_BUTTON:
            site.calendar_open = True
        elif selector == selectors.CALENDAR_NEXT:
            site.step(1)
        elif selector == selectors.CALENDAR_PREVIOUS:
            site.step(-1)
        elif selector == selectors.OCCUPANCY_BUTTON:
            site.occupancy_open = True
        elif selector == selectors.SEARCH_BUTTON:
            site.url = RESULTS_URL
        elif selector == PRICE_SORT:
            site.prices.sort(key=parse_price)
            site.sorted_by = selector
        elif selector in self.counter_selectors:
            self._click_counter(*self.counter_selectors[selector])
        elif _TOKEN.search(selector):
            token = _TOKEN.search(selector).group(1)
            if token in site.disabled or token not in site.rendered():
                raise PWTimeoutError(f"Timeout clicking {token}")
            site.selected_dates.append(token)

    def _click_counter(self, kind, label):
        site = self.site
        if label in site.stuck:
            return
        site.counters[label] += 1 if kind == "plus" else -1
        # Every room needs an adult
        site.counters["adults"] = max(site.counters["adults"], site.counters["rooms"])


@pytest.fixture
def poller(fake_clock):
    return ConditionPoller(poll_interval_ms=100, clock=fake_clock, sleep=fake_clock.sleep)


@pytest.fixture
def site():
    return FakeSite()


@pytest.fixture
def home(site, poller):
    return HomePage(FakePage(site), SearchConfig(), poller=poller)


# =============================================================================
# Page load
# =============================================================================


class TestOpen:
    """Tests for HomePage.open() and is_displayed()."""

    @pytest.mark.asyncio
    async def test_open(self, home, site):
        assert await home.open() is True
        home.page.goto.assert_awaited_once_with(
            "https://www.agoda.com/", timeout=30000, wait_until="domcontentloaded"
        )

    @pytest.mark.asyncio
    async def test_open_form_never_appears(self, home, site, log_messages):
        site.loaded = False

        assert await home.open() is False
        assert any(level == "WARNING" and "did not load" in msg for level, msg in log_messages)

    @pytest.mark.asyncio
    async def test_open_navigation_timeout(self, home):
        home.page.goto = AsyncMock(side_effect=PWTimeoutError("Timeout 30000ms exceeded"))
        assert await home.open() is False

    def test_poll_policy_from_config(self, site):
        home = HomePage(FakePage(site), SearchConfig(poll_interval_ms=250, element_timeout=3))

        assert home.poller.poll_interval_ms == 250
        assert home.wait_timeout == 3

    @pytest.mark.asyncio
    async def test_open_waits_for_element_timeout(self, site, poller, fake_clock):
        site.loaded = False
        home = HomePage(FakePage(site), SearchConfig(element_timeout=3), poller=poller)

        assert await home.open() is False
        assert fake_clock.now == pytest.approx(3)

    @pytest.mark.asyncio
    async def test_is_displayed(self, home, site):
        assert await home.is_displayed() is True
        site.loaded = False
        assert await home.is_displayed() is False

    @pytest.mark.asyncio
    async def test_is_displayed_swallows_errors(self, poller):
        page = MagicMock()
        page.locator.side_effect = RuntimeError("page crashed")
        assert await HomePage(page, poller=poller).is_displayed() is False


# =============================================================================
# Destination
# =============================================================================


class TestEnterDestination:
    """Tests for suggestion strategies."""

    @pytest.mark.asyncio
    async def test_prefers_city_type(self, home, site):
        assert await home.enter_destination("Da Nang") is True
        assert site.typed == "Da Nang"
        assert site.selected_suggestion == selectors.CITY_SUGGESTION

    @pytest.mark.asyncio
    async def test_city_subtext_strategy(self, poller):
        site = FakeSite(suggestions={selectors.CITY_SUBTEXT_SUGGESTION, selectors.FIRST_SUGGESTION})
        home = HomePage(FakePage(site), poller=poller)

        assert await home.enter_destination("Hue") is True
        assert site.selected_suggestion == selectors.CITY_SUBTEXT_SUGGESTION

    @pytest.mark.asyncio
    async def test_falls_back_to_first_suggestion(self, poller):
        site = FakeSite(suggestions={selectors.FIRST_SUGGESTION})
        home = HomePage(FakePage(site), poller=poller)

        assert await home.enter_destination("Hoi An Ancient Town") is True
        assert site.selected_suggestion == selectors.FIRST_SUGGESTION

    @pytest.mark.asyncio
    async def test_no_suggestions(self, poller):
        site = FakeSite(suggestions=set())
        home = HomePage(FakePage(site), poller=poller)

        assert await home.enter_destination("Atlantis") is False
        assert site.selected_suggestion is None


# =============================================================================
# Dates
# =============================================================================


class TestSelectDates:
    """Tests for HomePage.select_dates()."""

    @pytest.mark.asyncio
    async def test_opens_picker_and_matches(self, home, site):
        outcomes = await home.select_dates(date(2026, 10, 20), date(2026, 10, 23))

        assert outcomes == (Outcome.MATCHED, Outcome.MATCHED)
        assert site.calendar_open is True
        assert site.selected_dates == ["2026-10-20", "2026-10-23"]

    @pytest.mark.asyncio
    async def test_navigates_forward(self, home, site):
        outcomes = await home.select_dates("2027-01-15", "2027-01-18")

        assert outcomes == (Outcome.NAVIGATED, Outcome.MATCHED)
        assert site.caption() == "January 2027"
        assert site.selected_dates == ["2027-01-15", "2027-01-18"]

    @pytest.mark.asyncio
    async def test_disabled_date_uses_fallback(self, poller):
        site = FakeSite(disabled={"2026-10-20"})
        home = HomePage(FakePage(site), poller=poller)

        outcomes = await home.select_dates("2026-10-20", "2026-10-23")

        assert outcomes == (Outcome.FALLBACK_USED, Outcome.MATCHED)
        assert site.selected_dates == ["2026-10-19", "2026-10-23"]

    @pytest.mark.asyncio
    async def test_picker_never_opens(self, home, site):
        site.loaded = True
        home.page.click = MagicMock()  # date button does nothing

        assert await home.select_dates("2026-10-20", "2026-10-23") == (
            Outcome.NOT_FOUND,
            Outcome.NOT_FOUND,
        )


# =============================================================================
# Occupancy
# =============================================================================


class TestSetOccupancy:
    """Tests for HomePage.set_occupancy()."""

    @pytest.mark.asyncio
    async def test_reaches_target(self, home, site):
        achieved = await home.set_occupancy(Occupancy(rooms=2, adults=3, children=1))

        assert achieved == Occupancy(rooms=2, adults=3, children=1)
        assert site.counters == {"rooms": 2, "adults": 3, "children": 1}

    @pytest.mark.asyncio
    async def test_rooms_first_raises_adult_floor(self, poller):
        site = FakeSite(counters={"rooms": 1, "adults": 1, "children": 0})
        home = HomePage(FakePage(site), poller=poller)

        achieved = await home.set_occupancy(Occupancy(rooms=3, adults=4))

        assert (achieved.rooms, achieved.adults) == (3, 4)

    @pytest.mark.asyncio
    async def test_decrements(self, poller):
        site = FakeSite(counters={"rooms": 2, "adults": 4, "children": 2})
        home = HomePage(FakePage(site), poller=poller)

        achieved = await home.set_occupancy(Occupancy(rooms=2, adults=2, children=0))

        assert achieved == Occupancy(rooms=2, adults=2, children=0)

    @pytest.mark.asyncio
    async def test_stuck_counter_reports_partial(self, home, site):
        site.stuck = {"children"}

        achieved = await home.set_occupancy(Occupancy(rooms=1, adults=2, children=2))

        assert achieved.children == 0
        assert achieved != Occupancy(rooms=1, adults=2, children=2)

    @pytest.mark.asyncio
    async def test_popup_never_opens(self, home):
        home.page.click = MagicMock()  # occupancy button does nothing

        assert await home.set_occupancy(Occupancy()) is None


# =============================================================================
# Search
# =============================================================================


class TestSearch:
    """Tests for click_search() and the full flow."""

    @pytest.mark.asyncio
    async def test_click_search_same_tab(self, home):
        assert await home.click_search() == RESULTS_URL

    @pytest.mark.asyncio
    async def test_click_search_new_tab(self, site, poller):
        results_page = AsyncMock()
        results_page.url = RESULTS_URL + "&tab=new"
        session = MagicMock()
        session.new_page_from = AsyncMock(return_value=results_page)
        home = HomePage(FakePage(site), poller=poller, session=session)

        assert await home.click_search() == RESULTS_URL + "&tab=new"
        session.new_page_from.assert_awaited_once()
        results_page.wait_for_load_state.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_click_search_failure(self, home):
        home.page.wait_for_load_state = AsyncMock(side_effect=PWTimeoutError("Timeout"))
        assert await home.click_search() is None

    @pytest.mark.asyncio
    async def test_full_flow_converges(self, home, site):
        request = SearchRequest(
            name="TC01",
            destination="Da Nang",
            check_in=date(2026, 12, 1),
            check_out=date(2026, 12, 5),
            occupancy=Occupancy(rooms=2, adults=3, children=0),
        )

        outcome = await home.search(request)

        assert outcome.converged is True
        assert outcome.check_in == Outcome.NAVIGATED
        assert outcome.check_out == Outcome.MATCHED
        assert outcome.results_url == RESULTS_URL
        assert outcome.result_count == 3
        assert outcome.price_check is None

    @pytest.mark.asyncio
    async def test_full_flow_sorts_by_price(self, home, site):
        request = SearchRequest(
            name="TC01",
            destination="Da Nang",
            check_in=date(2026, 12, 1),
            check_out=date(2026, 12, 5),
            occupancy=Occupancy(rooms=2, adults=3, children=0),
            sort_by="Lowest price first",
        )

        outcome = await home.search(request)

        assert outcome.converged is True
        assert outcome.sort_applied is True
        assert outcome.price_check.prices == [850000.0, 990000.0, 1200000.0]
        assert site.sorted_by == PRICE_SORT

    @pytest.mark.asyncio
    async def test_full_flow_without_results_degrades(self, home, site):
        site.prices = []
        request = SearchRequest(
            destination="Da Nang",
            check_in=date(2026, 12, 1),
            check_out=date(2026, 12, 5),
            sort_by="Lowest price first",
        )

        outcome = await home.search(request)

        assert outcome.results_url == RESULTS_URL
        assert outcome.result_count == 0
        assert outcome.sort_applied is None
        assert outcome.converged is False
        assert site.sorted_by is None

    @pytest.mark.asyncio
    async def test_check_results_reads_results_tab(self, site, poller):
        results_site = FakeSite()
        results_site.url = RESULTS_URL
        results_site.prices = ["$40", "$55"]
        results_tab = FakePage(results_site)
        session = MagicMock()
        session.new_page_from = AsyncMock(return_value=results_tab)
        home = HomePage(FakePage(site), poller=poller, session=session)
        request = SearchRequest(
            destination="Hue",
            check_in=date(2026, 12, 1),
            check_out=date(2026, 12, 2),
            sort_by="Lowest price first",
        )
        outcome = SearchOutcome(request=request)

        outcome.results_url = await home.click_search()
        await home.check_results(outcome)

        assert home.results_tab is results_tab
        assert outcome.result_count == 2
        assert outcome.price_check.ascending is True

    @pytest.mark.asyncio
    async def test_full_flow_page_not_loaded(self, home, site):
        site.loaded = False
        request = SearchRequest(
            destination="Da Nang", check_in=date(2026, 12, 1), check_out=date(2026, 12, 5)
        )

        outcome = await home.search(request)

        assert outcome.converged is False
        assert outcome.error == "Home page did not load"
        assert site.typed is None


@pytest.mark.online
class TestHomePageOnline:
    """Hits the real site."""

    @pytest.mark.asyncio
    async def test_home_page_displays(self):
        from lib.browser import BrowserSession

        async with BrowserSession() as session:
            home = HomePage(session.page, SearchConfig.from_env(), session=session)
            assert await home.open() is True
            assert await home.is_displayed() is True
