"""Search service: run hotel searches in a real browser."""

from abc import ABC, abstractmethod
from typing import Iterable, Optional

from loguru import logger

from lib.booking.home_page import HomePage
from lib.booking.models import SearchOutcome, SearchReport, SearchRequest
from lib.browser import BrowserSession
from services.search.config import SearchConfig


class IService(ABC):
    """Search Service - Drive the hotel search form to a requested state."""

    @abstractmethod
    async def run_search(self, request: SearchRequest) -> SearchOutcome:
        """Run one search in a fresh browser session.

        Returns:
            SearchOutcome describing what was actually achieved.
        """
        pass

    @abstractmethod
    async def run_scenarios(self, requests: Iterable[SearchRequest]) -> SearchReport:
        """Run several searches one after another.

        A failing scenario is recorded in the report and does not stop
        the remaining ones.
        """
        pass


class Service(IService):
    def __init__(self, config: Optional[SearchConfig] = None) -> None:
        self.config = config or SearchConfig.from_env()

    def _session(self) -> BrowserSession:
        return BrowserSession(
            headless=self.config.headless,
            default_timeout_ms=self.config.element_timeout_ms,
        )

    async def run_search(self, request: SearchRequest) -> SearchOutcome:
        logger.info(
            f"Search {request.name}: {request.destination} "
            f"{request.check_in} -> {request.check_out}, {request.occupancy}"
        )
        async with self._session() as session:
            home = HomePage(session.page, self.config, session=session)
            return await home.search(request)

    async def run_scenarios(self, requests: Iterable[SearchRequest]) -> SearchReport:
        report = SearchReport()
        for request in requests:
            try:
                outcome = await self.run_search(request)
            except Exception as e:
                logger.error(f"Search {request.name} failed: {e}")
                outcome = SearchOutcome(request=request, error=str(e))
            report.outcomes.append(outcome)

        logger.info(
            f"Scenarios complete: {report.converged}/{report.total} converged, "
            f"{report.degraded} degraded"
        )
        return report
