"""Turns a structured query into navigator and extractor calls."""

import logging

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from fandango_explorer.browser.session import BrowserSession
from fandango_explorer.scraper.extractor import ShowtimeExtractor
from fandango_explorer.scraper.models import ErrorKind, NavState, Query, StepResult
from fandango_explorer.scraper.navigator import SiteNavigator

logger = logging.getLogger(__name__)

NO_PARAMETERS_ERROR = "No valid search parameters provided"


class QueryOrchestrator:
    """
    Picks a navigation flow from the populated query fields.

    Precedence:
    1. movie and theater: search the theater, extract the movie (location ignored)
    2. location: resolve the city, then the theater (dropdown, else search),
       then extract the movie if given
    3. theater: search the theater, then extract the movie if given
    4. movie only: open the movie's own page, no showtime harvesting

    The first failing step ends the flow; screenshots taken up to that
    point stay on the result.
    """

    def __init__(
        self,
        session: BrowserSession,
        navigator: SiteNavigator | None = None,
        extractor: ShowtimeExtractor | None = None,
    ) -> None:
        self.session = session
        self.navigator = navigator or SiteNavigator(session)
        self.extractor = extractor or ShowtimeExtractor(session)

    async def process(self, query: Query) -> StepResult:
        result = StepResult(message="Processing complete", session_id=self.session.session_id)

        if not query.is_actionable:
            logger.info(f"Error: {NO_PARAMETERS_ERROR}")
            result.error = NO_PARAMETERS_ERROR
            result.error_kind = ErrorKind.INPUT
            return result

        try:
            await self._run(query, result)
        except PlaywrightTimeoutError as e:
            logger.warning(f"Query timed out: {e}")
            result.absorb(StepResult.fail(f"Operation timed out: {e}", ErrorKind.TIMEOUT))
        except PlaywrightError as e:
            logger.error(f"Error processing query: {e}", exc_info=True)
            result.absorb(StepResult.fail(f"Error processing query: {e}"))

        if result.failed:
            self.session.has_error = True
            self.navigator.state = NavState.FAILED
        else:
            result.success = True
            self.navigator.state = NavState.DONE
        return result

    async def _run(self, query: Query, result: StepResult) -> None:
        landed = await self.session.navigate_to_site()
        if landed.failed:
            logger.warning(f"{landed.error}, continuing with search")

        if query.movie and query.theater:
            logger.info(f"Starting with theater search: {query.theater}")
            if await self._step(result, self.navigator.search_theater(query.theater)):
                await self._extract(query, result)
            return

        if query.location:
            await self._location_flow(query, result)
            return

        if query.theater:
            logger.info(f"Directly searching for theater: {query.theater}")
            if await self._step(result, self.navigator.search_theater(query.theater)):
                await self._extract(query, result)
            return

        logger.info(f"Searching for movie page: {query.movie}")
        await self._step(result, self.navigator.search_movie(query.movie))

    async def _location_flow(self, query: Query, result: StepResult) -> None:
        logger.info(f"Processing location: {query.location}")
        if not await self._step(result, self.navigator.search_city(query.location)):
            return

        if not query.theater:
            return

        dropdown = await self.navigator.select_nearby_theater(query.theater)
        if dropdown.failed:
            logger.info(f"Theater not found in dropdown ({dropdown.error}), falling back to search")
            result.screenshots.extend(dropdown.screenshots)
            if not await self._step(result, self.navigator.search_theater(query.theater)):
                return
        else:
            result.absorb(dropdown)

        await self._extract(query, result)

    async def _step(self, result: StepResult, step) -> bool:
        """Await one navigator step, fold it into ``result`` and report success."""
        outcome = await step
        result.absorb(outcome)
        if outcome.message and not outcome.failed:
            result.message = outcome.message
        return not outcome.failed

    async def _extract(self, query: Query, result: StepResult) -> None:
        if not query.movie:
            return
        logger.info(f"Looking for movie {query.movie} on theater page")
        extracted = await self.extractor.extract(query.movie, query.time_range, query.specific_times)
        logger.info(
            f"Movie search result: success={extracted.success}, "
            f"timeSlots={len(extracted.time_slots or [])}"
        )
        result.absorb(extracted)
        if extracted.time_slots is not None and result.time_slots is None:
            result.time_slots = []
        if extracted.message:
            result.message = extracted.message
