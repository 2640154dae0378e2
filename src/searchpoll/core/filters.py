"""Filter Coordinator — The only entry point for changing the filter predicate.

Applying a filter always starts a new generation: pagination and cache state
are reset, the result list is emptied and repopulated by a fresh initial
poll, and responses still in flight for the old generation are discarded by
the scheduler when they arrive. Side-channel data survives the reset.
"""

from __future__ import annotations

import asyncio
import logging

from searchpoll.core.exceptions import FilterApplicationError, SearchPollError
from searchpoll.core.scheduler import PollScheduler
from searchpoll.core.session import SearchSession
from searchpoll.core.side_channel import SideChannelPreserver
from searchpoll.models.filters import FilterRequest
from searchpoll.models.results import ResultItem

logger = logging.getLogger(__name__)


class FilterCoordinator:
    """Applies and clears filters on a running search.

    While a filter is active, cache checks and the reconciliation poll are
    suspended; clearing filters turns them back on.
    """

    def __init__(
        self,
        session: SearchSession,
        scheduler: PollScheduler,
        preserver: SideChannelPreserver,
    ) -> None:
        self._session = session
        self._scheduler = scheduler
        self._preserver = preserver

    def apply_filters(self, request: FilterRequest) -> asyncio.Task[None] | None:
        """Re-run the search under a new filter predicate.

        Args:
            request: The new filter. ``FilterRequest()`` means no filters.

        Returns:
            The new primary polling task, or None if nothing was started.
        """
        session = self._session
        if not session.search_id:
            logger.warning("%s", FilterApplicationError("Cannot apply filters without a search id"))
            return None

        previous = list(session.results)
        with self._preserver.preserving(session):
            session.apply_filter(request)
            session.set_continuous(not session.is_filtered)

        logger.info(
            "Applying filters (generation %d): %s",
            session.generation,
            request.summary(),
        )
        return self._scheduler.start(on_failure=lambda e: self._restore(previous, e))

    def clear_filters(self) -> asyncio.Task[None] | None:
        """Drop every filter and resume background polling.

        An empty request is unfiltered, so ``apply_filters`` turns
        continuous polling back on.
        """
        return self.apply_filters(FilterRequest())

    def has_active_filters(self) -> bool:
        return self._session.is_filtered and self._session.filter_request.has_filters()

    def active_filters_summary(self) -> str:
        if not self.has_active_filters():
            return "No filters active"
        return self._session.filter_request.summary()

    def _restore(self, previous: list[ResultItem], error: SearchPollError) -> None:
        logger.warning(
            "%s; keeping %d previous results",
            FilterApplicationError(f"Failed to apply filters: {error}"),
            len(previous),
        )
        self._session.restore_results(previous)
