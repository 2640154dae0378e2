"""searchpoll Engine — Facade that wires session, scheduler, filters and ads.

The engine manages the full lifecycle of one result screen:
  1. Start: tear down the previous search and poll the new search id
  2. Stream: retries, cache checks and the reconciliation poll run in the
     background until the backend cache is complete
  3. Interact: load more pages, apply or clear filters, stop polling
  4. Side channel: ads loaded alongside and kept across filter changes

All methods must be called from the event loop that owns the engine.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from typing import TYPE_CHECKING

from searchpoll.ads.base import AdProvider
from searchpoll.ads.http import HttpAdProvider
from searchpoll.core.filters import FilterCoordinator
from searchpoll.core.scheduler import PollScheduler, Sleep
from searchpoll.core.session import SearchSession, StateListener
from searchpoll.core.side_channel import SideChannelPreserver
from searchpoll.models.filters import FilterRequest
from searchpoll.models.session import SearchState
from searchpoll.models.side_channel import AdContext
from searchpoll.transport.base.transport import PollTransport
from searchpoll.transport.http.transport import HttpPollTransport

if TYPE_CHECKING:
    from searchpoll.config.settings import Settings

logger = logging.getLogger(__name__)


class SearchEngine:
    """Polling and pagination engine for one result screen.

    Attributes:
        settings: Application configuration.
        session: Mutable search state.
        scheduler: Poll sequencing.
        filters: Filter entry point.
        preserver: Side-channel owner.

    Example::

        async with SearchEngine(settings) as engine:
            engine.subscribe(render)
            engine.start_search(search_id)
            await engine.wait()
            await engine.load_more()
    """

    def __init__(
        self,
        settings: Settings,
        *,
        transport: PollTransport | None = None,
        ad_provider: AdProvider | None = None,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self.settings = settings
        self.transport = transport or HttpPollTransport(
            settings.transport.base_url,
            language=settings.transport.language,
            currency=settings.transport.currency,
            country=settings.transport.country,
            timeout=settings.transport.timeout,
        )
        if ad_provider is None and settings.ads.enabled:
            ad_provider = HttpAdProvider(
                settings.ads.base_url,
                settings.ads.bearer_token,
                country_code=settings.ads.country_code,
                label=settings.ads.label,
                impression_base_url=settings.ads.impression_base_url,
                timeout=settings.ads.timeout,
            )
        self.ad_provider = ad_provider

        self.session = SearchSession()
        self.scheduler = PollScheduler(self.session, self.transport, settings.polling, sleep=sleep)
        self.preserver = SideChannelPreserver()
        self.filters = FilterCoordinator(self.session, self.scheduler, self.preserver)

    async def __aenter__(self) -> SearchEngine:
        await self.initialize()
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.shutdown()

    async def initialize(self) -> None:
        """Open the transport and ad provider connections."""
        await self.transport.initialize()
        if self.ad_provider is not None:
            await self.ad_provider.initialize()
        logger.info("searchpoll engine initialized (transport: %s)", self.transport.name)

    async def shutdown(self) -> None:
        """Cancel background polling and close connections."""
        await self.scheduler.aclose()
        await self.transport.shutdown()
        if self.ad_provider is not None:
            await self.ad_provider.shutdown()
        logger.info("searchpoll engine shut down")

    # ── Observable state ──

    @property
    def state(self) -> SearchState:
        return self.session.snapshot()

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        return self.session.subscribe(listener)

    # ── Search lifecycle ──

    def start_search(self, search_id: str) -> asyncio.Task[None] | None:
        """Drop the current search, side channel included, and poll a new one."""
        with self.preserver.preserving(self.session, teardown=True):
            self.session.begin(search_id, continuous=self.settings.polling.continuous_polling)
        return self.scheduler.start()

    def stop_polling(self) -> None:
        self.scheduler.stop_polling()

    async def wait(self) -> SearchState:
        """Wait for the current primary poll to settle.

        Returns:
            The state after the primary task finished.
        """
        task = self.scheduler.primary_task
        if task is not None:
            await asyncio.gather(task, return_exceptions=True)
        return self.state

    async def load_more(self) -> bool:
        return await self.scheduler.load_more()

    # ── Filters ──

    def apply_filters(self, request: FilterRequest) -> asyncio.Task[None] | None:
        return self.filters.apply_filters(request)

    def clear_filters(self) -> asyncio.Task[None] | None:
        return self.filters.clear_filters()

    # ── Side channel ──

    async def load_side_channel(self, context: AdContext) -> bool:
        """Load ads for the current search. No-op without an ad provider."""
        if self.ad_provider is None:
            logger.debug("No ad provider configured, skipping side channel")
            return False
        return await self.preserver.load(self.session, self.ad_provider, context)
