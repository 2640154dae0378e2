"""Poll Scheduler — Drives a search from its first poll to a complete cache.

State machine per generation::

    idle → initial_polling → {retrying → initial_polling}* → streaming
         → final_polling → cache_complete

    streaming       self-loops on cache checks while the cache is incomplete
    final_polling   entered at most once, only for unfiltered searches
    any state       → aborted   when the global poll budget runs out
    any state       → idle      on a new search id, a filter change or stop

The primary poll of each generation runs as one asyncio task. Every await
is followed by a generation check; a task whose generation is no longer
current returns without touching the session. Delays go through the
injected ``sleep`` coroutine so tests can run the machine without waiting.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable

from searchpoll.config.settings import PollSettings
from searchpoll.core.exceptions import (
    BudgetExhaustedError,
    EmptyResultTransient,
    ReconciliationPollError,
    RetriesExhaustedError,
    SearchPollError,
)
from searchpoll.core.merger import MergeMode
from searchpoll.core.session import SearchSession
from searchpoll.models.results import Batch
from searchpoll.models.session import SearchPhase
from searchpoll.transport.base.exceptions import (
    InvalidSearchIdError,
    TransportError,
    TransportNotInitializedError,
)
from searchpoll.transport.base.transport import PollTransport

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[None]]
FailureHandler = Callable[[SearchPollError], None]


class PollScheduler:
    """Issues and sequences every poll of a session.

    At most one primary poll (initial, retry, cache check, reconciliation)
    and at most one load-more poll are in flight per generation. Duplicate
    requests are rejected, not queued.

    Args:
        session: The session this scheduler mutates.
        transport: Poll backend.
        settings: Page sizes and budgets.
        sleep: Delay coroutine, ``asyncio.sleep`` by default.
    """

    def __init__(
        self,
        session: SearchSession,
        transport: PollTransport,
        settings: PollSettings,
        *,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self._session = session
        self._transport = transport
        self._settings = settings
        self._budget = settings.budget
        self._sleep = sleep
        self._primary: asyncio.Task[None] | None = None
        self._tasks: set[asyncio.Task[None]] = set()

    @property
    def primary_task(self) -> asyncio.Task[None] | None:
        """Task running the current (or most recent) primary poll."""
        return self._primary

    # ──────────────────────────────────────────────────────────────────────
    # Primary polling
    # ──────────────────────────────────────────────────────────────────────

    def start(self, *, on_failure: FailureHandler | None = None) -> asyncio.Task[None] | None:
        """Launch the primary poll for the session's current generation.

        Must be called from the event loop that owns the session.

        Args:
            on_failure: Called instead of failing the session when the
                initial poll exhausts its retries.

        Returns:
            The polling task, or None if the request was rejected.
        """
        session = self._session
        if not session.search_id:
            session.fail("Invalid search ID")
            logger.warning("Refusing to poll without a search id")
            return None
        if session.is_loading:
            logger.debug("Primary poll already in flight (generation %d)", session.generation)
            return None

        session.begin_loading()
        generation = session.generation
        logger.info(
            "Starting poll: search_id=%s, generation=%d, filtered=%s",
            session.search_id,
            generation,
            session.is_filtered,
        )

        task = asyncio.get_running_loop().create_task(self._run_primary(generation, on_failure))
        self._primary = task
        self._track(task)
        return task

    def stop_polling(self) -> None:
        """Stop background polling. In-flight completions become no-ops."""
        self._session.halt()
        logger.info("Polling stopped (generation now %d)", self._session.generation)

    async def aclose(self) -> None:
        """Cancel every outstanding polling task."""
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._tasks.clear()

    async def _run_primary(self, generation: int, on_failure: FailureHandler | None) -> None:
        batch = await self._initial_poll(generation, on_failure)
        if batch is None or not self._session.is_current(generation):
            return
        if self._session.job.cache_complete:
            return
        if not self._continuous_allowed():
            logger.debug("Cache checks suspended (generation %d)", generation)
            return
        await self._check_cache_loop(generation)

    async def _initial_poll(self, generation: int, on_failure: FailureHandler | None) -> Batch | None:
        session = self._session
        limit = self._settings.initial_page_size

        while True:
            try:
                batch = await self._fetch(
                    generation,
                    lambda: self._transport.poll(session.search_id or "", session.filter_request, page=1, limit=limit),
                    "Initial",
                )
            except (InvalidSearchIdError, TransportNotInitializedError) as e:
                if session.is_current(generation):
                    logger.error("Initial poll failed: %s", e)
                    session.fail(str(e))
                return None
            except RetriesExhaustedError as e:
                if session.is_current(generation):
                    logger.error("Initial poll gave up: %s", e)
                    if on_failure is not None:
                        on_failure(e)
                    else:
                        session.fail(str(e))
                return None

            if batch is None:
                return None

            try:
                self._ensure_definitive(batch)
            except EmptyResultTransient:
                if session.job.retry_count < self._budget.max_retries:
                    session.note_retry()
                    logger.info(
                        "Empty batch while cache fills, retry %d/%d in %.1fs",
                        session.job.retry_count,
                        self._budget.max_retries,
                        self._budget.empty_retry_delay,
                    )
                    await self._sleep(self._budget.empty_retry_delay)
                    if not session.is_current(generation):
                        return None
                    session.set_phase(SearchPhase.INITIAL_POLLING)
                    continue
                logger.info("Still empty after %d retries, treating as definitive", session.job.retry_count)

            session.store_batch(batch)
            logger.info(
                "Initial poll done: %d results (total %d), cache=%s, more=%s, generation=%d",
                len(session.results),
                session.job.total_count,
                session.job.cache_complete,
                session.has_more_results,
                generation,
            )
            return batch

    async def _check_cache_loop(self, generation: int) -> None:
        session = self._session
        limit = self._settings.initial_page_size

        while True:
            await self._sleep(self._budget.cache_check_interval)
            if not session.is_current(generation) or not self._continuous_allowed():
                return

            try:
                batch = await self._fetch(
                    generation,
                    lambda: self._transport.poll(session.search_id or "", session.filter_request, page=1, limit=limit),
                    "Cache check",
                )
            except SearchPollError as e:
                if session.is_current(generation):
                    logger.warning("Cache checks stopped, keeping %d results: %s", len(session.results), e)
                return

            if batch is None:
                return

            if session.update_cache_status(batch):
                logger.info("Cache complete: %d results available (generation %d)", batch.count, generation)
                if not session.is_filtered and not session.has_final_polled:
                    await self._final_poll(generation)
                else:
                    session.set_phase(SearchPhase.CACHE_COMPLETE)
                return

            logger.debug("Cache still filling: %d results so far", batch.count)

    async def _final_poll(self, generation: int) -> None:
        session = self._session
        session.begin_final_poll()
        limit = max(self._settings.reconciliation_min_limit, session.job.total_count)

        try:
            batch = await self._fetch(
                generation,
                lambda: self._transport.poll(session.search_id or "", session.filter_request, page=1, limit=limit),
                "Reconciliation",
                max_retries=0,
            )
        except SearchPollError as e:
            if session.is_current(generation):
                logger.warning("%s", ReconciliationPollError(f"Reconciliation poll failed: {e}"))
                session.set_phase(SearchPhase.CACHE_COMPLETE)
            return

        if batch is None:
            return

        before = len(session.results)
        session.merge_batch(batch, MergeMode.RECONCILE)
        session.set_phase(SearchPhase.CACHE_COMPLETE)
        logger.info(
            "Reconciliation merged %d new results (%d total, limit %d)",
            len(session.results) - before,
            len(session.results),
            limit,
        )

    # ──────────────────────────────────────────────────────────────────────
    # Pagination
    # ──────────────────────────────────────────────────────────────────────

    async def load_more(self) -> bool:
        """Fetch the page after the current cursor and append it.

        Returns:
            True if a page was merged.
        """
        session = self._session
        cursor = session.cursor
        if cursor is None:
            session.end_without_more()
            return False
        if session.is_loading or session.is_loading_more:
            logger.debug("Load more rejected, a load is already in flight")
            return False
        if session.phase is SearchPhase.ABORTED:
            return False

        generation = session.generation
        session.start_loading_more()

        try:
            batch = await self._fetch(
                generation,
                lambda: self._transport.poll_by_cursor(cursor, session.filter_request),
                "Load more",
            )
            if batch is None:
                return False

            before = len(session.results)
            session.merge_batch(batch, MergeMode.APPEND)
            logger.info(
                "Loaded %d more results (%d total), more=%s",
                len(session.results) - before,
                len(session.results),
                session.has_more_results,
            )
            return True
        except SearchPollError as e:
            if session.is_current(generation):
                logger.error("Load more failed: %s", e)
                session.report_error(str(e))
            return False
        finally:
            # Also runs on cancellation, so the indicator never sticks.
            if session.is_current(generation) and session.is_loading_more:
                session.finish_loading_more()

    # ──────────────────────────────────────────────────────────────────────
    # Shared internals
    # ──────────────────────────────────────────────────────────────────────

    async def _fetch(
        self,
        generation: int,
        call: Callable[[], Awaitable[Batch]],
        label: str,
        *,
        max_retries: int | None = None,
    ) -> Batch | None:
        """Issue one logical poll with transport-failure backoff.

        Returns:
            The batch, or None if the generation went stale or the global
            budget ran out (the session is already aborted in that case).

        Raises:
            InvalidSearchIdError, TransportNotInitializedError: never retried.
            RetriesExhaustedError: after ``max_retries`` failed retries.
        """
        session = self._session
        retries = self._budget.max_retries if max_retries is None else max_retries
        failures = 0

        while True:
            if not session.is_current(generation):
                return None
            if not session.consume_poll(self._budget.max_total_polls):
                self._abort()
                return None

            try:
                batch = await call()
            except (InvalidSearchIdError, TransportNotInitializedError):
                raise
            except TransportError as e:
                if not session.is_current(generation):
                    return None
                failures += 1
                if failures > retries:
                    raise RetriesExhaustedError(failures) from e
                delay = self._budget.failure_delay(failures)
                logger.warning(
                    "%s poll failed (attempt %d/%d), retrying in %.1fs: %s",
                    label,
                    failures,
                    retries + 1,
                    delay,
                    e,
                )
                await self._sleep(delay)
                continue

            if not session.is_current(generation):
                logger.debug("Discarding stale %s response (generation %d)", label.lower(), generation)
                return None
            return batch

    def _ensure_definitive(self, batch: Batch) -> None:
        # Zero results with a complete cache is a real answer, not a retry case.
        if not batch.results and not batch.cache:
            raise EmptyResultTransient("Empty batch while the backend cache is incomplete")

    def _continuous_allowed(self) -> bool:
        session = self._session
        return self._settings.continuous_polling and session.should_continuously_poll and not session.is_filtered

    def _abort(self) -> None:
        error = BudgetExhaustedError(self._session.job.poll_count)
        logger.warning("%s after %d polls (%.1fs)", error, error.poll_count, self._session.elapsed)
        self._session.abort(str(error))

    def _track(self, task: asyncio.Task[None]) -> None:
        self._tasks.add(task)
        task.add_done_callback(self._on_task_done)

    def _on_task_done(self, task: asyncio.Task[None]) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("Polling task crashed", exc_info=exc)
