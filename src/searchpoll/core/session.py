"""Search Session — Single owner of all mutable polling state.

Every field is written only by the methods below, which are called from the
scheduler, the filter coordinator and the side-channel preserver on the
event loop that owns the session. After each mutation the session emits a
fresh ``SearchState`` snapshot to its subscribers.

The generation id is the staleness token: anything that awaited I/O must
compare the generation it captured with ``SearchSession.generation`` before
touching the session again.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Iterator
from contextlib import contextmanager

from searchpoll.core.merger import MergeMode, ResultMerger
from searchpoll.models.filters import FilterRequest
from searchpoll.models.results import Agency, Airline, Batch, ResultItem
from searchpoll.models.session import SearchJob, SearchPhase, SearchState
from searchpoll.models.side_channel import SideChannelData

logger = logging.getLogger(__name__)

StateListener = Callable[[SearchState], None]


class SearchSession:
    """Mutable state of one search, tagged with a generation id.

    Attributes are public for reading. Write them only through methods.
    """

    def __init__(self, *, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._listeners: list[StateListener] = []
        self._held = 0

        self.job = SearchJob()
        self.results: list[ResultItem] = []
        self.is_filtered = False
        self.is_loading = False
        self.is_loading_more = False
        self.has_more_results = False
        self.has_final_polled = False
        self.should_continuously_poll = True
        self.error_message: str | None = None
        self.phase = SearchPhase.IDLE
        self.airlines: list[Airline] = []
        self.agencies: list[Agency] = []
        self.side_channel = SideChannelData()

    # ── Reading ──

    @property
    def generation(self) -> int:
        return self.job.generation

    @property
    def search_id(self) -> str | None:
        return self.job.search_id

    @property
    def filter_request(self) -> FilterRequest:
        return self.job.filter_request

    @property
    def cursor(self) -> str | None:
        return self.job.cursor

    @property
    def elapsed(self) -> float:
        """Seconds since the current generation started."""
        return self._clock() - self.job.start_time

    def is_current(self, generation: int) -> bool:
        return generation == self.job.generation

    def snapshot(self) -> SearchState:
        return SearchState(
            search_id=self.job.search_id,
            results=list(self.results),
            is_loading=self.is_loading,
            is_loading_more=self.is_loading_more,
            has_more_results=self.has_more_results,
            total_results_count=self.job.total_count,
            is_cache_complete=self.job.cache_complete,
            error_message=self.error_message,
            phase=self.phase,
            generation=self.job.generation,
            poll_count=self.job.poll_count,
            is_filtered=self.is_filtered,
            airlines=list(self.airlines),
            agencies=list(self.agencies),
            side_channel=self.side_channel.model_copy(deep=True),
        )

    # ── Subscribers ──

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        """Register a state listener.

        Returns:
            A callable that unsubscribes the listener.
        """
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    @contextmanager
    def batched(self) -> Iterator[None]:
        """Emit a single snapshot for all mutations made inside the block."""
        self._held += 1
        try:
            yield
        finally:
            self._held -= 1
            if not self._held:
                self._emit()

    def _emit(self) -> None:
        if self._held or not self._listeners:
            return
        state = self.snapshot()
        for listener in list(self._listeners):
            try:
                listener(state)
            except Exception:
                logger.warning("State listener raised", exc_info=True)

    # ── Lifecycle ──

    def reset(self) -> None:
        """Start a new generation with empty results.

        Keeps the search id, filter and continuation flag. Side-channel data
        is cleared too; wrap the call in ``SideChannelPreserver.preserving``
        to keep it.
        """
        self.job = SearchJob(
            search_id=self.job.search_id,
            filter_request=self.job.filter_request,
            generation=self.job.generation + 1,
            start_time=self._clock(),
        )
        self.results = []
        self.is_loading = False
        self.is_loading_more = False
        self.has_more_results = False
        self.has_final_polled = False
        self.error_message = None
        self.phase = SearchPhase.IDLE
        self.airlines = []
        self.agencies = []
        self.side_channel = SideChannelData()
        self._emit()

    def begin(self, search_id: str, *, continuous: bool = True) -> None:
        """Switch to a new search id with no filters."""
        self.job = self.job.model_copy(update={"search_id": search_id, "filter_request": FilterRequest()})
        self.is_filtered = False
        self.should_continuously_poll = continuous
        self.reset()

    def apply_filter(self, request: FilterRequest) -> None:
        """Reset and adopt a new filter predicate."""
        self.job = self.job.model_copy(update={"filter_request": request})
        self.is_filtered = request.has_filters()
        self.reset()

    def halt(self) -> None:
        """Stop all polling. Displayed results stay, in-flight work goes stale."""
        self.job = self.job.model_copy(update={"generation": self.job.generation + 1})
        self.should_continuously_poll = False
        self.is_loading = False
        self.is_loading_more = False
        self.phase = SearchPhase.IDLE
        self._emit()

    def set_continuous(self, enabled: bool) -> None:
        self.should_continuously_poll = enabled
        self._emit()

    # ── Polling bookkeeping ──

    def consume_poll(self, max_total_polls: int) -> bool:
        """Count one poll against the global budget.

        Returns:
            False, without counting, if the poll would exceed the budget.
        """
        if self.job.poll_count >= max_total_polls:
            return False
        self.job.poll_count += 1
        return True

    def begin_loading(self) -> None:
        self.is_loading = True
        self.error_message = None
        self.phase = SearchPhase.INITIAL_POLLING
        self._emit()

    def note_retry(self) -> None:
        self.job.retry_count += 1
        self.phase = SearchPhase.RETRYING
        self._emit()

    def set_phase(self, phase: SearchPhase) -> None:
        self.phase = phase
        self._emit()

    def begin_final_poll(self) -> None:
        self.has_final_polled = True
        self.phase = SearchPhase.FINAL_POLLING
        self._emit()

    def advance(self, cursor: str | None) -> None:
        """Move the pagination cursor; ``None`` means no more pages."""
        self.job.cursor = cursor
        self.has_more_results = cursor is not None

    def store_batch(self, batch: Batch) -> None:
        """Adopt a definitive first page and stop the loading indicator."""
        self.results = ResultMerger.append([], batch.results)
        self._absorb_metadata(batch)
        self.advance(batch.next)
        self.is_loading = False
        self.phase = SearchPhase.CACHE_COMPLETE if self.job.cache_complete else SearchPhase.STREAMING
        self._emit()

    def update_cache_status(self, batch: Batch) -> bool:
        """Apply a cache check response without touching results.

        Returns:
            True if the cache flag flipped to complete on this call.
        """
        was_complete = self.job.cache_complete
        self._absorb_metadata(batch)
        # Page 1's cursor would rewind pagination once load_more has moved past it.
        if not self.job.pages_loaded:
            self.advance(batch.next)
        self._emit()
        return not was_complete and self.job.cache_complete

    def merge_batch(self, batch: Batch, mode: MergeMode) -> None:
        """Fold a page into the results and move the cursor."""
        self.results = ResultMerger.merge(self.results, batch.results, mode)
        self.job.total_count = batch.count
        if mode is MergeMode.APPEND:
            self.job.pages_loaded += 1
        self.advance(batch.next)
        self._emit()

    def start_loading_more(self) -> None:
        self.is_loading_more = True
        self._emit()

    def finish_loading_more(self) -> None:
        self.is_loading_more = False
        self._emit()

    def end_without_more(self) -> None:
        """Record that there is nothing left to paginate."""
        self.has_more_results = False
        self._emit()

    def restore_results(self, results: list[ResultItem]) -> None:
        """Put back results from before a failed filter application."""
        self.results = list(results)
        self.advance(None)
        self.is_loading = False
        self.phase = SearchPhase.IDLE
        self._emit()

    def fail(self, message: str, phase: SearchPhase = SearchPhase.FAILED) -> None:
        """Enter a terminal error state. Results stay as they are."""
        self.error_message = message
        self.is_loading = False
        self.is_loading_more = False
        self.phase = phase
        self._emit()

    def report_error(self, message: str) -> None:
        """Surface an error from a pagination load without leaving the phase."""
        self.error_message = message
        self.is_loading_more = False
        self._emit()

    def abort(self, message: str) -> None:
        self.should_continuously_poll = False
        self.fail(message, SearchPhase.ABORTED)

    # ── Side channel ──

    def set_side_channel(self, data: SideChannelData) -> None:
        self.side_channel = data.model_copy(deep=True)
        self._emit()

    def clear_side_channel(self) -> None:
        self.side_channel = SideChannelData()
        self._emit()

    def _absorb_metadata(self, batch: Batch) -> None:
        # cache_complete never flips back within a generation.
        self.job.cache_complete = self.job.cache_complete or batch.cache
        self.job.total_count = batch.count
        if batch.airlines:
            self.airlines = list(batch.airlines)
        if batch.agencies:
            self.agencies = list(batch.agencies)
