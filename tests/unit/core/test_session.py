"""Tests for SearchSession state transitions."""

from __future__ import annotations

from conftest import make_batch, make_items

from searchpoll.core.merger import MergeMode
from searchpoll.core.session import SearchSession
from searchpoll.models.filters import FilterRequest
from searchpoll.models.results import Airline
from searchpoll.models.session import SearchPhase, SearchState
from searchpoll.models.side_channel import AdItem, SideChannelData


def _started(search_id: str = "s1") -> SearchSession:
    session = SearchSession()
    session.begin(search_id)
    return session


# ── Lifecycle ──


class TestLifecycle:
    """begin / reset / apply_filter / halt."""

    def test_begin_sets_search_and_bumps_generation(self) -> None:
        session = SearchSession()
        session.begin("abc")
        assert session.search_id == "abc"
        assert session.generation == 1
        assert session.filter_request == FilterRequest()
        assert session.is_filtered is False

    def test_reset_clears_results_and_pagination(self) -> None:
        session = _started()
        session.store_batch(make_batch(make_items(3), count=10, next="c2"))
        session.reset()
        assert session.results == []
        assert session.cursor is None
        assert session.has_more_results is False
        assert session.job.cache_complete is False
        assert session.job.total_count == 0
        assert session.job.poll_count == 0
        assert session.phase is SearchPhase.IDLE
        assert session.generation == 2

    def test_reset_keeps_search_id_and_filter(self) -> None:
        session = _started()
        session.apply_filter(FilterRequest(stop_count_max=0))
        session.reset()
        assert session.search_id == "s1"
        assert session.filter_request.stop_count_max == 0

    def test_apply_filter_marks_filtered(self) -> None:
        session = _started()
        session.apply_filter(FilterRequest(price_max=500))
        assert session.is_filtered is True
        session.apply_filter(FilterRequest())
        assert session.is_filtered is False

    def test_begin_drops_previous_filter(self) -> None:
        session = _started()
        session.apply_filter(FilterRequest(price_max=500))
        session.begin("s2")
        assert session.filter_request == FilterRequest()
        assert session.is_filtered is False

    def test_halt_keeps_results(self) -> None:
        session = _started()
        session.store_batch(make_batch(make_items(5)))
        generation = session.generation
        session.halt()
        assert len(session.results) == 5
        assert session.generation == generation + 1
        assert session.should_continuously_poll is False
        assert session.is_loading is False

    def test_is_current(self) -> None:
        session = _started()
        generation = session.generation
        assert session.is_current(generation)
        session.reset()
        assert not session.is_current(generation)


# ── Poll bookkeeping ──


class TestPollBookkeeping:
    """Budget counting, batches and cache status."""

    def test_consume_poll_stops_at_budget(self) -> None:
        session = _started()
        assert all(session.consume_poll(3) for _ in range(3))
        assert session.consume_poll(3) is False
        assert session.job.poll_count == 3

    def test_store_batch_streaming(self) -> None:
        session = _started()
        session.begin_loading()
        session.store_batch(make_batch(make_items(12), count=40, next="c2"))
        assert len(session.results) == 12
        assert session.job.total_count == 40
        assert session.cursor == "c2"
        assert session.has_more_results is True
        assert session.is_loading is False
        assert session.phase is SearchPhase.STREAMING

    def test_store_batch_cache_complete(self) -> None:
        session = _started()
        session.store_batch(make_batch(make_items(2), cache=True))
        assert session.phase is SearchPhase.CACHE_COMPLETE
        assert session.has_more_results is False

    def test_update_cache_status_reports_flip_once(self) -> None:
        session = _started()
        session.store_batch(make_batch(make_items(3), count=3))
        assert session.update_cache_status(make_batch(make_items(3), count=3)) is False
        assert session.update_cache_status(make_batch(make_items(3), count=45, cache=True)) is True
        assert session.update_cache_status(make_batch(make_items(3), count=45, cache=True)) is False
        assert session.job.total_count == 45

    def test_update_cache_status_leaves_results(self) -> None:
        session = _started()
        session.store_batch(make_batch(make_items(3)))
        session.update_cache_status(make_batch(make_items(10, start=50), count=10, cache=True))
        assert [r.id for r in session.results] == ["r0", "r1", "r2"]

    def test_cache_complete_never_reverts(self) -> None:
        session = _started()
        session.store_batch(make_batch(make_items(3), cache=True))
        session.update_cache_status(make_batch(make_items(3), cache=False))
        assert session.job.cache_complete is True

    def test_merge_batch_dedups(self) -> None:
        session = _started()
        session.store_batch(make_batch(make_items(3), next="c2"))
        session.merge_batch(make_batch(make_items(3, start=2), count=5), MergeMode.APPEND)
        assert [r.id for r in session.results] == ["r0", "r1", "r2", "r3", "r4"]
        assert session.has_more_results is False

    def test_cache_status_follows_page_one_cursor_until_paged(self) -> None:
        session = _started()
        session.store_batch(make_batch(make_items(3), count=9, next="c2"))
        session.update_cache_status(make_batch(make_items(3), count=12, next="c2b"))
        assert session.cursor == "c2b"

        session.merge_batch(make_batch(make_items(3, start=3), count=12, next="c3"), MergeMode.APPEND)
        session.update_cache_status(make_batch(make_items(3), count=12, next="c2b"))
        assert session.cursor == "c3"
        assert session.job.pages_loaded == 1
        assert session.job.total_count == 12

    def test_reset_clears_pages_loaded(self) -> None:
        session = _started()
        session.store_batch(make_batch(make_items(3), next="c2"))
        session.merge_batch(make_batch(make_items(3, start=3), next="c3"), MergeMode.APPEND)
        session.reset()
        assert session.job.pages_loaded == 0

    def test_metadata_facets_absorbed(self) -> None:
        session = _started()
        batch = make_batch(make_items(1))
        batch = batch.model_copy(update={"airlines": [Airline(airline_name="Emirates", airline_iata="EK")]})
        session.store_batch(batch)
        assert session.airlines[0].airline_iata == "EK"

    def test_restore_results(self) -> None:
        session = _started()
        previous = make_items(4)
        session.apply_filter(FilterRequest(stop_count_max=0))
        session.restore_results(previous)
        assert len(session.results) == 4
        assert session.is_loading is False
        assert session.error_message is None


# ── Errors ──


class TestErrors:
    def test_fail_keeps_results(self) -> None:
        session = _started()
        session.store_batch(make_batch(make_items(2)))
        session.fail("boom")
        assert session.error_message == "boom"
        assert session.phase is SearchPhase.FAILED
        assert len(session.results) == 2

    def test_abort_stops_continuous_polling(self) -> None:
        session = _started()
        session.abort("Search timed out")
        assert session.phase is SearchPhase.ABORTED
        assert session.should_continuously_poll is False

    def test_report_error_keeps_phase(self) -> None:
        session = _started()
        session.store_batch(make_batch(make_items(2), next="c2"))
        session.start_loading_more()
        session.report_error("page failed")
        assert session.phase is SearchPhase.STREAMING
        assert session.is_loading_more is False
        assert session.error_message == "page failed"

    def test_begin_loading_clears_error(self) -> None:
        session = _started()
        session.fail("boom")
        session.begin_loading()
        assert session.error_message is None
        assert session.phase is SearchPhase.INITIAL_POLLING


# ── Subscribers ──


class TestSubscribers:
    def test_listener_receives_snapshots(self) -> None:
        session = SearchSession()
        seen: list[SearchState] = []
        session.subscribe(seen.append)
        session.begin("s1")
        assert seen
        assert seen[-1].search_id == "s1"

    def test_unsubscribe(self) -> None:
        session = SearchSession()
        seen: list[SearchState] = []
        unsubscribe = session.subscribe(seen.append)
        unsubscribe()
        session.begin("s1")
        assert seen == []

    def test_batched_emits_once(self) -> None:
        session = _started()
        seen: list[SearchState] = []
        session.subscribe(seen.append)
        with session.batched():
            session.reset()
            session.set_side_channel(SideChannelData(items=[AdItem(headline="ad")], loaded=True))
        assert len(seen) == 1
        assert seen[0].side_channel.loaded is True

    def test_failing_listener_does_not_break_others(self) -> None:
        session = SearchSession()
        seen: list[SearchState] = []

        def _broken(state: SearchState) -> None:
            raise RuntimeError("listener bug")

        session.subscribe(_broken)
        session.subscribe(seen.append)
        session.begin("s1")
        assert seen

    def test_snapshot_is_detached(self) -> None:
        session = _started()
        session.store_batch(make_batch(make_items(2)))
        state = session.snapshot()
        session.reset()
        assert len(state.results) == 2

    def test_elapsed_uses_clock(self) -> None:
        ticks = iter([10.0, 14.5])
        session = SearchSession(clock=lambda: next(ticks))
        session.begin("s1")
        assert session.elapsed == 4.5
