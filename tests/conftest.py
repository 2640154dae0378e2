"""Shared test fixtures and configuration."""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from typing import Any

import pytest

from searchpoll.config.settings import PollSettings, Settings
from searchpoll.core.scheduler import PollScheduler
from searchpoll.core.session import SearchSession
from searchpoll.models.filters import FilterRequest
from searchpoll.models.results import Batch, ResultItem
from searchpoll.transport.base.transport import PollTransport

# ── Builders ─────────────────────────────────────────────────────────────────


def make_items(count: int, start: int = 0, **flags: Any) -> list[ResultItem]:
    """``count`` results with ids ``r<start>`` … and ascending prices."""
    return [ResultItem(id=f"r{i}", price=100.0 + i, duration=60 + i, **flags) for i in range(start, start + count)]


def make_batch(
    items: list[ResultItem] | None = None,
    *,
    count: int | None = None,
    cache: bool = False,
    next: str | None = None,
) -> Batch:
    items = items or []
    return Batch(results=items, count=len(items) if count is None else count, cache=cache, next=next)


# ── Fakes ────────────────────────────────────────────────────────────────────


Response = Batch | Exception


class FakeTransport(PollTransport):
    """Scripted poll backend.

    Responses are consumed in order; the last one repeats once the script
    runs out. An exception in the script is raised instead of returned.
    Calls can be held open with :meth:`hold_next` to simulate slow requests.
    """

    def __init__(
        self,
        responses: list[Response] | None = None,
        cursor_responses: list[Response] | None = None,
    ) -> None:
        self.responses: list[Response] = list(responses or [make_batch(cache=True)])
        self.cursor_responses: list[Response] = list(cursor_responses or [make_batch(cache=True)])
        self.calls: list[dict[str, Any]] = []
        self.started = asyncio.Event()
        self._gates: list[asyncio.Event] = []

    @property
    def name(self) -> str:
        return "fake"

    def hold_next(self) -> asyncio.Event:
        """Block the next call until the returned event is set."""
        gate = asyncio.Event()
        self._gates.append(gate)
        return gate

    @property
    def poll_calls(self) -> list[dict[str, Any]]:
        return [c for c in self.calls if c["kind"] == "poll"]

    @property
    def cursor_calls(self) -> list[dict[str, Any]]:
        return [c for c in self.calls if c["kind"] == "cursor"]

    async def poll(
        self,
        search_id: str,
        filter_request: FilterRequest,
        *,
        page: int = 1,
        limit: int = 30,
    ) -> Batch:
        self.calls.append(
            {"kind": "poll", "search_id": search_id, "filter": filter_request, "page": page, "limit": limit}
        )
        return await self._respond(self.responses)

    async def poll_by_cursor(self, cursor: str, filter_request: FilterRequest) -> Batch:
        self.calls.append({"kind": "cursor", "cursor": cursor, "filter": filter_request})
        return await self._respond(self.cursor_responses)

    async def _respond(self, script: list[Response]) -> Batch:
        # The response is picked when the call is made, not when it returns.
        response = script.pop(0) if len(script) > 1 else script[0]
        if self._gates:
            gate = self._gates.pop(0)
            self.started.set()
            await gate.wait()
        if isinstance(response, Exception):
            raise response
        return response


class RecordingSleep:
    """Drop-in for ``asyncio.sleep`` that records delays and returns at once."""

    def __init__(self, hook: Callable[[float], None] | None = None) -> None:
        self.delays: list[float] = []
        self._hook = hook

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)
        if self._hook is not None:
            self._hook(delay)
        await asyncio.sleep(0)


# ── Fixtures ─────────────────────────────────────────────────────────────────


@pytest.fixture
def settings() -> Settings:
    """Create a test Settings instance with defaults."""
    return Settings(
        _env_file=None,  # type: ignore[call-arg]
        debug=True,
    )


@pytest.fixture
def poll_settings(settings: Settings) -> PollSettings:
    return settings.polling


@pytest.fixture
def session() -> SearchSession:
    return SearchSession()


@pytest.fixture
def sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def scheduler(
    session: SearchSession,
    transport: FakeTransport,
    poll_settings: PollSettings,
    sleep: RecordingSleep,
) -> PollScheduler:
    return PollScheduler(session, transport, poll_settings, sleep=sleep)
