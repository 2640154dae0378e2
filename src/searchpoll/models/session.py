"""Session models — The per-search job record and its observable snapshot."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field

from searchpoll.models.filters import FilterRequest
from searchpoll.models.results import Agency, Airline, ResultItem
from searchpoll.models.side_channel import SideChannelData


class SearchPhase(str, Enum):
    """Polling state of the current generation."""

    IDLE = "idle"
    INITIAL_POLLING = "initial_polling"
    RETRYING = "retrying"
    STREAMING = "streaming"
    FINAL_POLLING = "final_polling"
    CACHE_COMPLETE = "cache_complete"
    ABORTED = "aborted"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (SearchPhase.CACHE_COMPLETE, SearchPhase.ABORTED, SearchPhase.FAILED)


class SearchJob(BaseModel):
    """Bookkeeping for one search id within one generation."""

    search_id: str | None = Field(default=None, description="Opaque search token")
    filter_request: FilterRequest = Field(default_factory=FilterRequest)
    cursor: str | None = Field(default=None, description="Opaque next-page token")
    cache_complete: bool = False
    total_count: int = 0
    poll_count: int = Field(default=0, description="Polls issued in this generation, all strategies")
    retry_count: int = Field(default=0, description="Empty-result retries in this generation")
    pages_loaded: int = Field(default=0, description="Cursor pages appended in this generation")
    generation: int = Field(default=0, description="Bumped on every reset")
    start_time: float = Field(default=0.0, description="Monotonic time the job started")


class SearchState(BaseModel):
    """Immutable snapshot handed to the presentation layer."""

    model_config = {"frozen": True}

    search_id: str | None = None
    results: list[ResultItem] = Field(default_factory=list)
    is_loading: bool = False
    is_loading_more: bool = False
    has_more_results: bool = False
    total_results_count: int = 0
    is_cache_complete: bool = False
    error_message: str | None = None
    phase: SearchPhase = SearchPhase.IDLE
    generation: int = 0
    poll_count: int = 0
    is_filtered: bool = False
    airlines: list[Airline] = Field(default_factory=list)
    agencies: list[Agency] = Field(default_factory=list)
    side_channel: SideChannelData = Field(default_factory=SideChannelData)
