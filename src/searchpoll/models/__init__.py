"""Data models shared by the engine, transports and callers."""

from searchpoll.models.filters import ArrivalDepartureRange, FilterRequest, SortOption, TimeRange
from searchpoll.models.results import Agency, Airline, Batch, FlightSummary, ResultItem
from searchpoll.models.session import SearchJob, SearchPhase, SearchState
from searchpoll.models.side_channel import AdContext, AdItem, AdLeg, SideChannelData

__all__ = [
    "AdContext",
    "AdItem",
    "AdLeg",
    "Agency",
    "Airline",
    "ArrivalDepartureRange",
    "Batch",
    "FilterRequest",
    "FlightSummary",
    "ResultItem",
    "SearchJob",
    "SearchPhase",
    "SearchState",
    "SideChannelData",
    "SortOption",
    "TimeRange",
]
