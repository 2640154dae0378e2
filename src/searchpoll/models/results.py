"""Poll response models — Result items and the batches that carry them.

Field names follow the poll API; a few are exposed under shorter names
(``price`` for ``min_price``, ``duration`` for ``total_duration``) and accept
either spelling on input.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class ResultItem(BaseModel):
    """A single itinerary returned by the poll API.

    Only ``id`` and the ranking attributes matter to the engine; legs and
    providers are passed through untouched for the presentation layer.
    """

    model_config = {"populate_by_name": True, "frozen": True}

    id: str = Field(description="Unique itinerary identifier")
    is_best: bool = Field(default=False, description="Backend flagged this as the best option")
    is_cheapest: bool = Field(default=False, description="Backend flagged this as the cheapest option")
    is_fastest: bool = Field(default=False, description="Backend flagged this as the fastest option")
    price: float = Field(default=0.0, alias="min_price", description="Lowest price across providers")
    max_price: float = Field(default=0.0, description="Highest price across providers")
    duration: int = Field(default=0, alias="total_duration", description="Total duration in minutes")
    legs: list[dict[str, Any]] = Field(default_factory=list, description="Leg payloads")
    providers: list[dict[str, Any]] = Field(default_factory=list, description="Booking provider payloads")


class Airline(BaseModel):
    """Airline facet used to build airline filters."""

    airline_name: str = Field(alias="airlineName")
    airline_iata: str = Field(alias="airlineIata")
    airline_logo: str = Field(default="", alias="airlineLogo")

    model_config = {"populate_by_name": True}


class Agency(BaseModel):
    """Booking agency facet used to build agency filters."""

    code: str
    name: str
    image: str = ""


class FlightSummary(BaseModel):
    """Price and duration of a highlighted itinerary."""

    price: float = 0.0
    duration: int = 0


class Batch(BaseModel):
    """One poll response.

    ``cache`` is the backend's cache-complete flag and ``next`` the opaque
    cursor for the following page (``None`` on the last page).
    """

    results: list[ResultItem] = Field(default_factory=list)
    count: int = Field(default=0, description="Total results available for the current filter")
    cache: bool = Field(default=False, description="Backend result cache is fully populated")
    next: str | None = Field(default=None, description="Cursor for the next page")
    previous: str | None = Field(default=None, description="Cursor for the previous page")
    passenger_count: int = 0
    airlines: list[Airline] = Field(default_factory=list)
    agencies: list[Agency] = Field(default_factory=list)
    min_duration: int = 0
    max_duration: int = 0
    min_price: float = 0.0
    max_price: float = 0.0
    cheapest_flight: FlightSummary | None = None
    best_flight: FlightSummary | None = None
    fastest_flight: FlightSummary | None = None
