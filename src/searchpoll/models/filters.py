"""Filter request model — The mutable predicate applied to a running search.

The wire shape mirrors the poll API body: every field is optional and only
fields the user actually set are sent.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class SortOption(str, Enum):
    """User-facing sort choices."""

    BEST = "best"
    CHEAPEST = "cheapest"
    QUICKEST = "quickest"
    EARLIEST = "earliest"

    @property
    def sort_params(self) -> tuple[str, str]:
        """The ``(sort_by, sort_order)`` pair sent to the backend."""
        return _SORT_PARAMS[self]


_SORT_PARAMS: dict[SortOption, tuple[str, str]] = {
    SortOption.BEST: ("quality", "desc"),
    SortOption.CHEAPEST: ("price", "asc"),
    SortOption.QUICKEST: ("duration", "asc"),
    SortOption.EARLIEST: ("departure", "asc"),
}


class TimeRange(BaseModel):
    """Time window in seconds since midnight."""

    min: int = Field(default=0, ge=0, description="Window start")
    max: int = Field(default=86400, ge=0, description="Window end")


class ArrivalDepartureRange(BaseModel):
    """Departure and arrival windows for one leg."""

    arrival: TimeRange = Field(default_factory=TimeRange)
    departure: TimeRange = Field(default_factory=TimeRange)


class FilterRequest(BaseModel):
    """Filter predicate carried by every poll of a generation.

    An empty ``FilterRequest()`` means "no filters" and is what initial and
    cleared searches send.
    """

    model_config = {"frozen": True}

    sort_by: str | None = Field(default=None, description="Sort key (quality, price, duration, departure)")
    sort_order: str | None = Field(default=None, description="Sort order: asc or desc")
    duration_max: int | None = Field(default=None, ge=0, description="Maximum total duration in minutes")
    stop_count_min: int | None = Field(default=None, ge=0, description="Minimum number of stops")
    stop_count_max: int | None = Field(default=None, ge=0, description="Maximum number of stops")
    stop_count_exact: int | None = Field(default=None, ge=0, description="Exact number of stops")
    price_min: int | None = Field(default=None, ge=0, description="Minimum price")
    price_max: int | None = Field(default=None, ge=0, description="Maximum price")
    iata_codes_include: list[str] | None = Field(default=None, description="Airlines to include")
    iata_codes_exclude: list[str] | None = Field(default=None, description="Airlines to exclude")
    arrival_departure_ranges: list[ArrivalDepartureRange] | None = Field(
        default=None,
        description="Per-leg time windows, outbound first",
    )
    agency_include: list[str] | None = Field(default=None, description="Agencies to include")
    agency_exclude: list[str] | None = Field(default=None, description="Agencies to exclude")

    def has_filters(self) -> bool:
        """True iff any field is set. Empty lists count as unset."""
        return bool(self.to_wire())

    def with_sort(self, option: SortOption) -> FilterRequest:
        """Return a copy sorted by the given option."""
        sort_by, sort_order = option.sort_params
        return self.model_copy(update={"sort_by": sort_by, "sort_order": sort_order})

    def to_wire(self) -> dict[str, Any]:
        """Build the poll request body, omitting everything the user left unset."""
        params: dict[str, Any] = {}

        if self.sort_by is not None:
            params["sort_by"] = self.sort_by
        if self.sort_order is not None:
            params["sort_order"] = self.sort_order
        if self.duration_max is not None:
            params["duration_max"] = self.duration_max

        # Exact stop count is expressed as a closed [n, n] range.
        if self.stop_count_exact is not None:
            params["stop_count_exact"] = self.stop_count_exact
            params["stop_count_min"] = self.stop_count_exact
            params["stop_count_max"] = self.stop_count_exact
        else:
            if self.stop_count_min is not None:
                params["stop_count_min"] = self.stop_count_min
            if self.stop_count_max is not None:
                params["stop_count_max"] = self.stop_count_max

        if self.price_min is not None:
            params["price_min"] = self.price_min
        if self.price_max is not None:
            params["price_max"] = self.price_max

        for key in ("iata_codes_include", "iata_codes_exclude", "agency_include", "agency_exclude"):
            values = getattr(self, key)
            if values:
                params[key] = list(values)

        if self.arrival_departure_ranges:
            params["arrival_departure_ranges"] = [r.model_dump() for r in self.arrival_departure_ranges]

        return params

    def summary(self) -> str:
        """Short human-readable description of the active filters."""
        if not self.has_filters():
            return "No filters active"

        parts: list[str] = []
        stops = self.stop_count_exact if self.stop_count_exact is not None else self.stop_count_max
        if stops is not None:
            if stops == 0:
                parts.append("Direct only")
            elif self.stop_count_exact is not None:
                parts.append(f"exactly {stops} stops")
            else:
                parts.append(f"<= {stops} stops")
        if self.duration_max is not None:
            parts.append(f"<= {self.duration_max // 60}h")
        if self.price_min is not None:
            parts.append(f">= {self.price_min}")
        if self.price_max is not None:
            parts.append(f"<= {self.price_max}")
        if self.iata_codes_include:
            parts.append(f"{len(self.iata_codes_include)} airlines")
        if self.iata_codes_exclude:
            parts.append(f"{len(self.iata_codes_exclude)} airlines excluded")
        if self.agency_include or self.agency_exclude:
            parts.append("agencies")
        if self.sort_by is not None:
            parts.append(f"Sort: {self.sort_by}")
        if self.arrival_departure_ranges:
            parts.append("Time filters")
        return ", ".join(parts)
