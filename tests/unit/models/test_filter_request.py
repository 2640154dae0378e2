"""Tests for the filter request model."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from searchpoll.models.filters import ArrivalDepartureRange, FilterRequest, SortOption, TimeRange


class TestHasFilters:
    def test_empty_request(self) -> None:
        assert FilterRequest().has_filters() is False

    def test_empty_lists_count_as_unset(self) -> None:
        assert FilterRequest(iata_codes_include=[], agency_exclude=[]).has_filters() is False

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"sort_by": "price"},
            {"duration_max": 600},
            {"stop_count_max": 0},
            {"price_min": 100},
            {"iata_codes_exclude": ["EK"]},
            {"arrival_departure_ranges": [ArrivalDepartureRange()]},
        ],
    )
    def test_any_field_counts(self, kwargs: dict) -> None:
        assert FilterRequest(**kwargs).has_filters() is True


class TestToWire:
    """Only fields the user set reach the request body."""

    def test_empty_body(self) -> None:
        assert FilterRequest().to_wire() == {}

    def test_sets_only_given_fields(self) -> None:
        wire = FilterRequest(stop_count_max=1, price_max=800).to_wire()
        assert wire == {"stop_count_max": 1, "price_max": 800}

    def test_exact_stops_become_closed_range(self) -> None:
        wire = FilterRequest(stop_count_exact=2, stop_count_min=0).to_wire()
        assert wire["stop_count_exact"] == 2
        assert wire["stop_count_min"] == 2
        assert wire["stop_count_max"] == 2

    def test_time_ranges_serialized(self) -> None:
        ranges = [ArrivalDepartureRange(departure=TimeRange(min=21600, max=43200))]
        wire = FilterRequest(arrival_departure_ranges=ranges).to_wire()
        assert wire["arrival_departure_ranges"] == [
            {"arrival": {"min": 0, "max": 86400}, "departure": {"min": 21600, "max": 43200}}
        ]

    def test_lists_copied(self) -> None:
        request = FilterRequest(iata_codes_include=["EK", "QR"])
        wire = request.to_wire()
        wire["iata_codes_include"].append("LH")
        assert request.iata_codes_include == ["EK", "QR"]


class TestSort:
    @pytest.mark.parametrize(
        ("option", "expected"),
        [
            (SortOption.BEST, ("quality", "desc")),
            (SortOption.CHEAPEST, ("price", "asc")),
            (SortOption.QUICKEST, ("duration", "asc")),
            (SortOption.EARLIEST, ("departure", "asc")),
        ],
    )
    def test_sort_params(self, option: SortOption, expected: tuple[str, str]) -> None:
        assert option.sort_params == expected

    def test_with_sort_returns_copy(self) -> None:
        base = FilterRequest(stop_count_max=0)
        sorted_request = base.with_sort(SortOption.CHEAPEST)
        assert sorted_request.sort_by == "price"
        assert sorted_request.stop_count_max == 0
        assert base.sort_by is None


class TestSummary:
    def test_no_filters(self) -> None:
        assert FilterRequest().summary() == "No filters active"

    def test_direct_only(self) -> None:
        assert FilterRequest(stop_count_max=0).summary() == "Direct only"

    def test_combined(self) -> None:
        request = FilterRequest(stop_count_max=1, duration_max=720, sort_by="price")
        assert request.summary() == "<= 1 stops, <= 12h, Sort: price"


class TestValidation:
    def test_frozen(self) -> None:
        request = FilterRequest()
        with pytest.raises(ValidationError):
            request.price_max = 10  # type: ignore[misc]

    def test_negative_values_rejected(self) -> None:
        with pytest.raises(ValidationError):
            FilterRequest(stop_count_max=-1)

    def test_parse_json(self) -> None:
        request = FilterRequest.model_validate_json('{"stop_count_max": 0, "iata_codes_exclude": ["EK"]}')
        assert request.stop_count_max == 0
        assert request.iata_codes_exclude == ["EK"]
