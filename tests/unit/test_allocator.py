"""Tests for night allocation and allocation mutations."""

from datetime import date

import pytest

from backend.app.models.common import TRANSIT_MARKER, AllocationState, Pace, TransportMode
from backend.app.models.timeline import TripWindow
from backend.app.models.trip import TripPreferences
from backend.app.timeline import allocator
from backend.app.timeline.errors import AllocationIndexError, InsufficientDurationError

START = date(2025, 3, 1)


def assert_partitions(allocations, total_days: int) -> None:
    """Day ranges are contiguous, ordered and cover [1, total_days] once."""
    assert allocations[0].start_day == 1
    for prev, nxt in zip(allocations, allocations[1:]):
        assert nxt.start_day == prev.end_day + 1
    assert allocations[-1].end_day == total_days


class TestAllocateDays:
    """Test allocate_days."""

    def test_lisbon_porto_week(self) -> None:
        """Seven days over Lisbon and Porto: transit, 3 nights Lisbon, 2 nights Porto."""
        allocations = allocator.allocate_days(["Lisbon", "Porto"], 6, START)

        assert [(a.city, a.nights, a.start_day, a.end_day) for a in allocations] == [
            (TRANSIT_MARKER, 1, 1, 1),
            ("Lisbon", 3, 2, 4),
            ("Porto", 2, 5, 7),
        ]
        lisbon = allocations[1]
        assert lisbon.start_date == date(2025, 3, 2)
        assert lisbon.end_date == date(2025, 3, 5)
        assert allocations[-1].end_date == date(2025, 3, 7)

    @pytest.mark.parametrize(
        ("cities", "total_nights"),
        [
            (["Lisbon", "Porto"], 6),
            (["Tokyo", "Kyoto", "Osaka", "Nara"], 13),
            (["Bangkok", "Chiang Mai", "Phuket"], 20),
            (["Barcelona", "Madrid", "Seville", "Granada", "Valencia"], 4),
            (["Atlantis", "Lisbon"], 30),
            (["Paris"], 1),
        ],
    )
    def test_nights_sum_and_days_partition(self, cities: list[str], total_nights: int) -> None:
        """Nights always sum to the budget and ranges partition the trip."""
        allocations = allocator.allocate_days(cities, total_nights, START)

        assert sum(a.nights for a in allocations) == total_nights
        assert all(a.nights >= 1 for a in allocations)
        assert_partitions(allocations, total_nights + 1)

    def test_short_trip_keeps_leading_cities(self) -> None:
        """Fewer nights than cities keeps the first cities at one night each."""
        allocations = allocator.allocate_days(["Rome", "Florence", "Venice"], 3, START)

        assert allocator.stay_cities(allocations) == ["Rome", "Florence"]
        assert [a.nights for a in allocations] == [1, 1, 1]

        status = allocator.allocation_status(
            allocations, TripWindow(start_date=START, total_days=4), ["Rome", "Florence", "Venice"]
        )
        assert status.dropped_cities == ["Venice"]
        assert status.state == AllocationState.balanced

    def test_single_night_is_transit_only(self) -> None:
        allocations = allocator.allocate_days(["Lisbon"], 1, START)

        assert len(allocations) == 1
        assert allocations[0].is_transit

    def test_zero_nights_raises(self) -> None:
        with pytest.raises(InsufficientDurationError) as exc_info:
            allocator.allocate_days(["Lisbon"], 0, START)

        assert exc_info.value.total_nights == 0

    def test_no_cities(self) -> None:
        assert allocator.allocate_days([], 5, START) == []

    def test_shortfall_goes_to_first_of_equal_recommendations(self) -> None:
        """Unknown cities share the default; ties resolve in city order."""
        allocations = allocator.allocate_days(["Alpha", "Beta", "Gamma"], 5, START)

        assert [a.nights for a in allocations[1:]] == [2, 1, 1]

    def test_pace_scales_recommendations(self) -> None:
        """A relaxed pace weights long stays more heavily than a fast pace."""
        relaxed = allocator.allocate_days(
            ["Tokyo", "Nara"], 9, START, TripPreferences(pace=Pace.relaxed)
        )
        fast = allocator.allocate_days(["Tokyo", "Nara"], 9, START, TripPreferences(pace=Pace.fast))

        assert [a.nights for a in relaxed[1:]] == [7, 1]
        assert [a.nights for a in fast[1:]] == [6, 2]


class TestMutations:
    """Test allocation mutations."""

    @pytest.fixture
    def allocations(self):
        return allocator.allocate_days(["Lisbon", "Porto"], 6, START)

    def test_adjust_nights_drifts_without_balance(self, allocations) -> None:
        updated = allocator.adjust_nights(allocations, 1, 1, START)

        assert updated[1].nights == 4
        assert updated[2].nights == 2
        assert_partitions(updated, 8)
        status = allocator.allocation_status(
            updated, TripWindow(start_date=START, total_days=7), ["Lisbon", "Porto"]
        )
        assert status.state == AllocationState.over
        assert status.allocated_nights == 7
        assert status.target_nights == 6

    def test_adjust_nights_with_balance_keeps_total(self, allocations) -> None:
        updated = allocator.adjust_nights(allocations, 2, 1, START, balance=True)

        assert [a.nights for a in updated] == [1, 2, 3]
        assert_partitions(updated, 7)

    def test_adjust_nights_clamps_at_one(self, allocations) -> None:
        updated = allocator.adjust_nights(allocations, 2, -5, START)

        assert updated[2].nights == 1

    def test_input_is_not_mutated(self, allocations) -> None:
        before = [a.model_copy() for a in allocations]
        allocator.set_nights(allocations, 1, 5, START)

        assert allocations == before

    def test_reorder(self, allocations) -> None:
        updated = allocator.reorder(allocations, 2, 1, START)

        assert allocator.stay_cities(updated) == ["Porto", "Lisbon"]
        assert updated[1].start_day == 2
        assert updated[1].end_day == 3
        assert_partitions(updated, 7)

    def test_insert_and_remove_transit(self, allocations) -> None:
        inserted = allocator.insert_transit(allocations, 2, START)

        assert [a.city for a in inserted] == [TRANSIT_MARKER, "Lisbon", TRANSIT_MARKER, "Porto"]
        assert_partitions(inserted, 8)

        removed = allocator.remove_transit(inserted, 2, START)
        assert [(a.city, a.start_day) for a in removed] == [
            (a.city, a.start_day) for a in allocations
        ]

    def test_remove_transit_rejects_stays(self, allocations) -> None:
        with pytest.raises(AllocationIndexError):
            allocator.remove_transit(allocations, 1, START)

    def test_index_out_of_range(self, allocations) -> None:
        with pytest.raises(AllocationIndexError):
            allocator.set_nights(allocations, 7, 2, START)

    def test_set_transport_mode_rejects_transit(self, allocations) -> None:
        with pytest.raises(AllocationIndexError):
            allocator.set_transport_mode(allocations, 0, TransportMode.train)

    def test_reorder_to_cities(self, allocations) -> None:
        with_override = allocator.set_transport_mode(allocations, 1, TransportMode.bus)
        updated = allocator.reorder_to_cities(with_override, ["Porto", "Lisbon"], START)

        assert updated is not None
        assert [(a.city, a.nights) for a in updated] == [
            (TRANSIT_MARKER, 1),
            ("Porto", 2),
            ("Lisbon", 3),
        ]
        assert updated[2].transport_mode_override == TransportMode.bus

    def test_reorder_to_cities_rejects_other_cities(self, allocations) -> None:
        assert allocator.reorder_to_cities(allocations, ["Lisbon", "Lagos"], START) is None

    def test_carry_overrides(self, allocations) -> None:
        previous = allocator.set_transport_mode(allocations, 1, TransportMode.train)
        fresh = allocator.allocate_days(["Lisbon", "Lagos"], 6, START)

        carried = allocator.carry_overrides(previous, fresh)

        assert carried[1].transport_mode_override == TransportMode.train
        assert carried[2].transport_mode_override is None

    def test_renumber_shifts_dates_only(self, allocations) -> None:
        shifted = allocator.renumber(allocations, date(2025, 4, 10))

        assert [a.nights for a in shifted] == [a.nights for a in allocations]
        assert [a.start_day for a in shifted] == [a.start_day for a in allocations]
        assert shifted[1].start_date == date(2025, 4, 11)
