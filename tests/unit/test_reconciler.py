"""Tests for the reconciler: no-op, empty and structural paths."""

from datetime import date

from backend.app.models.activity import PlaceActivity, is_transport
from backend.app.models.common import ReconcileOutcome, TransportMode
from backend.app.models.timeline import Day
from backend.app.timeline import allocator
from backend.app.timeline.day_expander import expand_days
from backend.app.timeline.reconciler import (
    bucket,
    collect_content,
    patch_dates,
    reconcile,
    refresh_transport,
)

START = date(2025, 3, 1)
HOME = "Kelowna"


def place(activity_id: str) -> PlaceActivity:
    return PlaceActivity(id=activity_id, name=activity_id.title(), type="attraction")


def with_activities(days: list[Day], content: dict[int, list[str]]) -> list[Day]:
    """Attach place activities by day number."""
    return [
        day.model_copy(
            update={
                "activities": [*day.activities, *(place(i) for i in content.get(day.day_number, []))]
            }
        )
        for day in days
    ]


def ids_for_city(days: list[Day], city: str) -> list[str]:
    return [
        a.id for d in days if d.city == city for a in d.activities if not is_transport(a)
    ]


class TestBucket:
    """Test ceiling-division bucketing."""

    def test_even_split(self) -> None:
        assert bucket([1, 2, 3, 4], 2) == [[1, 2], [3, 4]]

    def test_uneven_split_fills_leading_slots(self) -> None:
        assert bucket([1, 2, 3], 2) == [[1, 2], [3]]
        assert bucket([1, 2], 4) == [[1], [2], [], []]

    def test_no_items(self) -> None:
        assert bucket([], 3) == [[], [], []]


class TestReconcile:
    """Test reconcile."""

    def test_empty_days_expand_fresh(self) -> None:
        allocations = allocator.allocate_days(["Lisbon", "Porto"], 6, START)

        result = reconcile([], allocations, HOME)

        assert result.outcome == ReconcileOutcome.empty
        assert len(result.days) == 7

    def test_idempotent_when_in_sync(self) -> None:
        allocations = allocator.allocate_days(["Lisbon", "Porto"], 6, START)
        days = with_activities(expand_days(allocations, HOME), {2: ["belem"], 6: ["ribeira"]})

        first = reconcile(days, allocations, HOME)
        second = reconcile(first.days, allocations, HOME)

        assert first.outcome == ReconcileOutcome.noop
        assert second.outcome == ReconcileOutcome.noop
        assert [d.model_dump_json() for d in second.days] == [d.model_dump_json() for d in days]

    def test_night_shift_redistributes_content(self) -> None:
        """Lisbon 3 -> 2 nights, Porto 2 -> 3 nights: nothing is lost."""
        allocations = allocator.allocate_days(["Lisbon", "Porto"], 6, START)
        days = with_activities(
            expand_days(allocations, HOME),
            {2: ["alfama"], 3: ["belem"], 4: ["sintra"], 5: ["ribeira"], 6: ["livraria"]},
        )

        shifted = allocator.set_nights(allocations, 1, 2, START)
        shifted = allocator.set_nights(shifted, 2, 3, START)
        result = reconcile(days, shifted, HOME)

        assert result.outcome == ReconcileOutcome.structural
        assert result.dropped == {}
        by_day = {
            d.day_number: [a.id for a in d.activities if not is_transport(a)] for d in result.days
        }
        assert by_day[2] == ["alfama", "belem"]
        assert by_day[3] == ["sintra"]
        assert by_day[4] == ["ribeira"]
        assert by_day[5] == ["livraria"]
        assert by_day[6] == [] and by_day[7] == []
        assert result.days[3].activities[0].name == "Train Lisbon → Porto"

    def test_reorder_preserves_city_content_in_order(self) -> None:
        allocations = allocator.allocate_days(["Lisbon", "Porto", "Lagos"], 9, START)
        porto = allocations[2]
        days = with_activities(
            expand_days(allocations, HOME),
            {porto.start_day: ["ribeira", "serralves"], porto.end_day: ["livraria"]},
        )

        reordered = allocator.reorder(allocations, 3, 1, START)
        result = reconcile(days, reordered, HOME)

        assert ids_for_city(result.days, "Porto") == ["ribeira", "serralves", "livraria"]

    def test_transport_regenerated_for_new_neighbour(self) -> None:
        allocations = allocator.allocate_days(["Lisbon", "Porto", "Lagos"], 9, START)
        allocations = allocator.insert_transit(allocations, 2, START)
        days = expand_days(allocations, HOME)
        transit_day = allocations[2].start_day
        assert days[transit_day - 1].activities[0].name == "Train Lisbon → Porto"

        swapped = allocator.reorder(allocations, 4, 3, START)
        result = reconcile(days, swapped, HOME)

        transports = [a for d in result.days for a in d.activities if is_transport(a)]
        names = [a.name for a in transports]
        assert "Train Lisbon → Porto" not in names
        leg = result.days[swapped[2].start_day - 1].activities[0]
        assert leg.name == "Bus Lisbon → Lagos"
        assert leg.transport_details.to_city == "Lagos"

    def test_removed_city_content_is_reported(self) -> None:
        allocations = allocator.allocate_days(["Lisbon", "Porto"], 6, START)
        days = with_activities(expand_days(allocations, HOME), {6: ["ribeira", "livraria"]})

        lisbon_only = allocator.allocate_days(["Lisbon"], 6, START)
        result = reconcile(days, lisbon_only, HOME)

        assert result.outcome == ReconcileOutcome.structural
        assert result.dropped == {"Porto": 2}
        assert ids_for_city(result.days, "Lisbon") == []

    def test_input_days_untouched(self) -> None:
        allocations = allocator.allocate_days(["Lisbon", "Porto"], 6, START)
        days = with_activities(expand_days(allocations, HOME), {2: ["alfama"]})
        before = [d.model_dump_json() for d in days]

        reconcile(days, allocator.set_nights(allocations, 1, 4, START), HOME)

        assert [d.model_dump_json() for d in days] == before


def test_collect_content_skips_transport() -> None:
    allocations = allocator.allocate_days(["Lisbon", "Porto"], 6, START)
    days = with_activities(expand_days(allocations, HOME), {1: ["lounge"], 3: ["belem"]})

    grouped = collect_content(days)

    assert [a.id for a in grouped["Lisbon"]] == ["belem"]
    assert all(not is_transport(a) for acts in grouped.values() for a in acts)


def test_patch_dates_keeps_content() -> None:
    allocations = allocator.allocate_days(["Lisbon", "Porto"], 6, START)
    days = with_activities(expand_days(allocations, HOME), {3: ["belem"]})

    patched = patch_dates(days, date(2025, 5, 1))

    assert [d.date for d in patched][:2] == [date(2025, 5, 1), date(2025, 5, 2)]
    assert [d.city for d in patched] == [d.city for d in days]
    assert patched[2].activities[0].id == "belem"


def test_refresh_transport_keeps_content() -> None:
    allocations = allocator.insert_transit(
        allocator.allocate_days(["Lisbon", "Porto"], 6, START), 2, START
    )
    days = with_activities(expand_days(allocations, HOME), {5: ["snack"]})

    updated = refresh_transport(
        days, allocator.set_transport_mode(allocations, 1, TransportMode.flight), HOME
    )

    assert [a.id for a in updated[4].activities][1:] == ["snack"]
    assert updated[4].activities[0].type == "flight"
    assert updated[4].activities[0].name == "Flight LIS → OPO"
