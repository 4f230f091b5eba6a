"""Tests for the activity edit surface."""

from datetime import date

import pytest

from backend.app.engine import edits
from backend.app.models.activity import Attachment, PlaceActivity
from backend.app.models.timeline import Day
from backend.app.timeline.errors import ActivityNotFoundError, DayNotFoundError


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self) -> None:
        self.now = 100.0

    def __call__(self) -> float:
        return self.now


def place(activity_id: str, **fields) -> PlaceActivity:
    return PlaceActivity(id=activity_id, name=activity_id.title(), type="attraction", **fields)


@pytest.fixture
def days() -> list[Day]:
    return [
        Day(
            day_number=1,
            date=date(2025, 3, 1),
            city="Lisbon",
            activities=[place("alfama"), place("belem"), place("lx-factory")],
        ),
        Day(day_number=2, date=date(2025, 3, 2), city="Lisbon", activities=[place("sintra")]),
    ]


class TestUndoSlot:
    """Test the single-entry undo buffer."""

    def test_take_before_expiry(self) -> None:
        clock = FakeClock()
        slot = edits.UndoSlot(5.0, clock)
        slot.put(place("belem"), 1, "Lisbon", 1)

        clock.now += 4.9
        entry = slot.take()

        assert entry is not None
        assert entry.activity.id == "belem"
        assert slot.take() is None

    def test_expired_entry_is_gone(self) -> None:
        clock = FakeClock()
        slot = edits.UndoSlot(5.0, clock)
        slot.put(place("belem"), 1, "Lisbon", 1)

        clock.now += 5.0

        assert slot.peek() is None
        assert slot.take() is None

    def test_new_delete_overwrites_and_resets_timer(self) -> None:
        clock = FakeClock()
        slot = edits.UndoSlot(5.0, clock)
        slot.put(place("belem"), 1, "Lisbon", 1)
        clock.now += 4.0
        slot.put(place("sintra"), 2, "Lisbon", 0)
        clock.now += 4.0

        entry = slot.take()

        assert entry is not None
        assert entry.activity.id == "sintra"


class TestDeleteRestore:
    """Test delete_activity / restore_activity."""

    def test_restore_returns_original_order(self, days: list[Day]) -> None:
        updated, removed, index = edits.delete_activity(days, 1, "belem")

        assert [a.id for a in updated[0].activities] == ["alfama", "lx-factory"]
        assert index == 1

        slot = edits.UndoSlot(5.0, FakeClock())
        slot.put(removed, 1, "Lisbon", index)
        entry = slot.take()
        assert entry is not None
        restored = edits.restore_activity(updated, entry)

        assert restored is not None
        assert restored[0].activities == days[0].activities

    def test_restore_skipped_when_day_changed_city(self, days: list[Day]) -> None:
        updated, removed, index = edits.delete_activity(days, 1, "belem")
        moved = [updated[0].model_copy(update={"city": "Porto"}), updated[1]]
        slot = edits.UndoSlot(5.0, FakeClock())
        slot.put(removed, 1, "Lisbon", index)
        entry = slot.take()
        assert entry is not None

        assert edits.restore_activity(moved, entry) is None

    def test_delete_unknown_activity(self, days: list[Day]) -> None:
        with pytest.raises(ActivityNotFoundError):
            edits.delete_activity(days, 2, "belem")

    def test_delete_unknown_day(self, days: list[Day]) -> None:
        with pytest.raises(DayNotFoundError):
            edits.delete_activity(days, 9, "belem")


class TestMoveActivity:
    """Test intra-day reorder and slot re-timing."""

    def test_slot_time(self) -> None:
        assert edits.slot_time(0, 9, 120, 22) == "09:00"
        assert edits.slot_time(2, 9, 120, 22) == "13:00"
        assert edits.slot_time(10, 9, 120, 22) == "22:00"
        assert edits.slot_time(1, 8, 90, 22) == "09:30"

    def test_move_retimes_every_activity(self, days: list[Day]) -> None:
        updated = edits.move_activity(days, 1, 2, 0)

        activities = updated[0].activities
        assert [a.id for a in activities] == ["lx-factory", "alfama", "belem"]
        assert [a.suggested_time for a in activities] == ["09:00", "11:00", "13:00"]

    def test_move_out_of_range(self, days: list[Day]) -> None:
        with pytest.raises(ActivityNotFoundError):
            edits.move_activity(days, 2, 0, 3)


class TestUpdateActivity:
    """Test field edits."""

    def test_update_fields(self, days: list[Day]) -> None:
        updated = edits.update_activity(
            days, "sintra", {"user_cost": 42.5, "suggested_time": "10:30", "user_notes": "Pena"}
        )

        sintra = updated[1].activities[0]
        assert sintra.user_cost == 42.5
        assert sintra.suggested_time == "10:30"
        assert sintra.user_notes == "Pena"
        assert days[1].activities[0].user_cost is None

    def test_invalid_time_rejected(self, days: list[Day]) -> None:
        with pytest.raises(ValueError):
            edits.update_activity(days, "sintra", {"suggested_time": "half past ten"})

    def test_structural_fields_rejected(self, days: list[Day]) -> None:
        with pytest.raises(ValueError, match="not editable"):
            edits.update_activity(days, "sintra", {"type": "restaurant"})

    def test_add_attachment(self, days: list[Day]) -> None:
        ticket = Attachment(kind="ticket", name="Pena Palace", url="https://example.com/t.pdf")

        updated = edits.add_attachment(days, "sintra", ticket)
        updated = edits.add_attachment(updated, "sintra", ticket.model_copy(update={"name": "Bus"}))

        assert [a.name for a in updated[1].activities[0].attachments] == ["Pena Palace", "Bus"]
