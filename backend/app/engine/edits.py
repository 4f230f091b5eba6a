"""Activity edit surface: delete with undo, intra-day reorder, field edits.

Functions take the current days and return a new list; the input is not
mutated. The undo buffer holds a single entry that the next delete replaces.
"""

import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from pydantic import ValidationError

from backend.app.models.activity import Activity, Attachment
from backend.app.models.timeline import Day
from backend.app.timeline.errors import ActivityNotFoundError, DayNotFoundError

EDITABLE_FIELDS: frozenset[str] = frozenset(
    {"suggested_time", "duration_minutes", "user_cost", "user_notes", "attachments"}
)


@dataclass(frozen=True)
class UndoEntry:
    """Deleted activity plus where it came from."""

    activity: Activity
    day_number: int
    city: str
    original_index: int
    expires_at: float


class UndoSlot:
    """Single-entry undo buffer with a fixed lifetime.

    Expiry is evaluated lazily against ``clock`` whenever the slot is read.
    """

    def __init__(self, ttl_seconds: float, clock: Callable[[], float] = time.monotonic):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entry: UndoEntry | None = None

    def put(self, activity: Activity, day_number: int, city: str, original_index: int) -> None:
        """Store a deletion, replacing any previous one and restarting the timer."""
        self._entry = UndoEntry(
            activity=activity,
            day_number=day_number,
            city=city,
            original_index=original_index,
            expires_at=self._clock() + self.ttl_seconds,
        )

    def peek(self) -> UndoEntry | None:
        if self._entry is not None and self._clock() >= self._entry.expires_at:
            self._entry = None
        return self._entry

    def take(self) -> UndoEntry | None:
        """Return the live entry and clear the slot."""
        entry = self.peek()
        self._entry = None
        return entry

    def clear(self) -> None:
        self._entry = None


def slot_time(index: int, start_hour: int, spacing_minutes: int, latest_hour: int) -> str:
    """Suggested HH:MM for the activity at ``index``, capped at ``latest_hour``."""
    minutes = min(start_hour * 60 + index * spacing_minutes, latest_hour * 60)
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def _day_index(days: list[Day], day_number: int) -> int:
    for i, day in enumerate(days):
        if day.day_number == day_number:
            return i
    raise DayNotFoundError(f"day {day_number} does not exist")


def find_activity(days: list[Day], activity_id: str) -> tuple[int, int]:
    """(day index, activity index) of the activity with ``activity_id``."""
    for di, day in enumerate(days):
        for ai, activity in enumerate(day.activities):
            if activity.id == activity_id:
                return di, ai
    raise ActivityNotFoundError(f"activity {activity_id!r} not found")


def delete_activity(
    days: list[Day], day_number: int, activity_id: str
) -> tuple[list[Day], Activity, int]:
    """Remove one activity from a day.

    Returns:
        (new days, removed activity, index it was removed from)

    Raises:
        DayNotFoundError: If the day does not exist
        ActivityNotFoundError: If the day has no such activity
    """
    di = _day_index(days, day_number)
    day = days[di]
    index = next((i for i, a in enumerate(day.activities) if a.id == activity_id), None)
    if index is None:
        raise ActivityNotFoundError(f"activity {activity_id!r} not found on day {day_number}")

    activities = list(day.activities)
    removed = activities.pop(index)
    updated = list(days)
    updated[di] = day.model_copy(update={"activities": activities})
    return updated, removed, index


def restore_activity(days: list[Day], entry: UndoEntry) -> list[Day] | None:
    """Reinsert an undone deletion; None when its day no longer exists for that city."""
    try:
        di = _day_index(days, entry.day_number)
    except DayNotFoundError:
        return None
    day = days[di]
    if day.city != entry.city:
        return None

    activities = list(day.activities)
    activities.insert(min(entry.original_index, len(activities)), entry.activity)
    updated = list(days)
    updated[di] = day.model_copy(update={"activities": activities})
    return updated


def move_activity(
    days: list[Day],
    day_number: int,
    from_index: int,
    to_index: int,
    start_hour: int = 9,
    spacing_minutes: int = 120,
    latest_hour: int = 22,
) -> list[Day]:
    """Move an activity within a day and re-time every activity from its new slot.

    Transport activities are moved and re-timed like any other.
    """
    di = _day_index(days, day_number)
    day = days[di]
    activities = list(day.activities)
    if not (0 <= from_index < len(activities) and 0 <= to_index < len(activities)):
        raise ActivityNotFoundError(
            f"index out of range for day {day_number} ({len(activities)} activities)"
        )

    activities.insert(to_index, activities.pop(from_index))
    retimed = [
        a.model_copy(
            update={"suggested_time": slot_time(i, start_hour, spacing_minutes, latest_hour)}
        )
        for i, a in enumerate(activities)
    ]
    updated = list(days)
    updated[di] = day.model_copy(update={"activities": retimed})
    return updated


def update_activity(days: list[Day], activity_id: str, changes: dict[str, Any]) -> list[Day]:
    """Apply field edits to one activity, validated against its model.

    Raises:
        ActivityNotFoundError: If no activity has ``activity_id``
        ValueError: If a field is not editable or a value is invalid
    """
    unknown = set(changes) - EDITABLE_FIELDS
    if unknown:
        raise ValueError(f"fields not editable: {sorted(unknown)}")

    di, ai = find_activity(days, activity_id)
    day = days[di]
    current = day.activities[ai]

    try:
        edited = type(current).model_validate({**current.model_dump(), **changes})
    except ValidationError as e:
        raise ValueError(str(e)) from e

    activities = list(day.activities)
    activities[ai] = edited
    updated = list(days)
    updated[di] = day.model_copy(update={"activities": activities})
    return updated


def add_attachment(days: list[Day], activity_id: str, attachment: Attachment) -> list[Day]:
    """Append an attachment to one activity."""
    di, ai = find_activity(days, activity_id)
    current = days[di].activities[ai]
    return update_activity(
        days, activity_id, {"attachments": [*current.attachments, attachment.model_dump()]}
    )
