"""Merge a changed allocation list into existing days without losing content.

Per allocation mutation the reconciler takes one of three paths:

- noop: the day count and every day's city already match the allocations
- empty: there are no days yet, so the expander output is used as-is
- structural: days are re-expanded and user activities are redistributed

Structural redistribution groups every non-transport activity by the city of
the day it currently sits on (original order kept), then splits each group
over that city's new days in contiguous slices of ``ceil(total / days)``.
Groups whose city no longer has any day are discarded and reported in
``ReconcileResult.dropped``. Transport activities are never carried over;
they come fresh from the expander at index 0 of each transit day and of
each changeover day where one stay directly follows another.
"""

import math
from dataclasses import dataclass, field
from datetime import date, timedelta

from backend.app.adapters.transport_options import get_transport_options
from backend.app.models.activity import Activity, is_transport
from backend.app.models.common import ReconcileOutcome
from backend.app.models.timeline import CityAllocation, Day
from backend.app.models.transport import PreselectedRoute
from backend.app.timeline.allocator import day_to_city
from backend.app.timeline.day_expander import TransportLookup, expand_days


@dataclass
class ReconcileResult:
    """Outcome of one reconciliation."""

    outcome: ReconcileOutcome
    days: list[Day]
    # city -> number of activities discarded because the city lost all its days
    dropped: dict[str, int] = field(default_factory=dict)


def is_in_sync(days: list[Day], allocations: list[CityAllocation]) -> bool:
    """True when days already match the allocations' day-to-city mapping."""
    mapping = day_to_city(allocations)
    if len(days) != len(mapping):
        return False
    return all(mapping.get(day.day_number) == day.city for day in days)


def bucket(items: list[Activity], slots: int) -> list[list[Activity]]:
    """Split items into ``slots`` contiguous slices of ceil(len / slots)."""
    if slots <= 0:
        return []
    per_slot = math.ceil(len(items) / slots) if items else 0
    return [items[i * per_slot : (i + 1) * per_slot] for i in range(slots)]


def collect_content(days: list[Day]) -> dict[str, list[Activity]]:
    """Non-transport activities grouped by their day's city, in day order."""
    grouped: dict[str, list[Activity]] = {}
    for day in sorted(days, key=lambda d: d.day_number):
        for activity in day.activities:
            if not is_transport(activity):
                grouped.setdefault(day.city, []).append(activity)
    return grouped


def reconcile(
    days: list[Day],
    allocations: list[CityAllocation],
    home_base: str,
    preselected_route: PreselectedRoute | None = None,
    lookup: TransportLookup = get_transport_options,
) -> ReconcileResult:
    """Bring ``days`` in line with ``allocations``.

    The input list and its days are left untouched; structural results are
    built from fresh expander output.
    """
    if is_in_sync(days, allocations):
        return ReconcileResult(outcome=ReconcileOutcome.noop, days=days)

    skeleton = expand_days(allocations, home_base, preselected_route, lookup)

    if not days:
        return ReconcileResult(outcome=ReconcileOutcome.empty, days=skeleton)

    targets: dict[str, list[Day]] = {}
    for day in skeleton:
        targets.setdefault(day.city, []).append(day)

    dropped: dict[str, int] = {}
    for city, activities in collect_content(days).items():
        city_days = targets.get(city, [])
        if not city_days:
            dropped[city] = len(activities)
            continue
        for day, chunk in zip(city_days, bucket(activities, len(city_days)), strict=True):
            day.activities = [*day.activities, *chunk]

    return ReconcileResult(outcome=ReconcileOutcome.structural, days=skeleton, dropped=dropped)


def patch_dates(days: list[Day], start_date: date) -> list[Day]:
    """Re-date days from a new start date; cities and content are unchanged."""
    return [
        day.model_copy(update={"date": start_date + timedelta(days=day.day_number - 1)})
        for day in days
    ]


def refresh_transport(
    days: list[Day],
    allocations: list[CityAllocation],
    home_base: str,
    preselected_route: PreselectedRoute | None = None,
    lookup: TransportLookup = get_transport_options,
) -> list[Day]:
    """Regenerate transport activities while keeping every other activity.

    Used when adjacency is unchanged but the resolved mode may differ (a
    transport override was set or cleared).
    """
    fresh = {d.day_number: d for d in expand_days(allocations, home_base, preselected_route, lookup)}
    result = []
    for day in days:
        content = [a for a in day.activities if not is_transport(a)]
        skeleton = fresh.get(day.day_number)
        transport = skeleton.activities if skeleton else []
        theme = skeleton.theme if skeleton and skeleton.theme else day.theme
        result.append(day.model_copy(update={"activities": [*transport, *content], "theme": theme}))
    return result
