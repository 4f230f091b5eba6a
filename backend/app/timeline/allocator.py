"""Night allocation across an ordered city list, plus allocation mutations.

Every function here is pure: it returns a new list and never mutates the
allocations it was given.
"""

import math
from collections import Counter
from datetime import date, timedelta

from backend.app.models.common import TRANSIT_MARKER, AllocationState, Pace, TransportMode
from backend.app.models.timeline import AllocationStatus, CityAllocation, TripWindow
from backend.app.models.trip import TripPreferences
from backend.app.timeline.errors import AllocationIndexError, InsufficientDurationError
from backend.app.timeline.recommended_nights import recommended_nights

PACE_MULTIPLIERS: dict[Pace, float] = {
    Pace.relaxed: 1.3,
    Pace.balanced: 1.0,
    Pace.fast: 0.7,
}

# Nights reserved for the outbound journey prepended to every allocation.
OUTBOUND_TRANSIT_NIGHTS = 1


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def renumber(allocations: list[CityAllocation], start_date: date) -> list[CityAllocation]:
    """Recompute day ranges and dates by cumulative summation.

    Each allocation spans ``nights`` days; the final allocation also owns the
    departure day, so the ranges partition ``[1, sum(nights) + 1]``.

    Args:
        allocations: Allocations in trip order (night counts are kept)
        start_date: Calendar date of day 1

    Returns:
        New allocations with start/end day and dates filled in
    """
    result: list[CityAllocation] = []
    current_day = 1
    last = len(allocations) - 1

    for i, alloc in enumerate(allocations):
        span = alloc.nights + 1 if i == last else alloc.nights
        alloc_start = start_date + timedelta(days=current_day - 1)
        result.append(
            alloc.model_copy(
                update={
                    "start_day": current_day,
                    "end_day": current_day + span - 1,
                    "start_date": alloc_start,
                    "end_date": alloc_start + timedelta(days=alloc.nights),
                }
            )
        )
        current_day += span

    return result


def _distribute(cities: list[str], budget: int, pace: Pace) -> list[int]:
    """Split ``budget`` nights over ``cities`` (budget >= len(cities))."""
    multiplier = PACE_MULTIPLIERS.get(pace, 1.0)
    recommended = [recommended_nights(city) for city in cities]
    base = [max(1, _round_half_up(r * multiplier)) for r in recommended]

    scale = budget / sum(base)
    nights = [max(1, _round_half_up(b * scale)) for b in base]

    # Largest recommended first, city order breaking ties
    priority = sorted(range(len(cities)), key=lambda i: (-recommended[i], i))

    current = sum(nights)
    while current != budget:
        changed = False
        for i in priority:
            if current == budget:
                break
            if current < budget:
                nights[i] += 1
                current += 1
                changed = True
            elif nights[i] > 1:
                nights[i] -= 1
                current -= 1
                changed = True
        if not changed:
            break

    return nights


def allocate_days(
    cities: list[str],
    total_nights: int,
    start_date: date,
    preferences: TripPreferences | None = None,
) -> list[CityAllocation]:
    """Allocate a night budget across an ordered city list.

    A one-night transit allocation for the outbound journey is prepended;
    the remaining nights are seeded from the recommended-nights table (scaled
    by pace) and adjusted so the total matches exactly. When fewer nights
    remain than cities, the leading cities get one night each and the rest
    are dropped.

    Args:
        cities: Destination cities in visiting order
        total_nights: Night budget for the whole trip (total_days - 1)
        start_date: Trip start date
        preferences: Optional pace/interest hints

    Returns:
        Renumbered allocations whose nights sum to ``total_nights``

    Raises:
        InsufficientDurationError: If total_nights < 1
    """
    if total_nights < 1:
        raise InsufficientDurationError(total_nights)

    if not cities:
        return []

    pace = preferences.pace if preferences else Pace.balanced
    budget = total_nights - OUTBOUND_TRANSIT_NIGHTS

    if budget < len(cities):
        kept = cities[:budget]
        nights = [1] * len(kept)
    else:
        kept = list(cities)
        nights = _distribute(kept, budget, pace)

    placeholder = start_date
    allocations = [
        CityAllocation(
            city=TRANSIT_MARKER,
            nights=OUTBOUND_TRANSIT_NIGHTS,
            start_day=1,
            end_day=1,
            start_date=placeholder,
            end_date=placeholder,
        )
    ]
    for city, n in zip(kept, nights, strict=True):
        allocations.append(
            CityAllocation(
                city=city,
                nights=n,
                start_day=1,
                end_day=1,
                start_date=placeholder,
                end_date=placeholder,
            )
        )

    return renumber(allocations, start_date)


def total_days_of(allocations: list[CityAllocation]) -> int:
    """Number of days the allocations cover."""
    return allocations[-1].end_day if allocations else 0


def day_to_city(allocations: list[CityAllocation]) -> dict[int, str]:
    """Map every covered day number to its allocation's city."""
    mapping: dict[int, str] = {}
    for alloc in allocations:
        for day_number in range(alloc.start_day, alloc.end_day + 1):
            mapping[day_number] = alloc.city
    return mapping


def stay_cities(allocations: list[CityAllocation]) -> list[str]:
    """Non-transit cities in allocation order."""
    return [a.city for a in allocations if not a.is_transit]


def _check_index(allocations: list[CityAllocation], index: int) -> None:
    if not 0 <= index < len(allocations):
        raise AllocationIndexError(f"allocation index {index} out of range")


def set_nights(
    allocations: list[CityAllocation], index: int, nights: int, start_date: date
) -> list[CityAllocation]:
    """Set one allocation's night count (clamped at 1)."""
    _check_index(allocations, index)
    updated = list(allocations)
    updated[index] = updated[index].model_copy(update={"nights": max(1, nights)})
    return renumber(updated, start_date)


def adjust_nights(
    allocations: list[CityAllocation],
    index: int,
    delta: int,
    start_date: date,
    balance: bool = False,
) -> list[CityAllocation]:
    """Nights stepper.

    Without ``balance`` the total may drift from the trip's night budget;
    ``allocation_status`` reports it. With ``balance`` the opposite change is
    applied to another stay: the one with most nights (above 1) when adding,
    the one with fewest when removing.
    """
    _check_index(allocations, index)
    current = allocations[index]
    new_nights = max(1, current.nights + delta)
    actual_delta = new_nights - current.nights
    if actual_delta == 0:
        return list(allocations)

    updated = list(allocations)
    updated[index] = current.model_copy(update={"nights": new_nights})

    if balance:
        candidates = [
            i for i, a in enumerate(allocations) if i != index and not a.is_transit
        ]
        balance_index: int | None = None
        if actual_delta > 0:
            donors = [i for i in candidates if allocations[i].nights > 1]
            if donors:
                balance_index = max(donors, key=lambda i: (allocations[i].nights, -i))
        elif candidates:
            balance_index = min(candidates, key=lambda i: (allocations[i].nights, i))

        if balance_index is not None:
            other = updated[balance_index]
            updated[balance_index] = other.model_copy(
                update={"nights": max(1, other.nights - actual_delta)}
            )

    return renumber(updated, start_date)


def reorder(
    allocations: list[CityAllocation], from_index: int, to_index: int, start_date: date
) -> list[CityAllocation]:
    """Move one allocation to a new position."""
    _check_index(allocations, from_index)
    _check_index(allocations, to_index)
    updated = list(allocations)
    moved = updated.pop(from_index)
    updated.insert(to_index, moved)
    return renumber(updated, start_date)


def insert_transit(
    allocations: list[CityAllocation], position: int, start_date: date
) -> list[CityAllocation]:
    """Insert a one-night transit allocation before ``position``."""
    if not 0 <= position <= len(allocations):
        raise AllocationIndexError(f"transit position {position} out of range")
    transit = CityAllocation(
        city=TRANSIT_MARKER,
        nights=1,
        start_day=1,
        end_day=1,
        start_date=start_date,
        end_date=start_date,
    )
    updated = list(allocations)
    updated.insert(position, transit)
    return renumber(updated, start_date)


def remove_transit(
    allocations: list[CityAllocation], index: int, start_date: date
) -> list[CityAllocation]:
    """Remove a transit allocation; stays cannot be removed this way."""
    _check_index(allocations, index)
    if not allocations[index].is_transit:
        raise AllocationIndexError(f"allocation {index} is not a transit slot")
    updated = list(allocations)
    del updated[index]
    return renumber(updated, start_date)


def set_transport_mode(
    allocations: list[CityAllocation], index: int, mode: TransportMode | None
) -> list[CityAllocation]:
    """Set or clear the mode used to leave this stay."""
    _check_index(allocations, index)
    if allocations[index].is_transit:
        raise AllocationIndexError(f"allocation {index} is a transit slot")
    updated = list(allocations)
    updated[index] = updated[index].model_copy(update={"transport_mode_override": mode})
    return updated


def reorder_to_cities(
    allocations: list[CityAllocation], cities: list[str], start_date: date
) -> list[CityAllocation] | None:
    """Rearrange stays to follow ``cities`` when it is a permutation of them.

    Transit slots keep their positions; each stay keeps its nights and
    override. Returns None when ``cities`` is not a permutation of the
    current stays.
    """
    current = stay_cities(allocations)
    if Counter(current) != Counter(cities):
        return None

    pools: dict[str, list[CityAllocation]] = {}
    for alloc in allocations:
        if not alloc.is_transit:
            pools.setdefault(alloc.city, []).append(alloc)

    ordered = iter(cities)
    updated: list[CityAllocation] = []
    for alloc in allocations:
        if alloc.is_transit:
            updated.append(alloc)
        else:
            updated.append(pools[next(ordered)].pop(0))

    return renumber(updated, start_date)


def carry_overrides(
    previous: list[CityAllocation], fresh: list[CityAllocation]
) -> list[CityAllocation]:
    """Copy transport overrides from previous stays onto same-named fresh stays."""
    overrides = {
        a.city: a.transport_mode_override
        for a in previous
        if not a.is_transit and a.transport_mode_override is not None
    }
    return [
        a.model_copy(update={"transport_mode_override": overrides[a.city]})
        if a.city in overrides
        else a
        for a in fresh
    ]


def allocation_status(
    allocations: list[CityAllocation], window: TripWindow, cities: list[str]
) -> AllocationStatus:
    """Compare allocated nights against the trip's night budget."""
    allocated = sum(a.nights for a in allocations)
    target = window.total_nights

    if allocated > target:
        state = AllocationState.over
    elif allocated < target:
        state = AllocationState.under
    else:
        state = AllocationState.balanced

    remaining = Counter(stay_cities(allocations))
    dropped: list[str] = []
    for city in cities:
        if remaining[city] > 0:
            remaining[city] -= 1
        else:
            dropped.append(city)

    return AllocationStatus(
        allocated_nights=allocated,
        target_nights=target,
        state=state,
        dropped_cities=dropped,
    )
