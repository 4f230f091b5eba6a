"""Expand city allocations into calendar days with synthesized transport."""

import re
from collections.abc import Callable
from datetime import timedelta

from backend.app.adapters.transport_options import (
    airport_code,
    estimate_flight,
    get_transport_options,
)
from backend.app.models.activity import RouteSegment, TransportActivity, TransportDetails
from backend.app.models.common import TransportMode
from backend.app.models.timeline import CityAllocation, Day
from backend.app.models.transport import PreselectedRoute, TransportOption

TransportLookup = Callable[[str, str], list[TransportOption]]

# Lookup modes without an activity variant of their own
_OPTION_MODE_ALIASES: dict[str, TransportMode] = {
    "taxi": TransportMode.drive,
    "private": TransportMode.drive,
}

_MODE_LABELS: dict[TransportMode, str] = {
    TransportMode.flight: "Flight",
    TransportMode.train: "Train",
    TransportMode.bus: "Bus",
    TransportMode.drive: "Drive",
    TransportMode.ferry: "Ferry",
}


def _slug(value: str) -> str:
    return re.sub(r"[^a-z0-9]+", "-", value.lower()).strip("-")


def option_mode(option: TransportOption) -> TransportMode:
    """Activity mode for a lookup option."""
    if option.mode in _OPTION_MODE_ALIASES:
        return _OPTION_MODE_ALIASES[option.mode]
    return TransportMode(option.mode)


def resolve_transport(
    from_city: str,
    to_city: str,
    override: TransportMode | None,
    lookup: TransportLookup = get_transport_options,
) -> tuple[TransportMode, TransportOption | None]:
    """Pick the mode for a leg and the lookup option that describes it.

    Priority: explicit override > option flagged recommended > first option >
    flight.
    """
    options = lookup(from_city, to_city)

    if override is not None:
        matching = next((o for o in options if option_mode(o) == override), None)
        return override, matching

    recommended = next((o for o in options if o.recommended), None)
    if recommended is not None:
        return option_mode(recommended), recommended

    if options:
        return option_mode(options[0]), options[0]

    return TransportMode.flight, None


def _leg_endpoints(
    allocations: list[CityAllocation], index: int, home_base: str
) -> tuple[str, str, CityAllocation | None]:
    """(from_city, to_city, preceding stay) for the transit at ``index``."""
    preceding = next(
        (a for a in reversed(allocations[:index]) if not a.is_transit),
        None,
    )
    following = next(
        (a for a in allocations[index + 1 :] if not a.is_transit),
        None,
    )
    from_city = preceding.city if preceding else home_base
    to_city = following.city if following else home_base
    return from_city, to_city, preceding


def _follows_stay(allocations: list[CityAllocation], index: int) -> bool:
    """True when the stay at ``index`` is entered straight from another stay."""
    return (
        index > 0
        and not allocations[index].is_transit
        and not allocations[index - 1].is_transit
    )


def build_transport_activity(
    day_number: int,
    from_city: str,
    to_city: str,
    mode: TransportMode,
    option: TransportOption | None,
) -> TransportActivity:
    """Render one transport activity for a single-hop leg."""
    duration_label = option.duration_label if option else None
    duration_minutes = option.duration_minutes if option else None
    operator = option.operator if option else None

    if mode == TransportMode.flight:
        if duration_label is None:
            estimate = estimate_flight(from_city, to_city)
            if estimate is not None:
                duration_label, duration_minutes = estimate
        name = f"Flight {airport_code(from_city)} → {airport_code(to_city)}"
    else:
        name = f"{_MODE_LABELS[mode]} {from_city} → {to_city}"

    parts = [f"{from_city} to {to_city}"]
    if duration_label:
        parts.append(duration_label)
    if operator:
        parts.append(operator)

    return TransportActivity(
        id=f"transport-{day_number}-{_slug(from_city)}-{_slug(to_city)}",
        name=name,
        type=mode.value,
        description=" · ".join(parts),
        duration_minutes=duration_minutes,
        tags=["transport", mode.value],
        transport_details=TransportDetails(
            from_city=from_city,
            to_city=to_city,
            operator=operator,
        ),
    )


def build_route_activity(day_number: int, route: PreselectedRoute) -> TransportActivity:
    """Render a preselected multi-leg route as a single transport activity."""
    segments: list[RouteSegment] = route.segments
    first, last = segments[0], segments[-1]
    modes = [seg.mode for seg in segments]
    mode = TransportMode.flight if TransportMode.flight in modes else first.mode

    stops = [first.from_city] + [seg.to_city for seg in segments]
    if all(m == TransportMode.flight for m in modes):
        stops = [airport_code(stop) for stop in stops]

    hops = []
    for seg in segments:
        hop = f"{_MODE_LABELS[seg.mode]} {seg.from_city} → {seg.to_city}"
        if seg.duration_label:
            hop += f" ({seg.duration_label})"
        hops.append(hop)

    operators = list(dict.fromkeys(seg.operator for seg in segments if seg.operator))

    return TransportActivity(
        id=f"transport-{day_number}-{_slug(first.from_city)}-{_slug(last.to_city)}",
        name=f"{_MODE_LABELS[mode]} {' → '.join(stops)}",
        type=mode.value,
        description="; ".join(hops),
        tags=["transport", mode.value, "multi-leg"],
        transport_details=TransportDetails(
            from_city=first.from_city,
            to_city=last.to_city,
            operator=", ".join(operators) or None,
            segments=segments,
        ),
    )


def expand_days(
    allocations: list[CityAllocation],
    home_base: str,
    preselected_route: PreselectedRoute | None = None,
    lookup: TransportLookup = get_transport_options,
) -> list[Day]:
    """Expand allocations into one Day per covered day number.

    The first day of each transit allocation carries exactly one transport
    activity, as does the changeover day of a stay that directly follows
    another stay (its first day). Every other day is empty.

    Args:
        allocations: Renumbered allocations in trip order
        home_base: City the trip departs from and returns to
        preselected_route: Route chosen for the departure from home base
        lookup: Transport-options lookup

    Returns:
        Days ordered by day number
    """
    days: list[Day] = []

    for index, alloc in enumerate(allocations):
        for offset in range(alloc.end_day - alloc.start_day + 1):
            day_number = alloc.start_day + offset
            day = Day(
                day_number=day_number,
                date=alloc.start_date + timedelta(days=offset),
                city=alloc.city,
            )

            if alloc.is_transit and offset == 0:
                from_city, to_city, preceding = _leg_endpoints(allocations, index, home_base)
                if preceding is None and preselected_route is not None:
                    activity = build_route_activity(day_number, preselected_route)
                else:
                    override = preceding.transport_mode_override if preceding else None
                    mode, option = resolve_transport(from_city, to_city, override, lookup)
                    activity = build_transport_activity(
                        day_number, from_city, to_city, mode, option
                    )
                day.theme = f"Travel to {to_city}"
                day.activities = [activity]
            elif offset == 0 and _follows_stay(allocations, index):
                preceding = allocations[index - 1]
                mode, option = resolve_transport(
                    preceding.city, alloc.city, preceding.transport_mode_override, lookup
                )
                day.theme = f"Travel to {alloc.city}"
                day.activities = [
                    build_transport_activity(day_number, preceding.city, alloc.city, mode, option)
                ]

            days.append(day)

    return days
