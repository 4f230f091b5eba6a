"""Fixture-based transport lookups: route options, airport codes, flight estimates."""

import json
from functools import lru_cache
from pathlib import Path
from typing import Any

from backend.app.models.transport import TransportOption

FIXTURES_DIR = Path(__file__).parent.parent / "fixtures"


@lru_cache
def _load_fixture(name: str) -> dict[str, Any]:
    with open(FIXTURES_DIR / name) as f:
        data: dict[str, Any] = json.load(f)
    return data


def get_transport_options(from_city: str, to_city: str) -> list[TransportOption]:
    """Look up transport options between two cities.

    Routes are stored one direction only; the reverse direction is tried when
    the direct pair is missing.

    Args:
        from_city: Departure city name
        to_city: Arrival city name

    Returns:
        List of TransportOption in fixture order, empty when the pair is unknown
    """
    routes = _load_fixture("transport_routes.json")

    options_data = routes.get(from_city, {}).get(to_city)
    if options_data is None:
        options_data = routes.get(to_city, {}).get(from_city, [])

    options = []
    for od in options_data:
        option = TransportOption(
            mode=od["mode"],
            duration_minutes=od["duration_minutes"],
            duration_label=od["duration_label"],
            operator=od.get("operator"),
            price_range=od.get("price_range"),
            badge=od.get("badge"),
            recommended=od.get("badge") == "best",
            notes=od.get("notes"),
        )
        options.append(option)

    return options


def airport_code(city: str) -> str:
    """Airport code for a city, else the first three letters uppercased."""
    codes = _load_fixture("airports.json")
    code = codes.get(city.strip().lower())
    if code:
        return str(code)
    letters = "".join(ch for ch in city if ch.isalpha())
    return letters[:3].upper()


def estimate_flight(from_city: str, to_city: str) -> tuple[str, int] | None:
    """Static flight duration estimate as (label, minutes), or None if unknown."""
    estimates = _load_fixture("flight_estimates.json")
    key = "|".join(sorted([from_city, to_city]))
    estimate = estimates.get(key)
    if estimate is None:
        return None
    return estimate["duration_label"], estimate["duration_minutes"]
