"""Common types and enums shared across all models."""

from enum import Enum

# Pseudo-city carried by transit allocations and the days they expand to.
TRANSIT_MARKER = "In Transit"


class TransportMode(str, Enum):
    """Mode used to travel between two stays."""

    flight = "flight"
    train = "train"
    bus = "bus"
    drive = "drive"
    ferry = "ferry"


class Pace(str, Enum):
    """Trip pace preference."""

    relaxed = "relaxed"
    balanced = "balanced"
    fast = "fast"


class AllocationState(str, Enum):
    """Whether allocated nights match the trip's night budget."""

    balanced = "balanced"
    over = "over"
    under = "under"


class ReconcileOutcome(str, Enum):
    """Which path the reconciler took."""

    noop = "noop"
    empty = "empty"
    structural = "structural"
