"""Models package - re-exports for convenience."""

from backend.app.models.activity import (
    Activity,
    Attachment,
    PlaceActivity,
    RouteSegment,
    TransportActivity,
    TransportDetails,
    is_transport,
)
from backend.app.models.common import (
    TRANSIT_MARKER,
    AllocationState,
    Pace,
    ReconcileOutcome,
    TransportMode,
)
from backend.app.models.timeline import AllocationStatus, CityAllocation, Day, TripWindow
from backend.app.models.transport import PreselectedRoute, TransportOption
from backend.app.models.trip import TripPreferences, TripRecord

__all__ = [
    # Common
    "TRANSIT_MARKER",
    "AllocationState",
    "Pace",
    "ReconcileOutcome",
    "TransportMode",
    # Activities
    "Activity",
    "Attachment",
    "PlaceActivity",
    "RouteSegment",
    "TransportActivity",
    "TransportDetails",
    "is_transport",
    # Timeline
    "AllocationStatus",
    "CityAllocation",
    "Day",
    "TripWindow",
    # Transport
    "PreselectedRoute",
    "TransportOption",
    # Trip
    "TripPreferences",
    "TripRecord",
]
