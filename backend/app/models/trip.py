"""Trip record models - persisted state and traveller preferences."""

from pydantic import BaseModel, Field

from backend.app.models.common import Pace
from backend.app.models.timeline import CityAllocation, Day, TripWindow
from backend.app.models.transport import PreselectedRoute


class TripPreferences(BaseModel):
    """Preference hints used for allocation and enrichment."""

    pace: Pace = Pace.balanced
    interests: list[str] = Field(default_factory=list)


class TripRecord(BaseModel):
    """Persisted trip, stored opaquely by trip id."""

    trip_id: str
    cities: list[str]
    home_base: str
    trip_window: TripWindow
    preferences: TripPreferences = Field(default_factory=TripPreferences)
    preselected_route: PreselectedRoute | None = None
    allocations: list[CityAllocation] = Field(default_factory=list)
    days: list[Day] = Field(default_factory=list)
