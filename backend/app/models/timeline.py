"""Timeline models - trip window, city allocations and days."""

from datetime import date, timedelta

from pydantic import BaseModel, Field, model_validator

from backend.app.models.activity import Activity
from backend.app.models.common import TRANSIT_MARKER, AllocationState, TransportMode


class TripWindow(BaseModel):
    """Start date plus length of the trip in calendar days."""

    start_date: date
    total_days: int = Field(..., ge=1)

    @property
    def total_nights(self) -> int:
        return self.total_days - 1

    @property
    def end_date(self) -> date:
        return self.start_date + timedelta(days=self.total_days - 1)


class CityAllocation(BaseModel):
    """Contiguous block of nights at one city (or a transit leg).

    ``end_date`` is the check-out date, ``start_date + nights``.
    """

    city: str
    nights: int = Field(..., ge=1)
    start_day: int = Field(..., ge=1)
    end_day: int = Field(..., ge=1)
    start_date: date
    end_date: date
    transport_mode_override: TransportMode | None = None

    @property
    def is_transit(self) -> bool:
        return self.city == TRANSIT_MARKER

    @model_validator(mode="after")
    def validate_day_range(self) -> "CityAllocation":
        """Ensure end_day >= start_day."""
        if self.end_day < self.start_day:
            raise ValueError(f"end_day {self.end_day} < start_day {self.start_day}")
        return self


class Day(BaseModel):
    """One calendar day of the trip."""

    day_number: int = Field(..., ge=1)
    date: date
    city: str
    theme: str | None = None
    activities: list[Activity] = Field(default_factory=list)


class AllocationStatus(BaseModel):
    """Over/under allocation indicator surfaced to the host."""

    allocated_nights: int
    target_nights: int
    state: AllocationState
    dropped_cities: list[str] = Field(default_factory=list)
