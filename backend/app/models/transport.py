"""Transport lookup result shapes."""

from typing import Annotated, Literal

from pydantic import BaseModel, Field

from backend.app.models.activity import RouteSegment

OptionMode = Literal["flight", "train", "bus", "drive", "ferry", "taxi", "private"]


class TransportOption(BaseModel):
    """Candidate way of getting from one city to another."""

    mode: OptionMode
    duration_minutes: int
    duration_label: str
    operator: str | None = None
    price_range: str | None = None
    badge: Literal["best", "fastest", "cheapest"] | None = None
    recommended: bool = False
    notes: str | None = None


class PreselectedRoute(BaseModel):
    """Multi-leg route the user picked for the departure from home base."""

    segments: Annotated[list[RouteSegment], Field(min_length=1)]
