"""Activity models - tagged variants keyed on ``type``."""

from typing import Annotated, Literal, get_args

from pydantic import BaseModel, Field, TypeAdapter

from backend.app.models.common import TransportMode

TransportType = Literal["flight", "train", "bus", "drive", "ferry", "transit"]
PlaceType = Literal["attraction", "restaurant", "cafe", "nightlife", "activity"]

TRANSPORT_TYPES: frozenset[str] = frozenset(get_args(TransportType))
PLACE_TYPES: frozenset[str] = frozenset(get_args(PlaceType))


class Attachment(BaseModel):
    """User attachment on an activity (ticket, reservation, link...)."""

    kind: Literal["ticket", "reservation", "link", "document"]
    name: str
    url: str | None = None


class RouteSegment(BaseModel):
    """One hop of a multi-leg route."""

    mode: TransportMode
    from_city: str
    to_city: str
    duration_label: str | None = None
    operator: str | None = None


class TransportDetails(BaseModel):
    """Leg details carried by every transport activity."""

    from_city: str
    to_city: str
    operator: str | None = None
    departure_time: str | None = None
    arrival_time: str | None = None
    booking_ref: str | None = None
    segments: list[RouteSegment] = Field(default_factory=list)


class _ActivityBase(BaseModel):
    id: str
    name: str
    description: str | None = None
    suggested_time: str | None = Field(default=None, pattern=r"^\d{2}:\d{2}$")
    duration_minutes: int | None = Field(default=None, ge=0)
    tags: list[str] = Field(default_factory=list)
    user_cost: float | None = None
    user_notes: str | None = None
    attachments: list[Attachment] = Field(default_factory=list)
    image_url: str | None = None


class TransportActivity(_ActivityBase):
    """Travel leg. Regenerated by the timeline, never merged as content."""

    type: TransportType
    transport_details: TransportDetails


class PlaceActivity(_ActivityBase):
    """Something to do at a stay: sight, meal, drink, night out."""

    type: PlaceType


Activity = Annotated[TransportActivity | PlaceActivity, Field(discriminator="type")]

activity_adapter: TypeAdapter[TransportActivity | PlaceActivity] = TypeAdapter(Activity)


def is_transport(activity: TransportActivity | PlaceActivity) -> bool:
    """True for transport variants."""
    return isinstance(activity, TransportActivity)
