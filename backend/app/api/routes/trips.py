"""Trip timeline endpoints - allocations, dates, activity edits and auto-fill."""

from datetime import date
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field, model_validator

from backend.app.api.registry import EngineRegistry, TripSession, get_registry
from backend.app.models.activity import Activity, Attachment, PlaceActivity
from backend.app.models.common import Pace, TransportMode
from backend.app.models.timeline import AllocationStatus
from backend.app.models.trip import TripPreferences, TripRecord
from backend.app.timeline.errors import (
    ActivityNotFoundError,
    AllocationIndexError,
    DayNotFoundError,
    InsufficientDurationError,
)

router = APIRouter(prefix="/trips", tags=["trips"])

Registry = Annotated[EngineRegistry, Depends(get_registry)]


class CreateTripRequest(BaseModel):
    """Request body for POST /trips."""

    cities: list[str] = Field(..., description="Destination cities in visiting order")
    start_date: date
    total_days: int = Field(..., ge=1, description="Trip length in calendar days")
    home_base: str | None = None
    pace: Pace = Pace.balanced
    interests: list[str] = Field(default_factory=list)


class TripResponse(BaseModel):
    """Trip state returned by every mutation."""

    trip: TripRecord
    status: AllocationStatus
    undo_available: bool


class NightsRequest(BaseModel):
    """Either a stepper delta or an absolute night count."""

    delta: int | None = None
    nights: int | None = Field(None, ge=1)
    balance: bool = False

    @model_validator(mode="after")
    def validate_one_of(self) -> "NightsRequest":
        """Exactly one of delta / nights must be given."""
        if (self.delta is None) == (self.nights is None):
            raise ValueError("provide exactly one of 'delta' or 'nights'")
        return self


class MoveRequest(BaseModel):
    """Move an item from one index to another."""

    from_index: int = Field(..., ge=0)
    to_index: int = Field(..., ge=0)


class TransitRequest(BaseModel):
    """Insert a transit allocation before ``position``."""

    position: int = Field(..., ge=0)


class TransportModeRequest(BaseModel):
    """Override (or clear with null) the mode used to leave a stay."""

    mode: TransportMode | None = None


class DatesRequest(BaseModel):
    """New start date and, optionally, an inclusive end date."""

    start_date: date
    end_date: date | None = None


class CitiesRequest(BaseModel):
    """Replacement city list."""

    cities: list[str]


class ActivityPatch(BaseModel):
    """Editable activity fields; only fields that are sent are applied."""

    suggested_time: str | None = Field(None, pattern=r"^\d{2}:\d{2}$")
    duration_minutes: int | None = Field(None, ge=0)
    user_cost: float | None = None
    user_notes: str | None = None
    attachments: list[Attachment] | None = None


class DeleteActivityResponse(BaseModel):
    """Deleted activity, recoverable via POST /trips/{trip_id}/undo."""

    deleted: Activity
    undo_available: bool


class UndoResponse(BaseModel):
    restored: bool


class AutoFillResponse(BaseModel):
    added: list[PlaceActivity]


class RefreshImagesResponse(BaseModel):
    updated: int


def _insufficient_duration(e: InsufficientDurationError) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        detail={
            "code": "insufficient_duration",
            "message": str(e),
            "total_nights": e.total_nights,
            "blocking": True,
        },
    )


def _to_response(session: TripSession) -> TripResponse:
    engine = session.engine
    return TripResponse(
        trip=engine.snapshot(), status=engine.status(), undo_available=engine.undo_available
    )


async def _load(registry: EngineRegistry, trip_id: str) -> TripSession:
    session = await registry.get(trip_id)
    if session is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Trip not found")
    return session


@router.post("", response_model=TripResponse, status_code=status.HTTP_201_CREATED)
async def create_trip(request: CreateTripRequest, registry: Registry) -> TripResponse:
    """Create a trip and its default timeline.

    Returns:
        Trip state

    Raises:
        HTTPException: 422 if the trip is too short to hold a night
    """
    try:
        session = await registry.create(
            cities=request.cities,
            start_date=request.start_date,
            total_days=request.total_days,
            home_base=request.home_base,
            preferences=TripPreferences(pace=request.pace, interests=request.interests),
        )
    except InsufficientDurationError as e:
        raise _insufficient_duration(e) from e
    return _to_response(session)


@router.get("/{trip_id}", response_model=TripResponse)
async def get_trip(trip_id: str, registry: Registry) -> TripResponse:
    session = await _load(registry, trip_id)
    return _to_response(session)


@router.get("/{trip_id}/status", response_model=AllocationStatus)
async def get_trip_status(trip_id: str, registry: Registry) -> AllocationStatus:
    """Over/under allocation indicator."""
    session = await _load(registry, trip_id)
    return session.engine.status()


@router.post("/{trip_id}/allocations/{index}/nights", response_model=TripResponse)
async def change_nights(
    trip_id: str, index: int, request: NightsRequest, registry: Registry
) -> TripResponse:
    """Nights stepper (``delta``) or direct set (``nights``)."""
    session = await _load(registry, trip_id)
    try:
        if request.delta is not None:
            session.engine.adjust_nights(index, request.delta, balance=request.balance)
        else:
            assert request.nights is not None
            session.engine.set_nights(index, request.nights)
    except AllocationIndexError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from e
    await registry.persist(session)
    return _to_response(session)


@router.post("/{trip_id}/allocations/reorder", response_model=TripResponse)
async def reorder_allocations(trip_id: str, request: MoveRequest, registry: Registry) -> TripResponse:
    session = await _load(registry, trip_id)
    try:
        session.engine.reorder_allocations(request.from_index, request.to_index)
    except AllocationIndexError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from e
    await registry.persist(session)
    return _to_response(session)


@router.post("/{trip_id}/allocations/transit", response_model=TripResponse)
async def insert_transit(trip_id: str, request: TransitRequest, registry: Registry) -> TripResponse:
    session = await _load(registry, trip_id)
    try:
        session.engine.insert_transit(request.position)
    except AllocationIndexError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from e
    await registry.persist(session)
    return _to_response(session)


@router.delete("/{trip_id}/allocations/{index}", response_model=TripResponse)
async def remove_transit(trip_id: str, index: int, registry: Registry) -> TripResponse:
    """Remove a transit allocation. Stays are removed by editing the city list."""
    session = await _load(registry, trip_id)
    try:
        session.engine.remove_transit(index)
    except AllocationIndexError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from e
    await registry.persist(session)
    return _to_response(session)


@router.put("/{trip_id}/allocations/{index}/transport", response_model=TripResponse)
async def set_transport_mode(
    trip_id: str, index: int, request: TransportModeRequest, registry: Registry
) -> TripResponse:
    session = await _load(registry, trip_id)
    try:
        session.engine.set_transport_mode(index, request.mode)
    except AllocationIndexError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from e
    await registry.persist(session)
    return _to_response(session)


@router.post("/{trip_id}/auto_allocate", response_model=TripResponse)
async def auto_allocate(trip_id: str, registry: Registry) -> TripResponse:
    """Reset nights through the allocator."""
    session = await _load(registry, trip_id)
    session.engine.auto_allocate()
    await registry.persist(session)
    return _to_response(session)


@router.put("/{trip_id}/dates", response_model=TripResponse)
async def set_dates(trip_id: str, request: DatesRequest, registry: Registry) -> TripResponse:
    """Move the start date, and optionally the end date.

    Raises:
        HTTPException: 422 if the new range holds no night
    """
    session = await _load(registry, trip_id)
    try:
        if request.end_date is None:
            session.engine.set_start_date(request.start_date)
        else:
            session.engine.set_dates(request.start_date, request.end_date)
    except InsufficientDurationError as e:
        raise _insufficient_duration(e) from e
    await registry.persist(session)
    return _to_response(session)


@router.put("/{trip_id}/cities", response_model=TripResponse)
async def set_cities(trip_id: str, request: CitiesRequest, registry: Registry) -> TripResponse:
    session = await _load(registry, trip_id)
    session.engine.set_cities(request.cities)
    await registry.persist(session)
    return _to_response(session)


@router.delete(
    "/{trip_id}/days/{day_number}/activities/{activity_id}",
    response_model=DeleteActivityResponse,
)
async def delete_activity(
    trip_id: str, day_number: int, activity_id: str, registry: Registry
) -> DeleteActivityResponse:
    session = await _load(registry, trip_id)
    try:
        deleted = session.engine.delete_activity(day_number, activity_id)
    except (DayNotFoundError, ActivityNotFoundError) as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e)) from e
    await registry.persist(session)
    return DeleteActivityResponse(deleted=deleted, undo_available=session.engine.undo_available)


@router.post("/{trip_id}/undo", response_model=UndoResponse)
async def undo(trip_id: str, registry: Registry) -> UndoResponse:
    """Restore the most recent deletion if it has not expired."""
    session = await _load(registry, trip_id)
    restored = session.engine.undo()
    await registry.persist(session)
    return UndoResponse(restored=restored)


@router.post("/{trip_id}/days/{day_number}/reorder", response_model=TripResponse)
async def reorder_activities(
    trip_id: str, day_number: int, request: MoveRequest, registry: Registry
) -> TripResponse:
    """Move an activity within a day; suggested times are recomputed."""
    session = await _load(registry, trip_id)
    try:
        session.engine.move_activity(day_number, request.from_index, request.to_index)
    except (DayNotFoundError, ActivityNotFoundError) as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e)) from e
    await registry.persist(session)
    return _to_response(session)


@router.patch("/{trip_id}/activities/{activity_id}", response_model=TripResponse)
async def update_activity(
    trip_id: str, activity_id: str, patch: ActivityPatch, registry: Registry
) -> TripResponse:
    session = await _load(registry, trip_id)
    changes = patch.model_dump(exclude_unset=True)
    try:
        session.engine.update_activity(activity_id, changes)
    except ActivityNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e)) from e
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e)
        ) from e
    await registry.persist(session)
    return _to_response(session)


@router.post("/{trip_id}/activities/{activity_id}/attachments", response_model=TripResponse)
async def add_attachment(
    trip_id: str, activity_id: str, attachment: Attachment, registry: Registry
) -> TripResponse:
    session = await _load(registry, trip_id)
    try:
        session.engine.add_attachment(activity_id, attachment)
    except ActivityNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e)) from e
    await registry.persist(session)
    return _to_response(session)


@router.post("/{trip_id}/days/{day_number}/auto_fill", response_model=AutoFillResponse)
async def auto_fill_day(trip_id: str, day_number: int, registry: Registry) -> AutoFillResponse:
    """Ask the enricher for fresh activities for one day.

    An empty list means no data was available or the day changed meanwhile.
    """
    session = await _load(registry, trip_id)
    try:
        added = await session.engine.auto_fill_day(day_number)
    except DayNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e)) from e
    await registry.persist(session)
    return AutoFillResponse(added=added)


@router.post("/{trip_id}/images/refresh", response_model=RefreshImagesResponse)
async def refresh_images(trip_id: str, registry: Registry) -> RefreshImagesResponse:
    session = await _load(registry, trip_id)
    updated = await session.engine.refresh_images()
    await registry.persist(session)
    return RefreshImagesResponse(updated=updated)
