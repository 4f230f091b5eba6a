"""SQL implementation of the trip repository."""

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from backend.app.db.models import TripRecordRow
from backend.app.models.trip import TripRecord


class SqlTripRepository:
    """SQL implementation of TripRepository."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def get(self, trip_id: str) -> TripRecord | None:
        """Get trip record by ID."""
        async with self._session_factory() as session:
            row = await session.get(TripRecordRow, trip_id)
            if row is None:
                return None
            return TripRecord.model_validate(
                {
                    "trip_id": row.trip_id,
                    "home_base": row.home_base,
                    "cities": row.cities,
                    "trip_window": row.trip_window,
                    "preferences": row.preferences,
                    "preselected_route": row.preselected_route,
                    "allocations": row.allocations,
                    "days": row.days,
                }
            )

    async def put(self, record: TripRecord) -> None:
        """Insert or replace trip record."""
        data = record.model_dump(mode="json")
        async with self._session_factory() as session:
            row = await session.get(TripRecordRow, record.trip_id)
            if row is None:
                row = TripRecordRow(trip_id=record.trip_id)
                session.add(row)

            row.home_base = data["home_base"]
            row.cities = data["cities"]
            row.trip_window = data["trip_window"]
            row.preferences = data["preferences"]
            row.preselected_route = data["preselected_route"]
            row.allocations = data["allocations"]
            row.days = data["days"]

            await session.commit()
