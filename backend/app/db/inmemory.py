"""In-memory implementation of the trip repository."""

from typing import Any

from backend.app.models.trip import TripRecord


class InMemoryTripRepository:
    """In-memory implementation of TripRepository.

    Records are stored serialized so callers never share objects with the store.
    """

    def __init__(self) -> None:
        self._records: dict[str, dict[str, Any]] = {}

    async def get(self, trip_id: str) -> TripRecord | None:
        """Get trip record by ID."""
        data = self._records.get(trip_id)
        if data is None:
            return None
        return TripRecord.model_validate(data)

    async def put(self, record: TripRecord) -> None:
        """Store trip record."""
        self._records[record.trip_id] = record.model_dump(mode="json")
