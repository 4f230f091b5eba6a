"""Repository protocol for trip persistence."""

from typing import Protocol

from backend.app.models.trip import TripRecord


class TripRepository(Protocol):
    """Opaque get/put store for trip records keyed by trip id."""

    async def get(self, trip_id: str) -> TripRecord | None:
        """Load a trip record.

        Args:
            trip_id: Trip identifier

        Returns:
            The stored record, or None if the trip was never saved
        """
        ...

    async def put(self, record: TripRecord) -> None:
        """Insert or replace a trip record.

        Args:
            record: Record to store under ``record.trip_id``
        """
        ...
