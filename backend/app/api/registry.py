"""In-process registry of trip engines, persisted through a TripRepository.

Each engine is hydrated from the repository once, then released from its
load-pending state. Its change notifications mark the session dirty and the
route handler writes the snapshot back after the mutation completes.
"""

import asyncio
import logging
import uuid
from dataclasses import dataclass, field
from datetime import date
from typing import Any

from backend.app.db.engine import create_session_factory, get_async_engine
from backend.app.db.repositories import TripRepository
from backend.app.db.sql_repositories import SqlTripRepository
from backend.app.engine.session import TripEngine
from backend.app.models.trip import TripPreferences

logger = logging.getLogger(__name__)


@dataclass
class TripSession:
    """A live engine plus whether it has unsaved changes."""

    dirty: bool = False
    engine: TripEngine = field(init=False)

    def mark_dirty(self, *_: Any) -> None:
        self.dirty = True


class EngineRegistry:
    """Keeps one TripEngine per trip id for the life of the process."""

    def __init__(self, repository: TripRepository, **engine_options: Any) -> None:
        """Initialize registry.

        Args:
            repository: Store used to load and save trip records
            **engine_options: Extra TripEngine keyword arguments (enricher,
                image_fetcher, transport_lookup, settings, clock)
        """
        self.repository = repository
        self._engine_options = engine_options
        self._sessions: dict[str, TripSession] = {}
        self._lock = asyncio.Lock()

    def _build(self, trip_id: str, **kwargs: Any) -> TripSession:
        session = TripSession()
        session.engine = TripEngine(
            trip_id,
            on_allocations_change=session.mark_dirty,
            on_generated_days_change=session.mark_dirty,
            on_dates_change=session.mark_dirty,
            **kwargs,
            **self._engine_options,
        )
        return session

    async def create(
        self,
        *,
        cities: list[str],
        start_date: date,
        total_days: int,
        home_base: str | None = None,
        preferences: TripPreferences | None = None,
    ) -> TripSession:
        """Create, register and persist a new trip.

        Raises:
            InsufficientDurationError: If total_days leaves no night to allocate
        """
        trip_id = uuid.uuid4().hex
        session = self._build(
            trip_id,
            cities=cities,
            start_date=start_date,
            total_days=total_days,
            home_base=home_base,
            preferences=preferences,
        )
        session.engine.mark_load_complete()
        async with self._lock:
            self._sessions[trip_id] = session
        await self.persist(session)
        return session

    async def get(self, trip_id: str) -> TripSession | None:
        """Return the live session, loading it from the repository on first use."""
        async with self._lock:
            session = self._sessions.get(trip_id)
            if session is not None:
                return session

            record = await self.repository.get(trip_id)
            if record is None:
                return None

            session = self._build(
                trip_id,
                cities=record.cities,
                start_date=record.trip_window.start_date,
                total_days=record.trip_window.total_days,
                home_base=record.home_base,
                preferences=record.preferences,
                preselected_route=record.preselected_route,
            )
            adopted = session.engine.hydrate(record)
            session.engine.mark_load_complete()
            # Nothing changed when the stored state was adopted as-is
            session.dirty = not adopted
            self._sessions[trip_id] = session

        await self.persist(session)
        return session

    async def persist(self, session: TripSession) -> None:
        """Write the session's snapshot if it has unsaved changes."""
        if not session.dirty:
            return
        await self.repository.put(session.engine.snapshot())
        session.dirty = False
        logger.debug(f"Persisted trip {session.engine.trip_id}")

    def dispose(self) -> None:
        """Dispose every live engine."""
        for session in self._sessions.values():
            session.engine.dispose()
        self._sessions.clear()


_registry: EngineRegistry | None = None


def get_registry() -> EngineRegistry:
    """FastAPI dependency returning the process-wide registry."""
    global _registry
    if _registry is None:
        _registry = EngineRegistry(SqlTripRepository(create_session_factory(get_async_engine())))
    return _registry
