"""TripEngine - owns one trip's window, allocations and days.

The engine computes defaults synchronously when constructed. Host
notifications stay silent until ``mark_load_complete`` so that those defaults
never overwrite a persisted trip that is still loading.
"""

import asyncio
import logging
import time
from collections import Counter
from collections.abc import Callable, Iterable
from datetime import date
from typing import Any

from backend.app.adapters.enrichment import ActivityEnricher, get_activity_enricher
from backend.app.adapters.images import ImageFetcher, get_image_fetcher
from backend.app.adapters.transport_options import get_transport_options
from backend.app.config import Settings, get_settings
from backend.app.engine import edits
from backend.app.engine.sync_guard import PersistenceSyncGuard
from backend.app.models.activity import Activity, Attachment, PlaceActivity, is_transport
from backend.app.models.common import TRANSIT_MARKER, ReconcileOutcome, TransportMode
from backend.app.models.timeline import AllocationStatus, CityAllocation, Day, TripWindow
from backend.app.models.transport import PreselectedRoute
from backend.app.models.trip import TripPreferences, TripRecord
from backend.app.timeline import allocator
from backend.app.timeline.day_expander import TransportLookup
from backend.app.timeline.errors import DayNotFoundError, InsufficientDurationError
from backend.app.timeline.reconciler import patch_dates, reconcile, refresh_transport
from backend.app.utils.logging import StructuredTimelineLogger
from backend.app.utils.metrics import PrometheusTimelineMetrics

logger = logging.getLogger(__name__)

AllocationsCallback = Callable[[list[CityAllocation]], None]
DaysCallback = Callable[[list[Day]], None]
DatesCallback = Callable[[date, int], None]


class TripEngine:
    """Stateful timeline for one trip.

    Every mutation runs to completion synchronously before any callback
    fires, so hosts never observe a half-applied change.
    """

    def __init__(
        self,
        trip_id: str,
        cities: list[str],
        start_date: date,
        total_days: int,
        home_base: str | None = None,
        preferences: TripPreferences | None = None,
        preselected_route: PreselectedRoute | None = None,
        *,
        on_allocations_change: AllocationsCallback | None = None,
        on_generated_days_change: DaysCallback | None = None,
        on_dates_change: DatesCallback | None = None,
        transport_lookup: TransportLookup = get_transport_options,
        enricher: ActivityEnricher | None = None,
        image_fetcher: ImageFetcher | None = None,
        settings: Settings | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        """Build the engine and its default timeline.

        Raises:
            InsufficientDurationError: If total_days leaves no night to allocate
        """
        if total_days - 1 < 1:
            raise InsufficientDurationError(total_days - 1)
        self._settings = settings or get_settings()
        self.trip_id = trip_id
        self.cities = list(cities)
        self.home_base = home_base or self._settings.default_home_base
        self.preferences = preferences or TripPreferences()
        self.preselected_route = preselected_route
        self.window = TripWindow(start_date=start_date, total_days=total_days)

        self.on_allocations_change = on_allocations_change
        self.on_generated_days_change = on_generated_days_change
        self.on_dates_change = on_dates_change

        self._lookup = transport_lookup
        self._enricher = enricher
        self._image_fetcher = image_fetcher
        self._guard = PersistenceSyncGuard()
        self._undo = edits.UndoSlot(self._settings.undo_ttl_seconds, clock)
        self._day_versions: dict[int, int] = {}
        self._image_processed: set[str] = set()
        self._log = StructuredTimelineLogger()
        self._metrics = PrometheusTimelineMetrics()

        self.allocations = allocator.allocate_days(
            self.cities, self.window.total_nights, start_date, self.preferences
        )
        self.days: list[Day] = []
        self._reconcile("init")

    # ------------------------------------------------------------------
    # Load / persistence
    # ------------------------------------------------------------------

    @property
    def load_complete(self) -> bool:
        return self._guard.load_complete

    def hydrate(self, record: TripRecord) -> bool:
        """Adopt persisted state when it covers the same cities.

        Returns:
            True if the record was adopted, False on a cache-miss
        """
        persisted = Counter(allocator.stay_cities(record.allocations))
        current = Counter(allocator.stay_cities(self.allocations))
        if not record.allocations or persisted != current:
            logger.info(
                f"Persisted cities differ for {self.trip_id}, keeping defaults",
                extra={
                    "structured": {
                        "trip_id": self.trip_id,
                        "persisted": sorted(persisted.elements()),
                        "current": sorted(current.elements()),
                    }
                },
            )
            return False

        self.window = record.trip_window
        self.allocations = allocator.renumber(record.allocations, self.window.start_date)
        self.days = list(record.days)
        # Version counters never reset
        self._bump_versions(set(self._day_versions) | {day.day_number for day in self.days})
        self._reconcile("hydrate")
        return True

    def mark_load_complete(self) -> bool:
        """Signal that hydration was attempted; starts outward propagation."""
        if not self._guard.mark_load_complete():
            return False
        self._emit_allocations()
        self._emit_days()
        return True

    def snapshot(self) -> TripRecord:
        """Current state as a persistable record."""
        return TripRecord(
            trip_id=self.trip_id,
            cities=list(self.cities),
            home_base=self.home_base,
            trip_window=self.window,
            preferences=self.preferences,
            preselected_route=self.preselected_route,
            allocations=list(self.allocations),
            days=list(self.days),
        )

    def status(self) -> AllocationStatus:
        return allocator.allocation_status(self.allocations, self.window, self.cities)

    def day_version(self, day_number: int) -> int:
        return self._day_versions.get(day_number, 0)

    def dispose(self) -> None:
        """Clear per-engine state and detach host callbacks."""
        self._image_processed.clear()
        self._undo.clear()
        self.on_allocations_change = None
        self.on_generated_days_change = None
        self.on_dates_change = None

    # ------------------------------------------------------------------
    # Allocation mutations
    # ------------------------------------------------------------------

    def adjust_nights(self, index: int, delta: int, balance: bool = False) -> None:
        self._apply(
            allocator.adjust_nights(
                self.allocations, index, delta, self.window.start_date, balance
            ),
            "adjust_nights",
        )

    def set_nights(self, index: int, nights: int) -> None:
        self._apply(
            allocator.set_nights(self.allocations, index, nights, self.window.start_date),
            "set_nights",
        )

    def reorder_allocations(self, from_index: int, to_index: int) -> None:
        self._apply(
            allocator.reorder(self.allocations, from_index, to_index, self.window.start_date),
            "reorder",
        )

    def insert_transit(self, position: int) -> None:
        self._apply(
            allocator.insert_transit(self.allocations, position, self.window.start_date),
            "insert_transit",
        )

    def remove_transit(self, index: int) -> None:
        self._apply(
            allocator.remove_transit(self.allocations, index, self.window.start_date),
            "remove_transit",
        )

    def set_transport_mode(self, index: int, mode: TransportMode | None) -> None:
        """Override (or clear) how the traveller leaves the stay at ``index``.

        Adjacency is unchanged, so only transport activities are rebuilt.
        """
        self.allocations = allocator.set_transport_mode(self.allocations, index, mode)
        self.days = refresh_transport(
            self.days, self.allocations, self.home_base, self.preselected_route, self._lookup
        )
        self._emit_allocations()
        self._emit_days()

    def set_cities(self, cities: list[str]) -> None:
        """Replace the city list: a permutation reorders, anything else reallocates."""
        reordered = allocator.reorder_to_cities(self.allocations, cities, self.window.start_date)
        self.cities = list(cities)
        if reordered is not None:
            self._apply(reordered, "cities_reorder")
            return

        fresh = allocator.allocate_days(
            self.cities, self.window.total_nights, self.window.start_date, self.preferences
        )
        self._apply(allocator.carry_overrides(self.allocations, fresh), "cities_changed")

    def auto_allocate(self) -> None:
        """Discard manual night edits and rerun the allocator."""
        self._apply(
            allocator.allocate_days(
                self.cities, self.window.total_nights, self.window.start_date, self.preferences
            ),
            "auto_allocate",
        )

    # ------------------------------------------------------------------
    # Dates
    # ------------------------------------------------------------------

    def set_start_date(self, start_date: date) -> None:
        """Shift the trip; night counts and content stay where they are."""
        self._shift_start(start_date)
        self._emit_allocations()
        self._emit_days()
        self._notify_dates()

    def set_total_days(self, total_days: int) -> None:
        """Change trip length; reallocates nights then merges existing content.

        Raises:
            InsufficientDurationError: If total_days leaves no night; state is unchanged
        """
        changed = self._resize(total_days)
        self._emit_allocations()
        if changed:
            self._emit_days()
        self._notify_dates()

    def set_dates(self, start_date: date, end_date: date) -> None:
        """Set both ends of the trip (end date inclusive).

        The shift and the reallocation are applied before the host hears about
        either, so callbacks fire at most once per kind.
        """
        total_days = (end_date - start_date).days + 1
        if total_days - 1 < 1:
            raise InsufficientDurationError(total_days - 1)

        shifted = start_date != self.window.start_date
        resized = total_days != self.window.total_days
        changed = False
        if shifted:
            self._shift_start(start_date)
            changed = True
        if resized:
            changed = self._resize(total_days) or changed
        if shifted or resized:
            self._emit_allocations()
        if changed:
            self._emit_days()
        self._notify_dates()

    def _shift_start(self, start_date: date) -> None:
        self.window = self.window.model_copy(update={"start_date": start_date})
        self.allocations = allocator.renumber(self.allocations, start_date)
        self.days = patch_dates(self.days, start_date)
        self._bump_versions(day.day_number for day in self.days)

    def _resize(self, total_days: int) -> bool:
        """Reallocate for a new length without notifying. Returns True if days changed."""
        if total_days - 1 < 1:
            raise InsufficientDurationError(total_days - 1)
        window = TripWindow(start_date=self.window.start_date, total_days=total_days)
        fresh = allocator.allocate_days(
            self.cities, window.total_nights, window.start_date, self.preferences
        )
        self.window = window
        self.allocations = allocator.carry_overrides(self.allocations, fresh)
        return self._reconcile("total_days")

    def _notify_dates(self) -> None:
        if self.on_dates_change is not None:
            self.on_dates_change(self.window.start_date, self.window.total_days)

    # ------------------------------------------------------------------
    # Activity edits
    # ------------------------------------------------------------------

    def delete_activity(self, day_number: int, activity_id: str) -> Activity:
        """Remove an activity; recoverable with ``undo`` until the slot expires."""
        self.days, removed, index = edits.delete_activity(self.days, day_number, activity_id)
        city = self._day(day_number).city
        self._undo.put(removed, day_number, city, index)
        self._emit_days()
        return removed

    def undo(self) -> bool:
        """Restore the last deletion. Returns False when nothing could be restored."""
        entry = self._undo.take()
        if entry is None:
            return False
        restored = edits.restore_activity(self.days, entry)
        if restored is None:
            logger.info(
                f"Undo target day {entry.day_number} no longer holds {entry.city}, dropping undo",
                extra={"structured": {"trip_id": self.trip_id, "day_number": entry.day_number}},
            )
            return False
        self.days = restored
        self._emit_days()
        return True

    @property
    def undo_available(self) -> bool:
        return self._undo.peek() is not None

    def move_activity(self, day_number: int, from_index: int, to_index: int) -> None:
        self.days = edits.move_activity(
            self.days,
            day_number,
            from_index,
            to_index,
            start_hour=self._settings.slot_start_hour,
            spacing_minutes=self._settings.slot_spacing_minutes,
            latest_hour=self._settings.slot_latest_hour,
        )
        self._emit_days()

    def update_activity(self, activity_id: str, changes: dict[str, Any]) -> None:
        self.days = edits.update_activity(self.days, activity_id, changes)
        self._emit_days()

    def add_attachment(self, activity_id: str, attachment: Attachment) -> None:
        self.days = edits.add_attachment(self.days, activity_id, attachment)
        self._emit_days()

    # ------------------------------------------------------------------
    # Async enrichment
    # ------------------------------------------------------------------

    async def auto_fill_day(self, day_number: int) -> list[PlaceActivity]:
        """Fetch fresh activities for a stay day and append them.

        The result is discarded if the day was restructured while the request
        was in flight.

        Returns:
            Activities that were applied (empty when none were)
        """
        day = self._day(day_number)
        if day.city == TRANSIT_MARKER:
            return []

        version = self.day_version(day_number)
        city = day.city
        stay = next(
            (a for a in self.allocations if a.start_day <= day_number <= a.end_day), None
        )
        exclude = list(
            dict.fromkeys(a.name for d in self.days for a in d.activities if not is_transport(a))
        )

        enricher = self._enricher or get_activity_enricher(self._settings)
        results = await enricher.enrich_activities(
            city=city,
            nights=stay.nights if stay else 1,
            preferences=self.preferences,
            exclude_names=exclude,
        )
        if not results:
            return []

        current = next((d for d in self.days if d.day_number == day_number), None)
        if current is None or current.city != city:
            self._log.log_discarded_result(self.trip_id, day_number, "day no longer in city")
            return []
        if self.day_version(day_number) != version:
            self._log.log_discarded_result(self.trip_id, day_number, "day changed during request")
            return []

        self.days = [
            d.model_copy(update={"activities": [*d.activities, *results]})
            if d.day_number == day_number
            else d
            for d in self.days
        ]
        self._emit_days()
        return results

    async def refresh_images(self) -> int:
        """Fetch images for activities not yet submitted; returns how many were set."""
        pending = [
            (day.city, activity)
            for day in self.days
            for activity in day.activities
            if not is_transport(activity)
            and activity.image_url is None
            and activity.id not in self._image_processed
        ]
        if not pending:
            return 0

        self._image_processed.update(activity.id for _, activity in pending)
        fetcher = self._image_fetcher or get_image_fetcher(self._settings)
        urls = await asyncio.gather(
            *(fetcher.fetch_image(activity.name, city) for city, activity in pending)
        )

        found = {activity.id: url for (_, activity), url in zip(pending, urls) if url}
        if not found:
            return 0

        self.days = [
            day.model_copy(
                update={
                    "activities": [
                        a.model_copy(update={"image_url": found[a.id]}) if a.id in found else a
                        for a in day.activities
                    ]
                }
            )
            for day in self.days
        ]
        self._emit_days()
        return len(found)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _day(self, day_number: int) -> Day:
        for day in self.days:
            if day.day_number == day_number:
                return day
        raise DayNotFoundError(f"day {day_number} does not exist")

    def _bump_versions(self, day_numbers: Iterable[int]) -> None:
        for n in day_numbers:
            self._day_versions[n] = self._day_versions.get(n, 0) + 1

    def _reconcile(self, trigger: str) -> bool:
        """Merge days with the current allocations. Returns True if days changed."""
        result = reconcile(
            self.days, self.allocations, self.home_base, self.preselected_route, self._lookup
        )
        dropped = sum(result.dropped.values())
        self._log.log_reconcile(
            self.trip_id, trigger, result.outcome, len(result.days), result.dropped
        )
        self._metrics.record_reconcile(trigger, result.outcome.value, dropped)

        if result.outcome == ReconcileOutcome.noop:
            return False
        self.days = result.days
        self._bump_versions(day.day_number for day in self.days)
        return True

    def _apply(self, allocations: list[CityAllocation], trigger: str) -> None:
        self.allocations = allocations
        changed = self._reconcile(trigger)
        self._emit_allocations()
        if changed:
            self._emit_days()

    def _emit_allocations(self) -> None:
        if self.on_allocations_change is not None and self._guard.should_propagate(
            self.allocations
        ):
            self.on_allocations_change(list(self.allocations))

    def _emit_days(self) -> None:
        if self.on_generated_days_change is not None and self._guard.should_propagate(self.days):
            self.on_generated_days_change(list(self.days))
