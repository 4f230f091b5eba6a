"""Activity enrichment for auto-fill, backed by OpenAI chat completions.

Security: Reads API key from environment only, never hardcoded.
Failures return no activities; nothing is invented in their place.
"""

import json
import logging
import re
import uuid
from typing import Any, Protocol

from openai import AsyncOpenAI
from pydantic import ValidationError

from backend.app.config import Settings, get_settings
from backend.app.models.activity import PLACE_TYPES, PlaceActivity
from backend.app.models.trip import TripPreferences
from backend.app.utils.logging import StructuredTimelineLogger
from backend.app.utils.metrics import PrometheusTimelineMetrics

logger = logging.getLogger(__name__)


class ActivityEnricher(Protocol):
    """Protocol for activity enrichment implementations."""

    async def enrich_activities(
        self,
        *,
        city: str,
        nights: int,
        preferences: TripPreferences,
        exclude_names: list[str],
    ) -> list[PlaceActivity]:
        """Suggest activities for a city.

        Args:
            city: City to suggest for
            nights: Nights the traveller spends there
            preferences: Pace and interests
            exclude_names: Names already on the trip

        Returns:
            Place activities, empty when no data is available
        """
        ...


class UnavailableEnricher:
    """Enricher used when no API key is configured; never returns data."""

    async def enrich_activities(
        self,
        *,
        city: str,
        nights: int,
        preferences: TripPreferences,
        exclude_names: list[str],
    ) -> list[PlaceActivity]:
        return []


class OpenAIActivityEnricher:
    """OpenAI-backed activity suggestions."""

    def __init__(
        self,
        api_key: str,
        model: str = "gpt-4o-mini",
        max_activities: int = 12,
        client: AsyncOpenAI | None = None,
    ):
        """Initialize enricher.

        Args:
            api_key: OpenAI API key (read from environment)
            model: Model name to use
            max_activities: Upper bound on activities kept per call
            client: Optional preconfigured client (for testing)
        """
        self.client = client or AsyncOpenAI(api_key=api_key)
        self.model = model
        self.max_activities = max_activities
        self._log = StructuredTimelineLogger()
        self._metrics = PrometheusTimelineMetrics()

    async def enrich_activities(
        self,
        *,
        city: str,
        nights: int,
        preferences: TripPreferences,
        exclude_names: list[str],
    ) -> list[PlaceActivity]:
        """Ask the model for activities; any failure yields an empty list."""
        try:
            response = await self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": self._build_system_prompt()},
                    {
                        "role": "user",
                        "content": self._build_context(city, nights, preferences, exclude_names),
                    },
                ],
                response_format={"type": "json_object"},
                temperature=0.7,
                max_tokens=2000,
            )
            content = response.choices[0].message.content or ""
            return self._parse(content, city, exclude_names)
        except Exception as e:
            self._log.log_enrichment_failure("openai", city, e)
            self._metrics.inc_enrichment_failure("openai")
            return []

    def _build_system_prompt(self) -> str:
        return """You suggest things to do for a traveller staying in one city.

Respond with a JSON object {"activities": [...]} where every item has:
- "name": the place or experience
- "type": one of "attraction", "restaurant", "cafe", "nightlife", "activity"
- "description": one sentence
- "duration_minutes": typical visit length as an integer
- "tags": short lowercase keywords

Only suggest real, currently operating places. Never repeat a name from the
exclusion list."""

    def _build_context(
        self,
        city: str,
        nights: int,
        preferences: TripPreferences,
        exclude_names: list[str],
    ) -> str:
        lines = [
            f"City: {city}",
            f"Nights: {nights}",
            f"Pace: {preferences.pace.value}",
            f"Suggest up to {self.max_activities} activities.",
        ]
        if preferences.interests:
            lines.append(f"Interests: {', '.join(preferences.interests)}")
        if exclude_names:
            lines.append(f"Exclude: {', '.join(exclude_names)}")
        return "\n".join(lines)

    def _parse(self, content: str, city: str, exclude_names: list[str]) -> list[PlaceActivity]:
        data: dict[str, Any] = json.loads(content)
        excluded = {name.strip().lower() for name in exclude_names}
        city_slug = re.sub(r"[^a-z0-9]+", "-", city.lower()).strip("-")

        activities: list[PlaceActivity] = []
        for item in data.get("activities", []):
            if len(activities) >= self.max_activities:
                break
            name = str(item.get("name", "")).strip()
            if not name or name.lower() in excluded:
                continue
            activity_type = item.get("type")
            try:
                activity = PlaceActivity(
                    id=f"{city_slug}-{uuid.uuid4().hex[:8]}",
                    name=name,
                    type=activity_type if activity_type in PLACE_TYPES else "attraction",
                    description=item.get("description"),
                    duration_minutes=item.get("duration_minutes"),
                    tags=[str(t) for t in item.get("tags", [])],
                )
            except ValidationError:
                logger.debug(f"Skipping malformed activity from model: {item!r}")
                continue
            excluded.add(name.lower())
            activities.append(activity)

        return activities


def get_activity_enricher(settings: Settings | None = None) -> ActivityEnricher:
    """Factory returning the configured enricher.

    Returns:
        OpenAIActivityEnricher if an API key is configured, UnavailableEnricher otherwise
    """
    settings = settings or get_settings()
    api_key = settings.openai_api_key

    if api_key and api_key.get_secret_value():
        return OpenAIActivityEnricher(
            api_key=api_key.get_secret_value(),
            model=settings.openai_model,
            max_activities=settings.enrichment_max_activities,
        )

    logger.warning("No OpenAI API key configured, auto-fill will return no activities")
    return UnavailableEnricher()
