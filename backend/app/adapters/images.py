"""Activity image lookup over HTTP (Unsplash-style search API)."""

from typing import Protocol

import httpx

from backend.app.config import Settings, get_settings
from backend.app.utils.logging import StructuredTimelineLogger
from backend.app.utils.metrics import PrometheusTimelineMetrics


class ImageFetcher(Protocol):
    """Protocol for image lookups."""

    async def fetch_image(self, activity_name: str, city: str) -> str | None:
        """Return an image URL for the activity, or None."""
        ...


class HttpImageFetcher:
    """Best-effort image search; every failure is reported as no image."""

    def __init__(
        self,
        base_url: str,
        access_key: str = "",
        timeout: float = 4.0,
        client: httpx.AsyncClient | None = None,
    ):
        self.base_url = base_url
        self.access_key = access_key
        self.timeout = timeout
        self.client = client
        self._log = StructuredTimelineLogger()
        self._metrics = PrometheusTimelineMetrics()

    async def fetch_image(self, activity_name: str, city: str) -> str | None:
        """Search for one photo of ``activity_name`` in ``city``.

        Args:
            activity_name: Activity name used as the search query
            city: City appended to the query for disambiguation

        Returns:
            URL of the first result, None when nothing is found or the call fails
        """
        params: dict[str, str | int] = {
            "query": f"{activity_name} {city}",
            "per_page": 1,
            "orientation": "landscape",
        }
        headers = {"Authorization": f"Client-ID {self.access_key}"} if self.access_key else {}

        close_client = False
        client = self.client
        if client is None:
            client = httpx.AsyncClient(timeout=self.timeout)
            close_client = True

        try:
            response = await client.get(self.base_url, params=params, headers=headers)
            response.raise_for_status()
            results = response.json().get("results") or []
            if not results:
                self._metrics.inc_image_fetch("miss")
                return None
            url: str = results[0]["urls"]["regular"]
            self._metrics.inc_image_fetch("hit")
            return url
        except (httpx.HTTPError, KeyError, TypeError, ValueError) as e:
            self._log.log_enrichment_failure("images", activity_name, e)
            self._metrics.inc_enrichment_failure("images")
            return None
        finally:
            if close_client:
                await client.aclose()


def get_image_fetcher(settings: Settings | None = None) -> HttpImageFetcher:
    """Factory returning the configured image fetcher."""
    settings = settings or get_settings()
    return HttpImageFetcher(
        base_url=settings.image_search_url,
        access_key=settings.image_search_key,
        timeout=settings.http_timeout_seconds,
    )
