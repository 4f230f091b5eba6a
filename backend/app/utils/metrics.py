"""Prometheus metrics for the timeline engine."""

from prometheus_client import Counter

reconcile_total = Counter(
    "timeline_reconcile_total",
    "Reconciliations by trigger and outcome",
    ["trigger", "outcome"],
)

dropped_activities_total = Counter(
    "timeline_dropped_activities_total",
    "Activities discarded because their city lost all its days",
)

enrichment_failures_total = Counter(
    "timeline_enrichment_failures_total",
    "Enrichment calls that failed and returned no data",
    ["source"],
)

image_fetches_total = Counter(
    "timeline_image_fetches_total",
    "Activity image lookups by outcome",
    ["outcome"],
)


class PrometheusTimelineMetrics:
    """Prometheus-based timeline metrics implementation."""

    def record_reconcile(self, trigger: str, outcome: str, dropped: int = 0) -> None:
        """Count a reconciliation and any discarded activities."""
        reconcile_total.labels(trigger=trigger, outcome=outcome).inc()
        if dropped:
            dropped_activities_total.inc(dropped)

    def inc_enrichment_failure(self, source: str) -> None:
        """Increment enrichment failure counter."""
        enrichment_failures_total.labels(source=source).inc()

    def inc_image_fetch(self, outcome: str) -> None:
        """Increment image fetch counter."""
        image_fetches_total.labels(outcome=outcome).inc()
