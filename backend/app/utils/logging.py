"""Structured logging for timeline reconciliation and enrichment."""

import logging
from typing import Any

from backend.app.models.common import ReconcileOutcome

logger = logging.getLogger(__name__)


class StructuredTimelineLogger:
    """Structured logger for timeline engine events."""

    def log_reconcile(
        self,
        trip_id: str,
        trigger: str,
        outcome: ReconcileOutcome,
        day_count: int,
        dropped: dict[str, int] | None = None,
    ) -> None:
        """Log one reconciliation with structured data."""
        log_data: dict[str, Any] = {
            "trip_id": trip_id,
            "trigger": trigger,
            "outcome": outcome.value,
            "day_count": day_count,
        }

        if dropped:
            log_data["dropped"] = dropped

        log_msg = f"Reconcile: {trigger} - {outcome.value}"

        if dropped:
            logger.warning(
                f"{log_msg} (discarded activities for removed cities: {sorted(dropped)})",
                extra={"structured": log_data},
            )
        else:
            logger.info(log_msg, extra={"structured": log_data})

    def log_enrichment_failure(self, source: str, subject: str, error: BaseException) -> None:
        """Log a failed enrichment call; callers treat it as no data."""
        log_data: dict[str, Any] = {
            "source": source,
            "subject": subject,
            "error_reason": type(error).__name__,
        }
        logger.warning(
            f"Enrichment failed: {source} for {subject} - {error}",
            extra={"structured": log_data},
        )

    def log_discarded_result(self, trip_id: str, day_number: int, reason: str) -> None:
        """Log an async result dropped because its target day changed."""
        log_data: dict[str, Any] = {
            "trip_id": trip_id,
            "day_number": day_number,
            "reason": reason,
        }
        logger.info(
            f"Discarded auto-fill result for day {day_number}: {reason}",
            extra={"structured": log_data},
        )
