"""Timeline exception types."""


class TimelineError(Exception):
    """Base class for timeline errors."""

    pass


class InsufficientDurationError(TimelineError):
    """Trip is too short to hold a single night."""

    def __init__(self, total_nights: int) -> None:
        super().__init__(f"trip needs at least 1 night, got {total_nights}")
        self.total_nights = total_nights


class AllocationIndexError(TimelineError):
    """Allocation index out of range or wrong allocation kind."""

    pass


class ActivityNotFoundError(TimelineError):
    """No activity with the given id (or index) exists."""

    pass


class DayNotFoundError(TimelineError):
    """No day with the given day number exists."""

    pass
