"""One-way latch gating outward propagation until the host finishes loading."""

from collections.abc import Sized
from enum import Enum


class SyncState(str, Enum):
    """Persistence sync guard state."""

    LOAD_PENDING = "load_pending"
    LOAD_COMPLETE = "load_complete"


class PersistenceSyncGuard:
    """Blocks change notifications until the host signals load completion.

    Defaults computed at construction would otherwise reach the store before
    the asynchronous load and overwrite saved state.
    """

    def __init__(self) -> None:
        self._state = SyncState.LOAD_PENDING

    @property
    def state(self) -> SyncState:
        return self._state

    @property
    def load_complete(self) -> bool:
        return self._state == SyncState.LOAD_COMPLETE

    def mark_load_complete(self) -> bool:
        """Latch to LOAD_COMPLETE. Returns True only on the first call."""
        if self._state == SyncState.LOAD_COMPLETE:
            return False
        self._state = SyncState.LOAD_COMPLETE
        return True

    def should_propagate(self, payload: Sized) -> bool:
        """Whether a payload may be sent outward."""
        return self.load_complete and len(payload) > 0
