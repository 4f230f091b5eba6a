"""Tests for the persistence sync guard."""

from backend.app.engine.sync_guard import PersistenceSyncGuard, SyncState


def test_starts_pending_and_blocks() -> None:
    guard = PersistenceSyncGuard()

    assert guard.state == SyncState.LOAD_PENDING
    assert guard.should_propagate([1, 2]) is False


def test_latches_once() -> None:
    guard = PersistenceSyncGuard()

    assert guard.mark_load_complete() is True
    assert guard.mark_load_complete() is False
    assert guard.state == SyncState.LOAD_COMPLETE


def test_empty_payload_never_propagates() -> None:
    guard = PersistenceSyncGuard()
    guard.mark_load_complete()

    assert guard.should_propagate([]) is False
    assert guard.should_propagate(["x"]) is True
