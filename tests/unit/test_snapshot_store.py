from __future__ import annotations

import pytest

from actionsboard.models import WorkflowSnapshot
from actionsboard.poller.snapshots import SnapshotStore


def test_snapshot_store_get_set_overwrite() -> None:
    store = SnapshotStore()
    assert store.get(1) is None

    store.set(WorkflowSnapshot(run_id=1, status="queued"))
    store.set(WorkflowSnapshot(run_id=1, status="completed", conclusion="success"))

    snap = store.get(1)
    assert snap is not None
    assert snap.status == "completed"
    assert snap.conclusion == "success"
    assert len(store) == 1


def test_snapshot_store_evicts_least_recently_observed() -> None:
    store = SnapshotStore(max_entries=2)
    store.set(WorkflowSnapshot(run_id=1, status="queued"))
    store.set(WorkflowSnapshot(run_id=2, status="queued"))
    # Re-observing 1 makes 2 the oldest.
    store.set(WorkflowSnapshot(run_id=1, status="in_progress"))
    store.set(WorkflowSnapshot(run_id=3, status="queued"))

    assert 2 not in store
    assert 1 in store and 3 in store


def test_snapshot_store_rejects_zero_capacity() -> None:
    with pytest.raises(ValueError):
        SnapshotStore(max_entries=0)


def test_snapshot_differs_from() -> None:
    snap = WorkflowSnapshot(run_id=5, status="completed", conclusion="success")
    assert not snap.differs_from("completed", "success")
    assert snap.differs_from("completed", "failure")
    assert snap.differs_from("in_progress", "success")
