from actionsboard.poller.snapshots import SnapshotStore
from actionsboard.poller.workflow_poller import WorkflowChangeDetector, WorkflowPollerConfig

__all__ = ["SnapshotStore", "WorkflowChangeDetector", "WorkflowPollerConfig"]
