from __future__ import annotations

from collections import OrderedDict
from typing import Optional

from actionsboard.models import WorkflowSnapshot


class SnapshotStore:
    """
    Last seen (status, conclusion) per workflow run id.

    Bounded: once `max_entries` runs are remembered, the least recently
    observed run is forgotten. A forgotten run that shows up again is treated
    as new and announced once more.
    """

    def __init__(self, max_entries: int = 500) -> None:
        if max_entries < 1:
            raise ValueError("max_entries must be >= 1")
        self.max_entries = int(max_entries)
        self._items: "OrderedDict[int, WorkflowSnapshot]" = OrderedDict()

    def get(self, run_id: int) -> Optional[WorkflowSnapshot]:
        return self._items.get(run_id)

    def set(self, snapshot: WorkflowSnapshot) -> None:
        self._items[snapshot.run_id] = snapshot
        self._items.move_to_end(snapshot.run_id)
        while len(self._items) > self.max_entries:
            self._items.popitem(last=False)

    def __len__(self) -> int:
        return len(self._items)

    def __contains__(self, run_id: object) -> bool:
        return run_id in self._items
