from __future__ import annotations

from typing import Callable, Dict, List, Optional

from actionsboard.deployments.ids import MonotonicIdFactory
from actionsboard.models import DeploymentRecord, utc_now


class DeploymentRegistry:
    """
    In-memory table of active deployments, keyed by deployment id.

    The registry never broadcasts; callers announce what they register.
    """

    def __init__(self, id_factory: Callable[[], str] | None = None) -> None:
        self._new_id = id_factory or MonotonicIdFactory()
        self._active: Dict[str, DeploymentRecord] = {}

    def start(self, branch: str) -> DeploymentRecord:
        record = DeploymentRecord(id=self._new_id(), branch=branch, start_time=utc_now())
        self._active[record.id] = record
        return record

    def remove(self, deployment_id: str) -> None:
        self._active.pop(deployment_id, None)

    def get(self, deployment_id: str) -> Optional[DeploymentRecord]:
        return self._active.get(deployment_id)

    def count(self) -> int:
        return len(self._active)

    def active(self) -> List[DeploymentRecord]:
        return sorted(self._active.values(), key=lambda r: r.start_time)

    def __contains__(self, deployment_id: object) -> bool:
        return deployment_id in self._active
