from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def iso_timestamp(dt: datetime | None = None) -> str:
    """ISO-8601 UTC with a trailing Z, the format dashboard clients parse."""
    dt = dt or utc_now()
    return dt.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


class EventName(str, Enum):
    deployment_started = "deployment:started"
    deployment_progress = "deployment:progress"
    deployment_log = "deployment:log"
    deployment_completed = "deployment:completed"
    deployment_failed = "deployment:failed"
    github_workflow = "github:workflow"


TERMINAL_EVENTS = frozenset({EventName.deployment_completed, EventName.deployment_failed})


class DeploymentRecord(BaseModel):
    """
    One active simulated deployment.

    Records are never updated in place: the terminal outcome is expressed by
    removing the record from the registry.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    branch: str
    start_time: datetime = Field(default_factory=utc_now)
    status: Literal["started"] = "started"


class WorkflowSnapshot(BaseModel):
    """Last observed (status, conclusion) for one GitHub workflow run."""

    model_config = ConfigDict(frozen=True)

    run_id: int
    status: str
    conclusion: Optional[str] = None

    def differs_from(self, status: str, conclusion: Optional[str]) -> bool:
        return self.status != status or self.conclusion != conclusion


class WorkflowSummary(BaseModel):
    """Normalized workflow run as carried inside github:workflow events."""

    id: int
    name: Optional[str] = None
    status: Optional[str] = None
    conclusion: Optional[str] = None
    html_url: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    def to_payload(self) -> Dict[str, Any]:
        data = self.model_dump()
        # Webhook deliveries historically omit updated_at; keep the key out rather than null.
        if data.get("updated_at") is None:
            data.pop("updated_at", None)
        return data


class BroadcastEvent(BaseModel):
    model_config = ConfigDict(frozen=True)

    event: EventName
    data: Dict[str, Any] = Field(default_factory=dict)

    @property
    def is_terminal(self) -> bool:
        return self.event in TERMINAL_EVENTS

    def to_message(self) -> Dict[str, Any]:
        return {"event": self.event.value, "data": dict(self.data)}


class DeployRequest(BaseModel):
    # null reads as "use the default branch"
    branch: Optional[str] = "main"
