"""
Broadcast event constructors.

Builds the JSON payloads pushed to dashboard clients, one helper per event in
the catalogue, plus normalizers for GitHub workflow-run objects and for
deployment-status webhook bodies.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

from actionsboard.models import BroadcastEvent, DeploymentRecord, EventName, WorkflowSummary, iso_timestamp

DEPLOYMENT_URL_TEMPLATE = "https://ci-cd-{suffix}.vercel.app"


def deployment_url(deployment_id: str) -> str:
    return DEPLOYMENT_URL_TEMPLATE.format(suffix=deployment_id[-6:])


def deployment_started(record: DeploymentRecord) -> BroadcastEvent:
    return BroadcastEvent(
        event=EventName.deployment_started,
        data={"id": record.id, "branch": record.branch, "timestamp": iso_timestamp()},
    )


def deployment_progress(deployment_id: str, step: str, progress: int, message: str) -> BroadcastEvent:
    return BroadcastEvent(
        event=EventName.deployment_progress,
        data={
            "id": deployment_id,
            "step": step,
            "progress": progress,
            "message": message,
            "timestamp": iso_timestamp(),
        },
    )


def deployment_log(deployment_id: str, message: str, log_type: str = "info") -> BroadcastEvent:
    return BroadcastEvent(
        event=EventName.deployment_log,
        data={"id": deployment_id, "type": log_type, "message": message, "timestamp": iso_timestamp()},
    )


def deployment_completed(deployment_id: str, url: str) -> BroadcastEvent:
    return BroadcastEvent(
        event=EventName.deployment_completed,
        data={"id": deployment_id, "url": url, "timestamp": iso_timestamp()},
    )


def deployment_failed(deployment_id: str, error: str) -> BroadcastEvent:
    return BroadcastEvent(
        event=EventName.deployment_failed,
        data={"id": deployment_id, "error": error, "timestamp": iso_timestamp()},
    )


def workflow_action(status: Optional[str]) -> str:
    """Map a run status onto the action label clients key on."""
    if status == "in_progress":
        return "in_progress"
    if status == "completed":
        return "completed"
    return "requested"


def normalize_workflow_run(run: Dict[str, Any], *, include_updated_at: bool = True) -> WorkflowSummary:
    """
    Reduce a GitHub workflow_run object to the fields the dashboard renders.

    Raises KeyError/ValueError when the run has no usable id.
    """
    run_id = int(run["id"])
    return WorkflowSummary(
        id=run_id,
        name=run.get("name"),
        status=run.get("status"),
        conclusion=run.get("conclusion"),
        html_url=run.get("html_url"),
        created_at=run.get("created_at"),
        updated_at=run.get("updated_at") if include_updated_at else None,
    )


def github_workflow(action: Optional[str], workflow: WorkflowSummary) -> BroadcastEvent:
    return BroadcastEvent(
        event=EventName.github_workflow,
        data={"action": action, "workflow": workflow.to_payload(), "timestamp": iso_timestamp()},
    )


def _carried(body: Dict[str, Any], *keys: str) -> Dict[str, Any]:
    return {k: body[k] for k in keys if k in body}


def from_deployment_webhook(body: Dict[str, Any]) -> Optional[BroadcastEvent]:
    """
    Translate a deployment-status callback into a broadcast event.

    Only fields present in the body are carried over. Returns None for missing
    or unrecognized actions.
    """
    action = body.get("action")
    data: Dict[str, Any] = _carried(body, "id")

    if action == "started":
        data.update(_carried(body, "branch"))
        name = EventName.deployment_started
    elif action == "progress":
        data.update(_carried(body, "step", "progress"))
        message = body.get("message") or body.get("step")
        if message is not None:
            data["message"] = message
        name = EventName.deployment_progress
    elif action == "completed":
        data.update(_carried(body, "url"))
        name = EventName.deployment_completed
    elif action == "failed":
        data.update(_carried(body, "error"))
        name = EventName.deployment_failed
    else:
        return None
    data["timestamp"] = iso_timestamp()
    return BroadcastEvent(event=name, data=data)
