from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Callable, Dict, Optional

from fastapi import BackgroundTasks, FastAPI, Request, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.responses import StreamingResponse

from actionsboard.broadcast import events
from actionsboard.broadcast.channel import BroadcastChannel
from actionsboard.deployments.registry import DeploymentRegistry
from actionsboard.deployments.sequencer import DeploymentSequencer, SleepFn
from actionsboard.gitops.github_rest import GitHubActionsClient
from actionsboard.models import DeployRequest, iso_timestamp
from actionsboard.poller.snapshots import SnapshotStore
from actionsboard.poller.workflow_poller import WorkflowChangeDetector, WorkflowPollerConfig
from actionsboard.service.streams import stream_events_sse
from actionsboard.settings import Settings
from actionsboard.telemetry.audit import AuditLogger

logger = logging.getLogger(__name__)

EMPTY_WORKFLOW_RUNS: Dict[str, Any] = {"total_count": 0, "workflow_runs": []}


def _github_client_from_settings(s: Settings) -> GitHubActionsClient:
    return GitHubActionsClient(
        repo=s.github_repo_slug,
        token=s.github_token,
        api_base=s.github_api_base,
        timeout_s=float(s.github_timeout_s),
    )


async def _json_object(request: Request) -> Dict[str, Any]:
    # Webhook bodies are not validated; anything that is not a JSON object reads as empty.
    try:
        body = await request.json()
    except Exception:
        return {}
    return body if isinstance(body, dict) else {}


def create_app(
    settings: Settings | None = None,
    *,
    github_client: GitHubActionsClient | None = None,
    sleep: SleepFn | None = None,
    id_factory: Callable[[], str] | None = None,
) -> FastAPI:
    """
    App factory used by uvicorn and tests.

    All mutable state (channel, registry, snapshots) is created here and lives
    on `app.state`, so every app instance starts clean.
    """
    s = settings or Settings()

    channel = BroadcastChannel(queue_size=s.subscriber_queue_size, recent_max=s.recent_events_max)
    if s.audit_log_path:
        channel.add_sink(AuditLogger(s.audit_log_path))
    registry = DeploymentRegistry(id_factory=id_factory)
    sequencer = DeploymentSequencer(registry, channel, sleep=sleep)
    github = github_client or _github_client_from_settings(s)
    poller: Optional[WorkflowChangeDetector] = None
    if s.poller_enabled:
        poller = WorkflowChangeDetector(
            github,
            channel,
            cfg=WorkflowPollerConfig(interval_s=float(s.poller_interval_s), per_page=int(s.poller_per_page)),
            snapshots=SnapshotStore(max_entries=int(s.snapshot_max_entries)),
        )

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        if poller is not None:
            poller.start()
        try:
            yield
        finally:
            if poller is not None:
                await poller.stop()

    app = FastAPI(title="actionsboard", version="0.1.0", lifespan=lifespan)
    app.state.settings = s
    app.state.channel = channel
    app.state.registry = registry
    app.state.sequencer = sequencer
    app.state.github = github
    app.state.poller = poller

    app.add_middleware(
        CORSMiddleware,
        allow_origins=s.allowed_origins(),
        allow_credentials=True,
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )

    # ---------- deployments ----------

    @app.post("/api/deploy")
    async def trigger_deployment(background_tasks: BackgroundTasks, payload: Optional[DeployRequest] = None):
        try:
            branch = (payload.branch if payload else None) or "main"
            record = sequencer.trigger(branch)
            # Runs after the response is sent; the caller only gets the acknowledgment.
            background_tasks.add_task(sequencer.run, record.id)
        except Exception as e:
            logger.exception("Deployment trigger failed")
            return JSONResponse({"error": str(e)}, status_code=500)
        return {"success": True, "deploymentId": record.id}

    @app.get("/api/deployments")
    def list_deployments() -> Dict[str, Any]:
        return {"deployments": [r.model_dump(mode="json") for r in registry.active()]}

    # ---------- GitHub ----------

    @app.get("/api/github/workflows")
    async def github_workflows() -> Dict[str, Any]:
        try:
            return await github.list_workflow_runs(per_page=int(s.workflows_per_page))
        except Exception as e:
            # Keep the dashboard renderable: an empty list, never an error page.
            logger.warning("Listing workflow runs failed: %s", e)
            return dict(EMPTY_WORKFLOW_RUNS)

    @app.get("/api/poller/status")
    def poller_status() -> Dict[str, Any]:
        if poller is None:
            return {"enabled": False, "alive": False}
        return {"enabled": True, **poller.status()}

    # ---------- webhooks ----------

    @app.post("/api/webhook/github")
    async def github_webhook(request: Request) -> Dict[str, Any]:
        event_type = request.headers.get("X-GitHub-Event")
        if event_type == "workflow_run":
            payload = await _json_object(request)
            try:
                summary = events.normalize_workflow_run(payload["workflow_run"], include_updated_at=False)
                channel.publish(events.github_workflow(payload.get("action"), summary))
            except Exception as e:
                logger.warning("Ignoring malformed workflow_run delivery: %s", e)
        else:
            logger.debug("Ignoring GitHub event %s", event_type)
        return {"received": True}

    @app.post("/api/webhook/deployment")
    async def deployment_webhook(request: Request) -> Dict[str, Any]:
        body = await _json_object(request)
        ev = events.from_deployment_webhook(body)
        if ev is not None:
            channel.publish(ev)
        else:
            logger.debug("Ignoring deployment webhook action %r", body.get("action"))
        return {"received": True}

    # ---------- push channel ----------

    @app.websocket("/ws")
    async def websocket_endpoint(websocket: WebSocket) -> None:
        await websocket.accept()
        sub = channel.subscribe()

        async def sender() -> None:
            try:
                async for ev in sub:
                    await websocket.send_json(ev.to_message())
            except Exception as e:
                logger.debug("WebSocket send failed: %s", e)

        send_task = asyncio.create_task(sender())
        try:
            # Clients never need to talk; reading just notices the disconnect.
            while True:
                await websocket.receive_text()
        except WebSocketDisconnect:
            pass
        finally:
            send_task.cancel()
            try:
                await send_task
            except asyncio.CancelledError:
                pass
            sub.close()

    @app.get("/api/events/stream")
    async def events_stream() -> StreamingResponse:
        return StreamingResponse(stream_events_sse(channel), media_type="text/event-stream")

    @app.get("/api/events/recent")
    def events_recent(n: int = 50) -> Dict[str, Any]:
        return {"events": [ev.to_message() for ev in channel.recent(n)]}

    @app.get("/health")
    def health() -> Dict[str, Any]:
        return {
            "status": "ok",
            "timestamp": iso_timestamp(),
            "activeDeployments": registry.count(),
            "connectedClients": channel.subscriber_count,
            "pollerAlive": bool(poller and poller.alive),
        }

    return app
