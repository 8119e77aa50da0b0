from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional

from actionsboard.broadcast import events
from actionsboard.broadcast.channel import BroadcastChannel
from actionsboard.gitops.github_rest import GitHubActionsClient, GitHubRateLimitError
from actionsboard.models import BroadcastEvent, WorkflowSnapshot, iso_timestamp, utc_now
from actionsboard.poller.snapshots import SnapshotStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class WorkflowPollerConfig:
    interval_s: float = 30.0
    per_page: int = 5


class WorkflowChangeDetector:
    """
    Polls GitHub Actions for recent workflow runs and broadcasts only transitions.

    A run is announced when it is first seen or when its (status, conclusion)
    pair differs from the last poll. Fetch faults abandon the cycle; the next
    tick starts fresh. There is no backoff beyond the fixed interval.
    """

    def __init__(
        self,
        client: GitHubActionsClient,
        channel: BroadcastChannel,
        *,
        cfg: WorkflowPollerConfig | None = None,
        snapshots: SnapshotStore | None = None,
    ) -> None:
        self.client = client
        self.channel = channel
        self.cfg = cfg or WorkflowPollerConfig()
        self.snapshots = snapshots if snapshots is not None else SnapshotStore()
        self._task: asyncio.Task | None = None
        self._last_poll_at: Optional[datetime] = None
        self._last_error: str | None = None
        self._consecutive_errors = 0
        self._rate_limited_cycles = 0

    # ---------- one cycle ----------

    async def poll_once(self) -> List[BroadcastEvent]:
        """Run a single fetch/diff cycle. Never raises on fetch faults."""
        try:
            runs = await self.client.recent_runs(per_page=self.cfg.per_page)
        except GitHubRateLimitError as e:
            # Quota resets on its own; just wait for the next tick.
            self._rate_limited_cycles += 1
            logger.debug("Workflow poll skipped, rate limited: %s", e)
            return []
        except Exception as e:
            self._consecutive_errors += 1
            self._last_error = str(e)
            logger.warning("Workflow poll failed: %s", e)
            return []

        self._last_poll_at = utc_now()
        self._consecutive_errors = 0
        self._last_error = None
        return self.apply(runs)

    def apply(self, runs: List[Dict[str, Any]]) -> List[BroadcastEvent]:
        """Diff fetched runs against the snapshot store and broadcast the changes."""
        emitted: List[BroadcastEvent] = []
        for run in runs:
            try:
                summary = events.normalize_workflow_run(run)
            except (KeyError, TypeError, ValueError):
                logger.debug("Skipping workflow run without an id: %r", run)
                continue

            status = str(summary.status or "")
            conclusion = summary.conclusion
            previous = self.snapshots.get(summary.id)
            if previous is None or previous.differs_from(status, conclusion):
                event = events.github_workflow(events.workflow_action(status), summary)
                self.channel.publish(event)
                emitted.append(event)

            self.snapshots.set(WorkflowSnapshot(run_id=summary.id, status=status, conclusion=conclusion))
        return emitted

    # ---------- scheduling ----------

    async def _run(self) -> None:
        logger.info(
            "Workflow poller started for %s (every %.0fs)", self.client.repo, float(self.cfg.interval_s)
        )
        while True:
            await self.poll_once()
            await asyncio.sleep(float(self.cfg.interval_s))

    def start(self) -> None:
        if self._task is not None and not self._task.done():
            return
        self._task = asyncio.get_running_loop().create_task(self._run(), name="actionsboard-workflow-poller")

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        logger.info("Workflow poller stopped")

    @property
    def alive(self) -> bool:
        return self._task is not None and not self._task.done()

    def status(self) -> Dict[str, Any]:
        return {
            "alive": self.alive,
            "repo": self.client.repo,
            "interval_s": float(self.cfg.interval_s),
            "per_page": int(self.cfg.per_page),
            "last_poll_ts": iso_timestamp(self._last_poll_at) if self._last_poll_at else None,
            "snapshot_count": len(self.snapshots),
            "consecutive_errors": self._consecutive_errors,
            "rate_limited_cycles": self._rate_limited_cycles,
            "last_error": self._last_error,
        }
