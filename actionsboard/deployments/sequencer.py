"""
Simulated deployment sequencer.

Walks one deployment through a fixed pipeline of timed steps, narrating each
step to the broadcast channel. Nothing is executed: every step is a timer.

State machine per run:

    IDLE -> RUNNING(step_index) -> COMPLETED
                                -> FAILED

The registry entry is released exactly once, after the terminal event, on both
the success and the failure path.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable, Optional, Sequence, Tuple

from actionsboard.broadcast import events
from actionsboard.broadcast.channel import BroadcastChannel
from actionsboard.deployments.registry import DeploymentRegistry
from actionsboard.models import DeploymentRecord

logger = logging.getLogger(__name__)

SleepFn = Callable[[float], Awaitable[None]]


@dataclass(frozen=True)
class DeploymentStep:
    name: str
    duration_ms: int
    progress: int  # cumulative percentage once this step starts

    @property
    def duration_s(self) -> float:
        return self.duration_ms / 1000.0


DEPLOYMENT_STEPS: Tuple[DeploymentStep, ...] = (
    DeploymentStep("Checking out code", 2000, 10),
    DeploymentStep("Installing dependencies", 5000, 30),
    DeploymentStep("Running tests", 3000, 50),
    DeploymentStep("Building application", 4000, 70),
    DeploymentStep("Deploying to platform", 6000, 90),
    DeploymentStep("Finalizing deployment", 2000, 100),
)


class SequencerState(str, Enum):
    idle = "idle"
    running = "running"
    completed = "completed"
    failed = "failed"


class InvalidTransition(RuntimeError):
    pass


@dataclass
class DeploymentRun:
    """Progress of one deployment through the step table."""

    deployment_id: str
    state: SequencerState = SequencerState.idle
    step_index: Optional[int] = None
    url: Optional[str] = None
    error: Optional[str] = None

    @property
    def is_terminal(self) -> bool:
        return self.state in (SequencerState.completed, SequencerState.failed)

    def enter_step(self, index: int) -> None:
        if self.state is SequencerState.idle and index == 0:
            self.state = SequencerState.running
        elif self.state is not SequencerState.running or self.step_index is None or index != self.step_index + 1:
            raise InvalidTransition(f"cannot enter step {index} from {self.state.value}/{self.step_index}")
        self.step_index = index

    def complete(self, url: str) -> None:
        if self.state is not SequencerState.running:
            raise InvalidTransition(f"cannot complete from {self.state.value}")
        self.state = SequencerState.completed
        self.url = url

    def fail(self, error: str) -> None:
        if self.is_terminal:
            raise InvalidTransition(f"cannot fail from {self.state.value}")
        self.state = SequencerState.failed
        self.error = error


class DeploymentSequencer:
    """
    Drives simulated deployments.

    `sleep` is the only suspension point and is injectable so tests can run the
    full pipeline without wall-clock waits.
    """

    def __init__(
        self,
        registry: DeploymentRegistry,
        channel: BroadcastChannel,
        *,
        steps: Sequence[DeploymentStep] = DEPLOYMENT_STEPS,
        sleep: SleepFn | None = None,
    ) -> None:
        if not steps:
            raise ValueError("a deployment needs at least one step")
        self.registry = registry
        self.channel = channel
        self.steps: Tuple[DeploymentStep, ...] = tuple(steps)
        self._sleep: SleepFn = sleep or asyncio.sleep

    def trigger(self, branch: str = "main") -> DeploymentRecord:
        """Register a deployment and announce it. The caller schedules `run`."""
        record = self.registry.start(branch)
        self.channel.publish(events.deployment_started(record))
        logger.info("Deployment %s started for branch %s", record.id, branch)
        return record

    async def run(self, deployment_id: str) -> DeploymentRun:
        run = DeploymentRun(deployment_id=deployment_id)
        if deployment_id not in self.registry:
            logger.warning("Refusing to run unknown or finished deployment %s", deployment_id)
            return run

        try:
            for index, step in enumerate(self.steps):
                run.enter_step(index)
                self.channel.publish(
                    events.deployment_progress(deployment_id, step.name, step.progress, f"{step.name}...")
                )
                await self._sleep(step.duration_s)
                self.channel.publish(events.deployment_log(deployment_id, f"{step.name} completed", "success"))

            url = events.deployment_url(deployment_id)
            run.complete(url)
            self.channel.publish(events.deployment_completed(deployment_id, url))
            logger.info("Deployment %s completed: %s", deployment_id, url)
        except Exception as e:
            message = str(e) or e.__class__.__name__
            run.fail(message)
            self.channel.publish(events.deployment_failed(deployment_id, message))
            logger.warning("Deployment %s failed at step %s: %s", deployment_id, run.step_index, message)
        finally:
            self.registry.remove(deployment_id)
        return run
