from __future__ import annotations

import asyncio
import re
from typing import List

import pytest

from actionsboard.broadcast.channel import BroadcastChannel
from actionsboard.deployments.registry import DeploymentRegistry
from actionsboard.deployments.sequencer import (
    DEPLOYMENT_STEPS,
    DeploymentRun,
    DeploymentSequencer,
    InvalidTransition,
    SequencerState,
)
from actionsboard.models import BroadcastEvent, EventName


class _RecordingSleep:
    """Stands in for asyncio.sleep: records requested delays, never waits."""

    def __init__(self, fail_on_call: int | None = None) -> None:
        self.calls: List[float] = []
        self.fail_on_call = fail_on_call

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)
        if self.fail_on_call is not None and len(self.calls) == self.fail_on_call:
            raise RuntimeError("runner lost")


def _make(sleep: _RecordingSleep):
    seen: List[BroadcastEvent] = []
    channel = BroadcastChannel(sinks=[seen.append])
    registry = DeploymentRegistry()
    return DeploymentSequencer(registry, channel, sleep=sleep), registry, seen


def _for(seen: List[BroadcastEvent], dep_id: str) -> List[BroadcastEvent]:
    return [e for e in seen if e.data.get("id") == dep_id]


def test_step_table_is_fixed() -> None:
    assert [(s.name, s.duration_ms, s.progress) for s in DEPLOYMENT_STEPS] == [
        ("Checking out code", 2000, 10),
        ("Installing dependencies", 5000, 30),
        ("Running tests", 3000, 50),
        ("Building application", 4000, 70),
        ("Deploying to platform", 6000, 90),
        ("Finalizing deployment", 2000, 100),
    ]


def test_sequencer_happy_path_emits_steps_in_order_then_completes() -> None:
    sleep = _RecordingSleep()
    seq, registry, seen = _make(sleep)

    rec = seq.trigger("main")
    run = asyncio.run(seq.run(rec.id))

    evs = _for(seen, rec.id)
    names = [e.event for e in evs]
    assert names[0] is EventName.deployment_started
    assert names[1:-1] == [EventName.deployment_progress, EventName.deployment_log] * 6
    assert names[-1] is EventName.deployment_completed

    progress = [e.data["progress"] for e in evs if e.event is EventName.deployment_progress]
    assert progress == sorted(progress)
    assert progress[-1] == 100

    logs = [e.data for e in evs if e.event is EventName.deployment_log]
    assert all(d["type"] == "success" for d in logs)
    assert logs[0]["message"] == "Checking out code completed"

    url = evs[-1].data["url"]
    assert re.fullmatch(r"https://ci-cd-\d{6}\.vercel\.app", url)
    assert url == f"https://ci-cd-{rec.id[-6:]}.vercel.app"

    # Simulated durations, in order, summing to ~22s of wall clock in production.
    assert sleep.calls == [2.0, 5.0, 3.0, 4.0, 6.0, 2.0]
    assert sum(sleep.calls) == pytest.approx(22.0)

    assert run.state is SequencerState.completed
    assert run.url == url
    assert rec.id not in registry
    assert registry.count() == 0


def test_sequencer_failure_emits_single_failed_event_and_cleans_up() -> None:
    sleep = _RecordingSleep(fail_on_call=3)
    seq, registry, seen = _make(sleep)

    rec = seq.trigger("main")
    run = asyncio.run(seq.run(rec.id))

    evs = _for(seen, rec.id)
    terminal = [e for e in evs if e.is_terminal]
    assert len(terminal) == 1
    assert terminal[0].event is EventName.deployment_failed
    assert terminal[0].data["error"] == "runner lost"

    assert len([e for e in evs if e.event is EventName.deployment_progress]) == 3
    assert len([e for e in evs if e.event is EventName.deployment_log]) == 2
    assert run.state is SequencerState.failed
    assert run.step_index == 2
    assert registry.count() == 0


def test_sequencer_refuses_unknown_deployment() -> None:
    seq, registry, seen = _make(_RecordingSleep())

    run = asyncio.run(seq.run("never-registered"))

    assert run.state is SequencerState.idle
    assert seen == []


def test_concurrent_runs_each_get_exactly_one_terminal_event() -> None:
    seq, registry, seen = _make(_RecordingSleep())
    a = seq.trigger("main")
    b = seq.trigger("release")

    async def _both():
        return await asyncio.gather(seq.run(a.id), seq.run(b.id))

    runs = asyncio.run(_both())

    assert {r.state for r in runs} == {SequencerState.completed}
    for rec in (a, b):
        evs = _for(seen, rec.id)
        assert len([e for e in evs if e.is_terminal]) == 1
        steps = [e.data["step"] for e in evs if e.event is EventName.deployment_progress]
        assert steps == [s.name for s in DEPLOYMENT_STEPS]
    assert registry.count() == 0


def test_run_state_machine_rejects_out_of_order_transitions() -> None:
    run = DeploymentRun(deployment_id="1")
    with pytest.raises(InvalidTransition):
        run.enter_step(1)
    with pytest.raises(InvalidTransition):
        run.complete("https://x")

    run.enter_step(0)
    run.enter_step(1)
    assert run.state is SequencerState.running
    with pytest.raises(InvalidTransition):
        run.enter_step(3)

    run.complete("https://ci-cd-000001.vercel.app")
    assert run.is_terminal
    with pytest.raises(InvalidTransition):
        run.fail("late")
