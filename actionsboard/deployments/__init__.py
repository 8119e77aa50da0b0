from actionsboard.deployments.ids import MonotonicIdFactory
from actionsboard.deployments.registry import DeploymentRegistry
from actionsboard.deployments.sequencer import (
    DEPLOYMENT_STEPS,
    DeploymentRun,
    DeploymentSequencer,
    DeploymentStep,
    SequencerState,
)

__all__ = [
    "DEPLOYMENT_STEPS",
    "DeploymentRegistry",
    "DeploymentRun",
    "DeploymentSequencer",
    "DeploymentStep",
    "MonotonicIdFactory",
    "SequencerState",
]
