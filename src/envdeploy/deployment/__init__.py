"""Deployment orchestration core.

- models: environments, plans, steps and step results
- collaborators: protocols for the cluster, workload and release managers
- probes: existence checks and idempotent ensure operations
- planner: registry + mode -> ordered plan (pure)
- executor: runs plans with per-environment failure isolation
- status: read-only status reporting

The EnvironmentDeployer facade lives in `envdeploy.deployment.deployer`
because it depends on the configuration package.
"""

from .executor import DeploymentExecutor
from .models import (
    ClusterState,
    Environment,
    FailureKind,
    Outcome,
    Plan,
    PlanMode,
    ReleaseState,
    Step,
    StepKind,
    StepResult,
    any_failed,
)
from .planner import build_plan
from .probes import ClusterProbe, NamespaceEnsurer, ReleaseProbe
from .status import EnvironmentStatus, StatusReporter

__all__ = [
    "ClusterProbe",
    "ClusterState",
    "DeploymentExecutor",
    "Environment",
    "EnvironmentStatus",
    "FailureKind",
    "NamespaceEnsurer",
    "Outcome",
    "Plan",
    "PlanMode",
    "ReleaseProbe",
    "ReleaseState",
    "StatusReporter",
    "Step",
    "StepKind",
    "StepResult",
    "any_failed",
    "build_plan",
]
