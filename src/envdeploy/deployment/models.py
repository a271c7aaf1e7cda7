"""Data model for environment rollouts.

Environments are loaded once from the registry and never change. Plans and
step results are created per invocation and discarded after reporting.
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass
from enum import Enum

from envdeploy.shell_commands.kind import context_for_cluster


@dataclass(frozen=True)
class Environment:
    """A deployment target: one release of the app in one cluster namespace.

    Attributes:
        name: Short identifier (e.g. "dev")
        cluster_name: kind cluster hosting the environment
        namespace: Kubernetes namespace of the release
        values_ref: Values file layered over the chart defaults
        app_name: Application name, prefix of the release name
    """

    name: str
    cluster_name: str
    namespace: str
    values_ref: str
    app_name: str = "echo-server"

    @property
    def release_name(self) -> str:
        return f"{self.app_name}-{self.name}"

    @property
    def context_name(self) -> str:
        return context_for_cluster(self.cluster_name)


@dataclass(frozen=True)
class ClusterState:
    exists: bool
    context_name: str


@dataclass(frozen=True)
class ReleaseState:
    exists: bool
    revision: int | None = None
    status: str = ""


class PlanMode(Enum):
    """What a plan is built for."""

    INSTALL = "install"
    STATUS = "status"
    UNINSTALL = "uninstall"


class StepKind(Enum):
    ENSURE_CLUSTER = "ensure-cluster"
    SWITCH_CONTEXT = "switch-context"
    ENSURE_NAMESPACE = "ensure-namespace"
    INSTALL_OR_UPGRADE = "install-or-upgrade"
    UNINSTALL = "uninstall"


@dataclass(frozen=True)
class Step:
    kind: StepKind
    environment: Environment

    def __str__(self) -> str:
        return f"{self.environment.name}: {self.kind.value}"


@dataclass(frozen=True)
class Plan:
    """Ordered, immutable sequence of steps built for one invocation."""

    mode: PlanMode
    steps: tuple[Step, ...]

    def __iter__(self) -> Iterator[Step]:
        return iter(self.steps)

    def __len__(self) -> int:
        return len(self.steps)

    @property
    def environments(self) -> tuple[Environment, ...]:
        """Environments covered by the plan, in plan order."""
        seen: dict[str, Environment] = {}
        for step in self.steps:
            seen.setdefault(step.environment.name, step.environment)
        return tuple(seen.values())

    def steps_for(self, environment_name: str) -> tuple[Step, ...]:
        return tuple(s for s in self.steps if s.environment.name == environment_name)


class Outcome(Enum):
    SUCCESS = "success"
    SKIPPED = "skipped"
    FAILED = "failed"


class FailureKind(Enum):
    """Why a step failed."""

    PROBE = "probe"  # collaborator unreachable or malformed output
    TIMEOUT = "timeout"  # wait-for-ready exceeded
    COMMAND = "command"  # effecting command exited non-zero


# Reasons recorded on skipped steps
SKIP_CANCELLED = "cancelled"
SKIP_CLUSTER_MISSING = "cluster missing"
SKIP_RELEASE_MISSING = "release not found"


@dataclass(frozen=True)
class StepResult:
    """Outcome of one executed (or skipped) step.

    Attributes:
        step: The step this result belongs to
        outcome: Success, Skipped or Failed
        detail: What a successful step did ("created", "exists", "install", ...)
        reason: Why the step was skipped or failed
        failure: Classification of a failure, None unless outcome is FAILED
    """

    step: Step
    outcome: Outcome
    detail: str = ""
    reason: str = ""
    failure: FailureKind | None = None

    @classmethod
    def success(cls, step: Step, detail: str = "") -> StepResult:
        return cls(step=step, outcome=Outcome.SUCCESS, detail=detail)

    @classmethod
    def skipped(cls, step: Step, reason: str) -> StepResult:
        return cls(step=step, outcome=Outcome.SKIPPED, reason=reason)

    @classmethod
    def failed(cls, step: Step, reason: str, failure: FailureKind) -> StepResult:
        return cls(step=step, outcome=Outcome.FAILED, reason=reason, failure=failure)

    @property
    def succeeded(self) -> bool:
        return self.outcome is Outcome.SUCCESS

    @property
    def is_skipped(self) -> bool:
        return self.outcome is Outcome.SKIPPED

    @property
    def is_failed(self) -> bool:
        return self.outcome is Outcome.FAILED

    @property
    def environment(self) -> Environment:
        return self.step.environment

    def describe(self) -> str:
        """One line naming environment, step kind and outcome."""
        text = f"[{self.environment.name}] {self.step.kind.value}: {self.outcome.value}"
        if self.detail:
            text += f" ({self.detail})"
        if self.reason:
            text += f" - {self.reason}"
        return text


def any_failed(results: list[StepResult]) -> bool:
    return any(r.is_failed for r in results)
