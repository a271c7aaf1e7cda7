"""Read-only status reporting across declared environments."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from loguru import logger

from envdeploy.errors import DeploymentError

from .collaborators import ClusterManager, ReleaseManager
from .models import Environment, PlanMode, StepKind
from .planner import build_plan
from .probes import ClusterProbe, ReleaseProbe


@dataclass(frozen=True)
class EnvironmentStatus:
    """Observed state of one environment.

    Attributes:
        environment: The environment this status describes
        cluster_exists: Whether its kind cluster exists
        release_exists: Whether its Helm release exists
        revision: Current release revision, if any
        release_status: Helm's status string (deployed, failed, ...)
        error: Probe failure encountered while reading the state
    """

    environment: Environment
    cluster_exists: bool
    release_exists: bool
    revision: int | None = None
    release_status: str = ""
    error: str = ""


class StatusReporter:
    """Reports cluster and release state without changing anything.

    The current kubeconfig context is never switched; release queries carry
    the environment's context explicitly.
    """

    def __init__(self, clusters: ClusterManager, releases: ReleaseManager) -> None:
        self._cluster_probe = ClusterProbe(clusters)
        self._release_probe = ReleaseProbe(releases)

    def report(self, environments: Sequence[Environment]) -> dict[str, EnvironmentStatus]:
        """Read the state of every environment.

        A missing cluster short-circuits to "no cluster, no release" without
        touching the release manager. Probe failures are recorded on the
        affected environment and do not stop the others.

        Returns:
            Mapping of environment name to status, in registry order
        """
        plan = build_plan(environments, PlanMode.STATUS)
        statuses: dict[str, EnvironmentStatus] = {}
        for step in plan:
            if step.kind is not StepKind.SWITCH_CONTEXT:
                continue
            env = step.environment
            statuses[env.name] = self._environment_status(env)
        return statuses

    def _environment_status(self, env: Environment) -> EnvironmentStatus:
        try:
            if not self._cluster_probe.exists(env.cluster_name):
                return EnvironmentStatus(env, cluster_exists=False, release_exists=False)
        except DeploymentError as e:
            logger.warning(f"[{env.name}] cluster probe failed: {e.message}")
            return EnvironmentStatus(
                env, cluster_exists=False, release_exists=False, error=e.message
            )

        try:
            release = self._release_probe.state(
                env.release_name, env.namespace, context=env.context_name
            )
        except DeploymentError as e:
            logger.warning(f"[{env.name}] release probe failed: {e.message}")
            return EnvironmentStatus(
                env, cluster_exists=True, release_exists=False, error=e.message
            )

        return EnvironmentStatus(
            env,
            cluster_exists=True,
            release_exists=release.exists,
            revision=release.revision,
            release_status=release.status,
        )
