"""Existence probes and idempotent ensure operations.

Each probe separates the pure question ("does X exist?") from the effect
("create X"), so ensure() can be exercised against a fake collaborator.
None of them cache: cluster state may change between calls.
"""

from __future__ import annotations

from loguru import logger

from envdeploy.errors import CommandFailedError, CommandTimeoutError
from envdeploy.shell_commands.kind import context_for_cluster
from envdeploy.shell_commands.types import CommandResult, is_timeout

from .collaborators import ClusterManager, ReleaseManager, WorkloadManager
from .models import ClusterState, ReleaseState


def check_result(result: CommandResult, action: str) -> None:
    """Raise if an effecting command did not succeed.

    Raises:
        CommandTimeoutError: If the command ran out of time
        CommandFailedError: For any other non-zero exit
    """
    if result.success:
        return
    if is_timeout(result):
        raise CommandTimeoutError(f"Timed out: {action}", details=result.output)
    raise CommandFailedError(
        f"Failed: {action}",
        details=result.output or f"exit code {result.returncode}",
    )


class ClusterProbe:
    """Queries and creates kind clusters."""

    def __init__(self, clusters: ClusterManager) -> None:
        self._clusters = clusters

    def exists(self, cluster_name: str) -> bool:
        """Check cluster membership.

        Raises:
            ProbeError: If the cluster manager cannot be queried
        """
        return cluster_name in self._clusters.list_clusters()

    def state(self, cluster_name: str) -> ClusterState:
        return ClusterState(
            exists=self.exists(cluster_name),
            context_name=context_for_cluster(cluster_name),
        )

    def ensure(self, cluster_name: str) -> bool:
        """Create the cluster unless it already exists.

        Returns:
            True if the cluster was created, False if it was already there
        """
        if self.exists(cluster_name):
            logger.info(f"Cluster {cluster_name} already exists")
            return False

        logger.info(f"Creating cluster {cluster_name}")
        check_result(
            self._clusters.create_cluster(cluster_name),
            f"create cluster {cluster_name}",
        )
        return True


class NamespaceEnsurer:
    """Creates namespaces that do not exist yet."""

    def __init__(self, workloads: WorkloadManager) -> None:
        self._workloads = workloads

    def ensure(self, namespace: str, *, context: str | None = None) -> bool:
        """Create the namespace unless it already exists.

        Returns:
            True if the namespace was created, False if it was already there

        Raises:
            ProbeError: If the API server cannot be queried
        """
        if self._workloads.namespace_exists(namespace, context=context):
            logger.info(f"Namespace {namespace} already exists")
            return False

        logger.info(f"Creating namespace {namespace}")
        check_result(
            self._workloads.create_namespace(namespace, context=context),
            f"create namespace {namespace}",
        )
        return True


class ReleaseProbe:
    """Looks up Helm releases to choose between install and upgrade."""

    def __init__(self, releases: ReleaseManager) -> None:
        self._releases = releases

    def state(
        self, release_name: str, namespace: str, *, context: str | None = None
    ) -> ReleaseState:
        # --all so a failed or pending release still counts as existing,
        # helm refuses to install over one
        for release in self._releases.list_releases(
            namespace, context=context, all_states=True
        ):
            if release.name == release_name:
                return ReleaseState(
                    exists=True, revision=release.revision, status=release.status
                )
        return ReleaseState(exists=False)

    def exists(
        self, release_name: str, namespace: str, *, context: str | None = None
    ) -> bool:
        return self.state(release_name, namespace, context=context).exists
