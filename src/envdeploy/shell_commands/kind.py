"""kind command abstractions.

This module provides commands for local cluster lifecycle management
through the kind CLI.
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING

from envdeploy.errors import ProbeError

from .types import CommandResult

if TYPE_CHECKING:
    from .runner import CommandRunner

# kind cluster names end up in container and context names
CLUSTER_NAME_PATTERN = re.compile(r"^[a-z0-9]([-a-z0-9.]*[a-z0-9])?$")

# kind prefixes the kubeconfig context of every cluster it creates
CONTEXT_PREFIX = "kind-"

# Seconds before a hanging `kind create cluster` is killed
CREATE_CLUSTER_TIMEOUT = 300.0


def context_for_cluster(cluster_name: str) -> str:
    """Return the kubectl context name kind assigns to a cluster."""
    return f"{CONTEXT_PREFIX}{cluster_name}"


class KindCommands:
    """kind-related shell commands.

    Provides operations for:
    - Cluster discovery (list clusters)
    - Cluster creation
    """

    def __init__(self, runner: CommandRunner) -> None:
        """Initialize kind commands.

        Args:
            runner: Command runner for executing shell commands
        """
        self._runner = runner

    def list_clusters(self) -> set[str]:
        """List the names of all kind clusters on this machine.

        Returns:
            Set of cluster names (empty if there are none)

        Raises:
            ProbeError: If kind fails or prints something that is not a
                        cluster name
        """
        result = self._runner.run(["kind", "get", "clusters"])
        if not result.success:
            raise ProbeError(
                "Could not list kind clusters",
                details=result.output or f"kind exited with code {result.returncode}",
            )

        # "No kind clusters found." goes to stderr, stdout stays empty
        names = {line.strip() for line in result.stdout.splitlines() if line.strip()}
        malformed = sorted(n for n in names if not CLUSTER_NAME_PATTERN.match(n))
        if malformed:
            raise ProbeError(
                "Unexpected output from 'kind get clusters'",
                details=f"Not valid cluster names: {', '.join(malformed)}",
            )
        return names

    def create_cluster(
        self, name: str, *, timeout: float = CREATE_CLUSTER_TIMEOUT
    ) -> CommandResult:
        """Create a kind cluster.

        Args:
            name: Cluster name (the context becomes kind-<name>)
            timeout: Seconds before the kind process is killed

        Returns:
            CommandResult with creation status. A killed process comes back
            with ``timed_out=True``.
        """
        return self._runner.run(
            ["kind", "create", "cluster", "--name", name], timeout=timeout
        )
