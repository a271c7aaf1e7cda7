"""Kubectl command abstractions.

This module provides commands for kubeconfig context handling and
namespace management via kubectl subprocess calls.

Every cluster-scoped command accepts an explicit ``context`` so callers
never depend on whichever context happens to be current.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from envdeploy.errors import ProbeError

from .types import CommandResult

if TYPE_CHECKING:
    from .runner import CommandRunner


class KubectlCommands:
    """Kubectl-related shell commands.

    Provides operations for:
    - Cluster context listing and switching
    - Namespace existence checks and creation
    - Resource listing by label (for status display)
    """

    def __init__(self, runner: CommandRunner) -> None:
        """Initialize kubectl commands.

        Args:
            runner: Command runner for executing shell commands
        """
        self._runner = runner

    def _kubectl(self, args: list[str], context: str | None = None) -> list[str]:
        cmd = ["kubectl", *args]
        if context:
            cmd.extend(["--context", context])
        return cmd

    # =========================================================================
    # Cluster Context
    # =========================================================================

    def list_contexts(self) -> set[str]:
        """List context names defined in the kubeconfig.

        Raises:
            ProbeError: If kubectl cannot read the kubeconfig
        """
        result = self._runner.run(self._kubectl(["config", "get-contexts", "-o", "name"]))
        if not result.success:
            raise ProbeError("Could not read kubeconfig contexts", details=result.output)
        return {line.strip() for line in result.stdout.splitlines() if line.strip()}

    def context_exists(self, context: str) -> bool:
        """Check if a context is defined in the kubeconfig."""
        return context in self.list_contexts()

    def use_context(self, context: str) -> CommandResult:
        """Switch the kubeconfig's current context."""
        return self._runner.run(self._kubectl(["config", "use-context", context]))

    # =========================================================================
    # Namespace Management
    # =========================================================================

    def namespace_exists(self, namespace: str, *, context: str | None = None) -> bool:
        """Check if a namespace exists.

        Args:
            namespace: Namespace to check
            context: kubeconfig context to query

        Returns:
            True if the namespace exists, False if the API server says NotFound

        Raises:
            ProbeError: If the API server could not be queried
        """
        result = self._runner.run(
            self._kubectl(["get", "namespace", namespace, "-o", "name"], context)
        )
        if result.success:
            return True
        if "notfound" in result.stderr.replace(" ", "").lower():
            return False
        raise ProbeError(
            f"Could not check namespace '{namespace}'",
            details=result.output or f"kubectl exited with code {result.returncode}",
        )

    def create_namespace(self, namespace: str, *, context: str | None = None) -> CommandResult:
        """Create a namespace."""
        return self._runner.run(self._kubectl(["create", "namespace", namespace], context))

    # =========================================================================
    # Resource Listing
    # =========================================================================

    def get_resources(
        self,
        resource_types: str,
        namespace: str,
        *,
        label_selector: str | None = None,
        context: str | None = None,
    ) -> CommandResult:
        """List resources as kubectl's human-readable table.

        Args:
            resource_types: Comma-separated resource types (e.g. "deployments,pods")
            namespace: Kubernetes namespace
            label_selector: Optional label selector (e.g. "environment=dev")
            context: kubeconfig context to query

        Returns:
            CommandResult whose stdout holds the table
        """
        args = ["get", resource_types, "-n", namespace]
        if label_selector:
            args.extend(["-l", label_selector])
        return self._runner.run(self._kubectl(args, context))
