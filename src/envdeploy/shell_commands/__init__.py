"""Shell command abstractions for kind/kubectl/helm operations.

This package provides a clean, well-documented interface for the external
tools envdeploy drives. It is organized into specialized modules for each tool:

- kind: local cluster discovery and creation
- kubectl: kubeconfig contexts and namespaces
- helm: Helm release management

Design Principles:
- Single Responsibility: Each module focuses on one tool
- Consistent Return Types: Queries return typed values or raise ProbeError,
  effecting commands return CommandResult
- Separation of Concerns: Commands are decoupled from workflow logic

Usage:
    from envdeploy.shell_commands import ShellCommands

    commands = ShellCommands(project_root=Path("."))
    if "nur-dev" not in commands.kind.list_clusters():
        commands.kind.create_cluster("nur-dev")
"""

from __future__ import annotations

import shutil
from pathlib import Path

from envdeploy.errors import PrerequisiteMissingError

from .helm import HelmCommands
from .kind import KindCommands, context_for_cluster
from .kubectl import KubectlCommands
from .runner import CommandRunner
from .types import CommandResult, HelmRelease, HelmRevision, is_timeout

REQUIRED_BINARIES: tuple[str, ...] = ("helm", "kind", "kubectl")


class ShellCommands:
    """Unified interface for all shell command operations.

    Attributes:
        kind: kind cluster commands
        kubectl: Kubernetes kubectl commands
        helm: Helm-related commands
    """

    def __init__(self, project_root: Path) -> None:
        """Initialize the shell commands executor.

        Args:
            project_root: Directory commands are executed from by default.
        """
        self._project_root = Path(project_root)
        self._runner = CommandRunner(self._project_root)

        self.kind = KindCommands(self._runner)
        self.kubectl = KubectlCommands(self._runner)
        self.helm = HelmCommands(self._runner)

    @property
    def project_root(self) -> Path:
        """Get the project root path."""
        return self._project_root

    @staticmethod
    def missing_prerequisites(
        binaries: tuple[str, ...] = REQUIRED_BINARIES,
    ) -> list[str]:
        """Return the required binaries that are not on PATH."""
        return [name for name in binaries if shutil.which(name) is None]

    def require_prerequisites(
        self, binaries: tuple[str, ...] = REQUIRED_BINARIES
    ) -> None:
        """Raise PrerequisiteMissingError unless every binary is installed."""
        missing = self.missing_prerequisites(binaries)
        if missing:
            raise PrerequisiteMissingError(missing)


__all__ = [
    "ShellCommands",
    "CommandResult",
    "HelmRelease",
    "HelmRevision",
    "REQUIRED_BINARIES",
    "context_for_cluster",
    "is_timeout",
    # Specialized command classes for direct usage
    "KindCommands",
    "KubectlCommands",
    "HelmCommands",
    "CommandRunner",
]
