"""Exception hierarchy for envdeploy.

Every failure that a step of a deployment plan can hit derives from
DeploymentError so the executor can convert it into a failed step result
without letting it cross the environment boundary.
"""

from __future__ import annotations

from collections.abc import Iterable


class DeploymentError(Exception):
    """Raised when a deployment operation fails."""

    def __init__(self, message: str, details: str | None = None):
        self.message = message
        self.details = details
        super().__init__(message)


class ProbeError(DeploymentError):
    """A collaborator was unreachable or returned output we could not parse."""


class CommandFailedError(DeploymentError):
    """An effecting command (create, install, upgrade, ...) exited non-zero."""


class CommandTimeoutError(DeploymentError):
    """A command did not report completion before its timeout elapsed."""


class ConfigurationError(DeploymentError):
    """The environment registry could not be loaded or is invalid."""


class PrerequisiteMissingError(DeploymentError):
    """One or more required CLI binaries are not installed."""

    def __init__(self, binaries: Iterable[str]):
        self.binaries = tuple(binaries)
        names = ", ".join(self.binaries)
        super().__init__(
            f"Required tool(s) not found on PATH: {names}",
            details=(
                "envdeploy drives kind, kubectl and helm as external tools.\n"
                "Install the missing tool(s) and make sure they are on PATH:\n"
                "  • kind:    https://kind.sigs.k8s.io/docs/user/quick-start/\n"
                "  • kubectl: https://kubernetes.io/docs/tasks/tools/\n"
                "  • helm:    https://helm.sh/docs/intro/install/"
            ),
        )
