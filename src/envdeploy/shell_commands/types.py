"""Data types for shell command results.

This module contains all dataclasses and helpers shared across the
shell command modules.
"""

from __future__ import annotations

from dataclasses import dataclass

__all__ = [
    "CommandResult",
    "HelmRelease",
    "HelmRevision",
    "is_timeout",
]

# Messages helm prints when --wait gives up on the release becoming ready
HELM_TIMEOUT_MARKERS: tuple[str, ...] = (
    "timed out waiting for the condition",
    "context deadline exceeded",
)


@dataclass
class CommandResult:
    """Result of a command execution."""

    success: bool
    stdout: str = ""
    stderr: str = ""
    returncode: int = 0
    timed_out: bool = False

    @property
    def output(self) -> str:
        """Best human-readable explanation of the result."""
        return (self.stderr or self.stdout).strip()


@dataclass
class HelmRelease:
    """Information about a Helm release.

    Attributes:
        name: Release name
        namespace: Kubernetes namespace
        status: Release status (deployed, failed, pending-install, ...)
        revision: Release revision number, None if helm reported none
        chart: Chart name and version (e.g. "echo-server-0.1.0")
    """

    name: str
    namespace: str
    status: str
    revision: int | None
    chart: str = ""


@dataclass
class HelmRevision:
    """One entry of `helm history`."""

    revision: int
    updated: str
    status: str
    chart: str = ""
    description: str = ""


def is_timeout(result: CommandResult) -> bool:
    """Check whether a failed result was caused by a timeout.

    Covers both the runner's own subprocess timeout and helm's
    ``--wait --timeout`` expiring inside the helm process.
    """
    if result.success:
        return False
    if result.timed_out:
        return True
    text = f"{result.stdout}\n{result.stderr}".lower()
    return any(marker in text for marker in HELM_TIMEOUT_MARKERS)
