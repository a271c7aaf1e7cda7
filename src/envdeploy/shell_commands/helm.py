"""Helm command abstractions.

This module provides commands for Helm release management,
including installs, upgrades, uninstallation, and status queries.
"""

from __future__ import annotations

import json
from collections.abc import Callable
from pathlib import Path
from typing import TYPE_CHECKING, Any

from envdeploy.errors import ProbeError

from .types import CommandResult, HelmRelease, HelmRevision

if TYPE_CHECKING:
    from .runner import CommandRunner


class HelmCommands:
    """Helm-related shell commands.

    Provides operations for:
    - Release management (install, upgrade, uninstall)
    - Status queries (list releases, release history)
    """

    def __init__(self, runner: CommandRunner) -> None:
        """Initialize Helm commands.

        Args:
            runner: Command runner for executing shell commands
        """
        self._runner = runner

    # =========================================================================
    # Release Management
    # =========================================================================

    def install(
        self,
        release_name: str,
        chart_path: Path,
        namespace: str,
        *,
        value_files: list[Path] | None = None,
        wait: bool = True,
        timeout: str = "5m",
        context: str | None = None,
        on_output: Callable[[str], None] | None = None,
    ) -> CommandResult:
        """Install a new Helm release.

        Args:
            release_name: Name for the Helm release (e.g., "echo-server-dev")
            chart_path: Path to the Helm chart directory
            namespace: Kubernetes namespace for deployment
            value_files: Optional list of values.yaml override files
            wait: Whether to block until resources are ready
            timeout: Maximum time helm waits for readiness
            context: kubeconfig context to deploy into
            on_output: Optional callback for real-time output streaming.

        Returns:
            CommandResult with installation status
        """
        cmd = self._release_cmd(
            "install",
            release_name,
            chart_path,
            namespace,
            value_files=value_files,
            wait=wait,
            timeout=timeout,
            context=context,
        )
        return self._run_release_cmd(cmd, on_output)

    def upgrade(
        self,
        release_name: str,
        chart_path: Path,
        namespace: str,
        *,
        value_files: list[Path] | None = None,
        wait: bool = True,
        timeout: str = "5m",
        context: str | None = None,
        on_output: Callable[[str], None] | None = None,
    ) -> CommandResult:
        """Upgrade an existing Helm release.

        Takes the same arguments as :meth:`install`.
        """
        cmd = self._release_cmd(
            "upgrade",
            release_name,
            chart_path,
            namespace,
            value_files=value_files,
            wait=wait,
            timeout=timeout,
            context=context,
        )
        return self._run_release_cmd(cmd, on_output)

    def uninstall(
        self,
        release_name: str,
        namespace: str,
        *,
        wait: bool = True,
        context: str | None = None,
    ) -> CommandResult:
        """Uninstall a Helm release.

        Args:
            release_name: Name of the release to uninstall
            namespace: Kubernetes namespace
            wait: Whether to wait for resources to be deleted
            context: kubeconfig context of the release

        Returns:
            CommandResult with uninstall status
        """
        cmd = ["helm", "uninstall", release_name, "-n", namespace]
        if wait:
            cmd.append("--wait")
        if context:
            cmd.extend(["--kube-context", context])
        return self._runner.run(cmd)

    def _release_cmd(
        self,
        verb: str,
        release_name: str,
        chart_path: Path,
        namespace: str,
        *,
        value_files: list[Path] | None,
        wait: bool,
        timeout: str,
        context: str | None,
    ) -> list[str]:
        cmd = [
            "helm",
            verb,
            release_name,
            str(chart_path),
            "--namespace",
            namespace,
        ]
        for vf in value_files or []:
            cmd.extend(["-f", str(vf)])
        if wait:
            cmd.append("--wait")
        cmd.extend(["--timeout", timeout])
        if context:
            cmd.extend(["--kube-context", context])
        return cmd

    def _run_release_cmd(
        self, cmd: list[str], on_output: Callable[[str], None] | None
    ) -> CommandResult:
        # Use streaming if callback provided, otherwise capture output
        if on_output:
            return self._runner.run_streaming(cmd, on_output=on_output)
        return self._runner.run(cmd, capture_output=True)

    # =========================================================================
    # Status Queries
    # =========================================================================

    def list_releases(
        self,
        namespace: str,
        *,
        context: str | None = None,
        all_states: bool = False,
    ) -> list[HelmRelease]:
        """List Helm releases in a namespace.

        Args:
            namespace: Kubernetes namespace to query
            context: kubeconfig context to query
            all_states: Include failed, pending and uninstalling releases

        Returns:
            List of HelmRelease objects

        Raises:
            ProbeError: If helm fails or its JSON output cannot be parsed
        """
        cmd = ["helm", "list", "-n", namespace, "-o", "json"]
        if all_states:
            cmd.append("--all")
        if context:
            cmd.extend(["--kube-context", context])

        result = self._runner.run(cmd)
        if not result.success:
            raise ProbeError(
                f"Could not list Helm releases in namespace '{namespace}'",
                details=result.output or f"helm exited with code {result.returncode}",
            )
        if not result.stdout.strip():
            return []

        try:
            releases_data = json.loads(result.stdout)
            return [
                HelmRelease(
                    name=r["name"],
                    namespace=r.get("namespace", namespace),
                    status=r.get("status", ""),
                    revision=_parse_revision(r.get("revision")),
                    chart=r.get("chart", ""),
                )
                for r in releases_data
            ]
        except (json.JSONDecodeError, KeyError, TypeError, ValueError) as e:
            raise ProbeError(
                "Unexpected output from 'helm list'",
                details=str(e),
            ) from e

    def history(
        self,
        release_name: str,
        namespace: str,
        max_revisions: int = 10,
        *,
        context: str | None = None,
    ) -> list[HelmRevision]:
        """Get release history.

        Args:
            release_name: Name of the release
            namespace: Kubernetes namespace
            max_revisions: Maximum number of revisions to return
            context: kubeconfig context of the release

        Returns:
            List of revisions, oldest first; empty if the release does not exist

        Raises:
            ProbeError: If helm fails for another reason or prints invalid JSON
        """
        cmd = [
            "helm",
            "history",
            release_name,
            "-n",
            namespace,
            "-o",
            "json",
            "--max",
            str(max_revisions),
        ]
        if context:
            cmd.extend(["--kube-context", context])

        result = self._runner.run(cmd)
        if not result.success:
            if "not found" in result.stderr.lower():
                return []
            raise ProbeError(
                f"Could not read history of release '{release_name}'",
                details=result.output,
            )

        try:
            history_data: list[dict[str, Any]] = json.loads(result.stdout or "[]")
            return [
                HelmRevision(
                    revision=int(h["revision"]),
                    updated=str(h.get("updated", "")),
                    status=h.get("status", ""),
                    chart=h.get("chart", ""),
                    description=h.get("description", ""),
                )
                for h in history_data
            ]
        except (json.JSONDecodeError, KeyError, TypeError, ValueError) as e:
            raise ProbeError("Unexpected output from 'helm history'", details=str(e)) from e


def _parse_revision(value: object) -> int | None:
    """helm prints revisions as strings in `list` and as ints in `history`."""
    if value is None or value == "":
        return None
    return int(str(value))
