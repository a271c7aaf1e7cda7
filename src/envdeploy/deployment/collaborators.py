"""Narrow interfaces to the external tools a rollout depends on.

The shell command classes (KindCommands, KubectlCommands, HelmCommands)
satisfy these protocols structurally; tests substitute in-memory fakes.
"""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path
from typing import Protocol

from envdeploy.shell_commands.types import CommandResult, HelmRelease


class ClusterManager(Protocol):
    def list_clusters(self) -> set[str]: ...

    def create_cluster(self, name: str) -> CommandResult: ...


class WorkloadManager(Protocol):
    def namespace_exists(self, namespace: str, *, context: str | None = None) -> bool: ...

    def create_namespace(
        self, namespace: str, *, context: str | None = None
    ) -> CommandResult: ...

    def use_context(self, context: str) -> CommandResult: ...

    def context_exists(self, context: str) -> bool: ...


class ReleaseManager(Protocol):
    def list_releases(
        self,
        namespace: str,
        *,
        context: str | None = None,
        all_states: bool = False,
    ) -> list[HelmRelease]: ...

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
    ) -> CommandResult: ...

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
    ) -> CommandResult: ...

    def uninstall(
        self,
        release_name: str,
        namespace: str,
        *,
        wait: bool = True,
        context: str | None = None,
    ) -> CommandResult: ...
