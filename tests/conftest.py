"""Shared fixtures: in-memory stand-ins for kind, kubectl and helm.

The fakes keep just enough state (clusters, contexts, namespaces,
releases) for the deployment core to be exercised end to end, and record
every call so tests can assert on what was (not) invoked.
"""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

import pytest

from envdeploy.deployment.models import Environment
from envdeploy.errors import ProbeError
from envdeploy.shell_commands.kind import context_for_cluster
from envdeploy.shell_commands.types import CommandResult, HelmRelease

OK = CommandResult(success=True)


class FakeClusterManager:
    def __init__(self, clusters: set[str] | None = None) -> None:
        self.clusters = set(clusters or ())
        self.calls: list[tuple[str, ...]] = []
        self.fail_list = False
        self.fail_create: set[str] = set()

    def list_clusters(self) -> set[str]:
        self.calls.append(("list_clusters",))
        if self.fail_list:
            raise ProbeError("Could not list kind clusters", details="docker not running")
        return set(self.clusters)

    def create_cluster(self, name: str) -> CommandResult:
        self.calls.append(("create_cluster", name))
        if name in self.fail_create:
            return CommandResult(success=False, stderr="ERROR: failed to create cluster", returncode=1)
        self.clusters.add(name)
        return OK

    @property
    def created(self) -> list[str]:
        return [c[1] for c in self.calls if c[0] == "create_cluster"]


class FakeWorkloadManager:
    def __init__(self, clusters: FakeClusterManager) -> None:
        self._clusters = clusters
        self.namespaces: set[tuple[str, str]] = set()
        self.current_context: str | None = None
        self.calls: list[tuple[str, ...]] = []
        self.fail_namespace_probe: set[str] = set()

    def namespace_exists(self, namespace: str, *, context: str | None = None) -> bool:
        self.calls.append(("namespace_exists", namespace, context or ""))
        if context in self.fail_namespace_probe:
            raise ProbeError(f"Could not check namespace '{namespace}'")
        return (context or "", namespace) in self.namespaces

    def create_namespace(self, namespace: str, *, context: str | None = None) -> CommandResult:
        self.calls.append(("create_namespace", namespace, context or ""))
        self.namespaces.add((context or "", namespace))
        return OK

    def context_exists(self, context: str) -> bool:
        self.calls.append(("context_exists", context))
        return context in {context_for_cluster(c) for c in set(self._clusters.clusters)}

    def use_context(self, context: str) -> CommandResult:
        self.calls.append(("use_context", context))
        if not self.context_exists(context):
            return CommandResult(
                success=False, stderr=f"error: no context exists with the name: \"{context}\"", returncode=1
            )
        self.current_context = context
        return OK

    def get_resources(
        self,
        resource_types: str,
        namespace: str,
        *,
        label_selector: str | None = None,
        context: str | None = None,
    ) -> CommandResult:
        self.calls.append(("get_resources", resource_types, namespace, context or ""))
        return CommandResult(
            success=True, stdout=f"NAME\n{resource_types} in {namespace}\n"
        )


class FakeReleaseManager:
    def __init__(self) -> None:
        # (context, namespace) -> {release name: revision}
        self.releases: dict[tuple[str, str], dict[str, int]] = {}
        self.calls: list[tuple[str, ...]] = []
        self.install_results: dict[str, CommandResult] = {}

    def add(self, context: str, namespace: str, name: str, revision: int = 1) -> None:
        self.releases.setdefault((context, namespace), {})[name] = revision

    def list_releases(
        self,
        namespace: str,
        *,
        context: str | None = None,
        all_states: bool = False,
    ) -> list[HelmRelease]:
        self.calls.append(("list_releases", namespace, context or ""))
        found = self.releases.get((context or "", namespace), {})
        return [
            HelmRelease(name=name, namespace=namespace, status="deployed", revision=rev)
            for name, rev in found.items()
        ]

    def _apply(
        self,
        verb: str,
        release_name: str,
        namespace: str,
        context: str | None,
        on_output: Callable[[str], None] | None,
    ) -> CommandResult:
        self.calls.append((verb, release_name, namespace, context or ""))
        if on_output:
            on_output(f"{verb} {release_name}")
        result = self.install_results.get(release_name, OK)
        if result.success:
            current = self.releases.get((context or "", namespace), {}).get(release_name, 0)
            self.add(context or "", namespace, release_name, current + 1)
        return result

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
        return self._apply("install", release_name, namespace, context, on_output)

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
        return self._apply("upgrade", release_name, namespace, context, on_output)

    def uninstall(
        self,
        release_name: str,
        namespace: str,
        *,
        wait: bool = True,
        context: str | None = None,
    ) -> CommandResult:
        self.calls.append(("uninstall", release_name, namespace, context or ""))
        self.releases.get((context or "", namespace), {}).pop(release_name, None)
        return OK

    def verbs(self) -> list[str]:
        return [c[0] for c in self.calls if c[0] != "list_releases"]


@pytest.fixture
def dev_env() -> Environment:
    return Environment(
        name="dev", cluster_name="nur-dev", namespace="dev", values_ref="values-dev.yaml"
    )


@pytest.fixture
def prd_env() -> Environment:
    return Environment(
        name="prd", cluster_name="nur-prd", namespace="prd", values_ref="values-prd.yaml"
    )


@pytest.fixture
def environments(dev_env: Environment, prd_env: Environment) -> list[Environment]:
    return [dev_env, prd_env]


@pytest.fixture
def clusters() -> FakeClusterManager:
    return FakeClusterManager()


@pytest.fixture
def workloads(clusters: FakeClusterManager) -> FakeWorkloadManager:
    return FakeWorkloadManager(clusters)


@pytest.fixture
def releases() -> FakeReleaseManager:
    return FakeReleaseManager()
