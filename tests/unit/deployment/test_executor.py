"""Tests for plan execution against fake kind/kubectl/helm collaborators."""

from pathlib import Path

import pytest

from envdeploy.deployment.executor import DeploymentExecutor
from envdeploy.deployment.models import (
    Environment,
    FailureKind,
    Outcome,
    PlanMode,
    StepKind,
    StepResult,
    any_failed,
)
from envdeploy.deployment.planner import build_plan
from envdeploy.shell_commands.types import CommandResult


class FakeClock:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def make_executor(clusters, workloads, releases):
    def _make(**kwargs) -> DeploymentExecutor:
        return DeploymentExecutor(
            clusters, workloads, releases, chart_path=Path("chart"), **kwargs
        )

    return _make


def _by_kind(results: list[StepResult], env: str) -> dict[StepKind, StepResult]:
    return {r.step.kind: r for r in results if r.environment.name == env}


class TestDeploy:
    """Install plans."""

    def test_fresh_machine_creates_and_installs_everything(
        self, make_executor, environments, clusters, workloads, releases
    ) -> None:
        results = make_executor().execute(build_plan(environments, PlanMode.INSTALL))

        assert len(results) == 8
        assert all(r.succeeded for r in results)
        assert clusters.created == ["nur-dev", "nur-prd"]
        assert ("kind-nur-dev", "dev") in workloads.namespaces
        assert ("kind-nur-prd", "prd") in workloads.namespaces
        assert releases.verbs() == ["install", "install"]
        assert _by_kind(results, "dev")[StepKind.ENSURE_CLUSTER].detail == "created"
        assert _by_kind(results, "prd")[StepKind.SWITCH_CONTEXT].detail == "switched"

    def test_results_are_in_plan_order(self, make_executor, environments) -> None:
        plan = build_plan(environments, PlanMode.INSTALL)

        results = make_executor().execute(plan)

        assert [r.step for r in results] == list(plan)

    def test_existing_release_is_upgraded(
        self, make_executor, environments, clusters, workloads, releases
    ) -> None:
        clusters.clusters.update({"nur-dev", "nur-prd"})
        workloads.namespaces.add(("kind-nur-dev", "dev"))
        releases.add("kind-nur-dev", "dev", "echo-server-dev", revision=1)

        results = make_executor().execute(build_plan(environments, PlanMode.INSTALL))

        dev = _by_kind(results, "dev")
        prd = _by_kind(results, "prd")
        assert dev[StepKind.INSTALL_OR_UPGRADE].detail == "upgrade"
        assert prd[StepKind.INSTALL_OR_UPGRADE].detail == "install"
        assert dev[StepKind.ENSURE_NAMESPACE].detail == "exists"
        assert prd[StepKind.ENSURE_NAMESPACE].detail == "created"
        assert releases.releases[("kind-nur-dev", "dev")]["echo-server-dev"] == 2
        assert clusters.created == []

    def test_second_run_upgrades_without_creating(
        self, make_executor, environments, clusters, releases
    ) -> None:
        executor = make_executor()
        plan = build_plan(environments, PlanMode.INSTALL)

        executor.execute(plan)
        results = executor.execute(plan)

        assert clusters.created == ["nur-dev", "nur-prd"]
        assert releases.verbs() == ["install", "install", "upgrade", "upgrade"]
        assert all(
            r.detail == "exists"
            for r in results
            if r.step.kind in (StepKind.ENSURE_CLUSTER, StepKind.ENSURE_NAMESPACE)
        )

    def test_release_commands_carry_environment_context(
        self, make_executor, environments, releases
    ) -> None:
        make_executor().execute(build_plan(environments, PlanMode.INSTALL))

        installs = [c for c in releases.calls if c[0] == "install"]
        assert installs == [
            ("install", "echo-server-dev", "dev", "kind-nur-dev"),
            ("install", "echo-server-prd", "prd", "kind-nur-prd"),
        ]

    def test_helm_output_is_forwarded_with_environment(
        self, make_executor, environments
    ) -> None:
        lines: list[tuple[str, str]] = []

        make_executor(
            on_output=lambda env, line: lines.append((env.name, line))
        ).execute(build_plan(environments, PlanMode.INSTALL))

        assert lines == [
            ("dev", "install echo-server-dev"),
            ("prd", "install echo-server-prd"),
        ]

    def test_on_result_sees_every_step(self, make_executor, environments) -> None:
        seen: list[StepResult] = []

        results = make_executor(on_result=seen.append).execute(
            build_plan(environments, PlanMode.INSTALL)
        )

        assert seen == results


class TestFailureIsolation:
    """A failure stays inside its environment."""

    def test_cluster_creation_failure_skips_rest_of_environment(
        self, make_executor, environments, clusters, releases
    ) -> None:
        clusters.fail_create.add("nur-dev")

        results = make_executor().execute(build_plan(environments, PlanMode.INSTALL))

        dev = _by_kind(results, "dev")
        assert dev[StepKind.ENSURE_CLUSTER].outcome is Outcome.FAILED
        assert dev[StepKind.ENSURE_CLUSTER].failure is FailureKind.COMMAND
        for kind in (
            StepKind.SWITCH_CONTEXT,
            StepKind.ENSURE_NAMESPACE,
            StepKind.INSTALL_OR_UPGRADE,
        ):
            assert dev[kind].is_skipped
            assert dev[kind].reason == "ensure-cluster failed"

        assert all(r.succeeded for r in _by_kind(results, "prd").values())
        assert releases.verbs() == ["install"]
        assert any_failed(results)

    def test_install_timeout_is_classified(
        self, make_executor, environments, releases
    ) -> None:
        releases.install_results["echo-server-dev"] = CommandResult(
            success=False,
            stderr="Error: INSTALLATION FAILED: timed out waiting for the condition",
            returncode=1,
        )

        results = make_executor().execute(build_plan(environments, PlanMode.INSTALL))

        dev_install = _by_kind(results, "dev")[StepKind.INSTALL_OR_UPGRADE]
        assert dev_install.is_failed
        assert dev_install.failure is FailureKind.TIMEOUT
        assert "timed out" in dev_install.reason
        assert _by_kind(results, "prd")[StepKind.INSTALL_OR_UPGRADE].detail == "install"

    def test_probe_failure_is_classified(
        self, make_executor, environments, workloads
    ) -> None:
        workloads.fail_namespace_probe.add("kind-nur-dev")

        results = make_executor().execute(build_plan(environments, PlanMode.INSTALL))

        dev = _by_kind(results, "dev")
        assert dev[StepKind.ENSURE_NAMESPACE].failure is FailureKind.PROBE
        assert dev[StepKind.INSTALL_OR_UPGRADE].reason == "ensure-namespace failed"
        assert not any(r.is_failed for r in _by_kind(results, "prd").values())

    def test_unreachable_cluster_manager_fails_every_environment(
        self, make_executor, environments, clusters
    ) -> None:
        clusters.fail_list = True

        results = make_executor().execute(build_plan(environments, PlanMode.INSTALL))

        failed = [r for r in results if r.is_failed]
        assert [r.environment.name for r in failed] == ["dev", "prd"]
        assert all(r.failure is FailureKind.PROBE for r in failed)


class TestUninstall:
    """Uninstall plans."""

    def test_absent_release_is_skipped(
        self, make_executor, environments, clusters, releases
    ) -> None:
        clusters.clusters.update({"nur-dev", "nur-prd"})
        releases.add("kind-nur-prd", "prd", "echo-server-prd")

        results = make_executor().execute(build_plan(environments, PlanMode.UNINSTALL))

        dev_uninstall = _by_kind(results, "dev")[StepKind.UNINSTALL]
        assert dev_uninstall.is_skipped
        assert dev_uninstall.reason == "release not found"
        assert _by_kind(results, "prd")[StepKind.UNINSTALL].detail == "uninstalled"
        assert releases.verbs() == ["uninstall"]
        assert not any_failed(results)

    def test_missing_cluster_is_skipped_without_creating_it(
        self, make_executor, environments, clusters, releases
    ) -> None:
        clusters.clusters.add("nur-dev")
        releases.add("kind-nur-dev", "dev", "echo-server-dev")

        results = make_executor().execute(build_plan(environments, PlanMode.UNINSTALL))

        prd = _by_kind(results, "prd")
        assert prd[StepKind.SWITCH_CONTEXT].reason == "cluster missing"
        assert prd[StepKind.UNINSTALL].reason == "cluster missing"
        assert clusters.created == []
        assert releases.verbs() == ["uninstall"]


class TestConcurrency:
    """Context isolation and worker pool."""

    def test_parallel_without_isolated_contexts_is_rejected(self, make_executor) -> None:
        with pytest.raises(ValueError, match="isolated contexts"):
            make_executor(max_workers=2)

    def test_zero_workers_rejected(self, make_executor) -> None:
        with pytest.raises(ValueError):
            make_executor(max_workers=0)

    def test_isolated_contexts_never_switch_current_context(
        self, make_executor, environments, workloads
    ) -> None:
        results = make_executor(isolated_contexts=True, max_workers=2).execute(
            build_plan(environments, PlanMode.INSTALL)
        )

        assert all(r.succeeded for r in results)
        assert not [c for c in workloads.calls if c[0] == "use_context"]
        assert workloads.current_context is None
        switch_details = {
            r.environment.name: r.detail
            for r in results
            if r.step.kind is StepKind.SWITCH_CONTEXT
        }
        assert switch_details == {"dev": "verified", "prd": "verified"}

    def test_parallel_results_keep_plan_order(self, make_executor, environments) -> None:
        plan = build_plan(environments, PlanMode.INSTALL)

        results = make_executor(isolated_contexts=True, max_workers=2).execute(plan)

        assert [r.step for r in results] == list(plan)


class TestDeadline:
    """Overall deadline handling."""

    def test_steps_after_deadline_are_cancelled(
        self, make_executor, environments: list[Environment], releases
    ) -> None:
        clock = FakeClock()

        def advance(_: StepResult) -> None:
            clock.now += 30

        results = make_executor(
            deadline_seconds=10, clock=clock, on_result=advance
        ).execute(build_plan(environments, PlanMode.INSTALL))

        assert results[0].succeeded
        assert all(r.is_skipped and r.reason == "cancelled" for r in results[1:])
        assert releases.verbs() == []

    def test_no_deadline_runs_everything(self, make_executor, environments) -> None:
        clock = FakeClock()
        clock.now = 1e9

        results = make_executor(clock=clock).execute(
            build_plan(environments, PlanMode.INSTALL)
        )

        assert all(r.succeeded for r in results)
