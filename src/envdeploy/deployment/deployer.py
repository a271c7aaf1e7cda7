"""Multi-environment deployer.

This module provides the EnvironmentDeployer class which orchestrates
rollouts of one Helm chart into every environment of the registry. It
coordinates specialized components for:
- Planning (what to do, per environment, in which order)
- Execution (install/upgrade, teardown)
- Status reporting

The deploy workflow per environment is:
1. Ensure the kind cluster exists
2. Switch to (or verify) the cluster's kubeconfig context
3. Ensure the namespace exists
4. Install the release, or upgrade it if it already exists
"""

from __future__ import annotations

from collections.abc import Callable

from envdeploy.config.registry import ALL_ENVIRONMENTS, Registry
from envdeploy.shell_commands import REQUIRED_BINARIES, ShellCommands
from envdeploy.shell_commands.types import CommandResult, HelmRevision

from .executor import DeploymentExecutor
from .models import Environment, Plan, PlanMode, StepResult
from .planner import build_plan
from .status import EnvironmentStatus, StatusReporter

# Resources the chart labels with environment=<name>
WORKLOAD_RESOURCES = "deployments,pods,services"


class EnvironmentDeployer:
    """Deploys, inspects and tears down the registry's environments.

    Attributes:
        commands: Shell command executor
        registry: Environment registry
        executor: Plan executor configured from the registry settings
        reporter: Read-only status reporter
    """

    def __init__(
        self,
        commands: ShellCommands,
        registry: Registry,
        *,
        on_result: Callable[[StepResult], None] | None = None,
        on_output: Callable[[Environment, str], None] | None = None,
    ) -> None:
        """Initialize the deployer.

        Args:
            commands: Shell command executor
            registry: Environment registry
            on_result: Called with every step result as it completes
            on_output: Called with helm output lines during install/upgrade
        """
        self.commands = commands
        self.registry = registry

        settings = registry.settings
        self.executor = DeploymentExecutor(
            commands.kind,
            commands.kubectl,
            commands.helm,
            chart_path=registry.chart_path,
            helm_timeout=settings.helm_timeout,
            wait=settings.wait,
            max_workers=settings.effective_workers,
            isolated_contexts=settings.isolated_contexts,
            deadline_seconds=settings.deadline_seconds,
            on_result=on_result,
            on_output=on_output,
        )
        self.reporter = StatusReporter(commands.kind, commands.helm)

    # =========================================================================
    # Public Interface
    # =========================================================================

    def plan(self, mode: PlanMode, target: str = ALL_ENVIRONMENTS) -> Plan:
        """Build the plan for a target without running anything."""
        return build_plan(self.registry.select(target), mode)

    def deploy(self, target: str = ALL_ENVIRONMENTS) -> list[StepResult]:
        """Install or upgrade the release in the target environment(s).

        Raises:
            PrerequisiteMissingError: If kind, kubectl or helm is missing
            ConfigurationError: If the target is not a known environment
        """
        self.commands.require_prerequisites(REQUIRED_BINARIES)
        plan = self.plan(PlanMode.INSTALL, target)
        return self.executor.execute(plan)

    def clean(self, target: str = ALL_ENVIRONMENTS) -> list[StepResult]:
        """Uninstall the release from every target environment that has one."""
        self.commands.require_prerequisites(REQUIRED_BINARIES)
        plan = self.plan(PlanMode.UNINSTALL, target)
        return self.executor.execute(plan)

    def status(self, target: str = ALL_ENVIRONMENTS) -> dict[str, EnvironmentStatus]:
        """Report cluster and release state of the target environment(s)."""
        self.commands.require_prerequisites(("kind", "helm"))
        environments = self.registry.select(target)
        return self.reporter.report(environments)

    def workloads(
        self, env: Environment, resource_types: str = WORKLOAD_RESOURCES
    ) -> CommandResult:
        """List the environment's labelled workloads as kubectl prints them."""
        return self.commands.kubectl.get_resources(
            resource_types,
            env.namespace,
            label_selector=f"environment={env.name}",
            context=env.context_name,
        )

    def history(self, name: str, max_revisions: int = 10) -> list[HelmRevision]:
        """Return the release history of one environment."""
        env = self.registry.get(name)
        self.commands.require_prerequisites(("helm",))
        return self.commands.helm.history(
            env.release_name, env.namespace, max_revisions, context=env.context_name
        )
