"""Environment rollout commands.

This module provides commands for deploying the application into the
registry's kind environments, inspecting them and tearing them down.
"""

from typing import Annotated

import typer
from rich.markup import escape

from envdeploy.cli.console import CLIConsole, with_error_handling
from envdeploy.cli.context import CLIContext, get_cli_context
from envdeploy.cli.output import (
    history_table,
    plan_table,
    results_table,
    status_table,
)
from envdeploy.config.registry import ALL_ENVIRONMENTS
from envdeploy.deployment.deployer import WORKLOAD_RESOURCES, EnvironmentDeployer
from envdeploy.deployment.models import (
    Environment,
    PlanMode,
    StepResult,
    any_failed,
)

TargetArgument = Annotated[
    str,
    typer.Argument(help="Environment name, or 'all' for every environment"),
]


# ---------------------------------------------------------------------------
# Deployer Factory
# ---------------------------------------------------------------------------


def _get_deployer(cli_ctx: CLIContext) -> EnvironmentDeployer:
    """Build a deployer that reports progress on the CLI console.

    Helm's own output is streamed only in verbose mode.
    """
    out = cli_ctx.console
    if cli_ctx.registry.source is None:
        out.info("No environments.yaml found, using the built-in dev/prd environments")

    def on_output(env: Environment, line: str) -> None:
        out.print(f"[dim]\\[{env.name}] {escape(line)}[/dim]")

    return EnvironmentDeployer(
        cli_ctx.commands,
        cli_ctx.registry,
        on_result=lambda result: _print_result(out, result),
        on_output=on_output if cli_ctx.verbose else None,
    )


# ---------------------------------------------------------------------------
# Helper Functions
# ---------------------------------------------------------------------------


def _print_result(out: CLIConsole, result: StepResult) -> None:
    line = escape(result.describe())
    if result.is_failed:
        out.error(line)
    elif result.is_skipped:
        out.warn(line)
    else:
        out.ok(line)


def _show_workloads(
    out: CLIConsole,
    deployer: EnvironmentDeployer,
    env: Environment,
    resource_types: str = WORKLOAD_RESOURCES,
) -> None:
    """Print what kubectl reports for the environment's labelled resources."""
    out.print_subheader(f"{env.name} ({env.context_name}, namespace {env.namespace})")
    result = deployer.workloads(env, resource_types)
    if result.success:
        out.print(escape(result.stdout.rstrip()) or "[dim]No resources found[/dim]")
    else:
        out.warn(f"Could not list resources: {escape(result.output)}")


def _exit_on_failure(out: CLIConsole, results: list[StepResult], action: str) -> None:
    failed = sorted({r.environment.name for r in results if r.is_failed})
    if any_failed(results):
        out.error(f"{action} failed for: {', '.join(failed)}")
        raise typer.Exit(1)
    out.ok(f"{action} completed")


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


@with_error_handling
def deploy(
    ctx: typer.Context,
    target: TargetArgument = ALL_ENVIRONMENTS,
) -> None:
    """Install or upgrade the release in each environment.

    For every selected environment this creates the kind cluster if needed,
    switches to its context, creates the namespace if needed and installs
    the chart (or upgrades an existing release). A failure in one
    environment does not stop the others.

    Examples:
        envdeploy deploy
        envdeploy deploy dev
        envdeploy --verbose deploy prd
    """
    cli_ctx = get_cli_context(ctx)
    out = cli_ctx.console
    out.print_header(f"Deploying {cli_ctx.registry.app_name} ({target})")

    deployer = _get_deployer(cli_ctx)
    results = deployer.deploy(target)

    out.print(results_table(results))

    # Show workloads of environments whose rollout went through
    failed = {r.environment.name for r in results if r.is_failed}
    for env in cli_ctx.registry.select(target):
        if env.name not in failed:
            _show_workloads(out, deployer, env)

    _exit_on_failure(out, results, "Deployment")


@with_error_handling
def status(
    ctx: typer.Context,
    target: TargetArgument = ALL_ENVIRONMENTS,
    pods: Annotated[
        bool,
        typer.Option(
            "--pods",
            "-p",
            help="Also list the pods of every environment with a cluster",
        ),
    ] = False,
) -> None:
    """Show cluster and release state of each environment.

    Nothing is changed and the current kubeconfig context is left alone.

    Examples:
        envdeploy status
        envdeploy status dev --pods
    """
    cli_ctx = get_cli_context(ctx)
    out = cli_ctx.console
    out.print_header("Environment Status")

    deployer = _get_deployer(cli_ctx)
    statuses = deployer.status(target)
    out.print(status_table(statuses))

    if pods:
        for env_status in statuses.values():
            if env_status.cluster_exists:
                _show_workloads(out, deployer, env_status.environment, "pods")

    errors = [name for name, s in statuses.items() if s.error]
    if errors:
        out.error(f"Could not read the state of: {', '.join(errors)}")
        raise typer.Exit(1)


@with_error_handling
def clean(
    ctx: typer.Context,
    target: TargetArgument = ALL_ENVIRONMENTS,
    yes: Annotated[
        bool,
        typer.Option(
            "--yes",
            "-y",
            help="Skip confirmation prompt",
        ),
    ] = False,
) -> None:
    """Uninstall the release from each environment.

    Clusters and namespaces are kept. Environments without a cluster or
    without a release are skipped.

    Examples:
        envdeploy clean
        envdeploy clean prd -y  # Skip confirmation
    """
    cli_ctx = get_cli_context(ctx)
    out = cli_ctx.console
    out.print_header("Removing Releases", style="red")

    environments = cli_ctx.registry.select(target)
    if not out.confirm_action(
        "Uninstall releases",
        "This will uninstall:\n"
        + "\n".join(
            f"  • {env.release_name} from {env.context_name} (namespace {env.namespace})"
            for env in environments
        ),
        force=yes,
    ):
        out.print("[dim]Operation cancelled[/dim]")
        raise typer.Exit(0)

    deployer = _get_deployer(cli_ctx)
    results = deployer.clean(target)

    out.print(results_table(results))
    _exit_on_failure(out, results, "Cleanup")


@with_error_handling
def plan(
    ctx: typer.Context,
    mode: Annotated[
        PlanMode,
        typer.Argument(help="What to plan for", case_sensitive=False),
    ] = PlanMode.INSTALL,
    target: TargetArgument = ALL_ENVIRONMENTS,
) -> None:
    """Print the steps a command would run, without running anything.

    Examples:
        envdeploy plan
        envdeploy plan uninstall prd
    """
    cli_ctx = get_cli_context(ctx)
    deployer = _get_deployer(cli_ctx)
    cli_ctx.console.print(plan_table(deployer.plan(mode, target)))


@with_error_handling
def history(
    ctx: typer.Context,
    environment: Annotated[
        str,
        typer.Argument(help="Environment name"),
    ],
    max_revisions: Annotated[
        int,
        typer.Option(
            "--max",
            "-m",
            min=1,
            help="Maximum number of revisions to show",
        ),
    ] = 10,
) -> None:
    """Show the Helm revision history of an environment's release.

    Examples:
        envdeploy history dev
        envdeploy history prd --max 5
    """
    cli_ctx = get_cli_context(ctx)
    out = cli_ctx.console
    out.print_header("Release History")

    env = cli_ctx.registry.get(environment)
    revisions = _get_deployer(cli_ctx).history(environment, max_revisions)

    if not revisions:
        out.warn(
            f"No release history found for '{env.release_name}' "
            f"in namespace '{env.namespace}'"
        )
        out.print(f"\n[dim]Deploy first with: envdeploy deploy {env.name}[/dim]")
        return

    out.print(history_table(env, revisions))
