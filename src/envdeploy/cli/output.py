"""Rich rendering of plans, step results, status and history."""

from __future__ import annotations

from collections.abc import Mapping, Sequence

from rich.markup import escape
from rich.table import Table

from envdeploy.deployment.models import Environment, Outcome, Plan, StepResult
from envdeploy.deployment.status import EnvironmentStatus
from envdeploy.shell_commands.types import HelmRevision

OUTCOME_STYLES = {
    Outcome.SUCCESS: "[green]success[/green]",
    Outcome.SKIPPED: "[yellow]skipped[/yellow]",
    Outcome.FAILED: "[red]failed[/red]",
}


def _yes_no(value: bool) -> str:
    return "[green]yes[/green]" if value else "[dim]no[/dim]"


def plan_table(plan: Plan) -> Table:
    table = Table(title=f"Plan ({plan.mode.value})")
    table.add_column("#", justify="right", style="dim")
    table.add_column("Environment", style="cyan")
    table.add_column("Step")
    table.add_column("Cluster")
    table.add_column("Namespace")

    for index, step in enumerate(plan, start=1):
        env = step.environment
        table.add_row(
            str(index), env.name, step.kind.value, env.cluster_name, env.namespace
        )
    return table


def results_table(results: Sequence[StepResult]) -> Table:
    """Summarize step results, one row per step in plan order."""
    table = Table(title="Results")
    table.add_column("Environment", style="cyan")
    table.add_column("Step")
    table.add_column("Outcome")
    table.add_column("Detail")

    for result in results:
        if result.is_failed and result.failure is not None:
            detail = f"[red]{result.failure.value}[/red]: {escape(result.reason)}"
        else:
            detail = escape(result.detail or result.reason)
        table.add_row(
            result.environment.name,
            result.step.kind.value,
            OUTCOME_STYLES[result.outcome],
            detail,
        )
    return table


def status_table(statuses: Mapping[str, EnvironmentStatus]) -> Table:
    table = Table(title="Environment Status")
    table.add_column("Environment", style="cyan")
    table.add_column("Cluster")
    table.add_column("Cluster exists")
    table.add_column("Release")
    table.add_column("Installed")
    table.add_column("Revision", justify="right")
    table.add_column("Status")

    for name, status in statuses.items():
        env = status.environment
        state = _release_status(status.release_status)
        if status.error:
            state = f"[red]error: {escape(status.error)}[/red]"
        table.add_row(
            name,
            env.cluster_name,
            _yes_no(status.cluster_exists),
            env.release_name,
            _yes_no(status.release_exists),
            str(status.revision) if status.revision is not None else "-",
            state or "-",
        )
    return table


def history_table(env: Environment, revisions: Sequence[HelmRevision]) -> Table:
    table = Table(title=f"{env.release_name} history ({env.name})")
    table.add_column("Revision", justify="right")
    table.add_column("Updated")
    table.add_column("Status")
    table.add_column("Chart")
    table.add_column("Description")

    for rev in revisions:
        table.add_row(
            str(rev.revision),
            rev.updated[:19],  # Trim timezone
            _release_status(rev.status),
            escape(rev.chart),
            escape(rev.description[:40]),
        )
    return table


def _release_status(status: str) -> str:
    if status == "deployed":
        return f"[green]{status}[/green]"
    if status == "failed":
        return f"[red]{status}[/red]"
    if status.startswith("pending"):
        return f"[yellow]{status}[/yellow]"
    return status
