"""CLI context and dependency container."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

import typer
from dotenv import load_dotenv

from envdeploy.cli.console import CLIConsole, console
from envdeploy.config.registry import Registry, load_registry
from envdeploy.shell_commands import ShellCommands


@dataclass(frozen=True)
class CLIContext:
    """Runtime dependencies for CLI commands."""

    console: CLIConsole
    project_root: Path
    registry: Registry
    commands: ShellCommands
    verbose: bool = False


def build_cli_context(
    registry_path: Path | None = None, verbose: bool = False
) -> CLIContext:
    """Build a fresh CLIContext.

    Loads .env from the working directory (without overriding variables
    that are already set) before reading the registry, so registry
    placeholders can refer to it.
    """
    project_root = Path.cwd()
    load_dotenv(project_root / ".env", override=False)
    registry = load_registry(registry_path)

    # Relative paths inside helm/kubectl commands resolve next to the registry
    if registry.source is not None:
        project_root = registry.source.resolve().parent

    return CLIContext(
        console=console,
        project_root=project_root,
        registry=registry,
        commands=ShellCommands(project_root),
        verbose=verbose,
    )


def get_cli_context(ctx: typer.Context | None = None) -> CLIContext:
    """Return the CLIContext from Typer, falling back to a new instance.

    The root callback leaves the global options in ``ctx.obj`` as a dict;
    the context is built from them on first use and cached on ``ctx``.
    """
    if ctx is not None and isinstance(ctx.obj, CLIContext):
        return ctx.obj
    options: dict = {}
    if ctx is not None and isinstance(ctx.obj, dict):
        options = ctx.obj
    cli_context = build_cli_context(
        options.get("registry_path"), verbose=bool(options.get("verbose", False))
    )
    if ctx is not None:
        ctx.obj = cli_context
    return cli_context
