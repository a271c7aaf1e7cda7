"""Main CLI application module.

This module provides the main entry point for the envdeploy CLI, which
rolls one Helm chart out to several local kind environments.

Commands:
- deploy: install or upgrade the release in each environment
- status: show cluster and release state
- clean: uninstall the release from each environment
- plan: print the steps a command would run
- history: show an environment's Helm revision history
"""

from pathlib import Path
from typing import Annotated

import typer

from envdeploy import __version__
from envdeploy.utils.logging import configure_logging

from .commands import clean, deploy, history, plan, status
from .console import console

# Create the main CLI application
app = typer.Typer(
    help="🚀 envdeploy - Multi-environment Helm deployments on kind",
    no_args_is_help=True,
    rich_markup_mode="rich",
)


def _version_callback(value: bool) -> None:
    if value:
        console.print(f"envdeploy {__version__}")
        raise typer.Exit()


@app.callback()
def main_callback(
    ctx: typer.Context,
    registry: Annotated[
        Path | None,
        typer.Option(
            "--registry",
            "-r",
            envvar="ENVDEPLOY_REGISTRY",
            help="Environment registry file (default: ./environments.yaml)",
        ),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Log state decisions and stream helm output"),
    ] = False,
    debug: Annotated[
        bool,
        typer.Option("--debug", help="Log every external command"),
    ] = False,
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            callback=_version_callback,
            is_eager=True,
            help="Show version and exit",
        ),
    ] = False,
) -> None:
    """Global options shared by every command."""
    configure_logging(verbose=verbose, debug=debug)
    # Tests may inject a ready-made CLIContext
    if ctx.obj is None:
        ctx.obj = {"registry_path": registry, "verbose": verbose or debug}


# Register commands
app.command()(deploy)
app.command()(status)
app.command()(clean)
app.command()(plan)
app.command()(history)


def main() -> None:
    """Main entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
