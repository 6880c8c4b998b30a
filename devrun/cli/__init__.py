"""Main CLI application module.

This module provides the ``run`` entry point. Before a subcommand runs, the
callback loads ``.env`` and the target's local secrets, derives ``ENV`` from
the git branch and stores a CLIContext on the Typer context.
"""

import os
from pathlib import Path
from typing import Annotated

import typer
from dotenv import load_dotenv

from devrun.infra.environment import derive_environment, load_local_secrets
from devrun.utils.log_config import configure_logging

from .commands import (
    action_app,
    custom,
    docker_app,
    hasura_app,
    machine_app,
    meta_app,
    misc_app,
    routine,
    terraform_app,
    tmux_app,
    tunnel_app,
    utils_app,
    vault_app,
)
from .context import build_cli_context

# Create the main CLI application
app = typer.Typer(
    help="🛠️  run - Development workflow CLI",
    no_args_is_help=True,
    rich_markup_mode="rich",
)


@app.callback()
def main_callback(
    ctx: typer.Context,
    target: Annotated[
        str,
        typer.Option("--cible", "--target", help="Secrets target (.env.<target>)"),
    ] = "local",
    verbose: Annotated[
        bool, typer.Option("--verbose", "-v", help="Show debug logs")
    ] = False,
) -> None:
    """Load the environment and build the CLI context."""
    configure_logging(verbose)

    cwd = Path.cwd()
    load_dotenv(cwd / ".env", override=True, interpolate=True)

    cli_context = build_cli_context(target)
    if not os.environ.get("GITHUB_ACTIONS"):
        load_local_secrets(target, cli_context.cwd)
        derive_environment(cli_context.cwd, cli_context.commands.git)

    ctx.obj = cli_context


# Register command groups
app.add_typer(action_app, name="action")
app.add_typer(docker_app, name="docker")
app.add_typer(hasura_app, name="hasura")
app.add_typer(machine_app, name="machine")
app.add_typer(meta_app, name="meta")
app.add_typer(misc_app, name="misc")
app.add_typer(terraform_app, name="terraform")
app.add_typer(tmux_app, name="tmux")
app.add_typer(tunnel_app, name="tunnel")
app.add_typer(utils_app, name="utils")
app.add_typer(vault_app, name="vault")

# Register single commands
app.command("custom")(custom)
app.command("routine")(routine)


def main() -> None:
    """Main entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
