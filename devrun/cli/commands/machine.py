"""Project bootstrap commands."""

from typing import Annotated

import typer

from devrun.cli.context import get_cli_context
from devrun.cli.operations.machine import MachineOperations
from devrun.cli.shared.console import console, with_error_handling

machine_app = typer.Typer(name="machine", help="Create and move projects.", no_args_is_help=True)


def _operations() -> MachineOperations:
    ctx = get_cli_context()
    return MachineOperations(ctx.commands, ctx.console, ctx.cwd, ctx.constants)


@machine_app.command()
@with_error_handling
def init(
    name: Annotated[
        str | None, typer.Argument(help="Project name (prompted when omitted)")
    ] = None,
    devcontainer: Annotated[
        bool | None,
        typer.Option("--devcontainer/--no-devcontainer", help="Add a devcontainer"),
    ] = None,
    git: Annotated[
        bool | None,
        typer.Option("--git/--no-git", help="Initialize a git repository"),
    ] = None,
) -> None:
    """🆕 Create a new project folder with the standard configuration.

    Examples:
        run machine init
        run machine init my-project --no-git
    """
    name = name or console.prompt_text("What is the name of the project?")
    if devcontainer is None:
        devcontainer = console.confirm("Do you need a devcontainer?", default=True)
    if git is None:
        git = console.confirm("Do you want to initialize a Git repository?", default=True)
    _operations().init(name, devcontainer=devcontainer, git=git)


@machine_app.command()
@with_error_handling
def move(
    source: Annotated[str, typer.Argument(help="Project folder to move")],
    destination: Annotated[str, typer.Argument(help="Folder to move it into")],
) -> None:
    """📦 Move a project and update its devcontainer host path.

    Examples:
        run machine move my-project ~/work/clients
    """
    _operations().move(source, destination)
