"""tmux session commands."""

from typing import Annotated

import typer

from devrun.cli.context import get_cli_context
from devrun.cli.operations.tmux import TmuxOperations
from devrun.cli.shared.console import console, with_error_handling

tmux_app = typer.Typer(name="tmux", help="tmux session management.", no_args_is_help=True)

SessionArgument = Annotated[str, typer.Argument(help="Session name")]


def _operations() -> TmuxOperations:
    ctx = get_cli_context()
    return TmuxOperations(ctx.commands, ctx.console, ctx.cwd, ctx.constants)


@tmux_app.command()
@with_error_handling
def init(
    session: SessionArgument,
    all_apps: Annotated[
        bool, typer.Option("--all", help="Use every tmux configuration under $SRC")
    ] = False,
    reset: Annotated[
        bool, typer.Option("--reset", help="Kill an existing session first")
    ] = False,
    color: Annotated[
        bool, typer.Option("--color", help="Give each window a background colour")
    ] = False,
    command: Annotated[
        bool, typer.Option("--command", help="Run the pane commands")
    ] = False,
) -> None:
    """🪟 Create a session from the tmux section of meta.json.

    Examples:
        run tmux init dev
        run tmux init dev --all --reset --color
    """
    _operations().init_session(
        session, all_apps=all_apps, reset=reset, colors=color, run_commands=command
    )


@tmux_app.command()
@with_error_handling
def attach(
    session: SessionArgument,
    run_all: Annotated[
        bool, typer.Option("--run-all", help="Run every pane command first")
    ] = False,
    run: Annotated[
        list[str] | None,
        typer.Option(
            "--run",
            help="Run commands of window, window.pane[N] or window.paneName (repeatable)",
        ),
    ] = None,
) -> None:
    """🔗 Attach to a session, optionally starting pane commands.

    Examples:
        run tmux attach dev
        run tmux attach dev --run api-server --run web-dev.pane[1]
    """
    _operations().attach(session, run_all=run_all, targets=run or [])


@tmux_app.command()
@with_error_handling
def terminate(session: SessionArgument) -> None:
    """🛑 Kill a session.

    Examples:
        run tmux terminate dev
    """
    _operations().terminate(session)


@tmux_app.command("list")
@with_error_handling
def list_sessions() -> None:
    """📋 List tmux sessions.

    Examples:
        run tmux list
    """
    sessions = _operations().list_sessions()
    if sessions is None:
        console.warn("No tmux sessions found")
        return
    console.print(sessions)
