"""Miscellaneous shortcuts."""

from typing import Annotated

import typer

from devrun.cli.context import get_cli_context
from devrun.cli.operations.housekeeping import Housekeeping
from devrun.cli.shared.console import console, with_error_handling
from devrun.utils.ids import DEFAULT_ID_LENGTH, create_id

misc_app = typer.Typer(name="misc", help="Miscellaneous shortcuts.", no_args_is_help=True)


@misc_app.command()
@with_error_handling
def commit(
    message: Annotated[
        str | None, typer.Option("--message", "-m", help="Commit message (prompted when omitted)")
    ] = None,
) -> None:
    """📝 Add, commit and push to origin main.

    Examples:
        run misc commit
        run misc commit -m "Fix typo"
    """
    ctx = get_cli_context()
    message = message or console.prompt_text("Enter commit message")
    Housekeeping(ctx.commands, ctx.console, ctx.cwd, ctx.constants).commit(
        message, force=False
    )


@misc_app.command()
@with_error_handling
def uuid(
    length: Annotated[
        int, typer.Argument(min=1, help="Number of characters")
    ] = DEFAULT_ID_LENGTH,
) -> None:
    """🎲 Print a random URL-safe id.

    Examples:
        run misc uuid
        run misc uuid 21
    """
    typer.echo(create_id(length))
