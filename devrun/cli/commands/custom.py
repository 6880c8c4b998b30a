"""Custom script command."""

from typing import Annotated

import typer

from devrun.cli.context import get_cli_context
from devrun.cli.operations.custom import CustomScripts
from devrun.cli.shared.console import console, with_error_handling


@with_error_handling
def custom(
    script: Annotated[
        str | None, typer.Argument(help="Script name (without .py)")
    ] = None,
    arguments: Annotated[
        list[str] | None, typer.Argument(help="Arguments handed to the script")
    ] = None,
    inputs: Annotated[
        list[str] | None,
        typer.Option("--input", "-i", help="Script input key=value (repeatable)"),
    ] = None,
    run_all: Annotated[
        bool, typer.Option("--all", help="Run every command given to utils.start")
    ] = False,
    test: Annotated[
        bool, typer.Option("--test", help="Use the test/ folder as script root")
    ] = False,
) -> None:
    """🧩 Run a custom script, or list the available ones.

    A script defines main(arguments, options).

    Examples:
        run custom
        run custom seed users --input COUNT=10
        run custom start dev --all
        run custom smoke --test
    """
    ctx = get_cli_context()
    scripts = CustomScripts(ctx.commands, ctx.console, ctx.cwd, ctx.constants)

    if script is None:
        available = scripts.available(test=test)
        if not available:
            console.warn("No custom script found")
            return
        console.print_subheader("Available scripts")
        for name in available:
            console.print(f"  • {name}")
        return

    scripts.run(script, arguments or [], inputs=inputs or [], run_all=run_all, test=test)
