"""Routine command."""

from typing import Annotated

import typer

from devrun.cli.context import get_cli_context
from devrun.cli.operations.routines import RoutineRunner, RoutineTreeBuilder
from devrun.cli.shared.console import console, with_error_handling
from devrun.infra.meta import require_meta


@with_error_handling
def routine(
    scripts: Annotated[
        list[str] | None, typer.Argument(help="Routines to run (prompted when omitted)")
    ] = None,
) -> None:
    """🔁 Run routines declared in meta.json.

    Requested routines run in parallel. A routine may chain others with
    'parallel a b', 'sequence a b', 'every a !app', '&&' and '&'.

    Examples:
        run routine
        run routine build
        run routine lint test
    """
    ctx = get_cli_context()
    routines = require_meta(ctx.cwd).routines
    if not routines:
        console.info("No routines found")
        return

    if not scripts:
        selected = console.select("Select a routine to run:", list(routines))
        if selected is None:
            return
        scripts = [selected]

    tree = RoutineTreeBuilder(routines, ctx.cwd).build(scripts)
    RoutineRunner(ctx.commands, ctx.console).run(tree, ctx.cwd)
    console.ok("All tasks executed successfully")
