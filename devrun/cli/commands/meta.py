"""meta.json scaffolding commands."""

from pathlib import Path
from typing import Annotated

import typer

from devrun.cli.context import get_cli_context
from devrun.cli.operations.scaffolding import CHANGEABLE_PROPERTIES, META_TYPES, MetaScaffolder
from devrun.cli.shared.console import CLIConsole, console, with_error_handling

meta_app = typer.Typer(name="meta", help="Manage meta.json files.", no_args_is_help=True)


def _scaffolder() -> MetaScaffolder:
    ctx = get_cli_context()
    return MetaScaffolder(ctx.console, ctx.cwd, ctx.constants)


def _choose_type(cli_console: CLIConsole, title: str) -> str:
    meta_type = cli_console.select(title, list(META_TYPES))
    if meta_type is None:
        raise typer.Exit(0)
    return meta_type


def create_meta_interactively(force: bool = False) -> Path:
    """Prompt for name, type and global flag, then write meta.json."""
    name = console.prompt_text("What is the name of this object?")
    meta_type = _choose_type(console, "What is the type of this object?")
    global_ = console.confirm("Is this a global (not environment-based) app?")
    return _scaffolder().create(name, meta_type, global_=global_, force=force)


@meta_app.command()
@with_error_handling
def create(
    force: Annotated[
        bool, typer.Option("--force", "-f", help="Overwrite an existing meta.json")
    ] = False,
) -> None:
    """📄 Create a meta.json file in the current app.

    Examples:
        run meta create
        run meta create --force
    """
    create_meta_interactively(force=force)


@meta_app.command()
@with_error_handling
def change(
    prop: Annotated[
        str | None,
        typer.Argument(help=f"Property to change ({', '.join(CHANGEABLE_PROPERTIES)})"),
    ] = None,
) -> None:
    """✏️  Change one property of meta.json.

    Examples:
        run meta change
        run meta change id
    """
    prop = prop or console.select(
        "What property do you want to change?", list(CHANGEABLE_PROPERTIES)
    )
    if prop is None:
        raise typer.Exit(0)

    value: str | bool | None = None
    if prop == "name":
        value = console.prompt_text("What is the new name?")
    elif prop == "type":
        value = _choose_type(console, "What is the new type?")
    elif prop == "global":
        value = console.confirm("Is this a global (not environment-based) app?")
    _scaffolder().change(prop, value)
