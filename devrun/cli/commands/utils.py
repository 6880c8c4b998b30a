"""Utility commands: git shortcuts, meta.json ids, dependencies and templates."""

import os
from pathlib import Path
from typing import Annotated

import typer

from devrun.cli.commands.meta import create_meta_interactively
from devrun.cli.context import get_cli_context
from devrun.cli.operations.housekeeping import Housekeeping
from devrun.cli.operations.scaffolding import MetaScaffolder
from devrun.cli.operations.templates import EXPORTABLE_TEMPLATES, TemplateCatalog
from devrun.cli.shared.console import console, with_error_handling
from devrun.utils.ids import DEFAULT_ID_LENGTH, create_id

utils_app = typer.Typer(name="utils", help="Utility commands.", no_args_is_help=True)
git_app = typer.Typer(name="git", help="Git shortcuts.", no_args_is_help=True)
meta_utils_app = typer.Typer(name="meta", help="meta.json utilities.", no_args_is_help=True)
dev_app = typer.Typer(name="dev", help="App development dependencies.", no_args_is_help=True)
dependencies_app = typer.Typer(
    name="dependencies", help="CLI dependencies.", no_args_is_help=True
)
template_app = typer.Typer(name="template", help="Project templates.", no_args_is_help=True)

utils_app.add_typer(git_app)
utils_app.add_typer(meta_utils_app)
utils_app.add_typer(dev_app)
utils_app.add_typer(dependencies_app)
utils_app.add_typer(template_app)


def _housekeeping() -> Housekeeping:
    ctx = get_cli_context()
    return Housekeeping(ctx.commands, ctx.console, ctx.cwd, ctx.constants)


# ---------------------------------------------------------------------------
# git
# ---------------------------------------------------------------------------


@git_app.command()
@with_error_handling
def amend() -> None:
    """🩹 Amend the last commit with every change and force-push.

    Examples:
        run utils git amend
    """
    _housekeeping().amend()


@git_app.command()
@with_error_handling
def commit() -> None:
    """⚡ Commit everything as 'quick commit' and force-push.

    Examples:
        run utils git commit
    """
    _housekeeping().commit()


# ---------------------------------------------------------------------------
# ids
# ---------------------------------------------------------------------------


@utils_app.command()
@with_error_handling
def nanoid(
    length: Annotated[
        int, typer.Option("--length", "-l", min=1, help="Number of characters")
    ] = DEFAULT_ID_LENGTH,
) -> None:
    """🎲 Print a random URL-safe id.

    Examples:
        run utils nanoid
        run utils nanoid --length 21
    """
    typer.echo(create_id(length))


@meta_utils_app.command("create")
@with_error_handling
def meta_create(
    force: Annotated[
        bool, typer.Option("--force", "-f", help="Overwrite an existing meta.json")
    ] = False,
) -> None:
    """📄 Create a meta.json file in the current app.

    Examples:
        run utils meta create
    """
    create_meta_interactively(force=force)


@meta_utils_app.command("ids")
@with_error_handling
def meta_ids(
    current: Annotated[
        bool,
        typer.Option("--current", help="Start from the current directory instead of $SRC"),
    ] = False,
) -> None:
    """🔑 Give every meta.json a new id.

    Examples:
        run utils meta ids
        run utils meta ids --current
    """
    ctx = get_cli_context()
    if current:
        start = ctx.cwd
    else:
        src = os.environ.get("SRC")
        start = Path(src) if src else ctx.cwd

    if not console.confirm(f"Regenerate every meta.json id under {start}?"):
        console.info("Cancelled")
        return

    MetaScaffolder(ctx.console, ctx.cwd, ctx.constants).regenerate_ids(start)


# ---------------------------------------------------------------------------
# dependencies
# ---------------------------------------------------------------------------


@dev_app.command("install")
@with_error_handling
def dev_install() -> None:
    """📦 Run the development.init commands of every app.

    Examples:
        run utils dev install
    """
    count = _housekeeping().install_app_dependencies()
    console.ok(f"Ran {count} install commands")


@dependencies_app.command("install")
@with_error_handling
def dependencies_install() -> None:
    """🧰 Install the CLI's own tools (vault) and log in.

    Examples:
        run utils dependencies install
    """
    _housekeeping().install_cli_dependencies()


# ---------------------------------------------------------------------------
# templates
# ---------------------------------------------------------------------------


def _catalog() -> TemplateCatalog:
    ctx = get_cli_context()
    return TemplateCatalog(ctx.console, ctx.cwd, ctx.constants)


@template_app.command("add")
@with_error_handling
def template_add() -> None:
    """🧩 Copy a template from the templates repository.

    Examples:
        run utils template add
    """
    catalog = _catalog()
    template_type = console.select("Select a template type:", catalog.list_types())
    if template_type is None:
        return

    entries = {entry["name"]: entry for entry in catalog.list_templates(template_type)}
    selected = console.select("Select a template:", list(entries))
    if selected is None:
        return

    target = console.prompt_text("Target folder", default="default")
    catalog.add(template_type, entries[selected], target)


@template_app.command("export")
@with_error_handling
def template_export(
    name: Annotated[
        str, typer.Argument(help=f"Template ({', '.join(EXPORTABLE_TEMPLATES)})")
    ],
) -> None:
    """📤 Download a single-file template into the current directory.

    Examples:
        run utils template export main.tf
    """
    _catalog().export(name)
