"""Hasura console, migration, metadata and schema commands."""

from pathlib import Path
from typing import Annotated

import typer

from devrun.cli.context import get_cli_context
from devrun.cli.operations.hasura import HasuraOperations
from devrun.cli.shared.console import with_error_handling

hasura_app = typer.Typer(
    name="hasura",
    help="Hasura CLI commands.",
    no_args_is_help=True,
)
migrate_app = typer.Typer(name="migrate", help="Hasura migrations.", no_args_is_help=True)
metadata_app = typer.Typer(name="metadata", help="Hasura metadata.", no_args_is_help=True)
schema_app = typer.Typer(name="schema", help="GraphQL schema.", no_args_is_help=True)

hasura_app.add_typer(migrate_app, name="migrate")
hasura_app.add_typer(metadata_app, name="metadata")
hasura_app.add_typer(schema_app, name="schema")


def _operations() -> HasuraOperations:
    ctx = get_cli_context()
    return HasuraOperations(ctx.commands, ctx.console, ctx.cwd, ctx.constants)


@hasura_app.command()
@with_error_handling
def console(
    local: Annotated[
        bool, typer.Option("--local", help="Serve the console for a local Hasura")
    ] = False,
    wait: Annotated[
        bool, typer.Option("--wait", help="Wait for Hasura to be healthy first")
    ] = False,
    timeout: Annotated[
        float | None,
        typer.Option("--timeout", help="Seconds to wait with --wait"),
    ] = None,
) -> None:
    """🖥️  Open the Hasura console.

    Examples:
        run hasura console
        run hasura console --local --wait --timeout 120
    """
    _operations().open_console(local=local, wait=wait, timeout=timeout)


@migrate_app.command("squash")
@with_error_handling
def migrate_squash(
    version: Annotated[str, typer.Argument(help="Migration version to squash from")],
) -> None:
    """🗜️  Squash migrations from a version.

    Examples:
        run hasura migrate squash 1700000000000
    """
    _operations().migrate_squash(version)


@migrate_app.command("apply")
@with_error_handling
def migrate_apply() -> None:
    """⬆️  Apply pending migrations.

    Examples:
        run hasura migrate apply
    """
    _operations().migrate_apply()


@metadata_app.command("apply")
@with_error_handling
def metadata_apply() -> None:
    """📦 Apply metadata.

    Examples:
        run hasura metadata apply
    """
    _operations().metadata_apply()


@schema_app.command("export")
@with_error_handling
def schema_export(
    output: Annotated[
        Path | None,
        typer.Option("--output", "-o", help="Target file (default: $SRC/schema.graphql)"),
    ] = None,
) -> None:
    """📤 Introspect the GraphQL API and save its schema.

    Examples:
        run hasura schema export
        run hasura schema export -o schema.graphql
    """
    _operations().export_schema(output)
