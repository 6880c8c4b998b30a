"""Vault KV commands for an app's env files."""

from typing import Annotated

import typer

from devrun.cli.context import get_cli_context
from devrun.cli.operations.vault import VaultOperations
from devrun.cli.shared.console import with_error_handling

vault_app = typer.Typer(name="vault", help="Vault secret commands.", no_args_is_help=True)
kv_app = typer.Typer(name="kv", help="Vault KV secrets.", no_args_is_help=True)
vault_app.add_typer(kv_app, name="kv")


def _operations() -> VaultOperations:
    ctx = get_cli_context()
    return VaultOperations(ctx.commands, ctx.console, ctx.cwd, ctx.constants)


@kv_app.command("import")
@with_error_handling
def kv_import(
    target: Annotated[
        str, typer.Option("--target", help="Environment namespace to write")
    ] = "local",
    envfile: Annotated[
        str | None,
        typer.Option("--envfile", help="File to upload (default: .env.<target>)"),
    ] = None,
) -> None:
    """🔐 Upload an env file to Vault.

    Examples:
        run vault kv import
        run vault kv import --target prod --envfile .env.production
    """
    _operations().import_secrets(target, envfile)


@kv_app.command("export")
@with_error_handling
def kv_export(
    target: Annotated[
        str | None,
        typer.Option("--target", help="Environment namespace to read (default: ENV)"),
    ] = None,
    envfile: Annotated[
        str | None, typer.Option("--envfile", help="File to write (default: .env)")
    ] = None,
) -> None:
    """📥 Download an env file from Vault.

    Examples:
        run vault kv export
        run vault kv export --target dev --envfile .env.dev
    """
    _operations().export_secrets(target, envfile)
