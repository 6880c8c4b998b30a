"""Cloudflare Tunnel command."""

from typing import Annotated

import typer

from devrun.cli.context import get_cli_context
from devrun.cli.operations.tunnel import TunnelOperations
from devrun.cli.shared.console import with_error_handling

tunnel_app = typer.Typer(name="tunnel", help="Cloudflare Tunnel commands.", no_args_is_help=True)


@tunnel_app.command()
@with_error_handling
def run(
    entry: Annotated[str, typer.Argument(help="Tunnel entry of meta.json")] = "default",
    all_apps: Annotated[
        bool, typer.Option("--all", help="Route every app with a tunnel section")
    ] = False,
    name: Annotated[
        str | None,
        typer.Option(
            "--name",
            help="Tunnel name",
            envvar="CLOUDFLARED_TUNNEL_NAME",
        ),
    ] = None,
) -> None:
    """🌐 Route DNS for the app's services and run the tunnel.

    Examples:
        run tunnel run
        run tunnel run api --name staging
        run tunnel run --all
    """
    ctx = get_cli_context()
    TunnelOperations(ctx.commands, ctx.console, ctx.cwd, ctx.constants).run(
        name=entry, all_apps=all_apps, tunnel=name
    )
