"""Terraform commands for the components declared in meta.json."""

from typing import Annotated

import typer

from devrun.cli.context import get_cli_context
from devrun.cli.operations.terraform import TerraformOperations
from devrun.cli.shared.console import console, with_error_handling

terraform_app = typer.Typer(
    name="terraform",
    help="Terraform commands for the components in meta.json.",
    no_args_is_help=True,
)


def _operations() -> TerraformOperations:
    ctx = get_cli_context()
    return TerraformOperations(ctx.commands, ctx.console, ctx.cwd, ctx.constants)


ComponentArgument = Annotated[
    str, typer.Argument(help="Terraform component from meta.json")
]


@terraform_app.command()
@with_error_handling
def activate(
    component: ComponentArgument = "default",
    arch: Annotated[
        str, typer.Option("--arch", help="Architecture of the pinned image digests")
    ] = "amd64",
    modifiers: Annotated[
        list[str] | None,
        typer.Option(
            "--modifier",
            "-m",
            help="Tag modifier for a container as container:modifier (repeatable)",
        ),
    ] = None,
    clean: Annotated[
        bool, typer.Option("--clean", help="Delete .terraform before init")
    ] = False,
) -> None:
    """🏗️  Init, plan and apply a component.

    Image digests of the component's containers are passed as
    TF_VAR_IMAGE_DIGEST_<CONTAINER>.

    Examples:
        run terraform activate
        run terraform activate gcp --arch arm64 -m api:canary --clean
    """
    console.print_header(f"Activating {component}")
    _operations().activate(component, arch=arch, modifiers=modifiers or [], clean=clean)


@terraform_app.command()
@with_error_handling
def destroy(
    component: ComponentArgument = "default",
    clean: Annotated[
        bool, typer.Option("--clean", help="Delete .terraform before init")
    ] = False,
    yes: Annotated[
        bool, typer.Option("--yes", "-y", help="Skip the confirmation prompt")
    ] = False,
) -> None:
    """💥 Destroy the resources of a component.

    Examples:
        run terraform destroy
        run terraform destroy gcp -y
    """
    if not console.confirm_destructive(
        f"Destroy terraform component '{component}'", skip=yes
    ):
        console.print("[dim]Operation cancelled[/dim]")
        raise typer.Exit(0)
    _operations().destroy(component, clean=clean)


@terraform_app.command()
@with_error_handling
def env(
    ctx: typer.Context,
    component: ComponentArgument = "default",
    target: Annotated[
        str | None,
        typer.Option("--target", help="Env file to read (.env.<target>)"),
    ] = None,
) -> None:
    """📝 Regenerate variable declarations from .env.<target>.

    Rewrites the marked blocks of variables.tf, main.tf and the env file.

    Examples:
        run terraform env
        run terraform env gcp --target prod
    """
    cli = get_cli_context(ctx)
    _operations().update_variables(component, target or cli.target)


@terraform_app.command()
@with_error_handling
def clean() -> None:
    """🧹 Remove the local .terraform folders of every component.

    Examples:
        run terraform clean
    """
    if not _operations().clean():
        console.info("Nothing to clean")


@terraform_app.command()
@with_error_handling
def unlock(
    component: ComponentArgument = "default",
    environment: Annotated[
        str | None,
        typer.Option("--env", help="Environment of the state (default: current ENV)"),
    ] = None,
) -> None:
    """🔓 Remove a stale remote state lock.

    Examples:
        run terraform unlock
        run terraform unlock gcp --env dev
    """
    _operations().unlock(component, environment)
