"""Docker image and Docker Compose commands.

This module provides the ``docker`` group (image build, multi-arch
registration, digest lookup) and its ``compose`` sub-group.
"""

from typing import Annotated

import typer

from devrun.cli.context import get_cli_context
from devrun.cli.operations.compose import ComposeOperations
from devrun.cli.operations.images import ImageRegistrar, RegisterOptions
from devrun.cli.shared.console import console, with_error_handling
from devrun.infra.constants import RunConstants
from devrun.infra.meta import require_meta

# ---------------------------------------------------------------------------
# Typer Apps
# ---------------------------------------------------------------------------

docker_app = typer.Typer(
    name="docker",
    help="Docker image commands.",
    no_args_is_help=True,
)

compose_app = typer.Typer(
    name="compose",
    help="Docker Compose commands for the components in meta.json.",
    no_args_is_help=True,
)

docker_app.add_typer(compose_app, name="compose")


def _registrar() -> ImageRegistrar:
    ctx = get_cli_context()
    return ImageRegistrar(ctx.commands, ctx.console, ctx.cwd, ctx.constants)


def _compose() -> ComposeOperations:
    ctx = get_cli_context()
    return ComposeOperations(ctx.commands, ctx.console, ctx.cwd, ctx.constants)


# ---------------------------------------------------------------------------
# Image commands
# ---------------------------------------------------------------------------


@docker_app.command()
@with_error_handling
def register(
    component: Annotated[
        str | None,
        typer.Argument(help="Docker component from meta.json (default: 'default')"),
    ] = None,
    all_components: Annotated[
        bool,
        typer.Option("--all", "-a", help="Register every docker component"),
    ] = False,
    amd64: Annotated[
        bool, typer.Option("--amd64", help="Build the linux/amd64 image")
    ] = False,
    arm64: Annotated[
        bool, typer.Option("--arm64", help="Build the linux/arm64 image")
    ] = False,
    cache: Annotated[
        bool,
        typer.Option("--cache/--no-cache", help="Use the buildx layer cache"),
    ] = True,
    cloud: Annotated[
        bool, typer.Option("--cloud", help="Build with Google Cloud Build")
    ] = False,
    build_args: Annotated[
        list[str] | None,
        typer.Option("--build-arg", help="Build argument KEY=VALUE (repeatable)"),
    ] = None,
    machine_type: Annotated[
        str,
        typer.Option("--machine-type", help="Cloud Build machine type"),
    ] = RunConstants.DEFAULT_MACHINE_TYPE,
    modifier: Annotated[
        str | None,
        typer.Option("--modifier", help="Suffix appended to the environment tag"),
    ] = None,
    skip_tag_modifiers: Annotated[
        bool,
        typer.Option("--skip-tag-modifiers", help="Push only the primary tag"),
    ] = False,
    tags: Annotated[
        list[str] | None,
        typer.Option("--tag", "-t", help="Extra tag modifier (repeatable)"),
    ] = None,
) -> None:
    """🐳 Build and push an image for one architecture, then update manifests.

    Run once with --amd64 and once with --arm64 to publish a multi-arch image.

    Examples:
        run docker register --amd64
        run docker register api --arm64 --cloud
        run docker register --amd64 --no-cache --build-arg VERSION=1.2
        run docker register --all --amd64 -t latest
    """
    options = RegisterOptions(
        amd64=amd64,
        arm64=arm64,
        cloud=cloud,
        cache=cache,
        build_args=build_args or [],
        machine_type=machine_type,
        modifier=modifier,
        skip_tag_modifiers=skip_tag_modifiers,
        tags=tags or [],
    )
    registrar = _registrar()

    if all_components:
        components = list(require_meta(registrar.cwd).docker)
    else:
        components = [component or registrar.constants.DEFAULT_COMPONENT]

    for name in components:
        console.print_header(f"Registering {name} ({options.architecture()})")
        registrar.register(name, options)


@docker_app.command()
@with_error_handling
def build(
    component: Annotated[
        str | None,
        typer.Argument(help="Docker component from meta.json (default: 'default')"),
    ] = None,
) -> None:
    """🔨 Build a component image locally.

    Examples:
        run docker build
        run docker build worker
    """
    _registrar().build(component)


@docker_app.command()
@with_error_handling
def digest(
    component: Annotated[
        str | None,
        typer.Argument(help="Docker component from meta.json (default: 'default')"),
    ] = None,
    arch: Annotated[
        str | None,
        typer.Option("--arch", help="Architecture digest to resolve (amd64 or arm64)"),
    ] = None,
    modifier: Annotated[
        str | None,
        typer.Option("--modifier", help="Tag modifier of the image"),
    ] = None,
) -> None:
    """🔎 Print the pushed digest of a component image.

    Examples:
        run docker digest
        run docker digest api --arch arm64
    """
    console.print(_registrar().digest(arch, component, modifier))


# ---------------------------------------------------------------------------
# Compose commands
# ---------------------------------------------------------------------------


@compose_app.command("up")
@with_error_handling
def compose_up(
    component: Annotated[
        str | None,
        typer.Argument(help="Compose component from meta.json (default: 'default')"),
    ] = None,
    build: Annotated[
        bool, typer.Option("--build", help="Build images before starting")
    ] = False,
    force_recreate: Annotated[
        bool, typer.Option("--force-recreate", help="Recreate containers")
    ] = False,
    detach: Annotated[
        bool, typer.Option("--detach", "-d", help="Run in the background")
    ] = False,
    envfile: Annotated[
        str | None, typer.Option("--envfile", help="Env file passed to compose")
    ] = None,
    env: Annotated[
        list[str] | None,
        typer.Option("--env", help="Variable KEY=VALUE for the stack (repeatable)"),
    ] = None,
) -> None:
    """🚀 Recreate a compose stack (down, then up).

    Examples:
        run docker compose up
        run docker compose up db -d --build
        run docker compose up --env DEBUG=1 --env PORT=8080
    """
    _compose().up(
        component,
        env=env or [],
        envfile=envfile,
        force_recreate=force_recreate,
        detach=detach,
        build=build,
    )


@compose_app.command("down")
@with_error_handling
def compose_down(
    component: Annotated[
        str | None,
        typer.Argument(help="Compose component from meta.json (default: 'default')"),
    ] = None,
) -> None:
    """🛑 Stop a compose stack.

    Examples:
        run docker compose down
    """
    _compose().down(component)


@compose_app.command("build")
@with_error_handling
def compose_build(
    component: Annotated[
        str | None,
        typer.Argument(help="Compose component from meta.json (default: 'default')"),
    ] = None,
    file: Annotated[
        str | None, typer.Option("--file", "-f", help="Compose file name")
    ] = None,
    cache: Annotated[bool, typer.Option("--cache", help="Enable the build cache")] = False,
) -> None:
    """🔨 Build the images of a compose stack (without cache by default).

    Examples:
        run docker compose build
        run docker compose build --cache -f compose.test.yaml
    """
    _compose().build(component, cache=cache, filename=file)


@compose_app.command("logs")
@with_error_handling
def compose_logs(
    component: Annotated[
        str | None,
        typer.Argument(help="Compose component from meta.json (default: 'default')"),
    ] = None,
    service: Annotated[
        str | None, typer.Option("--service", "-s", help="Only show this service")
    ] = None,
    follow: Annotated[bool, typer.Option("--follow", help="Follow log output")] = False,
    tail: Annotated[
        int | None, typer.Option("--tail", "-n", help="Lines to show from the end")
    ] = None,
) -> None:
    """📜 Show the logs of a compose stack.

    Examples:
        run docker compose logs --follow
        run docker compose logs -s api -n 50
    """
    _compose().logs(component, service=service, follow=follow, tail=tail)


@compose_app.command("exec")
@with_error_handling
def compose_exec(
    instructions: Annotated[str, typer.Argument(help="Bash snippet to run")],
    container: Annotated[
        str | None,
        typer.Option("--container", help="Service to exec into (default: first service)"),
    ] = None,
    component: Annotated[
        str | None, typer.Option("--component", help="Compose component from meta.json")
    ] = None,
    file: Annotated[
        str | None, typer.Option("--file", "-f", help="Compose file name")
    ] = None,
    envfile: Annotated[
        str | None, typer.Option("--envfile", "-e", help="Env file passed to compose")
    ] = None,
    timeout: Annotated[
        float | None,
        typer.Option("--timeout", help="Seconds to wait for the container to start"),
    ] = None,
) -> None:
    """💻 Run a bash snippet in a compose service once it is running.

    Examples:
        run docker compose exec "npm test"
        run docker compose exec "psql -c 'select 1'" --container db --timeout 60
    """
    _compose().exec(
        instructions,
        container=container,
        component=component,
        filename=file,
        envfile=envfile,
        timeout=timeout,
    )
