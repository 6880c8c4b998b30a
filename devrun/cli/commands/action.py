"""GitHub Actions commands: local act runs, remote dispatches and in-workflow steps."""

from typing import Annotated

import typer

from devrun.cli.context import get_cli_context
from devrun.cli.operations.actions import ActionOperations
from devrun.cli.shared.console import with_error_handling

action_app = typer.Typer(name="action", help="Run GitHub Actions workflows.", no_args_is_help=True)
secrets_app = typer.Typer(name="secrets", help="Secrets for workflow steps.", no_args_is_help=True)
env_app = typer.Typer(name="env", help="Environment for workflow steps.", no_args_is_help=True)
action_app.add_typer(secrets_app, name="secrets")
action_app.add_typer(env_app, name="env")

InputOption = Annotated[
    list[str] | None,
    typer.Option("--input", "-i", help="Workflow input key=value (repeatable)"),
]


def _operations() -> ActionOperations:
    ctx = get_cli_context()
    return ActionOperations(ctx.commands, ctx.console, ctx.cwd, ctx.constants)


@action_app.command()
@with_error_handling
def local(
    target: Annotated[str, typer.Argument(help="Job name, or workflow name with --event")],
    live: Annotated[bool, typer.Option("--live", help="Set the LIVE input to true")] = False,
    push: Annotated[bool, typer.Option("--push", help="Simulate a push event")] = False,
    event: Annotated[
        str | None, typer.Option("--event", help="Trigger event (e.g. workflow_run)")
    ] = None,
    env: Annotated[
        str | None, typer.Option("--env", help="Environment name passed as SET_ENV")
    ] = None,
    reuse: Annotated[
        bool, typer.Option("--reuse/--no-reuse", help="Reuse container state")
    ] = True,
    secure: Annotated[
        bool,
        typer.Option("--secure/--no-secure", help="Hide secrets in the logs"),
    ] = True,
    custom: Annotated[
        bool, typer.Option("--custom", help="Use the custom act image")
    ] = False,
    workaround: Annotated[
        bool,
        typer.Option("--workaround", "-W", help="Point act at the single workflow file"),
    ] = False,
    inputs: InputOption = None,
) -> None:
    """🎬 Run a workflow job locally with act.

    Examples:
        run action local build
        run action local deploy --push --live
        run action local test -i VERSION=1.2 --env dev --no-reuse
    """
    _operations().run_local(
        target,
        live=live,
        event="push" if push else event,
        env=env,
        reuse=reuse,
        secure=secure,
        custom=custom,
        workaround=workaround,
        inputs=inputs or [],
    )


@action_app.command()
@with_error_handling
def remote(
    workflow: Annotated[str, typer.Argument(help="Workflow file or name")],
    watch: Annotated[bool, typer.Option("--watch", help="Watch the run")] = False,
    branch: Annotated[str, typer.Option("--branch", help="Ref to run on")] = "main",
    inputs: InputOption = None,
) -> None:
    """☁️  Dispatch a workflow on GitHub.

    Examples:
        run action remote deploy.yaml
        run action remote deploy.yaml --watch --branch dev -i LIVE=true
    """
    _operations().run_remote(workflow, inputs=inputs or [], branch=branch, watch=watch)


@secrets_app.command("set")
@with_error_handling
def secrets_set(
    global_: Annotated[
        bool, typer.Option("--global", help="Export the organization secrets")
    ] = False,
) -> None:
    """🔑 Export Vault secrets to $GITHUB_ENV for the next steps.

    Examples:
        run action secrets set
        run action secrets set --global
    """
    _operations().set_secrets(global_=global_)


@env_app.command("set")
@with_error_handling
def env_set() -> None:
    """🌍 Export ENV (from SET_ENV or the branch) for the next steps.

    Examples:
        run action env set
    """
    _operations().set_env()
