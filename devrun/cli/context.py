"""CLI context and dependency container."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

import click
import typer

from devrun.cli.shared.console import CLIConsole, console
from devrun.cli.shell_commands import ShellCommands
from devrun.infra.constants import RunConstants
from devrun.utils.paths import detect_scripts_directory


@dataclass(frozen=True)
class CLIContext:
    """Runtime dependencies for CLI commands."""

    console: CLIConsole
    cwd: Path
    commands: ShellCommands
    constants: RunConstants
    target: str


def build_cli_context(target: str | None = None, cwd: Path | None = None) -> CLIContext:
    """Build a fresh CLIContext rooted at the app directory.

    Invocations from an app's ``scripts/`` folder resolve to the app itself.
    """
    constants = RunConstants()
    working_dir = detect_scripts_directory(cwd or Path.cwd())

    return CLIContext(
        console=console,
        cwd=working_dir,
        commands=ShellCommands(working_dir),
        constants=constants,
        target=target or constants.DEFAULT_TARGET,
    )


def get_cli_context(ctx: typer.Context | None = None) -> CLIContext:
    """Return the CLIContext from Typer, falling back to a new instance."""
    context = ctx or click.get_current_context(silent=True)
    if context and isinstance(context.obj, CLIContext):
        return context.obj
    return build_cli_context()
