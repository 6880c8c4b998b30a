"""Terraform command abstractions."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import TYPE_CHECKING

from .types import CommandResult

if TYPE_CHECKING:
    from .runner import CommandRunner


class TerraformCommands:
    """Terraform CLI wrapper.

    Every call runs attached to the terminal so plans and prompts stay
    visible, and takes the component directory as its working directory.
    """

    def __init__(self, runner: CommandRunner) -> None:
        """Initialize Terraform commands.

        Args:
            runner: Command runner for executing shell commands
        """
        self._runner = runner

    def init(
        self,
        cwd: Path,
        backend_config: Sequence[str],
        *,
        env: Mapping[str, str] | None = None,
    ) -> CommandResult:
        """Initialize the working directory against a remote backend.

        Args:
            cwd: Terraform component directory
            backend_config: ``key=value`` entries passed as ``-backend-config``
            env: Extra environment (e.g. image digest variables)
        """
        cmd = ["terraform", "init"]
        cmd.extend(f"-backend-config={entry}" for entry in backend_config)
        cmd.append("--lock=false")
        return self._runner.run_interactive(cmd, cwd=cwd, env=env)

    def plan(
        self,
        cwd: Path,
        *,
        destroy: bool = False,
        env: Mapping[str, str] | None = None,
    ) -> CommandResult:
        cmd = ["terraform", "plan"]
        if destroy:
            cmd.append("-destroy")
        return self._runner.run_interactive(cmd, cwd=cwd, env=env)

    def apply(
        self, cwd: Path, *, env: Mapping[str, str] | None = None
    ) -> CommandResult:
        return self._runner.run_interactive(
            ["terraform", "apply", "-auto-approve"], cwd=cwd, env=env
        )

    def destroy(
        self, cwd: Path, *, env: Mapping[str, str] | None = None
    ) -> CommandResult:
        return self._runner.run_interactive(
            ["terraform", "destroy", "-auto-approve"], cwd=cwd, env=env
        )
