"""Git command abstractions.

This module provides commands for the git shortcuts (quick commit, amend)
and for deriving the deployment environment from the current branch.
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

from .types import CommandResult

if TYPE_CHECKING:
    from .runner import CommandRunner


class GitCommands:
    """Git-related shell commands."""

    def __init__(self, runner: CommandRunner) -> None:
        """Initialize Git commands.

        Args:
            runner: Command runner for executing shell commands
        """
        self._runner = runner

    def current_branch(self, *, cwd: Path | None = None) -> str | None:
        """Return the checked-out branch name, or None if git fails."""
        result = self._runner.run(["git", "branch", "--show-current"], cwd=cwd)
        if not result.success:
            return None
        return result.stdout.strip()

    def is_inside_work_tree(self, *, cwd: Path | None = None) -> bool:
        result = self._runner.run(["git", "rev-parse", "--is-inside-work-tree"], cwd=cwd)
        return result.success and result.stdout.strip() == "true"

    def add_all(self, *, cwd: Path | None = None) -> CommandResult:
        return self._runner.run_interactive(["git", "add", "."], cwd=cwd)

    def commit(self, message: str, *, cwd: Path | None = None) -> CommandResult:
        return self._runner.run_interactive(["git", "commit", "-m", message], cwd=cwd)

    def commit_amend(self, *, cwd: Path | None = None) -> CommandResult:
        """Fold staged changes into the previous commit, keeping its message."""
        return self._runner.run_interactive(
            ["git", "commit", "--amend", "--no-edit"], cwd=cwd
        )

    def push(
        self,
        remote: str = "origin",
        branch: str = "main",
        *,
        force: bool = False,
        cwd: Path | None = None,
    ) -> CommandResult:
        cmd = ["git", "push", remote, branch]
        if force:
            cmd.append("-f")
        return self._runner.run_interactive(cmd, cwd=cwd)

    def init(self, *, cwd: Path | None = None) -> CommandResult:
        return self._runner.run(["git", "init"], cwd=cwd)
