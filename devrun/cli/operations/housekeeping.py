"""Developer chores: quick git commits, app init commands, CLI dependencies."""

from __future__ import annotations

import os
import shlex
from pathlib import Path
from typing import TYPE_CHECKING

from devrun.infra.constants import RunConstants
from devrun.infra.errors import RunError
from devrun.infra.meta import with_meta_matching

if TYPE_CHECKING:
    from devrun.cli.shared.console import CLIConsole
    from devrun.cli.shell_commands import CommandResult, ShellCommands


class Housekeeping:
    """Small workflows that don't belong to a single tool."""

    def __init__(
        self,
        commands: ShellCommands,
        console: CLIConsole,
        cwd: Path,
        constants: RunConstants | None = None,
    ) -> None:
        self.commands = commands
        self.console = console
        self.cwd = cwd
        self.constants = constants or RunConstants()

    @staticmethod
    def _check(result: CommandResult, action: str) -> None:
        if not result.success:
            raise RunError(f"{action} failed", details=result.stderr or None)

    # =========================================================================
    # git
    # =========================================================================

    def _publish(self, *, force: bool) -> None:
        result = self.commands.git.push(
            "origin", self.constants.PRODUCTION_BRANCH, force=force, cwd=self.cwd
        )
        self._check(result, "git push")

    def amend(self) -> None:
        """Fold every change into the last commit and force-push main."""
        git = self.commands.git
        if not git.is_inside_work_tree(cwd=self.cwd):
            raise RunError(f"{self.cwd} is not inside a git work tree")
        self._check(git.add_all(cwd=self.cwd), "git add")
        self._check(git.commit_amend(cwd=self.cwd), "git commit --amend")
        self._publish(force=True)
        self.console.ok("Amended and pushed")

    def commit(self, message: str = "quick commit", *, force: bool = True) -> None:
        """Commit every change and push main."""
        if not message.strip():
            raise RunError("Commit message cannot be empty")
        git = self.commands.git
        self._check(git.add_all(cwd=self.cwd), "git add")
        self._check(git.commit(message, cwd=self.cwd), "git commit")
        self._publish(force=force)
        self.console.ok("Committed and pushed")

    # =========================================================================
    # Dependencies
    # =========================================================================

    def install_app_dependencies(self) -> int:
        """Run every ``development.init`` command in its app directory.

        Returns:
            Number of commands run
        """
        count = 0
        for directory, meta in with_meta_matching("development.init"):
            self.console.print_subheader(meta.name or directory.name)
            for command in meta.development.init if meta.development else []:
                result = self.commands.run_command(shlex.split(command), cwd=directory)
                self._check(result, command)
                count += 1
        return count

    def install_cli_dependencies(self) -> None:
        """Install the vault CLI and log in with ``$VAULT_TOKEN``."""
        self._check(
            self.commands.run_command(["brew", "install", "vault"]), "brew install vault"
        )
        token = os.environ.get("VAULT_TOKEN")
        if not token:
            raise RunError("VAULT_TOKEN is not set")
        self._check(self.commands.vault.login(token), "vault login")
        self.console.ok("Vault installed and logged in")
