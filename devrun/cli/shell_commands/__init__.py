"""Shell command abstractions for the external tools devrun drives.

This package provides a clean, well-documented interface for the shell
commands issued by the command groups. It is organized into specialized
modules for each tool:

- docker: image builds, buildx pushes and manifest lists
- git: quick commits and branch detection
- terraform: init/plan/apply/destroy
- hasura: console, migrations and metadata
- gcloud: Cloud Build submissions and Cloud Storage objects
- vault: KV secrets
- github: gh workflow runs and local act runs
- tmux: sessions, windows and panes
- cloudflared: tunnels

Usage:
    from devrun.cli.shell_commands import ShellCommands

    commands = ShellCommands(working_dir=Path("."))
    if commands.docker.manifest_exists("registry/app:prod-amd64"):
        print("Image already pushed")
"""

from collections.abc import Sequence
from pathlib import Path

from .cloudflared import CloudflaredCommands
from .docker import DockerCommands
from .gcloud import GcloudCommands
from .git import GitCommands
from .github import GitHubCommands
from .hasura import HasuraCommands
from .runner import CommandRunner
from .terraform import TerraformCommands
from .tmux import TmuxCommands
from .types import CommandResult, ImageReference, RunningContainer
from .vault import VaultCommands


class ShellCommands:
    """Unified interface for all shell command operations.

    Attributes:
        docker: Docker-related commands
        git: Git repository commands
        terraform: Terraform commands
        hasura: Hasura CLI commands
        gcloud: Google Cloud SDK commands
        vault: Vault KV commands
        github: gh and act commands
        tmux: tmux commands
        cloudflared: Cloudflare Tunnel commands
    """

    def __init__(self, working_dir: Path) -> None:
        """Initialize the shell commands executor.

        Args:
            working_dir: Directory commands run from unless overridden
        """
        self._working_dir = Path(working_dir)
        self._runner = CommandRunner(self._working_dir)

        self.docker = DockerCommands(self._runner)
        self.git = GitCommands(self._runner)
        self.terraform = TerraformCommands(self._runner)
        self.hasura = HasuraCommands(self._runner)
        self.gcloud = GcloudCommands(self._runner)
        self.vault = VaultCommands(self._runner)
        self.github = GitHubCommands(self._runner)
        self.tmux = TmuxCommands(self._runner)
        self.cloudflared = CloudflaredCommands(self._runner)

    @property
    def working_dir(self) -> Path:
        """Get the default working directory."""
        return self._working_dir

    @property
    def runner(self) -> CommandRunner:
        return self._runner

    def run_command(
        self, cmd: Sequence[str], *, cwd: Path | None = None
    ) -> CommandResult:
        """Execute an arbitrary command attached to the terminal."""
        return self._runner.run_interactive(cmd, cwd=cwd)


__all__ = [
    "ShellCommands",
    "CommandResult",
    "ImageReference",
    "RunningContainer",
    "CloudflaredCommands",
    "DockerCommands",
    "GcloudCommands",
    "GitCommands",
    "GitHubCommands",
    "HasuraCommands",
    "TerraformCommands",
    "TmuxCommands",
    "VaultCommands",
    "CommandRunner",
]
