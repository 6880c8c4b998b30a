"""GitHub CLI and act command abstractions."""

from __future__ import annotations

import json
from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import TYPE_CHECKING

from .types import CommandResult

if TYPE_CHECKING:
    from .runner import CommandRunner


class GitHubCommands:
    """Wrapper for remote workflow runs (``gh``) and local runs (``act``)."""

    def __init__(self, runner: CommandRunner) -> None:
        self._runner = runner

    def workflow_run(
        self, workflow: str, branch: str, inputs: Mapping[str, str]
    ) -> CommandResult:
        """Dispatch a workflow on a branch with ``-f key=value`` inputs."""
        cmd = ["gh", "workflow", "run", workflow, "--ref", branch]
        for key, value in inputs.items():
            cmd.extend(["-f", f"{key}={value}"])
        return self._runner.run_interactive(cmd)

    def latest_run_id(self, workflow: str) -> str | None:
        """Return the database id of the most recent run of a workflow."""
        result = self._runner.run(
            [
                "gh",
                "run",
                "list",
                "--workflow",
                workflow,
                "--limit",
                "1",
                "--json",
                "databaseId",
            ]
        )
        if not result.success:
            return None
        try:
            runs = json.loads(result.stdout or "[]")
        except json.JSONDecodeError:
            return None
        if not runs:
            return None
        return str(runs[0]["databaseId"])

    def run_watch(self, run_id: str) -> CommandResult:
        return self._runner.run_interactive(["gh", "run", "watch", run_id])

    def act(self, args: Sequence[str], *, cwd: Path | None = None) -> CommandResult:
        """Run workflows locally with ``act``."""
        return self._runner.run_interactive(["act", *args], cwd=cwd)
