"""Google Cloud SDK command abstractions."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

from .types import CommandResult

if TYPE_CHECKING:
    from .runner import CommandRunner


class GcloudCommands:
    """gcloud wrapper for Cloud Build submissions and Cloud Storage objects."""

    def __init__(self, runner: CommandRunner) -> None:
        self._runner = runner

    def builds_submit(
        self, config_file: Path, machine_type: str, *, cwd: Path | None = None
    ) -> CommandResult:
        """Submit the directory in ``cwd`` to Cloud Build with a config file."""
        return self._runner.run_interactive(
            [
                "gcloud",
                "builds",
                "submit",
                f"--config={config_file}",
                f"--machine-type={machine_type}",
            ],
            cwd=cwd,
        )

    def storage_object_exists(self, url: str) -> bool:
        """Check whether a ``gs://`` object exists."""
        return self._runner.run(["gcloud", "storage", "ls", url]).success

    def storage_remove(self, url: str) -> CommandResult:
        return self._runner.run(["gcloud", "storage", "rm", url])
