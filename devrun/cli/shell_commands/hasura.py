"""Hasura CLI command abstractions."""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path
from typing import TYPE_CHECKING

from .types import CommandResult

if TYPE_CHECKING:
    from .runner import CommandRunner


class HasuraCommands:
    """Hasura and GraphQL tooling wrapper.

    Calls run from the hasura state directory, where the CLI expects its
    ``config.yaml``, migrations and metadata.
    """

    def __init__(self, runner: CommandRunner) -> None:
        self._runner = runner

    def console(self, state_dir: Path, args: Sequence[str]) -> CommandResult:
        """Start ``hasura console`` with prepared arguments."""
        return self._runner.run_interactive(
            ["hasura", "console", *args], cwd=state_dir
        )

    def migrate_squash(
        self, state_dir: Path, endpoint: str, version: str
    ) -> CommandResult:
        return self._runner.run_interactive(
            [
                "hasura",
                "migrate",
                "squash",
                "--endpoint",
                endpoint,
                "--from",
                version,
                "--database-name",
                "default",
            ],
            cwd=state_dir,
        )

    def migrate_apply(self, state_dir: Path, endpoint: str) -> CommandResult:
        return self._runner.run_interactive(
            [
                "hasura",
                "migrate",
                "apply",
                "--endpoint",
                endpoint,
                "--database-name",
                "default",
            ],
            cwd=state_dir,
        )

    def metadata_apply(self, state_dir: Path, endpoint: str) -> CommandResult:
        return self._runner.run_interactive(
            ["hasura", "metadata", "apply", "--endpoint", endpoint], cwd=state_dir
        )

    def introspect_schema(self, graphql_url: str, admin_secret: str) -> CommandResult:
        """Introspect a GraphQL endpoint with ``gq`` and capture the SDL."""
        return self._runner.run(
            [
                "gq",
                graphql_url,
                "-H",
                f"X-Hasura-Admin-Secret: {admin_secret}",
                "--introspect",
            ]
        )
