"""Hasura console, migration and metadata workflows."""

from __future__ import annotations

import os
import time
from collections.abc import Callable
from pathlib import Path
from typing import TYPE_CHECKING

import httpx
from loguru import logger

from devrun.infra.constants import RunConstants
from devrun.infra.errors import RunError
from devrun.infra.meta import require_meta
from devrun.utils.paths import get_source_root

if TYPE_CHECKING:
    from devrun.cli.shared.console import CLIConsole
    from devrun.cli.shell_commands import ShellCommands


def is_healthy(endpoint: str, client: httpx.Client) -> bool:
    """Return True when ``{endpoint}/healthz`` answers with a 2xx status."""
    try:
        response = client.get(f"{endpoint.rstrip('/')}/healthz")
    except httpx.HTTPError as e:
        logger.debug(f"Hasura health check failed: {e}")
        return False
    return response.is_success


class HasuraOperations:
    """Wraps the Hasura CLI for the app in ``cwd``."""

    def __init__(
        self,
        commands: ShellCommands,
        console: CLIConsole,
        cwd: Path,
        constants: RunConstants | None = None,
        *,
        client_factory: Callable[[], httpx.Client] = lambda: httpx.Client(timeout=5.0),
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.commands = commands
        self.console = console
        self.cwd = cwd
        self.constants = constants or RunConstants()
        self._client_factory = client_factory
        self._sleep = sleep
        self._clock = clock

    @property
    def state_dir(self) -> Path:
        meta = require_meta(self.cwd)
        state = meta.hasura.state if meta.hasura else self.constants.DEFAULT_HASURA_STATE
        return self.cwd / state

    @staticmethod
    def _required_endpoint() -> str:
        endpoint = os.environ.get("HASURA_GRAPHQL_ENDPOINT")
        if not endpoint:
            raise RunError("HASURA_GRAPHQL_ENDPOINT is not set")
        return endpoint

    def wait_until_ready(self, endpoint: str, timeout: float | None = None) -> None:
        """Poll the health endpoint until Hasura answers.

        Raises:
            RunError: If ``timeout`` seconds elapse first
        """
        deadline = None if timeout is None else self._clock() + timeout
        with self._client_factory() as client:
            while not is_healthy(endpoint, client):
                if deadline is not None and self._clock() >= deadline:
                    raise RunError(f"Timed out waiting for Hasura at {endpoint}")
                self.console.info("Waiting for Hasura to be ready...")
                self._sleep(self.constants.HEALTH_POLL_INTERVAL)
        self.console.ok("Hasura is ready")

    def console_args(self, *, local: bool) -> list[str]:
        """Build the ``hasura console`` arguments for local or remote mode."""
        c = self.constants
        if local:
            endpoint = os.environ.get("HASURA_GRAPHQL_ENDPOINT") or c.DEFAULT_HASURA_ENDPOINT
            return [
                "--endpoint",
                endpoint,
                "--no-browser",
                "--address",
                "0.0.0.0",
                "--console-port",
                os.environ.get("HASURA_GRAPHQL_CONSOLE_PORT") or c.DEFAULT_LOCAL_CONSOLE_PORT,
                "--console-hge-endpoint",
                os.environ.get("HASURA_GRAPHQL_HGE_ENDPOINT") or c.DEFAULT_HASURA_HGE_ENDPOINT,
                "--skip-update-check",
            ]
        return [
            "--endpoint",
            self._required_endpoint(),
            "--no-browser",
            "--console-port",
            os.environ.get("HASURA_GRAPHQL_CONSOLE_PORT") or c.DEFAULT_REMOTE_CONSOLE_PORT,
            "--skip-update-check",
        ]

    def open_console(
        self, *, local: bool = False, wait: bool = False, timeout: float | None = None
    ) -> None:
        args = self.console_args(local=local)
        if wait:
            self.wait_until_ready(args[1], timeout=timeout)
        result = self.commands.hasura.console(self.state_dir, args)
        if not result.success:
            raise RunError("hasura console exited with an error")

    def migrate_squash(self, version: str) -> None:
        result = self.commands.hasura.migrate_squash(
            self.state_dir, self._required_endpoint(), version
        )
        if not result.success:
            raise RunError(f"hasura migrate squash from {version} failed")

    def migrate_apply(self) -> None:
        result = self.commands.hasura.migrate_apply(
            self.state_dir, self._required_endpoint()
        )
        if not result.success:
            raise RunError("hasura migrate apply failed")

    def metadata_apply(self) -> None:
        result = self.commands.hasura.metadata_apply(
            self.state_dir, self._required_endpoint()
        )
        if not result.success:
            raise RunError("hasura metadata apply failed")

    def export_schema(self, output: Path | None = None) -> Path:
        """Introspect the GraphQL API and write the SDL to ``schema.graphql``."""
        endpoint = os.environ.get("HASURA_GRAPHQL_API_ENDPOINT")
        if not endpoint:
            raise RunError("HASURA_GRAPHQL_API_ENDPOINT is not set")
        secret = os.environ.get("HASURA_GRAPHQL_ADMIN_SECRET", "")

        result = self.commands.hasura.introspect_schema(endpoint, secret)
        if not result.success:
            raise RunError("GraphQL introspection failed", details=result.stderr)

        target = output or get_source_root(self.cwd) / "schema.graphql"
        target.write_text(result.stdout, encoding="utf-8")
        self.console.ok(f"Schema written to {target}")
        return target
