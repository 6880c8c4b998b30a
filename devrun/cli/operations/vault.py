"""Vault KV secret import/export for an app's env files."""

from __future__ import annotations

import os
from pathlib import Path
from typing import TYPE_CHECKING

from devrun.infra.constants import RunConstants
from devrun.infra.errors import RunError
from devrun.infra.meta import require_meta

if TYPE_CHECKING:
    from devrun.cli.shared.console import CLIConsole
    from devrun.cli.shell_commands import ShellCommands


class VaultOperations:
    """Moves ``.env`` content to and from ``kv/<id>/<target>/secrets``."""

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

    def ensure_installed(self) -> None:
        if not self.commands.vault.is_installed():
            raise RunError(
                "Vault CLI is not installed",
                details="Install HashiCorp Vault first (run utils dependencies install).",
            )

    def namespace(self, target: str | None = None) -> str:
        """Return the secret namespace for the app.

        An explicit target wins; global apps use ``global``; otherwise the
        current ``ENV`` is used.
        """
        meta = require_meta(self.cwd)
        if not meta.id:
            raise RunError("meta.json has no id")
        if target:
            return f"{meta.id}/{target}"
        if meta.global_:
            return f"{meta.id}/global"
        return f"{meta.id}/{os.environ.get('ENV', self.constants.DEFAULT_ENVIRONMENT)}"

    def secret_path(self, namespace: str) -> str:
        return f"{self.constants.VAULT_MOUNT}/{namespace}/secrets"

    def import_secrets(
        self, target: str | None = None, envfile: str | None = None
    ) -> str:
        """Upload an env file as the ``CREDS`` field of the target namespace.

        Returns:
            The vault path written
        """
        self.ensure_installed()
        target = target or self.constants.DEFAULT_TARGET
        path = self.cwd / (envfile or f".env.{target}")
        if not path.is_file():
            raise RunError(f"File {path.name} not found")

        secret_path = self.secret_path(self.namespace(target))
        result = self.commands.vault.kv_put(
            secret_path, CREDS=path.read_text(encoding="utf-8")
        )
        if not result.success:
            raise RunError(f"vault kv put {secret_path} failed", details=result.stderr)
        self.console.ok(f"Imported {path.name} to {secret_path}")
        return secret_path

    def fetch_credentials(self, namespace: str) -> str:
        """Read the ``CREDS`` field of a namespace."""
        secret_path = self.secret_path(namespace)
        document = self.commands.vault.kv_get(secret_path)
        try:
            return document["data"]["data"]["CREDS"]  # type: ignore[index]
        except (TypeError, KeyError) as e:
            raise RunError(f"No CREDS found at {secret_path}") from e

    def export_secrets(
        self, target: str | None = None, envfile: str | None = None
    ) -> Path:
        """Download the ``CREDS`` of a namespace into a local env file."""
        self.ensure_installed()
        credentials = self.fetch_credentials(self.namespace(target))

        if envfile:
            path = self.cwd / envfile
            path.write_text(credentials, encoding="utf-8")
        else:
            path = self.cwd / ".env"
            path.write_text(credentials, encoding="utf-8")
            (self.cwd / ".env.backup").unlink(missing_ok=True)

        self.console.ok(f"Exported secrets to {path.name}")
        return path
