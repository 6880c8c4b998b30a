"""Vault CLI command abstractions."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any

from .types import CommandResult

if TYPE_CHECKING:
    from .runner import CommandRunner


class VaultCommands:
    """HashiCorp Vault KV wrapper."""

    def __init__(self, runner: CommandRunner) -> None:
        self._runner = runner

    def is_installed(self) -> bool:
        return self._runner.run(["vault", "-v"]).success

    def kv_put(self, path: str, **fields: str) -> CommandResult:
        """Write key/value fields at a KV path."""
        cmd = ["vault", "kv", "put", path]
        cmd.extend(f"{key}={value}" for key, value in fields.items())
        return self._runner.run(cmd)

    def kv_get(self, path: str) -> dict[str, Any] | None:
        """Read a KV path as JSON, returning None when it cannot be read."""
        result = self._runner.run(["vault", "kv", "get", "-format=json", path])
        if not result.success:
            return None
        try:
            return json.loads(result.stdout)
        except json.JSONDecodeError:
            return None

    def login(self, token: str) -> CommandResult:
        return self._runner.run_interactive(["vault", "login", token])
