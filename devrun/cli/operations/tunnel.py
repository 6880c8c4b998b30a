"""Cloudflare Tunnel routing for the services declared in meta.json."""

from __future__ import annotations

import os
from pathlib import Path
from typing import TYPE_CHECKING, Any

import yaml
from loguru import logger

from devrun.infra.constants import RunConstants
from devrun.infra.environment import load_local_secrets
from devrun.infra.errors import RunError
from devrun.infra.meta import MetaConfig, TunnelEntry, require_meta, with_meta_matching

if TYPE_CHECKING:
    from devrun.cli.shared.console import CLIConsole
    from devrun.cli.shell_commands import ShellCommands


def default_config_file() -> Path:
    return Path.home() / ".cloudflared" / "config.yaml"


class TunnelOperations:
    """Routes hostnames through a named tunnel and runs it."""

    def __init__(
        self,
        commands: ShellCommands,
        console: CLIConsole,
        cwd: Path,
        constants: RunConstants | None = None,
        *,
        config_file: Path | None = None,
    ) -> None:
        self.commands = commands
        self.console = console
        self.cwd = cwd
        self.constants = constants or RunConstants()
        self.config_file = config_file or default_config_file()

    def _route(self, tunnel: str, entry: TunnelEntry) -> dict[str, Any]:
        result = self.commands.cloudflared.route_dns(tunnel, entry.hostname)
        if not result.success:
            raise RunError(
                f"Failed to route {entry.hostname} through {tunnel}",
                details=result.stderr or None,
            )
        self.console.ok(f"Routed {entry.hostname} -> {entry.service}")
        return {"hostname": entry.hostname, "service": entry.service}

    def ingress_for(self, meta: MetaConfig, tunnel: str, name: str | None = None) -> list[dict[str, Any]]:
        """Route and collect ingress rules of one meta (all entries when ``name`` is None)."""
        if name is not None and name not in meta.tunnel:
            raise RunError(f"No tunnel entry '{name}' in meta.json")

        rules: list[dict[str, Any]] = []
        for key, entry in meta.tunnel.items():
            if name is not None and key != name:
                continue
            if not isinstance(entry, TunnelEntry):
                logger.warning(f"Skipping tunnel entry '{key}': no hostname/service")
                continue
            rules.append(self._route(tunnel, entry))
        return rules

    def build_config(
        self, *, name: str = "default", all_apps: bool = False, tunnel: str | None = None
    ) -> dict[str, Any]:
        """Route DNS for the selected entries and return the cloudflared config."""
        tunnel = tunnel or os.environ.get("CLOUDFLARED_TUNNEL_NAME")
        if not tunnel:
            raise RunError(
                "No tunnel name given",
                details="Pass --name or set CLOUDFLARED_TUNNEL_NAME.",
            )

        ingress: list[dict[str, Any]] = []
        if all_apps:
            for directory, _ in with_meta_matching("tunnel"):
                # Hostnames may reference the app's own secrets
                load_local_secrets(self.constants.DEFAULT_TARGET, directory)
                ingress.extend(self.ingress_for(require_meta(directory), tunnel))
        else:
            ingress.extend(self.ingress_for(require_meta(self.cwd), tunnel, name))

        ingress.append({"service": "http_status:404"})
        return {"tunnel": tunnel, "ingress": ingress}

    def write_config(self, config: dict[str, Any]) -> Path:
        self.config_file.parent.mkdir(parents=True, exist_ok=True)
        self.config_file.write_text(
            yaml.safe_dump(config, sort_keys=False), encoding="utf-8"
        )
        logger.debug(f"Wrote tunnel config to {self.config_file}")
        return self.config_file

    def run(
        self, *, name: str = "default", all_apps: bool = False, tunnel: str | None = None
    ) -> None:
        config = self.build_config(name=name, all_apps=all_apps, tunnel=tunnel)
        # With --all the token may come from an app's secrets
        token = os.environ.get("CLOUDFLARED_TUNNEL_TOKEN")
        if not token:
            raise RunError("CLOUDFLARED_TUNNEL_TOKEN is not set")

        config_file = self.write_config(config)

        self.console.info(f"Starting tunnel {config['tunnel']}")
        result = self.commands.cloudflared.run(config_file, token, config["tunnel"])
        if not result.success:
            raise RunError(f"cloudflared tunnel {config['tunnel']} exited with an error")
