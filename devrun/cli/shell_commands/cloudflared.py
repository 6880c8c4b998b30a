"""cloudflared tunnel command abstractions."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

from .types import CommandResult

if TYPE_CHECKING:
    from .runner import CommandRunner


class CloudflaredCommands:
    """Cloudflare Tunnel wrapper."""

    def __init__(self, runner: CommandRunner) -> None:
        self._runner = runner

    def route_dns(self, tunnel: str, hostname: str) -> CommandResult:
        """Point ``hostname`` at the tunnel with a CNAME record."""
        return self._runner.run(
            ["cloudflared", "tunnel", "route", "dns", tunnel, hostname]
        )

    def run(self, config_file: Path, token: str, tunnel: str) -> CommandResult:
        """Run the tunnel in the foreground until interrupted."""
        return self._runner.run_interactive(
            [
                "cloudflared",
                "tunnel",
                "--config",
                str(config_file),
                "--protocol",
                "http2",
                "run",
                "--token",
                token,
                tunnel,
            ]
        )
