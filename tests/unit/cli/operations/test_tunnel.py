"""Unit tests for Cloudflare Tunnel routing."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest
import yaml

from devrun.cli.operations.tunnel import TunnelOperations
from devrun.infra.errors import RunError
from tests.helpers import failed, ok, write_meta


@pytest.fixture
def app(tmp_path: Path) -> Path:
    directory = tmp_path / "web"
    write_meta(
        directory,
        {
            "name": "web",
            "tunnel": {
                "default": {"hostname": "web.example.com", "service": "http://localhost:3000"},
                "api": {"hostname": "api.example.com", "service": "http://localhost:8000"},
                "subdomain": "web",
            },
        },
    )
    return directory


@pytest.fixture
def operations(
    mock_commands: MagicMock, mock_console: MagicMock, app: Path, tmp_path: Path
) -> TunnelOperations:
    mock_commands.cloudflared.route_dns.return_value = ok()
    mock_commands.cloudflared.run.return_value = ok()
    return TunnelOperations(
        mock_commands, mock_console, app, config_file=tmp_path / "cf" / "config.yaml"
    )


def test_build_config_for_named_entry(
    operations: TunnelOperations, mock_commands: MagicMock, clean_env: pytest.MonkeyPatch
) -> None:
    config = operations.build_config(name="api", tunnel="dev-tunnel")

    assert config == {
        "tunnel": "dev-tunnel",
        "ingress": [
            {"hostname": "api.example.com", "service": "http://localhost:8000"},
            {"service": "http_status:404"},
        ],
    }
    mock_commands.cloudflared.route_dns.assert_called_once_with("dev-tunnel", "api.example.com")


def test_build_config_unknown_entry(
    operations: TunnelOperations, clean_env: pytest.MonkeyPatch
) -> None:
    with pytest.raises(RunError, match="No tunnel entry 'missing'"):
        operations.build_config(name="missing", tunnel="t")


def test_build_config_requires_tunnel_name(
    operations: TunnelOperations, clean_env: pytest.MonkeyPatch
) -> None:
    with pytest.raises(RunError, match="No tunnel name"):
        operations.build_config()


def test_build_config_all_apps_skips_plain_values(
    operations: TunnelOperations,
    mock_commands: MagicMock,
    tmp_path: Path,
    clean_env: pytest.MonkeyPatch,
) -> None:
    clean_env.setenv("SRC", str(tmp_path))
    clean_env.setenv("CLOUDFLARED_TUNNEL_NAME", "shared")
    write_meta(tmp_path / "docs", {"name": "docs", "tunnel": {"subdomain": "docs"}})

    config = operations.build_config(all_apps=True)

    hostnames = [rule.get("hostname") for rule in config["ingress"]]
    assert hostnames == ["web.example.com", "api.example.com", None]
    assert config["tunnel"] == "shared"


def test_route_failure(
    operations: TunnelOperations, mock_commands: MagicMock, clean_env: pytest.MonkeyPatch
) -> None:
    mock_commands.cloudflared.route_dns.return_value = failed("dns error")

    with pytest.raises(RunError, match="Failed to route web.example.com"):
        operations.build_config(tunnel="t")


def test_run_requires_token(operations: TunnelOperations, clean_env: pytest.MonkeyPatch) -> None:
    with pytest.raises(RunError, match="CLOUDFLARED_TUNNEL_TOKEN"):
        operations.run(tunnel="t")


def test_run_writes_config_and_starts_tunnel(
    operations: TunnelOperations,
    mock_commands: MagicMock,
    tmp_path: Path,
    clean_env: pytest.MonkeyPatch,
) -> None:
    clean_env.setenv("CLOUDFLARED_TUNNEL_TOKEN", "tok")

    operations.run(tunnel="dev-tunnel")

    config_file = tmp_path / "cf" / "config.yaml"
    written = yaml.safe_load(config_file.read_text(encoding="utf-8"))
    assert written["ingress"][0]["hostname"] == "web.example.com"
    mock_commands.cloudflared.run.assert_called_once_with(config_file, "tok", "dev-tunnel")


def test_run_all_reads_token_from_app_secrets(
    operations: TunnelOperations,
    mock_commands: MagicMock,
    tmp_path: Path,
    clean_env: pytest.MonkeyPatch,
) -> None:
    clean_env.setenv("SRC", str(tmp_path))

    def load_app_secrets(target: str, directory: Path) -> bool:
        clean_env.setenv("CLOUDFLARED_TUNNEL_TOKEN", "from-app")
        return True

    with patch(
        "devrun.cli.operations.tunnel.load_local_secrets", side_effect=load_app_secrets
    ) as load_secrets:
        operations.run(all_apps=True, tunnel="shared")

    load_secrets.assert_called_once_with("local", tmp_path / "web")
    mock_commands.cloudflared.run.assert_called_once_with(
        tmp_path / "cf" / "config.yaml", "from-app", "shared"
    )
