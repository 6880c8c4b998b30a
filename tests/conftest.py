import os
from pathlib import Path
from unittest.mock import MagicMock

import pytest

from devrun.infra.constants import RunConstants
from tests.helpers import ok, write_meta

# Keep developer machines from leaking into tests
for _name in ("SRC", "LOCALHOST_SRC", "ENV", "ENVIRONMENT", "SET_ENV", "GITHUB_ENV", "GITHUB_OUTPUT"):
    os.environ.pop(_name, None)


@pytest.fixture
def mock_commands(tmp_path: Path) -> MagicMock:
    """ShellCommands double whose tool wrappers succeed by default."""
    commands = MagicMock()
    commands.working_dir = tmp_path
    for tool in (
        "docker",
        "git",
        "terraform",
        "hasura",
        "gcloud",
        "vault",
        "github",
        "tmux",
        "cloudflared",
    ):
        wrapper = MagicMock()
        setattr(commands, tool, wrapper)
    commands.run_command.return_value = ok()
    commands.runner.run.return_value = ok()
    return commands


@pytest.fixture
def mock_console() -> MagicMock:
    """CLIConsole double."""
    return MagicMock()


@pytest.fixture
def constants() -> RunConstants:
    return RunConstants()


@pytest.fixture
def app_dir(tmp_path: Path) -> Path:
    """App directory with a minimal meta.json."""
    directory = tmp_path / "app"
    write_meta(directory, {"id": "abc123", "name": "web", "type": "app"})
    return directory


@pytest.fixture
def clean_env(monkeypatch: pytest.MonkeyPatch) -> pytest.MonkeyPatch:
    """Clear variables the environment helpers read and write."""
    for name in (
        "PROJECT",
        "APP",
        "PORT",
        "GCP_PROJECT_ID",
        "CODESPACES",
        "GITHUB_TOKEN",
        "VAULT_TOKEN",
        "CLOUDFLARED_TUNNEL_NAME",
        "CLOUDFLARED_TUNNEL_TOKEN",
        "CLOUDFLARED_TUNNEL_URL",
        "RUN_CONFIG_BASE_URL",
    ):
        monkeypatch.delenv(name, raising=False)
    return monkeypatch
