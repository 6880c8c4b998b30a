"""Tests for ComposeRunner helper."""

import subprocess
from pathlib import Path
from unittest.mock import Mock, patch

import pytest

from devrun.cli.shared.compose import ComposeRunner


@pytest.fixture
def compose_runner():
    """Create a ComposeRunner instance for testing."""
    return ComposeRunner(
        Path("/work/app"),
        compose_file=Path("/work/app/compose.yaml"),
        project_name="acme",
    )


@pytest.fixture
def compose_runner_no_project():
    """Create a ComposeRunner without project name."""
    return ComposeRunner(Path("/work/app"), compose_file=Path("/work/app/compose.yaml"))


@pytest.fixture
def mock_run():
    with patch("subprocess.run") as run:
        run.return_value = subprocess.CompletedProcess(
            args=[], returncode=0, stdout="", stderr=""
        )
        yield run


def test_base_cmd_with_project_name(compose_runner):
    """Test that base command includes project name when provided."""
    assert compose_runner._base_cmd() == [
        "docker",
        "compose",
        "-p",
        "acme",
        "-f",
        "/work/app/compose.yaml",
    ]


def test_base_cmd_without_project_name(compose_runner_no_project):
    """Test that base command works without project name."""
    assert compose_runner_no_project._base_cmd() == [
        "docker",
        "compose",
        "-f",
        "/work/app/compose.yaml",
    ]


def test_run_executes_in_working_dir(mock_run: Mock, compose_runner):
    """Test that run() executes subprocess with correct arguments."""
    compose_runner.run(["ps"], capture_output=True)

    call_args = mock_run.call_args
    assert call_args.args[0][-1] == "ps"
    assert call_args.kwargs["cwd"] == Path("/work/app")
    assert call_args.kwargs["capture_output"] is True
    assert call_args.kwargs["text"] is True


def test_up_places_env_file_before_subcommand(mock_run: Mock, compose_runner):
    """--env-file is a global compose flag and must precede 'up'."""
    compose_runner.up(env_file=Path("/tmp/x.env"), force_recreate=True)

    cmd = mock_run.call_args.args[0]
    assert cmd[6:] == ["--env-file", "/tmp/x.env", "up", "--force-recreate"]
    assert mock_run.call_args.kwargs["check"] is True


def test_exec_runs_bash_snippet(mock_run: Mock, compose_runner):
    compose_runner.exec("api", "ls -la")

    assert mock_run.call_args.args[0][6:] == ["exec", "api", "/bin/bash", "-c", "ls -la"]


def test_logs_with_all_options(mock_run: Mock, compose_runner):
    """Test logs() with all options combined."""
    compose_runner.logs(service="app", follow=True, tail=100)

    cmd = mock_run.call_args.args[0]
    assert "--tail=100" in cmd
    assert "--follow" in cmd
    assert cmd[-1] == "app"


def test_build_without_cache(mock_run: Mock, compose_runner):
    compose_runner.build(no_cache=True)

    assert mock_run.call_args.args[0][-2:] == ["build", "--no-cache"]
