"""Tests for CLI context dependency injection."""

from pathlib import Path
from unittest.mock import Mock, patch

import pytest
import typer

from devrun.cli.context import CLIContext, build_cli_context, get_cli_context


def _context(**overrides) -> CLIContext:
    values = {
        "console": Mock(),
        "cwd": Path("/test"),
        "commands": Mock(),
        "constants": Mock(),
        "target": "local",
    }
    values.update(overrides)
    return CLIContext(**values)


def test_cli_context_is_immutable():
    """Test that CLIContext is frozen/immutable."""
    ctx = _context()

    with pytest.raises(AttributeError):
        ctx.target = "prod"  # type: ignore[misc]


def test_build_cli_context_defaults_to_local_target(tmp_path: Path):
    ctx = build_cli_context(cwd=tmp_path)

    assert ctx.target == "local"
    assert ctx.cwd == tmp_path
    assert ctx.commands.working_dir == tmp_path


def test_build_cli_context_strips_scripts_folder(tmp_path: Path):
    """Scripts invoked from <app>/scripts resolve to the app directory."""
    ctx = build_cli_context("dev", cwd=tmp_path / "web" / "scripts")

    assert ctx.cwd == tmp_path / "web"
    assert ctx.target == "dev"


@patch("devrun.cli.context.ShellCommands")
def test_cli_context_shell_commands_initialized_with_cwd(mock_shell_commands, tmp_path: Path):
    build_cli_context(cwd=tmp_path)

    mock_shell_commands.assert_called_once_with(tmp_path)


def test_get_cli_context_from_typer_context():
    """Test that get_cli_context retrieves from Typer context."""
    mock_ctx_obj = _context()
    typer_ctx = Mock(spec=typer.Context)
    typer_ctx.obj = mock_ctx_obj

    assert get_cli_context(typer_ctx) is mock_ctx_obj


def test_get_cli_context_with_invalid_obj_falls_back():
    """Test that get_cli_context falls back when ctx.obj is not CLIContext."""
    typer_ctx = Mock(spec=typer.Context)
    typer_ctx.obj = "invalid"

    with patch("devrun.cli.context.build_cli_context") as mock_build:
        mock_build.return_value = Mock(spec=CLIContext)

        get_cli_context(typer_ctx)

        mock_build.assert_called_once()


@patch("click.get_current_context")
def test_get_cli_context_uses_click_context_as_fallback(mock_get_click_ctx):
    """Test that get_cli_context uses click context when typer ctx is None."""
    mock_ctx_obj = _context()
    mock_click_context = Mock()
    mock_click_context.obj = mock_ctx_obj
    mock_get_click_ctx.return_value = mock_click_context

    assert get_cli_context(None) is mock_ctx_obj
    mock_get_click_ctx.assert_called_once_with(silent=True)
