"""Unit tests for git shortcuts and dependency installs."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import MagicMock

import pytest

from devrun.cli.operations.housekeeping import Housekeeping
from devrun.infra.errors import RunError
from tests.helpers import failed, ok, write_meta


@pytest.fixture
def housekeeping(
    mock_commands: MagicMock, mock_console: MagicMock, tmp_path: Path
) -> Housekeeping:
    git = mock_commands.git
    git.is_inside_work_tree.return_value = True
    for method in ("add_all", "commit", "commit_amend", "push"):
        getattr(git, method).return_value = ok()
    return Housekeeping(mock_commands, mock_console, tmp_path)


class TestGit:
    """Tests for the git shortcuts."""

    def test_quick_commit_force_pushes(
        self, housekeeping: Housekeeping, mock_commands: MagicMock, tmp_path: Path
    ) -> None:
        housekeeping.commit()

        mock_commands.git.commit.assert_called_once_with("quick commit", cwd=tmp_path)
        mock_commands.git.push.assert_called_once_with("origin", "main", force=True, cwd=tmp_path)

    def test_commit_with_message(
        self, housekeeping: Housekeeping, mock_commands: MagicMock, tmp_path: Path
    ) -> None:
        housekeeping.commit("Fix typo", force=False)

        mock_commands.git.push.assert_called_once_with("origin", "main", force=False, cwd=tmp_path)

    def test_commit_rejects_empty_message(self, housekeeping: Housekeeping) -> None:
        with pytest.raises(RunError, match="cannot be empty"):
            housekeeping.commit("  ")

    def test_commit_stops_on_failure(
        self, housekeeping: Housekeeping, mock_commands: MagicMock
    ) -> None:
        mock_commands.git.commit.return_value = failed("nothing to commit")

        with pytest.raises(RunError, match="git commit failed"):
            housekeeping.commit()

        mock_commands.git.push.assert_not_called()

    def test_amend_requires_work_tree(
        self, housekeeping: Housekeeping, mock_commands: MagicMock
    ) -> None:
        mock_commands.git.is_inside_work_tree.return_value = False

        with pytest.raises(RunError, match="not inside a git work tree"):
            housekeeping.amend()

    def test_amend(self, housekeeping: Housekeeping, mock_commands: MagicMock) -> None:
        housekeeping.amend()

        mock_commands.git.commit_amend.assert_called_once()
        assert mock_commands.git.push.call_args.kwargs["force"] is True


class TestDependencies:
    """Tests for dependency installs."""

    def test_install_app_dependencies(
        self,
        housekeeping: Housekeeping,
        mock_commands: MagicMock,
        tmp_path: Path,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        monkeypatch.setenv("SRC", str(tmp_path))
        write_meta(
            tmp_path / "web",
            {"name": "web", "development": {"init": ["npm install", "npx prisma generate"]}},
        )
        write_meta(tmp_path / "docs", {"name": "docs"})

        assert housekeeping.install_app_dependencies() == 2
        assert mock_commands.run_command.call_args_list[0].args == (["npm", "install"],)
        assert mock_commands.run_command.call_args_list[0].kwargs == {"cwd": tmp_path / "web"}

    def test_install_cli_dependencies(
        self,
        housekeeping: Housekeeping,
        mock_commands: MagicMock,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        monkeypatch.setenv("VAULT_TOKEN", "hvs.x")
        mock_commands.vault.login.return_value = ok()

        housekeeping.install_cli_dependencies()

        mock_commands.run_command.assert_called_once_with(["brew", "install", "vault"])
        mock_commands.vault.login.assert_called_once_with("hvs.x")

    def test_install_cli_dependencies_requires_token(
        self, housekeeping: Housekeeping, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.delenv("VAULT_TOKEN", raising=False)

        with pytest.raises(RunError, match="VAULT_TOKEN"):
            housekeeping.install_cli_dependencies()
