"""Unit tests for Vault KV import and export."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import MagicMock

import pytest

from devrun.cli.operations.vault import VaultOperations
from devrun.infra.errors import RunError
from tests.helpers import failed, ok, write_meta


@pytest.fixture
def operations(
    mock_commands: MagicMock, mock_console: MagicMock, app_dir: Path
) -> VaultOperations:
    mock_commands.vault.is_installed.return_value = True
    return VaultOperations(mock_commands, mock_console, app_dir)


class TestNamespace:
    """Tests for namespace resolution."""

    def test_explicit_target(self, operations: VaultOperations) -> None:
        assert operations.namespace("dev") == "abc123/dev"

    def test_env_fallback(
        self, operations: VaultOperations, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("ENV", "staging")

        assert operations.namespace() == "abc123/staging"

    def test_global_app(self, operations: VaultOperations, app_dir: Path) -> None:
        write_meta(app_dir, {"id": "abc123", "name": "web", "global": True})

        assert operations.namespace() == "abc123/global"

    def test_requires_id(self, operations: VaultOperations, app_dir: Path) -> None:
        write_meta(app_dir, {"name": "web"})

        with pytest.raises(RunError, match="no id"):
            operations.namespace("dev")


class TestImportExport:
    """Tests for moving env files in and out of vault."""

    def test_import_uploads_env_file(
        self, operations: VaultOperations, mock_commands: MagicMock, app_dir: Path
    ) -> None:
        (app_dir / ".env.local").write_text("A=1\n", encoding="utf-8")
        mock_commands.vault.kv_put.return_value = ok()

        path = operations.import_secrets()

        assert path == "kv/abc123/local/secrets"
        mock_commands.vault.kv_put.assert_called_once_with(
            "kv/abc123/local/secrets", CREDS="A=1\n"
        )

    def test_import_missing_file(self, operations: VaultOperations) -> None:
        with pytest.raises(RunError, match=r"\.env\.prod not found"):
            operations.import_secrets("prod")

    def test_import_failure(
        self, operations: VaultOperations, mock_commands: MagicMock, app_dir: Path
    ) -> None:
        (app_dir / ".env.local").write_text("A=1\n", encoding="utf-8")
        mock_commands.vault.kv_put.return_value = failed("permission denied")

        with pytest.raises(RunError) as excinfo:
            operations.import_secrets()

        assert excinfo.value.details == "permission denied"

    def test_requires_vault_cli(
        self, operations: VaultOperations, mock_commands: MagicMock
    ) -> None:
        mock_commands.vault.is_installed.return_value = False

        with pytest.raises(RunError, match="not installed"):
            operations.export_secrets("dev")

    def test_export_writes_dotenv_and_drops_backup(
        self, operations: VaultOperations, mock_commands: MagicMock, app_dir: Path
    ) -> None:
        (app_dir / ".env.backup").write_text("old", encoding="utf-8")
        mock_commands.vault.kv_get.return_value = {"data": {"data": {"CREDS": "B=2\n"}}}

        path = operations.export_secrets("dev")

        assert path == app_dir / ".env"
        assert path.read_text(encoding="utf-8") == "B=2\n"
        assert not (app_dir / ".env.backup").exists()

    def test_export_to_named_file(
        self, operations: VaultOperations, mock_commands: MagicMock, app_dir: Path
    ) -> None:
        mock_commands.vault.kv_get.return_value = {"data": {"data": {"CREDS": "B=2\n"}}}

        path = operations.export_secrets("dev", ".env.dev")

        assert path == app_dir / ".env.dev"

    def test_export_without_creds(
        self, operations: VaultOperations, mock_commands: MagicMock
    ) -> None:
        mock_commands.vault.kv_get.return_value = None

        with pytest.raises(RunError, match="No CREDS"):
            operations.export_secrets("dev")
