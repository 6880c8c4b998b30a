"""Unit tests for terraform workflows."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import MagicMock

import pytest

from devrun.cli.operations.terraform import (
    TerraformOperations,
    comment_banner,
    container_env_blocks,
    render_variables_file,
    replace_between_markers,
)
from devrun.infra.errors import RunError
from tests.helpers import failed, ok, write_meta


class TestSplicing:
    """Tests for the text helpers."""

    def test_comment_banner(self) -> None:
        assert comment_banner("START ENV", 5, 2) == "  #####\n  # START ENV\n  #####\n"

    def test_replace_between_markers_keeps_markers(self) -> None:
        content = "head\n<a>old stuff<b>\ntail"

        result = replace_between_markers(content, "<a>", "<b>", "new")

        assert result == "head\n<a>\n\nnew\n\n<b>\ntail"

    def test_replace_between_markers_without_markers(self) -> None:
        assert replace_between_markers("untouched", "<a>", "<b>", "x") == "untouched"

    def test_container_env_blocks_skip_port(self) -> None:
        blocks = container_env_blocks(["PORT", "DB_URL"], 2)

        assert "PORT" not in blocks
        assert blocks == '  env {\n    name  = "DB_URL"\n    value = var.DB_URL\n  }'

    def test_render_variables_file(self) -> None:
        rendered = render_variables_file(["APP", "PORT"])

        assert 'variable "APP" {}\nvariable "PORT" {}' in rendered
        assert 'name  = "APP"' in rendered
        assert 'name  = "PORT"' not in rendered


class TestTerraformOperations:
    """Tests for the TerraformOperations class."""

    @pytest.fixture(autouse=True)
    def environment(self, clean_env: pytest.MonkeyPatch, tmp_path: Path) -> None:
        clean_env.setenv("ENV", "dev")
        clean_env.delenv("ENVIRONMENT", raising=False)
        clean_env.setenv("TERRAFORM_BUCKET_NAME", "tf-state")
        clean_env.setenv("SRC", str(tmp_path))

    @pytest.fixture
    def app(self, tmp_path: Path) -> Path:
        directory = tmp_path / "web"
        write_meta(
            directory,
            {
                "id": "abc123",
                "name": "web",
                "terraform": {
                    "run": {"path": "infra/run", "containers": ["web", "worker"]},
                    "dns": {"path": "infra/dns", "global": True},
                },
            },
        )
        (directory / "infra" / "run").mkdir(parents=True)
        return directory

    @pytest.fixture
    def images(self) -> MagicMock:
        images = MagicMock()
        images.digest.side_effect = lambda arch, container, modifier=None: (
            f"repo/{container}@sha256:{arch}{modifier or ''}"
        )
        return images

    @pytest.fixture
    def operations(
        self,
        mock_commands: MagicMock,
        mock_console: MagicMock,
        app: Path,
        images: MagicMock,
    ) -> TerraformOperations:
        return TerraformOperations(mock_commands, mock_console, app, images=images)

    def test_backend_config_scopes(self, operations: TerraformOperations) -> None:
        assert operations.backend_config("run") == [
            "bucket=tf-state",
            "prefix=abc123/dev/terraform/run",
        ]
        assert operations.backend_config("dns")[1] == "prefix=abc123/global/terraform/dns"

    def test_backend_config_requires_bucket(
        self, operations: TerraformOperations, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.delenv("TERRAFORM_BUCKET_NAME")

        with pytest.raises(RunError, match="TERRAFORM_BUCKET_NAME"):
            operations.backend_config("run")

    def test_image_digest_env_with_modifiers(self, operations: TerraformOperations) -> None:
        env = operations.image_digest_env("run", arch="arm64", modifiers=["worker:beta"])

        assert env == {
            "TF_VAR_IMAGE_DIGEST_WEB": "repo/web@sha256:arm64",
            "TF_VAR_IMAGE_DIGEST_WORKER": "repo/worker@sha256:arm64beta",
        }

    def test_image_digest_env_rejects_bad_modifier(self, operations: TerraformOperations) -> None:
        with pytest.raises(RunError, match="Invalid modifier"):
            operations.image_digest_env("run", modifiers=["worker"])

    def test_activate_runs_init_plan_apply(
        self, operations: TerraformOperations, mock_commands: MagicMock, app: Path
    ) -> None:
        mock_commands.terraform.init.return_value = ok()
        mock_commands.terraform.plan.return_value = ok()
        mock_commands.terraform.apply.return_value = ok()

        operations.activate("run")

        directory = app / "infra" / "run"
        init_args = mock_commands.terraform.init.call_args
        assert init_args.args == (
            directory,
            ["bucket=tf-state", "prefix=abc123/dev/terraform/run"],
        )
        assert "TF_VAR_IMAGE_DIGEST_WEB" in init_args.kwargs["env"]
        mock_commands.terraform.apply.assert_called_once()

    def test_activate_stops_when_plan_fails(
        self, operations: TerraformOperations, mock_commands: MagicMock
    ) -> None:
        mock_commands.terraform.init.return_value = ok()
        mock_commands.terraform.plan.return_value = failed()

        with pytest.raises(RunError, match="terraform plan failed"):
            operations.activate("run")

        mock_commands.terraform.apply.assert_not_called()

    def test_destroy_uses_empty_digests(
        self, operations: TerraformOperations, mock_commands: MagicMock, images: MagicMock
    ) -> None:
        mock_commands.terraform.init.return_value = ok()
        mock_commands.terraform.plan.return_value = ok()
        mock_commands.terraform.destroy.return_value = ok()

        operations.destroy("run")

        images.digest.assert_not_called()
        env = mock_commands.terraform.destroy.call_args.kwargs["env"]
        assert env == {"TF_VAR_IMAGE_DIGEST_WEB": "", "TF_VAR_IMAGE_DIGEST_WORKER": ""}

    def test_update_variables_splices_marked_blocks(
        self, operations: TerraformOperations, app: Path
    ) -> None:
        write_meta(app.parent, {"name": "acme"})
        banner = lambda title, width: comment_banner(title, width)  # noqa: E731
        env_file = app / ".env.local"
        env_file.write_text(
            "DB_URL=postgres://db\n"
            + banner("TERRAFORM", 79)
            + "stale\n"
            + banner("THE END", 79),
            encoding="utf-8",
        )
        variables_tf = app / "infra" / "run" / "variables.tf"
        variables_tf.write_text(
            "# keep\n" + banner("START ENV", 42) + "old\n" + banner("END ENV", 42),
            encoding="utf-8",
        )

        written = operations.update_variables("run", "local")

        assert variables_tf in written and env_file in written
        variables = variables_tf.read_text(encoding="utf-8")
        assert variables.startswith("# keep\n")
        assert 'variable "DB_URL" {}' in variables
        assert 'variable "IMAGE_DIGEST_WEB" {}' in variables
        assert 'variable "PROJECT" {}' in variables
        assert "old" not in variables
        env_content = env_file.read_text(encoding="utf-8")
        assert "TF_VAR_DB_URL=postgres://db" in env_content
        assert "TF_VAR_PROJECT=acme" in env_content
        assert "stale" not in env_content

    def test_update_variables_keeps_handwritten_tf_vars(
        self, operations: TerraformOperations, app: Path
    ) -> None:
        write_meta(app.parent, {"name": "acme"})
        banner = lambda title, width: comment_banner(title, width)  # noqa: E731
        env_file = app / ".env.local"
        env_file.write_text(
            "TF_VAR_REGION=us-east1\n"
            + banner("TERRAFORM", 79)
            + "TF_VAR_REMOVED=1\n"
            + banner("THE END", 79),
            encoding="utf-8",
        )

        operations.update_variables("run", "local")

        variables = (app / "infra" / "run" / "variables.tf").read_text(encoding="utf-8")
        assert 'variable "REGION" {}' in variables
        assert "REMOVED" not in variables
        assert env_file.read_text(encoding="utf-8").count("TF_VAR_REGION=") == 1

    def test_update_variables_requires_env_file(self, operations: TerraformOperations) -> None:
        with pytest.raises(RunError, match=r"No \.env\.prod"):
            operations.update_variables("run", "prod")

    def test_clean_removes_state(self, operations: TerraformOperations, app: Path) -> None:
        state = app / "infra" / "run" / ".terraform"
        state.mkdir()

        assert operations.clean() == [state]
        assert not state.exists()

    def test_unlock_removes_existing_lock(
        self, operations: TerraformOperations, mock_commands: MagicMock
    ) -> None:
        mock_commands.gcloud.storage_object_exists.return_value = True
        mock_commands.gcloud.storage_remove.return_value = ok()

        assert operations.unlock("run", "prod") is True
        mock_commands.gcloud.storage_remove.assert_called_once_with(
            "gs://tf-state/abc123/prod/terraform/run/default.tflock"
        )

    def test_unlock_without_lock(
        self, operations: TerraformOperations, mock_commands: MagicMock
    ) -> None:
        mock_commands.gcloud.storage_object_exists.return_value = False

        assert operations.unlock("run") is False
        mock_commands.gcloud.storage_remove.assert_not_called()
