"""Unit tests for custom scripts."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import MagicMock

import pytest

from devrun.cli.operations.custom import CustomScripts, ScriptUtils, service_urls
from devrun.infra.errors import RunError
from devrun.infra.meta import load_meta
from tests.helpers import failed, write_meta

_SCRIPT = '''
def main(arguments, options):
    return {
        "arguments": arguments,
        "name": options.meta.name,
        "all": options.all,
        "target": options.utils.extract("target"),
        "local": options.url.local,
        "context": options.context,
    }
'''


class TestScriptUtils:
    """Tests for the helpers handed to scripts."""

    def make_utils(
        self, mock_commands: MagicMock, tmp_path: Path, arguments: list[str], run_all: bool = False
    ) -> ScriptUtils:
        return ScriptUtils(arguments, ["target=prod", "targets=x"], run_all, mock_commands, tmp_path)

    def test_extract_and_has(self, mock_commands: MagicMock, tmp_path: Path) -> None:
        utils = self.make_utils(mock_commands, tmp_path, ["build"])

        assert utils.extract("target") == "prod"
        assert utils.extract("missing") is None
        assert utils.has("build")
        assert not utils.has("deploy")

    def test_cmd_splits_like_a_shell(self) -> None:
        assert ScriptUtils.cmd("echo 'hello world'") == ["echo", "hello world"]

    def test_start_runs_group(self, mock_commands: MagicMock, tmp_path: Path) -> None:
        utils = self.make_utils(mock_commands, tmp_path, ["dev"])
        config = {
            "commands": {"api": "uvicorn app:app", "web": ["npm i", "npm run dev"]},
            "groups": {"dev": ["api", "web"]},
        }

        assert utils.start(config) == ["api", "web"]

        argv = sorted(call.args[0] for call in mock_commands.runner.run.call_args_list)
        assert argv == [["npm", "i"], ["npm", "run", "dev"], ["uvicorn", "app:app"]]

    def test_start_all(self, mock_commands: MagicMock, tmp_path: Path) -> None:
        utils = self.make_utils(mock_commands, tmp_path, [], run_all=True)

        assert utils.start({"commands": {"a": "true", "b": "true"}}) == ["a", "b"]

    def test_start_rejects_unknown_group_member(
        self, mock_commands: MagicMock, tmp_path: Path
    ) -> None:
        utils = self.make_utils(mock_commands, tmp_path, ["dev"])

        with pytest.raises(RunError, match="Unknown command"):
            utils.start({"commands": {"api": "x"}, "groups": {"dev": ["api", "nope"]}})

    def test_start_propagates_failure(self, mock_commands: MagicMock, tmp_path: Path) -> None:
        mock_commands.runner.run.return_value = failed()
        utils = self.make_utils(mock_commands, tmp_path, ["api"])

        with pytest.raises(RunError, match="Command 'api' failed"):
            utils.start({"commands": {"api": "uvicorn"}})

    def test_start_without_selection(self, mock_commands: MagicMock, tmp_path: Path) -> None:
        utils = self.make_utils(mock_commands, tmp_path, ["other"])

        assert utils.start({"commands": {"api": "uvicorn"}}) == []
        mock_commands.runner.run.assert_not_called()


def test_service_urls_with_tunnel(tmp_path: Path) -> None:
    write_meta(tmp_path, {"name": "web", "tunnel": {"subdomain": "web"}})
    meta = load_meta(tmp_path)
    assert meta is not None

    urls = service_urls(meta, {"PORT": "3000", "CLOUDFLARED_TUNNEL_URL": "dev.example.com"})

    assert urls.internal == "http://host.docker.internal:3000"
    assert urls.local == "http://localhost:3000"
    assert urls.tunnel == "https://web.dev.example.com"


def test_service_urls_without_tunnel(app_dir: Path) -> None:
    meta = load_meta(app_dir)
    assert meta is not None

    assert service_urls(meta, {}).tunnel is None


class TestCustomScripts:
    """Tests for the CustomScripts class."""

    @pytest.fixture
    def scripts(
        self, mock_commands: MagicMock, mock_console: MagicMock, app_dir: Path
    ) -> CustomScripts:
        root = app_dir / "scripts"
        root.mkdir()
        (root / "deploy.py").write_text(_SCRIPT, encoding="utf-8")
        (root / "_helpers.py").write_text("", encoding="utf-8")
        (root / "broken.py").write_text("x = 1\n", encoding="utf-8")
        return CustomScripts(mock_commands, mock_console, app_dir)

    def test_available_skips_private_modules(self, scripts: CustomScripts) -> None:
        assert scripts.available() == ["broken", "deploy"]

    def test_available_uses_meta_root(self, scripts: CustomScripts, app_dir: Path) -> None:
        write_meta(app_dir, {"name": "web", "custom_script": {"root": "tools"}})

        assert scripts.available() == []

    def test_run_calls_main(
        self, scripts: CustomScripts, app_dir: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("PORT", "8080")

        result = scripts.run("deploy", ["api"], inputs=["target=dev"], run_all=True)

        assert result == {
            "arguments": ["api"],
            "name": "web",
            "all": True,
            "target": "dev",
            "local": "http://localhost:8080",
            "context": app_dir,
        }

    def test_run_missing_script(self, scripts: CustomScripts) -> None:
        with pytest.raises(RunError, match="Script 'nope' not found"):
            scripts.run("nope")

    def test_run_requires_main(self, scripts: CustomScripts) -> None:
        with pytest.raises(RunError, match="does not define main"):
            scripts.run("broken")

    def test_test_root(self, scripts: CustomScripts, app_dir: Path) -> None:
        assert scripts.script_root(test=True) == app_dir / "test"
