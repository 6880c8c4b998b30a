"""Project bootstrap and relocation.

``init`` creates a new project folder from the shared config repository
(devcontainer, editor settings, ignore rules and env template) and
``move`` relocates a project while keeping its devcontainer pointed at the
right host path.
"""

from __future__ import annotations

import json
import os
import shutil
from collections.abc import Callable
from pathlib import Path
from typing import TYPE_CHECKING, Any

import httpx
from loguru import logger

from devrun.infra.constants import RunConstants
from devrun.infra.errors import RunError
from devrun.infra.meta import write_meta_document
from devrun.utils.ids import create_id

if TYPE_CHECKING:
    from devrun.cli.shared.console import CLIConsole
    from devrun.cli.shell_commands import ShellCommands

_NO_CACHE_HEADERS = {
    "Cache-Control": "no-cache, no-store, must-revalidate",
    "Pragma": "no-cache",
    "Expires": "0",
}

# config repository path -> path inside the new project
_PROJECT_FILES = {
    "env/.env.template": ".env.template",
    "git/.gitignore": ".gitignore",
    "vscode/settings.json": ".vscode/settings.json",
}
_DEVCONTAINER_FILES = {
    "devcontainer/Dockerfile": ".devcontainer/Dockerfile",
    "devcontainer/library-scripts/post-create.ts": (
        ".devcontainer/library-scripts/post-create.ts"
    ),
}


def customize_devcontainer(document: dict[str, Any], name: str, host_path: str) -> dict[str, Any]:
    """Point a devcontainer.json at a project name and host folder."""
    document["name"] = name
    document.setdefault("remoteEnv", {})["LOCALHOST_SRC"] = host_path
    run_args = document.get("runArgs")
    if isinstance(run_args, list):
        document["runArgs"] = [
            f"--name={name}" if isinstance(arg, str) and arg.startswith("--name=") else arg
            for arg in run_args
        ]
    return document


class MachineOperations:
    """Creates and moves project folders."""

    def __init__(
        self,
        commands: ShellCommands,
        console: CLIConsole,
        cwd: Path,
        constants: RunConstants | None = None,
        *,
        client_factory: Callable[[], httpx.Client] = lambda: httpx.Client(
            timeout=30.0, follow_redirects=True, headers=_NO_CACHE_HEADERS
        ),
    ) -> None:
        self.commands = commands
        self.console = console
        self.cwd = cwd
        self.constants = constants or RunConstants()
        self._client_factory = client_factory

    @property
    def config_base_url(self) -> str:
        return os.environ.get("RUN_CONFIG_BASE_URL") or self.constants.CONFIG_BASE_URL

    def _fetch(self, client: httpx.Client, relative: str) -> httpx.Response:
        url = f"{self.config_base_url.rstrip('/')}/{relative}"
        logger.debug(f"GET {url}")
        try:
            response = client.get(url)
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise RunError(f"Failed to download {relative}", details=str(e)) from e
        return response

    def _download(self, client: httpx.Client, relative: str, target: Path) -> None:
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(self._fetch(client, relative).content)

    def init(self, name: str, *, devcontainer: bool = True, git: bool = True) -> Path:
        """Create ``<cwd>/<name>`` with the standard project files.

        Returns:
            The new project directory
        """
        if not name or "/" in name:
            raise RunError(f"Invalid project name '{name}'")
        project = self.cwd / name
        project.mkdir(parents=True, exist_ok=True)

        with self._client_factory() as client:
            for relative, target in _PROJECT_FILES.items():
                self._download(client, relative, project / target)

            if devcontainer:
                document = self._fetch(client, "devcontainer/devcontainer.json").json()
                document = customize_devcontainer(document, name, str(project.resolve()))
                devcontainer_json = project / ".devcontainer" / "devcontainer.json"
                devcontainer_json.parent.mkdir(parents=True, exist_ok=True)
                devcontainer_json.write_text(
                    json.dumps(document, indent=2) + "\n", encoding="utf-8"
                )
                for relative, target in _DEVCONTAINER_FILES.items():
                    self._download(client, relative, project / target)

        write_meta_document(project, {"id": create_id(), "name": name, "type": "app"})
        (project / "Readme.md").write_text(f"# {name}\n", encoding="utf-8")

        if git:
            shutil.rmtree(project / ".git", ignore_errors=True)
            result = self.commands.git.init(cwd=project)
            if not result.success:
                raise RunError("git init failed", details=result.stderr or None)

        self.console.ok(f"Project {name} created in {project}")
        return project

    def move(self, source: str, destination: str) -> Path:
        """Move ``<cwd>/<source>`` into ``destination``.

        Returns:
            The project's new location

        Raises:
            RunError: If the source is missing or the target already exists
        """
        source_path = self.cwd / source
        if not source_path.is_dir():
            raise RunError(f"Source project '{source_path}' does not exist")

        destination_root = Path(destination).expanduser().resolve()
        target = destination_root / source_path.name
        if target.exists():
            raise RunError(f"Destination '{target}' already exists")

        devcontainer_json = source_path / ".devcontainer" / "devcontainer.json"
        if devcontainer_json.is_file():
            document = json.loads(devcontainer_json.read_text(encoding="utf-8"))
            if document.get("remoteEnv", {}).get("LOCALHOST_SRC"):
                document["remoteEnv"]["LOCALHOST_SRC"] = str(target)
                devcontainer_json.write_text(
                    json.dumps(document, indent=2) + "\n", encoding="utf-8"
                )
                self.console.info(f"LOCALHOST_SRC set to {target}")

        destination_root.mkdir(parents=True, exist_ok=True)
        shutil.move(str(source_path), str(target))
        self.console.ok(f"Moved {source} to {target}")
        return target
