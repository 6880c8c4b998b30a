"""Project templates fetched over HTTP.

Two sources are supported: the templates repository, browsed through the
GitHub contents API, and a fixed set of single-file templates published as
gists.
"""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path
from typing import TYPE_CHECKING, Any

import httpx
from loguru import logger

from devrun.infra.constants import RunConstants
from devrun.infra.errors import RunError

if TYPE_CHECKING:
    from devrun.cli.shared.console import CLIConsole

_GIST_ROOT = "https://gist.githubusercontent.com/komondor"

EXPORTABLE_TEMPLATES = {
    "main.tf": (
        f"{_GIST_ROOT}/8c8d892393a233aeb80ede067f6ddd50/raw/"
        "7bf0025923fb9964c25333ad887de6da71b54fdd/main.tf"
    ),
    "variables.tf": (
        f"{_GIST_ROOT}/fc5f8340c7a4f05d14f6b3b715c7a6b6/raw/"
        "6e91993eb7cb6c50800f7ee8c77e5ea35ff72333/variables.tf"
    ),
    ".env.example": (
        f"{_GIST_ROOT}/24b631dc1d18b6b20cb9ca2d8b31bfce/raw/"
        "bb99c34141c27bb0d93e0bcd9ce837e6547fb843/.env.example"
    ),
    "oas.json": (
        f"{_GIST_ROOT}/e4e16ad2a2046afe4aaa613a5b0a6748/raw/"
        "2c3383a4ae8c343c7def376a198811d2319bab5c/oas.json"
    ),
}


class TemplateCatalog:
    """Lists and downloads templates."""

    def __init__(
        self,
        console: CLIConsole,
        cwd: Path,
        constants: RunConstants | None = None,
        *,
        client_factory: Callable[[], httpx.Client] = lambda: httpx.Client(
            timeout=30.0, follow_redirects=True
        ),
    ) -> None:
        self.console = console
        self.cwd = cwd
        self.constants = constants or RunConstants()
        self._client_factory = client_factory

    def _get(self, client: httpx.Client, url: str) -> httpx.Response:
        logger.debug(f"GET {url}")
        try:
            response = client.get(url)
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise RunError(f"Request to {url} failed", details=str(e)) from e
        return response

    def _contents(self, client: httpx.Client, path: str = "") -> Any:
        url = self.constants.TEMPLATES_API_URL
        if path:
            url = f"{url}/{path}"
        return self._get(client, url).json()

    # =========================================================================
    # Templates repository
    # =========================================================================

    def list_types(self) -> list[str]:
        """Return the template categories (top-level directories)."""
        with self._client_factory() as client:
            items = self._contents(client)
        return [item["name"] for item in items if item.get("type") == "dir"]

    def list_templates(self, template_type: str) -> list[dict[str, Any]]:
        """Return the contents API entries of a category."""
        with self._client_factory() as client:
            items = self._contents(client, template_type)
        if not isinstance(items, list):
            raise RunError(f"'{template_type}' is not a template category")
        return items

    def _download_folder(self, client: httpx.Client, path: str, target: Path) -> int:
        count = 0
        target.mkdir(parents=True, exist_ok=True)
        for item in self._contents(client, path):
            if item.get("type") == "file":
                self.console.info(f"Downloading {item['name']}")
                (target / item["name"]).write_bytes(
                    self._get(client, item["download_url"]).content
                )
                count += 1
            elif item.get("type") == "dir":
                count += self._download_folder(
                    client, f"{path}/{item['name']}", target / item["name"]
                )
        return count

    def add(self, template_type: str, entry: dict[str, Any], target: str) -> Path:
        """Copy a template (file or folder) into ``<cwd>/<target>``.

        Returns:
            Directory the template was copied into
        """
        destination = self.cwd / target
        destination.mkdir(parents=True, exist_ok=True)
        name = entry["name"]

        with self._client_factory() as client:
            if entry.get("type") == "file":
                item = self._contents(client, f"{template_type}/{name}")
                (destination / name).write_bytes(
                    self._get(client, item["download_url"]).content
                )
            else:
                self._download_folder(client, f"{template_type}/{name}", destination)

        self.console.ok(f"Template '{name}' copied to {target}/")
        return destination

    # =========================================================================
    # Single-file templates
    # =========================================================================

    def export(self, name: str) -> Path:
        """Download one of :data:`EXPORTABLE_TEMPLATES` into cwd."""
        url = EXPORTABLE_TEMPLATES.get(name)
        if url is None:
            raise RunError(
                f"Template '{name}' not found",
                details=f"Available: {', '.join(EXPORTABLE_TEMPLATES)}",
            )
        with self._client_factory() as client:
            content = self._get(client, url).content
        path = self.cwd / name
        path.write_bytes(content)
        self.console.ok(f"Exported {name}")
        return path
