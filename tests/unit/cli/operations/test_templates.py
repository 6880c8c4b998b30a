"""Unit tests for the template catalog."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import MagicMock

import httpx
import pytest

from devrun.cli.operations.templates import EXPORTABLE_TEMPLATES, TemplateCatalog
from devrun.infra.errors import RunError

_API = "/repos/ghostmind-dev/templates/contents/templates"

_LISTINGS = {
    _API: [
        {"name": "python", "type": "dir"},
        {"name": "README.md", "type": "file"},
    ],
    f"{_API}/python": [
        {"name": "fastapi", "type": "dir"},
        {"name": "ruff.toml", "type": "file"},
    ],
    f"{_API}/python/ruff.toml": {
        "name": "ruff.toml",
        "type": "file",
        "download_url": "https://raw.example.com/python/ruff.toml",
    },
    f"{_API}/python/fastapi": [
        {"name": "main.py", "type": "file", "download_url": "https://raw.example.com/main.py"},
        {"name": "app", "type": "dir"},
    ],
    f"{_API}/python/fastapi/app": [
        {"name": "api.py", "type": "file", "download_url": "https://raw.example.com/api.py"},
    ],
}


def _handler(request: httpx.Request) -> httpx.Response:
    if request.url.host == "raw.example.com":
        return httpx.Response(200, content=f"# {request.url.path}".encode())
    if request.url.host == "gist.githubusercontent.com":
        return httpx.Response(200, content=b"gist body")
    listing = _LISTINGS.get(request.url.path)
    if listing is None:
        return httpx.Response(404)
    return httpx.Response(200, json=listing)


@pytest.fixture
def catalog(mock_console: MagicMock, tmp_path: Path) -> TemplateCatalog:
    return TemplateCatalog(
        mock_console,
        tmp_path,
        client_factory=lambda: httpx.Client(transport=httpx.MockTransport(_handler)),
    )


def test_list_types_returns_directories(catalog: TemplateCatalog) -> None:
    assert catalog.list_types() == ["python"]


def test_list_templates(catalog: TemplateCatalog) -> None:
    names = [entry["name"] for entry in catalog.list_templates("python")]

    assert names == ["fastapi", "ruff.toml"]


def test_list_templates_rejects_files(catalog: TemplateCatalog) -> None:
    with pytest.raises(RunError, match="not a template category"):
        catalog.list_templates("python/ruff.toml")


def test_add_single_file(catalog: TemplateCatalog, tmp_path: Path) -> None:
    destination = catalog.add("python", {"name": "ruff.toml", "type": "file"}, "config")

    assert destination == tmp_path / "config"
    assert (destination / "ruff.toml").read_text() == "# /python/ruff.toml"


def test_add_folder_recursively(catalog: TemplateCatalog, tmp_path: Path) -> None:
    catalog.add("python", {"name": "fastapi", "type": "dir"}, "default")

    assert (tmp_path / "default" / "main.py").read_text() == "# /main.py"
    assert (tmp_path / "default" / "app" / "api.py").read_text() == "# /api.py"


def test_http_errors_become_run_errors(catalog: TemplateCatalog) -> None:
    with pytest.raises(RunError, match="Request to"):
        catalog.list_templates("ruby")


def test_export_known_template(catalog: TemplateCatalog, tmp_path: Path) -> None:
    assert "main.tf" in EXPORTABLE_TEMPLATES

    path = catalog.export("main.tf")

    assert path == tmp_path / "main.tf"
    assert path.read_text() == "gist body"


def test_export_unknown_template(catalog: TemplateCatalog) -> None:
    with pytest.raises(RunError, match="Template 'x.tf' not found"):
        catalog.export("x.tf")
