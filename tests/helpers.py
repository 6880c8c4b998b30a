"""Builders shared by the unit tests."""

import json
from pathlib import Path
from typing import Any

from devrun.cli.shell_commands.types import CommandResult


def ok(stdout: str = "") -> CommandResult:
    """Build a successful CommandResult."""
    return CommandResult(success=True, stdout=stdout, stderr="", returncode=0)


def failed(stderr: str = "boom", returncode: int = 1) -> CommandResult:
    """Build a failed CommandResult."""
    return CommandResult(success=False, stdout="", stderr=stderr, returncode=returncode)


def write_meta(directory: Path, document: dict[str, Any]) -> Path:
    """Write a meta.json document into ``directory``."""
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / "meta.json"
    path.write_text(json.dumps(document, indent=2), encoding="utf-8")
    return path
