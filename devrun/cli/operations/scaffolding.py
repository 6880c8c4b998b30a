"""meta.json scaffolding and maintenance."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Any

from loguru import logger

from devrun.infra.constants import RunConstants
from devrun.infra.errors import RunError
from devrun.infra.meta import (
    discover_directories,
    meta_exists,
    read_meta_document,
    write_meta_document,
)
from devrun.utils.ids import create_id

if TYPE_CHECKING:
    from devrun.cli.shared.console import CLIConsole

META_TYPES = ("project", "app", "config")
CHANGEABLE_PROPERTIES = ("id", "name", "type", "global")


class MetaScaffolder:
    """Creates and edits the meta.json of a directory."""

    def __init__(
        self, console: CLIConsole, cwd: Path, constants: RunConstants | None = None
    ) -> None:
        self.console = console
        self.cwd = cwd
        self.constants = constants or RunConstants()

    def create(
        self, name: str, meta_type: str, *, global_: bool = False, force: bool = False
    ) -> Path:
        """Write a fresh meta.json with a new id.

        Raises:
            RunError: If the type is unknown, or the file exists without ``force``
        """
        if meta_type not in META_TYPES:
            raise RunError(f"Unknown meta type '{meta_type}'", details=f"Use one of {META_TYPES}")
        if meta_exists(self.cwd) and not force:
            raise RunError(
                f"meta.json already exists in {self.cwd}",
                details="Use --force to overwrite it.",
            )

        document: dict[str, Any] = {"id": create_id(), "name": name, "type": meta_type}
        if global_:
            document["global"] = True
        path = write_meta_document(self.cwd, document)
        self.console.ok(f"Created {path}")
        return path

    def change(self, prop: str, value: Any = None) -> dict[str, Any]:
        """Update one property of the existing meta.json.

        ``id`` is regenerated and ignores ``value``; ``global`` is removed
        when set to a false value.

        Returns:
            The written document
        """
        if prop not in CHANGEABLE_PROPERTIES:
            raise RunError(f"Property '{prop}' cannot be changed")
        document = read_meta_document(self.cwd)

        if prop == "id":
            document["id"] = create_id()
        elif prop == "type":
            if value not in META_TYPES:
                raise RunError(f"Unknown meta type '{value}'")
            document["type"] = value
        elif prop == "global":
            if value:
                document["global"] = True
            else:
                document.pop("global", None)
        else:
            if not value:
                raise RunError("Name cannot be empty")
            document["name"] = value

        write_meta_document(self.cwd, document)
        self.console.ok(f"Updated {prop} in meta.json")
        return document

    def regenerate_ids(self, start: Path) -> list[Path]:
        """Give every meta.json below ``start`` (and ``start`` itself) a new id.

        Directories under ``<start>/dev`` are left alone.

        Returns:
            Directories whose meta.json was rewritten
        """
        skipped = start / "dev"
        updated: list[Path] = []
        for directory in [*discover_directories(start), start]:
            if directory == skipped or skipped in directory.parents:
                continue
            if not meta_exists(directory):
                continue
            document = read_meta_document(directory)
            document["id"] = create_id()
            write_meta_document(directory, document)
            logger.debug(f"New id for {directory}")
            updated.append(directory)
        self.console.ok(f"Regenerated {len(updated)} ids")
        return updated
