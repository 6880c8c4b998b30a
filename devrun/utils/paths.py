import os
from pathlib import Path


def get_source_root(default: Path | None = None) -> Path:
    """Get the monorepo source root.

    The root is taken from the ``SRC`` environment variable, which every
    devcontainer exports. Falls back to ``default`` or the current directory.

    Returns:
        Path to the monorepo root directory
    """
    src = os.environ.get("SRC")
    if src:
        return Path(src)
    return default or Path.cwd()


def detect_scripts_directory(path: Path) -> Path:
    """Map an app's ``scripts/`` folder to the app directory itself."""
    if path.name == "scripts":
        return path.parent
    return path
