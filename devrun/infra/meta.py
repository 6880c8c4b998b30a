"""meta.json discovery and parsing.

Every project, app and config directory of the monorepo carries a
``meta.json`` descriptor. This module loads those descriptors into pydantic
models, resolves ``${VAR}`` and ``${this.path}`` placeholders, and walks the
tree to find directories whose descriptor matches a property.
"""

from __future__ import annotations

import json
import os
import re
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from loguru import logger
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from devrun.infra.constants import RunConstants
from devrun.infra.errors import MetaConfigError, RunError

_CONSTANTS = RunConstants()
_PLACEHOLDER_PATTERN = re.compile(r"\$\{([^}]*)\}")
_SELF_PREFIX = "this."


class _MetaSection(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)


class SecretsConfig(_MetaSection):
    base: str | None = None


class DockerComponent(_MetaSection):
    root: str = "."
    image: str
    env_based: bool = True
    context_dir: str | None = None
    tag_modifiers: list[str | None] = Field(default_factory=list)


class ComposeComponent(_MetaSection):
    root: str = "."
    filename: str = _CONSTANTS.DEFAULT_COMPOSE_FILE
    use_project_env: bool = True


class TerraformComponent(_MetaSection):
    path: str
    global_: bool = Field(False, alias="global")
    containers: list[str] = Field(default_factory=list)


class HasuraConfig(_MetaSection):
    state: str = _CONSTANTS.DEFAULT_HASURA_STATE


class TunnelEntry(_MetaSection):
    hostname: str
    service: str


class TmuxPane(_MetaSection):
    name: str
    path: str | None = None
    split: str | None = None
    size: int | str | None = None
    command: str | None = None


class TmuxWindow(_MetaSection):
    name: str
    panes: list[TmuxPane] = Field(default_factory=list)


class TmuxSession(_MetaSection):
    name: str
    root: str | None = None
    windows: list[TmuxWindow] = Field(default_factory=list)


class TmuxConfig(_MetaSection):
    sessions: list[TmuxSession] = Field(default_factory=list)


class CustomScriptConfig(_MetaSection):
    root: str = _CONSTANTS.DEFAULT_SCRIPTS_ROOT


class DevelopmentConfig(_MetaSection):
    init: list[str] = Field(default_factory=list)


class MetaConfig(_MetaSection):
    """Parsed ``meta.json`` descriptor.

    Only the sections devrun reads are typed; any other key is preserved as
    an extra attribute and in :attr:`raw`.
    """

    id: str | None = None
    name: str | None = None
    type: str | None = None
    global_: bool = Field(False, alias="global")
    port: int | str | None = None
    secrets: SecretsConfig | None = None
    docker: dict[str, DockerComponent] = Field(default_factory=dict)
    compose: dict[str, ComposeComponent] = Field(default_factory=dict)
    terraform: dict[str, TerraformComponent] = Field(default_factory=dict)
    hasura: HasuraConfig | None = None
    tunnel: dict[str, TunnelEntry | str] = Field(default_factory=dict)
    routines: dict[str, str] = Field(default_factory=dict)
    tmux: TmuxConfig | None = None
    custom_script: CustomScriptConfig | None = None
    development: DevelopmentConfig | None = None

    @property
    def raw(self) -> dict[str, Any]:
        """Return the resolved document as plain JSON-compatible data."""
        return self.model_dump(by_alias=True, exclude_unset=True)

    def docker_component(self, component: str) -> DockerComponent:
        if component not in self.docker:
            raise RunError(f"No docker component '{component}' in meta.json")
        return self.docker[component]

    def compose_component(self, component: str) -> ComposeComponent:
        if component not in self.compose:
            raise RunError(f"No compose component '{component}' in meta.json")
        return self.compose[component]

    def terraform_component(self, component: str) -> TerraformComponent:
        if component not in self.terraform:
            raise RunError(f"No terraform component '{component}' in meta.json")
        return self.terraform[component]


# =============================================================================
# Placeholder resolution
# =============================================================================


def substitute_env_placeholders(data: Any, env: Mapping[str, str]) -> Any:
    """Replace ``${VAR}`` placeholders with environment values, recursively.

    ``${this.path}`` placeholders are kept for :func:`resolve_self_references`.
    Unknown variables resolve to an empty string.
    """
    if isinstance(data, str):

        def replacer(match: re.Match[str]) -> str:
            name = match.group(1)
            if name.startswith(_SELF_PREFIX):
                return match.group(0)
            return env.get(name, "")

        return _PLACEHOLDER_PATTERN.sub(replacer, data)
    if isinstance(data, dict):
        return {key: substitute_env_placeholders(value, env) for key, value in data.items()}
    if isinstance(data, list):
        return [substitute_env_placeholders(item, env) for item in data]
    return data


def get_dotted(document: Mapping[str, Any], path: str) -> Any:
    """Look up ``a.b.c`` in nested mappings, returning None when absent."""
    current: Any = document
    for key in path.split("."):
        if not isinstance(current, Mapping) or key not in current:
            return None
        current = current[key]
    return current


def resolve_self_references(document: dict[str, Any]) -> dict[str, Any]:
    """Replace ``${this.a.b}`` placeholders with values from the document."""

    def resolve(value: Any) -> Any:
        if isinstance(value, str):

            def replacer(match: re.Match[str]) -> str:
                name = match.group(1)
                if not name.startswith(_SELF_PREFIX):
                    return match.group(0)
                found = get_dotted(document, name[len(_SELF_PREFIX) :])
                return "" if found is None else str(found)

            return _PLACEHOLDER_PATTERN.sub(replacer, value)
        if isinstance(value, dict):
            return {key: resolve(item) for key, item in value.items()}
        if isinstance(value, list):
            return [resolve(item) for item in value]
        return value

    return resolve(document)


# =============================================================================
# Loading
# =============================================================================


def meta_path(directory: Path) -> Path:
    return Path(directory) / _CONSTANTS.META_FILENAME


def meta_exists(directory: Path) -> bool:
    return meta_path(directory).is_file()


def read_meta_document(directory: Path) -> dict[str, Any]:
    """Read a meta.json file verbatim, without placeholder resolution.

    Raises:
        MetaConfigError: If the file is missing or is not a JSON object
    """
    path = meta_path(directory)
    try:
        document = json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError as e:
        raise MetaConfigError(f"No meta.json found in {directory}") from e
    except json.JSONDecodeError as e:
        raise MetaConfigError(f"Invalid JSON in {path}", details=str(e)) from e
    if not isinstance(document, dict):
        raise MetaConfigError(f"{path} must contain a JSON object")
    return document


def write_meta_document(directory: Path, document: Mapping[str, Any]) -> Path:
    """Write a meta.json document with two-space indentation."""
    path = meta_path(directory)
    path.write_text(json.dumps(document, indent=2) + "\n", encoding="utf-8")
    return path


def load_meta(
    directory: Path, *, env: Mapping[str, str] | None = None
) -> MetaConfig | None:
    """Load and resolve the meta.json of a directory.

    Args:
        directory: Directory that may contain a meta.json file
        env: Environment used for ``${VAR}`` placeholders (defaults to os.environ)

    Returns:
        Parsed MetaConfig, or None when the directory has no meta.json

    Raises:
        MetaConfigError: If the file exists but is invalid
    """
    if not meta_exists(directory):
        return None

    document = read_meta_document(directory)
    document = substitute_env_placeholders(document, os.environ if env is None else env)
    document = resolve_self_references(document)

    try:
        meta = MetaConfig.model_validate(document)
    except ValidationError as e:
        raise MetaConfigError(
            f"Invalid meta.json in {directory}", details=str(e)
        ) from e

    logger.debug(f"Loaded meta.json for '{meta.name}' from {directory}")
    return meta


def require_meta(directory: Path) -> MetaConfig:
    """Load a directory's meta.json, failing when it does not exist."""
    meta = load_meta(directory)
    if meta is None:
        raise RunError(
            f"No meta.json found in {directory}",
            details="Run 'run meta create' to scaffold one.",
        )
    return meta


# =============================================================================
# Discovery
# =============================================================================


def discover_directories(root: Path) -> list[Path]:
    """Walk ``root`` depth-first and return every subdirectory.

    The root itself is not included. ``node_modules``, ``.git`` and
    ``.terraform`` directories are neither returned nor descended into.
    """
    found: list[Path] = []
    try:
        entries = sorted(Path(root).iterdir())
    except OSError as e:
        logger.warning(f"Unable to list {root}: {e}")
        return found

    for entry in entries:
        if not entry.is_dir() or entry.is_symlink():
            continue
        if entry.name in _CONSTANTS.SKIPPED_DIRECTORIES:
            continue
        found.append(entry)
        found.extend(discover_directories(entry))
    return found


def iter_metas(
    root: Path, *, include_root: bool = False
) -> list[tuple[Path, MetaConfig]]:
    """Return ``(directory, meta)`` pairs for every meta.json below ``root``.

    Invalid descriptors are logged and skipped so one broken app does not
    stop a monorepo-wide operation.
    """
    directories = discover_directories(root)
    if include_root:
        directories.insert(0, Path(root))

    results: list[tuple[Path, MetaConfig]] = []
    for directory in directories:
        try:
            meta = load_meta(directory)
        except MetaConfigError as e:
            logger.warning(f"Skipping {directory}: {e.message}")
            continue
        if meta is not None:
            results.append((directory, meta))
    return results


def with_meta_matching(
    property: str, value: Any = None, root: Path | None = None
) -> list[tuple[Path, MetaConfig]]:
    """Find directories whose meta.json has a property (optionally equal to a value).

    Args:
        property: Dotted property path (e.g. ``development.init``)
        value: When given, the property must equal this value
        root: Directory to search from (defaults to ``$SRC`` or cwd)

    Returns:
        Matching ``(directory, meta)`` pairs in discovery order
    """
    if root is None:
        root = Path(os.environ.get("SRC") or Path.cwd())

    matches: list[tuple[Path, MetaConfig]] = []
    for directory, meta in iter_metas(root):
        found = get_dotted(meta.raw, property)
        if found is None:
            continue
        if value is None or found == value:
            matches.append((directory, meta))
    return matches
