"""Environment and secret loading.

Local runs read the app's ``.env.<target>`` file (optionally merged with a
shared base file), derive ``TF_VAR_`` twins so terraform sees the same
values, and load the result into the process environment. Inside GitHub
Actions the same values are exported through the ``$GITHUB_ENV`` file.
"""

from __future__ import annotations

import os
import re
import tempfile
from collections.abc import Mapping
from pathlib import Path
from typing import TYPE_CHECKING

from dotenv import load_dotenv
from loguru import logger

from devrun.infra.constants import RunConstants
from devrun.infra.errors import RunError
from devrun.infra.meta import MetaConfig, load_meta
from devrun.utils.paths import get_source_root

if TYPE_CHECKING:
    from devrun.cli.shell_commands.git import GitCommands

_CONSTANTS = RunConstants()
_VARIABLE_LINE = re.compile(r"^(?!TF_VAR_)([A-Z_][A-Z0-9_]*)=(.*)$", re.MULTILINE)


def environment_for_branch(branch: str) -> str:
    """Map a git branch to a deployment environment name."""
    branch = branch.strip()
    if branch == _CONSTANTS.PRODUCTION_BRANCH:
        return _CONSTANTS.PRODUCTION_ENVIRONMENT
    return branch or _CONSTANTS.DEFAULT_ENVIRONMENT


def derive_environment(cwd: Path, git: GitCommands) -> str | None:
    """Set ``ENV`` from the current git branch.

    Args:
        cwd: Directory the CLI runs in
        git: Git command wrapper

    Returns:
        The environment name that was set, or None outside a git checkout
    """
    if not (cwd / ".git").exists():
        return None

    branch = git.current_branch(cwd=cwd)
    if branch is None:
        logger.warning("Failed to determine git branch, using default environment")
        environment = _CONSTANTS.DEFAULT_ENVIRONMENT
    else:
        environment = environment_for_branch(branch)

    os.environ["ENV"] = environment
    logger.debug(f"ENV set to '{environment}'")
    return environment


def current_environment() -> str:
    """Return the active environment name (``ENVIRONMENT`` wins over ``ENV``)."""
    return (
        os.environ.get("ENVIRONMENT")
        or os.environ.get("ENV")
        or _CONSTANTS.DEFAULT_ENVIRONMENT
    )


def terraform_variable_lines(content: str) -> list[str]:
    """Return ``TF_VAR_NAME=value`` lines for every plain variable in content.

    Variables already prefixed with ``TF_VAR_`` are left out. When a name is
    declared twice the first declaration wins.
    """
    seen: dict[str, str] = {}
    for name, value in _VARIABLE_LINE.findall(content):
        seen.setdefault(name, value)
    return [f"TF_VAR_{name}={value}" for name, value in seen.items()]


def _declared(lines: list[str], name: str) -> bool:
    prefix = f"{name}="
    return any(line.startswith(prefix) for line in lines)


def project_terraform_defaults(
    lines: list[str],
    meta: MetaConfig | None,
    project_meta: MetaConfig | None,
) -> list[str]:
    """Append project-level ``TF_VAR_`` values that the env file did not set.

    ``PROJECT``, ``APP`` and ``PORT`` are also exported to the process
    environment as a side effect, so compose and terraform calls see them.
    """
    extra: list[str] = []

    if not _declared(lines, "TF_VAR_PROJECT"):
        project = (project_meta.name if project_meta else None) or ""
        if project:
            os.environ["PROJECT"] = project
        extra.append(f"TF_VAR_PROJECT={project}")

    if not _declared(lines, "TF_VAR_APP"):
        app = (meta.name if meta else None) or ""
        if app:
            os.environ["APP"] = app
        extra.append(f"TF_VAR_APP={app}")

    if not _declared(lines, "TF_VAR_GCP_PROJECT_ID"):
        extra.append(f"TF_VAR_GCP_PROJECT_ID={os.environ.get('GCP_PROJECT_ID', '')}")

    if not _declared(lines, "TF_VAR_PORT") and meta and meta.port:
        os.environ["PORT"] = str(meta.port)
        extra.append(f"TF_VAR_PORT={meta.port}")

    return lines + extra


def read_target_env(cwd: Path, target: str, meta: MetaConfig | None) -> str | None:
    """Read ``.env.<target>``, prefixed with the meta ``secrets.base`` file.

    Returns:
        Combined file content, or None when a required file is missing
    """
    target_file = cwd / f".env.{target}"
    base = meta.secrets.base if meta and meta.secrets else None

    if base:
        base_file = cwd / base
        if not target_file.is_file() or not base_file.is_file():
            return None
        return base_file.read_text(encoding="utf-8") + "\n" + target_file.read_text(
            encoding="utf-8"
        )

    if not target_file.is_file():
        return None
    return target_file.read_text(encoding="utf-8")


def _load_profile(home: Path | None) -> None:
    profile = (home or Path.home()) / ".zprofile"
    if profile.is_file():
        load_dotenv(profile, override=False)


def load_local_secrets(target: str, cwd: Path, *, home: Path | None = None) -> bool:
    """Load the secrets of ``target`` for the app in ``cwd``.

    Args:
        target: Secrets target (e.g. ``local``, ``dev``, ``prod``)
        cwd: App directory holding meta.json and the env files
        home: Home directory holding ``.zprofile`` (defaults to ``~``)

    Returns:
        True when an env file was loaded, False otherwise
    """
    meta = load_meta(cwd)
    content = read_target_env(cwd, target, meta)
    if content is None:
        logger.debug(f"No .env.{target} in {cwd}, loading profile only")
        if not (meta and meta.secrets and meta.secrets.base):
            _load_profile(home)
        return False

    project_meta = load_meta(get_source_root(cwd))
    lines = project_terraform_defaults(
        terraform_variable_lines(content), meta, project_meta
    )

    fd, temp_name = tempfile.mkstemp(prefix=".env.", suffix=f".{target}")
    temp_path = Path(temp_name)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            handle.write(content.rstrip("\n") + "\n" + "\n".join(lines) + "\n")
        load_dotenv(temp_path, override=True, interpolate=True)
    finally:
        temp_path.unlink(missing_ok=True)

    _load_profile(home)
    logger.debug(f"Loaded .env.{target} secrets for {cwd}")
    return True


# =============================================================================
# GitHub Actions file protocol
# =============================================================================


def _append_to_env_file(variable: str, lines: list[str]) -> Path:
    target = os.environ.get(variable)
    if not target:
        raise RunError(f"${variable} is not set", details="Not running inside GitHub Actions")
    path = Path(target)
    with path.open("a", encoding="utf-8") as handle:
        for line in lines:
            handle.write(f"{line}\n")
    return path


def write_github_env(values: Mapping[str, str]) -> Path:
    """Append variables to the ``$GITHUB_ENV`` file.

    Multi-line values use the heredoc delimiter syntax.
    """
    lines: list[str] = []
    for name, value in values.items():
        if "\n" in value:
            delimiter = f"EOF_{name}"
            lines.extend([f"{name}<<{delimiter}", value, delimiter])
        else:
            lines.append(f"{name}={value}")
    return _append_to_env_file("GITHUB_ENV", lines)


def write_github_output(name: str, value: str) -> Path:
    """Append a step output to the ``$GITHUB_OUTPUT`` file."""
    return _append_to_env_file("GITHUB_OUTPUT", [f"{name}={value}"])
