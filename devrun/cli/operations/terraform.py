"""Terraform workflows for an app's terraform components.

This module handles:
- Backend configuration per component (global or per environment)
- Apply and destroy runs with image digests injected as ``TF_VAR_``s
- Regenerating variable declarations from ``.env`` files by splicing the
  text between comment banners
- Cleaning local ``.terraform`` state and removing stale remote locks
"""

from __future__ import annotations

import os
import re
import shutil
from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import TYPE_CHECKING

from loguru import logger

from devrun.cli.operations.images import ImageRegistrar
from devrun.infra.constants import RunConstants
from devrun.infra.environment import (
    current_environment,
    project_terraform_defaults,
    read_target_env,
    terraform_variable_lines,
)
from devrun.infra.errors import RunError
from devrun.infra.meta import MetaConfig, load_meta, require_meta
from devrun.utils.paths import get_source_root

if TYPE_CHECKING:
    from devrun.cli.shared.console import CLIConsole
    from devrun.cli.shell_commands import ShellCommands


# =============================================================================
# Text splicing
# =============================================================================


def comment_banner(title: str, width: int, indent: int = 0) -> str:
    """Render a ``#`` banner block, one line per row, with trailing newline."""
    pad = " " * indent
    rule = pad + "#" * width
    return f"{rule}\n{pad}# {title}\n{rule}\n"


def replace_between_markers(content: str, start: str, end: str, body: str) -> str:
    """Replace everything between each ``start``/``end`` pair with ``body``.

    The markers themselves are kept; the new body is surrounded by blank
    lines. Content without the markers is returned unchanged.
    """
    pattern = re.compile(re.escape(start) + r".*?" + re.escape(end), re.DOTALL)
    replacement = f"{start}\n\n{body}\n\n{end}"
    return pattern.sub(lambda _: replacement, content)


def variable_declarations(names: Sequence[str]) -> str:
    return "\n".join(f'variable "{name}" {{}}' for name in names)


def container_env_blocks(names: Sequence[str], indent: int) -> str:
    """Render ``env { name value }`` blocks for a container definition."""
    pad = " " * indent
    blocks = [
        f'{pad}env {{\n{pad}  name  = "{name}"\n{pad}  value = var.{name}\n{pad}}}'
        for name in names
        if name != "PORT"
    ]
    return "\n\n".join(blocks)


def render_variables_file(names: Sequence[str]) -> str:
    """Render a complete variables.tf with declarations and an env locals list."""
    entries = "\n".join(
        f'    {{\n      name  = "{name}"\n      value = var.{name}\n    }},'
        for name in names
        if name != "PORT"
    )
    return (
        "# variables.tf\n\n"
        f"{variable_declarations(names)}\n\n"
        "locals {\n"
        "  env_vars = [\n"
        f"{entries}\n"
        "  ]\n"
        "}\n"
    )


_EXPLICIT_TF_VAR = re.compile(r"^TF_VAR_[A-Z_][A-Z0-9_]*=.*$", re.MULTILINE)


def _tf_names(lines: Sequence[str]) -> list[str]:
    names: list[str] = []
    for line in lines:
        name = line.split("=", 1)[0]
        if name.startswith("TF_VAR_") and name[len("TF_VAR_") :] not in names:
            names.append(name[len("TF_VAR_") :])
    return names


# =============================================================================
# Operations
# =============================================================================


class TerraformOperations:
    """Runs terraform for the components declared in meta.json."""

    def __init__(
        self,
        commands: ShellCommands,
        console: CLIConsole,
        cwd: Path,
        constants: RunConstants | None = None,
        images: ImageRegistrar | None = None,
    ) -> None:
        self.commands = commands
        self.console = console
        self.cwd = cwd
        self.constants = constants or RunConstants()
        self.images = images or ImageRegistrar(commands, console, cwd, self.constants)
        os.environ.setdefault(
            "GOOGLE_APPLICATION_CREDENTIALS", self.constants.DEFAULT_GCP_CREDENTIALS
        )

    # =========================================================================
    # Backend
    # =========================================================================

    def backend_prefix(
        self, meta: MetaConfig, component: str, environment: str | None = None
    ) -> str:
        config = meta.terraform_component(component)
        scope = "global" if config.global_ else (environment or current_environment())
        return f"{meta.id}/{scope}/terraform/{component}"

    def backend_config(self, component: str) -> list[str]:
        """Return ``bucket=`` and ``prefix=`` entries for ``terraform init``."""
        meta = require_meta(self.cwd)
        bucket = os.environ.get("TERRAFORM_BUCKET_NAME")
        if not bucket:
            raise RunError("TERRAFORM_BUCKET_NAME is not set")
        return [f"bucket={bucket}", f"prefix={self.backend_prefix(meta, component)}"]

    def _component_dir(self, component: str) -> Path:
        meta = require_meta(self.cwd)
        return self.cwd / meta.terraform_component(component).path

    # =========================================================================
    # Apply / destroy
    # =========================================================================

    def image_digest_env(
        self,
        component: str,
        *,
        arch: str = "amd64",
        modifiers: Sequence[str] = (),
        empty: bool = False,
    ) -> dict[str, str]:
        """Build ``TF_VAR_IMAGE_DIGEST_<CONTAINER>`` values for a component.

        Args:
            component: Terraform component name
            arch: Architecture whose digest is pinned
            modifiers: ``container:modifier`` entries selecting tag modifiers
            empty: Produce empty values (used on destroy)
        """
        meta = require_meta(self.cwd)
        by_container: dict[str, str] = {}
        for entry in modifiers:
            container, sep, modifier = entry.partition(":")
            if not sep:
                raise RunError(
                    f"Invalid modifier '{entry}'", details="Expected container:modifier"
                )
            by_container[container] = modifier

        env: dict[str, str] = {}
        for container in meta.terraform_component(component).containers:
            key = f"TF_VAR_IMAGE_DIGEST_{container.upper()}"
            if empty:
                env[key] = ""
                continue
            env[key] = self.images.digest(
                arch, container, modifier=by_container.get(container)
            )
            logger.debug(f"{key}={env[key]}")
        return env

    def _init(self, component: str, directory: Path, env: Mapping[str, str], clean: bool) -> None:
        if clean:
            shutil.rmtree(directory / ".terraform", ignore_errors=True)
        result = self.commands.terraform.init(
            directory, self.backend_config(component), env=env
        )
        if not result.success:
            raise RunError(f"terraform init failed for {component}")

    def activate(
        self,
        component: str,
        *,
        arch: str = "amd64",
        modifiers: Sequence[str] = (),
        clean: bool = False,
    ) -> None:
        """Init, plan and apply a component."""
        directory = self._component_dir(component)
        env = self.image_digest_env(component, arch=arch, modifiers=modifiers)

        self._init(component, directory, env, clean)
        if not self.commands.terraform.plan(directory, env=env).success:
            raise RunError(f"terraform plan failed for {component}")
        if not self.commands.terraform.apply(directory, env=env).success:
            raise RunError(f"terraform apply failed for {component}")
        self.console.ok(f"Applied {component}")

    def destroy(self, component: str, *, clean: bool = False) -> None:
        """Init, plan the destruction of and destroy a component."""
        directory = self._component_dir(component)
        env = self.image_digest_env(component, empty=True)

        self._init(component, directory, env, clean)
        if not self.commands.terraform.plan(directory, destroy=True, env=env).success:
            raise RunError(f"terraform plan -destroy failed for {component}")
        if not self.commands.terraform.destroy(directory, env=env).success:
            raise RunError(f"terraform destroy failed for {component}")
        self.console.ok(f"Destroyed {component}")

    # =========================================================================
    # Variables
    # =========================================================================

    def variable_names(self, component: str, target: str) -> tuple[list[str], list[str]]:
        """Compute the TF_VAR lines and variable names for a component.

        Returns:
            ``(lines, names)`` where lines are ``TF_VAR_NAME=value`` entries
        """
        meta = require_meta(self.cwd)
        content = read_target_env(self.cwd, target, meta)
        if content is None:
            raise RunError(f"No .env.{target} file found in {self.cwd}")

        lines = terraform_variable_lines(content)
        for container in meta.terraform_component(component).containers:
            name = f"TF_VAR_IMAGE_DIGEST_{container.upper()}"
            if not any(line.startswith(f"{name}=") for line in lines):
                lines.append(f"{name}=")
        lines = project_terraform_defaults(
            lines, meta, load_meta(get_source_root(self.cwd))
        )

        # TF_VAR_ lines written by hand outside the generated block
        c = self.constants
        handwritten = replace_between_markers(
            content,
            comment_banner(c.ENV_FILE_BLOCK_START, c.ENV_FILE_BANNER_WIDTH),
            comment_banner(c.ENV_FILE_BLOCK_END, c.ENV_FILE_BANNER_WIDTH),
            "",
        )
        explicit = _EXPLICIT_TF_VAR.findall(handwritten)
        return lines, _tf_names([*lines, *explicit])

    def update_variables(self, component: str, target: str) -> list[Path]:
        """Regenerate terraform variables from ``.env.<target>``.

        Marked blocks in variables.tf, main.tf and the env file are spliced;
        a variables.tf without markers is rewritten whole.

        Returns:
            Files that were written
        """
        lines, names = self.variable_names(component, target)
        directory = self._component_dir(component)
        c = self.constants
        written: list[Path] = []

        variables_tf = directory / "variables.tf"
        start = comment_banner(c.ENV_BLOCK_START, c.TF_BANNER_WIDTH)
        end = comment_banner(c.ENV_BLOCK_END, c.TF_BANNER_WIDTH)
        existing = variables_tf.read_text(encoding="utf-8") if variables_tf.exists() else ""
        if start in existing and end in existing:
            updated = replace_between_markers(
                existing, start, end, variable_declarations(names)
            )
        else:
            updated = render_variables_file(names)
        variables_tf.write_text(updated, encoding="utf-8")
        written.append(variables_tf)

        main_tf = directory / "main.tf"
        if main_tf.exists():
            start = comment_banner(c.ENV_BLOCK_START, c.TF_BANNER_WIDTH, c.MAIN_TF_INDENT)
            end = comment_banner(c.ENV_BLOCK_END, c.TF_BANNER_WIDTH, c.MAIN_TF_INDENT)
            content = main_tf.read_text(encoding="utf-8")
            if start in content:
                main_tf.write_text(
                    replace_between_markers(
                        content, start, end, container_env_blocks(names, c.MAIN_TF_INDENT)
                    ),
                    encoding="utf-8",
                )
                written.append(main_tf)

        env_file = self.cwd / f".env.{target}"
        start = comment_banner(c.ENV_FILE_BLOCK_START, c.ENV_FILE_BANNER_WIDTH)
        end = comment_banner(c.ENV_FILE_BLOCK_END, c.ENV_FILE_BANNER_WIDTH)
        content = env_file.read_text(encoding="utf-8")
        if start in content:
            env_file.write_text(
                replace_between_markers(content, start, end, "\n".join(lines)),
                encoding="utf-8",
            )
            written.append(env_file)

        for path in written:
            self.console.ok(f"Updated {path.relative_to(self.cwd)}")
        return written

    # =========================================================================
    # State housekeeping
    # =========================================================================

    def clean(self) -> list[Path]:
        """Remove the local ``.terraform`` folder of every component."""
        meta = require_meta(self.cwd)
        removed: list[Path] = []
        for name, component in meta.terraform.items():
            state = self.cwd / component.path / ".terraform"
            if state.exists():
                shutil.rmtree(state)
                removed.append(state)
                self.console.ok(f"State cleaned for {name}")
        return removed

    def unlock(self, component: str, environment: str | None = None) -> bool:
        """Delete a stale remote state lock.

        Returns:
            True if a lock was removed, False if none existed
        """
        meta = require_meta(self.cwd)
        bucket = os.environ.get("TERRAFORM_BUCKET_NAME")
        if not bucket:
            raise RunError("TERRAFORM_BUCKET_NAME is not set")

        prefix = self.backend_prefix(meta, component, environment)
        url = f"gs://{bucket}/{prefix}/{self.constants.TERRAFORM_LOCK_FILE}"

        if not self.commands.gcloud.storage_object_exists(url):
            self.console.info(f"No lock found at {url}")
            return False

        result = self.commands.gcloud.storage_remove(url)
        if not result.success:
            raise RunError(f"Failed to remove {url}", details=result.stderr)
        self.console.ok(f"Removed lock {url}")
        return True
