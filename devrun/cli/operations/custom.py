"""Custom Python scripts living next to an app.

A script is a module under the app's script root exposing
``main(arguments, options)``. ``options`` is a :class:`CustomOptions`
carrying the environment, the parsed meta.json, service URLs and a small
toolbox (:class:`ScriptUtils`) for running commands.
"""

from __future__ import annotations

import importlib.util
import os
import shlex
import shutil
import sys
from collections.abc import Mapping, Sequence
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any

from loguru import logger

from devrun.infra.constants import RunConstants
from devrun.infra.errors import RunError
from devrun.infra.meta import MetaConfig, require_meta

if TYPE_CHECKING:
    from devrun.cli.shared.console import CLIConsole
    from devrun.cli.shell_commands import ShellCommands


@dataclass
class ScriptUrls:
    internal: str
    local: str
    tunnel: str | None = None


class ScriptUtils:
    """Helpers handed to custom scripts.

    Args:
        arguments: Positional arguments given after the script name
        inputs: ``key=value`` entries given with ``--input``
        run_all: Whether ``--all`` was passed
        commands: Shell command executor
        cwd: Directory commands run in
    """

    def __init__(
        self,
        arguments: Sequence[str],
        inputs: Sequence[str],
        run_all: bool,
        commands: ShellCommands,
        cwd: Path,
    ) -> None:
        self.arguments = list(arguments)
        self.inputs = list(inputs)
        self.run_all = run_all
        self._commands = commands
        self._cwd = cwd

    def extract(self, name: str) -> str | None:
        """Return the value of the ``name=value`` input, if any."""
        prefix = f"{name}="
        for entry in self.inputs:
            if entry.startswith(prefix):
                return entry[len(prefix) :]
        return None

    def has(self, argument: str) -> bool:
        return argument in self.arguments

    @staticmethod
    def cmd(command: str) -> list[str]:
        return shlex.split(command)

    def _selected(self, config: Mapping[str, Any]) -> list[str]:
        commands: Mapping[str, Any] = config.get("commands") or {}
        groups: Mapping[str, Sequence[str]] = config.get("groups") or {}

        if self.run_all:
            return list(commands)
        for argument in self.arguments:
            if argument in groups:
                return list(groups[argument])
        return [argument for argument in self.arguments if argument in commands]

    def start(self, config: Mapping[str, Any]) -> list[str]:
        """Run the commands selected by the script arguments concurrently.

        ``config["commands"]`` maps names to a command string (or a list of
        strings run in order); ``config["groups"]`` maps a group name to
        command names. The first argument naming a group wins; otherwise
        every argument naming a command is run. ``--all`` runs them all.

        Returns:
            Names of the commands that were run

        Raises:
            RunError: If any command fails
        """
        commands: Mapping[str, Any] = config.get("commands") or {}
        selected = self._selected(config)
        if not selected:
            logger.warning("No command or group matches the script arguments")
            return []

        unknown = [name for name in selected if name not in commands]
        if unknown:
            raise RunError(f"Unknown command(s): {', '.join(unknown)}")

        def run_entry(name: str) -> None:
            entry = commands[name]
            for line in [entry] if isinstance(entry, str) else entry:
                result = self._commands.runner.run(
                    self.cmd(line), cwd=self._cwd, capture_output=False
                )
                if not result.success:
                    raise RunError(f"Command '{name}' failed: {line}")

        with ThreadPoolExecutor(max_workers=len(selected)) as pool:
            futures = [pool.submit(run_entry, name) for name in selected]
        for future in futures:
            future.result()
        return selected


@dataclass
class CustomOptions:
    """Second argument of a custom script's ``main``."""

    env: dict[str, str]
    meta: MetaConfig
    run: str
    url: ScriptUrls
    utils: ScriptUtils
    input: list[str] = field(default_factory=list)
    all: bool = False
    context: Path = field(default_factory=Path.cwd)


def service_urls(meta: MetaConfig, env: Mapping[str, str]) -> ScriptUrls:
    """Build the internal, local and (when tunnelled) public URLs of the app."""
    port = env.get("PORT", "")
    urls = ScriptUrls(
        internal=f"http://host.docker.internal:{port}",
        local=f"http://localhost:{port}",
    )
    if meta.tunnel:
        base = env.get("CLOUDFLARED_TUNNEL_URL", "")
        subdomain = meta.tunnel.get("subdomain")
        if isinstance(subdomain, str) and subdomain:
            urls.tunnel = f"https://{subdomain}.{base}"
        else:
            urls.tunnel = f"https://{base}"
    return urls


def load_script(path: Path) -> Any:
    """Import a script module from its file path."""
    spec = importlib.util.spec_from_file_location(f"devrun_custom_{path.stem}", path)
    if spec is None or spec.loader is None:
        raise RunError(f"Unable to load {path}")
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


class CustomScripts:
    """Lists and runs the custom scripts of the app in ``cwd``."""

    def __init__(
        self,
        commands: ShellCommands,
        console: CLIConsole,
        cwd: Path,
        constants: RunConstants | None = None,
    ) -> None:
        self.commands = commands
        self.console = console
        self.cwd = cwd
        self.constants = constants or RunConstants()

    def script_root(self, *, test: bool = False) -> Path:
        if test:
            return self.cwd / self.constants.DEFAULT_TEST_ROOT
        meta = require_meta(self.cwd)
        root = meta.custom_script.root if meta.custom_script else self.constants.DEFAULT_SCRIPTS_ROOT
        return self.cwd / root

    def available(self, *, test: bool = False) -> list[str]:
        root = self.script_root(test=test)
        if not root.is_dir():
            return []
        return sorted(
            path.stem for path in root.glob("*.py") if not path.name.startswith("_")
        )

    def run(
        self,
        script: str,
        arguments: Sequence[str] = (),
        *,
        inputs: Sequence[str] = (),
        run_all: bool = False,
        test: bool = False,
    ) -> Any:
        """Import ``<root>/<script>.py`` and call its ``main``.

        Returns:
            Whatever the script's ``main`` returns
        """
        meta = require_meta(self.cwd)
        path = self.script_root(test=test) / f"{script}.py"
        if not path.is_file():
            raise RunError(
                f"Script '{script}' not found",
                details=f"Looked for {path}",
            )

        module = load_script(path)
        entry = getattr(module, "main", None)
        if not callable(entry):
            raise RunError(f"{path.name} does not define main(arguments, options)")

        env = dict(os.environ)
        options = CustomOptions(
            env=env,
            meta=meta,
            run=shutil.which("run") or sys.argv[0],
            url=service_urls(meta, env),
            utils=ScriptUtils(arguments, inputs, run_all, self.commands, self.cwd),
            input=list(inputs),
            all=run_all,
            context=self.cwd,
        )
        logger.debug(f"Running custom script {path}")
        return entry(list(arguments), options)
