"""Docker Compose workflows for an app's compose components."""

from __future__ import annotations

import os
import subprocess
import tempfile
import time
from collections.abc import Callable, Iterator, Sequence
from contextlib import contextmanager
from pathlib import Path
from typing import TYPE_CHECKING

import yaml
from loguru import logger

from devrun.cli.shared.compose import ComposeRunner
from devrun.infra.constants import RunConstants
from devrun.infra.errors import RunError
from devrun.infra.meta import require_meta

if TYPE_CHECKING:
    from devrun.cli.shared.console import CLIConsole
    from devrun.cli.shell_commands import ShellCommands


def default_service(compose_file: Path) -> str:
    """Return the first service declared in a compose file.

    Raises:
        RunError: If the file cannot be read or declares no services
    """
    try:
        document = yaml.safe_load(compose_file.read_text(encoding="utf-8")) or {}
    except (OSError, yaml.YAMLError) as e:
        raise RunError(f"Unable to read {compose_file}", details=str(e)) from e

    services = document.get("services") if isinstance(document, dict) else None
    if not services:
        raise RunError(f"No services declared in {compose_file}")
    return next(iter(services))


@contextmanager
def temporary_env_file(pairs: Sequence[str]) -> Iterator[Path]:
    """Write ``KEY=VALUE`` pairs to a throwaway env file."""
    for pair in pairs:
        if "=" not in pair:
            raise RunError(f"Invalid --env entry '{pair}'", details="Expected KEY=VALUE")

    fd, name = tempfile.mkstemp(prefix="compose-env-", suffix=".env")
    path = Path(name)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            handle.write("\n".join(pairs) + "\n")
        yield path
    finally:
        path.unlink(missing_ok=True)


class ComposeOperations:
    """Runs compose commands against the files declared in meta.json."""

    def __init__(
        self,
        commands: ShellCommands,
        console: CLIConsole,
        cwd: Path,
        constants: RunConstants | None = None,
        *,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.commands = commands
        self.console = console
        self.cwd = cwd
        self.constants = constants or RunConstants()
        self._sleep = sleep
        self._clock = clock

    def runner(
        self, component: str | None = None, filename: str | None = None
    ) -> ComposeRunner:
        """Build a ComposeRunner for a compose component.

        The project name comes from ``$PROJECT`` unless the component sets
        ``use_project_env`` to false.
        """
        meta = require_meta(self.cwd)
        config = meta.compose_component(component or self.constants.DEFAULT_COMPONENT)
        compose_file = self.cwd / config.root / (filename or config.filename)
        project_name = os.environ.get("PROJECT") if config.use_project_env else None
        return ComposeRunner(
            self.cwd, compose_file=compose_file, project_name=project_name or None
        )

    @staticmethod
    def _checked(action: str, call: Callable[[], object]) -> None:
        try:
            call()
        except subprocess.CalledProcessError as e:
            raise RunError(f"docker compose {action} failed (exit {e.returncode})") from e

    def up(
        self,
        component: str | None = None,
        *,
        env: Sequence[str] = (),
        envfile: str | None = None,
        force_recreate: bool = False,
        detach: bool = False,
        build: bool = False,
    ) -> None:
        """Recreate the stack: ``down`` first, then ``up``."""
        runner = self.runner(component)
        self._checked("down", runner.down)

        def start(env_file: Path | None) -> None:
            self._checked(
                "up",
                lambda: runner.up(
                    env_file=env_file,
                    force_recreate=force_recreate,
                    detach=detach,
                    build=build,
                ),
            )

        if env:
            with temporary_env_file(env) as env_file:
                start(env_file)
        else:
            start(Path(envfile) if envfile else None)

    def down(self, component: str | None = None) -> None:
        self._checked("down", self.runner(component).down)

    def build(
        self,
        component: str | None = None,
        *,
        cache: bool = False,
        filename: str | None = None,
    ) -> None:
        runner = self.runner(component, filename)
        self._checked("build", lambda: runner.build(no_cache=not cache))

    def logs(
        self,
        component: str | None = None,
        *,
        service: str | None = None,
        follow: bool = False,
        tail: int | None = None,
    ) -> None:
        runner = self.runner(component)
        self._checked(
            "logs", lambda: runner.logs(service=service, follow=follow, tail=tail)
        )

    def wait_for_container(self, name: str, timeout: float | None = None) -> None:
        """Poll ``docker ps`` until a running container's name contains ``name``.

        Raises:
            RunError: If ``timeout`` seconds elapse first
        """
        deadline = None if timeout is None else self._clock() + timeout
        while True:
            containers = self.commands.docker.running_containers()
            if any(name in container.names for container in containers):
                logger.debug(f"Container {name} is running")
                return
            if deadline is not None and self._clock() >= deadline:
                raise RunError(f"Timed out waiting for container '{name}'")
            self.console.info(f"Waiting for container {name} to start...")
            self._sleep(self.constants.CONTAINER_POLL_INTERVAL)

    def exec(
        self,
        instructions: str,
        *,
        container: str | None = None,
        component: str | None = None,
        filename: str | None = None,
        envfile: str | None = None,
        timeout: float | None = None,
    ) -> None:
        """Run a bash snippet inside a compose service once it is running."""
        runner = self.runner(component, filename)
        target = container or default_service(runner.compose_file)
        self.wait_for_container(target, timeout=timeout)
        self._checked(
            "exec",
            lambda: runner.exec(
                target, instructions, env_file=Path(envfile) if envfile else None
            ),
        )
