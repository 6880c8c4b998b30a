"""Docker Compose command helpers."""

from __future__ import annotations

import subprocess
from collections.abc import Sequence
from pathlib import Path

from loguru import logger


class ComposeRunner:
    """Wrapper for Docker Compose commands with consistent defaults."""

    def __init__(
        self,
        working_dir: Path,
        *,
        compose_file: Path,
        project_name: str | None = None,
    ) -> None:
        self._working_dir = working_dir
        self._compose_file = compose_file
        self._project_name = project_name

    @property
    def compose_file(self) -> Path:
        return self._compose_file

    def _base_cmd(self) -> list[str]:
        cmd = ["docker", "compose"]
        if self._project_name:
            cmd.extend(["-p", self._project_name])
        cmd.extend(["-f", str(self._compose_file)])
        return cmd

    def run(
        self,
        args: Sequence[str],
        *,
        capture_output: bool = False,
        check: bool = False,
    ) -> subprocess.CompletedProcess[str]:
        cmd = self._base_cmd() + list(args)
        logger.debug(f"$ {' '.join(cmd)}")
        return subprocess.run(
            cmd,
            cwd=self._working_dir,
            capture_output=capture_output,
            text=True,
            check=check,
        )

    def up(
        self,
        *,
        env_file: Path | None = None,
        force_recreate: bool = False,
        detach: bool = False,
        build: bool = False,
    ) -> subprocess.CompletedProcess[str]:
        args: list[str] = []
        if env_file is not None:
            args.extend(["--env-file", str(env_file)])
        args.append("up")
        if force_recreate:
            args.append("--force-recreate")
        if detach:
            args.append("--detach")
        if build:
            args.append("--build")
        return self.run(args, check=True)

    def down(self) -> subprocess.CompletedProcess[str]:
        return self.run(["down"], check=True)

    def exec(
        self,
        container: str,
        instructions: str,
        *,
        env_file: Path | None = None,
    ) -> subprocess.CompletedProcess[str]:
        args: list[str] = []
        if env_file is not None:
            args.extend(["--env-file", str(env_file)])
        args.extend(["exec", container, "/bin/bash", "-c", instructions])
        return self.run(args, check=True)

    def logs(
        self,
        *,
        service: str | None = None,
        follow: bool = False,
        tail: int | None = None,
    ) -> subprocess.CompletedProcess[str]:
        args = ["logs"]
        if tail is not None:
            args.append(f"--tail={tail}")
        if follow:
            args.append("--follow")
        if service:
            args.append(service)
        return self.run(args, check=True)

    def build(
        self, *, service: str | None = None, no_cache: bool = False
    ) -> subprocess.CompletedProcess[str]:
        args = ["build"]
        if no_cache:
            args.append("--no-cache")
        if service:
            args.append(service)
        return self.run(args, check=True)
