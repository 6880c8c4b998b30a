"""Docker command abstractions.

This module provides commands for Docker image builds, buildx multi-arch
pushes, manifest lists and container inspection.
"""

from __future__ import annotations

import json
from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import TYPE_CHECKING, Any

from loguru import logger

from .types import CommandResult, RunningContainer

if TYPE_CHECKING:
    from .runner import CommandRunner


class DockerCommands:
    """Docker-related shell commands.

    Provides operations for:
    - Image builds (classic and buildx)
    - Manifest list inspection, creation and push
    - Digest lookup and running container discovery
    """

    def __init__(self, runner: CommandRunner) -> None:
        """Initialize Docker commands.

        Args:
            runner: Command runner for executing shell commands
        """
        self._runner = runner

    # =========================================================================
    # Builds
    # =========================================================================

    def build(
        self, dockerfile: str, tag: str, context: str, *, cwd: Path | None = None
    ) -> CommandResult:
        """Build an image with the classic builder, streaming output."""
        return self._runner.run_interactive(
            ["docker", "build", f"--file={dockerfile}", f"--tag={tag}", context],
            cwd=cwd,
        )

    def use_builder(
        self, name: str = "default", *, env: Mapping[str, str] | None = None
    ) -> CommandResult:
        """Select the active buildx builder."""
        return self._runner.run(["docker", "buildx", "use", name], env=env)

    def buildx_build(
        self,
        build_cmd: Sequence[str],
        *,
        cwd: Path | None = None,
        env: Mapping[str, str] | None = None,
    ) -> CommandResult:
        """Run a prepared ``docker buildx build`` vector attached to the terminal."""
        return self._runner.run_interactive(build_cmd, cwd=cwd, env=env)

    # =========================================================================
    # Manifests
    # =========================================================================

    def manifest_exists(
        self, image: str, *, env: Mapping[str, str] | None = None
    ) -> bool:
        """Check whether a remote manifest exists for ``image``."""
        result = self._runner.run(["docker", "manifest", "inspect", image], env=env)
        return result.success

    def manifest_inspect_verbose(self, image: str) -> Any:
        """Return the verbose manifest JSON of an image, or None on failure."""
        result = self._runner.run(
            ["docker", "manifest", "inspect", image, "--verbose"]
        )
        if not result.success or not result.stdout.strip():
            logger.debug(f"manifest inspect failed for {image}: {result.stderr}")
            return None
        try:
            return json.loads(result.stdout)
        except json.JSONDecodeError:
            logger.debug(f"manifest inspect returned invalid JSON for {image}")
            return None

    def manifest_create(
        self,
        name: str,
        sources: Sequence[str],
        *,
        env: Mapping[str, str] | None = None,
    ) -> CommandResult:
        """Create (or amend) a manifest list from per-arch images."""
        return self._runner.run_interactive(
            ["docker", "manifest", "create", "--amend", name, *sources], env=env
        )

    def manifest_push(
        self, name: str, *, env: Mapping[str, str] | None = None
    ) -> CommandResult:
        """Push a manifest list to its registry."""
        return self._runner.run_interactive(
            ["docker", "manifest", "push", name], env=env
        )

    # =========================================================================
    # Inspection
    # =========================================================================

    def repo_digest(self, image: str) -> str | None:
        """Return the first RepoDigest of a local image."""
        result = self._runner.run(
            ["docker", "inspect", "--format={{index .RepoDigests 0}}", image]
        )
        digest = result.stdout.strip()
        return digest if result.success and digest else None

    def running_containers(self) -> list[RunningContainer]:
        """List running containers from ``docker ps --format=json``.

        Docker prints one JSON object per line.
        """
        result = self._runner.run(["docker", "ps", "--format=json"])
        if not result.success:
            return []

        containers: list[RunningContainer] = []
        for line in result.stdout.splitlines():
            line = line.strip()
            if not line:
                continue
            try:
                data = json.loads(line)
            except json.JSONDecodeError:
                continue
            containers.append(
                RunningContainer(
                    id=data.get("ID", ""),
                    names=data.get("Names", ""),
                    image=data.get("Image", ""),
                    state=data.get("State", ""),
                )
            )
        return containers
