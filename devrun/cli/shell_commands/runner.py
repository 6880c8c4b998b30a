"""Command runner for executing shell commands.

This module provides the base command execution functionality used by
all specialized command modules.
"""

from __future__ import annotations

import os
import subprocess
from collections.abc import Mapping, Sequence
from pathlib import Path

from loguru import logger

from .types import CommandResult


class CommandRunner:
    """Low-level command executor with consistent result handling.

    This class provides the foundation for executing external tools with
    proper output capture, environment overlays and interactive runs.

    All specialized command modules (Docker, Terraform, Hasura, etc.) use
    this runner for actual command execution.
    """

    def __init__(self, working_dir: Path) -> None:
        """Initialize the command runner.

        Args:
            working_dir: Directory commands run from unless overridden
        """
        self.working_dir = working_dir

    @staticmethod
    def _environment(env: Mapping[str, str] | None) -> dict[str, str] | None:
        if not env:
            return None
        merged = os.environ.copy()
        merged.update(env)
        return merged

    def run(
        self,
        cmd: Sequence[str],
        *,
        cwd: Path | None = None,
        env: Mapping[str, str] | None = None,
        capture_output: bool = True,
        check: bool = False,
    ) -> CommandResult:
        """Execute a command and return a structured result.

        Args:
            cmd: Command and arguments as a sequence
            cwd: Working directory (defaults to working_dir)
            env: Extra environment variables layered over os.environ
            capture_output: Whether to capture stdout/stderr
            check: Whether to raise exception on non-zero exit code

        Returns:
            CommandResult with success status, output, and return code

        Raises:
            subprocess.CalledProcessError: If check=True and command fails
        """
        logger.debug(f"$ {' '.join(cmd)}")
        try:
            result = subprocess.run(
                list(cmd),
                cwd=cwd or self.working_dir,
                env=self._environment(env),
                capture_output=capture_output,
                text=True,
                check=check,
            )
        except FileNotFoundError:
            logger.debug(f"Executable not found: {cmd[0]}")
            return CommandResult(
                success=False,
                stdout="",
                stderr=f"{cmd[0]}: command not found",
                returncode=127,
            )
        return CommandResult(
            success=result.returncode == 0,
            stdout=result.stdout or "",
            stderr=result.stderr or "",
            returncode=result.returncode,
        )

    def run_interactive(
        self,
        cmd: Sequence[str],
        *,
        cwd: Path | None = None,
        env: Mapping[str, str] | None = None,
    ) -> CommandResult:
        """Execute a command attached to the terminal (no capture)."""
        return self.run(cmd, cwd=cwd, env=env, capture_output=False)
