"""Data types for shell command results.

This module contains the dataclasses shared across the shell command
modules.
"""

from __future__ import annotations

from dataclasses import dataclass

__all__ = [
    "CommandResult",
    "ImageReference",
    "RunningContainer",
]


@dataclass
class CommandResult:
    """Outcome of an external command.

    Attributes:
        success: Whether the command exited with status 0
        stdout: Captured standard output ("" when not captured)
        stderr: Captured standard error ("" when not captured)
        returncode: Process exit status
    """

    success: bool
    stdout: str
    stderr: str
    returncode: int


@dataclass
class ImageReference:
    """Resolved image coordinates for a docker component.

    Attributes:
        image: Primary tag (``repo:env`` or ``repo:env-modifier``)
        tags_to_push: Primary tag followed by tag-modifier variants
        dockerfile: Absolute path of the Dockerfile to build
        context: Absolute path of the build context
    """

    image: str
    tags_to_push: list[str]
    dockerfile: str
    context: str

    @property
    def repository(self) -> str:
        """Image name without its tag (registry ports are preserved)."""
        head, sep, tail = self.image.rpartition(":")
        if not sep or "/" in tail:
            return self.image
        return head


@dataclass
class RunningContainer:
    """A container reported by ``docker ps --format=json``."""

    id: str
    names: str
    image: str
    state: str
