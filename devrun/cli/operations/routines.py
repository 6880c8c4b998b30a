"""npm-style routines declared in the ``routines`` section of meta.json.

A routine value is parsed into a tree of commands:

- ``parallel a b``: run routines ``a`` and ``b`` concurrently
- ``sequence a b``: run them in order
- ``every r1 r2 !app``: run ``r1`` and ``r2`` in every app below cwd that
  declares them, skipping apps named ``app`` and the routine being expanded
- ``x && y`` / ``x & y``: inline sequence / parallel
- anything else: a command line

Leaves are executed with ``shlex.split``; ``cd <dir>`` changes the working
directory for the rest of the enclosing sequence.
"""

from __future__ import annotations

import os
import shlex
from collections.abc import Mapping, Sequence
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Literal, Union

from loguru import logger

from devrun.infra.errors import RunError
from devrun.infra.meta import iter_metas, load_meta

if TYPE_CHECKING:
    from devrun.cli.shared.console import CLIConsole
    from devrun.cli.shell_commands import ShellCommands

Mode = Literal["parallel", "sequence"]


@dataclass
class RoutineNode:
    """A group of tasks run in parallel or in sequence."""

    mode: Mode
    tasks: list[Task] = field(default_factory=list)


Task = Union[str, RoutineNode]
_Stack = tuple[tuple[Path, str], ...]


@dataclass(frozen=True)
class _Scope:
    directory: Path
    routines: Mapping[str, str]


class RoutineTreeBuilder:
    """Resolves routine names into a :class:`RoutineNode` tree.

    Args:
        routines: The ``routines`` mapping of the current meta.json
        cwd: Directory ``every`` searches below
    """

    def __init__(self, routines: Mapping[str, str], cwd: Path) -> None:
        self.routines = dict(routines)
        self.cwd = cwd

    def build(self, scripts: Sequence[str]) -> RoutineNode:
        """Build the root node: requested scripts run in parallel."""
        scope = _Scope(self.cwd, self.routines)
        return RoutineNode("parallel", [self._resolve_name(name, scope, ()) for name in scripts])

    def _resolve_name(self, name: str, scope: _Scope, stack: _Stack) -> Task:
        if name not in scope.routines:
            return name
        key = (scope.directory, name)
        if key in stack:
            chain = " -> ".join([*(entry for _, entry in stack), name])
            raise RunError(f"Circular routine reference: {chain}")
        return self._resolve_command(scope.routines[name], scope, (*stack, key))

    def _resolve_part(self, part: str, scope: _Scope, stack: _Stack) -> Task:
        if part in scope.routines:
            return self._resolve_name(part, scope, stack)
        return self._resolve_command(part, scope, stack)

    def _resolve_command(self, command: str, scope: _Scope, stack: _Stack) -> Task:
        command = command.strip()

        for keyword in ("parallel", "sequence"):
            if command.startswith(f"{keyword} "):
                names = command[len(keyword) + 1 :].split()
                return RoutineNode(
                    keyword,  # type: ignore[arg-type]
                    [self._resolve_name(name, scope, stack) for name in names],
                )

        if command.startswith("every "):
            return self._resolve_every(command[len("every ") :].split(), stack)

        for separator, mode in (("&&", "sequence"), ("&", "parallel")):
            parts = [part.strip() for part in command.split(separator)]
            if len(parts) > 1:
                return RoutineNode(
                    mode,  # type: ignore[arg-type]
                    [self._resolve_part(part, scope, stack) for part in parts if part],
                )

        if command in scope.routines:
            return self._resolve_name(command, scope, stack)
        return command

    def _resolve_every(self, words: Sequence[str], stack: _Stack) -> RoutineNode:
        wanted = [word for word in words if not word.startswith("!")]
        excluded = {word[1:] for word in words if word.startswith("!")}

        candidates = iter_metas(self.cwd)
        root_meta = load_meta(self.cwd)
        if root_meta is not None:
            candidates.append((self.cwd, root_meta))

        node = RoutineNode("parallel")
        for directory, meta in candidates:
            if meta.name in excluded:
                continue
            scope = _Scope(directory, meta.routines)
            for name in wanted:
                if not meta.routines.get(name) or (directory, name) in stack:
                    continue
                logger.debug(f"every: {name} in {directory}")
                node.tasks.append(
                    RoutineNode(
                        "sequence",
                        [f"cd {directory}", self._resolve_name(name, scope, stack)],
                    )
                )
        return node


class RoutineRunner:
    """Executes a routine tree, one subprocess per leaf."""

    def __init__(self, commands: ShellCommands, console: CLIConsole) -> None:
        self.commands = commands
        self.console = console

    def run(self, node: RoutineNode, cwd: Path) -> None:
        """Run a tree.

        Raises:
            RunError: If any command exits with a non-zero status
        """
        if node.mode == "sequence":
            for task in node.tasks:
                if isinstance(task, RoutineNode):
                    self.run(task, cwd)
                else:
                    cwd = self._execute(task, cwd)
            return

        if not node.tasks:
            return
        with ThreadPoolExecutor(max_workers=len(node.tasks)) as pool:
            futures = [
                pool.submit(self.run, task, cwd)
                if isinstance(task, RoutineNode)
                else pool.submit(self._execute, task, cwd)
                for task in node.tasks
            ]
        errors = [future.exception() for future in futures if future.exception()]
        if errors:
            raise errors[0]  # type: ignore[misc]

    def _execute(self, command: str, cwd: Path) -> Path:
        """Run one leaf; returns the working directory for the next task."""
        if command.startswith("cd "):
            return (cwd / os.path.expanduser(command[3:].strip())).resolve()

        argv = shlex.split(command)
        if not argv:
            return cwd
        self.console.info(f"[dim]{cwd}[/dim] $ {command}")
        result = self.commands.runner.run(
            argv, cwd=cwd, env={"FORCE_COLOR": "1"}, capture_output=False
        )
        if not result.success:
            raise RunError(f"Command failed ({result.returncode}): {command}")
        return cwd
