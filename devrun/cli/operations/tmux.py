"""tmux sessions built from the ``tmux.sessions`` section of meta.json.

A session is assembled from every matching session entry: each window
becomes ``<app name>-<window>`` and each pane is created by a new session,
a new window or a split, starting in ``<app dir>/<root>/<pane path>``.
"""

from __future__ import annotations

import os
import re
import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

from loguru import logger

from devrun.infra.constants import RunConstants
from devrun.infra.errors import RunError
from devrun.infra.meta import MetaConfig, TmuxSession, iter_metas, require_meta

if TYPE_CHECKING:
    from devrun.cli.shared.console import CLIConsole
    from devrun.cli.shell_commands import CommandResult, ShellCommands

_PANE_INDEX = re.compile(r"^pane\[(\d+)\]$")


def matching_sessions(meta: MetaConfig, session: str) -> list[TmuxSession]:
    if meta.tmux is None:
        return []
    return [entry for entry in meta.tmux.sessions if entry.name == session]


def pane_matches(target: str, window: str, index: int, pane: str) -> bool:
    """Check a ``window``, ``window.pane[N]`` or ``window.paneName`` target."""
    target_window, sep, target_pane = target.partition(".")
    if target_window != window:
        return False
    if not sep:
        return True
    match = _PANE_INDEX.match(target_pane)
    if match:
        return int(match.group(1)) == index
    return target_pane == pane


@dataclass
class _BuildState:
    session_exists: bool
    window_count: int = 0


class TmuxOperations:
    """Creates, feeds and tears down tmux sessions."""

    def __init__(
        self,
        commands: ShellCommands,
        console: CLIConsole,
        cwd: Path,
        constants: RunConstants | None = None,
        *,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.commands = commands
        self.console = console
        self.cwd = cwd
        self.constants = constants or RunConstants()
        self._sleep = sleep

    @staticmethod
    def _check(result: CommandResult, action: str) -> None:
        if not result.success:
            raise RunError(f"tmux {action} failed", details=result.stderr or None)

    def _source_root(self) -> Path:
        return Path(os.environ.get("SRC") or self.cwd)

    def discover(self, session: str | None = None) -> list[tuple[Path, MetaConfig]]:
        """Return metas with tmux sessions below ``$SRC``, ``$SRC`` first."""
        found: list[tuple[Path, MetaConfig]] = []
        for directory, meta in iter_metas(self._source_root(), include_root=True):
            if meta.tmux is None or not meta.tmux.sessions:
                continue
            if session is not None and not matching_sessions(meta, session):
                continue
            found.append((directory, meta))
        return found

    # =========================================================================
    # init
    # =========================================================================

    def _build(
        self,
        session: str,
        directory: Path,
        meta: MetaConfig,
        state: _BuildState,
        *,
        colors: bool,
        run_commands: bool,
    ) -> None:
        tmux = self.commands.tmux
        palette = self.constants.TMUX_COLORS

        for entry in matching_sessions(meta, session):
            root = directory / entry.root if entry.root else directory
            for window in entry.windows:
                window_name = f"{meta.name}-{window.name}"
                logger.debug(f"Creating window {window_name}")

                for index, pane in enumerate(window.panes):
                    path = root / pane.path if pane.path else root
                    if not state.session_exists:
                        self._check(tmux.new_session(session, window_name, path), "new-session")
                        state.session_exists = True
                    elif index == 0:
                        self._check(tmux.new_window(session, window_name, path), "new-window")
                    else:
                        size = str(pane.size).replace("%", "") if pane.size else None
                        self._check(
                            tmux.split_window(
                                session,
                                window_name,
                                path,
                                horizontal=pane.split == "horizontal",
                                size=size,
                            ),
                            "split-window",
                        )

                    if run_commands and pane.command:
                        self._check(
                            tmux.send_keys(f"{session}:{window_name}.{index}", pane.command),
                            "send-keys",
                        )

                if colors:
                    colour = palette[state.window_count % len(palette)]
                    self._check(
                        tmux.set_window_style(session, window_name, colour),
                        "set-window-option",
                    )
                state.window_count += 1

    def init_session(
        self,
        session: str,
        *,
        all_apps: bool = False,
        reset: bool = False,
        colors: bool = False,
        run_commands: bool = False,
    ) -> int:
        """Create (or append to) a session.

        Returns:
            Number of windows created
        """
        if all_apps:
            targets = self.discover()
            if not targets:
                raise RunError(f"No tmux configurations found in {self._source_root()}")
            self.console.info(f"Found {len(targets)} tmux configurations")
        else:
            meta = require_meta(self.cwd)
            if not matching_sessions(meta, session):
                self.console.warn(f"No tmux session '{session}' declared in {meta.name}")
                return 0
            targets = [(self.cwd, meta)]

        tmux = self.commands.tmux
        exists = tmux.has_session(session)
        if reset and exists:
            self.console.info(f"Resetting session {session}")
            self._check(tmux.kill_session(session), "kill-session")
            exists = False

        state = _BuildState(session_exists=exists)
        for directory, meta in targets:
            self._build(
                session, directory, meta, state, colors=colors, run_commands=run_commands
            )

        if state.window_count:
            tmux.select_window(f"{session}:0")
            tmux.select_pane(f"{session}:0.0")
            self.console.ok(f"Session '{session}' ready (tmux attach-session -t {session})")
        return state.window_count

    # =========================================================================
    # attach / terminate / list
    # =========================================================================

    def run_pane_commands(
        self, session: str, *, run_all: bool = False, targets: Sequence[str] = ()
    ) -> int:
        """Send the configured pane commands of a running session.

        Returns:
            Number of commands sent
        """
        if not self.commands.tmux.has_session(session):
            raise RunError(f"Session '{session}' does not exist")

        sent = 0
        for _, meta in self.discover(session):
            for entry in matching_sessions(meta, session):
                for window in entry.windows:
                    window_name = f"{meta.name}-{window.name}"
                    for index, pane in enumerate(window.panes):
                        selected = run_all or any(
                            pane_matches(target, window_name, index, pane.name)
                            for target in targets
                        )
                        if not selected:
                            continue
                        if not pane.command:
                            logger.debug(f"No command for {window_name}.{pane.name}")
                            continue
                        self.console.info(f"{window_name}.{pane.name}: {pane.command}")
                        self._check(
                            self.commands.tmux.send_keys(
                                f"{session}:{window_name}.{index}", pane.command
                            ),
                            "send-keys",
                        )
                        sent += 1
                        # let each pane pick up its keys before the next one
                        self._sleep(0.5)
        return sent

    def attach(
        self, session: str, *, run_all: bool = False, targets: Sequence[str] = ()
    ) -> None:
        if run_all or targets:
            self.run_pane_commands(session, run_all=run_all, targets=targets)
        self._check(self.commands.tmux.attach(session), "attach-session")

    def terminate(self, session: str) -> bool:
        """Kill a session; returns False when it did not exist."""
        if not self.commands.tmux.has_session(session):
            self.console.warn(f"Session '{session}' does not exist")
            return False
        self._check(self.commands.tmux.kill_session(session), "kill-session")
        self.console.ok(f"Session '{session}' terminated")
        return True

    def list_sessions(self) -> str | None:
        result = self.commands.tmux.list_sessions()
        if not result.success or not result.stdout.strip():
            return None
        return result.stdout.strip()
