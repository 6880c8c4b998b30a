"""tmux command abstractions."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

from .types import CommandResult

if TYPE_CHECKING:
    from .runner import CommandRunner


class TmuxCommands:
    """tmux session, window and pane management."""

    def __init__(self, runner: CommandRunner) -> None:
        self._runner = runner

    def has_session(self, session: str) -> bool:
        return self._runner.run(["tmux", "has-session", "-t", session]).success

    def kill_session(self, session: str) -> CommandResult:
        return self._runner.run(["tmux", "kill-session", "-t", session])

    def new_session(self, session: str, window: str, path: Path) -> CommandResult:
        return self._runner.run(
            ["tmux", "new-session", "-d", "-s", session, "-n", window, "-c", str(path)]
        )

    def new_window(self, session: str, window: str, path: Path) -> CommandResult:
        return self._runner.run(
            ["tmux", "new-window", "-t", f"{session}:", "-n", window, "-c", str(path)]
        )

    def split_window(
        self,
        session: str,
        window: str,
        path: Path,
        *,
        horizontal: bool = False,
        size: str | None = None,
    ) -> CommandResult:
        """Split a window; ``horizontal`` stacks panes top/bottom (``-v``)."""
        cmd = ["tmux", "split-window", "-t", f"{session}:{window}"]
        cmd.append("-v" if horizontal else "-h")
        if size:
            cmd.extend(["-p", size])
        cmd.extend(["-c", str(path)])
        return self._runner.run(cmd)

    def send_keys(self, target: str, keys: str) -> CommandResult:
        return self._runner.run(["tmux", "send-keys", "-t", target, keys, "Enter"])

    def set_window_style(self, session: str, window: str, colour: str) -> CommandResult:
        return self._runner.run(
            [
                "tmux",
                "set-window-option",
                "-t",
                f"{session}:{window}",
                "window-status-style",
                f"bg={colour}",
            ]
        )

    def select_window(self, target: str) -> CommandResult:
        return self._runner.run(["tmux", "select-window", "-t", target])

    def select_pane(self, target: str) -> CommandResult:
        return self._runner.run(["tmux", "select-pane", "-t", target])

    def attach(self, session: str) -> CommandResult:
        return self._runner.run_interactive(["tmux", "attach-session", "-t", session])

    def list_sessions(self) -> CommandResult:
        return self._runner.run(["tmux", "list-sessions"])
