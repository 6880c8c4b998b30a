"""Shared console utilities for CLI commands.

This module provides the rich console wrapper used by every command group,
with status lines, prompts and the decorator that maps RunError to an exit
code.
"""

from collections.abc import Callable
from functools import wraps

import typer
from rich.console import Console, ConsoleRenderable
from rich.panel import Panel

from devrun.infra.errors import RunError


class CLIConsole:
    """Rich console wrapper for consistent CLI output."""

    def __init__(self) -> None:
        """Initialize the CLI console."""
        self.console = Console()

    def print(self, msg: ConsoleRenderable | str | None = None) -> None:
        self.console.print(msg)

    def info(self, msg: str) -> None:
        self.console.print(f"[cyan]ℹ[/cyan]  {msg}")

    def ok(self, msg: str) -> None:
        self.console.print(f"[green]✅[/green] {msg}")

    def error(self, msg: str) -> None:
        self.console.print(f"[red]❌[/red] {msg}")

    def warn(self, msg: str) -> None:
        self.console.print(f"[yellow]⚠️[/yellow]  {msg}")

    def confirm_destructive(
        self, action: str, *, details: str | None = None, skip: bool = False
    ) -> bool:
        """Show a red warning panel and ask before an irreversible action.

        Args:
            action: What is about to happen (e.g. "Destroy component 'gcp'")
            details: Extra lines rendered under the action
            skip: Return True without prompting (``--yes``)
        """
        if skip:
            return True
        body = f"[bold red]⚠️  {action}[/bold red]"
        if details:
            body += f"\n\n{details}"
        self.console.print(Panel(body, title="Confirm", border_style="red"))
        return self.confirm("Continue?")

    def confirm(self, question: str, *, default: bool = False) -> bool:
        """Ask a yes/no question.

        Returns:
            The answer, or False when the prompt is cancelled
        """
        hint = "\\[Y/n]" if default else "\\[y/N]"
        try:
            response = self.console.input(f"{question} {hint}: ").strip().lower()
        except (KeyboardInterrupt, EOFError):
            self.console.print("\n[dim]Cancelled.[/dim]")
            return False
        if not response:
            return default
        return response in ("y", "yes")

    def prompt_text(self, question: str, *, default: str | None = None) -> str:
        """Ask for a free-text answer.

        Raises:
            KeyboardInterrupt: If the prompt is cancelled
        """
        suffix = f" [dim]({default})[/dim]" if default else ""
        try:
            response = self.console.input(f"{question}{suffix}: ").strip()
        except EOFError:
            raise KeyboardInterrupt from None
        return response or (default or "")

    def select(self, title: str, options: list[str]) -> str | None:
        """Pick one option from a numbered list.

        Answers may be the option number or its exact name. An empty answer
        picks the first option.

        Returns:
            The chosen option, or None when the user enters 0 or cancels
        """
        self.console.print(f"\n[yellow]{title}[/yellow]")
        for index, option in enumerate(options, 1):
            self.console.print(f"  [bold]{index:>2}.[/bold] {option}")
        self.console.print("   [bold]0.[/bold] [dim]cancel[/dim]")

        try:
            while True:
                answer = self.console.input("Choice \\[1]: ").strip()
                if not answer:
                    return options[0] if options else None
                if answer == "0":
                    return None
                if answer in options:
                    return answer
                if answer.isdigit() and 1 <= int(answer) <= len(options):
                    return options[int(answer) - 1]
                self.warn(f"Enter a number between 0 and {len(options)}")
        except (KeyboardInterrupt, EOFError):
            self.console.print("\n[dim]Cancelled.[/dim]")
            return None

    def handle_error(self, message: str, details: str | None = None) -> None:
        """Print a RunError and exit with status 1."""
        self.console.print(f"\n[bold red]❌ {message}[/bold red]")
        if details:
            self.console.print(Panel(details.rstrip(), title="Details", border_style="red"))
        raise typer.Exit(1)

    def print_header(self, title: str) -> None:
        self.console.print(Panel.fit(f"[bold blue]{title}[/bold blue]", border_style="blue"))

    def print_subheader(self, title: str) -> None:
        self.console.print(f"\n[bold underline]{title}[/bold underline]")


def with_error_handling(func: Callable[..., None]) -> Callable[..., None]:
    """Turn RunError into a red message and exit 1, and Ctrl-C into exit 130.

    Any other exception propagates so bugs keep their traceback.
    """

    @wraps(func)
    def wrapper(*args: object, **kwargs: object) -> None:
        try:
            func(*args, **kwargs)
        except RunError as e:
            console.handle_error(e.message, e.details)
        except KeyboardInterrupt:
            console.print("\n[dim]Operation cancelled by user.[/dim]")
            raise typer.Exit(130) from None

    return wrapper


console = CLIConsole()
