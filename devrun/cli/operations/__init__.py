"""Operations behind the CLI commands.

Each module exposes a class taking the ShellCommands facade, the console and
the working directory, and raising RunError on failure.
"""
