"""GitHub Actions workflows: local runs with act, remote dispatches with gh,
and the secret/env export steps used inside a running workflow.
"""

from __future__ import annotations

import io
import json
import os
import shutil
import tempfile
import time
from collections.abc import Callable, Sequence
from pathlib import Path
from typing import TYPE_CHECKING, Any

import yaml
from dotenv import dotenv_values
from loguru import logger

from devrun.cli.operations.vault import VaultOperations
from devrun.infra.constants import RunConstants
from devrun.infra.environment import (
    environment_for_branch,
    project_terraform_defaults,
    terraform_variable_lines,
    write_github_env,
    write_github_output,
)
from devrun.infra.errors import RunError
from devrun.infra.meta import load_meta, require_meta
from devrun.utils.paths import get_source_root

if TYPE_CHECKING:
    from devrun.cli.shared.console import CLIConsole
    from devrun.cli.shell_commands import ShellCommands

_PROJECT_VARIABLES = ("PROJECT", "APP", "GCP_PROJECT_ID", "PORT")


def parse_inputs(entries: Sequence[str]) -> dict[str, str]:
    """Turn ``key=value`` entries into a dict.

    Raises:
        RunError: If an entry has no ``=``
    """
    inputs: dict[str, str] = {}
    for entry in entries:
        key, sep, value = entry.partition("=")
        if not sep or not key:
            raise RunError(f"Invalid input '{entry}'", details="Expected key=value")
        inputs[key] = value
    return inputs


def parse_env_content(content: str) -> dict[str, str]:
    """Parse dotenv content with ``${VAR}`` expansion; keys without values are dropped."""
    values = dotenv_values(stream=io.StringIO(content), interpolate=True)
    return {key: value for key, value in values.items() if value is not None}


def strip_job_containers(workflows_dir: Path) -> list[Path]:
    """Remove the ``container`` key from every job of every workflow file.

    Returns:
        Workflow files that were rewritten
    """
    rewritten: list[Path] = []
    for path in sorted(workflows_dir.iterdir()):
        if path.suffix not in (".yml", ".yaml"):
            continue
        document = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
        jobs = document.get("jobs") or {}
        changed = False
        for job in jobs.values():
            if isinstance(job, dict) and "container" in job:
                del job["container"]
                changed = True
        if changed:
            path.write_text(yaml.safe_dump(document, sort_keys=False), encoding="utf-8")
            rewritten.append(path)
    return rewritten


def localhost_source() -> str:
    """Return the monorepo path as seen by the docker host running act."""
    if os.environ.get("CODESPACES") == "true":
        return os.environ.get("SRC", "")
    return os.environ.get("LOCALHOST_SRC") or os.environ.get("SRC", "")


class ActionOperations:
    """Runs and supports GitHub Actions workflows for the app in ``cwd``."""

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

    # =========================================================================
    # Remote runs
    # =========================================================================

    def run_remote(
        self,
        workflow: str,
        *,
        inputs: Sequence[str] = (),
        branch: str = "main",
        watch: bool = False,
    ) -> None:
        """Dispatch a workflow with ``gh`` and optionally watch its run."""
        result = self.commands.github.workflow_run(workflow, branch, parse_inputs(inputs))
        if not result.success:
            raise RunError(f"gh workflow run {workflow} failed", details=result.stderr or None)
        self.console.ok(f"Dispatched {workflow} on {branch}")

        if not watch:
            return

        # gh needs a moment before the new run shows up in the list
        self._sleep(self.constants.WORKFLOW_RUN_SETTLE_SECONDS)
        run_id = self.commands.github.latest_run_id(workflow)
        if run_id is None:
            raise RunError(f"No run found for {workflow}")
        self.commands.github.run_watch(run_id)

    # =========================================================================
    # Local runs
    # =========================================================================

    def event_payload(
        self,
        *,
        live: bool = False,
        inputs: Sequence[str] = (),
        event: str | None = None,
    ) -> dict[str, Any]:
        """Build the event JSON handed to act with ``--eventpath``."""
        payload: dict[str, Any] = {
            "inputs": {
                "LIVE": "true" if live else "false",
                "LOCAL": "true",
                **parse_inputs(inputs),
            }
        }
        if event == "push":
            mock = get_source_root(self.cwd) / ".github" / "mocking" / "push.json"
            if not mock.is_file():
                raise RunError(f"Push event payload not found: {mock}")
            payload = {**json.loads(mock.read_text(encoding="utf-8")), **payload}
        return payload

    def act_args(
        self,
        event_file: Path,
        *,
        custom: bool = False,
        reuse: bool = True,
        secure: bool = True,
        env: str | None = None,
    ) -> list[str]:
        """Default act flags shared by every local run."""
        c = self.constants
        args = [
            "--platform",
            c.ACT_CUSTOM_PLATFORM if custom else c.ACT_PLATFORM,
            "--directory",
            localhost_source(),
            "--bind",
            "--use-gitignore",
        ]
        for name in c.ACT_SECRETS:
            source = "GITHUB_TOKEN" if name == "GH_TOKEN" else name
            args.extend(["--secret", f"{name}={os.environ.get(source, '')}"])
        args.extend(["--eventpath", str(event_file)])
        if reuse:
            args.append("--reuse")
        if env:
            args.extend(["--env", f"SET_ENV={env}"])
        if not secure:
            args.append("--insecure-secrets")
        return args

    def run_local(
        self,
        target: str,
        *,
        live: bool = False,
        event: str | None = None,
        env: str | None = None,
        reuse: bool = True,
        secure: bool = True,
        custom: bool = False,
        workaround: bool = False,
        inputs: Sequence[str] = (),
    ) -> None:
        """Run a job (or an event's workflow) locally with act.

        Args:
            target: Job name, or workflow file stem when an event is given
            live: Set the ``LIVE`` input to true
            event: Trigger event; ``push`` merges the mocked push payload
            env: Forced environment, exported to the run as ``SET_ENV``
            reuse: Keep container state between runs
            secure: Hide secrets from the logs
            custom: Use the custom act image and drop job containers
            workaround: Point ``--workflows`` at the single target file
            inputs: ``key=value`` workflow inputs
        """
        source = get_source_root(self.cwd)
        workflows_dir = source / ".github" / "workflows"

        with tempfile.TemporaryDirectory(prefix="act-") as scratch:
            scratch_dir = Path(scratch)
            event_file = scratch_dir / "inputs.json"
            event_file.write_text(
                json.dumps(self.event_payload(live=live, inputs=inputs, event=event)),
                encoding="utf-8",
            )

            if custom:
                copied = scratch_dir / ".github"
                shutil.copytree(source / ".github", copied)
                workflows_dir = copied / "workflows"
                for path in strip_job_containers(workflows_dir):
                    logger.debug(f"Removed job containers from {path.name}")

            args = self.act_args(
                event_file, custom=custom, reuse=reuse, secure=secure, env=env
            )
            workflow_file = workflows_dir / f"{target}.yaml"
            if event is None:
                args.extend(
                    ["--workflows", str(workflow_file if workaround else workflows_dir)]
                )
                args.extend(["--job", target])
            else:
                args = [event, *args, "--workflows", str(workflow_file)]

            result = self.commands.github.act(args, cwd=source)

        if not result.success:
            raise RunError(f"act run of {target} failed")

    # =========================================================================
    # Steps inside a workflow
    # =========================================================================

    def secret_values(self, *, global_: bool = False) -> dict[str, str]:
        """Collect the vault secrets of the app, expanded and with TF_VAR twins."""
        vault = VaultOperations(self.commands, self.console, self.cwd, self.constants)

        if global_:
            return parse_env_content(
                vault.fetch_credentials(self.constants.GLOBAL_VAULT_NAMESPACE)
            )

        meta = require_meta(self.cwd)
        content = vault.fetch_credentials(vault.namespace(os.environ.get("ENV")))
        if meta.secrets and meta.secrets.base:
            base = vault.fetch_credentials(vault.namespace("base"))
            content = f"{base}\n{content}"

        lines = project_terraform_defaults(
            terraform_variable_lines(content),
            meta,
            load_meta(get_source_root(self.cwd)),
        )
        values = parse_env_content(content + "\n" + "\n".join(lines))
        for name in _PROJECT_VARIABLES:
            twin = values.get(f"TF_VAR_{name}")
            if name not in values and twin:
                values[name] = twin
        return values

    def set_secrets(self, *, global_: bool = False) -> Path:
        """Export the vault secrets to ``$GITHUB_ENV`` for the next steps."""
        values = self.secret_values(global_=global_)
        path = write_github_env(values)
        self.console.ok(f"Exported {len(values)} variables to {path}")
        return path

    def set_env(self) -> str:
        """Publish the environment name as ``ENV`` env var and step output."""
        environment = os.environ.get("SET_ENV")
        if not environment:
            branch = self.commands.git.current_branch(cwd=self.cwd)
            if branch is None:
                raise RunError("Failed to determine the current git branch")
            environment = environment_for_branch(branch)
            os.environ["ENV"] = environment

        # Workflow command: mask the value in subsequent logs
        self.console.print(f"::add-mask::{environment}")
        write_github_output("ENV", environment)
        write_github_env({"ENV": environment})
        return environment
