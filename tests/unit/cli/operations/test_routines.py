"""Unit tests for routine parsing and execution."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import MagicMock

import pytest

from devrun.cli.operations.routines import RoutineNode, RoutineRunner, RoutineTreeBuilder
from devrun.infra.errors import RunError
from tests.helpers import failed, ok, write_meta


class TestRoutineTreeBuilder:
    """Tests for turning routine strings into trees."""

    def test_plain_command(self, tmp_path: Path) -> None:
        tree = RoutineTreeBuilder({"build": "npm run build"}, tmp_path).build(["build"])

        assert tree == RoutineNode("parallel", ["npm run build"])

    def test_unknown_name_is_a_command(self, tmp_path: Path) -> None:
        tree = RoutineTreeBuilder({}, tmp_path).build(["ls -la"])

        assert tree.tasks == ["ls -la"]

    def test_keywords_and_operators(self, tmp_path: Path) -> None:
        routines = {
            "lint": "eslint .",
            "test": "jest",
            "check": "parallel lint test",
            "ci": "sequence check deploy",
            "deploy": "build && push & notify",
        }

        tree = RoutineTreeBuilder(routines, tmp_path).build(["ci"])

        assert tree == RoutineNode(
            "parallel",
            [
                RoutineNode(
                    "sequence",
                    [
                        RoutineNode("parallel", ["eslint .", "jest"]),
                        RoutineNode(
                            "sequence",
                            ["build", RoutineNode("parallel", ["push", "notify"])],
                        ),
                    ],
                )
            ],
        )

    def test_single_ampersand_is_parallel(self, tmp_path: Path) -> None:
        tree = RoutineTreeBuilder({"dev": "api & web", "api": "uvicorn app:app"}, tmp_path).build(
            ["dev"]
        )

        assert tree.tasks == [RoutineNode("parallel", ["uvicorn app:app", "web"])]

    def test_cycle_is_detected(self, tmp_path: Path) -> None:
        builder = RoutineTreeBuilder({"a": "sequence b", "b": "parallel a"}, tmp_path)

        with pytest.raises(RunError, match="Circular routine reference: a -> b -> a"):
            builder.build(["a"])

    def test_every_runs_in_each_app(self, tmp_path: Path) -> None:
        write_meta(tmp_path, {"name": "root", "routines": {"test": "every test !docs"}})
        write_meta(tmp_path / "api", {"name": "api", "routines": {"test": "pytest"}})
        write_meta(tmp_path / "docs", {"name": "docs", "routines": {"test": "mkdocs build"}})
        write_meta(tmp_path / "web", {"name": "web", "routines": {"lint": "eslint"}})

        tree = RoutineTreeBuilder({"test": "every test !docs"}, tmp_path).build(["test"])

        assert tree.tasks == [
            RoutineNode(
                "parallel",
                [RoutineNode("sequence", [f"cd {tmp_path / 'api'}", "pytest"])],
            )
        ]

    def test_every_skips_the_routine_being_expanded(self, tmp_path: Path) -> None:
        routines = {"build": "every build", "ci": "sequence build"}
        write_meta(tmp_path, {"name": "root", "routines": routines})
        write_meta(tmp_path / "api", {"name": "api", "routines": {"build": "make"}})

        tree = RoutineTreeBuilder(routines, tmp_path).build(["ci"])

        assert tree.tasks == [
            RoutineNode(
                "sequence",
                [
                    RoutineNode(
                        "parallel",
                        [RoutineNode("sequence", [f"cd {tmp_path / 'api'}", "make"])],
                    )
                ],
            )
        ]


class TestRoutineRunner:
    """Tests for running routine trees."""

    @pytest.fixture
    def runner(self, mock_commands: MagicMock, mock_console: MagicMock) -> RoutineRunner:
        return RoutineRunner(mock_commands, mock_console)

    def test_sequence_threads_working_directory(
        self, runner: RoutineRunner, mock_commands: MagicMock, tmp_path: Path
    ) -> None:
        (tmp_path / "api").mkdir()

        runner.run(RoutineNode("sequence", ["cd api", "npm test"]), tmp_path)

        mock_commands.runner.run.assert_called_once_with(
            ["npm", "test"],
            cwd=(tmp_path / "api").resolve(),
            env={"FORCE_COLOR": "1"},
            capture_output=False,
        )

    def test_parallel_runs_every_task(
        self, runner: RoutineRunner, mock_commands: MagicMock, tmp_path: Path
    ) -> None:
        runner.run(RoutineNode("parallel", ["a", RoutineNode("sequence", ["b", "c"])]), tmp_path)

        commands = sorted(call.args[0][0] for call in mock_commands.runner.run.call_args_list)
        assert commands == ["a", "b", "c"]

    def test_failure_stops_sequence(
        self, runner: RoutineRunner, mock_commands: MagicMock, tmp_path: Path
    ) -> None:
        mock_commands.runner.run.side_effect = [failed(returncode=2), ok()]

        with pytest.raises(RunError, match=r"Command failed \(2\): lint"):
            runner.run(RoutineNode("sequence", ["lint", "test"]), tmp_path)

        assert mock_commands.runner.run.call_count == 1

    def test_failure_in_parallel_is_raised(
        self, runner: RoutineRunner, mock_commands: MagicMock, tmp_path: Path
    ) -> None:
        mock_commands.runner.run.return_value = failed()

        with pytest.raises(RunError):
            runner.run(RoutineNode("parallel", ["a", "b"]), tmp_path)
