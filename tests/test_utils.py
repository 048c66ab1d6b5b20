"""Unit tests for utility functions (nodebuilder.utils).

Tests cover:
- run_command (success, failure, timeout, env vars, missing executable)
- parse_assignments
- format_duration
- Rich output helpers (print_summary_table, print_success, etc.)
"""

from __future__ import annotations

import sys
from pathlib import Path

import pytest
from rich.progress import Progress

from nodebuilder.utils import (
    create_progress,
    format_duration,
    parse_assignments,
    print_error,
    print_success,
    print_summary_table,
    print_warning,
    run_command,
)


# ---------------------------------------------------------------------------
# run_command
# ---------------------------------------------------------------------------


class TestRunCommand:
    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_successful_command(self):
        returncode, stdout, stderr = await run_command([sys.executable, "-c", "print('hello')"])
        assert returncode == 0
        assert stdout == "hello"

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_failed_command(self):
        returncode, _, _ = await run_command(
            [sys.executable, "-c", "import sys; sys.exit(3)"]
        )
        assert returncode == 3

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_command_with_cwd(self, tmp_path: Path):
        returncode, stdout, _ = await run_command(
            [sys.executable, "-c", "import os; print(os.getcwd())"], cwd=tmp_path
        )
        assert returncode == 0
        assert Path(stdout).resolve() == tmp_path.resolve()

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_command_timeout(self):
        returncode, _, stderr = await run_command(
            [sys.executable, "-c", "import time; time.sleep(10)"], timeout=1
        )
        assert returncode == -1
        assert "timed out" in stderr

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_command_with_env(self):
        returncode, stdout, _ = await run_command(
            [sys.executable, "-c", "import os; print(os.environ['NB_TEST_VAR'])"],
            env={"NB_TEST_VAR": "test_value"},
        )
        assert returncode == 0
        assert stdout == "test_value"

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_missing_executable(self):
        returncode, _, stderr = await run_command(["nonexistent-binary-12345-xyz"])
        assert returncode == 127
        assert "not found" in stderr

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_command_returns_stderr(self):
        _, _, stderr = await run_command(
            [sys.executable, "-c", "import sys; sys.stderr.write('error_msg\\n')"]
        )
        assert stderr == "error_msg"


# ---------------------------------------------------------------------------
# parse_assignments
# ---------------------------------------------------------------------------


class TestParseAssignments:
    @pytest.mark.unit
    def test_pairs(self):
        assert parse_assignments(["port=5000", "dbHost=db"]) == {"port": "5000", "dbHost": "db"}

    @pytest.mark.unit
    def test_value_may_contain_equals(self):
        assert parse_assignments(["databaseUrl=postgres://u:p@h/db?ssl=true"]) == {
            "databaseUrl": "postgres://u:p@h/db?ssl=true"
        }

    @pytest.mark.unit
    def test_empty_value_allowed(self):
        assert parse_assignments(["suffix="]) == {"suffix": ""}

    @pytest.mark.unit
    def test_later_wins(self):
        assert parse_assignments(["port=1", "port=2"]) == {"port": "2"}

    @pytest.mark.unit
    @pytest.mark.parametrize("bad", ["port", "=5000", "  =x"])
    def test_rejects_malformed(self, bad: str):
        with pytest.raises(ValueError):
            parse_assignments([bad])

    @pytest.mark.unit
    def test_empty(self):
        assert parse_assignments([]) == {}


# ---------------------------------------------------------------------------
# format_duration
# ---------------------------------------------------------------------------


class TestFormatDuration:
    @pytest.mark.unit
    def test_seconds(self):
        assert format_duration(3.7) == "3.7s"

    @pytest.mark.unit
    def test_minutes(self):
        assert format_duration(65.2) == "1m 5s"

    @pytest.mark.unit
    def test_negative(self):
        assert format_duration(-1) == "0.0s"


# ---------------------------------------------------------------------------
# Rich output helpers
# ---------------------------------------------------------------------------


class TestOutputHelpers:
    @pytest.mark.unit
    def test_print_summary_table(self, capsys):
        print_summary_table({"db": "sqlite", "server": "express"}, title="Selected")
        out = capsys.readouterr().out
        assert "Selected" in out
        assert "sqlite" in out
        assert "express" in out

    @pytest.mark.unit
    def test_messages_are_not_markup(self, capsys):
        print_error("Error: bad value [red]x[/red]")
        print_warning("careful [bold]")
        print_success("done")
        out = capsys.readouterr().out
        assert "[red]x[/red]" in out
        assert "careful [bold]" in out
        assert "done" in out

    @pytest.mark.unit
    def test_create_progress(self):
        assert isinstance(create_progress(), Progress)
