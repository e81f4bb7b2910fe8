"""Tests for the payroll cycles CLI."""

import json
import re

import pytest

from payroll_cycles.cli import PayrollCli, parse_date


@pytest.fixture
def cli(settings):
    return PayrollCli(settings)


@pytest.fixture
def db_args(tmp_path, settings):
    """Point the CLI at a fresh SQLite file with the schema created."""
    args = ["--database-url", f"sqlite+aiosqlite:///{tmp_path / 'cli.db'}"]
    assert PayrollCli(settings).run(args + ["init-db"]) == 0
    return args


def create_cycle(cli, db_args, capsys) -> str:
    assert cli.run(db_args + ["create-cycle", "--start", "2024-01-01", "--end", "2024-01-31"]) == 0
    out = capsys.readouterr().out
    match = re.search(r"Created cycle ([0-9a-f-]{36}): Payroll Jan 2024", out)
    assert match, out
    return match.group(1)


class TestPayrollCli:
    """Test CLI commands against a SQLite file."""

    def test_no_command_prints_help(self, cli, capsys):
        """Running without a command shows usage and fails."""
        assert cli.run([]) == 1
        assert "usage" in capsys.readouterr().out

    def test_parse_date(self):
        """Dates are ISO formatted."""
        assert parse_date("2024-01-31").day == 31

    def test_create_and_list(self, cli, db_args, capsys):
        """A created cycle shows up in the listing."""
        cycle_id = create_cycle(cli, db_args, capsys)

        assert cli.run(db_args + ["list-cycles"]) == 0
        out = capsys.readouterr().out
        assert cycle_id in out
        assert "active" in out

    def test_validation_error_exit_code(self, cli, db_args, capsys):
        """Engine errors print to stderr and exit 1."""
        code = cli.run(db_args + ["create-cycle", "--start", "2024-02-10", "--end", "2024-02-01"])

        assert code == 1
        assert "ERROR" in capsys.readouterr().err

    def test_summary_json(self, cli, db_args, capsys):
        """--json prints the full summary."""
        cycle_id = create_cycle(cli, db_args, capsys)

        assert cli.run(db_args + ["summary", cycle_id, "--json"]) == 0
        data = json.loads(capsys.readouterr().out)
        assert data["cycle_id"] == cycle_id
        assert data["validation"]["can_finalize"] is False

    def test_summary_text(self, cli, db_args, capsys):
        """The text summary names the cycle and the finalize verdict."""
        cycle_id = create_cycle(cli, db_args, capsys)

        assert cli.run(db_args + ["summary", cycle_id]) == 0
        out = capsys.readouterr().out
        assert "Payroll Jan 2024" in out
        assert "Can finalize: no" in out

    def test_calculate_empty_cycle(self, cli, db_args, capsys):
        """A cycle without attendance calculates to nothing."""
        cycle_id = create_cycle(cli, db_args, capsys)

        assert cli.run(db_args + ["calculate", cycle_id, "--actor", "hr-1"]) == 0
        assert "Employees:  0" in capsys.readouterr().out

    def test_finalize_empty_cycle_refused(self, cli, db_args, capsys):
        """Finalization of an empty cycle fails with exit code 1."""
        cycle_id = create_cycle(cli, db_args, capsys)

        assert cli.run(db_args + ["finalize", cycle_id, "--actor", "payroll-admin"]) == 1
        assert "no payroll details" in capsys.readouterr().err
