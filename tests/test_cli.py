"""
Tests for the roster import CLI (direct mode).
"""

import json
import os

import pytest
from click.testing import CliRunner

from scripts import roster_import_cli
from scripts.roster_import_cli import cli


@pytest.fixture
def runner(tmp_path, monkeypatch):
    """CLI runner pointed at a throwaway SQLite file."""
    database_url = f"sqlite:///{tmp_path / 'cli.db'}"
    monkeypatch.setattr(roster_import_cli, 'DATABASE_URL', database_url)
    return CliRunner()


class TestImportCommand:
    """Test the import command."""

    def test_import_direct(self, runner, make_workbook, roster_rows):
        path = make_workbook({'Roster': roster_rows})

        result = runner.invoke(cli, ['import', '--file', path])

        assert result.exit_code == 0, result.output
        assert 'Direct Mode' in result.output
        assert 'Students created: 3' in result.output
        assert 'Roster: 3 records (completed)' in result.output
        # Direct mode never deletes the user's file
        assert os.path.exists(path)

    def test_import_lists_errors(self, runner, make_workbook):
        path = make_workbook({'Roster': [['ID', 'Name'], [None, 'Nobody'], ['S1', 'Ann Lee']]})

        result = runner.invoke(cli, ['import', '--file', path])

        assert result.exit_code == 0, result.output
        assert 'Row 2: Missing student number or name' in result.output

    def test_import_unreadable_file_fails(self, runner, tmp_path):
        path = tmp_path / 'fake.xlsx'
        path.write_bytes(b'nope')

        result = runner.invoke(cli, ['import', '--file', str(path)])

        assert result.exit_code == 1
        assert 'Import failed' in result.output

    def test_import_requires_existing_file(self, runner, tmp_path):
        result = runner.invoke(cli, ['import', '--file', str(tmp_path / 'missing.xlsx')])
        assert result.exit_code == 2


class TestReportCommands:
    """Test history and student commands after an import."""

    def test_history(self, runner, make_workbook, roster_rows):
        path = make_workbook({'Roster': roster_rows}, file_name='week1.xlsx')
        runner.invoke(cli, ['import', '--file', path])

        result = runner.invoke(cli, ['history'])

        assert result.exit_code == 0, result.output
        assert 'week1.xlsx' in result.output
        assert '3 records' in result.output

    def test_history_empty(self, runner):
        result = runner.invoke(cli, ['history'])

        assert result.exit_code == 0
        assert 'No uploads recorded' in result.output

    def test_student_export(self, runner, make_workbook, roster_rows):
        runner.invoke(cli, ['import', '--file', make_workbook({'Roster': roster_rows})])

        result = runner.invoke(cli, ['student', 'S101'])

        assert result.exit_code == 0, result.output
        export = json.loads(result.output[result.output.index('{'):])
        assert export['student']['name'] == 'Ben Ortiz'
        assert export['data']['Roster']['Quiz 1'] == '20'

    def test_unknown_student(self, runner):
        result = runner.invoke(cli, ['student', 'NOPE'])

        assert result.exit_code == 1
        assert 'not found' in result.output


def test_init_db_creates_tables(tmp_path):
    database_url = f"sqlite:///{tmp_path / 'fresh' / 'students.db'}"

    result = CliRunner().invoke(cli, ['init-db', '--database-url', database_url])

    assert result.exit_code == 0, result.output
    assert (tmp_path / 'fresh' / 'students.db').exists()
