"""Tests for wasteland.dolt module."""

import subprocess
from pathlib import Path
from unittest.mock import patch, MagicMock

import pytest

from wasteland.dolt.runner import run_dolt, DoltResult
from wasteland.dolt.sql import commit_sql, is_nothing_to_commit, parse_csv, quote, query_rows
from wasteland.dolt.branch import branch_exists, checkout_branch, list_branches, merge_branch
from wasteland.dolt.remote import delete_remote_branch, list_remotes, push
from wasteland.dolt.diff import diff


class TestDoltResult:
    """Test DoltResult dataclass."""

    def test_success_when_returncode_zero(self):
        assert DoltResult(returncode=0, stdout="ok", stderr="").success is True

    def test_failure_when_timed_out(self):
        assert DoltResult(returncode=0, stdout="ok", stderr="", timed_out=True).success is False

    def test_output_joins_streams(self):
        assert DoltResult(1, " out \n", "err\n").output == "out\nerr"


class TestRunDolt:
    """Test run_dolt function."""

    @patch("wasteland.dolt.runner.subprocess.run")
    def test_runs_in_db_dir(self, mock_run):
        mock_run.return_value = MagicMock(returncode=0, stdout="", stderr="")
        run_dolt(["checkout", "main"], Path("/my/db"))
        assert mock_run.call_args[0][0] == ["dolt", "checkout", "main"]
        assert mock_run.call_args[1]["cwd"] == "/my/db"

    @patch("wasteland.dolt.runner.subprocess.run")
    def test_handles_timeout(self, mock_run):
        mock_run.side_effect = subprocess.TimeoutExpired(cmd="dolt", timeout=30)
        result = run_dolt(["fetch", "origin"], Path("/tmp"))
        assert result.timed_out
        assert "timed out" in result.stderr

    @patch("wasteland.dolt.runner.subprocess.run")
    def test_missing_binary(self, mock_run):
        mock_run.side_effect = FileNotFoundError()
        result = run_dolt(["version"], Path("/tmp"))
        assert result.returncode == 127
        assert "not found" in result.stderr


class TestSql:
    """Test SQL helpers and CSV parsing."""

    def test_quote(self):
        assert quote("") == "NULL"
        assert quote(None) == "NULL"
        assert quote("it's a\\b") == "'it''s a\\\\b'"

    def test_commit_sql(self):
        assert commit_sql("wl claim: w-1") == "CALL DOLT_COMMIT('-m', 'wl claim: w-1');\n"
        assert commit_sql("x", signed=True).startswith("CALL DOLT_COMMIT('-S'")

    def test_nothing_to_commit(self):
        assert is_nothing_to_commit(DoltResult(1, "", "Error: nothing to commit"))
        assert not is_nothing_to_commit(DoltResult(1, "", "syntax error"))

    def test_parse_csv(self):
        rows = parse_csv('id,title\nw-1,"Fix, then ship"\nw-2,\n')
        assert rows == [{"id": "w-1", "title": "Fix, then ship"}, {"id": "w-2", "title": ""}]

    def test_parse_header_only(self):
        assert parse_csv("id,title\n") == []
        assert parse_csv("") == []

    @patch("wasteland.dolt.sql.run_dolt")
    def test_query_rows_failure_is_none(self, mock_run):
        mock_run.return_value = DoltResult(1, "", "table not found")
        assert query_rows(Path("/tmp"), "SELECT 1") is None


class TestBranches:
    """Test branch operations."""

    @patch("wasteland.dolt.branch.query_rows")
    def test_branch_exists(self, mock_rows):
        mock_rows.return_value = [{"cnt": "1"}]
        assert branch_exists(Path("/tmp"), "wl/alice/w-1")
        assert "name = 'wl/alice/w-1'" in mock_rows.call_args[0][1]

    @patch("wasteland.dolt.branch.query_rows")
    def test_list_branches_with_prefix(self, mock_rows):
        mock_rows.return_value = [{"name": "wl/a/w-1"}, {"name": "wl/b/w-2"}]
        assert list_branches(Path("/tmp"), "wl/") == ["wl/a/w-1", "wl/b/w-2"]
        assert "LIKE 'wl/%'" in mock_rows.call_args[0][1]

    @patch("wasteland.dolt.branch.query_rows", return_value=None)
    def test_list_branches_failure(self, mock_rows):
        assert list_branches(Path("/tmp")) == []

    @patch("wasteland.dolt.branch.run_dolt")
    @patch("wasteland.dolt.branch.branch_exists", return_value=False)
    def test_checkout_creates_missing_branch(self, mock_exists, mock_run):
        mock_run.return_value = DoltResult(0, "", "")
        checkout_branch(Path("/tmp"), "wl/a/w-1")
        calls = [c[0][0] for c in mock_run.call_args_list]
        assert calls == [["branch", "wl/a/w-1"], ["checkout", "wl/a/w-1"]]

    @patch("wasteland.dolt.branch.run_script")
    def test_merge_conflict_aborts(self, mock_script):
        mock_script.side_effect = [DoltResult(1, "", "merge conflict in wanted"), DoltResult(0, "", "")]
        result = merge_branch(Path("/tmp"), "wl/a/w-1")
        assert not result.success
        assert "DOLT_MERGE('--abort')" in mock_script.call_args_list[1][0][1]


class TestRemotes:
    """Test remote operations."""

    @patch("wasteland.dolt.remote.run_dolt")
    def test_list_remotes_dedupes(self, mock_run):
        mock_run.return_value = DoltResult(
            0, "origin https://doltremoteapi.dolthub.com/alice/db\nupstream https://x/hop/db\n", ""
        )
        assert list_remotes(Path("/tmp")) == ["origin", "upstream"]

    @patch("wasteland.dolt.remote.run_dolt")
    def test_push_force(self, mock_run):
        mock_run.return_value = DoltResult(0, "", "")
        push(Path("/tmp"), "origin", "wl/a/w-1", force=True)
        assert mock_run.call_args[0][0] == ["push", "--force", "origin", "wl/a/w-1"]

    @patch("wasteland.dolt.remote.run_dolt")
    def test_delete_remote_branch(self, mock_run):
        mock_run.return_value = DoltResult(0, "", "")
        delete_remote_branch(Path("/tmp"), "origin", "wl/a/w-1")
        assert mock_run.call_args[0][0] == ["push", "origin", ":wl/a/w-1"]


class TestDiff:
    """Test diff formats."""

    @pytest.mark.parametrize("fmt,expected", [
        ("text", ["diff", "main...wl/a/w-1"]),
        ("stat", ["diff", "--stat", "main...wl/a/w-1"]),
        ("sql", ["diff", "-r", "sql", "main...wl/a/w-1"]),
    ])
    @patch("wasteland.dolt.diff.run_dolt")
    def test_formats(self, mock_run, fmt, expected):
        mock_run.return_value = DoltResult(0, "", "")
        diff(Path("/tmp"), "main", "wl/a/w-1", fmt)
        assert mock_run.call_args[0][0] == expected

    def test_unknown_format(self):
        with pytest.raises(ValueError):
            diff(Path("/tmp"), "main", "x", "yaml")
