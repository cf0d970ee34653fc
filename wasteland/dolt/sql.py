"""Dolt SQL execution and CSV result parsing."""

import csv
import io
from pathlib import Path

from wasteland.dolt.runner import run_dolt, DoltResult

QUERY_TIMEOUT = 15


def escape_sql(value: str) -> str:
    """Escape backslashes and single quotes for SQL string literals."""
    return value.replace("\\", "\\\\").replace("'", "''")


def quote(value: str | None) -> str:
    """Render a value as a SQL string literal, or NULL when empty."""
    if value is None or value == "":
        return "NULL"
    return f"'{escape_sql(value)}'"


def commit_sql(message: str, signed: bool = False) -> str:
    """DOLT_COMMIT call, with -S when commits are GPG-signed."""
    if signed:
        return f"CALL DOLT_COMMIT('-S', '-m', '{escape_sql(message)}');\n"
    return f"CALL DOLT_COMMIT('-m', '{escape_sql(message)}');\n"


def is_nothing_to_commit(result: DoltResult) -> bool:
    """True if DOLT_COMMIT found no changes (guarded UPDATE matched no rows)."""
    return "nothing to commit" in result.output.lower()


def run_script(db_dir: Path, script: str, timeout: float = 30) -> DoltResult:
    """Execute a multi-statement SQL script via stdin."""
    return run_dolt(["sql"], db_dir, timeout=timeout, input=script)


def query(db_dir: Path, sql: str, timeout: float = QUERY_TIMEOUT) -> DoltResult:
    """Run a read query with CSV output."""
    return run_dolt(["sql", "-r", "csv", "-q", sql], db_dir, timeout=timeout)


def parse_csv(data: str) -> list[dict[str, str]]:
    """Parse `dolt sql -r csv` output into a list of row dicts.

    Returns empty list for header-only or empty output.
    """
    data = data.strip()
    if not data:
        return []
    reader = csv.DictReader(io.StringIO(data))
    rows = []
    for row in reader:
        rows.append({(k or "").strip(): (v or "").strip() for k, v in row.items()})
    return rows


def query_rows(db_dir: Path, sql: str, timeout: float = QUERY_TIMEOUT) -> list[dict[str, str]] | None:
    """Run a query and parse rows. Returns None on failure."""
    result = query(db_dir, sql, timeout=timeout)
    if not result.success:
        return None
    return parse_csv(result.stdout)
