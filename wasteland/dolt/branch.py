"""Dolt branch operations."""

from pathlib import Path

from wasteland.dolt.runner import run_dolt, DoltResult
from wasteland.dolt.sql import escape_sql, query_rows, run_script


def get_current_branch(db_dir: Path) -> str | None:
    """Get the checked-out branch name."""
    rows = query_rows(db_dir, "SELECT active_branch() AS branch")
    if rows:
        return rows[0].get("branch") or None
    return None


def branch_exists(db_dir: Path, branch: str) -> bool:
    """Check if a local branch exists."""
    rows = query_rows(
        db_dir,
        f"SELECT COUNT(*) AS cnt FROM dolt_branches WHERE name = '{escape_sql(branch)}'",
    )
    if not rows:
        return False
    return rows[0].get("cnt", "0") != "0"


def list_branches(db_dir: Path, prefix: str = "") -> list[str]:
    """List local branch names starting with prefix (e.g. "wl/")."""
    sql = "SELECT name FROM dolt_branches"
    if prefix:
        sql += f" WHERE name LIKE '{escape_sql(prefix)}%'"
    sql += " ORDER BY name"
    rows = query_rows(db_dir, sql)
    return [r["name"] for r in rows or [] if r.get("name")]


def create_branch(db_dir: Path, branch: str) -> DoltResult:
    """Create a branch at the current HEAD."""
    return run_dolt(["branch", branch], db_dir)


def checkout_branch(db_dir: Path, branch: str) -> DoltResult:
    """Checkout a branch, creating it first if missing.

    Uses the CLI rather than DOLT_CHECKOUT() because the SQL procedure is
    session-scoped and does not persist across `dolt sql` invocations.
    """
    if not branch_exists(db_dir, branch):
        created = create_branch(db_dir, branch)
        if not created.success:
            return created
    return run_dolt(["checkout", branch], db_dir)


def checkout_main(db_dir: Path) -> DoltResult:
    """Return the working copy to main."""
    return run_dolt(["checkout", "main"], db_dir)


def merge_branch(db_dir: Path, branch: str) -> DoltResult:
    """Merge branch into main. Aborts the merge on conflict."""
    result = run_script(
        db_dir,
        f"CALL DOLT_CHECKOUT('main');\nCALL DOLT_MERGE('{escape_sql(branch)}');\n",
    )
    if not result.success and "conflict" in result.output.lower():
        run_script(db_dir, "CALL DOLT_MERGE('--abort');\n")
    return result


def delete_branch(db_dir: Path, branch: str) -> DoltResult:
    """Force-delete a local branch."""
    return run_script(db_dir, f"CALL DOLT_BRANCH('-D', '{escape_sql(branch)}');\n")
