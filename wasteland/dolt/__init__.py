"""Dolt operations for the wanted board.

Thin subprocess wrappers around the `dolt` CLI, the versioned-database engine.

Return type conventions:
- Functions returning DoltResult: Caller must check .success before using output.
  Examples: checkout_branch(), push(), fetch(), run_script()
- Functions returning bool: True on success/condition met, False otherwise.
  Examples: branch_exists(), dolt_available()
- Functions returning parsed values (str, list): Return empty/None on failure.
  Examples: list_branches() -> [], get_current_branch() -> None
"""

from wasteland.dolt.runner import (
    DoltResult,
    run_dolt,
    dolt_available,
)
from wasteland.dolt.sql import (
    escape_sql,
    quote,
    commit_sql,
    is_nothing_to_commit,
    run_script,
    query,
    query_rows,
    parse_csv,
)
from wasteland.dolt.branch import (
    get_current_branch,
    branch_exists,
    list_branches,
    create_branch,
    checkout_branch,
    checkout_main,
    merge_branch,
    delete_branch,
)
from wasteland.dolt.remote import (
    list_remotes,
    fetch,
    pull,
    push,
    delete_remote_branch,
)
from wasteland.dolt.diff import diff

__all__ = [
    # runner
    "DoltResult",
    "run_dolt",
    "dolt_available",
    # sql
    "escape_sql",
    "quote",
    "commit_sql",
    "is_nothing_to_commit",
    "run_script",
    "query",
    "query_rows",
    "parse_csv",
    # branch
    "get_current_branch",
    "branch_exists",
    "list_branches",
    "create_branch",
    "checkout_branch",
    "checkout_main",
    "merge_branch",
    "delete_branch",
    # remote
    "list_remotes",
    "fetch",
    "pull",
    "push",
    "delete_remote_branch",
    # diff
    "diff",
]
