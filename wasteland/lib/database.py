"""
Local-clone database operations used by the workflow layer.

DoltDB binds the dolt wrappers to one clone directory and reports the
best-effort operations (sync, push) as policy Results rather than raising.
The workflow code depends only on the methods here, so tests substitute an
in-memory fake with the same surface.
"""

import logging
from pathlib import Path
from typing import Callable

from wasteland import dolt
from wasteland.dolt.runner import DOLT_INSTALL_URL
from wasteland.lib.commons import WANTED_COLUMNS, WorkItem, row_to_item
from wasteland.lib.errors import InputError, NotFoundError, StoreError, ToolingError
from wasteland.lib.policy import ErrorClass, Result

logger = logging.getLogger(__name__)

REMOTE_UPSTREAM = "upstream"
REMOTE_ORIGIN = "origin"
MAIN = "main"

Progress = Callable[[str], None]


class DoltDB:
    """Branch, remote and point-in-time read operations on a local clone."""

    def __init__(self, db_dir: Path | str):
        self.db_dir = Path(db_dir)

    def require_tool(self) -> None:
        if not dolt.dolt_available():
            raise ToolingError("dolt not found in PATH", hint=f"Install dolt: {DOLT_INSTALL_URL}")

    # --- remotes ---

    def list_remotes(self) -> list[str]:
        return dolt.list_remotes(self.db_dir)

    def has_remote(self, name: str) -> bool:
        return name in self.list_remotes()

    def canonical_remote(self) -> str:
        """upstream when configured; in direct setups origin is canonical."""
        return REMOTE_UPSTREAM if self.has_remote(REMOTE_UPSTREAM) else REMOTE_ORIGIN

    def fetch(self, remote: str) -> bool:
        result = dolt.fetch(self.db_dir, remote)
        if not result.success:
            logger.debug(f"[DB] fetch {remote} failed: {result.output}")
        return result.success

    def sync(self) -> Result:
        """Pull canonical main into the local clone."""
        remote = self.canonical_remote()
        result = dolt.pull(self.db_dir, remote, MAIN)
        if not result.success:
            return Result.failure(ErrorClass.SYNC, f"upstream sync failed: {result.output}")
        return Result.success()

    def push_main(self, progress: Progress = print) -> Result:
        """Force-push local main to the fork."""
        result = dolt.push(self.db_dir, REMOTE_ORIGIN, MAIN, force=True)
        if not result.success:
            return Result.failure(ErrorClass.PUSH, f"push to origin failed: {result.output}")
        progress(f"  Pushed to {REMOTE_ORIGIN}")
        return Result.success()

    def push_branch(self, branch: str, progress: Progress = print) -> Result:
        """Force-push a wl/* branch to the fork. Safe: the branch is the rig's own."""
        result = dolt.push(self.db_dir, REMOTE_ORIGIN, branch, force=True)
        if not result.success:
            return Result.failure(ErrorClass.PUSH, f"push of {branch} failed: {result.output}")
        progress(f"  Pushed {branch} to {REMOTE_ORIGIN}")
        return Result.success()

    def push_with_sync(self, progress: Progress = print) -> Result:
        """Push main to canonical and fork, pulling and retrying a rejected push once."""
        remotes = [REMOTE_UPSTREAM, REMOTE_ORIGIN] if self.has_remote(REMOTE_UPSTREAM) else [REMOTE_ORIGIN]
        failures = []
        for remote in remotes:
            pushed = dolt.push(self.db_dir, remote, MAIN)
            if not pushed.success:
                progress(f"  Syncing with {remote}...")
                pulled = dolt.pull(self.db_dir, remote, MAIN)
                if not pulled.success:
                    progress(f"  warning: sync from {remote} failed: {pulled.output}")
                    failures.append(remote)
                    continue
                pushed = dolt.push(self.db_dir, remote, MAIN)
                if not pushed.success:
                    progress(f"  warning: push to {remote} failed after sync: {pushed.output}")
                    failures.append(remote)
                    continue
            progress(f"  Pushed to {remote}")
        if failures:
            return Result.failure(ErrorClass.PUSH, f"push failed for remotes: {', '.join(failures)}")
        return Result.success()

    def delete_remote_branch(self, branch: str) -> Result:
        result = dolt.delete_remote_branch(self.db_dir, REMOTE_ORIGIN, branch)
        if not result.success:
            return Result.failure(ErrorClass.BRANCH_DELETE, f"could not delete {branch} on origin: {result.output}")
        return Result.success()

    # --- branches ---

    def current_branch(self) -> str | None:
        return dolt.get_current_branch(self.db_dir)

    def branch_exists(self, branch: str) -> bool:
        return dolt.branch_exists(self.db_dir, branch)

    def list_branches(self, prefix: str = "") -> list[str]:
        return dolt.list_branches(self.db_dir, prefix)

    def checkout_branch(self, branch: str) -> None:
        """Checkout (creating if needed). Idempotent when already on branch."""
        result = dolt.checkout_branch(self.db_dir, branch)
        if not result.success:
            raise StoreError(f"checkout {branch} failed: {result.output}")

    def checkout_main(self) -> None:
        result = dolt.checkout_main(self.db_dir)
        if not result.success:
            raise StoreError(f"checkout main failed: {result.output}")

    def merge_branch(self, branch: str) -> None:
        result = dolt.merge_branch(self.db_dir, branch)
        if not result.success:
            raise StoreError(f"merge of {branch} failed: {result.output}")

    def delete_branch(self, branch: str) -> Result:
        result = dolt.delete_branch(self.db_dir, branch)
        if not result.success:
            return Result.failure(ErrorClass.BRANCH_DELETE, f"could not delete local branch {branch}: {result.output}")
        return Result.success()

    # --- reads ---

    def diff_base(self) -> str:
        """upstream/main if an upstream remote exists and fetches, else main."""
        if self.has_remote(REMOTE_UPSTREAM) and self.fetch(REMOTE_UPSTREAM):
            return f"{REMOTE_UPSTREAM}/{MAIN}"
        return MAIN

    def diff(self, branch: str, fmt: str = "text", base: str | None = None) -> dolt.DoltResult:
        return dolt.diff(self.db_dir, base or self.diff_base(), branch, fmt)

    def _as_of(self, ref: str) -> str:
        return f" AS OF '{dolt.escape_sql(ref)}'" if ref else ""

    def query_status_as_of(self, wanted_id: str, ref: str = "") -> str | None:
        """Item status at ref ("" = working copy). None if absent or unreadable."""
        rows = dolt.query_rows(
            self.db_dir,
            f"SELECT status FROM wanted{self._as_of(ref)} WHERE id='{dolt.escape_sql(wanted_id)}'",
        )
        if not rows:
            return None
        return rows[0].get("status") or None

    def query_title_as_of(self, wanted_id: str, ref: str = "") -> str | None:
        rows = dolt.query_rows(
            self.db_dir,
            f"SELECT title FROM wanted{self._as_of(ref)} WHERE id='{dolt.escape_sql(wanted_id)}' LIMIT 1",
        )
        if not rows:
            return None
        return rows[0].get("title") or None

    def query_updated_at_as_of(self, wanted_id: str, ref: str = "") -> str | None:
        rows = dolt.query_rows(
            self.db_dir,
            f"SELECT COALESCE(updated_at,'') AS updated_at FROM wanted{self._as_of(ref)} "
            f"WHERE id='{dolt.escape_sql(wanted_id)}'",
        )
        if not rows:
            return None
        return rows[0].get("updated_at") or None

    def list_wanted_ids(self, status: str = "", timeout: float | None = None) -> list[str]:
        sql = "SELECT id FROM wanted"
        if status:
            sql += f" WHERE status = '{dolt.escape_sql(status)}'"
        sql += " ORDER BY created_at DESC LIMIT 50"
        kwargs = {"timeout": timeout} if timeout is not None else {}
        rows = dolt.query_rows(self.db_dir, sql, **kwargs)
        return [r["id"] for r in rows or [] if r.get("id")]

    def resolve_wanted_id(self, id_or_prefix: str) -> str:
        """Expand an unambiguous id prefix to the full id."""
        if not id_or_prefix:
            raise InputError("wanted id is required")
        rows = dolt.query_rows(
            self.db_dir,
            f"SELECT id FROM wanted WHERE id LIKE '{dolt.escape_sql(id_or_prefix)}%' LIMIT 3",
        )
        if rows is None:
            raise StoreError(f"could not look up '{id_or_prefix}'")
        matches = [r["id"] for r in rows if r.get("id")]
        if id_or_prefix in matches:
            return id_or_prefix
        if not matches:
            # Items posted in PR mode exist only on their wl/<rig>/<id> branch
            matches = sorted({
                b.split("/", 2)[2] for b in self.list_branches("wl/")
                if b.count("/") >= 2 and b.split("/", 2)[2].startswith(id_or_prefix)
            })
            if id_or_prefix in matches:
                return id_or_prefix
        if not matches:
            raise NotFoundError(f"no wanted item matching '{id_or_prefix}'")
        if len(matches) > 1:
            raise InputError(f"ambiguous prefix '{id_or_prefix}' matches: {', '.join(matches)}")
        return matches[0]

    def list_items_as_of(self, ref: str = "", rig: str = "", timeout: float | None = None) -> list[WorkItem]:
        """Items at ref posted or claimed by rig (all items when rig is "")."""
        sql = f"SELECT {WANTED_COLUMNS} FROM wanted{self._as_of(ref)}"
        if rig:
            r = dolt.escape_sql(rig)
            sql += f" WHERE posted_by='{r}' OR claimed_by='{r}'"
        sql += " ORDER BY priority ASC, created_at DESC"
        kwargs = {"timeout": timeout} if timeout is not None else {}
        rows = dolt.query_rows(self.db_dir, sql, **kwargs)
        if rows is None:
            logger.debug(f"[DB] could not list items at {ref or 'working copy'}")
            return []
        return [row_to_item(r) for r in rows]

    def board_summary(self) -> dict[str, str] | None:
        """Row counts shown after a sync. None if the query fails."""
        rows = dolt.query_rows(
            self.db_dir,
            "SELECT (SELECT COUNT(*) FROM wanted WHERE status = 'open') AS open_wanted, "
            "(SELECT COUNT(*) FROM wanted) AS total_wanted, "
            "(SELECT COUNT(*) FROM completions) AS total_completions, "
            "(SELECT COUNT(*) FROM stamps) AS total_stamps",
        )
        return rows[0] if rows else None
