"""
Shell completion helpers.

The bash script generated by `wl completion bash` calls the hidden
`wl __complete <kind>` command, which answers from the local clone with
read-only queries. Each query is bounded by COMPLETION_TIMEOUT so a slow or
locked database never hangs the shell, and results are cached briefly
because bash asks again on every <TAB>.
"""

import json
import logging
import tempfile
import time
from pathlib import Path

from wasteland import dolt

logger = logging.getLogger(__name__)

COMPLETION_TIMEOUT = 2
CACHE_TTL_SECONDS = 5

# Which statuses each command's id argument accepts
ID_STATUS_FOR_COMMAND = {
    "claim": "open",
    "update": "open",
    "delete": "open",
    "unclaim": "claimed",
    "done": "claimed",
    "accept": "in_review",
    "reject": "in_review",
    "close": "in_review",
    "status": "",
}

BRANCH_COMMANDS = ("review", "approve", "request-changes", "merge")

BASH_COMPLETION = """\
# bash completion for wl
_wl_complete() {
    local cur prev cmd
    cur="${COMP_WORDS[COMP_CWORD]}"
    cmd="${COMP_WORDS[1]}"
    if [ "$COMP_CWORD" -eq 1 ]; then
        COMPREPLY=( $(compgen -W "%(commands)s" -- "$cur") )
        return 0
    fi
    if [ "$COMP_CWORD" -eq 2 ]; then
        COMPREPLY=( $(compgen -W "$(wl __complete "$cmd" 2>/dev/null)" -- "$cur") )
    fi
    return 0
}
complete -F _wl_complete wl
"""


def cache_dir() -> Path:
    return Path(tempfile.gettempdir()) / "wl-completion-cache"


def _read_cache(key: str) -> list[str] | None:
    path = cache_dir() / f"{key}.json"
    try:
        if time.time() - path.stat().st_mtime > CACHE_TTL_SECONDS:
            return None
        return json.loads(path.read_text())
    except (OSError, json.JSONDecodeError):
        return None


def _write_cache(key: str, values: list[str]) -> None:
    try:
        cache_dir().mkdir(parents=True, exist_ok=True)
        (cache_dir() / f"{key}.json").write_text(json.dumps(values))
    except OSError as e:
        logger.debug(f"[COMPLETE] cache write failed: {e}")


def wanted_ids(db_dir: Path, status: str = "") -> list[str]:
    key = f"wanted-{status or 'all'}"
    cached = _read_cache(key)
    if cached is not None:
        return cached
    sql = "SELECT id FROM wanted"
    if status:
        sql += f" WHERE status = '{dolt.escape_sql(status)}'"
    sql += " ORDER BY created_at DESC LIMIT 50"
    rows = dolt.query_rows(db_dir, sql, timeout=COMPLETION_TIMEOUT) or []
    ids = [r["id"] for r in rows if r.get("id")]
    _write_cache(key, ids)
    return ids


def review_branches(db_dir: Path) -> list[str]:
    cached = _read_cache("branches")
    if cached is not None:
        return cached
    rows = dolt.query_rows(
        db_dir,
        "SELECT name FROM dolt_branches WHERE name LIKE 'wl/%' ORDER BY name",
        timeout=COMPLETION_TIMEOUT,
    ) or []
    branches = [r["name"] for r in rows if r.get("name")]
    _write_cache("branches", branches)
    return branches


def candidates(command: str, db_dir: Path) -> list[str]:
    """Completion words for the first argument of command."""
    if command in ID_STATUS_FOR_COMMAND:
        return wanted_ids(db_dir, ID_STATUS_FOR_COMMAND[command])
    if command in BRANCH_COMMANDS:
        return review_branches(db_dir)
    return []


def bash_script(commands: list[str]) -> str:
    return BASH_COMPLETION % {"commands": " ".join(commands)}
