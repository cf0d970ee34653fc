"""
Wanted-board records and the store that writes them.

The commons database has three tables this tool touches: `wanted` (work
items), `completions` (evidence submitted for review) and `stamps`
(reputation issued on acceptance). Every write is a single SQL script that
ends with DOLT_COMMIT. Status-changing UPDATEs are guarded by the expected
current status, so a stale write matches no rows and DOLT_COMMIT reports
"nothing to commit", which is mapped to a state conflict.
"""

import hashlib
import json
import logging
import secrets
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path

from wasteland.dolt.sql import (
    commit_sql,
    escape_sql,
    is_nothing_to_commit,
    query_rows,
    quote,
    run_script,
)
from wasteland.lib.errors import (
    InputError,
    NotFoundError,
    StateConflictError,
    StoreError,
)

logger = logging.getLogger(__name__)

# Item statuses
STATUS_OPEN = "open"
STATUS_CLAIMED = "claimed"
STATUS_IN_REVIEW = "in_review"
STATUS_COMPLETED = "completed"
STATUS_WITHDRAWN = "withdrawn"
STATUSES = [STATUS_OPEN, STATUS_CLAIMED, STATUS_IN_REVIEW, STATUS_COMPLETED, STATUS_WITHDRAWN]

VALID_TYPES = ["feature", "bug", "design", "rfc", "docs"]
VALID_EFFORTS = ["trivial", "small", "medium", "large", "epic"]
VALID_SEVERITIES = ["leaf", "branch", "root"]
DEFAULT_EFFORT = "medium"
DEFAULT_SEVERITY = "leaf"


@dataclass
class WorkItem:
    """A row in the wanted table."""
    id: str
    title: str
    description: str = ""
    project: str = ""
    type: str = ""
    priority: int = 2
    tags: list[str] = field(default_factory=list)
    posted_by: str = ""
    claimed_by: str = ""
    status: str = STATUS_OPEN
    effort_level: str = DEFAULT_EFFORT
    created_at: str = ""
    updated_at: str = ""


@dataclass
class CompletionRecord:
    """Evidence submitted against a claimed item."""
    id: str
    wanted_id: str
    completed_by: str
    evidence: str = ""
    stamp_id: str = ""
    validated_by: str = ""


@dataclass
class Stamp:
    """Reputation assertion created when a completion is accepted."""
    id: str
    author: str
    subject: str
    quality: int
    reliability: int
    severity: str = DEFAULT_SEVERITY
    context_id: str = ""  # completion id
    context_type: str = "completion"
    skill_tags: list[str] = field(default_factory=list)
    message: str = ""


@dataclass
class WantedUpdate:
    """Field edits for an open item. None means "leave unchanged"."""
    title: str | None = None
    description: str | None = None
    project: str | None = None
    type: str | None = None
    priority: int | None = None
    effort_level: str | None = None
    tags: list[str] | None = None  # [] clears tags

    def is_empty(self) -> bool:
        return all(
            v is None
            for v in (self.title, self.description, self.project, self.type,
                      self.priority, self.effort_level, self.tags)
        )


# --- Identifiers ---

def generate_wanted_id(title: str) -> str:
    """w-<10 hex> from title, wall clock and randomness."""
    seed = f"{title}:{time.time_ns()}:{secrets.token_hex(8)}"
    return "w-" + hashlib.sha256(seed.encode()).hexdigest()[:10]


def generate_prefixed_id(prefix: str, *inputs: str) -> str:
    """<prefix>-<16 hex> from inputs joined by "|" plus an RFC 3339 timestamp."""
    now = datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")
    data = "|".join(inputs) + "|" + now
    return f"{prefix}-" + hashlib.sha256(data.encode()).hexdigest()[:16]


# --- Review branch naming ---

BRANCH_PREFIX = "wl"


def branch_name(rig: str, wanted_id: str) -> str:
    """Per-item review branch: wl/<rig>/<id>."""
    if not rig or not wanted_id or "/" in rig or "/" in wanted_id:
        raise InputError(f"cannot build branch name from rig '{rig}' and id '{wanted_id}'")
    return f"{BRANCH_PREFIX}/{rig}/{wanted_id}"


def extract_wanted_id(branch: str) -> str:
    """wl/<rig>/<id> -> <id>. Anything else is returned unchanged."""
    parts = branch.split("/", 2)
    if len(parts) < 3 or parts[0] != BRANCH_PREFIX:
        return branch
    return parts[2]


def is_review_branch(branch: str) -> bool:
    return extract_wanted_id(branch) != branch


# --- Input validation ---

def validate_type(item_type: str | None) -> None:
    if item_type and item_type not in VALID_TYPES:
        raise InputError(f"invalid type '{item_type}': must be one of {', '.join(VALID_TYPES)}")


def validate_effort(effort: str | None) -> None:
    if effort and effort not in VALID_EFFORTS:
        raise InputError(f"invalid effort '{effort}': must be one of {', '.join(VALID_EFFORTS)}")


def validate_priority(priority: int | None) -> None:
    if priority is not None and not 0 <= priority <= 4:
        raise InputError(f"invalid priority {priority}: must be 0-4")


def validate_post(title: str, item_type: str | None, effort: str | None, priority: int) -> None:
    if not title.strip():
        raise InputError("title is required")
    validate_type(item_type)
    validate_effort(effort)
    validate_priority(priority)


def validate_update(fields: WantedUpdate) -> None:
    if fields.is_empty():
        raise InputError("at least one field must be provided to update")
    if fields.title is not None and not fields.title.strip():
        raise InputError("title cannot be empty")
    validate_type(fields.type)
    validate_effort(fields.effort_level)
    validate_priority(fields.priority)


def validate_accept(quality: int, reliability: int, severity: str) -> None:
    if not 1 <= quality <= 5:
        raise InputError(f"invalid quality {quality}: must be 1-5")
    if not 1 <= reliability <= 5:
        raise InputError(f"invalid reliability {reliability}: must be 1-5")
    if severity not in VALID_SEVERITIES:
        raise InputError(f"invalid severity '{severity}': must be one of {', '.join(VALID_SEVERITIES)}")


def parse_tags(raw: str | None) -> list[str]:
    """Split a comma-separated tag flag into a clean list."""
    if not raw:
        return []
    return [t.strip() for t in raw.split(",") if t.strip()]


def format_tags_json(tags: list[str] | None) -> str:
    """Render tags as a JSON array SQL literal, or NULL when empty."""
    if not tags:
        return "NULL"
    return f"'{escape_sql(json.dumps(tags))}'"


def parse_tags_json(raw: str) -> list[str]:
    raw = (raw or "").strip()
    if not raw or raw == "NULL":
        return []
    try:
        tags = json.loads(raw)
    except json.JSONDecodeError:
        return []
    return [str(t) for t in tags] if isinstance(tags, list) else []


# --- Store contract ---

class WantedStore(ABC):
    """Domain reads and writes against the currently checked-out branch."""

    @abstractmethod
    def insert_wanted(self, item: WorkItem) -> None: ...

    @abstractmethod
    def claim_wanted(self, wanted_id: str, rig: str) -> None: ...

    @abstractmethod
    def unclaim_wanted(self, wanted_id: str) -> None: ...

    @abstractmethod
    def submit_completion(self, completion_id: str, wanted_id: str, rig: str, evidence: str) -> None: ...

    @abstractmethod
    def accept_completion(self, wanted_id: str, completion_id: str, rig: str, stamp: Stamp) -> None: ...

    @abstractmethod
    def reject_completion(self, wanted_id: str, rig: str, reason: str = "") -> None: ...

    @abstractmethod
    def close_wanted(self, wanted_id: str) -> None: ...

    @abstractmethod
    def update_wanted(self, wanted_id: str, fields: WantedUpdate) -> None: ...

    @abstractmethod
    def delete_wanted(self, wanted_id: str) -> None: ...

    @abstractmethod
    def query_wanted(self, wanted_id: str) -> WorkItem: ...

    @abstractmethod
    def query_completion(self, wanted_id: str) -> CompletionRecord: ...

    @abstractmethod
    def query_stamp(self, stamp_id: str) -> Stamp: ...


WANTED_COLUMNS = (
    "id, title, COALESCE(description,'') AS description, COALESCE(project,'') AS project, "
    "COALESCE(type,'') AS type, priority, COALESCE(tags,'') AS tags, "
    "COALESCE(posted_by,'') AS posted_by, COALESCE(claimed_by,'') AS claimed_by, status, "
    "COALESCE(effort_level,'medium') AS effort_level, COALESCE(created_at,'') AS created_at, "
    "COALESCE(updated_at,'') AS updated_at"
)


def row_to_item(row: dict[str, str]) -> WorkItem:
    try:
        priority = int(row.get("priority") or 2)
    except ValueError:
        priority = 2
    return WorkItem(
        id=row.get("id", ""),
        title=row.get("title", ""),
        description=row.get("description", ""),
        project=row.get("project", ""),
        type=row.get("type", ""),
        priority=priority,
        tags=parse_tags_json(row.get("tags", "")),
        posted_by=row.get("posted_by", ""),
        claimed_by=row.get("claimed_by", ""),
        status=row.get("status", ""),
        effort_level=row.get("effort_level", DEFAULT_EFFORT),
        created_at=row.get("created_at", ""),
        updated_at=row.get("updated_at", ""),
    )


class DoltStore(WantedStore):
    """WantedStore backed by `dolt sql` in the local clone."""

    def __init__(self, db_dir: Path, signed: bool = False, hop_uri: str | None = None):
        self.db_dir = Path(db_dir)
        self.signed = signed
        self.hop_uri = hop_uri

    def _exec(self, verb: str, wanted_id: str, dml: str, conflict: str, message: str | None = None) -> None:
        """Run guarded DML plus commit. Raises StateConflictError if nothing changed."""
        script = dml + "CALL DOLT_ADD('-A');\n" + commit_sql(message or f"wl {verb}: {wanted_id}", self.signed)
        result = run_script(self.db_dir, script)
        if result.success:
            logger.debug(f"[STORE] {verb} {wanted_id} committed")
            return
        if is_nothing_to_commit(result):
            raise StateConflictError(conflict)
        raise StoreError(f"{verb} failed: {result.output}")

    def _rows(self, sql: str) -> list[dict[str, str]]:
        rows = query_rows(self.db_dir, sql)
        if rows is None:
            raise StoreError(f"query failed: {sql}")
        return rows

    def insert_wanted(self, item: WorkItem) -> None:
        if not item.id:
            raise InputError("wanted item ID cannot be empty")
        if not item.title:
            raise InputError("wanted item title cannot be empty")
        now = datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S")
        dml = (
            "INSERT INTO wanted (id, title, description, project, type, priority, tags, "
            "posted_by, status, effort_level, created_at, updated_at)\n"
            f"VALUES ('{escape_sql(item.id)}', '{escape_sql(item.title)}', {quote(item.description)}, "
            f"{quote(item.project)}, {quote(item.type)}, {int(item.priority)}, {format_tags_json(item.tags)}, "
            f"{quote(item.posted_by)}, {quote(item.status or STATUS_OPEN)}, "
            f"{quote(item.effort_level or DEFAULT_EFFORT)}, '{now}', '{now}');\n"
        )
        self._exec("post", item.id, dml, f"wanted item '{item.id}' already exists",
                   message=f"wl post: {item.title}")

    def claim_wanted(self, wanted_id: str, rig: str) -> None:
        dml = (
            f"UPDATE wanted SET claimed_by='{escape_sql(rig)}', status='claimed', updated_at=NOW()\n"
            f"  WHERE id='{escape_sql(wanted_id)}' AND status='open';\n"
        )
        self._exec("claim", wanted_id, dml, f"wanted item '{wanted_id}' is not open or does not exist")

    def unclaim_wanted(self, wanted_id: str) -> None:
        dml = (
            "UPDATE wanted SET claimed_by=NULL, status='open', updated_at=NOW()\n"
            f"  WHERE id='{escape_sql(wanted_id)}' AND status='claimed';\n"
        )
        self._exec("unclaim", wanted_id, dml, f"wanted item '{wanted_id}' is not claimed or does not exist")

    def submit_completion(self, completion_id: str, wanted_id: str, rig: str, evidence: str) -> None:
        wid, r = escape_sql(wanted_id), escape_sql(rig)
        dml = (
            f"UPDATE wanted SET status='in_review', evidence_url='{escape_sql(evidence)}', updated_at=NOW()\n"
            f"  WHERE id='{wid}' AND status='claimed' AND claimed_by='{r}';\n"
            "INSERT IGNORE INTO completions (id, wanted_id, completed_by, evidence, hop_uri, completed_at)\n"
            f"  SELECT '{escape_sql(completion_id)}', '{wid}', '{r}', '{escape_sql(evidence)}', "
            f"{quote(self.hop_uri)}, NOW()\n"
            f"  FROM wanted WHERE id='{wid}' AND status='in_review' AND claimed_by='{r}'\n"
            f"  AND NOT EXISTS (SELECT 1 FROM completions WHERE wanted_id='{wid}');\n"
        )
        self._exec("done", wanted_id, dml, f"wanted item '{wanted_id}' is not claimed by '{rig}' or does not exist")

    def accept_completion(self, wanted_id: str, completion_id: str, rig: str, stamp: Stamp) -> None:
        valence = json.dumps({"quality": stamp.quality, "reliability": stamp.reliability})
        cid = escape_sql(completion_id)
        dml = (
            "INSERT INTO stamps (id, author, subject, valence, confidence, severity, context_id, "
            "context_type, skill_tags, message, hop_uri, created_at)\n"
            f"VALUES ('{escape_sql(stamp.id)}', '{escape_sql(rig)}', '{escape_sql(stamp.subject)}', "
            f"'{escape_sql(valence)}', 1.0, '{escape_sql(stamp.severity)}', '{cid}', 'completion', "
            f"{format_tags_json(stamp.skill_tags)}, {quote(stamp.message)}, {quote(self.hop_uri)}, NOW());\n"
            f"UPDATE completions SET validated_by='{escape_sql(rig)}', stamp_id='{escape_sql(stamp.id)}', "
            f"validated_at=NOW() WHERE id='{cid}';\n"
            f"UPDATE wanted SET status='completed', updated_at=NOW() "
            f"WHERE id='{escape_sql(wanted_id)}' AND status='in_review';\n"
        )
        self._exec("accept", wanted_id, dml, f"wanted item '{wanted_id}' is not in_review or does not exist")

    def reject_completion(self, wanted_id: str, rig: str, reason: str = "") -> None:
        wid = escape_sql(wanted_id)
        message = f"wl reject: {wanted_id}"
        if reason:
            message += f" - {reason}"
        dml = (
            f"DELETE FROM completions WHERE wanted_id='{wid}';\n"
            f"UPDATE wanted SET status='claimed', updated_at=NOW() WHERE id='{wid}' AND status='in_review';\n"
        )
        self._exec("reject", wanted_id, dml, f"wanted item '{wanted_id}' is not in_review or does not exist",
                   message=message)

    def close_wanted(self, wanted_id: str) -> None:
        dml = (
            "UPDATE wanted SET status='completed', updated_at=NOW() "
            f"WHERE id='{escape_sql(wanted_id)}' AND status='in_review';\n"
        )
        self._exec("close", wanted_id, dml, f"wanted item '{wanted_id}' is not in_review or does not exist")

    def update_wanted(self, wanted_id: str, fields: WantedUpdate) -> None:
        sets = []
        for column in ("title", "description", "project", "type", "effort_level"):
            value = getattr(fields, column)
            if value is not None:
                sets.append(f"{column}='{escape_sql(value)}'")
        if fields.priority is not None:
            sets.append(f"priority={int(fields.priority)}")
        if fields.tags is not None:
            sets.append(f"tags={format_tags_json(fields.tags)}")
        if not sets:
            raise InputError("no fields to update")
        sets.append("updated_at=NOW()")
        dml = f"UPDATE wanted SET {', '.join(sets)} WHERE id='{escape_sql(wanted_id)}' AND status='open';\n"
        self._exec("update", wanted_id, dml, f"wanted item '{wanted_id}' is not open or does not exist")

    def delete_wanted(self, wanted_id: str) -> None:
        dml = (
            "UPDATE wanted SET status='withdrawn', updated_at=NOW() "
            f"WHERE id='{escape_sql(wanted_id)}' AND status='open';\n"
        )
        self._exec("delete", wanted_id, dml, f"wanted item '{wanted_id}' is not open or does not exist")

    def query_wanted(self, wanted_id: str) -> WorkItem:
        rows = self._rows(f"SELECT {WANTED_COLUMNS} FROM wanted WHERE id='{escape_sql(wanted_id)}'")
        if not rows:
            raise NotFoundError(f"wanted item '{wanted_id}' not found")
        return row_to_item(rows[0])

    def query_completion(self, wanted_id: str) -> CompletionRecord:
        rows = self._rows(
            "SELECT id, wanted_id, completed_by, COALESCE(evidence,'') AS evidence, "
            "COALESCE(stamp_id,'') AS stamp_id, COALESCE(validated_by,'') AS validated_by "
            f"FROM completions WHERE wanted_id='{escape_sql(wanted_id)}'"
        )
        if not rows:
            raise NotFoundError(f"no completion found for wanted item '{wanted_id}'")
        return CompletionRecord(**rows[0])

    def query_stamp(self, stamp_id: str) -> Stamp:
        rows = self._rows(
            "SELECT id, author, subject, valence, severity, COALESCE(context_id,'') AS context_id, "
            "COALESCE(context_type,'') AS context_type, COALESCE(skill_tags,'') AS skill_tags, "
            f"COALESCE(message,'') AS message FROM stamps WHERE id='{escape_sql(stamp_id)}'"
        )
        if not rows:
            raise NotFoundError(f"stamp '{stamp_id}' not found")
        row = rows[0]
        try:
            valence = json.loads(row.get("valence") or "{}")
        except json.JSONDecodeError:
            valence = {}
        return Stamp(
            id=row["id"],
            author=row["author"],
            subject=row["subject"],
            quality=int(valence.get("quality", 0)),
            reliability=int(valence.get("reliability", 0)),
            severity=row.get("severity", DEFAULT_SEVERITY),
            context_id=row.get("context_id", ""),
            context_type=row.get("context_type", ""),
            skill_tags=parse_tags_json(row.get("skill_tags", "")),
            message=row.get("message", ""),
        )
