"""
Where does a wanted item live right now?

An item can be visible on canonical main (upstream), on the rig's fork
(origin), on a per-item review branch, and in the local working copy, each
with its own status. locate() fetches the remotes without merging and reads
the item's status "as of" each ref. It is computed fresh before every
mutation and never cached.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone

from wasteland.lib.commons import (
    BRANCH_PREFIX,
    STATUS_CLAIMED,
    WorkItem,
    extract_wanted_id,
)
from wasteland.lib.database import MAIN, REMOTE_ORIGIN, REMOTE_UPSTREAM

logger = logging.getLogger(__name__)

# Status recorded for a remote whose fetch failed
UNKNOWN = "unknown"

STALE_CLAIM_DAYS = 14


@dataclass
class ItemLocation:
    """Statuses of one item across refs. None means absent there."""
    wanted_id: str
    local_status: str | None = None  # working copy
    main_status: str | None = None  # local main
    origin_status: str | None = None  # fork: origin/main
    upstream_status: str | None = None  # canonical: upstream/main
    has_upstream: bool = True
    fetched_origin: bool = False
    fetched_upstream: bool = False
    branch_statuses: dict[str, str | None] = field(default_factory=dict)
    canonical_updated_at: str | None = None

    @property
    def canonical_status(self) -> str | None:
        """Canonical view; local main stands in when there is no upstream remote."""
        if not self.has_upstream:
            return self.main_status
        return self.upstream_status

    @property
    def fork_status(self) -> str | None:
        return self.origin_status

    @property
    def canonical_known(self) -> bool:
        return self.canonical_status != UNKNOWN

    @property
    def fork_only(self) -> bool:
        """Item is on the fork and nowhere canonical yet."""
        return (
            self.canonical_status is None
            and self.fork_status is not None
            and self.fork_status != UNKNOWN
        )

    @property
    def fork_diverges(self) -> bool:
        """Fork and canonical disagree, or canonical could not be read."""
        if not self.canonical_known:
            return True
        if self.fork_status in (None, UNKNOWN):
            return False
        return self.fork_status != self.canonical_status

    @property
    def branch_only(self) -> bool:
        """Item exists only on review branches (posted in PR mode, never merged)."""
        on_branch = any(s is not None for s in self.branch_statuses.values())
        return (
            on_branch
            and self.canonical_status is None
            and self.fork_status is None
            and self.main_status is None
        )

    @property
    def effective_status(self) -> str | None:
        """Best answer to "what state is this item in", canonical first."""
        if self.canonical_status not in (None, UNKNOWN):
            return self.canonical_status
        if self.fork_status not in (None, UNKNOWN):
            return self.fork_status
        for status in self.branch_statuses.values():
            if status is not None:
                return status
        return self.local_status


def _read_remote(db, wanted_id: str, remote: str, present: bool) -> tuple[bool, str | None]:
    """Fetch remote and read status at <remote>/main. Returns (fetched, status)."""
    if not present:
        return False, None
    if not db.fetch(remote):
        logger.warning(f"[LOCATE] fetch {remote} failed; treating {wanted_id} as unknown there")
        return False, UNKNOWN
    return True, db.query_status_as_of(wanted_id, f"{remote}/{MAIN}")


def locate(db, wanted_id: str) -> ItemLocation:
    """Resolve an item's location. Never raises for missing remotes or refs."""
    remotes = db.list_remotes()
    loc = ItemLocation(wanted_id=wanted_id, has_upstream=REMOTE_UPSTREAM in remotes)

    loc.fetched_origin, loc.origin_status = _read_remote(db, wanted_id, REMOTE_ORIGIN, REMOTE_ORIGIN in remotes)
    loc.fetched_upstream, loc.upstream_status = _read_remote(db, wanted_id, REMOTE_UPSTREAM, loc.has_upstream)

    loc.main_status = db.query_status_as_of(wanted_id, MAIN)
    loc.local_status = db.query_status_as_of(wanted_id, "")

    for branch in db.list_branches(f"{BRANCH_PREFIX}/"):
        if extract_wanted_id(branch) == wanted_id:
            loc.branch_statuses[branch] = db.query_status_as_of(wanted_id, branch)

    if loc.canonical_known and loc.canonical_status is not None:
        ref = f"{REMOTE_UPSTREAM}/{MAIN}" if loc.has_upstream else MAIN
        loc.canonical_updated_at = db.query_updated_at_as_of(wanted_id, ref)

    logger.debug(
        f"[LOCATE] {wanted_id}: canonical={loc.canonical_status} fork={loc.fork_status} "
        f"local={loc.local_status} branches={loc.branch_statuses}"
    )
    return loc


def _parse_timestamp(value: str) -> datetime | None:
    for fmt in ("%Y-%m-%d %H:%M:%S", "%Y-%m-%dT%H:%M:%SZ", "%Y-%m-%d %H:%M:%S.%f"):
        try:
            return datetime.strptime(value, fmt).replace(tzinfo=timezone.utc)
        except ValueError:
            continue
    return None


def stale_claim_warning(loc: ItemLocation, now: datetime | None = None) -> str | None:
    """Warning text if the item has sat claimed on canonical for too long."""
    if loc.canonical_status != STATUS_CLAIMED or not loc.canonical_updated_at:
        return None
    updated = _parse_timestamp(loc.canonical_updated_at)
    if updated is None:
        return None
    now = now or datetime.now(timezone.utc)
    age = now - updated
    if age <= timedelta(days=STALE_CLAIM_DAYS):
        return None
    return f"{loc.wanted_id} has been claimed for {age.days} days without progress on canonical"


@dataclass
class DashboardEntry:
    item: WorkItem
    source: str  # "canonical", "fork" or the branch name


def dedupe_items(
    canonical: list[WorkItem],
    fork: list[WorkItem],
    branches: dict[str, list[WorkItem]],
) -> list[DashboardEntry]:
    """One entry per item id; canonical wins, then fork, then branches."""
    seen: dict[str, DashboardEntry] = {}
    for item in canonical:
        seen.setdefault(item.id, DashboardEntry(item, "canonical"))
    for item in fork:
        seen.setdefault(item.id, DashboardEntry(item, "fork"))
    for branch in sorted(branches):
        for item in branches[branch]:
            seen.setdefault(item.id, DashboardEntry(item, branch))
    return list(seen.values())
