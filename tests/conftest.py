"""In-memory stand-ins for the local clone, the domain store and a review provider."""

import copy
from dataclasses import dataclass, field, replace

import pytest

from wasteland.dolt.runner import DoltResult
from wasteland.lib.commons import (
    CompletionRecord,
    WantedStore,
    WantedUpdate,
    WorkItem,
    extract_wanted_id,
)
from wasteland.lib.config import WorkspaceConfig
from wasteland.lib.errors import (
    InputError,
    NotFoundError,
    ProviderError,
    StateConflictError,
    StoreError,
    ToolingError,
)
from wasteland.lib.policy import ErrorClass, Result
from wasteland.lib.providers import ReviewProvider


@dataclass
class Tables:
    wanted: dict = field(default_factory=dict)
    completions: dict = field(default_factory=dict)  # wanted_id -> CompletionRecord
    stamps: dict = field(default_factory=dict)


class FakeDB:
    """DoltDB surface over named in-memory refs ("main", "origin/main", "wl/a/w-1", ...)."""

    def __init__(self, remotes=("origin", "upstream")):
        self.remotes = list(remotes)
        self.refs = {"main": Tables()}
        self.current = "main"
        self.calls = []
        self.tool_ok = True
        self.sync_ok = True
        self.push_ok = True
        self.fetch_ok = {r: True for r in remotes}
        self.updated_at = {}  # (ref, wanted_id) -> timestamp string
        self.diffs = {}  # (branch, fmt) -> text

    # --- helpers for tests ---

    def tables(self, ref="") -> Tables:
        return self.refs[ref or self.current]

    def put(self, item: WorkItem, ref="main") -> None:
        self.refs.setdefault(ref, Tables()).wanted[item.id] = copy.deepcopy(item)

    def mirror(self, src: str, dst: str) -> None:
        self.refs[dst] = copy.deepcopy(self.refs[src])

    # --- DB contract ---

    def require_tool(self):
        self.calls.append("require_tool")
        if not self.tool_ok:
            raise ToolingError("dolt not found in PATH", hint="Install dolt")

    def list_remotes(self):
        return list(self.remotes)

    def has_remote(self, name):
        return name in self.remotes

    def canonical_remote(self):
        return "upstream" if "upstream" in self.remotes else "origin"

    def fetch(self, remote):
        self.calls.append(f"fetch {remote}")
        return self.fetch_ok.get(remote, False)

    def sync(self):
        self.calls.append("sync")
        if not self.sync_ok:
            return Result.failure(ErrorClass.SYNC, "upstream sync failed: offline")
        return Result.success()

    def _push(self, label, dst_refs):
        self.calls.append(label)
        if not self.push_ok:
            return Result.failure(ErrorClass.PUSH, f"{label} failed")
        for dst in dst_refs:
            self.mirror("main", dst)
        return Result.success()

    def push_main(self, progress=print):
        return self._push("push_main", ["origin/main"])

    def push_with_sync(self, progress=print):
        targets = ["origin/main"] + (["upstream/main"] if "upstream" in self.remotes else [])
        return self._push("push_with_sync", targets)

    def push_branch(self, branch, progress=print):
        self.calls.append(f"push_branch {branch}")
        if not self.push_ok:
            return Result.failure(ErrorClass.PUSH, f"push of {branch} failed")
        return Result.success()

    def delete_remote_branch(self, branch):
        self.calls.append(f"delete_remote_branch {branch}")
        return Result.success()

    def current_branch(self):
        return self.current

    def branch_exists(self, branch):
        return branch in self.refs

    def list_branches(self, prefix=""):
        return sorted(b for b in self.refs if "/" in b and b.startswith(prefix) and not b.startswith(("origin/", "upstream/")))

    def checkout_branch(self, branch):
        self.calls.append(f"checkout {branch}")
        if branch not in self.refs:
            self.mirror("main", branch)
        self.current = branch

    def checkout_main(self):
        self.calls.append("checkout main")
        self.current = "main"

    def merge_branch(self, branch):
        self.calls.append(f"merge {branch}")
        if branch not in self.refs:
            raise StoreError(f"merge of {branch} failed")
        src, dst = self.refs[branch], self.refs["main"]
        dst.wanted.update(copy.deepcopy(src.wanted))
        dst.completions.update(copy.deepcopy(src.completions))
        dst.stamps.update(copy.deepcopy(src.stamps))

    def delete_branch(self, branch):
        self.calls.append(f"delete_branch {branch}")
        self.refs.pop(branch, None)
        return Result.success()

    def diff_base(self):
        return "upstream/main" if "upstream" in self.remotes else "main"

    def diff(self, branch, fmt="text", base=None):
        text = self.diffs.get((branch, fmt))
        if text is None:
            return DoltResult(returncode=1, stdout="", stderr="no diff")
        return DoltResult(returncode=0, stdout=text, stderr="")

    def _item_at(self, wanted_id, ref):
        tables = self.refs.get(ref or self.current)
        if tables is None:
            return None
        return tables.wanted.get(wanted_id)

    def query_status_as_of(self, wanted_id, ref=""):
        item = self._item_at(wanted_id, ref)
        return item.status if item else None

    def query_title_as_of(self, wanted_id, ref=""):
        item = self._item_at(wanted_id, ref)
        return item.title if item else None

    def query_updated_at_as_of(self, wanted_id, ref=""):
        return self.updated_at.get((ref, wanted_id))

    def list_wanted_ids(self, status="", timeout=None):
        return [i.id for i in self.tables("main").wanted.values() if not status or i.status == status]

    def resolve_wanted_id(self, id_or_prefix):
        if not id_or_prefix:
            raise InputError("wanted id is required")
        ids = set(self.tables().wanted) | set(self.tables("main").wanted)
        ids |= {extract_wanted_id(b) for b in self.list_branches("wl/")}
        matches = sorted(i for i in ids if i.startswith(id_or_prefix))
        if id_or_prefix in matches:
            return id_or_prefix
        if not matches:
            raise NotFoundError(f"no wanted item matching '{id_or_prefix}'")
        if len(matches) > 1:
            raise InputError(f"ambiguous prefix '{id_or_prefix}' matches: {', '.join(matches)}")
        return matches[0]

    def list_items_as_of(self, ref="", rig="", timeout=None):
        tables = self.refs.get(ref or self.current)
        if tables is None:
            return []
        return [
            copy.deepcopy(i) for i in tables.wanted.values()
            if not rig or rig in (i.posted_by, i.claimed_by)
        ]

    def board_summary(self):
        t = self.tables("main")
        return {
            "open_wanted": str(sum(1 for i in t.wanted.values() if i.status == "open")),
            "total_wanted": str(len(t.wanted)),
            "total_completions": str(len(t.completions)),
            "total_stamps": str(len(t.stamps)),
        }


class FakeStore(WantedStore):
    """WantedStore writing to whatever ref the FakeDB has checked out."""

    def __init__(self, db: FakeDB):
        self.db = db

    @property
    def t(self) -> Tables:
        return self.db.tables()

    def _guarded(self, wanted_id, status, verb):
        item = self.t.wanted.get(wanted_id)
        if item is None or item.status != status:
            raise StateConflictError(f"wanted item '{wanted_id}' is not {status} or does not exist")
        return item

    def insert_wanted(self, item):
        if item.id in self.t.wanted:
            raise StateConflictError(f"wanted item '{item.id}' already exists")
        self.t.wanted[item.id] = copy.deepcopy(item)

    def claim_wanted(self, wanted_id, rig):
        item = self._guarded(wanted_id, "open", "claim")
        item.status, item.claimed_by = "claimed", rig

    def unclaim_wanted(self, wanted_id):
        item = self._guarded(wanted_id, "claimed", "unclaim")
        item.status, item.claimed_by = "open", ""

    def submit_completion(self, completion_id, wanted_id, rig, evidence):
        item = self._guarded(wanted_id, "claimed", "done")
        item.status = "in_review"
        self.t.completions.setdefault(
            wanted_id, CompletionRecord(id=completion_id, wanted_id=wanted_id, completed_by=rig, evidence=evidence)
        )

    def accept_completion(self, wanted_id, completion_id, rig, stamp):
        item = self._guarded(wanted_id, "in_review", "accept")
        item.status = "completed"
        self.t.stamps[stamp.id] = copy.deepcopy(stamp)
        completion = self.t.completions[wanted_id]
        completion.validated_by, completion.stamp_id = rig, stamp.id

    def reject_completion(self, wanted_id, rig, reason=""):
        item = self._guarded(wanted_id, "in_review", "reject")
        item.status = "claimed"
        self.t.completions.pop(wanted_id, None)

    def close_wanted(self, wanted_id):
        self._guarded(wanted_id, "in_review", "close").status = "completed"

    def update_wanted(self, wanted_id, fields: WantedUpdate):
        item = self._guarded(wanted_id, "open", "update")
        for name in ("title", "description", "project", "type", "priority", "effort_level", "tags"):
            value = getattr(fields, name)
            if value is not None:
                setattr(item, name, value)

    def delete_wanted(self, wanted_id):
        self._guarded(wanted_id, "open", "delete").status = "withdrawn"

    def query_wanted(self, wanted_id):
        item = self.t.wanted.get(wanted_id)
        if item is None:
            raise NotFoundError(f"wanted item '{wanted_id}' not found")
        return copy.deepcopy(item)

    def query_completion(self, wanted_id):
        completion = self.t.completions.get(wanted_id)
        if completion is None:
            raise NotFoundError(f"no completion found for wanted item '{wanted_id}'")
        return copy.deepcopy(completion)

    def query_stamp(self, stamp_id):
        stamp = self.t.stamps.get(stamp_id)
        if stamp is None:
            raise NotFoundError(f"stamp '{stamp_id}' not found")
        return copy.deepcopy(stamp)


class FakeProvider(ReviewProvider):
    """Review provider keeping PRs in a dict keyed by branch."""

    name = "fake"

    def __init__(self, cfg, supports_reviews=True):
        super().__init__(cfg)
        self.supports_reviews = supports_reviews
        self.prs = {}  # branch -> {"id", "url", "title", "body", "state"}
        self.reviews = {}  # pr id -> list of review dicts
        self.comments = []
        self.deleted_refs = []
        self.available = True
        self.fail_close = False
        self.fail_update = False

    def require(self):
        if not self.available:
            raise ToolingError("fake provider unavailable")

    def find_pr(self, branch):
        pr = self.prs.get(branch)
        if not pr or pr["state"] != "open":
            return "", ""
        return pr["url"], pr["id"]

    def create_pr(self, branch, title, body):
        pr_id = str(len(self.prs) + 1)
        url = f"https://example.test/pulls/{pr_id}"
        self.prs[branch] = {"id": pr_id, "url": url, "title": title, "body": body, "state": "open"}
        return url

    def update_pr(self, pr_id, title, body):
        if self.fail_update:
            raise ProviderError("update rejected")
        for pr in self.prs.values():
            if pr["id"] == pr_id:
                pr["title"], pr["body"] = title, body

    def publish_shell(self, branch, title, body):
        url, pr_id = self.find_pr(branch)
        if pr_id:
            self.update_pr(pr_id, title, body)
            return url
        return self.create_pr(branch, title, body)

    def submit_review(self, pr_id, event, body):
        state = "APPROVED" if event == "APPROVE" else "CHANGES_REQUESTED"
        self.reviews.setdefault(pr_id, []).append({"state": state, "user": {"login": "reviewer"}, "body": body})

    def list_reviews(self, pr_id):
        return list(self.reviews.get(pr_id, []))

    def close_pr(self, pr_id):
        if self.fail_close:
            raise ProviderError("close rejected")
        for pr in self.prs.values():
            if pr["id"] == pr_id:
                pr["state"] = "closed"

    def add_comment(self, pr_id, body):
        self.comments.append((pr_id, body))

    def delete_ref(self, branch):
        self.deleted_refs.append(branch)


def make_item(wanted_id="w-abc123", status="open", posted_by="alice", claimed_by="", title="Fix the thing"):
    return WorkItem(id=wanted_id, title=title, posted_by=posted_by, claimed_by=claimed_by, status=status)


@pytest.fixture
def workspace():
    return WorkspaceConfig(
        upstream="hop/wl-commons",
        fork_org="alice-dev",
        fork_db="wl-commons",
        local_dir="/tmp/wl-commons",
        rig_handle="alice",
    )


@pytest.fixture
def pr_workspace(workspace):
    return replace(workspace, mode="pr", provider_type="github")


@pytest.fixture
def fake_db():
    return FakeDB()


@pytest.fixture
def fake_store(fake_db):
    return FakeStore(fake_db)
