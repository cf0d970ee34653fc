"""
wl status/dashboard - Read-only views built on the location resolver.
"""

from wasteland.commands.context import CommandContext
from wasteland.lib.commons import BRANCH_PREFIX, STATUSES, extract_wanted_id
from wasteland.lib.database import MAIN, REMOTE_ORIGIN, REMOTE_UPSTREAM
from wasteland.lib.errors import NotFoundError
from wasteland.workflow.lifecycle import available_transitions
from wasteland.workflow.location import UNKNOWN, dedupe_items, locate, stale_claim_warning


def _fmt(status: str | None) -> str:
    if status is None:
        return "-"
    return status


def cmd_status(args, ctx: CommandContext) -> int:
    """Show where an item lives and what this rig can do with it."""
    ctx.db.require_tool()
    wanted_id = ctx.resolve_id(args.id)
    loc = locate(ctx.db, wanted_id)

    try:
        item = ctx.store.query_wanted(wanted_id)
    except NotFoundError:
        item = None
    try:
        completion = ctx.store.query_completion(wanted_id)
    except NotFoundError:
        completion = None

    print(wanted_id)
    if item is not None:
        print(f"  Title:      {item.title}")
        print(f"  Posted by:  {item.posted_by or '-'}")
        print(f"  Claimed by: {item.claimed_by or '-'}")
    print(f"  Status:     {_fmt(loc.effective_status)}")
    print("\n  Location:")
    print(f"    canonical: {_fmt(loc.canonical_status)}")
    print(f"    fork:      {_fmt(loc.fork_status)}")
    print(f"    local:     {_fmt(loc.local_status)}")
    for branch, status in sorted(loc.branch_statuses.items()):
        print(f"    {branch}: {_fmt(status)}")
    if completion is not None:
        print(f"\n  Completion: {completion.id} by {completion.completed_by}")
        if completion.evidence:
            print(f"    Evidence: {completion.evidence}")

    warning = stale_claim_warning(loc)
    if warning:
        print(f"\n  warning: {warning}")

    if item is not None:
        allowed = available_transitions(item, ctx.rig, completion)
        print(f"\n  You can: {', '.join(allowed) if allowed else '(nothing)'}")
    return 0


def _fetched_ref(ctx: CommandContext, remote: str) -> str | None:
    if not ctx.db.has_remote(remote):
        return None
    if not ctx.db.fetch(remote):
        print(f"  warning: could not fetch {remote}; its items are not shown")
        return UNKNOWN
    return f"{remote}/{MAIN}"


def cmd_dashboard(args, ctx: CommandContext) -> int:
    """Items this rig posted or claimed, one line each, canonical first."""
    ctx.db.require_tool()
    rig = ctx.rig

    upstream_ref = _fetched_ref(ctx, REMOTE_UPSTREAM)
    origin_ref = _fetched_ref(ctx, REMOTE_ORIGIN)
    # Without an upstream remote, local main stands in for canonical
    canonical_ref = MAIN if upstream_ref is None else upstream_ref

    canonical = ctx.db.list_items_as_of(canonical_ref, rig) if canonical_ref != UNKNOWN else []
    fork = ctx.db.list_items_as_of(origin_ref, rig) if origin_ref not in (None, UNKNOWN) else []
    branches = {}
    for branch in ctx.db.list_branches(f"{BRANCH_PREFIX}/{rig}/"):
        wanted_id = extract_wanted_id(branch)
        branches[branch] = [i for i in ctx.db.list_items_as_of(branch, rig) if i.id == wanted_id]

    entries = dedupe_items(canonical, fork, branches)
    if not entries:
        print(f"No items posted or claimed by {rig}.")
        return 0

    print(f"Dashboard for {rig}:")
    for status in STATUSES:
        group = [e for e in entries if e.item.status == status]
        if not group:
            continue
        print(f"\n  {status} ({len(group)})")
        for entry in group:
            source = "" if entry.source == "canonical" else f"  [{entry.source}]"
            print(f"    {entry.item.id}  P{entry.item.priority}  {entry.item.title}{source}")
    return 0
