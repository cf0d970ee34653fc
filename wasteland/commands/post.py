"""
wl post/update/delete - Create, edit and withdraw wanted items.
"""

import logging

from wasteland.commands.context import CommandContext, finish_mutation
from wasteland.lib.commons import WantedUpdate, parse_tags
from wasteland.lib.policy import report
from wasteland.workflow import actions
from wasteland.workflow.lifecycle import Transition, validate_transition

logger = logging.getLogger(__name__)


def _print_item(item) -> None:
    print(f"  Title:    {item.title}")
    if item.project:
        print(f"  Project:  {item.project}")
    if item.type:
        print(f"  Type:     {item.type}")
    print(f"  Priority: {item.priority}")
    print(f"  Effort:   {item.effort_level}")
    if item.tags:
        print(f"  Tags:     {', '.join(item.tags)}")


def cmd_post(args, ctx: CommandContext) -> int:
    """Post a new wanted item."""
    # Validated before any sync or checkout
    item = actions.new_item(
        ctx.rig,
        args.title,
        description=args.description or "",
        project=args.project or "",
        item_type=args.type or "",
        priority=args.priority,
        effort=args.effort,
        tags=parse_tags(args.tags),
    )

    mc = ctx.coordinator(args, item.id)
    with mc.session():
        actions.post_item(ctx.store, item)

    print(f"Posted wanted item: {item.id}")
    _print_item(item)
    print(f"  Posted by: {item.posted_by}")
    finish_mutation(mc, "" if mc.branch_name else "Next: others can claim this with 'wl claim <id>'")
    return 0


def _update_fields(args) -> WantedUpdate:
    return WantedUpdate(
        title=args.title,
        description=args.description,
        project=args.project,
        type=args.type,
        priority=args.priority,
        effort_level=args.effort,
        tags=parse_tags(args.tags) if args.tags is not None else None,
    )


def cmd_update(args, ctx: CommandContext) -> int:
    """Edit fields of an open item."""
    fields = _update_fields(args)

    mc = ctx.coordinator(args, args.id, resolve_prefix=True)
    with mc.session():
        wanted_id = mc.wanted_id
        item = actions.update_item(ctx.store, wanted_id, ctx.rig, fields)

    print(f"Updated {wanted_id}")
    _print_item(item)
    finish_mutation(mc)
    return 0


def cmd_delete(args, ctx: CommandContext) -> int:
    """
    Withdraw an open item.

    In PR mode an item that was posted on its review branch and never reached
    canonical is removed by deleting the branch, locally and on the fork,
    rather than by committing a withdrawn row.
    """
    mc = ctx.coordinator(args, args.id, resolve_prefix=True)
    branch_only = False
    with mc.session():
        wanted_id = mc.wanted_id
        if mc.branch_name and mc.location is not None and mc.location.branch_only:
            item = ctx.store.query_wanted(wanted_id)
            validate_transition(item.status, Transition.DELETE)
            branch_only = True
        else:
            actions.delete_item(ctx.store, wanted_id, ctx.rig)

    if branch_only:
        branch = mc.branch_name
        logger.info(f"[ACTION] {wanted_id} exists only on {branch}; deleting the branch")
        deleted = ctx.db.delete_branch(branch)
        report(deleted)
        if not mc.no_push:
            report(ctx.db.delete_remote_branch(branch))
        print(f"Withdrawn {wanted_id}")
        if deleted.ok:
            print(f"  Branch {branch} deleted")
        return 0

    print(f"Withdrawn {wanted_id}")
    print("  Status: withdrawn")
    finish_mutation(mc)
    return 0
