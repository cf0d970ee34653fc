"""
wl accept/reject/close - The poster's verdict on a completion.
"""

from wasteland.commands.context import CommandContext, finish_mutation
from wasteland.lib.commons import parse_tags
from wasteland.workflow import actions


def cmd_accept(args, ctx: CommandContext) -> int:
    """Accept a completion and stamp the completer."""
    mc = ctx.coordinator(args, args.id, resolve_prefix=True)
    with mc.session():
        wanted_id = mc.wanted_id
        stamp = actions.accept_item(
            ctx.store,
            wanted_id,
            ctx.rig,
            quality=args.quality,
            reliability=args.reliability,
            severity=args.severity,
            skill_tags=parse_tags(args.skills),
            message=args.message or "",
        )

    print(f"Accepted {wanted_id}")
    print(f"  Stamp: {stamp.id}")
    print(f"  Subject: {stamp.subject}")
    print(f"  Quality: {stamp.quality}  Reliability: {stamp.reliability}  Severity: {stamp.severity}")
    if stamp.skill_tags:
        print(f"  Skills: {', '.join(stamp.skill_tags)}")
    print("  Status: completed")
    finish_mutation(mc)
    return 0


def cmd_reject(args, ctx: CommandContext) -> int:
    """Send a completion back to the claimer."""
    reason = args.reason or ""

    mc = ctx.coordinator(args, args.id, resolve_prefix=True)
    with mc.session():
        wanted_id = mc.wanted_id
        item = actions.reject_item(ctx.store, wanted_id, ctx.rig, reason)

    print(f"Rejected completion for {wanted_id}")
    if reason:
        print(f"  Reason: {reason}")
    print(f"  Status: claimed (by {item.claimed_by})")
    finish_mutation(mc)
    return 0


def cmd_close(args, ctx: CommandContext) -> int:
    """Complete an in-review item without a stamp."""
    mc = ctx.coordinator(args, args.id, resolve_prefix=True)
    with mc.session():
        wanted_id = mc.wanted_id
        actions.close_item(ctx.store, wanted_id, ctx.rig)

    print(f"Closed {wanted_id}")
    print("  Status: completed (no stamp issued)")
    finish_mutation(mc)
    return 0
