"""
wl claim/unclaim/done - The claimer's side of the lifecycle.
"""

from wasteland.commands.context import CommandContext, finish_mutation
from wasteland.workflow import actions


def cmd_claim(args, ctx: CommandContext) -> int:
    """Claim an open item for this rig."""
    mc = ctx.coordinator(args, args.id, resolve_prefix=True)
    with mc.session():
        wanted_id = mc.wanted_id
        item = actions.claim_item(ctx.store, wanted_id, ctx.rig)

    print(f"Claimed {wanted_id}")
    print(f"  Claimed by: {item.claimed_by}")
    print(f"  Title: {item.title}")
    finish_mutation(mc, "" if mc.branch_name else f"Next: when finished, run 'wl done {wanted_id} --evidence <url>'")
    return 0


def cmd_unclaim(args, ctx: CommandContext) -> int:
    """Release a claim, returning the item to open."""
    mc = ctx.coordinator(args, args.id, resolve_prefix=True)
    with mc.session():
        wanted_id = mc.wanted_id
        actions.unclaim_item(ctx.store, wanted_id, ctx.rig)

    print(f"Unclaimed {wanted_id}")
    print("  Status: open")
    finish_mutation(mc)
    return 0


def cmd_done(args, ctx: CommandContext) -> int:
    """Submit evidence for a claimed item and move it to review."""
    mc = ctx.coordinator(args, args.id, resolve_prefix=True)
    with mc.session():
        wanted_id = mc.wanted_id
        completion = actions.submit_done(ctx.store, wanted_id, ctx.rig, args.evidence or "")

    print(f"Completion submitted for {wanted_id}")
    print(f"  Completion ID: {completion.id}")
    print(f"  Evidence: {completion.evidence}")
    print("  Status: in_review")
    finish_mutation(mc, "" if mc.branch_name else "Next: the poster reviews with 'wl accept' or 'wl reject'")
    return 0
