"""
wl merge - Merge a reviewed wl/* branch into main.

The approval check is advisory: outstanding change requests or a missing
approval print a warning and the merge goes ahead. After the merge, main is
pushed through the coordinator's push-target rules and the review shell is
closed. Nothing after the merge itself can fail the command.
"""

import logging

from wasteland.commands.context import CommandContext, finish_mutation
from wasteland.lib.commons import extract_wanted_id, is_review_branch
from wasteland.lib.errors import InputError
from wasteland.lib.policy import report

logger = logging.getLogger(__name__)


def cmd_merge(args, ctx: CommandContext) -> int:
    branch = args.branch
    if not ctx.db.branch_exists(branch):
        raise InputError(f"branch '{branch}' does not exist")

    shell = ctx.review_shell()
    report(shell.merge_gate(branch))

    wanted_id = extract_wanted_id(branch) if is_review_branch(branch) else ""
    mc = ctx.coordinator(args, wanted_id, on_main=True)
    with mc.session():
        ctx.db.merge_branch(branch)
    logger.info(f"[MERGE] {branch} merged into main (item {wanted_id or '-'})")
    print(f"Merged {branch} into main")

    if not args.keep_branch:
        deleted = ctx.db.delete_branch(branch)
        report(deleted)
        if deleted.ok:
            print(f"  Branch {branch} deleted")

    finish_mutation(mc)

    if mc.no_push:
        return 0
    for result in shell.close_for_merge(branch):
        if result.ok and result.detail:
            print(f"  Closed PR: {result.detail}")
        report(result)
    return 0
