"""
wl review/approve/request-changes - Inspect review branches and their PRs.

Without a branch, `wl review` lists the wl/* branches in the local clone.
With one, it prints the diff against canonical main in the requested
format, or (--create-pr) pushes the branch and opens its review shell.
--no-push keeps the branch off the fork. approve and request-changes only
talk to the PR API and push no dolt data, so the flag changes nothing there.
"""

from wasteland.commands.context import CommandContext
from wasteland.lib.commons import BRANCH_PREFIX
from wasteland.lib.errors import InputError, StoreError
from wasteland.lib.providers import REVIEW_APPROVE, REVIEW_REQUEST_CHANGES

OUTPUT_FLAGS = ("json", "md", "stat", "create_pr")


def _output_format(args) -> str:
    chosen = [flag for flag in OUTPUT_FLAGS if getattr(args, flag, False)]
    if len(chosen) > 1:
        raise InputError("--json, --md, --stat, and --create-pr are mutually exclusive")
    return chosen[0] if chosen else "text"


def cmd_review(args, ctx: CommandContext) -> int:
    fmt = _output_format(args)
    branch = args.branch
    if fmt == "create_pr" and not branch:
        raise InputError("--create-pr requires a branch argument")

    if not branch:
        branches = ctx.db.list_branches(f"{BRANCH_PREFIX}/")
        if not branches:
            print("No review branches found.")
            return 0
        print("Review branches:")
        for b in branches:
            print(f"  {b}")
        return 0

    ctx.db.require_tool()
    shell = ctx.review_shell()

    if fmt == "create_pr":
        url = shell.create_or_update(branch, push=not getattr(args, "no_push", False))
        print(f"\nPR: {url}")
        return 0

    if fmt == "md":
        print(shell.markdown(branch), end="")
        return 0

    result = ctx.db.diff(branch, fmt)
    if not result.success:
        raise StoreError(f"dolt diff {branch}: {result.output}")
    print(result.stdout, end="")
    return 0


def cmd_approve(args, ctx: CommandContext) -> int:
    """Approve the open PR for a review branch (GitHub provider)."""
    url = ctx.review_shell().submit_review(args.branch, REVIEW_APPROVE, args.comment or "")
    print(f"Approved PR for {args.branch}")
    print(f"  PR: {url}")
    return 0


def cmd_request_changes(args, ctx: CommandContext) -> int:
    """Request changes on the open PR for a review branch (GitHub provider)."""
    url = ctx.review_shell().submit_review(args.branch, REVIEW_REQUEST_CHANGES, args.comment or "")
    print(f"Requested changes on PR for {args.branch}")
    print(f"  PR: {url}")
    return 0
