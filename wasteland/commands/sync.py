"""
wl sync - Pull canonical main into the local clone and push it back out.

This is the retry path every push warning points at: after a pull it
re-runs the push that the mode calls for (canonical and fork in wild-west,
fork only in PR mode).
"""

from wasteland.commands.context import CommandContext
from wasteland.lib.config import MODE_PR
from wasteland.lib.database import MAIN
from wasteland.lib.errors import StoreError
from wasteland.workflow.mutation import warn_push_failure


def _print_summary(ctx: CommandContext) -> None:
    summary = ctx.db.board_summary()
    if not summary:
        return
    print(f"\n  Open wanted:       {summary.get('open_wanted', '?')}")
    print(f"  Total wanted:      {summary.get('total_wanted', '?')}")
    print(f"  Total completions: {summary.get('total_completions', '?')}")
    print(f"  Total stamps:      {summary.get('total_stamps', '?')}")


def cmd_sync(args, ctx: CommandContext) -> int:
    ctx.db.require_tool()
    remote = ctx.db.canonical_remote()
    print(f"Local clone: {ctx.cfg.local_dir}")

    if args.dry_run:
        print(f"\nDry run: checking {remote} for changes...")
        if not ctx.db.fetch(remote):
            raise StoreError(f"fetching {remote} failed")
        result = ctx.db.diff(f"{remote}/{MAIN}", "stat", base=MAIN)
        if result.success and result.stdout.strip():
            print(result.stdout, end="")
        else:
            print("Already up to date.")
        return 0

    print(f"\nPulling from {remote}...")
    synced = ctx.db.sync()
    if not synced.ok:
        raise StoreError(synced.message)
    if ctx.config_store is not None:
        ctx.config_store.update_sync_timestamp(ctx.cfg)
    print(f"Synced with {remote}")

    if not args.no_push:
        if ctx.mode == MODE_PR:
            pushed = ctx.db.push_main()
        else:
            pushed = ctx.db.push_with_sync()
        warn_push_failure(pushed)

    _print_summary(ctx)
    return 0
