#!/usr/bin/env python3
"""wl CLI entrypoint."""

import argparse
import logging
import sys

from wasteland import __version__
from wasteland.commands import accept as cmd_accept_module
from wasteland.commands import claim as cmd_claim_module
from wasteland.commands import completion as cmd_completion_module
from wasteland.commands import config as cmd_config_module
from wasteland.commands import merge as cmd_merge_module
from wasteland.commands import post as cmd_post_module
from wasteland.commands import review as cmd_review_module
from wasteland.commands import status as cmd_status_module
from wasteland.commands import sync as cmd_sync_module
from wasteland.commands.context import CommandContext
from wasteland.lib.commons import DEFAULT_EFFORT, DEFAULT_SEVERITY, VALID_EFFORTS, VALID_SEVERITIES, VALID_TYPES
from wasteland.lib.config import MODE_WILD_WEST, PROVIDER_DOLTHUB, VALID_MODES, VALID_PROVIDERS, ConfigStore
from wasteland.lib.errors import WastelandError


def get_context(args) -> CommandContext:
    """Resolve the active workspace from --wasteland or the config default."""
    return CommandContext.from_args(args)


def cmd_post(args):
    return cmd_post_module.cmd_post(args, get_context(args))


def cmd_update(args):
    return cmd_post_module.cmd_update(args, get_context(args))


def cmd_delete(args):
    return cmd_post_module.cmd_delete(args, get_context(args))


def cmd_claim(args):
    return cmd_claim_module.cmd_claim(args, get_context(args))


def cmd_unclaim(args):
    return cmd_claim_module.cmd_unclaim(args, get_context(args))


def cmd_done(args):
    return cmd_claim_module.cmd_done(args, get_context(args))


def cmd_accept(args):
    return cmd_accept_module.cmd_accept(args, get_context(args))


def cmd_reject(args):
    return cmd_accept_module.cmd_reject(args, get_context(args))


def cmd_close(args):
    return cmd_accept_module.cmd_close(args, get_context(args))


def cmd_review(args):
    return cmd_review_module.cmd_review(args, get_context(args))


def cmd_approve(args):
    return cmd_review_module.cmd_approve(args, get_context(args))


def cmd_request_changes(args):
    return cmd_review_module.cmd_request_changes(args, get_context(args))


def cmd_merge(args):
    return cmd_merge_module.cmd_merge(args, get_context(args))


def cmd_sync(args):
    return cmd_sync_module.cmd_sync(args, get_context(args))


def cmd_status(args):
    return cmd_status_module.cmd_status(args, get_context(args))


def cmd_dashboard(args):
    return cmd_status_module.cmd_dashboard(args, get_context(args))


def cmd_config_show(args):
    return cmd_config_module.cmd_config_show(args, get_context(args))


def cmd_config_get(args):
    return cmd_config_module.cmd_config_get(args, get_context(args))


def cmd_config_set(args):
    return cmd_config_module.cmd_config_set(args, get_context(args))


def cmd_config_add(args):
    return cmd_config_module.cmd_config_add(args, ConfigStore())


def cmd_complete(args):
    return cmd_completion_module.cmd_complete(args, ConfigStore())


def _add_id(parser, help_text='Wanted item ID (or unique prefix)'):
    parser.add_argument('id', help=help_text)


def _add_no_push(parser):
    parser.add_argument('--no-push', action='store_true', help='Skip pushing to remotes (offline work)')


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog='wl', description='Wasteland wanted-board CLI')
    parser.add_argument('--wasteland', '-w', help='Wasteland to operate on (org/db)')
    parser.add_argument('--verbose', '-v', action='store_true', help='Debug logging')
    parser.add_argument('--version', action='version', version=f'wl {__version__}')
    subparsers = parser.add_subparsers(dest='command', required=True, metavar='<command>')

    # wl post
    p_post = subparsers.add_parser('post', help='Post a new wanted item')
    p_post.add_argument('--title', required=True, help='Title of the wanted item')
    p_post.add_argument('--description', '-d', help='Detailed description')
    p_post.add_argument('--project', help='Project name')
    p_post.add_argument('--type', help=f'Item type: {", ".join(VALID_TYPES)}')
    p_post.add_argument('--priority', type=int, default=2, help='0=critical .. 4=backlog (default 2)')
    p_post.add_argument('--effort', default=DEFAULT_EFFORT, help=f'Effort: {", ".join(VALID_EFFORTS)}')
    p_post.add_argument('--tags', help='Comma-separated tags')
    _add_no_push(p_post)
    p_post.set_defaults(func=cmd_post)

    # wl update
    p_update = subparsers.add_parser('update', help='Edit fields of an open item')
    _add_id(p_update)
    p_update.add_argument('--title')
    p_update.add_argument('--description', '-d')
    p_update.add_argument('--project')
    p_update.add_argument('--type')
    p_update.add_argument('--priority', type=int)
    p_update.add_argument('--effort')
    p_update.add_argument('--tags', help='Comma-separated tags ("" clears)')
    _add_no_push(p_update)
    p_update.set_defaults(func=cmd_update)

    # wl delete
    p_delete = subparsers.add_parser('delete', help='Withdraw an open item')
    _add_id(p_delete)
    _add_no_push(p_delete)
    p_delete.set_defaults(func=cmd_delete)

    # wl claim
    p_claim = subparsers.add_parser('claim', help='Claim an open item')
    _add_id(p_claim)
    _add_no_push(p_claim)
    p_claim.set_defaults(func=cmd_claim)

    # wl unclaim
    p_unclaim = subparsers.add_parser('unclaim', help='Release a claim')
    _add_id(p_unclaim)
    _add_no_push(p_unclaim)
    p_unclaim.set_defaults(func=cmd_unclaim)

    # wl done
    p_done = subparsers.add_parser('done', help='Submit completion evidence')
    _add_id(p_done)
    p_done.add_argument('--evidence', '-e', required=True, help='Evidence URL or description')
    _add_no_push(p_done)
    p_done.set_defaults(func=cmd_done)

    # wl accept
    p_accept = subparsers.add_parser('accept', help='Accept a completion and issue a stamp')
    _add_id(p_accept)
    p_accept.add_argument('--quality', '-q', type=int, required=True, help='Quality 1-5')
    p_accept.add_argument('--reliability', '-r', type=int, help='Reliability 1-5 (defaults to quality)')
    p_accept.add_argument('--severity', default=DEFAULT_SEVERITY, help=f'Severity: {", ".join(VALID_SEVERITIES)}')
    p_accept.add_argument('--skills', help='Comma-separated skill tags')
    p_accept.add_argument('--message', '-m', help='Message for the stamp')
    _add_no_push(p_accept)
    p_accept.set_defaults(func=cmd_accept)

    # wl reject
    p_reject = subparsers.add_parser('reject', help='Send a completion back to the claimer')
    _add_id(p_reject)
    p_reject.add_argument('--reason', help='Why the completion was rejected')
    _add_no_push(p_reject)
    p_reject.set_defaults(func=cmd_reject)

    # wl close
    p_close = subparsers.add_parser('close', help='Complete an in-review item without a stamp')
    _add_id(p_close)
    _add_no_push(p_close)
    p_close.set_defaults(func=cmd_close)

    # wl review
    p_review = subparsers.add_parser('review', help='List review branches or show a branch diff')
    p_review.add_argument('branch', nargs='?', help='Review branch (wl/<rig>/<id>)')
    p_review.add_argument('--stat', action='store_true', help='Diff statistics')
    p_review.add_argument('--json', action='store_true', help='Diff as JSON')
    p_review.add_argument('--md', action='store_true', help='Diff as Markdown')
    p_review.add_argument('--create-pr', action='store_true', help='Push branch and open/update its PR')
    _add_no_push(p_review)
    p_review.set_defaults(func=cmd_review)

    # wl approve
    p_approve = subparsers.add_parser('approve', help='Approve the PR for a review branch')
    p_approve.add_argument('branch', help='Review branch')
    p_approve.add_argument('--comment', '-c', help='Review comment')
    _add_no_push(p_approve)
    p_approve.set_defaults(func=cmd_approve)

    # wl request-changes
    p_changes = subparsers.add_parser('request-changes', help='Request changes on the PR for a review branch')
    p_changes.add_argument('branch', help='Review branch')
    p_changes.add_argument('--comment', '-c', required=True, help='What needs to change')
    _add_no_push(p_changes)
    p_changes.set_defaults(func=cmd_request_changes)

    # wl merge
    p_merge = subparsers.add_parser('merge', help='Merge a reviewed branch into main')
    p_merge.add_argument('branch', help='Review branch')
    p_merge.add_argument('--keep-branch', action='store_true', help="Don't delete the branch after merge")
    _add_no_push(p_merge)
    p_merge.set_defaults(func=cmd_merge)

    # wl sync
    p_sync = subparsers.add_parser('sync', help='Pull canonical changes and push them to your fork')
    p_sync.add_argument('--dry-run', action='store_true', help='Show what would change without pulling')
    _add_no_push(p_sync)
    p_sync.set_defaults(func=cmd_sync)

    # wl status
    p_status = subparsers.add_parser('status', help='Show where an item lives and what you can do')
    _add_id(p_status)
    p_status.set_defaults(func=cmd_status)

    # wl dashboard
    p_dashboard = subparsers.add_parser('dashboard', help='Items you posted or claimed')
    p_dashboard.set_defaults(func=cmd_dashboard)

    # wl config
    p_config = subparsers.add_parser('config', help='Show or change workspace configuration')
    p_config.set_defaults(func=cmd_config_show)
    config_sub = p_config.add_subparsers(dest='config_cmd')

    # wl config show
    p_config_show = config_sub.add_parser('show', help='Show the active workspace')
    p_config_show.set_defaults(func=cmd_config_show)

    # wl config get
    p_config_get = config_sub.add_parser('get', help='Print one setting')
    p_config_get.add_argument('key')
    p_config_get.set_defaults(func=cmd_config_get)

    # wl config set
    p_config_set = config_sub.add_parser('set', help='Change a setting (mode, signing, provider_type, default)')
    p_config_set.add_argument('key')
    p_config_set.add_argument('value')
    p_config_set.set_defaults(func=cmd_config_set)

    # wl config add
    p_config_add = config_sub.add_parser('add', help='Register an existing local clone')
    p_config_add.add_argument('upstream', help='Canonical commons (org/db)')
    p_config_add.add_argument('--fork-org', required=True, help='Organization that owns your fork')
    p_config_add.add_argument('--fork-db', help='Fork database name (defaults to the upstream db)')
    p_config_add.add_argument('--local-dir', required=True, help='Path of the local dolt clone')
    p_config_add.add_argument('--rig', required=True, help='Your rig handle')
    p_config_add.add_argument('--mode', default=MODE_WILD_WEST, choices=sorted(VALID_MODES))
    p_config_add.add_argument('--provider', default=PROVIDER_DOLTHUB, choices=sorted(VALID_PROVIDERS))
    p_config_add.add_argument('--signing', action='store_true', help='GPG-sign dolt commits')
    p_config_add.add_argument('--hop-uri', help='HOP URI recorded on completions and stamps')
    p_config_add.add_argument('--default', dest='make_default', action='store_true', help='Make this the default')
    p_config_add.set_defaults(func=cmd_config_add)

    # wl completion
    commands = sorted(name for name in subparsers.choices if not name.startswith('__'))
    p_completion = subparsers.add_parser('completion', help='Print a shell completion script')
    p_completion.add_argument('shell', choices=['bash'])
    p_completion.set_defaults(func=lambda args: cmd_completion_module.cmd_completion(args, commands + ['completion']))

    # wl __complete (hidden, used by the completion script)
    p_complete = subparsers.add_parser('__complete')
    p_complete.add_argument('kind')
    p_complete.set_defaults(func=cmd_complete)

    return parser


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format='%(levelname)s %(name)s: %(message)s',
    )

    try:
        return args.func(args)
    except WastelandError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        if e.hint:
            print(f"  {e.hint}", file=sys.stderr)
        return e.exit_code


if __name__ == '__main__':
    sys.exit(main())
