"""
Mutation coordinator: the sync, locate, branch, mutate, push sequence.

Every state-changing command runs inside a coordinator session:

    mc = MutationCoordinator(cfg, db, config_store, wanted_id, no_push=args.no_push)
    with mc.session():
        store.claim_wanted(wanted_id, cfg.rig_handle)
    result = mc.push()

Setup order is fixed: tool check, best-effort sync with canonical, resolve
the typed id or prefix, locate the item, then (PR mode) check out
wl/<rig>/<id>. The session always returns the clone to main, including
when the mutation raises.

Precondition: one coordinator per clone at a time. Two wl processes against
the same local_dir are not safe and nothing here arbitrates between them.
"""

import logging
from contextlib import contextmanager
from typing import Callable

from wasteland.lib.commons import branch_name
from wasteland.lib.config import MODE_PR, ConfigStore, WorkspaceConfig
from wasteland.lib.errors import StoreError
from wasteland.lib.policy import PUSH_RETRY_HINT, Result, report
from wasteland.workflow.location import ItemLocation, locate, stale_claim_warning
from wasteland.workflow.push_target import PushTarget, resolve_push_target

logger = logging.getLogger(__name__)


def _noop() -> None:
    return None


class MutationCoordinator:
    """Wraps one state-changing command against the local clone."""

    def __init__(
        self,
        cfg: WorkspaceConfig,
        db,
        config_store: ConfigStore | None = None,
        wanted_id: str = "",
        no_push: bool = False,
        review_shell=None,
        on_main: bool = False,
        resolve_prefix: bool = False,
    ):
        """
        Args:
            cfg: Active workspace
            db: DoltDB (or a fake with the same surface)
            config_store: Where last_sync is recorded after a successful sync
            wanted_id: Item being mutated ("" for item-less operations)
            no_push: Skip all pushes (offline)
            review_shell: ReviewShellBuilder used to refresh an open PR after a branch push
            on_main: Operate on main even in PR mode (administrative operations)
            resolve_prefix: wanted_id is an id or unique prefix typed by the user;
                it is resolved after the sync so items new on canonical are found
        """
        self.cfg = cfg
        self.db = db
        self.config_store = config_store
        self.wanted_id = wanted_id
        self.no_push = no_push
        self.review_shell = review_shell
        self.mode = cfg.resolve_mode()
        self.location: ItemLocation | None = None
        self.last_target: PushTarget | None = None
        self.on_main = on_main
        self.resolve_prefix = resolve_prefix
        self._branch = "" if resolve_prefix else self._branch_for(wanted_id)

    def _branch_for(self, wanted_id: str) -> str:
        if self.mode == MODE_PR and wanted_id and not self.on_main:
            return branch_name(self.cfg.rig_handle, wanted_id)
        return ""

    @property
    def branch_name(self) -> str:
        """Review branch, or "" in wild-west mode / on main."""
        return self._branch

    def setup(self) -> Callable[[], None]:
        """Prepare the clone. The returned cleanup must run on every exit path."""
        self.db.require_tool()

        synced = self.db.sync()
        if synced.ok:
            if self.config_store is not None:
                self.config_store.update_sync_timestamp(self.cfg)
        else:
            # Offline mutation is still allowed; reads may be stale
            report(synced)

        if self.resolve_prefix:
            self.wanted_id = self.db.resolve_wanted_id(self.wanted_id)
            self._branch = self._branch_for(self.wanted_id)

        if self.wanted_id:
            self.location = locate(self.db, self.wanted_id)
            warning = stale_claim_warning(self.location)
            if warning:
                print(f"  warning: {warning}")

        if not self._branch:
            return _noop

        self.db.checkout_branch(self._branch)
        logger.debug(f"[MUTATE] checked out {self._branch}")

        def cleanup() -> None:
            try:
                self.db.checkout_main()
            except StoreError as e:
                logger.warning(f"[MUTATE] could not return to main: {e}")

        return cleanup

    @contextmanager
    def session(self):
        cleanup = self.setup()
        try:
            yield self
        finally:
            cleanup()

    def push(self) -> Result:
        """Push the committed mutation. Failures are warn-policy Results."""
        if self.no_push:
            return Result.success()

        if self._branch:
            self.last_target = resolve_push_target(self.mode, self.location, on_branch=True)
            pushed = self.db.push_branch(self._branch)
            if not pushed.ok:
                return pushed
            if self.review_shell is not None:
                report(self.review_shell.refresh(self._branch))
            return pushed

        post_status = None
        if self.wanted_id:
            post_status = self.db.query_status_as_of(self.wanted_id, "")
        target = resolve_push_target(self.mode, self.location, on_branch=False, post_status=post_status)
        self.last_target = target
        logger.debug(f"[PUSH] {self.wanted_id or 'main'}: {target}")

        if target.push_upstream:
            result = self.db.push_with_sync()
        elif target.push_origin:
            result = self.db.push_main()
        else:
            result = Result.success()
        if target.hint:
            print(f"  {target.hint}")
        return result


def warn_push_failure(result: Result) -> None:
    """Tell the user the change is safe locally and how to retry."""
    if result.ok:
        return
    logger.debug(f"[PUSH] {result.message}")
    print(f"  warning: {PUSH_RETRY_HINT}")
