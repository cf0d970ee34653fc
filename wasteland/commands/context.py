"""
Shared wiring for command handlers.

A CommandContext bundles the resolved workspace with the objects a command
needs (local clone, domain store, review provider). Handlers receive it as
an argument, so tests build one around in-memory fakes instead of touching
dolt or the network.
"""

import logging

from wasteland.lib.commons import DoltStore, WantedStore
from wasteland.lib.config import MODE_PR, ConfigStore, WorkspaceConfig
from wasteland.lib.database import DoltDB
from wasteland.lib.errors import ConfigError, hint_wrap
from wasteland.lib.providers import ReviewProvider, get_provider
from wasteland.workflow.mutation import MutationCoordinator, warn_push_failure
from wasteland.workflow.review_shell import ReviewShellBuilder

logger = logging.getLogger(__name__)


class CommandContext:
    """Active workspace plus its collaborators."""

    def __init__(
        self,
        cfg: WorkspaceConfig,
        config_store: ConfigStore | None = None,
        db=None,
        store: WantedStore | None = None,
        provider: ReviewProvider | None = None,
    ):
        self.cfg = cfg
        self.config_store = config_store
        self.db = db if db is not None else DoltDB(cfg.local_path)
        self.store = store if store is not None else DoltStore(cfg.local_path, cfg.signing, cfg.hop_uri)
        self._provider = provider

    @classmethod
    def from_args(cls, args, config_store: ConfigStore | None = None) -> "CommandContext":
        """Resolve the workspace selected by --wasteland (or the default)."""
        config_store = config_store or ConfigStore()
        try:
            cfg = config_store.resolve(getattr(args, "wasteland", None))
        except ConfigError as e:
            raise hint_wrap(e) from None
        logger.debug(f"[CONFIG] using {cfg.upstream} ({cfg.resolve_mode()}) at {cfg.local_dir}")
        return cls(cfg, config_store)

    @property
    def rig(self) -> str:
        return self.cfg.rig_handle

    @property
    def mode(self) -> str:
        return self.cfg.resolve_mode()

    @property
    def provider(self) -> ReviewProvider:
        if self._provider is None:
            self._provider = get_provider(self.cfg)
        return self._provider

    def review_shell(self) -> ReviewShellBuilder:
        return ReviewShellBuilder(self.db, self.provider)

    def resolve_id(self, id_or_prefix: str) -> str:
        return self.db.resolve_wanted_id(id_or_prefix)

    def coordinator(
        self, args, wanted_id: str = "", on_main: bool = False, resolve_prefix: bool = False
    ) -> MutationCoordinator:
        """
        Coordinator for one mutation; PR mode refreshes the open shell after a push.

        With resolve_prefix, wanted_id is what the user typed and is resolved
        after the sync; read it back from mc.wanted_id inside the session.
        """
        review_shell = None
        if self.mode == MODE_PR and not on_main:
            review_shell = self.review_shell()
        return MutationCoordinator(
            self.cfg,
            self.db,
            config_store=self.config_store,
            wanted_id=wanted_id,
            no_push=getattr(args, "no_push", False),
            review_shell=review_shell,
            on_main=on_main,
            resolve_prefix=resolve_prefix,
        )


def finish_mutation(mc: MutationCoordinator, next_hint: str = "") -> None:
    """Common tail of every mutation command: branch, push, retry warning, hint."""
    if mc.branch_name:
        print(f"  Branch: {mc.branch_name}")
    warn_push_failure(mc.push())
    if mc.branch_name and not next_hint:
        next_hint = f"Open it for review: wl review {mc.branch_name} --create-pr"
    if next_hint:
        print(f"\n  {next_hint}")
