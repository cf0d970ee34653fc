"""Decide which remotes a finished mutation is pushed to."""

from dataclasses import dataclass

from wasteland.lib.config import MODE_PR
from wasteland.workflow.location import ItemLocation

HINT_FORK_ONLY = (
    "Pushed to your fork only: canonical has diverged. "
    "Open a PR with 'wl review <branch> --create-pr' or ask a canonical maintainer to merge."
)
HINT_CONVERGED = "Canonical already reflects this change; nothing to push."


@dataclass
class PushTarget:
    push_upstream: bool = False
    push_origin: bool = False
    hint: str = ""

    @property
    def push_nothing(self) -> bool:
        return not (self.push_upstream or self.push_origin)


def resolve_push_target(
    mode: str,
    location: ItemLocation | None,
    on_branch: bool,
    post_status: str | None = None,
) -> PushTarget:
    """
    Push plan for a mutation.

    wild-west: canonical and fork, always.
    pr on a review branch: fork only; the branch is the unit of review.
    pr on main: nothing if canonical already matches post_status; fork only
    (with a hint) if the fork diverges from canonical, canonical is unknown,
    or the item only exists on the fork; otherwise both.
    """
    if mode != MODE_PR:
        return PushTarget(push_upstream=True, push_origin=True)
    if on_branch:
        return PushTarget(push_origin=True)
    if location is None:
        return PushTarget(push_origin=True, hint=HINT_FORK_ONLY)

    if location.canonical_known and post_status is not None and location.canonical_status == post_status:
        return PushTarget(hint=HINT_CONVERGED)
    if location.fork_diverges or location.fork_only:
        return PushTarget(push_origin=True, hint=HINT_FORK_ONLY)
    return PushTarget(push_upstream=True, push_origin=True)
