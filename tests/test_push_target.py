"""Tests for wasteland.workflow.push_target module."""

import pytest

from wasteland.workflow.location import UNKNOWN, ItemLocation
from wasteland.workflow.push_target import (
    HINT_CONVERGED,
    HINT_FORK_ONLY,
    resolve_push_target,
)


def loc(upstream=None, origin=None, **kwargs):
    return ItemLocation("w-1", upstream_status=upstream, origin_status=origin, **kwargs)


class TestWildWest:
    """Wild-west always pushes both remotes."""

    @pytest.mark.parametrize("location", [None, loc("open", "claimed"), loc(UNKNOWN, "open")])
    def test_pushes_both(self, location):
        target = resolve_push_target("wild-west", location, on_branch=False, post_status="claimed")
        assert target.push_upstream and target.push_origin
        assert target.hint == ""

    def test_ignores_branch_flag(self):
        target = resolve_push_target("wild-west", None, on_branch=True)
        assert target.push_upstream and target.push_origin


class TestPRMode:
    """PR-mode decision table."""

    def test_branch_pushes_origin_only(self):
        target = resolve_push_target("pr", loc("open", "open"), on_branch=True)
        assert target.push_origin and not target.push_upstream

    def test_converged_pushes_nothing(self):
        target = resolve_push_target("pr", loc("claimed", "open"), on_branch=False, post_status="claimed")
        assert target.push_nothing
        assert target.hint == HINT_CONVERGED

    def test_divergent_fork_pushes_origin_with_hint(self):
        target = resolve_push_target("pr", loc("open", "claimed"), on_branch=False, post_status="in_review")
        assert target.push_origin and not target.push_upstream
        assert target.hint == HINT_FORK_ONLY

    def test_unknown_canonical_treated_as_divergence(self):
        target = resolve_push_target("pr", loc(UNKNOWN, "open"), on_branch=False, post_status="claimed")
        assert target.push_origin and not target.push_upstream
        assert target.hint == HINT_FORK_ONLY

    def test_unknown_canonical_never_converges(self):
        target = resolve_push_target("pr", loc(UNKNOWN, None), on_branch=False, post_status=UNKNOWN)
        assert not target.push_nothing

    def test_fork_only_item(self):
        target = resolve_push_target("pr", loc(None, "open"), on_branch=False, post_status="claimed")
        assert target.push_origin and not target.push_upstream
        assert target.hint == HINT_FORK_ONLY

    def test_in_sync_pushes_both(self):
        target = resolve_push_target("pr", loc("open", "open"), on_branch=False, post_status="claimed")
        assert target.push_upstream and target.push_origin
        assert target.hint == ""

    def test_no_location_is_fork_only(self):
        target = resolve_push_target("pr", None, on_branch=False)
        assert target.push_origin and not target.push_upstream
