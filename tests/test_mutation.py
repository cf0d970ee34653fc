"""Tests for wasteland.workflow.mutation module."""

from unittest.mock import MagicMock

import pytest

from wasteland.lib.errors import StateConflictError, ToolingError
from wasteland.lib.policy import PUSH_RETRY_HINT, ErrorClass, Result
from wasteland.workflow.mutation import MutationCoordinator, warn_push_failure
from wasteland.workflow.push_target import HINT_CONVERGED

from conftest import FakeDB, make_item


@pytest.fixture
def db():
    db = FakeDB()
    item = make_item()
    for ref in ("main", "origin/main", "upstream/main"):
        db.put(item, ref)
    return db


class TestSetup:
    """Tests for the fixed setup order and cleanup."""

    def test_order_in_wild_west(self, workspace, db):
        store = MagicMock()
        mc = MutationCoordinator(workspace, db, store, "w-abc123")
        with mc.session():
            pass
        assert db.calls[:2] == ["require_tool", "sync"]
        assert "fetch upstream" in db.calls
        assert not any(c.startswith("checkout") for c in db.calls)
        store.update_sync_timestamp.assert_called_once_with(workspace)
        assert mc.location.canonical_status == "open"

    def test_missing_tool_aborts_before_sync(self, workspace, db):
        db.tool_ok = False
        mc = MutationCoordinator(workspace, db)
        with pytest.raises(ToolingError):
            with mc.session():
                pass
        assert "sync" not in db.calls

    def test_sync_failure_warns_and_continues(self, workspace, db, capsys):
        db.sync_ok = False
        store = MagicMock()
        mc = MutationCoordinator(workspace, db, store, "w-abc123")
        with mc.session():
            pass
        assert "warning: upstream sync failed" in capsys.readouterr().out
        store.update_sync_timestamp.assert_not_called()

    def test_pr_mode_checks_out_branch_and_returns(self, pr_workspace, db):
        mc = MutationCoordinator(pr_workspace, db, None, "w-abc123")
        with mc.session():
            assert db.current == "wl/alice/w-abc123"
        assert db.current == "main"
        assert mc.branch_name == "wl/alice/w-abc123"

    def test_cleanup_runs_when_mutation_raises(self, pr_workspace, db):
        mc = MutationCoordinator(pr_workspace, db, None, "w-abc123")
        with pytest.raises(StateConflictError):
            with mc.session():
                raise StateConflictError("not open")
        assert db.current == "main"
        assert db.calls[-1] == "checkout main"

    def test_prefix_resolved_after_sync(self, pr_workspace, db):
        mc = MutationCoordinator(pr_workspace, db, None, "w-abc", resolve_prefix=True)
        assert mc.branch_name == ""
        with mc.session():
            assert mc.wanted_id == "w-abc123"
            assert db.current == "wl/alice/w-abc123"
        assert db.calls[:2] == ["require_tool", "sync"]
        assert mc.location.wanted_id == "w-abc123"

    def test_on_main_skips_branch(self, pr_workspace, db):
        mc = MutationCoordinator(pr_workspace, db, None, "w-abc123", on_main=True)
        assert mc.branch_name == ""

    def test_item_less_operation_skips_locate(self, workspace, db):
        mc = MutationCoordinator(workspace, db)
        with mc.session():
            pass
        assert mc.location is None
        assert not any(c.startswith("fetch") for c in db.calls)


class TestPush:
    """Tests for MutationCoordinator.push()."""

    def test_no_push_touches_nothing(self, workspace, db):
        mc = MutationCoordinator(workspace, db, None, "w-abc123", no_push=True)
        with mc.session():
            db.tables().wanted["w-abc123"].status = "claimed"
        assert mc.push().ok
        assert not any(c.startswith("push") for c in db.calls)

    def test_wild_west_pushes_both(self, workspace, db):
        mc = MutationCoordinator(workspace, db, None, "w-abc123")
        with mc.session():
            db.tables().wanted["w-abc123"].status = "claimed"
        assert mc.push().ok
        assert "push_with_sync" in db.calls
        assert db.query_status_as_of("w-abc123", "upstream/main") == "claimed"

    def test_branch_push_refreshes_review_shell(self, pr_workspace, db):
        shell = MagicMock()
        shell.refresh.return_value = Result.success()
        mc = MutationCoordinator(pr_workspace, db, None, "w-abc123", review_shell=shell)
        with mc.session():
            pass
        assert mc.push().ok
        assert "push_branch wl/alice/w-abc123" in db.calls
        shell.refresh.assert_called_once_with("wl/alice/w-abc123")
        assert mc.last_target.push_origin and not mc.last_target.push_upstream

    def test_failed_branch_push_skips_refresh(self, pr_workspace, db):
        db.push_ok = False
        shell = MagicMock()
        mc = MutationCoordinator(pr_workspace, db, None, "w-abc123", review_shell=shell)
        with mc.session():
            pass
        assert not mc.push().ok
        shell.refresh.assert_not_called()

    def test_converged_main_push_prints_hint(self, pr_workspace, db, capsys):
        db.put(make_item(status="claimed"), "upstream/main")
        mc = MutationCoordinator(pr_workspace, db, None, "w-abc123", on_main=True)
        with mc.session():
            db.tables().wanted["w-abc123"].status = "claimed"
        assert mc.push().ok
        assert not any(c.startswith("push") for c in db.calls)
        assert HINT_CONVERGED in capsys.readouterr().out


class TestWarnPushFailure:
    """Tests for warn_push_failure()."""

    def test_prints_retry_hint(self, capsys):
        warn_push_failure(Result.failure(ErrorClass.PUSH, "denied"))
        assert PUSH_RETRY_HINT in capsys.readouterr().out

    def test_silent_on_success(self, capsys):
        warn_push_failure(Result.success())
        assert capsys.readouterr().out == ""
