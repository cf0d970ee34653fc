"""
Best-effort step results and the abort/warn policy table.

Steps that may fail without losing a committed mutation (sync, push,
review-shell refresh, ...) return a Result instead of raising. Callers look
up the failure's ErrorClass in ERROR_POLICY to decide whether to abort or to
print a warning and carry on.
"""

import logging
from dataclasses import dataclass
from enum import Enum

logger = logging.getLogger(__name__)


class ErrorClass(Enum):
    """Failure categories a command can hit."""

    INPUT = "input"
    CONFLICT = "conflict"
    TOOLING = "tooling"
    SYNC = "sync"
    PUSH = "push"
    PR_REFRESH = "pr_refresh"
    APPROVAL_LOOKUP = "approval_lookup"
    PR_CLOSE = "pr_close"
    BRANCH_DELETE = "branch_delete"


class Policy(Enum):
    ABORT = "abort"
    WARN = "warn"


ERROR_POLICY: dict[ErrorClass, Policy] = {
    ErrorClass.INPUT: Policy.ABORT,
    ErrorClass.CONFLICT: Policy.ABORT,
    ErrorClass.TOOLING: Policy.ABORT,
    ErrorClass.SYNC: Policy.WARN,
    ErrorClass.PUSH: Policy.WARN,
    ErrorClass.PR_REFRESH: Policy.WARN,
    ErrorClass.APPROVAL_LOOKUP: Policy.WARN,
    ErrorClass.PR_CLOSE: Policy.WARN,
    ErrorClass.BRANCH_DELETE: Policy.WARN,
}

# Printed whenever a push fails after the mutation committed locally
PUSH_RETRY_HINT = "Push failed — changes saved locally. Run 'wl sync' to retry."


@dataclass
class Result:
    """Outcome of a best-effort step."""
    ok: bool
    error_class: ErrorClass | None = None
    message: str = ""
    detail: str = ""  # e.g. PR URL on success

    @classmethod
    def success(cls, detail: str = "") -> "Result":
        return cls(ok=True, detail=detail)

    @classmethod
    def failure(cls, error_class: ErrorClass, message: str) -> "Result":
        logger.debug(f"[POLICY] {error_class.value} failure: {message}")
        return cls(ok=False, error_class=error_class, message=message)

    @property
    def policy(self) -> Policy | None:
        """Policy for this failure, or None on success."""
        if self.ok or self.error_class is None:
            return None
        return ERROR_POLICY[self.error_class]

    @property
    def should_abort(self) -> bool:
        return self.policy is Policy.ABORT


def policy_for(error_class: ErrorClass) -> Policy:
    """Look up the policy for an error class."""
    return ERROR_POLICY[error_class]


def report(result: Result, prefix: str = "warning") -> None:
    """Print a warn-policy failure; no-op on success."""
    if result.ok:
        return
    print(f"  {prefix}: {result.message}")
