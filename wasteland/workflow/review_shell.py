"""
Review shells: the hosted pull request that mirrors a wl/* branch.

The builder renders the branch's dolt diff as markdown, pushes the branch to
the fork, and asks the workspace's provider to open the PR or update the one
already open for that branch. Re-running it for the same branch updates the
existing shell and returns the same URL.

Merge gating is advisory: approval warnings and the post-merge close are
reported as warn-policy Results, never raised.
"""

import logging

from wasteland.lib.commons import extract_wanted_id
from wasteland.lib.errors import InputError, ProviderError, StateConflictError, ToolingError
from wasteland.lib.policy import ErrorClass, Result
from wasteland.lib.providers import REVIEW_APPROVE, REVIEW_REQUEST_CHANGES, ReviewProvider

logger = logging.getLogger(__name__)

MERGE_COMMENT = "Merged via `wl merge`."


def render_markdown_diff(db, branch: str, base: str) -> str:
    """Markdown summary of base...branch: stat block plus SQL diff."""
    lines = [f"## wl review: {branch}", "", "### Summary", "```"]
    stat = db.diff(branch, "stat", base=base)
    if stat.success:
        lines.append(stat.stdout.rstrip("\n"))
    else:
        lines.append("(no changes)")
    lines += ["```", "", "### Changes", "```sql"]
    sql = db.diff(branch, "sql", base=base)
    if sql.success:
        lines.append(sql.stdout.rstrip("\n"))
    else:
        lines.append("-- (no SQL changes)")
    lines.append("```")
    return "\n".join(lines) + "\n"


def parse_review_status(reviews: list[dict]) -> tuple[bool, bool]:
    """(has_approval, has_changes_requested) from the latest decisive review per user.

    A reviewer's later approval supersedes their earlier change request.
    """
    latest: dict[str, str] = {}
    for review in reviews or []:
        state = review.get("state", "")
        if state in ("APPROVED", "CHANGES_REQUESTED"):
            login = (review.get("user") or {}).get("login", "")
            latest[login] = state
    return "APPROVED" in latest.values(), "CHANGES_REQUESTED" in latest.values()


def merge_approval_warning(has_approval: bool, has_changes_requested: bool) -> str:
    if has_changes_requested:
        return "PR has outstanding change requests"
    if not has_approval:
        return "PR has no approvals"
    return ""


class ReviewShellBuilder:
    """Creates, refreshes, reviews and closes the PR for a review branch."""

    def __init__(self, db, provider: ReviewProvider):
        self.db = db
        self.provider = provider

    def title_for(self, branch: str) -> str:
        title = self.db.query_title_as_of(extract_wanted_id(branch), branch) or branch
        return f"[wl] {title}"

    def markdown(self, branch: str) -> str:
        return render_markdown_diff(self.db, branch, self.db.diff_base())

    def create_or_update(self, branch: str, push: bool = True) -> str:
        """
        Push branch to the fork and publish its shell. Returns the PR URL.

        With push=False the fork copy of the branch is left as it is and only
        the shell is created or updated.
        """
        self.provider.require()
        if not self.db.branch_exists(branch):
            raise InputError(f"branch '{branch}' does not exist")
        if push:
            pushed = self.db.push_branch(branch)
            if not pushed.ok:
                raise ProviderError(f"pushing to fork: {pushed.message}")
        else:
            logger.debug(f"[REVIEW] --no-push: not pushing {branch} to the fork")
        body = self.markdown(branch)
        url = self.provider.publish_shell(branch, self.title_for(branch), body)
        logger.info(f"[REVIEW] shell for {branch}: {url}")
        return url

    def refresh(self, branch: str) -> Result:
        """Update the description of an already-open shell. No shell, no-op."""
        try:
            self.provider.require()
        except ToolingError as e:
            logger.debug(f"[REVIEW] skipping refresh of {branch}: {e}")
            return Result.success()
        url, pr_id = self.provider.find_pr(branch)
        if not pr_id:
            return Result.success()
        try:
            self.provider.update_pr(pr_id, self.title_for(branch), self.markdown(branch))
        except ProviderError as e:
            return Result.failure(ErrorClass.PR_REFRESH, f"could not update PR description: {e}")
        print("  Updated PR description")
        return Result.success(detail=url)

    def submit_review(self, branch: str, event: str, comment: str = "") -> str:
        """Approve or request changes on the branch's open PR. Returns its URL."""
        if event not in (REVIEW_APPROVE, REVIEW_REQUEST_CHANGES):
            raise InputError(f"unknown review event '{event}'")
        if event == REVIEW_REQUEST_CHANGES and not comment.strip():
            raise InputError("a comment is required when requesting changes")
        if not self.provider.supports_reviews:
            raise InputError(f"reviews are not supported on the {self.provider.name} provider")
        self.provider.require()
        url, pr_id = self.provider.find_pr(branch)
        if not pr_id:
            raise StateConflictError(f"no open PR found for branch {branch}")
        self.provider.submit_review(pr_id, event, comment)
        return url

    def approval_status(self, branch: str) -> tuple[bool, bool] | None:
        """Review state of the open PR, or None when there is nothing to check."""
        if not self.provider.supports_reviews:
            return None
        self.provider.require()
        _, pr_id = self.provider.find_pr(branch)
        if not pr_id:
            return None
        return parse_review_status(self.provider.list_reviews(pr_id))

    def merge_gate(self, branch: str) -> Result:
        """Advisory pre-merge check. Failure Results carry the warning text."""
        try:
            status = self.approval_status(branch)
        except (ProviderError, ToolingError) as e:
            return Result.failure(ErrorClass.APPROVAL_LOOKUP, f"could not read PR reviews: {e}")
        if status is None:
            return Result.success()
        warning = merge_approval_warning(*status)
        if warning:
            return Result.failure(ErrorClass.APPROVAL_LOOKUP, warning)
        return Result.success()

    def close_for_merge(self, branch: str) -> list[Result]:
        """Close the shell, comment, delete the provider branch. All best-effort."""
        try:
            self.provider.require()
        except ToolingError as e:
            return [Result.failure(ErrorClass.PR_CLOSE, f"cannot close PR: {e}")]
        url, pr_id = self.provider.find_pr(branch)
        if not pr_id:
            return []
        try:
            self.provider.close_pr(pr_id)
        except ProviderError as e:
            return [Result.failure(ErrorClass.PR_CLOSE, f"failed to close PR {url}: {e}")]

        results = []
        try:
            self.provider.add_comment(pr_id, MERGE_COMMENT)
        except ProviderError as e:
            results.append(Result.failure(ErrorClass.PR_CLOSE, f"failed to comment on PR {url}: {e}"))
        try:
            self.provider.delete_ref(branch)
        except ProviderError as e:
            results.append(Result.failure(ErrorClass.BRANCH_DELETE, f"failed to delete branch {branch}: {e}"))
        results.append(Result.success(detail=url))
        return results
