"""
Hosting providers for review shells.

A review shell is the pull request on the hosting service that mirrors a
wl/<rig>/<id> branch so that canonical maintainers can review it. Each
provider implements the same capability set; callers depend only on
ReviewProvider.
"""

from abc import ABC, abstractmethod

from wasteland.lib.config import PROVIDER_GITHUB, WorkspaceConfig, parse_upstream

REVIEW_APPROVE = "APPROVE"
REVIEW_REQUEST_CHANGES = "REQUEST_CHANGES"
REVIEW_EVENTS = {REVIEW_APPROVE, REVIEW_REQUEST_CHANGES}


class ReviewProvider(ABC):
    """Pull-request operations against canonical, from the rig's fork."""

    name = ""
    supports_reviews = False

    def __init__(self, cfg: WorkspaceConfig):
        self.cfg = cfg
        self.upstream_org, self.db = parse_upstream(cfg.upstream)

    @abstractmethod
    def require(self) -> None:
        """Raise ToolingError if the CLI or credentials are missing."""

    @abstractmethod
    def find_pr(self, branch: str) -> tuple[str, str]:
        """Open PR for branch as (url, id); ("", "") when there is none."""

    @abstractmethod
    def create_pr(self, branch: str, title: str, body: str) -> str:
        """Open a cross-fork PR and return its URL."""

    @abstractmethod
    def update_pr(self, pr_id: str, title: str, body: str) -> None: ...

    @abstractmethod
    def publish_shell(self, branch: str, title: str, body: str) -> str:
        """Create the PR for branch, or update the existing one. Returns its URL."""

    @abstractmethod
    def submit_review(self, pr_id: str, event: str, body: str) -> None: ...

    @abstractmethod
    def list_reviews(self, pr_id: str) -> list[dict]: ...

    @abstractmethod
    def close_pr(self, pr_id: str) -> None: ...

    @abstractmethod
    def add_comment(self, pr_id: str, body: str) -> None: ...

    @abstractmethod
    def delete_ref(self, branch: str) -> None:
        """Delete the provider-side branch created for the shell."""


def get_provider(cfg: WorkspaceConfig) -> ReviewProvider:
    """Provider for the workspace's provider_type."""
    # Imported here so each backend's seams stay patchable on their own modules
    if cfg.provider_type == PROVIDER_GITHUB:
        from wasteland.lib.github import GitHubProvider
        return GitHubProvider(cfg)
    from wasteland.lib.dolthub import DoltHubProvider
    return DoltHubProvider(cfg)
