"""
DoltHub review shells via the DoltHub REST API.

DoltHub diffs dolt branches natively, so the shell is just a pull request
from <fork_org>/<db>:<branch> to <upstream_org>/<db>:main whose description
carries the rendered markdown diff. DoltHub has no review API, so approve
and request-changes are unavailable on this provider.
"""

import json
import logging
import os
from urllib.error import HTTPError, URLError
from urllib.request import Request, urlopen

from wasteland.lib.errors import ProviderError, ToolingError
from wasteland.lib.providers import ReviewProvider

logger = logging.getLogger(__name__)

DOLTHUB_API_BASE = "https://www.dolthub.com/api/v1alpha1"
DOLTHUB_REPO_BASE = "https://www.dolthub.com/repositories"

HTTP_TIMEOUT_SECONDS = 30

TOKEN_ENV = "DOLTHUB_TOKEN"


def dolthub_token() -> str:
    return os.environ.get(TOKEN_ENV, "")


class DoltHubProvider(ReviewProvider):
    """Review shells on DoltHub."""

    name = "dolthub"
    supports_reviews = False

    @property
    def token(self) -> str:
        return dolthub_token()

    def require(self) -> None:
        if not self.token:
            raise ToolingError(
                f"{TOKEN_ENV} environment variable is required for DoltHub PRs",
                hint="Create an API token at https://www.dolthub.com/settings/tokens",
            )

    def _pulls_url(self, pr_id: str = "") -> str:
        url = f"{DOLTHUB_API_BASE}/{self.upstream_org}/{self.db}/pulls"
        return f"{url}/{pr_id}" if pr_id else url

    def _web_url(self, pr_id: str = "") -> str:
        url = f"{DOLTHUB_REPO_BASE}/{self.upstream_org}/{self.db}/pulls"
        return f"{url}/{pr_id}" if pr_id else url

    def _request(self, method: str, url: str, body: dict | None = None) -> dict:
        """Authenticated JSON request. Raises ProviderError on failure."""
        headers = {"authorization": f"token {self.token}"}
        data = None
        if body is not None:
            data = json.dumps(body).encode()
            headers["Content-Type"] = "application/json"
        req = Request(url, data=data, headers=headers, method=method)
        try:
            with urlopen(req, timeout=HTTP_TIMEOUT_SECONDS) as response:
                raw = response.read()
        except HTTPError as e:
            detail = e.read().decode(errors="replace") if e.fp else ""
            raise ProviderError(f"DoltHub {method} {url} (HTTP {e.code}): {detail}") from None
        except (URLError, TimeoutError, OSError) as e:
            raise ProviderError(f"DoltHub {method} {url} failed: {e}") from None
        if not raw:
            return {}
        try:
            return json.loads(raw)
        except json.JSONDecodeError:
            raise ProviderError(f"DoltHub {method} {url}: invalid JSON response") from None

    def create_pr(self, branch: str, title: str, body: str) -> str:
        data = self._request("POST", self._pulls_url(), {
            "title": title,
            "description": body,
            "fromBranchOwnerName": self.cfg.fork_org,
            "fromBranchRepoName": self.db,
            "fromBranchName": branch,
            "toBranchOwnerName": self.upstream_org,
            "toBranchRepoName": self.db,
            "toBranchName": "main",
        })
        pr_id = data.get("_id") or data.get("pull_id") or ""
        return self._web_url(pr_id)

    def find_pr(self, branch: str) -> tuple[str, str]:
        """
        Search open PRs for one from fork_org:branch.

        The list endpoint has no branch details, so each open PR's detail is
        fetched and matched on from_branch and from_branch_owner.
        """
        try:
            listing = self._request("GET", self._pulls_url())
        except ProviderError as e:
            logger.debug(f"[DOLTHUB] listing pulls failed: {e}")
            return "", ""
        for pr in listing.get("pulls", []):
            if str(pr.get("state", "")).lower() != "open":
                continue
            pr_id = str(pr.get("pull_id", ""))
            try:
                detail = self._request("GET", self._pulls_url(pr_id))
            except ProviderError:
                continue
            if detail.get("from_branch") == branch and detail.get("from_branch_owner") == self.cfg.fork_org:
                return self._web_url(pr_id), pr_id
        return "", ""

    def update_pr(self, pr_id: str, title: str, body: str) -> None:
        self._request("PATCH", self._pulls_url(pr_id), {"title": title, "description": body})

    def publish_shell(self, branch: str, title: str, body: str) -> str:
        """Open the PR, or update the existing one when DoltHub says it already exists."""
        try:
            return self.create_pr(branch, title, body)
        except ProviderError as e:
            if "already exists" not in str(e):
                raise
        url, pr_id = self.find_pr(branch)
        if not pr_id:
            print("  PR already exists for this branch.")
            return self._web_url()
        self.update_pr(pr_id, title, body)
        print("  Updated existing PR.")
        return url

    def submit_review(self, pr_id: str, event: str, body: str) -> None:
        raise ProviderError("DoltHub does not support PR reviews; review on the DoltHub web UI")

    def list_reviews(self, pr_id: str) -> list[dict]:
        raise ProviderError("DoltHub does not support PR reviews")

    def close_pr(self, pr_id: str) -> None:
        self._request("PATCH", self._pulls_url(pr_id), {"state": "closed"})

    def add_comment(self, pr_id: str, body: str) -> None:
        self._request("POST", f"{self._pulls_url(pr_id)}/comments", {"comment": body})

    def delete_ref(self, branch: str) -> None:
        # The shell is the dolt branch itself; it is removed with `dolt push origin :<branch>`
        return None
