"""
GitHub review shells via the gh CLI.

GitHub cannot diff dolt data, so the shell is a real git commit on the
fork that adds a markdown summary of the dolt diff at
.wasteland/<wanted-id>.md, plus a cross-fork PR from that branch to
canonical main. All calls go through `gh api`, which handles auth.
"""

import json
import logging
import subprocess

from wasteland.lib.commons import extract_wanted_id
from wasteland.lib.errors import ProviderError, ToolingError
from wasteland.lib.providers import REVIEW_EVENTS, ReviewProvider

logger = logging.getLogger(__name__)

# Timeout for GitHub CLI operations (seconds)
GH_TIMEOUT_SECONDS = 30

GH_INSTALL_URL = "https://cli.github.com/"

MARKER_DIR = ".wasteland"


def check_gh_available() -> tuple[bool, str]:
    """Check gh CLI is installed and authenticated.

    Returns: (ok, error_message)
    """
    try:
        result = subprocess.run(
            ["gh", "--version"],
            capture_output=True,
            timeout=5,
        )
        if result.returncode != 0:
            return False, "GitHub CLI (gh) not installed"

        result = subprocess.run(
            ["gh", "auth", "status"],
            capture_output=True,
            text=True,
            timeout=10,
        )
        if result.returncode != 0:
            return False, "GitHub CLI not authenticated"

        return True, ""

    except FileNotFoundError:
        return False, "GitHub CLI (gh) not found"
    except subprocess.TimeoutExpired:
        return False, "GitHub CLI timed out"


def gh_api(method: str, endpoint: str, body: dict | None = None):
    """
    Call the GitHub REST API through `gh api`.

    Returns the decoded JSON response (None for empty bodies).
    Raises ProviderError on any failure.
    """
    args = ["gh", "api", endpoint]
    if method != "GET":
        args += ["-X", method]
    payload = None
    if body is not None:
        args += ["--input", "-"]
        payload = json.dumps(body)
    try:
        result = subprocess.run(
            args,
            capture_output=True,
            text=True,
            input=payload,
            timeout=GH_TIMEOUT_SECONDS,
        )
    except subprocess.TimeoutExpired:
        raise ProviderError(f"gh api {method} {endpoint}: timed out") from None
    except (FileNotFoundError, subprocess.SubprocessError) as e:
        raise ProviderError(f"gh api {method} {endpoint}: {e}") from None

    if result.returncode != 0:
        detail = (result.stderr or result.stdout).strip()
        raise ProviderError(f"gh api {method} {endpoint}: {detail}")
    if not result.stdout.strip():
        return None
    try:
        return json.loads(result.stdout)
    except json.JSONDecodeError:
        raise ProviderError(f"gh api {method} {endpoint}: invalid JSON from gh") from None


class GitHubProvider(ReviewProvider):
    """Review shells on GitHub."""

    name = "github"
    supports_reviews = True

    @property
    def upstream_repo(self) -> str:
        return self.cfg.upstream

    @property
    def fork_repo(self) -> str:
        return self.cfg.fork_repo

    def require(self) -> None:
        ok, error = check_gh_available()
        if not ok:
            raise ToolingError(error, hint=f"Install and authenticate gh: {GH_INSTALL_URL} then 'gh auth login'")

    # --- git-object primitives (on the fork) ---

    def get_ref(self, ref: str) -> str:
        data = gh_api("GET", f"repos/{self.fork_repo}/git/ref/{ref}")
        return data["object"]["sha"]

    def get_commit_tree(self, commit_sha: str) -> str:
        data = gh_api("GET", f"repos/{self.fork_repo}/git/commits/{commit_sha}")
        return data["tree"]["sha"]

    def create_blob(self, content: str) -> str:
        data = gh_api("POST", f"repos/{self.fork_repo}/git/blobs", {"content": content, "encoding": "utf-8"})
        return data["sha"]

    def create_tree(self, base_tree: str, path: str, blob_sha: str) -> str:
        data = gh_api("POST", f"repos/{self.fork_repo}/git/trees", {
            "base_tree": base_tree,
            "tree": [{"path": path, "mode": "100644", "type": "blob", "sha": blob_sha}],
        })
        return data["sha"]

    def create_commit(self, message: str, tree_sha: str, parents: list[str]) -> str:
        data = gh_api("POST", f"repos/{self.fork_repo}/git/commits", {
            "message": message,
            "tree": tree_sha,
            "parents": parents,
        })
        return data["sha"]

    def create_ref(self, ref: str, sha: str) -> None:
        gh_api("POST", f"repos/{self.fork_repo}/git/refs", {"ref": ref, "sha": sha})

    def update_ref(self, ref: str, sha: str, force: bool = True) -> None:
        gh_api("PATCH", f"repos/{self.fork_repo}/git/refs/{ref}", {"sha": sha, "force": force})

    # --- pull requests (on canonical) ---

    def find_pr(self, branch: str) -> tuple[str, str]:
        head = f"{self.cfg.fork_org}:{branch}"
        try:
            result = subprocess.run(
                ["gh", "pr", "list", "--repo", self.upstream_repo, "--head", head,
                 "--state", "open", "--json", "number,url"],
                capture_output=True,
                text=True,
                timeout=GH_TIMEOUT_SECONDS,
            )
        except (FileNotFoundError, subprocess.SubprocessError) as e:
            logger.debug(f"[GITHUB] pr list failed: {e}")
            return "", ""
        if result.returncode != 0:
            logger.debug(f"[GITHUB] pr list failed: {result.stderr.strip()}")
            return "", ""
        try:
            prs = json.loads(result.stdout or "[]")
        except json.JSONDecodeError:
            return "", ""
        if not prs:
            return "", ""
        return prs[0].get("url", ""), str(prs[0].get("number", ""))

    def create_pr(self, branch: str, title: str, body: str) -> str:
        data = gh_api("POST", f"repos/{self.upstream_repo}/pulls", {
            "title": title,
            "body": body,
            "head": f"{self.cfg.fork_org}:{branch}",
            "base": "main",
        })
        return data.get("html_url", "")

    def update_pr(self, pr_id: str, title: str, body: str) -> None:
        # Title is left alone; maintainers may have edited it
        gh_api("PATCH", f"repos/{self.upstream_repo}/pulls/{pr_id}", {"body": body})

    def publish_shell(self, branch: str, title: str, body: str) -> str:
        """Commit the markdown marker on the fork and open or update the PR."""
        marker_path = f"{MARKER_DIR}/{extract_wanted_id(branch)}.md"

        print("  Getting fork HEAD...")
        head_sha = self.get_ref("heads/main")
        base_tree = self.get_commit_tree(head_sha)

        print("  Creating marker file...")
        blob_sha = self.create_blob(body)
        tree_sha = self.create_tree(base_tree, marker_path, blob_sha)

        print("  Creating commit...")
        commit_sha = self.create_commit(f"wl review: {branch}", tree_sha, [head_sha])

        print("  Pushing branch to fork...")
        try:
            self.create_ref(f"refs/heads/{branch}", commit_sha)
        except ProviderError as e:
            logger.debug(f"[GITHUB] create ref failed ({e}); force-updating")
            self.update_ref(f"heads/{branch}", commit_sha, force=True)

        print("  Opening PR...")
        url, number = self.find_pr(branch)
        if number:
            self.update_pr(number, title, body)
            return url
        return self.create_pr(branch, title, body)

    def submit_review(self, pr_id: str, event: str, body: str) -> None:
        if event not in REVIEW_EVENTS:
            raise ValueError(f"Unknown review event: {event}")
        gh_api("POST", f"repos/{self.upstream_repo}/pulls/{pr_id}/reviews", {"event": event, "body": body})

    def list_reviews(self, pr_id: str) -> list[dict]:
        return gh_api("GET", f"repos/{self.upstream_repo}/pulls/{pr_id}/reviews") or []

    def close_pr(self, pr_id: str) -> None:
        gh_api("PATCH", f"repos/{self.upstream_repo}/pulls/{pr_id}", {"state": "closed"})

    def add_comment(self, pr_id: str, body: str) -> None:
        gh_api("POST", f"repos/{self.upstream_repo}/issues/{pr_id}/comments", {"body": body})

    def delete_ref(self, branch: str) -> None:
        gh_api("DELETE", f"repos/{self.fork_repo}/git/refs/heads/{branch}")
