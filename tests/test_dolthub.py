"""Tests for wasteland.lib.dolthub module."""

import io
import json
from unittest.mock import patch, MagicMock
from urllib.error import HTTPError, URLError

import pytest

from wasteland.lib.dolthub import DOLTHUB_API_BASE, DoltHubProvider
from wasteland.lib.errors import ProviderError, ToolingError


def response(payload):
    resp = MagicMock()
    resp.read.return_value = json.dumps(payload).encode() if payload is not None else b""
    resp.__enter__.return_value = resp
    return resp


def http_error(code, body):
    return HTTPError("https://www.dolthub.com", code, "error", {}, io.BytesIO(body.encode()))


@pytest.fixture
def provider(workspace, monkeypatch):
    monkeypatch.setenv("DOLTHUB_TOKEN", "tok")
    return DoltHubProvider(workspace)


class TestRequire:
    """Test token check."""

    def test_missing_token(self, workspace, monkeypatch):
        monkeypatch.delenv("DOLTHUB_TOKEN", raising=False)
        with pytest.raises(ToolingError, match="DOLTHUB_TOKEN"):
            DoltHubProvider(workspace).require()

    def test_no_review_support(self, provider):
        assert provider.supports_reviews is False
        with pytest.raises(ProviderError):
            provider.submit_review("1", "APPROVE", "")


class TestRequest:
    """Test the JSON request helper."""

    @patch("wasteland.lib.dolthub.urlopen")
    def test_sends_token_and_json(self, mock_urlopen, provider):
        mock_urlopen.return_value = response({"_id": "12"})
        url = provider.create_pr("wl/alice/w-1", "[wl] Fix", "## diff")
        assert url == "https://www.dolthub.com/repositories/hop/wl-commons/pulls/12"
        req = mock_urlopen.call_args[0][0]
        assert req.full_url == f"{DOLTHUB_API_BASE}/hop/wl-commons/pulls"
        assert req.get_header("Authorization") == "token tok"
        body = json.loads(req.data)
        assert body["fromBranchOwnerName"] == "alice-dev"
        assert body["fromBranchName"] == "wl/alice/w-1"
        assert body["toBranchName"] == "main"

    @patch("wasteland.lib.dolthub.urlopen")
    def test_http_error(self, mock_urlopen, provider):
        mock_urlopen.side_effect = http_error(403, "forbidden")
        with pytest.raises(ProviderError, match="HTTP 403"):
            provider.close_pr("12")

    @patch("wasteland.lib.dolthub.urlopen")
    def test_network_error(self, mock_urlopen, provider):
        mock_urlopen.side_effect = URLError("no route")
        with pytest.raises(ProviderError, match="failed"):
            provider.add_comment("12", "merged")


class TestFindPr:
    """Test open-PR search by fetching details."""

    @patch("wasteland.lib.dolthub.urlopen")
    def test_matches_branch_and_owner(self, mock_urlopen, provider):
        mock_urlopen.side_effect = [
            response({"pulls": [
                {"pull_id": "3", "state": "closed"},
                {"pull_id": "4", "state": "Open"},
                {"pull_id": "5", "state": "open"},
            ]}),
            response({"from_branch": "wl/alice/w-1", "from_branch_owner": "someone-else"}),
            response({"from_branch": "wl/alice/w-1", "from_branch_owner": "alice-dev"}),
        ]
        url, pr_id = provider.find_pr("wl/alice/w-1")
        assert pr_id == "5"
        assert url.endswith("/hop/wl-commons/pulls/5")

    @patch("wasteland.lib.dolthub.urlopen")
    def test_listing_failure(self, mock_urlopen, provider):
        mock_urlopen.side_effect = URLError("offline")
        assert provider.find_pr("wl/alice/w-1") == ("", "")


class TestPublishShell:
    """Test create-or-update."""

    @patch("wasteland.lib.dolthub.urlopen")
    def test_already_exists_updates(self, mock_urlopen, provider, capsys):
        mock_urlopen.side_effect = [
            http_error(409, "pull request already exists"),
            response({"pulls": [{"pull_id": "5", "state": "open"}]}),
            response({"from_branch": "wl/alice/w-1", "from_branch_owner": "alice-dev"}),
            response(None),
        ]
        url = provider.publish_shell("wl/alice/w-1", "[wl] Fix", "## v2")
        assert url.endswith("/pulls/5")
        patch_req = mock_urlopen.call_args_list[-1][0][0]
        assert patch_req.get_method() == "PATCH"
        assert json.loads(patch_req.data)["description"] == "## v2"
        assert "Updated existing PR." in capsys.readouterr().out

    @patch("wasteland.lib.dolthub.urlopen")
    def test_other_errors_propagate(self, mock_urlopen, provider):
        mock_urlopen.side_effect = http_error(500, "internal")
        with pytest.raises(ProviderError, match="HTTP 500"):
            provider.publish_shell("wl/alice/w-1", "[wl] Fix", "## v2")
