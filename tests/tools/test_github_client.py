"""Tests for tools.github_client: URL parsing, the REST wrapper and tool handlers."""

import base64
import json
from unittest.mock import MagicMock, patch

import pytest

from tools.github_client import (
    GitHubClient,
    GitHubError,
    ParsedGitHubUrl,
    _handle_github_file,
    _handle_github_issue,
    _handle_github_repo,
    _handle_github_search,
    parse_github_url,
)


def _response(status=200, json_data=None, reason="OK", text=""):
    resp = MagicMock()
    resp.status_code = status
    resp.ok = 200 <= status < 300
    resp.reason = reason
    resp.text = text
    resp.json.return_value = json_data
    return resp


def _b64(text):
    return base64.b64encode(text.encode()).decode()


def _client_with(responses):
    """GitHubClient whose session returns ``responses[path]`` for each GET."""
    session = MagicMock()
    session.headers = {}

    def _get(url, params=None, timeout=None):
        path = url.replace("https://api.github.com", "")
        return responses[path]

    session.get.side_effect = _get
    return GitHubClient(token="tok", session=session), session


# ---------------------------------------------------------------------------
# parse_github_url
# ---------------------------------------------------------------------------


class TestParseGitHubUrl:
    @pytest.mark.parametrize(
        "url,expected",
        [
            ("https://github.com/facebook/react", ParsedGitHubUrl("facebook", "react", "repo")),
            ("https://github.com/facebook/react.git", ParsedGitHubUrl("facebook", "react", "repo")),
            ("https://www.github.com/a/b/", ParsedGitHubUrl("a", "b", "repo")),
            ("https://github.com/a/b/issues/12", ParsedGitHubUrl("a", "b", "issue", number=12)),
            ("https://github.com/a/b/pull/7/files", ParsedGitHubUrl("a", "b", "pull", number=7)),
            (
                "https://github.com/a/b/blob/main/src/index.ts",
                ParsedGitHubUrl("a", "b", "blob", ref="main", path="src/index.ts"),
            ),
            ("https://github.com/a/b/tree/v1.2", ParsedGitHubUrl("a", "b", "tree", ref="v1.2")),
            ("https://github.com/a/b/actions", ParsedGitHubUrl("a", "b", "repo")),
        ],
    )
    def test_supported_shapes(self, url, expected):
        assert parse_github_url(url) == expected

    @pytest.mark.parametrize("url", ["", "https://gitlab.com/a/b", "https://github.com/onlyowner", "not a url"])
    def test_rejects_non_repo_urls(self, url):
        assert parse_github_url(url) is None

    def test_full_name(self):
        assert parse_github_url("https://github.com/a/b").full_name == "a/b"


# ---------------------------------------------------------------------------
# GitHubClient
# ---------------------------------------------------------------------------


class TestGitHubClient:
    def test_token_sets_authorization_header(self):
        client, session = _client_with({})
        assert session.headers["Authorization"] == "Bearer tok"
        assert session.headers["Accept"] == "application/vnd.github+json"

    def test_no_token_means_no_header(self, monkeypatch):
        monkeypatch.delenv("GITHUB_TOKEN", raising=False)
        session = MagicMock()
        session.headers = {}
        GitHubClient(session=session)
        assert "Authorization" not in session.headers

    def test_error_uses_api_message(self):
        client, _ = _client_with({"/repos/a/b": _response(403, {"message": "rate limit exceeded"}, reason="Forbidden")})
        with pytest.raises(GitHubError) as exc:
            client.get_repository("a", "b")
        assert exc.value.status == 403
        assert "rate limit exceeded" in str(exc.value)

    def test_readme_decodes_and_missing_is_none(self):
        client, _ = _client_with({"/repos/a/b/readme": _response(json_data={"encoding": "base64", "content": _b64("# Hi")})})
        assert client.get_readme("a", "b") == "# Hi"

        client, _ = _client_with({"/repos/a/b/readme": _response(404, {"message": "Not Found"})})
        assert client.get_readme("a", "b") is None

    def test_file_vs_directory(self):
        client, _ = _client_with({
            "/repos/a/b/contents/src": _response(json_data=[{"name": "x.py", "path": "src/x.py", "type": "file", "size": 3}]),
            "/repos/a/b/contents/src/x.py": _response(json_data={"encoding": "base64", "content": _b64("x=1")}),
        })
        assert client.get_file_content("a", "b", "src/x.py") == "x=1"
        assert client.list_directory("a", "b", "src") == [{"name": "x.py", "path": "src/x.py", "type": "file", "size": 3}]
        with pytest.raises(ValueError):
            client.get_file_content("a", "b", "src")

    def test_search_code_scopes_to_repo(self):
        client, session = _client_with({
            "/search/code": _response(json_data={"items": [
                {"repository": {"full_name": "a/b"}, "path": "x.py", "html_url": "https://github.com/a/b/blob/main/x.py"}
            ]})
        })
        items = client.search_code("useState", repo="a/b", per_page=5)
        assert items == [{"repository": "a/b", "path": "x.py", "url": "https://github.com/a/b/blob/main/x.py"}]
        assert session.get.call_args[1]["params"] == {"q": "useState repo:a/b", "per_page": 5}


# ---------------------------------------------------------------------------
# Handlers
# ---------------------------------------------------------------------------


class TestHandlers:
    def test_repo_rejects_bad_name(self):
        result = json.loads(_handle_github_repo({"repo": "not a repo"}))
        assert "owner/repo" in result["error"]

    def test_repo_summary(self):
        client, _ = _client_with({
            "/repos/a/b": _response(json_data={"full_name": "a/b", "description": "d", "default_branch": "main",
                                               "stargazers_count": 5, "language": "Python"}),
            "/repos/a/b/readme": _response(404, {"message": "Not Found"}),
            "/repos/a/b/contents/": _response(json_data=[{"name": "README", "path": "README", "type": "file"}]),
        })
        with patch("tools.github_client.create_github_client", return_value=client):
            result = json.loads(_handle_github_repo({"repo": "https://github.com/a/b"}))["result"]
        assert result["full_name"] == "a/b"
        assert result["readme"] == ""
        assert result["entries"][0]["name"] == "README"

    def test_file_from_blob_url(self):
        client, _ = _client_with({
            "/repos/a/b/contents/src/x.py": _response(json_data={"encoding": "base64", "content": _b64("print(1)")}),
        })
        with patch("tools.github_client.create_github_client", return_value=client):
            result = json.loads(_handle_github_file({"url": "https://github.com/a/b/blob/main/src/x.py"}))["result"]
        assert result == {"path": "src/x.py", "type": "file", "content": "print(1)", "truncated": False}

    def test_file_directory_is_listed(self):
        client, _ = _client_with({
            "/repos/a/b/contents/src": _response(json_data=[{"name": "x.py", "path": "src/x.py", "type": "file"}]),
        })
        with patch("tools.github_client.create_github_client", return_value=client):
            result = json.loads(_handle_github_file({"repo": "a/b", "path": "src"}))["result"]
        assert result["type"] == "dir"
        assert result["entries"][0]["path"] == "src/x.py"

    def test_search_requires_query(self):
        assert "query" in json.loads(_handle_github_search({}))["error"]

    def test_issue_from_pull_url_includes_pr_fields(self):
        client, _ = _client_with({
            "/repos/a/b/issues/7": _response(json_data={"title": "Fix", "state": "open", "user": {"login": "dev"},
                                                        "labels": [{"name": "bug"}], "body": "details",
                                                        "pull_request": {}}),
            "/repos/a/b/issues/7/comments": _response(json_data=[{"user": {"login": "rev"}, "body": "lgtm",
                                                                  "created_at": "2025-01-01"}]),
            "/repos/a/b/pulls/7": _response(json_data={"merged": False, "base": {"ref": "main"}, "head": {"ref": "fix"},
                                                       "changed_files": 2}),
        })
        with patch("tools.github_client.create_github_client", return_value=client):
            result = json.loads(_handle_github_issue({"url": "https://github.com/a/b/pull/7"}))["result"]
        assert result["kind"] == "pull"
        assert result["labels"] == ["bug"]
        assert result["comments"][0]["author"] == "rev"
        assert result["base"] == "main"
        assert result["changed_files"] == 2

    def test_issue_rejects_repo_url_without_number(self):
        result = json.loads(_handle_github_issue({"url": "https://github.com/a/b"}))
        assert "error" in result
