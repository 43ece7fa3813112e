"""GitHub REST client and the scout's GitHub tools.

Registers four LLM-callable tools in the ``github`` toolset:
- ``github_repo`` -- repository metadata, README and top-level listing
- ``github_file`` -- read a file or list a directory at a ref
- ``github_search`` -- code search, optionally scoped to one repository
- ``github_issue`` -- an issue or pull request with its comments

``GITHUB_TOKEN`` is optional; without it requests are unauthenticated and
subject to the low anonymous rate limit.
"""

import base64
import json
import logging
import os
import re
from dataclasses import dataclass
from typing import Any, Dict, List, Optional
from urllib.parse import urlparse

import requests

from lantern_constants import GITHUB_API_URL, GITHUB_TOKEN_ENV, TOOL_USER_AGENT

logger = logging.getLogger(__name__)

_REQUEST_TIMEOUT = 30
_MAX_FILE_CHARS = 100_000
_MAX_README_CHARS = 20_000

_REPO_RE = re.compile(r"^[A-Za-z0-9_.-]+/[A-Za-z0-9_.-]+$")


class GitHubError(Exception):
    """Raised for non-2xx GitHub API responses."""

    def __init__(self, status: int, message: str):
        self.status = status
        super().__init__(f"GitHub API error ({status}): {message}")


@dataclass(frozen=True)
class ParsedGitHubUrl:
    owner: str
    repo: str
    kind: str  # "repo", "issue", "pull", "blob" or "tree"
    number: Optional[int] = None
    ref: Optional[str] = None
    path: Optional[str] = None

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.repo}"


def parse_github_url(url: str) -> Optional[ParsedGitHubUrl]:
    """Parse a github.com URL into its owner/repo and what it points at.

    Returns None for anything that is not a github.com repository URL.
    """
    if not url:
        return None
    parsed = urlparse(url.strip())
    if parsed.netloc.lower() not in ("github.com", "www.github.com"):
        return None

    parts = [p for p in parsed.path.split("/") if p]
    if len(parts) < 2:
        return None
    owner, repo = parts[0], parts[1]
    if repo.endswith(".git"):
        repo = repo[:-4]

    rest = parts[2:]
    if not rest:
        return ParsedGitHubUrl(owner, repo, "repo")

    section = rest[0]
    if section in ("issues", "pull") and len(rest) >= 2 and rest[1].isdecimal():
        kind = "issue" if section == "issues" else "pull"
        return ParsedGitHubUrl(owner, repo, kind, number=int(rest[1]))
    if section in ("blob", "tree") and len(rest) >= 2:
        path = "/".join(rest[2:]) or None
        return ParsedGitHubUrl(owner, repo, section, ref=rest[1], path=path)

    return ParsedGitHubUrl(owner, repo, "repo")


class GitHubClient:
    """Minimal read-only wrapper over the GitHub REST API."""

    def __init__(self, token: Optional[str] = None, session: Optional[requests.Session] = None,
                 base_url: str = GITHUB_API_URL):
        self.base_url = base_url.rstrip("/")
        self.session = session or requests.Session()
        self.session.headers.update({
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
            "User-Agent": TOOL_USER_AGENT,
        })
        token = token if token is not None else os.getenv(GITHUB_TOKEN_ENV)
        if token:
            self.session.headers["Authorization"] = f"Bearer {token}"

    def _get(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        response = self.session.get(f"{self.base_url}{path}", params=params, timeout=_REQUEST_TIMEOUT)
        if not response.ok:
            try:
                message = response.json().get("message") or response.reason
            except ValueError:
                message = response.text or response.reason
            raise GitHubError(response.status_code, message)
        return response.json()

    def get_repository(self, owner: str, repo: str) -> Dict[str, Any]:
        return self._get(f"/repos/{owner}/{repo}")

    def get_readme(self, owner: str, repo: str, ref: Optional[str] = None) -> Optional[str]:
        try:
            data = self._get(f"/repos/{owner}/{repo}/readme", params={"ref": ref} if ref else None)
        except GitHubError as e:
            if e.status == 404:
                return None
            raise
        return _decode_content(data)

    def get_file_content(self, owner: str, repo: str, path: str, ref: Optional[str] = None) -> str:
        data = self._get(f"/repos/{owner}/{repo}/contents/{path.lstrip('/')}", params={"ref": ref} if ref else None)
        if isinstance(data, list):
            raise ValueError(f"{path} is a directory")
        return _decode_content(data)

    def list_directory(self, owner: str, repo: str, path: str = "", ref: Optional[str] = None) -> List[Dict[str, Any]]:
        data = self._get(f"/repos/{owner}/{repo}/contents/{path.lstrip('/')}", params={"ref": ref} if ref else None)
        if not isinstance(data, list):
            raise ValueError(f"{path} is a file")
        return [{"name": d.get("name"), "path": d.get("path"), "type": d.get("type"), "size": d.get("size")}
                for d in data]

    def search_code(self, query: str, repo: Optional[str] = None, per_page: int = 10) -> List[Dict[str, Any]]:
        q = f"{query} repo:{repo}" if repo else query
        data = self._get("/search/code", params={"q": q, "per_page": per_page})
        return [
            {
                "repository": (item.get("repository") or {}).get("full_name"),
                "path": item.get("path"),
                "url": item.get("html_url"),
            }
            for item in data.get("items", [])
        ]

    def get_issue(self, owner: str, repo: str, number: int) -> Dict[str, Any]:
        return self._get(f"/repos/{owner}/{repo}/issues/{number}")

    def get_pull_request(self, owner: str, repo: str, number: int) -> Dict[str, Any]:
        return self._get(f"/repos/{owner}/{repo}/pulls/{number}")

    def list_comments(self, owner: str, repo: str, number: int, per_page: int = 30) -> List[Dict[str, Any]]:
        data = self._get(f"/repos/{owner}/{repo}/issues/{number}/comments", params={"per_page": per_page})
        return [
            {
                "author": (c.get("user") or {}).get("login"),
                "created_at": c.get("created_at"),
                "body": c.get("body") or "",
            }
            for c in data
        ]


def _decode_content(data: Dict[str, Any]) -> str:
    if data.get("encoding") == "base64":
        return base64.b64decode(data.get("content", "")).decode("utf-8", errors="replace")
    return data.get("content") or ""


def create_github_client() -> GitHubClient:
    return GitHubClient()


# ---------------------------------------------------------------------------
# Handlers
# ---------------------------------------------------------------------------

def _split_repo(value: str):
    value = (value or "").strip()
    parsed = parse_github_url(value) if "github.com" in value else None
    if parsed:
        return parsed.owner, parsed.repo
    if not _REPO_RE.match(value):
        raise ValueError(f"Invalid repository '{value}'. Use owner/repo format.")
    owner, repo = value.split("/", 1)
    return owner, repo


def _handle_github_repo(args: dict, **kw) -> str:
    """Handler for github_repo tool."""
    try:
        owner, repo = _split_repo(args.get("repo", ""))
        client = create_github_client()
        meta = client.get_repository(owner, repo)
        readme = client.get_readme(owner, repo)
        listing = client.list_directory(owner, repo)
        result = {
            "full_name": meta.get("full_name"),
            "description": meta.get("description"),
            "default_branch": meta.get("default_branch"),
            "stars": meta.get("stargazers_count"),
            "language": meta.get("language"),
            "topics": meta.get("topics", []),
            "entries": listing,
            "readme": (readme or "")[:_MAX_README_CHARS],
        }
        return json.dumps({"result": result}, ensure_ascii=False)
    except Exception as e:
        logger.error("github_repo error: %s", e)
        return json.dumps({"error": f"Failed to load repository: {e}"})


def _handle_github_file(args: dict, **kw) -> str:
    """Handler for github_file tool. Directories are listed instead of read."""
    try:
        if args.get("url"):
            parsed = parse_github_url(args["url"])
            if parsed is None:
                return json.dumps({"error": f"Not a GitHub URL: {args['url']}"})
            owner, repo, path, ref = parsed.owner, parsed.repo, parsed.path or "", parsed.ref
        else:
            owner, repo = _split_repo(args.get("repo", ""))
            path, ref = args.get("path", ""), args.get("ref")

        client = create_github_client()
        try:
            content = client.get_file_content(owner, repo, path, ref=ref) if path else None
        except ValueError:
            content = None
        if content is None:
            return json.dumps({"result": {"path": path, "type": "dir", "entries": client.list_directory(owner, repo, path, ref=ref)}})

        truncated = len(content) > _MAX_FILE_CHARS
        return json.dumps(
            {"result": {"path": path, "type": "file", "content": content[:_MAX_FILE_CHARS], "truncated": truncated}},
            ensure_ascii=False,
        )
    except Exception as e:
        logger.error("github_file error: %s", e)
        return json.dumps({"error": f"Failed to read from GitHub: {e}"})


def _handle_github_search(args: dict, **kw) -> str:
    """Handler for github_search tool."""
    query = (args.get("query") or "").strip()
    if not query:
        return json.dumps({"error": "Missing required parameter: query"})
    try:
        repo = None
        if args.get("repo"):
            repo = "/".join(_split_repo(args["repo"]))
        per_page = max(1, min(int(args.get("limit", 10)), 50))
        items = create_github_client().search_code(query, repo=repo, per_page=per_page)
        return json.dumps({"result": {"count": len(items), "items": items}})
    except Exception as e:
        logger.error("github_search error: %s", e)
        return json.dumps({"error": f"GitHub search failed: {e}"})


def _handle_github_issue(args: dict, **kw) -> str:
    """Handler for github_issue tool. Works for issues and pull requests."""
    try:
        if args.get("url"):
            parsed = parse_github_url(args["url"])
            if parsed is None or parsed.number is None:
                return json.dumps({"error": f"Not a GitHub issue or pull request URL: {args['url']}"})
            owner, repo, number, is_pull = parsed.owner, parsed.repo, parsed.number, parsed.kind == "pull"
        else:
            owner, repo = _split_repo(args.get("repo", ""))
            number = int(args.get("number", 0))
            if number < 1:
                return json.dumps({"error": "Missing required parameter: number"})
            is_pull = False

        client = create_github_client()
        issue = client.get_issue(owner, repo, number)
        is_pull = is_pull or "pull_request" in issue
        result = {
            "number": number,
            "kind": "pull" if is_pull else "issue",
            "title": issue.get("title"),
            "state": issue.get("state"),
            "author": (issue.get("user") or {}).get("login"),
            "labels": [label.get("name") for label in issue.get("labels", [])],
            "body": issue.get("body") or "",
            "comments": client.list_comments(owner, repo, number),
        }
        if is_pull:
            pr = client.get_pull_request(owner, repo, number)
            result.update({
                "merged": pr.get("merged"),
                "base": (pr.get("base") or {}).get("ref"),
                "head": (pr.get("head") or {}).get("ref"),
                "changed_files": pr.get("changed_files"),
            })
        return json.dumps({"result": result}, ensure_ascii=False)
    except Exception as e:
        logger.error("github_issue error: %s", e)
        return json.dumps({"error": f"Failed to load issue: {e}"})


# ---------------------------------------------------------------------------
# Tool schemas
# ---------------------------------------------------------------------------

GITHUB_REPO_SCHEMA = {
    "name": "github_repo",
    "description": "Get a GitHub repository's metadata, README and top-level file listing.",
    "parameters": {
        "type": "object",
        "properties": {
            "repo": {"type": "string", "description": "Repository in owner/repo format, or its github.com URL"},
        },
        "required": ["repo"],
    },
}

GITHUB_FILE_SCHEMA = {
    "name": "github_file",
    "description": (
        "Read a file from a GitHub repository, or list a directory. Pass either a "
        "github.com blob/tree URL, or repo + path (+ optional ref)."
    ),
    "parameters": {
        "type": "object",
        "properties": {
            "url": {"type": "string", "description": "github.com blob or tree URL"},
            "repo": {"type": "string", "description": "Repository in owner/repo format"},
            "path": {"type": "string", "description": "File or directory path within the repository"},
            "ref": {"type": "string", "description": "Branch, tag or commit SHA (default: default branch)"},
        },
        "required": [],
    },
}

GITHUB_SEARCH_SCHEMA = {
    "name": "github_search",
    "description": "Search code on GitHub, optionally within a single repository.",
    "parameters": {
        "type": "object",
        "properties": {
            "query": {"type": "string", "description": "Code search query"},
            "repo": {"type": "string", "description": "Limit search to this owner/repo"},
            "limit": {"type": "integer", "description": "Maximum results (default: 10, max: 50)"},
        },
        "required": ["query"],
    },
}

GITHUB_ISSUE_SCHEMA = {
    "name": "github_issue",
    "description": "Fetch a GitHub issue or pull request with its comments.",
    "parameters": {
        "type": "object",
        "properties": {
            "url": {"type": "string", "description": "github.com issue or pull request URL"},
            "repo": {"type": "string", "description": "Repository in owner/repo format"},
            "number": {"type": "integer", "description": "Issue or pull request number"},
        },
        "required": [],
    },
}


# ---------------------------------------------------------------------------
# Registration
# ---------------------------------------------------------------------------

from tools.registry import registry

for _schema, _handler in (
    (GITHUB_REPO_SCHEMA, _handle_github_repo),
    (GITHUB_FILE_SCHEMA, _handle_github_file),
    (GITHUB_SEARCH_SCHEMA, _handle_github_search),
    (GITHUB_ISSUE_SCHEMA, _handle_github_issue),
):
    registry.register(
        name=_schema["name"],
        toolset="github",
        schema=_schema,
        handler=_handler,
    )
