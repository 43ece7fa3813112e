"""
git_tools.py -- read-only git access for the reviewer subagent

Tools:
  git_diff -- unified diff of the working tree, the index, or between refs

Commands are built as argument lists and never go through a shell. Refs and
paths are validated so model-supplied values cannot smuggle in extra flags.
"""

import json
import logging
import os
import re
import subprocess
from typing import List, Optional, Tuple

logger = logging.getLogger(__name__)

MAX_DIFF_CHARS = 200_000

_REF_RE = re.compile(r"^[A-Za-z0-9_./~^@{}:-]+$")


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

def _run(cmd: List[str], cwd: Optional[str] = None) -> Tuple[str, str, int]:
    """Run a git command and return (stdout, stderr, returncode)."""
    try:
        result = subprocess.run(
            cmd,
            cwd=cwd,
            capture_output=True,
            text=True,
            timeout=30,
        )
        return result.stdout, result.stderr.strip(), result.returncode
    except subprocess.TimeoutExpired:
        return "", "Command timed out after 30 seconds", 1
    except FileNotFoundError:
        return "", "git not found, please install git", 1


def _find_repo(path: str) -> Optional[str]:
    """Walk up from path to find the .git directory."""
    path = os.path.abspath(path)
    while True:
        if os.path.exists(os.path.join(path, ".git")):
            return path
        parent = os.path.dirname(path)
        if parent == path:
            return None
        path = parent


def validate_ref(ref: str) -> str:
    if not ref or ref.startswith("-") or not _REF_RE.match(ref):
        raise ValueError(f"Invalid git ref: {ref!r}")
    return ref


def validate_path(path: str) -> str:
    if not path or path.startswith("-") or "\x00" in path:
        raise ValueError(f"Invalid path: {path!r}")
    return path


def build_diff_command(
    base: Optional[str] = None,
    target: Optional[str] = None,
    staged: bool = False,
    paths: Optional[List[str]] = None,
    stat: bool = False,
    context_lines: int = 3,
) -> List[str]:
    """Assemble the ``git diff`` argument list after validating every value."""
    if target and not base:
        raise ValueError("'target' requires 'base'")
    if staged and target:
        raise ValueError("'staged' cannot be combined with 'target'")

    cmd = ["git", "--no-pager", "diff", "--no-color", "--no-ext-diff", f"-U{max(0, min(int(context_lines), 50))}"]
    if stat:
        cmd.append("--stat")
    if staged:
        cmd.append("--cached")
    if base:
        cmd.append(validate_ref(base))
    if target:
        cmd.append(validate_ref(target))
    if paths:
        cmd.append("--")
        cmd.extend(validate_path(p) for p in paths)
    return cmd


def git_diff(
    repo_path: Optional[str] = None,
    base: Optional[str] = None,
    target: Optional[str] = None,
    staged: bool = False,
    paths: Optional[List[str]] = None,
    stat: bool = False,
    context_lines: int = 3,
) -> dict:
    repo = _find_repo(repo_path or os.getcwd())
    if not repo:
        raise FileNotFoundError(f"No git repository found at or above: {repo_path or os.getcwd()}")

    cmd = build_diff_command(base, target, staged, paths, stat, context_lines)
    stdout, stderr, code = _run(cmd, cwd=repo)
    if code != 0:
        raise RuntimeError(stderr or f"git diff exited with status {code}")

    truncated = len(stdout) > MAX_DIFF_CHARS
    return {
        "repo": repo,
        "command": " ".join(cmd[1:]),
        "diff": stdout[:MAX_DIFF_CHARS],
        "empty": not stdout.strip(),
        "truncated": truncated,
    }


def _handle_git_diff(args: dict, **kw) -> str:
    """Handler for git_diff tool."""
    paths = args.get("paths")
    if isinstance(paths, str):
        paths = [paths]
    try:
        result = git_diff(
            repo_path=args.get("repo_path") or kw.get("cwd"),
            base=args.get("base"),
            target=args.get("target"),
            staged=bool(args.get("staged", False)),
            paths=paths,
            stat=bool(args.get("stat", False)),
            context_lines=args.get("context_lines", 3),
        )
        return json.dumps({"result": result}, ensure_ascii=False)
    except Exception as e:
        logger.error("git_diff error: %s", e)
        return json.dumps({"error": str(e)})


GIT_DIFF_SCHEMA = {
    "name": "git_diff",
    "description": (
        "Show a unified git diff. With no refs: unstaged working-tree changes. "
        "staged=true: staged changes. base only: changes since base. base+target: "
        "between two refs (use 'main...HEAD' style in base for merge-base diffs)."
    ),
    "parameters": {
        "type": "object",
        "properties": {
            "base": {"type": "string", "description": "Base ref (branch, tag, SHA, or A...B range)"},
            "target": {"type": "string", "description": "Target ref; requires base"},
            "staged": {"type": "boolean", "description": "Diff the index instead of the working tree"},
            "paths": {"type": "array", "items": {"type": "string"}, "description": "Limit to these paths"},
            "stat": {"type": "boolean", "description": "Only show a diffstat summary"},
            "context_lines": {"type": "integer", "description": "Lines of context (default: 3)"},
        },
        "required": [],
    },
}


from tools.registry import registry

registry.register(name="git_diff", toolset="git", schema=GIT_DIFF_SCHEMA, handler=_handle_git_diff)
