"""Read-only local file tools used by the lookout and reviewer subagents.

Registers four LLM-callable tools in the ``files`` toolset:
- ``read_file`` -- read a text file with line numbers (offset/limit)
- ``ls`` -- list a directory
- ``grep`` -- regex search over files under a path
- ``find_files`` -- find files by glob pattern

Relative paths resolve against the ``cwd`` keyword the dispatcher passes in
(falling back to the process working directory). Nothing here writes.
"""

import fnmatch
import json
import logging
import os
import re
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional

logger = logging.getLogger(__name__)

DEFAULT_READ_LIMIT = 2000
MAX_LINE_CHARS = 2000
MAX_GREP_MATCHES = 200
MAX_FIND_RESULTS = 500
MAX_LS_ENTRIES = 1000

_SKIP_DIRS = frozenset({
    ".git", ".hg", ".svn", "node_modules", "__pycache__", ".venv", "venv",
    ".mypy_cache", ".pytest_cache", ".tox", "dist", "build",
})


def _resolve(path: Optional[str], cwd: Optional[str] = None) -> Path:
    base = Path(cwd or os.getcwd())
    p = Path(os.path.expanduser(path or "."))
    return p if p.is_absolute() else (base / p)


def _is_binary(path: Path) -> bool:
    try:
        with open(path, "rb") as f:
            return b"\x00" in f.read(8192)
    except OSError:
        return False


def _walk_files(root: Path) -> Iterator[Path]:
    if root.is_file():
        yield root
        return
    for dirpath, dirnames, filenames in os.walk(root):
        dirnames[:] = sorted(d for d in dirnames if d not in _SKIP_DIRS)
        for name in sorted(filenames):
            yield Path(dirpath) / name


# ---------------------------------------------------------------------------
# Operations
# ---------------------------------------------------------------------------

def list_directory(path: Optional[str] = None, cwd: Optional[str] = None) -> Dict[str, Any]:
    target = _resolve(path, cwd)
    if not target.exists():
        raise FileNotFoundError(f"Path not found: {path or '.'}")
    if not target.is_dir():
        raise NotADirectoryError(f"Not a directory: {path}")

    entries = []
    for child in sorted(target.iterdir(), key=lambda p: (not p.is_dir(), p.name.lower())):
        entries.append(child.name + "/" if child.is_dir() else child.name)
    truncated = len(entries) > MAX_LS_ENTRIES
    return {"path": str(target), "entries": entries[:MAX_LS_ENTRIES], "truncated": truncated}


def read_file(path: str, offset: int = 1, limit: int = DEFAULT_READ_LIMIT,
              cwd: Optional[str] = None) -> Dict[str, Any]:
    """Read ``limit`` lines starting at 1-based line ``offset``.

    A directory path is listed instead of failing, since models routinely
    ask to "read" a folder.
    """
    target = _resolve(path, cwd)
    if target.is_dir():
        listing = list_directory(path, cwd)
        listing["type"] = "directory"
        return listing
    if not target.exists():
        raise FileNotFoundError(f"File not found: {path}")
    if _is_binary(target):
        raise ValueError(f"Refusing to read binary file: {path}")

    offset = max(1, int(offset or 1))
    limit = max(1, int(limit or DEFAULT_READ_LIMIT))
    with open(target, "r", encoding="utf-8", errors="replace") as f:
        lines = f.read().splitlines()

    selected = lines[offset - 1: offset - 1 + limit]
    numbered = []
    for i, line in enumerate(selected, start=offset):
        if len(line) > MAX_LINE_CHARS:
            line = line[:MAX_LINE_CHARS] + "..."
        numbered.append(f"{i:>6}\t{line}")
    return {
        "path": str(target),
        "type": "file",
        "content": "\n".join(numbered),
        "total_lines": len(lines),
        "start_line": offset,
        "end_line": offset + len(selected) - 1,
        "truncated": offset - 1 + limit < len(lines),
    }


def grep(pattern: str, path: Optional[str] = None, glob: Optional[str] = None,
         ignore_case: bool = False, max_matches: int = MAX_GREP_MATCHES,
         cwd: Optional[str] = None) -> Dict[str, Any]:
    flags = re.IGNORECASE if ignore_case else 0
    regex = re.compile(pattern, flags)
    root = _resolve(path, cwd)
    if not root.exists():
        raise FileNotFoundError(f"Path not found: {path or '.'}")

    cap = max(1, min(int(max_matches), MAX_GREP_MATCHES))
    matches: List[Dict[str, Any]] = []
    truncated = False
    for file_path in _walk_files(root):
        if glob and not fnmatch.fnmatch(file_path.name, glob):
            continue
        if _is_binary(file_path):
            continue
        try:
            with open(file_path, "r", encoding="utf-8", errors="replace") as f:
                for lineno, line in enumerate(f, start=1):
                    if regex.search(line):
                        if len(matches) >= cap:
                            truncated = True
                            break
                        matches.append({
                            "file": str(file_path.relative_to(root)) if root.is_dir() else file_path.name,
                            "line": lineno,
                            "text": line.rstrip("\n")[:MAX_LINE_CHARS],
                        })
        except OSError as e:
            logger.debug("grep skipped %s: %s", file_path, e)
        if truncated:
            break
    return {"pattern": pattern, "path": str(root), "matches": matches, "truncated": truncated}


def find_files(pattern: str, path: Optional[str] = None, cwd: Optional[str] = None) -> Dict[str, Any]:
    """Glob by file name (``*.py``) or by relative path (``src/**/*.ts``)."""
    root = _resolve(path, cwd)
    if not root.is_dir():
        raise NotADirectoryError(f"Not a directory: {path or '.'}")

    results: List[str] = []
    truncated = False
    for file_path in _walk_files(root):
        rel = file_path.relative_to(root).as_posix()
        if fnmatch.fnmatch(file_path.name, pattern) or fnmatch.fnmatch(rel, pattern):
            if len(results) >= MAX_FIND_RESULTS:
                truncated = True
                break
            results.append(rel)
    return {"pattern": pattern, "path": str(root), "files": results, "truncated": truncated}


# ---------------------------------------------------------------------------
# Handlers
# ---------------------------------------------------------------------------

def _handle_read_file(args: dict, **kw) -> str:
    """Handler for read_file tool."""
    path = args.get("path", "")
    if not path:
        return json.dumps({"error": "Missing required parameter: path"})
    try:
        result = read_file(path, offset=args.get("offset", 1), limit=args.get("limit", DEFAULT_READ_LIMIT),
                           cwd=kw.get("cwd"))
        return json.dumps({"result": result}, ensure_ascii=False)
    except Exception as e:
        logger.error("read_file error: %s", e)
        return json.dumps({"error": str(e)})


def _handle_ls(args: dict, **kw) -> str:
    """Handler for ls tool."""
    try:
        return json.dumps({"result": list_directory(args.get("path"), cwd=kw.get("cwd"))}, ensure_ascii=False)
    except Exception as e:
        logger.error("ls error: %s", e)
        return json.dumps({"error": str(e)})


def _handle_grep(args: dict, **kw) -> str:
    """Handler for grep tool."""
    pattern = args.get("pattern", "")
    if not pattern:
        return json.dumps({"error": "Missing required parameter: pattern"})
    try:
        result = grep(
            pattern,
            path=args.get("path"),
            glob=args.get("glob"),
            ignore_case=bool(args.get("ignore_case", False)),
            max_matches=args.get("max_matches", MAX_GREP_MATCHES),
            cwd=kw.get("cwd"),
        )
        return json.dumps({"result": result}, ensure_ascii=False)
    except re.error as e:
        return json.dumps({"error": f"Invalid regex: {e}"})
    except Exception as e:
        logger.error("grep error: %s", e)
        return json.dumps({"error": str(e)})


def _handle_find_files(args: dict, **kw) -> str:
    """Handler for find_files tool."""
    pattern = args.get("pattern", "")
    if not pattern:
        return json.dumps({"error": "Missing required parameter: pattern"})
    try:
        return json.dumps({"result": find_files(pattern, args.get("path"), cwd=kw.get("cwd"))}, ensure_ascii=False)
    except Exception as e:
        logger.error("find_files error: %s", e)
        return json.dumps({"error": str(e)})


# ---------------------------------------------------------------------------
# Tool schemas
# ---------------------------------------------------------------------------

READ_FILE_SCHEMA = {
    "name": "read_file",
    "description": (
        "Read a text file with line numbers. Use offset/limit for large files. "
        "Passing a directory lists it instead."
    ),
    "parameters": {
        "type": "object",
        "properties": {
            "path": {"type": "string", "description": "File path (relative to the working directory or absolute)"},
            "offset": {"type": "integer", "description": "1-based line to start from (default: 1)"},
            "limit": {"type": "integer", "description": f"Maximum lines to read (default: {DEFAULT_READ_LIMIT})"},
        },
        "required": ["path"],
    },
}

LS_SCHEMA = {
    "name": "ls",
    "description": "List the entries of a directory. Directories are suffixed with '/'.",
    "parameters": {
        "type": "object",
        "properties": {
            "path": {"type": "string", "description": "Directory to list (default: working directory)"},
        },
        "required": [],
    },
}

GREP_SCHEMA = {
    "name": "grep",
    "description": (
        "Search file contents with a regular expression. Skips VCS, virtualenv and "
        "build directories and binary files."
    ),
    "parameters": {
        "type": "object",
        "properties": {
            "pattern": {"type": "string", "description": "Python regular expression"},
            "path": {"type": "string", "description": "File or directory to search (default: working directory)"},
            "glob": {"type": "string", "description": "Only search files whose name matches, e.g. '*.py'"},
            "ignore_case": {"type": "boolean", "description": "Case-insensitive match"},
            "max_matches": {"type": "integer", "description": f"Maximum matches (default/max: {MAX_GREP_MATCHES})"},
        },
        "required": ["pattern"],
    },
}

FIND_FILES_SCHEMA = {
    "name": "find_files",
    "description": "Find files by glob pattern, matched against the file name or the relative path.",
    "parameters": {
        "type": "object",
        "properties": {
            "pattern": {"type": "string", "description": "Glob such as '*.ts' or 'src/**/test_*.py'"},
            "path": {"type": "string", "description": "Directory to search (default: working directory)"},
        },
        "required": ["pattern"],
    },
}


# ---------------------------------------------------------------------------
# Registration
# ---------------------------------------------------------------------------

from tools.registry import registry

registry.register(name="read_file", toolset="files", schema=READ_FILE_SCHEMA, handler=_handle_read_file)
registry.register(name="ls", toolset="files", schema=LS_SCHEMA, handler=_handle_ls)
registry.register(name="grep", toolset="files", schema=GREP_SCHEMA, handler=_handle_grep)
registry.register(name="find_files", toolset="files", schema=FIND_FILES_SCHEMA, handler=_handle_find_files)
