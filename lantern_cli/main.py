"""Command-line entry point: ``lantern <command> ...``.

Commands:
    select-model  Pick a model for a tier from the configured providers
    search        Brave web search
    fetch         Fetch a URL as markdown, text or html
    docs          Context7 library search and documentation
    subagent      Run a subagent (oracle, reviewer, lookout, scout, jester)
    time          Current date and time
    name          Show, set or generate the name of a saved session
    check-config  Validate $LANTERN_HOME/config.yaml

Tool output goes to stdout. Failures print ``Error: ...`` to stderr and exit 1.
"""

import argparse
import json
import logging
import os
import sys
from pathlib import Path
from typing import List, Optional

from agent.config import (
    ConfigValidationError,
    get_config_path,
    get_extra_models,
    load_config,
    load_env,
    validate_config,
)
from agent.model_policy import NoModelsAvailable, ReasoningEffort, Tier, select_model
from agent.model_registry import available_models, parse_model_ref
from agent.session_title import generate_title
from gateway.hooks import run_name_command
from model_tools import handle_function_call

logger = logging.getLogger(__name__)


class CLIError(Exception):
    """Reported to the user as ``Error: <message>`` with exit code 1."""


def _run_tool(name: str, args: dict) -> str:
    """Dispatch a tool and return its text output, raising CLIError on failure."""
    raw = handle_function_call(name, args, cwd=os.getcwd())
    try:
        payload = json.loads(raw)
    except ValueError:
        return raw
    if not isinstance(payload, dict):
        return raw
    details = payload.get("details")
    error = payload.get("error") or (details.get("error") if isinstance(details, dict) else None)
    if error:
        raise CLIError(error)
    if "result" in payload:
        return payload["result"]
    if "response" in payload:
        return payload["response"]
    return raw


def _parse_kv(pairs: List[str]) -> dict:
    """``k=v`` strings to a dict. JSON values (lists, numbers) are decoded."""
    out = {}
    for pair in pairs or ():
        key, sep, value = pair.partition("=")
        if not sep or not key:
            raise CLIError(f"Invalid --arg {pair!r}, expected key=value")
        try:
            out[key] = json.loads(value)
        except ValueError:
            out[key] = value
    return out


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------

def cmd_select_model(args) -> None:
    if args.model:
        candidates = []
        for ref in args.model:
            candidate = parse_model_ref(ref)
            if candidate is None:
                raise CLIError(f"Invalid model reference {ref!r}, expected provider:id")
            candidates.append(candidate)
    else:
        candidates = available_models(extra_models=get_extra_models(load_config()))

    try:
        selection = select_model(Tier(args.tier), candidates, effort=args.effort)
    except NoModelsAvailable as e:
        raise CLIError(str(e))
    print(selection.model.ref)
    print(f"tier: {selection.tier.value}")
    print(f"reasoning_effort: {selection.reasoning_effort.value}")


def cmd_search(args) -> None:
    print(_run_tool("web_search", {"query": args.query, "num_results": args.num_results}))


def cmd_fetch(args) -> None:
    tool_args = {"url": args.url, "format": args.format}
    if args.timeout_ms is not None:
        tool_args["timeout_ms"] = args.timeout_ms
    print(_run_tool("web_fetch", tool_args))


def cmd_docs(args) -> None:
    if args.docs_command == "search":
        print(_run_tool("context7_search", {"library_name": args.name, "num_results": args.num_results}))
    else:
        print(_run_tool("context7_docs", {
            "library_id": args.library_id,
            "query": args.query,
            "format": args.format,
        }))


def cmd_time(args) -> None:
    tool_args = {"timezone": args.timezone} if args.timezone else {}
    print(_run_tool("get_current_time", tool_args))


def cmd_check_config(args) -> None:
    path = get_config_path()
    try:
        validate_config(load_config(path))
    except ConfigValidationError as e:
        raise CLIError(f"Invalid {path}: {e}")
    print(f"{path}: ok" if path.exists() else f"{path}: not found, using defaults")


def _read_session(path: Path) -> dict:
    try:
        session = json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError:
        raise CLIError(f"Session file not found: {path}")
    except (OSError, ValueError) as e:
        raise CLIError(f"Could not read session file {path}: {e}")
    if not isinstance(session, dict) or not isinstance(session.get("messages", []), list):
        raise CLIError(f"Session file {path} must be an object with a 'messages' list")
    return session


def cmd_name(args) -> None:
    path = Path(args.session)
    session = _read_session(path)

    def _set(title: str) -> None:
        session["name"] = title
        path.write_text(json.dumps(session, indent=2, ensure_ascii=False) + "\n", encoding="utf-8")

    message, level = run_name_command(
        " ".join(args.value),
        session.get("messages") or [],
        lambda: session.get("name"),
        _set,
        generate_title,
    )
    if level != "info":
        raise CLIError(message)
    print(message)


def cmd_subagent(args) -> None:
    print(_run_tool(args.name, _parse_kv(args.arg)))


# ---------------------------------------------------------------------------
# Parser
# ---------------------------------------------------------------------------

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="lantern",
        description="Model tier selection, web research tools and subagents",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    p_select = sub.add_parser("select-model", help="Pick the best model for a tier")
    p_select.add_argument("--tier", required=True, choices=[t.value for t in Tier])
    p_select.add_argument("--effort", choices=[e.value for e in ReasoningEffort],
                          help="Override the tier's default reasoning effort")
    p_select.add_argument("--model", action="append", metavar="PROVIDER:ID",
                          help="Candidate model (repeatable); defaults to configured providers")

    p_search = sub.add_parser("search", help="Search the web (Brave)")
    p_search.add_argument("query")
    p_search.add_argument("-n", "--num-results", type=int, default=10,
                          help="Number of results (1-20, default 10)")

    p_fetch = sub.add_parser("fetch", help="Fetch a URL")
    p_fetch.add_argument("url")
    p_fetch.add_argument("--format", default="markdown", choices=["markdown", "text", "html"])
    p_fetch.add_argument("--timeout-ms", type=int, default=None)

    p_docs = sub.add_parser("docs", help="Library documentation (Context7)")
    docs_sub = p_docs.add_subparsers(dest="docs_command", required=True)
    p_docs_search = docs_sub.add_parser("search", help="Find a library id")
    p_docs_search.add_argument("name")
    p_docs_search.add_argument("-n", "--num-results", type=int, default=3)
    p_docs_get = docs_sub.add_parser("get", help="Fetch documentation for a library id")
    p_docs_get.add_argument("library_id")
    p_docs_get.add_argument("query")
    p_docs_get.add_argument("--format", default="txt", choices=["json", "txt"])

    p_subagent = sub.add_parser("subagent", help="Run a subagent")
    p_subagent.add_argument("name", choices=["oracle", "reviewer", "lookout", "scout", "jester"])
    p_subagent.add_argument("--arg", action="append", default=[], metavar="KEY=VALUE",
                            help="Subagent argument (repeatable); JSON values are decoded")

    p_time = sub.add_parser("time", help="Current date and time")
    p_time.add_argument("--timezone", help="IANA timezone, e.g. Europe/Berlin")

    p_name = sub.add_parser("name", help="Show, set or generate a session name")
    p_name.add_argument("--session", required=True, metavar="FILE",
                        help="Session JSON file with 'messages' and optional 'name'")
    p_name.add_argument("value", nargs="*",
                        help="New name, or 'auto' to regenerate; omit to show or generate")

    sub.add_parser("check-config", help="Validate config.yaml")

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    load_env()

    dispatch = {
        "select-model": cmd_select_model,
        "search": cmd_search,
        "fetch": cmd_fetch,
        "docs": cmd_docs,
        "subagent": cmd_subagent,
        "time": cmd_time,
        "name": cmd_name,
        "check-config": cmd_check_config,
    }
    try:
        dispatch[args.command](args)
    except CLIError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        print("Error: interrupted", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
