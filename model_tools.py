"""
Model Tools Module

Thin layer over the tool registry. Importing a tool module registers its
tools, so discovery is just importing the known modules once.

Public API:
    get_tool_definitions(toolsets)        -> OpenAI function-tool definitions
    get_available_toolsets()              -> toolset name -> tool names
    handle_function_call(name, args, **kw) -> JSON string result
"""

import importlib
import json
import logging
from typing import Any, Dict, Iterable, List, Optional

from tools.registry import registry

logger = logging.getLogger(__name__)

_TOOL_MODULES = (
    "tools.web_search_tool",
    "tools.web_fetch_tool",
    "tools.context7_tool",
    "tools.github_client",
    "tools.file_tools",
    "tools.git_tools",
    "tools.time_tool",
    "subagents",
)

_discovered = False


def _discover_tools() -> None:
    """Import every tool module so its ``registry.register`` calls run."""
    global _discovered
    for module_name in _TOOL_MODULES:
        try:
            importlib.import_module(module_name)
        except ImportError as e:
            logger.warning("Could not import tool module %s: %s", module_name, e)
    _discovered = True


def _ensure_discovered() -> None:
    if not _discovered:
        _discover_tools()


def get_available_toolsets() -> Dict[str, List[str]]:
    _ensure_discovered()
    toolsets: Dict[str, List[str]] = {}
    for name, toolset in sorted(registry.get_tool_to_toolset_map().items()):
        toolsets.setdefault(toolset, []).append(name)
    return toolsets


def get_tool_definitions(
    toolsets: Optional[Iterable[str]] = None,
    tool_names: Optional[Iterable[str]] = None,
) -> List[Dict[str, Any]]:
    """Definitions for the union of ``toolsets`` and explicit ``tool_names``.

    With neither given, every available tool is returned.
    """
    _ensure_discovered()
    if toolsets is None and tool_names is None:
        return registry.get_definitions(registry.get_all_tool_names())

    names = set(tool_names or ())
    for toolset in toolsets or ():
        names.update(registry.get_toolset_tools(toolset))
    return registry.get_definitions(names)


def handle_function_call(function_name: str, function_args: Any, **kwargs) -> str:
    """Dispatch a tool call coming back from a model.

    ``function_args`` may be the raw JSON string from the API response.
    """
    _ensure_discovered()
    if isinstance(function_args, str):
        try:
            function_args = json.loads(function_args) if function_args.strip() else {}
        except json.JSONDecodeError as e:
            return json.dumps({"error": f"Invalid JSON arguments for {function_name}: {e}"})
    if not isinstance(function_args, dict):
        return json.dumps({"error": f"Arguments for {function_name} must be a JSON object"})
    return registry.dispatch(function_name, function_args, **kwargs)
