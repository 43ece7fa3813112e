"""Central tool registry.

Every tool module registers its schema and handler at import time::

    from tools.registry import registry

    registry.register(
        name="web_search",
        toolset="web",
        schema=WEB_SEARCH_SCHEMA,
        handler=_handle_web_search,
        check_fn=_check_brave_available,
    )

Handlers take ``(args: dict, **kw)`` and return a JSON string. ``dispatch``
guarantees a JSON string back even when the tool is unknown or the handler
raises, so callers can feed the result straight into a tool message.
"""

import json
import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, List, Optional

from agent.async_bridge import resolve

logger = logging.getLogger(__name__)


@dataclass
class ToolEntry:
    name: str
    toolset: str
    schema: Dict[str, Any]
    handler: Callable[..., Any]
    check_fn: Optional[Callable[[], bool]] = None

    def is_available(self) -> bool:
        if self.check_fn is None:
            return True
        try:
            return bool(self.check_fn())
        except Exception as e:
            logger.warning("Availability check for %s failed: %s", self.name, e)
            return False


class ToolRegistry:
    """Name -> ToolEntry map with OpenAI function-tool export and dispatch."""

    def __init__(self):
        self._tools: Dict[str, ToolEntry] = {}

    def register(
        self,
        name: str,
        toolset: str,
        schema: Dict[str, Any],
        handler: Callable[..., Any],
        check_fn: Optional[Callable[[], bool]] = None,
    ) -> None:
        if name in self._tools and self._tools[name].handler is not handler:
            logger.debug("Tool %s re-registered (toolset %s)", name, toolset)
        self._tools[name] = ToolEntry(
            name=name,
            toolset=toolset,
            schema=schema,
            handler=handler,
            check_fn=check_fn,
        )

    def get_entry(self, name: str) -> Optional[ToolEntry]:
        return self._tools.get(name)

    def get_definitions(self, tool_names: Iterable[str]) -> List[Dict[str, Any]]:
        """OpenAI-format tool definitions for the requested names that are available."""
        definitions = []
        for name in sorted(set(tool_names)):
            entry = self._tools.get(name)
            if entry is None or not entry.is_available():
                continue
            definitions.append({"type": "function", "function": entry.schema})
        return definitions

    def dispatch(self, name: str, args: Dict[str, Any], **kwargs) -> str:
        entry = self._tools.get(name)
        if entry is None:
            return json.dumps({"error": f"Unknown tool: {name}"})
        try:
            result = entry.handler(args or {}, **kwargs)
            result = resolve(result)
        except Exception as e:
            logger.error("Tool %s failed: %s", name, e, exc_info=True)
            return json.dumps({"error": f"Tool '{name}' failed: {type(e).__name__}: {e}"})
        if not isinstance(result, str):
            result = json.dumps(result, ensure_ascii=False, default=str)
        return result

    def get_all_tool_names(self) -> List[str]:
        return sorted(self._tools)

    def get_tool_to_toolset_map(self) -> Dict[str, str]:
        return {name: entry.toolset for name, entry in self._tools.items()}

    def get_toolset_tools(self, toolset: str) -> List[str]:
        return sorted(name for name, entry in self._tools.items() if entry.toolset == toolset)


registry = ToolRegistry()
