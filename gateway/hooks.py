"""
Event Hook System

A lightweight event-driven system that fires handlers at key lifecycle points.
Hooks are discovered from $LANTERN_HOME/hooks/, each directory containing:
  - HOOK.yaml  (metadata: name, description, events list)
  - handler.py (Python handler with def handle(event_type, context), sync or async)

Handlers can also be registered in code with ``HookRegistry.register``.

Events:
  - session:start       -- New session created
  - agent:end           -- Agent finishes processing a message
  - command:*           -- Any slash command executed (wildcard match)
  - command:name        -- ``/name [text|auto]`` handled by SessionNameHook

Errors in hooks are caught and logged but never block the main pipeline.
"""

import asyncio
import importlib.util
import logging
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Set, Tuple

import yaml

from agent.session_title import generate_title, get_first_user_text
from lantern_constants import get_lantern_home

logger = logging.getLogger(__name__)

# Override for tests; None means $LANTERN_HOME/hooks resolved at load time.
HOOKS_DIR: Optional[Path] = None


def get_hooks_dir() -> Path:
    return HOOKS_DIR if HOOKS_DIR is not None else get_lantern_home() / "hooks"


class HookRegistry:
    """
    Discovers, loads, and fires event hooks.

    Usage:
        hooks = HookRegistry()
        hooks.discover_and_load()
        await hooks.emit("agent:end", {"session_id": "...", "messages": [...]})
    """

    def __init__(self):
        # event_type -> [handler_fn, ...]
        self._handlers: Dict[str, List[Callable]] = {}
        self._loaded_hooks: List[dict] = []  # metadata for listing

    @property
    def loaded_hooks(self) -> List[dict]:
        """Return metadata about all loaded hooks."""
        return list(self._loaded_hooks)

    def register(self, event_type: str, handler: Callable) -> None:
        """Attach ``handler(event_type, context)`` to an event (or ``base:*`` wildcard)."""
        self._handlers.setdefault(event_type, []).append(handler)

    def discover_and_load(self) -> None:
        """
        Scan the hooks directory for hook directories and load their handlers.

        Each hook directory must contain:
          - HOOK.yaml with at least 'name' and 'events' keys
          - handler.py with a top-level 'handle' function (sync or async)
        """
        hooks_dir = get_hooks_dir()
        if not hooks_dir.exists():
            return

        for hook_dir in sorted(hooks_dir.iterdir()):
            if not hook_dir.is_dir():
                continue

            manifest_path = hook_dir / "HOOK.yaml"
            handler_path = hook_dir / "handler.py"

            if not manifest_path.exists() or not handler_path.exists():
                continue

            try:
                manifest = yaml.safe_load(manifest_path.read_text(encoding="utf-8"))
                if not manifest or not isinstance(manifest, dict):
                    logger.warning("Skipping hook %s: invalid HOOK.yaml", hook_dir.name)
                    continue

                hook_name = manifest.get("name", hook_dir.name)
                events = manifest.get("events", [])
                if not events:
                    logger.warning("Skipping hook %s: no events declared", hook_name)
                    continue

                spec = importlib.util.spec_from_file_location(f"lantern_hook_{hook_name}", handler_path)
                if spec is None or spec.loader is None:
                    logger.warning("Skipping hook %s: could not load handler.py", hook_name)
                    continue

                module = importlib.util.module_from_spec(spec)
                spec.loader.exec_module(module)

                handle_fn = getattr(module, "handle", None)
                if handle_fn is None:
                    logger.warning("Skipping hook %s: no 'handle' function found", hook_name)
                    continue

                for event in events:
                    self.register(event, handle_fn)

                self._loaded_hooks.append(
                    {
                        "name": hook_name,
                        "description": manifest.get("description", ""),
                        "events": events,
                        "path": str(hook_dir),
                    }
                )
                logger.info("Loaded hook '%s' for events: %s", hook_name, events)

            except Exception as e:
                logger.error("Error loading hook %s: %s", hook_dir.name, e)

    async def emit(self, event_type: str, context: Optional[Dict[str, Any]] = None) -> None:
        """
        Fire all handlers registered for an event.

        Supports wildcard matching: handlers registered for "command:*" will
        fire for any "command:..." event. Handlers registered for a base type
        like "agent" won't fire for "agent:end" -- only exact matches and
        explicit wildcards.

        Args:
            event_type: The event identifier (e.g. "agent:end").
            context:    Optional dict with event-specific data.
        """
        if context is None:
            context = {}

        handlers = list(self._handlers.get(event_type, []))

        if ":" in event_type:
            base = event_type.split(":")[0]
            wildcard_key = f"{base}:*"
            if wildcard_key != event_type:
                handlers.extend(self._handlers.get(wildcard_key, []))

        for fn in handlers:
            try:
                result = fn(event_type, context)
                if asyncio.iscoroutine(result):
                    await result
            except Exception as e:
                logger.error("Error in hook handler for '%s': %s", event_type, e)


# ---------------------------------------------------------------------------
# Session naming
# ---------------------------------------------------------------------------

NAME_COMMAND = "name"


def run_name_command(
    args: str,
    messages: List[Dict[str, Any]],
    get_name: Callable[[], Optional[str]],
    set_name: Callable[[str], None],
    title_fn: Callable[[str], Optional[str]] = generate_title,
) -> Tuple[str, str]:
    """Handle ``/name [text|auto]`` and return ``(message, level)``.

    ``/name text`` sets the name, ``/name auto`` regenerates it from the first
    user message, and a bare ``/name`` shows the current name or generates
    one when the session has none. Levels are ``info``, ``warning``, ``error``.
    """
    value = (args or "").strip()

    if value and value != "auto":
        set_name(value)
        return f"Session: {value}", "info"

    if not value:
        current = get_name()
        if current:
            return f"Session: {current} (use /{NAME_COMMAND} <text> to change)", "info"

    text = get_first_user_text(messages)
    if not text or not text.strip():
        return "No user message to generate title from", "warning"

    try:
        title = title_fn(text)
    except Exception as e:
        logger.warning("Title generation error: %s", e)
        title = None
    if not title:
        return "Failed to generate title", "error"
    set_name(title)
    return f"Session: {title}", "info"


class SessionNameHook:
    """Names sessions automatically and serves the ``/name`` command.

    Context keys read:
        session:start -- ``session_id``
        agent:end     -- ``session_id``, ``messages`` (OpenAI-style message list)
        command:name  -- ``session_id``, ``args``, ``messages``, optional
                         ``notify(message, level)`` callback

    Args:
        set_name: ``set_name(session_id, title)`` stores the generated title.
        get_name: Optional ``get_name(session_id)``; a session that already has
            a name is never renamed automatically.
        title_fn: Title generator, ``title_fn(text) -> Optional[str]``.
    """

    EVENTS = ("session:start", "agent:end", f"command:{NAME_COMMAND}")

    def __init__(
        self,
        set_name: Callable[[Optional[str], str], None],
        get_name: Optional[Callable[[Optional[str]], Optional[str]]] = None,
        title_fn: Callable[[str], Optional[str]] = generate_title,
    ):
        self._set_name = set_name
        self._get_name = get_name
        self._title_fn = title_fn
        self._named: Set[Optional[str]] = set()

    def install(self, hooks: HookRegistry) -> None:
        for event in self.EVENTS:
            hooks.register(event, self.handle)

    async def handle(self, event_type: str, context: Dict[str, Any]) -> None:
        session_id = context.get("session_id")

        if event_type == "session:start":
            self._named.discard(session_id)
            return
        if event_type == f"command:{NAME_COMMAND}":
            await self._handle_command(session_id, context)
            return
        if event_type != "agent:end" or session_id in self._named:
            return

        if self._get_name is not None and self._get_name(session_id):
            self._named.add(session_id)
            return

        text = get_first_user_text(context.get("messages") or [])
        if not text or not text.strip():
            return

        try:
            title = await asyncio.to_thread(self._title_fn, text)
        except Exception as e:
            logger.warning("Title generation error: %s", e)
            title = None

        if title:
            self._set_name(session_id, title)
            logger.info("Session: %s", title)
        else:
            logger.warning("Failed to generate session title")
        self._named.add(session_id)

    async def _handle_command(self, session_id: Optional[str], context: Dict[str, Any]) -> None:
        def _set(title: str) -> None:
            self._set_name(session_id, title)
            self._named.add(session_id)

        def _get() -> Optional[str]:
            return self._get_name(session_id) if self._get_name is not None else None

        message, level = await asyncio.to_thread(
            run_name_command,
            context.get("args") or "",
            context.get("messages") or [],
            _get,
            _set,
            self._title_fn,
        )
        notify = context.get("notify")
        if callable(notify):
            notify(message, level)
        else:
            logger.log(logging.WARNING if level != "info" else logging.INFO, "%s", message)
