"""Run coroutine results of tool handlers from synchronous dispatch.

tools/registry.py and model_tools.py both import from here; this module
imports neither of them.
"""

import asyncio
import concurrent.futures
import inspect
import logging
from typing import Any

logger = logging.getLogger(__name__)

# Upper bound for a single async tool call driven from a sync caller.
ASYNC_TOOL_TIMEOUT = 300.0


def run_async(coro, timeout: float = ASYNC_TOOL_TIMEOUT):
    """Drive ``coro`` to completion and return its result.

    A caller already inside a running loop (a hook fired from an async host)
    gets a one-off worker thread with its own loop.
    """
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return asyncio.run(coro)

    logger.debug("Event loop already running; awaiting tool coroutine in a worker thread")
    with concurrent.futures.ThreadPoolExecutor(max_workers=1) as pool:
        return pool.submit(asyncio.run, coro).result(timeout=timeout)


def resolve(value: Any, timeout: float = ASYNC_TOOL_TIMEOUT) -> Any:
    """Return ``value``, first awaiting it when a handler handed back an awaitable."""
    if inspect.iscoroutine(value):
        return run_async(value, timeout=timeout)
    if inspect.isawaitable(value):
        async def _wait():
            return await value
        return run_async(_wait(), timeout=timeout)
    return value
