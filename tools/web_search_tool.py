"""Web search tool backed by the Brave Search API.

Registers one LLM-callable tool:
- ``web_search`` -- search the web, results rendered as markdown

Authentication uses ``BRAVE_API_KEY`` (sent as ``X-Subscription-Token``).
Docs: https://api.search.brave.com/app/documentation/web-search
"""

import json
import logging
import os
import re
import time
from typing import Any, Dict, List, Optional

import requests
from pydantic import BaseModel, Field, ValidationError, field_validator

from lantern_constants import BRAVE_API_KEY_ENV, BRAVE_SEARCH_URL, TOOL_USER_AGENT

logger = logging.getLogger(__name__)

_FRESHNESS_RE = re.compile(r"^(pd|pw|pm|py|\d{4}-\d{2}-\d{2}to\d{4}-\d{2}-\d{2})$")

_REQUEST_TIMEOUT = 30


class WebSearchError(Exception):
    """Raised when the Brave API rejects a request or cannot be reached."""


class WebSearchArgs(BaseModel):
    query: str = Field(min_length=1)
    num_results: int = Field(default=10, ge=1, le=20)
    country: Optional[str] = Field(default=None, min_length=2, max_length=2)
    freshness: Optional[str] = None

    @field_validator("freshness")
    @classmethod
    def _check_freshness(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and not _FRESHNESS_RE.match(value):
            raise ValueError("must be pd, pw, pm, py or YYYY-MM-DDtoYYYY-MM-DD")
        return value


def _require_api_key() -> str:
    key = os.getenv(BRAVE_API_KEY_ENV)
    if not key:
        raise WebSearchError(f"{BRAVE_API_KEY_ENV} environment variable is not set")
    return key


def brave_web_search(params: WebSearchArgs, session: Optional[requests.Session] = None) -> Dict[str, Any]:
    """Call the Brave web search endpoint and return the decoded JSON body."""
    api_key = _require_api_key()
    query: Dict[str, Any] = {"q": params.query, "count": params.num_results}
    if params.country:
        query["country"] = params.country
    if params.freshness:
        query["freshness"] = params.freshness

    http = session or requests
    response = http.get(
        BRAVE_SEARCH_URL,
        params=query,
        headers={
            "Accept": "application/json",
            "X-Subscription-Token": api_key,
            "User-Agent": TOOL_USER_AGENT,
        },
        timeout=_REQUEST_TIMEOUT,
    )
    if not response.ok:
        body = response.text or response.reason
        raise WebSearchError(f"Brave Search API error ({response.status_code}): {body}")
    return response.json()


def format_results_markdown(query: str, results: List[Dict[str, Any]]) -> str:
    if not results:
        return "No results found."

    lines = ["# Search Results", f"Query: {query}", ""]
    for i, r in enumerate(results, start=1):
        title = (r.get("title") or "Untitled").strip()
        url = r.get("url") or ""
        description = (r.get("description") or "").strip()

        lines.append(f"## {i}. {title}")
        if url:
            lines.append(f"**URL:** {url}")
        if r.get("age"):
            lines.append(f"**Age:** {r['age']}")
        if description:
            lines.append(f"\n{description}")
        lines.append("\n---\n")

    return "\n".join(lines).strip()


def _handle_web_search(args: dict, **kw) -> str:
    """Handler for web_search tool."""
    start = time.monotonic()
    query = args.get("query", "")
    details: Dict[str, Any] = {"query": query, "result_count": 0, "provider": "brave"}

    try:
        params = WebSearchArgs(**args)
    except ValidationError as e:
        details["duration_ms"] = 0
        return json.dumps({"error": f"Invalid arguments: {e.errors()[0]['msg']}", "details": details})

    try:
        data = brave_web_search(params)
        results = (data.get("web") or {}).get("results") or []
        details["result_count"] = len(results)
        details["duration_ms"] = int((time.monotonic() - start) * 1000)
        return json.dumps({"result": format_results_markdown(params.query, results), "details": details})
    except Exception as e:
        logger.error("web_search error: %s", e)
        details["duration_ms"] = int((time.monotonic() - start) * 1000)
        details["error"] = str(e)
        return json.dumps({"error": str(e), "details": details})


# ---------------------------------------------------------------------------
# Availability check
# ---------------------------------------------------------------------------

def _check_brave_available() -> bool:
    return bool(os.getenv(BRAVE_API_KEY_ENV))


# ---------------------------------------------------------------------------
# Tool schema
# ---------------------------------------------------------------------------

WEB_SEARCH_SCHEMA = {
    "name": "web_search",
    "description": (
        "Search the web for information via Brave Search API. "
        "Returns a list of results (title, URL, snippet)."
    ),
    "parameters": {
        "type": "object",
        "properties": {
            "query": {"type": "string", "description": "The search query"},
            "num_results": {
                "type": "integer",
                "description": "Number of results to return (default: 10, max: 20)",
                "minimum": 1,
                "maximum": 20,
            },
            "country": {
                "type": "string",
                "description": "Two-letter country code for results (e.g. US, DE)",
            },
            "freshness": {
                "type": "string",
                "description": "Time filter: pd (day), pw (week), pm (month), py (year), or YYYY-MM-DDtoYYYY-MM-DD",
            },
        },
        "required": ["query"],
    },
}


# ---------------------------------------------------------------------------
# Registration
# ---------------------------------------------------------------------------

from tools.registry import registry

registry.register(
    name="web_search",
    toolset="web",
    schema=WEB_SEARCH_SCHEMA,
    handler=_handle_web_search,
    check_fn=_check_brave_available,
)
