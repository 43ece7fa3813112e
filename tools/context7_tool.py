"""Context7 library documentation tools.

Registers two LLM-callable tools:
- ``context7_search`` -- find a library and its Context7 ID by name
- ``context7_docs`` -- pull documentation snippets for a library ID

Authentication uses ``CONTEXT7_API_KEY`` as a bearer token.
Get a key at https://context7.com/dashboard.
"""

import json
import logging
import os
from typing import Any, Dict, List, Literal, Optional, Union

import requests
from pydantic import BaseModel, Field, ValidationError

from lantern_constants import CONTEXT7_API_KEY_ENV, CONTEXT7_BASE_URL

logger = logging.getLogger(__name__)

_REQUEST_TIMEOUT = 30


class Context7Error(Exception):
    """Raised for Context7 API failures, including pending and moved libraries."""


class Context7SearchArgs(BaseModel):
    library_name: str = Field(min_length=1)
    num_results: int = Field(default=3, ge=1, le=20)


class Context7DocsArgs(BaseModel):
    library_id: str = Field(min_length=1)
    query: str = Field(min_length=1)
    format: Literal["json", "txt"] = "json"


def _headers() -> Dict[str, str]:
    api_key = os.getenv(CONTEXT7_API_KEY_ENV)
    if not api_key:
        raise Context7Error(
            f"{CONTEXT7_API_KEY_ENV} environment variable is required. "
            "Get your API key at: https://context7.com/dashboard"
        )
    return {"Authorization": f"Bearer {api_key}", "Accept": "application/json"}


def _raise_for_status(response: requests.Response) -> None:
    if not response.ok:
        raise Context7Error(f"HTTP {response.status_code}: {response.reason}\n{response.text}")


# ---------------------------------------------------------------------------
# API calls
# ---------------------------------------------------------------------------

def search_libraries(library_name: str, num_results: int = 3) -> List[Dict[str, Any]]:
    """Search libraries by name. The name doubles as the relevance query."""
    response = requests.get(
        f"{CONTEXT7_BASE_URL}/libs/search",
        params={"libraryName": library_name, "query": library_name},
        headers=_headers(),
        timeout=_REQUEST_TIMEOUT,
    )
    _raise_for_status(response)
    data = response.json()
    results = data.get("results", data) if isinstance(data, dict) else data
    return results[:num_results] if isinstance(results, list) else []


def get_context(library_id: str, query: str, fmt: str = "json") -> Union[Dict[str, Any], str]:
    response = requests.get(
        f"{CONTEXT7_BASE_URL}/context",
        params={"libraryId": library_id, "query": query, "type": fmt},
        headers=_headers(),
        timeout=_REQUEST_TIMEOUT,
        allow_redirects=False,
    )
    if response.status_code == 202:
        raise Context7Error("Library is being processed. Please try again later.")
    if response.status_code == 301:
        try:
            redirect = response.json().get("redirectUrl")
        except ValueError:
            redirect = None
        raise Context7Error(f"Library has moved. New ID: {redirect or 'unknown'}")
    _raise_for_status(response)

    if fmt == "txt":
        return response.text
    return response.json()


# ---------------------------------------------------------------------------
# Formatting
# ---------------------------------------------------------------------------

def format_libraries(libraries: List[Dict[str, Any]]) -> str:
    if not libraries:
        return "No libraries found."

    blocks = []
    for i, lib in enumerate(libraries, start=1):
        lines = [f"--- Library {i} ---", f"ID: {lib.get('id', '')}", f"Name: {lib.get('title') or lib.get('name') or ''}"]
        if lib.get("description"):
            lines.append(f"Description: {lib['description']}")
        if lib.get("totalSnippets"):
            lines.append(f"Snippets: {lib['totalSnippets']}")
        if lib.get("trustScore"):
            lines.append(f"Trust Score: {lib['trustScore']}")
        if lib.get("benchmarkScore"):
            lines.append(f"Benchmark Score: {lib['benchmarkScore']}")
        if lib.get("versions"):
            lines.append(f"Versions: {', '.join(lib['versions'])}")
        blocks.append("\n".join(lines))
    return "\n\n".join(blocks)


def format_docs(data: Dict[str, Any]) -> str:
    code_snippets = data.get("codeSnippets") or []
    info_snippets = data.get("infoSnippets") or []
    if not code_snippets and not info_snippets:
        return "No documentation found."

    blocks = []
    for i, doc in enumerate(code_snippets, start=1):
        lines = [f"--- Code {i} ---"]
        if doc.get("codeTitle"):
            lines.append(f"Title: {doc['codeTitle']}")
        if doc.get("codeId"):
            lines.append(f"Source: {doc['codeId']}")
        if doc.get("codeDescription"):
            lines.append(f"Description: {doc['codeDescription']}")
        for code in doc.get("codeList") or []:
            lines.append(f"\n```{code.get('language') or ''}\n{code.get('code', '')}\n```")
        blocks.append("\n".join(lines))

    for i, doc in enumerate(info_snippets, start=1):
        lines = [f"--- Info {i} ---"]
        if doc.get("breadcrumb"):
            lines.append(f"Topic: {doc['breadcrumb']}")
        if doc.get("pageId"):
            lines.append(f"Source: {doc['pageId']}")
        if doc.get("content"):
            lines.append(f"Content:\n{doc['content']}")
        blocks.append("\n".join(lines))

    return "\n\n".join(blocks)


# ---------------------------------------------------------------------------
# Handlers
# ---------------------------------------------------------------------------

def _first_error(e: ValidationError) -> str:
    err = e.errors()[0]
    field = ".".join(str(p) for p in err.get("loc", ()))
    return f"Invalid arguments: {field}: {err['msg']}" if field else f"Invalid arguments: {err['msg']}"


def _handle_context7_search(args: dict, **kw) -> str:
    """Handler for context7_search tool."""
    try:
        params = Context7SearchArgs(**args)
    except ValidationError as e:
        return json.dumps({"error": _first_error(e)})
    try:
        libraries = search_libraries(params.library_name, params.num_results)
        return json.dumps({"result": format_libraries(libraries), "details": {"count": len(libraries)}})
    except Exception as e:
        logger.error("context7_search error: %s", e)
        return json.dumps({"error": str(e)})


def _handle_context7_docs(args: dict, **kw) -> str:
    """Handler for context7_docs tool."""
    try:
        params = Context7DocsArgs(**args)
    except ValidationError as e:
        return json.dumps({"error": _first_error(e)})
    try:
        data = get_context(params.library_id, params.query, params.format)
        if isinstance(data, str):
            text = data.strip() or "No documentation found."
        else:
            text = format_docs(data)
        return json.dumps({"result": text, "details": {"library_id": params.library_id, "format": params.format}})
    except Exception as e:
        logger.error("context7_docs error: %s", e)
        return json.dumps({"error": str(e)})


def _check_context7_available() -> bool:
    return bool(os.getenv(CONTEXT7_API_KEY_ENV))


# ---------------------------------------------------------------------------
# Tool schemas
# ---------------------------------------------------------------------------

CONTEXT7_SEARCH_SCHEMA = {
    "name": "context7_search",
    "description": (
        "Search Context7 for a library by name and get its library ID "
        "(e.g. '/facebook/react') for use with context7_docs."
    ),
    "parameters": {
        "type": "object",
        "properties": {
            "library_name": {"type": "string", "description": "Library name, e.g. 'react' or 'nextjs'"},
            "num_results": {
                "type": "integer",
                "description": "Number of results (default: 3, max: 20)",
                "minimum": 1,
                "maximum": 20,
            },
        },
        "required": ["library_name"],
    },
}

CONTEXT7_DOCS_SCHEMA = {
    "name": "context7_docs",
    "description": (
        "Retrieve up-to-date documentation and code examples for a library "
        "from Context7. Use context7_search first to find the library ID."
    ),
    "parameters": {
        "type": "object",
        "properties": {
            "library_id": {"type": "string", "description": "Library ID from search (e.g. '/facebook/react')"},
            "query": {"type": "string", "description": "Your question or task"},
            "format": {
                "type": "string",
                "enum": ["json", "txt"],
                "description": "json (default) returns formatted snippets; txt returns Context7's plain text",
            },
        },
        "required": ["library_id", "query"],
    },
}


# ---------------------------------------------------------------------------
# Registration
# ---------------------------------------------------------------------------

from tools.registry import registry

registry.register(
    name="context7_search",
    toolset="docs",
    schema=CONTEXT7_SEARCH_SCHEMA,
    handler=_handle_context7_search,
    check_fn=_check_context7_available,
)

registry.register(
    name="context7_docs",
    toolset="docs",
    schema=CONTEXT7_DOCS_SCHEMA,
    handler=_handle_context7_docs,
    check_fn=_check_context7_available,
)
