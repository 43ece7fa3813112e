"""Web fetch tool.

Registers one LLM-callable tool:
- ``web_fetch`` -- fetch a URL and return raw HTML, plain text, or a
  markdown-ish main-article extraction

JavaScript is never rendered. The ``render_js`` argument is accepted for
compatibility and ignored.
"""

import json
import logging
import re
import time
from typing import Any, Dict, Literal, Optional

import requests
from bs4 import BeautifulSoup
from pydantic import BaseModel, Field, ValidationError

from agent.config import MAX_FETCH_TIMEOUT_MS, get_fetch_timeout_ms
from lantern_constants import BROWSER_USER_AGENT

logger = logging.getLogger(__name__)

_ACCEPT = "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8"

_SKIP_TAGS = ("script", "style", "noscript", "img", "svg", "template")
_CHROME_TAGS = ("nav", "footer", "header", "aside", "form")


class WebFetchError(Exception):
    """Raised for non-2xx responses. Carries the status and body."""

    def __init__(self, status: int, reason: str, body: str = ""):
        self.status = status
        self.reason = reason
        self.body = body
        message = f"HTTP {status} {reason}".rstrip()
        super().__init__(f"{message}\n\n{body}" if body else message)


class WebFetchArgs(BaseModel):
    url: str = Field(min_length=1)
    format: Literal["html", "text", "markdown"] = "markdown"
    timeout_ms: Optional[int] = Field(default=None, ge=1, le=MAX_FETCH_TIMEOUT_MS)
    render_js: Optional[bool] = None


# ---------------------------------------------------------------------------
# HTML conversion
# ---------------------------------------------------------------------------

def _collapse_blank_lines(text: str) -> str:
    return re.sub(r"\n{3,}", "\n\n", text).strip()


def html_to_plain_text(html: str) -> str:
    """Plain text of an HTML document with scripts, styles and images removed.

    Anchors keep their text only; hrefs are dropped.
    """
    soup = BeautifulSoup(html or "", "html.parser")
    for tag in soup(_SKIP_TAGS):
        tag.decompose()
    return _collapse_blank_lines(soup.get_text(separator="\n", strip=True))


def _meta_content(soup: BeautifulSoup, *keys: str) -> str:
    for key in keys:
        tag = soup.find("meta", attrs={"property": key}) or soup.find("meta", attrs={"name": key})
        if tag and tag.get("content"):
            return tag["content"].strip()
    return ""


def extract_article_markdown(html: str) -> str:
    """Main-article extraction rendered as light markdown.

    Layout::

        # Title

        Byline · Site name

        > Excerpt

        Article text

    Falls back to the whole document's plain text when no article body is found.
    """
    soup = BeautifulSoup(html or "", "html.parser")

    title = _meta_content(soup, "og:title")
    if not title and soup.title and soup.title.string:
        title = soup.title.string.strip()
    byline = _meta_content(soup, "author", "article:author")
    site_name = _meta_content(soup, "og:site_name")
    excerpt = _meta_content(soup, "og:description", "description")

    body = soup.find("article") or soup.find("main") or soup.find(attrs={"role": "main"}) or soup.body
    if body is None:
        return html_to_plain_text(html)

    for tag in body(_SKIP_TAGS + _CHROME_TAGS):
        tag.decompose()
    content = _collapse_blank_lines(body.get_text(separator="\n", strip=True))
    if not content:
        return html_to_plain_text(html)

    parts = []
    if title:
        parts.append(f"# {title}")
    meta = [m for m in (byline, site_name) if m]
    if meta:
        parts.append(" · ".join(meta))
    if excerpt:
        parts.append(f"> {excerpt}")
    parts.append(content)
    return "\n\n".join(parts).strip()


# ---------------------------------------------------------------------------
# Fetching
# ---------------------------------------------------------------------------

def fetch_url(url: str, timeout_ms: int, session: Optional[requests.Session] = None) -> requests.Response:
    http = session or requests
    response = http.get(
        url,
        headers={"User-Agent": BROWSER_USER_AGENT, "Accept": _ACCEPT},
        timeout=timeout_ms / 1000.0,
    )
    if not response.ok:
        raise WebFetchError(response.status_code, response.reason or "", response.text or "")
    # requests assumes ISO-8859-1 for text/* without a charset
    if "charset=" not in (response.headers.get("content-type") or "").lower():
        response.encoding = response.apparent_encoding
    return response


def convert(html: str, fmt: str) -> str:
    if fmt == "html":
        return html
    if fmt == "text":
        return html_to_plain_text(html)
    return extract_article_markdown(html)


def _handle_web_fetch(args: dict, **kw) -> str:
    """Handler for web_fetch tool."""
    start = time.monotonic()
    details: Dict[str, Any] = {"url": args.get("url", ""), "format": args.get("format") or "markdown"}

    try:
        params = WebFetchArgs(**args)
    except ValidationError as e:
        details["duration_ms"] = 0
        return json.dumps({"error": f"Invalid arguments: {e.errors()[0]['msg']}", "details": details})

    timeout_ms = params.timeout_ms or get_fetch_timeout_ms()
    try:
        response = fetch_url(params.url, timeout_ms)
        details["duration_ms"] = int((time.monotonic() - start) * 1000)
        details["status"] = response.status_code
        details["content_type"] = response.headers.get("content-type")

        out = convert(response.text, params.format)
        details["content_length"] = len(out)
        return json.dumps({"result": out, "details": details}, ensure_ascii=False)
    except WebFetchError as e:
        details["duration_ms"] = int((time.monotonic() - start) * 1000)
        details["status"] = e.status
        details["error"] = f"HTTP {e.status} {e.reason}".rstrip()
        return json.dumps({"error": str(e), "details": details}, ensure_ascii=False)
    except Exception as e:
        logger.error("web_fetch error for %s: %s", params.url, e)
        details["duration_ms"] = int((time.monotonic() - start) * 1000)
        details["error"] = str(e)
        return json.dumps({"error": str(e), "details": details}, ensure_ascii=False)


# ---------------------------------------------------------------------------
# Tool schema
# ---------------------------------------------------------------------------

WEB_FETCH_SCHEMA = {
    "name": "web_fetch",
    "description": (
        "Fetch a URL and return its content as html, text, or markdown.\n\n"
        "Formats:\n"
        "- html: raw HTML\n"
        "- text: plain text converted from HTML\n"
        "- markdown: main-article extraction rendered as markdown-ish text\n\n"
        "Note: This tool does NOT render JavaScript."
    ),
    "parameters": {
        "type": "object",
        "properties": {
            "url": {"type": "string", "description": "The URL to fetch"},
            "format": {
                "type": "string",
                "enum": ["html", "text", "markdown"],
                "description": "Response format (default: markdown)",
            },
            "timeout_ms": {
                "type": "integer",
                "description": "Abort request after this many milliseconds (default: 30000)",
                "minimum": 1,
                "maximum": MAX_FETCH_TIMEOUT_MS,
            },
            "render_js": {
                "type": "boolean",
                "description": "(Ignored) Kept for backwards compatibility; this tool does not render JavaScript",
            },
        },
        "required": ["url"],
    },
}


# ---------------------------------------------------------------------------
# Registration
# ---------------------------------------------------------------------------

from tools.registry import registry

registry.register(
    name="web_fetch",
    toolset="web",
    schema=WEB_FETCH_SCHEMA,
    handler=_handle_web_fetch,
)
