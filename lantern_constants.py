"""Shared constants for Lantern extensions.

Import-safe module with no dependencies. It can be imported from anywhere
without risk of circular imports.
"""

import os
from pathlib import Path


def get_lantern_home() -> Path:
    """Root directory for Lantern config, skills, hooks and logs (default ~/.lantern)."""
    return Path(os.getenv("LANTERN_HOME", Path.home() / ".lantern"))


OPENROUTER_BASE_URL = "https://openrouter.ai/api/v1"
OPENAI_BASE_URL = "https://api.openai.com/v1"
ANTHROPIC_OPENAI_COMPAT_URL = "https://api.anthropic.com/v1"
GOOGLE_OPENAI_COMPAT_URL = "https://generativelanguage.googleapis.com/v1beta/openai"

BRAVE_SEARCH_URL = "https://api.search.brave.com/res/v1/web/search"
BRAVE_API_KEY_ENV = "BRAVE_API_KEY"

CONTEXT7_BASE_URL = "https://context7.com/api/v2"
CONTEXT7_API_KEY_ENV = "CONTEXT7_API_KEY"

GITHUB_API_URL = "https://api.github.com"
GITHUB_TOKEN_ENV = "GITHUB_TOKEN"

BROWSER_USER_AGENT = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/140.0.0.0 Safari/537.36"
)
TOOL_USER_AGENT = "lantern-extensions/1.0"
