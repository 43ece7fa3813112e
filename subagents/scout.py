"""Scout subagent: web research and GitHub exploration."""

import json
import os
from typing import List, Optional

from pydantic import BaseModel, ValidationError

from subagents.base import WEB_TOOLS, SubagentRequest, run_kwargs, run_subagent, validation_error
from subagents.prompts import SCOUT_SYSTEM_PROMPT

DEFAULT_PROMPT = "Summarize the relevant information."


class ScoutArgs(BaseModel):
    url: Optional[str] = None
    query: Optional[str] = None
    repo: Optional[str] = None
    prompt: Optional[str] = None
    skills: Optional[List[str]] = None


def build_user_message(args: ScoutArgs) -> str:
    parts = []
    if args.url:
        parts.append(f"URL to fetch: {args.url}")
    if args.query:
        parts.append(f"Search query: {args.query}")
    if args.repo:
        parts.append(f"GitHub repository to explore: {args.repo}")
    parts.append(f"\nQuestion/Task: {args.prompt or DEFAULT_PROMPT}")
    return "\n".join(parts)


def _handle_scout(args: dict, **kw) -> str:
    try:
        params = ScoutArgs(**args)
    except ValidationError as e:
        return validation_error(e)
    if not (params.url or params.query or params.repo):
        return json.dumps({"error": "At least one of 'url', 'query', or 'repo' is required."})

    message = build_user_message(params)
    request = SubagentRequest(
        name="scout",
        system_prompt=SCOUT_SYSTEM_PROMPT,
        user_message=message,
        tier_message=message,
        tool_names=WEB_TOOLS,
        skills=params.skills or (),
        cwd=kw.get("cwd") or os.getcwd(),
    )
    return run_subagent(request, **run_kwargs(kw))


SCOUT_SCHEMA = {
    "name": "scout",
    "description": (
        "Web research and GitHub exploration agent. Fetches URLs, searches the web, and "
        "explores GitHub repositories, files, issues and pull requests, then answers the prompt.\n\n"
        "Inputs (at least one of url, query, or repo required):\n"
        "- url: specific URL to fetch\n"
        "- query: search query\n"
        "- repo: GitHub repository (owner/repo)\n"
        "- prompt: question to answer from what was found"
    ),
    "parameters": {
        "type": "object",
        "properties": {
            "url": {"type": "string", "description": "URL to fetch"},
            "query": {"type": "string", "description": "Search query for web or GitHub research"},
            "repo": {"type": "string", "description": "GitHub repository to focus on (owner/repo)"},
            "prompt": {"type": "string", "description": "Question to answer based on the fetched content"},
            "skills": {
                "type": "array",
                "items": {"type": "string"},
                "description": "Skill names to provide specialized context",
            },
        },
    },
}


from tools.registry import registry

registry.register(
    name="scout",
    toolset="subagents",
    schema=SCOUT_SCHEMA,
    handler=_handle_scout,
)
