"""Lookout subagent: local codebase search by concept with read-only tools."""

import json
import os
from typing import List, Optional

from pydantic import BaseModel, Field, ValidationError

from subagents.base import READ_ONLY_TOOLS, SubagentRequest, run_kwargs, run_subagent, validation_error
from subagents.prompts import LOOKOUT_SYSTEM_PROMPT


class LookoutArgs(BaseModel):
    query: str = Field(min_length=1)
    cwd: Optional[str] = None
    skills: Optional[List[str]] = None


def _handle_lookout(args: dict, **kw) -> str:
    if not (args.get("query") or "").strip():
        return json.dumps({"error": "Query is required."})
    try:
        params = LookoutArgs(**args)
    except ValidationError as e:
        return validation_error(e)

    working_dir = params.cwd or kw.get("cwd") or os.getcwd()
    if not os.path.isdir(working_dir):
        return json.dumps({"error": f"Directory not found: {working_dir}"})

    request = SubagentRequest(
        name="lookout",
        system_prompt=LOOKOUT_SYSTEM_PROMPT.replace("{cwd}", working_dir),
        user_message=params.query,
        tier_message=params.query,
        tool_names=READ_ONLY_TOOLS,
        skills=params.skills or (),
        cwd=working_dir,
    )
    return run_subagent(request, **run_kwargs(kw))


LOOKOUT_SCHEMA = {
    "name": "lookout",
    "description": (
        "Local codebase search by functionality or concept. Returns relevant files "
        "with line ranges.\n\n"
        'Example: {"query": "where do we handle authentication"}\n\n'
        "Pass relevant skills (e.g. 'ios-26', 'drizzle-orm') for specialized context."
    ),
    "parameters": {
        "type": "object",
        "properties": {
            "query": {"type": "string", "description": "What to find in the codebase"},
            "cwd": {
                "type": "string",
                "description": "Directory to search in (defaults to the current project directory)",
            },
            "skills": {
                "type": "array",
                "items": {"type": "string"},
                "description": "Skill names to provide specialized context",
            },
        },
        "required": ["query"],
    },
}


from tools.registry import registry

registry.register(
    name="lookout",
    toolset="subagents",
    schema=LOOKOUT_SCHEMA,
    handler=_handle_lookout,
)
