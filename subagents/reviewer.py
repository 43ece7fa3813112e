"""Reviewer subagent: code review of a diff using read-only tools and git_diff."""

import json
import os
from typing import List, Optional

from pydantic import BaseModel, Field, ValidationError

from subagents.base import READ_ONLY_TOOLS, SubagentRequest, run_kwargs, run_subagent, validation_error
from subagents.prompts import REVIEWER_SYSTEM_PROMPT


class ReviewerArgs(BaseModel):
    diff: str = Field(min_length=1)
    focus: Optional[str] = None
    context: Optional[str] = None
    skills: Optional[List[str]] = None


def build_user_message(args: ReviewerArgs) -> str:
    parts = [f"Diff scope: {args.diff}"]
    if args.focus:
        parts.append(f"Focus: {args.focus}")
    if args.context:
        parts.append(f"Context: {args.context}")
    return "\n".join(parts)


def _handle_reviewer(args: dict, **kw) -> str:
    if not (args.get("diff") or "").strip():
        return json.dumps({"error": "Diff scope is required."})
    try:
        params = ReviewerArgs(**args)
    except ValidationError as e:
        return validation_error(e)

    message = build_user_message(params)
    request = SubagentRequest(
        name="reviewer",
        system_prompt=REVIEWER_SYSTEM_PROMPT,
        user_message=message,
        tier_message=message,
        tool_names=READ_ONLY_TOOLS + ("git_diff",),
        skills=params.skills or (),
        cwd=kw.get("cwd") or os.getcwd(),
    )
    return run_subagent(request, **run_kwargs(kw))


REVIEWER_SCHEMA = {
    "name": "reviewer",
    "description": (
        "Code review agent that analyzes diffs and returns structured feedback "
        "(Summary, Findings with [P0-P3], Verdict).\n\n"
        "Pass relevant skills (e.g. 'ios-26', 'drizzle-orm') for specialized context."
    ),
    "parameters": {
        "type": "object",
        "properties": {
            "diff": {
                "type": "string",
                "description": "What to review, e.g. staged changes, last commit, changes in src/auth/",
            },
            "focus": {"type": "string", "description": "Focus area: security, performance, style, or general"},
            "context": {"type": "string", "description": "What the change is trying to achieve"},
            "skills": {
                "type": "array",
                "items": {"type": "string"},
                "description": "Skill names to provide specialized context",
            },
        },
        "required": ["diff"],
    },
}


from tools.registry import registry

registry.register(
    name="reviewer",
    toolset="subagents",
    schema=REVIEWER_SCHEMA,
    handler=_handle_reviewer,
)
