"""Oracle subagent: advisory reasoning on hard problems, no tools.

Requested files are read up front and inlined into the user message.
"""

import os
from pathlib import Path
from typing import List, Optional

from pydantic import BaseModel, Field, ValidationError

from subagents.base import SubagentRequest, run_kwargs, run_subagent, validation_error
from subagents.prompts import ORACLE_SYSTEM_PROMPT


class OracleArgs(BaseModel):
    task: str = Field(min_length=1)
    context: Optional[str] = None
    files: Optional[List[str]] = None
    skills: Optional[List[str]] = None


def format_files_for_context(files: List[str], cwd: str) -> str:
    sections = []
    for file in files:
        path = Path(cwd) / file
        try:
            content = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError):
            sections.append(f"### {file}\n(file not found or unreadable)")
            continue
        sections.append(f"### {file}\n```\n{content}\n```")
    return "\n\n".join(sections)


def build_user_message(args: OracleArgs, files_content: Optional[str] = None) -> str:
    message = f"## Task\n{args.task}"
    if args.context:
        message += f"\n\n## Context\n{args.context}"
    if files_content:
        message += f"\n\n## Files\n{files_content}"
    return message


def _handle_oracle(args: dict, **kw) -> str:
    try:
        params = OracleArgs(**args)
    except ValidationError as e:
        return validation_error(e)

    cwd = kw.get("cwd") or os.getcwd()
    files_content = format_files_for_context(params.files, cwd) if params.files else None
    request = SubagentRequest(
        name="oracle",
        system_prompt=ORACLE_SYSTEM_PROMPT,
        user_message=build_user_message(params, files_content),
        tier_message=params.task,
        skills=params.skills or (),
        cwd=cwd,
    )
    return run_subagent(request, **run_kwargs(kw))


ORACLE_SCHEMA = {
    "name": "oracle",
    "description": (
        "Consult the Oracle, an advisor running on the strongest available reasoning model.\n\n"
        "WHEN TO USE:\n"
        "- Code reviews and architecture feedback\n"
        "- Finding bugs across multiple files\n"
        "- Planning complex implementations or refactoring\n"
        "- Deep technical questions requiring reasoning\n\n"
        "WHEN NOT TO USE:\n"
        "- Simple file reading (use read_file)\n"
        "- Codebase searches (use lookout)\n\n"
        "Pass relevant skills (e.g. 'ios-26', 'drizzle-orm') for specialized context."
    ),
    "parameters": {
        "type": "object",
        "properties": {
            "task": {"type": "string", "description": "What to help with"},
            "context": {"type": "string", "description": "Background info"},
            "files": {"type": "array", "items": {"type": "string"}, "description": "Files to examine"},
            "skills": {
                "type": "array",
                "items": {"type": "string"},
                "description": "Skill names to provide specialized context",
            },
        },
        "required": ["task"],
    },
}


from tools.registry import registry

registry.register(
    name="oracle",
    toolset="subagents",
    schema=ORACLE_SCHEMA,
    handler=_handle_oracle,
)
