"""Jester subagent: answers from training data only, no tools."""

import json

from pydantic import BaseModel, Field, ValidationError

from subagents.base import SubagentRequest, run_kwargs, run_subagent, validation_error
from subagents.prompts import JESTER_SYSTEM_PROMPT


class JesterArgs(BaseModel):
    question: str = Field(min_length=1)


def _handle_jester(args: dict, **kw) -> str:
    if not (args.get("question") or "").strip():
        return json.dumps({"error": "Question is required."})
    try:
        params = JesterArgs(**args)
    except ValidationError as e:
        return validation_error(e)

    # No temperature knob; the randomness comes from the prompt.
    request = SubagentRequest(
        name="jester",
        system_prompt=JESTER_SYSTEM_PROMPT,
        user_message=params.question,
        tier_message=params.question,
        cwd=kw.get("cwd"),
    )
    return run_subagent(request, **run_kwargs(kw))


JESTER_SCHEMA = {
    "name": "jester",
    "description": "High-variance answers from training data only. No tools, no browsing, no files.",
    "parameters": {
        "type": "object",
        "properties": {
            "question": {
                "type": "string",
                "description": "Question to answer (no tools; from training data only)",
            },
        },
        "required": ["question"],
    },
}


from tools.registry import registry

registry.register(
    name="jester",
    toolset="subagents",
    schema=JESTER_SCHEMA,
    handler=_handle_jester,
)
