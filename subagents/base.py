"""Shared flow for subagent tools.

Every subagent handler follows the same steps:

1. validate its arguments (pydantic model in the persona module)
2. resolve requested skills by name
3. pick a model with ``select_subagent_model`` over the configured pool,
   honouring ``subagents.<name>.tier|effort`` overrides from config.yaml
4. build the user message (missing skills are noted at the end)
5. run ``execute_subagent`` and shape the result as JSON::

    {"response": "...", "details": {"resolved_model": ..., "tier": ..., ...}}

Validation and model-pool failures are returned as ``{"error": "..."}`` like
any other tool.
"""

import json
import logging
import threading
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Sequence

from pydantic import ValidationError

from agent.config import (
    ConfigValidationError,
    get_extra_models,
    get_max_turns,
    get_subagent_settings,
    load_config,
    validate_config,
)
from agent.model_policy import CandidateModel, NoModelsAvailable, select_subagent_model
from agent.model_registry import available_models
from agent.skills import resolve_skills_by_name
from agent.subagent_executor import SubagentConfig, SubagentToolCall, execute_subagent

logger = logging.getLogger(__name__)

READ_ONLY_TOOLS = ("read_file", "ls", "grep", "find_files")
WEB_TOOLS = ("web_search", "web_fetch", "github_repo", "github_file", "github_search", "github_issue")

ALL_TOOL_CALLS_FAILED = "All tool calls failed"


@dataclass
class SubagentRequest:
    name: str
    system_prompt: str
    user_message: str
    tier_message: str
    tool_names: Sequence[str] = ()
    skills: Sequence[str] = ()
    cwd: Optional[str] = None


def validation_error(e: ValidationError) -> str:
    err = e.errors()[0]
    loc = ".".join(str(p) for p in err.get("loc", ()))
    message = err["msg"]
    if message.startswith("Value error, "):
        message = message[len("Value error, "):]
    return json.dumps({"error": f"Invalid arguments: {loc + ': ' if loc else ''}{message}"})


def missing_skills_note(not_found: Sequence[str]) -> str:
    if not not_found:
        return ""
    return (
        "\n\n**Note:** The following skills were not found and could not be loaded: "
        + ", ".join(not_found)
    )


def get_candidate_pool(config: Optional[Dict[str, Any]] = None) -> List[CandidateModel]:
    return available_models(extra_models=get_extra_models(config))


def _tool_call_summary(call: SubagentToolCall) -> Dict[str, Any]:
    return {"id": call.id, "name": call.name, "args": call.args, "status": call.status}


def run_subagent(
    request: SubagentRequest,
    *,
    candidates: Optional[Sequence[CandidateModel]] = None,
    config: Optional[Dict[str, Any]] = None,
    client: Optional[Any] = None,
    abort_event: Optional[threading.Event] = None,
    on_text_update: Optional[Callable[[str, str], None]] = None,
    on_tool_update: Optional[Callable[[List[SubagentToolCall]], None]] = None,
) -> str:
    """Run one subagent request end to end and return the tool result JSON."""
    if config is None:
        config = load_config()
    try:
        validate_config(config)
    except ConfigValidationError as e:
        logger.warning("Invalid configuration, falling back to defaults where needed: %s", e)

    skills = resolve_skills_by_name(request.skills, cwd=request.cwd) if request.skills else None
    details: Dict[str, Any] = {
        "resolved_model": None,
        "tier": None,
        "reasoning_effort": None,
        "tool_calls": [],
        "usage": None,
        "skills_resolved": [s.name for s in skills.skills] if skills else [],
        "skills_not_found": list(skills.not_found) if skills else [],
        "aborted": False,
        "error": None,
    }

    settings = get_subagent_settings(request.name, config)
    pool = list(candidates) if candidates is not None else get_candidate_pool(config)
    try:
        selection = select_subagent_model(
            request.name, request.tier_message, pool,
            tier=settings.tier, effort=settings.effort,
        )
    except NoModelsAvailable as e:
        logger.error("%s: %s", request.name, e)
        return json.dumps({"error": str(e)})

    details["resolved_model"] = {"provider": selection.model.provider, "id": selection.model.id}
    details["tier"] = selection.tier.value
    details["reasoning_effort"] = selection.reasoning_effort.value
    logger.info("Running subagent %s on %s (tier=%s, effort=%s)",
                request.name, selection.model.ref, selection.tier.value, selection.reasoning_effort.value)

    user_message = request.user_message + missing_skills_note(details["skills_not_found"])
    result = execute_subagent(
        SubagentConfig(
            name=request.name,
            model=selection.model,
            system_prompt=request.system_prompt,
            skills=skills.skills if skills else (),
            tool_names=tuple(request.tool_names),
            reasoning_effort=selection.reasoning_effort.value,
            max_turns=get_max_turns(config),
            cwd=request.cwd,
        ),
        user_message,
        client=client,
        on_text_update=on_text_update,
        on_tool_update=on_tool_update,
        abort_event=abort_event,
    )

    details["tool_calls"] = [_tool_call_summary(c) for c in result.tool_calls]
    details["usage"] = result.usage.to_dict()

    if result.aborted:
        details["aborted"] = True
        return json.dumps({"response": "Aborted", "details": details})

    error = result.error
    if error is None and result.tool_calls and all(c.status == "error" for c in result.tool_calls):
        error = ALL_TOOL_CALLS_FAILED

    if error:
        details["error"] = error
        return json.dumps({"response": f"Error: {error}", "details": details})

    return json.dumps({"response": result.content, "details": details})


def run_kwargs(kw: Dict[str, Any]) -> Dict[str, Any]:
    """Pick the run-time options a handler forwards from dispatch kwargs."""
    keys = ("candidates", "config", "client", "abort_event", "on_text_update", "on_tool_update")
    return {k: kw[k] for k in keys if k in kw}
