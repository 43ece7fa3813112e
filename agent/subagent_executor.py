"""Subagent execution loop.

Runs one subagent conversation against an OpenAI-compatible chat completions
endpoint: system prompt (plus skills), a single user message, and a subset of
registry tools. The loop streams text, executes tool calls through
``model_tools.handle_function_call``, and stops when the model answers
without requesting tools, when ``max_turns`` is hit, or when the abort event
is set.

Callbacks:
    on_text_update(delta, accumulated)  -- every streamed text chunk
    on_tool_update(tool_calls)          -- whenever a tool call starts or ends
"""

import json
import logging
import re
import threading
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Sequence

import httpx
from openai import OpenAI

from agent.config import DEFAULT_MAX_TURNS
from agent.model_policy import CandidateModel
from agent.model_registry import resolve_provider_api_key, resolve_provider_base_url
from agent.run_logger import RunLogger
from agent.skills import Skill, format_skills_block
from model_tools import get_tool_definitions, handle_function_call

logger = logging.getLogger(__name__)

MAX_TOOL_RESULT_CHARS = 100_000

_THINK_BLOCK_RE = re.compile(r"<think(?:ing)?>.*?</think(?:ing)?>", re.DOTALL | re.IGNORECASE)
_THINK_OPEN_RE = re.compile(r"<think(?:ing)?>.*\Z", re.DOTALL | re.IGNORECASE)

TextCallback = Callable[[str, str], None]


@dataclass
class SubagentToolCall:
    id: str
    name: str
    args: Dict[str, Any]
    status: str = "running"  # "running", "done" or "error"
    result: Optional[str] = None


@dataclass
class SubagentUsage:
    input_tokens: int = 0
    output_tokens: int = 0
    cost: float = 0.0
    turns: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "input_tokens": self.input_tokens,
            "output_tokens": self.output_tokens,
            "cost": self.cost,
            "turns": self.turns,
        }


@dataclass
class SubagentResult:
    content: str = ""
    tool_calls: List[SubagentToolCall] = field(default_factory=list)
    usage: SubagentUsage = field(default_factory=SubagentUsage)
    aborted: bool = False
    error: Optional[str] = None


@dataclass(frozen=True)
class SubagentConfig:
    name: str
    model: CandidateModel
    system_prompt: str
    skills: Sequence[Skill] = ()
    tool_names: Sequence[str] = ()
    reasoning_effort: Optional[str] = None
    max_turns: int = DEFAULT_MAX_TURNS
    cwd: Optional[str] = None
    logging_enabled: bool = True


def filter_thinking_tags(text: str) -> str:
    """Strip ``<think>...</think>`` blocks, including an unterminated trailing one."""
    if not text:
        return text
    text = _THINK_BLOCK_RE.sub("", text)
    text = _THINK_OPEN_RE.sub("", text)
    return text.strip()


def build_system_prompt(config: SubagentConfig) -> str:
    skills_block = format_skills_block(config.skills)
    if not skills_block:
        return config.system_prompt
    return f"{config.system_prompt.rstrip()}\n\n{skills_block}"


def create_client(model: CandidateModel) -> OpenAI:
    """OpenAI SDK client pointed at the model's provider."""
    api_key = resolve_provider_api_key(model.provider)
    base_url = resolve_provider_base_url(model.provider)
    if not api_key or not base_url:
        raise ValueError(f"Provider '{model.provider}' is not configured (missing API key or base URL)")
    return OpenAI(api_key=api_key, base_url=base_url, timeout=httpx.Timeout(300.0, connect=10.0))


def _truncate(text: str) -> str:
    if len(text) <= MAX_TOOL_RESULT_CHARS:
        return text
    return text[:MAX_TOOL_RESULT_CHARS] + f"\n\n[truncated {len(text) - MAX_TOOL_RESULT_CHARS} chars]"


def _close_stream(stream: Any) -> None:
    """Release the HTTP connection behind a streamed response."""
    close = getattr(stream, "close", None)
    if callable(close):
        close()


def _is_error_result(result: str) -> bool:
    try:
        parsed = json.loads(result)
    except (TypeError, ValueError):
        return False
    return isinstance(parsed, dict) and "error" in parsed and "result" not in parsed


class _TurnAccumulator:
    """Collects one streamed assistant turn: text, tool call fragments, usage."""

    def __init__(self):
        self.text = ""
        self.tool_calls: Dict[int, Dict[str, str]] = {}
        self.input_tokens = 0
        self.output_tokens = 0
        self.cost = 0.0

    def add_chunk(self, chunk) -> str:
        usage = getattr(chunk, "usage", None)
        if usage is not None:
            self.input_tokens += getattr(usage, "prompt_tokens", 0) or 0
            self.output_tokens += getattr(usage, "completion_tokens", 0) or 0
            self.cost += float(getattr(usage, "cost", 0) or 0)

        if not getattr(chunk, "choices", None):
            return ""
        delta = chunk.choices[0].delta
        text = getattr(delta, "content", None) or ""
        self.text += text

        for tc in getattr(delta, "tool_calls", None) or []:
            slot = self.tool_calls.setdefault(tc.index, {"id": "", "name": "", "arguments": ""})
            if getattr(tc, "id", None):
                slot["id"] = tc.id
            fn = getattr(tc, "function", None)
            if fn is not None:
                if getattr(fn, "name", None):
                    slot["name"] += fn.name
                if getattr(fn, "arguments", None):
                    slot["arguments"] += fn.arguments
        return text

    def ordered_tool_calls(self) -> List[Dict[str, str]]:
        return [self.tool_calls[i] for i in sorted(self.tool_calls)]


def execute_subagent(
    config: SubagentConfig,
    user_message: str,
    *,
    client: Optional[Any] = None,
    on_text_update: Optional[TextCallback] = None,
    on_tool_update: Optional[Callable[[List[SubagentToolCall]], None]] = None,
    abort_event: Optional[threading.Event] = None,
) -> SubagentResult:
    """Run a subagent to completion and return its final answer.

    Errors from the provider or the loop are reported in
    ``SubagentResult.error`` instead of raising.
    """
    result = SubagentResult()
    run_log = RunLogger(config.name, enabled=config.logging_enabled)
    run_log.log("start", {
        "model": config.model.ref,
        "reasoning_effort": config.reasoning_effort,
        "tools": list(config.tool_names),
        "skills": [s.name for s in config.skills],
        "user_message": user_message,
    })

    def _aborted() -> bool:
        return abort_event is not None and abort_event.is_set()

    def _notify_tools() -> None:
        if on_tool_update:
            on_tool_update(list(result.tool_calls))

    try:
        client = client or create_client(config.model)
        tools = get_tool_definitions(tool_names=config.tool_names) if config.tool_names else []
        messages: List[Dict[str, Any]] = [
            {"role": "system", "content": build_system_prompt(config)},
            {"role": "user", "content": user_message},
        ]

        accumulated = ""
        for _ in range(max(1, config.max_turns)):
            if _aborted():
                result.aborted = True
                break

            request: Dict[str, Any] = {
                "model": config.model.id,
                "messages": messages,
                "stream": True,
                "stream_options": {"include_usage": True},
            }
            if tools:
                request["tools"] = tools
            if config.reasoning_effort:
                request["reasoning_effort"] = config.reasoning_effort

            turn = _TurnAccumulator()
            stream = client.chat.completions.create(**request)
            try:
                for chunk in stream:
                    if _aborted():
                        result.aborted = True
                        break
                    delta = turn.add_chunk(chunk)
                    if delta:
                        accumulated += delta
                        if on_text_update:
                            on_text_update(delta, accumulated)
            finally:
                _close_stream(stream)

            result.usage.turns += 1
            result.usage.input_tokens += turn.input_tokens
            result.usage.output_tokens += turn.output_tokens
            result.usage.cost += turn.cost
            if result.aborted:
                break

            pending = turn.ordered_tool_calls()
            if not pending:
                result.content = filter_thinking_tags(turn.text)
                break

            messages.append({
                "role": "assistant",
                "content": turn.text or None,
                "tool_calls": [
                    {"id": tc["id"], "type": "function", "function": {"name": tc["name"], "arguments": tc["arguments"] or "{}"}}
                    for tc in pending
                ],
            })

            for tc in pending:
                if _aborted():
                    result.aborted = True
                    break
                try:
                    args = json.loads(tc["arguments"]) if tc["arguments"].strip() else {}
                except ValueError:
                    args = {"_raw": tc["arguments"]}
                call = SubagentToolCall(id=tc["id"], name=tc["name"], args=args if isinstance(args, dict) else {})
                result.tool_calls.append(call)
                _notify_tools()
                run_log.log("tool_call", {"id": call.id, "name": call.name, "args": call.args})

                if tc["name"] not in config.tool_names:
                    output = json.dumps({"error": f"Tool '{tc['name']}' is not available to {config.name}"})
                else:
                    output = handle_function_call(tc["name"], tc["arguments"] or "{}", cwd=config.cwd)
                call.result = output
                call.status = "error" if _is_error_result(output) else "done"
                _notify_tools()
                run_log.log("tool_result", {"id": call.id, "status": call.status, "chars": len(output)})

                messages.append({"role": "tool", "tool_call_id": tc["id"], "content": _truncate(output)})

            if result.aborted:
                break
        else:
            result.error = f"Subagent stopped after {config.max_turns} turns without a final answer"

    except Exception as e:
        logger.error("Subagent %s failed: %s", config.name, e, exc_info=True)
        result.error = str(e)

    run_log.log("end", {
        "aborted": result.aborted,
        "error": result.error,
        "usage": result.usage.to_dict(),
        "content_chars": len(result.content),
    })
    return result
