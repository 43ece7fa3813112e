"""Tests for agent/subagent_executor.py using a fake streaming client."""

import json
import threading
from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import pytest

from agent.model_policy import CandidateModel
from agent.subagent_executor import (
    SubagentConfig,
    build_system_prompt,
    execute_subagent,
    filter_thinking_tags,
)
from agent.skills import Skill


# ---------------------------------------------------------------------------
# Fake stream helpers
# ---------------------------------------------------------------------------

def _text_chunk(text):
    delta = SimpleNamespace(content=text, tool_calls=None)
    return SimpleNamespace(choices=[SimpleNamespace(delta=delta)], usage=None)


def _tool_chunk(index, id=None, name=None, arguments=None):
    fn = SimpleNamespace(name=name, arguments=arguments)
    tc = SimpleNamespace(index=index, id=id, function=fn)
    delta = SimpleNamespace(content=None, tool_calls=[tc])
    return SimpleNamespace(choices=[SimpleNamespace(delta=delta)], usage=None)


def _usage_chunk(prompt, completion, cost=None):
    usage = SimpleNamespace(prompt_tokens=prompt, completion_tokens=completion, cost=cost)
    return SimpleNamespace(choices=[], usage=usage)


def _client(*turns):
    client = MagicMock()
    client.chat.completions.create.side_effect = [iter(t) for t in turns]
    return client


class _ClosableStream:
    """Iterable stand-in for openai's Stream that records close()."""

    def __init__(self, chunks, on_next=None, error=None):
        self._chunks = list(chunks)
        self._on_next = on_next
        self._error = error
        self.closed = False

    def __iter__(self):
        for chunk in self._chunks:
            yield chunk
            if self._on_next:
                self._on_next()
        if self._error:
            raise self._error

    def close(self):
        self.closed = True


def _config(**overrides):
    base = dict(
        name="scout",
        model=CandidateModel("openai", "gpt-5.2"),
        system_prompt="You are a scout.",
        tool_names=("web_fetch",),
        logging_enabled=False,
    )
    base.update(overrides)
    return SubagentConfig(**base)


# ---------------------------------------------------------------------------
# filter_thinking_tags / build_system_prompt
# ---------------------------------------------------------------------------

class TestFilterThinkingTags:
    def test_removes_closed_blocks(self):
        assert filter_thinking_tags("<think>plan</think>Answer") == "Answer"

    def test_removes_unterminated_block(self):
        assert filter_thinking_tags("Answer\n<thinking>half") == "Answer"

    def test_plain_text_untouched(self):
        assert filter_thinking_tags("just text") == "just text"

    def test_empty(self):
        assert filter_thinking_tags("") == ""


def test_build_system_prompt_appends_skills(tmp_path):
    skill = Skill(name="x", description="", path=tmp_path / "SKILL.md", body="do x")
    prompt = build_system_prompt(_config(skills=(skill,)))
    assert prompt.startswith("You are a scout.")
    assert "# Skills" in prompt
    assert "do x" in prompt


def test_build_system_prompt_without_skills():
    assert build_system_prompt(_config()) == "You are a scout."


# ---------------------------------------------------------------------------
# execute_subagent
# ---------------------------------------------------------------------------

class TestExecuteSubagent:
    def test_single_turn_answer_streams_text(self):
        client = _client([_text_chunk("Hel"), _text_chunk("lo"), _usage_chunk(10, 2, 0.001)])
        updates = []
        result = execute_subagent(_config(tool_names=()), "hi", client=client,
                                  on_text_update=lambda d, acc: updates.append((d, acc)))
        assert result.content == "Hello"
        assert result.error is None
        assert not result.aborted
        assert updates == [("Hel", "Hel"), ("lo", "Hello")]
        assert result.usage.input_tokens == 10
        assert result.usage.output_tokens == 2
        assert result.usage.cost == pytest.approx(0.001)
        assert result.usage.turns == 1

    def test_request_shape(self):
        client = _client([_text_chunk("ok")])
        with patch("agent.subagent_executor.get_tool_definitions", return_value=[{"type": "function"}]):
            execute_subagent(_config(reasoning_effort="high"), "task", client=client)
        kwargs = client.chat.completions.create.call_args.kwargs
        assert kwargs["model"] == "gpt-5.2"
        assert kwargs["stream"] is True
        assert kwargs["stream_options"] == {"include_usage": True}
        assert kwargs["reasoning_effort"] == "high"
        assert kwargs["tools"] == [{"type": "function"}]
        assert kwargs["messages"][0] == {"role": "system", "content": "You are a scout."}
        assert kwargs["messages"][1] == {"role": "user", "content": "task"}

    def test_no_effort_or_tools_omitted(self):
        client = _client([_text_chunk("ok")])
        execute_subagent(_config(tool_names=()), "task", client=client)
        kwargs = client.chat.completions.create.call_args.kwargs
        assert "reasoning_effort" not in kwargs
        assert "tools" not in kwargs

    def test_tool_call_round_trip(self):
        client = _client(
            [_tool_chunk(0, id="call_1", name="web_fetch", arguments='{"url": '),
             _tool_chunk(0, arguments='"https://x.dev"}'),
             _usage_chunk(5, 5)],
            [_text_chunk("<think>hm</think>Done."), _usage_chunk(7, 3)],
        )
        tool_updates = []
        with patch("agent.subagent_executor.get_tool_definitions", return_value=[]), \
             patch("agent.subagent_executor.handle_function_call",
                   return_value=json.dumps({"result": "page"})) as mock_call:
            result = execute_subagent(
                _config(cwd="/work"), "fetch it", client=client,
                on_tool_update=lambda calls: tool_updates.append([c.status for c in calls]),
            )

        mock_call.assert_called_once_with("web_fetch", '{"url": "https://x.dev"}', cwd="/work")
        assert result.content == "Done."
        assert len(result.tool_calls) == 1
        call = result.tool_calls[0]
        assert call.id == "call_1"
        assert call.args == {"url": "https://x.dev"}
        assert call.status == "done"
        assert tool_updates == [["running"], ["done"]]
        assert result.usage.turns == 2
        assert result.usage.input_tokens == 12

        second_messages = client.chat.completions.create.call_args_list[1].kwargs["messages"]
        assert second_messages[2]["role"] == "assistant"
        assert second_messages[2]["tool_calls"][0]["function"]["name"] == "web_fetch"
        assert second_messages[3] == {"role": "tool", "tool_call_id": "call_1", "content": json.dumps({"result": "page"})}

    def test_error_tool_result_marks_status(self):
        client = _client(
            [_tool_chunk(0, id="c1", name="web_fetch", arguments="{}")],
            [_text_chunk("gave up")],
        )
        with patch("agent.subagent_executor.get_tool_definitions", return_value=[]), \
             patch("agent.subagent_executor.handle_function_call", return_value=json.dumps({"error": "boom"})):
            result = execute_subagent(_config(), "x", client=client)
        assert result.tool_calls[0].status == "error"
        assert result.content == "gave up"

    def test_tool_outside_allowlist_is_refused(self):
        client = _client(
            [_tool_chunk(0, id="c1", name="read_file", arguments="{}")],
            [_text_chunk("ok")],
        )
        with patch("agent.subagent_executor.get_tool_definitions", return_value=[]), \
             patch("agent.subagent_executor.handle_function_call") as mock_call:
            result = execute_subagent(_config(), "x", client=client)
        mock_call.assert_not_called()
        assert result.tool_calls[0].status == "error"
        assert "not available" in result.tool_calls[0].result

    def test_abort_before_start(self):
        client = _client([_text_chunk("never")])
        abort = threading.Event()
        abort.set()
        result = execute_subagent(_config(), "x", client=client, abort_event=abort)
        assert result.aborted
        client.chat.completions.create.assert_not_called()

    def test_abort_mid_stream(self):
        abort = threading.Event()

        def _stream():
            yield _text_chunk("partial")
            abort.set()
            yield _text_chunk(" more")

        client = MagicMock()
        client.chat.completions.create.return_value = _stream()
        result = execute_subagent(_config(tool_names=()), "x", client=client, abort_event=abort)
        assert result.aborted
        assert result.content == ""

    def test_stream_closed_after_abort(self):
        abort = threading.Event()
        stream = _ClosableStream([_text_chunk("partial"), _text_chunk(" more")], on_next=abort.set)
        client = MagicMock()
        client.chat.completions.create.return_value = stream
        result = execute_subagent(_config(tool_names=()), "x", client=client, abort_event=abort)
        assert result.aborted
        assert stream.closed

    def test_stream_closed_when_iteration_raises(self):
        stream = _ClosableStream([_text_chunk("partial")], error=RuntimeError("connection reset"))
        client = MagicMock()
        client.chat.completions.create.return_value = stream
        result = execute_subagent(_config(tool_names=()), "x", client=client)
        assert result.error == "connection reset"
        assert stream.closed

    def test_stream_closed_after_normal_turn(self):
        stream = _ClosableStream([_text_chunk("done")])
        client = MagicMock()
        client.chat.completions.create.return_value = stream
        result = execute_subagent(_config(tool_names=()), "x", client=client)
        assert result.content == "done"
        assert stream.closed

    def test_max_turns_exhausted(self):
        looping = [_tool_chunk(0, id="c", name="web_fetch", arguments="{}")]
        client = _client(list(looping), list(looping))
        with patch("agent.subagent_executor.get_tool_definitions", return_value=[]), \
             patch("agent.subagent_executor.handle_function_call", return_value='{"result": "x"}'):
            result = execute_subagent(_config(max_turns=2), "x", client=client)
        assert "2 turns" in result.error
        assert result.usage.turns == 2

    def test_provider_error_becomes_result_error(self):
        client = MagicMock()
        client.chat.completions.create.side_effect = RuntimeError("503 upstream")
        result = execute_subagent(_config(tool_names=()), "x", client=client)
        assert result.error == "503 upstream"
        assert result.content == ""

    def test_unconfigured_provider(self, monkeypatch):
        monkeypatch.delenv("OPENAI_API_KEY", raising=False)
        result = execute_subagent(_config(tool_names=()), "x")
        assert "not configured" in result.error

    def test_writes_run_log(self, tmp_path, monkeypatch):
        monkeypatch.setenv("LANTERN_HOME", str(tmp_path))
        client = _client([_text_chunk("ok")])
        execute_subagent(_config(tool_names=(), logging_enabled=True), "x", client=client)
        logs = list((tmp_path / "logs" / "subagents" / "scout").glob("*.jsonl"))
        assert len(logs) == 1
        events = [json.loads(line)["event"] for line in logs[0].read_text().splitlines()]
        assert events == ["start", "end"]
