"""Tests for the ReACT loop controller, driven by a scripted model."""

import pytest
from conftest import ScriptedModel

from textact.agent.agent_loop import (
    EXHAUSTED_MESSAGE,
    chunk_words,
    preview,
)
from textact.agent.history import ConversationHistory
from textact.core.schema import (
    LoopStatus,
    Role,
)

CALC_ACTION = 'Thought: add\nAction: calculator\nAction Input: {"expression": "2+2"}\nPAUSE'


def _history(message: str = "What is 2+2?") -> ConversationHistory:
    history = ConversationHistory()
    history.add_human(message)
    return history


def test_chunk_words() -> None:
    text = " ".join(f"w{i}" for i in range(25))
    chunks = chunk_words(text, 10)
    assert len(chunks) == 3
    assert all(c.endswith(" ") for c in chunks)
    assert "".join(chunks).strip() == text


def test_preview() -> None:
    assert preview("abc", 5) == "abc"
    assert preview("a" * 10, 4) == "aaaa..."


@pytest.mark.asyncio
async def test_direct_final_answer(make_agent, event_log) -> None:
    model = ScriptedModel("Thought: easy\nFinal Answer: Hello there.")
    history = _history("hi")

    result = await make_agent(model).run(history, event_log)

    assert result.status is LoopStatus.DONE
    assert result.answer == "Hello there."
    assert event_log.types == ["agent-step", "stream-start", "stream-chunk", "stream-end"]
    assert event_log.of_type("stream-chunk")[0]["content"] == "Hello there. "
    assert [t.role for t in history] == [Role.SYSTEM, Role.HUMAN, Role.AI]
    assert history.turns[-1].content == "Thought: easy\nFinal Answer: Hello there."


@pytest.mark.asyncio
async def test_tool_call_then_answer(make_agent, event_log) -> None:
    """An action runs the tool and the observation reaches the next model call."""
    model = ScriptedModel(CALC_ACTION, "Thought: done\nFinal Answer: The result is 4.")
    history = _history()

    result = await make_agent(model).run(history, event_log)

    assert result.status is LoopStatus.DONE
    assert result.answer == "The result is 4."
    assert result.iterations == 2

    call = event_log.of_type("tool-call")[0]
    assert call == {
        "type": "tool-call",
        "toolName": "calculator",
        "toolArgs": {"expression": "2+2"},
        "toolId": "react-1",
    }
    assert event_log.of_type("tool-result")[0]["result"] == "The result of 2+2 is 4"
    assert {"type": "agent-step", "step": "executing", "content": "Calculating: 2+2..."} in event_log.events

    second_call = model.calls[1]
    assert second_call[-1].role is Role.AI
    assert second_call[-1].content == f"{CALC_ACTION}\n\nObservation: The result of 2+2 is 4\n\n"


@pytest.mark.asyncio
async def test_system_prompt_only_added_once(make_agent, event_log) -> None:
    model = ScriptedModel("Final Answer: one", "Final Answer: two")
    agent = make_agent(model)
    history = _history("first")
    await agent.run(history, event_log)
    history.add_human("second")
    await agent.run(history, event_log)

    roles = [t.role for t in model.calls[1]]
    assert roles.count(Role.SYSTEM) == 1
    assert roles[0] is Role.SYSTEM


@pytest.mark.asyncio
async def test_unknown_tool_is_fed_back(make_agent, event_log) -> None:
    model = ScriptedModel(
        "Action: nonexistent_tool\nAction Input: {}", "Final Answer: recovered"
    )
    result = await make_agent(model).run(_history(), event_log)

    assert result.status is LoopStatus.DONE
    error = event_log.of_type("tool-error")[0]
    assert "Unknown tool" in error["error"]
    assert "calculator" in error["error"]
    assert "Unknown tool" in model.calls[1][-1].content


@pytest.mark.asyncio
async def test_tool_timeout_and_exception_become_tool_errors(make_agent, event_log) -> None:
    model = ScriptedModel(
        "Action: hang\nAction Input: {}",
        'Action: explode\nAction Input: {"text": "x"}',
        "Final Answer: gave up on tools",
    )
    result = await make_agent(model, tool_timeout=0.05).run(_history(), event_log)

    assert result.status is LoopStatus.DONE
    errors = [e["error"] for e in event_log.of_type("tool-error")]
    assert errors == ["Error: Tool hang timed out after 0.05 seconds", "Error: boom x"]
    assert not event_log.of_type("tool-result")


@pytest.mark.asyncio
async def test_tool_result_truncated_but_history_complete(make_agent, event_log) -> None:
    model = ScriptedModel("Action: long_output\nAction Input: {}", "Final Answer: ok")
    history = _history()
    await make_agent(model).run(history, event_log)

    result = event_log.of_type("tool-result")[0]["result"]
    assert len(result) == 2003
    assert result.endswith("...")
    assert "x" * 5000 in history.turns[2].content


@pytest.mark.asyncio
async def test_unrecognized_reply_is_streamed_as_is(make_agent, event_log) -> None:
    reply = "I think the answer is probably four."
    result = await make_agent(ScriptedModel(reply)).run(_history(), event_log)

    assert result.status is LoopStatus.DONE
    assert result.answer == reply
    streamed = "".join(e["content"] for e in event_log.of_type("stream-chunk"))
    assert streamed.strip() == reply


@pytest.mark.asyncio
async def test_iteration_cap(make_agent, event_log) -> None:
    """A model that never answers stops after exactly max_iterations calls."""
    model = ScriptedModel(CALC_ACTION, repeat_last=True)
    history = _history()

    result = await make_agent(model, max_iterations=10).run(history, event_log)

    assert result.status is LoopStatus.EXHAUSTED
    assert result.iterations == 10
    assert len(model.calls) == 10
    assert len(event_log.of_type("tool-call")) == 10
    assert event_log.events[-1] == {"type": "error", "content": EXHAUSTED_MESSAGE}
    assert not event_log.of_type("stream-start")


@pytest.mark.asyncio
async def test_answer_on_last_iteration_is_not_an_error(make_agent, event_log) -> None:
    model = ScriptedModel(CALC_ACTION, CALC_ACTION, "Final Answer: just in time")
    result = await make_agent(model, max_iterations=3).run(_history(), event_log)

    assert result.status is LoopStatus.DONE
    assert not event_log.of_type("error")


@pytest.mark.asyncio
async def test_empty_final_answer_streams_raw_reply(make_agent, event_log) -> None:
    """A bare "Final Answer:" ends the loop without running the earlier action."""
    reply = 'Action: calculator\nAction Input: {"expression": "1"}\nFinal Answer:'
    result = await make_agent(ScriptedModel(reply)).run(_history(), event_log)

    assert result.status is LoopStatus.DONE
    assert result.answer == reply
    assert not event_log.of_type("tool-call")


@pytest.mark.asyncio
async def test_zero_iterations_is_respected(make_agent, event_log) -> None:
    model = ScriptedModel()
    agent = make_agent(model, max_iterations=0, result_preview_chars=0)

    result = await agent.run(_history(), event_log)

    assert agent.max_iterations == 0
    assert agent.result_preview_chars == 0
    assert result.status is LoopStatus.EXHAUSTED
    assert model.calls == []
    assert event_log.events[-1] == {"type": "error", "content": EXHAUSTED_MESSAGE}


@pytest.mark.asyncio
async def test_model_failure_propagates(make_agent, event_log) -> None:
    model = ScriptedModel(ConnectionError("model offline"))
    with pytest.raises(ConnectionError):
        await make_agent(model).run(_history(), event_log)
