"""ReACT orchestration loop for textact."""

from __future__ import annotations

import asyncio
import logging
from typing import (
    Awaitable,
    Callable,
    List,
)

from textact.agent.history import ConversationHistory
from textact.agent.llm_client import BaseChatModel
from textact.agent.prompt_builder import PromptBuilder
from textact.agent.response_parser import parse_react_response
from textact.agent.tool_executor import execute_action
from textact.config import settings
from textact.core.schema import (
    AgentEvent,
    AgentStepEvent,
    ErrorEvent,
    FinalAnswer,
    LoopResult,
    LoopStatus,
    StreamChunkEvent,
    StreamEndEvent,
    StreamStartEvent,
    ToolAction,
    ToolCallEvent,
    ToolErrorEvent,
    ToolResultEvent,
)
from textact.tools import ToolRegistry

logger = logging.getLogger(__name__)

EventSink = Callable[[AgentEvent], Awaitable[None]]

EXHAUSTED_MESSAGE = "Maximum iteration limit reached. Please try rephrasing your question."


def chunk_words(text: str, words_per_chunk: int) -> List[str]:
    """Split *text* on spaces into chunks of *words_per_chunk* words, each with a trailing space."""
    words = text.split(" ")
    return [
        " ".join(words[i : i + words_per_chunk]) + " "
        for i in range(0, len(words), words_per_chunk)
    ]


def preview(text: str, limit: int) -> str:
    """Cap *text* at *limit* characters, marking the cut with an ellipsis."""
    if len(text) <= limit:
        return text
    return text[:limit] + "..."


class ReactAgent:
    """
    Drives one model through the Thought/Action/Observation cycle.

    One instance is shared by all sessions; per-request state lives in the history passed to
    :meth:`run` and in local variables.
    """

    def __init__(
        self,
        model: BaseChatModel,
        registry: ToolRegistry,
        prompt_builder: PromptBuilder | None = None,
        max_iterations: int | None = None,
        tool_timeout: float | None = None,
        result_preview_chars: int | None = None,
        chunk_words: int | None = None,
        chunk_delay: float | None = None,
    ):
        self.model = model
        self.registry = registry
        self.prompt_builder = prompt_builder or PromptBuilder()
        self.max_iterations = settings.MAX_ITERATIONS if max_iterations is None else max_iterations
        self.tool_timeout = settings.TOOL_TIMEOUT_SECONDS if tool_timeout is None else tool_timeout
        self.result_preview_chars = (
            settings.TOOL_RESULT_PREVIEW_CHARS if result_preview_chars is None else result_preview_chars
        )
        self.chunk_words = chunk_words or settings.STREAM_CHUNK_WORDS
        self.chunk_delay = settings.STREAM_CHUNK_DELAY if chunk_delay is None else chunk_delay

    def set_model(self, model: BaseChatModel) -> None:
        """Swap the model client; the system prompt is rebuilt on next use."""
        self.model = model
        self.prompt_builder.invalidate()

    # ------------------------------------------------------------------ #
    # Output helpers
    # ------------------------------------------------------------------ #
    async def _stream_answer(self, text: str, emit: EventSink) -> None:
        await emit(StreamStartEvent())
        for chunk in chunk_words(text, self.chunk_words):
            await emit(StreamChunkEvent(content=chunk))
            if self.chunk_delay:
                await asyncio.sleep(self.chunk_delay)
        await emit(StreamEndEvent())

    async def _act(
        self, action: ToolAction, raw: str, iteration: int, history: ConversationHistory, emit: EventSink
    ) -> None:
        tool_id = f"react-{iteration}"
        logger.info("Thought: %s", action.thought)
        logger.info("Action: %s %s", action.tool_name, action.args)

        await emit(ToolCallEvent(tool_name=action.tool_name, tool_args=action.args, tool_id=tool_id))
        await emit(
            AgentStepEvent(
                step="executing",
                content=self.registry.describe_call(action.tool_name, action.args),
            )
        )

        observation = await execute_action(action, self.registry, timeout=self.tool_timeout)
        logger.info("Observation (%d chars): %s", len(observation.text), observation.text[:200])

        # The model gets the full observation; only the event is truncated.
        history.add_ai(f"{raw}\n\nObservation: {observation.text}\n\n")

        if observation.is_error:
            await emit(
                ToolErrorEvent(tool_name=action.tool_name, error=observation.text, tool_id=tool_id)
            )
        else:
            await emit(
                ToolResultEvent(
                    tool_name=action.tool_name,
                    result=preview(observation.text, self.result_preview_chars),
                    tool_id=tool_id,
                )
            )
            await emit(AgentStepEvent(step="thinking", content="Processing results..."))

    # ------------------------------------------------------------------ #
    # Main loop
    # ------------------------------------------------------------------ #
    async def run(self, history: ConversationHistory, emit: EventSink) -> LoopResult:
        """
        Answer the latest human turn in *history*.

        Events are pushed to *emit* as they happen.  Tool failures and malformed replies are
        handled inside the loop; only exceptions raised by the model client escape.

        Returns
        -------
        LoopResult
            ``DONE`` with the answer text, or ``EXHAUSTED`` once ``max_iterations`` tool calls
            went by without a final answer.
        """
        if history.ensure_system_prompt(self.prompt_builder.get(self.registry)):
            logger.debug("Added system prompt to new conversation")

        await emit(AgentStepEvent(step="thinking", content="Analyzing request..."))

        iteration = 0
        while iteration < self.max_iterations:
            iteration += 1
            logger.info("=== ReACT iteration %d/%d ===", iteration, self.max_iterations)

            raw = await self.model.invoke(history.turns)
            logger.debug("Model response: %s", raw[:300])
            outcome = parse_react_response(raw)

            if isinstance(outcome, ToolAction):
                await self._act(outcome, raw, iteration, history, emit)
                continue

            # FinalAnswer, or Unrecognized text shown as-is
            answer = outcome.text if isinstance(outcome, FinalAnswer) and outcome.text else raw
            logger.info("Final answer received after %d iteration(s)", iteration)
            history.add_ai(raw)
            await self._stream_answer(answer, emit)
            return LoopResult(status=LoopStatus.DONE, answer=answer, iterations=iteration)

        logger.warning("ReACT loop exhausted after %d iterations", iteration)
        await emit(ErrorEvent(content=EXHAUSTED_MESSAGE))
        return LoopResult(status=LoopStatus.EXHAUSTED, iterations=iteration)
