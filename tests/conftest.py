"""Shared fixtures: a scripted model client and small tool registries."""

import asyncio
from typing import (
    List,
    Sequence,
    Tuple,
)

import pytest
from pydantic import (
    BaseModel,
    Field,
)

from textact.agent.agent_loop import ReactAgent
from textact.agent.llm_client import BaseChatModel
from textact.core.schema import ConversationTurn
from textact.tools import ToolRegistry
from textact.tools.builtin import (
    CalculatorArgs,
    calculator,
)


class ScriptedModel(BaseChatModel):
    """Replays canned replies; an Exception in the script is raised instead of returned."""

    provider = "scripted"
    default_model = "scripted-model"

    def __init__(self, *replies: "str | Exception", repeat_last: bool = False):
        super().__init__(temperature=0.0)
        self.replies = list(replies)
        self.repeat_last = repeat_last
        self.calls: List[Tuple[ConversationTurn, ...]] = []

    async def invoke(self, turns: Sequence[ConversationTurn]) -> str:
        self.calls.append(tuple(turns))
        idx = len(self.calls) - 1
        if idx >= len(self.replies):
            if not self.repeat_last:
                raise AssertionError("ScriptedModel ran out of replies")
            idx = len(self.replies) - 1
        reply = self.replies[idx]
        if isinstance(reply, Exception):
            raise reply
        return reply


class TextArgs(BaseModel):
    text: str = Field("", description="Any text")


@pytest.fixture
def registry() -> ToolRegistry:
    """Calculator plus a few tools with predictable failure modes."""
    reg = ToolRegistry()
    reg.tool("calculator", CalculatorArgs, progress="Calculating: {expression}...")(calculator)

    @reg.tool("hang", TextArgs)
    async def hang(text: str) -> str:
        """Never finishes."""
        await asyncio.Event().wait()
        return text

    @reg.tool("explode", TextArgs)
    async def explode(text: str) -> str:
        """Always fails."""
        raise RuntimeError(f"boom {text}".strip())

    @reg.tool("long_output", TextArgs)
    async def long_output(text: str) -> str:
        """Returns 5000 characters."""
        return "x" * 5000

    return reg


@pytest.fixture
def make_agent(registry):
    """Build a ReactAgent over *registry* with instant streaming and short timeouts."""

    def factory(model: BaseChatModel, **kwargs) -> ReactAgent:
        kwargs.setdefault("chunk_delay", 0.0)
        kwargs.setdefault("tool_timeout", 0.2)
        return ReactAgent(model=model, registry=registry, **kwargs)

    return factory


class EventLog:
    """Async event sink that records wire payloads."""

    def __init__(self) -> None:
        self.events: List[dict] = []

    async def __call__(self, event) -> None:
        self.events.append(event.to_wire())

    def of_type(self, kind: str) -> List[dict]:
        return [e for e in self.events if e["type"] == kind]

    @property
    def types(self) -> List[str]:
        return [e["type"] for e in self.events]


@pytest.fixture
def event_log() -> EventLog:
    return EventLog()
