"""
Schema definitions for model <-> agent <-> transport messages.

These data models serve as the contract between the model client, the ReACT loop, the tools and
the transport layer.  We keep them separate from runtime logic so they can be imported anywhere
without side-effects.
"""

from enum import Enum
from typing import (
    Annotated,
    Any,
    Dict,
    List,
    Literal,
    Optional,
    Union,
)

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
)
from pydantic.alias_generators import to_camel


# ---------------------------------------------------------------------------
# Conversation turns
# ---------------------------------------------------------------------------
class Role(str, Enum):
    """Author of a conversation turn."""

    SYSTEM = "system"
    HUMAN = "human"
    AI = "ai"


class ConversationTurn(BaseModel):
    """A single message in the conversation history."""

    model_config = ConfigDict(frozen=True)

    role: Role
    content: str


# ---------------------------------------------------------------------------
# Parsed ReACT outcomes
# ---------------------------------------------------------------------------
class FinalAnswer(BaseModel):
    """The model has finished; *text* is what the user sees."""

    kind: Literal["final_answer"] = "final_answer"
    text: str


class ToolAction(BaseModel):
    """The model wants a tool to run before it continues."""

    kind: Literal["tool_action"] = "tool_action"
    thought: str = ""
    tool_name: str = Field(..., description="Tool name as written by the model")
    args: Dict[str, Any] = Field(default_factory=dict, description="Parsed Action Input")


class Unrecognized(BaseModel):
    """The model's text matched neither pattern."""

    kind: Literal["unrecognized"] = "unrecognized"
    text: str


ReactOutcome = Annotated[Union[FinalAnswer, ToolAction, Unrecognized], Field(discriminator="kind")]


class ToolObservation(BaseModel):
    """Result of running one tool call, ready to be fed back to the model."""

    text: str
    is_error: bool = False


class LoopStatus(str, Enum):
    """Terminal state of one ReACT loop run."""

    DONE = "done"
    EXHAUSTED = "exhausted"


class LoopResult(BaseModel):
    """What a finished loop run hands back to its caller."""

    status: LoopStatus
    answer: Optional[str] = None
    iterations: int = 0


class Classification(BaseModel):
    """Category assigned to a user request before the loop runs."""

    type: str = "general"
    reasoning: str = ""


# ---------------------------------------------------------------------------
# Events emitted towards the transport layer
# ---------------------------------------------------------------------------
class _Event(BaseModel):
    """Base for wire events; serialized with camelCase keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_wire(self) -> Dict[str, Any]:
        """Return the JSON-ready payload sent to clients."""
        return self.model_dump(by_alias=True)


class AgentStepEvent(_Event):
    type: Literal["agent-step"] = "agent-step"
    step: str
    content: str


class ClassificationEvent(_Event):
    type: Literal["classification"] = "classification"
    classification: Classification


class PlanEvent(_Event):
    type: Literal["plan"] = "plan"
    plan: List[str]


class ToolCallEvent(_Event):
    type: Literal["tool-call"] = "tool-call"
    tool_name: str
    tool_args: Dict[str, Any] = Field(default_factory=dict)
    tool_id: str


class ToolResultEvent(_Event):
    type: Literal["tool-result"] = "tool-result"
    tool_name: str
    result: str
    tool_id: str


class ToolErrorEvent(_Event):
    type: Literal["tool-error"] = "tool-error"
    tool_name: str
    error: str
    tool_id: str


class StreamStartEvent(_Event):
    type: Literal["stream-start"] = "stream-start"


class StreamChunkEvent(_Event):
    type: Literal["stream-chunk"] = "stream-chunk"
    content: str


class StreamEndEvent(_Event):
    type: Literal["stream-end"] = "stream-end"


class ErrorEvent(_Event):
    type: Literal["error"] = "error"
    content: str


class ClearedEvent(_Event):
    type: Literal["cleared"] = "cleared"
    content: bool = True


AgentEvent = Annotated[
    Union[
        AgentStepEvent,
        ClassificationEvent,
        PlanEvent,
        ToolCallEvent,
        ToolResultEvent,
        ToolErrorEvent,
        StreamStartEvent,
        StreamChunkEvent,
        StreamEndEvent,
        ErrorEvent,
        ClearedEvent,
    ],
    Field(discriminator="type"),
]
