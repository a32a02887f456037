"""Per-connection sessions and the message pipeline around the ReACT loop."""

from __future__ import annotations

import asyncio
import logging
import uuid
from dataclasses import (
    dataclass,
    field,
)
from datetime import (
    datetime,
    timezone,
)
from typing import (
    Dict,
    List,
)

from textact.agent.agent_loop import (
    EventSink,
    ReactAgent,
)
from textact.agent.classifier import (
    PLANNED_CATEGORIES,
    classify_request,
    create_plan,
)
from textact.agent.history import ConversationHistory
from textact.config import settings
from textact.core.schema import (
    AgentStepEvent,
    ClassificationEvent,
    ErrorEvent,
    LoopResult,
    PlanEvent,
)

logger = logging.getLogger(__name__)


@dataclass
class Session:
    """One conversation: its history plus a lock so its messages run one at a time."""

    session_id: str
    history: ConversationHistory
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)


class SessionStore:
    """In-memory session storage (could be moved to a database)."""

    def __init__(self, max_history_length: int | None = None):
        self._max_history_length = max_history_length or settings.MAX_HISTORY_LENGTH
        self._sessions: Dict[str, Session] = {}

    def create(self) -> Session:
        session_id = str(uuid.uuid4())
        session = Session(
            session_id=session_id,
            history=ConversationHistory(max_length=self._max_history_length),
        )
        self._sessions[session_id] = session
        logger.info("New chat session: %s", session_id)
        return session

    def get(self, session_id: str | None) -> Session | None:
        if session_id is None:
            return None
        return self._sessions.get(session_id)

    def get_or_create(self, session_id: str | None = None) -> Session:
        """Get existing session or create a new one."""
        return self.get(session_id) or self.create()

    def delete(self, session_id: str) -> bool:
        removed = self._sessions.pop(session_id, None) is not None
        if removed:
            logger.info("Session ended: %s", session_id)
        return removed

    def ids(self) -> List[str]:
        return list(self._sessions)

    def __len__(self) -> int:
        return len(self._sessions)


async def handle_message(
    session: Session,
    content: str,
    agent: ReactAgent,
    emit: EventSink,
    classify: bool | None = None,
) -> LoopResult | None:
    """
    Run one user message through classification, planning and the ReACT loop.

    Any exception (typically the model client failing) is reported as an ``error`` event and
    ``None`` is returned; the session remains usable for the next message.
    """
    if classify is None:
        classify = settings.CLASSIFY_REQUESTS

    async with session.lock:
        session.history.add_human(content)
        try:
            if classify:
                await emit(
                    AgentStepEvent(step="classification", content="Analyzing request type...")
                )
                classification = await classify_request(agent.model, content)
                await emit(ClassificationEvent(classification=classification))

                if classification.type in PLANNED_CATEGORIES:
                    await emit(AgentStepEvent(step="planning", content="Creating execution plan..."))
                    plan = await create_plan(agent.model, content, classification.type)
                    if plan:
                        await emit(PlanEvent(plan=plan))
                        await emit(AgentStepEvent(step="execution", content="Executing plan..."))

            return await agent.run(session.history, emit)
        except Exception as exc:  # pylint: disable=broad-except
            logger.exception("Message handling failed for session %s", session.session_id)
            await emit(ErrorEvent(content=f"Error: {exc}"))
            return None
