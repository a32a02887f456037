"""Ordered, length-capped conversation history for one session."""

import logging
from typing import (
    Dict,
    Iterator,
    List,
    Tuple,
)

from textact.core.schema import (
    ConversationTurn,
    Role,
)

logger = logging.getLogger(__name__)


class ConversationHistory:
    """
    The turn sequence sent to the model on every iteration.

    Turns only ever get appended.  When more than *max_length* turns are held, the oldest
    non-system turns are dropped; the system turn, if any, always stays first.
    """

    def __init__(self, max_length: int = 50):
        if max_length < 2:
            raise ValueError("max_length must leave room for a system turn and one more turn")
        self.max_length = max_length
        self._turns: List[ConversationTurn] = []

    # ------------------------------------------------------------------ #
    # Mutation
    # ------------------------------------------------------------------ #
    def append(self, turn: ConversationTurn) -> None:
        if turn.role is Role.SYSTEM:
            raise ValueError("use ensure_system_prompt() to add the system turn")
        self._turns.append(turn)
        self._evict()

    def add_human(self, content: str) -> None:
        self.append(ConversationTurn(role=Role.HUMAN, content=content))

    def add_ai(self, content: str) -> None:
        self.append(ConversationTurn(role=Role.AI, content=content))

    def ensure_system_prompt(self, prompt: str) -> bool:
        """Put *prompt* in front of the history unless a system turn already exists."""
        if self.has_system_prompt:
            return False
        self._turns.insert(0, ConversationTurn(role=Role.SYSTEM, content=prompt))
        self._evict()
        return True

    def clear(self) -> None:
        self._turns.clear()

    def _evict(self) -> None:
        overflow = len(self._turns) - self.max_length
        if overflow <= 0:
            return
        start = 1 if self.has_system_prompt else 0
        del self._turns[start : start + overflow]
        logger.debug("Evicted %d oldest turn(s) from history", overflow)

    # ------------------------------------------------------------------ #
    # Inspection
    # ------------------------------------------------------------------ #
    @property
    def has_system_prompt(self) -> bool:
        return bool(self._turns) and self._turns[0].role is Role.SYSTEM

    @property
    def turns(self) -> Tuple[ConversationTurn, ...]:
        return tuple(self._turns)

    def stats(self) -> Dict[str, int]:
        """Message counts for the session stats endpoint."""
        return {
            "message_count": len(self._turns),
            "user_messages": sum(1 for t in self._turns if t.role is Role.HUMAN),
            "ai_messages": sum(1 for t in self._turns if t.role is Role.AI),
        }

    def __len__(self) -> int:
        return len(self._turns)

    def __iter__(self) -> Iterator[ConversationTurn]:
        return iter(self._turns)
