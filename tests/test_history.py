"""Tests for the capped conversation history."""

import pytest

from textact.agent.history import ConversationHistory
from textact.core.schema import (
    ConversationTurn,
    Role,
)


def test_system_prompt_added_once() -> None:
    history = ConversationHistory()
    history.add_human("hi")

    assert history.ensure_system_prompt("rules")
    assert not history.ensure_system_prompt("other rules")
    assert [t.role for t in history] == [Role.SYSTEM, Role.HUMAN]
    assert history.turns[0].content == "rules"


def test_cap_evicts_oldest_non_system_turns() -> None:
    """The system turn survives eviction; the newest turns are kept in order."""
    history = ConversationHistory(max_length=5)
    history.add_human("first")
    history.ensure_system_prompt("rules")
    for i in range(10):
        history.add_human(f"msg {i}")

    assert len(history) == 5
    assert history.turns[0] == ConversationTurn(role=Role.SYSTEM, content="rules")
    assert [t.content for t in history.turns[1:]] == ["msg 6", "msg 7", "msg 8", "msg 9"]


def test_cap_without_system_turn() -> None:
    history = ConversationHistory(max_length=3)
    for i in range(5):
        history.add_ai(f"reply {i}")
    assert [t.content for t in history] == ["reply 2", "reply 3", "reply 4"]


def test_system_turn_cannot_be_appended() -> None:
    with pytest.raises(ValueError):
        ConversationHistory().append(ConversationTurn(role=Role.SYSTEM, content="x"))


def test_stats_and_clear() -> None:
    history = ConversationHistory()
    history.add_human("q")
    history.ensure_system_prompt("rules")
    history.add_ai("a")

    assert history.stats() == {"message_count": 3, "user_messages": 1, "ai_messages": 1}
    history.clear()
    assert len(history) == 0
    assert not history.has_system_prompt
