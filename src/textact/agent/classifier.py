"""
Request classification and lightweight planning.

Both steps ask the model for a small JSON answer and degrade quietly: classification falls back
to keyword rules, planning to an empty plan.
"""

import json
import logging
import re
from typing import List

from textact.agent.llm_client import BaseChatModel
from textact.core.schema import (
    Classification,
    ConversationTurn,
    Role,
)

logger = logging.getLogger(__name__)

CATEGORIES = ("code", "calculation", "research", "creative", "general")
PLANNED_CATEGORIES = ("code", "research", "creative")
MAX_PLAN_STEPS = 5

CLASSIFICATION_PROMPT = """\
You are a request classifier. Analyze the user's message and classify it into ONE of these \
categories:

Categories:
1. "code" - Questions about code, debugging, programming concepts, frameworks, libraries, \
memory leaks, performance issues
2. "calculation" - Math problems, arithmetic, computations
3. "research" - Looking up information, finding facts, searching for data
4. "creative" - Writing stories, poems, creative content
5. "general" - Casual conversation, greetings, general questions

User message: "{message}"

Respond in this EXACT JSON format (no markdown, no extra text):
{{"type": "category_name", "reasoning": "brief explanation why"}}"""

PLANNING_PROMPT = """\
You are a task planner. Break down this request into 3-5 simple, actionable steps.

User request: "{message}"
Request type: {request_type}

Respond with ONLY a JSON array of steps (no markdown, no extra text):
["Step 1", "Step 2", "Step 3"]"""

_MATH_RE = re.compile(r"\d+\s*[+\-*/]\s*\d+")


def keyword_classification(message: str) -> Classification:
    """Classify *message* with simple keyword rules."""
    lower = message.lower()
    if any(word in lower for word in ("code", "debug", "memory", "python", "function")):
        return Classification(type="code", reasoning="Contains programming-related keywords")
    if "calculate" in lower or "math" in lower or _MATH_RE.search(lower):
        return Classification(type="calculation", reasoning="Contains math-related keywords")
    if any(word in lower for word in ("research", "find", "search")):
        return Classification(type="research", reasoning="Contains research-related keywords")
    if any(word in lower for word in ("write", "create", "poem", "story")):
        return Classification(type="creative", reasoning="Contains creative-related keywords")
    return Classification(type="general", reasoning="Default classification")


async def classify_request(model: BaseChatModel, message: str) -> Classification:
    """Ask *model* for a category; fall back to :func:`keyword_classification` on any failure."""
    prompt = CLASSIFICATION_PROMPT.format(message=message)
    try:
        content = (await model.invoke([ConversationTurn(role=Role.HUMAN, content=prompt)])).strip()
        match = re.search(r"\{[\s\S]*\}", content)
        if match:
            parsed = json.loads(match.group(0))
            if parsed.get("type") in CATEGORIES:
                return Classification(
                    type=parsed["type"], reasoning=str(parsed.get("reasoning", ""))
                )
            logger.debug("Classifier returned unknown category: %s", parsed.get("type"))
    except Exception as exc:  # pylint: disable=broad-except
        logger.info("Classification fallback: %s", exc)
    return keyword_classification(message)


async def create_plan(model: BaseChatModel, message: str, request_type: str) -> List[str]:
    """Return up to five plan steps for complex request types, else an empty list."""
    if request_type not in PLANNED_CATEGORIES:
        return []

    prompt = PLANNING_PROMPT.format(message=message, request_type=request_type)
    try:
        content = (await model.invoke([ConversationTurn(role=Role.HUMAN, content=prompt)])).strip()
        match = re.search(r"\[[\s\S]*\]", content)
        if match:
            steps = json.loads(match.group(0))
            if isinstance(steps, list):
                return [str(step) for step in steps][:MAX_PLAN_STEPS]
    except Exception as exc:  # pylint: disable=broad-except
        logger.info("Planning fallback: %s", exc)
    return []
