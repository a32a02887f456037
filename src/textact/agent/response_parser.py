"""
Parser for the model's ReACT-style replies.

A reply is expected to look like::

    Thought: I should look this up
    Action: web_search
    Action Input: {"query": "..."}
    PAUSE

or, when the model is done::

    Thought: I know the answer
    Final Answer: ...

Anything else is returned as :class:`Unrecognized` so the caller can show it as-is.
"""

import json
import logging
import re
from typing import (
    Any,
    Dict,
)

from textact.core.schema import (
    FinalAnswer,
    ReactOutcome,
    ToolAction,
    Unrecognized,
)

logger = logging.getLogger(__name__)

_FINAL_ANSWER_RE = re.compile(r"Final Answer:\s*(.*)", re.IGNORECASE | re.DOTALL)
_ACTION_RE = re.compile(r"Action:\s*(\w+)", re.IGNORECASE)
_THOUGHT_RE = re.compile(r"Thought:[ \t]*([^\n]*)", re.IGNORECASE)
_ACTION_INPUT_RE = re.compile(r"Action Input:", re.IGNORECASE)
# Closing quote is optional so truncated values like {"query": "weather} are still rescued.
_QUERY_RESCUE_RE = re.compile(r'"query"\s*:\s*"([^"\n}]+)')


def extract_action_input(text: str) -> Dict[str, Any]:
    """
    Pull the JSON object that follows ``Action Input:`` out of *text*.

    The object is taken from the first ``{`` to the first ``}`` after it, so nested objects are
    cut short.  When that slice is not valid JSON, a lone ``"query"`` value is salvaged; failing
    that the result is an empty dict.
    """
    marker = _ACTION_INPUT_RE.search(text)
    if marker is None:
        return {}

    start = text.find("{", marker.end())
    if start < 0:
        return {}
    end = text.find("}", start)
    candidate = text[start : end + 1] if end >= 0 else text[start:]

    try:
        parsed = json.loads(candidate)
        if isinstance(parsed, dict):
            return parsed
    except json.JSONDecodeError:
        logger.warning("Failed to parse action input: %s", candidate)

    rescued = _QUERY_RESCUE_RE.search(candidate)
    if rescued:
        return {"query": rescued.group(1).strip()}
    return {}


def parse_react_response(text: str) -> ReactOutcome:
    """
    Classify one raw model reply.

    ``Final Answer:`` wins over ``Action:`` when both are present.  Tool names are not checked
    against the registry here.
    """
    logger.debug("Parsing ReACT response: %s", text[:200])

    final = _FINAL_ANSWER_RE.search(text)
    if final:
        return FinalAnswer(text=final.group(1).strip())

    action = _ACTION_RE.search(text)
    if not action:
        logger.debug("No action found in response")
        return Unrecognized(text=text)

    thought = _THOUGHT_RE.search(text)
    return ToolAction(
        thought=thought.group(1).strip() if thought else "",
        tool_name=action.group(1).strip(),
        args=extract_action_input(text),
    )
