"""
System prompt that teaches the model the ReACT text protocol.

The model never sees native tool definitions; everything it knows about the tools comes from the
text built here.
"""

import json
import logging
import threading
from datetime import date
from typing import (
    Callable,
    Optional,
    Tuple,
)

from textact.tools import ToolRegistry

logger = logging.getLogger(__name__)


PROTOCOL_TEMPLATE = """\
You are an AI assistant that can use tools to help answer questions. You have access to the \
following tools:

{tool_descriptions}

IMPORTANT CONTEXT:
- Current date: {current_date}
- Current year: {current_year}
- When searching for recent information, use {current_year} in your queries, NOT previous years
- Use get_datetime tool if you need precise time information

To use a tool, you must follow this EXACT format:

Thought: [Your reasoning about what to do next]
Action: [tool_name]
Action Input: [JSON object with tool parameters]
PAUSE

After each Action, you will receive:
Observation: [result from the tool]

You can then continue with another Thought/Action/Action Input, or if you have enough \
information, provide your final answer:

Thought: I now have enough information to answer the question
Final Answer: [Your complete answer to the user's question]

IMPORTANT RULES:
1. Always start with a Thought
2. Use Action and Action Input when you need to use a tool
3. Always write "PAUSE" after Action Input to wait for the observation
4. Use valid JSON for Action Input (use double quotes, proper formatting)
5. After getting an Observation, think about what to do next
6. When you have enough information, provide a Final Answer
7. Do NOT make up information - use tools to get real data

Example:
User: What is the weather in Paris?

Thought: I need to search for current weather information in Paris
Action: {example_tool}
Action Input: {example_input}
PAUSE

[You will receive an Observation with search results]

Thought: Based on the search results, I have the weather information
Final Answer: According to current reports, the weather in Paris is...

Now, let's begin!"""


def _describe_tools(registry: ToolRegistry) -> str:
    blocks = []
    for tool in registry:
        input_format = {
            name: {k: v for k, v in info.items() if v not in ("", None)}
            for name, info in tool.input_schema.items()
        }
        blocks.append(
            f"- {tool.name}: {tool.description}\n"
            f"   Input format: {json.dumps(input_format, indent=2)}"
        )
    return "\n\n".join(blocks) if blocks else "(no tools available)"


def build_system_prompt(registry: ToolRegistry, today: date) -> str:
    """Render the protocol instructions for *registry* as of *today*."""
    if "web_search" in registry or not len(registry):
        example_tool = "web_search"
    else:
        example_tool = registry.names()[0]
    return PROTOCOL_TEMPLATE.format(
        tool_descriptions=_describe_tools(registry),
        current_date=f"{today:%B} {today.day}, {today.year}",
        current_year=today.year,
        example_tool=example_tool,
        example_input=json.dumps({"query": "Paris weather today"}),
    )


class PromptBuilder:
    """
    Caches the system prompt between requests.

    The cached text is reused until the registry's fingerprint or the calendar date changes, or
    until :meth:`invalidate` is called (e.g. after switching models).
    """

    def __init__(self, today: Callable[[], date] = date.today):
        self._today = today
        self._lock = threading.Lock()
        self._key: Optional[Tuple[object, date]] = None
        self._prompt: str = ""

    def get(self, registry: ToolRegistry) -> str:
        key = (registry.fingerprint, self._today())
        with self._lock:
            if key != self._key:
                logger.debug("Building system prompt for %d tools", len(registry))
                self._prompt = build_system_prompt(registry, key[1])
                self._key = key
            return self._prompt

    def invalidate(self) -> None:
        with self._lock:
            self._key = None
