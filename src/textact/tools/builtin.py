"""
Built-in tools shipped with textact.

:func:`build_default_registry` assembles the registry used by the API.  Shared state (search cache,
notes) is passed in so every registry can get its own isolated stores.
"""

import ast
import logging
import math
import operator
from datetime import datetime
from typing import (
    Any,
    Callable,
    Dict,
    Literal,
)

import httpx
from pydantic import (
    BaseModel,
    Field,
)

from textact.config import settings
from textact.tools import ToolRegistry
from textact.tools.stores import (
    NoteStore,
    SearchCache,
)

logger = logging.getLogger(__name__)

SERPER_URL = "https://google.serper.dev/search"


# ---------------------------------------------------------------------------
# Argument models
# ---------------------------------------------------------------------------
class CalculatorArgs(BaseModel):
    expression: str = Field(
        ..., description="The mathematical expression to evaluate (e.g., '2 + 2', '10 * 5 - 3')"
    )


class WebSearchArgs(BaseModel):
    query: str = Field(..., description="The search query")


class TakeNoteArgs(BaseModel):
    key: str = Field(..., description="A unique identifier for this note")
    content: str = Field(..., description="The content to save")


class GetNoteArgs(BaseModel):
    key: str = Field(..., description="The key of the note to retrieve")


class ListNotesArgs(BaseModel):
    pass


class DatetimeArgs(BaseModel):
    format: Literal["full", "date", "time"] = Field(
        "full", description="What information to return: full, date, or time"
    )


# ---------------------------------------------------------------------------
# Calculator
# ---------------------------------------------------------------------------
_BIN_OPS: Dict[type, Callable[[Any, Any], Any]] = {
    ast.Add: operator.add,
    ast.Sub: operator.sub,
    ast.Mult: operator.mul,
    ast.Div: operator.truediv,
    ast.FloorDiv: operator.floordiv,
    ast.Mod: operator.mod,
    ast.Pow: operator.pow,
}
_UNARY_OPS: Dict[type, Callable[[Any], Any]] = {ast.UAdd: operator.pos, ast.USub: operator.neg}
_FUNCS: Dict[str, Callable[..., Any]] = {
    "abs": abs,
    "round": round,
    "min": min,
    "max": max,
    "sqrt": math.sqrt,
    "log": math.log,
    "sin": math.sin,
    "cos": math.cos,
    "tan": math.tan,
}
_CONSTS = {"pi": math.pi, "e": math.e}
_MAX_EXPONENT = 10_000


def _eval_node(node: ast.AST) -> Any:
    if isinstance(node, ast.Expression):
        return _eval_node(node.body)
    if isinstance(node, ast.Constant) and isinstance(node.value, (int, float)):
        return node.value
    if isinstance(node, ast.BinOp) and type(node.op) in _BIN_OPS:
        left, right = _eval_node(node.left), _eval_node(node.right)
        if isinstance(node.op, ast.Pow) and abs(right) > _MAX_EXPONENT:
            raise ValueError("exponent too large")
        return _BIN_OPS[type(node.op)](left, right)
    if isinstance(node, ast.UnaryOp) and type(node.op) in _UNARY_OPS:
        return _UNARY_OPS[type(node.op)](_eval_node(node.operand))
    if isinstance(node, ast.Name) and node.id in _CONSTS:
        return _CONSTS[node.id]
    if (
        isinstance(node, ast.Call)
        and isinstance(node.func, ast.Name)
        and node.func.id in _FUNCS
        and not node.keywords
    ):
        return _FUNCS[node.func.id](*(_eval_node(arg) for arg in node.args))
    raise ValueError(f"unsupported syntax: {ast.dump(node)[:40]}")


def evaluate_expression(expression: str) -> Any:
    """Evaluate an arithmetic expression without ``eval``."""
    return _eval_node(ast.parse(expression.strip(), mode="eval"))


def calculator(expression: str) -> str:
    """Perform mathematical calculations. Supports basic operations (+, -, *, /) and more complex expressions."""
    try:
        result = evaluate_expression(expression)
    except (SyntaxError, ValueError, TypeError, ZeroDivisionError, OverflowError) as exc:
        return f"Error evaluating expression: {exc}"
    return f"The result of {expression} is {result}"


def get_datetime(format: str = "full") -> str:  # pylint: disable=redefined-builtin
    """Get the current date and time information."""
    now = datetime.now().astimezone()
    if format == "date":
        return now.strftime("%Y-%m-%d")
    if format == "time":
        return now.strftime("%H:%M:%S %Z")
    return now.strftime("%A, %B %d, %Y %H:%M:%S %Z")


# ---------------------------------------------------------------------------
# Web search
# ---------------------------------------------------------------------------
def _format_serper_results(query: str, payload: Dict[str, Any], limit: int = 5) -> str:
    lines = [f'Search results for "{query}":']
    answer_box = payload.get("answerBox") or {}
    answer = answer_box.get("answer") or answer_box.get("snippet")
    if answer:
        lines.append(f"Answer: {answer}")
    for idx, item in enumerate(payload.get("organic", [])[:limit], start=1):
        lines.append(f"{idx}. {item.get('title', '')}\n   {item.get('link', '')}\n   {item.get('snippet', '')}")
    if len(lines) == 1:
        lines.append("No results found.")
    return "\n".join(lines)


# ---------------------------------------------------------------------------
# Registry assembly
# ---------------------------------------------------------------------------
def build_default_registry(
    notes: NoteStore | None = None,
    search_cache: SearchCache | None = None,
    serper_api_key: str | None = None,
    http_timeout: float = 15.0,
    transport: httpx.AsyncBaseTransport | None = None,
) -> ToolRegistry:
    """
    Create a registry holding every built-in tool.

    Parameters
    ----------
    notes:
        Store backing the note tools.  A fresh one is created if omitted.
    search_cache:
        Cache for ``web_search`` results.  A fresh one is created if omitted.
    serper_api_key:
        Key for the Serper search API.  Without one ``web_search`` returns mock results.
    http_timeout:
        Timeout for outgoing search requests, in seconds.
    transport:
        Optional httpx transport for the search client (tests use ``httpx.MockTransport``).
    """
    notes = notes if notes is not None else NoteStore(max_notes=settings.MAX_NOTES)
    if search_cache is None:
        search_cache = SearchCache(max_size=settings.SEARCH_CACHE_SIZE, ttl=settings.SEARCH_CACHE_TTL)

    registry = ToolRegistry()
    registry.tool("calculator", CalculatorArgs, progress="Calculating: {expression}...")(calculator)
    registry.tool("get_datetime", DatetimeArgs, progress="Getting current date and time...")(
        get_datetime
    )

    @registry.tool("web_search", WebSearchArgs, progress='Searching the web for: "{query}"...')
    async def web_search(query: str) -> str:
        """Search the web for information. Use this when you need current information or facts."""
        cached = search_cache.get(query)
        if cached is not None:
            logger.debug("Search cache hit for '%s'", query)
            return cached

        if not serper_api_key:
            return (
                f'[Mock] Search results for "{query}":\n'
                f"1. Recent information about {query}\n"
                f"2. Latest developments in {query}\n"
                f"3. Expert opinions on {query}\n\n"
                "Note: no SERPER_API_KEY configured, these results are placeholders."
            )

        try:
            async with httpx.AsyncClient(timeout=http_timeout, transport=transport) as client:
                resp = await client.post(
                    SERPER_URL,
                    json={"q": query, "num": 5},
                    headers={"X-API-KEY": serper_api_key},
                )
                resp.raise_for_status()
                payload = resp.json()
        except httpx.HTTPError as e:
            logger.error("Search request error: %s", str(e))
            return f"Error searching the web: {str(e)}"

        result = _format_serper_results(query, payload)
        search_cache.put(query, result)
        return result

    @registry.tool("take_note", TakeNoteArgs, progress='Saving note: "{key}"...')
    async def take_note(key: str, content: str) -> str:
        """Save important information for later reference. Use this to remember key facts, decisions, or context."""
        notes.set(key, content)
        return f'Note saved with key "{key}"'

    @registry.tool("get_note", GetNoteArgs, progress='Retrieving note: "{key}"...')
    async def get_note(key: str) -> str:
        """Retrieve a previously saved note by its key."""
        note = notes.get(key)
        if note is None:
            return f'No note found with key "{key}"'
        return f'Note "{key}": {note}'

    @registry.tool("list_notes", ListNotesArgs, progress="Listing all saved notes...")
    async def list_notes() -> str:
        """List all saved notes and their keys."""
        items = notes.items()
        if not items:
            return "No notes saved yet."
        lines = [f"- {key}: {content[:50]}{'...' if len(content) > 50 else ''}" for key, content in items]
        return "Saved notes:\n" + "\n".join(lines)

    return registry
