"""Tests for the registry, the built-in tools and their stores."""

import re

import httpx
import pytest

from textact.tools import ToolRegistry
from textact.tools.builtin import (
    CalculatorArgs,
    build_default_registry,
    calculator,
)
from textact.tools.stores import (
    NoteStore,
    SearchCache,
)


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------
def test_duplicate_registration_rejected() -> None:
    registry = ToolRegistry()
    registry.tool("calculator", CalculatorArgs)(calculator)
    with pytest.raises(ValueError, match="already registered"):
        registry.tool("calculator", CalculatorArgs)(calculator)


def test_describe_call_uses_progress_template(registry: ToolRegistry) -> None:
    assert registry.describe_call("calculator", {"expression": "1+1"}) == "Calculating: 1+1..."
    assert registry.describe_call("calculator", {}) == "Executing calculator..."
    assert registry.describe_call("hang", {}) == "Executing hang..."


def test_input_schema_from_args_model() -> None:
    schema = build_default_registry().get("take_note").input_schema  # type: ignore[union-attr]
    assert schema["key"] == {
        "type": "string",
        "description": "A unique identifier for this note",
        "required": True,
    }


# ---------------------------------------------------------------------------
# Calculator / datetime
# ---------------------------------------------------------------------------
@pytest.mark.parametrize(
    "expression, expected",
    [
        ("2 + 2", "The result of 2 + 2 is 4"),
        ("10 * 5 - 3", "The result of 10 * 5 - 3 is 47"),
        ("-(3 ** 2) + sqrt(16)", "The result of -(3 ** 2) + sqrt(16) is -5.0"),
    ],
)
def test_calculator(expression: str, expected: str) -> None:
    assert calculator(expression) == expected


@pytest.mark.parametrize("expression", ["__import__('os')", "1/0", "2 ** 100000", "2 +"])
def test_calculator_rejects(expression: str) -> None:
    assert calculator(expression).startswith("Error evaluating expression:")


@pytest.mark.asyncio
async def test_tool_validates_arguments() -> None:
    tool = build_default_registry().get("calculator")
    assert tool is not None
    assert await tool.execute({}) == "Invalid arguments for tool 'calculator': expression: Field required"
    assert await tool.execute({"expression": "6*7"}) == "The result of 6*7 is 42"


@pytest.mark.asyncio
async def test_datetime_formats() -> None:
    tool = build_default_registry().get("get_datetime")
    assert tool is not None
    assert re.fullmatch(r"\d{4}-\d{2}-\d{2}", await tool.execute({"format": "date"}))
    assert (await tool.execute({"format": "weekday"})).startswith("Invalid arguments")


# ---------------------------------------------------------------------------
# Notes
# ---------------------------------------------------------------------------
@pytest.mark.asyncio
async def test_note_tools_share_injected_store() -> None:
    notes = NoteStore()
    registry = build_default_registry(notes=notes)
    take, get, listing = (registry.get(n) for n in ("take_note", "get_note", "list_notes"))

    assert await listing.execute({}) == "No notes saved yet."  # type: ignore[union-attr]
    assert await take.execute({"key": "k", "content": "y" * 60}) == 'Note saved with key "k"'  # type: ignore[union-attr]
    assert await get.execute({"key": "k"}) == f'Note "k": {"y" * 60}'  # type: ignore[union-attr]
    assert await get.execute({"key": "missing"}) == 'No note found with key "missing"'  # type: ignore[union-attr]
    assert await listing.execute({}) == f"Saved notes:\n- k: {'y' * 50}..."  # type: ignore[union-attr]
    assert notes.get("k") == "y" * 60


@pytest.mark.asyncio
async def test_registries_do_not_share_notes() -> None:
    first, second = build_default_registry(), build_default_registry()
    await first.get("take_note").execute({"key": "a", "content": "b"})  # type: ignore[union-attr]
    assert await second.get("get_note").execute({"key": "a"}) == 'No note found with key "a"'  # type: ignore[union-attr]


def test_note_store_evicts_oldest() -> None:
    notes = NoteStore(max_notes=2)
    for key in ("a", "b", "c"):
        notes.set(key, key.upper())
    assert notes.items() == [("b", "B"), ("c", "C")]


# ---------------------------------------------------------------------------
# Search cache / web search
# ---------------------------------------------------------------------------
def test_search_cache_ttl() -> None:
    now = [0.0]
    cache = SearchCache(max_size=10, ttl=60, clock=lambda: now[0])
    cache.put("Paris Weather", "sunny")

    assert cache.get("  paris   weather ") == "sunny"
    now[0] = 61.0
    assert cache.get("paris weather") is None
    assert len(cache) == 0


def test_search_cache_lru_eviction() -> None:
    cache = SearchCache(max_size=2)
    cache.put("a", "1")
    cache.put("b", "2")
    cache.get("a")  # a becomes most recent
    cache.put("c", "3")

    assert cache.get("b") is None
    assert cache.get("a") == "1"
    assert cache.get("c") == "3"


@pytest.mark.asyncio
async def test_web_search_without_key_returns_mock() -> None:
    tool = build_default_registry().get("web_search")
    result = await tool.execute({"query": "langgraph"})  # type: ignore[union-attr]
    assert result.startswith('[Mock] Search results for "langgraph"')


@pytest.mark.asyncio
async def test_web_search_calls_serper_and_caches() -> None:
    requests = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(
            200,
            json={
                "answerBox": {"answer": "18°C"},
                "organic": [{"title": "Forecast", "link": "https://example.com", "snippet": "Mild"}],
            },
        )

    cache = SearchCache()
    registry = build_default_registry(
        search_cache=cache, serper_api_key="secret", transport=httpx.MockTransport(handler)
    )
    tool = registry.get("web_search")

    first = await tool.execute({"query": "paris weather"})  # type: ignore[union-attr]
    second = await tool.execute({"query": "Paris weather"})  # type: ignore[union-attr]

    assert first == second
    assert "Answer: 18°C" in first
    assert "1. Forecast\n   https://example.com\n   Mild" in first
    assert len(requests) == 1
    assert requests[0].headers["X-API-KEY"] == "secret"


@pytest.mark.asyncio
async def test_web_search_http_error_is_a_string() -> None:
    registry = build_default_registry(
        serper_api_key="secret", transport=httpx.MockTransport(lambda r: httpx.Response(500))
    )
    result = await registry.get("web_search").execute({"query": "x"})  # type: ignore[union-attr]
    assert result.startswith("Error searching the web:")
