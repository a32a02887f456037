"""CLI client for the textact API."""

from __future__ import annotations

import logging
import time
from typing import (
    Any,
    Dict,
    Tuple,
    cast,
)

import httpx

from textact.common import (
    AnsiColors,
    colored_print,
)
from textact.config import settings

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# CLI Client
# ---------------------------------------------------------------------------
def get_user_message() -> Tuple[str, bool]:
    """
    Get a message from the user via standard input.

    Returns:
        Tuple of (user_input, success_flag)
        The success_flag is False if input couldn't be read (e.g., Ctrl+C)
    """
    try:
        user_input = input().strip()
        return user_input, True
    except (EOFError, KeyboardInterrupt):
        return "", False


def call_api(
    endpoint: str, data: Dict[str, Any], max_retries: int = 5, timeout: float = 600.0
) -> Dict[str, Any]:
    """Make a POST request to the API and return the response with retries."""
    api_url = f"http://localhost:{settings.API_PORT}{endpoint}"

    for attempt in range(max_retries):
        try:
            with httpx.Client(timeout=timeout) as client:
                response = client.post(api_url, json=data)
        except httpx.ConnectError as e:
            # On connection refused, retry with exponential backoff
            if attempt < max_retries - 1:
                retry_delay = 0.5 * (2**attempt)  # exponential backoff: 0.5s, 1s, 2s, 4s...
                logger.info(
                    "API not ready yet, retrying in %.1f seconds (attempt %d/%d)...",
                    retry_delay,
                    attempt + 1,
                    max_retries,
                )
                time.sleep(retry_delay)
                continue
            return {"error": f"Error connecting to API: {e}"}
        except httpx.HTTPError as e:
            logger.error("API request error: %s", str(e))
            return {"error": f"Error connecting to API: {e}"}

        if response.is_error:
            try:
                detail = response.json().get("detail", response.text)
            except ValueError:
                detail = response.text
            return {"error": f"API error: {detail}"}
        return cast(Dict[str, Any], response.json())

    # If we've exhausted all retries without returning
    return {"error": f"Failed to connect to API after {max_retries} attempts"}


def render_event(event: Dict[str, Any]) -> None:
    """Print one agent event the way a chat UI would show it."""
    kind = event.get("type")
    if kind == "agent-step":
        colored_print(f"  … {event.get('content', '')}", AnsiColors.GREY)
    elif kind == "classification":
        info = event.get("classification", {})
        colored_print(f"  [{info.get('type')}] {info.get('reasoning', '')}", AnsiColors.GREY)
    elif kind == "plan":
        for idx, step in enumerate(event.get("plan", []), start=1):
            colored_print(f"  {idx}. {step}", AnsiColors.MAGENTA)
    elif kind == "tool-call":
        colored_print(f"🔧 {event['toolName']} {event.get('toolArgs', {})}", AnsiColors.BLUE)
    elif kind == "tool-result":
        colored_print(f"[{event['toolName']}] {event['result']}", AnsiColors.GREEN)
    elif kind == "tool-error":
        colored_print(f"⚠️ [{event['toolName']}] {event['error']}", AnsiColors.RED)
    elif kind == "error":
        colored_print(f"⚠️ {event.get('content', '')}", AnsiColors.RED)


def run_cli() -> None:
    """Run the CLI client that communicates with the API."""
    # Create a new session
    session_response = call_api("/sessions", {})
    session_id = session_response.get("session_id")

    if not session_id:
        colored_print(
            f"⚠️ Failed to create a session: {session_response.get('error', '')}", AnsiColors.RED
        )
        return

    colored_print("\n🔮 textact shell - type 'exit' or 'quit' (or Ctrl+C) to exit", AnsiColors.GREEN)
    while True:
        colored_print("\n🧑 You: ", AnsiColors.BLUE, end="")
        user_msg, ok = get_user_message()
        if not ok:
            break  # Exit if user input couldn't be retrieved (e.g., Ctrl+C)
        if not user_msg:
            continue
        if user_msg.lower() in {"exit", "quit"}:
            break

        response = call_api("/agent", {"message": user_msg, "session_id": session_id})
        if "error" in response:
            colored_print(response["error"], AnsiColors.RED)
            continue

        for event in response.get("events", []):
            render_event(event)
        if response.get("reply"):
            colored_print(response["reply"], AnsiColors.YELLOW)


if __name__ == "__main__":
    run_cli()
