"""Dispatches parsed ReACT actions to the tool registry and turns every outcome into text."""

import asyncio
import logging

from textact.config import settings
from textact.core.schema import (
    ToolAction,
    ToolObservation,
)
from textact.tools import ToolRegistry

logger = logging.getLogger(__name__)


class ToolExecutionError(RuntimeError):
    """Raised when a requested tool cannot run or fails."""


def _log_abandoned(task: "asyncio.Future[str]") -> None:
    if not task.cancelled() and task.exception() is not None:
        logger.debug("Abandoned tool task failed: %r", task.exception())


async def _run_tool(action: ToolAction, registry: ToolRegistry, timeout: float) -> str:
    """
    Look up the tool named by *action* and run it, bounded by *timeout* seconds.

    Raises
    ------
    ToolExecutionError
        If the tool is missing, times out, or its invocation raises an exception.
    """
    tool = registry.get(action.tool_name)
    if tool is None:
        available = ", ".join(registry.names())
        raise ToolExecutionError(f'Unknown tool "{action.tool_name}". Available tools: {available}')

    logger.debug("Executing tool '%s' with args=%s", action.tool_name, action.args)
    task = asyncio.ensure_future(tool.execute(action.args))
    try:
        done, _ = await asyncio.wait({task}, timeout=timeout)
    except asyncio.CancelledError:
        task.cancel()
        raise

    if not done:
        # Cancellation is requested but not awaited; a tool that is slow to unwind keeps
        # running in the background.
        task.cancel()
        task.add_done_callback(_log_abandoned)
        logger.warning("Tool '%s' timed out after %gs", action.tool_name, timeout)
        raise ToolExecutionError(f"Tool {action.tool_name} timed out after {timeout:g} seconds")

    try:
        return task.result()
    except Exception as exc:  # noqa: BLE001
        logger.exception("Unhandled error in tool '%s'", action.tool_name)
        raise ToolExecutionError(str(exc) or exc.__class__.__name__) from exc


async def execute_action(
    action: ToolAction, registry: ToolRegistry, timeout: float | None = None
) -> ToolObservation:
    """
    Run *action* and return its observation.

    Parameters
    ----------
    action:
        The parsed tool call.
    registry:
        Tools available to the model.
    timeout:
        Seconds to wait for the tool; defaults to ``settings.TOOL_TIMEOUT_SECONDS``.  When it fires
        the tool is asked to cancel and this returns at once, without waiting for it to unwind.
        Tools running in a worker thread are left to finish in the background.

    Returns
    -------
    ToolObservation
        The tool's string result verbatim, or an ``Error: ...`` text flagged with ``is_error``.
        This function never raises for tool-level failures.
    """
    if timeout is None:
        timeout = settings.TOOL_TIMEOUT_SECONDS

    try:
        result = await _run_tool(action, registry, timeout)
    except ToolExecutionError as exc:
        return ToolObservation(text=f"Error: {exc}", is_error=True)

    logger.info("Tool '%s' returned %d chars", action.tool_name, len(result))
    return ToolObservation(text=result)
