"""
Safe background task execution with error handling.

Prevents silent failures by:
- Logging all errors with stack traces
- Tracking task references to prevent GC
"""

import asyncio
import logging
from typing import Coroutine, Any

logger = logging.getLogger(__name__)

# Track active tasks to prevent garbage collection
_active_background_tasks: set = set()


async def safe_background_task(coro: Coroutine, task_name: str) -> Any:
    """
    Await a coroutine, logging instead of raising on failure.

    Returns:
        Result of the coroutine if successful, None on error
    """
    try:
        result = await coro
        logger.debug(f"Background task completed: {task_name}")
        return result
    except Exception as e:
        logger.error(f"Background task failed: {task_name} - {e}", exc_info=True)
        return None


def create_safe_task(coro: Coroutine, task_name: str) -> asyncio.Task:
    """
    Schedule a coroutine on the running loop with error handling.

    Example:
        create_safe_task(notifier.send(title, message), "notify-checks_failing")
    """
    task = asyncio.create_task(safe_background_task(coro, task_name))

    # Store reference to prevent garbage collection
    _active_background_tasks.add(task)
    task.add_done_callback(_active_background_tasks.discard)

    logger.debug(f"Created safe background task: {task_name}")
    return task


async def drain_background_tasks() -> None:
    """Wait for every pending background task (used on shutdown)."""
    if _active_background_tasks:
        await asyncio.gather(*list(_active_background_tasks), return_exceptions=True)
