# route_planner/core/tasks.py
import asyncio
from typing import Any, Optional


def was_superseded(task: "asyncio.Task[Any]") -> bool:
    """
    True when `task` was cancelled by a newer request rather than because
    the coroutine awaiting it is itself being cancelled.
    """
    if not task.cancelled():
        return False
    current: Optional["asyncio.Task[Any]"] = asyncio.current_task()
    return current is None or current.cancelling() == 0


def cancel_pending(task: Optional["asyncio.Task[Any]"]) -> None:
    if task is not None and not task.done():
        task.cancel()
