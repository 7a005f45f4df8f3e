"""Detached background tasks with a log-only error channel."""

import asyncio
import logging
from typing import Coroutine, Set

logger = logging.getLogger(__name__)


class BackgroundTaskRunner:
    """Spawn fire-and-forget coroutines on the running loop.

    Keeps a strong reference to each task until it finishes (the event loop
    only holds weak ones). Exceptions are logged and never re-raised. There is
    no join point; ``pending`` exists so tests can drain explicitly.
    """

    def __init__(self) -> None:
        self._tasks: Set[asyncio.Task] = set()

    def spawn(self, coro: Coroutine, name: str = "background") -> asyncio.Task:
        task = asyncio.get_running_loop().create_task(coro, name=name)
        self._tasks.add(task)
        task.add_done_callback(self._on_done)
        return task

    def _on_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            logger.debug("Background task %s cancelled", task.get_name())
            return
        exc = task.exception()
        if exc is not None:
            logger.warning(
                "Background task %s failed: %s",
                task.get_name(),
                exc,
                exc_info=(type(exc), exc, exc.__traceback__),
            )

    @property
    def pending(self) -> Set[asyncio.Task]:
        return set(self._tasks)

    async def drain(self) -> None:
        """Wait for every task spawned so far, ignoring their outcomes."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def cancel_all(self) -> None:
        for task in list(self._tasks):
            task.cancel()
