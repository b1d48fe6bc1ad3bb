import asyncio
import logging
from typing import Coroutine, Set

logger = logging.getLogger(__name__)


class TaskManager:
    """Keeps references to background tasks so they finish or get cancelled on shutdown."""

    def __init__(self):
        self._tasks: Set[asyncio.Task] = set()

    @property
    def pending(self) -> int:
        return sum(1 for t in self._tasks if not t.done())

    def add_task(self, task: asyncio.Task) -> asyncio.Task:
        self._tasks.add(task)
        task.add_done_callback(self._task_done)
        return task

    def _task_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            logger.debug("Task was cancelled")
            return
        exc = task.exception()
        if exc is not None:
            logger.error(f"Task failed with error: {exc}", exc_info=exc)

    async def cancel_all_tasks(self, timeout: float = 5.0) -> None:
        if not self._tasks:
            return

        logger.info(f"Cancelling {len(self._tasks)} tasks")
        for task in self._tasks:
            if not task.done():
                task.cancel()

        try:
            await asyncio.wait_for(asyncio.gather(*self._tasks, return_exceptions=True), timeout=timeout)
            logger.info("All tasks cancelled successfully")
        except asyncio.TimeoutError:
            logger.warning(f"Some tasks did not complete within {timeout} second shutdown timeout")
            self._tasks.clear()


def create_managed_task(task_manager: TaskManager, coro: Coroutine) -> asyncio.Task:
    """Create a task that will be tracked and cleaned up on shutdown."""
    return task_manager.add_task(asyncio.create_task(coro))


def setup_cleanup_handlers(app, task_manager: TaskManager):
    """Cancel background work and close the session when the app shuts down."""

    @app.on_event("startup")
    async def startup_event():
        logger.info("Starting up with task management")

    @app.on_event("shutdown")
    async def shutdown_event():
        logger.info("Shutting down, cleaning up tasks...")
        await task_manager.cancel_all_tasks()
        session = getattr(app.state, "session", None)
        if session is not None:
            session.close()
        logger.info("Cleanup complete")
