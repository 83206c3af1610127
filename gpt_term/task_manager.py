"""Lifecycle tracking for the coordinator's background asyncio tasks."""

from __future__ import annotations

import asyncio
from collections.abc import Coroutine
import logging
from typing import Any

LOGGER = logging.getLogger(__name__)


class TaskManager:
    """Own named and anonymous background tasks until they finish or are cancelled."""

    def __init__(self) -> None:
        self._named: dict[str, asyncio.Task[Any]] = {}
        self._anonymous: set[asyncio.Task[Any]] = set()

    def spawn(
        self, coro: Coroutine[Any, Any, Any], name: str | None = None
    ) -> asyncio.Task[Any]:
        """Schedule ``coro`` on the running loop and track it."""
        task = asyncio.create_task(coro)
        self.add(task, name=name)
        return task

    def add(self, task: asyncio.Task[Any], name: str | None = None) -> None:
        """Track a task; named tasks drop out of tracking when they finish."""
        if name is not None:
            self._named[name] = task
            task.add_done_callback(lambda done, key=name: self._forget(key, done))
        else:
            self._anonymous.add(task)
            task.add_done_callback(self._anonymous.discard)
        task.add_done_callback(self._log_failure)

    def _forget(self, name: str, task: asyncio.Task[Any]) -> None:
        if self._named.get(name) is task:
            del self._named[name]

    @staticmethod
    def _log_failure(task: asyncio.Task[Any]) -> None:
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            LOGGER.error(
                "tasks.failed",
                extra={"event": "tasks.failed", "task": task.get_name()},
                exc_info=exc,
            )

    def get(self, name: str) -> asyncio.Task[Any] | None:
        return self._named.get(name)

    def running(self, name: str) -> bool:
        task = self._named.get(name)
        return task is not None and not task.done()

    async def cancel_all(self) -> None:
        """Cancel every tracked task and wait for them to unwind."""
        tasks = [t for t in list(self._named.values()) + list(self._anonymous) if not t.done()]
        for task in tasks:
            task.cancel()
        for task in tasks:
            try:
                await task
            except asyncio.CancelledError:
                pass
            except Exception:  # noqa: BLE001 - shutdown must not raise.
                LOGGER.warning(
                    "tasks.cancel.error",
                    extra={"event": "tasks.cancel.error"},
                    exc_info=True,
                )
        if tasks:
            LOGGER.info(
                "tasks.cancelled",
                extra={"event": "tasks.cancelled", "count": len(tasks)},
            )
        self._named.clear()
        self._anonymous.clear()

    async def await_all(self) -> None:
        """Wait for every tracked task without cancelling it."""
        tasks = list(self._named.values()) + list(self._anonymous)
        for task in tasks:
            if not task.done():
                try:
                    await task
                except asyncio.CancelledError:
                    pass
