from __future__ import annotations

import asyncio
from typing import Awaitable, Callable


class SingletonTaskRegistry:
    def __init__(self) -> None:
        self._tasks: dict[str, asyncio.Task] = {}

    def start_once(self, name: str, factory: Callable[[], Awaitable[None]]) -> asyncio.Task:
        task = self._tasks.get(name)
        if task and not task.done():
            return task
        task = asyncio.create_task(factory(), name=name)
        self._tasks[name] = task
        task.add_done_callback(lambda done, key=name: self._forget(key, done))
        return task

    def get(self, name: str) -> asyncio.Task | None:
        return self._tasks.get(name)

    def _forget(self, name: str, task: asyncio.Task) -> None:
        if self._tasks.get(name) is task:
            self._tasks.pop(name, None)

    async def cancel_all(self) -> None:
        tasks = [task for task in self._tasks.values() if not task.done()]
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
