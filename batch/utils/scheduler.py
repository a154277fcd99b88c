"""
Copyright BOOSTRY Co., Ltd.

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.

You may obtain a copy of the License at
http://www.apache.org/licenses/LICENSE-2.0

Unless required by applicable law or agreed to in writing,
software distributed under the License is distributed on an "AS IS" BASIS,
WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.

See the License for the specific language governing permissions and
limitations under the License.

SPDX-License-Identifier: Apache-2.0
"""

import asyncio
from asyncio import Event, Task
from logging import Logger
from typing import Any, Awaitable, Callable

TaskFunc = Callable[[], Awaitable[Any]]


class ScheduledTask:
    """Recurring task registered to the Scheduler"""

    def __init__(self, tag: str, interval: float, func: TaskFunc):
        self.tag = tag
        self.interval = interval
        self.func = func
        self.stop_event = Event()
        self.task: Task | None = None
        self.run_count = 0


class Scheduler:
    """Runs tagged recurring tasks

    Each task runs in its own asyncio task with its own interval.
    An exception raised by one run is logged and the task keeps
    running on its next interval. Removing a task stops future runs
    but does not cancel a run that is in progress.
    """

    def __init__(self, logger: Logger):
        self.logger = logger
        self._tasks: dict[str, ScheduledTask] = {}

    def add_task(
        self,
        tag: str,
        interval: float,
        func: TaskFunc,
        run_immediately: bool = False,
    ) -> ScheduledTask:
        """Register a recurring task

        :param tag: unique tag of the task
        :param interval: interval between runs [sec]
        :param func: coroutine function to run
        :param run_immediately: run once before waiting for the first interval
        :return: ScheduledTask
        """
        if tag in self._tasks:
            raise ValueError(f"Task is already scheduled: tag={tag}")

        scheduled = ScheduledTask(tag=tag, interval=interval, func=func)
        scheduled.task = asyncio.create_task(
            self.__loop(scheduled, run_immediately), name=f"scheduler:{tag}"
        )
        self._tasks[tag] = scheduled
        return scheduled

    def remove_task(self, tag: str) -> bool:
        scheduled = self._tasks.pop(tag, None)
        if scheduled is None:
            return False
        scheduled.stop_event.set()
        return True

    def remove_tasks(self, prefix: str) -> None:
        for tag in [tag for tag in self._tasks if tag.startswith(prefix)]:
            self.remove_task(tag)

    def has_task(self, tag: str) -> bool:
        return tag in self._tasks

    def tags(self) -> list[str]:
        return list(self._tasks.keys())

    async def shutdown(self, timeout: float | None = None) -> None:
        """Stop all tasks and wait for in-progress runs to finish

        :param timeout: seconds to wait before cancelling unfinished runs
        """
        scheduled_list = list(self._tasks.values())
        self._tasks.clear()
        for scheduled in scheduled_list:
            scheduled.stop_event.set()

        tasks = [s.task for s in scheduled_list if s.task is not None]
        if not tasks:
            return
        _, pending = await asyncio.wait(tasks, timeout=timeout)
        for task in pending:
            task.cancel()

    async def __loop(self, scheduled: ScheduledTask, run_immediately: bool):
        if not run_immediately:
            if await self.__wait_stopped(scheduled):
                return

        while not scheduled.stop_event.is_set():
            try:
                await scheduled.func()
            except Exception:
                self.logger.exception(
                    f"An exception occurred in the scheduled task: tag={scheduled.tag}"
                )
            scheduled.run_count += 1

            if await self.__wait_stopped(scheduled):
                return

    @staticmethod
    async def __wait_stopped(scheduled: ScheduledTask) -> bool:
        try:
            await asyncio.wait_for(
                scheduled.stop_event.wait(), timeout=scheduled.interval
            )
        except asyncio.TimeoutError:
            return False
        return True
