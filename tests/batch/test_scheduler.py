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
import logging

import pytest

from batch.utils.scheduler import Scheduler


@pytest.fixture(scope="function")
def logger(caplog: pytest.LogCaptureFixture):
    log = logging.getLogger("background")
    default_log_level = log.level
    log.setLevel(logging.DEBUG)
    log.propagate = True
    yield log
    log.propagate = False
    log.setLevel(default_log_level)


@pytest.mark.asyncio
class TestScheduler:
    #############################################################
    # Normal
    #############################################################

    # Normal_1
    # - Task runs immediately and then on its interval
    async def test_normal_1(self, logger):
        scheduler = Scheduler(logger=logger)
        runs = []

        async def task():
            runs.append(1)

        scheduled = scheduler.add_task(
            tag="task", interval=0.01, func=task, run_immediately=True
        )
        await asyncio.sleep(0)
        assert len(runs) == 1

        await asyncio.sleep(0.1)
        await scheduler.shutdown()

        assert len(runs) > 1
        assert scheduled.run_count == len(runs)
        assert scheduler.tags() == []

    # Normal_2
    # - Task waits for the first interval unless run_immediately is set
    async def test_normal_2(self, logger):
        scheduler = Scheduler(logger=logger)
        runs = []

        async def task():
            runs.append(1)

        scheduler.add_task(tag="task", interval=60, func=task)
        await asyncio.sleep(0.05)
        assert runs == []

        await scheduler.shutdown()
        assert runs == []

    # Normal_3
    # - Exception of one run is logged and the task keeps running
    async def test_normal_3(self, logger, caplog):
        scheduler = Scheduler(logger=logger)
        runs = []

        async def task():
            runs.append(1)
            if len(runs) == 1:
                raise Exception("boom")

        scheduler.add_task(tag="task", interval=0.01, func=task, run_immediately=True)
        await asyncio.sleep(0.1)
        await scheduler.shutdown()

        assert len(runs) > 1
        assert (
            logger.name,
            logging.ERROR,
            "An exception occurred in the scheduled task: tag=task",
        ) in caplog.record_tuples

    # Normal_4
    # - Removed tasks stop; other tasks keep running
    async def test_normal_4(self, logger):
        scheduler = Scheduler(logger=logger)

        async def task():
            pass

        scheduler.add_task(tag="watcher-live:1", interval=60, func=task)
        scheduler.add_task(tag="watcher-live:56", interval=60, func=task)
        scheduler.add_task(tag="settlement", interval=60, func=task)

        assert scheduler.remove_task("settlement") is True
        assert scheduler.remove_task("settlement") is False
        assert scheduler.has_task("settlement") is False

        scheduler.remove_tasks("watcher-")
        assert scheduler.tags() == []

        await scheduler.shutdown()

    # Normal_5
    # - Shutdown waits for the run in progress
    async def test_normal_5(self, logger):
        scheduler = Scheduler(logger=logger)
        finished = []

        async def task():
            await asyncio.sleep(0.05)
            finished.append(1)

        scheduler.add_task(tag="task", interval=60, func=task, run_immediately=True)
        await asyncio.sleep(0)
        await scheduler.shutdown(timeout=5)

        assert finished == [1]

    # Normal_6
    # - Run in progress is cancelled after the timeout
    async def test_normal_6(self, logger):
        scheduler = Scheduler(logger=logger)
        finished = []

        async def task():
            await asyncio.sleep(10)
            finished.append(1)

        scheduled = scheduler.add_task(
            tag="task", interval=60, func=task, run_immediately=True
        )
        await asyncio.sleep(0)
        await scheduler.shutdown(timeout=0.01)
        await asyncio.sleep(0)

        assert finished == []
        assert scheduled.task.cancelled() or scheduled.task.done()

    #############################################################
    # Error
    #############################################################

    # Error_1
    # - Duplicate tag
    async def test_error_1(self, logger):
        scheduler = Scheduler(logger=logger)

        async def task():
            pass

        scheduler.add_task(tag="task", interval=60, func=task)
        with pytest.raises(ValueError, match="Task is already scheduled: tag=task"):
            scheduler.add_task(tag="task", interval=60, func=task)

        await scheduler.shutdown()
