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
import signal
from asyncio import AbstractEventLoop, Event
from logging import Logger


class ShutdownRequest:
    """Shutdown request shared by signal and error handlers

    Only the first request is kept.
    """

    def __init__(self):
        self.event = Event()
        self.reason: str | None = None

    def request(self, reason: str) -> None:
        if self.event.is_set():
            return
        self.reason = reason
        self.event.set()

    def is_set(self) -> bool:
        return self.event.is_set()

    async def wait(self) -> str:
        await self.event.wait()
        return self.reason


async def shutdown(
    logger: Logger, sig: signal.Signals, shutdown_request: ShutdownRequest
) -> None:
    """Shutdown"""
    logger.info(f"Service is shutting down due to {sig.name}")

    shutdown_request.request(reason=sig.name)


def setup_signal_handler(logger: Logger, shutdown_request: ShutdownRequest) -> None:
    """Setup signal handler"""
    loop = asyncio.get_running_loop()

    for sig in (signal.SIGTERM, signal.SIGINT):
        loop.add_signal_handler(
            sig,
            lambda s=sig: asyncio.create_task(shutdown(logger, s, shutdown_request)),
        )


def setup_exception_handler(logger: Logger, shutdown_request: ShutdownRequest) -> None:
    """Request shutdown on errors that were not handled by any task"""
    loop = asyncio.get_running_loop()

    def handle_exception(_loop: AbstractEventLoop, context: dict) -> None:
        exception = context.get("exception")
        message = context.get("message", "")
        if exception is not None:
            logger.error(f"Unhandled exception: {message}", exc_info=exception)
            reason = f"unhandled exception: {exception!r}"
        else:
            logger.error(f"Unhandled error: {message}")
            reason = f"unhandled error: {message}"
        shutdown_request.request(reason=reason)

    loop.set_exception_handler(handle_exception)
