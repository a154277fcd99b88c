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

import sys
from typing import Mapping

import uvloop

from app.chain_connection import ChainConnection, build_chain_connections
from app.chain_registry import ChainRegistry
from app.exceptions import ConfigurationError, StoreError
from app.model.schema import NotificationKind
from app.notification import NotificationSink, WebhookNotificationSink
from app.store import BridgeEventStore
from batch.processor_bridge_event_watcher import BridgeEventWatcher
from batch.processor_bridge_settlement import BridgeSettlementProcessor
from batch.processor_relayer_monitor import RelayerMonitor
from batch.utils import batch_log
from batch.utils.scheduler import Scheduler
from batch.utils.signal_handler import (
    ShutdownRequest,
    setup_exception_handler,
    setup_signal_handler,
)

"""
[SERVICE-Bridge-Relayer]

Entry point of the bridge relayer.
Runs the event watcher, the settlement processor and the relayer monitor
until SIGTERM/SIGINT or an unhandled error, then shuts down gracefully.
"""

process_name = "SERVICE-Bridge-Relayer"
LOG = batch_log.get_logger(process_name=process_name)

# Seconds to wait for in-progress runs on shutdown
SHUTDOWN_TIMEOUT = 30


class RelayerService:
    """
    Bridge relayer service
    """

    watcher: BridgeEventWatcher | None
    processor: BridgeSettlementProcessor | None
    monitor: RelayerMonitor | None

    def __init__(
        self,
        store: BridgeEventStore | None = None,
        registry: ChainRegistry | None = None,
        sink: NotificationSink | None = None,
        connections: Mapping[int, ChainConnection] | None = None,
        private_key: str | None = None,
    ):
        self.store = store if store is not None else BridgeEventStore()
        self.registry = registry if registry is not None else ChainRegistry()
        self.sink = sink if sink is not None else WebhookNotificationSink()
        self.connections = connections
        self.private_key = private_key
        self.scheduler = Scheduler(logger=LOG)

        self.watcher = None
        self.processor = None
        self.monitor = None
        self.is_stopped = False

    async def initialize(self):
        """Create tables and build the components

        :raises ConfigurationError: relayer account is not configured
        """
        await self.store.create_tables()

        active_chains = self.registry.active_chains()
        if len(active_chains) == 0:
            LOG.warning("No chain is active")
        if self.connections is None:
            self.connections = build_chain_connections(active_chains)

        self.watcher = BridgeEventWatcher(
            connections=self.connections,
            store=self.store,
            sink=self.sink,
            scheduler=self.scheduler,
        )
        processor_options = {}
        if self.private_key is not None:
            processor_options["private_key"] = self.private_key
        self.processor = BridgeSettlementProcessor(
            registry=self.registry,
            connections=self.connections,
            store=self.store,
            sink=self.sink,
            scheduler=self.scheduler,
            **processor_options,
        )
        self.monitor = RelayerMonitor(
            watcher=self.watcher,
            processor=self.processor,
            store=self.store,
            sink=self.sink,
            scheduler=self.scheduler,
        )

        await self.watcher.initialize()
        await self.processor.initialize()

    def start(self):
        self.watcher.start()
        self.processor.start()
        self.monitor.start()
        LOG.info(f"Relayer started: chains={sorted(self.connections.keys())}")
        self.sink.notify(
            kind=NotificationKind.SERVICE_LIFECYCLE,
            message="Relayer service started",
            data={"chains": sorted(self.connections.keys())},
        )

    def status(self) -> dict:
        return {
            "watcher": self.watcher.status() if self.watcher else None,
            "processor": self.processor.status() if self.processor else None,
        }

    async def graceful_shutdown(self, reason: str):
        """Stop the components, close the store and notify

        Calls after the first one are ignored.
        """
        if self.is_stopped:
            return
        self.is_stopped = True
        LOG.info(f"Shutting down: reason={reason}")

        if self.watcher is not None:
            self.watcher.stop()
        if self.processor is not None:
            self.processor.stop()
        if self.monitor is not None:
            self.monitor.stop()
        await self.scheduler.shutdown(timeout=SHUTDOWN_TIMEOUT)

        try:
            await self.store.close()
        except StoreError as err:
            LOG.error(f"Could not close the store\n{err}")
        for chain_id, connection in (self.connections or {}).items():
            try:
                await connection.close()
            except Exception as err:
                LOG.warning(f"Could not close connection: chain_id={chain_id}, error={err}")

        self.sink.notify(
            kind=NotificationKind.SERVICE_LIFECYCLE,
            message="Relayer service stopped",
            data={"reason": reason},
        )
        await self.sink.aclose()
        LOG.info("Service stopped")


async def main():
    LOG.info("Service started successfully")
    shutdown_request = ShutdownRequest()
    setup_signal_handler(logger=LOG, shutdown_request=shutdown_request)
    setup_exception_handler(logger=LOG, shutdown_request=shutdown_request)

    service = RelayerService()
    try:
        await service.initialize()
    except (ConfigurationError, StoreError) as err:
        LOG.error(f"Could not initialize the relayer: {err}")
        await service.graceful_shutdown(reason="initialization error")
        sys.exit(1)

    service.start()
    reason = await shutdown_request.wait()
    await service.graceful_shutdown(reason=reason)


if __name__ == "__main__":
    try:
        uvloop.run(main())
    except KeyboardInterrupt:
        sys.exit(1)
