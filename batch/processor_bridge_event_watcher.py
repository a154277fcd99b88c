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
from functools import partial
from typing import Any, Mapping

from pydantic import ValidationError

from app.chain_connection import ChainConnection
from app.model.db import BridgeEventType
from app.model.schema import BridgeEventData, NotificationKind
from app.notification import NotificationSink
from app.store import BridgeEventStore
from batch.utils import batch_log
from batch.utils.scheduler import Scheduler
from config import (
    HISTORICAL_SWEEP_INTERVAL,
    LIVE_INGEST_INTERVAL,
    SWEEP_BLOCK_LOT_MAX_SIZE,
)

"""
[PROCESSOR-Bridge-Event-Watcher]

This processor watches TokenLocked and TokenBurned events of the bridge contract
on every active chain and records them as bridge events.
- Live subscription: polls new blocks of each chain and queues the events
- Historical sweep: scans confirmed blocks from the processed-block watermark
Both sources are recorded through the same ingestion.
"""

process_name = "PROCESSOR-Bridge-Event-Watcher"
LOG = batch_log.get_logger(process_name=process_name)

WATCHED_EVENT_TYPES = (BridgeEventType.LOCKED, BridgeEventType.BURNED)

TAG_PREFIX = "watcher-"
LIVE_INGEST_TAG = "watcher-live-ingest"


def live_tag(chain_id: int) -> str:
    return f"watcher-live:{chain_id}"


def sweep_tag(chain_id: int) -> str:
    return f"watcher-sweep:{chain_id}"


def to_hex(value: Any) -> str:
    if isinstance(value, (bytes, bytearray)):
        return "0x" + bytes(value).hex()
    return str(value).lower()


class BridgeEventWatcher:
    """
    Watcher of bridge contract events on every active chain
    """

    def __init__(
        self,
        connections: Mapping[int, ChainConnection],
        store: BridgeEventStore,
        sink: NotificationSink,
        scheduler: Scheduler,
        sweep_interval: float = HISTORICAL_SWEEP_INTERVAL,
        block_lot_max_size: int = SWEEP_BLOCK_LOT_MAX_SIZE,
        live_ingest_interval: float = LIVE_INGEST_INTERVAL,
    ):
        self.connections = connections
        self.store = store
        self.sink = sink
        self.scheduler = scheduler
        self.sweep_interval = sweep_interval
        self.block_lot_max_size = block_lot_max_size
        self.live_ingest_interval = live_ingest_interval

        self.queue: asyncio.Queue[BridgeEventData] = asyncio.Queue()
        # Key: chain_id, Value: last block number polled by the live subscription
        self.live_cursors: dict[int, int] = {}
        self.subscriptions: set[tuple[int, BridgeEventType]] = set()
        self.running = False

    ####################################################
    # Lifecycle
    ####################################################
    async def initialize(self):
        """Check the connection to each chain

        A chain that cannot be reached is kept and retried by its own tasks.
        """
        for chain_id, connection in self.connections.items():
            try:
                block_number = await connection.get_block_number()
                LOG.info(
                    f"Connected to chain: chain_id={chain_id}, name={connection.chain.name}, block_number={block_number}"
                )
            except Exception as err:
                LOG.warning(
                    f"Could not connect to chain: chain_id={chain_id}, name={connection.chain.name}, error={err}"
                )

    def start(self):
        if self.running:
            return

        for chain_id, connection in self.connections.items():
            self.scheduler.add_task(
                tag=live_tag(chain_id),
                interval=connection.chain.block_time_sec,
                func=partial(self.poll_live, chain_id),
                run_immediately=True,
            )
            self.scheduler.add_task(
                tag=sweep_tag(chain_id),
                interval=self.sweep_interval,
                func=partial(self.sweep, chain_id),
                run_immediately=True,
            )
            for event_type in WATCHED_EVENT_TYPES:
                self.subscriptions.add((chain_id, event_type))
        self.scheduler.add_task(
            tag=LIVE_INGEST_TAG,
            interval=self.live_ingest_interval,
            func=self.drain_live_queue,
        )
        self.running = True
        LOG.info(f"Event watcher started: chains={sorted(self.connections.keys())}")

    def stop(self):
        """Stop live subscriptions and the sweep

        Watermarks stay at their persisted values.
        """
        self.scheduler.remove_tasks(TAG_PREFIX)
        self.subscriptions.clear()
        self.live_cursors.clear()
        self.running = False
        LOG.info("Event watcher stopped")

    def status(self) -> dict:
        return {
            "running": self.running,
            "active_chains": set(self.connections.keys()),
            "subscription_count": len(self.subscriptions),
        }

    ####################################################
    # Live subscription
    ####################################################
    async def poll_live(self, chain_id: int):
        """Queue the events mined since the last poll

        The first poll only anchors the cursor at the current head;
        older blocks are covered by the historical sweep.
        """
        connection = self.connections[chain_id]
        try:
            head = await connection.get_block_number()
            cursor = self.live_cursors.get(chain_id)
            if cursor is None:
                self.live_cursors[chain_id] = head
                return
            if head <= cursor:
                return

            block_from = max(cursor + 1, head - self.block_lot_max_size + 1)
            for event_type in WATCHED_EVENT_TYPES:
                logs = await connection.get_bridge_event_logs(
                    event_type=event_type, block_from=block_from, block_to=head
                )
                for log_entry in logs:
                    event = await self.normalize(connection, event_type, log_entry)
                    if event is not None:
                        self.queue.put_nowait(event)
            self.live_cursors[chain_id] = head
        except Exception as err:
            LOG.warning(
                f"Live subscription error, retry on next poll: chain_id={chain_id}, error={err}"
            )

    async def drain_live_queue(self):
        """Ingest the events queued by the live subscriptions"""
        while not self.queue.empty():
            event = self.queue.get_nowait()
            try:
                await self.ingest(event)
            except Exception:
                # The historical sweep picks the event up again
                LOG.exception(f"Failed to ingest live event: tx_id={event.tx_id}")
            finally:
                self.queue.task_done()

    ####################################################
    # Historical sweep
    ####################################################
    async def sweep_chain(self, chain_id: int) -> int:
        """Scan confirmed blocks of the chain from its watermark

        The watermark advances after each fully ingested window.
        The sweep stops at the first window that fails so that
        no block is skipped.

        :param chain_id: chain ID
        :return: watermark after the sweep
        """
        connection = self.connections[chain_id]
        chain = connection.chain

        head = await connection.get_block_number()
        safe_head = head - chain.min_confirmations
        watermark = await self.store.watermark(chain_id)
        block_from = max(watermark + 1, chain.start_block)

        if block_from > safe_head:
            LOG.debug("skip process")
            return watermark

        while block_from <= safe_head:
            block_to = min(block_from + self.block_lot_max_size - 1, safe_head)
            completed = await self.__sweep_window(
                connection=connection,
                head=head,
                block_from=block_from,
                block_to=block_to,
            )
            if not completed:
                break
            await self.store.set_watermark(chain_id, block_to)
            watermark = block_to
            block_from = block_to + 1

        return watermark

    async def sweep(self, chain_id: int):
        """Sweep task of the chain; errors are retried on the next cycle"""
        try:
            await self.sweep_chain(chain_id)
        except Exception as err:
            LOG.warning(
                f"Historical sweep error, retry on next cycle: chain_id={chain_id}, error={err}"
            )

    async def __sweep_window(
        self, connection: ChainConnection, head: int, block_from: int, block_to: int
    ) -> bool:
        chain_id = connection.chain_id
        for event_type in WATCHED_EVENT_TYPES:
            try:
                logs = await connection.get_bridge_event_logs(
                    event_type=event_type, block_from=block_from, block_to=block_to
                )
            except Exception as err:
                LOG.warning(
                    f"Failed to get event logs: chain_id={chain_id}, event={event_type}, block_from={block_from}, block_to={block_to}, error={err}"
                )
                return False

            for log_entry in logs:
                try:
                    event = await self.normalize(connection, event_type, log_entry)
                    if event is None:
                        continue
                    await self.ingest(event, head=head)
                except Exception:
                    LOG.exception(
                        f"Failed to ingest event: chain_id={chain_id}, block_number={log_entry.get('blockNumber')}"
                    )
                    return False

        return True

    ####################################################
    # Ingestion
    ####################################################
    async def normalize(
        self,
        connection: ChainConnection,
        event_type: BridgeEventType,
        log_entry: Mapping[str, Any],
    ) -> BridgeEventData | None:
        """Convert an event log into a canonical bridge event

        TokenBurned carries no target data, so the transaction record is
        read from the source contract.

        :return: BridgeEventData, or None if the event is invalid
        """
        args = log_entry["args"]
        tx_id = to_hex(args["txId"])

        fee = None
        if event_type == BridgeEventType.LOCKED:
            target_chain = args["targetChain"]
            target_address = args["targetAddress"]
        else:
            record = await connection.get_transaction_record(tx_id)
            target_chain = record.target_chain
            target_address = record.target_address
            fee = record.fee

        try:
            return BridgeEventData(
                tx_id=tx_id,
                event_type=event_type,
                source_chain=connection.chain_id,
                target_chain=target_chain,
                user_address=args["user"],
                token_address=args["token"],
                amount=args["amount"],
                fee=fee,
                target_address=target_address,
                block_number=log_entry["blockNumber"],
                transaction_hash=to_hex(log_entry["transactionHash"]),
            )
        except ValidationError as err:
            LOG.warning(
                f"Invalid bridge event is dropped: chain_id={connection.chain_id}, tx_id={tx_id}\n{err}"
            )
            return None

    async def ingest(self, event: BridgeEventData, head: int | None = None) -> bool:
        """Record an observed bridge event

        Events already settled are dropped. Other events are upserted and
        their confirmations refreshed.

        :param event: bridge event
        :param head: current block number of the source chain
        :return: True if the event is new
        """
        if await self.store.is_settled(event.tx_id):
            LOG.debug(f"Already settled, skipped: tx_id={event.tx_id}")
            return False

        if head is None:
            head = await self.connections[event.source_chain].get_block_number()
        confirmations = max(0, head - event.block_number)

        created = await self.store.upsert_event(event)
        await self.store.set_confirmations(event.tx_id, confirmations)

        if created:
            LOG.info(
                f"New bridge event: tx_id={event.tx_id}, type={event.event_type}, route={event.source_chain}->{event.target_chain}, amount={event.amount}, block_number={event.block_number}"
            )
            self.sink.notify(
                kind=NotificationKind.NEW_EVENT,
                message="New bridge event detected",
                data={
                    "tx_id": event.tx_id,
                    "event_type": str(event.event_type),
                    "source_chain": event.source_chain,
                    "target_chain": event.target_chain,
                    "amount": event.amount,
                    "token_address": event.token_address,
                    "user_address": event.user_address,
                },
            )
        return created
