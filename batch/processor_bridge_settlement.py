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
from asyncio import Event
from decimal import Decimal
from typing import Mapping

from eth_account import Account
from eth_account.signers.local import LocalAccount
from eth_utils import from_wei

from app.chain_connection import ChainConnection
from app.chain_registry import ChainRegistry
from app.exceptions import ConfigurationError, InvalidStatusTransitionError, StoreError
from app.model.db import BridgeEvent, BridgeEventStatus
from app.model.schema import NotificationKind
from app.notification import NotificationSink
from app.store import BridgeEventStore
from app.utils.tx_error_utils import is_retryable_error
from batch import free_malloc
from batch.utils import batch_log
from batch.utils.scheduler import Scheduler
from config import (
    RECEIPT_TIMEOUT,
    RELAYER_PRIVATE_KEY,
    SETTLEMENT_INTERVAL,
    SETTLEMENT_TX_INTERVAL,
)

"""
[PROCESSOR-Bridge-Settlement]

This processor settles bridge events on their target chains.
- Events that reached the confirmation threshold are marked as confirmed
- releaseTokens is sent for confirmed events and the receipt is awaited
"""

process_name = "PROCESSOR-Bridge-Settlement"
LOG = batch_log.get_logger(process_name=process_name)

SETTLEMENT_TAG = "settlement"


def event_summary(event: BridgeEvent) -> dict:
    return {
        "tx_id": event.tx_id,
        "source_chain": event.source_chain,
        "target_chain": event.target_chain,
        "amount": event.amount,
        "token_address": event.token_address,
        "target_address": event.target_address,
    }


class BridgeSettlementProcessor:
    """
    Processor for settling bridge events
    """

    account: LocalAccount | None

    def __init__(
        self,
        registry: ChainRegistry,
        connections: Mapping[int, ChainConnection],
        store: BridgeEventStore,
        sink: NotificationSink,
        scheduler: Scheduler,
        private_key: str | None = RELAYER_PRIVATE_KEY,
        interval: float = SETTLEMENT_INTERVAL,
        tx_interval: float = SETTLEMENT_TX_INTERVAL,
        receipt_timeout: int = RECEIPT_TIMEOUT,
    ):
        self.registry = registry
        self.connections = connections
        self.store = store
        self.sink = sink
        self.scheduler = scheduler
        self.private_key = private_key
        self.interval = interval
        self.tx_interval = tx_interval
        self.receipt_timeout = receipt_timeout

        self.account = None
        self.running = False
        self.is_shutdown = Event()

    ####################################################
    # Lifecycle
    ####################################################
    async def initialize(self):
        """Load the relayer account and check its authorization

        :raises ConfigurationError: relayer private key is missing or invalid
        """
        if not self.private_key:
            raise ConfigurationError("RELAYER_PRIVATE_KEY is not set")
        try:
            self.account = Account.from_key(self.private_key)
        except Exception as err:
            raise ConfigurationError("RELAYER_PRIVATE_KEY is invalid") from err
        LOG.info(f"Relayer address: {self.account.address}")

        for chain_id, connection in self.connections.items():
            try:
                authorized = await connection.is_relayer_authorized(
                    self.account.address
                )
            except Exception as err:
                LOG.warning(
                    f"Could not check relayer authorization: chain_id={chain_id}, error={err}"
                )
                continue
            if authorized:
                LOG.info(f"Relayer is authorized: chain_id={chain_id}")
            else:
                LOG.warning(f"Relayer is not authorized: chain_id={chain_id}")

    def start(self):
        if self.running:
            return
        self.is_shutdown.clear()
        self.scheduler.add_task(
            tag=SETTLEMENT_TAG,
            interval=self.interval,
            func=self.process,
            run_immediately=True,
        )
        self.running = True
        LOG.info(f"Settlement processor started: interval={self.interval}")

    def stop(self):
        """Stop future settlement cycles

        A cycle in progress stops before its next event.
        """
        self.is_shutdown.set()
        self.scheduler.remove_task(SETTLEMENT_TAG)
        self.running = False
        LOG.info("Settlement processor stopped")

    def status(self) -> dict:
        return {
            "running": self.running,
            "relayer_address": self.account.address if self.account else None,
            "active_chains": set(self.connections.keys()),
            "interval": self.interval,
        }

    ####################################################
    # Settlement cycle
    ####################################################
    async def process(self):
        try:
            events = await self.store.pending_for_settlement()
        except StoreError as err:
            LOG.error(f"Could not get events awaiting settlement\n{err}")
            return

        if len(events) == 0:
            LOG.debug("skip process")
            return

        LOG.info(f"Process start: count={len(events)}")
        for index, event in enumerate(events):
            if self.is_shutdown.is_set():
                return
            if index > 0 and self.tx_interval > 0:
                await asyncio.sleep(self.tx_interval)
            await self.process_event(event)
        LOG.info("Process end")
        free_malloc()

    async def process_event(self, event: BridgeEvent):
        """Process one bridge event

        Errors never propagate so that the remaining events are processed.
        """
        try:
            await self.settle(event)
        except StoreError as err:
            LOG.error(f"A database error has occurred: tx_id={event.tx_id}\n{err}")
        except Exception as err:
            if is_retryable_error(err):
                LOG.warning(
                    f"Temporary error, retry on next cycle: tx_id={event.tx_id}, error={err}"
                )
                return
            LOG.exception(f"Failed to process bridge event: tx_id={event.tx_id}")
            await self.__mark_failed(
                event, message=str(err), kind=NotificationKind.PROCESSING_ERROR
            )

    async def settle(self, event: BridgeEvent):
        tx_id = event.tx_id

        if not self.registry.is_known(event.target_chain):
            LOG.error(f"Unsupported target chain: tx_id={tx_id}")
            await self.__mark_failed(
                event,
                message=f"Unsupported chain ID: {event.target_chain}",
                kind=NotificationKind.SETTLEMENT_FAILURE,
            )
            return

        source = self.connections.get(event.source_chain)
        target = self.connections.get(event.target_chain)
        if source is None or target is None:
            LOG.warning(
                f"Chain is not active, skipped: tx_id={tx_id}, source_chain={event.source_chain}, target_chain={event.target_chain}"
            )
            return
        target_chain = target.chain

        # Refresh confirmations on the source chain
        try:
            head = await source.get_block_number()
        except Exception as err:
            LOG.warning(
                f"Could not refresh confirmations, retry on next cycle: tx_id={tx_id}, chain_id={event.source_chain}, error={err}"
            )
            return
        confirmations = max(0, head - event.block_number, event.confirmations)
        await self.store.set_confirmations(tx_id, confirmations)
        if confirmations < target_chain.min_confirmations:
            LOG.debug(
                f"Waiting for confirmations: tx_id={tx_id}, confirmations={confirmations}/{target_chain.min_confirmations}"
            )
            return

        status = BridgeEventStatus(event.status)
        if status == BridgeEventStatus.PENDING:
            if not await self.store.set_status(tx_id, BridgeEventStatus.CONFIRMED):
                return
            LOG.info(f"Bridge event confirmed: tx_id={tx_id}")
            status = BridgeEventStatus.CONFIRMED
        if status != BridgeEventStatus.CONFIRMED:
            return

        # Check gas price of the target chain
        try:
            gas_price = await target.get_gas_price()
        except Exception as err:
            LOG.warning(
                f"Could not get gas price, retry on next cycle: tx_id={tx_id}, chain_id={target_chain.chain_id}, error={err}"
            )
            return
        if gas_price > target_chain.max_gas_price_wei:
            LOG.warning(
                f"Gas price exceeds the ceiling, skipped: tx_id={tx_id}, chain_id={target_chain.chain_id}, gas_price={from_wei(gas_price, 'gwei')} gwei, max_gas_price={target_chain.max_gas_price} gwei"
            )
            return

        await self.release(event, target, gas_price)

    async def release(
        self, event: BridgeEvent, target: ChainConnection, gas_price: int
    ):
        """Send releaseTokens and record the result"""
        tx_id = event.tx_id
        try:
            tx_hash = await target.release_tokens(
                tx_id=tx_id, account=self.account, gas_price=gas_price
            )
            LOG.info(f"Settlement transaction sent: tx_id={tx_id}, tx_hash={tx_hash}")
            receipt = await target.wait_for_transaction_receipt(
                tx_hash=tx_hash, timeout=self.receipt_timeout
            )
        except Exception as err:
            if is_retryable_error(err):
                LOG.warning(
                    f"Temporary settlement error, retry on next cycle: tx_id={tx_id}, error={err}"
                )
                return
            LOG.error(f"Settlement failed: tx_id={tx_id}, error={err}")
            await self.__mark_failed(
                event, message=str(err), kind=NotificationKind.SETTLEMENT_FAILURE
            )
            return

        if receipt.get("status") != 1:
            LOG.error(f"Settlement transaction failed: tx_id={tx_id}, tx_hash={tx_hash}")
            await self.__mark_failed(
                event,
                message="Transaction failed",
                kind=NotificationKind.SETTLEMENT_FAILURE,
            )
            return

        await self.store.set_status(
            tx_id, BridgeEventStatus.COMPLETED, settlement_tx_hash=tx_hash
        )
        LOG.info(f"Settlement completed: tx_id={tx_id}, tx_hash={tx_hash}")
        self.sink.notify(
            kind=NotificationKind.SETTLEMENT_SUCCESS,
            message="Bridge transaction settled",
            data={
                **event_summary(event),
                "settlement_tx_hash": tx_hash,
                "gas_used": receipt.get("gasUsed"),
                "gas_price": gas_price,
            },
        )

    ####################################################
    # Balance
    ####################################################
    async def all_balances(self) -> dict[int, dict[str, str]]:
        """Get relayer balance on every active chain

        :return: chain_id -> {"name": chain name, "balance": balance in ether}
        """
        if self.account is None:
            return {}

        balances: dict[int, dict[str, str]] = {}

        async def get_balance(chain_id: int, connection: ChainConnection):
            try:
                wei = await connection.get_balance(self.account.address)
                balance = f"{Decimal(from_wei(wei, 'ether')):f}"
            except Exception as err:
                LOG.warning(f"Could not get balance: chain_id={chain_id}, error={err}")
                balance = "0"
            balances[chain_id] = {"name": connection.chain.name, "balance": balance}

        async with asyncio.TaskGroup() as tg:
            for chain_id, connection in self.connections.items():
                tg.create_task(get_balance(chain_id, connection))

        return dict(sorted(balances.items()))

    ####################################################
    # Private
    ####################################################
    async def __mark_failed(
        self, event: BridgeEvent, message: str, kind: NotificationKind
    ):
        try:
            updated = await self.store.set_status(
                event.tx_id, BridgeEventStatus.FAILED, error_message=message
            )
        except (StoreError, InvalidStatusTransitionError) as err:
            LOG.error(f"Could not record the failure: tx_id={event.tx_id}\n{err}")
            return

        if updated:
            self.sink.notify(
                kind=kind,
                message="Bridge transaction failed",
                data=event_summary(event),
                error=message,
            )
