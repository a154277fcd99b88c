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

from typing import Any

from eth_utils import to_bytes, to_wei

from app.model.db import BridgeEventType
from app.model.db.base import aware_utcnow
from app.model.schema import (
    BridgeEventData,
    BridgeTransactionRecord,
    ChainDescriptor,
    Notification,
    NotificationKind,
)
from app.notification import NotificationSink

USER_ADDRESS = "0x1111111111111111111111111111111111111111"
TOKEN_ADDRESS = "0x2222222222222222222222222222222222222222"
TARGET_ADDRESS = "0x3333333333333333333333333333333333333333"
BRIDGE_ADDRESS = "0x4444444444444444444444444444444444444444"

# Private key of a throwaway test account
RELAYER_PRIVATE_KEY = (
    "0x4c0883a69102937d6231471b5dbb6204fe5129617082792ae468d01a3f362318"
)


def chain_descriptor(
    chain_id: int,
    name: str,
    min_confirmations: int,
    max_gas_price: str = "100",
    block_time: int = 1000,
    start_block: int = 0,
) -> ChainDescriptor:
    return ChainDescriptor(
        chain_id=chain_id,
        name=name,
        rpc_url=f"http://localhost:8545/{chain_id}",
        bridge_address=BRIDGE_ADDRESS,
        min_confirmations=min_confirmations,
        gas_limit=300000,
        max_gas_price=max_gas_price,
        block_time=block_time,
        start_block=start_block,
    )


def chain_config(chain: ChainDescriptor) -> dict:
    return chain.model_dump(mode="json")


def tx_id_bytes(tx_id: str) -> bytes:
    return to_bytes(hexstr=tx_id).rjust(32, b"\x00")


def tx_hash(seed: int) -> str:
    return f"0x{seed:064x}"


def locked_log(
    tx_id: str,
    target_chain: int,
    block_number: int,
    amount: int = 1000,
) -> dict[str, Any]:
    """TokenLocked log as returned by web3"""
    return {
        "event": "TokenLocked",
        "args": {
            "txId": tx_id_bytes(tx_id),
            "user": USER_ADDRESS,
            "token": TOKEN_ADDRESS,
            "amount": amount,
            "targetChain": target_chain,
            "targetAddress": TARGET_ADDRESS,
        },
        "blockNumber": block_number,
        "transactionHash": tx_id_bytes(tx_hash(block_number)),
    }


def burned_log(tx_id: str, block_number: int, amount: int = 1000) -> dict[str, Any]:
    """TokenBurned log as returned by web3"""
    return {
        "event": "TokenBurned",
        "args": {
            "txId": tx_id_bytes(tx_id),
            "user": USER_ADDRESS,
            "token": TOKEN_ADDRESS,
            "amount": amount,
        },
        "blockNumber": block_number,
        "transactionHash": tx_id_bytes(tx_hash(block_number)),
    }


def bridge_event_data(
    tx_id: str,
    source_chain: int = 1,
    target_chain: int = 56,
    block_number: int = 100,
    amount: str = "1000",
    event_type: BridgeEventType = BridgeEventType.LOCKED,
) -> BridgeEventData:
    return BridgeEventData(
        tx_id=tx_id,
        event_type=event_type,
        source_chain=source_chain,
        target_chain=target_chain,
        user_address=USER_ADDRESS,
        token_address=TOKEN_ADDRESS,
        amount=amount,
        target_address=TARGET_ADDRESS,
        block_number=block_number,
        transaction_hash=tx_hash(block_number),
    )


class FakeChainConnection:
    """In-memory replacement of ChainConnection"""

    def __init__(self, chain: ChainDescriptor, head: int = 0):
        self.chain = chain
        self.head = head
        self.gas_price = to_wei(10, "gwei")
        self.balance = to_wei(1, "ether")
        self.logs: dict[BridgeEventType, list[dict]] = {
            BridgeEventType.LOCKED: [],
            BridgeEventType.BURNED: [],
        }
        self.records: dict[str, BridgeTransactionRecord] = {}
        self.receipt: dict[str, Any] = {"status": 1, "gasUsed": 52000}
        self.authorized = True

        self.block_number_error: Exception | None = None
        self.gas_price_error: Exception | None = None
        self.log_error: Exception | None = None
        self.release_error: Exception | None = None
        self.receipt_error: Exception | None = None
        self.balance_error: Exception | None = None

        self.log_requests: list[tuple[BridgeEventType, int, int]] = []
        self.released: list[tuple[str, str, int]] = []
        self.closed = False

    @property
    def chain_id(self) -> int:
        return self.chain.chain_id

    async def get_block_number(self) -> int:
        if self.block_number_error is not None:
            raise self.block_number_error
        return self.head

    async def get_gas_price(self) -> int:
        if self.gas_price_error is not None:
            raise self.gas_price_error
        return self.gas_price

    async def get_balance(self, address: str) -> int:
        if self.balance_error is not None:
            raise self.balance_error
        return self.balance

    async def get_bridge_event_logs(
        self, event_type: BridgeEventType, block_from: int, block_to: int
    ) -> list[dict]:
        self.log_requests.append((event_type, block_from, block_to))
        if self.log_error is not None:
            raise self.log_error
        return [
            log_entry
            for log_entry in self.logs[event_type]
            if block_from <= log_entry["blockNumber"] <= block_to
        ]

    async def get_transaction_record(self, tx_id: str) -> BridgeTransactionRecord:
        return self.records[tx_id]

    async def is_relayer_authorized(self, address: str) -> bool:
        return self.authorized

    async def release_tokens(self, tx_id: str, account, gas_price: int) -> str:
        self.released.append((tx_id, account.address, gas_price))
        if self.release_error is not None:
            raise self.release_error
        return tx_hash(0xF000 + len(self.released))

    async def wait_for_transaction_receipt(self, tx_hash: str, timeout: int) -> dict:
        if self.receipt_error is not None:
            raise self.receipt_error
        return self.receipt

    async def close(self):
        self.closed = True

class RecordingSink(NotificationSink):
    """Notification sink that keeps every notification"""

    def __init__(self):
        super().__init__()
        self.notifications: list[Notification] = []

    def notify(self, kind, message, data=None, error=None) -> None:
        self.notifications.append(
            Notification(
                kind=kind,
                message=message,
                data=data,
                error=str(error) if error is not None else None,
                timestamp=aware_utcnow(),
            )
        )

    def kinds(self) -> list[NotificationKind]:
        return [n.kind for n in self.notifications]


def padded_tx_id(tx_id: str) -> str:
    """Bridge transaction ID as decoded from an event log"""
    return "0x" + tx_id_bytes(tx_id).hex()
