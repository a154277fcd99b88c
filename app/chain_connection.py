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

from typing import Sequence

from aiohttp import ClientTimeout
from eth_account.signers.local import LocalAccount
from web3 import AsyncHTTPProvider, AsyncWeb3
from web3.types import EventData, TxReceipt

from app.model.db import BridgeEventType
from app.model.eth import BridgeContract
from app.model.schema import BridgeTransactionRecord, ChainDescriptor
from app.utils.eth_contract_utils import EthAsyncContractUtils
from config import WEB3_REQUEST_TIMEOUT


class ChainConnection:
    """Connection to a single chain and its bridge contract

    Instances are created once per active chain and shared by the
    watcher and the settlement processor.
    """

    def __init__(self, chain: ChainDescriptor, web3: AsyncWeb3 | None = None):
        self.chain = chain
        if web3 is None:
            web3 = AsyncWeb3(
                AsyncHTTPProvider(
                    chain.rpc_url,
                    request_kwargs={"timeout": ClientTimeout(WEB3_REQUEST_TIMEOUT)},
                )
            )
        self.web3 = web3
        self.bridge = BridgeContract(web3=web3, contract_address=chain.bridge_address)

    @property
    def chain_id(self) -> int:
        return self.chain.chain_id

    async def get_block_number(self) -> int:
        return await self.web3.eth.block_number

    async def get_gas_price(self) -> int:
        return await self.web3.eth.gas_price

    async def get_balance(self, address: str) -> int:
        return await self.web3.eth.get_balance(address)

    async def get_bridge_event_logs(
        self, event_type: BridgeEventType, block_from: int, block_to: int
    ) -> Sequence[EventData]:
        """Get TokenLocked/TokenBurned logs emitted in [block_from, block_to]"""
        return await EthAsyncContractUtils.get_event_logs(
            contract=self.bridge.contract,
            event=str(event_type),
            block_from=block_from,
            block_to=block_to,
        )

    async def get_transaction_record(self, tx_id: str) -> BridgeTransactionRecord:
        return await self.bridge.get_transaction(tx_id)

    async def is_relayer_authorized(self, address: str) -> bool:
        return await self.bridge.is_relayer(address)

    async def release_tokens(
        self, tx_id: str, account: LocalAccount, gas_price: int
    ) -> str:
        return await self.bridge.release_tokens(
            tx_id=tx_id,
            tx_sender=account,
            chain_id=self.chain.chain_id,
            gas_limit=self.chain.gas_limit,
            gas_price=gas_price,
        )

    async def wait_for_transaction_receipt(
        self, tx_hash: str, timeout: int
    ) -> TxReceipt:
        return await EthAsyncContractUtils.wait_for_transaction_receipt(
            web3=self.web3, tx_hash=tx_hash, timeout=timeout
        )

    async def close(self):
        await self.web3.provider.disconnect()


def build_chain_connections(
    chains: Sequence[ChainDescriptor],
) -> dict[int, ChainConnection]:
    """Build a connection for each chain

    :param chains: descriptors of the active chains
    :return: chain_id -> ChainConnection
    """
    return {chain.chain_id: ChainConnection(chain) for chain in chains}
