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

import json
import os
from typing import Any, Sequence, TypeVar

from eth_account.signers.local import LocalAccount
from eth_utils import to_bytes, to_checksum_address
from web3 import AsyncWeb3
from web3.contract import AsyncContract
from web3.exceptions import (
    ABIEventNotFound,
    ABIFunctionNotFound,
    BadFunctionCallOutput,
    ContractLogicError,
)
from web3.types import EventData, TxReceipt

CONTRACTS_DIR = os.path.join(
    os.path.dirname(os.path.realpath(__file__)), "..", "..", "contracts"
)


def tx_id_to_bytes32(tx_id: str) -> bytes:
    """Convert 0x-prefixed bridge transaction ID to bytes32"""
    return to_bytes(hexstr=tx_id).rjust(32, b"\x00")


class EthAsyncContractUtils:
    abi_map: dict[str, list] = {}

    @classmethod
    def get_contract_abi(cls, contract_name: str) -> list:
        """Get contract ABI

        :param contract_name: contract name
        :return: ABI
        """
        abi = cls.abi_map.get(contract_name)
        if abi is not None:
            return abi

        with open(os.path.join(CONTRACTS_DIR, f"{contract_name}.json"), "r") as f:
            contract_json = json.load(f)
        cls.abi_map[contract_name] = contract_json["abi"]
        return contract_json["abi"]

    @classmethod
    def get_contract(
        cls, web3: AsyncWeb3, contract_name: str, contract_address: str
    ) -> AsyncContract:
        """Get contract

        :param web3: AsyncWeb3 connected to the chain
        :param contract_name: contract name
        :param contract_address: contract address
        :return: Contract
        """
        return web3.eth.contract(
            address=to_checksum_address(contract_address),
            abi=cls.get_contract_abi(contract_name),
        )

    T = TypeVar("T")

    @staticmethod
    async def call_function(
        contract: AsyncContract,
        function_name: str,
        args: tuple,
        default_returns: T = None,
    ) -> T:
        """Call contract function

        :param contract: Contract
        :param function_name: Function name
        :param args: Function args
        :param default_returns: Default return when web3 exceptions are raised
        :return: Return from function or default return
        """
        try:
            _function = getattr(contract.functions, function_name)
            result = await _function(*args).call()
        except (
            BadFunctionCallOutput,
            ABIFunctionNotFound,
            ContractLogicError,
        ) as web3_exception:
            if default_returns is not None:
                return default_returns
            else:
                raise web3_exception

        return result

    @staticmethod
    async def send_transaction(
        web3: AsyncWeb3, transaction: dict, account: LocalAccount
    ) -> str:
        """Send transaction

        :param web3: AsyncWeb3 connected to the chain
        :param transaction: Transaction parameters
        :param account: Signer of the transaction
        :return: Transaction hash
        """
        # Get nonce (including transactions in the pool)
        nonce = await web3.eth.get_transaction_count(account.address, "pending")
        transaction["nonce"] = nonce
        signed_tx = web3.eth.account.sign_transaction(
            transaction_dict=transaction, private_key=account.key
        )
        # Send Transaction
        tx_hash = await web3.eth.send_raw_transaction(
            signed_tx.raw_transaction.to_0x_hex()
        )
        return tx_hash.to_0x_hex()

    @staticmethod
    async def wait_for_transaction_receipt(
        web3: AsyncWeb3, tx_hash: str, timeout: int = 10
    ) -> TxReceipt:
        """Wait for transaction receipt

        :param web3: AsyncWeb3 connected to the chain
        :param tx_hash: Transaction hash
        :param timeout: Timeout in seconds
        :return: Transaction receipt
        """
        return await web3.eth.wait_for_transaction_receipt(
            transaction_hash=tx_hash, timeout=timeout
        )

    @staticmethod
    async def get_event_logs(
        contract: AsyncContract,
        event: str,
        block_from: int = None,
        block_to: int = None,
        argument_filters: dict[str, Any] = None,
    ) -> Sequence[EventData]:
        """Get contract event logs

        :param contract: Contract
        :param event: Event
        :param block_from: from_block
        :param block_to: to_block
        :param argument_filters: Argument filter
        :return: Event logs
        """
        try:
            _event = getattr(contract.events, event)
            result = await _event.get_logs(
                from_block=block_from,
                to_block=block_to,
                argument_filters=argument_filters,
            )
        except ABIEventNotFound:
            return []

        return result
