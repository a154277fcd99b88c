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

from eth_account.signers.local import LocalAccount
from eth_utils import to_checksum_address
from web3 import AsyncWeb3
from web3.contract import AsyncContract

from app.exceptions import SendTransactionError
from app.model import EthereumAddress
from app.model.schema import BridgeTransactionRecord
from app.utils.eth_contract_utils import EthAsyncContractUtils, tx_id_to_bytes32


class BridgeContract:
    """
    Bridge contract
    """

    contract_name = "Bridge"
    contract: AsyncContract

    def __init__(self, web3: AsyncWeb3, contract_address: EthereumAddress):
        self.web3 = web3
        self.contract = EthAsyncContractUtils.get_contract(
            web3=web3,
            contract_name=self.contract_name,
            contract_address=contract_address,
        )

    async def get_transaction(self, tx_id: str) -> BridgeTransactionRecord:
        """
        Get bridge transaction record

        :param tx_id: Bridge transaction ID
        :return: Transaction record
        """
        record = await EthAsyncContractUtils.call_function(
            contract=self.contract,
            function_name="getTransaction",
            args=(tx_id_to_bytes32(tx_id),),
        )
        return BridgeTransactionRecord.from_tuple(record)

    async def is_relayer(self, account: EthereumAddress) -> bool:
        """
        Check whether the account is an authorized relayer

        :param account: Account address
        :return: True if authorized
        """
        return await EthAsyncContractUtils.call_function(
            contract=self.contract,
            function_name="relayers",
            args=(to_checksum_address(account),),
            default_returns=False,
        )

    async def release_tokens(
        self,
        tx_id: str,
        tx_sender: LocalAccount,
        chain_id: int,
        gas_limit: int,
        gas_price: int,
    ) -> str:
        """
        Release tokens on the target chain

        :param tx_id: Bridge transaction ID
        :param tx_sender: Relayer account
        :param chain_id: Chain ID
        :param gas_limit: Gas limit
        :param gas_price: Gas price [wei]
        :return: Transaction hash
        """
        try:
            tx = await self.contract.functions.releaseTokens(
                tx_id_to_bytes32(tx_id)
            ).build_transaction(
                {
                    "chainId": chain_id,
                    "from": to_checksum_address(tx_sender.address),
                    "gas": gas_limit,
                    "gasPrice": gas_price,
                }
            )
            tx_hash = await EthAsyncContractUtils.send_transaction(
                web3=self.web3, transaction=tx, account=tx_sender
            )
        except Exception as err:
            raise SendTransactionError(err) from err

        return tx_hash
