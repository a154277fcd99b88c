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

from decimal import Decimal

from eth_utils import to_wei
from pydantic import BaseModel, ConfigDict, Field, NonNegativeInt, PositiveInt

from app.model import EthereumAddress


class ChainDescriptor(BaseModel):
    """Static configuration of a bridged chain"""

    model_config = ConfigDict(frozen=True)

    chain_id: PositiveInt = Field(description="Chain ID")
    name: str = Field(description="Display name")
    rpc_url: str = Field(min_length=1, description="RPC endpoint")
    bridge_address: EthereumAddress = Field(description="Bridge contract address")
    min_confirmations: NonNegativeInt = Field(
        description="Confirmations required before settlement"
    )
    gas_limit: PositiveInt = Field(description="Gas limit of the settlement call")
    max_gas_price: Decimal = Field(gt=0, description="Gas price ceiling [gwei]")
    block_time: PositiveInt = Field(description="Expected block interval [ms]")
    start_block: NonNegativeInt = Field(
        default=0, description="First block scanned when no watermark exists"
    )

    @property
    def max_gas_price_wei(self) -> int:
        return int(to_wei(self.max_gas_price, "gwei"))

    @property
    def block_time_sec(self) -> float:
        return self.block_time / 1000
