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

from typing import Optional

from pydantic import BaseModel, Field, NonNegativeInt, PositiveInt, model_validator

from app.model import AmountStr, Bytes32Hex, EthereumAddress
from app.model.db import BridgeEventStatus, BridgeEventType


############################
# COMMON
############################
class BridgeEventData(BaseModel):
    """Canonical bridge event observed on a source chain"""

    tx_id: Bytes32Hex = Field(description="Bridge transaction ID")
    event_type: BridgeEventType = Field(description="Event type")
    source_chain: PositiveInt = Field(description="Source chain ID")
    target_chain: PositiveInt = Field(description="Target chain ID")
    user_address: EthereumAddress = Field(description="User address")
    token_address: EthereumAddress = Field(description="Token address")
    amount: AmountStr = Field(description="Amount (decimal string)")
    fee: Optional[AmountStr] = Field(default=None, description="Bridge fee")
    target_address: EthereumAddress = Field(description="Recipient on target chain")
    block_number: NonNegativeInt = Field(description="Source block number")
    transaction_hash: Bytes32Hex = Field(description="Source transaction hash")

    @model_validator(mode="after")
    def check_route(self):
        if self.source_chain == self.target_chain:
            raise ValueError("source chain and target chain must differ")
        return self


class BridgeTransactionRecord(BaseModel):
    """Transaction record returned by Bridge.getTransaction"""

    tx_id: Bytes32Hex
    user: EthereumAddress
    token: EthereumAddress
    amount: AmountStr
    fee: AmountStr
    source_chain: NonNegativeInt
    target_chain: NonNegativeInt
    target_address: EthereumAddress
    timestamp: NonNegativeInt
    status: NonNegativeInt

    @classmethod
    def from_tuple(cls, record: tuple | list) -> "BridgeTransactionRecord":
        (
            tx_id,
            user,
            token,
            amount,
            fee,
            source_chain,
            target_chain,
            target_address,
            timestamp,
            status,
        ) = record
        return cls(
            tx_id=tx_id,
            user=user,
            token=token,
            amount=amount,
            fee=fee,
            source_chain=source_chain,
            target_chain=target_chain,
            target_address=target_address,
            timestamp=timestamp,
            status=status,
        )


############################
# QUERY
############################
class ListBridgeEventsQuery(BaseModel):
    """Filters for listing bridge events"""

    status: Optional[BridgeEventStatus] = Field(None, description="Status")
    source_chain: Optional[int] = Field(None, description="Source chain ID")
    target_chain: Optional[int] = Field(None, description="Target chain ID")
    tx_id: Optional[str] = Field(
        None, description="Bridge transaction ID (partial match)"
    )
    offset: Optional[NonNegativeInt] = Field(None, description="Start position")
    limit: Optional[PositiveInt] = Field(None, description="Number of set")


############################
# RESPONSE
############################
class BridgeRouteStats(BaseModel):
    """Statistics of a route over a trailing window"""

    source_chain: int = Field(description="Source chain ID")
    target_chain: int = Field(description="Target chain ID")
    total_events: int = Field(description="Number of events")
    successful_relays: int = Field(description="Number of completed events")
    failed_relays: int = Field(description="Number of failed events")
    total_volume: str = Field(description="Total amount (decimal string)")


class BridgeDailyReport(BaseModel):
    """Summary of a daily report"""

    total_events: int
    successful_relays: int
    failed_relays: int
    total_volume: str

    @property
    def success_rate(self) -> float:
        if self.total_events == 0:
            return 0.0
        return self.successful_relays / self.total_events * 100
