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

from enum import StrEnum

from sqlalchemy import BigInteger, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base


class BridgeEventType(StrEnum):
    """Bridge Event Type

    Values are the event names emitted by the bridge contract.
    """

    LOCKED = "TokenLocked"
    BURNED = "TokenBurned"


class BridgeEventStatus(StrEnum):
    """Bridge Event Status"""

    PENDING = "pending"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    FAILED = "failed"


# Status transitions performed by the relayer
ALLOWED_STATUS_TRANSITIONS: dict[BridgeEventStatus, frozenset[BridgeEventStatus]] = {
    BridgeEventStatus.PENDING: frozenset(
        {BridgeEventStatus.CONFIRMED, BridgeEventStatus.FAILED}
    ),
    BridgeEventStatus.CONFIRMED: frozenset(
        {BridgeEventStatus.COMPLETED, BridgeEventStatus.FAILED}
    ),
    BridgeEventStatus.COMPLETED: frozenset(),
    BridgeEventStatus.FAILED: frozenset(),
}

# Status transitions performed by an operator
ADMINISTRATIVE_STATUS_TRANSITIONS: dict[
    BridgeEventStatus, frozenset[BridgeEventStatus]
] = {
    BridgeEventStatus.FAILED: frozenset({BridgeEventStatus.CONFIRMED}),
}


def is_valid_status_transition(
    current: BridgeEventStatus,
    requested: BridgeEventStatus,
    administrative: bool = False,
) -> bool:
    """Check whether the status transition is allowed

    :param current: current status
    :param requested: requested status
    :param administrative: True if the transition is requested by an operator
    :return: True if allowed
    """
    current = BridgeEventStatus(current)
    requested = BridgeEventStatus(requested)
    if requested in ALLOWED_STATUS_TRANSITIONS[current]:
        return True
    if administrative:
        return requested in ADMINISTRATIVE_STATUS_TRANSITIONS.get(current, frozenset())
    return False


class BridgeEvent(Base):
    """Bridge Event"""

    __tablename__ = "bridge_event"

    # Record ID
    id: Mapped[int] = mapped_column(
        BigInteger().with_variant(Integer, "sqlite"),
        primary_key=True,
        autoincrement=True,
    )
    # Bridge transaction ID
    # - bytes32 assigned by the source bridge contract (0x-prefixed hex)
    tx_id: Mapped[str] = mapped_column(String(66), nullable=False, unique=True)
    # Event type
    event_type: Mapped[BridgeEventType] = mapped_column(String(20), nullable=False)
    # Source chain ID
    source_chain: Mapped[int] = mapped_column(BigInteger, nullable=False)
    # Target chain ID
    target_chain: Mapped[int] = mapped_column(BigInteger, nullable=False)
    # Address of the user who locked or burned the token
    user_address: Mapped[str] = mapped_column(String(42), nullable=False)
    # Token address on the source chain
    token_address: Mapped[str] = mapped_column(String(42), nullable=False)
    # Amount
    # - Unsigned integer in the token's smallest unit, stored as decimal string
    amount: Mapped[str] = mapped_column(String(78), nullable=False)
    # Bridge fee
    # - Decimal string, set if the source contract reports it
    fee: Mapped[str | None] = mapped_column(String(78), nullable=True)
    # Recipient address on the target chain
    target_address: Mapped[str] = mapped_column(String(42), nullable=False)
    # Block number of the source event
    block_number: Mapped[int] = mapped_column(BigInteger, nullable=False)
    # Transaction hash of the source event
    transaction_hash: Mapped[str] = mapped_column(String(66), nullable=False)
    # Status
    # - pending: observed, not yet at confirmation threshold
    # - confirmed: confirmation threshold reached, waiting for settlement
    # - completed: settlement transaction succeeded
    # - failed: settlement was rejected or processing failed
    status: Mapped[BridgeEventStatus] = mapped_column(
        String(20), nullable=False, default=BridgeEventStatus.PENDING, index=True
    )
    # Number of confirmations on the source chain
    confirmations: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    # Transaction hash of releaseTokens on the target chain
    settlement_tx_hash: Mapped[str | None] = mapped_column(String(66), nullable=True)
    # Error message of the last failure
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)

    def json(self):
        return {
            "tx_id": self.tx_id,
            "event_type": self.event_type,
            "source_chain": self.source_chain,
            "target_chain": self.target_chain,
            "user_address": self.user_address,
            "token_address": self.token_address,
            "amount": self.amount,
            "fee": self.fee,
            "target_address": self.target_address,
            "block_number": self.block_number,
            "transaction_hash": self.transaction_hash,
            "status": self.status,
            "confirmations": self.confirmations,
            "settlement_tx_hash": self.settlement_tx_hash,
            "error_message": self.error_message,
            "created": self.datetime_to_iso(self.created),
            "modified": self.datetime_to_iso(self.modified),
        }


Index(
    "ix_bridge_event_source_chain_target_chain",
    BridgeEvent.source_chain,
    BridgeEvent.target_chain,
)
