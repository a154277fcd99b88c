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

import pytest
from pydantic import ValidationError

from app.model.db import BridgeEventStatus, BridgeEventType, is_valid_status_transition
from app.model.schema import BridgeEventData, BridgeTransactionRecord
from tests.bridge_utils import (
    TARGET_ADDRESS,
    TOKEN_ADDRESS,
    USER_ADDRESS,
    bridge_event_data,
    tx_id_bytes,
)


class TestIsValidStatusTransition:
    ###########################################################################
    # Normal Case
    ###########################################################################

    # <Normal_1>
    # Transitions performed by the relayer
    @pytest.mark.parametrize(
        "current, requested",
        [
            (BridgeEventStatus.PENDING, BridgeEventStatus.CONFIRMED),
            (BridgeEventStatus.PENDING, BridgeEventStatus.FAILED),
            (BridgeEventStatus.CONFIRMED, BridgeEventStatus.COMPLETED),
            (BridgeEventStatus.CONFIRMED, BridgeEventStatus.FAILED),
        ],
    )
    def test_normal_1(self, current, requested):
        assert is_valid_status_transition(current, requested) is True

    # <Normal_2>
    # Operator retry
    def test_normal_2(self):
        assert (
            is_valid_status_transition(
                BridgeEventStatus.FAILED,
                BridgeEventStatus.CONFIRMED,
                administrative=True,
            )
            is True
        )
        assert (
            is_valid_status_transition("failed", "confirmed", administrative=True)
            is True
        )

    ###########################################################################
    # Error Case
    ###########################################################################

    # <Error_1>
    # Terminal and backward transitions
    @pytest.mark.parametrize(
        "current, requested",
        [
            (BridgeEventStatus.PENDING, BridgeEventStatus.COMPLETED),
            (BridgeEventStatus.CONFIRMED, BridgeEventStatus.PENDING),
            (BridgeEventStatus.COMPLETED, BridgeEventStatus.FAILED),
            (BridgeEventStatus.COMPLETED, BridgeEventStatus.CONFIRMED),
            (BridgeEventStatus.FAILED, BridgeEventStatus.CONFIRMED),
            (BridgeEventStatus.FAILED, BridgeEventStatus.COMPLETED),
        ],
    )
    def test_error_1(self, current, requested):
        assert is_valid_status_transition(current, requested) is False

    # <Error_2>
    # Completed stays terminal for an operator
    def test_error_2(self):
        assert (
            is_valid_status_transition(
                BridgeEventStatus.COMPLETED,
                BridgeEventStatus.CONFIRMED,
                administrative=True,
            )
            is False
        )


class TestBridgeEventData:
    ###########################################################################
    # Normal Case
    ###########################################################################

    # <Normal_1>
    # Values are normalized
    def test_normal_1(self):
        event = BridgeEventData(
            tx_id=tx_id_bytes("0xABC"),
            event_type="TokenLocked",
            source_chain=1,
            target_chain=56,
            user_address=USER_ADDRESS,
            token_address=TOKEN_ADDRESS,
            amount=10**30,
            fee="007",
            target_address=TARGET_ADDRESS,
            block_number=100,
            transaction_hash="0x" + "AB" * 32,
        )

        assert event.tx_id == "0x" + "00" * 30 + "0abc"
        assert event.event_type == BridgeEventType.LOCKED
        assert event.amount == str(10**30)
        assert event.fee == "7"
        assert event.transaction_hash == "0x" + "ab" * 32

    # <Normal_2>
    # Short hex transaction ID is accepted
    def test_normal_2(self):
        event = bridge_event_data("0xABC")
        assert event.tx_id == "0xabc"

    ###########################################################################
    # Error Case
    ###########################################################################

    # <Error_1>
    # Source and target chain must differ
    def test_error_1(self):
        with pytest.raises(ValidationError, match="must differ"):
            bridge_event_data("0xabc", source_chain=56, target_chain=56)

    # <Error_2>
    # Negative amount
    def test_error_2(self):
        with pytest.raises(ValidationError):
            bridge_event_data("0xabc", amount="-1")

    # <Error_3>
    # Invalid transaction ID
    @pytest.mark.parametrize("tx_id", ["abc", "0x", "0xzz", "0x" + "a" * 65])
    def test_error_3(self, tx_id):
        with pytest.raises(ValidationError):
            bridge_event_data(tx_id)

    # <Error_4>
    # Invalid address
    def test_error_4(self):
        with pytest.raises(ValidationError):
            BridgeEventData(
                tx_id="0xabc",
                event_type=BridgeEventType.BURNED,
                source_chain=1,
                target_chain=56,
                user_address="0x1234",
                token_address=TOKEN_ADDRESS,
                amount="1",
                target_address=TARGET_ADDRESS,
                block_number=1,
                transaction_hash="0x01",
            )


class TestBridgeTransactionRecord:
    # <Normal_1>
    def test_normal_1(self):
        record = BridgeTransactionRecord.from_tuple(
            (
                tx_id_bytes("0xabc"),
                USER_ADDRESS,
                TOKEN_ADDRESS,
                1000,
                10,
                56,
                1,
                TARGET_ADDRESS,
                1700000000,
                1,
            )
        )

        assert record.tx_id == "0x" + "00" * 30 + "0abc"
        assert record.amount == "1000"
        assert record.fee == "10"
        assert record.source_chain == 56
        assert record.target_chain == 1
        assert record.target_address == TARGET_ADDRESS
