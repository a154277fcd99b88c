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

from datetime import datetime
from enum import StrEnum
from typing import Any, Optional

from pydantic import BaseModel, Field


class NotificationKind(StrEnum):
    """Notification Kind"""

    NEW_EVENT = "new-event"
    SETTLEMENT_SUCCESS = "settlement-success"
    SETTLEMENT_FAILURE = "settlement-failure"
    PROCESSING_ERROR = "processing-error"
    LOW_BALANCE = "low-balance"
    SERVICE_LIFECYCLE = "service-lifecycle"


class Notification(BaseModel):
    """Notification delivered to alert channels"""

    kind: NotificationKind = Field(description="Notification kind")
    message: str = Field(description="Message")
    data: Optional[dict[str, Any]] = Field(None, description="Related data")
    error: Optional[str] = Field(None, description="Error message")
    timestamp: datetime = Field(description="Notified datetime (UTC)")

    def format_text(self) -> str:
        """Render the notification as plain text lines"""
        lines = [
            f"Type: {self.kind}",
            f"Time: {self.timestamp.strftime('%Y-%m-%d %H:%M:%S')} UTC",
            f"Message: {self.message}",
        ]
        data = self.data or {}
        if data.get("tx_id"):
            lines.append(f"Transaction ID: {data['tx_id']}")
        if data.get("source_chain") and data.get("target_chain"):
            lines.append(f"Route: {data['source_chain']} -> {data['target_chain']}")
        if data.get("amount"):
            token = data.get("token_address")
            lines.append(
                f"Amount: {data['amount']}" + (f" (Token: {token})" if token else "")
            )
        if data.get("settlement_tx_hash"):
            lines.append(f"Settlement TX: {data['settlement_tx_hash']}")
        if self.error:
            lines.append(f"Error: {self.error}")
        return "\n".join(lines)
