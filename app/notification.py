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
from typing import Any

from aiohttp import ClientSession, ClientTimeout, TCPConnector
from pydantic import ValidationError

from app import log
from app.model.db.base import aware_utcnow
from app.model.schema import Notification, NotificationKind
from config import (
    DISCORD_WEBHOOK_URL,
    NOTIFICATION_REQUEST_TIMEOUT,
    SLACK_WEBHOOK_URL,
    TELEGRAM_BOT_TOKEN,
    TELEGRAM_CHAT_ID,
)

LOG = log.get_logger()

ALERT_TITLE = "Bridge Relayer Alert"

# Embed/attachment color of each notification kind
ALERT_COLORS: dict[NotificationKind, int] = {
    NotificationKind.NEW_EVENT: 0x3498DB,
    NotificationKind.SETTLEMENT_SUCCESS: 0x2ECC71,
    NotificationKind.SETTLEMENT_FAILURE: 0xE74C3C,
    NotificationKind.PROCESSING_ERROR: 0xF39C12,
    NotificationKind.LOW_BALANCE: 0xF1C40F,
    NotificationKind.SERVICE_LIFECYCLE: 0x9B59B6,
}
DEFAULT_ALERT_COLOR = 0x95A5A6


class NotificationSink:
    """Fire-and-forget notification sink

    `notify` returns immediately. Delivery runs in a background task and
    its failures are only logged. This base sink only writes the log.
    """

    def __init__(self):
        self._tasks: set[asyncio.Task] = set()

    def notify(
        self,
        kind: NotificationKind,
        message: str,
        data: dict[str, Any] | None = None,
        error: BaseException | str | None = None,
    ) -> None:
        try:
            notification = Notification(
                kind=kind,
                message=message,
                data=data,
                error=str(error) if error is not None else None,
                timestamp=aware_utcnow(),
            )
        except ValidationError:
            LOG.exception(f"Invalid notification: kind={kind}")
            return

        LOG.info(f"Notification: kind={notification.kind}, message={message}")
        try:
            task = asyncio.get_running_loop().create_task(
                self.__deliver_safely(notification)
            )
        except RuntimeError:
            LOG.warning(f"No running event loop, notification dropped: kind={kind}")
            return
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def deliver(self, notification: Notification) -> None:
        """Deliver the notification to the channels"""
        pass

    async def aclose(self) -> None:
        """Wait for in-flight deliveries"""
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)

    async def __deliver_safely(self, notification: Notification):
        try:
            await self.deliver(notification)
        except Exception:
            LOG.exception(f"Failed to deliver notification: kind={notification.kind}")


class WebhookNotificationSink(NotificationSink):
    """Notification sink posting to Discord, Slack and Telegram webhooks

    Channels without credentials are skipped.
    """

    def __init__(
        self,
        discord_webhook_url: str | None = DISCORD_WEBHOOK_URL,
        slack_webhook_url: str | None = SLACK_WEBHOOK_URL,
        telegram_bot_token: str | None = TELEGRAM_BOT_TOKEN,
        telegram_chat_id: str | None = TELEGRAM_CHAT_ID,
        request_timeout: int = NOTIFICATION_REQUEST_TIMEOUT,
    ):
        super().__init__()
        self.discord_webhook_url = discord_webhook_url
        self.slack_webhook_url = slack_webhook_url
        self.telegram_bot_token = telegram_bot_token
        self.telegram_chat_id = telegram_chat_id
        self.request_timeout = request_timeout

    @property
    def channels(self) -> list[str]:
        channels = []
        if self.discord_webhook_url:
            channels.append("discord")
        if self.slack_webhook_url:
            channels.append("slack")
        if self.telegram_bot_token and self.telegram_chat_id:
            channels.append("telegram")
        return channels

    def build_requests(self, notification: Notification) -> list[tuple[str, str, dict]]:
        """Build (channel, url, payload) of each configured channel"""
        text = notification.format_text()
        color = ALERT_COLORS.get(notification.kind, DEFAULT_ALERT_COLOR)
        requests = []
        if self.discord_webhook_url:
            requests.append(
                (
                    "discord",
                    self.discord_webhook_url,
                    {
                        "embeds": [
                            {
                                "title": ALERT_TITLE,
                                "description": text,
                                "color": color,
                                "timestamp": notification.timestamp.isoformat(),
                            }
                        ]
                    },
                )
            )
        if self.slack_webhook_url:
            requests.append(
                (
                    "slack",
                    self.slack_webhook_url,
                    {
                        "attachments": [
                            {
                                "color": f"#{color:06x}",
                                "title": ALERT_TITLE,
                                "text": text,
                                "ts": int(notification.timestamp.timestamp()),
                            }
                        ]
                    },
                )
            )
        if self.telegram_bot_token and self.telegram_chat_id:
            requests.append(
                (
                    "telegram",
                    f"https://api.telegram.org/bot{self.telegram_bot_token}/sendMessage",
                    {
                        "chat_id": self.telegram_chat_id,
                        "text": f"{ALERT_TITLE}\n{text}",
                    },
                )
            )
        return requests

    async def deliver(self, notification: Notification) -> None:
        requests = self.build_requests(notification)
        if not requests:
            return

        async with TCPConnector(limit=len(requests), keepalive_timeout=0) as connector:
            async with ClientSession(
                connector=connector, timeout=ClientTimeout(self.request_timeout)
            ) as session:
                results = await asyncio.gather(
                    *[
                        self.__post(session, url, payload)
                        for _, url, payload in requests
                    ],
                    return_exceptions=True,
                )

        delivered, failed = [], []
        for (channel, _, _), result in zip(requests, results):
            if isinstance(result, BaseException):
                failed.append(channel)
                LOG.error(
                    f"Failed to send notification: channel={channel}, kind={notification.kind}, error={result!r}"
                )
            else:
                delivered.append(channel)
        log.output_notification_log(
            kind=str(notification.kind),
            message=notification.message,
            delivered=delivered,
            failed=failed,
        )

    @staticmethod
    async def __post(session: ClientSession, url: str, payload: dict):
        async with session.post(url=url, json=payload) as resp:
            resp.raise_for_status()
