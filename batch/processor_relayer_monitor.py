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

from app.model.schema import BridgeDailyReport, NotificationKind
from app.notification import NotificationSink
from app.store import BridgeEventStore
from batch.processor_bridge_event_watcher import BridgeEventWatcher
from batch.processor_bridge_settlement import BridgeSettlementProcessor
from batch.utils import batch_log
from batch.utils.scheduler import Scheduler
from config import (
    BALANCE_CHECK_INTERVAL,
    DAILY_REPORT_INTERVAL,
    HEALTH_CHECK_INTERVAL,
    LOW_BALANCE_THRESHOLD,
)

"""
[PROCESSOR-Relayer-Monitor]

This processor monitors the relayer itself.
- Health check of the event watcher and the settlement processor
- Relayer balance on every active chain
- Daily report of bridge events
"""

process_name = "PROCESSOR-Relayer-Monitor"
LOG = batch_log.get_logger(process_name=process_name)

TAG_PREFIX = "monitor-"


class RelayerMonitor:
    """
    Monitor of the relayer components
    """

    def __init__(
        self,
        watcher: BridgeEventWatcher,
        processor: BridgeSettlementProcessor,
        store: BridgeEventStore,
        sink: NotificationSink,
        scheduler: Scheduler,
        low_balance_threshold: str = LOW_BALANCE_THRESHOLD,
    ):
        self.watcher = watcher
        self.processor = processor
        self.store = store
        self.sink = sink
        self.scheduler = scheduler
        self.low_balance_threshold = Decimal(low_balance_threshold)

    def start(self):
        self.scheduler.add_task(
            tag="monitor-health-check",
            interval=HEALTH_CHECK_INTERVAL,
            func=self.health_check,
        )
        self.scheduler.add_task(
            tag="monitor-balance-check",
            interval=BALANCE_CHECK_INTERVAL,
            func=self.check_balances,
        )
        self.scheduler.add_task(
            tag="monitor-daily-report",
            interval=DAILY_REPORT_INTERVAL,
            func=self.daily_report,
        )

    def stop(self):
        self.scheduler.remove_tasks(TAG_PREFIX)

    async def health_check(self) -> bool:
        """Check that the watcher and the processor are running

        :return: True if healthy
        """
        problems = []
        if not self.watcher.status()["running"]:
            problems.append("Event watcher is not running")
        if not self.processor.status()["running"]:
            problems.append("Settlement processor is not running")

        if problems:
            LOG.error(f"Health check failed: {', '.join(problems)}")
            self.sink.notify(
                kind=NotificationKind.SERVICE_LIFECYCLE,
                message="Health check failed",
                data={"problems": problems},
            )
            return False

        LOG.debug("Health check passed")
        return True

    async def check_balances(self) -> list[int]:
        """Alert chains where the relayer balance is below the threshold

        :return: chain IDs with low balance
        """
        balances = await self.processor.all_balances()
        low_balance_chains = []
        for chain_id, balance in balances.items():
            if Decimal(balance["balance"]) >= self.low_balance_threshold:
                continue
            low_balance_chains.append(chain_id)
            LOG.warning(
                f"Low relayer balance: chain_id={chain_id}, name={balance['name']}, balance={balance['balance']}"
            )
            self.sink.notify(
                kind=NotificationKind.LOW_BALANCE,
                message=f"Low relayer balance on {balance['name']}",
                data={
                    "chain_id": chain_id,
                    "balance": balance["balance"],
                    "threshold": str(self.low_balance_threshold),
                },
            )
        return low_balance_chains

    async def daily_report(self) -> BridgeDailyReport:
        """Rebuild daily aggregates and send the report of the last 24 hours"""
        await self.store.rebuild_daily_aggregates(days=2)
        route_stats = await self.store.bridge_stats(days=1)

        report = BridgeDailyReport(
            total_events=sum(s.total_events for s in route_stats),
            successful_relays=sum(s.successful_relays for s in route_stats),
            failed_relays=sum(s.failed_relays for s in route_stats),
            total_volume=str(sum(int(s.total_volume) for s in route_stats)),
        )
        message = (
            f"Daily report: events={report.total_events}, "
            f"success_rate={report.success_rate:.2f}%, "
            f"failed={report.failed_relays}, volume={report.total_volume}"
        )
        LOG.info(message)
        self.sink.notify(
            kind=NotificationKind.SERVICE_LIFECYCLE,
            message=message,
            data=report.model_dump(),
        )
        return report
