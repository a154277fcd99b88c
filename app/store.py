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

from contextlib import asynccontextmanager
from datetime import date, timedelta
from typing import AsyncIterator, Sequence

from sqlalchemy import delete, desc, func, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession

from app import log
from app.database import async_engine, get_session_maker
from app.exceptions import InvalidStatusTransitionError, StoreError
from app.model.db import (
    Base,
    BridgeDailyStats,
    BridgeEvent,
    BridgeEventStatus,
    BridgeProcessedBlock,
    is_valid_status_transition,
)
from app.model.db.base import naive_utcnow, utc_day_window, utc_today
from app.model.schema import BridgeEventData, BridgeRouteStats, ListBridgeEventsQuery

LOG = log.get_logger()


class BridgeEventStore:
    """Persistent store of bridge events, watermarks and daily aggregates

    Every operation runs in its own short transaction, so the store can be
    shared by the watcher and processor tasks. Database errors are raised
    as StoreError.
    """

    def __init__(self, engine: AsyncEngine = None):
        self.engine = engine if engine is not None else async_engine
        self.session_maker = get_session_maker(self.engine)

    @asynccontextmanager
    async def _session(self) -> AsyncIterator[AsyncSession]:
        db_session: AsyncSession = self.session_maker()
        try:
            yield db_session
        except SQLAlchemyError as sa_err:
            await db_session.rollback()
            raise StoreError(
                f"A database error has occurred: code={sa_err.code}\n{sa_err}"
            ) from sa_err
        except Exception:
            await db_session.rollback()
            raise
        finally:
            await db_session.close()

    async def create_tables(self):
        try:
            async with self.engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
        except SQLAlchemyError as sa_err:
            raise StoreError(f"Failed to create tables: {sa_err}") from sa_err

    async def close(self):
        await self.engine.dispose()

    ####################################################
    # Bridge Event
    ####################################################
    async def upsert_event(self, event: BridgeEventData) -> bool:
        """Insert or refresh a bridge event

        An existing record keeps its status, confirmations and created time;
        only the observed fields are refreshed.

        :param event: observed bridge event
        :return: True if a new record was created
        """
        async with self._session() as db_session:
            record = await self.__get_event(db_session, event.tx_id)
            if record is None:
                record = BridgeEvent()
                record.tx_id = event.tx_id
                record.status = BridgeEventStatus.PENDING
                record.confirmations = 0
                self.__apply_observation(record, event)
                db_session.add(record)
                try:
                    await db_session.commit()
                    return True
                except IntegrityError:
                    # Inserted concurrently by another task
                    await db_session.rollback()
                    record = await self.__get_event(db_session, event.tx_id)
                    if record is None:
                        raise

            self.__apply_observation(record, event)
            record.modified = naive_utcnow()
            await db_session.commit()
            return False

    async def set_status(
        self,
        tx_id: str,
        status: BridgeEventStatus,
        settlement_tx_hash: str | None = None,
        error_message: str | None = None,
        administrative: bool = False,
    ) -> bool:
        """Transition the status of a bridge event

        :param tx_id: bridge transaction ID
        :param status: new status
        :param settlement_tx_hash: settlement transaction hash
        :param error_message: error message (None clears the current message)
        :param administrative: True if requested by an operator
        :return: False if the event does not exist
        :raises InvalidStatusTransitionError: transition is not allowed
        """
        async with self._session() as db_session:
            record = await self.__get_event(db_session, tx_id)
            if record is None:
                LOG.warning(f"Bridge event not found, status not updated: tx_id={tx_id}")
                return False

            if not is_valid_status_transition(
                record.status, status, administrative=administrative
            ):
                raise InvalidStatusTransitionError(tx_id, record.status, status)

            record.status = status
            if settlement_tx_hash is not None:
                record.settlement_tx_hash = settlement_tx_hash
            record.error_message = error_message
            record.modified = naive_utcnow()
            await db_session.commit()
            return True

    async def set_confirmations(self, tx_id: str, count: int) -> bool:
        """Raise the confirmation count of a bridge event

        :param tx_id: bridge transaction ID
        :param count: confirmations observed
        :return: True if the count was increased
        """
        async with self._session() as db_session:
            result = await db_session.execute(
                update(BridgeEvent)
                .where(BridgeEvent.tx_id == tx_id, BridgeEvent.confirmations < count)
                .values(confirmations=count, modified=naive_utcnow())
                .execution_options(synchronize_session=False)
            )
            await db_session.commit()
            return result.rowcount > 0

    async def pending_for_settlement(self) -> Sequence[BridgeEvent]:
        """Get events awaiting settlement, oldest first"""
        async with self._session() as db_session:
            return (
                await db_session.scalars(
                    select(BridgeEvent)
                    .where(
                        BridgeEvent.status.in_(
                            [BridgeEventStatus.PENDING, BridgeEventStatus.CONFIRMED]
                        )
                    )
                    .order_by(BridgeEvent.created, BridgeEvent.id)
                )
            ).all()

    async def is_settled(self, tx_id: str) -> bool:
        async with self._session() as db_session:
            status = (
                await db_session.scalars(
                    select(BridgeEvent.status)
                    .where(BridgeEvent.tx_id == tx_id)
                    .limit(1)
                )
            ).first()
            return status == BridgeEventStatus.COMPLETED

    async def get_event(self, tx_id: str) -> BridgeEvent | None:
        async with self._session() as db_session:
            return await self.__get_event(db_session, tx_id)

    async def list_events(
        self, query: ListBridgeEventsQuery
    ) -> tuple[Sequence[BridgeEvent], int]:
        """List bridge events, newest first

        :param query: filters and pagination
        :return: events, total number of events matching the filters
        """
        stmt = select(BridgeEvent)
        if query.status is not None:
            stmt = stmt.where(BridgeEvent.status == query.status)
        if query.source_chain is not None:
            stmt = stmt.where(BridgeEvent.source_chain == query.source_chain)
        if query.target_chain is not None:
            stmt = stmt.where(BridgeEvent.target_chain == query.target_chain)
        if query.tx_id is not None:
            stmt = stmt.where(BridgeEvent.tx_id.like("%" + query.tx_id.lower() + "%"))

        async with self._session() as db_session:
            total = await db_session.scalar(
                select(func.count()).select_from(stmt.subquery())
            )

            stmt = stmt.order_by(desc(BridgeEvent.created), desc(BridgeEvent.id))
            if query.offset is not None:
                stmt = stmt.offset(query.offset)
            if query.limit is not None:
                stmt = stmt.limit(query.limit)
            events = (await db_session.scalars(stmt)).all()
            return events, total

    async def recent_events(self, limit: int = 50) -> Sequence[BridgeEvent]:
        events, _ = await self.list_events(ListBridgeEventsQuery(limit=limit))
        return events

    async def retry_failed(self, tx_id: str) -> bool:
        """Reset a failed event to confirmed so that it is settled again

        :param tx_id: bridge transaction ID
        :return: False if the event does not exist
        :raises InvalidStatusTransitionError: event is not failed
        """
        async with self._session() as db_session:
            record = await self.__get_event(db_session, tx_id)
            if record is None:
                LOG.warning(f"Bridge event not found, retry skipped: tx_id={tx_id}")
                return False
            if not is_valid_status_transition(
                record.status, BridgeEventStatus.CONFIRMED, administrative=True
            ):
                raise InvalidStatusTransitionError(
                    tx_id, record.status, BridgeEventStatus.CONFIRMED
                )

            record.status = BridgeEventStatus.CONFIRMED
            record.settlement_tx_hash = None
            record.error_message = None
            record.modified = naive_utcnow()
            await db_session.commit()
            LOG.info(f"Bridge event reset for retry: tx_id={tx_id}")
            return True

    ####################################################
    # Watermark
    ####################################################
    async def watermark(self, chain_id: int) -> int:
        async with self._session() as db_session:
            block_number = (
                await db_session.scalars(
                    select(BridgeProcessedBlock.latest_block_number)
                    .where(BridgeProcessedBlock.chain_id == chain_id)
                    .limit(1)
                )
            ).first()
            return block_number if block_number is not None else 0

    async def set_watermark(self, chain_id: int, block_number: int):
        """Advance the processed block number of a chain

        Values lower than the current watermark are ignored.
        """
        async with self._session() as db_session:
            processed_block = (
                await db_session.scalars(
                    select(BridgeProcessedBlock)
                    .where(BridgeProcessedBlock.chain_id == chain_id)
                    .limit(1)
                )
            ).first()
            if processed_block is None:
                processed_block = BridgeProcessedBlock()
                processed_block.chain_id = chain_id
            elif processed_block.latest_block_number >= block_number:
                return

            processed_block.latest_block_number = block_number
            await db_session.merge(processed_block)
            await db_session.commit()

    ####################################################
    # Statistics
    ####################################################
    async def bridge_stats(self, days: int = 7) -> list[BridgeRouteStats]:
        """Aggregate events per route over the trailing window

        :param days: window size in days
        :return: statistics per route, busiest first
        """
        since = naive_utcnow() - timedelta(days=days)
        async with self._session() as db_session:
            rows = (
                await db_session.execute(
                    select(
                        BridgeEvent.source_chain,
                        BridgeEvent.target_chain,
                        BridgeEvent.status,
                        BridgeEvent.amount,
                    ).where(BridgeEvent.created >= since)
                )
            ).all()

        routes: dict[tuple[int, int], dict] = {}
        for source_chain, target_chain, status, amount in rows:
            route = routes.setdefault(
                (source_chain, target_chain),
                {"total": 0, "success": 0, "failed": 0, "volume": 0},
            )
            route["total"] += 1
            route["volume"] += int(amount)
            if status == BridgeEventStatus.COMPLETED:
                route["success"] += 1
            elif status == BridgeEventStatus.FAILED:
                route["failed"] += 1

        stats = [
            BridgeRouteStats(
                source_chain=source_chain,
                target_chain=target_chain,
                total_events=route["total"],
                successful_relays=route["success"],
                failed_relays=route["failed"],
                total_volume=str(route["volume"]),
            )
            for (source_chain, target_chain), route in routes.items()
        ]
        stats.sort(key=lambda s: (-s.total_events, s.source_chain, s.target_chain))
        return stats

    async def rebuild_daily_aggregates(
        self, days: int = 1, today: date | None = None
    ) -> Sequence[BridgeDailyStats]:
        """Rebuild daily aggregates of the last N days from bridge events

        :param days: number of days including today
        :param today: base date (UTC), defaults to the current date
        :return: rebuilt aggregates
        """
        if today is None:
            today = utc_today()
        first_day = today - timedelta(days=days - 1)
        since, until = utc_day_window(first_day, today)

        async with self._session() as db_session:
            rows = (
                await db_session.execute(
                    select(
                        BridgeEvent.created,
                        BridgeEvent.source_chain,
                        BridgeEvent.target_chain,
                        BridgeEvent.status,
                        BridgeEvent.amount,
                    ).where(BridgeEvent.created >= since, BridgeEvent.created < until)
                )
            ).all()

            aggregates: dict[tuple[date, int, int], BridgeDailyStats] = {}
            volumes: dict[tuple[date, int, int], int] = {}
            for created, source_chain, target_chain, status, amount in rows:
                key = (created.date(), source_chain, target_chain)
                stats = aggregates.get(key)
                if stats is None:
                    stats = BridgeDailyStats()
                    stats.date = key[0]
                    stats.source_chain = source_chain
                    stats.target_chain = target_chain
                    stats.events_processed = 0
                    stats.successful_relays = 0
                    stats.failed_relays = 0
                    aggregates[key] = stats
                    volumes[key] = 0
                stats.events_processed += 1
                volumes[key] += int(amount)
                if status == BridgeEventStatus.COMPLETED:
                    stats.successful_relays += 1
                elif status == BridgeEventStatus.FAILED:
                    stats.failed_relays += 1

            await db_session.execute(
                delete(BridgeDailyStats).where(
                    BridgeDailyStats.date >= first_day, BridgeDailyStats.date <= today
                )
            )
            for key, stats in aggregates.items():
                stats.total_volume = str(volumes[key])
                db_session.add(stats)
            await db_session.commit()

        return sorted(
            aggregates.values(),
            key=lambda s: (s.date, s.source_chain, s.target_chain),
        )

    async def daily_aggregates(
        self, days: int = 7, today: date | None = None
    ) -> Sequence[BridgeDailyStats]:
        if today is None:
            today = utc_today()
        first_day = today - timedelta(days=days - 1)
        async with self._session() as db_session:
            return (
                await db_session.scalars(
                    select(BridgeDailyStats)
                    .where(
                        BridgeDailyStats.date >= first_day,
                        BridgeDailyStats.date <= today,
                    )
                    .order_by(
                        BridgeDailyStats.date,
                        BridgeDailyStats.source_chain,
                        BridgeDailyStats.target_chain,
                    )
                )
            ).all()

    ####################################################
    # Private
    ####################################################
    @staticmethod
    async def __get_event(db_session: AsyncSession, tx_id: str) -> BridgeEvent | None:
        return (
            await db_session.scalars(
                select(BridgeEvent).where(BridgeEvent.tx_id == tx_id).limit(1)
            )
        ).first()

    @staticmethod
    def __apply_observation(record: BridgeEvent, event: BridgeEventData):
        record.event_type = event.event_type
        record.source_chain = event.source_chain
        record.target_chain = event.target_chain
        record.user_address = event.user_address
        record.token_address = event.token_address
        record.amount = event.amount
        if event.fee is not None:
            record.fee = event.fee
        record.target_address = event.target_address
        record.block_number = event.block_number
        record.transaction_hash = event.transaction_hash
