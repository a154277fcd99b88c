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

from datetime import date as datetime_date

from sqlalchemy import BigInteger, Date, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base


class BridgeDailyStats(Base):
    """Daily aggregate of bridge events per route

    Derived from bridge_event and rebuilt on demand.
    """

    __tablename__ = "bridge_daily_stats"

    # Date (UTC) the events were observed
    date: Mapped[datetime_date] = mapped_column(Date, primary_key=True)
    # Source chain ID
    source_chain: Mapped[int] = mapped_column(BigInteger, primary_key=True)
    # Target chain ID
    target_chain: Mapped[int] = mapped_column(BigInteger, primary_key=True)
    # Number of events
    events_processed: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    # Number of completed events
    successful_relays: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    # Number of failed events
    failed_relays: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    # Total amount of events (decimal string)
    total_volume: Mapped[str] = mapped_column(String(100), nullable=False, default="0")
