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

from datetime import UTC, date, datetime, time, timedelta

from sqlalchemy import DateTime
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from app.database import get_db_schema


def aware_utcnow():
    return datetime.now(UTC)


def naive_utcnow():
    return aware_utcnow().replace(tzinfo=None)


def utc_today() -> date:
    return aware_utcnow().date()


def utc_day_window(first_day: date, last_day: date) -> tuple[datetime, datetime]:
    """Get [since, until) covering whole UTC days

    Timestamps are stored as naive UTC, so the bounds are naive too.
    """
    since = datetime.combine(first_day, time.min)
    until = datetime.combine(last_day + timedelta(days=1), time.min)
    return since, until


class Base(DeclarativeBase):
    # created datetime(UTC)
    created: Mapped[datetime | None] = mapped_column(DateTime, default=naive_utcnow)
    # modified datetime(UTC)
    modified: Mapped[datetime | None] = mapped_column(
        DateTime, default=naive_utcnow, onupdate=naive_utcnow
    )

    @staticmethod
    def datetime_to_iso(value: datetime | None) -> str | None:
        """Format a stored naive UTC datetime as ISO 8601 with offset"""
        if value is None:
            return None
        return value.replace(tzinfo=UTC).isoformat()


schema = get_db_schema()
if schema is not None:
    setattr(Base, "__table_args__", {"schema": schema})
