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

from sqlalchemy import AsyncAdaptedQueuePool, Engine, StaticPool, create_engine
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from config import ASYNC_DATABASE_URL, DATABASE_SCHEMA, DATABASE_URL, DB_ECHO


def get_engine(uri: str) -> Engine:
    if uri.startswith("sqlite"):
        return create_engine(uri, echo=DB_ECHO)
    return create_engine(uri, pool_pre_ping=True, echo=DB_ECHO)


def get_async_engine(uri: str) -> AsyncEngine:
    if uri.startswith("sqlite"):
        options = {"echo": DB_ECHO}
        if ":memory:" in uri:
            # A single connection is shared so that all sessions see the same database
            options["poolclass"] = StaticPool
            options["connect_args"] = {"check_same_thread": False}
        return create_async_engine(uri, **options)

    options = {
        "poolclass": AsyncAdaptedQueuePool,
        "pool_recycle": 3600,
        "pool_size": 10,
        "pool_timeout": 30,
        "pool_pre_ping": True,
        "max_overflow": 30,
        "echo": DB_ECHO,
    }
    return create_async_engine(uri, **options)


def get_session_maker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        autocommit=False,
        autoflush=True,
        expire_on_commit=False,
        bind=engine,
        class_=AsyncSession,
    )


# Create Engine
engine = get_engine(DATABASE_URL)
async_engine = get_async_engine(ASYNC_DATABASE_URL)


def get_db_schema():
    return DATABASE_SCHEMA
