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
import pytest_asyncio
from pytest_asyncio import is_async_test

from app.database import async_engine, get_async_engine
from app.model.db import Base
from app.store import BridgeEventStore
from config import ASYNC_DATABASE_URL
from tests.bridge_utils import FakeChainConnection, RecordingSink, chain_descriptor


def pytest_collection_modifyitems(items):
    pytest_asyncio_tests = (item for item in items if is_async_test(item))
    session_scope_marker = pytest.mark.asyncio(loop_scope="session")
    for async_test in pytest_asyncio_tests:
        async_test.add_marker(session_scope_marker, append=False)


#####################################################
# DB
#####################################################
@pytest_asyncio.fixture(scope="function", loop_scope="session")
async def async_db_engine(tmp_path):
    if ASYNC_DATABASE_URL.startswith("sqlite"):
        # Each test gets its own database file
        engine = get_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'relayer.db'}")
    else:
        engine = async_engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest_asyncio.fixture(scope="function", loop_scope="session")
async def store(async_db_engine):
    yield BridgeEventStore(engine=async_db_engine)


#####################################################
# Chain
#####################################################
@pytest.fixture(scope="function")
def ethereum():
    return FakeChainConnection(chain_descriptor(1, "Ethereum", 12), head=1000)


@pytest.fixture(scope="function")
def bsc():
    return FakeChainConnection(
        chain_descriptor(56, "BSC", 15, max_gas_price="20"), head=5000
    )


#####################################################
# Notification
#####################################################
@pytest.fixture(scope="function")
def sink():
    return RecordingSink()
