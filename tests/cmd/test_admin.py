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

import importlib.util
from pathlib import Path
from unittest import mock

import pytest
import uvloop
from typer.testing import CliRunner

from app.chain_registry import ChainRegistry
from app.database import get_async_engine
from app.model.db import BridgeEventStatus
from app.store import BridgeEventStore
from tests.bridge_utils import (
    RELAYER_PRIVATE_KEY,
    FakeChainConnection,
    bridge_event_data,
    chain_config,
    chain_descriptor,
    padded_tx_id,
)

ADMIN_MAIN = Path(__file__).parents[2] / "cmd" / "admin" / "src" / "main.py"

spec = importlib.util.spec_from_file_location("admin_main", ADMIN_MAIN)
admin = importlib.util.module_from_spec(spec)
spec.loader.exec_module(admin)

runner = CliRunner()


def run_with_store(store: BridgeEventStore, func):
    async def _run():
        try:
            return await func(store)
        finally:
            await store.close()

    return uvloop.run(_run())


@pytest.fixture(scope="function")
def cli_store(tmp_path):
    engine = get_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'admin.db'}")
    store = BridgeEventStore(engine=engine)
    run_with_store(store, lambda s: s.create_tables())
    with mock.patch.object(admin, "get_store", return_value=store):
        yield store


async def prepare_events(store: BridgeEventStore):
    await store.upsert_event(bridge_event_data("0xa1", amount="100"))
    await store.upsert_event(bridge_event_data("0xa2", amount="200"))
    await store.set_status(
        "0xa2", BridgeEventStatus.FAILED, error_message="Transaction failed"
    )
    await store.upsert_event(
        bridge_event_data("0xb1", source_chain=56, target_chain=1, amount="300")
    )


class TestShow:
    # <Normal_1>
    def test_normal_1(self, cli_store):
        run_with_store(cli_store, prepare_events)

        result = runner.invoke(admin.app, ["show", "0xA2"])

        assert result.exit_code == 0
        assert "0xa2" in result.output
        assert "failed" in result.output
        assert "Transaction failed" in result.output

    # <Normal_2>
    # Event IDs recorded from event logs are found by their short form
    def test_normal_2(self, cli_store):
        async def prepare(store: BridgeEventStore):
            await store.upsert_event(bridge_event_data(padded_tx_id("0xabc")))

        run_with_store(cli_store, prepare)

        result = runner.invoke(admin.app, ["show", "0xABC"], env={"COLUMNS": "200"})

        assert result.exit_code == 0
        assert padded_tx_id("0xabc") in result.output

    # <Error_1>
    def test_error_1(self, cli_store):
        result = runner.invoke(admin.app, ["show", "0xabc"])

        assert result.exit_code == 1
        assert "Bridge event not found" in result.output

    # <Error_2>
    # Invalid transaction ID
    def test_error_2(self, cli_store):
        result = runner.invoke(admin.app, ["show", "0xzz"])

        assert result.exit_code == 1
        assert "Invalid transaction ID" in result.output


class TestList:
    # <Normal_1>
    def test_normal_1(self, cli_store):
        run_with_store(cli_store, prepare_events)

        result = runner.invoke(admin.app, ["list"])

        assert result.exit_code == 0
        assert "0xa1" in result.output
        assert "0xa2" in result.output
        assert "0xb1" in result.output
        assert "page: 1/1, total: 3" in result.output

    # <Normal_2>
    # Filters and pagination
    def test_normal_2(self, cli_store):
        run_with_store(cli_store, prepare_events)

        result = runner.invoke(
            admin.app, ["list", "--source-chain", "1", "--limit", "1", "--page", "2"]
        )

        assert result.exit_code == 0
        assert "page: 2/2, total: 2" in result.output
        assert "0xb1" not in result.output

        result = runner.invoke(admin.app, ["list", "--status", "failed"])
        assert "0xa2" in result.output
        assert "0xa1" not in result.output

    # <Error_1>
    # Invalid status
    def test_error_1(self, cli_store):
        result = runner.invoke(admin.app, ["list", "--status", "unknown"])

        assert result.exit_code == 2


class TestStats:
    # <Normal_1>
    def test_normal_1(self, cli_store):
        run_with_store(cli_store, prepare_events)

        result = runner.invoke(admin.app, ["stats", "--days", "1"])

        assert result.exit_code == 0
        assert "1 -> 56" in result.output
        assert "56 -> 1" in result.output
        assert "300" in result.output

    # <Normal_2>
    def test_normal_2(self, cli_store):
        run_with_store(cli_store, prepare_events)

        result = runner.invoke(admin.app, ["rebuild-stats", "--days", "3"])

        assert result.exit_code == 0
        assert "Successfully rebuilt daily aggregates" in result.output
        assert "days: 3, rows: 2" in result.output


class TestRetry:
    # <Normal_1>
    def test_normal_1(self, cli_store):
        run_with_store(cli_store, prepare_events)

        result = runner.invoke(admin.app, ["retry", "0xa2"])

        assert result.exit_code == 0
        assert "Successfully reset the bridge event for retry" in result.output
        event = run_with_store(cli_store, lambda s: s.get_event("0xa2"))
        assert event.status == BridgeEventStatus.CONFIRMED
        assert event.error_message is None

    # <Normal_2>
    # Event IDs recorded from event logs are found by their short form
    def test_normal_2(self, cli_store):
        tx_id = padded_tx_id("0xabc")

        async def prepare(store: BridgeEventStore):
            await store.upsert_event(bridge_event_data(tx_id))
            await store.set_status(
                tx_id, BridgeEventStatus.FAILED, error_message="Transaction failed"
            )

        run_with_store(cli_store, prepare)

        result = runner.invoke(admin.app, ["retry", "0xabc"])

        assert result.exit_code == 0
        assert "Successfully reset the bridge event for retry" in result.output
        event = run_with_store(cli_store, lambda s: s.get_event(tx_id))
        assert event.status == BridgeEventStatus.CONFIRMED

    # <Error_1>
    # Not failed
    def test_error_1(self, cli_store):
        run_with_store(cli_store, prepare_events)

        result = runner.invoke(admin.app, ["retry", "0xa1"])

        assert result.exit_code == 1
        assert "Only failed events can be retried" in result.output
        event = run_with_store(cli_store, lambda s: s.get_event("0xa1"))
        assert event.status == BridgeEventStatus.PENDING

    # <Error_2>
    # Not found
    def test_error_2(self, cli_store):
        result = runner.invoke(admin.app, ["retry", "0xabc"])

        assert result.exit_code == 1
        assert "Bridge event not found" in result.output


class TestChains:
    # <Normal_1>
    def test_normal_1(self):
        disabled = chain_config(chain_descriptor(137, "Polygon", 20))
        disabled["rpc_url"] = None
        registry = ChainRegistry(
            [chain_config(chain_descriptor(1, "Ethereum", 12)), disabled]
        )

        with mock.patch.object(admin, "get_registry", return_value=registry):
            result = runner.invoke(admin.app, ["chains"])

        assert result.exit_code == 0
        assert "Ethereum" in result.output
        assert "Polygon" in result.output
        assert "yes" in result.output
        assert "no" in result.output


class TestBalances:
    # <Normal_1>
    def test_normal_1(self, cli_store):
        ethereum = FakeChainConnection(chain_descriptor(1, "Ethereum", 12))
        registry = ChainRegistry([chain_config(ethereum.chain)])

        with (
            mock.patch.object(admin, "get_registry", return_value=registry),
            mock.patch.object(admin, "RELAYER_PRIVATE_KEY", RELAYER_PRIVATE_KEY),
            mock.patch.object(
                admin, "build_chain_connections", return_value={1: ethereum}
            ),
        ):
            result = runner.invoke(admin.app, ["balances"])

        assert result.exit_code == 0
        assert "Ethereum" in result.output
        assert "1" in result.output
        assert ethereum.closed is True

    # <Error_1>
    # Relayer account is not configured
    def test_error_1(self, cli_store):
        ethereum = FakeChainConnection(chain_descriptor(1, "Ethereum", 12))
        registry = ChainRegistry([chain_config(ethereum.chain)])

        with (
            mock.patch.object(admin, "get_registry", return_value=registry),
            mock.patch.object(admin, "RELAYER_PRIVATE_KEY", None),
            mock.patch.object(
                admin, "build_chain_connections", return_value={1: ethereum}
            ),
        ):
            result = runner.invoke(admin.app, ["balances"])

        assert result.exit_code == 1
        assert "Failed to get balances: RELAYER_PRIVATE_KEY is not set" in result.output
