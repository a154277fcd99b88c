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

import logging
import sys
from typing import Annotated, Optional

import click
import typer
import uvloop
from rich import print
from rich.console import Console
from rich.table import Table

from app.chain_connection import build_chain_connections
from app.chain_registry import ChainRegistry
from app.exceptions import AppError, InvalidStatusTransitionError
from app.model.db import BridgeEvent, BridgeEventStatus
from app.model.schema import ListBridgeEventsQuery
from app.notification import NotificationSink
from app.store import BridgeEventStore
from app.utils.eth_contract_utils import tx_id_to_bytes32
from batch.processor_bridge_settlement import BridgeSettlementProcessor
from batch.utils.scheduler import Scheduler
from config import RELAYER_PRIVATE_KEY

logging.getLogger("bridge_relayer").setLevel(logging.WARNING)
logging.getLogger("background").setLevel(logging.WARNING)

app = typer.Typer(pretty_exceptions_show_locals=False)


def get_store() -> BridgeEventStore:
    return BridgeEventStore()


def get_registry() -> ChainRegistry:
    return ChainRegistry()


def status_style(status: str) -> str:
    match status:
        case BridgeEventStatus.PENDING:
            return "yellow"
        case BridgeEventStatus.CONFIRMED:
            return "cyan"
        case BridgeEventStatus.COMPLETED:
            return "green"
        case BridgeEventStatus.FAILED:
            return "red"
        case _:
            return "white"


def tx_id_keys(tx_id: str) -> list[str]:
    """Stored forms of a transaction ID: as given and left-padded to bytes32"""
    tx_id = tx_id.lower()
    try:
        padded = "0x" + tx_id_to_bytes32(tx_id).hex()
    except ValueError:
        typer.echo(typer.style("Invalid transaction ID", fg="red"), err=True)
        sys.exit(1)
    return [tx_id] if padded == tx_id else [tx_id, padded]


def render_events(events: list[BridgeEvent], title: str | None = None) -> Table:
    event_table = Table(title=title)
    event_table.add_column("Tx ID")
    event_table.add_column("Type")
    event_table.add_column("Route")
    event_table.add_column("Amount")
    event_table.add_column("Status")
    event_table.add_column("Confirmations")
    event_table.add_column("Created")

    for event in events:
        event_table.add_row(
            event.tx_id,
            str(event.event_type),
            f"{event.source_chain} -> {event.target_chain}",
            event.amount,
            f"[{status_style(event.status)}]{event.status}[/]",
            str(event.confirmations),
            event.created.strftime("%Y-%m-%d %H:%M:%S") if event.created else "",
        )
    return event_table


@app.command(name="show")
def show_event(tx_id: str):
    """Show a bridge event"""

    keys = tx_id_keys(tx_id)

    async def _show():
        store = get_store()
        try:
            for key in keys:
                event = await store.get_event(key)
                if event is not None:
                    return event
            return None
        finally:
            await store.close()

    event = uvloop.run(_show())
    if event is None:
        typer.echo(typer.style("Bridge event not found", fg="red"), err=True)
        sys.exit(1)

    detail_table = Table(show_header=False)
    detail_table.add_column("Field")
    detail_table.add_column("Value")
    for key, value in event.json().items():
        detail_table.add_row(key, "" if value is None else str(value))
    Console().print(detail_table)


@app.command(name="list")
def list_events(
    status: Annotated[
        Optional[str],
        typer.Option(
            click_type=click.Choice([s.value for s in BridgeEventStatus]),
            help="Status",
        ),
    ] = None,
    source_chain: Annotated[Optional[int], typer.Option(help="Source chain ID")] = None,
    target_chain: Annotated[Optional[int], typer.Option(help="Target chain ID")] = None,
    tx_id: Annotated[
        Optional[str], typer.Option(help="Transaction ID (partial match)")
    ] = None,
    page: Annotated[int, typer.Option(min=1, help="Page number")] = 1,
    limit: Annotated[int, typer.Option(min=1, max=1000, help="Page size")] = 50,
):
    """List bridge events, newest first"""
    query = ListBridgeEventsQuery(
        status=status,
        source_chain=source_chain,
        target_chain=target_chain,
        tx_id=tx_id,
        offset=(page - 1) * limit,
        limit=limit,
    )

    async def _list():
        store = get_store()
        try:
            return await store.list_events(query)
        finally:
            await store.close()

    events, total = uvloop.run(_list())
    pages = (total + limit - 1) // limit
    Console().print(render_events(list(events), title=f"Bridge events ({total})"))
    print(f"page: {page}/{max(pages, 1)}, total: {total}")


@app.command(name="stats")
def stats(days: Annotated[int, typer.Option(min=1, help="Window in days")] = 7):
    """Show statistics per route over the trailing window"""

    async def _stats():
        store = get_store()
        try:
            return await store.bridge_stats(days=days)
        finally:
            await store.close()

    route_stats = uvloop.run(_stats())

    stats_table = Table(title=f"Bridge statistics (last {days} days)")
    stats_table.add_column("Route")
    stats_table.add_column("Total")
    stats_table.add_column("Successful")
    stats_table.add_column("Failed")
    stats_table.add_column("Volume")
    for route in route_stats:
        stats_table.add_row(
            f"{route.source_chain} -> {route.target_chain}",
            str(route.total_events),
            str(route.successful_relays),
            str(route.failed_relays),
            route.total_volume,
        )
    Console().print(stats_table)


@app.command(name="rebuild-stats")
def rebuild_stats(
    days: Annotated[int, typer.Option(min=1, help="Number of days to rebuild")] = 7,
):
    """Rebuild daily aggregates from bridge events"""

    async def _rebuild():
        store = get_store()
        try:
            return await store.rebuild_daily_aggregates(days=days)
        finally:
            await store.close()

    rows = uvloop.run(_rebuild())
    typer.echo(typer.style("Successfully rebuilt daily aggregates", fg="blue"))
    print(f"days: {days}, rows: {len(rows)}")


@app.command(name="retry")
def retry(tx_id: str):
    """Reset a failed bridge event to confirmed"""

    keys = tx_id_keys(tx_id)

    async def _retry():
        store = get_store()
        try:
            for key in keys:
                if await store.retry_failed(key):
                    return True
            return False
        finally:
            await store.close()

    try:
        found = uvloop.run(_retry())
    except InvalidStatusTransitionError as err:
        typer.echo(
            typer.style(f"Only failed events can be retried: {err}", fg="red"),
            err=True,
        )
        sys.exit(1)

    if not found:
        typer.echo(typer.style("Bridge event not found", fg="red"), err=True)
        sys.exit(1)

    typer.echo(typer.style("Successfully reset the bridge event for retry", fg="blue"))
    print(f"tx_id: {tx_id}")


@app.command(name="chains")
def chains():
    """List configured chains"""
    registry = get_registry()

    chain_table = Table(title="Chains")
    chain_table.add_column("Chain ID")
    chain_table.add_column("Name")
    chain_table.add_column("Active")
    chain_table.add_column("Min Confirmations")
    chain_table.add_column("Max Gas Price (gwei)")
    chain_table.add_column("Bridge Address")
    for chain_id in sorted(registry.all_chain_ids()):
        if registry.is_active(chain_id):
            chain = registry.describe(chain_id)
            chain_table.add_row(
                str(chain_id),
                chain.name,
                "[green]yes[/]",
                str(chain.min_confirmations),
                str(chain.max_gas_price),
                chain.bridge_address,
            )
        else:
            chain_table.add_row(
                str(chain_id), registry.name_of(chain_id), "[red]no[/]", "", "", ""
            )
    Console().print(chain_table)


@app.command(name="balances")
def balances():
    """Show relayer balance on every active chain"""
    registry = get_registry()

    async def _balances():
        store = get_store()
        connections = build_chain_connections(registry.active_chains())
        processor = BridgeSettlementProcessor(
            registry=registry,
            connections=connections,
            store=store,
            sink=NotificationSink(),
            scheduler=Scheduler(logger=logging.getLogger("background")),
            private_key=RELAYER_PRIVATE_KEY,
        )
        try:
            await processor.initialize()
            return await processor.all_balances()
        finally:
            for connection in connections.values():
                await connection.close()
            await store.close()

    try:
        result = uvloop.run(_balances())
    except AppError as err:
        typer.echo(typer.style(f"Failed to get balances: {err}", fg="red"), err=True)
        sys.exit(1)

    balance_table = Table(title="Relayer balances")
    balance_table.add_column("Chain ID")
    balance_table.add_column("Name")
    balance_table.add_column("Balance")
    for chain_id, balance in result.items():
        balance_table.add_row(str(chain_id), balance["name"], balance["balance"])
    Console().print(balance_table)


if __name__ == "__main__":
    app()
