import asyncio
import logging
from collections.abc import Sequence
from datetime import datetime

import click
from rich.console import Console
from rich.live import Live
from rich.logging import RichHandler
from rich.table import Table

from ensfeed.core.config import FeedConfig
from ensfeed.core.models import DomainEvent, RegisteredPayload, TransferredPayload, UpdatedPayload
from ensfeed.orchestration.orchestrator import open_feed

console = Console()

_KIND_STYLE = {"Registered": "green", "Transferred": "blue", "Updated": "yellow"}


def truncate_addr(addr: str | None, n: int = 6) -> str:
    """Shorten `0x1234567890...` to `0x1234...7890` for display."""
    if not addr:
        return "-"
    return f"{addr[:n]}...{addr[-4:]}" if len(addr) > n + 4 else addr


def describe(ev: DomainEvent) -> tuple[str, str]:
    """Return (name, counterparty column) for one feed entry."""
    p = ev.payload
    if isinstance(p, RegisteredPayload):
        return p.name, f"by {truncate_addr(p.owner)}"
    if isinstance(p, TransferredPayload):
        return p.name, f"to {truncate_addr(p.new_owner)}"
    if isinstance(p, UpdatedPayload):
        return p.name, f"-> {truncate_addr(p.new_address)}"
    return "?", ""


def render_feed(events: Sequence[DomainEvent]) -> Table:
    table = Table(title=f"Name registry events ({len(events)})", expand=True)
    table.add_column("kind")
    table.add_column("name", overflow="fold")
    table.add_column("who")
    table.add_column("seen", justify="right")
    table.add_column("id", overflow="fold", style="dim")
    if not events:
        table.add_row("[dim]No events yet[/]", "", "", "", "")
    for ev in events:
        name, who = describe(ev)
        style = _KIND_STYLE.get(ev.kind, "white")
        seen = datetime.fromtimestamp(ev.observed_at).strftime("%H:%M:%S")
        table.add_row(f"[{style}]{ev.kind}[/]", name, who, seen, ev.id)
    return table


def _setup_logging(level: str) -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True, show_path=False)],
    )


def _common_options(f):
    f = click.option("--rpc", "rpc_url", required=True, envvar="ENSFEED_RPC_URL", help="RPC endpoint URL")(f)
    f = click.option("--contract", required=True, envvar="ENSFEED_CONTRACT", help="Name registry contract address")(f)
    f = click.option("--window", type=int, default=50_000, show_default=True, help="Blocks to backfill")(f)
    f = click.option("--capacity", type=int, default=50, show_default=True, help="Max feed entries")(f)
    f = click.option(
        "--order-by",
        type=click.Choice(["id", "block"]),
        default="id",
        show_default=True,
        help="Feed ordering key",
    )(f)
    f = click.option("--timeout", "timeout_s", type=int, default=20, show_default=True, help="RPC timeout (s)")(f)
    return f


@click.group()
@click.option(
    "--log-level",
    type=click.Choice(["debug", "info", "warning", "error"], case_sensitive=False),
    default="warning",
    show_default=True,
)
def cli(log_level: str) -> None:
    """ensfeed: live, deduplicated event feed for a name-registry contract."""
    _setup_logging(log_level)


@cli.command("backfill")
@_common_options
def backfill_cmd(
    rpc_url: str,
    contract: str,
    window: int,
    capacity: int,
    order_by: str,
    timeout_s: int,
) -> None:
    """Scan recent history once and print the resulting feed."""
    config = FeedConfig(
        rpc_url=rpc_url,
        address=contract,
        scan_window=window,
        capacity=capacity,
        order_by=order_by,  # type: ignore[arg-type]
        timeout_s=timeout_s,
    )

    async def run() -> None:
        async with open_feed(config, subscribe=False) as reconciler:
            console.print(render_feed(reconciler.events))

    asyncio.run(run())


@cli.command("watch")
@_common_options
@click.option("--poll-interval", type=float, default=4.0, show_default=True, help="Head polling cadence (s)")
@click.option("--refresh", type=float, default=1.0, show_default=True, help="Screen refresh interval (s)")
def watch_cmd(
    rpc_url: str,
    contract: str,
    window: int,
    capacity: int,
    order_by: str,
    timeout_s: int,
    poll_interval: float,
    refresh: float,
) -> None:
    """Backfill, then follow new events until interrupted."""
    config = FeedConfig(
        rpc_url=rpc_url,
        address=contract,
        scan_window=window,
        capacity=capacity,
        order_by=order_by,  # type: ignore[arg-type]
        timeout_s=timeout_s,
        poll_interval_s=poll_interval,
    )

    async def run() -> None:
        async with open_feed(config) as reconciler:
            with Live(render_feed(reconciler.events), console=console, auto_refresh=False) as live:
                while True:
                    live.update(render_feed(reconciler.events), refresh=True)
                    await asyncio.sleep(refresh)

    try:
        asyncio.run(run())
    except KeyboardInterrupt:
        console.print("[bold]stopped[/]")


if __name__ == "__main__":
    cli()
