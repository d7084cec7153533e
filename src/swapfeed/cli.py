"""CLI entry point for the swapfeed daemon."""

from __future__ import annotations

import asyncio
import json
import logging
import sys

import click

from swapfeed.config import load_config
from swapfeed.daemon import SwapFeedDaemon, run_daemon
from swapfeed.errors import PricingError, TransientFetchError
from swapfeed.models.events import Pool
from swapfeed.pricing.engine import minimum_received, quote
from swapfeed.storage.sqlite import SQLiteStateStore


def _open_store(cfg) -> SQLiteStateStore:
    return SQLiteStateStore(cfg.db_path, feed_retention=cfg.feed_retention)


@click.group()
@click.option("-c", "--config", "config_path", default=None, help="Path to config TOML file")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging")
@click.pass_context
def cli(ctx: click.Context, config_path: str | None, verbose: bool) -> None:
    """swapfeed - swap activity feeds for followed wallets."""
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path
    ctx.obj["verbose"] = verbose

    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


# ── Daemon ─────────────────────────────────────────────


@cli.command()
@click.pass_context
def run(ctx: click.Context) -> None:
    """Start the polling daemon."""
    cfg = load_config(ctx.obj["config_path"])
    click.echo(f"Starting swapfeed daemon (interval: {cfg.poll_interval}s)")
    asyncio.run(run_daemon(cfg))


@cli.command()
@click.pass_context
def tick(ctx: click.Context) -> None:
    """Run a single scheduler tick over all pools and exit."""
    cfg = load_config(ctx.obj["config_path"])

    async def _tick():
        daemon = SwapFeedDaemon(cfg)
        try:
            await daemon.setup()
            report = await daemon.scheduler.run_tick()
        finally:
            await daemon.reader.close()
            await daemon.store.close()

        for r in report.results:
            span = f"[{r.from_block}, {r.to_block}]" if r.from_block is not None else ""
            line = f"  {r.pool} {r.status:8s} {span}"
            if r.error:
                line += f" error={r.error}"
            click.echo(line)
        click.echo(
            f"{report.advanced} advanced, {report.idle} idle, {report.failed} failed "
            f"in {report.duration_ms}ms"
        )
        return report.failed

    failed = asyncio.run(_tick())
    if failed:
        sys.exit(1)


@cli.command()
@click.pass_context
def status(ctx: click.Context) -> None:
    """Show configuration, pools and cursors."""
    cfg = load_config(ctx.obj["config_path"])
    click.echo(f"RPC URL:      {cfg.rpc_url}")
    click.echo(f"Factory:      {cfg.factory_address or '(not set)'}")
    click.echo(f"Interval:     {cfg.poll_interval}s")
    click.echo(f"Concurrency:  {cfg.max_concurrent_pools}")
    click.echo(f"Block range:  {cfg.max_block_range or 'unbounded'}")
    click.echo(f"Retention:    {cfg.feed_retention or 'unbounded'}")
    click.echo(f"DB path:      {cfg.db_path}")

    async def _status():
        store = _open_store(cfg)
        await store.initialize()
        try:
            pools = await store.get_pools()
            cursors = await store.get_cursors()
            entries = await store.count_entries()
            click.echo(f"Feed entries: {entries}")
            click.echo("")
            click.echo(f"Pools ({len(pools)})")
            for pool in pools:
                cursor = cursors.get(pool.address)
                click.echo(f"  {pool.address}  cursor={cursor if cursor is not None else '-'}")
        finally:
            await store.close()

    asyncio.run(_status())


# ── Pools ──────────────────────────────────────────────


@cli.command("add-pool")
@click.argument("address")
@click.argument("asset_a")
@click.argument("asset_b")
@click.pass_context
def add_pool(ctx: click.Context, address: str, asset_a: str, asset_b: str) -> None:
    """Register a pool to poll."""
    cfg = load_config(ctx.obj["config_path"])

    async def _add():
        store = _open_store(cfg)
        await store.initialize()
        try:
            await store.save_pool(Pool(address=address, asset_a=asset_a, asset_b=asset_b))
        finally:
            await store.close()

    asyncio.run(_add())
    click.echo(f"Registered pool {address.lower()}")


@cli.command()
@click.pass_context
def pools(ctx: click.Context) -> None:
    """List registered pools."""
    cfg = load_config(ctx.obj["config_path"])

    async def _pools():
        store = _open_store(cfg)
        await store.initialize()
        try:
            registered = await store.get_pools()
            if not registered:
                click.echo("No pools registered.")
                return
            for pool in registered:
                low, high = pool.canonical_assets()
                click.echo(f"  {pool.address}  {low} / {high}")
        finally:
            await store.close()

    asyncio.run(_pools())


# ── Follower graph ─────────────────────────────────────


@cli.command()
@click.argument("address")
@click.pass_context
def register(ctx: click.Context, address: str) -> None:
    """Register a subscriber wallet."""
    cfg = load_config(ctx.obj["config_path"])

    async def _register():
        store = _open_store(cfg)
        await store.initialize()
        try:
            await store.register_subscriber(address)
        finally:
            await store.close()

    asyncio.run(_register())
    click.echo(f"Registered {address.lower()}")


@cli.command()
@click.argument("subscriber")
@click.argument("actor")
@click.pass_context
def follow(ctx: click.Context, subscriber: str, actor: str) -> None:
    """Make SUBSCRIBER follow ACTOR's swaps."""
    cfg = load_config(ctx.obj["config_path"])

    async def _follow():
        store = _open_store(cfg)
        await store.initialize()
        try:
            added = await store.follow(subscriber, actor)
            return added, await store.get_follows(subscriber)
        finally:
            await store.close()

    added, follows = asyncio.run(_follow())
    if not added:
        click.echo(f"{subscriber.lower()} already follows {actor.lower()}")
    click.echo(f"Follows: {', '.join(follows)}")


@cli.command()
@click.argument("subscriber")
@click.argument("actor")
@click.pass_context
def unfollow(ctx: click.Context, subscriber: str, actor: str) -> None:
    """Stop SUBSCRIBER following ACTOR."""
    cfg = load_config(ctx.obj["config_path"])

    async def _unfollow():
        store = _open_store(cfg)
        await store.initialize()
        try:
            return await store.unfollow(subscriber, actor)
        finally:
            await store.close()

    if asyncio.run(_unfollow()):
        click.echo(f"{subscriber.lower()} no longer follows {actor.lower()}")
    else:
        click.echo(f"{subscriber.lower()} was not following {actor.lower()}")


# ── Feeds ──────────────────────────────────────────────


@cli.command()
@click.argument("subscriber")
@click.option("-n", "--limit", type=int, default=None, help="Maximum entries to show")
@click.option("--offset", type=int, default=0, help="Entries to skip")
@click.option("--json", "as_json", is_flag=True, help="Print entries as JSON")
@click.pass_context
def feed(ctx: click.Context, subscriber: str, limit: int | None, offset: int, as_json: bool) -> None:
    """Show a subscriber's feed, oldest first."""
    cfg = load_config(ctx.obj["config_path"])

    async def _feed():
        store = _open_store(cfg)
        await store.initialize()
        try:
            return await store.get_feed(subscriber, limit=limit, offset=offset)
        finally:
            await store.close()

    entries = asyncio.run(_feed())
    if as_json:
        click.echo(json.dumps({"events": [e.to_dict() for e in entries]}, indent=2))
        return
    if not entries:
        click.echo("Feed is empty.")
        return
    for e in entries:
        click.echo(
            f"  #{e.block_number}:{e.log_index} {e.actor[:10]}... swapped "
            f"{e.input_amount} {e.input_asset[:10]}... -> {e.output_amount} {e.output_asset[:10]}... "
            f"tx={e.tx_hash[:12]}..."
        )


@cli.command()
@click.option("-n", "--limit", type=int, default=20, help="Number of entries to show")
@click.pass_context
def activity(ctx: click.Context, limit: int) -> None:
    """Show recent daemon activity."""
    cfg = load_config(ctx.obj["config_path"])

    async def _activity():
        store = _open_store(cfg)
        await store.initialize()
        try:
            return await store.get_recent_activity(limit)
        finally:
            await store.close()

    for a in asyncio.run(_activity()):
        pool = f" pool={a.pool}" if a.pool else ""
        click.echo(f"  {a.created_at} [{a.event_type}]{pool} {a.message}")


# ── Quotes ─────────────────────────────────────────────


@cli.command("quote")
@click.argument("input_reserve", type=int)
@click.argument("output_reserve", type=int)
@click.argument("amount_in", type=int)
@click.option("--fee-numerator", type=int, default=997, show_default=True)
@click.option("--fee-denominator", type=int, default=1000, show_default=True)
@click.option("--slippage-bps", type=int, default=None, help="Also print the minimum received")
def quote_cmd(
    input_reserve: int,
    output_reserve: int,
    amount_in: int,
    fee_numerator: int,
    fee_denominator: int,
    slippage_bps: int | None,
) -> None:
    """Quote a swap of AMOUNT_IN against the given reserves (smallest units)."""
    try:
        amount_out = quote(input_reserve, output_reserve, amount_in, fee_numerator, fee_denominator)
        click.echo(f"Amount out: {amount_out}")
        if slippage_bps is not None:
            click.echo(f"Minimum received ({slippage_bps} bps): "
                       f"{minimum_received(amount_out, slippage_bps)}")
    except PricingError as exc:
        click.echo(f"Error: {type(exc).__name__}: {exc}", err=True)
        sys.exit(2)


@cli.command("quote-pool")
@click.argument("pool")
@click.argument("input_asset")
@click.argument("amount_in", type=int)
@click.pass_context
def quote_pool_cmd(ctx: click.Context, pool: str, input_asset: str, amount_in: int) -> None:
    """Quote a swap against a registered pool's live reserves."""
    cfg = load_config(ctx.obj["config_path"])

    async def _quote():
        daemon = SwapFeedDaemon(cfg)
        try:
            await daemon.store.initialize()
            return await daemon.feed_api.quote_pool(pool, input_asset, amount_in)
        finally:
            await daemon.reader.close()
            await daemon.store.close()

    try:
        amount_out = asyncio.run(_quote())
    except (PricingError, TransientFetchError) as exc:
        click.echo(f"Error: {type(exc).__name__}: {exc}", err=True)
        sys.exit(2)
    click.echo(f"Amount out: {amount_out}")


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
