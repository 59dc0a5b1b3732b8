"""
CLI command: cache

Inspects and clears the SQLite holdings cache.
"""

import logging
from pathlib import Path
from typing import Optional

import click

from fundholdings.cache import SQLiteHoldingsCache
from fundholdings.providers import get_provider_display_name
from fundholdings.settings import settings

# Configure module-level logger
logger = logging.getLogger("fundholdings.cli.cache")


def _open_cache(db: Optional[Path]) -> SQLiteHoldingsCache:
    return SQLiteHoldingsCache(db or settings.cache_path)


@click.group("cache")
def cli():
    """
    Holdings cache commands.
    """
    pass


@cli.command("show")
@click.argument("symbol", type=click.STRING)
@click.option("--db", type=click.Path(path_type=Path), default=None, help="Cache database")
@click.option("--limit", default=20, show_default=True, help="Rows to display")
def show_cache(symbol: str, db: Optional[Path], limit: int):
    """
    Show the latest cached holdings for SYMBOL.
    """
    cached = _open_cache(db).read_latest(symbol)
    if cached is None:
        click.echo(f"No cached holdings for {symbol}")
        return

    click.echo(
        f"{symbol}: {len(cached.holdings)} holdings as of {cached.as_of_date} "
        f"from {get_provider_display_name(cached.provider)} ({cached.data_quality})"
    )
    for row in cached.holdings[:limit]:
        click.echo(f"  {row.weight_percent:6.2f}%  {row.holding_name}")
    if len(cached.holdings) > limit:
        click.echo(f"  ... {len(cached.holdings) - limit} more")


@cli.command("clear")
@click.argument("symbol", type=click.STRING, required=False)
@click.option("--db", type=click.Path(path_type=Path), default=None, help="Cache database")
@click.option("--yes", is_flag=True, help="Do not ask for confirmation")
def clear_cache(symbol: Optional[str], db: Optional[Path], yes: bool):
    """
    Delete cached holdings for SYMBOL, or for every fund.
    """
    target = symbol or "all funds"
    if not yes:
        click.confirm(f"Clear cached holdings for {target}?", abort=True)

    deleted = _open_cache(db).clear(symbol)
    logger.info("Cleared %d cached rows for %s", deleted, target)
    click.echo(f"Deleted {deleted} cached rows for {target}")
