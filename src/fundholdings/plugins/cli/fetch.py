"""
CLI command: fetch

Fetches holdings for every fund listed in a YAML or CSV file, caches the
results and prints a summary.
"""

import asyncio
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

import click
import pandas as pd
import yaml

from fundholdings.cache import SQLiteHoldingsCache
from fundholdings.models import FundMetadata, ProgressUpdate
from fundholdings.providers import (
    HoldingsOrchestrator,
    build_default_registry,
    get_provider_display_name,
    summarize_results,
)
from fundholdings.settings import settings

# Configure module-level logger
logger = logging.getLogger("fundholdings.cli.fetch")

FUND_FIELDS = ("symbol", "name", "isin", "sedol", "value", "quantity")


def load_funds(path: Path) -> List[FundMetadata]:
    """
    Read fund metadata from a YAML list (optionally under a ``funds`` key) or a
    CSV file with ``symbol`` and ``name`` columns.
    """
    if path.suffix.lower() in (".yaml", ".yml"):
        with open(path, "r") as f:
            data = yaml.safe_load(f) or []
        records = data.get("funds", []) if isinstance(data, dict) else data
    else:
        df = pd.read_csv(path, dtype=str)
        df.columns = [str(c).strip().lower() for c in df.columns]
        records = df.astype(object).where(df.notna(), None).to_dict(orient="records")

    funds = []
    for record in records:
        fields: Dict[str, Any] = {
            k: record.get(k) for k in FUND_FIELDS if record.get(k) is not None
        }
        funds.append(FundMetadata(**fields))
    return funds


def print_progress(update: ProgressUpdate) -> None:
    label = get_provider_display_name(update.provider)
    if update.status == "trying":
        click.echo(f"  {update.fund_symbol}: trying {label}...")
    elif update.status == "success":
        click.echo(
            f"  {update.fund_symbol}: ✓ {label} "
            f"({update.holdings_count} holdings, {update.data_quality})"
        )
    elif update.status == "failed":
        click.echo(f"  {update.fund_symbol}: ✗ {label}: {update.error}")


@click.command("fetch")
@click.argument("funds_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--db", type=click.Path(path_type=Path), default=None, help="Cache database")
@click.option("--no-cache", is_flag=True, help="Do not persist fetched holdings")
@click.option(
    "--concurrency", type=click.IntRange(min=1), default=None, help="Funds fetched at once"
)
def cli(funds_file: Path, db: Optional[Path], no_cache: bool, concurrency: Optional[int]) -> None:
    """
    Fetch holdings for every fund in FUNDS_FILE (YAML or CSV).
    """
    try:
        funds = load_funds(funds_file)
    except Exception as exc:
        logger.exception("Failed to read fund list %s: %s", funds_file, exc)
        click.echo(f"Error: could not read fund list from {funds_file}: {exc}")
        raise click.Abort()

    if not funds:
        click.echo(f"No funds found in {funds_file}")
        return

    run_settings = settings
    if concurrency is not None:
        run_settings = settings.model_copy(update={"max_concurrent_funds": concurrency})

    cache = None if no_cache else SQLiteHoldingsCache(db or run_settings.cache_path)
    orchestrator = HoldingsOrchestrator(
        build_default_registry(run_settings), cache=cache, settings=run_settings
    )

    click.echo(f"Fetching holdings for {len(funds)} funds...")
    results = asyncio.run(orchestrator.fetch_all_holdings_with_progress(funds, print_progress))

    click.echo("\nResults:")
    for result in results:
        if result.status == "success":
            click.echo(
                f"  ✓ {result.symbol}: {result.holdings_count} holdings from "
                f"{get_provider_display_name(result.provider)} ({result.data_quality})"
            )
        else:
            tried = ", ".join(result.attempted_providers) or "none"
            click.echo(f"  ✗ {result.symbol}: {result.error} (tried: {tried})")

    summary = summarize_results(results)
    click.echo(
        f"\nCompleted: {summary.successful}/{summary.total} funds "
        f"({summary.success_rate:.0f}%), {summary.complete} complete, "
        f"{summary.partial} partial"
    )
    for provider, count in sorted(summary.provider_counts.items()):
        click.echo(f"  {get_provider_display_name(provider)}: {count}")
