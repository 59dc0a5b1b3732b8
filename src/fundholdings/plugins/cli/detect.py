"""
CLI command: detect

Shows the ranked candidate providers for a single fund.
"""

import logging

import click

from fundholdings.models import FundMetadata
from fundholdings.providers import build_default_registry, detect_providers
from fundholdings.providers import get_provider_display_name

# Configure module-level logger
logger = logging.getLogger("fundholdings.cli.detect")


@click.command("detect")
@click.argument("symbol", type=click.STRING)
@click.argument("name", type=click.STRING)
@click.option("--isin", default=None, help="Fund ISIN")
@click.option("--sedol", default=None, help="Fund SEDOL")
def cli(symbol: str, name: str, isin: str, sedol: str) -> None:
    """
    Rank the providers that would be tried for SYMBOL / NAME.
    """
    fund = FundMetadata(symbol=symbol, name=name, isin=isin, sedol=sedol)
    detection = detect_providers(fund)
    registry = build_default_registry()
    logger.debug("Detected %d candidates for %s", len(detection.providers), symbol)

    click.echo(f"Candidate providers for {symbol} ({name}):")
    for rank, info in enumerate(detection.providers, start=1):
        marker = "" if registry.has(info.provider) else "  [not registered]"
        click.echo(
            f"  {rank}. {get_provider_display_name(info.provider):<14} "
            f"confidence={info.confidence:<3} region={info.region} "
            f"type={info.fund_type}{marker}"
        )

    signals = detection.signals
    click.echo("\nSignals:")
    click.echo(f"  name pattern:   {signals.name_pattern or '-'}")
    click.echo(f"  ISIN prefix:    {signals.isin_prefix or '-'}")
    click.echo(f"  symbol pattern: {signals.symbol_pattern or '-'}")
    click.echo(f"  fund type:      {signals.fund_type or '-'}")
